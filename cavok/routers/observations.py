"""Observation, timeslot and pipeline status endpoints."""

from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Query

from cavok.exceptions import WeatherError
from cavok.field_registry import FIELD_REGISTRY, field_value, get_fields_for_type
from cavok.models import ObservationType
from cavok.routers.deps import get_weather_service, weather_http_error
from cavok.schemas.weather import (
    FieldResponse,
    FrameResponse,
    FrameValue,
    ObservationRefreshResult,
    ObservationResponse,
    PipelineStatus,
    TimeslotSummary,
)
from cavok.services.timeslots import NO_DATA_STATUS, as_utc, frame_status
from cavok.services.weather import WeatherService

router = APIRouter(prefix="/api", tags=["observations"])


@router.get("/observations", response_model=list[ObservationResponse])
async def list_observations(
    type: ObservationType = Query(default=ObservationType.METAR),
    start: datetime | None = Query(default=None, description="Window start (UTC if no offset)"),
    minutes: int = Query(default=60, ge=1, le=7 * 24 * 60),
    service: WeatherService = Depends(get_weather_service),
) -> list[ObservationResponse]:
    """Cached observations of a type, optionally limited to ``[start, start + minutes)``."""
    if start is None:
        observations = await service.observations(type)
    else:
        observations = await service.observations_between(as_utc(start), minutes, type)
    return [ObservationResponse.model_validate(o) for o in observations]


@router.post("/observations/refresh", response_model=ObservationRefreshResult)
async def refresh_observations(
    service: WeatherService = Depends(get_weather_service),
) -> ObservationRefreshResult:
    """Fetch METARs and TAFs for the cached stations."""
    try:
        observations = await service.refresh_observations()
    except WeatherError as e:
        raise weather_http_error(e) from e

    metars = sum(1 for o in observations if o.type == ObservationType.METAR)
    return ObservationRefreshResult(
        success=True,
        metar_count=metars,
        taf_count=len(observations) - metars,
        message=f"Loaded {len(observations)} observations",
    )


@router.get("/fields", response_model=list[FieldResponse])
async def list_fields(type: ObservationType | None = Query(default=None)) -> list[FieldResponse]:
    """Displayable fields, optionally only those carrying a value for ``type``."""
    fields = FIELD_REGISTRY.values() if type is None else get_fields_for_type(type)
    return [
        FieldResponse(name=f.name, label=f.label, unit=f.unit, types=sorted(f.types))
        for f in fields
    ]


@router.get("/timeslots", response_model=TimeslotSummary)
async def get_timeslots(
    type: ObservationType = Query(default=ObservationType.METAR),
    service: WeatherService = Depends(get_weather_service),
) -> TimeslotSummary:
    """Timeslots of the cached observations and the default frame."""
    grouped = await service.timeslots(type)
    if grouped.selected_frame is None:
        status = NO_DATA_STATUS
    else:
        status = frame_status(grouped.go(grouped.selected_frame), type)
    return TimeslotSummary(
        type=type,
        bucket_minutes=grouped.bucket_minutes,
        timeslots=grouped.timeslots,
        counts=[len(frame) for frame in grouped.frames],
        selected_frame=grouped.selected_frame,
        status=status,
    )


@router.get("/timeslots/{frame}", response_model=FrameResponse)
async def get_frame(
    frame: int,
    type: ObservationType = Query(default=ObservationType.METAR),
    field: str = Query(default="ceiling"),
    service: WeatherService = Depends(get_weather_service),
) -> FrameResponse:
    """Observations of one timeslot with the value of ``field`` for each."""
    if field not in FIELD_REGISTRY:
        raise HTTPException(status_code=400, detail=f"Unknown field: {field}")

    grouped = await service.timeslots(type)
    try:
        observations = grouped.go(frame)
    except IndexError:
        raise HTTPException(status_code=404, detail=NO_DATA_STATUS)

    positions = {s.identifier: (s.latitude, s.longitude) for s in await service.stations()}
    values = []
    for obs in observations:
        lat, lon = positions.get(obs.identifier, (None, None))
        values.append(
            FrameValue(
                identifier=obs.identifier,
                latitude=lat,
                longitude=lon,
                value=field_value(field, obs),
                observation=ObservationResponse.model_validate(obs),
            )
        )

    return FrameResponse(
        type=type,
        frame=frame,
        start=grouped.timeslots[frame],
        end=grouped.bucket_end(frame),
        field=field,
        status=frame_status(observations, type),
        values=values,
    )


@router.get("/status", response_model=PipelineStatus)
async def get_status(service: WeatherService = Depends(get_weather_service)) -> PipelineStatus:
    """Refresh state and cache counts."""
    stats = service.stats
    return PipelineStatus(
        state=service.state.value,
        region_configured=await service.region() is not None,
        station_count=await service.station_count(),
        metar_count=await service.observation_count(ObservationType.METAR),
        taf_count=await service.observation_count(ObservationType.TAF),
        association_misses=stats.association_misses,
        parse_failures=stats.parse_failures,
        last_station_refresh=stats.last_station_refresh,
        last_observation_refresh=stats.last_observation_refresh,
        last_error=stats.last_error,
    )
