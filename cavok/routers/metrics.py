"""Prometheus metrics endpoint."""

from fastapi import APIRouter, Depends
from fastapi.responses import PlainTextResponse
from prometheus_client import CONTENT_TYPE_LATEST, CollectorRegistry, Gauge, generate_latest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from cavok.database import get_db
from cavok.models import Observation, ObservationType, Station
from cavok.routers.deps import get_weather_service
from cavok.services.weather import RefreshState, WeatherService

router = APIRouter(tags=["metrics"])


async def collect_metrics(db: AsyncSession, service: WeatherService) -> bytes:
    """Collect all metrics and return Prometheus format."""
    registry = CollectorRegistry()

    stations_total = Gauge(
        "cavok_stations_total",
        "Stations cached for the monitored region",
        registry=registry,
    )
    observations_total = Gauge(
        "cavok_observations_total",
        "Cached observations",
        ["type"],
        registry=registry,
    )
    association_misses = Gauge(
        "cavok_association_misses",
        "Reports in the last refresh whose station is not cached",
        registry=registry,
    )
    parse_failures = Gauge(
        "cavok_parse_failures",
        "Reports in the last refresh that could not be parsed",
        registry=registry,
    )
    last_refresh = Gauge(
        "cavok_last_refresh_timestamp",
        "Last successful refresh timestamp (Unix seconds)",
        ["kind"],
        registry=registry,
    )
    refresh_state = Gauge(
        "cavok_refresh_state",
        "Current refresh state (1 for the active state)",
        ["state"],
        registry=registry,
    )

    count_result = await db.execute(select(func.count()).select_from(Station))
    stations_total.set(count_result.scalar() or 0)

    counts_result = await db.execute(
        select(Observation.type, func.count()).group_by(Observation.type)
    )
    counts = {kind: count for kind, count in counts_result.all()}
    for kind in ObservationType:
        observations_total.labels(type=kind.value).set(counts.get(kind, 0))

    stats = service.stats
    association_misses.set(stats.association_misses)
    parse_failures.set(stats.parse_failures)
    if stats.last_station_refresh:
        last_refresh.labels(kind="stations").set(stats.last_station_refresh.timestamp())
    if stats.last_observation_refresh:
        last_refresh.labels(kind="observations").set(stats.last_observation_refresh.timestamp())

    for state in RefreshState:
        refresh_state.labels(state=state.value).set(1 if service.state == state else 0)

    return generate_latest(registry)


@router.get("/metrics", response_class=PlainTextResponse)
async def prometheus_metrics(
    db: AsyncSession = Depends(get_db),
    service: WeatherService = Depends(get_weather_service),
) -> PlainTextResponse:
    """Prometheus metrics endpoint."""
    metrics_data = await collect_metrics(db, service)
    return PlainTextResponse(content=metrics_data, media_type=CONTENT_TYPE_LATEST)
