"""Schemas for stations, observations and timeslots."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict

from cavok.models import ObservationType


class StationResponse(BaseModel):
    """Schema for a cached station."""

    model_config = ConfigDict(from_attributes=True)

    identifier: str
    name: str | None
    latitude: float
    longitude: float
    elevation: float | None
    has_metar: bool
    has_taf: bool


class StationRefreshResult(BaseModel):
    """Result of a station refresh."""

    success: bool
    station_count: int
    message: str


class ObservationResponse(BaseModel):
    """Schema for a cached METAR or TAF."""

    model_config = ConfigDict(from_attributes=True)

    type: ObservationType
    identifier: str
    raw: str
    observed_at: datetime
    cloud_height: int | None = None
    visibility: int | None = None
    wind_direction: int | None = None
    wind_speed: int | None = None
    wind_gust: int | None = None
    temperature: int | None = None
    dew_point: int | None = None
    valid_from: datetime | None = None
    valid_to: datetime | None = None


class ObservationRefreshResult(BaseModel):
    """Result of an observation refresh."""

    success: bool
    metar_count: int
    taf_count: int
    message: str


class TimeslotSummary(BaseModel):
    """Ordered timeslots for one observation type."""

    type: ObservationType
    bucket_minutes: int
    timeslots: list[datetime]
    counts: list[int]
    selected_frame: int | None
    status: str | None = None


class FrameValue(BaseModel):
    """Value of the requested field for one observation in a frame."""

    identifier: str
    latitude: float | None
    longitude: float | None
    value: int | None
    observation: ObservationResponse


class FrameResponse(BaseModel):
    """Contents of one timeslot."""

    type: ObservationType
    frame: int
    start: datetime
    end: datetime
    field: str
    status: str
    values: list[FrameValue]


class PipelineStatus(BaseModel):
    """Refresh state and cache counts."""

    state: str
    region_configured: bool
    station_count: int
    metar_count: int
    taf_count: int
    association_misses: int
    parse_failures: int
    last_station_refresh: datetime | None
    last_observation_refresh: datetime | None
    last_error: str | None


class FieldResponse(BaseModel):
    """A value that can be drawn on the map."""

    name: str
    label: str
    unit: str
    types: list[ObservationType]
