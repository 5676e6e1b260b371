"""SQLAlchemy ORM models."""

from cavok.models.observation import Observation, ObservationType
from cavok.models.settings import SystemSetting
from cavok.models.station import Station

__all__ = [
    "Observation",
    "ObservationType",
    "Station",
    "SystemSetting",
]
