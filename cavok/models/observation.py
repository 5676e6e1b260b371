"""Observation model for METAR reports and TAF forecasts."""

import enum
from datetime import datetime
from uuid import uuid4

from sqlalchemy import Enum, ForeignKey, Integer, String, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from cavok.database import Base, UTCDateTime, utc_now


class ObservationType(enum.StrEnum):
    """Kind of observation report."""

    METAR = "metar"
    TAF = "taf"


class Observation(Base):
    """A parsed METAR or TAF tied to a known station.

    Both report kinds share one table; ``type`` tells them apart. TAF rows
    carry the ``valid_from``/``valid_to`` forecast period, METAR rows carry
    temperature and dew point.
    """

    __tablename__ = "observations"

    id: Mapped[str] = mapped_column(
        Uuid(as_uuid=False),
        primary_key=True,
        default=lambda: str(uuid4()),
    )
    type: Mapped[ObservationType] = mapped_column(
        Enum(ObservationType),
        nullable=False,
        index=True,
    )
    identifier: Mapped[str] = mapped_column(
        String(16),
        ForeignKey("stations.identifier", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    raw: Mapped[str] = mapped_column(Text, nullable=False)

    # Report (METAR) or issue (TAF) time
    observed_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, index=True)

    # Shared measurements
    cloud_height: Mapped[int | None] = mapped_column(Integer)  # ft, lowest BKN/OVC/VV layer
    visibility: Mapped[int | None] = mapped_column(Integer)  # metres
    wind_direction: Mapped[int | None] = mapped_column(Integer)  # degrees, None when variable
    wind_speed: Mapped[int | None] = mapped_column(Integer)  # kt
    wind_gust: Mapped[int | None] = mapped_column(Integer)  # kt

    # METAR only
    temperature: Mapped[int | None] = mapped_column(Integer)  # °C
    dew_point: Mapped[int | None] = mapped_column(Integer)  # °C

    # TAF only
    valid_from: Mapped[datetime | None] = mapped_column(UTCDateTime)
    valid_to: Mapped[datetime | None] = mapped_column(UTCDateTime)

    fetched_at: Mapped[datetime] = mapped_column(
        UTCDateTime,
        default=utc_now,
    )

    # Relationships
    station: Mapped["Station"] = relationship(  # noqa: F821
        "Station", back_populates="observations"
    )

    __table_args__ = (
        UniqueConstraint("type", "identifier", "observed_at", name="uq_observations_type_station_time"),
    )

    @property
    def spread(self) -> int | None:
        """Temperature/dew point spread in °C (METAR only)."""
        if self.temperature is None or self.dew_point is None:
            return None
        return self.temperature - self.dew_point
