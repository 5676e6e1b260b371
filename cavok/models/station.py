"""Station model for aviation weather stations."""

from datetime import datetime

from sqlalchemy import Boolean, Double, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from cavok.database import Base, UTCDateTime, utc_now


class Station(Base):
    """A weather station inside the monitored region."""

    __tablename__ = "stations"

    identifier: Mapped[str] = mapped_column(String(16), primary_key=True)  # e.g. "EFHK"
    name: Mapped[str | None] = mapped_column(String(100))

    # Position
    latitude: Mapped[float] = mapped_column(Double, nullable=False)
    longitude: Mapped[float] = mapped_column(Double, nullable=False)
    elevation: Mapped[float | None] = mapped_column(Double)  # metres

    # Capabilities
    has_metar: Mapped[bool] = mapped_column(Boolean, default=False)
    has_taf: Mapped[bool] = mapped_column(Boolean, default=False)

    fetched_at: Mapped[datetime] = mapped_column(
        UTCDateTime,
        default=utc_now,
    )

    # Relationships
    observations: Mapped[list["Observation"]] = relationship(  # noqa: F821
        "Observation",
        back_populates="station",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
