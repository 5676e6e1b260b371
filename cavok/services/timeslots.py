"""Grouping of observations into fixed-width timeslots for playback."""

from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta

from cavok.models import Observation, ObservationType

NO_DATA_STATUS = "No data, click to reload."


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes (as read back from SQLite) as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def bucket_start(value: datetime, bucket_minutes: int) -> datetime:
    """Start of the bucket holding ``value``; buckets are aligned to the Unix epoch."""
    width = bucket_minutes * 60
    seconds = int(as_utc(value).timestamp())
    return datetime.fromtimestamp(seconds - seconds % width, tz=UTC)


@dataclass
class ObservationGroup:
    """Observations partitioned into ordered, non-empty timeslots."""

    bucket_minutes: int
    timeslots: list[datetime] = field(default_factory=list)
    frames: list[list[Observation]] = field(default_factory=list)
    selected_frame: int | None = None

    def __len__(self) -> int:
        return len(self.timeslots)

    @property
    def width(self) -> timedelta:
        return timedelta(minutes=self.bucket_minutes)

    def bucket_end(self, frame: int) -> datetime:
        return self.timeslots[frame] + self.width

    def go(self, frame: int) -> list[Observation]:
        """Observations in ``frame``; raises IndexError for unknown frames."""
        if frame < 0 or frame >= len(self.frames):
            raise IndexError(f"No frame {frame} (have {len(self.frames)})")
        return self.frames[frame]

    def select(self, now: datetime | None = None) -> int | None:
        """Pick the newest bucket that has ended by ``now``, else the newest bucket."""
        now = as_utc(now or datetime.now(UTC))
        if not self.timeslots:
            self.selected_frame = None
            return None
        complete = [i for i in range(len(self)) if self.bucket_end(i) <= now]
        self.selected_frame = complete[-1] if complete else len(self) - 1
        return self.selected_frame


def group(
    observations: Sequence[Observation],
    bucket_minutes: int,
    now: datetime | None = None,
) -> ObservationGroup:
    """Partition ``observations`` into buckets of ``bucket_minutes``, oldest first.

    The selected frame is the newest bucket that has already ended. If every
    bucket is still open, the newest one is selected; with no observations
    there is nothing to select.
    """
    result = ObservationGroup(bucket_minutes=bucket_minutes)

    buckets: dict[datetime, list[Observation]] = {}
    for obs in sorted(observations, key=lambda o: as_utc(o.observed_at)):
        buckets.setdefault(bucket_start(obs.observed_at, bucket_minutes), []).append(obs)

    for start in sorted(buckets):
        result.timeslots.append(start)
        result.frames.append(buckets[start])

    result.select(now)
    return result


def format_elapsed(seconds: float) -> str:
    """Brief duration such as ``1h 5m`` or ``2d 3h``; leading zero units are dropped."""
    seconds = int(abs(seconds))
    if seconds < 3600 * 6:
        units = [("h", seconds // 3600), ("m", seconds % 3600 // 60)]
    else:
        units = [("d", seconds // 86400), ("h", seconds % 86400 // 3600)]

    while len(units) > 1 and units[0][1] == 0:
        units = units[1:]
    return " ".join(f"{value}{unit}" for unit, value in units)


def frame_status(
    observations: Sequence[Observation],
    kind: ObservationType,
    now: datetime | None = None,
) -> str:
    """Status line for a rendered frame.

    METAR frames report the age of their oldest report, TAF frames how far
    ahead the longest forecast reaches.
    """
    if not observations:
        return NO_DATA_STATUS
    now = as_utc(now or datetime.now(UTC))

    if kind == ObservationType.TAF:
        ends = [as_utc(o.valid_to) for o in observations if o.valid_to is not None]
        if ends:
            return f"{format_elapsed((max(ends) - now).total_seconds())} forecast"

    oldest = min(as_utc(o.observed_at) for o in observations)
    return f"{format_elapsed((now - oldest).total_seconds())} ago"
