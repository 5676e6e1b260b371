"""METAR and TAF text parsing.

Turns one raw report, as served by the upstream feed, into an ``Observation``
row bound to a known station. Only the fields the map layers display are
extracted: ceiling, visibility, wind, and for METARs temperature/dew point.
"""

import logging
import re
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

from cavok.exceptions import ObservationParseError
from cavok.models import Observation, ObservationType

logger = logging.getLogger(__name__)

# Report prefixes that may precede the station identifier
PREFIXES = {"METAR", "SPECI", "TAF", "AMD", "COR", "CNL"}

# Groups after which a METAR body or a TAF base forecast ends
METAR_END = {"RMK", "NOSIG", "BECMG", "TEMPO"}
TAF_CHANGE = re.compile(r"^(BECMG|TEMPO|FM\d{6}|PROB\d{2}|RMK)$")

# Cloud layers that form a ceiling
CEILING_LAYERS = {"BKN", "OVC", "VV"}

KT_PER_MPS = 1.94384
KT_PER_KMH = 0.539957
METRES_PER_SM = 1609.344
CAVOK_VISIBILITY = 10000

IDENTIFIER_RE = re.compile(r"^[A-Z0-9]{3,5}$")
TIMESTAMP_RE = re.compile(r"^(\d{2})(\d{2})(\d{2})Z$")
VALIDITY_RE = re.compile(r"^(\d{2})(\d{2})/(\d{2})(\d{2})$")
WIND_RE = re.compile(r"^(\d{3}|VRB)(\d{2,3})(?:G(\d{2,3}))?(KT|MPS|KMH)$")
VIS_METRES_RE = re.compile(r"^(\d{4})(?:NDV)?$")
VIS_SM_RE = re.compile(r"^([PM])?(\d+)?(?:(\d)/(\d{1,2}))?SM$")
CLOUD_RE = re.compile(r"^(FEW|SCT|BKN|OVC|VV)(\d{3}|///)(?:CB|TCU|///)?$")
TEMP_RE = re.compile(r"^(M?\d{2})/(M?\d{2})?$")


@dataclass
class ParsedReport:
    """Fields extracted from one raw report."""

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

    def to_observation(self) -> Observation:
        return Observation(
            type=self.type,
            identifier=self.identifier,
            raw=self.raw,
            observed_at=self.observed_at,
            cloud_height=self.cloud_height,
            visibility=self.visibility,
            wind_direction=self.wind_direction,
            wind_speed=self.wind_speed,
            wind_gust=self.wind_gust,
            temperature=self.temperature,
            dew_point=self.dew_point,
            valid_from=self.valid_from,
            valid_to=self.valid_to,
        )


def _previous_month(year: int, month: int) -> tuple[int, int]:
    return (year, month - 1) if month > 1 else (year - 1, 12)


def _next_month(year: int, month: int) -> tuple[int, int]:
    return (year, month + 1) if month < 12 else (year + 1, 1)


def _make_time(year: int, month: int, day: int, hour: int, minute: int) -> datetime | None:
    # hour 24 is legal in TAF periods ("1724" is midnight ending the 17th)
    try:
        return datetime(year, month, day, tzinfo=UTC) + timedelta(hours=hour, minutes=minute)
    except ValueError:
        return None


def resolve_day_time(day: int, hour: int, minute: int, reference: datetime) -> datetime:
    """Place a day-of-month timestamp in the latest month not after ``reference``.

    Reports only carry the day of month, so a day ahead of the reference date
    belongs to the previous month. One day of clock skew is tolerated.
    """
    limit = reference + timedelta(days=1)
    year, month = reference.year, reference.month
    for _ in range(3):
        candidate = _make_time(year, month, day, hour, minute)
        if candidate is not None and candidate <= limit:
            return candidate
        year, month = _previous_month(year, month)
    raise ObservationParseError(f"Cannot place day {day} relative to {reference:%Y-%m-%d}")


def resolve_day_time_after(day: int, hour: int, minute: int, anchor: datetime, slack: timedelta) -> datetime:
    """Place a day-of-month timestamp at or after ``anchor - slack``."""
    year, month = anchor.year, anchor.month
    for _ in range(3):
        candidate = _make_time(year, month, day, hour, minute)
        if candidate is not None and candidate >= anchor - slack:
            return candidate
        year, month = _next_month(year, month)
    raise ObservationParseError(f"Cannot place day {day} after {anchor:%Y-%m-%d}")


def _split_header(raw: str) -> tuple[str, list[str]]:
    """Strip report prefixes and return (identifier, remaining groups)."""
    parts = raw.split()
    while parts and parts[0] in PREFIXES:
        parts = parts[1:]
    if not parts or not IDENTIFIER_RE.match(parts[0]):
        raise ObservationParseError(f"No station identifier in {raw!r}")
    return parts[0], parts[1:]


def _parse_wind(group: str) -> tuple[int | None, int, int | None] | None:
    match = WIND_RE.match(group)
    if not match:
        return None
    direction, speed, gust, unit = match.groups()
    factor = {"KT": 1.0, "MPS": KT_PER_MPS, "KMH": KT_PER_KMH}[unit]
    return (
        None if direction == "VRB" else int(direction),
        round(int(speed) * factor),
        round(int(gust) * factor) if gust else None,
    )


def _parse_statute_miles(groups: list[str], index: int) -> float | None:
    """Visibility in statute miles, including split groups such as ``1 1/2SM``."""
    match = VIS_SM_RE.match(groups[index])
    if not match:
        return None
    _, whole, num, den = match.groups()
    if whole is None and num is None:
        return None
    miles = float(whole) if whole else 0.0
    if num:
        miles += float(num) / float(den)
    # "1 1/2SM" arrives as two groups
    if whole is None and index > 0 and groups[index - 1].isdigit() and len(groups[index - 1]) == 1:
        miles += float(groups[index - 1])
    return miles


def _parse_visibility(groups: list[str]) -> int | None:
    for index, group in enumerate(groups):
        if group == "CAVOK":
            return CAVOK_VISIBILITY
        match = VIS_METRES_RE.match(group)
        if match:
            metres = int(match.group(1))
            return CAVOK_VISIBILITY if metres == 9999 else metres
        miles = _parse_statute_miles(groups, index)
        if miles is not None:
            return round(miles * METRES_PER_SM)
    return None


def _parse_ceiling(groups: list[str]) -> int | None:
    """Lowest broken, overcast or vertical-visibility layer in feet."""
    heights = []
    for group in groups:
        match = CLOUD_RE.match(group)
        if not match:
            continue
        cover, height = match.group(1), match.group(2)
        if cover in CEILING_LAYERS and height != "///":
            heights.append(int(height) * 100)
    return min(heights) if heights else None


def _temperature(value: str) -> int:
    return -int(value[1:]) if value.startswith("M") else int(value)


def _parse_temperatures(groups: list[str]) -> tuple[int | None, int | None]:
    for group in groups:
        match = TEMP_RE.match(group)
        if match:
            temp, dew = match.groups()
            return _temperature(temp), _temperature(dew) if dew else None
    return None, None


def _fill_common(report: ParsedReport, groups: list[str]) -> None:
    for group in groups:
        wind = _parse_wind(group)
        if wind:
            report.wind_direction, report.wind_speed, report.wind_gust = wind
            break
    report.visibility = _parse_visibility(groups)
    report.cloud_height = None if "CAVOK" in groups else _parse_ceiling(groups)


def parse_metar(raw: str, reference: datetime) -> ParsedReport:
    """Parse a METAR/SPECI report."""
    identifier, groups = _split_header(raw)

    body = []
    for group in groups:
        if group in METAR_END:
            break
        body.append(group)

    timestamp = next((m for m in map(TIMESTAMP_RE.match, body) if m), None)
    if timestamp is None:
        raise ObservationParseError(f"No report time in METAR {raw!r}")
    day, hour, minute = (int(v) for v in timestamp.groups())

    report = ParsedReport(
        type=ObservationType.METAR,
        identifier=identifier,
        raw=raw,
        observed_at=resolve_day_time(day, hour, minute, reference),
    )
    _fill_common(report, body)
    report.temperature, report.dew_point = _parse_temperatures(body)
    return report


def parse_taf(raw: str, reference: datetime) -> ParsedReport:
    """Parse a TAF; measurements come from the base forecast only."""
    identifier, groups = _split_header(raw)

    base = []
    for group in groups:
        if TAF_CHANGE.match(group):
            break
        base.append(group)

    timestamp = next((m for m in map(TIMESTAMP_RE.match, base) if m), None)
    validity = next((m for m in map(VALIDITY_RE.match, base) if m), None)
    if validity is None:
        raise ObservationParseError(f"No validity period in TAF {raw!r}")

    from_day, from_hour, to_day, to_hour = (int(v) for v in validity.groups())
    if timestamp is not None:
        day, hour, minute = (int(v) for v in timestamp.groups())
        issued = resolve_day_time(day, hour, minute, reference)
        valid_from = resolve_day_time_after(from_day, from_hour, 0, issued, slack=timedelta(hours=12))
    else:
        # some amended TAFs omit the issue time
        valid_from = resolve_day_time(from_day, from_hour, 0, reference + timedelta(days=1))
        issued = valid_from
    valid_to = resolve_day_time_after(to_day, to_hour, 0, valid_from, slack=timedelta(0))

    report = ParsedReport(
        type=ObservationType.TAF,
        identifier=identifier,
        raw=raw,
        observed_at=issued,
        valid_from=valid_from,
        valid_to=valid_to,
    )
    _fill_common(report, base)
    return report


def parse_report(kind: ObservationType, raw: str, reference: datetime) -> ParsedReport:
    """Parse ``raw`` as the given report kind."""
    if kind == ObservationType.METAR:
        return parse_metar(raw, reference)
    if kind == ObservationType.TAF:
        return parse_taf(raw, reference)
    raise ObservationParseError(f"Unknown observation type: {kind}")


class ObservationParser:
    """Parses raw reports and binds them to the stations currently known.

    Reports for stations outside the known set are expected (upstream feeds
    are wider than the region) and yield ``None``.
    """

    def __init__(self, identifiers: Iterable[str], reference: datetime | None = None):
        self._identifiers = frozenset(identifiers)
        self.reference = reference or datetime.now(UTC)
        self.misses = 0

    def parse(self, kind: ObservationType, raw: str) -> Observation | None:
        """Parse one raw record. Raises ObservationParseError for garbage."""
        report = parse_report(kind, raw.strip(), self.reference)
        if report.identifier not in self._identifiers:
            self.misses += 1
            logger.debug(f"Dropping {kind.value} for unknown station {report.identifier}")
            return None
        return report.to_observation()
