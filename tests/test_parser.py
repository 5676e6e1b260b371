"""Tests for METAR/TAF parsing and station association."""

from datetime import UTC, datetime, timedelta

import pytest

from cavok.exceptions import ObservationParseError
from cavok.models import ObservationType
from cavok.services.parser import (
    ObservationParser,
    parse_metar,
    parse_report,
    parse_taf,
    resolve_day_time,
)

REFERENCE = datetime(2026, 10, 17, 12, 0, tzinfo=UTC)


class TestResolveDayTime:
    """Placing day-of-month timestamps in the right month."""

    def test_same_month(self):
        assert resolve_day_time(17, 10, 50, REFERENCE) == datetime(2026, 10, 17, 10, 50, tzinfo=UTC)

    def test_day_ahead_belongs_to_previous_month(self):
        assert resolve_day_time(30, 23, 50, REFERENCE) == datetime(2026, 9, 30, 23, 50, tzinfo=UTC)

    def test_small_clock_skew_is_tolerated(self):
        assert resolve_day_time(18, 2, 0, REFERENCE) == datetime(2026, 10, 18, 2, 0, tzinfo=UTC)

    def test_year_boundary(self):
        reference = datetime(2027, 1, 1, 0, 30, tzinfo=UTC)
        assert resolve_day_time(31, 23, 50, reference) == datetime(2026, 12, 31, 23, 50, tzinfo=UTC)


class TestMetar:
    """METAR field extraction."""

    def test_basic_report(self):
        report = parse_metar("METAR EFHK 171050Z 24010G20KT 9999 FEW020 BKN012 OVC030 05/02 Q1013", REFERENCE)
        assert report.type == ObservationType.METAR
        assert report.identifier == "EFHK"
        assert report.observed_at == datetime(2026, 10, 17, 10, 50, tzinfo=UTC)
        assert report.wind_direction == 240
        assert report.wind_speed == 10
        assert report.wind_gust == 20
        assert report.visibility == 10000
        assert report.cloud_height == 1200
        assert report.temperature == 5
        assert report.dew_point == 2

    def test_cavok(self):
        report = parse_metar("EFHK 171050Z 24010KT CAVOK 12/M03 Q1020", REFERENCE)
        assert report.visibility == 10000
        assert report.cloud_height is None
        assert report.temperature == 12
        assert report.dew_point == -3

    def test_statute_mile_fraction(self):
        report = parse_metar("KJFK 171051Z 31008KT 1/2SM FG VV002 M01/M01 A2992", REFERENCE)
        assert report.visibility == round(0.5 * 1609.344)
        assert report.cloud_height == 200
        assert report.temperature == -1

    def test_split_statute_miles(self):
        report = parse_metar("KBOS 171054Z 05012KT 1 1/2SM BR OVC008 08/07 A3001", REFERENCE)
        assert report.visibility == round(1.5 * 1609.344)
        assert report.cloud_height == 800

    def test_variable_wind_and_mps(self):
        report = parse_metar("UUEE 171100Z VRB02MPS 6000 SCT040 03/01 Q1015", REFERENCE)
        assert report.wind_direction is None
        assert report.wind_speed == 4
        assert report.visibility == 6000
        assert report.cloud_height is None

    def test_remarks_are_ignored(self):
        report = parse_metar("KSFO 171056Z 28015KT 10SM FEW200 18/09 A2995 RMK AO2 BKN005", REFERENCE)
        assert report.cloud_height is None
        assert report.visibility == round(10 * 1609.344)

    def test_missing_time_raises(self):
        with pytest.raises(ObservationParseError):
            parse_metar("EFHK 24010KT 9999", REFERENCE)

    def test_missing_identifier_raises(self):
        with pytest.raises(ObservationParseError):
            parse_metar("METAR", REFERENCE)


class TestTaf:
    """TAF base forecast and validity period."""

    def test_basic_taf(self):
        report = parse_taf(
            "TAF EFHK 171130Z 1712/1812 22012KT 9999 BKN015 TEMPO 1714/1718 4000 SHRA BKN008",
            REFERENCE,
        )
        assert report.type == ObservationType.TAF
        assert report.observed_at == datetime(2026, 10, 17, 11, 30, tzinfo=UTC)
        assert report.valid_from == datetime(2026, 10, 17, 12, tzinfo=UTC)
        assert report.valid_to == datetime(2026, 10, 18, 12, tzinfo=UTC)
        assert report.cloud_height == 1500
        assert report.visibility == 10000

    def test_hour_24_is_midnight(self):
        report = parse_taf("TAF EFTU 171100Z 1712/1724 24008KT CAVOK", REFERENCE)
        assert report.valid_to == datetime(2026, 10, 18, 0, tzinfo=UTC)
        assert report.cloud_height is None

    def test_period_across_month_end(self):
        reference = datetime(2026, 10, 31, 23, 45, tzinfo=UTC)
        report = parse_taf("TAF AMD EFHK 312330Z 0100/0124 20010KT 8000 OVC010", reference)
        assert report.observed_at == datetime(2026, 10, 31, 23, 30, tzinfo=UTC)
        assert report.valid_from == datetime(2026, 11, 1, 0, tzinfo=UTC)
        assert report.valid_to == datetime(2026, 11, 2, 0, tzinfo=UTC)

    def test_missing_validity_raises(self):
        with pytest.raises(ObservationParseError):
            parse_taf("TAF EFHK 171130Z 22012KT 9999", REFERENCE)


class TestObservationParser:
    """Association of parsed reports with known stations."""

    def test_known_station(self):
        parser = ObservationParser(["EFHK"], reference=REFERENCE)
        obs = parser.parse(ObservationType.METAR, "METAR EFHK 171050Z 24010KT 9999 BKN012 05/02 Q1013\n")
        assert obs is not None
        assert obs.identifier == "EFHK"
        assert obs.spread == 3
        assert parser.misses == 0

    def test_unknown_station_is_dropped(self):
        parser = ObservationParser(["EFHK"], reference=REFERENCE)
        assert parser.parse(ObservationType.METAR, "METAR ESSA 171050Z 24010KT 9999 05/02") is None
        assert parser.misses == 1

    def test_garbage_raises(self):
        parser = ObservationParser(["EFHK"], reference=REFERENCE)
        with pytest.raises(ObservationParseError):
            parser.parse(ObservationType.TAF, "NO DATA AVAILABLE")

    def test_default_reference_is_now(self):
        parser = ObservationParser([])
        assert datetime.now(UTC) - parser.reference < timedelta(seconds=5)

    def test_parse_report_dispatch(self):
        report = parse_report(ObservationType.TAF, "TAF EFHK 171130Z 1712/1812 22012KT 9999", REFERENCE)
        assert report.valid_from is not None
