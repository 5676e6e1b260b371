"""Tests for the aviationweather.gov collector."""

import asyncio

import httpx
import pytest

from cavok.collectors.aviationweather import (
    WORLD_BBOX,
    AviationWeatherClient,
    parse_station,
    split_reports,
)
from cavok.config import Settings
from cavok.exceptions import NetworkError
from cavok.models import ObservationType
from cavok.projection import BoundingBox, Coordinate


class TestSplitReports:
    def test_one_report_per_line(self):
        text = "METAR EFHK 171050Z 24010KT 9999 05/02 Q1013\nMETAR EFTU 171050Z 22008KT 9999 04/01 Q1012\n"
        assert len(split_reports(text)) == 2

    def test_indented_lines_continue_taf(self):
        text = (
            "TAF EFHK 171130Z 1712/1812 22012KT 9999 BKN015\n"
            "      TEMPO 1714/1718 4000 SHRA\n"
            "TAF EFTU 171100Z 1712/1812 24008KT CAVOK\n"
        )
        reports = split_reports(text)
        assert reports == [
            "TAF EFHK 171130Z 1712/1812 22012KT 9999 BKN015 TEMPO 1714/1718 4000 SHRA",
            "TAF EFTU 171100Z 1712/1812 24008KT CAVOK",
        ]

    def test_blank_text(self):
        assert split_reports("\n\n") == []


class TestParseStation:
    def test_full_entry(self):
        station = parse_station(
            {"icaoId": "efhk", "site": "Helsinki-Vantaa", "lat": 60.317, "lon": 24.963, "elev": 51, "siteType": ["METAR", "TAF"]}
        )
        assert station.identifier == "EFHK"
        assert station.elevation == 51.0
        assert station.has_metar and station.has_taf

    def test_missing_position_is_skipped(self):
        assert parse_station({"icaoId": "EFHK", "lat": None, "lon": 24.9}) is None

    def test_missing_site_type(self):
        station = parse_station({"id": "EFNU", "lat": 60.3, "lon": 24.3})
        assert station.identifier == "EFNU"
        assert not station.has_metar
        assert not station.has_taf


class TestAviationWeatherClient:
    """Requests and error mapping, against a mock transport."""

    async def test_fetch_stations_sends_bbox(self, client, upstream):
        bbox = BoundingBox(Coordinate.from_degrees(22.0, 59.0), Coordinate.from_degrees(27.0, 62.0))
        stations = await client.fetch_stations(bbox)

        assert {s.identifier for s in stations} == {"EFHK", "EFTU", "EFTP", "ESSA", "EFNU"}
        request = upstream.requests[0]
        assert request.url.params["bbox"] == "59.0000,22.0000,62.0000,27.0000"
        assert request.url.params["format"] == "json"

    async def test_fetch_stations_whole_world(self, client, upstream):
        await client.fetch_stations()
        assert upstream.requests[0].url.params["bbox"] == WORLD_BBOX

    async def test_fetch_observations_chunks_identifiers(self, upstream):
        upstream.metars = ["METAR EFHK 171050Z 24010KT 9999 05/02 Q1013"]
        client = AviationWeatherClient(
            "https://aviationweather.test/api/data",
            chunk_size=2,
            transport=httpx.MockTransport(upstream.handler),
        )
        reports = await client.fetch_observations(ObservationType.METAR, ["EFHK", "EFTU", "EFTP"])

        assert len(upstream.requests) == 2
        assert sorted(r.url.params["ids"] for r in upstream.requests) == ["EFHK,EFTU", "EFTP"]
        assert all(r.url.params["format"] == "raw" for r in upstream.requests)
        assert all("hours" in r.url.params for r in upstream.requests)
        assert len(reports) == 2

    async def test_taf_request_has_no_hours(self, client, upstream):
        await client.fetch_observations(ObservationType.TAF, ["EFHK"])
        assert upstream.paths() == ["taf"]
        assert "hours" not in upstream.requests[0].url.params

    async def test_no_identifiers_no_request(self, client, upstream):
        assert await client.fetch_observations(ObservationType.METAR, []) == []
        assert upstream.requests == []

    async def test_error_status_raises_network_error(self, client, upstream):
        upstream.status["stationinfo"] = 503
        with pytest.raises(NetworkError, match="503"):
            await client.fetch_stations()

    async def test_no_content_is_empty(self, client, upstream):
        upstream.status["metar"] = 204
        assert await client.fetch_observations(ObservationType.METAR, ["EFHK"]) == []

    async def test_malformed_station_list(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, text="<html>maintenance</html>", request=request)

        client = AviationWeatherClient("https://aviationweather.test/api/data", transport=httpx.MockTransport(handler))
        with pytest.raises(NetworkError, match="Malformed"):
            await client.fetch_stations()

    async def test_transport_failure_raises_network_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        client = AviationWeatherClient("https://aviationweather.test/api/data", transport=httpx.MockTransport(handler))
        with pytest.raises(NetworkError, match="unreachable"):
            await client.fetch_observations(ObservationType.TAF, ["EFHK"])

    async def test_failed_chunk_cancels_the_rest(self):
        answered = []

        async def handler(request: httpx.Request) -> httpx.Response:
            if request.url.params["ids"] == "EFHK":
                return httpx.Response(500, request=request)
            await asyncio.sleep(0.3)
            answered.append(request.url.params["ids"])
            return httpx.Response(200, text="", request=request)

        client = AviationWeatherClient(
            "https://aviationweather.test/api/data",
            chunk_size=1,
            transport=httpx.MockTransport(handler),
        )
        with pytest.raises(NetworkError, match="500"):
            await client.fetch_observations(ObservationType.METAR, ["EFHK", "EFTU", "EFTP"])

        await asyncio.sleep(0.4)
        assert answered == []

    async def test_timeout_raises_network_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("timed out", request=request)

        client = AviationWeatherClient("https://aviationweather.test/api/data", transport=httpx.MockTransport(handler))
        with pytest.raises(NetworkError, match="timed out"):
            await client.fetch_stations()

    def test_from_settings(self):
        settings = Settings(
            database_url="sqlite+aiosqlite:///test.db",
            aviationweather_url="https://example.test/api/data/",
            fetch_chunk_size=50,
            observation_hours=3,
        )
        client = AviationWeatherClient.from_settings(settings)
        assert client.base_url == "https://example.test/api/data"
        assert client.chunk_size == 50
        assert client.hours == 3
