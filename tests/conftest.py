"""Shared fixtures: a throwaway SQLite cache and a fake aviationweather.gov."""

import asyncio
import json
from datetime import UTC, datetime, timedelta

import httpx
import pytest

from cavok.collectors.aviationweather import AviationWeatherClient
from cavok.config import Settings
from cavok.database import Base, make_engine, make_session_maker
from cavok.projection import Coordinate
from cavok.services.region import Region
from cavok.services.weather import WeatherService

UPSTREAM_URL = "https://aviationweather.test/api/data"

# Helsinki, 200 km: EFHK, EFTU and EFTP are inside, ESSA is not
HELSINKI = Region(center=Coordinate.from_degrees(24.94, 60.17), radius=200)

STATIONS = [
    {"icaoId": "EFHK", "site": "Helsinki-Vantaa", "lat": 60.317, "lon": 24.963, "elev": 51, "siteType": ["METAR", "TAF"]},
    {"icaoId": "EFTU", "site": "Turku", "lat": 60.514, "lon": 22.262, "elev": 49, "siteType": ["METAR", "TAF"]},
    {"icaoId": "EFTP", "site": "Tampere-Pirkkala", "lat": 61.414, "lon": 23.604, "elev": 119, "siteType": ["METAR"]},
    {"icaoId": "ESSA", "site": "Stockholm-Arlanda", "lat": 59.651, "lon": 17.918, "elev": 42, "siteType": ["METAR", "TAF"]},
    {"icaoId": "EFNU", "site": "Nummela", "lat": 60.333, "lon": 24.297, "siteType": []},
]


def minutes_ago(minutes: int) -> datetime:
    now = datetime.now(UTC).replace(second=0, microsecond=0)
    return now - timedelta(minutes=minutes)


def metar(identifier: str, when: datetime, body: str = "24010KT 9999 BKN012 05/02 Q1013") -> str:
    return f"METAR {identifier} {when:%d%H%M}Z {body}"


def taf(identifier: str, issued: datetime, hours: int = 24, body: str = "22012KT 9999 SCT020") -> str:
    valid_from = issued.replace(minute=0) + timedelta(hours=1)
    valid_to = valid_from + timedelta(hours=hours)
    return f"TAF {identifier} {issued:%d%H%M}Z {valid_from:%d%H}/{valid_to:%d%H} {body}"


class FakeUpstream:
    """Serves canned stationinfo/metar/taf responses through httpx.MockTransport.

    ``delay`` holds an endpoint back for the given seconds; ``answered`` lists
    the endpoints whose response was produced.
    """

    def __init__(self):
        self.stations = list(STATIONS)
        self.metars: list[str] = []
        self.tafs: list[str] = []
        self.status: dict[str, int] = {}
        self.requests: list[httpx.Request] = []
        self.delay: dict[str, float] = {}
        self.answered: list[str] = []

    async def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        endpoint = request.url.path.rsplit("/", 1)[-1]
        if endpoint in self.delay:
            await asyncio.sleep(self.delay[endpoint])
        self.answered.append(endpoint)
        status = self.status.get(endpoint, 200)
        if status != 200:
            return httpx.Response(status, request=request)
        if endpoint == "stationinfo":
            return httpx.Response(200, content=json.dumps(self.stations), request=request)
        if endpoint == "metar":
            return httpx.Response(200, text="\n".join(self.metars), request=request)
        if endpoint == "taf":
            return httpx.Response(200, text="\n".join(self.tafs), request=request)
        return httpx.Response(404, request=request)

    def paths(self) -> list[str]:
        return [r.url.path.rsplit("/", 1)[-1] for r in self.requests]


@pytest.fixture
def settings():
    return Settings(
        database_url="sqlite+aiosqlite:///test.db",
        aviationweather_url=UPSTREAM_URL,
        bucket_minutes=30,
    )


@pytest.fixture
def upstream():
    return FakeUpstream()


@pytest.fixture
def client(upstream, settings):
    return AviationWeatherClient(
        base_url=settings.aviationweather_url,
        timeout=5,
        transport=httpx.MockTransport(upstream.handler),
    )


@pytest.fixture
async def session_maker(tmp_path):
    engine = make_engine(f"sqlite+aiosqlite:///{tmp_path / 'cache.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield make_session_maker(engine)
    await engine.dispose()


@pytest.fixture
def service(client, session_maker, settings):
    return WeatherService(client, session_maker, settings)
