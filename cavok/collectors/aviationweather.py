"""aviationweather.gov data API collector."""

import asyncio
import logging
from dataclasses import dataclass

import httpx

from cavok import __version__
from cavok.config import Settings
from cavok.exceptions import NetworkError, raise_first
from cavok.models import ObservationType
from cavok.projection import BoundingBox

logger = logging.getLogger(__name__)

WORLD_BBOX = "-90,-180,90,180"


@dataclass(frozen=True)
class StationRecord:
    """A station as listed by the upstream feed."""

    identifier: str
    name: str | None
    latitude: float
    longitude: float
    elevation: float | None
    has_metar: bool
    has_taf: bool


def split_reports(text: str) -> list[str]:
    """Split a raw text response into reports.

    TAFs continue on indented lines; every unindented line starts a new report.
    """
    reports: list[list[str]] = []
    for line in text.splitlines():
        if not line.strip():
            continue
        if line[0].isspace() and reports:
            reports[-1].append(line.strip())
        else:
            reports.append([line.strip()])
    return [" ".join(parts) for parts in reports]


def parse_station(data: dict) -> StationRecord | None:
    """Normalize one stationinfo entry; entries without id or position are skipped."""
    identifier = data.get("icaoId") or data.get("id")
    lat = data.get("lat")
    lon = data.get("lon")
    if not identifier or lat is None or lon is None:
        return None

    site_types = {str(t).upper() for t in data.get("siteType") or []}
    return StationRecord(
        identifier=str(identifier).upper(),
        name=data.get("site"),
        latitude=float(lat),
        longitude=float(lon),
        elevation=float(data["elev"]) if data.get("elev") is not None else None,
        has_metar="METAR" in site_types,
        has_taf="TAF" in site_types,
    )


class AviationWeatherClient:
    """Fetches stations and raw METAR/TAF text from aviationweather.gov."""

    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        chunk_size: int = 200,
        hours: int = 2,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.chunk_size = chunk_size
        self.hours = hours
        self._transport = transport

    @classmethod
    def from_settings(cls, settings: Settings) -> "AviationWeatherClient":
        return cls(
            base_url=settings.aviationweather_url,
            timeout=settings.fetch_timeout_seconds,
            chunk_size=settings.fetch_chunk_size,
            hours=settings.observation_hours,
        )

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            transport=self._transport,
            headers={"User-Agent": f"cavok/{__version__}"},
        )

    async def _get(self, client: httpx.AsyncClient, path: str, params: dict) -> httpx.Response:
        """GET that maps every transport or status failure to NetworkError."""
        try:
            response = await client.get(path, params=params)
        except httpx.TimeoutException as e:
            raise NetworkError("Weather service timed out") from e
        except httpx.RequestError as e:
            raise NetworkError(f"Weather service unreachable: {e}") from e

        if response.status_code == 204:
            return response
        if response.status_code != 200:
            logger.warning(f"{path} returned {response.status_code}")
            raise NetworkError(f"Weather service returned {response.status_code}")
        return response

    async def fetch_stations(self, bbox: BoundingBox | None = None) -> list[StationRecord]:
        """Fetch the station list, optionally limited to ``bbox``."""
        if bbox is None:
            area = WORLD_BBOX
        else:
            west, south = bbox.lower_left.degrees
            east, north = bbox.upper_right.degrees
            area = f"{south:.4f},{west:.4f},{north:.4f},{east:.4f}"

        async with self._client() as client:
            response = await self._get(client, "/stationinfo", {"bbox": area, "format": "json"})

        if response.status_code == 204 or not response.content:
            return []
        try:
            data = response.json()
        except ValueError as e:
            raise NetworkError("Malformed station list from weather service") from e
        if not isinstance(data, list):
            raise NetworkError("Malformed station list from weather service")

        stations = []
        for entry in data:
            if not isinstance(entry, dict):
                continue
            station = parse_station(entry)
            if station:
                stations.append(station)
        logger.debug(f"Fetched {len(stations)} stations")
        return stations

    async def fetch_observations(self, kind: ObservationType, identifiers: list[str]) -> list[str]:
        """Fetch raw report text of ``kind`` for the given stations."""
        if not identifiers:
            return []

        path = f"/{kind.value}"
        chunks = [
            identifiers[i : i + self.chunk_size]
            for i in range(0, len(identifiers), self.chunk_size)
        ]

        async with self._client() as client:
            try:
                async with asyncio.TaskGroup() as tg:
                    tasks = [
                        tg.create_task(self._get(client, path, self._observation_params(kind, chunk)))
                        for chunk in chunks
                    ]
            except ExceptionGroup as eg:
                raise_first(eg)
        responses = [task.result() for task in tasks]

        reports = []
        for response in responses:
            if response.status_code == 204:
                continue
            reports.extend(split_reports(response.text))
        logger.debug(f"Fetched {len(reports)} raw {kind.value} reports")
        return reports

    def _observation_params(self, kind: ObservationType, chunk: list[str]) -> dict:
        params = {"ids": ",".join(chunk), "format": "raw"}
        if kind == ObservationType.METAR:
            params["hours"] = str(self.hours)
        return params
