"""Weather pipeline: fetch, parse, associate, persist and query observations."""

import asyncio
import enum
import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from datetime import UTC, datetime, timedelta

from sqlalchemy import delete, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from cavok.collectors.aviationweather import AviationWeatherClient, StationRecord
from cavok.config import Settings
from cavok.exceptions import (
    NoRegionError,
    ObservationParseError,
    PersistenceError,
    RefreshInProgressError,
    WeatherError,
    raise_first,
)
from cavok.models import Observation, ObservationType, Station
from cavok.services.parser import ObservationParser
from cavok.services.region import Region, RegionStore, load_region, save_region
from cavok.services.timeslots import ObservationGroup, group

logger = logging.getLogger(__name__)


class RefreshState(enum.StrEnum):
    """Where a refresh cycle currently is."""

    IDLE = "idle"
    FETCHING = "fetching"
    ASSOCIATING = "associating"
    COMMITTING = "committing"
    FAILED = "failed"


class RefreshStats:
    """Outcome of the most recent refreshes."""

    def __init__(self):
        self.stations: int = 0
        self.metars: int = 0
        self.tafs: int = 0
        self.association_misses: int = 0
        self.parse_failures: int = 0
        self.last_station_refresh: datetime | None = None
        self.last_observation_refresh: datetime | None = None
        self.last_error: str | None = None

    def to_dict(self) -> dict:
        return {
            "stations": self.stations,
            "metars": self.metars,
            "tafs": self.tafs,
            "association_misses": self.association_misses,
            "parse_failures": self.parse_failures,
            "last_station_refresh": self.last_station_refresh,
            "last_observation_refresh": self.last_observation_refresh,
            "last_error": self.last_error,
        }


class WeatherService:
    """Owns the station and observation cache for one application session.

    Refreshes replace whole sets inside a single transaction, so readers see
    either the old or the new data. Only one refresh runs at a time; a second
    one is rejected with ``RefreshInProgressError``.
    """

    def __init__(
        self,
        client: AviationWeatherClient,
        session_maker: async_sessionmaker[AsyncSession],
        settings: Settings,
    ):
        self._client = client
        self._session_maker = session_maker
        self._settings = settings
        self.regions = RegionStore(session_maker)
        self.state = RefreshState.IDLE
        self.stats = RefreshStats()
        self._refresh_lock = asyncio.Lock()
        self._groups: dict[ObservationType, ObservationGroup] = {}

    # ------------------------------------------------------------------
    # Refresh
    # ------------------------------------------------------------------

    @asynccontextmanager
    async def _single_flight(self) -> AsyncIterator[None]:
        if self._refresh_lock.locked():
            raise RefreshInProgressError()
        async with self._refresh_lock:
            self.state = RefreshState.IDLE
            try:
                yield
            except WeatherError as e:
                self.state = RefreshState.FAILED
                self.stats.last_error = e.status_text
                logger.error(f"Refresh failed: {e}")
                raise
            else:
                self.stats.last_error = None
            finally:
                # a failed cycle stays visible until the next one starts
                if self.state != RefreshState.FAILED:
                    self.state = RefreshState.IDLE

    async def _write(self, apply: Callable[[AsyncSession], Awaitable[None]]) -> None:
        """Run ``apply`` in one transaction; any database failure rolls it back."""
        try:
            async with self._session_maker() as db:
                async with db.begin():
                    await apply(db)
        except SQLAlchemyError as e:
            logger.error(f"Weather cache transaction failed: {e}")
            raise PersistenceError() from e

    async def query_stations(self, region: Region) -> list[StationRecord]:
        """Upstream stations inside ``region`` that report METARs or TAFs."""
        radius = self._settings.earth_radius_km
        records = await self._client.fetch_stations(region.search_box(radius))
        selected: dict[str, StationRecord] = {}
        for record in records:
            if not (record.has_metar or record.has_taf):
                continue
            if region.in_range(record.latitude, record.longitude, radius):
                selected[record.identifier] = record
        return list(selected.values())

    async def refresh_stations(self) -> list[Station]:
        """Replace the station cache with the stations of the current region.

        Cached observations go with the old stations in the same transaction.
        """
        async with self._single_flight():
            region = await self.regions.load()
            if region is None:
                raise NoRegionError()

            self.state = RefreshState.FETCHING
            records = await self.query_stations(region)

            self.state = RefreshState.COMMITTING
            stations = [
                Station(
                    identifier=r.identifier,
                    name=r.name,
                    latitude=r.latitude,
                    longitude=r.longitude,
                    elevation=r.elevation,
                    has_metar=r.has_metar,
                    has_taf=r.has_taf,
                )
                for r in records
            ]

            async def replace(db: AsyncSession) -> None:
                await db.execute(delete(Observation))
                await db.execute(delete(Station))
                db.add_all(stations)

            await self._write(replace)
            self._groups.clear()

            self.stats.stations = len(stations)
            self.stats.metars = self.stats.tafs = 0
            self.stats.last_station_refresh = datetime.now(UTC)
            logger.info(f"Stored {len(stations)} stations")
            return stations

    async def refresh_observations(self) -> list[Observation]:
        """Fetch METARs and TAFs for the known stations and replace the cache.

        Both categories are fetched concurrently and committed together; if
        either fetch fails nothing is written.
        """
        async with self._single_flight():
            identifiers = await self._station_identifiers()

            self.state = RefreshState.FETCHING
            try:
                async with asyncio.TaskGroup() as tg:
                    metar_task = tg.create_task(
                        self._client.fetch_observations(ObservationType.METAR, identifiers)
                    )
                    taf_task = tg.create_task(
                        self._client.fetch_observations(ObservationType.TAF, identifiers)
                    )
            except ExceptionGroup as eg:
                raise_first(eg)
            raw_metars, raw_tafs = metar_task.result(), taf_task.result()

            self.state = RefreshState.ASSOCIATING
            parser = ObservationParser(identifiers)
            parsed: dict[tuple, Observation] = {}
            failures = 0
            for kind, raws in ((ObservationType.METAR, raw_metars), (ObservationType.TAF, raw_tafs)):
                for raw in raws:
                    try:
                        obs = parser.parse(kind, raw)
                    except ObservationParseError as e:
                        failures += 1
                        logger.warning(f"Skipping unparseable {kind.value}: {e}")
                        continue
                    if obs is not None:
                        parsed[(obs.type, obs.identifier, obs.observed_at)] = obs

            observations = sorted(parsed.values(), key=lambda o: o.observed_at)

            self.state = RefreshState.COMMITTING

            async def replace(db: AsyncSession) -> None:
                await db.execute(
                    delete(Observation).where(
                        Observation.type.in_([ObservationType.METAR, ObservationType.TAF])
                    )
                )
                db.add_all(observations)

            await self._write(replace)
            self._groups.clear()

            self.stats.metars = sum(1 for o in observations if o.type == ObservationType.METAR)
            self.stats.tafs = len(observations) - self.stats.metars
            self.stats.association_misses = parser.misses
            self.stats.parse_failures = failures
            self.stats.last_observation_refresh = datetime.now(UTC)
            logger.info(
                f"Stored {self.stats.metars} METARs and {self.stats.tafs} TAFs "
                f"({parser.misses} for unknown stations, {failures} unparseable)"
            )
            return observations

    # ------------------------------------------------------------------
    # Region lifecycle
    # ------------------------------------------------------------------

    async def update_region(self, region: Region) -> bool:
        """Persist ``region``; when it changed, drop everything scoped to the old one.

        Waits for an in-flight refresh instead of racing it. Returns whether
        the region changed, i.e. whether stations must be refreshed.
        """
        async with self._refresh_lock:
            changed = False

            async def apply(db: AsyncSession) -> None:
                nonlocal changed
                changed = await save_region(db, region)
                if changed:
                    await db.execute(delete(Observation))
                    await db.execute(delete(Station))

            await self._write(apply)

        if changed:
            self._groups.clear()
            self.stats = RefreshStats()
            logger.info(f"Region changed to {region.to_value()}, cache cleared")
        return changed

    async def region(self) -> Region | None:
        async with self._session_maker() as db:
            return await load_region(db)

    def close(self) -> None:
        """Drop derived state at the end of the session."""
        self._groups.clear()
        self.state = RefreshState.IDLE

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def _station_identifiers(self) -> list[str]:
        async with self._session_maker() as db:
            result = await db.execute(select(Station.identifier).order_by(Station.identifier))
            return list(result.scalars().all())

    async def stations(self) -> list[Station]:
        async with self._session_maker() as db:
            result = await db.execute(select(Station).order_by(Station.identifier))
            return list(result.scalars().all())

    async def station_count(self) -> int:
        async with self._session_maker() as db:
            result = await db.execute(select(func.count()).select_from(Station))
            return result.scalar() or 0

    async def observations(self, kind: ObservationType) -> list[Observation]:
        """All cached observations of ``kind``, oldest first."""
        async with self._session_maker() as db:
            result = await db.execute(
                select(Observation)
                .where(Observation.type == kind)
                .order_by(Observation.observed_at)
            )
            return list(result.scalars().all())

    async def observations_between(
        self, start: datetime, minutes: int, kind: ObservationType
    ) -> list[Observation]:
        """Cached observations of ``kind`` with time in ``[start, start + minutes)``."""
        end = start + timedelta(minutes=minutes)
        async with self._session_maker() as db:
            result = await db.execute(
                select(Observation)
                .where(
                    Observation.type == kind,
                    Observation.observed_at >= start,
                    Observation.observed_at < end,
                )
                .order_by(Observation.observed_at)
            )
            observations = list(result.scalars().all())
        logger.debug(f"Filtered {len(observations)} {kind.value} between {start} and {end}")
        return observations

    async def observation_count(self, kind: ObservationType) -> int:
        async with self._session_maker() as db:
            result = await db.execute(
                select(func.count()).select_from(Observation).where(Observation.type == kind)
            )
            return result.scalar() or 0

    # ------------------------------------------------------------------
    # Timeslots
    # ------------------------------------------------------------------

    async def timeslots(self, kind: ObservationType, now: datetime | None = None) -> ObservationGroup:
        """Grouped observations of ``kind``.

        The buckets are kept until the next refresh or region change so that
        frame indices stay stable while a client scrubs through them. The
        selected frame follows ``now`` on every call.
        """
        cached = self._groups.get(kind)
        if cached is not None:
            cached.select(now)
            return cached
        grouped = group(await self.observations(kind), self._settings.bucket_minutes, now)
        self._groups[kind] = grouped
        return grouped
