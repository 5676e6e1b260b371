"""Tests for the persisted monitored region."""

import pytest
from sqlalchemy import select

from cavok.models import SystemSetting
from cavok.projection import Coordinate
from cavok.services.region import REGION_KEY, Region, RegionStore, load_region, save_region

from conftest import HELSINKI


async def _save(session_maker, region):
    async with session_maker() as db:
        async with db.begin():
            return await save_region(db, region)


class TestRegion:
    def test_in_range(self):
        assert HELSINKI.in_range(60.317, 24.963)
        assert not HELSINKI.in_range(59.651, 17.918)

    def test_value_round_trip(self):
        region = Region.from_value(HELSINKI.to_value())
        assert region.radius == HELSINKI.radius
        assert region.center.lat == pytest.approx(60.17)
        assert region.center.lon == pytest.approx(24.94)

    def test_tile_range_covers_center(self):
        ll, ur = HELSINKI.tile_range(8)
        assert ll.level == ur.level == 8
        assert ll.x <= 145 < ur.x
        assert ur.y <= 74 < ll.y


class TestRegionStore:
    """Loading and saving through the settings table."""

    async def test_nothing_saved(self, session_maker):
        assert await RegionStore(session_maker).load() is None

    async def test_save_and_load(self, session_maker):
        assert await _save(session_maker, HELSINKI) is True

        loaded = await RegionStore(session_maker).load()
        assert loaded.radius == 200
        assert loaded.center.lat == pytest.approx(60.17)

    async def test_saving_same_region_is_not_a_change(self, session_maker):
        await _save(session_maker, HELSINKI)
        assert await _save(session_maker, HELSINKI) is False

    async def test_changed_radius_is_a_change(self, session_maker):
        await _save(session_maker, HELSINKI)
        assert await _save(session_maker, Region(center=HELSINKI.center, radius=150)) is True
        assert (await RegionStore(session_maker).load()).radius == 150

    async def test_malformed_value_is_ignored(self, session_maker):
        async with session_maker() as db:
            async with db.begin():
                db.add(SystemSetting(key=REGION_KEY, value={"latitude": 60.0}))

        async with session_maker() as db:
            assert await load_region(db) is None

    async def test_save_region_leaves_commit_to_caller(self, session_maker):
        async with session_maker() as db:
            assert await save_region(db, Region(center=Coordinate.from_degrees(10, 50), radius=80))
            await db.rollback()

        async with session_maker() as db:
            result = await db.execute(select(SystemSetting))
            assert result.scalars().all() == []
