import asyncio
import threading

import pytest

from discovery.geo import CallbackPositionSource, GeoLocator, ReportedPositionSource
from models.entity_model import Coordinate
from tests.conftest import HOME, DeniedSource

FALLBACK = Coordinate(latitude=20.5937, longitude=78.9629)


class HangingSource:
    async def get_current_position(self):
        await asyncio.sleep(60)


class BrokenSource:
    async def get_current_position(self):
        raise RuntimeError("sensor exploded")


@pytest.mark.asyncio
async def test_reported_position_is_used():
    locator = GeoLocator(ReportedPositionSource(48.8566, 2.3522))
    assert await locator.acquire() == HOME


@pytest.mark.asyncio
async def test_default_fallback_is_india_centroid():
    locator = GeoLocator()
    assert await locator.acquire() == FALLBACK


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "source",
    [
        DeniedSource(),
        BrokenSource(),
        ReportedPositionSource(None, None),
        ReportedPositionSource(48.8, None),
        # out of range position from a misbehaving client
        ReportedPositionSource(123.0, 2.0),
    ],
)
async def test_failures_fall_back(source):
    locator = GeoLocator(source, default=HOME)
    assert await locator.acquire() == HOME


@pytest.mark.asyncio
async def test_timeout_falls_back():
    locator = GeoLocator(HangingSource(), default=HOME, timeout=0.05)
    assert await locator.acquire() == HOME


@pytest.mark.asyncio
async def test_callback_source_success_from_another_thread():
    def get_current_position(on_success, on_error, options):
        assert options["enableHighAccuracy"] is True
        threading.Timer(0.01, on_success, args=({"lat": 1.5, "lng": 2.5},)).start()

    locator = GeoLocator(CallbackPositionSource(get_current_position), default=HOME)
    assert await locator.acquire() == Coordinate(latitude=1.5, longitude=2.5)


@pytest.mark.asyncio
async def test_callback_source_error_falls_back():
    def get_current_position(on_success, on_error, options):
        on_error("PERMISSION_DENIED")
        # a late success after the error is ignored
        on_success({"latitude": 1.0, "longitude": 1.0})

    locator = GeoLocator(CallbackPositionSource(get_current_position), default=HOME)
    assert await locator.acquire() == HOME
