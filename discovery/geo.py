import asyncio
from typing import Any, Callable, Dict, Optional, Protocol

import structlog
from pydantic import ValidationError

from config.settings import settings
from discovery.errors import LocationUnavailable
from models.entity_model import Coordinate

logger = structlog.get_logger()


class PositionSource(Protocol):
    """Platform location capability."""

    async def get_current_position(self) -> Coordinate: ...


class ReportedPositionSource:
    """Position the client device reported alongside its request.

    ``None`` for either axis means the user did not share a location.
    """

    def __init__(self, latitude: Optional[float] = None, longitude: Optional[float] = None):
        self.latitude = latitude
        self.longitude = longitude

    async def get_current_position(self) -> Coordinate:
        if self.latitude is None or self.longitude is None:
            raise LocationUnavailable("No location was shared by the client")
        return Coordinate(latitude=self.latitude, longitude=self.longitude)


class CallbackPositionSource:
    """Adapts a callback style ``get_current_position(on_success, on_error, options)``.

    ``on_success`` receives either a Coordinate or a mapping with
    ``lat``/``lng`` (or ``latitude``/``longitude``); ``on_error`` receives
    anything describing the failure.
    """

    def __init__(
        self,
        get_current_position: Callable[[Callable, Callable, Dict[str, Any]], None],
        options: Optional[Dict[str, Any]] = None,
    ):
        self._get_current_position = get_current_position
        self.options = options or {
            "enableHighAccuracy": True,
            "timeout": int(settings.GEOLOCATION_TIMEOUT * 1000),
            "maximumAge": 60000,
        }

    async def get_current_position(self) -> Coordinate:
        loop = asyncio.get_running_loop()
        future = loop.create_future()

        def settle(setter, value):
            if not future.done():
                setter(value)

        def on_success(position):
            loop.call_soon_threadsafe(settle, future.set_result, position)

        def on_error(error=None):
            exc = LocationUnavailable(str(error) if error else "Location request failed")
            loop.call_soon_threadsafe(settle, future.set_exception, exc)

        self._get_current_position(on_success, on_error, self.options)
        position = await future
        return _to_coordinate(position)


def _to_coordinate(position) -> Coordinate:
    if isinstance(position, Coordinate):
        return position
    if isinstance(position, dict):
        lat = position.get("lat", position.get("latitude"))
        lng = position.get("lng", position.get("longitude"))
        if lat is None or lng is None:
            raise LocationUnavailable(f"Position without coordinates: {position}")
        return Coordinate(latitude=lat, longitude=lng)
    raise LocationUnavailable(f"Unrecognised position: {position!r}")


class GeoLocator:
    """Resolves the caller's coordinate, falling back to a default location.

    ``acquire`` never raises: denial, timeout, a missing capability or a
    malformed position all resolve to the fallback coordinate.
    """

    def __init__(
        self,
        source: Optional[PositionSource] = None,
        default: Optional[Coordinate] = None,
        timeout: Optional[float] = None,
    ):
        self.source = source
        self.default = default or Coordinate(**settings.default_coordinate)
        self.timeout = settings.GEOLOCATION_TIMEOUT if timeout is None else timeout

    async def acquire(self) -> Coordinate:
        if self.source is None:
            logger.info("No location capability, using default location")
            return self.default

        try:
            coordinate = await asyncio.wait_for(
                self.source.get_current_position(), timeout=self.timeout
            )
            return _to_coordinate(coordinate)
        except asyncio.TimeoutError:
            logger.warning("Location request timed out", timeout=self.timeout)
        except (LocationUnavailable, ValidationError) as e:
            logger.info("Location unavailable, using default location", reason=str(e))
        except Exception as e:
            logger.warning(
                "Location lookup failed",
                error=str(e),
                error_type=type(e).__name__,
            )
        return self.default
