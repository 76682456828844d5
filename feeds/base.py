from typing import Any, Dict, List, Optional, Type

import structlog
from pydantic import ValidationError

from models.discovery_model import DiscoveryRequest, FeedInfo, ResultPage
from models.entity_model import Coordinate, Entity
from utils.helper import haversine_km, to_float
from utils.http_client import APIClient, api_client, unwrap_api_response

logger = structlog.get_logger()


class FeedAdapter:
    """Binds one backend endpoint to the generic discovery controller.

    Subclasses supply the endpoint, the query-parameter mapping, cursor
    handling and the raw item -> Entity normalization. The controller only
    ever calls ``search``.
    """

    name: str = ""
    description: str = ""
    endpoint: str = ""
    results_key: str = ""
    entity_model: Type[Entity] = Entity
    requires_auth: bool = False
    supports_global: bool = True
    default_radius_meters: int = 20000
    min_radius_meters: int = 20000
    max_radius_meters: int = 20000

    def __init__(self, client: Optional[APIClient] = None, access_token: Optional[str] = None):
        self.client = client or api_client
        self.access_token = access_token

    @classmethod
    def info(cls) -> FeedInfo:
        return FeedInfo(
            name=cls.name,
            description=cls.description,
            requires_auth=cls.requires_auth,
            supports_global=cls.supports_global,
            default_radius_km=cls.default_radius_meters / 1000,
            min_radius_km=cls.min_radius_meters / 1000,
            max_radius_km=cls.max_radius_meters / 1000,
        )

    async def search(self, request: DiscoveryRequest) -> ResultPage:
        params = self.build_params(request)
        headers = {"Authorization": self.access_token} if self.access_token else None

        result = await self.client.request(
            method="GET", endpoint=self.endpoint, params=params, headers=headers
        )
        data = unwrap_api_response(result)

        items = self._normalize_items(self._extract_items(data), request)
        next_cursor = self.next_cursor(data, request)

        logger.info(
            "Feed page received",
            feed=self.name,
            results_count=len(items),
            has_more=next_cursor is not None,
        )
        return ResultPage(items=items, next_cursor=next_cursor)

    # -------------------------
    # Hooks
    # -------------------------
    def build_params(self, request: DiscoveryRequest) -> Dict[str, Any]:
        raise NotImplementedError

    def next_cursor(self, data: Any, request: DiscoveryRequest) -> Optional[str]:
        raise NotImplementedError

    def normalize(self, raw: Dict[str, Any], request: DiscoveryRequest) -> Entity:
        raise NotImplementedError

    # -------------------------
    # Shared helpers
    # -------------------------
    def _location_params(self, request: DiscoveryRequest) -> Dict[str, Any]:
        params: Dict[str, Any] = {}
        if request.coordinate is not None:
            params["lat"] = request.coordinate.latitude
            params["lng"] = request.coordinate.longitude
        if request.radius_meters is not None:
            params["radius"] = request.radius_meters
        if request.query_text:
            params["search"] = request.query_text
        return params

    def _extract_items(self, data: Any) -> List[Dict[str, Any]]:
        if isinstance(data, dict):
            items = data.get(self.results_key, [])
        elif isinstance(data, list):
            items = data
        else:
            items = []
        return [item for item in items if isinstance(item, dict)]

    def _normalize_items(self, raw_items, request: DiscoveryRequest) -> List[Entity]:
        items = []
        for raw in raw_items:
            try:
                items.append(self.normalize(raw, request))
            except (ValidationError, ValueError, TypeError) as e:
                logger.warning(
                    "Skipping malformed feed item",
                    feed=self.name,
                    item_id=raw.get("_id") or raw.get("id"),
                    error=str(e),
                )
        return items

    @staticmethod
    def _identifier(raw: Dict[str, Any]) -> str:
        return str(raw.get("_id") or raw.get("id") or raw.get("place_id") or "")

    @staticmethod
    def _point_coordinate(location: Any) -> Optional[Coordinate]:
        """``{lat, lng}`` or GeoJSON ``{coordinates: [lng, lat]}``; ``[0, 0]`` means unset."""
        if not isinstance(location, dict):
            return None
        if "lat" in location and "lng" in location:
            lat, lng = location.get("lat"), location.get("lng")
        else:
            coordinates = location.get("coordinates") or []
            if len(coordinates) != 2:
                return None
            lng, lat = coordinates
        if lat is None or lng is None or (lat == 0 and lng == 0):
            return None
        try:
            return Coordinate(latitude=lat, longitude=lng)
        except ValidationError:
            return None

    @staticmethod
    def _distance(
        raw: Dict[str, Any], coordinate: Optional[Coordinate], request: DiscoveryRequest
    ) -> Optional[float]:
        # distance only means something in nearby mode
        if request.coordinate is None:
            return None
        distance = to_float(raw.get("distanceKm"))
        if distance is None and coordinate is not None:
            distance = haversine_km(
                request.coordinate.latitude,
                request.coordinate.longitude,
                coordinate.latitude,
                coordinate.longitude,
            )
        return distance


class PagedFeedAdapter(FeedAdapter):
    """Backends paginating with ``page``/``limit`` and a ``pagination`` block.

    The cursor handed to the controller is minted here and read back only
    here; to everyone else it is an opaque string.
    """

    def build_params(self, request: DiscoveryRequest) -> Dict[str, Any]:
        params = self._location_params(request)
        params["page"] = self._page_from_cursor(request.cursor)
        params["limit"] = request.page_size
        return params

    def next_cursor(self, data: Any, request: DiscoveryRequest) -> Optional[str]:
        pagination = data.get("pagination") if isinstance(data, dict) else None
        if not pagination or not pagination.get("hasMore"):
            return None
        page = pagination.get("page") or self._page_from_cursor(request.cursor)
        return str(int(page) + 1)

    @staticmethod
    def _page_from_cursor(cursor: Optional[str]) -> int:
        if cursor is None:
            return 1
        try:
            return max(1, int(cursor))
        except ValueError:
            raise ValueError(f"Cursor '{cursor}' was not issued by this feed")


class TokenFeedAdapter(FeedAdapter):
    """Backends issuing their own ``nextPageToken``, passed back as ``pageToken``."""

    def build_params(self, request: DiscoveryRequest) -> Dict[str, Any]:
        params = self._location_params(request)
        if request.cursor is not None:
            params["pageToken"] = request.cursor
        return params

    def next_cursor(self, data: Any, request: DiscoveryRequest) -> Optional[str]:
        if not isinstance(data, dict):
            return None
        return data.get("nextPageToken") or None
