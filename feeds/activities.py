from typing import Any, Dict

from models.discovery_model import DiscoveryRequest
from models.entity_model import Activity
from feeds.base import PagedFeedAdapter


class ActivityFeed(PagedFeedAdapter):
    name = "activities"
    description = "Upcoming group activities hosted by other travelers"
    endpoint = "/activities/nearby"
    results_key = "activities"
    entity_model = Activity
    requires_auth = True
    supports_global = True
    default_radius_meters = 50000
    min_radius_meters = 5000
    max_radius_meters = 200000

    def normalize(self, raw: Dict[str, Any], request: DiscoveryRequest) -> Activity:
        coordinate = self._point_coordinate(raw.get("location"))
        host = raw.get("createdBy") if isinstance(raw.get("createdBy"), dict) else {}
        photos = raw.get("photos") or []
        category = raw.get("category")

        return Activity(
            id=self._identifier(raw),
            display_name=raw.get("title") or "Untitled activity",
            coordinate=coordinate,
            distance_km=self._distance(raw, coordinate, request),
            tags=[category] if category else [],
            image=photos[0] if photos else "",
            description=raw.get("description") or "",
            category=category,
            date=raw.get("date"),
            start_time=raw.get("startTime"),
            price=raw.get("price") or 0.0,
            max_capacity=raw.get("maxCapacity"),
            participants_count=len(raw.get("participants") or []),
            host_name=host.get("name"),
        )
