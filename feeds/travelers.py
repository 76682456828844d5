from typing import Any, Dict

from models.discovery_model import DiscoveryRequest
from models.entity_model import Traveler
from feeds.base import PagedFeedAdapter


class TravelerFeed(PagedFeedAdapter):
    name = "travelers"
    description = "Other travelers with a public profile near you, or by name worldwide"
    endpoint = "/users/nearby"
    results_key = "users"
    entity_model = Traveler
    requires_auth = True
    supports_global = True
    default_radius_meters = 20000
    min_radius_meters = 5000
    max_radius_meters = 100000

    def normalize(self, raw: Dict[str, Any], request: DiscoveryRequest) -> Traveler:
        # travelers who never shared a location are stored at [0, 0]
        coordinate = self._point_coordinate(raw.get("currentLocation"))
        interests = [i for i in raw.get("interests") or [] if isinstance(i, str)]
        travel_style = raw.get("travelStyle")

        return Traveler(
            id=self._identifier(raw),
            display_name=raw.get("fullName") or raw.get("name") or "Anonymous",
            coordinate=coordinate,
            distance_km=self._distance(raw, coordinate, request),
            tags=interests + ([travel_style] if travel_style else []),
            image=raw.get("profilePicture") or raw.get("profileImage") or "",
            gender=raw.get("gender"),
            travel_style=travel_style,
            bio=raw.get("bio") or "",
            nationality=raw.get("nationality"),
            interests=interests,
            is_online=bool(raw.get("isOnline", False)),
            last_seen=raw.get("lastSeen"),
        )
