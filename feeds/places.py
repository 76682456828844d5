from typing import Any, Dict, List

from models.discovery_model import DiscoveryRequest
from models.entity_model import Attraction, EmergencyService, Hotel, Place, Shop
from feeds.base import TokenFeedAdapter
from utils.helper import humanize_tag

GENERIC_TYPES = {"point_of_interest", "establishment"}


class PlaceFeedAdapter(TokenFeedAdapter):
    """Place-backed feeds. Their backend always needs a location, so no global mode."""

    results_key = "places"
    supports_global = False
    entity_model = Place

    def normalize(self, raw: Dict[str, Any], request: DiscoveryRequest) -> Place:
        coordinate = self._point_coordinate(raw.get("currentLocation"))
        types = [t for t in raw.get("types", []) if isinstance(t, str)]
        return self.entity_model(
            id=self._identifier(raw),
            display_name=raw.get("name", ""),
            coordinate=coordinate,
            distance_km=self._distance(raw, coordinate, request),
            tags=types,
            image=raw.get("image") or "",
            rating=raw.get("rating") or 0.0,
            total_ratings=raw.get("totalRatings") or 0,
            vicinity=raw.get("vicinity") or "",
            is_open=raw.get("isOpen"),
            phone_number=raw.get("phoneNumber") or "",
            business_status=raw.get("businessStatus") or "UNKNOWN",
            category=raw.get("category") or self.categorize(types),
            **self.extra_fields(raw, types),
        )

    def categorize(self, types: List[str]) -> str:
        return "Place"

    def extra_fields(self, raw: Dict[str, Any], types: List[str]) -> Dict[str, Any]:
        return {}


class HotelFeed(PlaceFeedAdapter):
    name = "hotels"
    description = "Hotels and other lodging around you"
    endpoint = "/places/hotels"
    entity_model = Hotel

    def categorize(self, types: List[str]) -> str:
        return "Hotel"

    def extra_fields(self, raw, types):
        amenities = raw.get("amenities")
        if amenities is None:
            amenities = [
                humanize_tag(t) for t in types if t not in GENERIC_TYPES | {"lodging"}
            ][:3]
        return {"amenities": amenities}


class AttractionFeed(PlaceFeedAdapter):
    name = "attractions"
    description = "Tourist attractions, museums, parks and landmarks"
    endpoint = "/places/tourist"
    entity_model = Attraction

    def categorize(self, types: List[str]) -> str:
        if any(t in ("museum", "art_gallery") for t in types):
            return "Culture"
        if any(t in ("park", "natural_feature") for t in types):
            return "Nature"
        if any(
            t in ("church", "hindu_temple", "mosque", "synagogue", "place_of_worship")
            for t in types
        ):
            return "Religious"
        if any(t in GENERIC_TYPES for t in types):
            return "Historical"
        return "Attraction"

    def extra_fields(self, raw, types):
        open_time = raw.get("openTime")
        if open_time is None:
            is_open = raw.get("isOpen")
            if is_open is None:
                open_time = "Hours Vary"
            else:
                open_time = "Open Now" if is_open else "Currently Closed"
        return {"open_time": open_time}


class ShoppingFeed(PlaceFeedAdapter):
    name = "shopping"
    description = "Malls, markets and stores"
    endpoint = "/places/shopping"
    entity_model = Shop

    def categorize(self, types: List[str]) -> str:
        if "shopping_mall" in types:
            return "Mall"
        if any(t in ("supermarket", "grocery_or_supermarket") for t in types):
            return "Supermarket"
        if "clothing_store" in types:
            return "Clothing"
        return "Store"


class EmergencyFeed(PlaceFeedAdapter):
    name = "emergency"
    description = "Hospitals, pharmacies, police and other emergency services"
    endpoint = "/places/emergency"
    entity_model = EmergencyService

    def categorize(self, types: List[str]) -> str:
        if "hospital" in types:
            return "Hospital"
        if "pharmacy" in types:
            return "Pharmacy"
        if "police" in types:
            return "Police"
        if "fire_station" in types:
            return "Fire Station"
        if "atm" in types:
            return "ATM"
        if "bank" in types:
            return "Bank"
        return "Emergency"
