from pydantic import BaseModel, Field, ConfigDict
from typing import Optional, List


# -------------------------
# Shared Parent (ignore unknown fields)
# -------------------------
class Parent(BaseModel):
    model_config = ConfigDict(extra="ignore")


class Coordinate(Parent):
    model_config = ConfigDict(extra="ignore", frozen=True)

    latitude: float = Field(..., ge=-90, le=90, description="Latitude coordinate (-90 to 90)")
    longitude: float = Field(..., ge=-180, le=180, description="Longitude coordinate (-180 to 180)")


# -------------------------
# Common entity
# -------------------------
class Entity(Parent):
    """Anything a discovery feed can return.

    The discovery engine only relies on ``id``; the remaining common fields are
    what list and map views render for every feed.
    """

    kind: str = "entity"
    id: str = Field(..., min_length=1, description="Unique, stable identifier")
    display_name: str = ""
    coordinate: Optional[Coordinate] = None
    distance_km: Optional[float] = Field(None, description="Server-computed, nearby mode only")
    tags: List[str] = Field(default_factory=list)
    image: str = ""


# -------------------------
# Feed specific entities
# -------------------------
class Traveler(Entity):
    kind: str = "traveler"
    gender: Optional[str] = None
    travel_style: Optional[str] = None
    bio: str = ""
    nationality: Optional[str] = None
    interests: List[str] = Field(default_factory=list)
    is_online: bool = False
    last_seen: Optional[str] = None


class Place(Entity):
    """Shared shape of the place-backed feeds (hotels, attractions, shops, emergency)."""

    kind: str = "place"
    rating: float = 0.0
    total_ratings: int = 0
    vicinity: str = ""
    is_open: Optional[bool] = None
    phone_number: str = ""
    business_status: str = "UNKNOWN"
    category: Optional[str] = None


class Hotel(Place):
    kind: str = "hotel"
    amenities: List[str] = Field(default_factory=list)


class Attraction(Place):
    kind: str = "attraction"
    open_time: str = "Hours Vary"


class Shop(Place):
    kind: str = "shop"


class EmergencyService(Place):
    kind: str = "emergency_service"


class Activity(Entity):
    kind: str = "activity"
    description: str = ""
    category: Optional[str] = None
    date: Optional[str] = None
    start_time: Optional[str] = None
    price: float = 0.0
    max_capacity: Optional[int] = None
    participants_count: int = 0
    host_name: Optional[str] = None

    @property
    def spots_left(self) -> Optional[int]:
        if self.max_capacity is None:
            return None
        return max(self.max_capacity - self.participants_count, 0)
