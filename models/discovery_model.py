from enum import Enum
from typing import List, Optional

from pydantic import ConfigDict, Field, SerializeAsAny

from models.entity_model import Coordinate, Entity, Parent


class SearchMode(str, Enum):
    NEARBY = "nearby"
    GLOBAL = "global"


class Phase(str, Enum):
    IDLE = "idle"
    LOCATING_DEVICE = "locating_device"
    FETCHING = "fetching"
    FETCHING_MORE = "fetching_more"
    READY = "ready"
    ERROR = "error"


class IntentKind(str, Enum):
    INITIAL = "initial"
    SEARCH = "search"
    LOAD_MORE = "load_more"
    MODE_TOGGLE = "mode_toggle"


# -------------------------
# Requests
# -------------------------
class Intent(Parent):
    """What the user asked for; QueryBuilder turns it into a DiscoveryRequest."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    kind: IntentKind
    coordinate: Optional[Coordinate] = None
    text: Optional[str] = None
    mode: Optional[SearchMode] = None


class DiscoveryRequest(Parent):
    model_config = ConfigDict(extra="forbid", frozen=True)

    coordinate: Optional[Coordinate] = None
    radius_meters: Optional[int] = Field(None, gt=0)
    query_text: str = ""
    cursor: Optional[str] = None
    page_size: int = Field(..., ge=1)

    @property
    def mode(self) -> SearchMode:
        return SearchMode.NEARBY if self.coordinate is not None else SearchMode.GLOBAL

    def to_params(self) -> dict:
        """Collaborator-facing parameters, absent values omitted."""
        params = {"pageSize": self.page_size}
        if self.coordinate is not None:
            params["coordinate"] = {
                "lat": self.coordinate.latitude,
                "lng": self.coordinate.longitude,
            }
        if self.radius_meters is not None:
            params["radiusMeters"] = self.radius_meters
        if self.query_text:
            params["text"] = self.query_text
        if self.cursor is not None:
            params["cursor"] = self.cursor
        return params


# -------------------------
# Responses
# -------------------------
class ResultPage(Parent):
    items: List[SerializeAsAny[Entity]] = Field(default_factory=list)
    next_cursor: Optional[str] = None


class DiscoverySnapshot(Parent):
    """Serializable view of one live discovery session."""

    success: bool = True
    feed: str
    session_id: Optional[str] = None
    phase: Phase
    mode: SearchMode
    query_text: str = ""
    radius_meters: Optional[int] = None
    coordinate: Optional[Coordinate] = None
    items: List[SerializeAsAny[Entity]] = Field(default_factory=list)
    total_count: int = 0
    has_more: bool = False
    supports_global: bool = True
    error: Optional[str] = None
    selected_id: Optional[str] = None


class DiscoveryErrorResponse(Parent):
    success: bool = False
    error: str
    session_id: Optional[str] = None


class FeedInfo(Parent):
    name: str
    description: str
    requires_auth: bool
    supports_global: bool
    default_radius_km: float
    min_radius_km: float
    max_radius_km: float


class FeedListResponse(Parent):
    success: bool = True
    feeds: List[FeedInfo]
