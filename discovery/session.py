from dataclasses import dataclass, field
from typing import List, Optional

from discovery.cache import PageCache
from models.discovery_model import DiscoveryRequest, Phase, SearchMode
from models.entity_model import Coordinate, Entity


@dataclass
class DiscoverySession:
    """Live state of one feed instance. Only its controller mutates it."""

    feed: str
    page_size: int
    radius_meters: int
    mode: SearchMode = SearchMode.NEARBY
    query_text: str = ""
    # last known position, from the geolocator or a map click
    coordinate: Optional[Coordinate] = None
    phase: Phase = Phase.IDLE
    error: Optional[str] = None
    # request whose results are currently displayed; load more continues it
    active_request: Optional[DiscoveryRequest] = None
    last_request: Optional[DiscoveryRequest] = None
    last_request_appends: bool = False
    cache: PageCache = field(default_factory=PageCache)

    @property
    def items(self) -> List[Entity]:
        return self.cache.items

    @property
    def cursor(self) -> Optional[str]:
        return self.cache.cursor

    def has_more(self) -> bool:
        return self.cache.has_more()

    @property
    def located(self) -> bool:
        return self.phase not in (Phase.IDLE, Phase.LOCATING_DEVICE)
