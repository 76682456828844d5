from typing import Awaitable, Callable, Optional

import structlog

from config.settings import settings
from discovery.errors import InvalidLocalPrecondition
from discovery.geo import GeoLocator
from discovery.query import QueryBuilder
from discovery.selection import SelectionBridge
from discovery.session import DiscoverySession
from models.discovery_model import (
    DiscoveryRequest,
    DiscoverySnapshot,
    Intent,
    IntentKind,
    Phase,
    ResultPage,
    SearchMode,
)
from models.entity_model import Coordinate

logger = structlog.get_logger()

SearchFn = Callable[[DiscoveryRequest], Awaitable[ResultPage]]


class DiscoveryController:
    """State machine behind one location-scoped discovery feed.

    Idle -> LocatingDevice -> Fetching -> Ready <-> FetchingMore, with Error
    reachable from any fetch and left through ``retry`` or a new search.

    Every public action returns True when it sent a request and False when it
    was a local no-op. Remote failures never escape: they move the session to
    ``Phase.ERROR`` and leave the displayed items untouched. Responses to
    requests that were superseded by a newer one are dropped on arrival.
    """

    def __init__(
        self,
        search: SearchFn,
        geolocator: Optional[GeoLocator] = None,
        *,
        feed: str = "discovery",
        radius_meters: int = 20000,
        min_radius_meters: Optional[int] = None,
        max_radius_meters: Optional[int] = None,
        page_size: Optional[int] = None,
        supports_global: bool = True,
        query_builder: Optional[QueryBuilder] = None,
        selection: Optional[SelectionBridge] = None,
    ):
        self._search = search
        self.geolocator = geolocator or GeoLocator()
        self.builder = query_builder or QueryBuilder()
        self.selection = selection or SelectionBridge()
        self.supports_global = supports_global
        self.min_radius_meters = min_radius_meters or radius_meters
        self.max_radius_meters = max_radius_meters or radius_meters
        self.session = DiscoverySession(
            feed=feed,
            page_size=page_size or settings.DEFAULT_PAGE_SIZE,
            radius_meters=radius_meters,
        )
        self._seq = 0
        self.log = logger.bind(feed=feed)

    @property
    def phase(self) -> Phase:
        return self.session.phase

    def has_more(self) -> bool:
        return self.session.has_more()

    # -------------------------
    # Transitions
    # -------------------------
    async def mount(self) -> bool:
        s = self.session
        if s.phase != Phase.IDLE:
            return False

        s.phase = Phase.LOCATING_DEVICE
        try:
            coordinate = await self.geolocator.acquire()
            request = self.builder.build(
                s, Intent(kind=IntentKind.INITIAL, coordinate=coordinate)
            )
        except Exception as e:
            s.phase = Phase.ERROR
            s.error = str(e) or type(e).__name__
            self.log.error("Discovery mount failed", error=s.error)
            return False

        s.coordinate = coordinate
        s.mode = SearchMode.NEARBY
        self.log.info(
            "Discovery session mounted",
            latitude=round(coordinate.latitude, 3),
            longitude=round(coordinate.longitude, 3),
        )
        return await self._dispatch(request, append=False)

    async def search(
        self,
        text: Optional[str] = None,
        coordinate: Optional[Coordinate] = None,
        mode: Optional[SearchMode] = None,
    ) -> bool:
        """Submit the search box. ``coordinate`` comes from a map click, if any."""
        s = self.session
        if not s.located:
            return False
        if mode == SearchMode.GLOBAL and not self.supports_global:
            self.log.info("Global search not supported by feed")
            return False

        request = self._build(
            Intent(kind=IntentKind.SEARCH, text=text, coordinate=coordinate, mode=mode)
        )
        if request is None:
            return False

        if text is not None:
            s.query_text = text.strip()
        if mode is not None:
            s.mode = mode
        if coordinate is not None and request.coordinate is not None:
            s.coordinate = coordinate
        return await self._dispatch(request, append=False)

    async def clear_search(self) -> bool:
        """Empty the search box and go back to unfiltered nearby results."""
        s = self.session
        if not s.located:
            return False

        request = self._build(
            Intent(kind=IntentKind.SEARCH, text="", mode=SearchMode.NEARBY)
        )
        if request is None:
            return False

        s.query_text = ""
        s.mode = SearchMode.NEARBY
        return await self._dispatch(request, append=False)

    async def toggle_mode(self) -> bool:
        s = self.session
        if not s.located:
            return False

        target = SearchMode.GLOBAL if s.mode == SearchMode.NEARBY else SearchMode.NEARBY
        if target == SearchMode.GLOBAL and not self.supports_global:
            self.log.info("Global search not supported by feed")
            return False

        request = self._build(Intent(kind=IntentKind.MODE_TOGGLE, mode=target))
        if request is None:
            return False

        s.mode = target
        return await self._dispatch(request, append=False)

    def set_radius(self, radius_meters: int) -> bool:
        """Store a new radius. It is applied by the next explicit search."""
        s = self.session
        if s.mode != SearchMode.NEARBY:
            return False
        radius_meters = int(radius_meters)
        if not (self.min_radius_meters <= radius_meters <= self.max_radius_meters):
            raise ValueError(
                f"radius must be between {self.min_radius_meters} and "
                f"{self.max_radius_meters} meters."
            )
        s.radius_meters = radius_meters
        return True

    async def load_more(self) -> bool:
        s = self.session
        # also covers the one-request-in-flight guard
        if s.phase != Phase.READY or not s.has_more():
            return False

        request = self._build(Intent(kind=IntentKind.LOAD_MORE))
        if request is None:
            return False
        return await self._dispatch(request, append=True)

    async def retry(self) -> bool:
        """Re-issue the last request, unchanged."""
        s = self.session
        if s.phase != Phase.ERROR:
            return False
        if s.last_request is None:
            s.phase = Phase.IDLE
            s.error = None
            return await self.mount()
        return await self._dispatch(s.last_request, append=s.last_request_appends)

    def snapshot(self, session_id: Optional[str] = None) -> DiscoverySnapshot:
        s = self.session
        items = s.items
        return DiscoverySnapshot(
            feed=s.feed,
            session_id=session_id,
            phase=s.phase,
            mode=s.mode,
            query_text=s.query_text,
            radius_meters=s.radius_meters if s.mode == SearchMode.NEARBY else None,
            coordinate=s.coordinate,
            items=items,
            total_count=len(items),
            has_more=s.has_more(),
            supports_global=self.supports_global,
            error=s.error,
            selected_id=self.selection.selected_id,
        )

    # -------------------------
    # Internals
    # -------------------------
    def _build(self, intent: Intent) -> Optional[DiscoveryRequest]:
        try:
            return self.builder.build(self.session, intent)
        except InvalidLocalPrecondition as e:
            self.log.debug("Discovery action ignored", intent=intent.kind.value, reason=str(e))
            return None

    async def _dispatch(self, request: DiscoveryRequest, append: bool) -> bool:
        s = self.session
        self._seq += 1
        seq = self._seq

        s.last_request = request
        s.last_request_appends = append
        if not append:
            # the old cursor belongs to a query that is being replaced
            s.cache.invalidate_cursor()
        s.phase = Phase.FETCHING_MORE if append else Phase.FETCHING
        s.error = None

        self.log.info(
            "Discovery fetch started",
            seq=seq,
            append=append,
            mode=request.mode.value,
            query=request.query_text,
            radius_meters=request.radius_meters,
        )

        try:
            page = await self._search(request)
        except Exception as e:
            if seq != self._seq:
                self.log.debug("Superseded failure dropped", seq=seq, current=self._seq)
                return True
            s.phase = Phase.ERROR
            s.error = str(e) or type(e).__name__
            self.log.warning(
                "Discovery fetch failed",
                seq=seq,
                error=s.error,
                error_type=type(e).__name__,
                items_kept=len(s.cache),
            )
            return True

        if seq != self._seq:
            self.log.debug("Superseded response dropped", seq=seq, current=self._seq)
            return True

        if append:
            added = s.cache.append(page)
        else:
            added = s.cache.replace(page)
            s.active_request = request
            self.selection.retain(entity.id for entity in s.items)
        s.phase = Phase.READY

        self.log.info(
            "Discovery fetch completed",
            seq=seq,
            added=added,
            total_count=len(s.cache),
            has_more=s.has_more(),
        )
        return True
