from typing import Optional

from discovery.errors import InvalidLocalPrecondition
from discovery.session import DiscoverySession
from models.discovery_model import DiscoveryRequest, Intent, IntentKind, SearchMode
from models.entity_model import Coordinate


class QueryBuilder:
    """Turns a session plus a user intent into the next DiscoveryRequest.

    Pure: no I/O and no session mutation. Intents that cannot produce a
    request raise ``InvalidLocalPrecondition`` so nothing reaches the network.
    """

    def build(self, session: DiscoverySession, intent: Intent) -> DiscoveryRequest:
        if intent.kind == IntentKind.LOAD_MORE:
            return self._continue(session)

        if intent.kind == IntentKind.INITIAL:
            return self._nearby(session, intent.coordinate, text="")

        if intent.kind == IntentKind.SEARCH:
            mode = intent.mode or session.mode
            text = session.query_text if intent.text is None else intent.text
            if mode == SearchMode.GLOBAL:
                return self._global(session, text, allow_empty=False)
            return self._nearby(session, intent.coordinate, text)

        if intent.kind == IntentKind.MODE_TOGGLE:
            target = intent.mode or self._opposite(session.mode)
            text = session.query_text if intent.text is None else intent.text
            if target == SearchMode.GLOBAL:
                return self._global(session, text, allow_empty=True)
            # back to nearby reuses the last known coordinate, no new location prompt
            return self._nearby(session, intent.coordinate, text)

        raise InvalidLocalPrecondition(f"Unsupported intent: {intent.kind}")

    def _nearby(
        self, session: DiscoverySession, coordinate: Optional[Coordinate], text: str
    ) -> DiscoveryRequest:
        coordinate = coordinate or session.coordinate
        if coordinate is None:
            raise InvalidLocalPrecondition("Nearby search needs a coordinate")
        return DiscoveryRequest(
            coordinate=coordinate,
            radius_meters=session.radius_meters,
            query_text=(text or "").strip(),
            page_size=session.page_size,
        )

    def _global(
        self, session: DiscoverySession, text: Optional[str], allow_empty: bool
    ) -> DiscoveryRequest:
        text = (text or "").strip()
        if not text and not allow_empty:
            raise InvalidLocalPrecondition("Global search needs query text")
        return DiscoveryRequest(query_text=text, page_size=session.page_size)

    def _continue(self, session: DiscoverySession) -> DiscoveryRequest:
        if session.cursor is None or session.active_request is None:
            raise InvalidLocalPrecondition("No further page to load")
        return session.active_request.model_copy(update={"cursor": session.cursor})

    @staticmethod
    def _opposite(mode: SearchMode) -> SearchMode:
        return SearchMode.GLOBAL if mode == SearchMode.NEARBY else SearchMode.NEARBY
