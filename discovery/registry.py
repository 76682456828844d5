import uuid
from collections import OrderedDict
from typing import Optional

import structlog

from config.settings import settings
from config.strings import UNKNOWN_SESSION_MESSAGE
from discovery.controller import DiscoveryController
from discovery.errors import SessionNotFound

logger = structlog.get_logger()


class SessionRegistry:
    """Live discovery sessions by id; each id owns its own controller.

    Holds at most ``max_sessions``; opening one more evicts the least
    recently used session.
    """

    def __init__(self, max_sessions: Optional[int] = None):
        self.max_sessions = max_sessions or settings.MAX_SESSIONS
        self._sessions: "OrderedDict[str, DiscoveryController]" = OrderedDict()

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, session_id: str) -> bool:
        return session_id in self._sessions

    def add(self, controller: DiscoveryController) -> str:
        session_id = uuid.uuid4().hex
        self._sessions[session_id] = controller

        while len(self._sessions) > self.max_sessions:
            evicted_id, evicted = self._sessions.popitem(last=False)
            logger.info(
                "Discovery session evicted",
                session_id=evicted_id,
                feed=evicted.session.feed,
            )
        return session_id

    def get(self, session_id: str) -> DiscoveryController:
        try:
            controller = self._sessions[session_id]
        except KeyError:
            raise SessionNotFound(UNKNOWN_SESSION_MESSAGE.format(session_id=session_id))
        self._sessions.move_to_end(session_id)
        return controller

    def close(self, session_id: str) -> bool:
        return self._sessions.pop(session_id, None) is not None
