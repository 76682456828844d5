from typing import Callable, Iterable, List, Optional

import structlog

logger = structlog.get_logger()


class SelectionBridge:
    """Holds the one selected entity id shared by the list and the map."""

    def __init__(self):
        self._selected_id: Optional[str] = None
        self._listeners: List[Callable[[Optional[str]], None]] = []

    @property
    def selected_id(self) -> Optional[str]:
        return self._selected_id

    def select(self, entity_id: Optional[str]) -> None:
        if entity_id == self._selected_id:
            return
        self._selected_id = entity_id
        for listener in list(self._listeners):
            listener(entity_id)

    def subscribe(self, listener: Callable[[Optional[str]], None]) -> Callable[[], None]:
        """Register ``listener``; returns a function that unregisters it."""
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def retain(self, entity_ids: Iterable[str]) -> None:
        """Drop the selection if the selected entity is no longer listed."""
        if self._selected_id is not None and self._selected_id not in set(entity_ids):
            logger.debug("Selected item left the result set", entity_id=self._selected_id)
            self.select(None)
