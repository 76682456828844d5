from typing import List, Optional, Set

from models.discovery_model import ResultPage
from models.entity_model import Entity


class PageCache:
    """Accumulates result pages for one session.

    Items never contain two entities with the same id: the first occurrence
    wins and server order is kept within and across pages.
    """

    def __init__(self):
        self._items: List[Entity] = []
        self._ids: Set[str] = set()
        self._cursor: Optional[str] = None

    @property
    def items(self) -> List[Entity]:
        return list(self._items)

    @property
    def cursor(self) -> Optional[str]:
        return self._cursor

    def __len__(self) -> int:
        return len(self._items)

    def __contains__(self, entity_id: str) -> bool:
        return entity_id in self._ids

    def replace(self, page: ResultPage) -> int:
        """Discard everything and start over from ``page``. Returns the item count."""
        self._items = []
        self._ids = set()
        self._merge(page.items)
        self._cursor = page.next_cursor
        return len(self._items)

    def append(self, page: ResultPage) -> int:
        """Merge ``page`` after the current items. Returns how many were new."""
        added = self._merge(page.items)
        self._cursor = page.next_cursor
        return added

    def invalidate_cursor(self) -> None:
        self._cursor = None

    def has_more(self) -> bool:
        return self._cursor is not None

    def _merge(self, entities) -> int:
        added = 0
        for entity in entities:
            if entity.id in self._ids:
                continue
            self._ids.add(entity.id)
            self._items.append(entity)
            added += 1
        return added
