"""Live rotation of monitored characters.

An ordered list with a round-robin cursor. All access goes through one
asyncio lock, held only for the list operation itself.
"""

from __future__ import annotations

import asyncio

from monitor.base import MonitoredEntity


class EntityRegistry:
    """Characters currently being polled, in rotation order."""

    def __init__(self):
        self._entities: list[MonitoredEntity] = []
        self._cursor = 0
        self._lock = asyncio.Lock()

    def __len__(self) -> int:
        return len(self._entities)

    @property
    def cursor(self) -> int:
        return self._cursor

    async def register(self, entity: MonitoredEntity) -> None:
        """Append a character at the end of the rotation."""
        async with self._lock:
            self._entities.append(entity)

    async def contains(self, character_id: int) -> bool:
        async with self._lock:
            return any(e.character_id == character_id for e in self._entities)

    async def current(self) -> MonitoredEntity | None:
        """The character under the cursor, or None when empty."""
        async with self._lock:
            if not self._entities:
                return None
            if self._cursor >= len(self._entities):
                self._cursor = 0
            return self._entities[self._cursor]

    async def advance_past(self, entity: MonitoredEntity) -> int:
        """Move the cursor to the character after `entity`.

        Returns:
            Number of characters in the rotation
        """
        async with self._lock:
            if self._entities:
                index = self._index_of(entity)
                start = self._cursor if index is None else index
                self._cursor = (start + 1) % len(self._entities)
            return len(self._entities)

    async def unregister(self, entity: MonitoredEntity) -> int:
        """Drop a character from the rotation.

        The cursor keeps pointing at the character that followed it,
        wrapping to the start when it falls off the end.

        Returns:
            Number of characters left in the rotation
        """
        async with self._lock:
            index = self._index_of(entity)
            if index is not None:
                del self._entities[index]
                if index < self._cursor:
                    self._cursor -= 1
            if self._cursor >= len(self._entities):
                self._cursor = 0
            return len(self._entities)

    async def get_ids(self) -> list[int]:
        """Character ids in rotation order."""
        async with self._lock:
            return [e.character_id for e in self._entities]

    def _index_of(self, entity: MonitoredEntity) -> int | None:
        for index, candidate in enumerate(self._entities):
            if candidate is entity:
                return index
        return None
