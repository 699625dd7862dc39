"""Favorite events, kept as a JSON list of ids in local storage."""

from __future__ import annotations

from typing import Any

from ticketoffice.storage import LocalStorage

KEY = "favorite_events"


def _as_ids(raw: Any) -> set[str]:
    if not isinstance(raw, list):
        return set()
    return {str(v) for v in raw}


class Favorites:
    def __init__(self, storage: LocalStorage) -> None:
        self._storage = storage

    async def ids(self) -> set[str]:
        return _as_ids(await self._storage.get_json(KEY, default=[]))

    async def is_favorite(self, event_id: str) -> bool:
        return event_id in await self.ids()

    async def toggle(self, event_id: str) -> bool:
        """Flip *event_id* and return whether it is now a favorite."""

        def flip(raw: Any) -> list[str]:
            current = _as_ids(raw)
            current.symmetric_difference_update({event_id})
            return sorted(current)

        return event_id in await self._storage.update_json(KEY, flip, default=[])

    async def set_favorite(self, event_id: str, value: bool) -> None:
        def apply(raw: Any) -> list[str]:
            current = _as_ids(raw)
            if value:
                current.add(event_id)
            else:
                current.discard(event_id)
            return sorted(current)

        await self._storage.update_json(KEY, apply, default=[])
