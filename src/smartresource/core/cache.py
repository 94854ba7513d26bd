"""Controller resolution cache.

Maps a request's resource key to the controller that served it. The cache is
shared by all concurrent requests of a repository:

- reads never lock (plain ``dict`` lookups);
- concurrent first writes for the same key may race, and the last writer wins.
  Resolution is idempotent against a fixed controller list, so every writer
  stores the same controller;
- entries are never invalidated automatically. Controller registration does
  not change after startup, so an entry stays valid for the life of the
  repository. ``clear()`` exists for explicit resets.
"""

from __future__ import annotations

from typing import Dict, Optional, Tuple

from smartresource.core.controller import Controller

__all__ = ["ResolutionCache"]


class ResolutionCache:
    """In-process ``resource key -> controller`` map."""

    __slots__ = ("_entries", "hits", "misses")

    def __init__(self) -> None:
        self._entries: Dict[str, Controller] = {}
        self.hits = 0
        self.misses = 0

    def get(self, key: str) -> Optional[Controller]:
        controller = self._entries.get(key)
        if controller is None:
            self.misses += 1
        else:
            self.hits += 1
        return controller

    def set(self, key: str, controller: Controller) -> Controller:
        self._entries[key] = controller
        return controller

    def keys(self) -> Tuple[str, ...]:
        return tuple(self._entries)

    def clear(self) -> None:
        self._entries.clear()

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __getitem__(self, key: str) -> Controller:
        return self._entries[key]

    def __len__(self) -> int:
        return len(self._entries)
