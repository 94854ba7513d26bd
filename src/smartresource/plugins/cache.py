"""Content cache plugin (source of truth).

Responsibilities
----------------
- A GET whose ``metadata.max_age`` is greater than zero is served from a
  stored copy of an earlier existing response while the copy is younger than
  ``max_age`` seconds. The chain is short-circuited and the response metadata
  carries ``from_cache=True``.
- On a miss the next stage runs; an existing response is read once, stored,
  and handed back with a fresh single-read body.
- Non-existing responses are never stored. A response whose uri was evicted
  while it was being produced is returned but not stored.
- POST/PUT/DELETE evict every stored copy for the request uri (whatever
  controller name qualified it) before and after running the next stage.
- GETs without ``max_age`` pass through and store nothing.

Configuration
-------------
``max_entries`` (default 256): oldest copies are evicted first once the limit
is reached.

Registration
------------
Registers itself globally as ``"cache"`` during module import. The
repository attribute ``cache`` is the resolution cache, so the plugin
instance is reached through ``repository.iter_plugins()``.
"""

from __future__ import annotations

import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from smartresource.core.messages import Body, ResourceContext, Response, ResponseMetadata
from smartresource.core.repository import ResourceRepository
from smartresource.plugins._base_plugin import BasePlugin


@dataclass(frozen=True)
class _CachedContent:
    stored_at: float
    data: bytes
    content_type: Optional[str]
    metadata: ResponseMetadata

    def to_response(self) -> Response:
        return Response.ok(
            Body(self.data),
            content_type=self.content_type,
            metadata=self.metadata.model_copy(update={"from_cache": True}),
        )


class ContentCachePlugin(BasePlugin):
    """Serve fresh copies of GET responses without reaching the controllers."""

    plugin_code = "cache"
    plugin_description = "Caches existing GET responses for metadata.max_age seconds"

    __slots__ = ("_entries", "_generations")

    def __init__(self, repository, **config):
        self._entries: "OrderedDict[str, _CachedContent]" = OrderedDict()
        # uri -> eviction count
        self._generations: Dict[str, int] = {}
        super().__init__(repository, **config)

    def configure(self, max_entries: int = 256):
        """Configure cache plugin options.

        The wrapper added by __init_subclass__ handles writing to store.
        """
        pass

    def keys(self) -> tuple:
        return tuple(self._entries)

    def clear(self) -> None:
        self._entries.clear()

    def evict(self, uri: str) -> None:
        self._generations[uri] = self._generations.get(uri, 0) + 1
        prefix = f"{uri}|"
        for key in [k for k in self._entries if k == uri or k.startswith(prefix)]:
            del self._entries[key]

    def _store(self, key: str, content: _CachedContent) -> None:
        limit = max(1, int(self.configuration().get("max_entries", 256)))
        self._entries[key] = content
        self._entries.move_to_end(key)
        while len(self._entries) > limit:
            self._entries.popitem(last=False)

    def wrap_invoke(self, repository, call_next: Callable):
        """Short-circuit fresh GETs; evict on mutation."""

        async def cached(context: ResourceContext) -> None:
            request = context.request
            if request.method.is_mutating:
                self.evict(str(request.uri))
                try:
                    return await call_next(context)
                finally:
                    self.evict(str(request.uri))
            max_age = request.metadata.max_age
            if not max_age or max_age <= 0:
                return await call_next(context)

            key = request.resource_key
            now = time.monotonic()
            content = self._entries.get(key)
            if content is not None and now - content.stored_at <= max_age:
                context.response = content.to_response()
                return
            uri = str(request.uri)
            generation = self._generations.get(uri, 0)
            await call_next(context)
            response = context.response
            if response is None or not response.exists():
                return
            if self._generations.get(uri, 0) != generation:
                return
            data = response.read()
            content = _CachedContent(now, data, response.content_type, response.metadata)
            self._store(key, content)
            context.response = Response.ok(
                Body(data), content_type=response.content_type, metadata=response.metadata
            )

        return cached


ResourceRepository.register_plugin(ContentCachePlugin)
