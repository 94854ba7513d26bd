"""In-memory reference controller.

Items are keyed by canonical uri. Get returns the stored value (text for
``str``, JSON for other objects, raw for bytes) or NotFound; Put stores the
body (stream bodies are read into bytes) and answers with a Get of the
same uri; Delete removes the item and answers NotFound. Relative uris and
every scheme are accepted unless ``schemes`` narrows them.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, Iterator, Mapping, Optional, Tuple, Union

from smartresource.core.controller import Controller
from smartresource.core.messages import Body, Request, RequestMethod, Response
from smartresource.core.uri import UriString

__all__ = ["InMemoryController"]


class InMemoryController(Controller):
    """Dictionary-backed controller."""

    def __init__(
        self,
        name: str = "",
        items: Optional[Mapping[str, Any]] = None,
        *,
        tags: Optional[Union[str, Iterable[str]]] = None,
        schemes: Iterable[str] = ("*",),
    ) -> None:
        self._items: Dict[str, Any] = {}
        super().__init__(name, tags=tags, schemes=schemes, supports_relative_uri=True)
        for key, value in (items or {}).items():
            self.add(key, value)

    def method_table(self):
        return (
            (RequestMethod.GET, self.get_item),
            (RequestMethod.PUT, self.put_item),
            (RequestMethod.DELETE, self.delete_item),
        )

    @staticmethod
    def _key(uri: Union[UriString, str]) -> str:
        return str(UriString(uri))

    def add(self, uri: Union[UriString, str], value: Any) -> "InMemoryController":
        self._items[self._key(uri)] = value
        return self

    async def get_item(self, request: Request) -> Response:
        key = self._key(request.uri)
        if key not in self._items:
            return Response.not_found()
        return Response.ok(self._items[key], encoding=request.metadata.encoding)

    async def put_item(self, request: Request) -> Response:
        body = request.body
        if callable(getattr(body, "read", None)):
            # streams are single-read; keep their bytes
            body = Body(body).read()
        self._items[self._key(request.uri)] = body
        return await self.get_item(request)

    async def delete_item(self, request: Request) -> Response:
        self._items.pop(self._key(request.uri), None)
        return Response.not_found()

    def __contains__(self, uri: object) -> bool:
        return isinstance(uri, (str, UriString)) and self._key(uri) in self._items

    def __iter__(self) -> Iterator[Tuple[str, Any]]:
        return iter(list(self._items.items()))
