"""Request/response envelope (source of truth).

Everything that flows through the pipeline is defined here. Rebuild it from the
contract below.

Enums
-----
- ``RequestMethod``: closed set ``GET``/``POST``/``PUT``/``DELETE`` with lower
  case string values (used as per-method plugin config targets).
  ``RequestMethod.coerce`` accepts members or case-insensitive strings.
- ``StatusCode``: ``OK``/``NOT_FOUND``.

``ControllerName``
------------------
Frozen dataclass ``(name, tags)`` used to address controllers explicitly.
``name`` is stripped; ``tags`` accepts a comma separated string or an iterable
and is normalized to a casefolded ``frozenset``. Names compare
case-insensitively (``matches_name``); tags match by set overlap
(``overlaps``), never by subset.

Metadata
--------
``RequestMetadata`` and ``ResponseMetadata`` are frozen pydantic models with
``extra="forbid"``: unknown keys are rejected. Recognized keys are grouped by
the concern that reads them. Earlier pipeline stages extend request metadata
via ``Request.with_metadata`` which swaps in an updated copy.

``Body``
--------
Single-read payload. Built from bytes, str (encoded), a binary stream, or any
other object (encoded as JSON with ``pydantic_core.to_json``). ``read()``
returns the bytes and closes the body; a second read, or a read after
``close()``, raises ``ValueError``.

``Request``
-----------
``Request(uri, method=GET, *, controller_name=None, metadata=None, body=None)``.
``uri`` and ``method`` are read-only after construction. ``resource_key`` is
the canonical uri, qualified by the controller name when one is given.
``Request.get/post/put/delete`` build an instance of the class they are called
on, so ``FileRequest.get(...)`` yields a ``FileRequest``.

``Response``
------------
``Response(status_code, body=None, *, metadata=None, content_type=None)``.
``exists()`` is ``status_code is OK``; an OK response always has a body (an
empty one when none is given). Responses are scoped: ``with``/``async with``
or ``release()`` close the body.

``ResourceContext``
-------------------
Mutable per-call envelope passed between pipeline stages: ``request``,
``response`` (set by the terminal stage or a short-circuiting stage) and an
``items`` dict for stage-to-stage data.
"""

from __future__ import annotations

import asyncio
import io
import json
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, FrozenSet, Iterable, Optional, Type, Union

from pydantic import BaseModel, ConfigDict
from pydantic_core import to_json

from smartresource.core.uri import UriString

__all__ = [
    "RequestMethod",
    "StatusCode",
    "ControllerName",
    "RequestMetadata",
    "ResponseMetadata",
    "Body",
    "Request",
    "FileRequest",
    "ConfigRequest",
    "Response",
    "ResourceContext",
    "normalize_tags",
]


class RequestMethod(str, Enum):
    GET = "get"
    POST = "post"
    PUT = "put"
    DELETE = "delete"

    @classmethod
    def coerce(cls, value: Union["RequestMethod", str]) -> "RequestMethod":
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            return cls(value.strip().lower())
        raise TypeError(f"Request method must be a RequestMethod or string, got {value!r}")

    @property
    def is_mutating(self) -> bool:
        return self is not RequestMethod.GET


class StatusCode(str, Enum):
    OK = "ok"
    NOT_FOUND = "not_found"


def normalize_tags(tags: Optional[Union[str, Iterable[str]]]) -> FrozenSet[str]:
    """Return casefolded, non-empty tags from a string or iterable."""
    if tags is None:
        return frozenset()
    if isinstance(tags, str):
        items: Iterable[Any] = tags.split(",")
    elif isinstance(tags, Iterable):
        items = tags
    else:
        raise TypeError("tags must be a string or iterable of strings")
    return frozenset(str(item).strip().casefold() for item in items if str(item).strip())


@dataclass(frozen=True)
class ControllerName:
    """Explicit controller address: a name and/or a set of tags."""

    name: str = ""
    tags: FrozenSet[str] = frozenset()

    def __post_init__(self) -> None:
        object.__setattr__(self, "name", (self.name or "").strip())
        object.__setattr__(self, "tags", normalize_tags(self.tags))

    def matches_name(self, other: Optional[str]) -> bool:
        return bool(self.name) and self.name.casefold() == (other or "").casefold()

    def overlaps(self, tags: Iterable[str]) -> bool:
        return not self.tags.isdisjoint(normalize_tags(tags))

    def __bool__(self) -> bool:
        return bool(self.name or self.tags)

    def __str__(self) -> str:
        if not self.tags:
            return self.name
        return f"{self.name}[{','.join(sorted(self.tags))}]"


class RequestMetadata(BaseModel):
    """Closed set of request metadata keys."""

    model_config = ConfigDict(frozen=True, extra="forbid", arbitrary_types_allowed=True)

    # content negotiation
    accept: Optional[str] = None
    encoding: str = "utf-8"
    # cancellation, honoured by controllers
    cancellation: Optional[asyncio.Event] = None
    # content cache stage
    max_age: Optional[float] = None
    # validation stage
    body_model: Optional[Type[BaseModel]] = None


class ResponseMetadata(BaseModel):
    """Closed set of response metadata keys."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    length: Optional[int] = None
    modified_on: Optional[datetime] = None
    controller: Optional[str] = None
    from_cache: bool = False


class Body:
    """Single-read binary payload."""

    __slots__ = ("_stream",)

    def __init__(self, source: Any = b"", *, encoding: str = "utf-8") -> None:
        if isinstance(source, (bytes, bytearray, memoryview)):
            stream: Any = io.BytesIO(bytes(source))
        elif isinstance(source, str):
            stream = io.BytesIO(source.encode(encoding))
        elif callable(getattr(source, "read", None)):
            stream = source
        else:
            stream = io.BytesIO(to_json(source))
        self._stream = stream

    @property
    def closed(self) -> bool:
        return self._stream is None

    def read(self) -> bytes:
        if self._stream is None:
            raise ValueError("Body has already been read or released")
        try:
            data = self._stream.read()
        finally:
            self.close()
        if isinstance(data, str):
            return data.encode("utf-8")
        return bytes(data)

    def close(self) -> None:
        stream, self._stream = self._stream, None
        if stream is not None:
            stream.close()


def _guess_content_type(value: Any) -> str:
    if isinstance(value, str):
        return "text/plain"
    if isinstance(value, (bytes, bytearray, memoryview)) or callable(getattr(value, "read", None)):
        return "application/octet-stream"
    return "application/json"


class Request:
    """Abstract resource request; identity fields are immutable."""

    __slots__ = ("_uri", "_method", "controller_name", "metadata", "body")

    def __init__(
        self,
        uri: Union[UriString, str],
        method: Union[RequestMethod, str] = RequestMethod.GET,
        *,
        controller_name: Optional[Union[ControllerName, str]] = None,
        metadata: Optional[Union[RequestMetadata, Dict[str, Any]]] = None,
        body: Any = None,
    ) -> None:
        self._uri = UriString(uri)
        self._method = RequestMethod.coerce(method)
        if isinstance(controller_name, str):
            controller_name = ControllerName(controller_name)
        self.controller_name: Optional[ControllerName] = controller_name or None
        if metadata is None:
            metadata = RequestMetadata()
        elif isinstance(metadata, dict):
            metadata = RequestMetadata(**metadata)
        self.metadata: RequestMetadata = metadata
        self.body = body

    @classmethod
    def get(cls, uri: Union[UriString, str], **kwargs: Any) -> "Request":
        return cls(uri, RequestMethod.GET, **kwargs)

    @classmethod
    def post(cls, uri: Union[UriString, str], body: Any = None, **kwargs: Any) -> "Request":
        return cls(uri, RequestMethod.POST, body=body, **kwargs)

    @classmethod
    def put(cls, uri: Union[UriString, str], body: Any = None, **kwargs: Any) -> "Request":
        return cls(uri, RequestMethod.PUT, body=body, **kwargs)

    @classmethod
    def delete(cls, uri: Union[UriString, str], **kwargs: Any) -> "Request":
        return cls(uri, RequestMethod.DELETE, **kwargs)

    @property
    def uri(self) -> UriString:
        return self._uri

    @property
    def method(self) -> RequestMethod:
        return self._method

    @property
    def resource_key(self) -> str:
        if self.controller_name:
            return f"{self._uri}|{self.controller_name}"
        return str(self._uri)

    def with_metadata(self, **updates: Any) -> "Request":
        """Replace metadata with a copy extended by ``updates``."""
        self.metadata = RequestMetadata(**{**dict(self.metadata), **updates})
        return self

    def raise_if_cancelled(self) -> None:
        event = self.metadata.cancellation
        if event is not None and event.is_set():
            raise asyncio.CancelledError(f"{self._method.value.upper()} '{self._uri}' was cancelled")

    def __repr__(self) -> str:
        target = f" controller={self.controller_name}" if self.controller_name else ""
        return f"<{type(self).__name__} {self._method.value.upper()} {self._uri}{target}>"


class FileRequest(Request):
    """Request handled by file backends."""

    __slots__ = ()


class ConfigRequest(Request):
    """Request handled by settings backends."""

    __slots__ = ()


class Response:
    """Scoped response; release it once done."""

    __slots__ = ("status_code", "body", "metadata", "content_type")

    def __init__(
        self,
        status_code: StatusCode = StatusCode.OK,
        body: Optional[Body] = None,
        *,
        metadata: Optional[ResponseMetadata] = None,
        content_type: Optional[str] = None,
    ) -> None:
        self.status_code = StatusCode(status_code)
        if body is None and self.status_code is StatusCode.OK:
            body = Body(b"")
        self.body = body
        self.metadata = metadata or ResponseMetadata()
        self.content_type = content_type

    @classmethod
    def ok(
        cls,
        value: Any = b"",
        *,
        content_type: Optional[str] = None,
        metadata: Optional[ResponseMetadata] = None,
        encoding: str = "utf-8",
    ) -> "Response":
        body = value if isinstance(value, Body) else Body(value, encoding=encoding)
        if content_type is None and not isinstance(value, Body):
            content_type = _guess_content_type(value)
        return cls(StatusCode.OK, body, metadata=metadata, content_type=content_type)

    @classmethod
    def not_found(cls, *, metadata: Optional[ResponseMetadata] = None) -> "Response":
        return cls(StatusCode.NOT_FOUND, metadata=metadata)

    def exists(self) -> bool:
        return self.status_code is StatusCode.OK

    def read(self) -> bytes:
        if self.body is None:
            raise ValueError(f"Response '{self.status_code.value}' has no body")
        return self.body.read()

    def read_text(self, encoding: str = "utf-8") -> str:
        return self.read().decode(encoding)

    def read_json(self) -> Any:
        return json.loads(self.read())

    def release(self) -> None:
        if self.body is not None:
            self.body.close()

    def __enter__(self) -> "Response":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.release()

    async def __aenter__(self) -> "Response":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        self.release()

    def __repr__(self) -> str:
        return f"<Response {self.status_code.value} content_type={self.content_type!r}>"


@dataclass
class ResourceContext:
    """Per-call state shared by pipeline stages."""

    request: Request
    response: Optional[Response] = None
    items: Dict[str, Any] = field(default_factory=dict)
