"""Controller capability contract (source of truth).

A controller is a backend that serves one family of resources. Rebuild this
module exactly from the contract below.

``MethodTable``
---------------
Closed ``RequestMethod -> handler`` table built once, at controller
construction, from an explicit sequence of ``(method, handler)`` pairs. No
attribute scanning or signature inspection is involved.

- Methods are coerced with ``RequestMethod.coerce``.
- A method listed twice raises ``AmbiguousMethod`` immediately: duplicate
  handlers are a registration defect and never auto-resolved.
- Non-callable handlers raise ``TypeError``.
- ``find(method)`` returns the handler or ``None``; ``methods()`` lists the
  supported methods in declaration order.

``Controller``
--------------
Constructor::

    Controller(name="", *, tags=None, schemes=("*",), supports_relative_uri=False)

- ``schemes`` must contain at least one entry (``ValueError`` otherwise);
  they are lower-cased. ``"*"`` accepts any scheme.
- ``tags`` is normalized like ``ControllerName.tags``. The controller's own
  name and its lower-cased class name are always part of the tag set, so a
  request tagged ``{"b"}`` reaches a controller named ``"b"``.
- ``request_type`` (class attribute) is the request class this controller
  accepts: a class, or a dotted class path checked with ``safe_is_instance``.
- Subclasses declare their handlers by overriding ``method_table()`` and
  returning the explicit table literal; the base constructor turns it into
  ``self.methods``.
- ``close()`` releases whatever native resource the controller wraps
  (default no-op).
"""

from __future__ import annotations

from types import MappingProxyType
from typing import Any, Awaitable, Callable, Dict, Iterable, Optional, Tuple, Type, Union

from smartresource.core.errors import AmbiguousMethod
from smartresource.core.messages import Request, RequestMethod, Response, normalize_tags

__all__ = ["Controller", "MethodTable", "Handler"]

Handler = Callable[[Request], Awaitable[Response]]


class MethodTable:
    """Immutable mapping of request methods to handlers."""

    __slots__ = ("_handlers",)

    def __init__(self, owner: Any, pairs: Iterable[Tuple[Union[RequestMethod, str], Handler]]):
        handlers: Dict[RequestMethod, Handler] = {}
        for method, handler in pairs:
            method = RequestMethod.coerce(method)
            if method in handlers:
                raise AmbiguousMethod(owner, method)
            if not callable(handler):
                raise TypeError(f"Handler for {method.value.upper()} must be callable, got {handler!r}")
            handlers[method] = handler
        self._handlers = MappingProxyType(handlers)

    def find(self, method: Union[RequestMethod, str]) -> Optional[Handler]:
        return self._handlers.get(RequestMethod.coerce(method))

    def methods(self) -> Tuple[RequestMethod, ...]:
        return tuple(self._handlers)

    def __contains__(self, method: object) -> bool:
        return method in self._handlers

    def __len__(self) -> int:
        return len(self._handlers)


class Controller:
    """Base class for resource controllers."""

    request_type: Union[Type[Request], str] = Request

    def __init__(
        self,
        name: str = "",
        *,
        tags: Optional[Union[str, Iterable[str]]] = None,
        schemes: Iterable[str] = ("*",),
        supports_relative_uri: bool = False,
    ) -> None:
        self.name = (name or "").strip()
        normalized = frozenset(
            str(scheme).strip().lower() for scheme in schemes if str(scheme).strip()
        )
        if not normalized:
            raise ValueError(f"{type(self).__name__} must specify at least one scheme.")
        self.schemes = normalized
        own = {type(self).__name__.casefold()}
        if self.name:
            own.add(self.name.casefold())
        self.tags = normalize_tags(tags) | own
        self.supports_relative_uri = bool(supports_relative_uri)
        self.methods = MethodTable(self, self.method_table())

    def method_table(self) -> Iterable[Tuple[Union[RequestMethod, str], Handler]]:
        """Return the explicit ``(method, handler)`` pairs served by this controller."""
        return ()

    def handler_for(self, method: Union[RequestMethod, str]) -> Optional[Handler]:
        return self.methods.find(method)

    def supports(self, method: Union[RequestMethod, str]) -> bool:
        return self.methods.find(method) is not None

    def handles_scheme(self, scheme: str) -> bool:
        return "*" in self.schemes or scheme.lower() in self.schemes

    def close(self) -> None:  # pragma: no cover - default no-op
        """Release native resources held by the controller."""

    def __repr__(self) -> str:
        methods = ",".join(method.value for method in self.methods.methods())
        return f"<{type(self).__name__} name={self.name!r} methods={methods}>"
