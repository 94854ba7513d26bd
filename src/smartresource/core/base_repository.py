"""Plugin-free resource repository (source of truth).

If this file vanished, rebuild it verbatim from this description. The module
exposes a single class, :class:`BaseRepository`, which owns an ordered list of
controllers, resolves every request through a :class:`ControllerSwitch`, and
exposes introspection without any plugin logic. Subclasses add pipeline stages
but must preserve these semantics.

Constructor and slots
---------------------
Constructor signature::

    BaseRepository(controllers=(), name=None, *, cache=None, filters=None,
                   invoke_use_smartasync=None)

- ``controllers``: iterable of :class:`Controller` instances. Anything else
  raises ``TypeError``. The list is frozen into a tuple; registration order is
  resolution order and never changes afterwards.
- ``cache`` / ``filters``: forwarded to the switch (fresh ``ResolutionCache``
  and ``DEFAULT_FILTERS`` when omitted).
- ``invoke_use_smartasync`` becomes a default merged via ``SmartOptions`` in
  ``handler()``.
- Slots: ``name``, ``_controllers``, ``_switch``, ``_pipeline`` (outermost
  callable of the stage chain), ``_invoke_defaults``.

Pipeline
--------
- ``_rebuild_pipeline`` recreates ``_pipeline`` by passing the switch through
  ``_wrap_invoke`` (default: passthrough). Subclasses may inject stages.
- Every stage is ``async (context: ResourceContext) -> None`` and reports its
  result by setting ``context.response``.

Execution
---------
- ``invoke(request)`` builds a :class:`ResourceContext`, runs the pipeline and
  returns ``context.response``. A chain that completes without producing a
  response is a stage defect and raises ``RuntimeError``.
- ``get/post/put/delete(uri, ...)`` build a request of ``request_type``
  (default :class:`Request`) and invoke it.
- ``handler(**options)`` returns ``invoke``; when the ``use_smartasync``
  option (or constructor default) is truthy the callable is wrapped via
  ``smartasync.smartasync`` so sync callers can use it.

Lifetime
--------
``close()`` closes every controller in registration order; ``aclose()`` and
``async with repository`` do the same from async code.

Introspection
-------------
``describe()`` returns ``{"name", "controllers", "cache", "plugin_info"}``
plus whatever ``_describe_extra`` contributes. Controller entries carry name,
type, tags, schemes, methods, request type and relative-uri support.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, Iterable, Optional, Tuple, Type, Union

from smartseeds import SmartOptions

from smartresource.core.cache import ResolutionCache
from smartresource.core.controller import Controller
from smartresource.core.filters import ControllerFilter
from smartresource.core.messages import Request, ResourceContext, Response
from smartresource.core.switch import ControllerSwitch
from smartresource.core.uri import UriString

__all__ = ["BaseRepository", "Stage"]

Stage = Callable[[ResourceContext], Any]


class BaseRepository:
    """Plugin-free repository dispatching requests to controllers."""

    __slots__ = (
        "name",
        "_controllers",
        "_switch",
        "_pipeline",
        "_invoke_defaults",
    )

    def __init__(
        self,
        controllers: Iterable[Controller] = (),
        name: Optional[str] = None,
        *,
        cache: Optional[ResolutionCache] = None,
        filters: Optional[Iterable[ControllerFilter]] = None,
        invoke_use_smartasync: Optional[bool] = None,
    ) -> None:
        registered = tuple(controllers)
        for controller in registered:
            if not isinstance(controller, Controller):
                raise TypeError(
                    f"Repository accepts Controller instances, got {type(controller).__name__}"
                )
        self.name = name
        self._controllers: Tuple[Controller, ...] = registered
        self._switch = ControllerSwitch(registered, cache=cache, filters=filters)
        defaults: Dict[str, Any] = {}
        if invoke_use_smartasync is not None:
            defaults["use_smartasync"] = invoke_use_smartasync
        self._invoke_defaults = defaults
        self._rebuild_pipeline()

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------
    @property
    def controllers(self) -> Tuple[Controller, ...]:
        return self._controllers

    @property
    def cache(self) -> ResolutionCache:
        return self._switch.cache

    @property
    def switch(self) -> ControllerSwitch:
        return self._switch

    # ------------------------------------------------------------------
    # Pipeline
    # ------------------------------------------------------------------
    def _wrap_invoke(self, call_next: Stage) -> Stage:  # pragma: no cover - overridden by plugin repositories
        return call_next

    def _rebuild_pipeline(self) -> None:
        self._pipeline = self._wrap_invoke(self._switch)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    async def invoke(self, request: Request) -> Response:
        """Run ``request`` through the pipeline and return its response."""
        context = ResourceContext(request)
        await self._pipeline(context)
        if context.response is None:
            raise RuntimeError(
                f"Pipeline produced no response for {request.method.value.upper()} '{request.uri}'"
            )
        return context.response

    async def get(
        self, uri: Union[UriString, str], *, request_type: Type[Request] = Request, **kwargs: Any
    ) -> Response:
        return await self.invoke(request_type.get(uri, **kwargs))

    async def post(
        self,
        uri: Union[UriString, str],
        body: Any = None,
        *,
        request_type: Type[Request] = Request,
        **kwargs: Any,
    ) -> Response:
        return await self.invoke(request_type.post(uri, body, **kwargs))

    async def put(
        self,
        uri: Union[UriString, str],
        body: Any = None,
        *,
        request_type: Type[Request] = Request,
        **kwargs: Any,
    ) -> Response:
        return await self.invoke(request_type.put(uri, body, **kwargs))

    async def delete(
        self, uri: Union[UriString, str], *, request_type: Type[Request] = Request, **kwargs: Any
    ) -> Response:
        return await self.invoke(request_type.delete(uri, **kwargs))

    def handler(self, **options: Any) -> Callable:
        """Return the invoke callable, optionally bridged with smartasync."""
        opts = SmartOptions(options, defaults=self._invoke_defaults)
        use_smartasync = getattr(opts, "use_smartasync", False)
        handler: Callable = self.invoke
        if use_smartasync:
            from smartasync import smartasync  # type: ignore

            handler = smartasync(handler)
        return handler

    # ------------------------------------------------------------------
    # Lifetime
    # ------------------------------------------------------------------
    def close(self) -> None:
        for controller in self._controllers:
            controller.close()

    async def aclose(self) -> None:
        self.close()

    async def __aenter__(self) -> "BaseRepository":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------
    def describe(self) -> Dict[str, Any]:
        """Return controllers, cached keys and plugin state as plain data."""
        result: Dict[str, Any] = {
            "name": self.name,
            "controllers": [self._describe_controller(c) for c in self._controllers],
            "cache": list(self._switch.cache.keys()),
            "plugin_info": self._get_plugin_info(),
        }
        extra = self._describe_extra(result)
        if extra:
            result.update(extra)
        return result

    @staticmethod
    def _describe_controller(controller: Controller) -> Dict[str, Any]:
        request_type = controller.request_type
        return {
            "name": controller.name,
            "type": type(controller).__name__,
            "tags": sorted(controller.tags),
            "schemes": sorted(controller.schemes),
            "methods": [method.value for method in controller.methods.methods()],
            "request_type": request_type
            if isinstance(request_type, str)
            else request_type.__name__,
            "supports_relative_uri": controller.supports_relative_uri,
        }

    def _get_plugin_info(self) -> Dict[str, Any]:
        """Build plugin_info dict from the ``_plugin_info`` store, when present."""
        info_source = getattr(self, "_plugin_info", {}) or {}
        return {
            pname: {
                key: {
                    "config": dict(slot.get("config", {})),
                    "locals": dict(slot.get("locals", {})),
                }
                for key, slot in pdata.items()
            }
            for pname, pdata in info_source.items()
        }

    def iter_plugins(self) -> list:  # pragma: no cover - base repository has no plugins
        return []

    def _describe_extra(
        self, base_description: Dict[str, Any]
    ) -> Dict[str, Any]:  # pragma: no cover - overridden when plugins present
        """Hook used by subclasses to inject extra description data."""
        return {}
