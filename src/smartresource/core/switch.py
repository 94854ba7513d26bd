"""Controller switch: resolution, caching and dispatch (source of truth).

``ControllerSwitch`` is the terminal pipeline stage. Rebuild it exactly from
the algorithm below.

Constructor::

    ControllerSwitch(controllers, *, cache=None, filters=None)

``controllers`` is frozen into a tuple (registration order). ``cache``
defaults to a fresh ``ResolutionCache``; ``filters`` defaults to
``DEFAULT_FILTERS``.

Algorithm (``invoke(request)``)
-------------------------------
1. ``key = request.resource_key``.
2. Cache hit: dispatch to the cached controller. Filters are not run and the
   cached controller is not re-validated.
3. Cache miss: run the filter chain to get the candidates.

   - GET: try candidates in registration order, one at a time. Candidates
     without a GET handler are skipped. The first response whose
     ``exists()`` is true is returned and its controller cached; responses
     that do not exist are released. When nothing exists the result is
     ``Response.not_found()`` and nothing is cached.
   - POST/PUT/DELETE: exactly one candidate is required. Zero raises
     ``ControllerNotFound``, more than one ``AmbiguousControllers``; no
     handler runs in either case. The single candidate is cached *before*
     it is invoked, so the request commits to it even if the handler fails.

Logging
-------
Logger ``"smartresource"``. GET candidate outcomes and cache hits are logged
at DEBUG with controller type, name and status.
"""

from __future__ import annotations

import logging
from typing import Iterable, Optional, Tuple

from smartresource.core.cache import ResolutionCache
from smartresource.core.controller import Controller
from smartresource.core.dispatcher import dispatch
from smartresource.core.errors import AmbiguousControllers, ControllerNotFound
from smartresource.core.filters import DEFAULT_FILTERS, ControllerFilter, apply_filters
from smartresource.core.messages import Request, RequestMethod, ResourceContext, Response

__all__ = ["ControllerSwitch"]

logger = logging.getLogger("smartresource")


class ControllerSwitch:
    """Resolve one controller per request and invoke it."""

    __slots__ = ("controllers", "cache", "filters")

    def __init__(
        self,
        controllers: Iterable[Controller],
        *,
        cache: Optional[ResolutionCache] = None,
        filters: Optional[Iterable[ControllerFilter]] = None,
    ) -> None:
        self.controllers: Tuple[Controller, ...] = tuple(controllers)
        self.cache = cache if cache is not None else ResolutionCache()
        self.filters: Tuple[ControllerFilter, ...] = tuple(
            DEFAULT_FILTERS if filters is None else filters
        )

    async def __call__(self, context: ResourceContext) -> None:
        context.response = await self.invoke(context.request)

    def candidates(self, request: Request) -> Tuple[Controller, ...]:
        return apply_filters(self.controllers, request, self.filters)

    async def invoke(self, request: Request) -> Response:
        key = request.resource_key
        cached = self.cache.get(key)
        if cached is not None:
            logger.debug("cache hit %s -> %s", key, _label(cached))
            return await dispatch(cached, request)

        candidates = self.candidates(request)
        if request.method is RequestMethod.GET:
            return await self._get_first(key, candidates, request)

        if not candidates:
            raise ControllerNotFound(key)
        if len(candidates) > 1:
            raise AmbiguousControllers(key, candidates)
        controller = self.cache.set(key, candidates[0])
        logger.debug(
            "%s %s resolved to %s", request.method.value.upper(), key, _label(controller)
        )
        return await dispatch(controller, request)

    async def _get_first(
        self, key: str, candidates: Tuple[Controller, ...], request: Request
    ) -> Response:
        for controller in candidates:
            if not controller.supports(RequestMethod.GET):
                logger.debug("skip %s: no GET handler", _label(controller))
                continue
            response = await dispatch(controller, request)
            if response.exists():
                self.cache.set(key, controller)
                logger.debug("GET %s -> %s: %s", key, _label(controller), response.status_code.value)
                return response
            response.release()
            logger.debug("GET %s -> %s: %s", key, _label(controller), response.status_code.value)
        return Response.not_found()


def _label(controller: Controller) -> str:
    return f"{type(controller).__name__}({controller.name!r})"
