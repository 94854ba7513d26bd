"""Controller filter chain.

Three ordered, pure stages narrow the registered controllers down to the
candidates for one request. Each stage receives the previous stage's output
and returns a tuple that preserves registration order. An empty result is not
an error here; resolution decides what it means.

1. ``filter_by_controller_name``: explicit name, compared case-insensitively.
2. ``filter_by_request``: the controller's declared request type must accept
   the runtime request.
3. ``filter_by_uri``: relative uris need ``supports_relative_uri``; absolute
   uris need a matching scheme; request tags must overlap controller tags.
"""

from __future__ import annotations

from typing import Callable, Iterable, Sequence, Tuple

from smartseeds.typeutils import safe_is_instance

from smartresource.core.controller import Controller
from smartresource.core.messages import Request

__all__ = [
    "ControllerFilter",
    "DEFAULT_FILTERS",
    "apply_filters",
    "filter_by_controller_name",
    "filter_by_request",
    "filter_by_uri",
]

ControllerFilter = Callable[[Sequence[Controller], Request], Sequence[Controller]]


def filter_by_controller_name(
    controllers: Sequence[Controller], request: Request
) -> Tuple[Controller, ...]:
    controller_name = request.controller_name
    if controller_name is None or not controller_name.name:
        return tuple(controllers)
    return tuple(c for c in controllers if controller_name.matches_name(c.name))


def filter_by_request(controllers: Sequence[Controller], request: Request) -> Tuple[Controller, ...]:
    return tuple(c for c in controllers if _accepts(c, request))


def _accepts(controller: Controller, request: Request) -> bool:
    request_type = controller.request_type
    if isinstance(request_type, str):
        return safe_is_instance(request, request_type)
    return isinstance(request, request_type)


def filter_by_uri(controllers: Sequence[Controller], request: Request) -> Tuple[Controller, ...]:
    uri = request.uri
    if uri.is_relative:
        selected = [c for c in controllers if c.supports_relative_uri]
    else:
        selected = [c for c in controllers if c.handles_scheme(uri.scheme)]
    controller_name = request.controller_name
    if controller_name is not None and controller_name.tags:
        selected = [c for c in selected if controller_name.overlaps(c.tags)]
    return tuple(selected)


DEFAULT_FILTERS: Tuple[ControllerFilter, ...] = (
    filter_by_controller_name,
    filter_by_request,
    filter_by_uri,
)


def apply_filters(
    controllers: Iterable[Controller],
    request: Request,
    filters: Iterable[ControllerFilter] = DEFAULT_FILTERS,
) -> Tuple[Controller, ...]:
    """Run ``filters`` in order and return the remaining candidates."""
    candidates: Tuple[Controller, ...] = tuple(controllers)
    for controller_filter in filters:
        candidates = tuple(controller_filter(candidates, request))
    return candidates
