"""Capability-based handler dispatch.

``dispatch(controller, request)`` looks up the handler registered for the
request method and awaits it.

- Missing handler: ``MethodNotFound`` carrying the resource key.
- Errors raised by the handler become ``HandlerFailure`` with the original
  error chained as ``__cause__``. Taxonomy errors (e.g. from a nested
  repository call) and cancellation propagate unchanged.
- A handler must produce a ``Response``; anything else is reported as a
  ``HandlerFailure`` wrapping a ``TypeError``.
- Sync handlers returning a ``Response`` directly are accepted.
"""

from __future__ import annotations

import inspect

from smartresource.core.controller import Controller
from smartresource.core.errors import HandlerFailure, MethodNotFound, ResourceError
from smartresource.core.messages import Request, Response

__all__ = ["dispatch"]


async def dispatch(controller: Controller, request: Request) -> Response:
    handler = controller.handler_for(request.method)
    if handler is None:
        raise MethodNotFound(controller, request.method, resource_key=request.resource_key)
    try:
        result = handler(request)
        if inspect.isawaitable(result):
            result = await result
    except ResourceError:
        raise
    except Exception as exc:
        raise HandlerFailure(controller, request, exc) from exc
    if not isinstance(result, Response):
        error = TypeError(f"Handler returned {type(result).__name__}, expected Response")
        raise HandlerFailure(controller, request, error) from error
    if result.metadata.controller is None:
        result.metadata = result.metadata.model_copy(
            update={"controller": controller.name or type(controller).__name__}
        )
    return result
