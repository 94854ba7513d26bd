"""Closed error taxonomy for resource routing.

Every error derives from :class:`ResourceError` and carries a stable ``code``
plus the structured fields callers need to tell the failures apart (resource
key, candidate count, controller, method, cause). Resolution errors denote a
static misconfiguration and are never retried by the core.

A Get that finds nothing is *not* an error: it yields a NotFound response.
"""

from __future__ import annotations

from typing import Any, Dict, Optional, Sequence

__all__ = [
    "ResourceError",
    "ControllerNotFound",
    "AmbiguousControllers",
    "MethodNotFound",
    "AmbiguousMethod",
    "HandlerFailure",
]


def _describe_controller(controller: Any) -> str:
    kind = type(controller).__name__
    name = getattr(controller, "name", "")
    return f"{kind}({name!r})" if name else kind


def _method_label(method: Any) -> str:
    return str(getattr(method, "value", method)).upper()


class ResourceError(Exception):
    """Base class for all routing errors."""

    code = "RESOURCE_ERROR"

    def __init__(self, message: str, *, resource_key: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        self.resource_key = resource_key

    def details(self) -> Dict[str, Any]:
        """Return the structured fields of this error."""
        return {"code": self.code, "resource_key": self.resource_key}


class ControllerNotFound(ResourceError, LookupError):
    """A mutating request matched no controller."""

    code = "CONTROLLER_NOT_FOUND"

    def __init__(self, resource_key: str) -> None:
        super().__init__(
            f"Could not find controller for resource '{resource_key}'.",
            resource_key=resource_key,
        )
        self.candidate_count = 0

    def details(self) -> Dict[str, Any]:
        return {**super().details(), "candidate_count": self.candidate_count}


class AmbiguousControllers(ResourceError, ValueError):
    """A mutating request matched more than one controller."""

    code = "AMBIGUOUS_CONTROLLERS"

    def __init__(self, resource_key: str, candidates: Sequence[Any]) -> None:
        names = [_describe_controller(candidate) for candidate in candidates]
        super().__init__(
            f"Resource '{resource_key}' matches {len(names)} controllers: {', '.join(names)}.",
            resource_key=resource_key,
        )
        self.candidates = tuple(names)
        self.candidate_count = len(names)

    def details(self) -> Dict[str, Any]:
        return {
            **super().details(),
            "candidate_count": self.candidate_count,
            "candidates": list(self.candidates),
        }


class MethodNotFound(ResourceError, NotImplementedError):
    """The resolved controller exposes no handler for the request method."""

    code = "METHOD_NOT_FOUND"

    def __init__(self, controller: Any, method: Any, *, resource_key: Optional[str] = None) -> None:
        self.controller = _describe_controller(controller)
        self.method = method
        super().__init__(
            f"Could not find method '{_method_label(method)}' on controller '{self.controller}'.",
            resource_key=resource_key,
        )

    def details(self) -> Dict[str, Any]:
        return {**super().details(), "controller": self.controller, "method": _method_label(self.method)}


class AmbiguousMethod(ResourceError, ValueError):
    """A controller declares more than one handler for the same method."""

    code = "AMBIGUOUS_METHOD"

    def __init__(self, controller: Any, method: Any) -> None:
        self.controller = _describe_controller(controller)
        self.method = method
        super().__init__(
            f"There is more than one method '{_method_label(method)}' "
            f"on controller '{self.controller}'."
        )

    def details(self) -> Dict[str, Any]:
        return {**super().details(), "controller": self.controller, "method": _method_label(self.method)}


class HandlerFailure(ResourceError):
    """A controller handler raised; the original error is kept as ``cause``."""

    code = "HANDLER_FAILED"

    def __init__(self, controller: Any, request: Any, cause: BaseException) -> None:
        self.controller = _describe_controller(controller)
        self.method = request.method
        self.uri = str(request.uri)
        self.cause = cause
        super().__init__(
            f"An error occurred in {self.controller} while trying to "
            f"{_method_label(self.method)} '{self.uri}': {cause!r}",
            resource_key=request.resource_key,
        )

    def details(self) -> Dict[str, Any]:
        return {
            **super().details(),
            "controller": self.controller,
            "method": _method_label(self.method),
            "uri": self.uri,
            "cause": repr(self.cause),
        }
