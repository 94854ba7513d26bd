"""Core runtime aggregator (source of truth).

Purpose: expose the runtime building blocks from a single module. No extra
logic beyond imports/exports.

Guarantees
----------
- Importing this module performs only imports; it does not register plugins or
  instantiate repositories.
- Public API mirrors underlying modules 1:1:
  * ``uri`` -> ``UriString``
  * ``messages`` -> request/response envelope
  * ``errors`` -> error taxonomy
  * ``controller`` -> ``Controller``, ``MethodTable``
  * ``filters`` -> filter chain
  * ``cache`` -> ``ResolutionCache``
  * ``dispatcher`` -> ``dispatch``
  * ``switch`` -> ``ControllerSwitch``
  * ``base_repository`` -> ``BaseRepository`` (plugin-free engine)
  * ``repository`` -> ``ResourceRepository`` (plugin-enabled)
"""

from .base_repository import BaseRepository
from .cache import ResolutionCache
from .controller import Controller, Handler, MethodTable
from .dispatcher import dispatch
from .errors import (
    AmbiguousControllers,
    AmbiguousMethod,
    ControllerNotFound,
    HandlerFailure,
    MethodNotFound,
    ResourceError,
)
from .filters import (
    DEFAULT_FILTERS,
    apply_filters,
    filter_by_controller_name,
    filter_by_request,
    filter_by_uri,
)
from .messages import (
    Body,
    ConfigRequest,
    ControllerName,
    FileRequest,
    Request,
    RequestMetadata,
    RequestMethod,
    ResourceContext,
    Response,
    ResponseMetadata,
    StatusCode,
)
from .repository import ResourceRepository
from .switch import ControllerSwitch
from .uri import UriString

__all__ = [
    "AmbiguousControllers",
    "AmbiguousMethod",
    "BaseRepository",
    "Body",
    "ConfigRequest",
    "Controller",
    "ControllerName",
    "ControllerNotFound",
    "ControllerSwitch",
    "DEFAULT_FILTERS",
    "FileRequest",
    "Handler",
    "HandlerFailure",
    "MethodNotFound",
    "MethodTable",
    "Request",
    "RequestMetadata",
    "RequestMethod",
    "ResolutionCache",
    "ResourceContext",
    "ResourceError",
    "ResourceRepository",
    "Response",
    "ResponseMetadata",
    "StatusCode",
    "UriString",
    "apply_filters",
    "dispatch",
    "filter_by_controller_name",
    "filter_by_request",
    "filter_by_uri",
]
