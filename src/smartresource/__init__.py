"""SmartResource public API surface (source of truth).

Recreate the module with these rules:
- Public exports: the core envelope and engine (``ResourceRepository``,
  ``Controller``, ``Request``, ``Response``, ``UriString``, error taxonomy) and
  the reference controllers with their helpers.
- Plugin registration: import built-in plugins (``logging``, ``pydantic``,
  ``cache``) for their side effect of calling
  ``ResourceRepository.register_plugin(<class>)``. Imports are done lazily via
  ``import_module`` to avoid cycles.

Constraints
-----------
- Import must stay lightweight: no repository instantiation or heavy work
  beyond plugin registration.
- Version string lives here as ``__version__`` and must remain available for
  packaging tools.
"""

from importlib import import_module

__version__ = "0.1.0"

from .controllers import (
    ConfigController,
    EnvironmentVariableController,
    InMemoryController,
    PhysicalFileController,
    SettingsController,
    delete_file,
    get_file,
    read_setting,
    read_text_file,
    write_setting,
    write_text_file,
)
from .core import (
    AmbiguousControllers,
    AmbiguousMethod,
    BaseRepository,
    ConfigRequest,
    Controller,
    ControllerName,
    ControllerNotFound,
    FileRequest,
    HandlerFailure,
    MethodNotFound,
    Request,
    RequestMetadata,
    RequestMethod,
    ResourceContext,
    ResourceError,
    ResourceRepository,
    Response,
    ResponseMetadata,
    StatusCode,
    UriString,
)

# Import plugins to trigger auto-registration (lazy to avoid cycles)
for _plugin in ("logging", "pydantic", "cache"):
    import_module(f"{__name__}.plugins.{_plugin}")
del _plugin

__all__ = [
    "AmbiguousControllers",
    "AmbiguousMethod",
    "BaseRepository",
    "ConfigController",
    "ConfigRequest",
    "Controller",
    "ControllerName",
    "ControllerNotFound",
    "EnvironmentVariableController",
    "FileRequest",
    "HandlerFailure",
    "InMemoryController",
    "MethodNotFound",
    "PhysicalFileController",
    "Request",
    "RequestMetadata",
    "RequestMethod",
    "ResourceContext",
    "ResourceError",
    "ResourceRepository",
    "Response",
    "ResponseMetadata",
    "SettingsController",
    "StatusCode",
    "UriString",
    "delete_file",
    "get_file",
    "read_setting",
    "read_text_file",
    "write_setting",
    "write_text_file",
]
