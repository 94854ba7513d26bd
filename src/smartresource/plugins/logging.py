"""Logging plugin (source of truth).

Rebuild behaviour exactly as described; no hidden defaults beyond this text.

Responsibilities
----------------
- Wrap each repository call and emit configurable messages:
  * ``before`` (default True): ``"<METHOD> <uri> start"``
  * ``after`` (default True): ``"<METHOD> <uri> end (<ms> ms) <status>"`` with
    elapsed time in milliseconds (``{elapsed:.2f}``) and the response status
    value (``ok`` / ``not_found``).
- Sinks:
  * when ``print`` is true: always ``print(message)``;
  * else when ``log`` is true: ``logger.info(message)`` if the logger reports
    handlers via ``hasHandlers()``, otherwise ``print(message)`` to avoid drops;
  * else: no output.
- ``enabled`` gates the plugin entirely (default True).
- Use a provided ``logging.Logger`` (default ``logging.getLogger("smartresource")``).

Configuration
-------------
- Accepted keys (repository-level or per request method): ``enabled``,
  ``before``, ``after``, ``log``, ``print``. They can be provided as individual
  kwargs or in ``flags`` (e.g. ``"enabled:off,before:on,after:on"``).
- Runtime: ``repository.logging.configure(...)`` or
  ``repository.configure("logging/put", before=False)``.

Behaviour
---------
- Exceptions propagate; the end message is skipped when an exception is
  raised.

Registration
------------
At module import, the plugin registers itself globally as ``"logging"`` via
``ResourceRepository.register_plugin(LoggingPlugin)``.
"""

from __future__ import annotations

import logging
import time
from typing import Callable, Optional

from smartresource.core.messages import ResourceContext
from smartresource.core.repository import ResourceRepository
from smartresource.plugins._base_plugin import BasePlugin


class LoggingPlugin(BasePlugin):
    """Logs repository calls with timing and status."""

    plugin_code = "logging"
    plugin_description = "Logs resource requests with timing"

    __slots__ = ("_logger",)

    def __init__(self, repository, *, logger: Optional[logging.Logger] = None, **cfg):
        self._logger = logger or logging.getLogger("smartresource")
        super().__init__(repository, **cfg)

    def configure(
        self,
        enabled: bool = True,
        before: bool = True,
        after: bool = True,
        log: bool = True,
        print: bool = False,  # noqa: A002 - shadowing builtin intentionally
    ):
        """Configure logging plugin options.

        The wrapper added by __init_subclass__ handles writing to store.
        """
        pass

    def _emit(self, message: str, *, cfg: Optional[dict] = None):
        if cfg is None:
            return
        if cfg.get("print"):
            print(message)
            return
        if cfg.get("log"):
            logger = self._logger
            has_handlers = getattr(logger, "hasHandlers", None) or getattr(
                logger, "has_handlers", None
            )
            can_log = callable(has_handlers) and has_handlers()
            if can_log:
                logger.info(message)
            else:
                print(message)

    def wrap_invoke(self, repository, call_next: Callable):
        """Wrap the next stage with start/end logging and timing."""

        async def logged(context: ResourceContext) -> None:
            request = context.request
            method = request.method.value
            cfg = self._effective_config(method)
            if not cfg["enabled"]:
                return await call_next(context)
            label = f"{method.upper()} {request.uri}"
            if cfg["before"]:
                self._emit(f"{label} start", cfg=cfg)
            t0 = time.perf_counter()
            await call_next(context)
            elapsed = (time.perf_counter() - t0) * 1000
            if cfg["after"]:
                response = context.response
                status = response.status_code.value if response is not None else "none"
                self._emit(f"{label} end ({elapsed:.2f} ms) {status}", cfg=cfg)

        return logged

    def _effective_config(self, method_name: str) -> dict:
        defaults = {"enabled": True, "before": True, "after": True, "log": True, "print": False}
        cfg = defaults | self.configuration(method_name)
        flags = cfg.pop("flags", None)
        if isinstance(flags, str):
            cfg.update(self._parse_flags(flags))

        def to_bool(key: str) -> bool:
            val = cfg.get(key)
            return defaults[key] if val is None else bool(val)

        return {key: to_bool(key) for key in defaults}


ResourceRepository.register_plugin(LoggingPlugin)
