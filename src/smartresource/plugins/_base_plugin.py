"""Plugin contract definitions used by the repository pipeline.

Source of truth
---------------
If this module were wiped except for this docstring, the implementation must be
reconstructed exactly as described below.

``BasePlugin``
    Base class that every pipeline stage *must* subclass. Responsibilities:

    - offer config helpers that delegate to the owning repository's
      ``_plugin_info`` store (no hidden per-plugin globals)
    - provide the ``wrap_invoke(repository, call_next)`` hook used by the
      repository to build the stage chain

    Required class attributes:

    - ``plugin_code``: unique identifier used for registration (e.g. "logging")
    - ``plugin_description``: human-readable description of the plugin

    Constructor signature:

    ``BasePlugin(repository, **config)``

    - ``repository`` is required: the ResourceRepository owning this plugin
    - ``**config`` is passed to ``configure()`` which is validated by Pydantic

    Required methods:

    ``configure(**config)``
        Define accepted configuration parameters via method signature.
        The method is automatically wrapped by ``__init_subclass__`` to:

        - extract and parse ``flags`` (e.g. "enabled,before:off") into booleans
        - extract ``_target`` to determine where to write config:
          ``"--base--"`` (default) for repository-level config, a request
          method name (``"get"``) for per-method config, or ``"get,put"`` for
          several methods (calls recursively)
        - apply Pydantic's ``validate_call`` for parameter validation
        - write validated config to the store

    ``configuration(method_name=None)``
        returns merged configuration dict from the repository's store
        (repository-level + optional per-method override). This is the read
        counterpart to ``configure()``.

    ``wrap_invoke`` (default identity function)
        receives the repository and the next stage and returns an
        ``async (context) -> None`` callable. A stage may short-circuit by
        setting ``context.response`` without awaiting ``call_next``, mutate
        ``context.request`` before, or post-process ``context.response``
        after.

Design constraints
~~~~~~~~~~~~~~~~~~
* The repository only imports this module (not the concrete plugins) to avoid
  circular dependencies.
* Configuration storage stays internal to BasePlugin so all plugins behave
  consistently and can be configured through ``repository.configure``.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, Optional

from pydantic import validate_call

__all__ = ["BasePlugin"]


def _wrap_configure(original_configure: Callable) -> Callable:
    """Wrap a plugin's configure() method to handle flags, _target, validation, and storage."""
    validated = validate_call(original_configure)

    def wrapper(
        self: "BasePlugin", *, _target: str = "--base--", flags: Optional[str] = None, **kwargs: Any
    ) -> None:
        if flags:
            kwargs.update(self._parse_flags(flags))

        if "," in _target:
            targets = [t.strip() for t in _target.split(",") if t.strip()]
            for t in targets:
                wrapper(self, _target=t, **kwargs)
            return

        validated(self, **kwargs)
        self._write_config(_target, kwargs)

    return wrapper


class BasePlugin:
    """Hook interface + configuration helpers for repository plugins."""

    __slots__ = ("name", "_repository")

    plugin_code: str = ""
    plugin_description: str = ""

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        if "configure" in cls.__dict__:
            cls.configure = _wrap_configure(cls.__dict__["configure"])

    def __init__(self, repository: Any, **config: Any):
        self.name = self.plugin_code
        self._repository = repository
        self._init_store()
        self.configure(**config)

    @property
    def repository(self) -> Any:
        return self._repository

    def _init_store(self) -> None:
        store = self._get_store()
        store.setdefault(self.name, {}).setdefault(
            "--base--", {"config": {"enabled": True}, "locals": {}}
        )

    def configure(self, *, _target: str = "--base--", flags: Optional[str] = None) -> None:
        """Override in subclasses to define accepted configuration parameters.

        Base implementation accepts no additional parameters beyond _target and flags.
        """
        if flags:
            self._write_config(_target, self._parse_flags(flags))

    def _write_config(self, target: str, config: Dict[str, Any]) -> None:
        if not config:
            return
        store = self._get_store()
        plugin_bucket = store.setdefault(self.name, {})
        bucket = plugin_bucket.setdefault(target, {"config": {}, "locals": {}})
        bucket["config"].update(config)

    def configuration(self, method_name: Optional[str] = None) -> Dict[str, Any]:
        """Read merged configuration (base + optional per-method override)."""
        plugin_bucket = self._get_store().get(self.name)
        if not plugin_bucket:
            return {}
        merged = dict(plugin_bucket.get("--base--", {}).get("config", {}))
        if method_name:
            merged.update(plugin_bucket.get(method_name, {}).get("config", {}))
        return merged

    def _parse_flags(self, flags: str) -> Dict[str, bool]:
        mapping: Dict[str, bool] = {}
        for chunk in flags.split(","):
            chunk = chunk.strip()
            if not chunk:
                continue
            if ":" in chunk:
                name, value = chunk.split(":", 1)
                mapping[name.strip()] = value.strip().lower() != "off"
            else:
                mapping[chunk] = True
        return mapping

    def wrap_invoke(self, repository: Any, call_next: Callable) -> Callable:
        """Wrap the next stage; default passthrough."""
        return call_next

    def _get_store(self) -> Dict[str, Any]:
        return getattr(self._repository, "_plugin_info")
