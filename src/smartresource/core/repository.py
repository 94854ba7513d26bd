"""Repository with plugin pipeline (source of truth).

If this module disappeared, rebuild it exactly as described.
``ResourceRepository`` extends ``BaseRepository`` with a global plugin
registry, per-repository plugin instances, stage wrapping around the
controller switch, and plugin state stored on the repository instance.

Internal state
--------------
- ``_plugin_specs``: list of ``_PluginSpec`` (factory, kwargs copy).
- ``_plugins``: instantiated plugins in the order they were plugged.
- ``_plugins_by_name``: name -> plugin instance.
- ``_plugin_info``: per-plugin state store on the repository.

Global registry
---------------
``ResourceRepository.register_plugin(plugin_class, name=None)`` validates that
``plugin_class`` is a ``BasePlugin`` subclass with a ``plugin_code``.
Re-registering an existing code with a different class raises ``ValueError``
unless ``name`` is given explicitly; otherwise it is idempotent.
``available_plugins`` returns a shallow copy of the registry.

Attaching plugins
-----------------
``plug(plugin_name, **config)`` looks up the plugin class by name in the global
registry (raises ``ValueError`` with available names if missing), instantiates
it, appends it to ``_plugins``, rebuilds the pipeline and returns ``self``.
``__getattr__`` exposes attached plugins by name or raises ``AttributeError``.

Runtime flags and data
----------------------
Stored under ``_plugin_info[plugin_code]`` using a reserved ``"--base--"``
bucket for repository-level defaults and one bucket per request method
(``get``, ``post``, ``put``, ``delete``), each with ``config`` and ``locals``.
``set_plugin_enabled`` / ``is_plugin_enabled`` and ``set_runtime_data`` /
``get_runtime_data`` read/write these buckets.

Wrapping pipeline
-----------------
``_wrap_invoke(call_next)`` builds stages from ``_plugins`` in reverse order
(last plugged closest to the switch, first plugged outermost). Each plugin's
``wrap_invoke(self, wrapped)`` result is guarded so that it is skipped when
``is_plugin_enabled(request.method, plugin.name)`` is False.

Configuration
-------------
``configure(target, **options)`` accepts:

- a list of targets (each a str or dict; shared kwargs not allowed);
- a dict with a ``target`` key plus options;
- ``"?"`` returning ``describe()``;
- ``"plugin"`` or ``"plugin/selector"``. The selector is a comma-separated
  list of ``fnmatch`` patterns over method names; ``_all_`` (default) writes
  the ``--base--`` bucket. No match raises ``KeyError``.

Returns ``{"target": target, "updated": [...]}``.

Invariants
----------
- Plugin order is deterministic and never changed after plugging.
- Global registry changes do not mutate existing repositories.
- Plugin access via attribute never fails silently.
"""

from __future__ import annotations

from dataclasses import dataclass
from fnmatch import fnmatchcase
from functools import wraps
from typing import Any, Dict, List, Optional, Type

from smartresource.core.base_repository import BaseRepository, Stage
from smartresource.core.messages import RequestMethod, ResourceContext
from smartresource.plugins._base_plugin import BasePlugin

__all__ = ["ResourceRepository"]

_PLUGIN_REGISTRY: Dict[str, Type[BasePlugin]] = {}

_METHOD_NAMES = tuple(method.value for method in RequestMethod)


@dataclass
class _PluginSpec:
    factory: Type[BasePlugin]
    kwargs: Dict[str, Any]

    def instantiate(self, repository: "ResourceRepository") -> BasePlugin:
        return self.factory(repository=repository, **self.kwargs)


class ResourceRepository(BaseRepository):
    """Repository with plugin registry/pipeline support."""

    __slots__ = BaseRepository.__slots__ + (
        "_plugin_specs",
        "_plugins",
        "_plugins_by_name",
        "_plugin_info",
    )

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        self._plugin_specs: List[_PluginSpec] = []
        self._plugins: List[BasePlugin] = []
        self._plugins_by_name: Dict[str, BasePlugin] = {}
        self._plugin_info: Dict[str, Dict[str, Any]] = {}
        super().__init__(*args, **kwargs)

    # ------------------------------------------------------------------
    # Plugin registration
    # ------------------------------------------------------------------
    @classmethod
    def register_plugin(cls, plugin_class: Type[BasePlugin], name: Optional[str] = None) -> None:
        """Register a plugin class globally.

        Args:
            plugin_class: A BasePlugin subclass with plugin_code defined
            name: Optional override name. If provided, overwrites any existing
                  registration. If not provided, uses plugin_code and raises
                  if already registered with another class.
        """
        if not isinstance(plugin_class, type) or not issubclass(plugin_class, BasePlugin):
            raise TypeError("plugin_class must be a BasePlugin subclass")
        if not getattr(plugin_class, "plugin_code", None):
            raise ValueError(
                f"Plugin {plugin_class.__name__} not following standards: missing plugin_code"
            )
        code = name or plugin_class.plugin_code
        if name is None:
            existing = _PLUGIN_REGISTRY.get(code)
            if existing is not None and existing is not plugin_class:
                raise ValueError(f"Plugin '{code}' already registered")
        _PLUGIN_REGISTRY[code] = plugin_class

    @classmethod
    def available_plugins(cls) -> Dict[str, Type[BasePlugin]]:
        return dict(_PLUGIN_REGISTRY)

    def plug(self, plugin: str, **config: Any) -> "ResourceRepository":
        """Attach a plugin by name (previously registered globally)."""
        if not isinstance(plugin, str):
            raise TypeError(
                f"Plugin must be referenced by name string, got {type(plugin).__name__}"
            )
        plugin_class = _PLUGIN_REGISTRY.get(plugin)
        if plugin_class is None:
            available = ", ".join(sorted(_PLUGIN_REGISTRY)) or "none"
            raise ValueError(
                f"Unknown plugin '{plugin}'. Register it first. Available plugins: {available}"
            )
        if plugin_class.plugin_code in self._plugins_by_name:
            raise ValueError(f"Plugin '{plugin}' already attached to repository '{self.name}'")
        spec = _PluginSpec(plugin_class, dict(config))
        instance = spec.instantiate(self)
        self._plugin_specs.append(spec)
        self._plugins.append(instance)
        self._plugins_by_name[instance.name] = instance
        self._rebuild_pipeline()
        return self

    def iter_plugins(self) -> List[BasePlugin]:  # type: ignore[override]
        """Return attached plugin instances in application order."""
        return list(self._plugins)

    def get_config(self, plugin_name: str, method_name: Optional[str] = None) -> Dict[str, Any]:
        """Return plugin config (global + per-method overrides) for an attached plugin."""
        return self._require_plugin(plugin_name).configuration(method_name)

    def __getattr__(self, name: str) -> Any:
        if name.startswith("_"):
            raise AttributeError(name)
        plugin = self._plugins_by_name.get(name)
        if plugin is None:
            raise AttributeError(f"No plugin named '{name}' attached to repository '{self.name}'")
        return plugin

    def _require_plugin(self, plugin_name: str) -> BasePlugin:
        plugin = self._plugins_by_name.get(plugin_name)
        if plugin is None:
            raise AttributeError(
                f"No plugin named '{plugin_name}' attached to repository '{self.name}'"
            )
        return plugin

    def _get_plugin_bucket(self, plugin_name: str) -> Dict[str, Any]:
        bucket = self._plugin_info.get(plugin_name)
        if bucket is None:
            raise AttributeError(
                f"No plugin named '{plugin_name}' attached to repository '{self.name}'"
            )
        bucket.setdefault("--base--", {"config": {}, "locals": {}})
        return bucket

    # ------------------------------------------------------------------
    # Runtime helpers (state stored on plugin_info)
    # ------------------------------------------------------------------
    def set_plugin_enabled(self, method_name: str, plugin_name: str, enabled: bool = True) -> None:
        bucket = self._get_plugin_bucket(plugin_name)
        entry = bucket.setdefault(method_name, {"config": {}, "locals": {}})
        entry.setdefault("locals", {})["enabled"] = bool(enabled)

    def is_plugin_enabled(self, method_name: str, plugin_name: str) -> bool:
        bucket = self._get_plugin_bucket(plugin_name)
        entry_locals = bucket.get(method_name, {}).get("locals", {})
        if "enabled" in entry_locals:
            return bool(entry_locals["enabled"])
        base_locals = bucket["--base--"].get("locals", {})
        return bool(base_locals.get("enabled", True))

    def set_runtime_data(self, method_name: str, plugin_name: str, key: str, value: Any) -> None:
        bucket = self._get_plugin_bucket(plugin_name)
        entry = bucket.setdefault(method_name, {"config": {}, "locals": {}})
        entry.setdefault("locals", {})[key] = value

    def get_runtime_data(
        self, method_name: str, plugin_name: str, key: str, default: Any = None
    ) -> Any:
        bucket = self._get_plugin_bucket(plugin_name)
        entry_locals = bucket.get(method_name, {}).get("locals", {})
        return entry_locals.get(key, default)

    # ------------------------------------------------------------------
    # Overrides/hooks
    # ------------------------------------------------------------------
    def _wrap_invoke(self, call_next: Stage) -> Stage:  # type: ignore[override]
        wrapped = call_next
        for plugin in reversed(self._plugins):
            plugin_call = plugin.wrap_invoke(self, wrapped)
            wrapped = self._create_wrapper(plugin, plugin_call, wrapped)
        return wrapped

    def _create_wrapper(self, plugin: BasePlugin, plugin_call: Stage, next_stage: Stage) -> Stage:
        @wraps(next_stage)
        async def wrapper(context: ResourceContext) -> None:
            if not self.is_plugin_enabled(context.request.method.value, plugin.name):
                return await next_stage(context)
            return await plugin_call(context)

        return wrapper

    def _describe_extra(  # type: ignore[override]
        self, base_description: Dict[str, Any]
    ) -> Dict[str, Any]:
        """List attached plugins with description and per-method overrides."""
        if not self._plugins:
            return {}
        return {
            "plugins": [
                {
                    "name": plugin.name,
                    "description": plugin.plugin_description,
                    "config": plugin.configuration(),
                    "overrides": {
                        method: plugin.configuration(method)
                        for method in _METHOD_NAMES
                        if method in self._plugin_info.get(plugin.name, {})
                    },
                }
                for plugin in self._plugins
            ]
        }

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------
    def configure(self, target: Any, **options: Any) -> Any:
        if isinstance(target, (list, tuple)):
            if options:
                raise ValueError("Do not mix shared kwargs with list targets")
            return [self.configure(entry) for entry in target]
        if isinstance(target, dict):
            entry = dict(target)
            try:
                entry_target = entry.pop("target")
            except KeyError:
                raise ValueError("Dict targets must include 'target'")
            return self.configure(entry_target, **entry)
        if not isinstance(target, str):
            raise TypeError("Target must be a string, dict, or list")
        target = target.strip()
        if target == "?":
            if options:
                raise ValueError("Options are not allowed with '?' ")
            return self.describe()
        plugin_name, selector = self._parse_target(target)
        plugin = self._require_plugin(plugin_name)
        if not options:
            raise ValueError("No configuration options provided")
        if selector.lower() == "_all_":
            plugin.configure(_target="--base--", **options)
            return {"target": target, "updated": ["_all_"]}
        matches = self._match_methods(selector)
        if not matches:
            raise KeyError(f"No request methods matching '{selector}' on repository '{self.name}'")
        for method_name in matches:
            plugin.configure(_target=method_name, **options)
        return {"target": target, "updated": sorted(matches)}

    @staticmethod
    def _parse_target(target: str) -> tuple[str, str]:
        if "/" in target:
            plugin_part, selector = target.split("/", 1)
        else:
            plugin_part, selector = target, "_all_"
        plugin_part = plugin_part.strip()
        selector = selector.strip() or "_all_"
        if not plugin_part:
            raise ValueError("Plugin name cannot be empty")
        return plugin_part, selector

    @staticmethod
    def _match_methods(selector: str) -> set[str]:
        patterns = [token.strip().lower() for token in selector.split(",") if token.strip()]
        matched: set[str] = set()
        for pattern in patterns:
            for method_name in _METHOD_NAMES:
                if fnmatchcase(method_name, pattern):
                    matched.add(method_name)
        return matched
