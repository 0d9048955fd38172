#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# src/markpipe/pipeline/registry.py
"""Plugin registry for name-based plugin lookup and discovery.

Built-in plugins are registered on first access; third-party plugins are
discovered through the ``markpipe.plugins`` entry point group, where each
entry point must resolve to a ``PluginSpec``.

Examples
--------
Register and look up a plugin:

    >>> from markpipe.pipeline import plugin_registry
    >>> plugin_registry.register(MY_PLUGIN_SPEC)
    >>> spec = plugin_registry.get("my-plugin")

List what is available:

    >>> for name in plugin_registry.list_plugins():
    ...     print(name, plugin_registry.get(name).description)

Notes
-----
Prefer the global ``plugin_registry`` instance over instantiating
``PluginRegistry``; both refer to the same singleton.

"""

from __future__ import annotations

import importlib.metadata
import logging
from typing import Optional

from markpipe.constants import PLUGIN_ENTRY_POINT_GROUP
from markpipe.pipeline.plugin import PluginSpec

logger = logging.getLogger(__name__)


class PluginRegistry:
    """Singleton registry of published plugins."""

    _instance: Optional[PluginRegistry] = None
    _plugins: dict[str, PluginSpec]
    _initialized: bool

    def __new__(cls) -> PluginRegistry:
        """Create or return the singleton instance."""
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._plugins = {}
            cls._instance._initialized = False
        return cls._instance

    def _ensure_initialized(self) -> None:
        if not self._initialized:
            self._initialized = True
            from markpipe.plugins import BUILTIN_PLUGINS

            for spec in BUILTIN_PLUGINS:
                self._plugins.setdefault(spec.name, spec)
            self.discover_plugins()

    def register(self, spec: PluginSpec) -> None:
        """Register ``spec``, replacing any plugin with the same name."""
        if not isinstance(spec, PluginSpec):
            raise TypeError(f"Expected a PluginSpec, got {type(spec).__name__}")
        if spec.name in self._plugins:
            logger.warning("Plugin '%s' already registered, overwriting", spec.name)
        self._plugins[spec.name] = spec
        logger.debug("Registered plugin: %s", spec.name)

    def unregister(self, name: str) -> bool:
        """Remove a plugin; return False if it was not registered."""
        if name in self._plugins:
            del self._plugins[name]
            logger.debug("Unregistered plugin: %s", name)
            return True
        return False

    def clear(self) -> None:
        """Remove every registered plugin."""
        self._plugins.clear()

    def get(self, name: str) -> PluginSpec:
        """Return the spec registered under ``name``.

        Raises
        ------
        KeyError
            If no plugin has that name

        """
        self._ensure_initialized()
        if name not in self._plugins:
            raise KeyError(f"Plugin '{name}' not registered")
        return self._plugins[name]

    def has_plugin(self, name: str) -> bool:
        """Return True if a plugin is registered under ``name``."""
        self._ensure_initialized()
        return name in self._plugins

    def list_plugins(self) -> list[str]:
        """Return registered plugin names, sorted."""
        self._ensure_initialized()
        return sorted(self._plugins)

    def discover_plugins(self) -> int:
        """Register plugins published through entry points.

        Returns
        -------
        int
            Number of plugins registered

        """
        discovered = 0
        try:
            entry_points = importlib.metadata.entry_points().select(group=PLUGIN_ENTRY_POINT_GROUP)
        except Exception as e:
            logger.warning("Failed to discover plugins: %s", e)
            return 0

        for entry_point in entry_points:
            try:
                spec = entry_point.load()
            except Exception as e:
                logger.warning("Failed to load plugin entry point '%s': %s", entry_point.name, e)
                continue
            if not isinstance(spec, PluginSpec):
                logger.warning("Entry point '%s' did not return a PluginSpec, skipping", entry_point.name)
                continue
            if self._plugins.get(spec.name) is spec:
                continue
            self.register(spec)
            discovered += 1

        logger.info("Discovered %d plugin(s) from entry points", discovered)
        return discovered


plugin_registry = PluginRegistry()
