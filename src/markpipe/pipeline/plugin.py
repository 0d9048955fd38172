#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# src/markpipe/pipeline/plugin.py
"""Plugin contract for the processing pipeline.

A plugin is a callable invoked once when a processor is frozen, with the
options it was registered with expanded as keyword arguments. It returns a
transformer, or None when it has nothing to do per document.

A transformer is called as ``transformer(tree, vfile)`` for every document.
It may mutate ``tree`` in place and return None, return a replacement Root,
or return an awaitable resolving to either of those. Anything else is a
plugin bug and is reported as ``PluginError``.

Examples
--------
A plugin that drops thematic breaks:

    >>> def no_rules():
    ...     def transform(tree, vfile):
    ...         tree.children = [c for c in tree.children if c.kind != "thematic_break"]
    ...     return transform

Published with metadata so it can be used by name:

    >>> NO_RULES = PluginSpec(name="no-rules", factory=no_rules, description="Drop thematic breaks")
    >>> plugin_registry.register(NO_RULES)

"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Mapping, Optional, Union

from markpipe.ast.nodes import Root
from markpipe.exceptions import ConfigurationError, PluginError

if TYPE_CHECKING:
    from markpipe.vfile import VFile

logger = logging.getLogger(__name__)

TransformerReturn = Union[Root, None, Awaitable[Optional[Root]]]
Transformer = Callable[[Root, "VFile"], TransformerReturn]
Plugin = Callable[..., Optional[Transformer]]


# ============================================================================
# Transform results
# ============================================================================


class TransformResult:
    """Outcome of one transformer call: ``Keep`` or ``Replace``."""

    @staticmethod
    def from_value(
        value: Any, plugin_name: Optional[str] = None, vfile: Optional[VFile] = None
    ) -> Union[Keep, Replace]:
        """Classify a transformer's (awaited) return value.

        Parameters
        ----------
        value : Any
            What the transformer returned
        plugin_name : str, optional
            Plugin name used in the error message
        vfile : VFile, optional
            File attached to the error

        Returns
        -------
        Keep or Replace
            ``Keep()`` for None, ``Replace(value)`` for a Root

        Raises
        ------
        PluginError
            If ``value`` is neither None nor a Root

        """
        if value is None:
            return Keep()
        if isinstance(value, Root):
            return Replace(value)
        raise PluginError(
            f"Transformer of plugin '{plugin_name}' returned {type(value).__name__}; expected a root node or None",
            plugin_name=plugin_name,
            vfile=vfile,
        )

    def apply(self, tree: Root) -> Root:
        """Return the tree that continues down the pipeline."""
        raise NotImplementedError


@dataclass(frozen=True)
class Keep(TransformResult):
    """The transformer kept the current tree (possibly mutated in place)."""

    def apply(self, tree: Root) -> Root:
        """Return ``tree`` unchanged."""
        return tree


@dataclass(frozen=True)
class Replace(TransformResult):
    """The transformer produced a new tree."""

    tree: Root

    def apply(self, tree: Root) -> Root:
        """Return the replacement tree."""
        return self.tree


# ============================================================================
# Plugin metadata
# ============================================================================


@dataclass(frozen=True)
class ParameterSpec:
    """Specification of one plugin option.

    Parameters
    ----------
    type : type or tuple of type
        Accepted Python type(s)
    default : Any, optional
        Value used when the option is not given
    help : str, optional
        Description of the option
    choices : tuple, optional
        Allowed values

    """

    type: Union[type, tuple[type, ...]]
    default: Any = None
    help: str = ""
    choices: Optional[tuple[Any, ...]] = None

    def validate(self, name: str, value: Any) -> None:
        """Raise ``ConfigurationError`` if ``value`` is not acceptable."""
        if not isinstance(value, self.type):
            expected = (
                self.type.__name__
                if isinstance(self.type, type)
                else " or ".join(t.__name__ for t in self.type)
            )
            raise ConfigurationError(
                f"Option '{name}' expects {expected}, got {type(value).__name__}",
                parameter_name=name,
                parameter_value=value,
            )
        if self.choices is not None and value not in self.choices:
            raise ConfigurationError(
                f"Option '{name}' must be one of {list(self.choices)}, got {value!r}",
                parameter_name=name,
                parameter_value=value,
            )


@dataclass(frozen=True)
class PluginSpec:
    """Published plugin: a factory plus metadata.

    A ``PluginSpec`` is itself a plugin: calling it merges the declared
    defaults with the given options and calls the factory.

    Parameters
    ----------
    name : str
        Registry name
    factory : callable
        The plugin function
    version : str, default "1.0.0"
        Plugin version
    description : str, optional
        One-line description
    parameters : dict of str to ParameterSpec, optional
        Declared options; unknown options are rejected when declared

    """

    name: str
    factory: Plugin
    version: str = "1.0.0"
    description: str = ""
    parameters: Mapping[str, ParameterSpec] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("Plugin name cannot be empty")
        if not callable(self.factory):
            raise ValueError(f"Plugin factory for '{self.name}' must be callable")
        object.__setattr__(self, "parameters", MappingProxyType(dict(self.parameters)))

    @property
    def defaults(self) -> dict[str, Any]:
        """Default option values."""
        return {name: spec.default for name, spec in self.parameters.items()}

    @property
    def plugin_name(self) -> str:
        """Name used in diagnostics and errors."""
        return self.name

    def validate_options(self, options: Optional[Mapping[str, Any]]) -> None:
        """Check ``options`` against the declared parameters.

        Raises
        ------
        ConfigurationError
            On an unknown option name or an invalid value

        """
        for key, value in (options or {}).items():
            spec = self.parameters.get(key)
            if spec is None:
                known = ", ".join(sorted(self.parameters)) or "none"
                raise ConfigurationError(
                    f"Plugin '{self.name}' has no option '{key}' (known options: {known})",
                    parameter_name=key,
                    parameter_value=value,
                )
            spec.validate(key, value)

    def __call__(self, **options: Any) -> Optional[Transformer]:
        """Call the factory with defaults merged under ``options``."""
        merged = self.defaults
        merged.update(options)
        return self.factory(**merged)


def plugin_name(plugin: Any) -> str:
    """Return a readable name for ``plugin``."""
    name = getattr(plugin, "plugin_name", None) or getattr(plugin, "__name__", None)
    return str(name) if name else type(plugin).__name__


@dataclass(frozen=True)
class Registration:
    """A plugin and the options it was registered with.

    Parameters
    ----------
    plugin : callable
        The plugin (a function or a ``PluginSpec``)
    options : Mapping, optional
        Keyword options passed to the plugin on freeze; copied into a
        read-only mapping

    """

    plugin: Plugin
    options: Optional[Mapping[str, Any]] = None

    def __post_init__(self) -> None:
        if self.options is not None:
            object.__setattr__(self, "options", MappingProxyType(dict(self.options)))

    @property
    def name(self) -> str:
        """Name of the registered plugin."""
        return plugin_name(self.plugin)

    def attach(self) -> Optional[Transformer]:
        """Call the plugin once and return its transformer."""
        logger.debug("Attaching plugin '%s'", self.name)
        return self.plugin(**dict(self.options or {}))
