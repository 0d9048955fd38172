#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# src/markpipe/pipeline/processor.py
"""Processor: scanner, plugin chain and printer composed into one pipeline.

A ``Processor`` is an immutable value. ``use()`` returns a new processor
with one more registration; ``freeze()`` returns a copy whose plugins have
been attached (each plugin called exactly once). Every ``process`` call on
a frozen processor runs the same transformers in registration order, so a
frozen processor can be shared across threads and concurrent tasks as long
as its plugins keep no shared mutable state.

Examples
--------
Synchronous processing:

    >>> processor = create_processor().use("heading-offset", {"offset": 1}).freeze()
    >>> vfile = processor.process_sync("# Title\\n\\nBody *text*.")
    >>> str(vfile)
    '## Title\\n\\nBody *text*.\\n'

Asynchronous processing with cancellation:

    >>> cancel = asyncio.Event()
    >>> vfile = await processor.process("# Title", cancel=cancel)

"""

from __future__ import annotations

import inspect
import logging
from collections.abc import Iterable, Mapping
from typing import Any, Optional, Protocol, Union

from markpipe.ast.nodes import Root
from markpipe.constants import PROCESSOR_SOURCE, RULE_CANCELLED
from markpipe.exceptions import (
    ConfigurationError,
    MarkpipeError,
    ParsingError,
    PluginError,
    SynchronyError,
    VFileFailure,
)
from markpipe.logging_utils import log_diagnostics
from markpipe.options import PrinterOptions, ScannerOptions
from markpipe.parser.scanner import MarkdownScanner
from markpipe.pipeline.plugin import Plugin, PluginSpec, Registration, Transformer, TransformResult
from markpipe.pipeline.registry import plugin_registry
from markpipe.printer.base import BasePrinter
from markpipe.printer.markdown import MarkdownPrinter
from markpipe.vfile import VFile

logger = logging.getLogger(__name__)

PluginLike = Union[Plugin, PluginSpec, str]


class CancelToken(Protocol):
    """Anything with an ``is_set()`` method, such as ``asyncio.Event``."""

    def is_set(self) -> bool: ...


def _is_cancelled(cancel: Optional[CancelToken]) -> bool:
    return cancel is not None and cancel.is_set()


def _to_vfile(value: Union[str, bytes, VFile]) -> VFile:
    if isinstance(value, VFile):
        return value
    if isinstance(value, (str, bytes)):
        return VFile(value)
    raise TypeError(f"Expected text, bytes or a VFile, got {type(value).__name__}")


def _close_awaitable(awaitable: Any) -> None:
    close = getattr(awaitable, "close", None)
    if callable(close):
        close()
        return
    cancel = getattr(awaitable, "cancel", None)
    if callable(cancel):
        cancel()


class Processor:
    """Immutable pipeline of scanner, plugins and printer.

    Parameters
    ----------
    scanner : MarkdownScanner, optional
        Scanner used by ``parse``; a default scanner when omitted
    printer : BasePrinter, optional
        Printer used by ``stringify``; a default ``MarkdownPrinter`` when omitted
    registrations : iterable of Registration, optional
        Plugins in the order they run

    Notes
    -----
    Processors are created unfrozen. Calling ``process`` on an unfrozen
    processor freezes a private copy for that call, which attaches every
    plugin again; freeze once and reuse the frozen processor instead.

    """

    __slots__ = ("_scanner", "_printer", "_registrations", "_transformers")

    def __init__(
        self,
        scanner: Optional[MarkdownScanner] = None,
        printer: Optional[BasePrinter] = None,
        registrations: Iterable[Registration] = (),
        _transformers: Optional[tuple[tuple[str, Transformer], ...]] = None,
    ):
        """Initialize the processor."""
        self._scanner = scanner if scanner is not None else MarkdownScanner()
        self._printer = printer if printer is not None else MarkdownPrinter()
        self._registrations: tuple[Registration, ...] = tuple(registrations)
        self._transformers = _transformers

    def __repr__(self) -> str:
        names = ", ".join(registration.name for registration in self._registrations)
        state = "frozen" if self.is_frozen else "unfrozen"
        return f"Processor([{names}], {state})"

    @property
    def scanner(self) -> MarkdownScanner:
        """Scanner used by ``parse``."""
        return self._scanner

    @property
    def printer(self) -> BasePrinter:
        """Printer used by ``stringify``."""
        return self._printer

    @property
    def registrations(self) -> tuple[Registration, ...]:
        """Registered plugins, in run order."""
        return self._registrations

    @property
    def is_frozen(self) -> bool:
        """True once plugins have been attached."""
        return self._transformers is not None

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    def use(self, plugin: PluginLike, options: Optional[Mapping[str, Any]] = None) -> Processor:
        """Return a new processor with ``plugin`` appended to the chain.

        Parameters
        ----------
        plugin : callable, PluginSpec or str
            The plugin, a published spec, or the registry name of one
        options : Mapping, optional
            Keyword options passed to the plugin when the processor is frozen

        Returns
        -------
        Processor
            A new, unfrozen processor; this one is unchanged

        Raises
        ------
        ConfigurationError
            If this processor is frozen, the name is unknown, the plugin is
            not callable, or the options are not a mapping the plugin accepts

        """
        if self.is_frozen:
            raise ConfigurationError(
                "Cannot add plugins to a frozen processor; call use() before freeze()",
                parameter_name="plugin",
                parameter_value=plugin,
            )
        if isinstance(plugin, str):
            try:
                plugin = plugin_registry.get(plugin)
            except KeyError as e:
                available = ", ".join(plugin_registry.list_plugins()) or "none"
                raise ConfigurationError(
                    f"Unknown plugin '{plugin}'. Available plugins: {available}",
                    parameter_name="plugin",
                    parameter_value=plugin,
                    original_error=e,
                ) from e
        if not callable(plugin):
            raise ConfigurationError(
                f"Plugins must be callable, got {type(plugin).__name__}",
                parameter_name="plugin",
                parameter_value=plugin,
            )
        if options is not None and not isinstance(options, Mapping):
            raise ConfigurationError(
                f"Plugin options must be a mapping, got {type(options).__name__}",
                parameter_name="options",
                parameter_value=options,
            )
        if isinstance(plugin, PluginSpec):
            plugin.validate_options(options)

        registration = Registration(plugin, options)
        logger.debug("Registered plugin '%s'", registration.name)
        return Processor(self._scanner, self._printer, self._registrations + (registration,))

    def freeze(self) -> Processor:
        """Return a frozen copy with every plugin attached.

        Each plugin is called once with its options; the transformers it
        returns are reused by every later ``process`` call. Freezing a
        frozen processor returns it unchanged.

        Raises
        ------
        ConfigurationError
            If a plugin raises while being attached

        """
        if self.is_frozen:
            return self

        transformers: list[tuple[str, Transformer]] = []
        for registration in self._registrations:
            try:
                transformer = registration.attach()
            except ConfigurationError:
                raise
            except Exception as e:
                raise ConfigurationError(
                    f"Plugin '{registration.name}' failed to initialize: {e}",
                    parameter_name="plugin",
                    parameter_value=registration.name,
                    original_error=e,
                ) from e
            if transformer is None:
                continue
            if not callable(transformer):
                raise ConfigurationError(
                    f"Plugin '{registration.name}' returned {type(transformer).__name__}; "
                    "expected a transformer or None",
                    parameter_name="plugin",
                    parameter_value=registration.name,
                )
            transformers.append((registration.name, transformer))

        logger.debug("Froze processor with %d transformer(s)", len(transformers))
        return Processor(self._scanner, self._printer, self._registrations, tuple(transformers))

    def _frozen(self) -> Processor:
        return self if self.is_frozen else self.freeze()

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    def parse(self, value: Union[str, bytes, VFile]) -> Root:
        """Scan ``value`` into a tree; a VFile receives the tree and any warnings.

        Raises
        ------
        VFileFailure
            If the input cannot be decoded
        ParsingError
            If the scanner fails; ``.vfile`` holds the partial file

        """
        vfile = _to_vfile(value)
        try:
            self._scanner.parse(vfile)
        except VFileFailure:
            raise
        except MarkpipeError as e:
            e.vfile = vfile
            raise
        if vfile.tree is None:
            error = ParsingError("Scanner returned without a tree")
            error.vfile = vfile
            raise error
        return vfile.tree

    def stringify(self, tree: Root) -> str:
        """Print ``tree`` with this processor's printer."""
        return self._printer.print(tree)

    def _call(self, name: str, transformer: Transformer, tree: Root, vfile: VFile) -> Any:
        try:
            return transformer(tree, vfile)
        except VFileFailure:
            raise
        except Exception as e:
            raise self._plugin_error(name, vfile, e) from e

    @staticmethod
    def _plugin_error(name: str, vfile: VFile, error: Exception) -> PluginError:
        logger.error("Plugin '%s' failed on %s", name, vfile.path or "<input>", exc_info=True)
        return PluginError(f"Plugin '{name}' failed: {error}", plugin_name=name, vfile=vfile, original_error=error)

    def _apply(self, name: str, value: Any, tree: Root, vfile: VFile) -> Root:
        tree = TransformResult.from_value(value, plugin_name=name, vfile=vfile).apply(tree)
        vfile.tree = tree
        return tree

    def run_sync(self, tree: Root, vfile: Optional[VFile] = None) -> Root:
        """Run every transformer on ``tree`` synchronously.

        Parameters
        ----------
        tree : Root
            Tree to transform; may be mutated in place
        vfile : VFile, optional
            File receiving diagnostics; a fresh one when omitted

        Returns
        -------
        Root
            The final tree, also stored on ``vfile.tree``

        Raises
        ------
        SynchronyError
            If a transformer returns an awaitable
        PluginError
            If a transformer raises or returns something other than a tree

        """
        processor = self._frozen()
        vfile = vfile if vfile is not None else VFile()
        vfile.tree = tree
        for name, transformer in processor._transformers or ():
            logger.debug("Running plugin '%s'", name)
            value = self._call(name, transformer, tree, vfile)
            if inspect.isawaitable(value):
                _close_awaitable(value)
                raise SynchronyError(name, vfile=vfile)
            tree = self._apply(name, value, tree, vfile)
        return tree

    async def _run(self, tree: Root, vfile: VFile, cancel: Optional[CancelToken]) -> tuple[Root, Optional[str]]:
        """Return the final tree and the stage cancellation stopped at, if any."""
        processor = self._frozen()
        vfile.tree = tree
        for name, transformer in processor._transformers or ():
            if _is_cancelled(cancel):
                return tree, f"plugin '{name}'"
            logger.debug("Running plugin '%s'", name)
            value = self._call(name, transformer, tree, vfile)
            if inspect.isawaitable(value):
                try:
                    value = await value
                except VFileFailure:
                    raise
                except Exception as e:
                    raise self._plugin_error(name, vfile, e) from e
            tree = self._apply(name, value, tree, vfile)
        return tree, ("print" if _is_cancelled(cancel) else None)

    async def run(self, tree: Root, vfile: Optional[VFile] = None, cancel: Optional[CancelToken] = None) -> Root:
        """Run every transformer on ``tree``, awaiting asynchronous ones.

        Transformers run strictly one after another. When ``cancel`` is set
        the remaining transformers are skipped, a ``cancelled`` diagnostic
        is recorded and the tree reached so far is returned.

        """
        vfile = vfile if vfile is not None else VFile()
        tree, stopped_at = await self._run(tree, vfile, cancel)
        if stopped_at is not None:
            self._record_cancellation(vfile, stopped_at)
        return tree

    @staticmethod
    def _record_cancellation(vfile: VFile, stage: str) -> None:
        logger.info("Processing of %s cancelled before %s", vfile.path or "<input>", stage)
        vfile.info(f"Processing cancelled before {stage}", rule_id=RULE_CANCELLED, source=PROCESSOR_SOURCE)

    # ------------------------------------------------------------------
    # Whole pipeline
    # ------------------------------------------------------------------

    def _finish(self, tree: Root, vfile: VFile) -> VFile:
        try:
            text = self.stringify(tree)
        except MarkpipeError as e:
            e.vfile = vfile
            raise
        vfile.result = text
        vfile.text = text
        logger.info("Processed %s (%d message(s))", vfile.path or "<input>", len(vfile.messages))
        log_diagnostics(vfile)
        return vfile

    def process_sync(self, value: Union[str, bytes, VFile]) -> VFile:
        """Parse, transform and print ``value`` synchronously.

        Returns
        -------
        VFile
            The file, with ``tree`` set and ``text`` replaced by the output

        Raises
        ------
        SynchronyError
            If a transformer returns an awaitable; the printer does not run
        PluginError
            If a transformer fails
        VFileFailure
            If any stage calls ``vfile.fail()``

        """
        processor = self._frozen()
        vfile = _to_vfile(value)
        logger.info("Processing %s", vfile.path or "<input>")
        tree = processor.parse(vfile)
        tree = processor.run_sync(tree, vfile)
        return processor._finish(tree, vfile)

    async def process(self, value: Union[str, bytes, VFile], cancel: Optional[CancelToken] = None) -> VFile:
        """Parse, transform and print ``value``, awaiting asynchronous plugins.

        Parameters
        ----------
        value : str, bytes or VFile
            Input document
        cancel : object with ``is_set()``, optional
            Checked between stages; once set, the printer is skipped and
            the partially processed file is returned with an INFO
            diagnostic whose rule id is ``cancelled``

        Returns
        -------
        VFile
            The processed (or partially processed) file

        """
        processor = self._frozen()
        vfile = _to_vfile(value)
        logger.info("Processing %s", vfile.path or "<input>")
        if _is_cancelled(cancel):
            processor._record_cancellation(vfile, "parse")
            log_diagnostics(vfile)
            return vfile

        tree = processor.parse(vfile)
        tree, stopped_at = await processor._run(tree, vfile, cancel)
        if stopped_at is not None:
            processor._record_cancellation(vfile, stopped_at)
            log_diagnostics(vfile)
            return vfile
        return processor._finish(tree, vfile)


def create_processor(
    scanner_options: Optional[ScannerOptions] = None,
    printer_options: Optional[PrinterOptions] = None,
    plugins: Iterable[Union[PluginLike, tuple[PluginLike, Optional[Mapping[str, Any]]]]] = (),
) -> Processor:
    """Create an unfrozen processor with the default scanner and printer.

    Parameters
    ----------
    scanner_options : ScannerOptions, optional
        Scanner settings
    printer_options : PrinterOptions, optional
        Printer settings
    plugins : iterable, optional
        Plugins to register, each either a plugin or a ``(plugin, options)`` pair

    Examples
    --------
        >>> processor = create_processor(plugins=["front-matter", ("heading-offset", {"offset": 2})])

    """
    processor = Processor(MarkdownScanner(scanner_options), MarkdownPrinter(printer_options))
    for entry in plugins:
        if isinstance(entry, tuple):
            plugin, options = entry
            processor = processor.use(plugin, options)
        else:
            processor = processor.use(entry)
    return processor
