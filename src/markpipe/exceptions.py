#  Copyright (c) 2025 Tom Villani, Ph.D.
"""Custom exceptions for the markpipe library.

This module defines the exception classes raised while configuring and
running a processing pipeline. Every exception that aborts a pipeline run
keeps a reference to the partially processed ``VFile`` so callers can
inspect what happened before the failure.

Exception Hierarchy
-------------------
- MarkpipeError (base exception)

  - ConfigurationError (invalid processor configuration)
    - SynchronyError (awaitable transformer on the synchronous path)

  - ParsingError (scanner failures outside the diagnostics protocol)

  - PrintingError (tree the printer cannot stringify)

  - PluginError (uncaught exception inside a transformer)

  - VFileFailure (a stage called ``VFile.fail()``)

  - SerializationError (invalid serialized tree)

"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from markpipe.vfile import Diagnostic, VFile


class MarkpipeError(Exception):
    """Base exception class for all markpipe-specific errors.

    Parameters
    ----------
    message : str
        Human-readable description of the error
    original_error : Exception, optional
        The original exception that caused this error, if applicable

    Attributes
    ----------
    message : str
        The error message
    original_error : Exception or None
        The wrapped original exception, if any
    vfile : VFile or None
        The file being processed when the error was raised, when known

    """

    vfile: VFile | None = None

    def __init__(self, message: str, original_error: Exception | None = None):
        """Initialize the error with a message and optional original exception."""
        super().__init__(message)
        self.message = message
        self.original_error = original_error


class ConfigurationError(MarkpipeError):
    """Exception raised for invalid processor configuration.

    Raised synchronously at the call site, for example when ``use()`` is
    called on a frozen processor or a plugin name cannot be resolved.

    Parameters
    ----------
    message : str
        Description of the configuration problem
    parameter_name : str, optional
        Name of the offending parameter
    parameter_value : any, optional
        The offending value
    original_error : Exception, optional
        The original exception that caused this error

    """

    def __init__(
        self,
        message: str,
        parameter_name: str | None = None,
        parameter_value: Any = None,
        original_error: Exception | None = None,
    ):
        """Initialize the configuration error with parameter details."""
        super().__init__(message, original_error=original_error)
        self.parameter_name = parameter_name
        self.parameter_value = parameter_value


class SynchronyError(ConfigurationError):
    """Exception raised when a transformer returns an awaitable during ``process_sync``.

    The printer never runs once this is raised. The partially processed
    file is available as ``vfile``.

    Parameters
    ----------
    plugin_name : str
        Name of the plugin whose transformer returned an awaitable
    vfile : VFile, optional
        The file being processed when the error occurred

    """

    def __init__(self, plugin_name: str, vfile: VFile | None = None):
        """Initialize the synchrony error."""
        super().__init__(
            f"Plugin '{plugin_name}' returned an awaitable; use process() instead of process_sync()",
            parameter_name="plugin",
            parameter_value=plugin_name,
        )
        self.plugin_name = plugin_name
        self.vfile = vfile


class ParsingError(MarkpipeError):
    """Exception raised when the scanner cannot produce a tree.

    Recoverable anomalies never raise; they are reported as diagnostics.

    Parameters
    ----------
    message : str
        Description of the parsing failure
    parsing_stage : str, optional
        Stage of parsing where the error occurred (e.g. "block", "inline")
    original_error : Exception, optional
        The underlying exception

    """

    def __init__(self, message: str, parsing_stage: str | None = None, original_error: Exception | None = None):
        """Initialize the parsing error."""
        super().__init__(message, original_error)
        self.parsing_stage = parsing_stage


class PrintingError(MarkpipeError):
    """Exception raised when the printer meets a node it cannot stringify.

    Parameters
    ----------
    message : str
        Description of the failure
    node_kind : str, optional
        Kind of the node that could not be printed
    original_error : Exception, optional
        The underlying exception

    """

    def __init__(self, message: str, node_kind: str | None = None, original_error: Exception | None = None):
        """Initialize the printing error."""
        super().__init__(message, original_error)
        self.node_kind = node_kind


class PluginError(MarkpipeError):
    """Exception raised when a transformer fails with an uncaught exception.

    Parameters
    ----------
    message : str
        Description of the failure
    plugin_name : str, optional
        Name of the plugin that failed
    vfile : VFile, optional
        The partially processed file, including diagnostics recorded so far
    original_error : Exception, optional
        The exception raised by the transformer

    Attributes
    ----------
    plugin_name : str or None
        Name of the plugin that failed
    vfile : VFile or None
        Partial processing state

    """

    def __init__(
        self,
        message: str,
        plugin_name: str | None = None,
        vfile: VFile | None = None,
        original_error: Exception | None = None,
    ):
        """Initialize the plugin error."""
        super().__init__(message, original_error)
        self.plugin_name = plugin_name
        self.vfile = vfile


class VFileFailure(MarkpipeError):
    """Exception raised by ``VFile.fail()``.

    This is an expected termination signal rather than a crash: the fatal
    diagnostic has already been recorded on the file.

    Parameters
    ----------
    diagnostic : Diagnostic
        The fatal diagnostic recorded on the file
    vfile : VFile
        The file that failed

    """

    def __init__(self, diagnostic: Diagnostic, vfile: VFile):
        """Initialize the failure from the recorded diagnostic."""
        super().__init__(diagnostic.text)
        self.diagnostic = diagnostic
        self.vfile = vfile


class SerializationError(MarkpipeError):
    """Exception raised when a serialized tree cannot be decoded."""
