#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# src/markpipe/logging_utils.py
"""Logging helpers for markpipe.

Diagnostics live on the ``VFile``; the processor mirrors them into the
standard logging system through ``log_diagnostics`` so an embedding
application sees scanner and plugin warnings in its own log output. Each
diagnostic becomes one record on the ``markpipe.diagnostics`` logger, at
the logging level matching its severity, with the ``Diagnostic`` attached
as ``record.diagnostic``.

``configure_logging`` installs handlers on the ``markpipe`` logger only and
leaves the root logger alone.

Examples
--------
    >>> configure_logging("warning")
    >>> create_processor().process_sync(VFile("Some *text", path="notes.md"))
    notes.md:1:6: warning: Unmatched emphasis delimiter '*' [markpipe-scanner:unmatched-delimiter]

"""

from __future__ import annotations

import logging
import sys
from typing import Optional

from markpipe.vfile import Severity, VFile

PACKAGE_LOGGER = "markpipe"
DIAGNOSTICS_LOGGER = "markpipe.diagnostics"

SEVERITY_LEVELS: dict[Severity, int] = {
    Severity.INFO: logging.INFO,
    Severity.WARNING: logging.WARNING,
    Severity.ERROR: logging.ERROR,
}


class DiagnosticFormatter(logging.Formatter):
    """Formatter printing diagnostic records in report form.

    Records carrying a ``diagnostic`` attribute are rendered exactly like
    a line of ``VFile.report()``; every other record uses the configured
    format string.

    """

    def format(self, record: logging.LogRecord) -> str:
        """Format ``record``."""
        diagnostic = getattr(record, "diagnostic", None)
        if diagnostic is not None:
            return str(diagnostic)
        return super().format(record)


def log_diagnostics(vfile: VFile, logger: Optional[logging.Logger] = None) -> int:
    """Emit one log record per diagnostic recorded on ``vfile``.

    Parameters
    ----------
    vfile : VFile
        File whose messages are logged, in recording order
    logger : logging.Logger, optional
        Target logger; defaults to ``markpipe.diagnostics``

    Returns
    -------
    int
        Number of records emitted

    """
    target = logger or logging.getLogger(DIAGNOSTICS_LOGGER)
    for message in vfile.messages:
        target.log(SEVERITY_LEVELS[message.severity], "%s", message, extra={"diagnostic": message})
    return len(vfile.messages)


def configure_logging(
    log_level: int | str,
    log_file: Optional[str] = None,
    trace_mode: bool = False,
) -> logging.Logger:
    """Configure handlers for the ``markpipe`` logger namespace.

    Parameters
    ----------
    log_level : int | str
        Numeric logging level or string name (e.g., "INFO").
    log_file : str, optional
        Optional path to a log file for teeing log output.
    trace_mode : bool, default False
        When true, emit timestamps and logger names for debugging traces.

    Returns
    -------
    logging.Logger
        The configured ``markpipe`` logger.

    """
    resolved_level = log_level if isinstance(log_level, int) else getattr(logging, str(log_level).upper(), logging.INFO)

    package_logger = logging.getLogger(PACKAGE_LOGGER)
    package_logger.setLevel(resolved_level)
    for handler in list(package_logger.handlers):
        package_logger.removeHandler(handler)
        handler.close()
    package_logger.propagate = False

    format_str = "[%(asctime)s] [%(levelname)s] [%(name)s] %(message)s" if trace_mode else "%(levelname)s: %(message)s"
    date_format = "%Y-%m-%d %H:%M:%S" if trace_mode else None
    formatter = DiagnosticFormatter(format_str, datefmt=date_format)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(formatter)
    package_logger.addHandler(console_handler)

    if log_file:
        try:
            file_handler = logging.FileHandler(log_file, mode="a", encoding="utf-8")
        except OSError as exc:
            package_logger.warning("Could not create log file %s: %s", log_file, exc)
        else:
            file_handler.setFormatter(formatter)
            package_logger.addHandler(file_handler)

    return package_logger
