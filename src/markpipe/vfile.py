#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# src/markpipe/vfile.py
"""Per-document processing envelope.

A ``VFile`` carries one document through exactly one processor run: the
source text, an opaque provenance ``path``, the current tree, the
diagnostics recorded by every stage and a namespaced ``data`` sidecar.

Messages are append-only. Nothing in the core removes or supersedes a
diagnostic once it has been recorded; callers decide what to do with
warnings (for example, whether they should fail a build).

Examples
--------
    >>> vfile = VFile("# Title", path="README.md")
    >>> vfile.message("Heading is too short", position=Point(1, 1, 0), rule_id="heading-length")
    >>> print(vfile.report())
    README.md:1:1: warning: Heading is too short [heading-length]

"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, NoReturn, Optional, Union

from markpipe.ast.data import DataMap
from markpipe.ast.nodes import Node, Point, Position
from markpipe.constants import RULE_ENCODING, SCANNER_SOURCE
from markpipe.exceptions import VFileFailure

if TYPE_CHECKING:
    from markpipe.ast.nodes import Root

logger = logging.getLogger(__name__)

PositionLike = Union[Node, Position, Point, None]


class Severity(enum.IntEnum):
    """Severity of a diagnostic; ordered so ``ERROR > WARNING > INFO``."""

    INFO = 0
    WARNING = 1
    ERROR = 2

    @property
    def label(self) -> str:
        """Lower-case name used in reports."""
        return self.name.lower()


def _coerce_position(place: PositionLike) -> Optional[Position]:
    if place is None:
        return None
    if isinstance(place, Node):
        return place.position
    if isinstance(place, Position):
        return place
    if isinstance(place, Point):
        return Position(start=place, end=place)
    raise TypeError(f"Expected a Node, Position or Point, got {type(place).__name__}")


@dataclass(frozen=True)
class Diagnostic:
    """A message recorded on a file.

    Parameters
    ----------
    text : str
        Human-readable message
    severity : Severity
        INFO, WARNING or ERROR
    position : Position or None
        Where in the source the message applies
    rule_id : str or None
        Identifier of the rule or check that produced the message
    source : str or None
        Name of the plugin or component that produced the message
    fatal : bool
        True only for diagnostics recorded by ``VFile.fail()``
    path : str or None
        Provenance of the file the message belongs to

    """

    text: str
    severity: Severity = Severity.WARNING
    position: Optional[Position] = None
    rule_id: Optional[str] = None
    source: Optional[str] = None
    fatal: bool = False
    path: Optional[str] = None

    @property
    def line(self) -> Optional[int]:
        """Start line of the message, if positioned."""
        return self.position.start.line if self.position else None

    @property
    def column(self) -> Optional[int]:
        """Start column of the message, if positioned."""
        return self.position.start.column if self.position else None

    def __str__(self) -> str:
        place = self.path or "<input>"
        if self.position is not None:
            place = f"{place}:{self.position.start.line}:{self.position.start.column}"
        rule = ""
        if self.rule_id and self.source:
            rule = f" [{self.source}:{self.rule_id}]"
        elif self.rule_id or self.source:
            rule = f" [{self.rule_id or self.source}]"
        return f"{place}: {self.severity.label}: {self.text}{rule}"


class VFile:
    """Container threading one document through a processor run.

    Parameters
    ----------
    value : str or bytes, default ""
        Source text. Bytes are decoded by the scanner, which fails the file
        on invalid input
    path : str or None
        Provenance label; opaque to the core
    encoding : str, default "utf-8"
        Encoding used to decode ``bytes`` values

    Attributes
    ----------
    path : str or None
        Provenance label
    tree : Root or None
        Current tree, set by the scanner and possibly replaced by plugins
    data : DataMap
        Document-scoped namespaced sidecar
    result : Any
        Output of the printer (the same as ``text`` after a full run)

    """

    def __init__(self, value: Union[str, bytes] = "", path: Optional[str] = None, encoding: str = "utf-8"):
        """Create a file for one processing run."""
        if not isinstance(value, (str, bytes)):
            raise TypeError(f"VFile value must be str or bytes, got {type(value).__name__}")
        self._value: Union[str, bytes] = value
        self.path = path
        self.encoding = encoding
        self.tree: Optional[Root] = None
        self.result: Any = None
        self.data = DataMap()
        self._messages: list[Diagnostic] = []

    def __repr__(self) -> str:
        return f"VFile(path={self.path!r}, messages={len(self._messages)})"

    def __str__(self) -> str:
        return self.text

    @property
    def text(self) -> str:
        """Current textual content: source before printing, result after."""
        if isinstance(self._value, bytes):
            return self._value.decode(self.encoding, errors="replace")
        return self._value

    @text.setter
    def text(self, value: str) -> None:
        self._value = value

    @property
    def is_binary(self) -> bool:
        """True while the value is still undecoded bytes."""
        return isinstance(self._value, bytes)

    @property
    def messages(self) -> tuple[Diagnostic, ...]:
        """Read-only view of the recorded diagnostics, in order."""
        return tuple(self._messages)

    @property
    def has_failed(self) -> bool:
        """True if any fatal diagnostic was recorded."""
        return any(message.fatal for message in self._messages)

    def decode(self) -> str:
        """Decode a bytes value in place and return the text.

        Text values are checked for unencodable code points (lone
        surrogates) so the scanner never sees them.

        Raises
        ------
        VFileFailure
            If the value cannot be decoded or contains lone surrogates

        """
        if isinstance(self._value, bytes):
            try:
                self._value = self._value.decode(self.encoding)
            except UnicodeDecodeError as e:
                self.fail(
                    f"Cannot decode input as {self.encoding}: invalid byte at offset {e.start}",
                    rule_id=RULE_ENCODING,
                    source=SCANNER_SOURCE,
                )
            return self._value  # type: ignore[return-value]

        try:
            self._value.encode("utf-8")
        except UnicodeEncodeError as e:
            self.fail(
                f"Input contains an unencodable character at offset {e.start}",
                rule_id=RULE_ENCODING,
                source=SCANNER_SOURCE,
            )
        return self._value

    def message(
        self,
        text: str,
        position: PositionLike = None,
        rule_id: Optional[str] = None,
        severity: Severity = Severity.WARNING,
        source: Optional[str] = None,
    ) -> Diagnostic:
        """Record a non-fatal diagnostic.

        Parameters
        ----------
        text : str
            The message
        position : Node, Position, Point or None
            Where the message applies; a node contributes its own position
        rule_id : str, optional
            Identifier of the rule that produced the message
        severity : Severity, default WARNING
            Severity of the message
        source : str, optional
            Name of the plugin or component reporting

        Returns
        -------
        Diagnostic
            The recorded diagnostic

        """
        diagnostic = Diagnostic(
            text=text,
            severity=Severity(severity),
            position=_coerce_position(position),
            rule_id=rule_id,
            source=source,
            fatal=False,
            path=self.path,
        )
        self._messages.append(diagnostic)
        logger.debug("%s", diagnostic)
        return diagnostic

    def info(
        self,
        text: str,
        position: PositionLike = None,
        rule_id: Optional[str] = None,
        source: Optional[str] = None,
    ) -> Diagnostic:
        """Record an INFO diagnostic."""
        return self.message(text, position=position, rule_id=rule_id, severity=Severity.INFO, source=source)

    def fail(
        self,
        text: str,
        position: PositionLike = None,
        rule_id: Optional[str] = None,
        source: Optional[str] = None,
    ) -> NoReturn:
        """Record a fatal ERROR diagnostic and abort the current stage.

        Raises
        ------
        VFileFailure
            Always; carries the diagnostic and this file

        """
        diagnostic = Diagnostic(
            text=text,
            severity=Severity.ERROR,
            position=_coerce_position(position),
            rule_id=rule_id,
            source=source,
            fatal=True,
            path=self.path,
        )
        self._messages.append(diagnostic)
        logger.debug("Fatal: %s", diagnostic)
        raise VFileFailure(diagnostic, self)

    def messages_at_least(self, severity: Severity) -> list[Diagnostic]:
        """Return diagnostics whose severity is ``severity`` or higher."""
        return [message for message in self._messages if message.severity >= severity]

    def report(self, min_severity: Severity = Severity.INFO) -> str:
        """Format diagnostics one per line, sorted by position.

        Unpositioned messages keep their recording order and come first.

        """
        selected = self.messages_at_least(min_severity)
        ordered = sorted(
            enumerate(selected),
            key=lambda pair: (
                pair[1].position is not None,
                pair[1].position.start.offset if pair[1].position else 0,
                pair[0],
            ),
        )
        return "\n".join(str(message) for _, message in ordered)
