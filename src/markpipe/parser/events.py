#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# src/markpipe/parser/events.py
"""Event stream shared by the tokenizers and the reducer.

Tokenizers describe a document as a flat list of ``enter`` and ``exit``
events, one pair per construct, in document order. Each event carries the
absolute source offset where the construct starts (enter) or ends (exit).
The reducer turns the balanced stream into nodes.

"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal, Optional

EventAction = Literal["enter", "exit"]


@dataclass(frozen=True)
class Event:
    """One enter or exit event.

    Parameters
    ----------
    action : {"enter", "exit"}
        Whether the construct opens or closes here
    kind : str
        Node kind tag of the construct
    offset : int
        Absolute source offset of the start (enter) or end (exit)
    attributes : dict
        Node attributes; only meaningful on enter events
    value : str or None
        Literal value; only set on enter events of literal kinds

    """

    action: EventAction
    kind: str
    offset: int
    attributes: dict[str, Any] = field(default_factory=dict)
    value: Optional[str] = None


class EventSink:
    """Append-only event buffer with helpers for balanced emission."""

    def __init__(self) -> None:
        """Create an empty sink."""
        self.events: list[Event] = []

    def enter(self, kind: str, offset: int, value: Optional[str] = None, **attributes: Any) -> None:
        """Emit an enter event."""
        self.events.append(Event("enter", kind, offset, attributes, value))

    def exit(self, kind: str, offset: int) -> None:
        """Emit an exit event."""
        self.events.append(Event("exit", kind, offset))

    def literal(self, kind: str, start: int, end: int, value: str, **attributes: Any) -> None:
        """Emit an enter/exit pair for a literal construct."""
        self.enter(kind, start, value, **attributes)
        self.exit(kind, end)

    def void(self, kind: str, start: int, end: int, **attributes: Any) -> None:
        """Emit an enter/exit pair for a construct without content."""
        self.enter(kind, start, **attributes)
        self.exit(kind, end)

    def extend(self, events: list[Event]) -> None:
        """Append events produced elsewhere."""
        self.events.extend(events)

    def __len__(self) -> int:
        return len(self.events)
