#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# tests/unit/test_vfile.py
"""Unit tests for VFile and diagnostics."""

import pytest

from markpipe.ast import Point, Position, Text
from markpipe.exceptions import VFileFailure
from markpipe.vfile import Diagnostic, Severity, VFile


@pytest.mark.unit
class TestVFileBasics:
    """Tests for construction and text access."""

    def test_defaults(self):
        """Test a new file is empty of results."""
        vfile = VFile("# Title", path="README.md")
        assert vfile.text == "# Title"
        assert str(vfile) == "# Title"
        assert vfile.path == "README.md"
        assert vfile.tree is None
        assert vfile.result is None
        assert vfile.messages == ()
        assert not vfile.has_failed

    def test_rejects_other_types(self):
        """Test values must be text or bytes."""
        with pytest.raises(TypeError):
            VFile(42)

    def test_text_setter(self):
        """Test replacing the text."""
        vfile = VFile("a")
        vfile.text = "b"
        assert str(vfile) == "b"

    def test_bytes_decode(self):
        """Test bytes are decoded on demand."""
        vfile = VFile("héllo".encode("utf-8"))
        assert vfile.is_binary
        assert vfile.decode() == "héllo"
        assert not vfile.is_binary

    def test_invalid_bytes_fail(self):
        """Test undecodable bytes fail the file."""
        vfile = VFile(b"ok \xff")
        with pytest.raises(VFileFailure) as exc_info:
            vfile.decode()
        assert exc_info.value.vfile is vfile
        assert exc_info.value.diagnostic.rule_id == "encoding"
        assert vfile.has_failed

    def test_lone_surrogate_fails(self):
        """Test text with lone surrogates fails the file."""
        with pytest.raises(VFileFailure):
            VFile("bad \ud800 text").decode()

    def test_data_is_namespaced(self):
        """Test the document sidecar enforces namespaced keys."""
        vfile = VFile("")
        vfile.data["toc:depth"] = 2
        with pytest.raises(KeyError):
            vfile.data["depth"] = 2


@pytest.mark.unit
class TestMessages:
    """Tests for recording diagnostics."""

    def test_message_defaults(self):
        """Test a plain message is a non-fatal warning."""
        vfile = VFile("x")
        diagnostic = vfile.message("Careful")
        assert diagnostic.severity is Severity.WARNING
        assert not diagnostic.fatal
        assert diagnostic.position is None
        assert vfile.messages == (diagnostic,)

    def test_message_from_node(self):
        """Test a node contributes its own position."""
        position = Position(Point(2, 3, 10), Point(2, 5, 12))
        diagnostic = VFile("x").message("Here", position=Text(value="ab", position=position))
        assert diagnostic.position == position
        assert diagnostic.line == 2
        assert diagnostic.column == 3

    def test_message_from_point(self):
        """Test a point becomes an empty span."""
        point = Point(1, 1, 0)
        diagnostic = VFile("x").message("Here", position=point)
        assert diagnostic.position == Position(point, point)

    def test_message_bad_position(self):
        """Test unsupported position values are rejected."""
        with pytest.raises(TypeError):
            VFile("x").message("Here", position=(1, 1))

    def test_info(self):
        """Test the INFO helper."""
        diagnostic = VFile("x").info("Note", rule_id="note", source="test")
        assert diagnostic.severity is Severity.INFO
        assert diagnostic.rule_id == "note"
        assert diagnostic.source == "test"

    def test_messages_are_read_only(self):
        """Test the messages view cannot be used to change the file."""
        vfile = VFile("x")
        vfile.message("one")
        messages = vfile.messages
        assert isinstance(messages, tuple)
        vfile.message("two")
        assert len(messages) == 1
        assert len(vfile.messages) == 2

    def test_fail(self):
        """Test fail records a fatal error and raises."""
        vfile = VFile("x", path="a.md")
        with pytest.raises(VFileFailure) as exc_info:
            vfile.fail("Broken", rule_id="broken", source="checker")
        diagnostic = exc_info.value.diagnostic
        assert diagnostic.fatal
        assert diagnostic.severity is Severity.ERROR
        assert vfile.messages[-1] is diagnostic
        assert vfile.has_failed
        assert str(exc_info.value) == "Broken"

    def test_messages_at_least(self):
        """Test filtering by severity."""
        vfile = VFile("x")
        vfile.info("i")
        vfile.message("w")
        vfile.message("e", severity=Severity.ERROR)
        assert [m.text for m in vfile.messages_at_least(Severity.WARNING)] == ["w", "e"]

    def test_severity_order(self):
        """Test severities are ordered."""
        assert Severity.INFO < Severity.WARNING < Severity.ERROR
        assert Severity.WARNING.label == "warning"


@pytest.mark.unit
class TestReport:
    """Tests for formatted output."""

    def test_diagnostic_str(self):
        """Test the path:line:column format."""
        vfile = VFile("# Title", path="README.md")
        vfile.message("Heading is too short", position=Point(1, 1, 0), rule_id="heading-length")
        assert vfile.report() == "README.md:1:1: warning: Heading is too short [heading-length]"

    def test_source_and_rule(self):
        """Test source and rule are combined."""
        diagnostic = Diagnostic(text="x", rule_id="r", source="s", severity=Severity.INFO)
        assert str(diagnostic) == "<input>: info: x [s:r]"

    def test_report_order(self):
        """Test unpositioned messages come first, then by offset."""
        vfile = VFile("abc\ndef")
        vfile.message("late", position=Point(2, 1, 4))
        vfile.message("early", position=Point(1, 2, 1))
        vfile.message("general")
        lines = vfile.report().splitlines()
        assert [line.split(": ")[-1] for line in lines] == ["general", "early", "late"]

    def test_report_min_severity(self):
        """Test the report can hide low severities."""
        vfile = VFile("x")
        vfile.info("hidden")
        assert vfile.report(min_severity=Severity.WARNING) == ""
