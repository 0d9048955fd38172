#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# tests/unit/test_scanner.py
"""Unit tests for the markdown scanner."""

import pytest

from markpipe.ast import (
    BlockQuote,
    Break,
    CodeBlock,
    Emphasis,
    FrontMatter,
    Heading,
    Image,
    InlineCode,
    Link,
    List,
    ListItem,
    Paragraph,
    Point,
    Root,
    Strong,
    Text,
    ThematicBreak,
    iter_nodes,
    validate_tree,
)
from markpipe.exceptions import ParsingError, VFileFailure
from markpipe.options import ScannerOptions
from markpipe.parser import BlockTokenizer, Event, Locator, MarkdownScanner, parse, reduce_events, split_lines
from markpipe.vfile import VFile


def _scan(text, **options):
    vfile = VFile(text)
    MarkdownScanner(ScannerOptions(**options)).parse(vfile)
    return vfile


def _paragraph(*children):
    return Root(children=[Paragraph(children=list(children))])


@pytest.mark.unit
class TestBlocks:
    """Tests for block structure."""

    def test_title_document(self, title_tree):
        """Test a heading followed by a paragraph."""
        assert parse("# Title\n\nBody *text*.") == title_tree

    def test_positions(self):
        """Test block positions use 1-based lines and columns."""
        tree = parse("# Title\n\nBody *text*.")
        heading, paragraph = tree.children
        assert heading.position.start == Point(1, 1, 0)
        assert heading.position.end == Point(1, 8, 7)
        assert paragraph.position.start == Point(3, 1, 9)
        assert paragraph.position.end == Point(3, 13, 21)

    def test_every_node_positioned(self):
        """Test the scanner never produces synthetic nodes."""
        tree = parse("# A\n\n- b *c*\n\n> d\n\n```\ne\n```")
        assert all(not node.is_synthetic for node in iter_nodes(tree))

    def test_empty_document(self):
        """Test empty input gives an empty root."""
        assert parse("").children == []

    @pytest.mark.parametrize("depth", [1, 2, 3, 4, 5, 6])
    def test_atx_depths(self, depth):
        """Test every ATX heading depth."""
        assert parse("#" * depth + " H").children == [Heading(depth=depth, children=[Text(value="H")])]

    def test_atx_closing_hashes(self):
        """Test closing hashes are not part of the content."""
        assert parse("## Title ##").children[0] == Heading(depth=2, children=[Text(value="Title")])

    def test_setext_headings(self):
        """Test setext underlines."""
        tree = parse("Title\n=====\n\nSub\n---")
        assert tree.children == [
            Heading(depth=1, children=[Text(value="Title")]),
            Heading(depth=2, children=[Text(value="Sub")]),
        ]

    @pytest.mark.parametrize("marker", ["***", "---", "___", "- - -"])
    def test_thematic_break(self, marker):
        """Test thematic break markers."""
        assert parse(marker).children == [ThematicBreak()]

    def test_fenced_code(self):
        """Test info strings split into language and meta."""
        tree = parse("```py title=x\nx = 1\n```")
        assert tree.children == [CodeBlock(value="x = 1", lang="py", meta="title=x")]

    def test_tilde_fence(self):
        """Test tilde fences may contain backticks."""
        assert parse("~~~\n```\n~~~").children == [CodeBlock(value="```")]

    def test_indented_code(self):
        """Test four-space indented code."""
        assert parse("    code\n    more").children == [CodeBlock(value="code\nmore")]

    def test_block_quote(self):
        """Test nested block quotes."""
        tree = parse("> quote\n> > nested")
        assert tree.children == [
            BlockQuote(
                children=[
                    Paragraph(children=[Text(value="quote")]),
                    BlockQuote(children=[Paragraph(children=[Text(value="nested")])]),
                ]
            )
        ]

    def test_bullet_list(self):
        """Test a tight bullet list."""
        tree = parse("- a\n- b")
        assert tree.children == [
            List(
                children=[
                    ListItem(children=[Paragraph(children=[Text(value="a")])]),
                    ListItem(children=[Paragraph(children=[Text(value="b")])]),
                ]
            )
        ]

    def test_ordered_list_start(self):
        """Test ordered lists keep their start number."""
        listing = parse("3. x\n4. y").children[0]
        assert listing.ordered
        assert listing.start == 3
        assert len(listing.children) == 2

    def test_spread_list(self):
        """Test a blank line between items makes the list loose."""
        assert parse("- a\n\n- b").children[0].spread

    def test_marker_change_starts_new_list(self):
        """Test a different bullet character starts a new list."""
        tree = parse("- a\n* b")
        assert [child.kind for child in tree.children] == ["list", "list"]

    def test_task_items(self):
        """Test task list checkboxes."""
        items = parse("- [x] done\n- [ ] todo\n- plain").children[0].children
        assert [item.checked for item in items] == [True, False, None]
        assert items[0].children == [Paragraph(children=[Text(value="done")])]

    def test_nested_list(self):
        """Test an indented list inside an item."""
        item = parse("- a\n  - b").children[0].children[0]
        assert [child.kind for child in item.children] == ["paragraph", "list"]

    @pytest.mark.parametrize("source", [">- ", "> - ", "> 1. ", "> -\n> - a"])
    def test_empty_item_in_quote(self, source):
        """Test an empty list item ends inside its block quote."""
        tree = parse(source)
        assert validate_tree(tree) == []
        quote = tree.children[0]
        item = quote.children[0].children[0]
        assert item.children == []
        assert item.position.end.offset <= quote.position.end.offset

    def test_empty_item_ends_at_marker(self):
        """Test an empty item spans only its marker."""
        item = parse(">- ").children[0].children[0].children[0]
        assert item.position.start == Point(1, 2, 1)
        assert item.position.end == Point(1, 3, 2)

    @pytest.mark.parametrize("source", [">     a ", "> ```\n>   ", "> ```\n> a  \n>"])
    def test_code_in_quote_ends_inside(self, source):
        """Test code blocks inside a quote end before trailing whitespace."""
        tree = parse(source)
        assert validate_tree(tree) == []
        assert tree.children[0].children[0].kind == "code_block"

    def test_front_matter(self):
        """Test a leading YAML block."""
        tree = parse("---\ntitle: x\n---\n# H")
        assert tree.children == [FrontMatter(value="title: x"), Heading(depth=1, children=[Text(value="H")])]

    def test_front_matter_disabled(self):
        """Test front matter falls back to ordinary blocks."""
        tree = _scan("---\ntitle: x\n---\n# H", front_matter=False).tree
        assert [child.kind for child in tree.children] == ["thematic_break", "heading", "heading"]
        assert tree.children[1].depth == 2

    def test_crlf(self):
        """Test CRLF line endings."""
        assert parse("a\r\nb") == _paragraph(Text(value="a\nb"))

    def test_bytes_input(self):
        """Test bytes are decoded before scanning."""
        assert parse("# Hé".encode("utf-8")).children[0] == Heading(depth=1, children=[Text(value="Hé")])


@pytest.mark.unit
class TestInlines:
    """Tests for inline content."""

    def test_strong_and_emphasis(self):
        """Test emphasis nesting."""
        assert parse("*a **b** c*") == _paragraph(
            Emphasis(children=[Text(value="a "), Strong(children=[Text(value="b")]), Text(value=" c")])
        )

    def test_underscore_emphasis(self):
        """Test underscore delimiters."""
        assert parse("_a_ __b__") == _paragraph(
            Emphasis(children=[Text(value="a")]), Text(value=" "), Strong(children=[Text(value="b")])
        )

    def test_intraword_underscore(self):
        """Test underscores inside words stay literal."""
        assert parse("snake_case_name") == _paragraph(Text(value="snake_case_name"))

    def test_inline_code(self):
        """Test code spans keep inner backticks and strip one padding space."""
        assert parse("`a  b` and `` a`b ``") == _paragraph(
            InlineCode(value="a  b"), Text(value=" and "), InlineCode(value="a`b")
        )

    def test_link(self):
        """Test links with a title."""
        assert parse('[a *b*](http://x.y "T")') == _paragraph(
            Link(
                destination="http://x.y",
                title="T",
                children=[Text(value="a "), Emphasis(children=[Text(value="b")])],
            )
        )

    def test_image(self):
        """Test images flatten their alt text."""
        assert parse("![logo](a.png)") == _paragraph(Image(destination="a.png", alt="logo"))

    def test_autolinks(self):
        """Test URI and email autolinks."""
        tree = parse("<https://a.b> <me@x.org>")
        links = [node for node in tree.children[0].children if isinstance(node, Link)]
        assert [link.destination for link in links] == ["https://a.b", "mailto:me@x.org"]
        assert links[0].children == [Text(value="https://a.b")]

    def test_escapes(self):
        """Test backslash escapes produce literal text."""
        assert parse("\\*not\\*") == _paragraph(Text(value="*not*"))

    def test_hard_breaks(self):
        """Test trailing spaces and backslashes create breaks."""
        expected = _paragraph(Text(value="a"), Break(), Text(value="b"))
        assert parse("a  \nb") == expected
        assert parse("a\\\nb") == expected

    def test_soft_break(self):
        """Test a plain line ending stays in the text."""
        assert parse("a\nb") == _paragraph(Text(value="a\nb"))

    def test_inline_positions(self):
        """Test inline positions are mapped back to the source."""
        emphasis = parse("> Body *text*").children[0].children[0].children[1]
        assert emphasis.position.start == Point(1, 8, 7)
        assert emphasis.position.end == Point(1, 14, 13)


@pytest.mark.unit
class TestDiagnostics:
    """Tests for recoverable anomalies."""

    def test_clean_input(self):
        """Test well-formed input produces no messages."""
        assert _scan("# Title\n\nBody *text*.").messages == ()

    def test_unmatched_delimiter(self):
        """Test an unmatched emphasis delimiter stays literal."""
        vfile = _scan("a *b")
        assert vfile.tree == _paragraph(Text(value="a *b"))
        (message,) = vfile.messages
        assert message.rule_id == "unmatched-delimiter"
        assert message.source == "markpipe-scanner"
        assert message.position.start == Point(1, 3, 2)

    def test_unclosed_link(self):
        """Test an unclosed destination."""
        vfile = _scan("[a](b")
        assert vfile.tree == _paragraph(Text(value="[a](b"))
        assert [m.rule_id for m in vfile.messages] == ["unclosed-link"]

    def test_unclosed_inline_code(self):
        """Test an unclosed code span."""
        vfile = _scan("`code")
        assert vfile.tree == _paragraph(Text(value="`code"))
        assert [m.rule_id for m in vfile.messages] == ["unclosed-inline-code"]

    def test_unclosed_fence(self):
        """Test an unclosed fence runs to the end of the document."""
        vfile = _scan("```py\ncode")
        assert vfile.tree.children == [CodeBlock(value="code", lang="py")]
        assert [m.rule_id for m in vfile.messages] == ["unclosed-fence"]

    def test_heading_without_space(self):
        """Test a hash without a following space is text."""
        vfile = _scan("#Title")
        assert vfile.tree == _paragraph(Text(value="#Title"))
        assert [m.rule_id for m in vfile.messages] == ["heading-no-space"]

    def test_nesting_limit(self):
        """Test containers past the limit are read as text."""
        vfile = _scan("> > a", max_nesting=1)
        assert vfile.tree.children == [BlockQuote(children=[Paragraph(children=[Text(value="> a")])])]
        assert [m.rule_id for m in vfile.messages] == ["nesting-limit"]

    def test_invalid_bytes(self):
        """Test undecodable input fails the file."""
        with pytest.raises(VFileFailure):
            _scan(b"\xff\xfe")


@pytest.mark.unit
class TestInternals:
    """Tests for the locator, line splitting and reducer."""

    def test_locator(self):
        """Test offsets convert to points and back."""
        locator = Locator("ab\ncd")
        assert locator.point(3) == Point(2, 1, 3)
        assert locator.point(99) == Point(2, 3, 5)
        assert locator.offset(2, 2) == 4
        with pytest.raises(ValueError):
            locator.offset(3, 1)

    def test_split_lines(self):
        """Test line offsets and the dropped final newline."""
        lines = split_lines("a\r\nbc\n")
        assert [(line.text, line.offset) for line in lines] == [("a", 0), ("bc", 3)]
        assert split_lines("") == []

    def test_event_stream_balanced(self):
        """Test the block tokenizer wraps everything in root events."""
        events = BlockTokenizer("# A", ScannerOptions(), lambda *args: None).tokenize()
        assert events[0] == Event("enter", "root", 0)
        assert events[-1] == Event("exit", "root", 3)

    def test_unbalanced_stream(self):
        """Test the reducer rejects mismatched exits."""
        events = [Event("enter", "root", 0), Event("exit", "paragraph", 0)]
        with pytest.raises(ParsingError):
            reduce_events(events, Locator(""))

    def test_parse_text_without_tree(self):
        """Test parse_text fails when parse leaves the tree unset."""

        class TreelessScanner(MarkdownScanner):
            def parse(self, vfile):
                return vfile

        with pytest.raises(ParsingError, match="without a tree"):
            TreelessScanner().parse_text("a")

    def test_scanner_reusable(self):
        """Test one scanner instance parses many documents independently."""
        scanner = MarkdownScanner()
        first = scanner.parse_text("# A")
        second = scanner.parse_text("# A")
        assert first == second
        assert first is not second
