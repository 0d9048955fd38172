#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# tests/unit/test_processor.py
"""Unit tests for the Processor: configuration, freezing and the run stages."""

import asyncio

import pytest

from markpipe import create_processor
from markpipe.ast import Heading, Paragraph, Root, Text, build, visit
from markpipe.exceptions import (
    ConfigurationError,
    ParsingError,
    PluginError,
    PrintingError,
    SynchronyError,
    VFileFailure,
)
from markpipe.options import PrinterOptions, ScannerOptions
from markpipe.parser import MarkdownScanner
from markpipe.pipeline import Processor
from markpipe.plugins import HEADING_OFFSET_SPEC
from markpipe.printer import MarkdownPrinter
from markpipe.vfile import Severity, VFile


def shout():
    """Upper-case every text node."""

    def transform(tree, vfile):
        def upper(node, index, parent):
            node.value = node.value.upper()

        visit(tree, "text", upper)

    return transform


def recorder(label):
    """Append ``label`` to a per-document log in vfile.data."""

    def transform(tree, vfile):
        vfile.data.setdefault("order:log", []).append(label)

    return transform


def drop_headings(depth=2):
    """Remove top-level headings of one depth."""

    def transform(tree, vfile):
        tree.children[:] = [
            child for child in tree.children if not (isinstance(child, Heading) and child.depth == depth)
        ]

    return transform


def replacer():
    """Replace the tree with a fixed document."""

    def transform(tree, vfile):
        return build("root", build("paragraph", "replaced"))

    return transform


def async_suffix(suffix="!"):
    """Append ``suffix`` to the last text node after yielding to the loop."""

    async def transform(tree, vfile):
        await asyncio.sleep(0)
        texts = [node for node in tree.children[-1].children if isinstance(node, Text)]
        texts[-1].value += suffix

    return transform


def failing():
    """Raise from the transformer."""

    def transform(tree, vfile):
        vfile.message("before failing", rule_id="note", source="failing")
        raise RuntimeError("boom")

    return transform


def fatal():
    """Fail the file."""

    def transform(tree, vfile):
        vfile.fail("stop here", rule_id="fatal", source="fatal")

    return transform


@pytest.mark.unit
class TestConfiguration:
    """Tests for use() and freeze()."""

    def test_use_returns_new_processor(self):
        """Test use() leaves the original processor unchanged."""
        base = Processor()
        extended = base.use(shout)
        assert base.registrations == ()
        assert [r.name for r in extended.registrations] == ["shout"]
        assert extended is not base

    def test_use_on_frozen_fails(self):
        """Test frozen processors cannot be extended."""
        frozen = Processor().use(shout).freeze()
        before = frozen.registrations
        with pytest.raises(ConfigurationError, match="frozen"):
            frozen.use(shout)
        assert frozen.registrations is before
        assert len(frozen.registrations) == 1
        assert frozen.is_frozen

    def test_use_by_name(self):
        """Test registry names resolve to specs."""
        processor = Processor().use("heading-offset", {"offset": 2})
        assert processor.registrations[0].plugin is HEADING_OFFSET_SPEC
        assert processor.process_sync("# A").text == "### A\n"

    def test_unknown_name(self):
        """Test unknown names fail with the available list."""
        with pytest.raises(ConfigurationError, match="Unknown plugin 'nope'"):
            Processor().use("nope")

    def test_non_callable(self):
        """Test plugins must be callable."""
        with pytest.raises(ConfigurationError):
            Processor().use(42)

    def test_options_must_be_mapping(self):
        """Test options must be a mapping."""
        with pytest.raises(ConfigurationError):
            Processor().use(shout, [("offset", 1)])

    def test_spec_options_validated(self):
        """Test published specs check their options at use() time."""
        with pytest.raises(ConfigurationError):
            Processor().use("heading-offset", {"offset": "two"})
        with pytest.raises(ConfigurationError):
            Processor().use("heading-offset", {"depth": 1})

    def test_factory_called_once(self):
        """Test plugins are attached once per freeze, not per document."""
        calls = []

        def counted():
            calls.append(1)
            return shout()

        frozen = Processor().use(counted).freeze()
        for _ in range(3):
            frozen.process_sync("a")
        assert len(calls) == 1

    def test_freeze_idempotent(self):
        """Test freezing a frozen processor returns it."""
        frozen = Processor().use(shout).freeze()
        assert frozen.is_frozen
        assert frozen.freeze() is frozen

    def test_freeze_wraps_factory_errors(self):
        """Test plugin initialization errors become configuration errors."""

        def broken():
            raise ValueError("bad setup")

        with pytest.raises(ConfigurationError, match="failed to initialize") as exc_info:
            Processor().use(broken).freeze()
        assert isinstance(exc_info.value.original_error, ValueError)

    def test_freeze_rejects_non_callable_transformer(self):
        """Test a plugin must return a transformer or None."""
        with pytest.raises(ConfigurationError):
            Processor().use(lambda: "nope").freeze()

    def test_plugin_returning_none(self):
        """Test plugins without a transformer are skipped."""
        output = Processor().use("heading-offset", {"offset": 0}).process_sync("# A")
        assert output.text == "# A\n"

    def test_repr(self):
        """Test the representation lists plugin names."""
        assert repr(Processor().use(shout)) == "Processor([shout], unfrozen)"
        assert repr(Processor().use(shout).freeze()) == "Processor([shout], frozen)"

    def test_create_processor(self):
        """Test the factory accepts plugins and (plugin, options) pairs."""
        processor = create_processor(
            scanner_options=ScannerOptions(front_matter=False),
            printer_options=PrinterOptions(bullet="-"),
            plugins=[shout, ("heading-offset", {"offset": 1})],
        )
        assert [r.name for r in processor.registrations] == ["shout", "heading-offset"]
        assert processor.process_sync("# a\n\n* b").text == "## A\n\n- B\n"


@pytest.mark.unit
class TestStages:
    """Tests for parse, run and stringify used on their own."""

    def test_parse_records_warnings(self):
        """Test parse attaches the tree and warnings to a VFile."""
        vfile = VFile("a *b")
        tree = Processor().parse(vfile)
        assert vfile.tree is tree
        assert [m.rule_id for m in vfile.messages] == ["unmatched-delimiter"]

    def test_parse_without_tree(self):
        """Test a scanner that leaves the tree unset is a parsing error."""

        class TreelessScanner(MarkdownScanner):
            def parse(self, vfile):
                return vfile

        source = VFile("a")
        with pytest.raises(ParsingError, match="without a tree") as exc_info:
            Processor(scanner=TreelessScanner()).parse(source)
        assert exc_info.value.vfile is source

    def test_parse_rejects_other_values(self):
        """Test unsupported input types."""
        with pytest.raises(TypeError):
            Processor().parse(42)

    def test_run_sync_in_place(self):
        """Test in-place mutation keeps the same tree object."""
        processor = Processor().use(shout).freeze()
        tree = processor.parse("# a")
        assert processor.run_sync(tree) is tree
        assert tree.children[0] == Heading(depth=1, children=[Text(value="A")])

    def test_run_sync_replacement(self):
        """Test a returned root replaces the tree for later plugins."""
        processor = Processor().use(replacer).use(shout).freeze()
        vfile = VFile("")
        result = processor.run_sync(processor.parse("# a"), vfile)
        assert result == Root(children=[Paragraph(children=[Text(value="REPLACED")])])
        assert vfile.tree is result

    def test_stringify(self, title_tree):
        """Test stringify uses the configured printer."""
        processor = Processor(printer=MarkdownPrinter(PrinterOptions(emphasis="_")))
        assert processor.stringify(title_tree) == "# Title\n\nBody _text_.\n"

    @pytest.mark.asyncio
    async def test_run_async(self):
        """Test run awaits asynchronous transformers."""
        processor = Processor().use(async_suffix).freeze()
        tree = await processor.run(processor.parse("a"))
        assert tree.children[0].children[0].value == "a!"


@pytest.mark.unit
class TestProcessSync:
    """Tests for synchronous processing."""

    def test_process_sync(self):
        """Test the full pipeline."""
        vfile = Processor().use(shout).process_sync("# Title\n\nBody *text*.")
        assert vfile.text == "# TITLE\n\nBODY *TEXT*.\n"
        assert vfile.result == vfile.text
        assert vfile.tree is not None

    def test_accepts_vfile(self):
        """Test a VFile keeps its path."""
        source = VFile("a", path="doc.md")
        assert Processor().process_sync(source) is source
        assert source.text == "a\n"

    def test_plugins_run_in_order(self):
        """Test transformers run in registration order."""
        processor = Processor().use(recorder, {"label": "first"}).use(recorder, {"label": "second"}).freeze()
        vfile = processor.process_sync("a")
        assert vfile.data["order:log"] == ["first", "second"]

    @pytest.mark.parametrize(
        "plugins, expected",
        [
            ([("heading-offset", {"offset": 1}), (drop_headings, {"depth": 2})], "### B\n"),
            ([(drop_headings, {"depth": 2}), ("heading-offset", {"offset": 1})], "## A\n"),
        ],
    )
    def test_order_changes_output(self, plugins, expected):
        """Test two transformers that do not commute give the output of their registration order."""
        processor = Processor()
        for plugin, options in plugins:
            processor = processor.use(plugin, options)
        assert processor.process_sync("# A\n\n## B").text == expected

    def test_data_per_document(self):
        """Test data does not leak between documents."""
        processor = Processor().use(recorder, {"label": "x"}).freeze()
        assert processor.process_sync("a").data["order:log"] == ["x"]
        assert processor.process_sync("b").data["order:log"] == ["x"]

    def test_async_plugin_raises_synchrony_error(self):
        """Test async transformers cannot run synchronously and the printer never runs."""
        processor = Processor().use(async_suffix).freeze()
        source = VFile("a")
        with pytest.raises(SynchronyError) as exc_info:
            processor.process_sync(source)
        assert exc_info.value.plugin_name == "async_suffix"
        assert exc_info.value.vfile is source
        assert source.result is None
        assert source.text == "a"

    def test_plugin_error(self):
        """Test transformer exceptions are wrapped with partial state."""
        source = VFile("a")
        with pytest.raises(PluginError) as exc_info:
            Processor().use(failing).process_sync(source)
        error = exc_info.value
        assert error.plugin_name == "failing"
        assert error.vfile is source
        assert isinstance(error.original_error, RuntimeError)
        assert [m.text for m in source.messages] == ["before failing"]

    def test_plugin_error_is_logged(self, caplog):
        """Test plugin failures are logged with the plugin name."""
        with caplog.at_level("ERROR", logger="markpipe.pipeline.processor"):
            with pytest.raises(PluginError):
                Processor().use(failing).process_sync("a")
        assert "failing" in caplog.text

    def test_bad_return_value(self):
        """Test returning something other than a root is a plugin error."""

        def bad():
            return lambda tree, vfile: "text"

        with pytest.raises(PluginError, match="expected a root node or None"):
            Processor().use(bad).process_sync("a")

    def test_vfile_failure_propagates(self):
        """Test fail() stops processing and is not wrapped."""
        source = VFile("a")
        with pytest.raises(VFileFailure) as exc_info:
            Processor().use(fatal).use(shout).process_sync(source)
        assert exc_info.value.vfile is source
        assert source.has_failed
        assert source.result is None

    def test_printing_error_carries_vfile(self):
        """Test printer failures attach the file."""
        printer = MarkdownPrinter()
        del printer.handlers["heading"]
        source = VFile("# A")
        with pytest.raises(PrintingError) as exc_info:
            Processor(printer=printer).process_sync(source)
        assert exc_info.value.vfile is source

    def test_invalid_bytes_fail(self):
        """Test decoding failures surface as VFileFailure."""
        with pytest.raises(VFileFailure):
            Processor().process_sync(b"\xff")

    def test_rule_text_after_heading(self):
        """Test text that looks like a setext underline is escaped."""

        def add_rule_text():
            def transform(tree, vfile):
                tree.children.append(Paragraph(children=[Text(value="---")]))

            return transform

        vfile = Processor().use(add_rule_text).process_sync("# T")
        assert vfile.text == "# T\n\n\\---\n"
        assert len(Processor().parse(vfile.text).children) == 2


@pytest.mark.unit
class TestProcessAsync:
    """Tests for asynchronous processing and cancellation."""

    @pytest.mark.asyncio
    async def test_process(self):
        """Test mixed synchronous and asynchronous plugins."""
        processor = Processor().use(shout).use(async_suffix, {"suffix": "?"}).freeze()
        vfile = await processor.process("hello")
        assert vfile.text == "HELLO?\n"

    @pytest.mark.asyncio
    async def test_cancelled_before_start(self):
        """Test a set token skips every stage."""
        cancel = asyncio.Event()
        cancel.set()
        vfile = await Processor().use(shout).process("a", cancel=cancel)
        assert vfile.tree is None
        assert vfile.result is None
        (message,) = vfile.messages
        assert message.rule_id == "cancelled"
        assert message.source == "markpipe"
        assert message.severity is Severity.INFO
        assert "parse" in message.text

    @pytest.mark.asyncio
    async def test_cancelled_between_plugins(self):
        """Test cancellation stops before the next plugin and skips printing."""
        cancel = asyncio.Event()

        def trip():
            def transform(tree, vfile):
                cancel.set()

            return transform

        vfile = await Processor().use(trip).use(shout).process("a", cancel=cancel)
        assert vfile.result is None
        assert vfile.tree.children[0].children[0].value == "a"
        assert vfile.messages[-1].rule_id == "cancelled"
        assert "plugin 'shout'" in vfile.messages[-1].text

    @pytest.mark.asyncio
    async def test_cancelled_before_print(self):
        """Test cancellation after the last plugin skips the printer."""
        cancel = asyncio.Event()

        def trip():
            def transform(tree, vfile):
                cancel.set()

            return transform

        vfile = await Processor().use(shout).use(trip).process("a", cancel=cancel)
        assert vfile.result is None
        assert vfile.tree.children[0].children[0].value == "A"
        assert "print" in vfile.messages[-1].text

    @pytest.mark.asyncio
    async def test_run_cancellation(self):
        """Test run() records cancellation and returns the tree so far."""
        cancel = asyncio.Event()
        cancel.set()
        processor = Processor().use(shout).freeze()
        vfile = VFile("")
        tree = processor.parse("a")
        assert await processor.run(tree, vfile, cancel=cancel) is tree
        assert vfile.messages[-1].rule_id == "cancelled"

    @pytest.mark.asyncio
    async def test_async_plugin_error(self):
        """Test exceptions raised after awaiting are wrapped."""

        def async_failing():
            async def transform(tree, vfile):
                await asyncio.sleep(0)
                raise KeyError("missing")

            return transform

        with pytest.raises(PluginError) as exc_info:
            await Processor().use(async_failing).process("a")
        assert exc_info.value.plugin_name == "async_failing"
