#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# tests/integration/test_pipeline.py
"""Integration tests for complete scan, transform and print runs."""

import pytest

from markpipe import Processor, create_processor
from markpipe.ast import Heading, build, iter_nodes, to_text, validate_tree
from markpipe.options import PrinterOptions
from markpipe.pipeline import ParameterSpec, PluginSpec
from markpipe.plugins import FRONT_MATTER_KEY
from markpipe.vfile import VFile

DOCUMENT = """---
title: Guide
---
# Guide

Intro with *emphasis*, **strong** and `code`.

## Install

- step one
- step [two](http://example.com "Two")

```sh
pip install markpipe
```

> Note: a *quote*

***
"""


def table_of_contents(max_depth=6):
    """Insert a list of heading titles after the first heading."""

    def transform(tree, vfile):
        titles = [
            to_text(node) for node in iter_nodes(tree, Heading) if node.depth <= max_depth
        ]
        vfile.data["toc:titles"] = titles
        items = [build("list_item", build("paragraph", title)) for title in titles[1:]]
        first = next(index for index, node in enumerate(tree.children) if isinstance(node, Heading))
        tree.children.insert(first + 1, build("list", *items))

    return transform


TOC_SPEC = PluginSpec(
    name="test-toc",
    factory=table_of_contents,
    description="Insert a table of contents",
    parameters={"max_depth": ParameterSpec(type=int, default=6)},
)


@pytest.mark.integration
class TestPipeline:
    """End-to-end runs over a realistic document."""

    def test_identity_round_trip(self):
        """Test a processor without plugins normalizes but preserves structure."""
        processor = Processor().freeze()
        vfile = processor.process_sync(DOCUMENT)
        assert vfile.messages == ()
        assert processor.parse(vfile.text) == processor.parse(DOCUMENT)

    def test_printer_options_preserve_structure(self):
        """Test different formatting rules give structurally equal output."""
        options = PrinterOptions(bullet="-", emphasis="_", strong="_", fence="~", rule="-", setext=True)
        processor = create_processor(printer_options=options).freeze()
        output = processor.process_sync(DOCUMENT).text
        assert "~~~sh" in output
        assert "Guide\n===" in output
        assert processor.parse(output) == processor.parse(DOCUMENT)

    def test_plugin_chain(self, plugin_registry_snapshot):
        """Test published and ad hoc plugins together."""
        plugin_registry_snapshot.register(TOC_SPEC)
        processor = create_processor(
            plugins=[
                "front-matter",
                ("test-toc", {"max_depth": 2}),
                ("heading-offset", {"offset": 1}),
                "validate-structure",
            ]
        ).freeze()

        vfile = processor.process_sync(VFile(DOCUMENT, path="guide.md"))

        assert vfile.data[FRONT_MATTER_KEY] == {"title": "Guide"}
        assert vfile.data["toc:titles"] == ["Guide", "Install"]
        assert vfile.messages == ()
        assert "## Guide\n\n* Install\n\n" in vfile.text
        assert validate_tree(processor.parse(vfile.text)) == []

    def test_report_for_warnings(self):
        """Test scanner warnings are reported with the file path."""
        vfile = Processor().process_sync(VFile("# Title\n\nSome *broken text", path="notes.md"))
        assert vfile.report() == "notes.md:3:6: warning: Unmatched emphasis delimiter '*' [markpipe-scanner:unmatched-delimiter]"
        assert vfile.text == "# Title\n\nSome \\*broken text\n"

    @pytest.mark.asyncio
    async def test_async_matches_sync(self):
        """Test both entry points give the same result for synchronous plugins."""
        processor = create_processor(plugins=["front-matter", ("heading-offset", {"offset": 1})]).freeze()
        sync_result = processor.process_sync(DOCUMENT)
        async_result = await processor.process(DOCUMENT)
        assert async_result.text == sync_result.text
        assert async_result.data == sync_result.data
