#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# tests/integration/test_concurrency.py
"""Integration tests for sharing one frozen processor between concurrent runs.

A frozen processor holds no per-document state; every run gets its own
VFile, tree and data sidecar. These tests run many documents through one
processor from threads and from asyncio tasks and check that no run sees
another run's data.
"""

import asyncio
from concurrent.futures import ThreadPoolExecutor

import pytest

from markpipe import create_processor
from markpipe.plugins import FRONT_MATTER_KEY


def tag_title():
    """Copy the front matter title into the first heading, after yielding."""

    async def transform(tree, vfile):
        await asyncio.sleep(0)
        title = vfile.data[FRONT_MATTER_KEY]["title"]
        vfile.data.setdefault("tag:seen", []).append(title)
        heading = tree.children[1]
        heading.children[0].value = title

    return transform


def tag_title_sync():
    """Synchronous version of ``tag_title``."""

    def transform(tree, vfile):
        title = vfile.data[FRONT_MATTER_KEY]["title"]
        vfile.data.setdefault("tag:seen", []).append(title)
        tree.children[1].children[0].value = title

    return transform


def _document(number):
    return f"---\ntitle: doc{number}\n---\n# placeholder\n\nBody {number}"


def _expected(number):
    return f"---\ntitle: doc{number}\n---\n\n## doc{number}\n\nBody {number}\n"


@pytest.mark.integration
class TestConcurrentProcessing:
    """Tests for concurrent use of one frozen processor."""

    def test_threads(self):
        """Test documents processed from many threads stay separate."""
        processor = create_processor(
            plugins=["front-matter", tag_title_sync, ("heading-offset", {"offset": 1})]
        ).freeze()

        with ThreadPoolExecutor(max_workers=8) as executor:
            results = list(executor.map(processor.process_sync, [_document(n) for n in range(50)]))

        for number, vfile in enumerate(results):
            assert vfile.text == _expected(number)
            assert vfile.data["tag:seen"] == [f"doc{number}"]
            assert vfile.messages == ()

    @pytest.mark.asyncio
    async def test_asyncio_gather(self):
        """Test interleaved asynchronous runs stay separate."""
        processor = create_processor(
            plugins=["front-matter", tag_title, ("heading-offset", {"offset": 1})]
        ).freeze()

        results = await asyncio.gather(*(processor.process(_document(n)) for n in range(50)))

        for number, vfile in enumerate(results):
            assert vfile.text == _expected(number)
            assert vfile.data["tag:seen"] == [f"doc{number}"]

    @pytest.mark.asyncio
    async def test_cancel_one_of_many(self):
        """Test cancelling one run leaves the others untouched."""
        processor = create_processor(plugins=["front-matter", tag_title]).freeze()
        cancel = asyncio.Event()
        cancel.set()

        results = await asyncio.gather(
            processor.process(_document(1)),
            processor.process(_document(2), cancel=cancel),
            processor.process(_document(3)),
        )

        assert results[0].result is not None
        assert results[1].result is None
        assert results[1].messages[-1].rule_id == "cancelled"
        assert results[2].result is not None
        assert all(message.rule_id != "cancelled" for message in results[2].messages)
