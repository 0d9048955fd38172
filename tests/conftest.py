"""Pytest configuration and shared fixtures for the markpipe test suite.

This module provides shared fixtures, test configuration, and utilities
that are used across the entire test suite.
"""

import pytest

# Configure Hypothesis for property-based testing
try:
    from hypothesis import Phase, Verbosity, settings

    # Register custom Hypothesis profiles
    settings.register_profile("ci", max_examples=100, verbosity=Verbosity.verbose)
    settings.register_profile("dev", max_examples=20)
    settings.register_profile(
        "debug", max_examples=10, verbosity=Verbosity.verbose, phases=[Phase.explicit, Phase.reuse, Phase.generate]
    )

    # Load profile from environment or use default
    import os

    profile = os.getenv("HYPOTHESIS_PROFILE", "dev")
    settings.load_profile(profile)
except ImportError:
    # Hypothesis not installed, skip configuration
    pass

from markpipe.ast import Emphasis, Heading, Paragraph, Root, Text
from markpipe.parser import MarkdownScanner
from markpipe.pipeline import PluginRegistry
from markpipe.printer import MarkdownPrinter


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "unit: Unit tests - fast, isolated component tests")
    config.addinivalue_line("markers", "integration: Integration tests - component interaction tests")
    config.addinivalue_line("markers", "fuzzing: Property-based tests driven by Hypothesis")


@pytest.fixture
def scanner() -> MarkdownScanner:
    """Provide a scanner with default options."""
    return MarkdownScanner()


@pytest.fixture
def printer() -> MarkdownPrinter:
    """Provide a printer with default options."""
    return MarkdownPrinter()


@pytest.fixture
def title_tree() -> Root:
    """Tree of ``"# Title\\n\\nBody *text*."`` built by hand."""
    return Root(
        children=[
            Heading(depth=1, children=[Text(value="Title")]),
            Paragraph(children=[Text(value="Body "), Emphasis(children=[Text(value="text")]), Text(value=".")]),
        ]
    )


@pytest.fixture
def plugin_registry_snapshot():
    """Yield the plugin registry and restore its contents afterwards."""
    registry = PluginRegistry()
    registry.list_plugins()
    saved = dict(registry._plugins)
    try:
        yield registry
    finally:
        registry._plugins.clear()
        registry._plugins.update(saved)
