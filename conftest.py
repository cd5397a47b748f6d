"""
Root pytest configuration.
"""

from __future__ import annotations

from collections.abc import Generator
from typing import Any

import pytest


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers for test categorization."""
    config.addinivalue_line(
        "markers",
        "critical: Tests that must never fail - core functionality",
    )
    config.addinivalue_line(
        "markers",
        "integration: Tests exercising several components together",
    )
    config.addinivalue_line(
        "markers",
        "property: Property-based tests (may be slow)",
    )


@pytest.fixture(autouse=True)
def reset_diagnostics() -> Generator[None, None, None]:
    """Reset the diagnostics enabled-cache and writer around each test.

    The enabled flag is cached on first use; without this reset a test that
    disables diagnostics would leak that state into later tests.
    """
    from fanlog.core import diagnostics

    diagnostics._reset_for_tests()
    yield
    diagnostics._reset_for_tests()


@pytest.fixture
def captured_diagnostics() -> Generator[list[dict[str, Any]], None, None]:
    """Collect diagnostics payloads instead of writing them to stderr."""
    from fanlog.core import diagnostics

    captured: list[dict[str, Any]] = []
    diagnostics.configure(enabled=True)
    diagnostics.set_writer_for_tests(captured.append)
    yield captured
