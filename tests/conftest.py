"""
Shared pytest fixtures and configuration for taskweave tests.

This module provides:
- Automatic ``unit`` marking for tests without an explicit marker
- Settings cache isolation
- Structured log capture
"""

import importlib
import sys
from pathlib import Path
from typing import Any, Generator

import pytest
from structlog.testing import capture_logs

# Ensure taskweave package is importable
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from taskweave.core import settings as settings_module


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Mark all tests without explicit markers as unit tests."""
    for item in items:
        markers = {mark.name for mark in item.iter_markers()}
        if not markers.intersection({"unit", "slow"}):
            item.add_marker(pytest.mark.unit)


@pytest.fixture(autouse=True)
def reset_settings_cache() -> Generator[None, None, None]:
    """Drop any cached TaskweaveSettings between tests."""
    settings_module._settings = None
    yield
    settings_module._settings = None


@pytest.fixture
def captured_logs() -> Generator[list[dict[str, Any]], None, None]:
    """Collect structlog events emitted during the test."""
    with capture_logs() as logs:
        yield logs


@pytest.fixture
def no_sleep(monkeypatch: pytest.MonkeyPatch) -> list[float]:
    """Replace the retry delay primitive; returns the list of requested waits."""
    waits: list[float] = []

    async def _fake_sleep(seconds: float) -> None:
        waits.append(seconds)

    monkeypatch.setattr(importlib.import_module("taskweave.execution.retry"), "sleep", _fake_sleep)
    return waits
