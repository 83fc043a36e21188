"""Shared pytest fixtures for rttypes tests."""

from __future__ import annotations

import logging

import pytest
from fastapi.testclient import TestClient

from rttypes.memory import heap


def pytest_configure(config: pytest.Config) -> None:
    config.addinivalue_line("markers", "unit: fast, isolated unit tests")


@pytest.fixture(autouse=True)
def _restore_root_logging():
    # CLI commands replace the root handlers; keep tests isolated from each other.
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    try:
        yield
    finally:
        root.handlers = handlers
        root.setLevel(level)


@pytest.fixture
def heap_guard():
    """Fail the test if it leaves heap handles behind."""
    before = heap.live_count()
    yield heap
    assert heap.live_count() == before, f"leaked {heap.live_count() - before} heap handle(s)"


@pytest.fixture(scope="function")
def api_client() -> TestClient:
    """Create a test client for the API."""
    from rttypes.main import api_app

    return TestClient(api_app)
