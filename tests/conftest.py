"""Shared fixtures for the test suite."""

import pytest
from loguru import logger as _logger

from tag_aggregation.storage import PostStore


@pytest.fixture(autouse=True)
def reset_logger():
    """Drop sinks added during a test."""
    yield
    _logger.remove()


@pytest.fixture
def store():
    """Create an in-memory post store."""
    post_store = PostStore.open()
    yield post_store
    post_store.close()
