"""
Pytest configuration and shared fixtures.
"""

from collections.abc import Callable, Generator
from typing import Any

import pytest
from prometheus_client import CollectorRegistry

from drainqueue.config import get_settings
from drainqueue.observability.metrics import QueueMetrics
from drainqueue.types import QueueOptions


@pytest.fixture(autouse=True)
def reset_settings_cache() -> Generator[None]:
    """Make every test read settings from its own environment."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def registry() -> CollectorRegistry:
    """Create an isolated metrics registry."""
    return CollectorRegistry()


@pytest.fixture
def metrics(registry: CollectorRegistry) -> QueueMetrics:
    """Create a metrics collector bound to the isolated registry."""
    return QueueMetrics(registry=registry)


@pytest.fixture
def make_options() -> Callable[..., QueueOptions]:
    """Factory for queue options with test defaults."""

    def factory(**overrides: Any) -> QueueOptions:
        values: dict[str, Any] = {"name": "test", "index_name": "id"}
        values.update(overrides)
        return QueueOptions(**values)

    return factory

