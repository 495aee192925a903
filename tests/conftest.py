"""
Pytest configuration and shared fixtures for http_pipeline tests.
"""

from collections.abc import Callable
from typing import Any

import pytest

from http_pipeline.models import Request


@pytest.fixture
def make_request() -> Callable[..., Request]:
    """Factory for requests against a fixed test host."""

    def factory(method: str = "GET", path: str = "/items", **kwargs: Any) -> Request:
        return Request(method=method, url=f"https://api.test{path}", **kwargs)

    return factory


@pytest.fixture
def sample_request(make_request: Callable[..., Request]) -> Request:
    """Provide a sample GET request for tests."""
    return make_request()
