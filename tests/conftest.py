"""Shared fixtures."""

from typing import Any

import pytest


@pytest.fixture
def provider_requests() -> list[dict[str, Any]]:
    """JSON bodies received by the fake provider, in order."""
    return []
