"""Pytest configuration shared across the suite."""

from datetime import datetime, timezone

import pytest

try:
    from . import _bootstrap  # noqa: F401
except ImportError:  # pragma: no cover - rootdir-relative import
    import _bootstrap  # type: ignore # noqa: F401

from fakes import FakeClock


@pytest.fixture
def anyio_backend() -> str:
    """Force AnyIO-powered tests to run against asyncio backend only."""
    return "asyncio"


@pytest.fixture
def clock() -> FakeClock:
    """Controllable clock starting at a fixed instant."""
    return FakeClock(datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc))
