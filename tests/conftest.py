"""
Pytest fixtures and test configuration for Kheticulture tests.
"""

import logging
from datetime import datetime, timedelta, timezone

import pytest

from kheticulture.config import Settings
from kheticulture.jobs.service import JobService
from kheticulture.jobs.storage import InMemoryJobStorage


class FakeClock:
    """Controllable clock passed to services as ``now_fn``."""

    def __init__(self, start: datetime = None):
        self.now = start or datetime(2024, 3, 1, 8, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


@pytest.fixture(autouse=True)
def isolated_data_dir(tmp_path, monkeypatch):
    """Keep log files and databases inside the test's temp directory."""
    data_dir = tmp_path / "kheticulture-data"
    monkeypatch.setenv("KHETICULTURE_DATA_DIR", str(data_dir))
    return data_dir


@pytest.fixture(autouse=True)
def clean_kheticulture_logger():
    """Remove all handlers from the kheticulture logger before/after each test."""
    logger = logging.getLogger("kheticulture")

    def _reset():
        for handler in list(logger.handlers):
            handler.close()
            logger.removeHandler(handler)
        logger.setLevel(logging.WARNING)

    _reset()
    yield
    _reset()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def settings(isolated_data_dir):
    """Create test configuration."""
    return Settings(data_dir=isolated_data_dir, reapply_cooldown_hours=24)


@pytest.fixture
def storage():
    """Create in-memory storage for testing."""
    return InMemoryJobStorage()


@pytest.fixture
def service(storage, settings, clock):
    """Create job service for testing."""
    return JobService(storage=storage, settings=settings, now_fn=clock)


@pytest.fixture
def make_job(service):
    """Factory posting a job owned by ``farmer-1`` unless told otherwise."""

    def _make(required_workers: int = 1, wage: float = 500.0, owner_id: str = "farmer-1", **kwargs):
        return service.create_job(
            owner_id=owner_id,
            title=kwargs.pop("title", "Paddy transplanting"),
            wage=wage,
            required_workers=required_workers,
            **kwargs,
        )

    return _make
