"""Pytest configuration and shared fixtures."""

import tempfile
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Iterator

import pytest  # type: ignore[import-not-found]

from worklog.core.catalog import Catalog
from worklog.core.config import ConfigManager
from worklog.core.service import WorklogService
from worklog.core.storage import StorageManager
from worklog.core.tracker import TimeTracker


def pytest_configure(config: pytest.Config) -> None:
    """Configure pytest."""
    config.addinivalue_line("markers", "integration: Integration tests")
    config.addinivalue_line("markers", "slow: Slow tests")


class FakeClock:
    """Settable clock returning aware UTC instants."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: int) -> datetime:
        self.now += timedelta(seconds=seconds)
        return self.now


@pytest.fixture
def temp_dir() -> Iterator[Path]:
    """Create temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def clock() -> FakeClock:
    """Clock starting at 2024-03-01 09:00 UTC."""
    return FakeClock(datetime(2024, 3, 1, 9, 0, tzinfo=timezone.utc))


@pytest.fixture
def storage(temp_dir: Path) -> StorageManager:
    """Storage in a fresh data directory."""
    return StorageManager(temp_dir / "data")


@pytest.fixture
def tracker(storage: StorageManager, clock: FakeClock) -> TimeTracker:
    return TimeTracker(storage, clock=clock)


@pytest.fixture
def catalog(storage: StorageManager, clock: FakeClock) -> Catalog:
    return Catalog(storage, clock=clock)


@pytest.fixture
def config(temp_dir: Path) -> ConfigManager:
    """Configuration stored in the temp directory, reports in UTC."""
    config = ConfigManager(temp_dir / "config.yml")
    config.set("general.timezone", "UTC")
    return config


@pytest.fixture
def service(config: ConfigManager, temp_dir: Path, clock: FakeClock) -> WorklogService:
    return WorklogService.from_config(config, data_dir=temp_dir / "data", clock=clock)
