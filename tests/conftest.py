"""
Shared test fixtures.

Provides pytest fixtures for common test resources including:
- A temporary series store
- A sample series record
- In-memory fakes for the feed source, download engine and notifier
"""

from pathlib import Path
from typing import Dict, List, Set, Tuple, Union

import pytest

from bangumi_sync.engine.base import DownloadEngine
from bangumi_sync.models.database import SeriesStore
from bangumi_sync.models.entities import DownloadFileEntry, FeedChannel, SeriesRecord
from bangumi_sync.notifications.base import NotificationSink

RSS_URL = "https://mikanani.me/RSS/Bangumi?bangumiId=3330"


class FakeEngine(DownloadEngine):
    """Records every call; serves file lists from ``files``. ``jobs`` holds known job ids."""

    def __init__(self, files: Dict[str, List[DownloadFileEntry]] = None):
        self.files = files or {}
        self.jobs: Set[str] = set()
        self.calls: List[Tuple] = []

    def has_job(self, job_id) -> bool:
        return job_id in self.jobs

    def add_by_file(self, path: Union[str, Path]) -> None:
        self.calls.append(("add_by_file", Path(path).name))

    def set_location(self, job_id, location) -> None:
        self.calls.append(("set_location", job_id, str(location)))

    def list_files(self, job_id):
        self.calls.append(("list_files", job_id))
        return self.files.get(job_id, [DownloadFileEntry("video.mkv", 1000)])

    def rename_file(self, job_id, old_path, new_path) -> None:
        self.calls.append(("rename_file", job_id, old_path, new_path))

    def rename_job(self, job_id, name) -> None:
        self.calls.append(("rename_job", job_id, name))

    def wait_until_ready(self, job_id, timeout=None, poll_interval=None) -> None:
        self.calls.append(("wait_until_ready", job_id))


class FakeFeedSource:
    """Serves prepared channels keyed by URL."""

    def __init__(self, channels: Dict[str, FeedChannel] = None):
        self.channels = channels or {}
        self.fetched: List[str] = []

    def fetch(self, url: str) -> FeedChannel:
        self.fetched.append(url)
        channel = self.channels[url]
        if isinstance(channel, Exception):
            raise channel
        return channel


class FakeNotifier(NotificationSink):
    def __init__(self):
        self.sent: List[Tuple[int, str]] = []

    def send(self, recipient_id: int, text: str) -> None:
        self.sent.append((recipient_id, text))


@pytest.fixture
def store(tmp_path: Path) -> SeriesStore:
    """
    Create an initialized store in a temporary directory.

    Returns:
        SeriesStore: Empty, ready-to-use store
    """
    series_store = SeriesStore(tmp_path / "db" / "bangumi.db")
    series_store.initialize()
    return series_store


@pytest.fixture
def sample_series() -> SeriesRecord:
    return SeriesRecord(
        id=3330,
        title="Spice and Wolf",
        weekday=1,
        poster_url="https://mikanani.me/images/Bangumi/202404/abcd.jpg",
        rss_url=RSS_URL,
    )


@pytest.fixture
def fake_engine() -> FakeEngine:
    return FakeEngine()


@pytest.fixture
def fake_notifier() -> FakeNotifier:
    return FakeNotifier()
