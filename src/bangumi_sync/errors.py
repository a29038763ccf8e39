"""
Exception hierarchy for bangumi-sync.

Title parsing and file selection errors are per-release outcomes; engine,
feed, download and store errors end the current series for this poll
cycle. The poll loop catches all of them at the per-series boundary.
"""

from typing import Optional


class BangumiSyncError(Exception):
    """Base exception for all bangumi-sync errors."""


# ---------------------------------------------------------------------------
#  Title parsing
# ---------------------------------------------------------------------------

class TitleParseError(BangumiSyncError):
    """Raised when a release title cannot be turned into a ParseResult."""

    reason = "Failed to parse release title"

    def __init__(self, title: str = "") -> None:
        self.title = title
        super().__init__(f"{self.reason}: {title!r}" if title else self.reason)


class InvalidInputError(TitleParseError):
    reason = "Invalid input"


class InvalidSeasonError(TitleParseError):
    reason = "Failed to parse season info"


class InvalidTitleError(TitleParseError):
    reason = "Failed to parse title"


class InvalidEpisodeError(TitleParseError):
    reason = "Failed to parse episode"


# ---------------------------------------------------------------------------
#  File selection
# ---------------------------------------------------------------------------

class FileSelectionError(BangumiSyncError):
    """Raised when the files of a download job cannot be renamed."""


class NoFileToRenameError(FileSelectionError):
    def __init__(self) -> None:
        super().__init__("No file to rename")


class FileNameError(FileSelectionError):
    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Failed to parse file name {name}")


# ---------------------------------------------------------------------------
#  External collaborators
# ---------------------------------------------------------------------------

class EngineError(BangumiSyncError):
    """Raised when the download engine rejects or fails a request."""


class EngineAuthError(EngineError):
    """Raised when the download engine refuses the configured credentials."""


class JobNotReadyError(EngineError):
    """Raised when a submitted job is not registered within the timeout."""

    def __init__(self, job_id: str, timeout: float) -> None:
        self.job_id = job_id
        self.timeout = timeout
        super().__init__(f"Job {job_id} not ready after {timeout:.1f}s")


class FeedError(BangumiSyncError):
    """Raised when a release feed cannot be fetched or parsed."""


class DownloadError(BangumiSyncError):
    """Raised when a file cannot be retrieved or read."""


class ScrapeError(BangumiSyncError):
    """Raised when a series page does not contain the expected metadata."""


class NotificationError(BangumiSyncError):
    """Raised when a notification cannot be delivered."""


# ---------------------------------------------------------------------------
#  Store
# ---------------------------------------------------------------------------

class StoreError(BangumiSyncError):
    """Raised on persisted store failures."""


class SeriesNotFoundError(StoreError):
    def __init__(self, series_id: Optional[int]) -> None:
        self.series_id = series_id
        super().__init__(f"Series {series_id} not found")


class SeriesExistsError(StoreError):
    def __init__(self, series_id: Optional[int]) -> None:
        self.series_id = series_id
        super().__init__(f"Series {series_id} already exists")
