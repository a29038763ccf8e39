"""
Poll-cycle orchestration: feed item to renamed file in the library.

For every enabled series the pipeline fetches its release feed, walks the
items oldest first, and for each release not seen before:

    parse title -> download torrent file -> submit to engine
        -> wait until the job is registered -> relocate and rename
        -> record the release hash -> notify

Work is strictly sequential; one engine call is outstanding at a time.
A release hash is recorded only after its files were placed, so a failure
anywhere before that simply retries the release on the next cycle.

Example:
    >>> pipeline = IngestionPipeline.from_config(config, store, engine, notifier)
    >>> result = pipeline.run_cycle()
    >>> print(result.to_json())
"""

import json
import logging
import threading
from dataclasses import asdict, dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from bangumi_sync.engine.base import DownloadEngine
from bangumi_sync.errors import DownloadError
from bangumi_sync.ingestion.downloader import delete_file, download_file, read_info_hash
from bangumi_sync.ingestion.feed import FeedSource
from bangumi_sync.models.database import SeriesStore
from bangumi_sync.models.entities import FeedItem, SeriesRecord
from bangumi_sync.notifications.base import NotificationSink
from bangumi_sync.parsing import parse_title

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
#  Results
# ---------------------------------------------------------------------------

@dataclass
class CompletedRelease:
    """
    A release handled during a cycle.

    In a dry run nothing is submitted; the entry only shows where the
    release would be placed.
    """

    torrent_hash: str
    title: str
    save_dir: str
    save_name: str


@dataclass
class SeriesResult:
    """
    Outcome of processing one series.

    Attributes:
        series_id: Series identifier
        title: Series title
        completed: Releases placed into the library (or planned, in a dry run)
        skipped: Items skipped as excluded, hashless or already downloaded
        error: Message of the failure that ended the series early, if any
    """

    series_id: int
    title: str
    completed: List[CompletedRelease] = field(default_factory=list)
    skipped: int = 0
    error: str = ""

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return asdict(self)


@dataclass
class CycleResult:
    """
    Result of one poll over all enabled series.

    Attributes:
        checked_at: ISO-8601 timestamp of the cycle start
        dry_run: True if no side effects were performed
        series: Per-series outcomes in processing order
        errors: Failures, one per series that ended early
    """

    checked_at: str = ""
    dry_run: bool = False
    series: List[SeriesResult] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)

    @property
    def completed_count(self) -> int:
        return sum(len(s.completed) for s in self.series)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "checked_at": self.checked_at,
            "dry_run": self.dry_run,
            "series": [s.to_dict() for s in self.series],
            "errors": self.errors,
            "completed_count": self.completed_count,
        }

    def to_json(self, indent: int = 2) -> str:
        """Serialize to JSON string."""
        return json.dumps(self.to_dict(), indent=indent, ensure_ascii=False)


# ---------------------------------------------------------------------------
#  Helpers
# ---------------------------------------------------------------------------

def chronological(items: Iterable[FeedItem]) -> List[FeedItem]:
    """
    Order feed items oldest first.

    Sorts by publication time when every item carries one; otherwise the
    feed is assumed newest first and its order is reversed.
    """
    items = list(items)
    if items and all(item.published is not None for item in items):
        try:
            return sorted(items, key=lambda item: item.published)
        except TypeError:
            # Mixed naive and aware timestamps
            pass
    return list(reversed(items))


def destination(
    library_dir: Path, series_title: str, season: int, episode: int
) -> Tuple[Path, str]:
    """
    Compute where a release is placed.

    Returns:
        (save_dir, save_name), e.g.
        (library/Frieren/Season 1, "Frieren S01E09")
    """
    save_dir = Path(library_dir) / series_title / f"Season {season}"
    save_name = f"{series_title} S{season:02}E{episode:02}"
    return save_dir, save_name


def scratch_name(torrent_url: str) -> str:
    """Return the file name a torrent URL is saved under."""
    name = torrent_url.rstrip("/").split("/")[-1]
    if not name:
        raise DownloadError(f"Cannot derive a file name from {torrent_url!r}")
    return name


# ---------------------------------------------------------------------------
#  Pipeline
# ---------------------------------------------------------------------------

class IngestionPipeline:
    """
    Sequential release ingestion for all enabled series.

    Attributes:
        store: Series store shared with the command surface
        feed_source: Fetches release feeds
        engine: Download engine the jobs are submitted to
        notifier: Sink for "episode updated" messages
        library_dir: Root of the media library
        tmp_dir: Scratch directory for torrent files
        recipients: Notification recipient ids
    """

    def __init__(
        self,
        store: SeriesStore,
        feed_source: FeedSource,
        engine: DownloadEngine,
        notifier: NotificationSink,
        library_dir: Path,
        tmp_dir: Path,
        recipients: Iterable[int] = (),
        proxy_url: Optional[str] = None,
        timeout: float = 30,
        fetch_file: Callable[..., Path] = download_file,
        read_hash: Callable[[Path], str] = read_info_hash,
    ) -> None:
        self.store = store
        self.feed_source = feed_source
        self.engine = engine
        self.notifier = notifier
        self.library_dir = Path(library_dir)
        self.tmp_dir = Path(tmp_dir)
        self.recipients = list(recipients)
        self.proxy_url = proxy_url
        self.timeout = timeout
        self._fetch_file = fetch_file
        self._read_hash = read_hash

    @classmethod
    def from_config(
        cls,
        config: Any,
        store: SeriesStore,
        engine: DownloadEngine,
        notifier: NotificationSink,
    ) -> "IngestionPipeline":
        """Build a pipeline with the feed source and paths from Config."""
        return cls(
            store=store,
            feed_source=FeedSource(proxy_url=config.proxy_url, timeout=config.request_timeout),
            engine=engine,
            notifier=notifier,
            library_dir=config.library_dir,
            tmp_dir=config.tmp_dir,
            recipients=config.notify_recipients,
            proxy_url=config.proxy_url,
            timeout=config.request_timeout,
        )

    def run_cycle(self, dry_run: bool = False) -> CycleResult:
        """
        Poll every enabled series once.

        A failure ends only the series it occurred in; it is logged and
        recorded in the result, and the cycle moves on to the next series.
        """
        result = CycleResult(checked_at=datetime.now().isoformat(), dry_run=dry_run)

        try:
            series_list = self.store.list_enabled()
        except Exception as exc:
            logger.exception("Could not list enabled series")
            result.errors.append(f"Store error: {exc}")
            return result

        for series in series_list:
            try:
                result.series.append(self.process_series(series, dry_run=dry_run))
            except Exception as exc:
                logger.exception("Series %d (%s) failed", series.id, series.title)
                message = f"Series {series.id} ({series.title}): {exc}"
                result.series.append(
                    SeriesResult(series_id=series.id, title=series.title, error=str(exc))
                )
                result.errors.append(message)

        logger.info(
            "Cycle finished: %d series, %d release(s), %d error(s)",
            len(result.series),
            result.completed_count,
            len(result.errors),
        )
        return result

    def process_series(self, series: SeriesRecord, dry_run: bool = False) -> SeriesResult:
        """
        Process the feed of one series, oldest item first.

        A title that does not parse ends the series for this cycle; the
        items after it are picked up again on the next poll.

        Raises:
            TitleParseError: On the first unparseable title
            BangumiSyncError: On feed, download, engine, store or
                notification failures
        """
        logger.info("Checking series %d (%s)", series.id, series.title)
        result = SeriesResult(series_id=series.id, title=series.title)
        channel = self.feed_source.fetch(series.rss_url)
        downloaded = set(series.downloaded_hashes)

        for item in chronological(channel.items):
            if series.is_excluded(item.title):
                logger.debug("Excluded: %s", item.title)
                result.skipped += 1
                continue
            if not item.torrent_hash:
                logger.debug("No torrent hash: %s", item.title)
                result.skipped += 1
                continue
            if item.torrent_hash in downloaded:
                logger.debug("Already downloaded: %s", item.title)
                result.skipped += 1
                continue

            parsed = parse_title(item.title)
            save_dir, save_name = destination(
                self.library_dir, series.title, parsed.season, parsed.episode
            )
            release = CompletedRelease(
                torrent_hash=item.torrent_hash,
                title=item.title,
                save_dir=str(save_dir),
                save_name=save_name,
            )

            if dry_run:
                logger.info("[dry-run] Would place %s as %s", item.title, save_name)
                result.completed.append(release)
                continue

            logger.info("Starting %s -> %s", item.title, save_name)
            self._ingest(item, save_dir, save_name)
            self.store.update(series.id, append_downloaded_hash=item.torrent_hash)
            downloaded.add(item.torrent_hash)
            logger.info("Completed %s", save_name)
            result.completed.append(release)

            for recipient in self.recipients:
                self.notifier.send(recipient, f"{save_name} updated.")

        return result

    def _ingest(self, item: FeedItem, save_dir: Path, save_name: str) -> None:
        """
        Download, submit, and place one release.

        A job left behind by an earlier failed cycle is not submitted again;
        placement resumes on the existing job.
        """
        scratch_path = self.tmp_dir / scratch_name(item.torrent_url)
        try:
            self._fetch_file(
                item.torrent_url, scratch_path, proxy_url=self.proxy_url, timeout=self.timeout
            )
            job_id = self._read_hash(scratch_path)
            if self.engine.has_job(job_id):
                logger.info("Job %s already submitted, resuming placement", job_id)
            else:
                self.engine.add_by_file(scratch_path)
        finally:
            delete_file(scratch_path)

        self.engine.wait_until_ready(job_id)
        self.engine.move_files(job_id, save_dir, save_name)


def run_forever(
    pipeline: IngestionPipeline,
    interval: float,
    stop_event: Optional[threading.Event] = None,
    dry_run: bool = False,
) -> None:
    """
    Run poll cycles every ``interval`` seconds until stop_event is set.

    Errors never end the loop; a cycle that raises is logged and the next
    one runs on schedule.
    """
    stop_event = stop_event or threading.Event()
    logger.info("Polling every %ss", interval)
    while not stop_event.is_set():
        try:
            pipeline.run_cycle(dry_run=dry_run)
        except Exception:
            logger.exception("Poll cycle failed")
        stop_event.wait(interval)
    logger.info("Poll loop stopped")
