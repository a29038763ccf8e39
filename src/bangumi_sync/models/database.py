"""
Persisted series store backed by SQLite.

The poll loop and the command surface both read and mutate series records.
Every access goes through SeriesStore, which serializes callers in-process
with a re-entrant lock and across processes with ``BEGIN IMMEDIATE`` write
transactions. Reads run inside a single transaction so a record is always
assembled from one consistent snapshot of the three tables.
"""

import logging
import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Iterable, Iterator, List, Optional

from bangumi_sync.errors import SeriesExistsError, SeriesNotFoundError
from bangumi_sync.models.entities import SeriesRecord
from bangumi_sync.models.schema import create_all_tables

logger = logging.getLogger(__name__)

_UNSET = object()


class SeriesStore:
    """
    Database connection and series record management.

    Mutations are field-level: toggling ``enabled``, replacing the exclusion
    word list, and appending a downloaded hash each touch only their own
    rows, so concurrent writers of different fields never clobber each other.

    Example:
        >>> store = SeriesStore(Path("data/db/bangumi.db"))
        >>> store.initialize()
        >>> store.insert(SeriesRecord(id=3330, title="Spice and Wolf", rss_url=url))
        >>> store.update(3330, append_downloaded_hash="72d528cc")
    """

    def __init__(self, db_path: Path, timeout: float = 30.0):
        """
        Initialize the store.

        Args:
            db_path: Path to SQLite database file
            timeout: Seconds to wait for another process holding the write lock
        """
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self.timeout = timeout
        self._lock = threading.RLock()

    def initialize(self) -> None:
        """Create all tables if they don't exist. Safe to call multiple times."""
        create_all_tables(self.db_path)

    @contextmanager
    def get_connection(self, write: bool = False) -> Iterator[sqlite3.Connection]:
        """
        Context manager yielding a connection inside one transaction.

        Args:
            write: Take the database write lock up front (``BEGIN IMMEDIATE``)

        Yields:
            sqlite3.Connection: Database connection with row factory set
        """
        with self._lock:
            conn = sqlite3.connect(
                str(self.db_path), timeout=self.timeout, isolation_level=None
            )
            try:
                conn.row_factory = sqlite3.Row
                conn.execute("PRAGMA foreign_keys = ON")
                conn.execute("BEGIN IMMEDIATE" if write else "BEGIN")
                try:
                    yield conn
                    conn.execute("COMMIT")
                except Exception:
                    conn.execute("ROLLBACK")
                    raise
            finally:
                conn.close()

    # -------------------------------------------------------------------
    #  Reads
    # -------------------------------------------------------------------

    def get(self, series_id: int) -> Optional[SeriesRecord]:
        """Return the series with this id, or None if it is not tracked."""
        with self.get_connection() as conn:
            row = conn.execute(
                "SELECT * FROM series WHERE id = ?", (series_id,)
            ).fetchone()
            if row is None:
                return None
            return self._load_record(conn, row)

    def exists(self, series_id: int) -> bool:
        with self.get_connection() as conn:
            return self._exists(conn, series_id)

    def list_all(self) -> List[SeriesRecord]:
        """Return every tracked series ordered by id."""
        with self.get_connection() as conn:
            rows = conn.execute("SELECT * FROM series ORDER BY id").fetchall()
            return [self._load_record(conn, row) for row in rows]

    def list_enabled(self) -> List[SeriesRecord]:
        """Return the series whose feeds should be polled."""
        with self.get_connection() as conn:
            rows = conn.execute(
                "SELECT * FROM series WHERE enabled = 1 ORDER BY id"
            ).fetchall()
            return [self._load_record(conn, row) for row in rows]

    def is_downloaded(self, series_id: int, torrent_hash: str) -> bool:
        """
        Check whether a release hash is recorded for a series.

        Raises:
            SeriesNotFoundError: If the series does not exist
        """
        with self.get_connection() as conn:
            if not self._exists(conn, series_id):
                raise SeriesNotFoundError(series_id)
            row = conn.execute(
                "SELECT 1 FROM downloaded_hashes WHERE series_id = ? AND hash = ?",
                (series_id, torrent_hash),
            ).fetchone()
            return row is not None

    # -------------------------------------------------------------------
    #  Writes
    # -------------------------------------------------------------------

    def insert(self, record: SeriesRecord) -> None:
        """
        Insert a new series record.

        Raises:
            SeriesExistsError: If a series with the same id is already tracked
        """
        with self.get_connection(write=True) as conn:
            if self._exists(conn, record.id):
                raise SeriesExistsError(record.id)
            conn.execute(
                """
                INSERT INTO series (id, title, weekday, poster_url, rss_url, enabled)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    record.id,
                    record.title,
                    record.weekday,
                    record.poster_url,
                    record.rss_url,
                    int(record.enabled),
                ),
            )
            self._write_exclude_words(conn, record.id, record.exclude_words)
            conn.executemany(
                "INSERT INTO downloaded_hashes (series_id, hash) VALUES (?, ?)",
                [(record.id, h) for h in sorted(record.downloaded_hashes)],
            )
        logger.info("Inserted series %d (%s)", record.id, record.title)

    def delete(self, series_id: int) -> None:
        """
        Delete a series and everything recorded for it.

        Raises:
            SeriesNotFoundError: If the series does not exist
        """
        with self.get_connection(write=True) as conn:
            if not self._exists(conn, series_id):
                raise SeriesNotFoundError(series_id)
            conn.execute("DELETE FROM series WHERE id = ?", (series_id,))
        logger.info("Deleted series %d", series_id)

    def update(
        self,
        series_id: int,
        enabled=_UNSET,
        exclude_words=_UNSET,
        append_downloaded_hash=_UNSET,
    ) -> None:
        """
        Apply field-level changes to one series in a single transaction.

        Args:
            series_id: Series to modify
            enabled: New value of the enabled flag
            exclude_words: Replacement list of exclusion substrings
            append_downloaded_hash: Release hash to add to the downloaded set

        Raises:
            SeriesNotFoundError: If the series does not exist
        """
        with self.get_connection(write=True) as conn:
            if not self._exists(conn, series_id):
                raise SeriesNotFoundError(series_id)

            if enabled is not _UNSET:
                conn.execute(
                    "UPDATE series SET enabled = ?, updated_at = datetime('now') WHERE id = ?",
                    (int(bool(enabled)), series_id),
                )
            if exclude_words is not _UNSET:
                self._write_exclude_words(conn, series_id, exclude_words)
                conn.execute(
                    "UPDATE series SET updated_at = datetime('now') WHERE id = ?",
                    (series_id,),
                )
            if append_downloaded_hash is not _UNSET:
                # The set only grows; re-appending is a no-op.
                conn.execute(
                    "INSERT OR IGNORE INTO downloaded_hashes (series_id, hash) VALUES (?, ?)",
                    (series_id, append_downloaded_hash),
                )

    # -------------------------------------------------------------------
    #  Helpers
    # -------------------------------------------------------------------

    @staticmethod
    def _exists(conn: sqlite3.Connection, series_id: int) -> bool:
        row = conn.execute("SELECT 1 FROM series WHERE id = ?", (series_id,)).fetchone()
        return row is not None

    @staticmethod
    def _write_exclude_words(
        conn: sqlite3.Connection, series_id: int, words: Iterable[str]
    ) -> None:
        conn.execute("DELETE FROM series_exclude_words WHERE series_id = ?", (series_id,))
        conn.executemany(
            "INSERT INTO series_exclude_words (series_id, position, word) VALUES (?, ?, ?)",
            [(series_id, pos, word) for pos, word in enumerate(words)],
        )

    @staticmethod
    def _load_record(conn: sqlite3.Connection, row: sqlite3.Row) -> SeriesRecord:
        words = conn.execute(
            "SELECT word FROM series_exclude_words WHERE series_id = ? ORDER BY position",
            (row["id"],),
        ).fetchall()
        hashes = conn.execute(
            "SELECT hash FROM downloaded_hashes WHERE series_id = ?",
            (row["id"],),
        ).fetchall()
        return SeriesRecord(
            id=row["id"],
            title=row["title"],
            weekday=row["weekday"],
            poster_url=row["poster_url"],
            rss_url=row["rss_url"],
            enabled=bool(row["enabled"]),
            exclude_words=tuple(w["word"] for w in words),
            downloaded_hashes=frozenset(h["hash"] for h in hashes),
        )
