"""
Tests for the SQLite series store.

Covers:
- Insert / get / delete round trip
- Exists and not-found outcomes
- Field-level updates and idempotent hash appends
- Concurrent writers of different fields
- Connection release when a transaction cannot start
"""

import sqlite3
import threading
from unittest.mock import MagicMock, patch

import pytest

from bangumi_sync.errors import SeriesExistsError, SeriesNotFoundError
from bangumi_sync.models.database import SeriesStore
from bangumi_sync.models.entities import SeriesRecord
from bangumi_sync.models.schema import get_table_names


class TestSeriesStore:
    def test_initialize_creates_tables(self, store):
        assert {"series", "series_exclude_words", "downloaded_hashes"} <= set(
            get_table_names(store.db_path)
        )

    def test_insert_and_get(self, store, sample_series):
        record = sample_series.model_copy(
            update={"exclude_words": ("720p", "CHT"), "downloaded_hashes": frozenset({"h1"})}
        )
        store.insert(record)

        loaded = store.get(record.id)
        assert loaded.model_dump() == record.model_dump()
        assert loaded.exclude_words == ("720p", "CHT")

    def test_get_missing_returns_none(self, store):
        assert store.get(1) is None
        assert store.exists(1) is False

    def test_insert_duplicate(self, store, sample_series):
        store.insert(sample_series)
        with pytest.raises(SeriesExistsError):
            store.insert(sample_series)

    def test_delete(self, store, sample_series):
        store.insert(sample_series)
        store.update(sample_series.id, append_downloaded_hash="h1")
        store.delete(sample_series.id)

        assert store.get(sample_series.id) is None
        # Re-adding starts from a clean downloaded set
        store.insert(sample_series)
        assert store.get(sample_series.id).downloaded_hashes == frozenset()

    def test_delete_missing(self, store):
        with pytest.raises(SeriesNotFoundError):
            store.delete(42)

    def test_list_enabled(self, store, sample_series):
        store.insert(sample_series)
        store.insert(SeriesRecord(id=1, title="Other", rss_url="u", enabled=False))

        assert [r.id for r in store.list_all()] == [1, 3330]
        assert [r.id for r in store.list_enabled()] == [3330]


class TestUpdate:
    def test_toggle_enabled(self, store, sample_series):
        store.insert(sample_series)
        store.update(sample_series.id, enabled=False)
        assert store.get(sample_series.id).enabled is False

    def test_replace_exclude_words(self, store, sample_series):
        store.insert(sample_series.model_copy(update={"exclude_words": ("a", "b")}))
        store.update(sample_series.id, exclude_words=["c"])
        assert store.get(sample_series.id).exclude_words == ("c",)

    def test_append_hash_is_idempotent(self, store, sample_series):
        store.insert(sample_series)
        store.update(sample_series.id, append_downloaded_hash="h1")
        store.update(sample_series.id, append_downloaded_hash="h1")

        assert store.get(sample_series.id).downloaded_hashes == frozenset({"h1"})
        assert store.is_downloaded(sample_series.id, "h1") is True
        assert store.is_downloaded(sample_series.id, "h2") is False

    def test_update_missing(self, store):
        with pytest.raises(SeriesNotFoundError):
            store.update(7, enabled=True)

    def test_is_downloaded_missing_series(self, store):
        with pytest.raises(SeriesNotFoundError):
            store.is_downloaded(7, "h1")

    def test_fields_updated_independently(self, store, sample_series):
        store.insert(sample_series)
        store.update(sample_series.id, append_downloaded_hash="h1")
        store.update(sample_series.id, enabled=False)

        record = store.get(sample_series.id)
        assert record.enabled is False
        assert record.downloaded_hashes == frozenset({"h1"})

    def test_concurrent_writers(self, store, sample_series):
        store.insert(sample_series)

        def append(start):
            for i in range(start, start + 20):
                store.update(sample_series.id, append_downloaded_hash=f"h{i}")

        def toggle():
            for i in range(20):
                store.update(sample_series.id, enabled=bool(i % 2))

        threads = [
            threading.Thread(target=append, args=(0,)),
            threading.Thread(target=append, args=(20,)),
            threading.Thread(target=toggle),
        ]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        record = store.get(sample_series.id)
        assert len(record.downloaded_hashes) == 40
        assert record.enabled is True

    @patch("bangumi_sync.models.database.sqlite3.connect")
    def test_connection_closed_when_begin_fails(self, mock_connect, tmp_path):
        conn = MagicMock()

        def execute(sql, *args):
            if sql == "BEGIN IMMEDIATE":
                raise sqlite3.OperationalError("database is locked")
            return MagicMock()

        conn.execute.side_effect = execute
        mock_connect.return_value = conn
        store = SeriesStore(tmp_path / "db" / "bangumi.db", timeout=0.1)

        with pytest.raises(sqlite3.OperationalError, match="locked"):
            store.update(3330, enabled=False)

        conn.close.assert_called_once()


class TestSeriesRecord:
    def test_blank_title_rejected(self):
        with pytest.raises(ValueError):
            SeriesRecord(id=1, title="  ", rss_url="u")

    def test_is_excluded_ignores_empty_words(self):
        record = SeriesRecord(id=1, title="T", rss_url="u", exclude_words=("", "720p"))
        assert record.is_excluded("[Sub] T - 01 [720p]") is True
        assert record.is_excluded("[Sub] T - 01 [1080p]") is False
