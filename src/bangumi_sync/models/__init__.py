"""
Data models and series store.

Provides the SQLite schema, the lock-guarded series store, and the value
types that flow through a poll cycle.
"""

from bangumi_sync.models.database import SeriesStore
from bangumi_sync.models.schema import create_all_tables, get_table_names, SCHEMA_SQL
from bangumi_sync.models.entities import (
    DownloadFileEntry,
    FeedChannel,
    FeedItem,
    FileSelection,
    ParseResult,
    SeriesRecord,
)

__all__ = [
    "SeriesStore",
    "create_all_tables",
    "get_table_names",
    "SCHEMA_SQL",
    "DownloadFileEntry",
    "FeedChannel",
    "FeedItem",
    "FileSelection",
    "ParseResult",
    "SeriesRecord",
]
