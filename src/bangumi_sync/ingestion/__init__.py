"""Release feed ingestion: feed fetching, torrent retrieval and the poll loop."""

from bangumi_sync.ingestion.downloader import delete_file, download_file, read_info_hash
from bangumi_sync.ingestion.feed import FeedSource, parse_feed
from bangumi_sync.ingestion.pipeline import (
    CycleResult,
    IngestionPipeline,
    SeriesResult,
    chronological,
    run_forever,
)

__all__ = [
    "CycleResult",
    "FeedSource",
    "IngestionPipeline",
    "SeriesResult",
    "chronological",
    "delete_file",
    "download_file",
    "parse_feed",
    "read_info_hash",
    "run_forever",
]
