"""
Download engine integration.

Provides the engine interface, the qBittorrent WebAPI client, and the
file selection rules applied when a job is filed into the library.
"""

from bangumi_sync.engine.base import DownloadEngine
from bangumi_sync.engine.file_selector import select_files
from bangumi_sync.engine.qbittorrent import QbittorrentClient

__all__ = ["DownloadEngine", "QbittorrentClient", "select_files"]
