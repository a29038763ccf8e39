"""
bangumi-sync

Follows per-series release feeds, submits new episodes to a download
engine, and files them into a season-organized library.
"""

__version__ = "0.1.0"

from bangumi_sync.config import Config

__all__ = ["Config", "__version__"]
