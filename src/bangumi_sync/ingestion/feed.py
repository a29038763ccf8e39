"""
Release feed fetching and item extraction.

Fetches a per-series release feed (e.g. a Mikan Project bangumi RSS) and
turns each entry into a FeedItem. The torrent enclosure's filename stem
doubles as the release's deduplication key.

Example:
    >>> source = FeedSource(proxy_url=None)
    >>> channel = source.fetch("https://mikanani.me/RSS/Bangumi?bangumiId=3330")
    >>> for item in channel.items:
    ...     print(item.torrent_hash, item.title)
"""

import logging
from datetime import datetime
from typing import Any, Optional

import feedparser
import requests
from dateutil import parser as date_parser

from bangumi_sync.errors import FeedError
from bangumi_sync.models.entities import FeedChannel, FeedItem
from bangumi_sync.utils import proxies_for

logger = logging.getLogger(__name__)

CHANNEL_PREFIX = "Mikan Project - "
REQUEST_TIMEOUT = 30  # seconds


def torrent_hash_from_url(url: str) -> str:
    """
    Derive the release key from an enclosure URL.

    Example:
        >>> torrent_hash_from_url("https://mikanani.me/Download/20240101/72d528cc.torrent")
        '72d528cc'
    """
    name = url.split("/")[-1]
    return name.split(".")[0]


def _parse_published(entry: Any) -> Optional[datetime]:
    raw_date = entry.get("published") or entry.get("updated") or ""
    if not raw_date:
        return None
    try:
        return date_parser.parse(raw_date)
    except (ValueError, OverflowError):
        logger.debug("Unparseable date %r in feed entry", raw_date)
        return None


def _extract_enclosure_url(entry: Any) -> str:
    enclosures = entry.get("enclosures") or []
    for enc in enclosures:
        url = enc.get("href") or enc.get("url")
        if url:
            return url
    return ""


def extract_item(entry: Any) -> FeedItem:
    """
    Build a FeedItem from a feedparser entry.

    Missing fields become empty strings; an entry without an enclosure
    yields an empty torrent_hash and is skipped by the pipeline.
    """
    torrent_url = _extract_enclosure_url(entry)
    return FeedItem(
        title=entry.get("title") or "",
        link=entry.get("link") or "",
        description=entry.get("summary") or entry.get("description") or "",
        torrent_url=torrent_url,
        torrent_hash=torrent_hash_from_url(torrent_url) if torrent_url else "",
        published=_parse_published(entry),
    )


def parse_feed(content: Any) -> FeedChannel:
    """
    Parse a feed document into a FeedChannel.

    Args:
        content: Raw feed bytes or text

    Raises:
        FeedError: If the document is malformed and contains no entries
    """
    feed = feedparser.parse(content)

    if feed.bozo and not feed.entries:
        raise FeedError(f"Failed to parse RSS feed: {feed.bozo_exception}")

    meta = feed.feed if hasattr(feed, "feed") else {}
    return FeedChannel(
        title=(meta.get("title") or "").replace(CHANNEL_PREFIX, ""),
        link=meta.get("link") or "",
        description=(meta.get("description") or "").replace(CHANNEL_PREFIX, ""),
        items=[extract_item(entry) for entry in feed.entries],
    )


class FeedSource:
    """
    Fetches release feeds over HTTP.

    Attributes:
        proxy_url: Optional proxy for all feed requests
        timeout: Request timeout in seconds
    """

    def __init__(self, proxy_url: Optional[str] = None, timeout: float = REQUEST_TIMEOUT):
        self.proxy_url = proxy_url
        self.timeout = timeout

    def fetch(self, url: str) -> FeedChannel:
        """
        Fetch and parse one feed.

        Raises:
            FeedError: On network errors, HTTP errors, or unparseable feeds
        """
        try:
            response = requests.get(url, proxies=proxies_for(self.proxy_url), timeout=self.timeout)
            response.raise_for_status()
        except requests.RequestException as exc:
            raise FeedError(f"RSS fetch error for {url}: {exc}") from exc

        channel = parse_feed(response.content)
        logger.debug("Fetched %d item(s) from %s", len(channel.items), url)
        return channel
