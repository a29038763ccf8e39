"""
Mikan Project series page scraper.

Resolves a tracked series' metadata (canonical id, display title, poster
and broadcast weekday) from its page on mikanani.me. Used when a series is
added by its RSS URL.

Example:
    >>> scraper = MikanScraper(proxy_url=None)
    >>> info = scraper.from_rss_url("https://mikanani.me/RSS/Bangumi?bangumiId=3330")
    >>> info.title, info.weekday
    ('狼与香辛料 行商邂逅贤狼', 1)
"""

import logging
import re
from dataclasses import dataclass
from typing import Optional
from urllib.parse import parse_qs, urlparse

import requests
from bs4 import BeautifulSoup

from bangumi_sync.errors import ScrapeError
from bangumi_sync.utils import proxies_for

logger = logging.getLogger(__name__)

MIKAN_URL = "https://mikanani.me"
REQUEST_TIMEOUT = 30  # seconds

BANGUMI_ID_RE = re.compile(r"bangumiId=(\d+)")
BROADCAST_LABEL = "放送日期"
WEEKDAYS = "一二三四五六日"


@dataclass
class SeriesInfo:
    """
    Metadata scraped from a series page.

    Attributes:
        id: Mikan bangumi id
        title: Display title
        weekday: Broadcast weekday, 1 (Monday) to 7 (Sunday)
        poster_url: Absolute poster image URL without query string
    """

    id: int
    title: str
    weekday: int
    poster_url: str


def bangumi_id_from_url(url: str) -> int:
    """
    Read the ``bangumiId`` query parameter of a series RSS URL.

    Raises:
        ScrapeError: If the URL carries no numeric bangumiId
    """
    values = parse_qs(urlparse(url).query).get("bangumiId", [])
    if not values or not values[0].isdigit():
        raise ScrapeError(f"No bangumiId in {url}")
    return int(values[0])


class MikanScraper:
    """Fetches and parses Mikan series pages."""

    def __init__(self, proxy_url: Optional[str] = None, timeout: float = REQUEST_TIMEOUT):
        self.proxy_url = proxy_url
        self.timeout = timeout

    def from_id(self, bangumi_id: int) -> SeriesInfo:
        """
        Scrape the series page for one bangumi id.

        Raises:
            ScrapeError: If the page cannot be fetched, does not parse, or
                describes a different series
        """
        url = f"{MIKAN_URL}/Home/Bangumi/{bangumi_id}"
        try:
            response = requests.get(url, proxies=proxies_for(self.proxy_url), timeout=self.timeout)
            response.raise_for_status()
        except requests.RequestException as exc:
            raise ScrapeError(f"Failed to fetch {url}: {exc}") from exc

        info = self.parse_document(response.text)
        if info.id != bangumi_id:
            raise ScrapeError(f"Page {url} describes series {info.id}, expected {bangumi_id}")
        logger.debug("Scraped series %d: %s", info.id, info.title)
        return info

    def from_rss_url(self, url: str) -> SeriesInfo:
        return self.from_id(bangumi_id_from_url(url))

    @staticmethod
    def parse_document(html: str) -> SeriesInfo:
        """
        Extract SeriesInfo from a series page.

        Raises:
            ScrapeError: If any field cannot be located
        """
        soup = BeautifulSoup(html, "html.parser")
        return SeriesInfo(
            id=_parse_id(soup),
            title=_parse_title(soup),
            weekday=_parse_weekday(soup),
            poster_url=_parse_poster_url(soup),
        )


def _parse_id(soup: BeautifulSoup) -> int:
    link = soup.select_one("a.mikan-rss")
    match = BANGUMI_ID_RE.search(link.get("href", "")) if link else None
    if match is None:
        raise ScrapeError("Series id not found")
    return int(match.group(1))


def _parse_title(soup: BeautifulSoup) -> str:
    node = soup.select_one("p.bangumi-title")
    title = node.get_text().strip() if node else ""
    if not title:
        raise ScrapeError("Series title not found")
    return title


def _parse_poster_url(soup: BeautifulSoup) -> str:
    node = soup.select_one("div.bangumi-poster")
    style = node.get("style", "") if node else ""
    parts = style.split("'")
    if len(parts) < 2 or not parts[1]:
        raise ScrapeError("Poster not found")
    return MIKAN_URL + parts[1].split("?")[0]


def _parse_weekday(soup: BeautifulSoup) -> int:
    for node in soup.select("p.bangumi-info"):
        text = node.get_text().strip()
        if text.startswith(BROADCAST_LABEL) and text[-1] in WEEKDAYS:
            return WEEKDAYS.index(text[-1]) + 1
    raise ScrapeError("Broadcast weekday not found")
