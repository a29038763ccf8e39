"""
Tests for feed fetching and item extraction.

Covers:
- Parsing a Mikan-style RSS document
- Hash derivation from enclosure URLs
- Malformed feeds and HTTP failures
"""

from datetime import datetime
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest
import requests

from bangumi_sync.errors import FeedError
from bangumi_sync.ingestion.feed import (
    FeedSource,
    extract_item,
    parse_feed,
    torrent_hash_from_url,
)

MIKAN_RSS = """<?xml version="1.0" encoding="utf-8"?>
<rss version="2.0">
  <channel>
    <title>Mikan Project - 狼与香辛料 行商邂逅贤狼</title>
    <link>http://mikanani.me/RSS/Bangumi?bangumiId=3330</link>
    <description>Mikan Project - 狼与香辛料 行商邂逅贤狼</description>
    <item>
      <guid isPermaLink="false">[ANi] Spice and Wolf - 02 [1080P]</guid>
      <link>https://mikanani.me/Home/Episode/83e639dd</link>
      <title>[ANi] Spice and Wolf - 02 [1080P]</title>
      <description>[ANi] Spice and Wolf - 02 [1080P][358.5 MB]</description>
      <pubDate>Tue, 09 Apr 2024 00:11:00 +0000</pubDate>
      <enclosure type="application/x-bittorrent" length="375914496"
                 url="https://mikanani.me/Download/20240409/83e639dd.torrent" />
    </item>
    <item>
      <guid isPermaLink="false">[ANi] Spice and Wolf - 01 [1080P]</guid>
      <link>https://mikanani.me/Home/Episode/72d528cc</link>
      <title>[ANi] Spice and Wolf - 01 [1080P]</title>
      <description>[ANi] Spice and Wolf - 01 [1080P][361.2 MB]</description>
      <pubDate>Tue, 02 Apr 2024 00:11:00 +0000</pubDate>
      <enclosure type="application/x-bittorrent" length="378745651"
                 url="https://mikanani.me/Download/20240402/72d528cc.torrent" />
    </item>
  </channel>
</rss>
"""


def _entry(**fields):
    return dict(fields)


class TestTorrentHash:
    def test_filename_stem(self):
        url = "https://mikanani.me/Download/20240402/72d528cc2048bbdf.torrent"
        assert torrent_hash_from_url(url) == "72d528cc2048bbdf"

    def test_no_extension(self):
        assert torrent_hash_from_url("https://x/abc") == "abc"


class TestExtractItem:
    def test_entry_without_enclosure(self):
        item = extract_item(_entry(title="[ANi] T - 01"))
        assert item.torrent_url == ""
        assert item.torrent_hash == ""
        assert item.published is None

    def test_unparseable_date(self):
        item = extract_item(_entry(title="T", published="not a date"))
        assert item.published is None

    def test_first_enclosure_wins(self):
        item = extract_item(_entry(
            title="T",
            enclosures=[{"href": "https://x/a.torrent"}, {"href": "https://x/b.torrent"}],
        ))
        assert item.torrent_hash == "a"


class TestParseFeed:
    def test_mikan_feed(self):
        channel = parse_feed(MIKAN_RSS.encode("utf-8"))

        assert channel.title == "狼与香辛料 行商邂逅贤狼"
        assert [item.torrent_hash for item in channel.items] == ["83e639dd", "72d528cc"]
        first = channel.items[0]
        assert first.title == "[ANi] Spice and Wolf - 02 [1080P]"
        assert first.link == "https://mikanani.me/Home/Episode/83e639dd"
        assert first.torrent_url == "https://mikanani.me/Download/20240409/83e639dd.torrent"
        assert first.published.replace(tzinfo=None) == datetime(2024, 4, 9, 0, 11)

    @patch("bangumi_sync.ingestion.feed.feedparser.parse")
    def test_malformed_feed(self, mock_parse):
        mock_parse.return_value = SimpleNamespace(
            bozo=1, bozo_exception=Exception("not well-formed"), entries=[], feed={}
        )
        with pytest.raises(FeedError, match="not well-formed"):
            parse_feed(b"<rss")

    @patch("bangumi_sync.ingestion.feed.feedparser.parse")
    def test_bozo_feed_with_entries_is_accepted(self, mock_parse):
        mock_parse.return_value = SimpleNamespace(
            bozo=1,
            bozo_exception=Exception("encoding mismatch"),
            entries=[_entry(title="T")],
            feed={"title": "Mikan Project - T"},
        )
        channel = parse_feed(b"...")
        assert channel.title == "T"
        assert len(channel.items) == 1


class TestFeedSource:
    @patch("bangumi_sync.ingestion.feed.requests.get")
    def test_fetch(self, mock_get):
        mock_get.return_value = MagicMock(content=MIKAN_RSS.encode("utf-8"))

        channel = FeedSource(proxy_url="http://proxy:8080", timeout=5).fetch("https://feed")

        assert len(channel.items) == 2
        mock_get.assert_called_once_with(
            "https://feed",
            proxies={"http": "http://proxy:8080", "https": "http://proxy:8080"},
            timeout=5,
        )

    @patch("bangumi_sync.ingestion.feed.requests.get")
    def test_network_error(self, mock_get):
        mock_get.side_effect = requests.ConnectionError("down")
        with pytest.raises(FeedError, match="RSS fetch error"):
            FeedSource().fetch("https://feed")

    @patch("bangumi_sync.ingestion.feed.requests.get")
    def test_http_error(self, mock_get):
        response = MagicMock()
        response.raise_for_status.side_effect = requests.HTTPError("404")
        mock_get.return_value = response
        with pytest.raises(FeedError):
            FeedSource().fetch("https://feed")
