"""
Tests for the Mikan series page scraper.
"""

from unittest.mock import MagicMock, patch

import pytest

from bangumi_sync.errors import ScrapeError
from bangumi_sync.scraper.mikan import MIKAN_URL, MikanScraper, bangumi_id_from_url

SERIES_PAGE = """
<html><body>
<div class="central-container">
  <div class="pull-left leftbar-container">
    <div class="bangumi-poster" style="background-image: url('/images/Bangumi/202404/ab12cd34.jpg?width=400&height=560');"></div>
  </div>
  <div class="pull-left">
    <p class="bangumi-title">狼与香辛料 行商邂逅贤狼 <a class="mikan-rss" href="/RSS/Bangumi?bangumiId=3330" target="_blank"><i class="fa fa-rss-square"></i></a></p>
    <p class="bangumi-info">放送开始：4/2/2024</p>
    <p class="bangumi-info">放送日期：星期一</p>
    <p class="bangumi-info">官方网站：<a href="https://spice-and-wolf.com/">spice-and-wolf.com</a></p>
  </div>
</div>
</body></html>
"""


class TestParseDocument:
    def test_series_page(self):
        info = MikanScraper.parse_document(SERIES_PAGE)

        assert info.id == 3330
        assert info.title == "狼与香辛料 行商邂逅贤狼"
        assert info.weekday == 1
        assert info.poster_url == f"{MIKAN_URL}/images/Bangumi/202404/ab12cd34.jpg"

    def test_sunday_is_seven(self):
        info = MikanScraper.parse_document(SERIES_PAGE.replace("星期一", "星期日"))
        assert info.weekday == 7

    @pytest.mark.parametrize(
        "broken",
        [
            SERIES_PAGE.replace('class="mikan-rss"', 'class="other"'),
            SERIES_PAGE.replace("bangumi-poster", "poster"),
            SERIES_PAGE.replace("放送日期", "放送时间"),
            "<html></html>",
        ],
    )
    def test_missing_fields(self, broken):
        with pytest.raises(ScrapeError):
            MikanScraper.parse_document(broken)


class TestBangumiId:
    def test_reads_query_parameter(self):
        url = "https://mikanani.me/RSS/Bangumi?bangumiId=3330&subgroupid=583"
        assert bangumi_id_from_url(url) == 3330

    def test_missing(self):
        with pytest.raises(ScrapeError):
            bangumi_id_from_url("https://mikanani.me/RSS/Classic")


class TestMikanScraper:
    @patch("bangumi_sync.scraper.mikan.requests.get")
    def test_from_rss_url(self, mock_get):
        mock_get.return_value = MagicMock(text=SERIES_PAGE)

        info = MikanScraper().from_rss_url("https://mikanani.me/RSS/Bangumi?bangumiId=3330")

        assert info.id == 3330
        assert mock_get.call_args.args[0] == f"{MIKAN_URL}/Home/Bangumi/3330"

    @patch("bangumi_sync.scraper.mikan.requests.get")
    def test_id_mismatch(self, mock_get):
        mock_get.return_value = MagicMock(text=SERIES_PAGE)
        with pytest.raises(ScrapeError):
            MikanScraper().from_id(2353)
