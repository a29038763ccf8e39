"""Series metadata scraping."""

from bangumi_sync.scraper.mikan import MikanScraper, SeriesInfo, bangumi_id_from_url

__all__ = ["MikanScraper", "SeriesInfo", "bangumi_id_from_url"]
