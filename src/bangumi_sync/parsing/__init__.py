"""
Release title parsing.

Extracts series names, season, episode and release group from fansub
release titles.
"""

from bangumi_sync.parsing.title_parser import parse_title

__all__ = ["parse_title"]
