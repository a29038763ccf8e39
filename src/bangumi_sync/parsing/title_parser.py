"""
Release title parser.

Turns fansub release names such as::

    [ANi] 我内心的糟糕念头 第二季 - 13 [1080P][Baha][WEB-DL][AAC AVC][CHT][MP4]

into a ParseResult (series name in up to three languages, season, episode,
release group). The episode marker is the only token whose position is
reliable, so the title is first split around it and each region is then
cleaned by a chain of small, independently testable stages:

    normalize -> split_regions -> remove_prefix -> parse_season
              -> split_titles -> parse_episode

Every stage is a pure function. ``parse_title`` raises a TitleParseError
subclass on failure and never anything else.

Example:
    >>> result = parse_title("[Tag] Name S02 - 05")
    >>> result.season, result.episode, result.fansub
    (2, 5, 'Tag')
"""

import logging
import re
from typing import Optional, Tuple

from bangumi_sync.errors import (
    InvalidEpisodeError,
    InvalidInputError,
    InvalidSeasonError,
    InvalidTitleError,
)
from bangumi_sync.models.entities import ParseResult

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
#  Patterns
# ---------------------------------------------------------------------------

# (a) everything before the episode marker, (b) the marker, (c) the rest
TITLE_RE = re.compile(
    r"(.*|\[.*])"
    r"( -? \d+|\[\d+]|\[\d+.?[vV]\d]|第\d+[话話集]|\[第?\d+[话話集]]|\[\d+.?END]|[Ee][Pp]?\d+)"
    r"(.*)"
)
EPISODE_RE = re.compile(r"[0-9]+")
PREFIX_RE = re.compile(r"[^\w\s\u4e00-\u9fff\u3040-\u309f\u30a0-\u30ff-]")
BRACKET_RE = re.compile(r"[\[\]]")

NEW_SEASON_RE = re.compile(r"新番|月?番")
REGION_RE = re.compile(r"港澳台地区")
REGION_NOTE_RE = re.compile(r"[(（]仅限港澳台地区[）)]")

SEASON_RE = re.compile(r"S\d{1,2}|Season ?\d{1,2}|第.{1,2}[季期]")
SEASON_LATIN_RE = re.compile(r"^(Season|S)")
SEASON_CJK_STRIP_RE = re.compile(r"[第季期\s]")

TITLE_DELIM_RE = re.compile(r"/|\s{2}|- ")
SPACED_HYPHEN_RE = re.compile(r"\s-|-\s")
SCRIPT_BOUNDARY_RE = re.compile(r"(?<=[\u4e00-\u9fa5])(?=[A-Za-z])|(?<=[A-Za-z])(?=[\u4e00-\u9fa5])")
ZH_RE = re.compile(r"[\u4e00-\u9fa5]{2,}")
EN_RE = re.compile(r"[a-zA-Z]{3,}")
# Coarse block test; also covers part of the CJK symbol range.
JP_RE = re.compile(r"[\u0800-\u4e00]{2,}")

FULLWIDTH_BRACKETS = str.maketrans({"【": "[", "】": "]", "［": "[", "］": "]"})

CJK_NUMERALS = {
    "一": 1,
    "二": 2,
    "三": 3,
    "四": 4,
    "五": 5,
    "六": 6,
    "七": 7,
    "八": 8,
    "九": 9,
    "十": 10,
}

SEASON_BITS = 8
EPISODE_BITS = 16
INVALID_SEASON = -1


def _parse_int(text: str, bits: int) -> Optional[int]:
    """Parse an ASCII decimal that fits a signed integer of the given width."""
    if not re.fullmatch(r"[+-]?[0-9]+", text):
        return None
    value = int(text)
    limit = 1 << (bits - 1)
    if not -limit <= value < limit:
        return None
    return value


# ---------------------------------------------------------------------------
#  Stages
# ---------------------------------------------------------------------------

def normalize(title: str) -> str:
    """Convert full-width brackets to ASCII and trim surrounding whitespace."""
    return title.strip().translate(FULLWIDTH_BRACKETS)


def parse_fansub(title: str) -> str:
    """Return the first bracketed fragment, or "" when the title has none."""
    parts = BRACKET_RE.split(title)
    return parts[1] if len(parts) > 1 else ""


def split_regions(title: str) -> Tuple[str, str, str]:
    """
    Split a normalized title around its episode marker.

    Returns:
        (season info, episode marker, remainder)

    Raises:
        InvalidInputError: If no episode marker is found
    """
    match = TITLE_RE.search(title)
    if match is None:
        raise InvalidInputError(title)
    return match.group(1) or "", match.group(2) or "", match.group(3) or ""


def remove_prefix(info: str, fansub: str) -> str:
    """
    Strip the release group tag and announcement prefixes from region (a).

    Pieces such as ``[7月新番]`` or ``[港澳台地区]`` are removed together
    with the delimiters around them.
    """
    raw = info
    if fansub:
        raw = re.sub(f".{re.escape(fansub)}.", "", info)

    args = [piece for piece in PREFIX_RE.sub("/", raw).split("/") if piece]
    if len(args) == 1:
        args = args[0].split()

    result = raw
    for arg in args:
        if (NEW_SEASON_RE.search(arg) and len(arg) <= 5) or REGION_RE.search(arg):
            result = re.sub(f".{re.escape(arg)}.", "", result)
    return result.strip()


def parse_season(info: str) -> Tuple[str, int]:
    """
    Separate the season marker from the series name.

    Returns:
        (name, season); season is 1 when no marker is present and
        INVALID_SEASON when the marker's number cannot be read.
    """
    name_season = BRACKET_RE.sub(" ", info)
    seasons = [m.group(0) for m in SEASON_RE.finditer(name_season)]
    if not seasons:
        return name_season.strip(), 1

    name = SEASON_RE.sub("", name_season).strip()
    marker = seasons[0]
    if SEASON_LATIN_RE.match(marker):
        season = _parse_int(SEASON_LATIN_RE.sub("", marker).strip(), SEASON_BITS)
    else:
        number = SEASON_CJK_STRIP_RE.sub("", marker)
        season = _parse_int(number, SEASON_BITS)
        if season is None:
            season = CJK_NUMERALS.get(number)

    if season is None:
        season = INVALID_SEASON
    return name, season


def split_titles(name: str) -> Tuple[str, str, str]:
    """
    Split a series name into its Chinese, English and Japanese variants.

    Returns:
        (title_zh, title_en, title_jp), each possibly empty
    """
    name = REGION_NOTE_RE.sub("", name)
    pieces = [p for p in TITLE_DELIM_RE.split(name) if p]

    if len(pieces) == 1 and "_" in name:
        pieces = [p for p in name.split("_") if p]
    if len(pieces) == 1 and SPACED_HYPHEN_RE.search(name):
        pieces = [p for p in name.split("-") if p]
    if len(pieces) == 1:
        words = pieces[0].split()
        for i, word in enumerate(words):
            if not ZH_RE.search(word):
                continue
            # A CJK run glued to Latin letters is cut at the script change
            parts = [p for p in SCRIPT_BOUNDARY_RE.split(word) if p]
            k = next(j for j, p in enumerate(parts) if ZH_RE.search(p))
            rest = " ".join(words[:i] + parts[:k] + parts[k + 1:] + words[i + 1:])
            if rest:
                pieces = [parts[k], rest]
            break

    title_zh = title_en = title_jp = ""
    for piece in pieces:
        piece = piece.strip()
        if not piece:
            continue
        if ZH_RE.search(piece):
            title_zh = piece
        elif EN_RE.search(piece):
            title_en = piece
        elif JP_RE.search(piece):
            title_jp = piece
    return title_zh, title_en, title_jp


def parse_episode(marker: str) -> Optional[int]:
    """Return the first run of ASCII digits in the marker, or None."""
    match = EPISODE_RE.search(marker)
    if match is None:
        return None
    return _parse_int(match.group(0), EPISODE_BITS)


# ---------------------------------------------------------------------------
#  Entry point
# ---------------------------------------------------------------------------

def parse_title(raw_title: str) -> ParseResult:
    """
    Parse a release title.

    Args:
        raw_title: Release name as published in the feed

    Returns:
        ParseResult for the release

    Raises:
        InvalidInputError: No episode marker, or nothing left before it
        InvalidSeasonError: Season marker unreadable, or no name besides it
        InvalidTitleError: No Chinese, English or Japanese name found
        InvalidEpisodeError: Episode marker holds no usable number
    """
    title = normalize(raw_title or "")
    fansub = parse_fansub(title)
    season_info, episode_info, _ = split_regions(title)

    candidate = remove_prefix(season_info, fansub)
    if not candidate:
        raise InvalidInputError(raw_title)

    name, season = parse_season(candidate)
    if not name or season == INVALID_SEASON:
        raise InvalidSeasonError(raw_title)

    title_zh, title_en, title_jp = split_titles(name)
    if not (title_zh or title_en or title_jp):
        raise InvalidTitleError(raw_title)

    episode = parse_episode(episode_info)
    if episode is None:
        raise InvalidEpisodeError(raw_title)

    result = ParseResult(
        title_zh=title_zh,
        title_en=title_en,
        title_jp=title_jp,
        season=season,
        episode=episode,
        fansub=fansub,
    )
    logger.debug("Parsed %r -> %s", raw_title, result)
    return result
