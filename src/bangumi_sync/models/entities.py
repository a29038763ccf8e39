"""
Data models for series records, feed items, parse results and job files.

SeriesRecord is a Pydantic model because it round-trips through the store
and the CLI; the transient values produced during a poll cycle are plain
dataclasses.
"""

from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any, Dict, FrozenSet, List, Optional, Tuple

from pydantic import BaseModel, Field, field_validator


@dataclass(frozen=True)
class ParseResult:
    """
    Structured metadata extracted from one release title.

    At least one of the three title fields is non-empty.

    Attributes:
        title_zh: Chinese series name
        title_en: English (romanized) series name
        title_jp: Japanese series name
        season: Season number, 1 when the title carries no season marker
        episode: Episode number
        fansub: Release group tag, empty when the title has no brackets
    """

    title_zh: str = ""
    title_en: str = ""
    title_jp: str = ""
    season: int = 1
    episode: int = 0
    fansub: str = ""

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return asdict(self)


@dataclass
class FeedItem:
    """
    One entry of a release feed.

    Attributes:
        title: Release title
        link: Link to the release page
        description: Entry description
        torrent_url: URL of the enclosure (the torrent file)
        torrent_hash: Filename stem of the enclosure URL
        published: Publication time, if the feed carries one
    """

    title: str
    link: str = ""
    description: str = ""
    torrent_url: str = ""
    torrent_hash: str = ""
    published: Optional[datetime] = None


@dataclass
class FeedChannel:
    """A parsed release feed."""

    title: str = ""
    link: str = ""
    description: str = ""
    items: List[FeedItem] = field(default_factory=list)


@dataclass(frozen=True)
class DownloadFileEntry:
    """A file belonging to a download job; name is relative to the job root."""

    name: str
    size: int


@dataclass
class FileSelection:
    """
    Outcome of choosing which files of a job get renamed.

    Attributes:
        primary: The main video file of the job
        rename_plan: (original relative path, new file name) pairs
        job_name: Display name the job itself receives
    """

    primary: DownloadFileEntry
    rename_plan: List[Tuple[str, str]] = field(default_factory=list)
    job_name: str = ""


class SeriesRecord(BaseModel):
    """
    Series data model.

    Persisted metadata and subscription state for one tracked show.
    """
    id: int = Field(ge=0)
    title: str
    weekday: int = Field(default=0, ge=0, le=7)
    poster_url: str = ""
    rss_url: str
    enabled: bool = True
    exclude_words: Tuple[str, ...] = ()
    downloaded_hashes: FrozenSet[str] = frozenset()

    class Config:
        """Pydantic configuration."""
        from_attributes = True
        frozen = True

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str) -> str:
        """Titles name library directories and must not be blank."""
        if not v.strip():
            raise ValueError("title must not be empty")
        return v.strip()

    def is_excluded(self, title: str) -> bool:
        """Return True if title contains any of the exclusion words."""
        return any(word in title for word in self.exclude_words if word)
