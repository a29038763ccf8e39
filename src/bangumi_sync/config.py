"""
Configuration management for bangumi-sync.

Provides centralized configuration using Pydantic for validation and
environment variable support. Supports bangumi.yaml for per-install settings.
"""

from pathlib import Path
from typing import Annotated, List, Optional, Tuple, Type

from pydantic import Field, field_validator
from pydantic_settings import (
    BaseSettings,
    NoDecode,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    YamlConfigSettingsSource,
)


# Project root directory
PROJECT_ROOT = Path(__file__).parent.parent.parent

# Default data paths relative to project root
DB_PATH = PROJECT_ROOT / "data" / "db" / "bangumi.db"
LIBRARY_DIR = PROJECT_ROOT / "data" / "library"
TMP_DIR = PROJECT_ROOT / "data" / "tmp"


def find_config_yaml(search_dir: Optional[Path] = None) -> Optional[Path]:
    """
    Locate bangumi.yaml.

    Searches for bangumi.yaml starting from search_dir (or PROJECT_ROOT)
    and walking up to 3 parent directories.

    Args:
        search_dir: Directory to start searching from

    Returns:
        Path to bangumi.yaml, or None if not found
    """
    start = search_dir or PROJECT_ROOT
    for parent in [start] + list(start.parents)[:3]:
        candidate = parent / "bangumi.yaml"
        if candidate.exists():
            return candidate
    return None


def _split_csv(value):
    if isinstance(value, str):
        return [part.strip() for part in value.split(",") if part.strip()]
    return value


class Config(BaseSettings):
    """
    Application configuration with environment variable support.

    Configuration can be provided via:
    1. Environment variables (prefixed with BANGUMI_SYNC_)
    2. .env file
    3. bangumi.yaml
    4. Default values

    Example:
        export BANGUMI_SYNC_LIBRARY_DIR="/srv/media/anime"
        export BANGUMI_SYNC_NOTIFY_RECIPIENTS="12345,67890"
    """

    model_config = SettingsConfigDict(
        env_prefix="BANGUMI_SYNC_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Storage paths
    db_path: Path = Field(
        default=DB_PATH,
        description="Path to SQLite database file"
    )
    library_dir: Path = Field(
        default=LIBRARY_DIR,
        description="Root of the season-organized library"
    )
    tmp_dir: Path = Field(
        default=TMP_DIR,
        description="Scratch directory for downloaded torrent files"
    )

    # Polling
    rss_interval: int = Field(
        default=3600,
        ge=1,
        description="Seconds between two poll cycles"
    )
    exclude_words: Annotated[List[str], NoDecode] = Field(
        default_factory=list,
        description="Default exclusion substrings for newly added series"
    )

    # Network
    proxy_url: Optional[str] = Field(
        default=None,
        description="HTTP(S) proxy for feed, page and file requests"
    )
    request_timeout: float = Field(
        default=30.0,
        gt=0,
        description="Timeout in seconds for outgoing HTTP requests"
    )

    # Download engine (qBittorrent WebAPI)
    qbit_url: str = Field(
        default="http://localhost:8080",
        description="Base URL of the qBittorrent WebUI"
    )
    qbit_username: str = Field(default="admin", description="qBittorrent username")
    qbit_password: str = Field(default="", description="qBittorrent password")
    engine_ready_timeout: float = Field(
        default=30.0,
        gt=0,
        description="Seconds to wait for a submitted job to be registered"
    )
    engine_poll_interval: float = Field(
        default=1.0,
        gt=0,
        description="Initial delay between readiness polls (doubles each try)"
    )

    # Notifications
    telegram_bot_token: Optional[str] = Field(
        default=None,
        description="Telegram bot token used to notify recipients"
    )
    notify_recipients: Annotated[List[int], NoDecode] = Field(
        default_factory=list,
        description="Chat ids notified when an episode is filed"
    )

    log_level: str = Field(default="INFO", description="Root log level")

    @field_validator("exclude_words", "notify_recipients", mode="before")
    @classmethod
    def _parse_csv(cls, v):
        return _split_csv(v)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: Type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> Tuple[PydanticBaseSettingsSource, ...]:
        yaml_file = find_config_yaml()
        sources: List[PydanticBaseSettingsSource] = [init_settings, env_settings, dotenv_settings]
        if yaml_file is not None:
            sources.append(YamlConfigSettingsSource(settings_cls, yaml_file=yaml_file))
        sources.append(file_secret_settings)
        return tuple(sources)

    def ensure_directories(self) -> None:
        """Create necessary directories if they don't exist."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self.library_dir.mkdir(parents=True, exist_ok=True)
        self.tmp_dir.mkdir(parents=True, exist_ok=True)


def get_config() -> Config:
    """
    Get the application configuration instance.

    Merges settings from environment variables, .env file,
    and bangumi.yaml (if present).

    Returns:
        Config: Application configuration
    """
    config = Config()
    config.ensure_directories()
    return config
