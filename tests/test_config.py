"""
Tests for configuration loading.
"""

from pathlib import Path
from unittest.mock import patch

from bangumi_sync.config import Config, find_config_yaml


class TestConfig:
    def test_defaults(self):
        with patch("bangumi_sync.config.find_config_yaml", return_value=None):
            config = Config(_env_file=None)
        assert config.rss_interval == 3600
        assert config.exclude_words == []
        assert config.telegram_bot_token is None

    def test_csv_environment_lists(self, monkeypatch):
        monkeypatch.setenv("BANGUMI_SYNC_EXCLUDE_WORDS", "720p, CHT")
        monkeypatch.setenv("BANGUMI_SYNC_NOTIFY_RECIPIENTS", "11,22")
        with patch("bangumi_sync.config.find_config_yaml", return_value=None):
            config = Config(_env_file=None)
        assert config.exclude_words == ["720p", "CHT"]
        assert config.notify_recipients == [11, 22]

    def test_yaml_file(self, tmp_path):
        yaml_path = tmp_path / "bangumi.yaml"
        yaml_path.write_text(
            "rss_interval: 600\n"
            "library_dir: /srv/anime\n"
            "notify_recipients: [11]\n",
            encoding="utf-8",
        )
        with patch("bangumi_sync.config.find_config_yaml", return_value=yaml_path):
            config = Config(_env_file=None)
        assert config.rss_interval == 600
        assert config.library_dir == Path("/srv/anime")
        assert config.notify_recipients == [11]

    def test_environment_overrides_yaml(self, tmp_path, monkeypatch):
        yaml_path = tmp_path / "bangumi.yaml"
        yaml_path.write_text("rss_interval: 600\n", encoding="utf-8")
        monkeypatch.setenv("BANGUMI_SYNC_RSS_INTERVAL", "60")
        with patch("bangumi_sync.config.find_config_yaml", return_value=yaml_path):
            config = Config(_env_file=None)
        assert config.rss_interval == 60

    def test_ensure_directories(self, tmp_path):
        with patch("bangumi_sync.config.find_config_yaml", return_value=None):
            config = Config(
                _env_file=None,
                db_path=tmp_path / "db" / "bangumi.db",
                library_dir=tmp_path / "library",
                tmp_dir=tmp_path / "tmp",
            )
        config.ensure_directories()
        assert (tmp_path / "db").is_dir()
        assert (tmp_path / "library").is_dir()
        assert (tmp_path / "tmp").is_dir()


class TestFindConfigYaml:
    def test_walks_up_parents(self, tmp_path):
        (tmp_path / "bangumi.yaml").write_text("{}", encoding="utf-8")
        nested = tmp_path / "a" / "b"
        nested.mkdir(parents=True)
        assert find_config_yaml(nested) == tmp_path / "bangumi.yaml"

    def test_not_found(self, tmp_path):
        nested = tmp_path / "a" / "b" / "c" / "d" / "e"
        nested.mkdir(parents=True)
        assert find_config_yaml(nested) is None
