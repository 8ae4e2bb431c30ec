"""Tests for config loading and saving."""

from pathlib import Path

import pytest

from bird_archive.config import AppConfig, BirdConfig, load_config, save_config


class TestConfig:
    def test_missing_file_gives_defaults(self, tmp_path):
        config = load_config(tmp_path / "config.toml")
        assert config.database_path == Path("bookmarks.db")
        assert config.bird.command == "bird"
        assert config.bird.count == 50
        assert config.bird.fetch_timeout == 30.0
        assert config.bird.probe_timeout == 10.0

    def test_save_and_reload(self, tmp_path):
        path = tmp_path / "nested" / "config.toml"
        config = AppConfig(
            database_path=tmp_path / "archive.db",
            bird=BirdConfig(command="/usr/local/bin/bird", count=100, fetch_timeout=60.0),
        )
        save_config(config, path)

        assert load_config(path) == config

    def test_partial_file(self, tmp_path):
        path = tmp_path / "config.toml"
        path.write_text('[bird]\ncount = 25\n', encoding="utf-8")

        config = load_config(path)
        assert config.bird.count == 25
        assert config.bird.command == "bird"
        assert config.database_path == Path("bookmarks.db")

    @pytest.mark.parametrize(
        "body",
        [
            "[bird]\ncount = 0\n",
            "[bird]\nfetch_timeout = -1\n",
            '[bird]\ncommand = "  "\n',
            "[bird\n",
        ],
    )
    def test_invalid_values(self, tmp_path, body):
        path = tmp_path / "config.toml"
        path.write_text(body, encoding="utf-8")
        with pytest.raises(ValueError):
            load_config(path)
