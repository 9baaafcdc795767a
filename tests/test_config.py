"""Tests for the config module."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import patch

import pytest

from sola.config import (
    get_base_url,
    load_config,
    reset_config,
    save_config,
    set_base_url,
    set_poll_interval,
)
from sola.models import AppConfig


def _patch_config_paths(tmp_path: Path):
    """Return context managers that redirect config dir/file to tmp_path."""
    cfg_dir = tmp_path / "config"
    cfg_file = cfg_dir / "config.json"
    return (
        patch("sola.config._CONFIG_DIR", cfg_dir),
        patch("sola.config._CONFIG_FILE", cfg_file),
    )


@pytest.fixture(autouse=True)
def _no_env_override(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("SOLA_BACKEND_URL", raising=False)


class TestLoadSaveConfig:
    def test_load_default_when_missing(self, tmp_path: Path) -> None:
        p1, p2 = _patch_config_paths(tmp_path)
        with p1, p2:
            config = load_config()
            assert config.base_url == "http://localhost:8000"
            assert config.poll_interval_seconds == 60.0

    def test_save_and_load_roundtrip(self, tmp_path: Path) -> None:
        p1, p2 = _patch_config_paths(tmp_path)
        with p1, p2:
            path = save_config(AppConfig(base_url="https://sola.example", timeout_seconds=3))
            assert path.exists()

            loaded = load_config()
            assert loaded.base_url == "https://sola.example"
            assert loaded.timeout_seconds == 3

    def test_load_handles_corrupt_file(self, tmp_path: Path) -> None:
        p1, p2 = _patch_config_paths(tmp_path)
        with p1, p2:
            cfg_dir = tmp_path / "config"
            cfg_dir.mkdir(parents=True, exist_ok=True)
            (cfg_dir / "config.json").write_text("not valid json{{{")
            assert load_config().base_url == "http://localhost:8000"


class TestBaseUrl:
    def test_env_overrides_file(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        p1, p2 = _patch_config_paths(tmp_path)
        with p1, p2:
            set_base_url("https://stored.example")
            monkeypatch.setenv("SOLA_BACKEND_URL", "http://env.example:9000/")
            assert get_base_url() == "http://env.example:9000"

    def test_env_not_persisted(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        p1, p2 = _patch_config_paths(tmp_path)
        with p1, p2:
            monkeypatch.setenv("SOLA_BACKEND_URL", "http://env.example")
            set_poll_interval(30)
            monkeypatch.delenv("SOLA_BACKEND_URL")
            assert load_config().base_url == "http://localhost:8000"
            assert load_config().poll_interval_seconds == 30

    def test_set_strips_trailing_slash(self, tmp_path: Path) -> None:
        p1, p2 = _patch_config_paths(tmp_path)
        with p1, p2:
            assert set_base_url(" https://sola.example/ ").base_url == "https://sola.example"
            assert get_base_url() == "https://sola.example"

    def test_rejects_non_http(self, tmp_path: Path) -> None:
        p1, p2 = _patch_config_paths(tmp_path)
        with p1, p2:
            with pytest.raises(ValueError):
                set_base_url("ftp://sola.example")

    def test_reset(self, tmp_path: Path) -> None:
        p1, p2 = _patch_config_paths(tmp_path)
        with p1, p2:
            set_base_url("https://sola.example")
            cfg = reset_config()
            assert cfg.base_url == "http://localhost:8000"
            assert load_config().base_url == "http://localhost:8000"


class TestPollInterval:
    def test_rejects_non_positive(self, tmp_path: Path) -> None:
        p1, p2 = _patch_config_paths(tmp_path)
        with p1, p2:
            with pytest.raises(ValueError):
                set_poll_interval(0)
