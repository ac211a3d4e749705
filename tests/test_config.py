"""Tests for settings loading."""

import json
from pathlib import Path
from typing import Any

import pytest
from redcoder.config import (
    CONFIG_FILE_NAME,
    DEFAULT_TRANSCODE_FORMATS,
    Settings,
    find_config_file,
    load_settings,
)
from redcoder.exceptions import ConfigurationError
from redcoder.models.enums import TargetFormat


@pytest.fixture
def no_config_file(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr("redcoder.config.find_config_file", lambda: None)


def _write_config(path: Path, data: dict[str, Any]) -> Path:
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


class TestSettings:
    """Tests for the Settings model."""

    def test_defaults(self) -> None:
        settings = Settings()
        assert settings.allowed_transcode_formats == DEFAULT_TRANSCODE_FORMATS
        assert settings.concurrency >= 1
        assert settings.tracker_url == "https://redacted.sh"
        assert not settings.automatic_upload

    def test_comma_separated_formats_from_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("REDCODER_ALLOWED_TRANSCODE_FORMATS", "flac, mp3-v0")
        settings = Settings()
        assert settings.allowed_transcode_formats == [TargetFormat.FLAC, TargetFormat.MP3_V0]

    def test_json_formats_from_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("REDCODER_ALLOWED_TRANSCODE_FORMATS", '["Mp3320"]')
        assert Settings().allowed_transcode_formats == [TargetFormat.MP3_320]

    def test_empty_formats_fall_back_to_default(self) -> None:
        settings = Settings(allowed_transcode_formats=[])
        assert settings.allowed_transcode_formats == DEFAULT_TRANSCODE_FORMATS

    def test_missing_required(self) -> None:
        """Should list every missing required key."""
        settings = Settings(api_key="k")
        assert settings.missing_required() == [
            "content_directory",
            "transcode_directory",
            "torrent_directory",
            "spectrogram_directory",
        ]

    def test_spectrogram_dir_optional_when_skipped(self, tmp_path: Path) -> None:
        settings = Settings(
            api_key="k",
            content_directory=tmp_path,
            transcode_directory=tmp_path,
            torrent_directory=tmp_path,
            skip_spectrogram=True,
        )
        settings.require_complete()

    def test_require_complete_raises(self) -> None:
        with pytest.raises(ConfigurationError, match="api_key") as exc_info:
            Settings().require_complete()
        assert exc_info.value.exit_code == 2


class TestLoadSettings:
    """Tests for load_settings."""

    def test_reads_config_file(self, tmp_path: Path) -> None:
        path = _write_config(
            tmp_path / CONFIG_FILE_NAME,
            {
                "api_key": "from-file",
                "allowed_transcode_formats": ["Mp3V0"],
                "unknown_key": 1,
            },
        )
        settings = load_settings(path, require_complete=False)
        assert settings.api_key == "from-file"
        assert settings.allowed_transcode_formats == [TargetFormat.MP3_V0]

    def test_overrides_win_over_file(self, tmp_path: Path) -> None:
        """Should let command-line values replace file values."""
        path = _write_config(tmp_path / CONFIG_FILE_NAME, {"api_key": "file", "concurrency": 2})
        settings = load_settings(path, require_complete=False, api_key="cli", concurrency=None)
        assert settings.api_key == "cli"
        assert settings.concurrency == 2

    def test_file_wins_over_env(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("REDCODER_API_KEY", "env")
        monkeypatch.setenv("REDCODER_SOURCE_TAG", "OPS")
        path = _write_config(tmp_path / CONFIG_FILE_NAME, {"api_key": "file"})
        settings = load_settings(path, require_complete=False)
        assert settings.api_key == "file"
        assert settings.source_tag == "OPS"

    def test_empty_override_list_is_ignored(self, tmp_path: Path) -> None:
        path = _write_config(
            tmp_path / CONFIG_FILE_NAME, {"allowed_transcode_formats": ["flac"]}
        )
        settings = load_settings(path, require_complete=False, allowed_transcode_formats=[])
        assert settings.allowed_transcode_formats == [TargetFormat.FLAC]

    def test_invalid_json_raises(self, tmp_path: Path) -> None:
        path = tmp_path / CONFIG_FILE_NAME
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(ConfigurationError, match="not valid JSON"):
            load_settings(path)

    def test_non_object_raises(self, tmp_path: Path) -> None:
        path = _write_config(tmp_path / CONFIG_FILE_NAME, {})
        path.write_text("[1, 2]", encoding="utf-8")
        with pytest.raises(ConfigurationError, match="JSON object"):
            load_settings(path)

    def test_invalid_value_raises(self, tmp_path: Path) -> None:
        path = _write_config(
            tmp_path / CONFIG_FILE_NAME, {"allowed_transcode_formats": ["aac"]}
        )
        with pytest.raises(ConfigurationError, match="Invalid configuration"):
            load_settings(path, require_complete=False)

    @pytest.mark.usefixtures("no_config_file")
    def test_incomplete_raises(self) -> None:
        with pytest.raises(ConfigurationError, match="You have to specify"):
            load_settings()

    @pytest.mark.usefixtures("no_config_file")
    def test_complete_from_overrides(self, tmp_path: Path) -> None:
        settings = load_settings(
            api_key="k",
            content_directory=tmp_path,
            transcode_directory=tmp_path,
            torrent_directory=tmp_path,
            spectrogram_directory=tmp_path,
            dry_run=True,
        )
        assert settings.dry_run


class TestFindConfigFile:
    """Tests for find_config_file."""

    def test_prefers_current_directory(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        local = _write_config(tmp_path / CONFIG_FILE_NAME, {})
        monkeypatch.setattr(Path, "home", lambda: tmp_path / "home")
        assert find_config_file(tmp_path) == local

    def test_xdg_config_home(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        xdg = tmp_path / "xdg"
        (xdg / "redcoder").mkdir(parents=True)
        expected = _write_config(xdg / "redcoder" / CONFIG_FILE_NAME, {})
        monkeypatch.setenv("XDG_CONFIG_HOME", str(xdg))
        monkeypatch.setattr(Path, "home", lambda: tmp_path / "home")

        assert find_config_file(tmp_path / "cwd") == expected

    def test_home_fallback(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        home = tmp_path / "home"
        home.mkdir()
        expected = _write_config(home / CONFIG_FILE_NAME, {})
        monkeypatch.delenv("XDG_CONFIG_HOME", raising=False)
        monkeypatch.setattr(Path, "home", lambda: home)

        assert find_config_file(tmp_path / "cwd") == expected

    def test_nothing_found(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("XDG_CONFIG_HOME", raising=False)
        monkeypatch.setattr(Path, "home", lambda: tmp_path / "home")
        assert find_config_file(tmp_path) is None
