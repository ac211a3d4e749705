"""Test fixtures and configuration."""

import os
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest
from redcoder.config import Settings
from redcoder.models.enums import Media, TargetFormat
from redcoder.models.release import Release
from redcoder.models.tracker import Artist, Group, MusicInfo, Torrent, TorrentGroup

SOURCE_FOLDER = "Test Artist - Test Album (2001) [FLAC]"


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep REDCODER_* variables of the host out of the tests."""
    for key in list(os.environ):
        if key.startswith("REDCODER_"):
            monkeypatch.delenv(key)


@pytest.fixture
def make_torrent() -> Callable[..., Torrent]:
    """Factory for tracker torrents with sensible defaults."""

    def _make(**overrides: Any) -> Torrent:
        data: dict[str, Any] = {
            "id": 2,
            "media": "CD",
            "format": "FLAC",
            "encoding": "Lossless",
            "remastered": False,
            "remaster_year": 2001,
            "remaster_title": "",
            "remaster_record_label": "Label",
            "remaster_catalogue_number": "CAT-1",
            "scene": False,
            "file_path": SOURCE_FOLDER,
        }
        data.update(overrides)
        return Torrent(**data)

    return _make


@pytest.fixture
def sample_group() -> Group:
    """Create a sample torrent group."""
    return Group(
        id=1,
        name="Test Album",
        year=1999,
        category_name="Music",
        music_info=MusicInfo(artists=[Artist(id=5, name="Test Artist")]),
    )


@pytest.fixture
def sample_torrent_group(
    sample_group: Group, make_torrent: Callable[..., Torrent]
) -> TorrentGroup:
    """Group with a FLAC source and an MP3 320 sibling in the same edition."""
    return TorrentGroup(
        group=sample_group,
        torrents=[
            make_torrent(),
            make_torrent(id=3, format="MP3", encoding="320"),
        ],
    )


@pytest.fixture
def source_dir(tmp_path: Path) -> Path:
    """Source release tree with two discs, artwork and a log."""
    root = tmp_path / "content" / SOURCE_FOLDER
    (root / "CD2").mkdir(parents=True)
    (root / "01 - One.flac").write_bytes(b"fLaC1")
    (root / "02 - Two.flac").write_bytes(b"fLaC2")
    (root / "CD2" / "01 - Three.flac").write_bytes(b"fLaC3")
    (root / "cover.jpg").write_bytes(b"jpeg-bytes")
    (root / "CD2" / "notes.txt").write_text("notes")
    (root / "rip.log").write_text("log")
    return root


@pytest.fixture
def sample_release(source_dir: Path) -> Release:
    """Release pointing at ``source_dir``."""
    return Release(
        group_id=1,
        torrent_id=2,
        name="Test Album",
        artists=["Test Artist"],
        year=2001,
        record_label="Label",
        catalogue_number="CAT-1",
        media=Media.CD,
        media_name="CD",
        source_format=TargetFormat.FLAC,
        source_path=source_dir,
    )


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    """Complete settings rooted in ``tmp_path``."""
    for name in ("content", "transcodes", "torrents", "spectrograms"):
        (tmp_path / name).mkdir(exist_ok=True)
    return Settings(
        api_key="secret",
        content_directory=tmp_path / "content",
        transcode_directory=tmp_path / "transcodes",
        torrent_directory=tmp_path / "torrents",
        spectrogram_directory=tmp_path / "spectrograms",
        concurrency=2,
        automatic_upload=True,
        skip_hash_check=True,
        skip_spectrogram=True,
    )
