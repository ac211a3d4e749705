"""Filesystem helpers for walking release trees."""

from __future__ import annotations

from pathlib import Path

AUDIO_EXTENSION = ".flac"

# Non-audio files copied verbatim next to transcoded audio.
ANCILLARY_EXTENSIONS = frozenset({".gif", ".jpeg", ".jpg", ".pdf", ".png", ".txt"})


def find_files_with_extension(directory: Path, extension: str) -> list[Path]:
    """Recursively collect files ending with ``extension``.

    The match is case-insensitive and the result is sorted so callers get a
    stable order across runs.

    Raises:
        FileNotFoundError: If ``directory`` does not exist.
    """
    if not directory.is_dir():
        raise FileNotFoundError(f"Directory not found: {directory}")
    extension = extension.lower()
    return sorted(
        p
        for p in directory.rglob("*")
        if p.is_file() and p.name.lower().endswith(extension)
    )


def find_audio_files(directory: Path) -> list[Path]:
    """All FLAC files below ``directory``."""
    return find_files_with_extension(directory, AUDIO_EXTENSION)


def find_ancillary_files(directory: Path) -> list[Path]:
    """All artwork, text and document files below ``directory``."""
    return sorted(
        p
        for p in directory.rglob("*")
        if p.is_file() and p.suffix.lower() in ANCILLARY_EXTENSIONS
    )


def with_extension(file_name: str, extension: str) -> str:
    """Swap a ``.flac`` suffix (any case) for ``extension``."""
    stem, dot, suffix = file_name.rpartition(".")
    if dot and suffix.lower() == AUDIO_EXTENSION[1:]:
        return f"{stem}{extension}"
    return f"{file_name}{extension}"
