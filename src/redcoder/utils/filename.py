"""Release folder naming and sanitization."""

from __future__ import annotations

from typing import TYPE_CHECKING

from pathvalidate import sanitize_filename

if TYPE_CHECKING:
    from redcoder.models.enums import TargetFormat

# Longest "<folder>/<file>" path the tracker accepts.
MAX_PATH_LENGTH = 180


def clean_folder_name(s: str) -> str:
    """Replace characters that are invalid in folder names with ``_``.

    Example:
        >>> clean_folder_name('AC/DC - Back in "Black"')
        'AC_DC - Back in _Black_'
    """
    return sanitize_filename(s, replacement_text="_")


def build_release_base_name(
    artist: str, album: str, edition: str, year: int
) -> str:
    """Build the base folder name shared by all formats of a release.

    Produces ``Artist - Album (Edition) [Year]``, or ``Artist - Album [Year]``
    when the edition title is empty. Colons are dropped from the album title.

    Example:
        >>> build_release_base_name("Artist", "Album: Part 1", "", 2001)
        'Artist - Album Part 1 [2001]'
    """
    album = album.replace(":", "")
    if len(edition) > 1:
        raw = f"{artist} - {album} ({edition}) [{year}]"
    else:
        raw = f"{artist} - {album} [{year}]"
    return clean_folder_name(raw)


def build_release_folder_name(base_name: str, media: str, target: TargetFormat) -> str:
    """Build the output folder name of one format, e.g. ``... (CD - MP3 - V0)``."""
    return clean_folder_name(f"{base_name} ({media.upper()} - {target.label})")


def relative_path_length(folder_name: str, file_name: str) -> int:
    """Length of ``folder_name/file_name`` as counted by the tracker."""
    return len(f"{folder_name}/{file_name}")
