"""Utility functions for redcoder."""

from redcoder.utils.filename import (
    MAX_PATH_LENGTH,
    build_release_base_name,
    build_release_folder_name,
    clean_folder_name,
)
from redcoder.utils.files import (
    find_ancillary_files,
    find_audio_files,
    find_files_with_extension,
)
from redcoder.utils.url import Permalink, build_permalink, parse_permalink

__all__ = [
    "MAX_PATH_LENGTH",
    "Permalink",
    "build_permalink",
    "build_release_base_name",
    "build_release_folder_name",
    "clean_folder_name",
    "find_ancillary_files",
    "find_audio_files",
    "find_files_with_extension",
    "parse_permalink",
]
