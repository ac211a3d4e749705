"""Enumerations for redcoder domain models."""

from __future__ import annotations

import re
from enum import IntEnum, StrEnum


class TargetFormat(StrEnum):
    """Audio encodings a release can be published in.

    Declaration order is the order formats are resolved and processed in.
    FLAC24 is only ever a source, never a transcode target.
    """

    FLAC24 = "flac24"
    FLAC = "flac"
    MP3_320 = "mp3-320"
    MP3_V0 = "mp3-v0"

    @classmethod
    def _missing_(cls, value: object) -> TargetFormat | None:
        # Accept legacy spellings such as "Flac24", "Mp3320", "MP3 V0".
        if not isinstance(value, str):
            return None
        key = re.sub(r"[^a-z0-9]", "", value.lower())
        for member in cls:
            if member.value.replace("-", "") == key:
                return member
        return None

    @property
    def label(self) -> str:
        """Label used in output folder names."""
        match self:
            case TargetFormat.FLAC24:
                return "FLAC 24bit"
            case TargetFormat.FLAC:
                return "FLAC"
            case TargetFormat.MP3_320:
                return "MP3 - 320"
            case TargetFormat.MP3_V0:
                return "MP3 - V0"

    @property
    def display_name(self) -> str:
        """Human-readable name for logs and progress bars."""
        match self:
            case TargetFormat.FLAC24:
                return "24Bit FLAC"
            case TargetFormat.FLAC:
                return "FLAC"
            case TargetFormat.MP3_320:
                return "MP3 320"
            case TargetFormat.MP3_V0:
                return "MP3 V0"

    @property
    def tracker_format(self) -> str:
        """Value of the tracker's ``format`` field."""
        return "FLAC" if self.is_lossless else "MP3"

    @property
    def tracker_bitrate(self) -> str:
        """Value of the tracker's ``encoding``/``bitrate`` field."""
        match self:
            case TargetFormat.FLAC24:
                return "24bit Lossless"
            case TargetFormat.FLAC:
                return "Lossless"
            case TargetFormat.MP3_320:
                return "320"
            case TargetFormat.MP3_V0:
                return "V0 (VBR)"

    @property
    def extension(self) -> str:
        return ".flac" if self.is_lossless else ".mp3"

    @property
    def is_lossless(self) -> bool:
        return self in (TargetFormat.FLAC24, TargetFormat.FLAC)

    @classmethod
    def from_tracker(cls, format_name: str, encoding: str) -> TargetFormat | None:
        """Map a tracker (format, encoding) pair to a target format.

        Returns:
            The matching format, or None for pairs this tool does not handle.
        """
        for member in cls:
            if member.tracker_format == format_name and member.tracker_bitrate == encoding:
                return member
        return None


class Media(StrEnum):
    """Release media as named by the tracker."""

    CD = "CD"
    DVD = "DVD"
    VINYL = "Vinyl"
    SOUNDBOARD = "Soundboard"
    SACD = "SACD"
    DAT = "DAT"
    CASSETTE = "Cassette"
    WEB = "WEB"
    BLURAY = "Blu-Ray"

    @classmethod
    def _missing_(cls, value: object) -> Media | None:
        if not isinstance(value, str):
            return None
        for member in cls:
            if member.value.lower() == value.lower():
                return member
        return None


class Category(IntEnum):
    """Upload category codes."""

    MUSIC = 0
    APPLICATIONS = 1
    EBOOKS = 2
    AUDIOBOOKS = 3
    ELEARNING_VIDEOS = 4
    COMEDY = 5
    COMICS = 6

    @classmethod
    def from_name(cls, name: str) -> Category:
        """Resolve a tracker category name (e.g. ``"E-Books"``).

        Raises:
            ValueError: If the name is unknown.
        """
        names = {
            "Music": cls.MUSIC,
            "Applications": cls.APPLICATIONS,
            "E-Books": cls.EBOOKS,
            "Audiobooks": cls.AUDIOBOOKS,
            "E-Learning Videos": cls.ELEARNING_VIDEOS,
            "Comedy": cls.COMEDY,
            "Comics": cls.COMICS,
        }
        try:
            return names[name]
        except KeyError:
            raise ValueError(f"Unknown category: {name}") from None


class ValidationOutcome(StrEnum):
    """Result of the tag check of a release.

    VINYL_EXCEPTION is a soft failure: processing continues but automatic
    upload is disabled and the transcoded tags must be reviewed.
    """

    VALID = "valid"
    INVALID = "invalid"
    VINYL_EXCEPTION = "vinyl_exception"


class ReleaseStatus(StrEnum):
    """Final status of one release in a batch."""

    SUCCESS = "success"
    SKIPPED = "skipped"
    FAILED = "failed"
