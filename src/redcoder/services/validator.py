"""Precondition checks run against a source release before transcoding."""

from __future__ import annotations

import logging
import re
import tempfile
from collections.abc import Iterable
from pathlib import Path

from mediafile import FileTypeError, MediaFile, UnreadableFileError
from pydantic import BaseModel, ConfigDict

from redcoder.client import TrackerProtocol
from redcoder.exceptions import (
    HashCheckError,
    Invalid24BitSourceError,
    MultichannelError,
    TagValidationError,
)
from redcoder.models.enums import Media, TargetFormat, ValidationOutcome
from redcoder.models.release import Release
from redcoder.services.engine import read_stream_info
from redcoder.services.torrent import TorrentToolProtocol
from redcoder.utils.files import find_audio_files

logger = logging.getLogger(__name__)

_TRACK_NUMBER = re.compile(r"\s*(\d+)\s*(?:/\s*\d+\s*)?")


class TagCheck(BaseModel):
    """Outcome of the tag check of a source tree.

    Attributes:
        outcome: Tri-state result.
        path: First file that caused a non-valid outcome.
        reason: Human-readable reason for a non-valid outcome.
    """

    model_config = ConfigDict(frozen=True)

    outcome: ValidationOutcome
    path: Path | None = None
    reason: str = ""


class ValidationReport(BaseModel):
    """Everything the pipeline learns while validating a release.

    Attributes:
        outcome: Result of the tag check (never INVALID; that raises).
        has_24bit: Whether any source file is deeper than 16 bit.
        file_count: Number of source audio files.
    """

    model_config = ConfigDict(frozen=True)

    outcome: ValidationOutcome
    has_24bit: bool
    file_count: int

    @property
    def vinyl_exception(self) -> bool:
        return self.outcome == ValidationOutcome.VINYL_EXCEPTION


def _raw_track_number(audio: MediaFile) -> str | None:
    """Track number exactly as stored, before mediafile coerces it.

    mediafile reads "A1" as 1, which hides vinyl side numbering.
    """
    tags = getattr(audio.mgfile, "tags", None)
    if not tags:
        return None
    values = tags.get("tracknumber")
    if not values:
        return None
    return str(values[0])


def is_parseable_track_number(value: str | None) -> bool:
    """Whether ``value`` is a plain positive track number (``3`` or ``3/12``).

    Example:
        >>> is_parseable_track_number("03/12")
        True
        >>> is_parseable_track_number("A1")
        False
    """
    if not value:
        return False
    match = _TRACK_NUMBER.fullmatch(value)
    return match is not None and int(match.group(1)) > 0


def missing_tags(path: Path) -> tuple[list[str], bool]:
    """Inspect one file's tags.

    Returns:
        Names of missing required tags (artist, album, title) and whether
        the track number is parseable.

    Raises:
        TagValidationError: If the file's tags cannot be read at all.
    """
    try:
        audio = MediaFile(path)
    except (UnreadableFileError, FileTypeError) as e:
        raise TagValidationError(f'Could not read tags of "{path}": {e}', path) from e

    missing = [name for name in ("artist", "album", "title") if not getattr(audio, name)]
    return missing, is_parseable_track_number(_raw_track_number(audio))


def check_tags(files: Iterable[Path], media: Media) -> TagCheck:
    """Check every file for artist, album, title and a track number.

    A missing required tag is always INVALID. An unparseable track number
    is INVALID too, except on vinyl where it yields VINYL_EXCEPTION and
    the walk continues so a later hard failure still wins.
    """
    vinyl_path: Path | None = None
    for path in files:
        missing, track_ok = missing_tags(path)
        if missing:
            return TagCheck(
                outcome=ValidationOutcome.INVALID,
                path=path,
                reason="missing " + ", ".join(missing),
            )
        if track_ok:
            continue
        if media != Media.VINYL:
            return TagCheck(
                outcome=ValidationOutcome.INVALID,
                path=path,
                reason="missing or unparseable track number",
            )
        vinyl_path = vinyl_path or path

    if vinyl_path is not None:
        return TagCheck(
            outcome=ValidationOutcome.VINYL_EXCEPTION,
            path=vinyl_path,
            reason="non-standard vinyl track number",
        )
    return TagCheck(outcome=ValidationOutcome.VALID)


def check_streams(files: Iterable[Path]) -> bool:
    """Reject multichannel audio and detect 24-bit sources.

    Returns:
        True if any file has a bit depth above 16.

    Raises:
        MultichannelError: On the first file with more than two channels.
        AudioHeaderError: If a header cannot be read.
    """
    has_24bit = False
    for path in files:
        info = read_stream_info(path)
        if info.is_multichannel:
            raise MultichannelError(path)
        has_24bit = has_24bit or info.is_hi_res
    return has_24bit


def require_24bit_source(targets: Iterable[TargetFormat], has_24bit: bool) -> None:
    """A FLAC target is only produced from genuine 24-bit audio.

    FLAC is only ever a target when the source is listed as 24bit FLAC, so
    a release without any 24-bit file is mislabeled.

    Raises:
        Invalid24BitSourceError: If FLAC is requested and no file is 24-bit.
    """
    if TargetFormat.FLAC in targets and not has_24bit:
        raise Invalid24BitSourceError(
            "Release is listed as 24bit FLAC but contains no 24-bit audio"
        )


class ReleaseValidator:
    """Runs every precondition check for a release.

    Example:
        >>> validator = ReleaseValidator(client, TorrentTool())
        >>> report = validator.validate(release)
        >>> report.vinyl_exception
        False
    """

    def __init__(self, client: TrackerProtocol, torrent_tool: TorrentToolProtocol) -> None:
        self._client = client
        self._torrent_tool = torrent_tool

    def validate(self, release: Release, *, verify_hash: bool = True) -> ValidationReport:
        """Check tags, streams and optionally the torrent hash.

        Raises:
            FileNotFoundError: If the source directory does not exist.
            TagValidationError: If tags are hard-invalid.
            MultichannelError: If a file has more than two channels.
            AudioHeaderError: If a header cannot be read.
            HashCheckError: If local files do not match the torrent.
        """
        files = find_audio_files(release.source_path)
        if not files:
            raise TagValidationError(f'No FLAC files found in "{release.source_path}"')

        check = check_tags(files, release.media)
        match check.outcome:
            case ValidationOutcome.INVALID:
                raise TagValidationError(
                    f'Torrent {release.torrent_id} has FLAC files with invalid tags '
                    f'("{check.path}": {check.reason})',
                    check.path,
                )
            case ValidationOutcome.VINYL_EXCEPTION:
                logger.warning(
                    "Release is vinyl and has no or non-standard track numbers "
                    "(e.g. A1, A2); check the transcoded tags before uploading"
                )

        has_24bit = check_streams(files)

        if verify_hash:
            self.verify_hash(release)

        return ValidationReport(
            outcome=check.outcome, has_24bit=has_24bit, file_count=len(files)
        )

    def verify_hash(self, release: Release) -> None:
        """Compare local files against the tracker's .torrent.

        The downloaded torrent is written to a temporary file that is
        removed whether or not verification succeeds.

        Raises:
            HashCheckError: If verification fails.
            TrackerAPIError: If the torrent cannot be downloaded.
        """
        data = self._client.download_torrent(release.torrent_id)
        with tempfile.NamedTemporaryFile(
            prefix=f"redcoder-torrent-{release.torrent_id}-",
            suffix=".torrent",
            delete=False,
        ) as handle:
            handle.write(data)
            torrent_file = Path(handle.name)

        try:
            ok = self._torrent_tool.verify(torrent_file, release.source_path)
        finally:
            torrent_file.unlink(missing_ok=True)

        if not ok:
            raise HashCheckError(
                f"Local file torrent hash check failed for torrent {release.torrent_id}"
            )
        logger.info(
            "Local file torrent hash check succeeded for torrent %d", release.torrent_id
        )
