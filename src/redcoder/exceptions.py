"""Custom exceptions for redcoder.

All exceptions carry an ``exit_code`` attribute so the CLI can map an
uncaught error to a process exit status.
"""

from pathlib import Path


class RedcoderError(Exception):
    """Base exception for redcoder.

    Attributes:
        exit_code: Process exit status used by the CLI.
    """

    exit_code: int = 1

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class ConfigurationError(RedcoderError):
    """Required settings are missing or invalid.

    Raised before any release is processed.
    """

    exit_code: int = 2


class MissingDependencyError(RedcoderError):
    """A required external binary is not available in PATH."""

    exit_code: int = 3


class TrackerAPIError(RedcoderError):
    """Tracker API request failed or returned a failure envelope."""

    exit_code: int = 4


class AuthenticationError(TrackerAPIError):
    """Tracker rejected the API key."""


# ============================================================================
# PER-RELEASE ERRORS - abort a single release, the batch continues
# ============================================================================


class ReleaseError(RedcoderError):
    """Base class for errors that abort processing of one release."""


class PermalinkParseError(ReleaseError):
    """Permalink does not contain both a group id and a torrent id."""


class TorrentNotFoundError(ReleaseError):
    """Torrent id is not part of the torrent group it was linked from."""


class SceneReleaseError(ReleaseError):
    """Scene releases must not be transcoded."""


class NoUsableSourceError(ReleaseError):
    """No lossless source exists in the release's edition."""


class TagValidationError(ReleaseError):
    """An audio file is missing required tags.

    Attributes:
        path: First file that failed validation.
    """

    def __init__(self, message: str, path: Path | None = None) -> None:
        self.path = path
        super().__init__(message)


class MultichannelError(ReleaseError):
    """An audio file has more than two channels."""

    def __init__(self, path: Path) -> None:
        self.path = path
        super().__init__(f'FLAC file "{path}" has more than 2 channels, unsupported')


class HashCheckError(ReleaseError):
    """Local files do not match the reference torrent."""


class SpectrogramRejectedError(ReleaseError):
    """User rejected the spectrograms of the source release."""


class UnsupportedSampleRateError(ReleaseError):
    """Sample rate needs resampling but is not a multiple of 44.1 or 48 kHz."""

    def __init__(self, path: Path, sample_rate: int) -> None:
        self.path = path
        self.sample_rate = sample_rate
        super().__init__(
            f'FLAC file "{path}" has a sample rate {sample_rate}, which is not a '
            "multiple of 44.1 or 48 kHz but needs resampling, this is unsupported"
        )


class Invalid24BitSourceError(ReleaseError):
    """Release was marked as 24-bit but contains no 24-bit audio."""


class UnsupportedTargetError(ReleaseError):
    """Requested target format cannot be produced by transcoding."""


class AudioHeaderError(ReleaseError):
    """Audio stream header is unreadable or malformed."""

    def __init__(self, path: Path, reason: str) -> None:
        self.path = path
        super().__init__(f'Could not read audio header of "{path}": {reason}')


class OutputDirectoryExistsError(ReleaseError):
    """Output directory for a target format already exists."""

    def __init__(self, path: Path) -> None:
        self.path = path
        super().__init__(f'Output directory "{path}" already exists, aborting')


class FilesystemError(ReleaseError):
    """A file or folder of one release could not be created, moved or read."""

    def __init__(self, path: Path, reason: str) -> None:
        self.path = path
        super().__init__(f'Filesystem error at "{path}": {reason}')


class ExternalToolError(ReleaseError):
    """External command exited with a non-zero status.

    Attributes:
        command: The argv of the failing process.
        returncode: Its exit status.
        stderr: Captured standard error, stripped.
    """

    def __init__(
        self, command: list[str], returncode: int, stderr: str = ""
    ) -> None:
        self.command = command
        self.returncode = returncode
        self.stderr = stderr
        detail = f": {stderr}" if stderr else ""
        super().__init__(
            f"{command[0]} exited with status {returncode}{detail}"
        )


class TagCopyError(ReleaseError):
    """Tags could not be copied into a transcoded file."""

    def __init__(self, path: Path, reason: str) -> None:
        self.path = path
        super().__init__(f'Could not copy tags to "{path}": {reason}')


class PathLengthError(ReleaseError):
    """No folder name short enough for the tracker's path limit was given."""
