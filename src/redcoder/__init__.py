"""redcoder - Transcode lossless tracker releases into missing formats.

Given permalinks of FLAC torrents, redcoder works out which formats the
release's edition still lacks, validates the local source files, transcodes
them with flac, lame and sox under a bounded worker pool, assembles
publishable folders, creates torrents with imdl and uploads them.

Designed for use as a library with a CLI on top.

Examples:
    Transcode a batch of permalinks:
    ```python
    from redcoder import create_release_service, create_tracker_client, load_settings
    from redcoder.services import ScriptedPrompter

    settings = load_settings()
    with create_tracker_client(settings) as client:
        service = create_release_service(settings, client, prompter=ScriptedPrompter())
        outcomes = service.transcode_all(urls)
    ```

    Work out the missing formats of an edition:
    ```python
    from redcoder import TargetFormat, resolve_target_formats

    resolve_target_formats(
        {TargetFormat.FLAC},
        [TargetFormat.FLAC, TargetFormat.MP3_320, TargetFormat.MP3_V0],
        source_format=TargetFormat.FLAC,
    )
    ```
"""

from redcoder.client import TrackerClient, TrackerProtocol
from redcoder.config import Settings, load_settings
from redcoder.exceptions import (
    AudioHeaderError,
    AuthenticationError,
    ConfigurationError,
    ExternalToolError,
    FilesystemError,
    HashCheckError,
    Invalid24BitSourceError,
    MissingDependencyError,
    MultichannelError,
    NoUsableSourceError,
    OutputDirectoryExistsError,
    PathLengthError,
    PermalinkParseError,
    RedcoderError,
    ReleaseError,
    SceneReleaseError,
    SpectrogramRejectedError,
    TagCopyError,
    TagValidationError,
    TorrentNotFoundError,
    TrackerAPIError,
    UnsupportedSampleRateError,
    UnsupportedTargetError,
)
from redcoder.models import (
    AudioStreamInfo,
    FormatOutput,
    Release,
    ReleaseOutcome,
    ReleaseStatus,
    TargetFormat,
    TranscodeJob,
    TranscodeProgress,
    TranscodeResult,
    ValidationOutcome,
)
from redcoder.services import (
    MappingRenamePolicy,
    Prompter,
    ReleaseTranscodeService,
    RenamePolicy,
    TranscodeEngine,
    TranscodeOrchestrator,
    resolve_target_formats,
)
from redcoder.services.pipeline import ProgressCallback


def create_tracker_client(settings: Settings) -> TrackerClient:
    """Create the tracker client for ``settings``.

    The caller owns the client and must close it (or use it as a context
    manager) once the batch is done.

    Raises:
        ConfigurationError: If no API key is configured.
    """
    if not settings.api_key:
        raise ConfigurationError("You have to specify api_key")
    return TrackerClient(settings.api_key, settings.tracker_url)


def create_release_service(
    settings: Settings,
    client: TrackerProtocol,
    *,
    prompter: Prompter,
    rename_policy: RenamePolicy | None = None,
    on_progress: ProgressCallback | None = None,
) -> ReleaseTranscodeService:
    """Create a fully wired release transcode service.

    Args:
        settings: Complete settings.
        client: Tracker client shared by every step.
        prompter: Answers the pipeline's questions.
        rename_policy: Optional folder rename policy (defaults to the prompter).
        on_progress: Optional per-file transcode progress callback.

    Raises:
        ConfigurationError: If required settings are missing.
    """
    settings.require_complete()
    return ReleaseTranscodeService(
        settings,
        client,
        prompter=prompter,
        rename_policy=rename_policy,
        on_progress=on_progress,
    )


__all__ = [
    "AudioHeaderError",
    "AudioStreamInfo",
    "AuthenticationError",
    "ConfigurationError",
    "ExternalToolError",
    "FilesystemError",
    "FormatOutput",
    "HashCheckError",
    "Invalid24BitSourceError",
    "MappingRenamePolicy",
    "MissingDependencyError",
    "MultichannelError",
    "NoUsableSourceError",
    "OutputDirectoryExistsError",
    "PathLengthError",
    "PermalinkParseError",
    "Prompter",
    "RedcoderError",
    "Release",
    "ReleaseError",
    "ReleaseOutcome",
    "ReleaseStatus",
    "ReleaseTranscodeService",
    "RenamePolicy",
    "SceneReleaseError",
    "Settings",
    "SpectrogramRejectedError",
    "TagCopyError",
    "TagValidationError",
    "TargetFormat",
    "TorrentNotFoundError",
    "TrackerAPIError",
    "TrackerClient",
    "TranscodeEngine",
    "TranscodeJob",
    "TranscodeOrchestrator",
    "TranscodeProgress",
    "TranscodeResult",
    "UnsupportedSampleRateError",
    "UnsupportedTargetError",
    "ValidationOutcome",
    "create_release_service",
    "create_tracker_client",
    "load_settings",
    "resolve_target_formats",
]
