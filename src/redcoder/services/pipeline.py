"""High-level release transcode pipeline."""

from __future__ import annotations

import logging
import shutil
from collections.abc import Callable, Iterable
from pathlib import Path

from redcoder.client import TrackerProtocol
from redcoder.config import Settings
from redcoder.exceptions import (
    ConfigurationError,
    FilesystemError,
    OutputDirectoryExistsError,
    RedcoderError,
    ReleaseError,
    SceneReleaseError,
    SpectrogramRejectedError,
    TorrentNotFoundError,
)
from redcoder.models.enums import ReleaseStatus, TargetFormat
from redcoder.models.progress import TranscodeProgress
from redcoder.models.release import FormatOutput, Release
from redcoder.models.results import ReleaseOutcome
from redcoder.models.tracker import Torrent, TorrentGroup
from redcoder.services.assembler import OutputAssembler, RenamePolicy
from redcoder.services.formats import existing_formats, resolve_target_formats
from redcoder.services.orchestrator import TranscodeOrchestrator
from redcoder.services.prompts import Prompter
from redcoder.services.spectrogram import SpectrogramService
from redcoder.services.torrent import TorrentTool, TorrentToolProtocol, build_announce_url
from redcoder.services.upload import (
    build_upload_data,
    create_description,
    manual_upload_fields,
)
from redcoder.services.validator import ReleaseValidator, require_24bit_source
from redcoder.utils.url import build_permalink, parse_permalink

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[TranscodeProgress], None]


class ReleaseTranscodeService:
    """Turns tracker permalinks into transcoded, uploaded releases.

    Pipeline Overview:
    ==================
    1. transcode_all() - Batch entry point: fetches the passkey once, then
                   processes every permalink, recording failures per release
    2. transcode_url() - One release, in order:
       a. resolve the torrent and the formats still missing in its edition
       b. validate tags, streams and (optionally) the torrent hash
       c. render spectrograms and ask for approval (optional)
       d. transcode every missing format concurrently
       e. copy ancillary files and enforce the path limit
       f. create torrents, optionally move folders, then upload or show
          the manual upload form

    Every collaborator is injectable; defaults are built from settings.

    Example:
        >>> with TrackerClient(settings.api_key, settings.tracker_url) as client:
        ...     service = ReleaseTranscodeService(settings, client, prompter=prompter)
        ...     outcomes = service.transcode_all(urls)
    """

    def __init__(
        self,
        settings: Settings,
        client: TrackerProtocol,
        *,
        prompter: Prompter,
        validator: ReleaseValidator | None = None,
        orchestrator: TranscodeOrchestrator | None = None,
        assembler: OutputAssembler | None = None,
        torrent_tool: TorrentToolProtocol | None = None,
        spectrograms: SpectrogramService | None = None,
        rename_policy: RenamePolicy | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> None:
        """Initialize the service.

        Args:
            settings: Complete settings (see ``Settings.require_complete``).
            client: Tracker client, owned by the caller.
            prompter: Answers confirmations and shows manual upload forms.
            validator: Optional validator (creates default if not provided).
            orchestrator: Optional orchestrator (creates default if not provided).
            assembler: Optional assembler (creates default if not provided).
            torrent_tool: Optional torrent tool (creates default if not provided).
            spectrograms: Optional spectrogram service.
            rename_policy: Folder rename policy; the prompter is used if omitted.
            on_progress: Called on the calling thread after each transcoded file.
        """
        self._settings = settings
        self._client = client
        self._prompter = prompter
        self._torrent_tool = torrent_tool or TorrentTool(source_tag=settings.source_tag)
        self._validator = validator or ReleaseValidator(client, self._torrent_tool)
        self._orchestrator = orchestrator or TranscodeOrchestrator(
            concurrency=settings.concurrency
        )
        self._assembler = assembler or OutputAssembler(rename_policy or prompter)
        self._spectrograms = spectrograms or SpectrogramService(
            concurrency=settings.concurrency
        )
        self._on_progress = on_progress

    # ============================================================================
    # PUBLIC API
    # ============================================================================

    def transcode_all(self, urls: Iterable[str]) -> list[ReleaseOutcome]:
        """Process every permalink; one failing release never stops the batch.

        Filesystem errors of a release are recorded as FAILED like any other
        per-release error.

        Raises:
            AuthenticationError: If the API key is rejected up front.
            TrackerAPIError: If the account lookup fails.
        """
        passkey = self._client.index().passkey
        outcomes: list[ReleaseOutcome] = []
        for url in urls:
            logger.info("Processing %s", url)
            try:
                outcome = self.transcode_url(url, passkey)
            except SceneReleaseError as e:
                logger.warning("%s", e)
                outcome = ReleaseOutcome(url=url, status=ReleaseStatus.SKIPPED, message=str(e))
            except (RedcoderError, OSError) as e:
                logger.error("Failed to process %s: %s", url, e)
                outcome = ReleaseOutcome(url=url, status=ReleaseStatus.FAILED, message=str(e))
            outcomes.append(outcome)
        return outcomes

    def transcode_url(self, url: str, passkey: str) -> ReleaseOutcome:
        """Run the whole pipeline for one permalink.

        Returns:
            SKIPPED if every wanted format exists already, else SUCCESS.

        Raises:
            RedcoderError: Any per-release failure (see exceptions module).
        """
        permalink = parse_permalink(url)
        group = self._client.get_torrent_group(permalink.group_id)
        torrent = self._find_source(group, permalink.torrent_id)

        targets = resolve_target_formats(
            existing_formats(torrent, group.torrents),
            self._settings.allowed_transcode_formats,
            source_format=TargetFormat.from_tracker(torrent.format, torrent.encoding),
            bypass_existing=self._settings.skip_existing_formats_check,
        )
        if not targets:
            message = (
                f"Torrent {torrent.id} in group {group.group.id} has all "
                "possible/wanted formats already"
            )
            logger.info("%s, skipping", message)
            return ReleaseOutcome(url=url, status=ReleaseStatus.SKIPPED, message=message)

        logger.info(
            "Found missing format(s) %s for torrent %d in group %d",
            ", ".join(t.display_name for t in targets),
            torrent.id,
            group.group.id,
        )

        release = self._load_release(group, torrent)
        report = self._validator.validate(
            release, verify_hash=not self._settings.skip_hash_check
        )
        require_24bit_source(targets, report.has_24bit)
        automatic = self._settings.automatic_upload and not report.vinyl_exception

        if not self._settings.skip_spectrogram:
            self._review_spectrograms(release)

        transcode_directory = self._required_dir(self._settings.transcode_directory)
        for progress in self._orchestrator.transcode(release, targets, transcode_directory):
            if self._on_progress is not None:
                self._on_progress(progress)
        result = self._orchestrator.get_result()
        if result is None:
            raise ReleaseError("Transcoding finished without a result")
        result.raise_first_error()
        logger.info("Transcoding done")

        if report.vinyl_exception and not self._prompter.confirm(
            "Release is vinyl with no or non-standard track numbers (e.g. A1, A2). "
            "Please check the tags of the transcoded files and adjust them as "
            "needed. Continue?"
        ):
            raise ReleaseError("Aborted after reviewing transcoded tags")

        outputs = self._assembler.assemble(release.source_path, result.outputs)

        finished: list[FormatOutput] = []
        uploaded: list[int] = []
        for output in outputs:
            output, torrent_id = self._publish(release, output, passkey, automatic=automatic)
            finished.append(output)
            if torrent_id is not None:
                uploaded.append(torrent_id)

        return ReleaseOutcome(
            url=url,
            status=ReleaseStatus.SUCCESS,
            outputs=finished,
            uploaded_ids=uploaded,
        )

    # ============================================================================
    # STEPS
    # ============================================================================

    def _find_source(self, group: TorrentGroup, torrent_id: int) -> Torrent:
        torrent = group.find_torrent(torrent_id)
        if torrent is None:
            raise TorrentNotFoundError(
                f"Torrent {torrent_id} not found in group {group.group.id}"
            )
        if torrent.scene:
            raise SceneReleaseError(
                f"Torrent {torrent_id} in group {group.group.id} is a scene release "
                "(currently not supported), skipping"
            )
        if torrent.lossy_web_approved or torrent.lossy_master_approved:
            logger.warning(
                "Torrent %d in group %d is marked lossy web/master approved",
                torrent_id,
                group.group.id,
            )
        return torrent

    def _load_release(self, group: TorrentGroup, torrent: Torrent) -> Release:
        content_directory = self._required_dir(self._settings.content_directory)
        try:
            release = Release.from_tracker(group.group, torrent, content_directory)
        except ValueError as e:
            raise ReleaseError(f"Unsupported release metadata: {e}") from e
        if not release.source_path.is_dir():
            raise ReleaseError(f'Source directory "{release.source_path}" not found')
        return release

    def _review_spectrograms(self, release: Release) -> None:
        spectrogram_directory = self._required_dir(self._settings.spectrogram_directory)
        logger.info("Creating spectrograms (this may take a while)")
        output_dir = self._spectrograms.generate_all(release.source_path, spectrogram_directory)
        if not self._prompter.confirm(
            f"Spectrograms written to {output_dir}, are they OK?"
        ):
            raise SpectrogramRejectedError(
                f"Spectrograms of torrent {release.torrent_id} were rejected"
            )

    def _publish(
        self, release: Release, output: FormatOutput, passkey: str, *, automatic: bool
    ) -> tuple[FormatOutput, int | None]:
        """Create the torrent, optionally move the folder, then upload."""
        torrent_directory = self._required_dir(self._settings.torrent_directory)
        torrent_path = torrent_directory / f"{output.path.name}.torrent"
        self._torrent_tool.create(
            output.path,
            torrent_path,
            build_announce_url(self._settings.announce_url, passkey),
        )

        if self._settings.move_transcode_to_content:
            content_directory = self._required_dir(self._settings.content_directory)
            output = output.model_copy(
                update={"path": self._move_folder(output.path, content_directory)}
            )

        permalink = build_permalink(
            self._settings.tracker_url, release.group_id, release.torrent_id
        )
        description = create_description(permalink, output.command)

        if not automatic:
            self._prompter.present(
                f"Manual mode: upload {output.target.display_name} by hand",
                manual_upload_fields(release, output.target, permalink, description),
            )
            self._prompter.confirm("Continue once the upload is done?")
            return output, None

        if self._settings.dry_run:
            logger.info("Dry run, not uploading %s", output.target.display_name)
            return output, None

        try:
            torrent = torrent_path.read_bytes()
        except OSError as e:
            raise FilesystemError(torrent_path, str(e)) from e
        data = build_upload_data(
            release,
            output.target,
            torrent,
            torrent_path.name,
            description,
        )
        torrent_id = self._client.upload_torrent(data)
        logger.info(
            "Uploaded %s: %s",
            output.target.display_name,
            build_permalink(self._settings.tracker_url, release.group_id, torrent_id),
        )
        return output, torrent_id

    @staticmethod
    def _move_folder(folder: Path, destination: Path) -> Path:
        """Move ``folder`` into ``destination``, never merging into an existing one.

        Raises:
            OutputDirectoryExistsError: If ``destination`` already holds the name.
            FilesystemError: If the move fails.
        """
        moved = destination / folder.name
        if moved.exists():
            raise OutputDirectoryExistsError(moved)
        try:
            shutil.move(folder, moved)
        except OSError as e:
            raise FilesystemError(folder, str(e)) from e
        logger.info("Moved %s to the content directory", folder.name)
        return moved

    @staticmethod
    def _required_dir(path: Path | None) -> Path:
        if path is None:
            raise ConfigurationError("Required directory is not configured")
        return path
