"""Concurrent transcoding of one release into several target formats."""

from __future__ import annotations

import logging
from collections.abc import Iterator, Sequence
from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from pathlib import Path

from mediafile import FileTypeError, UnreadableFileError

from redcoder.exceptions import (
    FilesystemError,
    OutputDirectoryExistsError,
    RedcoderError,
    TagCopyError,
)
from redcoder.models.enums import TargetFormat
from redcoder.models.progress import FormatProgress, TranscodeProgress
from redcoder.models.release import FormatOutput, Release, TranscodeJob, TranscodeResult
from redcoder.services.engine import TranscodeEngine
from redcoder.services.tagger import TagCopierProtocol, TagCopyService
from redcoder.utils.files import find_audio_files

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OrchestrationResult:
    """Outcome of transcoding a release into all requested formats.

    Attributes:
        outputs: One entry per format whose files all succeeded.
        errors: Failures in the order they completed.
    """

    outputs: list[FormatOutput] = field(default_factory=list)
    errors: list[RedcoderError] = field(default_factory=list)

    @property
    def failed(self) -> bool:
        return bool(self.errors)

    def raise_first_error(self) -> None:
        """Re-raise the first failure, if any."""
        if self.errors:
            raise self.errors[0]


class TranscodeOrchestrator:
    """Runs every (format, file) job of a release on one bounded pool.

    Pipeline Overview:
    ==================
    1. prepare_output() - Creates one fresh folder per target format,
                   refusing to reuse an existing one
    2. plan() - Expands formats x source files into TranscodeJobs, keeping
                   the source's subdirectory layout
    3. transcode() - Submits all jobs to a single ThreadPoolExecutor and
                   yields progress as they finish, in completion order
    4. get_result() - Per-format outputs plus collected errors, available
                   once every job has finished

    The executor's worker count is the only concurrency bound, so a
    release with many formats cannot start more encoder chains than
    ``concurrency``. Progress counters are updated on the calling thread.
    No job is cancelled when a sibling fails; the first error is surfaced
    after all of them have finished.

    Example:
        >>> orchestrator = TranscodeOrchestrator(concurrency=4)
        >>> for progress in orchestrator.transcode(release, targets, out_dir):
        ...     print(f"{progress.current}/{progress.total}")
        >>> result = orchestrator.get_result()
    """

    def __init__(
        self,
        engine: TranscodeEngine | None = None,
        tagger: TagCopierProtocol | None = None,
        *,
        concurrency: int = 1,
    ) -> None:
        if concurrency < 1:
            raise ValueError("concurrency must be at least 1")
        self._engine = engine or TranscodeEngine()
        self._tagger = tagger or TagCopyService()
        self._concurrency = concurrency
        self._last_result: OrchestrationResult | None = None

    # ============================================================================
    # PUBLIC API
    # ============================================================================

    def prepare_output(
        self,
        release: Release,
        targets: Sequence[TargetFormat],
        transcode_directory: Path,
    ) -> dict[TargetFormat, Path]:
        """Create the output folder of every target format.

        All folders are checked before any is created, so a conflict leaves
        the transcode directory untouched.

        Raises:
            OutputDirectoryExistsError: If any folder already exists.
            FilesystemError: If a folder cannot be created.
        """
        folders = {
            target: transcode_directory / release.folder_name(target) for target in targets
        }
        for folder in folders.values():
            if folder.exists():
                raise OutputDirectoryExistsError(folder)

        for folder in folders.values():
            try:
                folder.mkdir(parents=True)
            except OSError as e:
                raise FilesystemError(folder, str(e)) from e
        return folders

    def plan(
        self, release: Release, folders: dict[TargetFormat, Path]
    ) -> list[TranscodeJob]:
        """Build the job list, creating output subdirectories as needed.

        Raises:
            FilesystemError: If the source cannot be listed or a subdirectory
                cannot be created.
        """
        try:
            sources = find_audio_files(release.source_path)
        except OSError as e:
            raise FilesystemError(release.source_path, str(e)) from e
        jobs: list[TranscodeJob] = []
        for target, folder in folders.items():
            for source in sources:
                relative_dir = source.parent.relative_to(release.source_path)
                output_dir = folder / relative_dir
                try:
                    output_dir.mkdir(parents=True, exist_ok=True)
                except OSError as e:
                    raise FilesystemError(output_dir, str(e)) from e
                jobs.append(TranscodeJob(source=source, target=target, output_dir=output_dir))
        return jobs

    def transcode(
        self,
        release: Release,
        targets: Sequence[TargetFormat],
        transcode_directory: Path,
    ) -> Iterator[TranscodeProgress]:
        """Transcode ``release`` into every format in ``targets``.

        Yields:
            TranscodeProgress after each finished file, failed or not.

        Raises:
            OutputDirectoryExistsError: Before any work starts, if an output
                folder already exists.
            FilesystemError: If an output folder cannot be created or the
                source directory cannot be listed.
        """
        self._last_result = None
        folders = self.prepare_output(release, targets, transcode_directory)
        jobs = self.plan(release, folders)

        totals = {target: 0 for target in targets}
        for job in jobs:
            totals[job.target] += 1
        counters = {
            target: FormatProgress(target=target, total=totals[target]) for target in targets
        }

        logger.info(
            "Transcoding %d file(s) into %s",
            len(jobs) // max(len(targets), 1),
            ", ".join(t.display_name for t in targets),
        )

        results: dict[int, TranscodeResult] = {}
        errors: list[RedcoderError] = []
        current = 0

        with ThreadPoolExecutor(max_workers=self._concurrency) as executor:
            futures: dict[Future[TranscodeResult], int] = {
                executor.submit(self._run_job, job): index
                for index, job in enumerate(jobs)
            }
            for future in as_completed(futures):
                index = futures[future]
                job = jobs[index]
                current += 1
                try:
                    result = future.result()
                except RedcoderError as e:
                    logger.error(
                        "Failed to transcode %s to %s: %s",
                        job.source.name,
                        job.target.display_name,
                        e,
                    )
                    errors.append(e)
                    counters[job.target] = self._advance(counters[job.target], failed=True)
                    yield TranscodeProgress(
                        current=current,
                        total=len(jobs),
                        format_progress=counters[job.target],
                        error=str(e),
                    )
                    continue

                results[index] = result
                counters[job.target] = self._advance(counters[job.target], failed=False)
                yield TranscodeProgress(
                    current=current,
                    total=len(jobs),
                    format_progress=counters[job.target],
                    result=result,
                )

        self._last_result = OrchestrationResult(
            outputs=self._collect_outputs(jobs, results, folders, counters),
            errors=errors,
        )

    def get_result(self) -> OrchestrationResult | None:
        """Result of the last completed :meth:`transcode` run."""
        return self._last_result

    def transcode_all(
        self,
        release: Release,
        targets: Sequence[TargetFormat],
        transcode_directory: Path,
    ) -> OrchestrationResult:
        """Run :meth:`transcode` to completion.

        Raises:
            RedcoderError: The first job failure, after all jobs finished.
        """
        for _ in self.transcode(release, targets, transcode_directory):
            pass
        result = self._last_result or OrchestrationResult()
        result.raise_first_error()
        return result

    # ============================================================================
    # INTERNALS
    # ============================================================================

    def _run_job(self, job: TranscodeJob) -> TranscodeResult:
        """Worker body: transcode, then copy tags into MP3 outputs."""
        try:
            result = self._engine.transcode(job)
        except OSError as e:
            raise FilesystemError(job.source, str(e)) from e
        if not job.target.is_lossless:
            try:
                self._tagger.copy_tags(job.source, result.output_path)
            except (UnreadableFileError, FileTypeError) as e:
                raise TagCopyError(result.output_path, str(e)) from e
            except OSError as e:
                raise FilesystemError(result.output_path, str(e)) from e
        return result

    @staticmethod
    def _advance(progress: FormatProgress, *, failed: bool) -> FormatProgress:
        return progress.model_copy(
            update={
                "completed": progress.completed + 1,
                "failed": progress.failed + (1 if failed else 0),
            }
        )

    @staticmethod
    def _collect_outputs(
        jobs: list[TranscodeJob],
        results: dict[int, TranscodeResult],
        folders: dict[TargetFormat, Path],
        counters: dict[TargetFormat, FormatProgress],
    ) -> list[FormatOutput]:
        outputs: list[FormatOutput] = []
        for target, folder in folders.items():
            if counters[target].failed:
                continue
            # Jobs are in sorted source order; the last one's command stands
            # for the whole format since every file uses the same template.
            indexes = [i for i, job in enumerate(jobs) if job.target == target]
            command = results[indexes[-1]].command if indexes else ""
            outputs.append(
                FormatOutput(
                    target=target,
                    path=folder,
                    command=command,
                    file_count=len(indexes),
                )
            )
        return outputs
