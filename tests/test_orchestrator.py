"""Tests for concurrent release transcoding."""

import threading
from pathlib import Path
from unittest.mock import MagicMock

import pytest
from mediafile import UnreadableFileError
from redcoder.exceptions import (
    ExternalToolError,
    FilesystemError,
    OutputDirectoryExistsError,
    TagCopyError,
)
from redcoder.models.enums import TargetFormat
from redcoder.models.release import Release, TranscodeJob, TranscodeResult
from redcoder.services.orchestrator import TranscodeOrchestrator

TARGETS = [TargetFormat.MP3_320, TargetFormat.MP3_V0]


class FakeEngine:
    """Engine that writes an empty output file per job."""

    def __init__(self, fail_on: str | None = None) -> None:
        self.fail_on = fail_on
        self.jobs: list[TranscodeJob] = []
        self._lock = threading.Lock()

    def transcode(self, job: TranscodeJob) -> TranscodeResult:
        with self._lock:
            self.jobs.append(job)
        if self.fail_on and job.source.name == self.fail_on and job.target == TargetFormat.MP3_V0:
            raise ExternalToolError(["lame"], 1, "encoder crashed")
        output = job.output_dir / job.source.with_suffix(job.target.extension).name
        output.touch()
        return TranscodeResult(
            job=job, output_path=output, command=f"flac | {job.target.value}"
        )


class TestTranscodeOrchestrator:
    """Tests for TranscodeOrchestrator."""

    def test_transcodes_every_format_and_file(
        self, sample_release: Release, tmp_path: Path
    ) -> None:
        """Should produce one folder per format with the source layout."""
        engine = FakeEngine()
        tagger = MagicMock()
        orchestrator = TranscodeOrchestrator(engine, tagger, concurrency=3)
        out = tmp_path / "transcodes"

        result = orchestrator.transcode_all(sample_release, TARGETS, out)

        assert len(engine.jobs) == 6
        assert [o.target for o in result.outputs] == TARGETS
        for output in result.outputs:
            assert output.path == out / sample_release.folder_name(output.target)
            assert output.file_count == 3
            assert (output.path / "CD2" / "01 - Three.mp3").exists()
            assert output.command == f"flac | {output.target.value}"
        assert tagger.copy_tags.call_count == 6

    def test_progress_counts(self, sample_release: Release, tmp_path: Path) -> None:
        """Should yield one update per file with per-format counters."""
        orchestrator = TranscodeOrchestrator(FakeEngine(), MagicMock(), concurrency=2)

        updates = list(orchestrator.transcode(sample_release, TARGETS, tmp_path / "t"))

        assert [u.current for u in updates] == [1, 2, 3, 4, 5, 6]
        assert all(u.total == 6 for u in updates)
        final = {u.format_progress.target: u.format_progress for u in updates}
        assert all(p.completed == 3 and p.done for p in final.values())

    def test_flac_output_skips_tag_copy(
        self, sample_release: Release, tmp_path: Path
    ) -> None:
        """Should only copy tags into lossy outputs."""
        tagger = MagicMock()
        orchestrator = TranscodeOrchestrator(FakeEngine(), tagger)

        orchestrator.transcode_all(
            sample_release, [TargetFormat.FLAC, TargetFormat.MP3_V0], tmp_path / "t"
        )

        copied = {call.args[1].suffix for call in tagger.copy_tags.call_args_list}
        assert copied == {".mp3"}
        assert tagger.copy_tags.call_count == 3

    def test_existing_folder_aborts_before_work(
        self, sample_release: Release, tmp_path: Path
    ) -> None:
        """Should refuse to reuse a folder and create nothing."""
        out = tmp_path / "t"
        (out / sample_release.folder_name(TargetFormat.MP3_V0)).mkdir(parents=True)
        engine = FakeEngine()
        orchestrator = TranscodeOrchestrator(engine, MagicMock())

        with pytest.raises(OutputDirectoryExistsError):
            orchestrator.transcode_all(sample_release, TARGETS, out)

        assert engine.jobs == []
        assert not (out / sample_release.folder_name(TargetFormat.MP3_320)).exists()

    def test_failure_surfaces_after_all_jobs(
        self, sample_release: Release, tmp_path: Path
    ) -> None:
        """Should finish every job before reporting the first error."""
        engine = FakeEngine(fail_on="02 - Two.flac")
        orchestrator = TranscodeOrchestrator(engine, MagicMock(), concurrency=2)

        updates = list(orchestrator.transcode(sample_release, TARGETS, tmp_path / "t"))
        result = orchestrator.get_result()

        assert len(engine.jobs) == 6
        assert result is not None
        assert result.failed
        assert [o.target for o in result.outputs] == [TargetFormat.MP3_320]
        assert sum(1 for u in updates if u.error) == 1
        with pytest.raises(ExternalToolError, match="encoder crashed"):
            result.raise_first_error()

    def test_transcode_all_raises_first_error(
        self, sample_release: Release, tmp_path: Path
    ) -> None:
        orchestrator = TranscodeOrchestrator(FakeEngine(fail_on="01 - One.flac"), MagicMock())
        with pytest.raises(ExternalToolError):
            orchestrator.transcode_all(sample_release, TARGETS, tmp_path / "t")

    def test_tag_copy_failure_is_wrapped(
        self, sample_release: Release, tmp_path: Path
    ) -> None:
        tagger = MagicMock()
        tagger.copy_tags.side_effect = UnreadableFileError("x.mp3", "bad header")
        orchestrator = TranscodeOrchestrator(FakeEngine(), tagger)

        with pytest.raises(TagCopyError, match="bad header"):
            orchestrator.transcode_all(sample_release, [TargetFormat.MP3_V0], tmp_path / "t")

    def test_rejects_zero_concurrency(self) -> None:
        with pytest.raises(ValueError):
            TranscodeOrchestrator(FakeEngine(), MagicMock(), concurrency=0)

    def test_concurrency_bound(self, sample_release: Release, tmp_path: Path) -> None:
        """Should never run more jobs at once than the configured limit."""
        active = 0
        peak = 0
        lock = threading.Lock()
        inner = FakeEngine()

        class CountingEngine:
            def transcode(self, job: TranscodeJob) -> TranscodeResult:
                nonlocal active, peak
                with lock:
                    active += 1
                    peak = max(peak, active)
                try:
                    return inner.transcode(job)
                finally:
                    with lock:
                        active -= 1

        orchestrator = TranscodeOrchestrator(CountingEngine(), MagicMock(), concurrency=2)
        orchestrator.transcode_all(
            sample_release, [TargetFormat.FLAC, *TARGETS], tmp_path / "t"
        )

        assert peak <= 2
        assert len(inner.jobs) == 9

    def test_worker_os_error_is_collected(
        self, sample_release: Release, tmp_path: Path
    ) -> None:
        """Should treat an OSError in a worker like any other file failure."""
        inner = FakeEngine()

        class DiskFullEngine:
            def transcode(self, job: TranscodeJob) -> TranscodeResult:
                if job.source.name == "01 - One.flac":
                    raise OSError(28, "No space left on device")
                return inner.transcode(job)

        orchestrator = TranscodeOrchestrator(DiskFullEngine(), MagicMock())

        updates = list(
            orchestrator.transcode(sample_release, [TargetFormat.MP3_V0], tmp_path / "t")
        )
        result = orchestrator.get_result()

        assert len(updates) == 3
        assert result is not None
        assert result.outputs == []
        with pytest.raises(FilesystemError, match="No space left"):
            result.raise_first_error()

    def test_uncreatable_output_folder_is_wrapped(
        self, sample_release: Release, tmp_path: Path
    ) -> None:
        not_a_dir = tmp_path / "not_a_dir"
        not_a_dir.write_text("")
        engine = FakeEngine()
        orchestrator = TranscodeOrchestrator(engine, MagicMock())

        with pytest.raises(FilesystemError):
            orchestrator.transcode_all(sample_release, TARGETS, not_a_dir)

        assert engine.jobs == []
