"""Progress tracking models for the transcode phase."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict

from redcoder.models.enums import TargetFormat
from redcoder.models.release import TranscodeResult


class FormatProgress(BaseModel):
    """Per-format counters.

    Attributes:
        target: Format being produced.
        completed: Files finished (successfully or not) for this format.
        failed: Files that failed for this format.
        total: Source files scheduled for this format.
    """

    model_config = ConfigDict(frozen=True)

    target: TargetFormat
    completed: int = 0
    failed: int = 0
    total: int

    @property
    def done(self) -> bool:
        return self.completed >= self.total


class TranscodeProgress(BaseModel):
    """Progress update yielded after each finished file.

    Attributes:
        current: Files finished across all formats (1-indexed).
        total: Files scheduled across all formats.
        format_progress: Counters of the format the file belonged to.
        result: Result of the finished file, None if it failed.
        error: Error message if the file failed.
    """

    model_config = ConfigDict(frozen=True)

    current: int
    total: int
    format_progress: FormatProgress
    result: TranscodeResult | None = None
    error: str | None = None
