"""Domain models for redcoder."""

from redcoder.models.enums import (
    Category,
    Media,
    ReleaseStatus,
    TargetFormat,
    ValidationOutcome,
)
from redcoder.models.progress import FormatProgress, TranscodeProgress
from redcoder.models.release import (
    AudioStreamInfo,
    FormatOutput,
    Release,
    TranscodeJob,
    TranscodeResult,
    UploadData,
)
from redcoder.models.results import ReleaseOutcome

__all__ = [
    "AudioStreamInfo",
    "Category",
    "FormatOutput",
    "FormatProgress",
    "Media",
    "Release",
    "ReleaseOutcome",
    "ReleaseStatus",
    "TargetFormat",
    "TranscodeJob",
    "TranscodeProgress",
    "TranscodeResult",
    "UploadData",
    "ValidationOutcome",
]
