"""Per-release outcome models."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from redcoder.models.enums import ReleaseStatus
from redcoder.models.release import FormatOutput


class ReleaseOutcome(BaseModel):
    """Result of processing one permalink in a batch.

    Attributes:
        url: Permalink the release was requested with.
        status: Final status.
        message: Reason for a skip or failure.
        outputs: Finished format folders (after renaming and moving).
        uploaded_ids: Torrent ids assigned by automatic uploads.
    """

    model_config = ConfigDict(frozen=True)

    url: str
    status: ReleaseStatus
    message: str = ""
    outputs: list[FormatOutput] = Field(default_factory=list)
    uploaded_ids: list[int] = Field(default_factory=list)


def count_by_status(outcomes: list[ReleaseOutcome]) -> dict[ReleaseStatus, int]:
    """Count outcomes per status, including statuses that never occurred."""
    counts = dict.fromkeys(ReleaseStatus, 0)
    for outcome in outcomes:
        counts[outcome.status] += 1
    return counts
