"""Models for parsing tracker API responses.

These are internal models used to parse and validate responses from the
tracker's JSON API. Unknown keys are ignored so API additions do not break
parsing.
"""

from __future__ import annotations

import html
from typing import Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

__all__ = [
    "ApiEnvelope",
    "Artist",
    "Group",
    "IndexInfo",
    "MusicInfo",
    "Torrent",
    "TorrentGroup",
    "UploadResult",
]

T = TypeVar("T")


class TrackerModel(BaseModel):
    """Base model for tracker responses (camelCase keys)."""

    model_config = ConfigDict(
        extra="ignore",
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )


class ApiEnvelope(TrackerModel, Generic[T]):
    """Outer ``{status, response, error}`` wrapper of every API reply."""

    status: str
    response: T | None = None
    error: str | None = None


class IndexInfo(TrackerModel):
    """Account information returned by the ``index`` action."""

    username: str
    id: int
    passkey: str
    authkey: str = ""


class Artist(TrackerModel):
    id: int
    name: str

    @field_validator("name")
    @classmethod
    def unescape(cls, v: str) -> str:
        return html.unescape(v)


class MusicInfo(TrackerModel):
    artists: list[Artist] = Field(default_factory=list)


class Group(TrackerModel):
    """Torrent group (one album/release title)."""

    id: int
    name: str
    year: int = 0
    record_label: str = ""
    catalogue_number: str = ""
    category_name: str = "Music"
    music_info: MusicInfo = Field(default_factory=MusicInfo)

    @field_validator("name")
    @classmethod
    def unescape(cls, v: str) -> str:
        return html.unescape(v)


class Torrent(TrackerModel):
    """A single torrent (edition + format) inside a group."""

    id: int
    media: str
    format: str
    encoding: str
    remastered: bool = False
    remaster_year: int | None = None
    remaster_title: str = ""
    remaster_record_label: str = ""
    remaster_catalogue_number: str = ""
    scene: bool = False
    lossy_web_approved: bool = False
    lossy_master_approved: bool = False
    file_path: str = ""

    @field_validator(
        "remaster_title",
        "remaster_record_label",
        "remaster_catalogue_number",
        "file_path",
    )
    @classmethod
    def unescape(cls, v: str) -> str:
        return html.unescape(v)

    def same_edition(self, other: Torrent) -> bool:
        """Whether both torrents belong to the same remaster group."""
        return (
            self.remaster_title == other.remaster_title
            and self.remaster_record_label == other.remaster_record_label
            and self.remaster_catalogue_number == other.remaster_catalogue_number
            and self.media == other.media
        )


class TorrentGroup(TrackerModel):
    """Response of the ``torrentgroup`` action."""

    group: Group
    torrents: list[Torrent] = Field(default_factory=list)

    def find_torrent(self, torrent_id: int) -> Torrent | None:
        return next((t for t in self.torrents if t.id == torrent_id), None)


class UploadResult(TrackerModel):
    """Response of the ``upload`` action."""

    torrent_id: int = Field(alias="torrentid")
    group_id: int | None = Field(default=None, alias="groupid")
