"""Release, stream and job models for the transcode pipeline."""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field

from redcoder.models.enums import Category, Media, TargetFormat
from redcoder.models.tracker import Group, Torrent
from redcoder.utils.filename import build_release_base_name, build_release_folder_name

VARIOUS_ARTISTS = "Various Artists"


class Release(BaseModel):
    """A source torrent resolved against the local content directory.

    Immutable once loaded. Built from tracker metadata via
    :meth:`from_tracker`.

    Attributes:
        group_id: Tracker torrent-group id.
        torrent_id: Tracker torrent id of the source.
        name: Album title as listed on the tracker.
        artists: Artist names of the group.
        year: Edition year (falls back to the original release year).
        remaster_title: Edition title, may be empty.
        record_label: Edition record label.
        catalogue_number: Edition catalogue number.
        media: Source media.
        media_name: Media exactly as the tracker spells it.
        category: Upload category of the group.
        scene: Whether the source is a scene release.
        source_format: Format of the source torrent.
        source_path: Local directory holding the source audio.
    """

    model_config = ConfigDict(frozen=True)

    group_id: int
    torrent_id: int
    name: str
    artists: list[str] = Field(default_factory=list)
    year: int
    remaster_title: str = ""
    record_label: str = ""
    catalogue_number: str = ""
    media: Media
    media_name: str
    category: Category = Category.MUSIC
    scene: bool = False
    source_format: TargetFormat | None = None
    source_path: Path

    @classmethod
    def from_tracker(
        cls, group: Group, torrent: Torrent, content_directory: Path
    ) -> Release:
        """Build a release from tracker metadata and a content directory.

        A remaster year of 0 or missing falls back to the group year.
        """
        year = torrent.remaster_year or group.year
        return cls(
            group_id=group.id,
            torrent_id=torrent.id,
            name=group.name,
            artists=[a.name for a in group.music_info.artists],
            year=year,
            remaster_title=torrent.remaster_title,
            record_label=torrent.remaster_record_label,
            catalogue_number=torrent.remaster_catalogue_number,
            media=Media(torrent.media),
            media_name=torrent.media,
            category=Category.from_name(group.category_name),
            scene=torrent.scene,
            source_format=TargetFormat.from_tracker(torrent.format, torrent.encoding),
            source_path=content_directory / torrent.file_path,
        )

    @property
    def artist(self) -> str:
        """Artist used for naming, "Various Artists" for multi-artist groups."""
        if len(self.artists) > 1:
            return VARIOUS_ARTISTS
        return self.artists[0] if self.artists else VARIOUS_ARTISTS

    @property
    def base_name(self) -> str:
        """Folder base name shared by every transcoded format."""
        return build_release_base_name(
            self.artist, self.name, self.remaster_title, self.year
        )

    def folder_name(self, target: TargetFormat) -> str:
        """Deterministic output folder name for one target format."""
        return build_release_folder_name(self.base_name, self.media_name, target)


class AudioStreamInfo(BaseModel):
    """Stream properties read once from an audio file header."""

    model_config = ConfigDict(frozen=True)

    sample_rate: int
    bit_depth: int
    channels: int

    @property
    def needs_resample(self) -> bool:
        """Whether the stream must be resampled to 16 bit / <= 48 kHz."""
        return self.sample_rate > 48000 or self.bit_depth > 16

    @property
    def is_multichannel(self) -> bool:
        return self.channels > 2

    @property
    def is_hi_res(self) -> bool:
        return self.bit_depth > 16


class TranscodeJob(BaseModel):
    """One source file to be produced in one target format."""

    model_config = ConfigDict(frozen=True)

    source: Path
    target: TargetFormat
    output_dir: Path


class TranscodeResult(BaseModel):
    """Output of a finished transcode job.

    Attributes:
        job: The job that produced this result.
        output_path: Path of the produced file.
        command: Command chain template used, e.g.
            ``flac -dcs -- input.flac | lame -S -V 0 ... - output.mp3``.
    """

    model_config = ConfigDict(frozen=True)

    job: TranscodeJob
    output_path: Path
    command: str


class FormatOutput(BaseModel):
    """A finished output folder for one target format."""

    model_config = ConfigDict(frozen=True)

    target: TargetFormat
    path: Path
    command: str
    file_count: int


class UploadData(BaseModel):
    """Fields of the tracker upload form."""

    model_config = ConfigDict(frozen=True)

    torrent: bytes
    torrent_name: str
    category: Category
    remaster_year: int
    remaster_title: str
    remaster_record_label: str
    remaster_catalogue_number: str
    format: str
    bitrate: str
    media: str
    release_desc: str
    group_id: int

    def form_fields(self) -> dict[str, str]:
        """Text fields of the multipart form."""
        return {
            "type": str(int(self.category)),
            "remaster_title": self.remaster_title,
            "remaster_record_label": self.remaster_record_label,
            "remaster_catalogue_number": self.remaster_catalogue_number,
            "remaster_year": str(self.remaster_year),
            "format": self.format,
            "bitrate": self.bitrate,
            "media": self.media,
            "release_desc": self.release_desc,
            "groupid": str(self.group_id),
        }
