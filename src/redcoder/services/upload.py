"""Release description and upload form construction."""

from __future__ import annotations

from redcoder.models.enums import TargetFormat
from redcoder.models.release import Release, UploadData


def create_description(permalink: str, command: str) -> str:
    """BBCode description linking the source and showing the transcode command.

    Example:
        >>> print(create_description("https://t/torrents.php?id=1&torrentid=2", "flac -dcs"))
        Transcode of [url=https://t/torrents.php?id=1&torrentid=2]https://t/torrents.php?id=1&torrentid=2[/url]
        <BLANKLINE>
        Transcode process:
        [code]flac -dcs[/code]
    """
    return (
        f"Transcode of [url={permalink}]{permalink}[/url]\n\n"
        f"Transcode process:\n[code]{command}[/code]"
    )


def build_upload_data(
    release: Release,
    target: TargetFormat,
    torrent: bytes,
    torrent_name: str,
    description: str,
) -> UploadData:
    """Fill the upload form for one transcoded format of ``release``."""
    return UploadData(
        torrent=torrent,
        torrent_name=torrent_name,
        category=release.category,
        remaster_year=release.year,
        remaster_title=release.remaster_title,
        remaster_record_label=release.record_label,
        remaster_catalogue_number=release.catalogue_number,
        format=target.tracker_format,
        bitrate=target.tracker_bitrate,
        media=release.media_name,
        release_desc=description,
        group_id=release.group_id,
    )


def manual_upload_fields(
    release: Release, target: TargetFormat, permalink: str, description: str
) -> list[tuple[str, str]]:
    """Label/value pairs a user needs to fill the upload form by hand."""
    return [
        ("Link", permalink),
        ("Name", release.name),
        ("Artist(s)", ", ".join(release.artists)),
        ("Edition Year", str(release.year)),
        ("Edition Title", release.remaster_title),
        ("Record Label", release.record_label),
        ("Catalogue Number", release.catalogue_number),
        ("Scene", "Yes" if release.scene else "No"),
        ("Format", target.tracker_format),
        ("Bitrate", target.tracker_bitrate),
        ("Media", release.media_name),
        ("Release Description", description),
    ]
