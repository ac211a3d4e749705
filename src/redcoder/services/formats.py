"""Target format resolution.

Decides which formats still have to be produced for a release, given what
the tracker already lists in the same edition.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from redcoder.exceptions import NoUsableSourceError
from redcoder.models.enums import TargetFormat
from redcoder.models.tracker import Torrent

logger = logging.getLogger(__name__)

LOSSLESS_SOURCES = frozenset({TargetFormat.FLAC, TargetFormat.FLAC24})


def existing_formats(source: Torrent, siblings: Iterable[Torrent]) -> set[TargetFormat]:
    """Formats already published in the edition of ``source``.

    Siblings belong to the same edition when remaster title, record label,
    catalogue number and media all match. The source itself counts.
    Format/encoding pairs outside the four known formats are ignored.
    """
    formats: set[TargetFormat] = set()
    for torrent in siblings:
        if not torrent.same_edition(source):
            continue
        target = TargetFormat.from_tracker(torrent.format, torrent.encoding)
        if target is None:
            logger.debug(
                "Ignoring torrent %d with unknown format %s / %s",
                torrent.id,
                torrent.format,
                torrent.encoding,
            )
            continue
        formats.add(target)
    return formats


def resolve_target_formats(
    existing: Iterable[TargetFormat],
    allowed: Iterable[TargetFormat],
    *,
    source_format: TargetFormat | None,
    bypass_existing: bool = False,
) -> list[TargetFormat]:
    """Compute the formats still to produce, in declaration order.

    A format is kept when it is allowed, is not FLAC24, and either
    ``bypass_existing`` is set and it differs from ``source_format``, or
    ``bypass_existing`` is unset and it is not in ``existing``.

    An empty result means there is nothing left to do.

    Raises:
        NoUsableSourceError: If neither FLAC nor FLAC24 is among the
            existing formats.

    Example:
        >>> resolve_target_formats(
        ...     {TargetFormat.FLAC},
        ...     [TargetFormat.FLAC, TargetFormat.MP3_320, TargetFormat.MP3_V0],
        ...     source_format=TargetFormat.FLAC,
        ... )
        [<TargetFormat.MP3_320: 'mp3-320'>, <TargetFormat.MP3_V0: 'mp3-v0'>]
    """
    existing_set = set(existing)
    allowed_set = set(allowed)

    if not existing_set & LOSSLESS_SOURCES:
        raise NoUsableSourceError("No FLAC or 24bit FLAC source exists in this edition")

    def wanted(target: TargetFormat) -> bool:
        if target not in allowed_set or target == TargetFormat.FLAC24:
            return False
        if bypass_existing:
            return target != source_format
        return target not in existing_set

    return [target for target in TargetFormat if wanted(target)]
