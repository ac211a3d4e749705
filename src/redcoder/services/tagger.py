"""Tag copying service using mediafile."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Protocol

from mediafile import MediaFile

logger = logging.getLogger(__name__)

# Stream properties exposed as fields by MediaFile; never written.
_READ_ONLY_FIELDS = frozenset(
    {"length", "samplerate", "bitdepth", "channels", "bitrate", "format", "filesize"}
)


class TagCopierProtocol(Protocol):
    """Protocol for copying tags between audio files."""

    def copy_tags(self, source: Path, dest: Path) -> None:
        """Copy every tag of ``source`` onto ``dest``."""
        ...


class TagCopyService:
    """Copies metadata from a source FLAC into a freshly encoded file.

    lame does not carry over Vorbis comments, so every MP3 output gets its
    tags copied here. FLAC outputs keep their tags through the encoder and
    never pass through this service.

    mediafile maps each field onto the right container (Vorbis comments for
    FLAC, ID3v2 for MP3), so a field-by-field copy is enough.
    """

    def copy_tags(self, source: Path, dest: Path) -> None:
        """Copy tags, including embedded art, from ``source`` to ``dest``.

        Raises:
            mediafile.UnreadableFileError: If either file cannot be opened.
        """
        src = MediaFile(source)
        out = MediaFile(dest)

        tags = {}
        for field in MediaFile.fields():
            if field in _READ_ONLY_FIELDS:
                continue
            value = getattr(src, field, None)
            if value in (None, "", []):
                continue
            tags[field] = value

        out.update(tags)
        out.save()
        logger.debug("Copied %d tag(s) to %s", len(tags), dest.name)
