"""Tests for tag copying."""

from pathlib import Path
from unittest.mock import MagicMock, patch

from redcoder.services.tagger import TagCopyService


class TestTagCopyService:
    """Tests for TagCopyService."""

    def test_copies_tags(self) -> None:
        """Should copy set fields and save the destination."""
        source = MagicMock(title="Song", artist="Artist", album="Album", genre="")
        dest = MagicMock()

        with patch("redcoder.services.tagger.MediaFile") as media_file:
            media_file.side_effect = [source, dest]
            media_file.fields.return_value = iter(["title", "artist", "album", "genre"])
            TagCopyService().copy_tags(Path("a.flac"), Path("a.mp3"))

        dest.update.assert_called_once_with(
            {"title": "Song", "artist": "Artist", "album": "Album"}
        )
        dest.save.assert_called_once()

    def test_skips_stream_properties(self) -> None:
        """Should never write read-only stream fields."""
        source = MagicMock(title="Song", samplerate=44100, bitrate=900, length=12.5)
        dest = MagicMock()

        with patch("redcoder.services.tagger.MediaFile") as media_file:
            media_file.side_effect = [source, dest]
            media_file.fields.return_value = iter(
                ["title", "samplerate", "bitrate", "length"]
            )
            TagCopyService().copy_tags(Path("a.flac"), Path("a.mp3"))

        dest.update.assert_called_once_with({"title": "Song"})

    def test_copies_embedded_art(self) -> None:
        source = MagicMock(images=[b"img"], lyrics=None)
        dest = MagicMock()

        with patch("redcoder.services.tagger.MediaFile") as media_file:
            media_file.side_effect = [source, dest]
            media_file.fields.return_value = iter(["images", "lyrics"])
            TagCopyService().copy_tags(Path("a.flac"), Path("a.mp3"))

        dest.update.assert_called_once_with({"images": [b"img"]})
