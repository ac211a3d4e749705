"""Tests for target format resolution."""

from collections.abc import Callable

import pytest
from redcoder.exceptions import NoUsableSourceError
from redcoder.models.enums import TargetFormat
from redcoder.models.tracker import Torrent
from redcoder.services.formats import existing_formats, resolve_target_formats

ALL_FORMATS = [TargetFormat.FLAC, TargetFormat.MP3_320, TargetFormat.MP3_V0]


class TestResolveTargetFormats:
    """Tests for resolve_target_formats."""

    def test_flac_source_gets_both_mp3s(self) -> None:
        """Should return the missing MP3 formats in declaration order."""
        result = resolve_target_formats(
            {TargetFormat.FLAC}, ALL_FORMATS, source_format=TargetFormat.FLAC
        )
        assert result == [TargetFormat.MP3_320, TargetFormat.MP3_V0]

    def test_excludes_existing_formats(self) -> None:
        """Should skip formats that already exist in the edition."""
        result = resolve_target_formats(
            {TargetFormat.FLAC, TargetFormat.MP3_320},
            ALL_FORMATS,
            source_format=TargetFormat.FLAC,
        )
        assert result == [TargetFormat.MP3_V0]

    def test_flac24_source_gets_flac(self) -> None:
        """Should add a 16-bit FLAC for a 24-bit only edition."""
        result = resolve_target_formats(
            {TargetFormat.FLAC24}, ALL_FORMATS, source_format=TargetFormat.FLAC24
        )
        assert result == ALL_FORMATS

    def test_never_returns_flac24(self) -> None:
        """Should never produce 24-bit FLAC, even when allowed."""
        result = resolve_target_formats(
            {TargetFormat.FLAC},
            list(TargetFormat),
            source_format=TargetFormat.FLAC,
            bypass_existing=True,
        )
        assert TargetFormat.FLAC24 not in result

    def test_respects_allow_list(self) -> None:
        """Should only return allowed formats."""
        result = resolve_target_formats(
            {TargetFormat.FLAC}, [TargetFormat.MP3_V0], source_format=TargetFormat.FLAC
        )
        assert result == [TargetFormat.MP3_V0]

    def test_everything_exists_returns_empty(self) -> None:
        """Should return an empty list when nothing is missing."""
        result = resolve_target_formats(
            set(ALL_FORMATS), ALL_FORMATS, source_format=TargetFormat.FLAC
        )
        assert result == []

    def test_is_idempotent(self) -> None:
        """Should return the same result for the same input."""
        args = ({TargetFormat.FLAC24, TargetFormat.MP3_V0}, ALL_FORMATS)
        first = resolve_target_formats(*args, source_format=TargetFormat.FLAC24)
        second = resolve_target_formats(*args, source_format=TargetFormat.FLAC24)
        assert first == second

    def test_no_lossless_source_raises(self) -> None:
        """Should raise when the edition has no FLAC or 24-bit FLAC."""
        with pytest.raises(NoUsableSourceError):
            resolve_target_formats(
                {TargetFormat.MP3_320}, ALL_FORMATS, source_format=TargetFormat.MP3_320
            )

    def test_bypass_only_excludes_source_format(self) -> None:
        """Should ignore existing formats except the source's own."""
        result = resolve_target_formats(
            {TargetFormat.FLAC, TargetFormat.MP3_320, TargetFormat.MP3_V0},
            ALL_FORMATS,
            source_format=TargetFormat.FLAC,
            bypass_existing=True,
        )
        assert result == [TargetFormat.MP3_320, TargetFormat.MP3_V0]


class TestExistingFormats:
    """Tests for existing_formats."""

    def test_source_counts(self, make_torrent: Callable[..., Torrent]) -> None:
        """Should include the source torrent's own format."""
        source = make_torrent()
        assert existing_formats(source, [source]) == {TargetFormat.FLAC}

    def test_only_same_edition(self, make_torrent: Callable[..., Torrent]) -> None:
        """Should ignore torrents of other editions."""
        source = make_torrent()
        siblings = [
            source,
            make_torrent(id=3, format="MP3", encoding="320"),
            make_torrent(
                id=4, format="MP3", encoding="V0 (VBR)", remaster_title="Deluxe"
            ),
            make_torrent(id=5, format="MP3", encoding="V0 (VBR)", media="Vinyl"),
        ]
        assert existing_formats(source, siblings) == {
            TargetFormat.FLAC,
            TargetFormat.MP3_320,
        }

    def test_ignores_unknown_pairs(self, make_torrent: Callable[..., Torrent]) -> None:
        """Should skip formats outside the known four."""
        source = make_torrent()
        siblings = [
            source,
            make_torrent(id=3, format="AAC", encoding="256"),
            make_torrent(id=4, format="MP3", encoding="V2 (VBR)"),
        ]
        assert existing_formats(source, siblings) == {TargetFormat.FLAC}
