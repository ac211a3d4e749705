"""Tests for output folder assembly."""

from pathlib import Path

import pytest
from redcoder.exceptions import OutputDirectoryExistsError, PathLengthError
from redcoder.models.enums import TargetFormat
from redcoder.models.release import FormatOutput
from redcoder.services.assembler import (
    MappingRenamePolicy,
    OutputAssembler,
    longest_path_length,
)


def _make_folder(parent: Path, name: str, files: list[str]) -> Path:
    folder = parent / name
    for relative in files:
        path = folder / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(b"audio")
    return folder


class TestLongestPathLength:
    """Tests for longest_path_length."""

    def test_counts_folder_slash_and_relative_file(self, tmp_path: Path) -> None:
        folder = _make_folder(tmp_path, "Album", ["01.mp3", "CD2/01 - Long.mp3"])
        # "Album/CD2/01 - Long.mp3"
        assert longest_path_length(folder, ".mp3") == 23

    def test_candidate_name(self, tmp_path: Path) -> None:
        folder = _make_folder(tmp_path, "Album", ["01.mp3"])
        assert longest_path_length(folder, ".mp3", "A") == len("A/01.mp3")

    def test_ignores_other_extensions(self, tmp_path: Path) -> None:
        folder = _make_folder(tmp_path, "Album", ["01.mp3", "a-very-long-cover-name.jpg"])
        assert longest_path_length(folder, ".mp3") == len("Album/01.mp3")


class TestEnforcePathLimit:
    """Tests for OutputAssembler.enforce_path_limit."""

    def test_exactly_at_limit_is_kept(self, tmp_path: Path) -> None:
        """Should accept a path of exactly 180 characters."""
        name = "x" * 170
        folder = _make_folder(tmp_path, name, ["track.mp3"])
        assembler = OutputAssembler(MappingRenamePolicy({}))

        assert longest_path_length(folder, ".mp3") == 180
        assert assembler.enforce_path_limit(folder, ".mp3") == folder

    def test_renames_once_to_compliant_name(self, tmp_path: Path) -> None:
        """Should follow the policy until the name fits, then rename."""
        long_name = "L" * 175
        middle_name = "M" * 172
        folder = _make_folder(tmp_path, long_name, ["01 - One.mp3"])
        policy = MappingRenamePolicy({long_name: middle_name, middle_name: "Short"})
        assembler = OutputAssembler(policy)

        renamed = assembler.enforce_path_limit(folder, ".mp3")

        assert renamed == tmp_path / "Short"
        assert (renamed / "01 - One.mp3").exists()
        assert not folder.exists()

    @pytest.mark.parametrize(
        ("file_length", "renamed"),
        [
            # 170 + "/" + 9 == 180
            (9, False),
            # 170 + "/" + 20 == 191, the separator counts
            (20, True),
            (40, True),
        ],
    )
    def test_170_character_folder(
        self, tmp_path: Path, file_length: int, renamed: bool
    ) -> None:
        """Should ask for a new name only when folder/file exceeds 180."""
        asked: list[str] = []

        class RecordingPolicy:
            def rename(self, folder_name: str, longest: int, limit: int) -> str | None:
                asked.append(folder_name)
                return "Short"

        file_name = "a" * (file_length - len(".mp3")) + ".mp3"
        folder = _make_folder(tmp_path, "F" * 170, [file_name])

        result = OutputAssembler(RecordingPolicy()).enforce_path_limit(folder, ".mp3")

        assert bool(asked) is renamed
        assert result == (tmp_path / "Short" if renamed else folder)
        assert (result / file_name).exists()

    def test_policy_giving_up_raises(self, tmp_path: Path) -> None:
        folder = _make_folder(tmp_path, "L" * 175, ["01 - One.mp3"])
        assembler = OutputAssembler(MappingRenamePolicy({}))

        with pytest.raises(PathLengthError):
            assembler.enforce_path_limit(folder, ".mp3")
        assert folder.exists()

    def test_candidate_is_sanitized(self, tmp_path: Path) -> None:
        long_name = "L" * 175
        folder = _make_folder(tmp_path, long_name, ["01 - One.mp3"])
        assembler = OutputAssembler(MappingRenamePolicy({long_name: " AC/DC "}))

        assert assembler.enforce_path_limit(folder, ".mp3").name == "AC_DC"

    def test_existing_target_raises(self, tmp_path: Path) -> None:
        long_name = "L" * 175
        folder = _make_folder(tmp_path, long_name, ["01 - One.mp3"])
        (tmp_path / "Short").mkdir()
        assembler = OutputAssembler(MappingRenamePolicy({long_name: "Short"}))

        with pytest.raises(OutputDirectoryExistsError):
            assembler.enforce_path_limit(folder, ".mp3")

    def test_custom_limit(self, tmp_path: Path) -> None:
        folder = _make_folder(tmp_path, "Album", ["01.mp3"])
        assembler = OutputAssembler(MappingRenamePolicy({"Album": "A"}), max_length=10)
        assert assembler.enforce_path_limit(folder, ".mp3").name == "A"


class TestAssemble:
    """Tests for OutputAssembler.assemble."""

    def test_copies_ancillary_files_with_layout(
        self, source_dir: Path, tmp_path: Path
    ) -> None:
        """Should copy artwork and text files next to the audio."""
        folder = _make_folder(tmp_path / "t", "Out", ["01 - One.mp3", "CD2/01 - Three.mp3"])
        output = FormatOutput(
            target=TargetFormat.MP3_V0, path=folder, command="cmd", file_count=2
        )

        (result,) = OutputAssembler(MappingRenamePolicy({})).assemble(source_dir, [output])

        assert result == output
        assert (folder / "cover.jpg").read_bytes() == b"jpeg-bytes"
        assert (folder / "CD2" / "notes.txt").read_text() == "notes"
        assert not (folder / "rip.log").exists()
        assert not list(folder.rglob("*.flac"))

    def test_updates_renamed_paths(self, source_dir: Path, tmp_path: Path) -> None:
        long_name = "L" * 175
        folder = _make_folder(tmp_path / "t", long_name, ["01 - One.mp3"])
        output = FormatOutput(
            target=TargetFormat.MP3_320, path=folder, command="cmd", file_count=1
        )
        assembler = OutputAssembler(MappingRenamePolicy({long_name: "Short"}))

        (result,) = assembler.assemble(source_dir, [output])

        assert result.path == tmp_path / "t" / "Short"
        assert result.command == "cmd"
        assert (result.path / "cover.jpg").exists()
