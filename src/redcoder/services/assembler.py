"""Final assembly of transcoded release folders."""

from __future__ import annotations

import logging
import shutil
from collections.abc import Mapping
from pathlib import Path
from typing import Protocol

from redcoder.exceptions import FilesystemError, OutputDirectoryExistsError, PathLengthError
from redcoder.models.release import FormatOutput
from redcoder.utils.filename import (
    MAX_PATH_LENGTH,
    clean_folder_name,
    relative_path_length,
)
from redcoder.utils.files import find_ancillary_files, find_files_with_extension

logger = logging.getLogger(__name__)


class RenamePolicy(Protocol):
    """Supplies a shorter folder name when the path limit is exceeded."""

    def rename(self, folder_name: str, longest: int, limit: int) -> str | None:
        """Return a replacement for ``folder_name``, or None to give up."""
        ...


class MappingRenamePolicy:
    """Headless rename policy backed by pre-decided names.

    Names are looked up by the current folder name, so a chain such as
    ``{"long": "shorter", "shorter": "short"}`` is followed step by step.

    Example:
        >>> policy = MappingRenamePolicy({"Very Long Name (CD - FLAC)": "Short (CD - FLAC)"})
        >>> policy.rename("Very Long Name (CD - FLAC)", 200, 180)
        'Short (CD - FLAC)'
    """

    def __init__(self, names: Mapping[str, str]) -> None:
        self._names = dict(names)

    def rename(self, folder_name: str, longest: int, limit: int) -> str | None:
        return self._names.get(folder_name)


def longest_path_length(folder: Path, extension: str, folder_name: str | None = None) -> int:
    """Longest ``<folder_name>/<relative file>`` among files with ``extension``.

    ``folder_name`` defaults to the folder's own name; passing a candidate
    name measures the paths the folder would have after a rename.
    """
    name = folder_name or folder.name
    lengths = [
        relative_path_length(name, path.relative_to(folder).as_posix())
        for path in find_files_with_extension(folder, extension)
    ]
    return max(lengths, default=0)


class OutputAssembler:
    """Copies ancillary files and enforces the tracker's path limit.

    Runs only after every format of a release has finished.
    """

    def __init__(self, rename_policy: RenamePolicy, max_length: int = MAX_PATH_LENGTH) -> None:
        self._rename_policy = rename_policy
        self._max_length = max_length

    # ============================================================================
    # PUBLIC API
    # ============================================================================

    def assemble(self, source_dir: Path, outputs: list[FormatOutput]) -> list[FormatOutput]:
        """Finish every output folder.

        Returns:
            The outputs, with paths updated for renamed folders.

        Raises:
            PathLengthError: If the rename policy gives up.
            FilesystemError: If copying or renaming fails.
        """
        assembled: list[FormatOutput] = []
        for output in outputs:
            try:
                copied = self.copy_ancillary_files(source_dir, output.path)
                path = self.enforce_path_limit(output.path, output.target.extension)
            except OSError as e:
                raise FilesystemError(output.path, str(e)) from e
            if copied:
                logger.debug("Copied %d ancillary file(s) to %s", copied, output.path.name)
            assembled.append(output.model_copy(update={"path": path}))
        return assembled

    def copy_ancillary_files(self, source_dir: Path, dest_dir: Path) -> int:
        """Byte-copy artwork, text and documents, keeping subdirectories.

        Returns:
            Number of files copied.
        """
        files = find_ancillary_files(source_dir)
        for path in files:
            target = dest_dir / path.relative_to(source_dir)
            target.parent.mkdir(parents=True, exist_ok=True)
            shutil.copyfile(path, target)
        return len(files)

    def exceeds_path_limit(
        self, folder: Path, extension: str, folder_name: str | None = None
    ) -> bool:
        return longest_path_length(folder, extension, folder_name) > self._max_length

    def enforce_path_limit(self, folder: Path, extension: str) -> Path:
        """Rename ``folder`` until every audio path fits the limit.

        Candidate names are checked before anything is renamed; the folder
        is moved once, to the first compliant name.

        Raises:
            PathLengthError: If the policy returns None or an empty name.
        """
        name = folder.name
        while self.exceeds_path_limit(folder, extension, name):
            longest = longest_path_length(folder, extension, name)
            logger.warning(
                "Folder name %s is too long for the tracker (%d > %d)",
                name,
                longest,
                self._max_length,
            )
            candidate = self._rename_policy.rename(name, longest, self._max_length)
            if not candidate or not candidate.strip():
                raise PathLengthError(
                    f'Folder name "{name}" exceeds the {self._max_length} character '
                    "path limit and no shorter name was given"
                )
            name = clean_folder_name(candidate.strip())

        if name == folder.name:
            return folder

        renamed = folder.with_name(name)
        if renamed.exists():
            raise OutputDirectoryExistsError(renamed)
        folder.rename(renamed)
        logger.info("Renamed %s to %s", folder.name, name)
        return renamed
