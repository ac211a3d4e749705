"""Spectrogram generation with sox."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path

from redcoder.exceptions import ExternalToolError
from redcoder.services.tools import Runner, Tool, executable, run_command
from redcoder.utils.files import find_audio_files, with_extension

logger = logging.getLogger(__name__)

SPECTROGRAM_COMMENT = "redcoder"


def zoom_command(source: Path, output_dir: Path) -> list[str]:
    """Two-second window at 1:00, 500 px wide."""
    name = source.name
    return [
        executable(Tool.SOX),
        str(source),
        "-n",
        "remix",
        "1",
        "spectrogram",
        "-x",
        "500",
        "-y",
        "1025",
        "-z",
        "120",
        "-w",
        "Kaiser",
        "-S",
        "1:00",
        "-d",
        "0:02",
        "-t",
        name,
        "-c",
        SPECTROGRAM_COMMENT,
        "-o",
        str(output_dir / with_extension(name, ".spectrogram-zoom.png")),
    ]


def full_command(source: Path, output_dir: Path) -> list[str]:
    """Whole track, 3000 px wide."""
    name = source.name
    return [
        executable(Tool.SOX),
        str(source),
        "-n",
        "remix",
        "1",
        "spectrogram",
        "-x",
        "3000",
        "-y",
        "513",
        "-z",
        "120",
        "-w",
        "Kaiser",
        "-t",
        name,
        "-c",
        SPECTROGRAM_COMMENT,
        "-o",
        str(output_dir / with_extension(name, ".spectrogram-full.png")),
    ]


class SpectrogramService:
    """Renders a zoomed and a full spectrogram for every source file.

    Images land in ``<spectrogram_directory>/<source folder name>/`` so a
    reviewer can flip through them before anything is transcoded.
    """

    def __init__(self, concurrency: int = 1, runner: Runner | None = None) -> None:
        self._concurrency = concurrency
        self._run = runner or run_command

    def output_directory(self, source_dir: Path, spectrogram_directory: Path) -> Path:
        return spectrogram_directory / source_dir.name

    def generate(
        self, source_dir: Path, spectrogram_directory: Path
    ) -> Iterator[tuple[int, int]]:
        """Create spectrograms, yielding ``(done, total)`` per finished image.

        Raises:
            ExternalToolError: If sox fails for any file, after all files
                were attempted.
        """
        files = find_audio_files(source_dir)
        output_dir = self.output_directory(source_dir, spectrogram_directory)
        output_dir.mkdir(parents=True, exist_ok=True)

        errors: list[ExternalToolError] = []
        with ThreadPoolExecutor(max_workers=self._concurrency) as executor:
            futures = [
                executor.submit(self._render, build(path, output_dir))
                for path in files
                for build in (zoom_command, full_command)
            ]
            for index, future in enumerate(as_completed(futures), start=1):
                try:
                    future.result()
                except ExternalToolError as e:
                    errors.append(e)
                yield index, len(futures)

        if errors:
            raise errors[0]
        logger.info("Spectrograms written to %s", output_dir)

    def generate_all(self, source_dir: Path, spectrogram_directory: Path) -> Path:
        for _ in self.generate(source_dir, spectrogram_directory):
            pass
        return self.output_directory(source_dir, spectrogram_directory)

    def _render(self, argv: list[str]) -> None:
        completed = self._run(argv)
        if completed.returncode != 0:
            raise ExternalToolError(argv, completed.returncode, completed.stderr.strip())

