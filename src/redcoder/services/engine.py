"""Per-file transcode engine: decode, optional resample, encode.

For one source file and one target format the engine builds an ordered
chain of external commands, pipes each command's stdout into the next and
returns the produced file together with the human-readable command chain
used in release descriptions.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import NamedTuple

from mediafile import FileTypeError, MediaFile, UnreadableFileError

from redcoder.exceptions import (
    AudioHeaderError,
    ExternalToolError,
    MultichannelError,
    UnsupportedSampleRateError,
    UnsupportedTargetError,
)
from redcoder.models.enums import TargetFormat
from redcoder.models.release import AudioStreamInfo, TranscodeJob, TranscodeResult
from redcoder.services.tools import (
    CommandRunnerProtocol,
    PipedCommandRunner,
    Tool,
    executable,
)
from redcoder.utils.files import with_extension

logger = logging.getLogger(__name__)

# Placeholders shown in the audit string instead of real paths.
_INPUT = "input.flac"
_OUTPUT_MP3 = "output.mp3"
_OUTPUT_FLAC = "output.flac"


class CommandStep(NamedTuple):
    """One process of a transcode chain.

    Attributes:
        argv: Arguments passed to the process.
        template: Same command with placeholder file names, for display.
    """

    argv: list[str]
    template: str


def read_stream_info(path: Path) -> AudioStreamInfo:
    """Read sample rate, bit depth and channel count from a file header.

    Raises:
        AudioHeaderError: If the file is unreadable or lacks stream info.
    """
    try:
        audio = MediaFile(path)
    except (UnreadableFileError, FileTypeError) as e:
        raise AudioHeaderError(path, str(e)) from e

    if not audio.samplerate or not audio.bitdepth or not audio.channels:
        raise AudioHeaderError(path, "missing sample rate, bit depth or channels")

    return AudioStreamInfo(
        sample_rate=audio.samplerate,
        bit_depth=audio.bitdepth,
        channels=audio.channels,
    )


def select_resample_rate(sample_rate: int, path: Path) -> int:
    """Pick the output rate for a stream that needs resampling.

    Multiples of 44.1 kHz go to 44100, multiples of 48 kHz to 48000.

    Raises:
        UnsupportedSampleRateError: For any other rate.

    Example:
        >>> select_resample_rate(88200, Path("a.flac"))
        44100
        >>> select_resample_rate(192000, Path("a.flac"))
        48000
    """
    if sample_rate % 44100 == 0:
        return 44100
    if sample_rate % 48000 == 0:
        return 48000
    raise UnsupportedSampleRateError(path, sample_rate)


# ============================================================================
# COMMAND BUILDERS - argv plus display template for each step
# ============================================================================


def decode_step(source: Path) -> CommandStep:
    """``flac -dcs -- <input>``: plain decode to stdout."""
    return CommandStep(
        [executable(Tool.FLAC), "-dcs", "--", str(source)],
        f"flac -dcs -- {_INPUT}",
    )


def resample_decode_step(source: Path, rate: int) -> CommandStep:
    """``sox <input> -G -b 16 -t wav - rate -v -L <rate> dither``."""
    args = ["-G", "-b", "16", "-t", "wav", "-", "rate", "-v", "-L", str(rate), "dither"]
    return CommandStep(
        [executable(Tool.SOX), str(source), *args],
        f"sox {_INPUT} {' '.join(args)}",
    )


def resample_to_flac_step(source: Path, output: Path, rate: int) -> CommandStep:
    """``sox <input> -G -b 16 <output> rate -v -L <rate> dither``."""
    tail = ["rate", "-v", "-L", str(rate), "dither"]
    return CommandStep(
        [executable(Tool.SOX), str(source), "-G", "-b", "16", str(output), *tail],
        f"sox {_INPUT} -G -b 16 {_OUTPUT_FLAC} {' '.join(tail)}",
    )


def encode_step(target: TargetFormat, output: Path) -> CommandStep:
    """Encoder reading PCM from stdin and writing ``output``.

    Raises:
        UnsupportedTargetError: For FLAC24, which is never a target.
    """
    match target:
        case TargetFormat.MP3_V0:
            args = ["-S", "-V", "0", "--vbr-new", "--ignore-tag-errors", "-"]
            return CommandStep(
                [executable(Tool.LAME), *args, str(output)],
                f"lame {' '.join(args)} {_OUTPUT_MP3}",
            )
        case TargetFormat.MP3_320:
            args = ["-S", "-h", "-b", "320", "--ignore-tag-errors", "-"]
            return CommandStep(
                [executable(Tool.LAME), *args, str(output)],
                f"lame {' '.join(args)} {_OUTPUT_MP3}",
            )
        case TargetFormat.FLAC:
            return CommandStep(
                [executable(Tool.FLAC), "--best", "-o", str(output), "-"],
                f"flac --best -o {_OUTPUT_FLAC} -",
            )
        case _:
            raise UnsupportedTargetError(f"{target.display_name} is not a transcode target")


def build_chain(
    job: TranscodeJob, info: AudioStreamInfo, output: Path
) -> list[CommandStep]:
    """Build the command chain for one job.

    - resampled lossless target: a single sox call writing FLAC directly
    - otherwise: decode (sox when resampling, flac when not) piped into the
      target's encoder

    Raises:
        UnsupportedSampleRateError: If resampling is needed at an odd rate.
        UnsupportedTargetError: For a FLAC24 target.
    """
    if job.target == TargetFormat.FLAC24:
        raise UnsupportedTargetError("24bit FLAC is never a transcode target")

    rate = (
        select_resample_rate(info.sample_rate, job.source)
        if info.needs_resample
        else None
    )

    if job.target == TargetFormat.FLAC and rate is not None:
        return [resample_to_flac_step(job.source, output, rate)]

    decoder = (
        resample_decode_step(job.source, rate)
        if rate is not None
        else decode_step(job.source)
    )
    return [decoder, encode_step(job.target, output)]


def describe_chain(steps: list[CommandStep]) -> str:
    """Audit string for a chain, e.g. ``flac -dcs -- input.flac | lame ...``."""
    return " | ".join(step.template for step in steps)


class TranscodeEngine:
    """Transcodes a single file into a single target format.

    Example:
        >>> engine = TranscodeEngine()
        >>> job = TranscodeJob(source=src, target=TargetFormat.MP3_V0, output_dir=out)
        >>> result = engine.transcode(job)
        >>> result.command
        'flac -dcs -- input.flac | lame -S -V 0 --vbr-new --ignore-tag-errors - output.mp3'
    """

    def __init__(self, runner: CommandRunnerProtocol | None = None) -> None:
        self._runner = runner or PipedCommandRunner()

    def output_path(self, job: TranscodeJob) -> Path:
        return job.output_dir / with_extension(job.source.name, job.target.extension)

    def transcode(self, job: TranscodeJob) -> TranscodeResult:
        """Run the chain for ``job``.

        The output directory must already exist.

        Raises:
            AudioHeaderError: If the source header cannot be read.
            MultichannelError: If the source has more than two channels.
            UnsupportedSampleRateError: If the source rate cannot be resampled.
            UnsupportedTargetError: For a FLAC24 target.
            ExternalToolError: If any process exits non-zero or the output
                file is missing afterwards.
        """
        info = read_stream_info(job.source)
        if info.is_multichannel:
            raise MultichannelError(job.source)

        output = self.output_path(job)
        steps = build_chain(job, info, output)

        logger.debug(
            "Transcoding %s -> %s (%d Hz, %d bit)",
            job.source.name,
            job.target.display_name,
            info.sample_rate,
            info.bit_depth,
        )
        self._runner.run([step.argv for step in steps])

        if not output.exists():
            last = steps[-1].argv
            raise ExternalToolError(last, 0, f"output file {output.name} is missing")

        return TranscodeResult(job=job, output_path=output, command=describe_chain(steps))
