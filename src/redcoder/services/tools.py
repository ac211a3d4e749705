"""External tool resolution and piped process execution."""

from __future__ import annotations

import logging
import shutil
import signal
import subprocess
import sys
import tempfile
from collections.abc import Callable, Iterable, Sequence
from enum import StrEnum
from typing import IO, Protocol

from redcoder.exceptions import ExternalToolError, MissingDependencyError

logger = logging.getLogger(__name__)

Runner = Callable[[list[str]], subprocess.CompletedProcess[str]]


class Tool(StrEnum):
    """External binaries the pipeline shells out to."""

    FLAC = "flac"
    LAME = "lame"
    SOX = "sox"
    IMDL = "imdl"


def executable(tool: Tool) -> str:
    """Platform-specific executable name of ``tool``."""
    if sys.platform == "win32":
        return f"{tool.value}.exe"
    return tool.value


def is_available(tool: Tool) -> bool:
    """Check if ``tool`` is available in PATH.

    Not cached since shutil.which is fast and users may install a tool
    while a batch is running.
    """
    return shutil.which(executable(tool)) is not None


def check_dependencies(tools: Iterable[Tool] = tuple(Tool)) -> None:
    """Fail early if any required binary is missing.

    Raises:
        MissingDependencyError: Naming every missing binary.
    """
    missing = [executable(t) for t in tools if not is_available(t)]
    if missing:
        raise MissingDependencyError(
            "Missing required program(s) in PATH: " + ", ".join(missing)
        )


class CommandRunnerProtocol(Protocol):
    """Protocol for running a chain of piped commands.

    Enables dependency injection and testing of the transcode engine.
    """

    def run(self, commands: Sequence[list[str]]) -> None:
        """Run ``commands`` with each stdout piped into the next stdin."""
        ...


def _read_stderr(handle: IO[bytes]) -> str:
    handle.seek(0)
    return handle.read().decode("utf-8", errors="replace").strip()


class PipedCommandRunner:
    """Runs ``a | b | ...`` without a shell.

    Every process writes stderr to a temporary file so a chatty process can
    never block on a full pipe. Upstream processes are not killed when a
    downstream process fails; the chain is always waited on to completion.
    """

    def run(self, commands: Sequence[list[str]]) -> None:
        """Execute the chain and wait for every process.

        Raises:
            ExternalToolError: If a process cannot be started or exits
                non-zero. When several fail, the first failure that is not
                a broken pipe caused by a downstream failure is reported.
        """
        if not commands:
            return

        procs: list[tuple[list[str], subprocess.Popen[bytes], IO[bytes]]] = []
        previous_stdout: IO[bytes] | None = None

        try:
            for index, argv in enumerate(commands):
                is_last = index == len(commands) - 1
                err = tempfile.TemporaryFile()
                logger.debug("Running: %s", " ".join(argv))
                try:
                    proc = subprocess.Popen(
                        argv,
                        stdin=previous_stdout
                        if previous_stdout is not None
                        else subprocess.DEVNULL,
                        stdout=subprocess.DEVNULL if is_last else subprocess.PIPE,
                        stderr=err,
                    )
                except OSError as e:
                    err.close()
                    if previous_stdout is not None:
                        previous_stdout.close()
                    raise ExternalToolError(argv, -1, str(e)) from e
                if previous_stdout is not None:
                    # Parent's copy must be closed so upstream sees SIGPIPE.
                    previous_stdout.close()
                previous_stdout = proc.stdout
                procs.append((argv, proc, err))

            failures: list[ExternalToolError] = []
            for argv, proc, err in procs:
                returncode = proc.wait()
                if returncode != 0:
                    failures.append(
                        ExternalToolError(argv, returncode, _read_stderr(err))
                    )
        finally:
            for _, proc, err in procs:
                if proc.poll() is None:
                    proc.wait()
                err.close()

        if failures:
            raise _primary_failure(failures)


def _primary_failure(failures: list[ExternalToolError]) -> ExternalToolError:
    broken_pipe = -signal.SIGPIPE if hasattr(signal, "SIGPIPE") else None
    for failure in failures:
        if failure.returncode != broken_pipe:
            return failure
    return failures[0]


def run_command(argv: list[str]) -> subprocess.CompletedProcess[str]:
    """Run a single command and capture its output.

    Raises:
        ExternalToolError: If the program cannot be started.
    """
    logger.debug("Running: %s", " ".join(argv))
    try:
        return subprocess.run(argv, capture_output=True, text=True, check=False)
    except OSError as e:
        raise ExternalToolError(argv, -1, str(e)) from e
