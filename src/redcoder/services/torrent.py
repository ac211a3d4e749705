"""Torrent creation and verification through intermodal (imdl)."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Protocol

from redcoder.exceptions import ExternalToolError
from redcoder.services.tools import Runner, Tool, executable, run_command

logger = logging.getLogger(__name__)


class TorrentToolProtocol(Protocol):
    """Protocol for creating and verifying .torrent files."""

    def create(self, content: Path, output: Path, announce_url: str) -> Path:
        """Create a private torrent of ``content`` at ``output``."""
        ...

    def verify(self, torrent_file: Path, content: Path) -> bool:
        """Check ``content`` against the hashes in ``torrent_file``."""
        ...


def build_announce_url(announce_base: str, passkey: str) -> str:
    """``<announce_base>/<passkey>/announce``.

    Example:
        >>> build_announce_url("https://flacsfor.me/", "abc")
        'https://flacsfor.me/abc/announce'
    """
    return f"{announce_base.rstrip('/')}/{passkey}/announce"


class TorrentTool:
    """Wraps ``imdl torrent create`` and ``imdl torrent verify``.

    Hashing is left entirely to imdl; this class only builds arguments
    and interprets exit codes.

    Example:
        >>> tool = TorrentTool(source_tag="RED")
        >>> tool.create(folder, Path("out.torrent"), announce)
    """

    def __init__(self, source_tag: str = "RED", runner: Runner | None = None) -> None:
        self._source_tag = source_tag
        self._run = runner or run_command

    def create(self, content: Path, output: Path, announce_url: str) -> Path:
        """Create a private torrent of ``content``.

        Raises:
            ExternalToolError: If imdl exits non-zero.
        """
        argv = [
            executable(Tool.IMDL),
            "torrent",
            "create",
            str(content),
            "-P",
            "-a",
            announce_url,
            "-s",
            self._source_tag,
            "-o",
            str(output),
        ]
        completed = self._run(argv)
        if completed.returncode != 0:
            raise ExternalToolError(argv, completed.returncode, completed.stderr.strip())
        logger.info("Created torrent %s", output.name)
        return output

    def verify(self, torrent_file: Path, content: Path) -> bool:
        """Return True if ``content`` matches ``torrent_file``.

        Raises:
            ExternalToolError: If imdl cannot be started.
        """
        argv = [
            executable(Tool.IMDL),
            "torrent",
            "verify",
            str(torrent_file),
            "--content",
            str(content),
        ]
        completed = self._run(argv)
        if completed.returncode != 0:
            logger.debug("imdl verify failed: %s", completed.stderr.strip())
        return completed.returncode == 0
