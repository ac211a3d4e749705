"""User interaction seam.

Every question the release pipeline asks goes through a :class:`Prompter`,
so the CLI can answer with terminal prompts while tests and headless runs
answer from a script.
"""

from __future__ import annotations

import logging
from collections import deque
from collections.abc import Iterable, Mapping
from typing import Protocol

from redcoder.services.assembler import MappingRenamePolicy

logger = logging.getLogger(__name__)


class Prompter(Protocol):
    """Protocol for answering the pipeline's questions."""

    def confirm(self, message: str, *, default: bool = True) -> bool:
        """Ask a yes/no question."""
        ...

    def rename(self, folder_name: str, longest: int, limit: int) -> str | None:
        """Ask for a shorter folder name; None gives up."""
        ...

    def present(self, title: str, fields: list[tuple[str, str]]) -> None:
        """Show labelled values, e.g. a manual upload form."""
        ...


class ScriptedPrompter:
    """Prompter answering from pre-recorded answers.

    Confirmations are consumed in order; once exhausted, ``default_answer``
    is used. Renames come from a :class:`MappingRenamePolicy`. Everything
    asked or shown is recorded for inspection.

    Example:
        >>> prompter = ScriptedPrompter([True, False])
        >>> prompter.confirm("Spectrograms OK?")
        True
        >>> prompter.confirm("Upload?")
        False
    """

    def __init__(
        self,
        confirmations: Iterable[bool] = (),
        *,
        renames: Mapping[str, str] | None = None,
        default_answer: bool = True,
    ) -> None:
        self._confirmations = deque(confirmations)
        self._renames = MappingRenamePolicy(renames or {})
        self._default_answer = default_answer
        self.asked: list[str] = []
        self.presented: list[tuple[str, list[tuple[str, str]]]] = []

    def confirm(self, message: str, *, default: bool = True) -> bool:
        self.asked.append(message)
        if self._confirmations:
            return self._confirmations.popleft()
        return self._default_answer

    def rename(self, folder_name: str, longest: int, limit: int) -> str | None:
        self.asked.append(folder_name)
        return self._renames.rename(folder_name, longest, limit)

    def present(self, title: str, fields: list[tuple[str, str]]) -> None:
        logger.info("%s", title)
        for label, value in fields:
            logger.info("%s: %s", label, value)
        self.presented.append((title, fields))
