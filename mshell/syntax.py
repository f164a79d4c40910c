"""Parsed command structures: pipeline stages and their redirections."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum
from typing import List, Optional


class RedirType(IntEnum):
    """Kind of a redirection attached to a command."""

    NONE = 0
    IN = 1
    OUT = 2
    APPEND = 3
    HEREDOC = 4


@dataclass
class Redirection:
    """One redirection such as ``< file``, ``> file``, ``>> file`` or ``<< EOF``.

    For a here-document, ``heredoc_fd`` holds the read end of the pipe that
    carries its body once it has been collected, or None if there is none.
    ``quoted`` records whether the delimiter was quoted, which turns off
    variable expansion in the body.
    """

    type: RedirType
    target: Optional[str] = None
    heredoc_fd: Optional[int] = None
    quoted: bool = False


@dataclass
class Command:
    """One stage of a pipeline: a command name, its arguments and redirections.

    ``args`` includes the command name as its first element, as passed to
    the program that is run.
    """

    command: Optional[str] = None
    args: List[str] = field(default_factory=list)
    redirs: List[Redirection] = field(default_factory=list)

    def has_heredoc(self) -> bool:
        """Return True if any redirection of this command is a here-document."""
        return any(r.type is RedirType.HEREDOC for r in self.redirs)