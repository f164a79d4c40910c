"""Locating programs on ``PATH`` and reporting commands that cannot be run."""

from __future__ import annotations

import os
import stat
import sys
from typing import Optional, Sequence

from mshell.env import get_env_value

STATUS_NOT_FOUND = 127
STATUS_NOT_EXECUTABLE = 126


class CommandPermissionError(Exception):
    """A program was found on ``PATH`` but may not be executed."""

    def __init__(self, path: str) -> None:
        super().__init__(f"{path}: Permission denied")
        self.path = path


def _check_candidate(directory: str, cmd: str) -> Optional[str]:
    candidate = f"{directory}/{cmd}"
    if not os.access(candidate, os.F_OK):
        return None
    if os.access(candidate, os.X_OK):
        return candidate
    raise CommandPermissionError(candidate)


def find_command_path(cmd: Optional[str], env: Optional[Sequence[str]]) -> Optional[str]:
    """Return the path of the program ``cmd``, or None if it cannot be found.

    A name holding ``/`` that exists is returned as it is. Otherwise each
    non-empty directory of ``PATH`` in ``env`` is tried in order; the first
    one holding the name wins. Raises CommandPermissionError when that first
    match is not executable.
    """
    if cmd is None:
        return None
    if "/" in cmd and os.access(cmd, os.F_OK):
        return cmd
    path_value = get_env_value("PATH", env)
    if path_value is None:
        return None
    for directory in filter(None, path_value.split(":")):
        found = _check_candidate(directory, cmd)
        if found is not None:
            return found
    return None


def _report(cmd: Optional[str], message: str, status: int) -> int:
    sys.stderr.write(f"minishell: {cmd or ''}{message}")
    sys.stderr.flush()
    return status


def command_not_found(cmd: Optional[str]) -> int:
    """Print why ``cmd`` cannot be run and return the exit status to use.

    Names holding ``/`` are checked for being missing (127), a directory
    (126) or not executable (126); anything else is "command not found" (127).
    """
    if not cmd:
        return _report(None, ": command not found\n", STATUS_NOT_FOUND)
    if "/" in cmd:
        try:
            info = os.stat(cmd)
        except OSError:
            return _report(cmd, ": No such file or directory\n", STATUS_NOT_FOUND)
        if stat.S_ISDIR(info.st_mode):
            return _report(cmd, ": Is a directory\n", STATUS_NOT_EXECUTABLE)
        if not os.access(cmd, os.X_OK):
            return _report(cmd, ": Permission denied\n", STATUS_NOT_EXECUTABLE)
    return _report(cmd, ": command not found\n", STATUS_NOT_FOUND)