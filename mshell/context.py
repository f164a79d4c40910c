"""State shared by the shell across commands."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import List, Mapping, Optional, Sequence, Union

from mshell.syntax import Command

EnvironSource = Union[Mapping[str, str], Sequence[str], None]


def _as_entries(envp: EnvironSource) -> List[str]:
    if envp is None:
        envp = os.environ
    if isinstance(envp, Mapping):
        return [f"{key}={value}" for key, value in envp.items()]
    return list(envp)


@dataclass
class ShellContext:
    """Environment, exported names and status of a running shell.

    ``env`` holds the ``KEY=VALUE`` entries passed to programs; ``exported``
    holds the entries listed by ``export``, which may also be bare names.
    ``commands`` is the pipeline currently being run.
    """

    env: List[str] = field(default_factory=list)
    exported: List[str] = field(default_factory=list)
    exit_status: int = 0
    main_process_pid: int = field(default_factory=os.getpid)
    heredoc_interrupted: bool = False
    in_child_process: bool = False
    in_pipeline: bool = False
    commands: Optional[List[Command]] = None

    @classmethod
    def from_environ(cls, envp: EnvironSource = None) -> "ShellContext":
        """Build a fresh context from ``envp``.

        ``envp`` may be a sequence of ``KEY=VALUE`` strings or a mapping;
        when it is None the process environment is used. The environment
        and the export list each get their own copy.
        """
        entries = _as_entries(envp)
        return cls(env=list(entries), exported=list(entries))