"""Applying a command's redirections to the standard file descriptors."""

from __future__ import annotations

import os
import sys
from typing import Iterable

from mshell.syntax import Redirection, RedirType

_OUT_FLAGS = os.O_WRONLY | os.O_CREAT | os.O_TRUNC
_APPEND_FLAGS = os.O_WRONLY | os.O_CREAT | os.O_APPEND
_FILE_MODE = 0o644


class RedirectionError(Exception):
    """A redirection could not be applied."""


def _fail(message: str) -> RedirectionError:
    sys.stderr.write(message + "\n")
    sys.stderr.flush()
    return RedirectionError(message)


def _redirect_file(target: str, flags: int, onto: int) -> None:
    try:
        fd = os.open(target, flags, _FILE_MODE)
    except OSError as exc:
        raise _fail(f"minishell: {target}: {exc.strerror}") from exc
    try:
        os.dup2(fd, onto)
    except OSError as exc:
        raise _fail(f"minishell: {exc.strerror}") from exc
    finally:
        os.close(fd)


def _redirect_heredoc(redir: Redirection) -> None:
    if redir.heredoc_fd is None:
        raise RedirectionError("here-document has no content")
    try:
        os.dup2(redir.heredoc_fd, 0)
    except OSError as exc:
        raise _fail(f"minishell: {exc.strerror}") from exc
    os.close(redir.heredoc_fd)
    redir.heredoc_fd = None


def _apply_one(redir: Redirection) -> None:
    if redir.type is RedirType.IN:
        _redirect_file(redir.target or "", os.O_RDONLY, 0)
    elif redir.type is RedirType.OUT:
        _redirect_file(redir.target or "", _OUT_FLAGS, 1)
    elif redir.type is RedirType.APPEND:
        _redirect_file(redir.target or "", _APPEND_FLAGS, 1)
    elif redir.type is RedirType.HEREDOC:
        _redirect_heredoc(redir)


def apply_redirections(redirs: Iterable[Redirection]) -> None:
    """Apply each redirection in order onto standard input or output.

    Stops at the first one that fails, printing the reason, and raises
    RedirectionError.
    """
    for redir in redirs:
        _apply_one(redir)