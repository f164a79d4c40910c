"""Running a single command, in the shell itself or in a child process."""

from __future__ import annotations

import os
import signal
import sys
from typing import Dict, NoReturn, Optional, Sequence

from mshell.builtins import BuiltinKind, get_builtin_type, handle_builtin, is_numeric_arg
from mshell.context import ShellContext
from mshell.paths import CommandPermissionError, command_not_found, find_command_path
from mshell.redirections import RedirectionError, apply_redirections
from mshell.syntax import Command

_SPACES = frozenset(" \t\n\v\f\r")
_INTERRUPTED = 130


def _flush() -> None:
    for stream in (sys.stdout, sys.stderr):
        try:
            stream.flush()
        except (OSError, ValueError):
            pass


def is_arg_empty_str(args: Optional[Sequence[str]]) -> bool:
    """Return True if there is no first argument or it is only whitespace."""
    if not args:
        return True
    return all(c in _SPACES for c in args[0])


def _skip_empty_command(node: Command) -> None:
    if node.command != "" or len(node.args) < 2:
        return
    node.args = node.args[1:]
    node.command = node.args[0]


def _handle_empty_command(node: Command, ctx: ShellContext) -> None:
    if ctx.exit_status == _INTERRUPTED or node.has_heredoc():
        return
    if is_arg_empty_str(node.args):
        return
    ctx.exit_status = command_not_found(node.command)


def _environ_dict(entries: Sequence[str]) -> Dict[str, str]:
    result: Dict[str, str] = {}
    for entry in entries:
        key, eq, value = entry.partition("=")
        if eq:
            result[key] = value
    return result


def _child_exit(args: Sequence[str], ctx: ShellContext) -> int:
    if len(args) > 1:
        if len(args) > 2:
            sys.stderr.write("exit: too many arguments\n")
            ctx.exit_status = 1
            return 1
        if not is_numeric_arg(args[1]):
            sys.stderr.write(f"exit: {args[1]}: numeric argument required\n")
            ctx.exit_status = 2
            return 2
        ctx.exit_status = int(args[1])
    return ctx.exit_status


def _reset_default_signals() -> None:
    signal.signal(signal.SIGINT, signal.SIG_DFL)
    signal.signal(signal.SIGQUIT, signal.SIG_DFL)


def _run_child(node: Command, ctx: ShellContext) -> int:
    ctx.in_child_process = True
    _reset_default_signals()
    try:
        apply_redirections(node.redirs)
    except RedirectionError:
        ctx.exit_status = 1
        return 1
    name = node.args[0] if node.args else None
    if get_builtin_type(name) is not BuiltinKind.NOT_BUILTIN:
        if name == "exit":
            return _child_exit(node.args, ctx)
        ctx.exit_status = handle_builtin(node.args, ctx)
        return ctx.exit_status
    try:
        path = find_command_path(node.command, ctx.env)
    except CommandPermissionError:
        sys.stderr.write(f"minishell: {node.command}: Permission denied\n")
        return 126
    if path is None:
        return command_not_found(node.command)
    _flush()
    try:
        os.execve(path, list(node.args) or [path], _environ_dict(ctx.env))
    except OSError:
        return command_not_found(path)
    return ctx.exit_status


def run_child(node: Command, ctx: ShellContext) -> NoReturn:
    """Run ``node`` in the current (child) process and never return.

    Redirections are applied, builtins are run directly, and anything else
    replaces the process through ``execve``. The process exits with the
    command's status.
    """
    status = 1
    try:
        status = _run_child(node, ctx)
    finally:
        _flush()
        os._exit(status & 0xFF)


def _set_sigint(handler):
    try:
        return signal.signal(signal.SIGINT, handler)
    except ValueError:
        return None


def wait_child(pid: int, ctx: ShellContext) -> int:
    """Wait for ``pid`` and record its status in ``ctx``.

    A child killed by a signal gives ``128 + signal`` and a newline is
    printed. Returns the recorded status.
    """
    previous = _set_sigint(signal.SIG_IGN)
    try:
        _, status = os.waitpid(pid, 0)
    finally:
        if previous is not None:
            _set_sigint(previous)
    if os.WIFEXITED(status):
        ctx.exit_status = os.WEXITSTATUS(status)
    elif os.WIFSIGNALED(status):
        ctx.exit_status = 128 + os.WTERMSIG(status)
        sys.stdout.write("\n")
        sys.stdout.flush()
    return ctx.exit_status


def _fork_and_run(node: Command, ctx: ShellContext) -> None:
    _flush()
    try:
        pid = os.fork()
    except OSError as exc:
        ctx.exit_status = 1
        sys.stderr.write(f"minishell: fork: {exc.strerror}\n")
        return
    if pid == 0:
        run_child(node, ctx)
    wait_child(pid, ctx)


def exec_command(node: Optional[Command], ctx: Optional[ShellContext]) -> None:
    """Run a single command, updating ``ctx.exit_status``.

    An empty command name followed by further words is dropped in favour of
    the next word. Builtins without redirections run in the shell itself;
    everything else runs in a child process.
    """
    if node is None or ctx is None:
        return
    _skip_empty_command(node)
    if not node.command:
        _handle_empty_command(node, ctx)
        return
    kind = get_builtin_type(node.command)
    if kind is not BuiltinKind.NOT_BUILTIN and not node.redirs:
        ctx.exit_status = handle_builtin(node.args, ctx)
        return
    _fork_and_run(node, ctx)