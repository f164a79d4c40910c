"""Running parsed command lines: single commands, builtins and pipelines."""

from __future__ import annotations

import os
import signal
import sys
from typing import Dict, Iterable, List, NoReturn, Optional, Sequence, Tuple

from mshell.builtins import (
    EXIT_REQUESTED,
    BuiltinKind,
    get_builtin_type,
    handle_builtin,
)
from mshell.command import exec_command
from mshell.context import ShellContext
from mshell.paths import CommandPermissionError, command_not_found, find_command_path
from mshell.redirections import RedirectionError, apply_redirections
from mshell.syntax import Command

_READ_CHUNK = 4096
_EXEC_FAILED = 126

Pipe = Tuple[int, int]


def _flush() -> None:
    for stream in (sys.stdout, sys.stderr):
        try:
            stream.flush()
        except (OSError, ValueError):
            pass


def _err(message: str) -> None:
    sys.stderr.write(message)
    sys.stderr.flush()


def _reset_default_signals() -> None:
    for signum in (signal.SIGINT, signal.SIGQUIT):
        signal.signal(signum, signal.SIG_DFL)


def _environ_dict(entries: Sequence[str]) -> Dict[str, str]:
    result: Dict[str, str] = {}
    for entry in entries:
        key, eq, value = entry.partition("=")
        if eq:
            result[key] = value
    return result


# ---------------------------------------------------------------- pipes

def _open_pipes(count: int) -> List[Pipe]:
    pipes: List[Pipe] = []
    try:
        for _ in range(count):
            pipes.append(os.pipe())
    except OSError:
        _close_pipes(pipes)
        raise
    return pipes


def _close_pipes(pipes: Iterable[Pipe]) -> None:
    for read_end, write_end in pipes:
        for fd in (read_end, write_end):
            try:
                os.close(fd)
            except OSError:
                pass


def _connect_pipes(index: int, pipes: Sequence[Pipe]) -> None:
    if index > 0:
        os.dup2(pipes[index - 1][0], 0)
    if index < len(pipes):
        os.dup2(pipes[index][1], 1)


# ---------------------------------------------------------------- children

def _exec_node(node: Command, ctx: ShellContext) -> int:
    ctx.in_child_process = True
    try:
        apply_redirections(node.redirs)
    except RedirectionError:
        return 1
    if not node.command:
        return 0
    name = node.args[0] if node.args else None
    if get_builtin_type(name) is not BuiltinKind.NOT_BUILTIN:
        return handle_builtin(node.args, ctx)
    try:
        path = find_command_path(node.command, ctx.env)
    except CommandPermissionError:
        _err(f"minishell: {node.command}: Permission denied\n")
        return _EXEC_FAILED
    if path is None:
        return command_not_found(node.command)
    _flush()
    try:
        os.execve(path, list(node.args) or [path], _environ_dict(ctx.env))
    except OSError as exc:
        _err(f"minishell: {exc.strerror}\n")
    return _EXEC_FAILED


def _run_stage(index: int, node: Command, pipes: Sequence[Pipe],
               ctx: ShellContext) -> NoReturn:
    status = 1
    try:
        _reset_default_signals()
        _connect_pipes(index, pipes)
        _close_pipes(pipes)
        status = _exec_node(node, ctx)
    finally:
        _flush()
        os._exit(status & 0xFF)


def _reap(pids: Iterable[int]) -> None:
    for pid in pids:
        if pid > 0:
            try:
                os.waitpid(pid, 0)
            except ChildProcessError:
                pass


# ---------------------------------------------------------------- public

def wait_pipeline(pids: Sequence[int], ctx: ShellContext) -> int:
    """Wait for every positive pid in order; the last stage sets the status.

    A last stage killed by a signal gives ``128 + signal``. Returns the
    recorded status.
    """
    last = len(pids) - 1
    for index, pid in enumerate(pids):
        if pid <= 0:
            continue
        _, status = os.waitpid(pid, 0)
        if index != last:
            continue
        if os.WIFEXITED(status):
            ctx.exit_status = os.WEXITSTATUS(status)
        elif os.WIFSIGNALED(status):
            ctx.exit_status = 128 + os.WTERMSIG(status)
    return ctx.exit_status


def execute_pipeline(commands: Optional[Sequence[Command]],
                     ctx: Optional[ShellContext]) -> None:
    """Run every stage in its own child, joined by pipes.

    Stages are started from the last to the first; the exit status of the
    last stage becomes ``ctx.exit_status``.
    """
    if ctx is None or not commands:
        return
    stages = list(commands)
    ctx.in_pipeline = True
    try:
        try:
            pipes = _open_pipes(len(stages) - 1)
        except OSError as exc:
            _err(f"minishell: pipe: {exc.strerror}\n")
            return
        pids = [0] * len(stages)
        try:
            for index in reversed(range(len(stages))):
                _flush()
                try:
                    pid = os.fork()
                except OSError as exc:
                    ctx.exit_status = 1
                    _err(f"minishell: fork: {exc.strerror}\n")
                    _close_pipes(pipes)
                    pipes = []
                    _reap(pids)
                    return
                if pid == 0:
                    _run_stage(index, stages[index], pipes, ctx)
                pids[index] = pid
        finally:
            _close_pipes(pipes)
        wait_pipeline(pids, ctx)
    finally:
        ctx.in_pipeline = False


def _consume_stdin() -> None:
    try:
        while os.read(0, _READ_CHUNK):
            pass
    except OSError:
        pass


def _redirection_only(head: Command, ctx: ShellContext) -> None:
    _flush()
    saved_in = os.dup(0)
    saved_out = os.dup(1)
    try:
        try:
            apply_redirections(head.redirs)
        except RedirectionError:
            ctx.exit_status = 1
        else:
            _consume_stdin()
            ctx.exit_status = 0
    finally:
        _flush()
        os.dup2(saved_in, 0)
        os.dup2(saved_out, 1)
        os.close(saved_in)
        os.close(saved_out)


def execute_if_needed(commands: Optional[Sequence[Command]],
                      ctx: ShellContext) -> bool:
    """Run a parsed command line and return True if the shell should exit.

    An empty line sets status 0. A line of redirections only opens the
    files and drains the input. A lone ``cd``, ``export``, ``unset`` or
    ``exit`` runs in the shell itself; anything else runs as a single
    command or a pipeline.
    """
    stages = list(commands or ())
    if not stages:
        ctx.exit_status = 0
        return False
    head = stages[0]
    if head.command is None and head.redirs:
        _redirection_only(head, ctx)
        return False
    if (get_builtin_type(head.command) is BuiltinKind.PARENT_BUILTIN
            and len(stages) == 1):
        return handle_builtin(head.args, ctx) == EXIT_REQUESTED
    if len(stages) > 1:
        execute_pipeline(stages, ctx)
    else:
        exec_command(head, ctx)
    return False