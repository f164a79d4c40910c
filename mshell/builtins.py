"""Commands the shell runs itself: echo, cd, pwd, env, exit, export and unset."""

from __future__ import annotations

import os
import sys
from enum import Enum
from typing import List, Optional, Sequence

from mshell.context import ShellContext
from mshell.env import get_env_value, update_env

# Status returned by ``exit`` to tell the caller that the shell should stop.
EXIT_REQUESTED = 255

_PARENT_BUILTINS = frozenset({"cd", "export", "unset", "exit"})
_CHILD_BUILTINS = frozenset({"echo", "pwd", "env"})
_ECHO_ESCAPES = {
    "n": "\n",
    "t": "\t",
    "r": "\r",
    "b": "\b",
    "v": "\v",
    "a": "\a",
}
_DIGITS = frozenset("0123456789")
_CURRENT_DIR_VAR = "PWD"
_PREVIOUS_DIR_VAR = "OLDPWD"


class BuiltinKind(Enum):
    """Where a command runs: not a builtin, in the shell itself, or in a child."""

    NOT_BUILTIN = 0
    PARENT_BUILTIN = 1
    CHILD_BUILTIN = 2


def _err(message: str) -> None:
    sys.stderr.write(message)
    sys.stderr.flush()


def _out(text: str) -> None:
    sys.stdout.write(text)
    sys.stdout.flush()


def get_builtin_type(cmd: Optional[str]) -> BuiltinKind:
    """Classify ``cmd`` as a parent builtin, a child builtin or neither."""
    if cmd is None:
        return BuiltinKind.NOT_BUILTIN
    if cmd in _PARENT_BUILTINS:
        return BuiltinKind.PARENT_BUILTIN
    if cmd in _CHILD_BUILTINS:
        return BuiltinKind.CHILD_BUILTIN
    return BuiltinKind.NOT_BUILTIN


def is_valid_identifier(name: Optional[str]) -> bool:
    """Return True if ``name`` matches ``[A-Za-z_][A-Za-z0-9_]*``."""
    if not name:
        return False
    first = name[0]
    if not (first.isascii() and (first.isalpha() or first == "_")):
        return False
    return all(c.isascii() and (c.isalnum() or c == "_") for c in name[1:])


def is_numeric_arg(arg: str) -> bool:
    """Return True if ``arg`` is an optional sign followed by one or more digits."""
    body = arg[1:] if arg[:1] in ("+", "-") else arg
    return bool(body) and all(c in _DIGITS for c in body)


# ---------------------------------------------------------------- echo

def _parse_echo_flags(args: Sequence[str]) -> tuple[int, bool, bool]:
    index = 1
    newline = True
    escape = False
    for arg in args[1:]:
        if not arg.startswith("-"):
            break
        letters = arg[1:]
        if any(c not in "ne" for c in letters):
            break
        if "n" in letters:
            newline = False
        if "e" in letters:
            escape = True
        index += 1
    return index, newline, escape


def _render_echo_arg(arg: str, escape: bool) -> str:
    if not escape:
        return arg
    out: List[str] = []
    pos = 0
    while pos < len(arg):
        char = arg[pos]
        if char == "\\" and pos + 1 < len(arg):
            out.append(_ECHO_ESCAPES.get(arg[pos + 1], "\\"))
            pos += 2
        else:
            out.append(char)
            pos += 1
    return "".join(out)


def builtin_echo(args: Sequence[str], ctx: Optional[ShellContext]) -> int:
    """Print the arguments separated by spaces; ``-n`` and ``-e`` are honoured."""
    start, newline, escape = _parse_echo_flags(args)
    text = " ".join(_render_echo_arg(arg, escape) for arg in args[start:])
    if newline:
        text += "\n"
    _out(text)
    return 0


# ---------------------------------------------------------------- cd

def _expand_home(path: str, ctx: ShellContext) -> Optional[str]:
    home = get_env_value("HOME", ctx.env)
    if home is None:
        _err("minishell: cd: HOME not set\n")
        return None
    if path[1:2] == "/":
        return home + path[1:]
    if len(path) == 1:
        return home
    _err("minishell: cd: invalid tilde usage\n")
    return None


def _resolve_cd_path(path: str, ctx: ShellContext) -> Optional[str]:
    if path.startswith("~"):
        return _expand_home(path, ctx)
    if path.startswith("/"):
        return path
    try:
        cwd = os.getcwd()
    except OSError as exc:
        _err(f"minishell: cd: {exc.strerror}\n")
        return None
    return f"{cwd}/{path}"


def _update_dir_env(ctx: ShellContext) -> None:
    if ctx.env is None:
        return
    previous_dir = get_env_value(_CURRENT_DIR_VAR, ctx.env)
    if previous_dir is not None:
        update_env(ctx.env, _PREVIOUS_DIR_VAR, previous_dir)
    try:
        cwd = os.getcwd()
    except OSError:
        return
    update_env(ctx.env, _CURRENT_DIR_VAR, cwd)


def _cd_perform(path: str, ctx: ShellContext) -> int:
    status = 1
    resolved = _resolve_cd_path(path, ctx)
    if resolved is not None:
        try:
            os.chdir(resolved)
        except OSError as exc:
            _err(f"minishell: cd: {resolved}: {exc.strerror}\n")
        else:
            _update_dir_env(ctx)
            status = 0
    ctx.exit_status = status
    return status


def builtin_cd(args: Sequence[str], ctx: ShellContext) -> int:
    """Change directory to the argument, ``$HOME`` or (with ``-``) ``$OLDPWD``."""
    if len(args) < 2 or args[1] == "~":
        path = get_env_value("HOME", ctx.env)
    elif args[1] == "-":
        path = get_env_value(_PREVIOUS_DIR_VAR, ctx.env)
        if path is not None:
            _out(path + "\n")
    elif len(args) > 2:
        _err("cd: too many arguments\n")
        ctx.exit_status = 1
        return 1
    else:
        path = args[1]
    if path is None:
        _err("minishell: cd: HOME or OLDPWD not set\n")
        ctx.exit_status = 1
        return 1
    return _cd_perform(path, ctx)


# ---------------------------------------------------------------- pwd / env

def builtin_pwd(ctx: ShellContext) -> int:
    """Print the current working directory."""
    try:
        cwd = os.getcwd()
    except OSError as exc:
        _err(f"pwd: minishell: pwd: {exc.strerror}\n")
        ctx.exit_status = 1
        return 1
    _out(cwd + "\n")
    ctx.exit_status = 0
    return 0


def builtin_env(ctx: ShellContext) -> int:
    """Print every ``KEY=VALUE`` entry of the environment."""
    if ctx.env is None:
        _err("env: environment not initialized\n")
        ctx.exit_status = 1
        return 1
    _out("".join(f"{entry}\n" for entry in ctx.env if "=" in entry))
    ctx.exit_status = 0
    return 0


# ---------------------------------------------------------------- exit

def builtin_exit(args: Sequence[str], ctx: Optional[ShellContext]) -> int:
    """Validate the arguments of ``exit`` and record the exit status.

    Returns ``EXIT_REQUESTED`` when the shell should stop, otherwise the
    error status (1 for too many arguments, 2 for a non-numeric one).
    """
    if ctx is None:
        return 1
    if not ctx.in_child_process:
        _out("exit\n")
    if len(args) > 1:
        if len(args) > 2:
            _err("exit: too many arguments\n")
            ctx.exit_status = 1
            return 1
        if not is_numeric_arg(args[1]):
            _err(f"exit: {args[1]}: numeric argument required\n")
            ctx.exit_status = 2
            return 2
        ctx.exit_status = int(args[1])
    return EXIT_REQUESTED


# ---------------------------------------------------------------- export

def format_exports(exported: Optional[Sequence[str]]) -> List[str]:
    """Return the ``declare -x`` lines that list the exported names."""
    lines: List[str] = []
    for entry in exported or ():
        name, eq, value = entry.partition("=")
        if eq:
            lines.append(f'declare -x {name}="{value}"')
        else:
            lines.append(f"declare -x {entry}")
    return lines


def _add_exported(exported: List[str], name: str, arg: str) -> None:
    for index, entry in enumerate(exported):
        if entry == name or entry.startswith(name + "="):
            if "=" in arg:
                exported[index] = arg
            return
    exported.append(arg)


def _process_export_arg(arg: str, ctx: ShellContext) -> int:
    name, eq, value = arg.partition("=")
    if not is_valid_identifier(name):
        _err(f"minishell: export: `{arg}': not a valid identifier\n")
        return 1
    if ctx.exported is None:
        ctx.exported = []
    _add_exported(ctx.exported, name, arg if eq else name)
    if eq and ctx.env is not None:
        update_env(ctx.env, name, value)
    return 0


def builtin_export(args: Sequence[str], ctx: ShellContext) -> int:
    """Mark names as exported, setting values given as ``NAME=VALUE``."""
    if len(args) < 2:
        _out("".join(f"{line}\n" for line in format_exports(ctx.exported)))
        ctx.exit_status = 0
        return 0
    status = 0
    for arg in args[1:]:
        if _process_export_arg(arg, ctx) != 0:
            status = 1
    ctx.exit_status = status
    return status


# ---------------------------------------------------------------- unset

def _remove_var(entries: Optional[List[str]], name: str) -> None:
    if entries is None:
        return
    for index, entry in enumerate(entries):
        if entry.partition("=")[0] == name:
            del entries[index]
            return


def builtin_unset(args: Sequence[str], ctx: ShellContext) -> int:
    """Remove each named variable from the environment and the export list."""
    status = 0
    for arg in args[1:]:
        if not is_valid_identifier(arg):
            _err(f"minishell: unset: `{arg}': not a valid identifier\n")
            status = 1
        else:
            _remove_var(ctx.env, arg)
            _remove_var(ctx.exported, arg)
    ctx.exit_status = status
    return status


# ---------------------------------------------------------------- dispatch

def _handle_cwd_builtin(args: Sequence[str], ctx: ShellContext) -> int:
    if len(args) > 1:
        try:
            _out(os.getcwd() + "\n")
        except OSError:
            pass
        _err("minishell: pwd:\n")
        ctx.exit_status = 1
        return 0
    return builtin_pwd(ctx)


def handle_builtin(args: Sequence[str], ctx: ShellContext) -> int:
    """Run the builtin named by ``args[0]``.

    Returns the builtin's status, 0 for an empty command, and 1 when the
    name is not a builtin.
    """
    if not args or not args[0]:
        return 0
    name = args[0]
    if name == "exit":
        return builtin_exit(args, ctx)
    if name == "cd":
        return builtin_cd(args, ctx)
    if name == "env":
        return builtin_env(ctx)
    if name == "pwd":
        return _handle_cwd_builtin(args, ctx)
    if name == "echo":
        return builtin_echo(args, ctx)
    if name == "export":
        return builtin_export(args, ctx)
    if name == "unset":
        return builtin_unset(args, ctx)
    return 1