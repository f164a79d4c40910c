"""Environment lists of ``KEY=VALUE`` strings and ``$`` variable expansion."""

from __future__ import annotations

from typing import MutableSequence, Optional, Sequence

# Longest variable name taken from a ``$NAME`` reference; further characters
# are left in the text as they are.
MAX_VAR_NAME = 127


def _is_name_start(char: str) -> bool:
    return char.isascii() and (char.isalpha() or char == "_")


def _is_name_char(char: str) -> bool:
    return char.isascii() and (char.isalnum() or char == "_")


def get_env_value(name: Optional[str], envp: Optional[Sequence[str]]) -> Optional[str]:
    """Return the value of ``name`` in ``envp``, or None if it is not set."""
    if name is None or not envp:
        return None
    prefix = name + "="
    for entry in envp:
        if entry.startswith(prefix):
            return entry[len(prefix):]
    return None


def make_entry(key: str, value: Optional[str]) -> str:
    """Build a ``KEY=VALUE`` entry."""
    return f"{key}={value if value is not None else ''}"


def update_env(env: Optional[MutableSequence[str]], key: Optional[str],
               value: Optional[str]) -> None:
    """Set ``key`` to ``value`` in ``env``, replacing the first entry or appending."""
    if key is None:
        raise ValueError("environment key is missing")
    if env is None:
        raise ValueError("environment is not initialised")
    entry = make_entry(key, value)
    prefix = key + "="
    for index, existing in enumerate(env):
        if existing.startswith(prefix):
            env[index] = entry
            return
    env.append(entry)


def strip_quotes(text: Optional[str]) -> Optional[str]:
    """Remove one pair of matching surrounding single or double quotes."""
    if text is None:
        return None
    if len(text) >= 2 and text[0] == text[-1] and text[0] in "\"'":
        return text[1:-1]
    return text


def extract_var_name(text: str) -> str:
    """Return the variable name at the start of ``text``.

    ``"?"`` is returned for the exit-status reference, and an empty string
    when ``text`` does not begin with a valid name.
    """
    if text.startswith("?"):
        return "?"
    if not text or not _is_name_start(text[0]):
        return ""
    end = 1
    while end < len(text) and end < MAX_VAR_NAME and _is_name_char(text[end]):
        end += 1
    return text[:end]


def expand_env_vars(text: Optional[str], envp: Optional[Sequence[str]],
                    exit_status: int) -> Optional[str]:
    """Replace ``$?`` and ``$NAME`` references in ``text``.

    Unset variables expand to nothing; a ``$`` not followed by ``?`` or a
    name start is kept literally.
    """
    if text is None:
        return None
    parts: list[str] = []
    pos = 0
    length = len(text)
    while pos < length:
        char = text[pos]
        if char != "$":
            parts.append(char)
            pos += 1
            continue
        following = text[pos + 1] if pos + 1 < length else ""
        if following == "?":
            parts.append(str(exit_status))
            pos += 2
        elif following and _is_name_start(following):
            name = extract_var_name(text[pos + 1:])
            value = get_env_value(name, envp)
            if value is not None:
                parts.append(value)
            pos += 1 + len(name)
        else:
            parts.append("$")
            pos += 1
    return "".join(parts)