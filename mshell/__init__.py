"""Core of a small POSIX-style shell: variable expansion, builtins, redirections and pipelines."""

__version__ = "0.1.0"