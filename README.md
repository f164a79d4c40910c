# mshell

The execution core of a small POSIX-style shell, as a Python library for
POSIX systems. It provides:

- **Environment handling** (`mshell.env`): lookup, update and `$NAME` /
  `$?` expansion over a list of `KEY=VALUE` strings.
- **A parsed command model** (`mshell.syntax`): `Command` (one pipeline
  stage) and `Redirection` with its `RedirType` (`IN`, `OUT`, `APPEND`,
  `HEREDOC`).
- **Shell state** (`mshell.context.ShellContext`): environment, exported
  names and the last exit status.
- **Builtins** (`mshell.builtins`): `echo`, `cd`, `pwd`, `env`, `export`,
  `unset` and `exit`.
- **Execution**: `PATH` lookup (`mshell.paths`), redirections
  (`mshell.redirections`), single commands (`mshell.command`) and
  pipelines (`mshell.executor`), run in forked child processes.

## Expanding variables

```python
from mshell.env import expand_env_vars, get_env_value, update_env

env = ["HOME=/home/user", "PATH=/usr/bin:/bin"]

expand_env_vars("$HOME/docs", env, 0)    # "/home/user/docs"
expand_env_vars("status: $?", env, 1)    # "status: 1"
expand_env_vars("$UNSET-x", env, 0)      # "-x"
expand_env_vars("cost $5", env, 0)       # "cost $5"

get_env_value("PATH", env)               # "/usr/bin:/bin"
update_env(env, "EDITOR", "vi")          # replaces an existing entry or appends
```

A name is a letter or underscore followed by letters, digits or
underscores. A `$` that does not start a name or `$?` is kept as it is;
unset variables expand to nothing. `strip_quotes` removes one pair of
matching surrounding quotes.

## Shell state

`ShellContext.from_environ(envp)` builds a context from a sequence of
`KEY=VALUE` strings or a mapping; with no argument it copies
`os.environ`. The environment (`env`) and the export list (`exported`)
each get their own copy.

## Running builtins

```python
from mshell.context import ShellContext
from mshell.builtins import handle_builtin, is_valid_identifier, format_exports

ctx = ShellContext.from_environ()

handle_builtin(["export", "GREETING=hello"], ctx)
handle_builtin(["echo", "-n", "hi"], ctx)     # prints "hi" without a newline
handle_builtin(["unset", "GREETING"], ctx)

format_exports(["A=1", "B"])   # ['declare -x A="1"', 'declare -x B']
is_valid_identifier("_name1")  # True
is_valid_identifier("1name")   # False
```

Each builtin returns its exit status and records it in
`ctx.exit_status`. `exit` returns 255 (`mshell.builtins.EXIT_REQUESTED`)
to tell the caller that the shell should stop; the requested code is then
in `ctx.exit_status`. A non-numeric argument gives status 2 and too many
arguments status 1, and the shell is not asked to stop.
`handle_builtin` returns 1 for a name that is not a builtin.

`echo` accepts `-n` (no trailing newline) and `-e` (interpret `\n`,
`\t`, `\r`, `\b`, `\v`, `\a`). `cd` with no argument or `~` goes to
`$HOME`, `cd -` to `$OLDPWD`, and it updates `PWD` and `OLDPWD`.

## Running commands

```python
from mshell.context import ShellContext
from mshell.executor import execute_if_needed
from mshell.syntax import Command, Redirection, RedirType

ctx = ShellContext.from_environ()

pipeline = [
    Command("ls", ["ls", "-l"]),
    Command("wc", ["wc", "-l"], [Redirection(RedirType.OUT, "count.txt")]),
]
should_exit = execute_if_needed(pipeline, ctx)
print(ctx.exit_status)
```

`execute_if_needed` runs one parsed command line and returns True when
the shell should exit:

- an empty list sets status 0;
- a first stage with no command but with redirections applies them,
  drains standard input and restores the standard descriptors;
- a single `cd`, `export`, `unset` or `exit` runs in the shell itself;
- several stages run through `execute_pipeline`, each in its own child
  joined by pipes, with the last stage's status recorded;
- one stage runs through `mshell.command.exec_command`, which also runs
  `echo`, `pwd` and `env` in the shell when they have no redirections,
  and forks for everything else.

Commands are found by `mshell.paths.find_command_path` on the context's
`PATH`. A match that exists but is not executable raises
`CommandPermissionError` and the command fails with status 126; an unknown
command fails with 127 (`command_not_found` prints the reason and returns
the status). A child killed by a signal gives `128 + signal`. A failing
redirection raises `mshell.redirections.RedirectionError` and the command
gets status 1.

## What it does not do

The package has no command to start and no interactive loop: it does not
read input lines, keep history or install signal handlers for a prompt.
It has no tokenizer or parser either, so command lines must be given as
`Command` objects already split into words, with quotes removed and
variables expanded by the caller (for example with `expand_env_vars`).
Here-documents are not collected: for a `HEREDOC` redirection the caller
must put the read end of a pipe holding the body in
`Redirection.heredoc_fd`.