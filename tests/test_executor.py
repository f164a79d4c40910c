import os

import pytest

from mshell.context import ShellContext
from mshell.executor import execute_if_needed, execute_pipeline, wait_pipeline
from mshell.syntax import Command, Redirection, RedirType


@pytest.fixture
def ctx():
    return ShellContext.from_environ(dict(os.environ))


def _cmd(*words, redirs=None):
    return Command(command=words[0], args=list(words), redirs=list(redirs or []))


def _spawn_exit(code):
    return os.spawnvp(os.P_NOWAIT, "sh", ["sh", "-c", f"exit {code}"])


def test_pipeline_round_trip_through_cat(ctx, tmp_path):
    src = tmp_path / "in.txt"
    dst = tmp_path / "out.txt"
    src.write_text("alpha\nbeta\n")
    stages = [
        _cmd("cat", redirs=[Redirection(RedirType.IN, str(src))]),
        _cmd("cat", redirs=[Redirection(RedirType.OUT, str(dst))]),
    ]
    execute_pipeline(stages, ctx)
    assert ctx.exit_status == 0
    assert dst.read_text() == src.read_text()


def test_pipeline_status_comes_from_last_stage(ctx):
    execute_pipeline([_cmd("true"), _cmd("false")], ctx)
    assert ctx.exit_status == 1
    execute_pipeline([_cmd("false"), _cmd("true")], ctx)
    assert ctx.exit_status == 0


def test_pipeline_resets_in_pipeline_flag(ctx):
    execute_pipeline([_cmd("true"), _cmd("true")], ctx)
    assert ctx.in_pipeline is False


def test_pipeline_unknown_command_gives_127(ctx):
    execute_pipeline([_cmd("true"), _cmd("no_such_command_zz_qq")], ctx)
    assert ctx.exit_status == 127


def test_pipeline_failed_redirection_gives_1(ctx, tmp_path):
    missing = tmp_path / "missing.txt"
    stages = [_cmd("true"), _cmd("cat", redirs=[Redirection(RedirType.IN, str(missing))])]
    execute_pipeline(stages, ctx)
    assert ctx.exit_status == 1


def test_empty_pipeline_leaves_status(ctx):
    ctx.exit_status = 42
    execute_pipeline([], ctx)
    assert ctx.exit_status == 42


def test_wait_pipeline_uses_last_status(ctx):
    first = _spawn_exit(3)
    second = _spawn_exit(5)
    assert wait_pipeline([first, second], ctx) == 5
    assert ctx.exit_status == 5


def test_wait_pipeline_skips_missing_pids(ctx):
    ctx.exit_status = 9
    pid = _spawn_exit(4)
    assert wait_pipeline([pid, 0], ctx) == 9


def test_execute_if_needed_empty_line(ctx):
    ctx.exit_status = 17
    assert execute_if_needed([], ctx) is False
    assert ctx.exit_status == 0


def test_execute_if_needed_exit_requests_stop(ctx, capsys):
    assert execute_if_needed([_cmd("exit", "7")], ctx) is True
    assert ctx.exit_status == 7
    assert capsys.readouterr().out == "exit\n"


def test_execute_if_needed_exit_bad_argument_keeps_running(ctx):
    assert execute_if_needed([_cmd("exit", "abc")], ctx) is False
    assert ctx.exit_status == 2


def test_execute_if_needed_cd_runs_in_shell(ctx, tmp_path, monkeypatch):
    monkeypatch.chdir(os.getcwd())
    assert execute_if_needed([_cmd("cd", str(tmp_path))], ctx) is False
    assert os.path.samefile(os.getcwd(), tmp_path)
    assert ctx.exit_status == 0


def test_execute_if_needed_export_changes_env(ctx):
    assert execute_if_needed([_cmd("export", "MSHELL_T=1")], ctx) is False
    assert "MSHELL_T=1" in ctx.env


def test_execute_if_needed_runs_pipeline(ctx):
    assert execute_if_needed([_cmd("true"), _cmd("false")], ctx) is False
    assert ctx.exit_status == 1


def test_redirection_only_missing_file(ctx, tmp_path):
    head = Command(command=None, redirs=[Redirection(RedirType.IN, str(tmp_path / "nope"))])
    before = os.fstat(0)
    assert execute_if_needed([head], ctx) is False
    assert ctx.exit_status == 1
    after = os.fstat(0)
    assert (after.st_dev, after.st_ino) == (before.st_dev, before.st_ino)


def test_redirection_only_restores_descriptors(ctx, tmp_path):
    src = tmp_path / "in.txt"
    src.write_text("data\n")
    dst = tmp_path / "created.txt"
    head = Command(
        command=None,
        redirs=[
            Redirection(RedirType.IN, str(src)),
            Redirection(RedirType.OUT, str(dst)),
        ],
    )
    before_in = os.fstat(0)
    before_out = os.fstat(1)
    assert execute_if_needed([head], ctx) is False
    assert ctx.exit_status == 0
    assert dst.exists()
    after_in = os.fstat(0)
    after_out = os.fstat(1)
    assert (after_in.st_dev, after_in.st_ino) == (before_in.st_dev, before_in.st_ino)
    assert (after_out.st_dev, after_out.st_ino) == (before_out.st_dev, before_out.st_ino)