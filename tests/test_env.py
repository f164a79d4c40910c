import pytest

from mshell.env import (
    MAX_VAR_NAME,
    expand_env_vars,
    extract_var_name,
    get_env_value,
    make_entry,
    strip_quotes,
    update_env,
)


@pytest.fixture
def envp():
    return ["HOME=/home/user", "PATH=/bin:/usr/bin", "EQ=a=b", "EMPTY="]


def test_get_env_value_found(envp):
    assert get_env_value("HOME", envp) == "/home/user"
    assert get_env_value("EQ", envp) == "a=b"
    assert get_env_value("EMPTY", envp) == ""


def test_get_env_value_missing_and_prefix(envp):
    assert get_env_value("NOPE", envp) is None
    assert get_env_value("PAT", envp) is None
    assert get_env_value("HOME", None) is None
    assert get_env_value("HOME", []) is None
    assert get_env_value(None, envp) is None


def test_make_entry():
    assert make_entry("KEY", "value") == "KEY=value"
    assert make_entry("KEY", "") == "KEY="


def test_update_env_replaces_in_place(envp):
    before = len(envp)
    update_env(envp, "PATH", "/opt")
    assert len(envp) == before
    assert envp[1] == "PATH=/opt"
    assert get_env_value("PATH", envp) == "/opt"


def test_update_env_appends(envp):
    before = list(envp)
    update_env(envp, "NEW", "x")
    assert envp[:-1] == before
    assert envp[-1] == "NEW=x"


def test_update_env_errors(envp):
    with pytest.raises(ValueError):
        update_env(None, "A", "b")
    with pytest.raises(ValueError):
        update_env(envp, None, "b")


@pytest.mark.parametrize(
    "text, expected",
    [
        ('"abc"', "abc"),
        ("'abc'", "abc"),
        ("\"abc'", "\"abc'"),
        ('"', '"'),
        ('""', ""),
        ("plain", "plain"),
    ],
)
def test_strip_quotes(text, expected):
    assert strip_quotes(text) == expected


def test_strip_quotes_none():
    assert strip_quotes(None) is None


def test_extract_var_name():
    assert extract_var_name("USER_1 rest") == "USER_1"
    assert extract_var_name("?abc") == "?"
    assert extract_var_name("1abc") == ""
    assert extract_var_name("") == ""
    assert extract_var_name("_x-y") == "_x"


def test_extract_var_name_truncates():
    name = "A" * (MAX_VAR_NAME + 10)
    result = extract_var_name(name)
    assert len(result) == MAX_VAR_NAME
    assert name.startswith(result)


def test_expand_without_dollar_is_identity(envp):
    assert expand_env_vars("no vars here", envp, 0) == "no vars here"


def test_expand_exit_status(envp):
    assert expand_env_vars("$?", envp, 42) == "42"
    assert expand_env_vars("code=$?!", envp, 7) == "code=7!"


def test_expand_variables(envp):
    assert expand_env_vars("$HOME/x", envp, 0) == "/home/user/x"
    assert expand_env_vars("a$NOPE b", envp, 0) == "a b"
    assert expand_env_vars("$HOME$PATH", envp, 0) == "/home/user/bin:/usr/bin"


@pytest.mark.parametrize("text", ["$", "$1", "$$", "a $ b", "$-x"])
def test_expand_literal_dollar(envp, text):
    assert expand_env_vars(text, envp, 3) == text


def test_expand_none():
    assert expand_env_vars(None, [], 0) is None


def test_expand_long_name_leaves_tail():
    name = "A" * MAX_VAR_NAME
    envp = [make_entry(name, "v")]
    assert expand_env_vars("$" + name + "AAA", envp, 0) == "vAAA"