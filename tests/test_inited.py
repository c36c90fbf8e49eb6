import signal

import pytest

from chatadapter import inited
from chatadapter.inited import (
    Environment,
    add_exited,
    add_initialized,
    current_environment,
    initialized,
    run_exited,
)


@pytest.fixture
def restore_signals():
    saved = {sig: signal.getsignal(sig) for sig in (signal.SIGINT, signal.SIGTERM)}
    yield
    for sig, handler in saved.items():
        signal.signal(sig, handler)


def test_dotted_case_insensitive_get():
    env = Environment({"Server": {"Port": 8080, "debug": True}})
    assert env.get_int("server.port") == 8080
    assert env.get_string("SERVER.PORT") == "8080"
    assert env.get_bool("server.debug") is True
    assert env.get("server.missing", "x") == "x"


def test_string_conversions():
    env = Environment({"a": True, "b": None, "c": "text"})
    assert env.get_string("a") == "true"
    assert env.get_string("b") == ""
    assert env.get_string("c") == "text"
    assert env.get_string("nothing") == ""


def test_bool_and_int_parsing():
    env = Environment({"flag": "true", "no": "nope", "n": "42", "bad": "x"})
    assert env.get_bool("flag") is True
    assert env.get_bool("no") is False
    assert env.get_int("n") == 42
    assert env.get_int("bad") == 0


def test_slices_and_maps():
    env = Environment(
        {
            "hf": {"fn": [3, "6"]},
            "grok": {"cookies": ["one", "two"], "spaced": "one two"},
            "server-conn": {"idleConnTimeout": 10},
        }
    )
    assert env.get_int_slice("hf.fn") == [3, 6]
    assert env.get_string_slice("grok.cookies") == ["one", "two"]
    assert env.get_string_slice("grok.spaced") == ["one", "two"]
    assert env.get_string_map("server-conn") == {"idleconntimeout": 10}
    assert env.get_int_slice("missing") == []


def test_keys_inside_lists_are_lowercased():
    env = Environment({"bing": {"cookies": [{"scopeId": "s"}]}})
    assert env.get("bing.cookies") == [{"scopeid": "s"}]


def test_set_creates_nested_keys():
    env = Environment()
    env.set("server.port", 9000)
    env.set("Server.Proxied", "http://127.0.0.1:7890")
    assert env.get_int("server.port") == 9000
    assert env.get_string("server.proxied") == "http://127.0.0.1:7890"


def test_from_file(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("browser-less:\n  enabled: true\n  port: 8081\n", encoding="utf-8")
    env = Environment.from_file(str(path))
    assert env.get_bool("browser-less.enabled") is True
    assert env.get_string("browser-less.port") == "8081"


def test_from_file_missing_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        Environment.from_file(str(tmp_path / "absent.yaml"))


def test_initialized_runs_hooks_and_sets_current(restore_signals):
    seen = []
    hook = add_initialized(lambda env: seen.append(env))
    try:
        env = Environment({"a": 1})
        initialized(env)
        assert seen == [env]
        assert current_environment() is env
        assert signal.getsignal(signal.SIGTERM) not in (signal.SIG_DFL, signal.SIG_IGN)
    finally:
        inited._inits.remove(hook)


def test_run_exited_calls_exit_hooks():
    seen = []
    hook = add_exited(lambda env: seen.append(env.get_int("x")))
    try:
        run_exited(Environment({"x": 5}))
        assert seen == [5]
    finally:
        inited._exits.remove(hook)