import time

import pytest

from chatadapter.poll import FAILED, IN_USE, READY, PollContainer, PollError


def always(value, *args):
    return True


def test_poll_empty_raises():
    container = PollContainer("t", [], condition=always)
    with pytest.raises(PollError, match="no elements in slice"):
        container.poll()


def test_poll_without_condition_raises():
    container = PollContainer("t", ["a"])
    with pytest.raises(PollError, match="condition is nil"):
        container.poll()


def test_poll_round_robin_and_marks_in_use():
    container = PollContainer("t", ["a", "b", "c"], condition=always)
    taken = [container.poll() for _ in range(4)]
    assert taken == ["a", "b", "c", "a"]
    assert container.marked("b") == IN_USE


def test_poll_skips_items_in_use():
    container = PollContainer("t", ["a", "b"])
    container.condition = lambda value, *args: container.marked(value) == READY
    assert container.poll() == "a"
    assert container.poll() == "b"
    with pytest.raises(PollError, match="not roll result"):
        container.poll()


def test_poll_passes_arguments_to_condition():
    seen = []

    def cond(value, *args):
        seen.append(args)
        return value == "b"

    container = PollContainer("t", ["a", "b"], condition=cond)
    assert container.poll("ctx") == "b"
    assert seen == [("ctx",), ("ctx",)]


def test_mark_and_marked_with_dict_keys():
    container = PollContainer("t", [])
    cookie = {"cookie": "token", "idToken": "token"}
    assert container.marked(cookie) == READY
    container.mark_to(cookie, FAILED)
    assert container.marked({"idToken": "token", "cookie": "token"}) == FAILED


def test_add_and_remove():
    container = PollContainer("t", ["a"])
    container.add("b")
    assert container.items == ["a", "b"]
    container.remove("a")
    assert container.items == ["b"]
    assert len(container) == 1
    container.remove("zzz")
    assert container.items == ["b"]


def test_reset_expired_restores_failed_items():
    container = PollContainer("t", ["a", "b"], reset_time=0.01)
    try:
        container.mark_to("a", FAILED)
        container.mark_to("b", IN_USE)
        time.sleep(0.05)
        container.reset_expired()
        assert container.marked("a") == READY
        assert container.marked("b") == IN_USE
    finally:
        container.close()


def test_reset_expired_keeps_cooling_items():
    container = PollContainer("t", ["a"], reset_time=60)
    try:
        container.mark_to("a", FAILED)
        container.reset_expired()
        assert container.marked("a") == FAILED
    finally:
        container.close()