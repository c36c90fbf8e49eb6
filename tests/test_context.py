import json

from chatadapter.context import (
    GIN_COMPLETION,
    GIN_COMPLETION_USAGE,
    GIN_COZE_WEBSDK,
    GIN_MATCHERS,
    GIN_TOOL,
    RequestContext,
    get_completion,
    get_completion_usage,
    get_embedding,
    get_matchers,
    get_tool_value,
    is_coze_websdk,
)
from chatadapter.model import Completion, Embed


def test_set_and_typed_getters():
    ctx = RequestContext()
    ctx.set("flag", True)
    ctx.set("name", "abc")
    ctx.set("n", 4)
    assert ctx.get_bool("flag") is True
    assert ctx.get_bool("name") is False
    assert ctx.get_string("name") == "abc"
    assert ctx.get_string("n") == ""
    assert ctx.get_int("n") == 4
    assert ctx.get("missing", "dflt") == "dflt"


def test_request_header_lookup_is_case_insensitive():
    ctx = RequestContext(headers={"Authorization": "Bearer token"})
    assert ctx.header("authorization") == "Bearer token"
    assert ctx.header("X-Api-Key") == ""


def test_set_header_replaces_regardless_of_case():
    ctx = RequestContext()
    ctx.set_header("content-type", "text/plain")
    ctx.set_header("Content-Type", "text/event-stream")
    assert ctx.response_header("CONTENT-TYPE") == "text/event-stream"
    assert len(ctx.response_headers) == 1


def test_json_writes_status_and_body():
    ctx = RequestContext()
    ctx.json(500, {"error": {"message": "boom"}})
    assert ctx.status == 500
    assert json.loads(ctx.text) == {"error": {"message": "boom"}}
    assert ctx.response_header("Content-Type").startswith("application/json")


def test_write_forwards_to_writer():
    seen = []
    ctx = RequestContext(writer=seen.append)
    ctx.write(b"data: x\n\n")
    assert seen == ["data: x\n\n"]
    assert ctx.status == 200


def test_get_completion_defaults_and_stored():
    ctx = RequestContext()
    assert get_completion(ctx) == Completion()
    completion = Completion(model="gpt")
    ctx.set(GIN_COMPLETION, completion)
    assert get_completion(ctx) is completion
    assert get_embedding(ctx) == Embed()


def test_get_tool_value_default():
    tool = get_tool_value(RequestContext())
    assert tool.get_string("id") == "-1"
    assert tool.is_value("enabled", False)
    assert tool.is_value("tasks", False)


def test_get_tool_value_accepts_plain_dict():
    ctx = RequestContext()
    ctx.set(GIN_TOOL, {"id": "x", "enabled": True})
    assert get_tool_value(ctx).is_value("enabled", True)


def test_usage_matchers_and_websdk():
    ctx = RequestContext()
    assert get_completion_usage(ctx) is None
    assert get_matchers(ctx) == []
    assert is_coze_websdk(ctx) is False
    ctx.set(GIN_COMPLETION_USAGE, {"total_tokens": 1})
    ctx.set(GIN_MATCHERS, ["m"])
    ctx.set(GIN_COZE_WEBSDK, True)
    assert get_completion_usage(ctx) == {"total_tokens": 1}
    assert get_matchers(ctx) == ["m"]
    assert is_coze_websdk(ctx) is True