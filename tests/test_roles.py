import pytest

from chatadapter.context import GIN_COMPLETION, GIN_COZE_WEBSDK, RequestContext
from chatadapter.inited import current_environment
from chatadapter.model import Completion
from chatadapter.roles import (
    END,
    bing_role,
    claude_role,
    convert_role,
    convert_to_text,
    deepseek_end,
    deepseek_role,
    default_role,
    gpt_role,
    is_bing,
    is_claude,
    is_deepseek,
    is_gpt,
)


def _ctx(model, token=""):
    ctx = RequestContext()
    ctx.set(GIN_COMPLETION, Completion(model=model))
    if token:
        ctx.set("token", token)
    return ctx


def test_role_formats():
    assert default_role("user") == "<|user|>\n"
    assert gpt_role("user") == "<|start|>user\n"
    assert deepseek_role("user") == "<user>\n"
    assert deepseek_end("user") == "\n</user>\n\n"


def test_bing_roles():
    assert bing_role("user") == "Q: "
    assert bing_role("assistant") == "A: "
    assert bing_role("system") == "Ins: \n"


def test_claude_role_uses_newline_separator_by_default():
    assert claude_role("Human") == "\n\n\nHuman: "


def test_convert_role_gpt():
    ctx = _ctx("gpt-4o")
    assert convert_role(ctx, "user") == (gpt_role("user"), END)
    assert convert_role(ctx, "tool") == (gpt_role("system"), END)


def test_convert_role_deepseek():
    ctx = _ctx("deepseek-chat")
    assert convert_role(ctx, "assistant") == (deepseek_role("assistant"), deepseek_end("assistant"))


def test_convert_role_claude_and_bing_have_no_end():
    assert convert_role(_ctx("claude-3"), "user") == (claude_role("Human"), "")
    assert convert_role(_ctx("claude-3"), "system") == (claude_role("SYSTEM"), "")
    assert convert_role(_ctx("bing"), "assistant") == ("A: ", "")


def test_convert_role_default():
    assert convert_role(_ctx("other"), "user") == (default_role("user"), END)


def test_model_family_checks():
    assert is_bing("bing") and not is_bing("bing2")
    assert is_gpt("OpenAI-x") and is_gpt("my-GPT")
    assert not is_gpt("claude")
    assert is_deepseek("deepseek-r1") and not is_deepseek("DeepSeek")


@pytest.mark.parametrize(
    "model,token,expected",
    [
        ("coze/bot-claude-1000-w", "", True),
        ("coze/bot-space-1000-w", "[claude=true]", True),
        ("coze/bot-space-1000-w", "", False),
        ("coze/bot-claude-1000-o", "", False),
        ("Claude-Opus", "", True),
        ("gpt-4", "", False),
    ],
)
def test_is_claude(model, token, expected):
    ctx = _ctx(model, token)
    assert is_claude(ctx, model) is expected


def test_is_claude_is_remembered():
    ctx = _ctx("claude-3")
    assert is_claude(ctx, "claude-3")
    assert is_claude(ctx, "gpt-4")


def test_is_claude_websdk_follows_configuration():
    env = current_environment()
    ctx = _ctx("gpt-4")
    ctx.set(GIN_COZE_WEBSDK, True)
    try:
        env.set("coze.websdk.model", "claude-3-haiku-200k")
        assert is_claude(ctx, "gpt-4")
        env.set("coze.websdk.model", "gpt4o-128k")
        assert not is_claude(ctx, "gpt-4")
    finally:
        env.set("coze.websdk.model", "")


def test_convert_to_text():
    assert convert_to_text({"type": "text", "text": "hi"}) == "hi"
    assert convert_to_text({"type": "image_url", "text": "hi"}) == ""
    assert convert_to_text("plain") == ""