"""Role markers used when flattening a conversation into a single prompt."""

from __future__ import annotations

from typing import Any, Tuple

from .context import RequestContext, get_completion, is_coze_websdk
from .inited import current_environment
from .model import Keyv

END = "<|end|>\n\n"
_CLAUDE_KEY = "__is-claude__"


def default_role(role: str) -> str:
    return f"<|{role}|>\n"


def gpt_role(role: str) -> str:
    return f"<|start|>{role}\n"


def deepseek_role(role: str) -> str:
    return f"<{role}>\n"


def deepseek_end(role: str) -> str:
    return f"\n</{role}>\n\n"


def claude_role(role: str) -> str:
    sep = current_environment().get_string("separator.claude") or "\n"
    return f"\n{sep}\n{role}: "


def bing_role(role: str) -> str:
    if role == "user":
        return "Q: "
    if role == "assistant":
        return "A: "
    return "Ins: \n"


def convert_role(ctx: RequestContext, role: str) -> Tuple[str, str]:
    """The opening marker and closing marker for ``role`` in the request's model family."""
    model = get_completion(ctx).model
    if is_claude(ctx, model):
        if role == "user":
            return claude_role("Human"), ""
        if role == "assistant":
            return claude_role("Assistant"), ""
        return claude_role("SYSTEM"), ""

    if is_bing(model):
        return bing_role(role), ""

    if is_gpt(model):
        return gpt_role(role if role in ("user", "assistant") else "system"), END

    if is_deepseek(model):
        return deepseek_role(role), deepseek_end(role)

    return default_role(role), END


def is_bing(model: str) -> bool:
    return model == "bing"


def is_gpt(model: str) -> bool:
    lowered = model.lower()
    return "openai" in lowered or "gpt" in lowered


def is_deepseek(model: str) -> bool:
    return "deepseek" in model


def is_claude(ctx: RequestContext, model: str) -> bool:
    """Whether the request is served by a Claude model; a positive answer is remembered."""
    if ctx.get_bool(_CLAUDE_KEY):
        return True

    if model == "coze/websdk" or is_coze_websdk(ctx):
        websdk_model = current_environment().get_string("coze.websdk.model")
        return "claude" in websdk_model.lower()

    if "claude" in model.lower():
        ctx.set(_CLAUDE_KEY, True)
        return True

    if model.startswith("coze/"):
        values = model[5:].split("-")
        if len(values) > 3 and values[3] == "w" and (
            "[claude=true]" in ctx.get_string("token") or values[1] == "claude"
        ):
            ctx.set(_CLAUDE_KEY, True)
            return True
        return False

    return False


def convert_to_text(value: Any) -> str:
    """The text of a ``{"type": "text", "text": ...}`` content part, else an empty string."""
    if not isinstance(value, dict):
        return ""
    part = value if isinstance(value, Keyv) else Keyv(value)
    if not part.is_value("type", "text"):
        return ""
    return part.get_string("text")