"""Writers for OpenAI-style JSON replies, SSE chunks and error bodies."""

from __future__ import annotations

import json
import logging
import time
from typing import Any, Iterator, Optional

from .basic import random_hex
from .context import (
    GIN_CLOSE,
    GIN_THINK_REASON,
    RequestContext,
    get_completion,
    get_completion_usage,
)
from .inited import current_environment
from .model import Choice, Response, _json_default

log = logging.getLogger(__name__)

STOP = "stop"
TOOL_CALLS = "tool_calls"
CAN_RESPONSE = "__can-response__"
EOF = "<CHAR_trun>"
CHUNK_SIZE = 1000

UNAUTHORIZED_ERROR = RuntimeError("unauthorized error")

DEFAULT_USAGE = {
    "completion_tokens": 0,
    "prompt_tokens": 0,
    "total_tokens": 0,
}

_ERROR_BLOCKS_WITH_401 = (
    "invalid api",
    "invalid_api",
    "invalid usage",
    "permission_denied",
)

_VALID_ROLES = ("user", "system", "assistant", "tool", "function")


class UpstreamError(Exception):
    """An error reported by an upstream service, with its HTTP status."""

    def __init__(self, code: int, msg: str = "") -> None:
        super().__init__(msg or f"upstream error {code}")
        self.code = code
        self.msg = msg


def _find_upstream(err: BaseException) -> Optional[UpstreamError]:
    seen = set()
    current: Optional[BaseException] = err
    while current is not None and id(current) not in seen:
        if isinstance(current, UpstreamError):
            return current
        seen.add(id(current))
        current = current.__cause__ or current.__context__
    return None


def message_validator(ctx: RequestContext) -> bool:
    """Check the request's messages; writes an error reply and returns False if invalid."""
    messages = get_completion(ctx).messages
    if not messages:
        error(ctx, -1, "[] is too short - 'messages'")
        return False

    for index, message in enumerate(messages):
        if message.get_string("role") not in _VALID_ROLES:
            text = (
                f"'{message.get('role')}' is not in ['system', 'assistant', 'user', 'tool', 'function']"
                f" - 'messages.[{index}].role'"
            )
            error(ctx, -1, text)
            return False
    return True


def error_to_code(code: int, err: Any) -> int:
    """Resolve the status for ``err``; -1 means 401 for auth failures, otherwise 500."""
    if code != -1:
        return code

    if isinstance(err, BaseException):
        msg = ""
        upstream = _find_upstream(err)
        if upstream is not None:
            if upstream.code == 401:
                return 401
            msg = upstream.msg
        if msg == "":
            msg = str(err)
        if any(block in msg for block in _ERROR_BLOCKS_WITH_401):
            return 401
    return 500


def error(ctx: RequestContext, code: int, err: Any) -> None:
    """Write ``{"error": {"message": ...}}`` with a status derived from ``code`` and ``err``."""
    ctx.set(CAN_RESPONSE, "No!")
    status = error_to_code(code, err)
    message = err if isinstance(err, str) else str(err)
    ctx.json(status, {"error": {"message": message}})


def _usage(ctx: RequestContext) -> Optional[dict]:
    if current_environment().get_bool("server.no-usage"):
        return dict(DEFAULT_USAGE)
    return get_completion_usage(ctx)


def response(ctx: RequestContext, model: str, content: str) -> None:
    reason_response(ctx, model, content, "")


def reason_response(ctx: RequestContext, model: str, content: str, reasoning_content: str) -> None:
    """Write a complete chat completion reply."""
    if reasoning_content == "":
        reasoning_content = ctx.get_string(GIN_THINK_REASON)

    ctx.set(CAN_RESPONSE, "No!")
    created = int(time.time())
    reply = Response(
        id=f"chatcmpl-{created}",
        object="chat.completion",
        created=created,
        model="LLM",
        choices=[
            Choice(
                index=0,
                message={
                    "role": "assistant",
                    "content": content,
                    "reasoning_content": reasoning_content,
                },
                finish_reason=STOP,
            )
        ],
        usage=_usage(ctx),
    )
    ctx.json(200, reply.to_dict())


def echo(ctx: RequestContext, model: str, content: str, sse: bool) -> None:
    """Reply with ``content`` whole, or as one SSE chunk followed by the end marker."""
    if not sse:
        response(ctx, model, content)
        return
    created = int(time.time())
    sse_response(ctx, model, content, created)
    sse_response(ctx, model, "[DONE]", created)


def sse_response(ctx: RequestContext, model: str, content: str, created: int) -> None:
    reason_sse_response(ctx, model, content, "", created)


def _chunk(model: str, created: int, delta: Optional[dict]) -> Response:
    return Response(
        id=f"chatcmpl-{created}",
        object="chat.completion.chunk",
        created=created,
        model=model,
        choices=[Choice(index=0, delta=delta)],
    )


def reason_sse_response(
    ctx: RequestContext, model: str, content: str, reasoning_content: str, created: int
) -> None:
    """Stream ``content`` (or reasoning) as chunks; ``[DONE]`` closes the stream."""
    ctx.set(CAN_RESPONSE, "No!")
    _set_sse_header(ctx)

    usage = _usage(ctx)
    done = content == "[DONE]"
    if done:
        content = ""

    if reasoning_content != "":
        for value in split_each(reasoning_content):
            delta = {"type": "text", "role": "assistant", "content": "", "reasoning_content": value}
            event(ctx, "", _chunk(model, created, delta))
    elif content != "":
        for value in split_each(content):
            delta = {"type": "text", "role": "assistant", "content": value, "reasoning_content": ""}
            event(ctx, "", _chunk("LLM", created, delta))

    if done:
        final = _chunk("LLM", created, {"type": "text", "role": "assistant"})
        final.usage = usage
        final.choices[0].finish_reason = STOP
        event(ctx, "", final)
        event(ctx, "", "[DONE]")


def tool_call_response(ctx: RequestContext, model: str, name: str, args: str) -> None:
    """Write a complete reply that calls tool ``name`` with JSON ``args``."""
    ctx.set(CAN_RESPONSE, "No!")
    created = int(time.time())
    reply = Response(
        id=f"chatcmpl-{created}",
        object="chat.completion",
        created=created,
        model="LLM",
        choices=[
            Choice(
                index=0,
                message={
                    "role": "assistant",
                    "tool_calls": [
                        {
                            "id": "call_" + random_hex(5),
                            "type": "function",
                            "function": {"name": name, "arguments": args},
                        }
                    ],
                },
                finish_reason=STOP,
            )
        ],
        usage=get_completion_usage(ctx),
    )
    ctx.json(200, reply.to_dict())


def sse_tool_call_response(
    ctx: RequestContext, model: str, name: str, args: str, created: int
) -> None:
    """Stream a tool call: name chunk, arguments chunk, finish chunk, end marker."""
    ctx.set(CAN_RESPONSE, "No!")
    _set_sse_header(ctx)
    usage = get_completion_usage(ctx)

    opening = {
        "index": 0,
        "type": "function",
        "id": "call_" + random_hex(5),
        "function": {"name": name, "arguments": ""},
    }
    event(ctx, "", _chunk("LLM", created, {"role": "assistant", "tool_calls": [opening]}))

    arguments = {"index": 0, "function": {"arguments": args}}
    event(ctx, "", _chunk("LLM", created, {"tool_calls": [arguments]}))

    final = _chunk("LLM", created, None)
    final.choices[0].finish_reason = TOOL_CALLS
    final.usage = usage
    event(ctx, "", final)

    event(ctx, "", "[DONE]")


def not_response(ctx: RequestContext) -> bool:
    """True if nothing has been written for this request yet."""
    return ctx.get_string(CAN_RESPONSE) == "" and not_sse_header(ctx)


def not_sse_header(ctx: RequestContext) -> bool:
    return _not_header(ctx, "text/event-stream")


def _not_header(ctx: RequestContext, *types: str) -> bool:
    content_type = ctx.response_header("Content-Type")
    if content_type == "":
        return True
    return not any(kind in content_type for kind in types)


def _set_sse_header(ctx: RequestContext) -> None:
    if ctx.response_header("Content-Type") == "":
        ctx.set_header("Content-Type", "text/event-stream")
        ctx.set_header("Transfer-Encoding", "chunked")
        ctx.set_header("Cache-Control", "no-cache")
        ctx.set_header("Connection", "keep-alive")
        ctx.set_header("X-Accel-Buffering", "no")


def event(ctx: RequestContext, name: str, data: Any) -> None:
    """Write one SSE event; strings go out verbatim, other values as JSON."""
    ctx.set(CAN_RESPONSE, "No!")
    _set_sse_header(ctx)

    if isinstance(data, str):
        frame = f"data: {data}\n\n"
    else:
        try:
            payload = json.dumps(
                data, ensure_ascii=False, separators=(",", ":"), default=_json_default
            )
        except (TypeError, ValueError) as exc:
            log.error("%s", exc)
            ctx.set(GIN_CLOSE, True)
            return
        prefix = f"event: {name}\n" if name else ""
        frame = f"{prefix}data: {payload}\n\n"

    try:
        ctx.write(frame)
    except OSError as exc:
        log.error("%s", exc)
        ctx.set(GIN_CLOSE, True)


def split_each(content: str) -> Iterator[str]:
    """Yield ``content`` in pieces of at most 1000 characters (at least one piece)."""
    pos = 0
    while len(content) - pos > CHUNK_SIZE:
        yield content[pos : pos + CHUNK_SIZE]
        pos += CHUNK_SIZE
    yield content[pos:]