"""Per-request state shared between the router, adapters and response writers."""

from __future__ import annotations

import json
from typing import Any, Callable, Dict, List, Optional

from .model import Completion, Embed, Generation, Keyv, _json_default

GIN_COMPLETION = "__completion__"
GIN_GENERATION = "__generation__"
GIN_EMBEDDING = "__embedding__"
GIN_MATCHERS = "__matchers__"
GIN_COMPLETION_USAGE = "__completion-usage__"
GIN_DEBUGGER = "__debug__"
GIN_ECHO = "__echo__"
GIN_TOOL = "__tool__"
GIN_CLOSE = "__close__"
GIN_CHAR_SEQUENCES = "__char_sequences__"
GIN_COZE_WEBSDK = "__coze_websdk__"
GIN_CANCEL_FUNC = "__cancelFunc__"
GIN_CLAUDE_MESSAGES = "__claude_messages__"
GIN_THINK_REASON = "__think_reason__"


class RequestContext:
    """Holds the request, a value store and the response being written."""

    def __init__(
        self,
        method: str = "GET",
        path: str = "/",
        headers: Optional[Dict[str, str]] = None,
        body: bytes = b"",
        writer: Optional[Callable[[str], None]] = None,
    ) -> None:
        self.method = method
        self.path = path
        self.request_headers = {k.lower(): v for k, v in (headers or {}).items()}
        self.body = body
        self.values: Dict[str, Any] = {}
        self.status: Optional[int] = None
        self.response_headers: Dict[str, str] = {}
        self.chunks: List[str] = []
        self._writer = writer

    def header(self, name: str) -> str:
        """A request header, or an empty string."""
        return self.request_headers.get(name.lower(), "")

    def set(self, key: str, value: Any) -> None:
        self.values[key] = value

    def get(self, key: str, default: Any = None) -> Any:
        return self.values.get(key, default)

    def get_bool(self, key: str) -> bool:
        value = self.values.get(key)
        return value if isinstance(value, bool) else False

    def get_string(self, key: str) -> str:
        value = self.values.get(key)
        return value if isinstance(value, str) else ""

    def get_int(self, key: str) -> int:
        value = self.values.get(key)
        if isinstance(value, int) and not isinstance(value, bool):
            return value
        return 0

    def response_header(self, name: str) -> str:
        """A response header, looked up without regard to case."""
        lowered = name.lower()
        for key, value in self.response_headers.items():
            if key.lower() == lowered:
                return value
        return ""

    def set_header(self, name: str, value: str) -> None:
        lowered = name.lower()
        for key in list(self.response_headers):
            if key.lower() == lowered:
                del self.response_headers[key]
        self.response_headers[name] = value

    def write(self, data: Any) -> None:
        """Append text (or bytes) to the response body."""
        text = data.decode("utf-8") if isinstance(data, (bytes, bytearray)) else str(data)
        if self.status is None:
            self.status = 200
        self.chunks.append(text)
        if self._writer is not None:
            self._writer(text)

    def json(self, status: int, payload: Any) -> None:
        """Write ``payload`` as a JSON body with the given status."""
        self.status = status
        self.set_header("Content-Type", "application/json; charset=utf-8")
        self.write(json.dumps(payload, ensure_ascii=False, separators=(",", ":"), default=_json_default))

    @property
    def text(self) -> str:
        return "".join(self.chunks)


def get_completion(ctx: RequestContext) -> Completion:
    value = ctx.get(GIN_COMPLETION)
    return value if isinstance(value, Completion) else Completion()


def get_embedding(ctx: RequestContext) -> Embed:
    value = ctx.get(GIN_EMBEDDING)
    return value if isinstance(value, Embed) else Embed()


def get_generation(ctx: RequestContext) -> Generation:
    value = ctx.get(GIN_GENERATION)
    return value if isinstance(value, Generation) else Generation()


def get_matchers(ctx: RequestContext) -> list:
    value = ctx.get(GIN_MATCHERS)
    return value if isinstance(value, list) else []


def get_completion_usage(ctx: RequestContext) -> Optional[dict]:
    value = ctx.get(GIN_COMPLETION_USAGE)
    return value if isinstance(value, dict) else None


def get_tool_value(ctx: RequestContext) -> Keyv:
    """The tool settings of the request; disabled defaults when none are set."""
    value = ctx.get(GIN_TOOL)
    if isinstance(value, Keyv):
        return value
    if isinstance(value, dict):
        return Keyv(value)
    return Keyv({"id": "-1", "enabled": False, "tasks": False})


def is_coze_websdk(ctx: RequestContext) -> bool:
    return ctx.get_bool(GIN_COZE_WEBSDK)