"""Request and response data shapes of the OpenAI-compatible API."""

from __future__ import annotations

import dataclasses
import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple


def _same(left: Any, right: Any) -> bool:
    if isinstance(left, bool) or isinstance(right, bool):
        return type(left) is type(right) and left == right
    return left == right


def _json_default(obj: Any) -> Any:
    to_dict = getattr(obj, "to_dict", None)
    if callable(to_dict):
        return to_dict()
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        return dataclasses.asdict(obj)
    raise TypeError(f"{type(obj).__name__} is not JSON serialisable")


class Keyv(dict):
    """A string-keyed dict with typed, forgiving accessors."""

    def get_keyv(self, key: str) -> "Keyv":
        """The nested object under ``key``; an empty Keyv if it is not an object."""
        value = dict.get(self, key)
        if isinstance(value, Keyv):
            return value
        if isinstance(value, dict):
            wrapped = Keyv(value)
            self[key] = wrapped
            return wrapped
        return Keyv()

    def get_slice(self, key: str) -> list:
        value = dict.get(self, key)
        return value if isinstance(value, list) else []

    def get_string(self, key: str) -> str:
        value = dict.get(self, key)
        return value if isinstance(value, str) else ""

    def get_int(self, key: str) -> int:
        value = dict.get(self, key)
        if isinstance(value, int) and not isinstance(value, bool):
            return value
        return 0

    def is_value(self, key: str, value: Any) -> bool:
        """True if ``key`` is present and holds exactly ``value``."""
        return key in self and _same(self[key], value)

    def is_in(self, key: str, *args: Any) -> bool:
        """True if ``key`` is present and holds one of ``args``."""
        return key in self and any(_same(self[key], value) for value in args)

    def is_string(self, key: str) -> bool:
        return isinstance(dict.get(self, key), str)

    def is_slice(self, key: str) -> bool:
        return isinstance(dict.get(self, key), list)

    def is_empty(self, key: str) -> bool:
        """True unless ``key`` holds a string with non-blank text (non-strings count as empty)."""
        if key in self and isinstance(self[key], str):
            return self[key].strip() == ""
        return True

    def clone(self) -> "Keyv":
        return Keyv(self)

    def to_json(self) -> str:
        return json.dumps(
            self,
            sort_keys=True,
            ensure_ascii=False,
            separators=(",", ":"),
            default=_json_default,
        )

    def __str__(self) -> str:
        return self.to_json()


def _typed(data: dict, key: str, types: Tuple[type, ...], default: Any) -> Any:
    value = data.get(key)
    if value is None:
        return default
    if isinstance(value, bool) and bool not in types:
        raise TypeError(f"field '{key}' has the wrong type")
    if not isinstance(value, types):
        raise TypeError(f"field '{key}' has the wrong type")
    return value


def _objects(data: dict, key: str) -> List[Keyv]:
    value = data.get(key)
    if value is None:
        return []
    if not isinstance(value, list) or not all(isinstance(item, dict) for item in value):
        raise TypeError(f"field '{key}' must be a list of objects")
    return [Keyv(item) for item in value]


def _require_object(data: Any, what: str) -> dict:
    if not isinstance(data, dict):
        raise TypeError(f"{what} must be a JSON object")
    return data


@dataclass
class Model:
    """An entry of the model list."""

    id: str
    object: str = "model"
    created: int = 0
    owned_by: str = ""

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "object": self.object,
            "created": self.created,
            "owned_by": self.owned_by,
        }


@dataclass
class Completion:
    """A chat completion request."""

    messages: List[Keyv] = field(default_factory=list)
    system: str = ""
    tools: List[Keyv] = field(default_factory=list)
    model: str = ""
    max_tokens: int = 0
    stop_sequences: List[str] = field(default_factory=list)
    temperature: float = 0.0
    top_k: int = 0
    top_p: float = 0.0
    stream: bool = False
    tool_choice: Any = None

    @classmethod
    def from_dict(cls, data: Any) -> "Completion":
        data = _require_object(data, "completion")
        stop = data.get("stop")
        if stop is None:
            stop = []
        elif not isinstance(stop, list) or not all(isinstance(s, str) for s in stop):
            raise TypeError("field 'stop' must be a list of strings")
        return cls(
            messages=_objects(data, "messages"),
            system=_typed(data, "system", (str,), ""),
            tools=_objects(data, "tools"),
            model=_typed(data, "model", (str,), ""),
            max_tokens=_typed(data, "max_tokens", (int,), 0),
            stop_sequences=list(stop),
            temperature=float(_typed(data, "temperature", (int, float), 0.0)),
            top_k=_typed(data, "top_k", (int,), 0),
            top_p=float(_typed(data, "top_p", (int, float), 0.0)),
            stream=_typed(data, "stream", (bool,), False),
            tool_choice=data.get("tool_choice"),
        )

    def to_dict(self) -> dict:
        out: Dict[str, Any] = {}
        if self.system:
            out["system"] = self.system
        out["messages"] = [dict(m) for m in self.messages]
        if self.tools:
            out["tools"] = [dict(t) for t in self.tools]
        if self.model:
            out["model"] = self.model
        out["max_tokens"] = self.max_tokens
        if self.stop_sequences:
            out["stop"] = list(self.stop_sequences)
        out["temperature"] = self.temperature
        if self.top_k:
            out["top_k"] = self.top_k
        if self.top_p:
            out["top_p"] = self.top_p
        if self.stream:
            out["stream"] = self.stream
        if self.tool_choice is not None:
            out["tool_choice"] = self.tool_choice
        return out


@dataclass
class Generation:
    """An image generation request."""

    model: str = ""
    message: str = ""
    n: int = 0
    size: str = ""
    style: str = ""
    quality: str = ""

    @classmethod
    def from_dict(cls, data: Any) -> "Generation":
        data = _require_object(data, "generation")
        return cls(
            model=_typed(data, "model", (str,), ""),
            message=_typed(data, "prompt", (str,), ""),
            n=_typed(data, "n", (int,), 0),
            size=_typed(data, "size", (str,), ""),
            style=_typed(data, "style", (str,), ""),
            quality=_typed(data, "quality", (str,), ""),
        )


@dataclass
class Embed:
    """An embedding request."""

    input: Any = None
    model: str = ""
    encoding_format: str = ""
    dimensions: int = 0
    user: str = ""

    @classmethod
    def from_dict(cls, data: Any) -> "Embed":
        data = _require_object(data, "embedding")
        return cls(
            input=data.get("input"),
            model=_typed(data, "model", (str,), ""),
            encoding_format=_typed(data, "encoding_format", (str,), ""),
            dimensions=_typed(data, "dimensions", (int,), 0),
            user=_typed(data, "user", (str,), ""),
        )


_MESSAGE_ORDER = ("role", "content", "reasoning_content", "tool_calls")
_DELTA_ORDER = ("type",) + _MESSAGE_ORDER


def _compact(values: dict, order: Tuple[str, ...]) -> dict:
    def keep(value: Any) -> bool:
        return value is not None and value != "" and value != []

    out = {key: values[key] for key in order if key in values and keep(values[key])}
    for key, value in values.items():
        if key not in out and key not in order and keep(value):
            out[key] = value
    return out


@dataclass
class Choice:
    """One choice of a response; ``message`` for whole replies, ``delta`` for chunks."""

    index: int = 0
    message: Optional[dict] = None
    delta: Optional[dict] = None
    finish_reason: Optional[str] = None

    def to_dict(self) -> dict:
        out: Dict[str, Any] = {"index": self.index}
        if self.message is not None:
            out["message"] = _compact(self.message, _MESSAGE_ORDER)
        if self.delta is not None:
            out["delta"] = _compact(self.delta, _DELTA_ORDER)
        out["finish_reason"] = self.finish_reason
        return out


@dataclass
class Response:
    """A chat completion response or chunk."""

    id: str = ""
    object: str = ""
    created: int = 0
    model: str = ""
    choices: List[Choice] = field(default_factory=list)
    error: Optional[dict] = None
    usage: Optional[dict] = None

    def to_dict(self) -> dict:
        out: Dict[str, Any] = {
            "id": self.id,
            "object": self.object,
            "created": self.created,
            "model": self.model,
            "choices": [choice.to_dict() for choice in self.choices],
        }
        if self.error is not None:
            out["error"] = {
                "message": self.error.get("message", ""),
                "type": self.error.get("type", ""),
            }
        if self.usage:
            out["usage"] = self.usage
        return out

    @classmethod
    def from_dict(cls, data: Any) -> "Response":
        data = _require_object(data, "response")
        choices = []
        for raw in data.get("choices") or []:
            raw = _require_object(raw, "choice")
            choices.append(
                Choice(
                    index=_typed(raw, "index", (int,), 0),
                    message=raw.get("message"),
                    delta=raw.get("delta"),
                    finish_reason=raw.get("finish_reason"),
                )
            )
        error = data.get("error")
        if error is not None:
            error = _require_object(error, "error")
        return cls(
            id=_typed(data, "id", (str,), ""),
            object=_typed(data, "object", (str,), ""),
            created=_typed(data, "created", (int,), 0),
            model=_typed(data, "model", (str,), ""),
            choices=choices,
            error=error,
            usage=data.get("usage"),
        )