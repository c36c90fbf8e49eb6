"""Streaming matchers that watch generated text for markers and rewrite or stop it."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from enum import IntEnum
from typing import Callable, List, Optional, Sequence, Tuple

from .context import GIN_THINK_REASON, RequestContext, get_completion
from .inited import Environment, add_initialized
from .response import EOF
from .roles import convert_role, deepseek_end, is_deepseek

log = logging.getLogger(__name__)


class MatchState(IntEnum):
    """Outcome of a matcher: run the next one, keep buffering, or stop here."""

    DEFAULT = 0
    MATCHING = 1
    MATCHED = 2


Handler = Callable[[int, str], Tuple[int, str, str]]
Callback = Callable[[int, str], None]


@dataclass
class MatcherConfig:
    """One configured matcher: a trigger, an optional end marker and a rewrite rule."""

    match: str = ""
    over: str = ""
    notice: str = ""
    regex: str = ""
    think_reason: bool = False
    max: int = 0

    @classmethod
    def from_dict(cls, data: dict) -> "MatcherConfig":
        return cls(
            match=str(data.get("match") or ""),
            over=str(data.get("over") or ""),
            notice=str(data.get("notice") or ""),
            regex=str(data.get("regex") or ""),
            think_reason=bool(data.get("think_reason") or False),
            max=int(data.get("max") or 0),
        )


class SymbolMatcher:
    """Looks for ``find`` in the text stream and hands the text to ``handler`` once found."""

    def __init__(self, find: str, handler: Optional[Handler] = None) -> None:
        self.find = find
        self.handler = handler
        self.cache = ""

    def match(self, content: str, over: bool) -> Tuple[int, str]:
        """Feed the next piece of text; returns the state and the text to emit."""
        content = self.cache + content
        find = self.find
        state = MatchState.DEFAULT
        index = 0

        if find == "":
            state = MatchState.MATCHED
        else:
            pos = 0
            idx = -1
            for index, ch in enumerate(content):
                if pos == len(find):
                    if content.endswith(find):
                        state = MatchState.MATCHED
                    if self.handler is not None:
                        break
                    continue
                if find[pos] != ch:
                    pos = 0
                    idx = -1
                    state = MatchState.DEFAULT
                    continue
                if idx == -1 or idx == index - 1:
                    pos += 1
                    idx = index
                    state = MatchState.MATCHING

        if state == MatchState.DEFAULT:
            self.cache = ""
            return state, content

        if state == MatchState.MATCHING:
            self.cache = content
            if find in content:
                state = MatchState.MATCHED
            else:
                return state, ""

        if self.handler is None:
            self.cache = ""
            return state, content

        state, leave_cache, result = self.handler(index, content)
        if state == MatchState.MATCHED:
            self.cache = leave_cache
            return state, result
        if state == MatchState.MATCHING:
            if over:
                return MatchState.DEFAULT, content
            self.cache = result
            return state, ""
        return state, content


_global_matchers: Optional[Callable[[RequestContext, Callback], List[SymbolMatcher]]] = None
_CONFIG_RE = re.compile(r'"(.+)" *: *"(.*)"')
_REPL_RE = re.compile(r"\$(\$|\d+|\{\w+\})")


def _convert_replacement(text: str) -> str:
    escaped = text.replace("\\", "\\\\")

    def sub(m: "re.Match[str]") -> str:
        token = m.group(1)
        if token == "$":
            return "$"
        if token.startswith("{"):
            return "\\g<" + token[1:-1] + ">"
        return "\\g<" + token + ">"

    return _REPL_RE.sub(sub, escaped)


def _build(config: MatcherConfig, position: int, ctx: RequestContext, callback: Callback) -> Optional[SymbolMatcher]:
    if config.regex == "":
        log.error("no regular processing is configured: matcher[%d].regex", position)
        return None
    found = _CONFIG_RE.search(config.regex)
    if found is None:
        log.error("the format has not been written correctly: matcher[%d].regex", position)
        return None
    pattern, replacement = found.group(1), _convert_replacement(found.group(2))
    try:
        compiled = re.compile(pattern)
    except re.error as exc:
        log.error("the format has not been written correctly: matcher[%d].regex ==> %s", position, exc)
        return None

    max_len = config.max or 5
    over = config.over
    noticed = [False]
    matcher = SymbolMatcher(config.match)

    def handler(index: int, content: str) -> Tuple[int, str, str]:
        if not noticed[0]:
            noticed[0] = True
            if config.notice:
                callback(0, config.notice)

        cache = ""
        if over:
            if over not in content:
                return MatchState.MATCHING, "", content
            cut = content.rfind(over) + len(over)
            cache = content[cut:]
            content = content[:cut]
        elif index + max_len > len(content) - 1:
            return MatchState.MATCHING, "", content

        log.info("execute matcher[%s] content:\n%s", matcher.find, content)
        try:
            result = compiled.sub(replacement, content, count=1)
        except (re.error, IndexError) as exc:
            log.warning("compile failed: %s %s", pattern, exc)
            return MatchState.MATCHED, cache, content

        if config.think_reason and content != "":
            ctx.set(GIN_THINK_REASON, result)
            callback(1, result)
            return MatchState.MATCHED, cache, ""
        return MatchState.MATCHED, cache, result

    matcher.handler = handler
    return matcher


def init_matchers(configs: Sequence[MatcherConfig]) -> None:
    """Install the configured matchers used for every request; empty clears them."""
    global _global_matchers
    configs = list(configs)
    if not configs:
        _global_matchers = None
        return

    def factory(ctx: RequestContext, callback: Callback) -> List[SymbolMatcher]:
        built = (_build(cfg, i, ctx, callback) for i, cfg in enumerate(configs))
        return [m for m in built if m is not None]

    _global_matchers = factory


@add_initialized
def _load_matchers(env: Environment) -> None:
    raw = env.get("matcher")
    if raw is None:
        return
    if not isinstance(raw, list) or not all(isinstance(item, dict) for item in raw):
        raise ValueError("'matcher' must be a list of objects")
    if raw:
        init_matchers([MatcherConfig.from_dict(item) for item in raw])


def new_matcher(find: str, handler: Optional[Handler]) -> SymbolMatcher:
    return SymbolMatcher(find, handler)


def _new_cancel(ctx: RequestContext) -> List[SymbolMatcher]:
    user_role, _ = convert_role(ctx, "user")
    system_role, _ = convert_role(ctx, "system")
    assistant_role, _ = convert_role(ctx, "assistant")
    assistant_marker = assistant_role.strip()

    completion = get_completion(ctx)
    sequences = list(completion.stop_sequences)
    if is_deepseek(completion.model):
        sequences.append(deepseek_end("assistant").strip())

    once = [True]
    matchers: List[SymbolMatcher] = []
    for raw in sequences + [user_role, system_role, assistant_role]:
        marker = raw.strip()
        if marker == "":
            continue

        def handler(index: int, content: str, marker: str = marker) -> Tuple[int, str, str]:
            if once[0] and marker == assistant_marker:
                once[0] = False
                return MatchState.MATCHED, "", content.replace(marker, "")
            log.info("matched block [%s], will response stop ...", marker)
            return MatchState.MATCHED, "", EOF

        matchers.append(SymbolMatcher(marker, handler))
    return matchers


def new_matchers(ctx: RequestContext, callback: Callback) -> List[SymbolMatcher]:
    """Configured matchers followed by the stop-sequence and role-marker matchers."""
    matchers: List[SymbolMatcher] = []
    if _global_matchers is not None:
        matchers.extend(_global_matchers(ctx, callback))
    matchers.extend(_new_cancel(ctx))
    return matchers


def exec_matchers(matchers: Sequence[SymbolMatcher], raw: str, done: bool) -> str:
    """Run matchers in order until one does not pass the text on."""
    for matcher in matchers:
        state, raw = matcher.match(raw, done)
        if state != MatchState.DEFAULT:
            break
    return raw