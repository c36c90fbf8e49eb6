"""Splitting trailing tool exchanges off a conversation."""

from __future__ import annotations

from typing import List

from .model import Completion, Keyv


def extract_tool_messages(completion: Completion) -> List[Keyv]:
    """Remove the trailing tool results and tool calls from ``completion``; return them newest first."""
    tool_messages: List[Keyv] = []
    messages = completion.messages
    for i in range(len(messages) - 1, -1, -1):
        message = messages[i]
        if message.is_value("role", "tool") or (
            message.is_value("role", "assistant") and "tool_calls" in message
        ):
            tool_messages.append(message)
            continue
        completion.messages = messages[: i + 1]
        break
    return tool_messages