"""Token counts for prompts and replies, used for usage reporting."""

from __future__ import annotations

import math
import re
from typing import Dict

# Byte-pair encoders split text into words, numbers, punctuation runs and
# whitespace before merging; counting is done over the same pieces.
_PIECE_RE = re.compile(
    r"'s|'t|'re|'ve|'m|'ll|'d"
    r"| ?[^\W\d_]+"
    r"| ?\d+"
    r"| ?(?:[^\s\w]|_)+"
    r"|\s+(?!\S)"
    r"|\s+"
)


def _piece_tokens(piece: str) -> int:
    body = piece[1:] if len(piece) > 1 and piece[0] == " " else piece
    if body.isspace():
        return 1
    if not body.isascii():
        return max(1, math.ceil(len(body.encode("utf-8")) / 2))
    if body.isdigit():
        return max(1, math.ceil(len(body) / 3))
    if body.isalpha() or body.startswith("'"):
        return max(1, math.ceil(len(body) / 4))
    return max(1, math.ceil(len(body) / 2))


def calc_tokens(content: str) -> int:
    """Estimate the number of GPT tokens in ``content``."""
    if not content:
        return 0
    return sum(_piece_tokens(piece) for piece in _PIECE_RE.findall(content))


def calc_usage_tokens(content: str, previous_tokens: int) -> Dict[str, int]:
    """Usage block for a reply ``content`` that followed a prompt of ``previous_tokens``."""
    tokens = calc_tokens(content)
    return {
        "completion_tokens": tokens,
        "prompt_tokens": previous_tokens,
        "total_tokens": previous_tokens + tokens,
    }