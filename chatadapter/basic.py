"""Small helpers: random identifiers and content hashes."""

from __future__ import annotations

import hashlib
import random

ALPHABET = "abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ1234567890"


def random_hex(n: int) -> str:
    """A random string of ``n`` ASCII letters and digits."""
    return "".join(random.choices(ALPHABET, k=n))


def calc_hex(text: str) -> str:
    """SHA-1 hex digest of the UTF-8 text."""
    return hashlib.sha1(text.encode("utf-8")).hexdigest()