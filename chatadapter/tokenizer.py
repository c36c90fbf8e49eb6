"""Tag-aware tokenizer that lifts ``<name attr=...>...</name>`` elements out of free text."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Callable, Iterator, List, Optional, Sequence, Union

EOF = "EOF"
STR = "str"
IDENT = "ident"
SLASH = "sL"
LT = "Lt"
RT = "Rt"

_NUL = "\0"
_INT_RE = re.compile(r"[+-]?[0-9]+")
_INT32_MIN = -(2**31)
_INT32_MAX = 2**31 - 1
_TRUE_WORDS = frozenset({"1", "t", "T", "TRUE", "true", "True"})
_FALSE_WORDS = frozenset({"0", "f", "F", "FALSE", "false", "False"})


class Kind(IntEnum):
    """Kind of a parsed element."""

    STR = 0
    IDENT = 1


@dataclass(frozen=True)
class Token:
    """A lexical token: its kind, its text and the index of its last character."""

    kind: str
    literal: str
    pos: int


def _is_ascii_letter(ch: str) -> bool:
    return "a" <= ch <= "z" or "A" <= ch <= "Z"


def _is_digit(ch: str) -> bool:
    return "0" <= ch <= "9"


def _is_tag_char(ch: str) -> bool:
    return _is_ascii_letter(ch) or _is_digit(ch) or ch == "@" or ch == "_"


class Lexer:
    """Splits text into angle-bracket, slash, identifier and plain-text tokens."""

    def __init__(self, text: str) -> None:
        self._input = text
        self.pos = -1
        self.ch = _NUL

    def __iter__(self) -> Iterator[Token]:
        while True:
            tok = self.next_token()
            yield tok
            if tok.kind == EOF:
                return

    def next_token(self) -> Token:
        """Read and return the next token."""
        self._read_char()
        ch = self.ch
        if ch == _NUL:
            return self._new_token(EOF, "")
        if ch == "<":
            return self._new_token(LT, "<")
        if ch == ">":
            return self._new_token(RT, ">")
        if ch == "/":
            return self._new_token(SLASH, "/")

        literal = self._read_identifier()
        if literal:
            return self._new_token(IDENT, literal)
        return self._new_token(STR, self._read_string())

    def _position(self, pos: int) -> None:
        if not self._input:
            self.pos = -1
            self.ch = _NUL
            return
        pos = min(max(pos, 0), len(self._input) - 1)
        self.pos = pos
        self.ch = self._input[pos]

    def _new_token(self, kind: str, literal: str) -> Token:
        return Token(kind, literal, self.pos)

    def _read_char(self) -> None:
        self.pos += 1
        self.ch = self._input[self.pos] if self.pos < len(self._input) else _NUL

    def _peek_char(self) -> str:
        nxt = self.pos + 1
        return self._input[nxt] if nxt < len(self._input) else _NUL

    def _read_identifier(self) -> str:
        text = self._input
        start = self.pos
        if start == 0:
            return ""
        after_open = text[start - 1] == "<" or (
            start > 1 and text[start - 1] == "/" and text[start - 2] == "<"
        )
        if not after_open:
            return ""

        while _is_tag_char(self.ch):
            self._read_char()
        # <ident>, <ident/>, <ident attr="...">
        if self.ch not in (" ", "/", ">"):
            self.pos = start
            self.ch = text[start]
            return ""
        self._position(self.pos - 1)
        return text[start : self.pos + 1]

    def _read_string(self) -> str:
        start = self.pos
        while True:
            peek = self._peek_char()
            if peek == "\\":
                self._read_char()
                if self._peek_char() in ("\\", ">"):
                    self._read_char()
            elif peek in (_NUL, "<", ">", "/"):
                return self._input[start : self.pos + 1]
            else:
                self._read_char()


@dataclass
class StrElem:
    """A run of plain text."""

    content: str
    kind: Kind = Kind.STR

    def __str__(self) -> str:
        return self.content


@dataclass
class NodeElem:
    """A recognised tag with its raw attributes and inner text."""

    expr: str
    attributes: dict = field(default_factory=dict)
    content: str = ""
    count: int = -1
    kind: Kind = Kind.IDENT

    def __str__(self) -> str:
        attr = ""
        for key, value in self.attributes.items():
            if attr == "":
                attr += " "
            attr += f"{key}={value}"
        if self.content == "":
            return f"<{self.expr}{attr} />"
        return f"<{self.expr}{attr}>{self.content}</{self.expr}>"

    def get_str(self, key: str) -> Optional[str]:
        """Attribute value with surrounding double quotes removed, or None if absent."""
        value = self.attributes.get(key)
        if value is None:
            return None
        if len(value) < 2 or value[0] != '"' or value[-1] != '"':
            return value
        return value[1:-1]

    def get_int(self, key: str) -> Optional[int]:
        """Attribute as a 32-bit decimal integer, or None if absent or invalid."""
        value = self.attributes.get(key)
        if value is None or not _INT_RE.fullmatch(value):
            return None
        number = int(value)
        if not _INT32_MIN <= number <= _INT32_MAX:
            return None
        return number

    def get_bool(self, key: str) -> Optional[bool]:
        """Attribute as a boolean; a bare flag counts as true. None if absent or invalid."""
        value = self.attributes.get(key)
        if value is None:
            return None
        if value == "":
            return True
        if value in _TRUE_WORDS:
            return True
        if value in _FALSE_WORDS:
            return False
        return None


Elem = Union[StrElem, NodeElem]
Schema = Union[str, Callable[[str], bool]]


def _schema_matches(schema: object, name: str) -> bool:
    if isinstance(schema, str):
        return schema == name
    if callable(schema):
        return bool(schema(name))
    return False


def _join(tokens: Sequence[Token]) -> str:
    return "".join(tok.literal for tok in tokens)


def _count_identifier(ident: str, tokens: Sequence[Token]) -> int:
    count = 0
    length = len(tokens)
    i = 0
    while i < length - 2:
        if tokens[i].kind == LT and tokens[i + 1].kind == IDENT and tokens[i + 1].literal == ident:
            third = tokens[i + 2].kind
            if third == RT:
                count += 1
                i += 3
                continue
            if third == SLASH:
                if i + 3 >= length:
                    return count
                if tokens[i + 3].kind == RT:
                    count += 1
                    i += 4
                    continue
        i += 1
    return count


def _validate_close(ident: str, tokens: Sequence[Token]) -> bool:
    return (
        len(tokens) >= 4
        and tokens[0].kind == LT
        and tokens[1].kind == SLASH
        and tokens[2].kind == IDENT
        and tokens[2].literal == ident
        and tokens[3].kind == RT
    )


class Parser:
    """Parses text into plain-text runs and elements whose tag names match a schema."""

    def __init__(self, *schemas: Schema) -> None:
        self._schemas = schemas
        self._lex: Optional[Lexer] = None
        self._curr: Optional[Token] = None
        self._peek: Optional[Token] = None

    def parse(self, content: str) -> List[Elem]:
        """Split ``content`` into a list of elements."""
        self._lex = Lexer(content)
        self._curr = None
        self._peek = None

        elems: List[Elem] = []
        while not self._curr_is(EOF):
            if self._curr_is(LT):
                elem = self._parse_elem()
                if elem is not None:
                    elems.append(elem)
                    self._next_token()
                    continue
            elems.append(StrElem(self._curr.literal))
            self._next_token()
        return elems

    def _seek(self, curr: Optional[Token], peek: Token) -> None:
        self._lex._position(peek.pos)
        self._curr = curr
        self._peek = peek

    def _next_token(self) -> None:
        self._curr = self._peek
        self._peek = self._lex.next_token()

    def _curr_is(self, kind: str) -> bool:
        if self._curr is None:
            self._next_token()
        if self._curr is None:
            self._next_token()
        return self._curr.kind == kind

    def _peek_is(self, kind: str) -> bool:
        if self._peek is None:
            self._next_token()
        return self._peek.kind == kind

    def _parse_elem(self) -> Optional[NodeElem]:
        if not self._curr_is(LT) or not self._peek_is(IDENT):
            return None
        if not any(_schema_matches(s, self._peek.literal) for s in self._schemas):
            return None

        curr, peek = self._curr, self._peek
        tokens = self._each_token_of(RT)
        if tokens is None:
            return None

        ident = tokens[0].literal
        elem = NodeElem(expr=ident)
        # self-closing <ident ... />
        if len(tokens) > 2 and tokens[-2].kind == SLASH:
            elem.attributes = parse_attributes(_join(tokens[1:-2]).strip())
            return elem
        elem.attributes = parse_attributes(_join(tokens[1:-1]).strip())

        cache: List[Token] = []
        while True:
            chunk = self._each_token_of(LT, SLASH, IDENT, RT)
            if not chunk:
                if elem.count == -1:
                    self._seek(curr, peek)
                    return None
                elem.content = _join(cache[:-4])
                return elem

            cache.extend(chunk)
            if not _validate_close(ident, chunk[-4:]):
                continue

            count = _count_identifier(ident, chunk)
            if count > 0 and elem.count == -1:
                elem.count = 0
            elem.count += count
            if elem.count > 0:
                elem.count -= 1
                continue

            elem.content = _join(cache[:-4])
            return elem

    def _each_token_of(self, *kinds: str) -> Optional[List[Token]]:
        if not kinds:
            return None

        curr, peek = self._curr, self._peek
        tokens: List[Token] = []
        while True:
            self._next_token()
            if self._peek_is(EOF):
                self._seek(curr, peek)
                return None

            tokens.append(self._curr)
            if not self._peek_is(kinds[0]):
                continue

            self._next_token()
            for kind in kinds[1:]:
                tokens.append(self._curr)
                if not self._peek_is(kind):
                    break
                self._next_token()
            else:
                tokens.append(self._curr)
                return tokens


class _AttrScanner:
    """Cursor over an attribute string."""

    def __init__(self, text: str) -> None:
        self.text = text
        self.length = len(text)
        self.pos = -1

    def read_char(self) -> str:
        self.pos += 1
        if self.pos >= self.length:
            self.pos = self.length - 1
            return _NUL
        return self.text[self.pos]

    def skip_whitespace(self) -> None:
        while True:
            ch = self.read_char()
            if ch == _NUL:
                return
            if ch not in ("\t", "\n", "\r", " "):
                self.pos -= 1
                return

    def _read_run(self, accept: Callable[[str], bool], step_back: bool) -> str:
        start = self.pos
        found = False
        while True:
            ch = self.read_char()
            if ch == _NUL:
                break
            if accept(ch):
                found = True
                continue
            if step_back:
                self.pos -= 1
            break
        if not found:
            self.pos = start
            return ""
        return self.text[start + 1 : self.pos + 1]

    def read_identifier(self) -> str:
        self.skip_whitespace()
        return self._read_run(
            lambda ch: _is_ascii_letter(ch) or _is_digit(ch) or ch == "_", True
        )

    def read_digit(self) -> str:
        return self._read_run(_is_digit, True)

    def read_letter(self) -> str:
        return self._read_run(_is_ascii_letter, False)

    def read_until(self, *chars: str) -> str:
        if not chars:
            return ""
        start = self.pos
        while True:
            ch = self.read_char()
            if ch == _NUL:
                return ""
            if ch == "\\":
                self.read_char()
                continue
            if ch != chars[0]:
                continue
            for _ in chars[1:]:
                self.read_char()
            break
        return self.text[max(start, 0) : self.pos + 1]


def parse_attributes(content: str) -> dict:
    """Parse ``key="value" key=123 key=word flag`` into a dict of raw values."""
    opts: dict = {}
    if not content:
        return opts

    scanner = _AttrScanner(content)
    while True:
        ident = scanner.read_identifier()
        if not ident:
            return opts

        ch = scanner.read_char()
        if ch != "=":
            # bare boolean flag
            if ch in (" ", _NUL):
                opts[ident] = ""
                continue
            return opts

        ch = scanner.read_char()
        if ch == '"':
            literal = scanner.read_until('"', " ")
            if not literal:
                return opts
            opts[ident] = literal
            continue
        scanner.pos -= 1

        digit = scanner.read_digit()
        if digit:
            opts[ident] = digit
            continue

        letter = scanner.read_letter()
        if letter:
            opts[ident] = letter
            continue

        return opts


def join_string(elems: Sequence[Elem]) -> str:
    """Concatenate the text form of every element."""
    return "".join(str(elem) for elem in elems)


def join_tokenizer(elems: Sequence[Elem]) -> str:
    """Concatenate elements, each wrapped in back-ticks, for debugging."""
    return "".join(" `" + str(elem) + "` " for elem in elems)