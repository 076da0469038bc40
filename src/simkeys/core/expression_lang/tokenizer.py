"""
Tokenizer for the entity expression language.

Converts an expression string into a sequence of typed tokens. Text between
``#`` characters is a comment and is skipped.
"""

from __future__ import annotations

from enum import StrEnum, auto

from simkeys.core.errors import ExpError


class TokenKind(StrEnum):
    """Token types for the expression language."""

    NUMBER = auto()
    IDENT = auto()  # function names, 'this', 'null'
    SYMBOL = auto()  # operators and punctuation
    SQUARE = auto()  # [EntityName] or [unit]
    STRING = auto()  # "text"

    # End of input
    EOF = auto()


class Token:
    """A single token from the expression tokenizer."""

    __slots__ = ("kind", "value", "pos")

    def __init__(self, kind: TokenKind, value: str, pos: int) -> None:
        self.kind = kind
        self.value = value
        self.pos = pos

    def is_symbol(self, value: str) -> bool:
        return self.kind == TokenKind.SYMBOL and self.value == value

    def __repr__(self) -> str:
        return f"Token({self.kind}, {self.value!r}, pos={self.pos})"


_LONG_SYMBOLS = ("==", "!=", "<=", ">=", "&&", "||")
_SYMBOLS = frozenset("+-*/%^<>!?:.,(){}")


def tokenize(source: str) -> list[Token]:
    """Tokenize an expression string.

    Raises:
        ExpError: On unterminated strings, brackets or comments, nested
            square brackets, or characters outside the language.
    """
    tokens: list[Token] = []
    i = 0
    length = len(source)

    while i < length:
        ch = source[i]

        if ch.isspace():
            i += 1
            continue

        # Comments: # ... #
        if ch == "#":
            end = source.find("#", i + 1)
            if end == -1:
                raise ExpError("Unterminated comment", source, i)
            i = end + 1
            continue

        if ch.isdigit() or (ch == "." and i + 1 < length and source[i + 1].isdigit()):
            i = _read_number(source, i, tokens)
            continue

        if ch.isalpha() or ch == "_":
            start = i
            while i < length and (source[i].isalnum() or source[i] == "_"):
                i += 1
            tokens.append(Token(TokenKind.IDENT, source[start:i], start))
            continue

        if ch == "[":
            start = i
            i += 1
            while i < length and source[i] != "]":
                if source[i] == "[":
                    raise ExpError("Nested square brackets are not allowed", source, i)
                i += 1
            if i >= length:
                raise ExpError("Unterminated square bracket", source, start)
            tokens.append(Token(TokenKind.SQUARE, source[start + 1 : i].strip(), start))
            i += 1
            continue

        if ch == '"':
            start = i
            end = source.find('"', i + 1)
            if end == -1:
                raise ExpError("Unterminated string literal", source, start)
            tokens.append(Token(TokenKind.STRING, source[start + 1 : end], start))
            i = end + 1
            continue

        two = source[i : i + 2]
        if two in _LONG_SYMBOLS:
            tokens.append(Token(TokenKind.SYMBOL, two, i))
            i += 2
            continue

        if ch in _SYMBOLS:
            tokens.append(Token(TokenKind.SYMBOL, ch, i))
            i += 1
            continue

        raise ExpError(f"Unexpected character: {ch!r}", source, i)

    tokens.append(Token(TokenKind.EOF, "", length))
    return tokens


def _read_number(source: str, start: int, tokens: list[Token]) -> int:
    """Read an integer, decimal or exponent-form number starting at ``start``."""
    i = start
    length = len(source)
    while i < length and source[i].isdigit():
        i += 1
    if i < length and source[i] == ".":
        i += 1
        while i < length and source[i].isdigit():
            i += 1
    if i < length and source[i] in "eE":
        j = i + 1
        if j < length and source[j] in "+-":
            j += 1
        if j < length and source[j].isdigit():
            i = j
            while i < length and source[i].isdigit():
                i += 1
        else:
            raise ExpError("Malformed number exponent", source, i)
    tokens.append(Token(TokenKind.NUMBER, source[start:i], start))
    return i
