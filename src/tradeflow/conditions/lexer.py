from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from tradeflow.core.exceptions import LexerError


class TokenType(str, Enum):
    NUMBER = "number"
    IDENTIFIER = "identifier"
    OPERATOR = "operator"
    LOGICAL = "logical"
    LPAREN = "lparen"
    RPAREN = "rparen"
    EOF = "eof"


COMPARISON_OPERATORS: tuple[str, ...] = (">=", "<=", "==", "!=", ">", "<")
LOGICAL_OPERATORS: tuple[str, ...] = ("AND", "OR")


@dataclass(frozen=True, slots=True)
class Token:
    type: TokenType
    value: str
    position: int


def _is_ident_start(ch: str) -> bool:
    return ch.isascii() and (ch.isalpha() or ch == "_")


def _is_ident_char(ch: str) -> bool:
    return ch.isascii() and (ch.isalnum() or ch in "_.")


def tokenize(expression: str) -> list[Token]:
    """Split a condition expression into tokens, terminated by an EOF token.

    Raises:
        LexerError: On a character that starts no token, or a malformed number.
    """
    tokens: list[Token] = []
    pos = 0
    n = len(expression)

    while pos < n:
        ch = expression[pos]

        if ch.isspace():
            pos += 1
            continue

        if ch.isdigit() or (ch == "-" and pos + 1 < n and expression[pos + 1].isdigit()):
            start = pos
            pos += 1
            while pos < n and (expression[pos].isdigit() or expression[pos] == "."):
                pos += 1
            text = expression[start:pos]
            try:
                float(text)
            except ValueError:
                raise LexerError(f"Malformed number: {text}", start) from None
            tokens.append(Token(TokenType.NUMBER, text, start))
            continue

        if _is_ident_start(ch):
            start = pos
            while pos < n and _is_ident_char(expression[pos]):
                pos += 1
            text = expression[start:pos]
            kind = TokenType.LOGICAL if text in LOGICAL_OPERATORS else TokenType.IDENTIFIER
            tokens.append(Token(kind, text, start))
            continue

        two = expression[pos : pos + 2]
        if two in COMPARISON_OPERATORS:
            tokens.append(Token(TokenType.OPERATOR, two, pos))
            pos += 2
            continue

        if ch in ("<", ">"):
            tokens.append(Token(TokenType.OPERATOR, ch, pos))
            pos += 1
            continue

        if ch == "(":
            tokens.append(Token(TokenType.LPAREN, ch, pos))
            pos += 1
            continue

        if ch == ")":
            tokens.append(Token(TokenType.RPAREN, ch, pos))
            pos += 1
            continue

        raise LexerError(f"Unexpected character: {ch!r}", pos)

    tokens.append(Token(TokenType.EOF, "", pos))
    return tokens
