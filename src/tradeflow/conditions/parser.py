"""Recursive-descent parser for condition expressions.

Grammar (lowest precedence first)::

    expr    := or
    or      := and ("OR" and)*
    and     := cmp ("AND" cmp)*
    cmp     := primary (OP primary)?
    primary := IDENT | NUMBER | "(" expr ")"
"""

from __future__ import annotations

from dataclasses import dataclass

from tradeflow.conditions.lexer import Token, TokenType
from tradeflow.core.exceptions import ParserError


@dataclass(frozen=True, slots=True)
class Number:
    value: float


@dataclass(frozen=True, slots=True)
class Identifier:
    name: str


@dataclass(frozen=True, slots=True)
class Comparison:
    operator: str
    left: Expr
    right: Expr


@dataclass(frozen=True, slots=True)
class Logical:
    operator: str
    left: Expr
    right: Expr


Expr = Number | Identifier | Comparison | Logical


class Parser:
    def __init__(self, tokens: list[Token]):
        self.tokens = tokens
        self.pos = 0

    def parse(self) -> Expr:
        if self._at_end():
            raise ParserError("Empty expression", self._current().position)
        result = self._or()
        if not self._at_end():
            tok = self._current()
            raise ParserError(f"Unexpected token: {tok.value}", tok.position)
        return result

    def _or(self) -> Expr:
        left = self._and()
        while self._match(TokenType.LOGICAL, "OR"):
            left = Logical("OR", left, self._and())
        return left

    def _and(self) -> Expr:
        left = self._comparison()
        while self._match(TokenType.LOGICAL, "AND"):
            left = Logical("AND", left, self._comparison())
        return left

    def _comparison(self) -> Expr:
        left = self._primary()
        if self._check(TokenType.OPERATOR):
            operator = self._advance().value
            return Comparison(operator, left, self._primary())
        return left

    def _primary(self) -> Expr:
        if self._check(TokenType.NUMBER):
            return Number(float(self._advance().value))

        if self._check(TokenType.IDENTIFIER):
            return Identifier(self._advance().value)

        if self._check(TokenType.LPAREN):
            self._advance()
            expr = self._or()
            if not self._check(TokenType.RPAREN):
                raise ParserError("Expected closing parenthesis", self._current().position)
            self._advance()
            return expr

        tok = self._current()
        raise ParserError(f"Unexpected token: {tok.value or 'EOF'}", tok.position)

    def _current(self) -> Token:
        return self.tokens[self.pos]

    def _at_end(self) -> bool:
        return self._current().type == TokenType.EOF

    def _check(self, type_: TokenType) -> bool:
        return not self._at_end() and self._current().type == type_

    def _match(self, type_: TokenType, value: str) -> bool:
        if self._check(type_) and self._current().value == value:
            self._advance()
            return True
        return False

    def _advance(self) -> Token:
        tok = self._current()
        if not self._at_end():
            self.pos += 1
        return tok


def parse(tokens: list[Token]) -> Expr:
    return Parser(tokens).parse()
