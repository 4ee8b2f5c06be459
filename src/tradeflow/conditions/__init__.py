"""Safe condition expressions over indicator values.

Example:
    ```python
    from tradeflow.conditions import evaluate_condition

    values = {"RSI_14": 25, "SMA_20": 150, "MACD": {"line": 1.5, "signal": 1.2, "histogram": 0.3}}
    evaluate_condition(values, "RSI_14 < 30 AND MACD.line > MACD.signal").condition_met
    # True
    ```
"""

from __future__ import annotations

from functools import lru_cache
from typing import Any, Mapping

from tradeflow.conditions.evaluator import ConditionResult, evaluate
from tradeflow.conditions.lexer import Token, TokenType, tokenize
from tradeflow.conditions.parser import Expr, parse


@lru_cache(maxsize=256)
def compile_expression(expression: str) -> Expr:
    """Tokenize and parse ``expression``; results are cached per string.

    Raises:
        LexerError, ParserError: If the expression is malformed.
    """
    return parse(tokenize(expression))


def evaluate_condition(values: Mapping[str, Any], expression: str) -> ConditionResult:
    """Evaluate ``expression`` against ``values``.

    Raises:
        ConditionError: Any lexer, parser or evaluator failure.
    """
    return evaluate(compile_expression(expression), values)


__all__ = [
    "ConditionResult",
    "Expr",
    "Token",
    "TokenType",
    "compile_expression",
    "evaluate",
    "evaluate_condition",
    "parse",
    "tokenize",
]
