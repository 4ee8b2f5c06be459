from __future__ import annotations

import math
import operator
from dataclasses import dataclass, field
from typing import Any, Callable, Mapping

from tradeflow.conditions.parser import Comparison, Expr, Identifier, Logical, Number
from tradeflow.core.exceptions import EvaluatorError

_COMPARE: dict[str, Callable[[float, float], bool]] = {
    ">": operator.gt,
    "<": operator.lt,
    ">=": operator.ge,
    "<=": operator.le,
    "==": operator.eq,
    "!=": operator.ne,
}


@dataclass
class ConditionResult:
    condition_met: bool
    missing: list[str] = field(default_factory=list)


class _Unavailable:
    """Marker for a known name whose value has no lookback yet."""


_UNAVAILABLE = _Unavailable()


def _resolve(name: str, values: Mapping[str, Any]) -> float | _Unavailable:
    key, _, prop = name.partition(".")
    if key not in values:
        raise EvaluatorError(f"Unknown indicator: {key}")
    value = values[key]

    if prop:
        if value is None:
            return _UNAVAILABLE
        if not isinstance(value, Mapping):
            raise EvaluatorError(f"Indicator {key} is a number, not an object")
        if prop not in value:
            raise EvaluatorError(f"Unknown property: {prop} on {key}")
        value = value[prop]
    elif isinstance(value, Mapping):
        raise EvaluatorError(f"Indicator {key} is an object, use dot notation (e.g. {key}.line)")

    if value is None:
        return _UNAVAILABLE
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise EvaluatorError(f"Indicator {name} is not numeric: {value!r}")
    if isinstance(value, float) and math.isnan(value):
        return _UNAVAILABLE
    return float(value)


class Evaluator:
    """Evaluates a parsed expression against a flat mapping of values.

    A name that exists but holds ``None`` makes its comparison False and is
    reported in ``missing``. Unknown names raise ``EvaluatorError``.
    """

    def __init__(self, values: Mapping[str, Any]):
        self.values = values
        self.missing: list[str] = []

    def _value(self, node: Expr) -> float | _Unavailable:
        if isinstance(node, Number):
            return node.value
        if isinstance(node, Identifier):
            value = _resolve(node.name, self.values)
            if value is _UNAVAILABLE and node.name not in self.missing:
                self.missing.append(node.name)
            return value
        raise EvaluatorError(f"Cannot evaluate {type(node).__name__} as a value")

    def truth(self, node: Expr) -> bool:
        if isinstance(node, Logical):
            # both sides are evaluated so `missing` is complete
            left = self.truth(node.left)
            right = self.truth(node.right)
            return (left and right) if node.operator == "AND" else (left or right)

        if isinstance(node, Comparison):
            left = self._value(node.left)
            right = self._value(node.right)
            if isinstance(left, _Unavailable) or isinstance(right, _Unavailable):
                return False
            return _COMPARE[node.operator](left, right)

        value = self._value(node)
        return not isinstance(value, _Unavailable) and value != 0


def evaluate(ast: Expr, values: Mapping[str, Any]) -> ConditionResult:
    evaluator = Evaluator(values)
    met = evaluator.truth(ast)
    return ConditionResult(condition_met=met, missing=evaluator.missing)
