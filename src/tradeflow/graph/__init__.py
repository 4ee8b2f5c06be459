from tradeflow.graph.validator import ALLOWED_TARGETS, find_cycle, topological_order, validate, validation_issues


__all__ = [
    "ALLOWED_TARGETS",
    "find_cycle",
    "topological_order",
    "validate",
    "validation_issues",
]
