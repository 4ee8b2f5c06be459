"""
Exception taxonomy for tradeflow.

Structural and dispatch errors abort a run; executor failures are
converted into ERROR node outputs by the engine.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from tradeflow.core.enums import NodeKind


class TradeflowError(Exception):
    """Base exception for tradeflow errors."""

    pass


class ConfigurationError(TradeflowError):
    """Raised when settings or registry wiring is invalid."""

    pass


# ── Structural ──────────────────────────────────────────────────────


class GraphValidationError(TradeflowError):
    """Raised when a workflow graph violates a structural invariant.

    Attributes:
        reason: Machine-readable reason ("dangling-edge", "cycle", ...).
        ref: The offending node id, edge or cycle description.
    """

    def __init__(self, reason: str, ref: object = None, detail: str | None = None):
        self.reason = reason
        self.ref = ref
        self.detail = detail
        self.run_id: str | None = None

        msg = f"Invalid workflow graph ({reason})"
        if ref is not None:
            msg += f": {ref}"
        if detail:
            msg += f" - {detail}"
        super().__init__(msg)


class CycleDetectedError(GraphValidationError):
    """Raised when the connection set contains a directed cycle."""

    def __init__(self, cycle_path: list[str]):
        self.cycle_path = list(cycle_path)
        super().__init__("cycle", " -> ".join(self.cycle_path))


# ── Dispatch / node level ───────────────────────────────────────────


class NodeExecutionError(TradeflowError):
    """Raised when the engine cannot dispatch a node."""

    def __init__(self, node_id: str, kind: NodeKind | str, reason: str | None = None):
        self.node_id = node_id
        self.kind = kind
        self.run_id: str | None = None

        kind_name = getattr(kind, "value", kind)
        msg = f"No executor can run node '{node_id}' (kind={kind_name})"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class NodeOutputError(TradeflowError):
    """Raised by an executor to report a node-level failure."""

    def __init__(self, node_id: str, message: str):
        self.node_id = node_id
        self.message = message
        super().__init__(f"Node '{node_id}' failed: {message}")


class UpstreamFailedError(NodeOutputError):
    """Raised by executors that treat an ERROR predecessor as blocking."""

    def __init__(self, node_id: str, upstream_ids: list[str]):
        self.upstream_ids = list(upstream_ids)
        super().__init__(node_id, f"upstream node(s) failed: {', '.join(self.upstream_ids)}")


# ── Collaborators ───────────────────────────────────────────────────


class CollaboratorError(TradeflowError):
    """Base class for failures reported by external collaborators."""

    pass


class WorkflowNotFoundError(CollaboratorError):
    """Raised when the persistence layer has no workflow with the given id."""

    def __init__(self, workflow_id: str):
        self.workflow_id = workflow_id
        super().__init__(f"Workflow '{workflow_id}' not found")


class MarketDataError(CollaboratorError):
    """Raised when candles cannot be fetched or are malformed."""

    pass


class NotificationError(CollaboratorError):
    """Raised when a notification cannot be delivered."""

    pass


class BrokerError(CollaboratorError):
    """Base class for broker adapter errors."""

    code = "BROKER_ERROR"

    def __init__(self, message: str, broker: str | None = None):
        self.broker = broker
        super().__init__(message)


class BrokerAuthError(BrokerError):
    code = "AUTH_ERROR"


class BrokerValidationError(BrokerError):
    code = "VALIDATION_ERROR"


class BrokerNetworkError(BrokerError):
    code = "NETWORK_ERROR"


class BrokerAPIError(BrokerError):
    code = "API_ERROR"

    def __init__(self, message: str, broker: str | None = None, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message, broker)


class BrokerRateLimitError(BrokerError):
    code = "RATE_LIMIT"


# ── Replay boundary ─────────────────────────────────────────────────


class ReplayBoundaryError(TradeflowError):
    """Raised before any bar is simulated when a replay cannot start."""

    pass


class BacktestRequestError(ReplayBoundaryError):
    """Raised when a backtest request is malformed."""

    def __init__(self, param: str, value: object, reason: str):
        self.param = param
        self.value = value
        self.reason = reason
        super().__init__(f"Invalid value for '{param}': {value!r}\n  {reason}")


class InsufficientDataError(ReplayBoundaryError):
    """Raised when a whole series is shorter than the minimum window."""

    def __init__(self, indicator: str, required: int, provided: int):
        self.indicator = indicator
        self.required = required
        self.provided = provided
        super().__init__(f"Insufficient data for {indicator}: requires {required} bars, got {provided}")


# ── Condition language ──────────────────────────────────────────────


class ConditionError(TradeflowError):
    """Base class for condition expression errors."""

    code = "CONDITION_ERROR"

    def __init__(self, message: str, position: int | None = None):
        self.position = position
        super().__init__(message if position is None else f"{message} (at position {position})")


class LexerError(ConditionError):
    code = "LEXER_ERROR"


class ParserError(ConditionError):
    code = "PARSER_ERROR"


class EvaluatorError(ConditionError):
    code = "EVALUATOR_ERROR"
