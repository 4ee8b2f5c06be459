from tradeflow.core import (
    ExecutionContext,
    ExecutorRegistry,
    Graph,
    Node,
    NodeKind,
    NodeOutput,
    NodeStatus,
    OutputStatus,
    RunState,
)
from tradeflow.core.exceptions import TradeflowError
import tradeflow.collaborators as collaborators
import tradeflow.conditions as conditions
import tradeflow.config as config
import tradeflow.executors as executors
import tradeflow.graph as graph
import tradeflow.indicators as indicators
from tradeflow.engine import RunResult, WorkflowEngine, execute_workflow
from tradeflow.executors import build_registry


__version__ = "0.1.0"


# =============================================================================
# Lazy imports for the replay API and CLI helpers
# =============================================================================
# Loaded on first access; tqdm and rich are only imported when needed.

def __getattr__(name: str):
    """Lazy load replay and output components."""
    if name == "BacktestRequest":
        from tradeflow.backtest.request import BacktestRequest
        return BacktestRequest

    if name == "BacktestResult":
        from tradeflow.backtest.result import BacktestResult
        return BacktestResult

    if name == "ReplayEngine":
        from tradeflow.backtest.replay import ReplayEngine
        return ReplayEngine

    if name == "run_backtest":
        from tradeflow.backtest.replay import run_backtest
        return run_backtest

    if name == "backtest":
        import tradeflow.backtest as backtest
        return backtest

    if name == "utils":
        import tradeflow.utils as utils
        return utils

    raise AttributeError(f"module 'tradeflow' has no attribute {name!r}")


__all__ = [
    # Submodules
    "backtest",
    "collaborators",
    "conditions",
    "config",
    "executors",
    "graph",
    "indicators",
    "utils",
    # Core
    "ExecutionContext",
    "ExecutorRegistry",
    "Graph",
    "Node",
    "NodeKind",
    "NodeOutput",
    "NodeStatus",
    "OutputStatus",
    "RunState",
    "TradeflowError",
    # Engine
    "RunResult",
    "WorkflowEngine",
    "build_registry",
    "execute_workflow",
    # Replay (lazy)
    "BacktestRequest",
    "BacktestResult",
    "ReplayEngine",
    "run_backtest",
]
