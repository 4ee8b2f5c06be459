from tradeflow.engine.run import RunResult
from tradeflow.engine.workflow_engine import WorkflowEngine, execute_workflow, node_step


__all__ = [
    "RunResult",
    "WorkflowEngine",
    "execute_workflow",
    "node_step",
]
