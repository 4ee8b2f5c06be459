"""
Live-mode workflow execution.

One run is a single sequential pass over the graph in topological order:

    PENDING -> RUNNING -> COMPLETED | FAILED | CANCELLED

Node failures are recorded as ERROR outputs and never abort the run. Only
structural errors (raised before any node runs) and dispatch errors fail it.
"""

from __future__ import annotations

import itertools
import traceback
import uuid
from datetime import datetime, timezone
from threading import Event, Lock
from typing import Any

from loguru import logger

from tradeflow.collaborators.persistence import InMemoryWorkflowStore, WorkflowStore
from tradeflow.collaborators.publish import NullPublisher, StatusPublisher
from tradeflow.collaborators.steps import InMemoryStepRuntime, StepRuntime
from tradeflow.config.settings import EngineSettings
from tradeflow.core.containers.context import ExecutionContext
from tradeflow.core.containers.events import StatusEvent
from tradeflow.core.containers.graph import Graph, Node
from tradeflow.core.containers.output import NodeOutput
from tradeflow.core.enums import NodeStatus, RunState
from tradeflow.core.exceptions import NodeExecutionError, TradeflowError
from tradeflow.core.registry import ExecutorRegistry
from tradeflow.engine.run import RunResult
from tradeflow.executors.base import NodeExecutor
from tradeflow.graph.validator import topological_order, validate


def _now() -> datetime:
    return datetime.now(timezone.utc)


def node_step(node_id: str) -> str:
    """Durable step name of a node invocation."""
    return f"node:{node_id}"


class WorkflowEngine:
    """Orchestrates live workflow runs.

    Collaborators:
        registry: One executor per node kind.
        publisher: Real-time status channel (``loading`` then ``success``/``error``
            per node). Publish failures are logged and ignored.
        store: Workflow snapshots and run-state transitions.
        steps: Durable step runtime. A node whose step is already recorded for
            the run is not invoked or published again on resume. Records are
            dropped once the run completes.

    Example:
        ```python
        engine = WorkflowEngine(build_registry(market_data, PaperBroker()))
        result = engine.execute(graph)
        print(result.state, result.node_errors)
        ```
    """

    def __init__(
        self,
        registry: ExecutorRegistry,
        publisher: StatusPublisher | None = None,
        store: WorkflowStore | None = None,
        steps: StepRuntime | None = None,
        settings: EngineSettings | None = None,
    ):
        self.registry = registry
        self.publisher = publisher or NullPublisher()
        self.store = store or InMemoryWorkflowStore()
        self.steps = steps or InMemoryStepRuntime()
        self.settings = settings or EngineSettings()

        self._seqs: dict[str, itertools.count] = {}
        self._lock = Lock()

    # ── Public surface ──────────────────────────────────────────────

    def execute(
        self,
        graph: Graph,
        *,
        run_id: str | None = None,
        as_of: datetime | None = None,
        cancel_event: Event | None = None,
        workflow_id: str | None = None,
    ) -> RunResult:
        """Run ``graph`` to a terminal state.

        Returns:
            RunResult with state COMPLETED or CANCELLED.

        Raises:
            GraphValidationError, CycleDetectedError: Structural errors; no node runs.
            NodeExecutionError: A node kind has no executor.
            In both cases the FAILED transition is persisted first and the
            error carries ``run_id``.
        """
        ctx = ExecutionContext(
            run_id=run_id or str(uuid.uuid4()),
            as_of=as_of or _now(),
            cancel_event=cancel_event or Event(),
        )
        self.store.record_transition(ctx.run_id, RunState.PENDING, workflow_id=workflow_id or graph.id)
        return self._run(graph, ctx, workflow_id or graph.id)

    def execute_workflow(self, workflow_id: str, **kwargs: Any) -> RunResult:
        """Load the stored workflow snapshot and execute it.

        Raises:
            WorkflowNotFoundError: If the store has no such workflow.
        """
        graph = self.store.load_graph(workflow_id)
        return self.execute(graph, workflow_id=workflow_id, **kwargs)

    def resume(
        self,
        run_id: str,
        graph: Graph,
        *,
        as_of: datetime | None = None,
        cancel_event: Event | None = None,
    ) -> RunResult:
        """Re-enter an interrupted or cancelled run.

        Nodes whose step was recorded keep their output and emit no events.

        Raises:
            TradeflowError: If the run already completed.
        """
        if self.store.last_state(run_id) == RunState.COMPLETED:
            raise TradeflowError(f"Run {run_id} already completed")

        ctx = ExecutionContext(run_id=run_id, as_of=as_of or _now(), cancel_event=cancel_event or Event())
        logger.info(f"RUN {run_id} resume workflow={graph.id}")
        return self._run(graph, ctx, graph.id)

    def run_nodes(self, graph: Graph, order: list[str], ctx: ExecutionContext) -> bool:
        """Invoke every node of ``order`` against ``ctx``.

        Cancellation is checked before each node.

        Returns:
            True if every node has an output, False if cancelled first.

        Raises:
            NodeExecutionError: If a node kind has no executor.
        """
        for node_id in order:
            if ctx.cancelled:
                return False

            node = graph.node(node_id)
            inputs = ctx.inputs_for(graph.predecessors(node_id))
            step = node_step(node_id)

            if self.steps.is_recorded(ctx.run_id, step):
                output = self.steps.result(ctx.run_id, step)
                ctx.record(node_id, output)
                ctx.log(node_id, "resumed", status=output.status.value)
                logger.debug(f"RUN {ctx.run_id} node={node_id} already recorded, skipping")
                continue

            executor = self._dispatch(node)
            logger.debug(f"RUN {ctx.run_id} node={node_id} kind={node.kind.value}")

            self._emit(ctx, node_id, NodeStatus.LOADING)
            output = self.steps.run(ctx.run_id, step, lambda: self._invoke(executor, node, inputs, ctx))
            ctx.record(node_id, output)

            if output.ok:
                ctx.log(node_id, "success")
                self._emit(ctx, node_id, NodeStatus.SUCCESS)
            else:
                ctx.log(node_id, "error", message=output.message)
                self._emit(ctx, node_id, NodeStatus.ERROR, detail=output.message)

        return True

    # ── Internals ───────────────────────────────────────────────────

    def _run(self, graph: Graph, ctx: ExecutionContext, workflow_id: str) -> RunResult:
        started = _now()
        logger.info(f"RUN {ctx.run_id} start workflow={workflow_id} nodes={len(graph)}")

        try:
            validate(graph)
            order = topological_order(graph)
        except TradeflowError as e:
            self._release(ctx.run_id, forget_steps=True)
            self._fail(ctx, e, workflow_id)
            raise

        self.store.record_transition(ctx.run_id, RunState.RUNNING, workflow_id=workflow_id)
        try:
            finished = self.run_nodes(graph, order, ctx)
        except Exception as e:
            self._release(ctx.run_id)
            self._fail(ctx, e, workflow_id)
            raise

        state = RunState.COMPLETED if finished else RunState.CANCELLED
        if finished:
            self._release(ctx.run_id, forget_steps=True)
        self.store.record_transition(ctx.run_id, state, workflow_id=workflow_id)

        result = RunResult(
            run_id=ctx.run_id,
            state=state,
            order=order,
            context=ctx,
            started_at=started,
            finished_at=_now(),
            final_outputs={nid: ctx.outputs[nid] for nid in graph.terminal_nodes() if nid in ctx.outputs},
        )
        logger.info(
            f"RUN {ctx.run_id} {state.value} nodes={len(ctx.outputs)}/{len(order)} "
            f"errors={len(result.node_errors)}"
        )
        return result

    def _release(self, run_id: str, forget_steps: bool = False) -> None:
        """Drop the event counter of a run that will not be resumed.

        Step records survive a dispatch failure, so the run can be resumed
        once the missing executor is registered.
        """
        with self._lock:
            self._seqs.pop(run_id, None)
        if forget_steps:
            self.steps.forget(run_id)

    def _dispatch(self, node: Node) -> NodeExecutor:
        try:
            return self.registry.get(node.kind)
        except KeyError:
            raise NodeExecutionError(node.id, node.kind, "no executor registered") from None

    def _invoke(
        self,
        executor: NodeExecutor,
        node: Node,
        inputs: dict[str, NodeOutput],
        ctx: ExecutionContext,
    ) -> NodeOutput:
        try:
            output = executor.run(node, inputs, ctx)
        except Exception as e:
            logger.warning(f"RUN {ctx.run_id} node={node.id} ({node.kind.value}) failed: {e}")
            return NodeOutput.error(str(e), traceback.format_exc())

        if not isinstance(output, NodeOutput):
            output = NodeOutput.success(output)
        elif output.is_error:
            logger.warning(f"RUN {ctx.run_id} node={node.id} ({node.kind.value}) returned error: {output.message}")
        return output

    def _emit(self, ctx: ExecutionContext, node_id: str, status: NodeStatus, detail: str | None = None) -> None:
        with self._lock:
            counter = self._seqs.setdefault(ctx.run_id, itertools.count())
            seq = next(counter)

        event = StatusEvent(run_id=ctx.run_id, node_id=node_id, status=status, seq=seq, detail=detail)
        try:
            self.publisher.publish(self.settings.status_channel, event)
        except Exception as e:
            logger.warning(f"RUN {ctx.run_id} publish {status.value} for node={node_id} failed: {e}")

    def _fail(self, ctx: ExecutionContext, error: Exception, workflow_id: str) -> None:
        error.run_id = ctx.run_id
        self.store.record_transition(ctx.run_id, RunState.FAILED, error=str(error), workflow_id=workflow_id)
        logger.error(f"RUN {ctx.run_id} failed: {error}")


def execute_workflow(
    graph: Graph,
    registry: ExecutorRegistry,
    *,
    publisher: StatusPublisher | None = None,
    store: WorkflowStore | None = None,
    steps: StepRuntime | None = None,
    settings: EngineSettings | None = None,
    **kwargs: Any,
) -> RunResult:
    """One-shot helper: build an engine and execute ``graph``."""
    engine = WorkflowEngine(registry, publisher=publisher, store=store, steps=steps, settings=settings)
    return engine.execute(graph, **kwargs)
