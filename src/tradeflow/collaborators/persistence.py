from __future__ import annotations

import copy
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from threading import Lock
from typing import Any

from tradeflow.core.containers.graph import Graph
from tradeflow.core.enums import RunState
from tradeflow.core.exceptions import WorkflowNotFoundError


@dataclass(frozen=True, slots=True)
class Transition:
    """One persisted run-state change. ``recorded_at`` is not part of identity."""

    run_id: str
    state: RunState
    error: str | None = None
    workflow_id: str | None = None
    recorded_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc), compare=False)


class WorkflowStore(ABC):
    """Persistence only: load workflow snapshots, append run transitions."""

    @abstractmethod
    def load_graph(self, workflow_id: str) -> Graph:
        """Frozen snapshot of the stored workflow.

        Raises:
            WorkflowNotFoundError: If ``workflow_id`` is unknown.
        """
        ...

    @abstractmethod
    def record_transition(
        self,
        run_id: str,
        state: RunState,
        *,
        error: str | None = None,
        workflow_id: str | None = None,
    ) -> None:
        """Append a transition; repeating the last call with identical values is a no-op."""
        ...

    @abstractmethod
    def transitions(self, run_id: str) -> list[Transition]: ...

    def last_state(self, run_id: str) -> RunState | None:
        history = self.transitions(run_id)
        return history[-1].state if history else None


class InMemoryWorkflowStore(WorkflowStore):
    """In-memory implementation of workflow persistence.

    Workflows are kept as plain dict documents and parsed on every load,
    so editing a stored workflow never reaches a graph already handed to
    a run.
    """

    def __init__(self) -> None:
        self._workflows: dict[str, dict[str, Any]] = {}
        self._transitions: dict[str, list[Transition]] = {}
        self._lock = Lock()

    def save_graph(self, document: dict[str, Any], workflow_id: str | None = None) -> str:
        workflow_id = workflow_id or document.get("id")
        if not workflow_id:
            raise ValueError("Workflow document must have an id")
        with self._lock:
            self._workflows[workflow_id] = copy.deepcopy({**document, "id": workflow_id})
        return workflow_id

    def load_graph(self, workflow_id: str) -> Graph:
        with self._lock:
            document = self._workflows.get(workflow_id)
        if document is None:
            raise WorkflowNotFoundError(workflow_id)
        return Graph.from_dict(document)

    def record_transition(
        self,
        run_id: str,
        state: RunState,
        *,
        error: str | None = None,
        workflow_id: str | None = None,
    ) -> None:
        transition = Transition(run_id=run_id, state=state, error=error, workflow_id=workflow_id)
        with self._lock:
            history = self._transitions.setdefault(run_id, [])
            if not history or history[-1] != transition:
                history.append(transition)

    def transitions(self, run_id: str) -> list[Transition]:
        with self._lock:
            return list(self._transitions.get(run_id, []))
