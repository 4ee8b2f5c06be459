from __future__ import annotations

from typing import ClassVar

from tradeflow.core.containers.context import ExecutionContext
from tradeflow.core.containers.graph import Node
from tradeflow.core.containers.node_config import TriggerConfig
from tradeflow.core.containers.output import NodeOutput
from tradeflow.core.enums import NodeKind
from tradeflow.executors.base import NodeExecutor


class TriggerExecutor(NodeExecutor):
    """Entry point. Uses the run clock, so replay fires on the bar timestamp."""

    kind: ClassVar[NodeKind] = NodeKind.TRIGGER

    def run(self, node: Node, inputs: dict[str, NodeOutput], ctx: ExecutionContext) -> NodeOutput:
        cfg: TriggerConfig = node.config
        return NodeOutput.success({"fired_at": ctx.as_of, "source": cfg.source, "payload": dict(cfg.payload)})
