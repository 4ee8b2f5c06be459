from __future__ import annotations

from typing import ClassVar

from tradeflow.collaborators.notifier import Notifier
from tradeflow.core.containers.context import ExecutionContext
from tradeflow.core.containers.graph import Node
from tradeflow.core.containers.node_config import NotifyConfig
from tradeflow.core.containers.output import NodeOutput
from tradeflow.core.enums import NodeKind
from tradeflow.executors.base import NodeExecutor


class NotifyExecutor(NodeExecutor):
    """Sends a message with the status of each predecessor. Never blocked by upstream errors."""

    kind: ClassVar[NodeKind] = NodeKind.NOTIFY

    def __init__(self, notifier: Notifier):
        self.notifier = notifier

    def run(self, node: Node, inputs: dict[str, NodeOutput], ctx: ExecutionContext) -> NodeOutput:
        cfg: NotifyConfig = node.config
        upstream = {nid: out.status.value for nid, out in inputs.items()}
        errors = {nid: out.message for nid, out in inputs.items() if out.is_error}

        self.notifier.send(cfg.channel, cfg.message, {"run_id": ctx.run_id, "upstream": upstream, "errors": errors})
        return NodeOutput.success({"sent": True, "channel": cfg.channel, "message": cfg.message, "upstream": upstream})
