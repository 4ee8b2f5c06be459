from __future__ import annotations

from typing import ClassVar

from tradeflow.conditions import evaluate_condition
from tradeflow.core.containers.context import ExecutionContext
from tradeflow.core.containers.graph import Node
from tradeflow.core.containers.node_config import ConditionConfig
from tradeflow.core.containers.output import NodeOutput
from tradeflow.core.enums import NodeKind
from tradeflow.executors.base import NodeExecutor, merged_values, require_upstream_ok


class ConditionExecutor(NodeExecutor):
    """Evaluates the expression over the merged predecessor values.

    The latest ``close`` and ``symbol`` seen upstream are passed through so
    a downstream order knows what it is trading and at what reference price.
    """

    kind: ClassVar[NodeKind] = NodeKind.CONDITION

    def run(self, node: Node, inputs: dict[str, NodeOutput], ctx: ExecutionContext) -> NodeOutput:
        require_upstream_ok(node, inputs)
        cfg: ConditionConfig = node.config
        values = merged_values(inputs)
        if isinstance(values.get("last"), dict):
            values = {**values["last"], **values}

        result = evaluate_condition(values, cfg.expression)
        if result.missing:
            ctx.log(node.id, "missing", names=result.missing)

        return NodeOutput.success(
            {
                "condition_met": result.condition_met,
                "expression": cfg.expression,
                "missing": result.missing,
                "symbol": values.get("symbol"),
                "close": values.get("close"),
                "timestamp": values.get("timestamp"),
            }
        )
