from __future__ import annotations

from collections.abc import Mapping
from typing import Any, ClassVar

from tradeflow.collaborators.broker import Broker, validate_order
from tradeflow.core.containers.context import ExecutionContext
from tradeflow.core.containers.graph import Node
from tradeflow.core.containers.node_config import OrderConfig
from tradeflow.core.containers.order import Order
from tradeflow.core.containers.output import NodeOutput
from tradeflow.core.enums import NodeKind
from tradeflow.core.exceptions import NodeOutputError
from tradeflow.executors.base import NodeExecutor, merged_values, require_upstream_ok


def condition_gate(inputs: Mapping[str, NodeOutput]) -> str | None:
    """Reason to skip the order, or None when every upstream condition holds."""
    for nid, out in inputs.items():
        if out.ok and isinstance(out.value, Mapping) and out.value.get("condition_met") is False:
            return f"condition '{nid}' not met"
    return None


def build_order(node: Node, inputs: Mapping[str, NodeOutput], ctx: ExecutionContext) -> Order:
    """Order for ``node`` with symbol and reference price resolved from upstream."""
    cfg: OrderConfig = node.config
    upstream = merged_values(inputs)
    symbol = cfg.symbol or upstream.get("symbol")
    if not symbol:
        raise NodeOutputError(node.id, "order has no symbol and none is available upstream")

    return Order(
        symbol=symbol,
        side=cfg.side,
        order_type=cfg.order_type,
        quantity=cfg.quantity,
        limit_price=cfg.limit_price,
        created_at=ctx.as_of,
        dry_run=cfg.dry_run,
        meta={"node_id": node.id, "run_id": ctx.run_id, "reference_price": upstream.get("close")},
    )


def order_summary(order: Order) -> dict[str, Any]:
    return {
        "order_id": order.id,
        "symbol": order.symbol,
        "side": order.side.value,
        "order_type": order.order_type.value,
        "quantity": order.quantity,
        "limit_price": order.limit_price,
    }


class OrderExecutor(NodeExecutor):
    """Live order placement through the broker collaborator.

    Skips (SUCCESS with ``skipped=True``) when an upstream condition is not
    met. Broker errors propagate and become this node's ERROR output.
    """

    kind: ClassVar[NodeKind] = NodeKind.ORDER

    def __init__(self, broker: Broker, credentials: dict[str, Any] | None = None):
        self.broker = broker
        self.credentials = credentials

    def run(self, node: Node, inputs: dict[str, NodeOutput], ctx: ExecutionContext) -> NodeOutput:
        require_upstream_ok(node, inputs)
        reason = condition_gate(inputs)
        if reason:
            return NodeOutput.success({"skipped": True, "reason": reason})

        order = build_order(node, inputs, ctx)
        validate_order(order, self.broker.capabilities, self.broker.name)

        if order.dry_run:
            ctx.log(node.id, "dry_run", **order_summary(order))
            return NodeOutput.success({"skipped": False, "filled": False, "dry_run": True, **order_summary(order)})

        fill = self.broker.place_order(order, self.credentials)
        ctx.log(node.id, "fill", **fill.to_dict())
        return NodeOutput.success({"skipped": False, "filled": True, **fill.to_dict()})
