"""
Rich output for tradeflow runs and backtests.
"""

from __future__ import annotations

import math
from typing import TYPE_CHECKING, Any

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

if TYPE_CHECKING:
    from tradeflow.backtest.result import BacktestResult
    from tradeflow.engine.run import RunResult


console = Console()

_STATE_STYLES = {
    "completed": "green",
    "cancelled": "yellow",
    "failed": "red",
}


def format_value(key: str, value: Any) -> str:
    if value is None:
        return "-"
    if isinstance(value, float):
        if math.isinf(value):
            return "inf"
        if "rate" in key.lower() or "drawdown" in key.lower():
            return f"{value:.1%}"
        if abs(value) > 1000:
            return f"{value:,.2f}"
        return f"{value:.4f}"
    if isinstance(value, int):
        return f"{value:,}"
    return str(value)


def print_metrics(result: BacktestResult, out: Console | None = None) -> None:
    """Print the backtest summary table."""
    out = out or console

    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column("Metric", style="dim")
    table.add_column("Value", style="bold")

    net = result.metrics.net_pnl
    table.add_row("Net P&L", f"[{'green' if net >= 0 else 'red'}]{net:+,.2f}[/]")
    for key, value in result.metrics.to_dict().items():
        if key == "net_pnl":
            continue
        table.add_row(key.replace("_", " ").title(), format_value(key, value))

    table.add_row("Initial Capital", format_value("capital", float(result.config.get("initial_capital", 0.0))))
    table.add_row("Final Equity", format_value("equity", result.final_equity))
    table.add_row("Final Position", format_value("position", result.final_position))
    table.add_row("Bars", format_value("bars", result.candle_count))

    out.print()
    out.print(Panel(table, title="[bold green]Backtest Complete[/bold green]", border_style="green"))


def print_run(result: RunResult, out: Console | None = None) -> None:
    """Print per-node status of a workflow run."""
    out = out or console

    table = Table(title=f"Run {result.run_id}")
    table.add_column("Node")
    table.add_column("Status")
    table.add_column("Detail", overflow="fold")

    outputs = result.outputs
    for node_id in result.order:
        output = outputs.get(node_id)
        if output is None:
            table.add_row(node_id, "[dim]not run[/dim]", "")
        elif output.ok:
            table.add_row(node_id, "[green]success[/green]", "")
        else:
            table.add_row(node_id, "[red]error[/red]", output.message or "")

    style = _STATE_STYLES.get(result.state.value, "white")
    out.print(table)
    out.print(f"State: [{style}]{result.state.value}[/{style}]")
