"""
tradeflow CLI - Main entry point.

Commands:
    tradeflow validate workflow.yaml                     Validate a workflow and print its order
    tradeflow run workflow.yaml --candles c.csv          Live-mode run with a paper broker
    tradeflow backtest workflow.yaml --candles c.csv ... Historical replay
    tradeflow init                                       Create a sample workflow file
"""

from __future__ import annotations

import json
import sys
from datetime import datetime
from pathlib import Path

import click
import yaml
from loguru import logger

from tradeflow.config.settings import EngineSettings

DATETIME_FORMATS = ["%Y-%m-%d", "%Y-%m-%dT%H:%M", "%Y-%m-%dT%H:%M:%S", "%Y-%m-%d %H:%M:%S"]


def _configure_logging(level: str) -> None:
    logger.remove()
    logger.add(sys.stderr, level=level)


def _fail(message: str) -> None:
    click.secho(message, fg="red", err=True)
    sys.exit(1)


# =============================================================================
# CLI Group
# =============================================================================


@click.group()
@click.version_option(package_name="tradeflow-engine")
@click.option("--config", "config_path", type=click.Path(exists=True), help="Engine settings YAML")
@click.option("--log-level", help="Override the configured log level")
@click.pass_context
def cli(ctx: click.Context, config_path: str | None, log_level: str | None):
    """tradeflow - trading workflow engine CLI."""
    settings = EngineSettings.from_yaml(config_path) if config_path else EngineSettings()
    if log_level:
        settings.log_level = log_level.upper()

    issues = settings.validate()
    for issue in issues:
        if issue.startswith("WARNING"):
            click.secho(issue, fg="yellow", err=True)
    errors = [i for i in issues if i.startswith("ERROR")]
    if errors:
        _fail("\n".join(errors))

    _configure_logging(settings.log_level)
    ctx.obj = settings


# =============================================================================
# Validate Command
# =============================================================================


@cli.command()
@click.argument("workflow_path", type=click.Path(exists=True))
def validate(workflow_path: str):
    """
    Validate a workflow file and print its execution order.

    \b
    Example:
        tradeflow validate sma_breakout.yaml
    """
    from tradeflow.config.settings import load_graph_file
    from tradeflow.core.exceptions import TradeflowError
    from tradeflow.graph.validator import topological_order, validation_issues

    try:
        graph = load_graph_file(workflow_path)
    except (TradeflowError, FileNotFoundError, yaml.YAMLError) as e:
        _fail(f"ERROR: {e}")

    issues = validation_issues(graph)
    if issues:
        _fail("\n".join(issues))

    click.secho(f"Workflow '{graph.id}' is valid ({len(graph)} nodes)", fg="green")
    for step, node_id in enumerate(topological_order(graph), start=1):
        click.echo(f"  {step:>2}. {node_id} ({graph.node(node_id).kind.value})")


# =============================================================================
# Run Command
# =============================================================================


@cli.command()
@click.argument("workflow_path", type=click.Path(exists=True))
@click.option("--candles", "candles_path", type=click.Path(exists=True), required=True, help="Candle CSV file")
@click.option("--symbol", help="Symbol whose last candle sets the run clock")
@click.option("--as-of", type=click.DateTime(formats=DATETIME_FORMATS), help="Run clock (default: last candle)")
@click.pass_obj
def run(settings: EngineSettings, workflow_path: str, candles_path: str, symbol: str | None, as_of: datetime | None):
    """
    Execute a workflow once against CSV candles with a paper broker.

    \b
    Example:
        tradeflow run sma_breakout.yaml --candles candles.csv
    """
    from tradeflow.collaborators import CsvMarketData, InMemoryPublisher, LogNotifier, PaperBroker
    from tradeflow.config.settings import load_graph_file
    from tradeflow.core.exceptions import TradeflowError
    from tradeflow.engine import WorkflowEngine
    from tradeflow.executors import build_registry
    from tradeflow.utils.progress import print_run

    try:
        graph = load_graph_file(workflow_path)
        market_data = CsvMarketData(candles_path)
    except (TradeflowError, yaml.YAMLError) as e:
        _fail(f"ERROR: {e}")

    if as_of is None:
        as_of = market_data.last_timestamp(symbol)
        if as_of is None:
            _fail(f"ERROR: no candles in {candles_path}" + (f" for {symbol}" if symbol else ""))

    registry = build_registry(market_data, PaperBroker(), LogNotifier())
    engine = WorkflowEngine(registry, publisher=InMemoryPublisher(), settings=settings)

    try:
        result = engine.execute(graph, as_of=as_of)
    except TradeflowError as e:
        _fail(f"Run failed: {e}")

    print_run(result)


# =============================================================================
# Backtest Command
# =============================================================================


@cli.command()
@click.argument("workflow_path", type=click.Path(exists=True))
@click.option("--candles", "candles_path", type=click.Path(exists=True), required=True, help="Candle CSV file")
@click.option("--symbol", required=True, help="Instrument to replay")
@click.option("--interval", required=True, help="Bar interval (1m, 5m, 15m, 30m, 1h, 1d)")
@click.option("--from", "start", type=click.DateTime(formats=DATETIME_FORMATS), required=True, help="Window start")
@click.option("--to", "end", type=click.DateTime(formats=DATETIME_FORMATS), required=True, help="Window end")
@click.option("--capital", type=float, help="Initial capital (default from settings)")
@click.option("--fee", type=float, help="Fee rate as a fraction of notional")
@click.option("--config", "config_path", type=click.Path(exists=True), help="Engine settings YAML")
@click.option("--output", "-o", type=click.Path(), help="Save result JSON to this path")
@click.option("--progress/--no-progress", default=None, help="Show a progress bar over bars")
@click.pass_obj
def backtest(
    settings: EngineSettings,
    workflow_path: str,
    candles_path: str,
    symbol: str,
    interval: str,
    start: datetime,
    end: datetime,
    capital: float | None,
    fee: float | None,
    config_path: str | None,
    output: str | None,
    progress: bool | None,
):
    """
    Replay a workflow over historical CSV candles.

    \b
    Example:
        tradeflow backtest sma_breakout.yaml --candles candles.csv \\
            --symbol X --interval 1m --from 2024-01-01 --to 2024-01-02
    """
    from tradeflow.backtest import BacktestRequest, CandleCache, ReplayEngine
    from tradeflow.collaborators import CsvMarketData
    from tradeflow.config.settings import load_graph_file
    from tradeflow.core.exceptions import TradeflowError
    from tradeflow.utils.progress import print_metrics

    if config_path:
        settings = EngineSettings.from_yaml(config_path)
        errors = [i for i in settings.validate() if i.startswith("ERROR")]
        if errors:
            _fail("\n".join(errors))

    defaults = settings.backtest
    show_progress = defaults.show_progress if progress is None else progress

    try:
        graph = load_graph_file(workflow_path)
        market_data = CsvMarketData(candles_path)
        request = BacktestRequest.from_defaults(
            graph, symbol, interval, start, end, defaults, initial_capital=capital, fee_rate=fee
        )
        engine = ReplayEngine(
            market_data,
            cache=CandleCache(settings.candle_cache_size),
            show_progress=show_progress,
        )
        result = engine.run(request)
    except (TradeflowError, yaml.YAMLError) as e:
        _fail(f"Backtest failed: {e}")

    print_metrics(result)

    if result.node_errors:
        click.secho(f"{len(result.node_errors)} node error(s) during replay", fg="yellow")

    if output:
        _save_result(result, output)
        click.echo(f"Results saved to: {output}")


def _save_result(result, output_path: str) -> None:
    """Write the backtest result as JSON."""

    def _convert(obj):
        if isinstance(obj, datetime):
            return obj.isoformat()
        return str(obj)

    path = Path(output_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w") as f:
        json.dump(result.to_dict(), f, indent=2, default=_convert)


# =============================================================================
# Init Command
# =============================================================================


@cli.command()
@click.option("--output", "-o", default="sma_breakout.yaml", help="Output file path")
@click.option("--force", "-f", is_flag=True, help="Overwrite existing file")
def init(output: str, force: bool):
    """Create a sample workflow file."""
    from tradeflow.config.settings import generate_sample_workflow

    path = Path(output)
    if path.exists() and not force:
        _fail(f"File {output} already exists. Use --force to overwrite.")

    path.write_text(generate_sample_workflow())
    click.secho(f"Created {output}", fg="green")
    click.echo(f"Validate it with: tradeflow validate {output}")


if __name__ == "__main__":
    cli()
