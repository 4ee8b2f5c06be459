"""
YAML configuration for the tradeflow engine and CLI.

Engine settings and workflow documents are both plain YAML files; JSON
workflow documents load through the same path (YAML is a superset).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from tradeflow.core.containers.graph import Graph
from tradeflow.core.exceptions import ConfigurationError

LOG_LEVELS: tuple[str, ...] = ("TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL")


@dataclass
class BacktestDefaults:
    """Defaults applied to backtest requests built by the CLI."""

    initial_capital: float = 10_000.0
    fee_rate: float = 0.0
    include_start_point: bool = False
    close_open_position: bool = False
    show_progress: bool = False


@dataclass
class EngineSettings:
    """
    Engine configuration.

    Example YAML:
        ```yaml
        log_level: DEBUG
        status_channel: workflow-status
        candle_cache_size: 16

        backtest:
          initial_capital: 50000
          fee_rate: 0.001
          include_start_point: true
          close_open_position: true
          show_progress: true
        ```
    """

    log_level: str = "INFO"
    status_channel: str = "workflow-status"
    backtest: BacktestDefaults = field(default_factory=BacktestDefaults)
    candle_cache_size: int = 32

    @classmethod
    def from_yaml(cls, path: str | Path) -> EngineSettings:
        """
        Load settings from a YAML file.

        Raises:
            FileNotFoundError: If the file doesn't exist
            ConfigurationError: If the document is not a mapping
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")

        with open(path) as f:
            raw = yaml.safe_load(f)

        if raw is None:
            raw = {}
        if not isinstance(raw, dict):
            raise ConfigurationError(f"Config file must contain a mapping: {path}")
        return cls.from_dict(raw)

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> EngineSettings:
        backtest = BacktestDefaults()
        if d.get("backtest"):
            bt = d["backtest"]
            backtest = BacktestDefaults(
                initial_capital=float(bt.get("initial_capital", bt.get("capital", 10_000.0))),
                fee_rate=float(bt.get("fee_rate", bt.get("fee", 0.0))),
                include_start_point=bool(bt.get("include_start_point", False)),
                close_open_position=bool(bt.get("close_open_position", False)),
                show_progress=bool(bt.get("show_progress", False)),
            )

        return cls(
            log_level=str(d.get("log_level", "INFO")).upper(),
            status_channel=d.get("status_channel", "workflow-status"),
            backtest=backtest,
            candle_cache_size=int(d.get("candle_cache_size", 32)),
        )

    def validate(self) -> list[str]:
        """
        Validate settings and return list of issues.

        Returns:
            List of "ERROR: ..." / "WARNING: ..." messages
        """
        issues: list[str] = []

        if self.log_level not in LOG_LEVELS:
            issues.append(f"ERROR: log_level must be one of {', '.join(LOG_LEVELS)}, got {self.log_level!r}")

        if not self.status_channel:
            issues.append("ERROR: status_channel is required")

        if self.candle_cache_size < 0:
            issues.append("ERROR: candle_cache_size must be >= 0")
        elif self.candle_cache_size == 0:
            issues.append("WARNING: candle_cache_size is 0, candle caching disabled")

        if self.backtest.initial_capital <= 0:
            issues.append("ERROR: backtest.initial_capital must be positive")

        if not 0 <= self.backtest.fee_rate < 1:
            issues.append("ERROR: backtest.fee_rate must be in [0, 1)")
        elif self.backtest.fee_rate > 0.01:
            issues.append(f"WARNING: backtest.fee_rate ({self.backtest.fee_rate:.2%}) is unusually high")

        return issues


def load_graph_file(path: str | Path) -> Graph:
    """
    Load a workflow document (YAML or JSON) into a Graph.

    Raises:
        FileNotFoundError: If the file doesn't exist
        ConfigurationError: If the document is not a mapping
        GraphValidationError: If nodes or configs are malformed
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Workflow file not found: {path}")

    with open(path) as f:
        raw = yaml.safe_load(f)

    if not isinstance(raw, dict):
        raise ConfigurationError(f"Workflow file must contain a mapping: {path}")
    raw.setdefault("id", path.stem)
    return Graph.from_dict(raw)


def generate_sample_workflow() -> str:
    """Sample workflow document: SMA breakout with notification."""
    return """# tradeflow workflow
# Run with: tradeflow backtest sma_breakout.yaml --candles candles.csv --symbol X ...

id: sma_breakout

nodes:
  trigger:
    kind: trigger
  candles:
    kind: data_source
    config:
      symbol: X
      interval: 1m
      lookback: 100
  sma:
    kind: indicator
    config:
      indicators:
        - type: SMA
          period: 5
  breakout:
    kind: condition
    config:
      expression: close > SMA_5
  buy:
    kind: order
    config:
      side: BUY
      quantity: 1
  notify:
    kind: notify
    config:
      message: SMA breakout order placed

connections:
  - {source: trigger, target: candles}
  - {source: candles, target: sma}
  - {source: sma, target: breakout}
  - {source: breakout, target: buy}
  - {source: buy, target: notify}
"""
