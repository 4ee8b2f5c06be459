from tradeflow.config.settings import (
    BacktestDefaults,
    EngineSettings,
    generate_sample_workflow,
    load_graph_file,
)


__all__ = [
    "BacktestDefaults",
    "EngineSettings",
    "generate_sample_workflow",
    "load_graph_file",
]
