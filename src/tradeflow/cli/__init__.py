from tradeflow.cli.main import cli


__all__ = ["cli"]
