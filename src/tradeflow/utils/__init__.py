from tradeflow.utils.progress import console, format_value, print_metrics, print_run


__all__ = ["console", "format_value", "print_metrics", "print_run"]
