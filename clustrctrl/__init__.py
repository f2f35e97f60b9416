"""Terminal dashboard for launching, watching and cancelling simulated tasks."""

__version__ = "0.1.0"
__all__ = ["app", "picker", "table", "tasks"]