"""Command-line tokenizing, command history and background command execution."""

__version__ = "0.1.0"
__all__ = ["executor", "history", "input"]