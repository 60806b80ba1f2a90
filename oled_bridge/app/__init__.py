"""Application entry point helpers."""

from .master import main, parse_args, run

__all__ = ["main", "parse_args", "run"]
