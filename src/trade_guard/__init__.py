"""Intraday trading discipline and execution-guard engine."""

__version__ = "0.1.0"
