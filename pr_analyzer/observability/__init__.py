"""
Observability package.

Structured logging with JSON and human-readable formatters.
"""

from pr_analyzer.observability.logging import LogContext, setup_logging

__all__ = ["LogContext", "setup_logging"]
