"""
Agent module for orchestrating analysis runs.

This module provides the concurrent analyzer runner.
"""

from pr_analyzer.agents.runner import AnalyzerRunner, analyze_pull_request, default_analyzers

__all__ = ["AnalyzerRunner", "analyze_pull_request", "default_analyzers"]
