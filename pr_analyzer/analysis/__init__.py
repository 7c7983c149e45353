"""
Analysis package for PR Analyzer.

This package contains:
- Unified diff parsing into files, hunks and lines
- The immutable PullRequest model shared by all analyzers
"""

from pr_analyzer.analysis.diff_parser import DiffParser, ParseError, parse_diff
from pr_analyzer.analysis.pull_request import PullRequest, PullRequestMetadata, build_pull_request

__all__ = [
    "DiffParser",
    "ParseError",
    "parse_diff",
    "PullRequest",
    "PullRequestMetadata",
    "build_pull_request",
]
