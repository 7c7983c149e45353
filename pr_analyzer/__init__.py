"""PR Analyzer: pattern-based risk assessment for pull request diffs."""

__version__ = "0.1.0"
