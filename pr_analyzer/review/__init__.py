"""
Review package for PR Analyzer.

This package contains:
- Result and report schemas
- Report aggregation
- Markdown, JSON and terminal renderers
"""

from pr_analyzer.review.schemas import (
    AnalysisResult,
    DegradedResult,
    Finding,
    Report,
    RiskLevel,
)
from pr_analyzer.review.report import build_report

__all__ = [
    "AnalysisResult",
    "DegradedResult",
    "Finding",
    "Report",
    "RiskLevel",
    "build_report",
]
