"""
Report aggregation.

Combines per-analyzer outcomes into a single Report. The result does not
depend on the order in which analyzers finished: outcomes are sorted into
the caller-defined analyzer order before anything is computed.
"""

import logging
from typing import Optional, Sequence

from pr_analyzer.analysis.pull_request import PullRequest
from pr_analyzer.review.schemas import AnalysisResult, AnalyzerOutcome, Report

logger = logging.getLogger(__name__)


DEFAULT_ANALYZER_ORDER = ["security", "complexity", "style"]


def build_report(
    pr: PullRequest,
    outcomes: Sequence[AnalyzerOutcome],
    order: Optional[Sequence[str]] = None,
) -> Report:
    """
    Assemble the final report.

    Args:
        pr: Analyzed pull request (metadata is echoed verbatim)
        outcomes: One AnalysisResult or DegradedResult per analyzer, any order
        order: Analyzer names in display order; unknown names sort after
            these, alphabetically

    Returns:
        Report: Outcomes in order, with overall risk over available results

    Raises:
        ValueError: If two outcomes share an analyzer name
    """
    order = list(order if order is not None else DEFAULT_ANALYZER_ORDER)
    position = {name: index for index, name in enumerate(order)}

    names = [outcome.analyzer_name for outcome in outcomes]
    duplicates = sorted({name for name in names if names.count(name) > 1})
    if duplicates:
        raise ValueError(f"Duplicate analyzer names: {', '.join(duplicates)}")

    ordered = sorted(
        outcomes,
        key=lambda o: (position.get(o.analyzer_name, len(order)), o.analyzer_name),
    )

    available = [o.risk_level for o in ordered if isinstance(o, AnalysisResult)]
    overall_risk = max(available) if available else None

    report = Report(
        pr_number=pr.number,
        pr_title=pr.title,
        author=pr.author,
        files_changed=pr.files_changed,
        additions=pr.additions,
        deletions=pr.deletions,
        outcomes={o.analyzer_name: o for o in ordered},
        overall_risk=overall_risk,
    )

    if not report.is_complete:
        logger.warning(
            "Report coverage incomplete",
            extra={
                "pr_number": pr.number,
                "degraded": [d.analyzer_name for d in report.degraded],
                "available": len(available),
            }
        )

    return report
