"""
Analyzer runner.

Runs a fixed, named set of analyzers concurrently over one pull request.
A failure in one analyzer is isolated into a DegradedResult and never
cancels or affects its siblings.
"""

import asyncio
import logging
import time
from typing import Dict, List, Optional, Sequence

from pr_analyzer.analysis.pull_request import PullRequest
from pr_analyzer.config import ProjectConfig
from pr_analyzer.observability.logging import LogContext
from pr_analyzer.review.report import build_report
from pr_analyzer.review.schemas import AnalyzerOutcome, DegradedResult, Report
from pr_analyzer.static_analysis.base import Analyzer
from pr_analyzer.static_analysis.complexity import ComplexityAnalyzer
from pr_analyzer.static_analysis.security import SecurityAnalyzer
from pr_analyzer.static_analysis.style import StyleAnalyzer

logger = logging.getLogger(__name__)


class AnalyzerRunner:
    """Registry of analyzers with concurrent fan-out/fan-in execution."""

    def __init__(self, analyzers: Sequence[Analyzer]):
        """
        Initialize runner.

        Args:
            analyzers: Analyzers in report order

        Raises:
            ValueError: If two analyzers share a name
        """
        self.analyzers: Dict[str, Analyzer] = {}
        for analyzer in analyzers:
            if analyzer.name in self.analyzers:
                raise ValueError(f"Duplicate analyzer name: {analyzer.name}")
            self.analyzers[analyzer.name] = analyzer

    @property
    def names(self) -> List[str]:
        return list(self.analyzers)

    def get_analyzer(self, name: str) -> Analyzer:
        """
        Get an analyzer by name.

        Raises:
            KeyError: If no analyzer has this name
        """
        return self.analyzers[name]

    async def run(self, pr: PullRequest) -> List[AnalyzerOutcome]:
        """
        Run every analyzer concurrently and wait for all of them to settle.

        Args:
            pr: Pull request, shared read-only by all analyzers

        Returns:
            List[AnalyzerOutcome]: One outcome per analyzer, in registry order
        """
        with LogContext(pr_number=pr.number):
            return list(await asyncio.gather(
                *(self._run_one(analyzer, pr) for analyzer in self.analyzers.values())
            ))

    async def analyze(self, pr: PullRequest) -> Report:
        """
        Run all analyzers and aggregate their outcomes.

        Args:
            pr: Pull request to analyze

        Returns:
            Report: Aggregated report in registry order
        """
        outcomes = await self.run(pr)
        return build_report(pr, outcomes, order=self.names)

    async def _run_one(self, analyzer: Analyzer, pr: PullRequest) -> AnalyzerOutcome:
        """Run a single analyzer, converting any failure into a DegradedResult."""
        start_time = time.monotonic()
        try:
            result = await analyzer.analyze(pr)
        except Exception as e:
            duration_ms = (time.monotonic() - start_time) * 1000
            logger.error(
                f"Analyzer {analyzer.name} failed",
                extra={
                    "analyzer": analyzer.name,
                    "duration_ms": duration_ms,
                    "error_type": type(e).__name__,
                },
                exc_info=True,
            )
            return DegradedResult(
                analyzer_name=analyzer.name,
                title=analyzer.title,
                error_type=type(e).__name__,
                reason=str(e) or type(e).__name__,
            )

        duration_ms = (time.monotonic() - start_time) * 1000
        logger.info(
            f"Analyzer {analyzer.name} completed",
            extra={
                "analyzer": analyzer.name,
                "duration_ms": duration_ms,
                "findings": len(result.findings),
                "risk_level": result.risk_level.value,
            }
        )
        return result


def default_analyzers(config: Optional[ProjectConfig] = None) -> List[Analyzer]:
    """
    Build the built-in analyzers.

    Args:
        config: Project configuration (defaults to built-in rules)

    Returns:
        List[Analyzer]: Security, complexity and style analyzers, in that order
    """
    config = config or ProjectConfig()
    return [
        SecurityAnalyzer(config.security),
        ComplexityAnalyzer(config.complexity),
        StyleAnalyzer(config.style),
    ]


async def analyze_pull_request(
    pr: PullRequest,
    config: Optional[ProjectConfig] = None,
    timeout: Optional[float] = None,
) -> Report:
    """
    Analyze a pull request with the built-in analyzers.

    Args:
        pr: Pull request to analyze
        config: Project configuration
        timeout: Optional wall-clock limit in seconds for the whole run.
            Scans already running in worker threads finish in the
            background; their results are discarded.

    Returns:
        Report: Aggregated report

    Raises:
        asyncio.TimeoutError: If the run exceeds the timeout
    """
    runner = AnalyzerRunner(default_analyzers(config))

    if timeout is None:
        return await runner.analyze(pr)
    return await asyncio.wait_for(runner.analyze(pr), timeout=timeout)
