"""
Complexity analyzer module.

Estimates how hard a change is to review:
- Overall change size and number of files touched
- Per-file line delta
- New dependencies per manifest
- Growth of the public API surface
- Nesting depth of added code
"""

import logging
from typing import List, Optional

from pr_analyzer.analysis.pull_request import PullRequest
from pr_analyzer.config import ComplexityConfig
from pr_analyzer.review.schemas import AnalysisResult, Finding, RiskLevel
from pr_analyzer.static_analysis.base import (
    Analyzer,
    added_dependencies,
    compile_pattern,
    is_manifest,
    iter_added_lines,
)

logger = logging.getLogger(__name__)


class ComplexityAnalyzer(Analyzer):
    """
    Threshold-based complexity scanner.

    Change size uses the declared pull request totals; per-file checks use
    the parsed hunks.
    """

    def __init__(self, config: Optional[ComplexityConfig] = None):
        """
        Initialize complexity analyzer.

        Args:
            config: Thresholds (defaults to built-in values)
        """
        self.config = config or ComplexityConfig()

    @property
    def name(self) -> str:
        return "complexity"

    @property
    def title(self) -> str:
        return "Complexity Assessment"

    def scan(self, pr: PullRequest) -> AnalysisResult:
        """
        Run complexity analysis on a pull request.

        Args:
            pr: Pull request to analyze

        Returns:
            AnalysisResult: Complexity findings and risk level
        """
        findings: List[Finding] = []
        findings.extend(self._check_dependency_count(pr))
        findings.extend(self._check_change_size(pr))
        findings.extend(self._check_file_size(pr))
        findings.extend(self._check_api_surface(pr))
        findings.extend(self._check_nesting_depth(pr))

        logger.info(
            "Complexity analysis completed",
            extra={
                "pr_number": pr.number,
                "total_changes": pr.total_changes,
                "findings": len(findings),
            }
        )

        return self.result(findings)

    def _check_dependency_count(self, pr: PullRequest) -> List[Finding]:
        findings = []

        for diff_file in pr.files:
            if not is_manifest(diff_file.path):
                continue

            count = len(added_dependencies(diff_file))
            if count >= self.config.dependency_high:
                severity = RiskLevel.HIGH
            elif count >= self.config.dependency_medium:
                severity = RiskLevel.MEDIUM
            else:
                continue

            findings.append(Finding(
                message=f"{count} new dependencies added in {diff_file.path}",
                severity=severity,
                file=diff_file.path,
                rule_id="dependency-count",
            ))

        return findings

    def _check_change_size(self, pr: PullRequest) -> List[Finding]:
        """Evaluate change size from the declared totals."""
        findings = []
        total = pr.total_changes

        if total > self.config.very_large_change:
            findings.append(Finding(
                message=f"Very large change: {total} lines modified (+{pr.additions} -{pr.deletions})",
                severity=RiskLevel.HIGH,
                rule_id="change-size",
            ))
        elif total > self.config.large_change:
            findings.append(Finding(
                message=f"Large change: {total} lines modified (+{pr.additions} -{pr.deletions})",
                severity=RiskLevel.MEDIUM,
                rule_id="change-size",
            ))

        if pr.files_changed > self.config.very_many_files:
            findings.append(Finding(
                message=f"Very high number of files changed: {pr.files_changed}",
                severity=RiskLevel.HIGH,
                rule_id="files-changed",
            ))
        elif pr.files_changed > self.config.many_files:
            findings.append(Finding(
                message=f"High number of files changed: {pr.files_changed}",
                severity=RiskLevel.MEDIUM,
                rule_id="files-changed",
            ))

        return findings

    def _check_file_size(self, pr: PullRequest) -> List[Finding]:
        findings = []
        for diff_file in pr.files:
            delta = diff_file.additions + diff_file.deletions
            if delta > self.config.large_file_change:
                findings.append(Finding(
                    message=f"Large file change: {delta} lines (+{diff_file.additions} -{diff_file.deletions})",
                    severity=RiskLevel.MEDIUM,
                    file=diff_file.path,
                    rule_id="file-size",
                ))
        return findings

    def _check_api_surface(self, pr: PullRequest) -> List[Finding]:
        """Detect new public API items introduced."""
        patterns = [compile_pattern(pattern) for pattern in self.config.public_api_patterns]
        findings = []

        for diff_file, line in iter_added_lines(pr):
            # Python top-level definitions must start at column 0
            content = line.content if diff_file.path.endswith(".py") else line.content.lstrip()
            if any(regex.search(content) for regex in patterns):
                findings.append(Finding(
                    message=f"New public API: {content.strip()}",
                    severity=RiskLevel.LOW,
                    file=diff_file.path,
                    line=line.new_lineno,
                    rule_id="public-api",
                ))

        if len(findings) > self.config.public_api_items:
            findings.append(Finding(
                message=(
                    f"{len(findings)} new public API items introduced; "
                    "consider whether all need to be public"
                ),
                severity=RiskLevel.MEDIUM,
                rule_id="public-api-growth",
            ))

        return findings

    def _check_nesting_depth(self, pr: PullRequest) -> List[Finding]:
        findings = []

        for diff_file, line in iter_added_lines(pr):
            content = line.content
            if not content.strip():
                continue

            level = self._indent_level(content)
            if level > self.config.max_indent_level:
                findings.append(Finding(
                    message=f"Deeply nested code (indent level {level}): consider refactoring",
                    severity=RiskLevel.MEDIUM,
                    file=diff_file.path,
                    line=line.new_lineno,
                    rule_id="nesting-depth",
                ))

        return findings

    def _indent_level(self, content: str) -> int:
        """Indentation level: one per tab, one per indent_width spaces."""
        leading = content[:len(content) - len(content.lstrip(" \t"))]
        tabs = leading.count("\t")
        spaces = leading.count(" ")
        return tabs + spaces // self.config.indent_width
