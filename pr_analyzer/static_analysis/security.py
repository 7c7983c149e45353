"""
Security analyzer module.

Scans added lines for common vulnerability patterns:
- SQL injection through string interpolation or concatenation
- Hardcoded secrets, access keys and private keys
- Command and code injection
- Unsafe code and unsafe deserialization
- New third-party dependencies (supply-chain review)

Patterns are configuration data (see pr_analyzer.config), so projects can
add their own through the [security] table of .pr-analyzer.toml.
"""

import logging
from typing import List, Optional

from pr_analyzer.analysis.pull_request import PullRequest
from pr_analyzer.config import SecurityConfig
from pr_analyzer.review.schemas import AnalysisResult, Finding, RiskLevel
from pr_analyzer.static_analysis.base import (
    Analyzer,
    added_dependencies,
    compile_pattern,
    compile_rules,
    is_manifest,
    iter_added_lines,
    match_rules,
)

logger = logging.getLogger(__name__)


class SecurityAnalyzer(Analyzer):
    """
    Pattern-based security risk scanner.

    Runs the configured rules over every added line, flags configured
    extra patterns as HIGH, and reports new manifest dependencies.
    """

    # Supply-chain thresholds for newly added dependencies per manifest
    DEPENDENCY_HIGH = 5
    DEPENDENCY_MEDIUM = 3

    def __init__(self, config: Optional[SecurityConfig] = None):
        """
        Initialize security analyzer.

        Args:
            config: Security configuration (defaults to built-in rules)
        """
        self.config = config or SecurityConfig()

    @property
    def name(self) -> str:
        return "security"

    @property
    def title(self) -> str:
        return "Security Risk Assessment"

    def scan(self, pr: PullRequest) -> AnalysisResult:
        """
        Run security analysis on a pull request.

        Args:
            pr: Pull request to scan

        Returns:
            AnalysisResult: Security findings and risk level

        Raises:
            AnalysisError: If a configured pattern is not a valid regex
        """
        # Compiled per call so that a bad pattern degrades this run only
        rules = compile_rules(self.config.rules)

        findings: List[Finding] = []
        findings.extend(match_rules(pr, rules))
        findings.extend(self._check_custom_patterns(pr))
        findings.extend(self._check_new_dependencies(pr))

        logger.info(
            "Security analysis completed",
            extra={
                "pr_number": pr.number,
                "total_issues": len(findings),
                "by_severity": self._count_by_severity(findings),
            }
        )

        return self.result(findings)

    def _check_custom_patterns(self, pr: PullRequest) -> List[Finding]:
        """Flag added lines matching user-configured security patterns."""
        patterns = [compile_pattern(pattern) for pattern in self.config.patterns]
        if not patterns:
            return []

        findings = []
        for diff_file, line in iter_added_lines(pr):
            for regex in patterns:
                if regex.search(line.content):
                    findings.append(Finding(
                        message=f"Matches configured security pattern: {regex.pattern}",
                        severity=RiskLevel.HIGH,
                        file=diff_file.path,
                        line=line.new_lineno,
                        rule_id="custom-pattern",
                    ))
        return findings

    def _check_new_dependencies(self, pr: PullRequest) -> List[Finding]:
        """Report dependencies added to manifest files."""
        findings = []

        for diff_file in pr.files:
            if not is_manifest(diff_file.path):
                continue

            deps = added_dependencies(diff_file)
            if not deps:
                continue

            if len(deps) >= self.DEPENDENCY_HIGH:
                severity = RiskLevel.HIGH
            elif len(deps) >= self.DEPENDENCY_MEDIUM:
                severity = RiskLevel.MEDIUM
            else:
                severity = RiskLevel.LOW

            findings.append(Finding(
                message=(
                    f"{len(deps)} new dependencies added in {diff_file.path} "
                    f"(review for supply-chain risk): {', '.join(deps)}"
                ),
                severity=severity,
                file=diff_file.path,
                rule_id="new-dependency",
            ))

        return findings

    @staticmethod
    def _count_by_severity(findings: List[Finding]) -> dict:
        """Count findings by severity."""
        counts = {level.value: 0 for level in RiskLevel}
        for finding in findings:
            counts[finding.severity.value] += 1
        return counts
