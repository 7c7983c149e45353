"""
Style & architecture analyzer module.

Checks added code against project conventions:
- Error handling (unwrap in non-test Rust code, bare except)
- Unfinished code markers (todo!, unimplemented!, FIXME)
- Formatting (line length, trailing whitespace)
- Naming of new files and types
- Architectural layer boundaries on import lines
"""

import logging
import re
from typing import List, Optional

from pr_analyzer.analysis.diff_parser import DiffFile
from pr_analyzer.analysis.pull_request import PullRequest
from pr_analyzer.config import StyleConfig
from pr_analyzer.review.schemas import AnalysisResult, Finding, RiskLevel
from pr_analyzer.static_analysis.base import (
    Analyzer,
    compile_rules,
    iter_added_lines,
    match_rules,
)

logger = logging.getLogger(__name__)


def is_snake_case(name: str) -> bool:
    """lower_snake_case: lowercase ASCII, digits and single underscores."""
    return bool(re.fullmatch(r"[a-z0-9]+(?:_[a-z0-9]+)*", name))


def is_pascal_case(name: str) -> bool:
    """PascalCase: starts uppercase, alphanumeric only."""
    return bool(re.fullmatch(r"[A-Z][A-Za-z0-9]*", name))


class StyleAnalyzer(Analyzer):
    """
    Convention and architecture scanner.

    Pattern checks come from StyleConfig.rules; naming, formatting and
    layer checks are built in and driven by the remaining StyleConfig fields.
    """

    SNAKE_CASE_EXTENSIONS = (".rs", ".py")
    NAMING_EXEMPT_STEMS = ("mod", "lib", "main", "__init__", "__main__")

    TYPE_DEFINITION_PATTERN = re.compile(
        r"^\s*(?:pub(?:\([^)]*\))?\s+)?(?:struct|enum|trait|class)\s+([A-Za-z_]\w*)"
    )

    # Module path named by an import statement
    IMPORT_PATTERNS = [
        re.compile(r"^\s*from\s+([\w.]+)\s+import\b"),
        re.compile(r"^\s*import\s+([\w.]+)"),
        re.compile(r"^\s*(?:pub\s+)?use\s+([\w:]+)"),
        re.compile(r"^\s*import\b.*\bfrom\s+[\"']([^\"']+)[\"']"),
        re.compile(r"\brequire\(\s*[\"']([^\"']+)[\"']\s*\)"),
    ]
    MODULE_SEPARATORS = re.compile(r"::|[./@]")

    def __init__(self, config: Optional[StyleConfig] = None):
        """
        Initialize style analyzer.

        Args:
            config: Style configuration (defaults to built-in rules, no layers)
        """
        self.config = config or StyleConfig()

    @property
    def name(self) -> str:
        return "style"

    @property
    def title(self) -> str:
        return "Style & Architecture Assessment"

    def scan(self, pr: PullRequest) -> AnalysisResult:
        """
        Run style analysis on a pull request.

        Args:
            pr: Pull request to analyze

        Returns:
            AnalysisResult: Style findings and risk level

        Raises:
            AnalysisError: If a configured rule pattern is not a valid regex
        """
        rules = compile_rules(self.config.rules)

        findings: List[Finding] = []
        findings.extend(match_rules(pr, rules))
        findings.extend(self._check_formatting(pr))
        findings.extend(self._check_naming_conventions(pr))
        findings.extend(self._check_layer_boundaries(pr))

        logger.info(
            "Style analysis completed",
            extra={
                "pr_number": pr.number,
                "findings": len(findings),
                "layers": len(self.config.layers),
            }
        )

        return self.result(findings)

    def _check_formatting(self, pr: PullRequest) -> List[Finding]:
        findings = []
        limit = self.config.max_line_length

        for diff_file, line in iter_added_lines(pr):
            content = line.content.rstrip("\r")
            if len(content) > limit:
                findings.append(Finding(
                    message=f"Line too long ({len(content)} > {limit} characters)",
                    severity=RiskLevel.LOW,
                    file=diff_file.path,
                    line=line.new_lineno,
                    rule_id="line-length",
                ))
            if content != content.rstrip():
                findings.append(Finding(
                    message="Trailing whitespace",
                    severity=RiskLevel.LOW,
                    file=diff_file.path,
                    line=line.new_lineno,
                    rule_id="trailing-whitespace",
                ))

        return findings

    def _check_naming_conventions(self, pr: PullRequest) -> List[Finding]:
        """Check naming conventions in new files and types."""
        findings = []

        for diff_file in pr.files:
            if not diff_file.is_new:
                continue

            filename = diff_file.path.rsplit("/", 1)[-1]
            if filename.endswith(self.SNAKE_CASE_EXTENSIONS):
                stem = filename.rsplit(".", 1)[0]
                if stem not in self.NAMING_EXEMPT_STEMS and not is_snake_case(stem):
                    findings.append(Finding(
                        message=f"File name '{filename}' does not follow snake_case convention",
                        severity=RiskLevel.LOW,
                        file=diff_file.path,
                        rule_id="file-naming",
                    ))

            for line in diff_file.added_lines():
                match = self.TYPE_DEFINITION_PATTERN.match(line.content)
                if match and not is_pascal_case(match.group(1)):
                    findings.append(Finding(
                        message=f"Type '{match.group(1)}' does not follow PascalCase convention",
                        severity=RiskLevel.LOW,
                        file=diff_file.path,
                        line=line.new_lineno,
                        rule_id="type-naming",
                    ))

        return findings

    def _check_layer_boundaries(self, pr: PullRequest) -> List[Finding]:
        """
        Check architectural boundary violations.

        Layers are ordered outermost first. With direction "inward" a layer
        may only depend on layers listed after it; "outward" is the reverse.
        """
        layers = self.config.layers
        if not layers:
            return []

        findings = []
        for diff_file in pr.files:
            source_layer = self._layer_of_path(diff_file)
            if source_layer is None:
                continue

            for line in diff_file.added_lines():
                target_layer = self._imported_layer(line.content)
                if target_layer is None or target_layer == source_layer:
                    continue

                if not self._is_allowed(source_layer, target_layer):
                    findings.append(Finding(
                        message=(
                            f"Layer violation: '{source_layer}' must not depend on "
                            f"'{target_layer}' (direction: {self.config.direction})"
                        ),
                        severity=RiskLevel.MEDIUM,
                        file=diff_file.path,
                        line=line.new_lineno,
                        rule_id="layer-boundary",
                    ))

        return findings

    def _layer_of_path(self, diff_file: DiffFile) -> Optional[str]:
        """The first path component that names a configured layer."""
        for part in diff_file.path.split("/")[:-1]:
            if part in self.config.layers:
                return part
        stem = diff_file.path.rsplit("/", 1)[-1].rsplit(".", 1)[0]
        return stem if stem in self.config.layers else None

    def _imported_layer(self, content: str) -> Optional[str]:
        """The first configured layer named by an import line, if any."""
        for pattern in self.IMPORT_PATTERNS:
            match = pattern.search(content)
            if match:
                for part in self.MODULE_SEPARATORS.split(match.group(1)):
                    if part in self.config.layers:
                        return part
        return None

    def _is_allowed(self, source: str, target: str) -> bool:
        source_index = self.config.layers.index(source)
        target_index = self.config.layers.index(target)
        if self.config.direction == "inward":
            return target_index > source_index
        return target_index < source_index
