"""
Analyzer capability shared by the built-in risk scanners.

Every analyzer is a pure function of the pull request plus its
configuration: it never performs I/O and keeps no state between calls.
"""

import asyncio
import fnmatch
import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Iterator, List, Pattern, Sequence, Tuple

from pr_analyzer.analysis.diff_parser import DiffFile, DiffLine
from pr_analyzer.analysis.pull_request import PullRequest
from pr_analyzer.config import PatternRule
from pr_analyzer.review.schemas import AnalysisResult, Finding

logger = logging.getLogger(__name__)


class AnalysisError(Exception):
    """Raised when an analyzer cannot complete."""
    pass


class Analyzer(ABC):
    """Abstract base class for risk analyzers."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Stable identifier used as the report key."""
        pass

    @property
    def title(self) -> str:
        """Display heading for the report section."""
        return self.name

    async def analyze(self, pr: PullRequest) -> AnalysisResult:
        """
        Analyze a pull request.

        The synchronous scan runs in a worker thread so the event loop stays
        free to enforce timeouts while analyzers are busy.

        Args:
            pr: Pull request to analyze (shared, read-only)

        Returns:
            AnalysisResult: Findings and derived risk level

        Raises:
            AnalysisError: If the analysis cannot complete
        """
        return await asyncio.to_thread(self.scan, pr)

    def scan(self, pr: PullRequest) -> AnalysisResult:
        """Synchronous analysis body; subclasses override this or analyze()."""
        raise NotImplementedError(f"{type(self).__name__} does not implement scan()")

    def result(self, findings: List[Finding]) -> AnalysisResult:
        """Wrap findings into this analyzer's result."""
        return AnalysisResult.from_findings(self.name, self.title, findings)


# ============================================================================
# Line helpers
# ============================================================================

TEST_PATH_PATTERNS = (
    "test_*.py",
    "*_test.py",
    "*_test.go",
    "*_test.rs",
    "*.test.js",
    "*.test.ts",
    "*.spec.js",
    "*.spec.ts",
)

COMMENT_PREFIXES = ("//", "#", "/*", "*", "--")

MANIFEST_FILES = (
    "Cargo.toml",
    "package.json",
    "pyproject.toml",
    "go.mod",
    "Gemfile",
)

# Cargo.toml / pyproject.toml keys that describe the package, not a dependency
_PACKAGE_KEYS = (
    "name", "version", "edition", "description", "authors", "license", "readme",
    "requires-python", "dependencies", "optional-dependencies",
)


def is_test_path(path: str) -> bool:
    """True for files that live in a test directory or follow a test naming scheme."""
    parts = path.split("/")
    if any(part in ("test", "tests", "__tests__", "spec") for part in parts[:-1]):
        return True
    return any(fnmatch.fnmatch(parts[-1], pattern) for pattern in TEST_PATH_PATTERNS)


def is_comment(content: str) -> bool:
    return content.lstrip().startswith(COMMENT_PREFIXES)


def is_manifest(path: str) -> bool:
    """True for dependency manifest files."""
    basename = path.rsplit("/", 1)[-1]
    if basename in MANIFEST_FILES:
        return True
    return fnmatch.fnmatch(basename, "requirements*.txt")


def iter_added_lines(pr: PullRequest) -> Iterator[Tuple[DiffFile, DiffLine]]:
    """Yield (file, line) for every added line in the pull request."""
    for diff_file in pr.files:
        for line in diff_file.added_lines():
            yield diff_file, line


def added_dependencies(diff_file: DiffFile) -> List[str]:
    """
    Extract dependency entries added to a manifest file.

    Args:
        diff_file: A file for which is_manifest() holds

    Returns:
        List[str]: Added dependency lines, stripped
    """
    basename = diff_file.path.rsplit("/", 1)[-1]
    deps = []

    for line in diff_file.added_lines():
        content = line.content.strip()
        if not content or content.startswith(("[", "#", "//")):
            continue

        if basename in ("Cargo.toml", "pyproject.toml"):
            if "=" in content and not content.startswith(_PACKAGE_KEYS):
                deps.append(content)
            elif basename == "pyproject.toml" and re.match(r'^["\'][A-Za-z0-9_.\-\[\]]+', content):
                # Entry in a dependencies = [...] array
                deps.append(content)
        elif basename == "package.json":
            if ":" in content and '"' in content and not content.endswith("{"):
                deps.append(content)
        elif basename == "go.mod":
            if "/" in content and not content.startswith("module"):
                deps.append(content)
        elif basename == "Gemfile":
            if content.startswith("gem "):
                deps.append(content)
        else:
            # requirements*.txt: every non-comment line is a requirement
            if not content.startswith("-"):
                deps.append(content)

    return deps


# ============================================================================
# Pattern rules
# ============================================================================

@dataclass(frozen=True)
class CompiledRule:
    """A PatternRule with its regex compiled."""
    rule: PatternRule
    regex: Pattern

    def applies_to(self, path: str) -> bool:
        if self.rule.skip_test_files and is_test_path(path):
            return False
        if not self.rule.file_globs:
            return True
        basename = path.rsplit("/", 1)[-1]
        return any(
            fnmatch.fnmatch(path, glob) or fnmatch.fnmatch(basename, glob)
            for glob in self.rule.file_globs
        )


def compile_pattern(pattern: str, case_sensitive: bool = True) -> Pattern:
    """
    Compile a configured regex.

    Raises:
        AnalysisError: If the pattern is not a valid regular expression
    """
    try:
        return re.compile(pattern, 0 if case_sensitive else re.IGNORECASE)
    except re.error as e:
        logger.warning("Invalid pattern", extra={"pattern": pattern, "error": str(e)})
        raise AnalysisError(f"Invalid pattern {pattern!r}: {e}") from e


def compile_rules(rules: Sequence[PatternRule]) -> List[CompiledRule]:
    """Compile pattern rules, failing on the first invalid regex."""
    return [
        CompiledRule(rule=rule, regex=compile_pattern(rule.pattern, rule.case_sensitive))
        for rule in rules
    ]


def match_rules(pr: PullRequest, rules: Sequence[CompiledRule]) -> List[Finding]:
    """
    Match compiled rules against every added line.

    Within a file, lines after a ``#[cfg(test)]`` marker count as test code
    for rules with skip_test_files set.

    Args:
        pr: Pull request
        rules: Compiled rules

    Returns:
        List[Finding]: One finding per (rule, line) match, in diff order
    """
    findings = []

    for diff_file in pr.files:
        active = [rule for rule in rules if rule.applies_to(diff_file.path)]
        if not active:
            continue

        in_test_module = False
        for line in _lines_in_new_file_order(diff_file):
            content = line.content
            if content.strip().startswith("#[cfg(test)]"):
                in_test_module = True
            if not line.is_addition:
                continue

            comment = is_comment(content)
            for compiled in active:
                if compiled.rule.skip_comments and comment:
                    continue
                if compiled.rule.skip_test_files and in_test_module:
                    continue
                if compiled.regex.search(content):
                    findings.append(Finding(
                        message=compiled.rule.message,
                        severity=compiled.rule.severity,
                        file=diff_file.path,
                        line=line.new_lineno,
                        rule_id=compiled.rule.id,
                    ))

    return findings


def _lines_in_new_file_order(diff_file: DiffFile) -> Iterator[DiffLine]:
    """Lines visible in the new version of the file (context and additions)."""
    for hunk in diff_file.hunks:
        for line in hunk.lines:
            if line.new_lineno is not None:
                yield line
