"""
Pull request model shared by every analyzer.

A PullRequest is built once from fetched metadata plus the raw diff text and
is read-only from then on. The declared totals come from the hosting platform
verbatim; they are never recomputed from the parsed hunks.
"""

import logging
from dataclasses import dataclass
from importlib import resources
from typing import Any, Dict, Tuple

from pr_analyzer.analysis.diff_parser import DiffFile, parse_diff

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PullRequestMetadata:
    """Pull request header fields as reported by the hosting platform."""
    number: int
    title: str
    author: str
    files_changed: int = 0
    additions: int = 0
    deletions: int = 0

    @classmethod
    def from_github(cls, data: Dict[str, Any]) -> "PullRequestMetadata":
        """
        Build metadata from a GitHub pull request API payload.

        Args:
            data: JSON body of GET /repos/{owner}/{repo}/pulls/{number}

        Returns:
            PullRequestMetadata: Extracted fields
        """
        return cls(
            number=int(data.get("number", 0)),
            title=data.get("title") or "",
            author=(data.get("user") or {}).get("login", "unknown"),
            files_changed=int(data.get("changed_files", 0)),
            additions=int(data.get("additions", 0)),
            deletions=int(data.get("deletions", 0)),
        )


@dataclass(frozen=True)
class PullRequest:
    """A pull request: metadata plus the parsed diff."""
    number: int
    title: str
    author: str
    files_changed: int
    additions: int
    deletions: int
    files: Tuple[DiffFile, ...] = ()

    @property
    def total_changes(self) -> int:
        return self.additions + self.deletions


def build_pull_request(metadata: PullRequestMetadata, diff_text: str) -> PullRequest:
    """
    Parse diff text and combine it with metadata into a PullRequest.

    Args:
        metadata: Pull request header fields
        diff_text: Raw unified diff

    Returns:
        PullRequest: Immutable pull request

    Raises:
        ParseError: If the diff is malformed (no partial PullRequest is built)
    """
    files = parse_diff(diff_text)

    logger.info(
        "Built pull request",
        extra={
            "pr_number": metadata.number,
            "parsed_files": len(files),
            "declared_files": metadata.files_changed,
        }
    )

    return PullRequest(
        number=metadata.number,
        title=metadata.title,
        author=metadata.author,
        files_changed=metadata.files_changed,
        additions=metadata.additions,
        deletions=metadata.deletions,
        files=tuple(files),
    )


MOCK_DIFF_RESOURCE = "sample_diff.patch"


def load_mock_diff() -> str:
    """Read the bundled sample diff."""
    return resources.files("pr_analyzer.fixtures").joinpath(MOCK_DIFF_RESOURCE).read_text(encoding="utf-8")


def mock_pull_request() -> PullRequest:
    """
    Build a demo pull request from the bundled sample diff.

    The declared totals of a mock PR are taken from the parsed diff, since
    there is no hosting platform to report them.
    """
    diff_text = load_mock_diff()
    files = parse_diff(diff_text)

    metadata = PullRequestMetadata(
        number=42,
        title="Add OAuth2 login flow",
        author="alice",
        files_changed=len(files),
        additions=sum(f.additions for f in files),
        deletions=sum(f.deletions for f in files),
    )
    return build_pull_request(metadata, diff_text)
