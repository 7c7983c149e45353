"""
PR fetcher module.

Fetches pull request metadata and unified diff from GitHub and builds the
immutable PullRequest consumed by the analyzers.
"""

import logging
from dataclasses import dataclass
from typing import Optional
from urllib.parse import urlparse

from pr_analyzer.analysis.pull_request import (
    PullRequest,
    PullRequestMetadata,
    build_pull_request,
)
from pr_analyzer.config import settings
from pr_analyzer.github.client import GitHubClient, GitHubError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PRUrl:
    """Components of a GitHub pull request URL."""
    owner: str
    repo: str
    pr_number: int


def parse_pr_url(url: str) -> PRUrl:
    """
    Parse a GitHub pull request URL.

    Accepts https://github.com/{owner}/{repo}/pull/{number}.

    Args:
        url: Pull request URL

    Returns:
        PRUrl: Owner, repository and PR number

    Raises:
        ValueError: If the URL is not a GitHub pull request URL
    """
    parsed = urlparse(url.strip())
    if parsed.scheme not in ("http", "https") or parsed.hostname != "github.com":
        raise ValueError(f"Invalid PR URL: {url}")

    segments = [segment for segment in parsed.path.split("/") if segment]
    if len(segments) != 4 or segments[2] != "pull" or not segments[3].isdigit():
        raise ValueError(f"Invalid PR URL: {url}")

    return PRUrl(owner=segments[0], repo=segments[1], pr_number=int(segments[3]))


class DiffFetcher:
    """
    Fetches pull requests from GitHub.

    Responsibilities:
    - Retrieve PR metadata and unified diff
    - Enforce the diff size limit
    - Parse the diff into a PullRequest
    """

    def __init__(self, github_client: GitHubClient, max_diff_size_bytes: Optional[int] = None):
        """
        Initialize diff fetcher.

        Args:
            github_client: GitHub API client instance
            max_diff_size_bytes: Size limit (defaults to settings.MAX_DIFF_SIZE_BYTES)
        """
        self.github_client = github_client
        self.max_diff_size_bytes = (
            max_diff_size_bytes if max_diff_size_bytes is not None else settings.MAX_DIFF_SIZE_BYTES
        )

    async def fetch_pull_request(self, pr_url: PRUrl) -> PullRequest:
        """
        Fetch and parse a pull request.

        Args:
            pr_url: Parsed pull request URL

        Returns:
            PullRequest: Metadata totals verbatim plus parsed files

        Raises:
            GitHubError: If a request fails or the diff exceeds the size limit
            ParseError: If the diff is malformed
        """
        logger.info(
            "Fetching PR",
            extra={
                "owner": pr_url.owner,
                "repo": pr_url.repo,
                "pr_number": pr_url.pr_number,
            }
        )

        pr_data = self.github_client.get_pull_request(
            owner=pr_url.owner,
            repo=pr_url.repo,
            pr_number=pr_url.pr_number,
        )
        metadata = PullRequestMetadata.from_github(pr_data)

        unified_diff = self.github_client.get_pull_request_diff(
            owner=pr_url.owner,
            repo=pr_url.repo,
            pr_number=pr_url.pr_number,
        )

        diff_size_bytes = len(unified_diff.encode("utf-8"))
        if diff_size_bytes > self.max_diff_size_bytes:
            logger.warning(
                "Diff is too large",
                extra={
                    "diff_size_bytes": diff_size_bytes,
                    "max_size_bytes": self.max_diff_size_bytes,
                }
            )
            raise GitHubError(
                f"Diff is {diff_size_bytes} bytes, exceeds limit of {self.max_diff_size_bytes}"
            )

        pr = build_pull_request(metadata, unified_diff)

        logger.info(
            "PR fetched",
            extra={
                "pr_number": pr.number,
                "files_changed": pr.files_changed,
                "diff_size_bytes": diff_size_bytes,
            }
        )

        return pr
