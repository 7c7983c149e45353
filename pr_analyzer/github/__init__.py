"""
GitHub integration package.

This package handles all GitHub API interactions:
- API client wrapper
- PR metadata and diff fetching
"""

from pr_analyzer.github.client import GitHubClient, GitHubError
from pr_analyzer.github.diff_fetcher import DiffFetcher, PRUrl, parse_pr_url

__all__ = ["GitHubClient", "GitHubError", "DiffFetcher", "PRUrl", "parse_pr_url"]
