"""
GitHub API client wrapper.

Provides a small interface for the two pull request endpoints the analyzer
needs, with retry logic and error handling.
"""

import logging
from typing import Dict, Any, Optional
import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

logger = logging.getLogger(__name__)


class GitHubError(Exception):
    """Raised when a GitHub API request fails."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class GitHubClient:
    """
    GitHub REST API client.

    Handles:
    - Optional token authentication
    - API requests with retry logic
    - Error handling and logging
    """

    DIFF_MEDIA_TYPE = "application/vnd.github.v3.diff"
    JSON_MEDIA_TYPE = "application/vnd.github.v3+json"

    def __init__(
        self,
        token: Optional[str] = None,
        api_url: str = "https://api.github.com",
        timeout: int = 30,
    ):
        """
        Initialize GitHub API client.

        Args:
            token: Personal access token (unauthenticated if None)
            api_url: GitHub API base URL
            timeout: Request timeout in seconds
        """
        self.token = token
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout

        if not token:
            logger.warning(
                "No GitHub token configured; using unauthenticated requests "
                "(public repositories only, low rate limit)"
            )

        # Configure session with retry logic
        self.session = requests.Session()

        retry_strategy = Retry(
            total=3,
            backoff_factor=1,
            status_forcelist=[429, 500, 502, 503, 504],
            allowed_methods=["GET"],
        )

        adapter = HTTPAdapter(max_retries=retry_strategy)
        self.session.mount("http://", adapter)
        self.session.mount("https://", adapter)

    def _get_headers(self, accept: str) -> Dict[str, str]:
        """
        Get request headers.

        Args:
            accept: Media type to request

        Returns:
            Dict[str, str]: Request headers
        """
        headers = {
            "Accept": accept,
            "User-Agent": "pr-analyzer",
            "X-GitHub-Api-Version": "2022-11-28",
        }
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def _get(self, url: str, accept: str) -> requests.Response:
        """Issue a GET request, converting failures into GitHubError."""
        try:
            response = self.session.get(url, headers=self._get_headers(accept), timeout=self.timeout)
        except requests.RequestException as e:
            logger.error("GitHub request failed", extra={"url": url, "error": str(e)})
            raise GitHubError(f"GitHub request failed: {e}") from e

        if not response.ok:
            logger.error(
                "GitHub API error",
                extra={"url": url, "status_code": response.status_code},
            )
            raise GitHubError(
                f"GitHub API returned {response.status_code} for {url}: {response.text[:200]}",
                status_code=response.status_code,
            )

        return response

    def get_pull_request(self, owner: str, repo: str, pr_number: int) -> Dict[str, Any]:
        """
        Get pull request details.

        Args:
            owner: Repository owner
            repo: Repository name
            pr_number: Pull request number

        Returns:
            Dict: Pull request data

        Raises:
            GitHubError: If the request fails
        """
        url = f"{self.api_url}/repos/{owner}/{repo}/pulls/{pr_number}"
        response = self._get(url, self.JSON_MEDIA_TYPE)

        try:
            return response.json()
        except ValueError as e:
            raise GitHubError(f"Invalid JSON in pull request response: {e}") from e

    def get_pull_request_diff(self, owner: str, repo: str, pr_number: int) -> str:
        """
        Get the unified diff of a pull request.

        Args:
            owner: Repository owner
            repo: Repository name
            pr_number: Pull request number

        Returns:
            str: Unified diff text

        Raises:
            GitHubError: If the request fails
        """
        url = f"{self.api_url}/repos/{owner}/{repo}/pulls/{pr_number}"
        response = self._get(url, self.DIFF_MEDIA_TYPE)
        return response.text
