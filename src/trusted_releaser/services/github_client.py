"""Async GitHub API client for repository governance resources.

Uses GitHub REST API v3 to:
- Read repository identity and the invoking user
- List, fetch and create repository rulesets
- Read and create deployment environments and their branch policies
- Read and create labels
- Resolve user handles to numeric ids

Reference: https://docs.github.com/en/rest/repos/rules
"""

import logging
from typing import Any
from urllib.parse import quote

import httpx

from trusted_releaser.config import get_settings

logger = logging.getLogger(__name__)


class GitHubAPIError(Exception):
    """Base exception for GitHub API errors."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class GitHubRateLimitError(GitHubAPIError):
    """Raised when GitHub API rate limit is exceeded."""

    pass


class GitHubNotFoundError(GitHubAPIError):
    """Raised when requested resource is not found."""

    pass


class GitHubClient:
    """
    Async GitHub API client for repository governance.

    Handles authentication, rate limiting, and error responses. Retries are
    not attempted; a failed call surfaces as a GitHubAPIError.
    """

    RULESETS_PAGE_SIZE = 100

    def __init__(
        self,
        token: str | None = None,
        base_url: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """
        Initialize GitHub client.

        Args:
            token: GitHub token (or uses GITHUB_TOKEN env var)
            base_url: GitHub API base URL (default: https://api.github.com)
            transport: Optional httpx transport, used by tests
        """
        settings = get_settings()
        self.token = token or settings.github_token
        self.base_url = (base_url or settings.github_api_base_url).rstrip("/")
        self.timeout = settings.github_request_timeout_seconds
        self._transport = transport

        if not self.token:
            logger.warning("GitHub token not configured - governance API calls will fail")

        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> "GitHubClient":
        """Enter async context."""
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            headers=self._build_headers(),
            timeout=httpx.Timeout(self.timeout, connect=10.0),
            transport=self._transport,
        )
        return self

    async def __aexit__(self, *args: Any) -> None:
        """Exit async context."""
        if self._client:
            await self._client.aclose()
            self._client = None

    def _build_headers(self) -> dict[str, str]:
        """Build request headers with authentication."""
        headers = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
        }
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    async def _request(
        self,
        method: str,
        path: str,
        **kwargs: Any,
    ) -> httpx.Response:
        """
        Make an API request with error handling.

        Raises:
            GitHubRateLimitError: If rate limit exceeded
            GitHubNotFoundError: If resource not found
            GitHubAPIError: For other API errors
        """
        if not self._client:
            raise RuntimeError("Client not initialized. Use 'async with' context.")

        response = await self._client.request(method, path, **kwargs)

        # Handle rate limiting
        if response.status_code == 403:
            remaining = response.headers.get("X-RateLimit-Remaining", "0")
            if remaining == "0":
                reset_time = response.headers.get("X-RateLimit-Reset", "unknown")
                raise GitHubRateLimitError(
                    f"GitHub API rate limit exceeded. Resets at {reset_time}",
                    status_code=403,
                )

        # Handle not found
        if response.status_code == 404:
            raise GitHubNotFoundError(
                f"Resource not found: {path}",
                status_code=404,
            )

        # Handle other errors
        if response.status_code >= 400:
            raise GitHubAPIError(
                f"GitHub API error: {response.status_code} - {response.text}",
                status_code=response.status_code,
            )

        return response

    async def get_repository(self, repo: str) -> dict[str, Any]:
        """
        Get repository details, including its default branch.

        Args:
            repo: Repository in "owner/repo" format
        """
        logger.debug(f"Fetching repository {repo}")
        response = await self._request("GET", f"/repos/{repo}")
        return response.json()

    async def get_authenticated_user(self) -> dict[str, Any]:
        """Get the user the token belongs to."""
        response = await self._request("GET", "/user")
        return response.json()

    async def get_user(self, handle: str) -> dict[str, Any]:
        """
        Get a user by login.

        Args:
            handle: GitHub login

        Returns:
            User data; "id" is the stable numeric identity
        """
        logger.debug(f"Resolving user {handle}")
        response = await self._request("GET", f"/users/{quote(handle, safe='')}")
        return response.json()

    async def list_rulesets(self, repo: str) -> list[dict[str, Any]]:
        """
        List ruleset summaries for a repository.

        Summaries carry id, name, target and enforcement but not
        conditions or rules; use get_ruleset for those.

        Args:
            repo: Repository in "owner/repo" format

        Returns:
            Ruleset summaries in listing order, across all pages
        """
        logger.debug(f"Listing rulesets for {repo}")
        rulesets: list[dict[str, Any]] = []
        page = 1
        while True:
            response = await self._request(
                "GET",
                f"/repos/{repo}/rulesets",
                params={"per_page": self.RULESETS_PAGE_SIZE, "page": page},
            )
            batch = response.json() or []
            rulesets.extend(batch)
            if len(batch) < self.RULESETS_PAGE_SIZE:
                return rulesets
            page += 1

    async def get_ruleset(self, repo: str, ruleset_id: int) -> dict[str, Any]:
        """
        Get a ruleset with its conditions and rules.

        Args:
            repo: Repository in "owner/repo" format
            ruleset_id: Ruleset ID
        """
        logger.debug(f"Fetching ruleset {ruleset_id} from {repo}")
        response = await self._request("GET", f"/repos/{repo}/rulesets/{ruleset_id}")
        return response.json()

    async def create_ruleset(self, repo: str, payload: dict[str, Any]) -> dict[str, Any]:
        """
        Create a repository ruleset.

        Args:
            repo: Repository in "owner/repo" format
            payload: Ruleset definition (name, target, enforcement, conditions, rules)
        """
        logger.info(f"Creating ruleset '{payload.get('name')}' on {repo}")
        response = await self._request("POST", f"/repos/{repo}/rulesets", json=payload)
        return response.json()

    async def get_environment(self, repo: str, name: str) -> dict[str, Any]:
        """Get a deployment environment by name."""
        logger.debug(f"Fetching environment {name} from {repo}")
        response = await self._request(
            "GET",
            f"/repos/{repo}/environments/{quote(name, safe='')}",
        )
        return response.json()

    async def create_or_update_environment(
        self,
        repo: str,
        name: str,
        payload: dict[str, Any],
    ) -> dict[str, Any]:
        """
        Create or update a deployment environment.

        Args:
            repo: Repository in "owner/repo" format
            name: Environment name
            payload: Protection settings (deployment_branch_policy, reviewers)
        """
        logger.info(f"Putting environment '{name}' on {repo}")
        response = await self._request(
            "PUT",
            f"/repos/{repo}/environments/{quote(name, safe='')}",
            json=payload,
        )
        return response.json()

    async def add_deployment_branch_policy(
        self,
        repo: str,
        environment: str,
        branch: str,
    ) -> dict[str, Any]:
        """
        Allow deployments to an environment from a named branch.

        Args:
            repo: Repository in "owner/repo" format
            environment: Environment name
            branch: Branch name pattern
        """
        logger.info(f"Adding deployment branch policy '{branch}' to environment '{environment}'")
        response = await self._request(
            "POST",
            f"/repos/{repo}/environments/{quote(environment, safe='')}/deployment-branch-policies",
            json={"name": branch, "type": "branch"},
        )
        return response.json()

    async def get_label(self, repo: str, name: str) -> dict[str, Any]:
        """Get a label by name."""
        logger.debug(f"Fetching label {name} from {repo}")
        response = await self._request("GET", f"/repos/{repo}/labels/{quote(name, safe='')}")
        return response.json()

    async def create_label(self, repo: str, payload: dict[str, Any]) -> dict[str, Any]:
        """
        Create a label.

        Args:
            repo: Repository in "owner/repo" format
            payload: Label definition (name, color without '#', description)
        """
        logger.info(f"Creating label '{payload.get('name')}' on {repo}")
        response = await self._request("POST", f"/repos/{repo}/labels", json=payload)
        return response.json()
