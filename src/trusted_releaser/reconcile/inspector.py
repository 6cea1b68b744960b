"""Read-only inspection of a repository's governance resources."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Awaitable
from dataclasses import dataclass
from typing import Any

import httpx

from trusted_releaser.reconcile.catalog import (
    BRANCH_RULESET_NAME,
    BUMP_LABELS,
    TAG_RULESET_NAME,
)
from trusted_releaser.reconcile.errors import InspectionError
from trusted_releaser.schemas.governance import RepositoryContext, Ruleset
from trusted_releaser.schemas.plan import RunConfiguration
from trusted_releaser.services.github_client import (
    GitHubAPIError,
    GitHubClient,
    GitHubNotFoundError,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class InspectionSnapshot:
    """Everything the planner needs, read once before any decision."""

    repository: RepositoryContext
    branch_ruleset_exists: bool
    tag_ruleset_exists: bool
    environment_exists: bool
    existing_labels: frozenset[str]
    rulesets: tuple[Ruleset, ...]


class RemoteStateInspector:
    """
    Answers existence questions about a repository without side effects.

    A 404 means "absent". Any other API or transport failure raises
    InspectionError so that nothing is mutated on incomplete knowledge.
    """

    def __init__(self, client: GitHubClient, repo: str):
        self._client = client
        self._repo = repo

    async def describe_repository(self) -> RepositoryContext:
        """Resolve the repository's default branch and the invoking user."""
        repository = await self._read("repository", self._client.get_repository(self._repo))
        user = await self._read("authenticated user", self._client.get_authenticated_user())
        return RepositoryContext(
            full_name=repository.get("full_name") or self._repo,
            default_branch=repository["default_branch"],
            current_user_login=user["login"],
            current_user_id=user["id"],
        )

    async def ruleset_named(self, name: str) -> bool:
        return any(summary.get("name") == name for summary in await self._summaries())

    async def list_rulesets(self) -> AsyncIterator[Ruleset]:
        """Yield every ruleset with conditions and rules, in listing order.

        Each call re-fetches from the API.
        """
        async for ruleset in self._details(await self._summaries()):
            yield ruleset

    async def environment_exists(self, name: str) -> bool:
        return await self._exists(
            f"environment '{name}'",
            self._client.get_environment(self._repo, name),
        )

    async def label_exists(self, name: str) -> bool:
        return await self._exists(
            f"label '{name}'",
            self._client.get_label(self._repo, name),
        )

    async def snapshot(self, config: RunConfiguration) -> InspectionSnapshot:
        """Run one full inspection pass."""
        repository = await self.describe_repository()

        # One listing backs both name checks and the detail fetches.
        summaries = await self._summaries()
        names = {summary.get("name") for summary in summaries}
        branch_exists = BRANCH_RULESET_NAME in names
        tag_exists = TAG_RULESET_NAME in names
        rulesets = tuple([ruleset async for ruleset in self._details(summaries)])

        environment_exists = await self.environment_exists(config.environment_name)

        existing_labels: set[str] = set()
        for label in BUMP_LABELS:
            if await self.label_exists(label.name):
                existing_labels.add(label.name)

        logger.info(
            "Inspected repository governance state",
            extra={
                "default_branch": repository.default_branch,
                "rulesets": len(rulesets),
                "branch_ruleset_exists": branch_exists,
                "tag_ruleset_exists": tag_exists,
                "environment_exists": environment_exists,
                "existing_labels": sorted(existing_labels),
            },
        )

        return InspectionSnapshot(
            repository=repository,
            branch_ruleset_exists=branch_exists,
            tag_ruleset_exists=tag_exists,
            environment_exists=environment_exists,
            existing_labels=frozenset(existing_labels),
            rulesets=rulesets,
        )

    async def _summaries(self) -> list[dict[str, Any]]:
        try:
            return await self._client.list_rulesets(self._repo)
        except GitHubNotFoundError:
            return []
        except (GitHubAPIError, httpx.HTTPError) as exc:
            raise InspectionError("rulesets", exc) from exc

    async def _details(self, summaries: list[dict[str, Any]]) -> AsyncIterator[Ruleset]:
        for summary in summaries:
            ruleset_id = summary.get("id")
            if ruleset_id is None:
                continue
            try:
                detail = await self._client.get_ruleset(self._repo, ruleset_id)
            except GitHubNotFoundError:
                logger.debug("Ruleset disappeared during listing", extra={"ruleset_id": ruleset_id})
                continue
            except (GitHubAPIError, httpx.HTTPError) as exc:
                raise InspectionError(f"ruleset {ruleset_id}", exc) from exc
            yield Ruleset.model_validate(detail)

    async def _exists(self, query: str, request: Awaitable[Any]) -> bool:
        try:
            await request
        except GitHubNotFoundError:
            return False
        except (GitHubAPIError, httpx.HTTPError) as exc:
            raise InspectionError(query, exc) from exc
        return True

    async def _read(self, query: str, request: Awaitable[dict[str, Any]]) -> dict[str, Any]:
        try:
            return await request
        except (GitHubAPIError, httpx.HTTPError) as exc:
            raise InspectionError(query, exc) from exc
