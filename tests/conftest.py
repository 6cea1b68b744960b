"""Test configuration and fixtures."""

from __future__ import annotations

import itertools
from collections.abc import Callable
from typing import Any

import pytest
from trusted_releaser.config import get_settings
from trusted_releaser.schemas.plan import RunConfiguration
from trusted_releaser.services.github_client import GitHubAPIError, GitHubNotFoundError

MUTATING_OPERATIONS = {
    "create_ruleset",
    "create_or_update_environment",
    "add_deployment_branch_policy",
    "create_label",
}


class FakeGitHubClient:
    """In-memory stand-in for GitHubClient that records every call."""

    def __init__(
        self,
        *,
        default_branch: str = "main",
        login: str = "octocat",
        user_id: int = 583231,
        rulesets: list[dict[str, Any]] | None = None,
        environments: tuple[str, ...] = (),
        labels: tuple[str, ...] = (),
        users: dict[str, int] | None = None,
    ) -> None:
        self.repository = {"full_name": "acme/widgets", "default_branch": default_branch}
        self.user = {"login": login, "id": user_id}
        self._ids = itertools.count(1000)
        self.rulesets: list[dict[str, Any]] = []
        for ruleset in rulesets or []:
            self.rulesets.append({"id": next(self._ids), **ruleset})
        self.environments: dict[str, dict[str, Any]] = {name: {} for name in environments}
        self.branch_policies: list[tuple[str, str]] = []
        self.labels: dict[str, dict[str, Any]] = {name: {"name": name} for name in labels}
        self.users = {login: user_id} if users is None else dict(users)
        self.calls: list[tuple[str, Any]] = []
        self.failures: dict[str, Exception] = {}

    async def __aenter__(self) -> FakeGitHubClient:
        return self

    async def __aexit__(self, *args: Any) -> None:
        return None

    @property
    def mutations(self) -> list[tuple[str, Any]]:
        return [call for call in self.calls if call[0] in MUTATING_OPERATIONS]

    def _record(self, op: str, arg: Any = None, *, key: str | None = None) -> None:
        self.calls.append((op, arg))
        exc = self.failures.get(f"{op}:{key}") if key else None
        exc = exc or self.failures.get(op)
        if exc is not None:
            raise exc

    async def get_repository(self, repo: str) -> dict[str, Any]:
        self._record("get_repository", repo)
        return dict(self.repository)

    async def get_authenticated_user(self) -> dict[str, Any]:
        self._record("get_authenticated_user")
        return dict(self.user)

    async def get_user(self, handle: str) -> dict[str, Any]:
        self._record("get_user", handle, key=handle)
        if handle not in self.users:
            raise GitHubNotFoundError(f"Resource not found: /users/{handle}", status_code=404)
        return {"login": handle, "id": self.users[handle]}

    async def list_rulesets(self, repo: str) -> list[dict[str, Any]]:
        self._record("list_rulesets", repo)
        return [
            {k: r[k] for k in ("id", "name", "target", "enforcement") if k in r}
            for r in self.rulesets
        ]

    async def get_ruleset(self, repo: str, ruleset_id: int) -> dict[str, Any]:
        self._record("get_ruleset", ruleset_id)
        for ruleset in self.rulesets:
            if ruleset["id"] == ruleset_id:
                return dict(ruleset)
        raise GitHubNotFoundError(f"Resource not found: ruleset {ruleset_id}", status_code=404)

    async def create_ruleset(self, repo: str, payload: dict[str, Any]) -> dict[str, Any]:
        self._record("create_ruleset", payload, key=payload["name"])
        created = {"id": next(self._ids), **payload}
        self.rulesets.append(created)
        return created

    async def get_environment(self, repo: str, name: str) -> dict[str, Any]:
        self._record("get_environment", name)
        if name not in self.environments:
            raise GitHubNotFoundError(f"Resource not found: environment {name}", status_code=404)
        return {"name": name, **self.environments[name]}

    async def create_or_update_environment(
        self, repo: str, name: str, payload: dict[str, Any]
    ) -> dict[str, Any]:
        self._record("create_or_update_environment", payload)
        self.environments[name] = payload
        return {"name": name, **payload}

    async def add_deployment_branch_policy(
        self, repo: str, environment: str, branch: str
    ) -> dict[str, Any]:
        self._record("add_deployment_branch_policy", branch)
        self.branch_policies.append((environment, branch))
        return {"name": branch, "type": "branch"}

    async def get_label(self, repo: str, name: str) -> dict[str, Any]:
        self._record("get_label", name)
        if name not in self.labels:
            raise GitHubNotFoundError(f"Resource not found: label {name}", status_code=404)
        return dict(self.labels[name])

    async def create_label(self, repo: str, payload: dict[str, Any]) -> dict[str, Any]:
        self._record("create_label", payload, key=payload["name"])
        if payload["name"] in self.labels:
            raise GitHubAPIError("GitHub API error: 422 - already_exists", status_code=422)
        self.labels[payload["name"]] = dict(payload)
        return dict(payload)


@pytest.fixture(autouse=True)
def _clear_settings_cache() -> None:
    get_settings.cache_clear()


@pytest.fixture
def fake_client() -> FakeGitHubClient:
    """A repository with no governance resources yet."""
    return FakeGitHubClient()


@pytest.fixture
def make_config() -> Callable[..., RunConfiguration]:
    def _make(**overrides: Any) -> RunConfiguration:
        options: dict[str, Any] = {"repo": "acme/widgets", "auto_approve": True}
        options.update(overrides)
        return RunConfiguration(**options)

    return _make


@pytest.fixture
def make_ruleset() -> Callable[..., dict[str, Any]]:
    """API-shaped ruleset detail; defaults to a default-branch ruleset."""

    def _make(
        name: str = "Custom Protection",
        include: list[str] | None = None,
        target: str = "branch",
    ) -> dict[str, Any]:
        return {
            "name": name,
            "target": target,
            "enforcement": "active",
            "conditions": {"ref_name": {"include": include or ["~DEFAULT_BRANCH"], "exclude": []}},
            "rules": [{"type": "deletion"}],
        }

    return _make


@pytest.fixture
def make_client() -> type[FakeGitHubClient]:
    return FakeGitHubClient
