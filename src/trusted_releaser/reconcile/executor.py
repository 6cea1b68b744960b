"""Apply the CREATE steps of an execution plan, in plan order."""

from __future__ import annotations

import logging
from dataclasses import dataclass

import httpx

from trusted_releaser.reconcile.errors import MandatoryStepFailure, OptionalStepFailure
from trusted_releaser.schemas.governance import (
    BranchRulesetResource,
    EnvironmentResource,
    LabelResource,
    Reviewer,
    TagRulesetResource,
)
from trusted_releaser.schemas.plan import (
    ExecutionPlan,
    PlanDecision,
    PlanEntry,
    StepResult,
    StepStatus,
)
from trusted_releaser.services.github_client import (
    GitHubAPIError,
    GitHubClient,
    GitHubNotFoundError,
)

logger = logging.getLogger(__name__)

_API_ERRORS = (GitHubAPIError, httpx.HTTPError)


@dataclass(frozen=True)
class ExecutionOutcome:
    steps: tuple[StepResult, ...]
    warnings: tuple[str, ...]
    failure: MandatoryStepFailure | None = None


class Executor:
    """
    Creates missing governance resources.

    Decisions come from the plan; nothing is re-inspected here. Rulesets
    and the environment are mandatory: the first failure among them stops
    the run and leaves the remaining steps pending. Labels, reviewer
    lookups and the deployment branch policy only produce warnings.
    Nothing is retried or rolled back.
    """

    def __init__(self, client: GitHubClient, repo: str):
        self._client = client
        self._repo = repo

    async def execute(self, plan: ExecutionPlan, *, dry_run: bool = False) -> ExecutionOutcome:
        steps: list[StepResult] = []
        warnings: list[str] = []

        for index, entry in enumerate(plan.entries):
            warnings.extend(entry.warnings)

            if entry.decision != PlanDecision.CREATE:
                steps.append(self._skipped(entry, entry.reason))
                continue

            if dry_run:
                steps.append(self._skipped(entry, f"[DRY RUN] Would create: {entry.reason}"))
                continue

            try:
                result = await self._apply(entry)
            except MandatoryStepFailure as exc:
                logger.error(
                    "Mandatory step failed",
                    extra={"step": exc.step, "error": str(exc.cause)},
                )
                steps.append(
                    StepResult(
                        resource=entry.resource,
                        status=StepStatus.FAILED,
                        detail=str(exc),
                    )
                )
                for remaining in plan.entries[index + 1 :]:
                    warnings.extend(remaining.warnings)
                    if remaining.decision != PlanDecision.CREATE:
                        steps.append(self._skipped(remaining, remaining.reason))
                        continue
                    steps.append(
                        StepResult(
                            resource=remaining.resource,
                            status=StepStatus.PENDING,
                            detail="Not attempted after an earlier failure",
                            warnings=remaining.warnings,
                        )
                    )
                return ExecutionOutcome(tuple(steps), tuple(warnings), failure=exc)

            steps.append(result)
            warnings.extend(result.warnings)

        return ExecutionOutcome(tuple(steps), tuple(warnings))

    async def _apply(self, entry: PlanEntry) -> StepResult:
        resource = entry.resource
        if isinstance(resource, BranchRulesetResource | TagRulesetResource):
            return await self._create_ruleset(resource)
        if isinstance(resource, EnvironmentResource):
            return await self._create_environment(resource)
        if isinstance(resource, LabelResource):
            return await self._create_label(resource)
        raise TypeError(f"Unsupported governed resource: {resource!r}")

    async def _create_ruleset(
        self,
        resource: BranchRulesetResource | TagRulesetResource,
    ) -> StepResult:
        try:
            await self._client.create_ruleset(self._repo, resource.payload())
        except _API_ERRORS as exc:
            raise MandatoryStepFailure(resource.title, exc) from exc
        return StepResult(
            resource=resource,
            status=StepStatus.APPLIED,
            detail=f"Ruleset '{resource.name}' created",
        )

    async def _create_environment(self, resource: EnvironmentResource) -> StepResult:
        warnings: list[str] = []
        reviewers: list[Reviewer] = []
        if resource.reviewers_requested:
            reviewers, warnings = await self._resolve_reviewers(resource)

        try:
            await self._client.create_or_update_environment(
                self._repo,
                resource.name,
                resource.payload(reviewers),
            )
        except _API_ERRORS as exc:
            raise MandatoryStepFailure(resource.title, exc) from exc

        try:
            await self._client.add_deployment_branch_policy(
                self._repo,
                resource.name,
                resource.deployment_branch,
            )
        except _API_ERRORS as exc:
            warning = OptionalStepFailure(
                resource.title,
                f"deployment branch policy '{resource.deployment_branch}' might already "
                f"exist or failed to add ({exc})",
            )
            logger.warning(str(warning))
            warnings.append(str(warning))

        detail = f"Environment '{resource.name}' created (deployment branch: {resource.deployment_branch}"
        if resource.reviewers_requested:
            detail += f", reviewers: {len(reviewers)}"
        detail += ")"
        return StepResult(
            resource=resource,
            status=StepStatus.APPLIED,
            detail=detail,
            warnings=tuple(warnings),
        )

    async def _resolve_reviewers(
        self,
        resource: EnvironmentResource,
    ) -> tuple[list[Reviewer], list[str]]:
        """Map handles to user ids; unresolvable handles are dropped with a warning."""
        reviewers: list[Reviewer] = []
        warnings: list[str] = []
        for handle in resource.reviewer_handles:
            try:
                user = await self._client.get_user(handle)
            except GitHubNotFoundError:
                warning = OptionalStepFailure(resource.title, f"User '{handle}' not found, skipping")
            except _API_ERRORS as exc:
                warning = OptionalStepFailure(
                    resource.title, f"User '{handle}' could not be resolved ({exc}), skipping"
                )
            else:
                reviewers.append(Reviewer(type="User", id=user["id"]))
                logger.info("Adding reviewer", extra={"handle": handle, "user_id": user["id"]})
                continue
            logger.warning(str(warning))
            warnings.append(str(warning))
        return reviewers, warnings

    async def _create_label(self, resource: LabelResource) -> StepResult:
        try:
            await self._client.create_label(self._repo, resource.payload())
        except _API_ERRORS as exc:
            already_exists = isinstance(exc, GitHubAPIError) and exc.status_code == 422
            message = "already exists" if already_exists else f"failed to create ({exc})"
            warning = OptionalStepFailure(resource.title, message)
            logger.warning(str(warning))
            return StepResult(
                resource=resource,
                status=StepStatus.SKIPPED if already_exists else StepStatus.FAILED,
                detail=f"Label '{resource.key}' {message}",
                warnings=(str(warning),),
            )
        return StepResult(
            resource=resource,
            status=StepStatus.APPLIED,
            detail=f"Label '{resource.key}' created",
        )

    @staticmethod
    def _skipped(entry: PlanEntry, detail: str) -> StepResult:
        return StepResult(
            resource=entry.resource,
            status=StepStatus.SKIPPED,
            detail=detail,
            warnings=entry.warnings,
        )
