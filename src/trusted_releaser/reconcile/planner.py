"""Build the ordered create-or-skip plan from an inspection snapshot."""

from __future__ import annotations

from trusted_releaser.reconcile import catalog
from trusted_releaser.reconcile.conflicts import ConflictReport
from trusted_releaser.reconcile.inspector import InspectionSnapshot
from trusted_releaser.schemas.plan import (
    ExecutionPlan,
    PlanDecision,
    PlanEntry,
    RunConfiguration,
)


def build_plan(
    snapshot: InspectionSnapshot,
    conflicts: ConflictReport,
    config: RunConfiguration,
) -> ExecutionPlan:
    """Decide, per governed resource, whether it must be created.

    Order is fixed: branch ruleset, environment, tag ruleset, labels.
    """
    repository = snapshot.repository
    entries: list[PlanEntry] = []

    branch = catalog.branch_ruleset(config)
    if snapshot.branch_ruleset_exists:
        entries.append(
            PlanEntry(
                resource=branch,
                decision=PlanDecision.SKIP_EXISTS,
                reason=f"Ruleset '{branch.name}' already exists",
            )
        )
    elif conflicts.branch_conflict:
        entries.append(
            PlanEntry(
                resource=branch,
                decision=PlanDecision.SKIP_CONFLICT,
                reason=(
                    f"Default branch ({repository.default_branch}) already protected by "
                    f"ruleset '{conflicts.branch_conflict}'; skipped to avoid conflicts"
                ),
            )
        )
    else:
        entries.append(
            PlanEntry(
                resource=branch,
                decision=PlanDecision.CREATE,
                reason=(
                    "Restrict deletions, require signed commits, require PR approval "
                    f"({config.required_approvals}), block force pushes on default branch "
                    f"({repository.default_branch})"
                ),
            )
        )

    environment = catalog.release_environment(
        config,
        default_branch=repository.default_branch,
        invoking_user=repository.current_user_login,
    )
    if snapshot.environment_exists:
        entries.append(
            PlanEntry(
                resource=environment,
                decision=PlanDecision.SKIP_EXISTS,
                reason=f"Environment '{environment.name}' already exists",
            )
        )
    else:
        reviewers = ", ".join(environment.reviewer_handles) or "None"
        entries.append(
            PlanEntry(
                resource=environment,
                decision=PlanDecision.CREATE,
                reason=(
                    f"Deployment branches: {environment.deployment_branch} only; "
                    f"required reviewers: {reviewers}"
                ),
            )
        )

    tag = catalog.tag_ruleset(config)
    tag_warnings: tuple[str, ...] = ()
    if conflicts.tag_conflicts:
        tag_warnings = (
            "Existing tag protection rulesets found: "
            f"{', '.join(conflicts.tag_conflicts)}; this may create conflicting rules",
        )
    if snapshot.tag_ruleset_exists:
        entries.append(
            PlanEntry(
                resource=tag,
                decision=PlanDecision.SKIP_EXISTS,
                reason=f"Ruleset '{tag.name}' already exists",
                warnings=tag_warnings,
            )
        )
    else:
        entries.append(
            PlanEntry(
                resource=tag,
                decision=PlanDecision.CREATE,
                reason=(
                    f"Restrict deletions, require deployment to '{tag.environment_name}', "
                    f"require '{tag.status_check_context}' status check "
                    f"(GitHub Actions, ID: {tag.integration_id}) on all tags"
                ),
                warnings=tag_warnings,
            )
        )

    for label in catalog.bump_labels():
        if label.key in snapshot.existing_labels:
            entries.append(
                PlanEntry(
                    resource=label,
                    decision=PlanDecision.SKIP_EXISTS,
                    reason=f"Label '{label.key}' already exists",
                )
            )
        else:
            entries.append(
                PlanEntry(
                    resource=label,
                    decision=PlanDecision.CREATE,
                    reason=label.label.description,
                )
            )

    return ExecutionPlan(repository=repository, entries=tuple(entries))
