"""Plain-text rendering of plans and run reports."""

from __future__ import annotations

from trusted_releaser.schemas.governance import LabelResource
from trusted_releaser.schemas.plan import (
    ExecutionPlan,
    PlanDecision,
    PlanEntry,
    RunConfiguration,
    RunReport,
    StepStatus,
)

_DECISION_TEXT = {
    PlanDecision.CREATE: "Will be created",
    PlanDecision.SKIP_EXISTS: "Already exists, will be skipped",
    PlanDecision.SKIP_CONFLICT: "Conflicts with an existing ruleset, will be skipped",
}

_STATUS_MARK = {
    StepStatus.APPLIED: "✓",
    StepStatus.SKIPPED: "-",
    StepStatus.FAILED: "✗",
    StepStatus.PENDING: "…",
}


def render_header(plan: ExecutionPlan, config: RunConfiguration) -> list[str]:
    lines = [
        f"Setting up GitHub repository: {plan.repository.full_name}",
        f"Current user: {plan.repository.current_user_login}",
        f"Default branch: {plan.repository.default_branch}",
    ]
    if config.dry_run:
        lines.append("DRY RUN MODE: No changes will be made")
    return lines


def _group(plan: ExecutionPlan) -> list[tuple[str, list[PlanEntry]]]:
    groups: list[tuple[str, list[PlanEntry]]] = []
    labels: list[PlanEntry] = []
    for entry in plan.entries:
        if isinstance(entry.resource, LabelResource):
            labels.append(entry)
        else:
            groups.append((entry.resource.title, [entry]))
    if labels:
        groups.append(("Bump Labels", labels))
    return groups


def render_plan(plan: ExecutionPlan) -> list[str]:
    lines = ["=== DETAILED EXECUTION PLAN ===", ""]
    groups = _group(plan)
    for index, (title, entries) in enumerate(groups, start=1):
        lines.append(f"[{index}/{len(groups)}] {title}")
        for entry in entries:
            prefix = f"  {entry.resource.key}: " if len(entries) > 1 else "  Status: "
            lines.append(f"{prefix}{_DECISION_TEXT[entry.decision]}")
            lines.append(f"    {entry.reason}")
            lines.extend(f"  Warning: {w}" for w in entry.warnings)
        lines.append("")

    lines.append("=== SUMMARY ===")
    if plan.actionable_count == 0:
        lines.append("No changes will be made (all resources already exist)")
    else:
        lines.append(f"Total changes to be made: {plan.actionable_count}")
    return lines


def render_report(report: RunReport) -> list[str]:
    lines = ["", "Summary of changes:"]
    for step in report.steps:
        lines.append(f"  {_STATUS_MARK[step.status]} {step.resource.title}: {step.detail}")
    if report.warnings:
        lines.append("")
        lines.append("Warnings:")
        lines.extend(f"  ! {w}" for w in report.warnings)
    if report.failure:
        lines.append("")
        lines.append(f"Failed: {report.failure}")
    lines.append("")
    lines.append("You can view and manage the rulesets at:")
    lines.append(f"https://github.com/{report.plan.repository.full_name}/settings/rules")
    return lines
