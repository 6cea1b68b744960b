"""Top-level reconciliation run: inspect, plan, confirm, execute."""

from __future__ import annotations

import logging
import uuid
from collections.abc import Callable

from trusted_releaser.core.logging import repo_ctx, run_id_ctx
from trusted_releaser.reconcile.conflicts import detect_conflicts
from trusted_releaser.reconcile.executor import Executor
from trusted_releaser.reconcile.gate import ConfirmationGate
from trusted_releaser.reconcile.inspector import RemoteStateInspector
from trusted_releaser.reconcile.planner import build_plan
from trusted_releaser.reconcile.presenter import render_header
from trusted_releaser.schemas.plan import GateDecision, RunConfiguration, RunReport
from trusted_releaser.services.github_client import GitHubClient

logger = logging.getLogger(__name__)


async def reconcile(
    client: GitHubClient,
    config: RunConfiguration,
    *,
    gate: ConfirmationGate | None = None,
    out: Callable[[str], None] = print,
) -> RunReport:
    """
    Bring the repository's governance resources to the desired state.

    Raises:
        InspectionError: If remote state could not be read; nothing was changed.

    A failed mandatory step does not raise; it is reported through
    ``RunReport.failure`` together with the steps that did apply.
    """
    run_token = run_id_ctx.set(uuid.uuid4().hex[:12])
    repo_token = repo_ctx.set(config.repo)
    try:
        return await _reconcile(client, config, gate=gate, out=out)
    finally:
        run_id_ctx.reset(run_token)
        repo_ctx.reset(repo_token)


async def _reconcile(
    client: GitHubClient,
    config: RunConfiguration,
    *,
    gate: ConfirmationGate | None,
    out: Callable[[str], None],
) -> RunReport:
    snapshot = await RemoteStateInspector(client, config.repo).snapshot(config)
    conflicts = detect_conflicts(snapshot.rulesets, snapshot.repository.default_branch)
    if conflicts.branch_conflict:
        logger.info(
            "Default branch already protected",
            extra={"ruleset": conflicts.branch_conflict},
        )
    if conflicts.tag_conflicts:
        logger.warning(
            "Existing tag rulesets found",
            extra={"rulesets": list(conflicts.tag_conflicts)},
        )

    plan = build_plan(snapshot, conflicts, config)
    for line in render_header(plan, config):
        out(line)
    out("")

    decision = (gate or ConfirmationGate(out=out)).decide(plan, config)
    if decision == GateDecision.CANCELLED:
        return RunReport(plan=plan, gate=decision, warnings=plan.warnings)

    outcome = await Executor(client, config.repo).execute(
        plan,
        dry_run=decision == GateDecision.DRY_RUN,
    )
    report = RunReport(
        plan=plan,
        gate=decision,
        steps=outcome.steps,
        warnings=outcome.warnings,
        failure=str(outcome.failure) if outcome.failure else None,
    )
    logger.info(
        "Reconciliation finished",
        extra={
            "gate": decision.value,
            "mutations": report.mutations,
            "warnings": len(report.warnings),
            "failed": not report.succeeded,
        },
    )
    return report
