from __future__ import annotations

import asyncio

import pytest
from trusted_releaser.core.logging import repo_ctx, run_id_ctx
from trusted_releaser.reconcile.errors import InspectionError
from trusted_releaser.reconcile.gate import ConfirmationGate
from trusted_releaser.reconcile.orchestrator import reconcile
from trusted_releaser.schemas.plan import GateDecision, PlanDecision, StepStatus
from trusted_releaser.services.github_client import GitHubAPIError


def _run(client, config, *, answer: str = "y", lines: list[str] | None = None):
    out = lines.append if lines is not None else (lambda _line: None)
    gate = ConfirmationGate(prompt=lambda _text: answer, out=out)
    return asyncio.run(reconcile(client, config, gate=gate, out=out))


def test_second_run_is_a_no_op(fake_client, make_config) -> None:
    config = make_config(reviewers_requested=True)

    first = _run(fake_client, config)
    assert first.gate == GateDecision.PROCEED
    assert first.mutations == 6

    fake_client.calls.clear()
    second = _run(fake_client, config)

    assert second.gate == GateDecision.NOTHING_TO_DO
    assert second.plan.actionable_count == 0
    assert second.plan.creates == ()
    assert fake_client.mutations == []
    assert all(step.status == StepStatus.SKIPPED for step in second.steps)


def test_conflicting_branch_ruleset_is_never_created(make_client, make_ruleset, make_config) -> None:
    client = make_client(rulesets=[make_ruleset("Custom Protection", include=["main"])])

    report = _run(client, make_config())

    branch = report.plan.entries[0]
    assert branch.decision == PlanDecision.SKIP_CONFLICT
    assert "Custom Protection" in branch.reason
    created = [payload["name"] for op, payload in client.mutations if op == "create_ruleset"]
    assert created == ["Protect all tags"]
    assert report.steps[0].status == StepStatus.SKIPPED


def test_existing_bump_minor_is_left_alone(make_client, make_config) -> None:
    client = make_client(labels=("bump:minor",))

    _run(client, make_config())

    created = [payload["name"] for op, payload in client.mutations if op == "create_label"]
    assert created == ["bump:major", "bump:patch"]
    assert client.labels["bump:minor"] == {"name": "bump:minor"}


def test_dry_run_plan_matches_live_plan_and_mutates_nothing(make_client, make_ruleset, make_config) -> None:
    def _client():
        return make_client(
            rulesets=[make_ruleset("Legacy tags", include=["v*"], target="tag")],
            labels=("bump:patch",),
        )

    dry_client, live_client = _client(), _client()
    lines: list[str] = []

    dry = _run(dry_client, make_config(dry_run=True), lines=lines)
    live = _run(live_client, make_config())

    assert dry.gate == GateDecision.DRY_RUN
    assert dry_client.mutations == []
    assert dry.mutations == 0
    assert dry.plan == live.plan
    assert "DRY RUN MODE: No changes will be made" in lines
    assert any("Legacy tags" in w for w in dry.warnings)


def test_cancellation_exits_cleanly_without_mutation(fake_client, make_config) -> None:
    lines: list[str] = []

    report = _run(fake_client, make_config(auto_approve=False), answer="n", lines=lines)

    assert report.gate == GateDecision.CANCELLED
    assert report.succeeded is True
    assert report.steps == ()
    assert fake_client.mutations == []
    assert "Operation cancelled." in lines


def test_inspection_failure_aborts_before_mutation(fake_client, make_config) -> None:
    fake_client.failures["get_environment"] = GitHubAPIError("GitHub API error: 401", status_code=401)

    with pytest.raises(InspectionError, match="environment 'release'"):
        _run(fake_client, make_config())
    assert fake_client.mutations == []


def test_reviewer_partial_failure_end_to_end(make_client, make_config) -> None:
    client = make_client(users={"validuser": 4242})
    config = make_config(
        reviewers_requested=True,
        reviewer_handles="validuser, ghost-does-not-exist",
    )

    report = _run(client, config)

    assert report.succeeded
    assert client.environments["release"]["reviewers"] == [{"type": "User", "id": 4242}]
    assert any("User 'ghost-does-not-exist' not found" in w for w in report.warnings)


def test_mandatory_failure_is_reported_not_raised(fake_client, make_config) -> None:
    fake_client.failures["create_ruleset:Protect main branch"] = GitHubAPIError(
        "GitHub API error: 422 - Validation Failed", status_code=422
    )

    report = _run(fake_client, make_config())

    assert report.succeeded is False
    assert "Branch Protection Ruleset" in report.failure
    assert report.mutations == 0
    assert [step.status for step in report.steps][1:] == [StepStatus.PENDING] * 5


def test_run_context_is_restored_after_each_run(fake_client, make_config) -> None:
    gate = ConfirmationGate(prompt=lambda _text: "y", out=lambda _line: None)
    seen: list[tuple[str | None, str | None]] = []

    async def _two_runs() -> None:
        for repo in ("acme/widgets", "acme/gadgets"):
            await reconcile(fake_client, make_config(repo=repo), gate=gate, out=lambda _line: None)
            seen.append((run_id_ctx.get(), repo_ctx.get()))

    asyncio.run(_two_runs())

    assert seen == [(None, None), (None, None)]


def test_run_context_is_restored_when_inspection_fails(fake_client, make_config) -> None:
    fake_client.failures["get_repository"] = GitHubAPIError("GitHub API error: 500", status_code=500)

    async def _failing_run() -> tuple[str | None, str | None]:
        with pytest.raises(InspectionError):
            await reconcile(fake_client, make_config(), out=lambda _line: None)
        return run_id_ctx.get(), repo_ctx.get()

    assert asyncio.run(_failing_run()) == (None, None)
