"""Operator confirmation before any mutation."""

from __future__ import annotations

import logging
from collections.abc import Callable

from trusted_releaser.reconcile.presenter import render_plan
from trusted_releaser.schemas.plan import ExecutionPlan, GateDecision, RunConfiguration

logger = logging.getLogger(__name__)

_AFFIRMATIVE = {"y", "yes"}


class ConfirmationGate:
    """Renders the plan and asks for a single yes/no answer.

    Anything other than an explicit yes cancels the run. Cancelling is a
    normal outcome, not an error.
    """

    PROMPT = "Do you want to proceed with these changes? (y/N) "

    def __init__(
        self,
        prompt: Callable[[str], str] | None = None,
        out: Callable[[str], None] | None = None,
    ):
        self._prompt = prompt or input
        self._out = out or print

    def decide(self, plan: ExecutionPlan, config: RunConfiguration) -> GateDecision:
        if plan.actionable_count == 0:
            self._out("Nothing to do: all resources already exist or are covered.")
            return GateDecision.NOTHING_TO_DO

        if config.dry_run:
            self._render(plan)
            return GateDecision.DRY_RUN

        if config.auto_approve:
            logger.info("Confirmation skipped", extra={"changes": plan.actionable_count})
            return GateDecision.PROCEED

        self._render(plan)
        try:
            answer = self._prompt(self.PROMPT)
        except EOFError:
            answer = ""

        if answer.strip().lower() in _AFFIRMATIVE:
            return GateDecision.PROCEED

        self._out("Operation cancelled.")
        logger.info("Run cancelled at confirmation", extra={"answer": answer.strip()})
        return GateDecision.CANCELLED

    def _render(self, plan: ExecutionPlan) -> None:
        for line in render_plan(plan):
            self._out(line)
