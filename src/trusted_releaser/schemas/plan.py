"""Schemas for run configuration, execution plans and run reports."""

from __future__ import annotations

import re
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from trusted_releaser.reconcile.errors import ConfigurationError
from trusted_releaser.schemas.governance import (
    GovernedResource,
    LabelResource,
    RepositoryContext,
)

_REPO_FULL_NAME = re.compile(r"^[A-Za-z0-9_.-]+/[A-Za-z0-9_.-]+$")


class RunConfiguration(BaseModel):
    """Operator input for one reconciliation run."""

    model_config = ConfigDict(frozen=True)

    repo: str
    required_approvals: int = Field(default=0, ge=0)
    reviewers_requested: bool = False
    reviewer_handles: tuple[str, ...] = ()
    dry_run: bool = False
    auto_approve: bool = False
    deployment_branch: str | None = None
    environment_name: str = "release"
    integration_id: int = 15368

    @field_validator("repo")
    @classmethod
    def _validate_repo(cls, value: str) -> str:
        value = value.strip()
        if not _REPO_FULL_NAME.match(value):
            raise ValueError("repository must be given as OWNER/NAME")
        return value

    @field_validator("reviewer_handles", mode="before")
    @classmethod
    def _split_handles(cls, value: Any) -> tuple[str, ...]:
        if value is None:
            return ()
        if isinstance(value, str):
            value = value.split(",")
        return tuple(h.strip().lstrip("@") for h in value if h and h.strip().lstrip("@"))

    @classmethod
    def from_options(cls, **options: Any) -> RunConfiguration:
        """Build a configuration, raising ConfigurationError on invalid input."""
        try:
            return cls(**options)
        except ValidationError as exc:
            problems = "; ".join(
                f"{'.'.join(str(p) for p in err['loc']) or 'input'}: {err['msg']}"
                for err in exc.errors()
            )
            raise ConfigurationError(f"Invalid configuration: {problems}") from exc


class PlanDecision(str, Enum):
    CREATE = "create"
    SKIP_EXISTS = "skip_exists"
    SKIP_CONFLICT = "skip_conflict"


class PlanEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    resource: GovernedResource
    decision: PlanDecision
    reason: str
    warnings: tuple[str, ...] = ()


class ExecutionPlan(BaseModel):
    """Ordered create-or-skip decisions for every governed resource."""

    model_config = ConfigDict(frozen=True)

    repository: RepositoryContext
    entries: tuple[PlanEntry, ...]

    @property
    def creates(self) -> tuple[PlanEntry, ...]:
        return tuple(e for e in self.entries if e.decision == PlanDecision.CREATE)

    @property
    def actionable_count(self) -> int:
        """Number of changes for the summary; the label set counts once."""
        count = sum(1 for e in self.creates if not isinstance(e.resource, LabelResource))
        if any(isinstance(e.resource, LabelResource) for e in self.creates):
            count += 1
        return count

    @property
    def warnings(self) -> tuple[str, ...]:
        return tuple(w for e in self.entries for w in e.warnings)


class GateDecision(str, Enum):
    PROCEED = "proceed"
    DRY_RUN = "dry_run"
    CANCELLED = "cancelled"
    NOTHING_TO_DO = "nothing_to_do"


class StepStatus(str, Enum):
    PENDING = "pending"
    APPLIED = "applied"
    SKIPPED = "skipped"
    FAILED = "failed"


class StepResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    resource: GovernedResource
    status: StepStatus
    detail: str
    warnings: tuple[str, ...] = ()


class RunReport(BaseModel):
    """Outcome of one reconciliation run."""

    model_config = ConfigDict(frozen=True)

    plan: ExecutionPlan
    gate: GateDecision
    steps: tuple[StepResult, ...] = ()
    warnings: tuple[str, ...] = ()
    failure: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.failure is None

    @property
    def mutations(self) -> int:
        return sum(1 for s in self.steps if s.status == StepStatus.APPLIED)
