"""Schemas for repository governance resources (rulesets, environments, labels)."""

from __future__ import annotations

import re
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

_HEX_COLOR = re.compile(r"^[0-9a-f]{6}$")

DEFAULT_BRANCH_MARKER = "~DEFAULT_BRANCH"
ALL_REFS_MARKER = "~ALL"


class RefNameCondition(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    include: tuple[str, ...] = ()
    exclude: tuple[str, ...] = ()

    @field_validator("include", "exclude", mode="before")
    @classmethod
    def _none_as_empty(cls, value: Any) -> Any:
        return () if value is None else value


class RulesetConditions(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    ref_name: RefNameCondition = Field(default_factory=RefNameCondition)

    @field_validator("ref_name", mode="before")
    @classmethod
    def _none_as_empty(cls, value: Any) -> Any:
        return {} if value is None else value


class RulesetRule(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    type: str
    parameters: dict[str, Any] | None = None


class Ruleset(BaseModel):
    """A repository ruleset as returned by the rulesets API."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: int | None = None
    name: str
    target: str = "branch"
    enforcement: str = "active"
    conditions: RulesetConditions = Field(default_factory=RulesetConditions)
    rules: tuple[RulesetRule, ...] = ()

    @field_validator("conditions", mode="before")
    @classmethod
    def _none_as_empty(cls, value: Any) -> Any:
        return {} if value is None else value

    @field_validator("rules", mode="before")
    @classmethod
    def _none_as_no_rules(cls, value: Any) -> Any:
        return () if value is None else value

    @property
    def includes(self) -> tuple[str, ...]:
        return self.conditions.ref_name.include


class Label(BaseModel):
    """A repository label. Colors are stored without the leading '#'."""

    model_config = ConfigDict(frozen=True)

    name: str
    color: str
    description: str = ""

    @field_validator("color", mode="before")
    @classmethod
    def _normalize_color(cls, value: Any) -> str:
        color = str(value).strip().lstrip("#").lower()
        if not _HEX_COLOR.match(color):
            raise ValueError(f"label color must be 6 hex digits, got {value!r}")
        return color


class Reviewer(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["User", "Team"] = "User"
    id: int


class RepositoryContext(BaseModel):
    """Identity of the repository being reconciled and of the invoking user."""

    model_config = ConfigDict(frozen=True)

    full_name: str
    default_branch: str
    current_user_login: str
    current_user_id: int


# ── Governed resources ──────────────────────────────────────────────


class BranchRulesetResource(BaseModel):
    """Branch protection for the repository default branch."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["branch_ruleset"] = "branch_ruleset"
    name: str = "Protect main branch"
    required_approvals: int = Field(default=0, ge=0)

    @property
    def key(self) -> str:
        return self.name

    @property
    def title(self) -> str:
        return "Branch Protection Ruleset"

    def payload(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "target": "branch",
            "enforcement": "active",
            "conditions": {
                "ref_name": {"include": [DEFAULT_BRANCH_MARKER], "exclude": []},
            },
            "rules": [
                {"type": "deletion"},
                {"type": "required_signatures"},
                {
                    "type": "pull_request",
                    "parameters": {
                        "required_approving_review_count": self.required_approvals,
                        "dismiss_stale_reviews_on_push": False,
                        "require_code_owner_review": False,
                        "require_last_push_approval": False,
                        "required_review_thread_resolution": False,
                    },
                },
                {"type": "non_fast_forward"},
            ],
        }


class EnvironmentResource(BaseModel):
    """Deployment environment gated to one branch, optionally with reviewers."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["environment"] = "environment"
    name: str = "release"
    deployment_branch: str
    reviewers_requested: bool = False
    reviewer_handles: tuple[str, ...] = ()

    @property
    def key(self) -> str:
        return self.name

    @property
    def title(self) -> str:
        return "Release Environment"

    def payload(self, reviewers: list[Reviewer] | None = None) -> dict[str, Any]:
        body: dict[str, Any] = {
            "deployment_branch_policy": {
                "protected_branches": False,
                "custom_branch_policies": True,
            },
        }
        if self.reviewers_requested:
            body["reviewers"] = [r.model_dump() for r in reviewers or []]
        return body


class TagRulesetResource(BaseModel):
    """Tag protection requiring a release deployment and approval check."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["tag_ruleset"] = "tag_ruleset"
    name: str = "Protect all tags"
    environment_name: str = "release"
    status_check_context: str = "release-approval"
    integration_id: int = 15368

    @property
    def key(self) -> str:
        return self.name

    @property
    def title(self) -> str:
        return "Tag Protection Ruleset"

    def payload(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "target": "tag",
            "enforcement": "active",
            "conditions": {
                "ref_name": {"include": [ALL_REFS_MARKER], "exclude": []},
            },
            "rules": [
                {"type": "deletion"},
                {
                    "type": "required_deployments",
                    "parameters": {
                        "required_deployment_environments": [self.environment_name],
                    },
                },
                {
                    "type": "required_status_checks",
                    "parameters": {
                        "required_status_checks": [
                            {
                                "context": self.status_check_context,
                                "integration_id": self.integration_id,
                            }
                        ],
                        "strict_required_status_checks_policy": False,
                    },
                },
            ],
        }


class LabelResource(BaseModel):
    """One label of the bump label catalog."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["label"] = "label"
    label: Label

    @property
    def key(self) -> str:
        return self.label.name

    @property
    def title(self) -> str:
        return f"Label '{self.label.name}'"

    def payload(self) -> dict[str, Any]:
        return self.label.model_dump()


GovernedResource = Annotated[
    BranchRulesetResource | EnvironmentResource | TagRulesetResource | LabelResource,
    Field(discriminator="kind"),
]
