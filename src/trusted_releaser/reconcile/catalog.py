"""Desired governance resources for a trusted release setup."""

from __future__ import annotations

from trusted_releaser.schemas.governance import (
    BranchRulesetResource,
    EnvironmentResource,
    Label,
    LabelResource,
    TagRulesetResource,
)
from trusted_releaser.schemas.plan import RunConfiguration

BRANCH_RULESET_NAME = "Protect main branch"
TAG_RULESET_NAME = "Protect all tags"
RELEASE_STATUS_CHECK = "release-approval"

# Version bump labels read by the release workflow. Fixed; not configurable.
BUMP_LABELS: tuple[Label, ...] = (
    Label(
        name="bump:major",
        color="#d73a49",
        description="For breaking changes that require a major version bump",
    ),
    Label(
        name="bump:minor",
        color="#a2eeef",
        description="For new features that require a minor version bump",
    ),
    Label(
        name="bump:patch",
        color="#7057ff",
        description="For bug fixes that require a patch version bump",
    ),
)


def branch_ruleset(config: RunConfiguration) -> BranchRulesetResource:
    return BranchRulesetResource(
        name=BRANCH_RULESET_NAME,
        required_approvals=config.required_approvals,
    )


def release_environment(
    config: RunConfiguration,
    *,
    default_branch: str,
    invoking_user: str,
) -> EnvironmentResource:
    """Release environment definition; reviewers default to the invoking user."""
    handles = config.reviewer_handles
    if config.reviewers_requested and not handles:
        handles = (invoking_user,)
    return EnvironmentResource(
        name=config.environment_name,
        deployment_branch=config.deployment_branch or default_branch,
        reviewers_requested=config.reviewers_requested,
        reviewer_handles=handles if config.reviewers_requested else (),
    )


def tag_ruleset(config: RunConfiguration) -> TagRulesetResource:
    return TagRulesetResource(
        name=TAG_RULESET_NAME,
        environment_name=config.environment_name,
        status_check_context=RELEASE_STATUS_CHECK,
        integration_id=config.integration_id,
    )


def bump_labels() -> tuple[LabelResource, ...]:
    return tuple(LabelResource(label=label) for label in BUMP_LABELS)
