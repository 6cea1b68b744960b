from __future__ import annotations

import pytest
from pydantic import ValidationError
from trusted_releaser.reconcile.catalog import BUMP_LABELS, release_environment
from trusted_releaser.reconcile.errors import ConfigurationError
from trusted_releaser.schemas.governance import (
    EnvironmentResource,
    Label,
    Reviewer,
    Ruleset,
)
from trusted_releaser.schemas.plan import RunConfiguration


@pytest.mark.parametrize("raw", ["#D73A49", "d73a49", " #d73a49 "])
def test_label_color_is_normalized(raw: str) -> None:
    assert Label(name="x", color=raw).color == "d73a49"


@pytest.mark.parametrize("raw", ["red", "#fff", "12345g", ""])
def test_label_color_must_be_six_hex_digits(raw: str) -> None:
    with pytest.raises(ValidationError):
        Label(name="x", color=raw)


def test_bump_label_catalog_is_fixed() -> None:
    assert [(label.name, label.color) for label in BUMP_LABELS] == [
        ("bump:major", "d73a49"),
        ("bump:minor", "a2eeef"),
        ("bump:patch", "7057ff"),
    ]


def test_ruleset_tolerates_missing_conditions_and_extra_fields() -> None:
    ruleset = Ruleset.model_validate(
        {
            "id": 7,
            "name": "Org push rules",
            "target": "push",
            "source_type": "Organization",
            "conditions": None,
            "rules": None,
        }
    )
    assert ruleset.includes == ()
    assert ruleset.rules == ()


def test_ruleset_parses_api_detail() -> None:
    ruleset = Ruleset.model_validate(
        {
            "id": 1,
            "name": "Custom Protection",
            "target": "branch",
            "enforcement": "evaluate",
            "conditions": {"ref_name": {"include": ["refs/heads/main"], "exclude": None}},
            "rules": [{"type": "pull_request", "parameters": {"required_approving_review_count": 1}}],
        }
    )
    assert ruleset.includes == ("refs/heads/main",)
    assert ruleset.conditions.ref_name.exclude == ()
    assert ruleset.rules[0].parameters == {"required_approving_review_count": 1}


def test_environment_payload_includes_resolved_reviewers_only_when_requested() -> None:
    requested = EnvironmentResource(deployment_branch="main", reviewers_requested=True)
    plain = EnvironmentResource(deployment_branch="main")

    assert requested.payload([Reviewer(id=5)])["reviewers"] == [{"type": "User", "id": 5}]
    assert requested.payload()["reviewers"] == []
    assert "reviewers" not in plain.payload([Reviewer(id=5)])


def test_release_environment_uses_explicit_handles(make_config) -> None:
    config = make_config(reviewers_requested=True, reviewer_handles=("alice", "bob"))
    environment = release_environment(config, default_branch="trunk", invoking_user="octocat")
    assert environment.reviewer_handles == ("alice", "bob")
    assert environment.deployment_branch == "trunk"


def test_run_configuration_splits_and_trims_handles() -> None:
    config = RunConfiguration(repo="acme/widgets", reviewer_handles=" alice, @bob ,, ")
    assert config.reviewer_handles == ("alice", "bob")


@pytest.mark.parametrize(
    "options",
    [
        {"repo": "acme/widgets", "required_approvals": -1},
        {"repo": "not-a-repo"},
        {"repo": "acme/widgets/extra"},
    ],
)
def test_invalid_run_configuration_raises_configuration_error(options) -> None:
    with pytest.raises(ConfigurationError, match="Invalid configuration"):
        RunConfiguration.from_options(**options)


def test_run_configuration_is_immutable(make_config) -> None:
    config = make_config()
    with pytest.raises(ValidationError):
        config.dry_run = True
