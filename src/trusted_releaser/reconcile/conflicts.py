"""Detect existing rulesets that overlap the protection we intend to create.

Matching is purely syntactic: a branch ruleset conflicts when its include
list names the default branch through the ``~DEFAULT_BRANCH`` marker, the
bare branch name or the ``refs/heads/`` form. Exclude lists, enforcement
state and ruleset names are not considered.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from trusted_releaser.reconcile.catalog import TAG_RULESET_NAME
from trusted_releaser.schemas.governance import DEFAULT_BRANCH_MARKER, Ruleset


@dataclass(frozen=True)
class ConflictReport:
    branch_conflict: str | None = None
    tag_conflicts: tuple[str, ...] = ()


def default_branch_refs(default_branch: str) -> frozenset[str]:
    return frozenset({DEFAULT_BRANCH_MARKER, default_branch, f"refs/heads/{default_branch}"})


def find_default_branch_conflict(rulesets: Iterable[Ruleset], default_branch: str) -> str | None:
    """Return the name of the first branch ruleset covering the default branch."""
    refs = default_branch_refs(default_branch)
    for ruleset in rulesets:
        if ruleset.target != "branch":
            continue
        if any(include in refs for include in ruleset.includes):
            return ruleset.name
    return None


def find_tag_conflicts(
    rulesets: Iterable[Ruleset],
    own_name: str = TAG_RULESET_NAME,
) -> tuple[str, ...]:
    """Names of all tag rulesets other than our own. Advisory only."""
    return tuple(r.name for r in rulesets if r.target == "tag" and r.name != own_name)


def detect_conflicts(rulesets: Iterable[Ruleset], default_branch: str) -> ConflictReport:
    rulesets = tuple(rulesets)
    return ConflictReport(
        branch_conflict=find_default_branch_conflict(rulesets, default_branch),
        tag_conflicts=find_tag_conflicts(rulesets),
    )
