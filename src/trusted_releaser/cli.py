from __future__ import annotations

import argparse
import asyncio
import sys

from trusted_releaser.config import Settings, get_settings
from trusted_releaser.core.logging import setup_logging
from trusted_releaser.reconcile.errors import ConfigurationError, InspectionError
from trusted_releaser.reconcile.orchestrator import reconcile
from trusted_releaser.reconcile.presenter import render_report
from trusted_releaser.schemas.plan import GateDecision, RunConfiguration, RunReport
from trusted_releaser.services.github_client import GitHubClient


def _non_negative_int(value: str) -> int:
    if not value.isdigit():
        raise argparse.ArgumentTypeError(f"requires a non-negative number, got {value!r}")
    return int(value)


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(
        prog="trusted-releaser",
        description=(
            "Set up branch and tag rulesets, a gated 'release' environment and "
            "bump labels for a trusted release workflow."
        ),
    )
    p.add_argument("--repo", type=str, default=None, help="OWNER/NAME (default: $GITHUB_REPOSITORY)")
    p.add_argument(
        "--add-reviewer",
        nargs="?",
        const="",
        default=None,
        metavar="USERS",
        help="Add required reviewers for the release environment; comma-separated (default: yourself)",
    )
    p.add_argument(
        "--required-approvals",
        type=_non_negative_int,
        default=0,
        metavar="NUM",
        help="Number of required PR approvals (default: 0)",
    )
    p.add_argument(
        "--deployment-branch",
        type=str,
        default=None,
        help="Branch allowed to deploy to the release environment (default: the default branch)",
    )
    p.add_argument("--dry-run", action="store_true", help="Show what would be done without making changes")
    p.add_argument("-y", "--yes", action="store_true", dest="auto_approve", help="Skip confirmation prompt")
    p.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default=None,
    )
    return p.parse_args(argv)


def build_run_configuration(args: argparse.Namespace, settings: Settings) -> RunConfiguration:
    repo = args.repo or settings.github_repository
    if not repo:
        raise ConfigurationError("No repository given; use --repo OWNER/NAME or set GITHUB_REPOSITORY")
    return RunConfiguration.from_options(
        repo=repo,
        required_approvals=args.required_approvals,
        reviewers_requested=args.add_reviewer is not None,
        reviewer_handles=args.add_reviewer or (),
        dry_run=args.dry_run,
        auto_approve=args.auto_approve,
        deployment_branch=args.deployment_branch,
        environment_name=settings.release_environment_name,
        integration_id=settings.github_actions_integration_id,
    )


async def _run(config: RunConfiguration, settings: Settings) -> RunReport:
    async with GitHubClient(token=settings.github_token) as client:
        return await reconcile(client, config)


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    setup_logging(args.log_level)
    settings = get_settings()

    try:
        config = build_run_configuration(args, settings)
        if not settings.github_token:
            raise ConfigurationError("GITHUB_TOKEN is not set")
        report = asyncio.run(_run(config, settings))
    except ConfigurationError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    except InspectionError as exc:
        print(f"Error: {exc}. No changes were made.", file=sys.stderr)
        return 1

    if report.gate in (GateDecision.PROCEED, GateDecision.DRY_RUN):
        for line in render_report(report):
            print(line)
    return 0 if report.succeeded else 1


if __name__ == "__main__":
    sys.exit(main())
