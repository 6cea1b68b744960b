"""Provision release guardrails (rulesets, environment, labels) on a GitHub repository."""

__version__ = "0.1.0"
