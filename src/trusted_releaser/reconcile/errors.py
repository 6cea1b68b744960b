"""Error taxonomy for reconciliation runs."""

from __future__ import annotations


class ReconcileError(Exception):
    """Base exception for reconciliation errors."""

    pass


class ConfigurationError(ReconcileError):
    """Invalid operator input; raised before anything is inspected."""

    pass


class InspectionError(ReconcileError):
    """Remote state could not be read; raised before anything is mutated."""

    def __init__(self, query: str, cause: Exception):
        super().__init__(f"Failed to inspect {query}: {cause}")
        self.query = query
        self.cause = cause


class MandatoryStepFailure(ReconcileError):
    """A branch ruleset, environment or tag ruleset could not be created."""

    def __init__(self, step: str, cause: Exception):
        super().__init__(f"Failed to create {step}: {cause}")
        self.step = step
        self.cause = cause


class OptionalStepFailure(ReconcileError):
    """A non-blocking problem: unresolved reviewer, label race, branch policy."""

    def __init__(self, step: str, message: str):
        super().__init__(f"{step}: {message}")
        self.step = step
        self.message = message
