"""Failure taxonomy shared by the authoring workflow, test sessions and the API.

Every error is scoped to the user action that raised it; callers keep their
prior state and surface one generic message per operation.
"""
from __future__ import annotations


class AssessError(Exception):
    """Base class; ``public_message`` is what an end user gets to see."""

    public_message = "Unexpected error"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.public_message)


class GuardFailed(AssessError):
    public_message = "Action not available in the current state"


class RegenerationPending(GuardFailed):
    public_message = "A regeneration for this target is already in progress"


class GenerationFailed(AssessError):
    public_message = "Failed to generate questions"


class EvaluationFailed(AssessError):
    public_message = "Failed to evaluate test"


class SubmissionFailed(AssessError):
    public_message = "Submission failed"


class NotFound(AssessError):
    public_message = "Not found"


class PersistenceFailed(AssessError):
    public_message = "Failed to save record"


__all__ = [
    "AssessError",
    "GuardFailed",
    "RegenerationPending",
    "GenerationFailed",
    "EvaluationFailed",
    "SubmissionFailed",
    "NotFound",
    "PersistenceFailed",
]
