"""Exception hierarchy for practiceflow."""

from __future__ import annotations


class PracticeflowError(Exception):
    """Base exception for all practiceflow errors."""


class TemplateValidationError(PracticeflowError):
    """A workflow definition is structurally unsound."""

    def __init__(self, message: str, step_id: str | None = None) -> None:
        self.step_id = step_id
        super().__init__(message)


class NotFoundError(PracticeflowError):
    """A template, execution or step id does not exist."""

    def __init__(self, kind: str, identifier: str) -> None:
        self.kind = kind
        self.identifier = identifier
        super().__init__(f"{kind} {identifier} not found")


class PreconditionFailedError(PracticeflowError):
    """The current state does not allow the requested operation."""


class InvalidTransitionError(PracticeflowError):
    """A state change that the state machine does not define."""

    def __init__(self, subject: str, current: str, target: str) -> None:
        self.subject = subject
        self.current = current
        self.target = target
        super().__init__(f"{subject} cannot move from {current} to {target}")


class ConcurrentModificationError(PracticeflowError):
    """An execution was written by someone else since it was read."""

    def __init__(self, execution_id: str, expected_version: int) -> None:
        self.execution_id = execution_id
        self.expected_version = expected_version
        super().__init__(
            f"Execution {execution_id} changed since version {expected_version}; "
            "re-fetch and retry"
        )
