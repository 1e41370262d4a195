"""Step and execution state machines.

``transition`` is the only code path that changes a step's status; every
other component asks it to, naming the status it expects to find.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Callable, Dict, Mapping, Optional

from ..contracts import (
    ExecutionStatus,
    StepResult,
    StepState,
    StepStatus,
    ValidationResults,
    WorkflowExecution,
    utcnow,
)
from ..errors import InvalidTransitionError, NotFoundError, PreconditionFailedError
from .criteria import evaluate_criteria
from .resolver import DependencyResolver

logger = logging.getLogger(__name__)

STEP_TRANSITIONS: Dict[StepStatus, frozenset[StepStatus]] = {
    StepStatus.PENDING: frozenset({StepStatus.IN_PROGRESS, StepStatus.SKIPPED}),
    StepStatus.IN_PROGRESS: frozenset({StepStatus.COMPLETED, StepStatus.FAILED}),
}

EXECUTION_TRANSITIONS: Dict[ExecutionStatus, frozenset[ExecutionStatus]] = {
    ExecutionStatus.PENDING: frozenset({ExecutionStatus.ACTIVE, ExecutionStatus.CANCELLED}),
    ExecutionStatus.ACTIVE: frozenset(
        {ExecutionStatus.COMPLETED, ExecutionStatus.ON_HOLD, ExecutionStatus.CANCELLED}
    ),
    ExecutionStatus.ON_HOLD: frozenset({ExecutionStatus.ACTIVE, ExecutionStatus.CANCELLED}),
}


def transition(
    execution: WorkflowExecution,
    step_id: str,
    expected: StepStatus,
    new: StepStatus,
    at: Optional[datetime] = None,
) -> StepState:
    """Move ``step_id`` from ``expected`` to ``new``.

    Raises:
        NotFoundError: The step is not part of the execution.
        PreconditionFailedError: The step is not currently ``expected``.
        InvalidTransitionError: The state machine has no such edge.
    """

    state = execution.step_states.get(step_id)
    if state is None:
        raise NotFoundError("Step", step_id)
    if state.status is not expected:
        raise PreconditionFailedError(
            f"Step {step_id} is {state.status.value}, expected {expected.value}"
        )
    if new not in STEP_TRANSITIONS.get(expected, frozenset()):
        raise InvalidTransitionError(f"Step {step_id}", expected.value, new.value)

    at = at or utcnow()
    state.status = new
    if new is StepStatus.IN_PROGRESS:
        state.started_at = at
    elif new in (StepStatus.COMPLETED, StepStatus.FAILED):
        state.completed_at = at
    logger.debug(
        f"Step {step_id} of execution {execution.id}: {expected.value} -> {new.value}"
    )
    return state


def transition_execution(
    execution: WorkflowExecution, new: ExecutionStatus, at: Optional[datetime] = None
) -> None:
    """Move the execution itself to ``new``; in-flight steps are left alone."""

    current = execution.status
    if new not in EXECUTION_TRANSITIONS.get(current, frozenset()):
        raise InvalidTransitionError(f"Execution {execution.id}", current.value, new.value)
    at = at or utcnow()
    execution.status = new
    execution.updated_at = at
    if new is ExecutionStatus.COMPLETED:
        execution.actual_completion = at
    logger.info(f"Execution {execution.id}: {current.value} -> {new.value}")


class StepTransitionEngine:
    """Completes or fails steps and activates whatever that unlocks."""

    def __init__(
        self,
        resolver: Optional[DependencyResolver] = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.resolver = resolver or DependencyResolver()
        self._clock = clock

    def execute_step(
        self,
        execution: WorkflowExecution,
        step_id: str,
        outputs: Optional[Mapping[str, Any]] = None,
        validation_override: bool = False,
        notes: Optional[str] = None,
        duration: Optional[int] = None,
    ) -> StepResult:
        """Record the result of an in-progress step.

        Validation failures are not raised: the step becomes FAILED and the
        result reports ``validation_results.passed = False``.
        """

        step = execution.get_step(step_id)
        state = execution.step_states.get(step_id)
        if step is None or state is None:
            raise NotFoundError("Step", step_id)
        if execution.status is not ExecutionStatus.ACTIVE:
            raise PreconditionFailedError(
                f"Execution {execution.id} is {execution.status.value}, not active"
            )
        if state.status is not StepStatus.IN_PROGRESS:
            raise PreconditionFailedError(f"Step {step_id} is not in progress")

        outputs = dict(outputs or {})
        if validation_override or not step.validation_criteria:
            results = ValidationResults()
        else:
            results = evaluate_criteria(step.validation_criteria, outputs)

        now = self._clock()
        new_status = StepStatus.COMPLETED if results.passed else StepStatus.FAILED
        transition(execution, step_id, StepStatus.IN_PROGRESS, new_status, at=now)
        state.notes = notes or ""
        state.outputs = outputs

        next_steps: list[str] = []
        skipped_steps: list[str] = []
        if results.passed:
            resolution = self.resolver.resolve(execution, step_id)
            for dependent_id in resolution.skip:
                transition(execution, dependent_id, StepStatus.PENDING, StepStatus.SKIPPED, at=now)
                skipped_steps.append(dependent_id)
            for dependent_id in resolution.activate:
                transition(execution, dependent_id, StepStatus.PENDING, StepStatus.IN_PROGRESS, at=now)
                next_steps.append(dependent_id)
        else:
            logger.warning(
                f"Step {step_id} of execution {execution.id} failed validation: "
                f"{'; '.join(results.errors)}"
            )

        execution.refresh_aggregates()
        execution.updated_at = now
        if execution.all_steps_done():
            transition_execution(execution, ExecutionStatus.COMPLETED, at=now)

        return StepResult(
            step_id=step_id,
            status=new_status,
            completed_at=now,
            duration=duration if duration is not None else step.estimated_duration,
            notes=notes,
            outputs=outputs,
            validation_results=results,
            next_steps=next_steps,
            skipped_steps=skipped_steps,
        )
