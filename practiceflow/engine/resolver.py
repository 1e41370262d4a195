"""Dependency resolution: which steps become eligible after a completion."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from ..contracts import StepStatus, WorkflowExecution, WorkflowStep
from .criteria import criterion_holds

logger = logging.getLogger(__name__)

SkipEvaluator = Callable[[WorkflowExecution, WorkflowStep], bool]


def completed_outputs(execution: WorkflowExecution) -> Dict[str, Any]:
    """Merge the outputs of completed steps, later steps winning."""

    merged: Dict[str, Any] = {}
    for step in execution.steps:
        state = execution.step_states.get(step.id)
        if state is not None and state.status is StepStatus.COMPLETED:
            merged.update(state.outputs)
    return merged


def evaluate_skip_conditions(execution: WorkflowExecution, step: WorkflowStep) -> bool:
    """Return ``True`` when ``step`` has skip conditions and all of them hold."""

    if not step.skip_conditions:
        return False

    merged = completed_outputs(execution)
    for condition in step.skip_conditions:
        if condition.step_id is not None:
            state = execution.step_states.get(condition.step_id)
            source = state.outputs if state is not None else {}
        else:
            source = merged
        if not criterion_holds(condition, source.get(condition.field)):
            return False
    return True


@dataclass
class Resolution:
    """Steps to activate and to skip, in the order they were decided."""

    activate: List[str] = field(default_factory=list)
    skip: List[str] = field(default_factory=list)


class DependencyResolver:
    """Decides the fate of the dependents of a just-completed step.

    Only dependents still PENDING are considered, and only once all of their
    prerequisites are satisfied. Resolution is a single hop: steps activated
    here unlock their own dependents when they later complete.
    """

    def __init__(
        self,
        skip_evaluator: Optional[SkipEvaluator] = None,
        skipped_satisfies_prerequisites: bool = False,
    ) -> None:
        self._skip_evaluator = skip_evaluator or evaluate_skip_conditions
        self._skipped_satisfies = skipped_satisfies_prerequisites

    @property
    def satisfying_statuses(self) -> frozenset[StepStatus]:
        if self._skipped_satisfies:
            return frozenset({StepStatus.COMPLETED, StepStatus.SKIPPED})
        return frozenset({StepStatus.COMPLETED})

    def resolve(self, execution: WorkflowExecution, completed_step_id: str) -> Resolution:
        """Return the dependents of ``completed_step_id`` that become eligible.

        Does not mutate ``execution``; decisions taken earlier in the same call
        are visible to later readiness checks.
        """

        decided: Dict[str, StepStatus] = {}
        resolution = Resolution()
        frontier = [completed_step_id]

        while frontier:
            source = frontier.pop(0)
            for dependent_id in execution.dependents.get(source, []):
                if self._status(execution, decided, dependent_id) is not StepStatus.PENDING:
                    continue
                step = execution.get_step(dependent_id)
                if step is None or not self._ready(execution, decided, step):
                    continue

                if self._skip_evaluator(execution, step):
                    decided[dependent_id] = StepStatus.SKIPPED
                    resolution.skip.append(dependent_id)
                    logger.debug(f"Skipping step {dependent_id} of execution {execution.id}")
                    # A skip never completes later, so its dependents are
                    # examined now when skipped steps count as satisfied.
                    if self._skipped_satisfies:
                        frontier.append(dependent_id)
                else:
                    decided[dependent_id] = StepStatus.IN_PROGRESS
                    resolution.activate.append(dependent_id)

        return resolution

    def _status(
        self, execution: WorkflowExecution, decided: Dict[str, StepStatus], step_id: str
    ) -> Optional[StepStatus]:
        if step_id in decided:
            return decided[step_id]
        state = execution.step_states.get(step_id)
        return state.status if state is not None else None

    def _ready(
        self, execution: WorkflowExecution, decided: Dict[str, StepStatus], step: WorkflowStep
    ) -> bool:
        allowed = self.satisfying_statuses
        return all(
            self._status(execution, decided, prerequisite) in allowed
            for prerequisite in step.prerequisite_steps
        )
