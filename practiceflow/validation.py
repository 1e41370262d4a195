"""Structural checks for workflow definitions."""

from __future__ import annotations

import logging
from collections import deque
from typing import Dict, List, Sequence

from .contracts import WorkflowStep
from .errors import TemplateValidationError

logger = logging.getLogger(__name__)


def validate_steps(steps: Sequence[WorkflowStep], strict: bool = False) -> None:
    """Raise ``TemplateValidationError`` if ``steps`` cannot form a workflow.

    Checks, in order: unique step ids, every prerequisite names a step of the
    same definition, and no step lists itself as a prerequisite. Longer cycles
    (A needs B, B needs A) are accepted unless ``strict`` is set.
    """

    step_ids: set[str] = set()
    for step in steps:
        if step.id in step_ids:
            raise TemplateValidationError(
                f"Step {step.id} is defined more than once", step_id=step.id
            )
        step_ids.add(step.id)

    for step in steps:
        for prerequisite in step.prerequisite_steps:
            if prerequisite not in step_ids:
                raise TemplateValidationError(
                    f"Step {step.id} references non-existent prerequisite {prerequisite}",
                    step_id=step.id,
                )

        if step.id in step.prerequisite_steps:
            raise TemplateValidationError(
                f"Step {step.id} cannot be a prerequisite of itself",
                step_id=step.id,
            )

    if strict:
        stranded = find_cycle_members(steps)
        if stranded:
            raise TemplateValidationError(
                f"Steps {', '.join(stranded)} form a dependency cycle",
                step_id=stranded[0],
            )


def build_dependents(steps: Sequence[WorkflowStep]) -> Dict[str, List[str]]:
    """Return the adjacency list mapping a step id to the steps waiting on it.

    Dependents keep definition order so activation order is stable.
    """

    dependents: Dict[str, List[str]] = {step.id: [] for step in steps}
    for step in steps:
        for prerequisite in dict.fromkeys(step.prerequisite_steps):
            dependents.setdefault(prerequisite, []).append(step.id)
    return dependents


def find_cycle_members(steps: Sequence[WorkflowStep]) -> List[str]:
    """Return ids that Kahn's algorithm cannot order, in definition order."""

    in_degree = {step.id: len(set(step.prerequisite_steps)) for step in steps}
    dependents = build_dependents(steps)

    queue = deque(step_id for step_id, degree in in_degree.items() if degree == 0)
    ordered: set[str] = set()
    while queue:
        node = queue.popleft()
        ordered.add(node)
        for neighbor in dependents.get(node, []):
            in_degree[neighbor] -= 1
            if in_degree[neighbor] == 0:
                queue.append(neighbor)

    remaining = [step.id for step in steps if step.id not in ordered]
    if remaining:
        logger.debug(f"Unorderable steps: {remaining}")
    return remaining
