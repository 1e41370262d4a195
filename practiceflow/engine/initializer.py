"""Builds runnable executions from templates."""

from __future__ import annotations

import logging
import math
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Sequence

from pydantic import ValidationError

from ..constants import DEFAULT_WORKDAY_HOURS
from ..contracts import (
    STEP_VARIANTS,
    ExecutionConfig,
    ExecutionCustomization,
    ExecutionStatus,
    StepState,
    StepStatus,
    WorkflowExecution,
    WorkflowStep,
    WorkflowTemplate,
    parse_step,
    utcnow,
)
from ..errors import TemplateValidationError
from ..validation import build_dependents, validate_steps
from .transitions import transition, transition_execution

logger = logging.getLogger(__name__)


def apply_customizations(
    steps: Sequence[WorkflowStep], customizations: Optional[ExecutionCustomization]
) -> List[WorkflowStep]:
    """Return the step set an execution runs with.

    Omitted steps are dropped and references to them pruned from the
    remaining prerequisites, additional steps are appended, then partial
    overrides are merged into the step they name and re-validated.
    """

    result = list(steps)
    if customizations is None:
        return result

    omitted = set(customizations.skip_steps)
    if omitted:
        result = [
            step.model_copy(
                update={
                    "prerequisite_steps": [
                        p for p in step.prerequisite_steps if p not in omitted
                    ]
                }
            )
            for step in result
            if step.id not in omitted
        ]

    result.extend(customizations.additional_steps)

    for modification in customizations.modified_steps:
        step_id = modification["id"]
        index = next((i for i, step in enumerate(result) if step.id == step_id), None)
        if index is None:
            logger.warning(f"Ignoring modification of unknown step {step_id}")
            continue
        result[index] = _merge_modification(result[index], modification)

    return result


def _merge_modification(step: WorkflowStep, modification: Dict[str, Any]) -> WorkflowStep:
    """Overlay ``modification`` on ``step``, re-validated as its (new) variant.

    Fields of the old variant that the target variant does not declare are
    dropped, so changing ``type`` does not trip over leftovers.
    """

    tag = modification.get("type", step.type)
    target = STEP_VARIANTS.get(getattr(tag, "value", tag))
    current = step.model_dump()
    if target is not None:
        current = {k: v for k, v in current.items() if k in target.model_fields}
    try:
        return parse_step({**current, **modification})
    except ValidationError as exc:
        raise TemplateValidationError(
            f"Modification of step {step.id} is invalid: {exc}", step_id=step.id
        ) from exc


def scheduled_completion(
    steps: Sequence[WorkflowStep],
    start: datetime,
    workday_hours: int = DEFAULT_WORKDAY_HOURS,
) -> datetime:
    """Start plus the summed step estimates, rounded up to whole working days."""

    total_minutes = sum(step.estimated_duration for step in steps)
    days = math.ceil(total_minutes / (workday_hours * 60))
    return start + timedelta(days=days)


def start_execution(
    template: WorkflowTemplate,
    config: ExecutionConfig,
    now: Optional[datetime] = None,
    workday_hours: int = DEFAULT_WORKDAY_HOURS,
    strict: bool = False,
) -> WorkflowExecution:
    """Instantiate ``template`` for ``config.owner`` and activate its root steps.

    Not idempotent: every call yields a new execution.

    Raises:
        TemplateValidationError: The customized step set is unsound.
    """

    now = now or utcnow()
    steps = apply_customizations(template.steps, config.customizations)
    validate_steps(steps, strict=strict)

    execution = WorkflowExecution(
        template_id=template.id,
        template_name=template.name,
        name=config.name,
        owner=config.owner,
        status=ExecutionStatus.ACTIVE,
        started_at=now,
        scheduled_completion=scheduled_completion(
            steps, config.scheduled_start or now, workday_hours
        ),
        assigned_to=config.assigned_to,
        supervisor_id=config.supervisor_id,
        steps=steps,
        dependents=build_dependents(steps),
        step_states={
            step.id: StepState(step_id=step.id, assigned_to=step.assigned_role)
            for step in steps
        },
        customizations=config.customizations,
        updated_at=now,
    )

    roots = [step.id for step in steps if not step.prerequisite_steps]
    for step_id in roots:
        transition(execution, step_id, StepStatus.PENDING, StepStatus.IN_PROGRESS, at=now)

    execution.refresh_aggregates()
    if not steps:
        transition_execution(execution, ExecutionStatus.COMPLETED, at=now)

    logger.info(
        f"Started execution {execution.id} of template {template.id} "
        f"for {config.owner.kind} {config.owner.id}: {len(steps)} steps, roots {roots}"
    )
    return execution
