"""Read-only progress reporting for executions."""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Optional

from ..constants import DEFAULT_MILESTONE_LIMIT, DEFAULT_RECENT_ACTIVITY_LIMIT
from ..contracts import (
    Blocker,
    CurrentStep,
    Milestone,
    OverallProgress,
    ProgressReport,
    RecentActivity,
    StepStatus,
    StepType,
    WorkflowExecution,
    utcnow,
)

UNKNOWN_STEP = "Unknown Step"


def get_progress(
    execution: WorkflowExecution,
    now: Optional[datetime] = None,
    recent_limit: int = DEFAULT_RECENT_ACTIVITY_LIMIT,
    milestone_limit: int = DEFAULT_MILESTONE_LIMIT,
) -> ProgressReport:
    """Summarize ``execution`` as of ``now``.

    When several steps are in progress the first one in definition order is
    reported as current; callers needing all of them should read
    ``execution.step_states``.
    """

    now = now or utcnow()

    def title_of(step_id: str) -> str:
        step = execution.get_step(step_id)
        return step.title if step is not None else UNKNOWN_STEP

    in_progress = execution.states_with(StepStatus.IN_PROGRESS)
    current = execution.get_step(in_progress[0].step_id) if in_progress else None
    if current is not None:
        current_step = CurrentStep(
            id=current.id,
            title=current.title,
            status=StepStatus.IN_PROGRESS,
            estimated_completion=now + timedelta(minutes=current.estimated_duration),
        )
    else:
        current_step = CurrentStep(
            id="none",
            title="Workflow Complete",
            status=StepStatus.COMPLETED,
            estimated_completion=now,
        )

    time_spent = max((now - execution.started_at).total_seconds(), 0.0) / 3600
    remaining = len(execution.states_with(StepStatus.PENDING))
    average_per_step = time_spent / max(1, execution.completed_steps)

    finished = sorted(
        (s for s in execution.step_states.values() if s.completed_at is not None),
        key=lambda s: s.completed_at,
        reverse=True,
    )
    recent_activities = [
        RecentActivity(
            step_id=s.step_id,
            step_title=title_of(s.step_id),
            action=s.status.value,
            timestamp=s.completed_at,
            user=s.assigned_to or "System",
        )
        for s in finished[:recent_limit]
    ]

    blockers = [
        Blocker(
            step_id=s.step_id,
            step_title=title_of(s.step_id),
            reason=s.notes or "Step failed validation",
            priority="high",
            assigned_to=s.assigned_to,
        )
        for s in execution.states_with(StepStatus.FAILED, StepStatus.BLOCKED)
    ]

    # Spaced one day per position in the step list, not by dependency depth.
    positions = {step.id: index for index, step in enumerate(execution.steps)}
    upcoming_milestones = []
    for s in execution.states_with(StepStatus.PENDING)[:milestone_limit]:
        step = execution.get_step(s.step_id)
        upcoming_milestones.append(
            Milestone(
                step_id=s.step_id,
                title=title_of(s.step_id),
                due_date=now + timedelta(days=positions.get(s.step_id, 0)),
                priority="high" if step is not None and step.type == StepType.APPROVAL else "medium",
            )
        )

    return ProgressReport(
        execution_id=execution.id,
        template_name=execution.template_name,
        status=execution.status,
        current_step=current_step,
        overall_progress=OverallProgress(
            total_steps=execution.total_steps,
            completed_steps=execution.completed_steps,
            percentage=execution.progress_percentage,
            estimated_completion=execution.scheduled_completion or now,
            time_spent=time_spent,
            time_remaining=remaining * average_per_step,
        ),
        recent_activities=recent_activities,
        blockers=blockers,
        upcoming_milestones=upcoming_milestones,
    )
