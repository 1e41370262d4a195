"""End-to-end tests for the workflow service."""

import asyncio
from datetime import timedelta

import pytest

from practiceflow.automation import AutomationDispatcher, EffectHandler
from practiceflow.config import PracticeflowConfig
from practiceflow.contracts import (
    AutomationType,
    ExecutionCustomization,
    ExecutionStatus,
    ManualTaskStep,
    NotificationStep,
    StepStatus,
    TemplateConfig,
    WorkflowType,
)
from practiceflow.errors import (
    InvalidTransitionError,
    NotFoundError,
    PreconditionFailedError,
    TemplateValidationError,
)
from practiceflow.persistence import InMemoryWorkflowRepository, SQLiteWorkflowRepository
from practiceflow.service import WorkflowService


class RecordingHandler(EffectHandler):
    def __init__(self, fail: bool = False) -> None:
        self.calls = []
        self.fail = fail

    async def handle(self, effect_type, config, context, outputs) -> None:
        self.calls.append((context.step_id, dict(outputs)))
        if self.fail:
            raise RuntimeError("delivery failed")


def _notifying_config() -> TemplateConfig:
    return TemplateConfig(
        name="Notify partner",
        workflow_type=WorkflowType.COMPLIANCE_SETUP,
        steps=[
            ManualTaskStep(id="review", title="Review engagement letter"),
            NotificationStep(
                id="notify",
                title="Tell the partner",
                prerequisite_steps=["review"],
                automation={"type": "notification", "config": {"message": "Letter reviewed"}},
            ),
        ],
    )


def _service_with(handler: RecordingHandler, clock) -> WorkflowService:
    return WorkflowService(
        repository=InMemoryWorkflowRepository(),
        config=PracticeflowConfig(),
        dispatcher=AutomationDispatcher({AutomationType.NOTIFICATION: handler}),
        clock=clock,
    )


@pytest.mark.asyncio
async def test_full_run_of_a_template(service, xyz_config, execution_config, clock):
    template = await service.create_template(xyz_config)
    execution = await service.start_execution(template.id, execution_config)

    clock.advance(hours=4)
    result = await service.execute_step(execution.id, "x", {"score": 85})
    assert result.next_steps == ["y", "z"]

    stored = await service.get_execution(execution.id)
    assert stored.progress_percentage == 33
    assert stored.version == 1

    clock.advance(hours=2)
    await service.execute_step(execution.id, "y")
    await service.execute_step(execution.id, "z")

    finished = await service.get_execution(execution.id)
    assert finished.status is ExecutionStatus.COMPLETED
    assert finished.actual_completion == clock.now

    report = await service.get_progress(execution.id)
    assert report.overall_progress.percentage == 100
    assert report.current_step.id == "none"

    usage = await service.registry.get_usage(template.id)
    assert usage.times_used == 1
    assert usage.average_duration is not None


@pytest.mark.asyncio
async def test_failed_step_is_persisted(service, xyz_config, execution_config):
    template = await service.create_template(xyz_config)
    execution = await service.start_execution(template.id, execution_config)

    result = await service.execute_step(execution.id, "x", {"score": 12}, notes="Low quality")

    assert result.status is StepStatus.FAILED
    stored = await service.get_execution(execution.id)
    assert stored.step_states["x"].status is StepStatus.FAILED
    report = await service.get_progress(execution.id)
    assert report.blockers[0].reason == "Low quality"
    # Failed steps do not feed the duration average.
    assert (await service.registry.get_usage(template.id)).average_duration is None


@pytest.mark.asyncio
async def test_unknown_ids_raise_not_found(service, xyz_config, execution_config):
    with pytest.raises(NotFoundError):
        await service.start_execution("missing", execution_config)

    template = await service.create_template(xyz_config)
    execution = await service.start_execution(template.id, execution_config)

    with pytest.raises(NotFoundError):
        await service.execute_step("missing", "x")
    with pytest.raises(NotFoundError):
        await service.execute_step(execution.id, "ghost")
    with pytest.raises(NotFoundError):
        await service.get_progress("missing")


@pytest.mark.asyncio
async def test_precondition_failure_leaves_stored_state(service, xyz_config, execution_config):
    template = await service.create_template(xyz_config)
    execution = await service.start_execution(template.id, execution_config)

    with pytest.raises(PreconditionFailedError):
        await service.execute_step(execution.id, "y")

    stored = await service.get_execution(execution.id)
    assert stored.version == 0
    assert stored.step_states["y"].status is StepStatus.PENDING


@pytest.fixture
def sqlite_service(tmp_path, clock) -> WorkflowService:
    # SQLite calls go through worker threads, so gathered coroutines interleave.
    return WorkflowService(
        repository=SQLiteWorkflowRepository(tmp_path / "pf.db"),
        config=PracticeflowConfig(),
        clock=clock,
    )


@pytest.mark.asyncio
async def test_concurrent_steps_of_one_execution_both_apply(
    sqlite_service, xyz_config, execution_config
):
    service = sqlite_service
    template = await service.create_template(xyz_config)
    execution = await service.start_execution(template.id, execution_config)
    await service.execute_step(execution.id, "x", {"score": 99})

    results = await asyncio.gather(
        service.execute_step(execution.id, "y"),
        service.execute_step(execution.id, "z"),
    )

    assert {r.status for r in results} == {StepStatus.COMPLETED}
    stored = await service.get_execution(execution.id)
    assert stored.step_states["y"].status is StepStatus.COMPLETED
    assert stored.step_states["z"].status is StepStatus.COMPLETED
    assert stored.status is ExecutionStatus.COMPLETED
    assert stored.completed_steps == 3
    assert stored.version == 3


@pytest.mark.asyncio
async def test_concurrent_starts_count_every_use(sqlite_service, xyz_config, execution_config):
    service = sqlite_service
    template = await service.create_template(xyz_config)

    await asyncio.gather(
        *(service.start_execution(template.id, execution_config) for _ in range(20))
    )

    usage = await service.registry.get_usage(template.id)
    assert usage.times_used == 20
    assert len(await service.list_executions(template.id)) == 20


@pytest.mark.asyncio
async def test_execution_locks_are_released(service, xyz_config, execution_config):
    for i in range(100):
        with pytest.raises(NotFoundError):
            await service.execute_step(f"missing-{i}", "x")
    assert service._locks == {}

    template = await service.create_template(xyz_config)
    execution = await service.start_execution(template.id, execution_config)
    await service.execute_step(execution.id, "x", {"score": 99})
    await service.hold_execution(execution.id)

    assert service._locks == {}
    assert not service._lock_users


@pytest.mark.asyncio
async def test_invalid_customization_is_rejected(service, xyz_config, execution_config):
    template = await service.create_template(xyz_config)
    config = execution_config.model_copy(
        update={
            "customizations": ExecutionCustomization(
                additional_steps=[
                    ManualTaskStep(id="w", title="W", prerequisite_steps=["nowhere"])
                ]
            )
        }
    )

    with pytest.raises(TemplateValidationError):
        await service.start_execution(template.id, config)

    assert await service.list_executions(template.id) == []


@pytest.mark.asyncio
async def test_hold_resume_and_cancel(service, xyz_config, execution_config, clock):
    template = await service.create_template(xyz_config)
    execution = await service.start_execution(template.id, execution_config)

    held = await service.hold_execution(execution.id)
    assert held.status is ExecutionStatus.ON_HOLD
    with pytest.raises(PreconditionFailedError):
        await service.execute_step(execution.id, "x", {"score": 90})

    resumed = await service.resume_execution(execution.id)
    assert resumed.status is ExecutionStatus.ACTIVE

    clock.advance(days=1)
    cancelled = await service.cancel_execution(execution.id)
    assert cancelled.status is ExecutionStatus.CANCELLED
    assert cancelled.updated_at == clock.now
    assert cancelled.step_states["x"].status is StepStatus.IN_PROGRESS

    with pytest.raises(InvalidTransitionError):
        await service.resume_execution(execution.id)


@pytest.mark.asyncio
async def test_automation_fires_once_after_success(clock, execution_config):
    handler = RecordingHandler()
    service = _service_with(handler, clock)
    template = await service.create_template(_notifying_config())
    execution = await service.start_execution(template.id, execution_config)

    await service.execute_step(execution.id, "review")
    assert handler.calls == []

    await service.execute_step(execution.id, "notify", {"sent": True})

    assert handler.calls == [("notify", {"sent": True})]


@pytest.mark.asyncio
async def test_automation_failure_does_not_undo_completion(clock, execution_config):
    handler = RecordingHandler(fail=True)
    service = _service_with(handler, clock)
    template = await service.create_template(_notifying_config())
    execution = await service.start_execution(template.id, execution_config)
    await service.execute_step(execution.id, "review")

    result = await service.execute_step(execution.id, "notify")

    assert result.status is StepStatus.COMPLETED
    assert len(handler.calls) == 1
    stored = await service.get_execution(execution.id)
    assert stored.status is ExecutionStatus.COMPLETED


@pytest.mark.asyncio
async def test_seeded_templates_can_be_run(service, execution_config, clock):
    templates = await service.seed_predefined(created_by="system")
    transition = next(t for t in templates if len(t.steps) == 12)

    execution = await service.start_execution(transition.id, execution_config)

    assert execution.step_states["inventory_assessment"].status is StepStatus.IN_PROGRESS
    assert execution.scheduled_completion > clock.now + timedelta(days=1)

    result = await service.execute_step(
        execution.id,
        "inventory_assessment",
        {"total_documents": 1200, "categories_identified": 6},
    )
    assert result.next_steps == ["digital_structure_setup"]
    assert [t.id for t in await service.list_templates()] == [t.id for t in templates]
