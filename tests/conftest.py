"""Shared fixtures for practiceflow tests."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from practiceflow.config import PracticeflowConfig
from practiceflow.contracts import (
    ConditionKind,
    EntityRef,
    ExecutionConfig,
    ManualTaskStep,
    TemplateConfig,
    ValidationCriterion,
    WorkflowTemplate,
    WorkflowType,
)
from practiceflow.persistence import InMemoryWorkflowRepository
from practiceflow.service import WorkflowService
from practiceflow.validation import build_dependents

START = datetime(2026, 1, 5, 9, 0, tzinfo=timezone.utc)


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: datetime = START) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def xyz_config() -> TemplateConfig:
    """X gates on score > 80; Y and Z both wait on X."""
    return TemplateConfig(
        name="Client onboarding",
        workflow_type=WorkflowType.CLIENT_ONBOARDING,
        steps=[
            ManualTaskStep(
                id="x",
                title="Collect records",
                estimated_duration=240,
                assigned_role="clerk",
                validation_criteria=[
                    ValidationCriterion(
                        field="score", condition=ConditionKind.GREATER_THAN, value=80
                    )
                ],
            ),
            ManualTaskStep(
                id="y", title="Scan records", estimated_duration=120, prerequisite_steps=["x"]
            ),
            ManualTaskStep(
                id="z", title="Enter ledgers", estimated_duration=120, prerequisite_steps=["x"]
            ),
        ],
    )


@pytest.fixture
def make_template():
    """Build a stored-looking template from a config without a repository."""

    def _make(config: TemplateConfig) -> WorkflowTemplate:
        return WorkflowTemplate(
            **config.model_dump(exclude={"steps"}),
            steps=list(config.steps),
            dependents=build_dependents(config.steps),
        )

    return _make


@pytest.fixture
def execution_config() -> ExecutionConfig:
    return ExecutionConfig(
        name="Smith & Co transition",
        owner=EntityRef(kind="client", id="42"),
        assigned_to="alice",
        supervisor_id="bob",
    )


@pytest.fixture
def service(clock: FakeClock) -> WorkflowService:
    return WorkflowService(
        repository=InMemoryWorkflowRepository(),
        config=PracticeflowConfig(),
        clock=clock,
    )
