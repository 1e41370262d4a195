"""Tests for the template registry and the stock templates."""

import pytest

from practiceflow.contracts import (
    ManualTaskStep,
    TemplateConfig,
    WorkflowType,
)
from practiceflow.errors import NotFoundError, TemplateValidationError
from practiceflow.persistence import InMemoryWorkflowRepository
from practiceflow.registry import (
    TemplateRegistry,
    digital_transition_template,
    individual_onboarding_template,
    predefined_templates,
)
from practiceflow.validation import validate_steps


@pytest.fixture
def registry() -> TemplateRegistry:
    return TemplateRegistry(InMemoryWorkflowRepository())


@pytest.mark.parametrize("config", predefined_templates(), ids=lambda c: c.workflow_type.value)
def test_stock_templates_validate_strictly(config):
    validate_steps(config.steps, strict=True)


def test_digital_transition_template_shape():
    config = digital_transition_template()

    assert len(config.steps) == 12
    assert config.steps[0].id == "inventory_assessment"
    assert config.steps[0].prerequisite_steps == []
    assert config.steps[-1].id == "post_transition_support"
    assert {s.type for s in config.steps} >= {"manual_task", "system_config", "training"}


def test_individual_onboarding_template_shape():
    config = individual_onboarding_template()

    assert [s.id for s in config.steps] == ["account_setup"]
    assert config.client_types == ["individual"]


@pytest.mark.asyncio
async def test_create_and_get_template(registry, xyz_config):
    template = await registry.create_template(xyz_config, created_by="ops")

    assert template.created_by == "ops"
    assert template.dependents == {"x": ["y", "z"], "y": [], "z": []}
    assert await registry.get_template(template.id) == template
    assert [t.id for t in await registry.list_templates()] == [template.id]


@pytest.mark.asyncio
async def test_invalid_template_is_not_stored(registry):
    config = TemplateConfig(
        name="Broken",
        workflow_type=WorkflowType.LEGACY_CLEANUP,
        steps=[ManualTaskStep(id="a", title="A", prerequisite_steps=["missing"])],
    )

    with pytest.raises(TemplateValidationError):
        await registry.create_template(config)

    assert await registry.list_templates() == []


@pytest.mark.asyncio
async def test_strict_registry_rejects_cycles():
    registry = TemplateRegistry(InMemoryWorkflowRepository(), strict=True)
    config = TemplateConfig(
        name="Loop",
        workflow_type=WorkflowType.LEGACY_CLEANUP,
        steps=[
            ManualTaskStep(id="a", title="A", prerequisite_steps=["b"]),
            ManualTaskStep(id="b", title="B", prerequisite_steps=["a"]),
        ],
    )

    with pytest.raises(TemplateValidationError):
        await registry.create_template(config)


@pytest.mark.asyncio
async def test_unknown_template_raises(registry):
    with pytest.raises(NotFoundError, match="Template nope not found"):
        await registry.get_template("nope")


@pytest.mark.asyncio
async def test_usage_counters(registry, xyz_config):
    template = await registry.create_template(xyz_config)

    usage = await registry.get_usage(template.id)
    assert (usage.times_used, usage.average_duration) == (0, None)

    await registry.record_usage(template.id)
    usage = await registry.record_usage(template.id)
    assert usage.times_used == 2

    assert (await registry.record_duration(template.id, 60)).average_duration == 60
    assert (await registry.record_duration(template.id, 91)).average_duration == 76
