"""Tests for step variants and derived counters."""

import pydantic
import pytest

from practiceflow.contracts import (
    AutomationType,
    DocumentScanStep,
    ExecutionCustomization,
    ManualTaskStep,
    NotificationStep,
    StepType,
    ValidationStep,
    parse_step,
    rounded_percentage,
)


def test_parse_step_picks_variant_from_type_tag() -> None:
    step = parse_step(
        {
            "id": "scan",
            "title": "Scan",
            "type": "document_scan",
            "target_document_count": 100,
            "validation_criteria": [
                {"field": "pages", "condition": "greater_than", "value": 10}
            ],
        }
    )

    assert isinstance(step, DocumentScanStep)
    assert step.type == StepType.DOCUMENT_SCAN
    assert step.target_document_count == 100


def test_variant_rejects_fields_of_other_variants() -> None:
    with pytest.raises(pydantic.ValidationError):
        parse_step({"id": "a", "title": "A", "type": "manual_task", "audience": ["staff"]})


def test_unknown_type_tag_rejected() -> None:
    with pytest.raises(pydantic.ValidationError):
        parse_step({"id": "a", "title": "A", "type": "teleport"})


def test_unknown_condition_rejected() -> None:
    with pytest.raises(pydantic.ValidationError):
        parse_step(
            {
                "id": "a",
                "title": "A",
                "type": "manual_task",
                "validation_criteria": [{"field": "f", "condition": "between"}],
            }
        )


def test_validation_step_requires_criteria() -> None:
    with pytest.raises(pydantic.ValidationError, match="at least one validation criterion"):
        ValidationStep(id="qa", title="QA")


def test_notification_step_requires_automation() -> None:
    with pytest.raises(pydantic.ValidationError, match="automation directive"):
        NotificationStep(id="notify", title="Notify")

    step = NotificationStep(
        id="notify",
        title="Notify",
        automation={"type": "email", "config": {"subject": "Done"}},
    )
    assert step.automation.type is AutomationType.EMAIL


def test_step_definitions_are_immutable() -> None:
    step = ManualTaskStep(id="a", title="A")
    with pytest.raises(pydantic.ValidationError):
        step.title = "B"


def test_negative_duration_rejected() -> None:
    with pytest.raises(pydantic.ValidationError):
        ManualTaskStep(id="a", title="A", estimated_duration=-5)


def test_modifications_must_name_a_step() -> None:
    with pytest.raises(pydantic.ValidationError, match="step id"):
        ExecutionCustomization(modified_steps=[{"title": "orphan"}])


@pytest.mark.parametrize(
    "done,total,expected",
    [(0, 3, 0), (1, 3, 33), (2, 3, 67), (3, 3, 100), (1, 8, 13), (0, 0, 0)],
)
def test_rounded_percentage(done: int, total: int, expected: int) -> None:
    assert rounded_percentage(done, total) == expected
