"""Tests for template structure validation."""

import pytest

from practiceflow.contracts import ManualTaskStep
from practiceflow.errors import TemplateValidationError
from practiceflow.validation import build_dependents, find_cycle_members, validate_steps


def _step(step_id: str, *prerequisites: str) -> ManualTaskStep:
    return ManualTaskStep(id=step_id, title=step_id, prerequisite_steps=list(prerequisites))


def test_valid_graph_passes() -> None:
    validate_steps([_step("a"), _step("b", "a"), _step("c", "a", "b")])


def test_missing_prerequisite_names_step_and_reference() -> None:
    with pytest.raises(TemplateValidationError) as exc_info:
        validate_steps([_step("a"), _step("b", "ghost")])

    assert exc_info.value.step_id == "b"
    assert "ghost" in str(exc_info.value)
    assert "non-existent prerequisite" in str(exc_info.value)


def test_self_reference_rejected() -> None:
    with pytest.raises(TemplateValidationError, match="cannot be a prerequisite of itself"):
        validate_steps([_step("a", "a")])


def test_duplicate_ids_rejected() -> None:
    with pytest.raises(TemplateValidationError, match="more than once"):
        validate_steps([_step("a"), _step("a")])


def test_mutual_dependency_is_accepted_without_strict_mode() -> None:
    # Known gap: only self references are caught unless strict mode is on.
    validate_steps([_step("a", "b"), _step("b", "a")])


def test_strict_mode_rejects_cycles() -> None:
    steps = [_step("root"), _step("a", "root", "b"), _step("b", "a")]

    with pytest.raises(TemplateValidationError, match="dependency cycle") as exc_info:
        validate_steps(steps, strict=True)

    assert exc_info.value.step_id == "a"


def test_strict_mode_accepts_diamond() -> None:
    validate_steps(
        [_step("a"), _step("b", "a"), _step("c", "a"), _step("d", "b", "c")], strict=True
    )


def test_find_cycle_members_lists_only_unorderable_steps() -> None:
    steps = [_step("root"), _step("a", "b"), _step("b", "a"), _step("tail", "root")]
    assert find_cycle_members(steps) == ["a", "b"]


def test_build_dependents_keeps_definition_order() -> None:
    steps = [_step("x"), _step("z", "x"), _step("y", "x"), _step("w", "y", "z")]

    dependents = build_dependents(steps)

    assert dependents == {"x": ["z", "y"], "z": ["w"], "y": ["w"], "w": []}


def test_build_dependents_ignores_repeated_prerequisites() -> None:
    dependents = build_dependents([_step("a"), _step("b", "a", "a")])
    assert dependents["a"] == ["b"]
