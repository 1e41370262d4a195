"""Evaluation of validation criteria against reported step outputs."""

from __future__ import annotations

from numbers import Real
from typing import Any, Mapping, Sequence

from ..contracts import ConditionKind, ValidationCriterion, ValidationResults


def _is_number(value: Any) -> bool:
    return isinstance(value, Real) and not isinstance(value, bool)


def _strict_equals(value: Any, expected: Any) -> bool:
    # True == 1 in Python; outputs must match the declared kind exactly.
    if isinstance(value, bool) or isinstance(expected, bool):
        return isinstance(value, bool) and isinstance(expected, bool) and value is expected
    if _is_number(value) and _is_number(expected):
        return value == expected
    return type(value) is type(expected) and value == expected


def _exists(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, (str, bytes, list, tuple, dict, set, frozenset)):
        return len(value) > 0
    return True


def criterion_holds(criterion: ValidationCriterion, value: Any) -> bool:
    """Return ``True`` when ``value`` satisfies ``criterion``."""

    if criterion.condition is ConditionKind.GREATER_THAN:
        return (
            _is_number(value)
            and _is_number(criterion.value)
            and value > criterion.value
        )
    if criterion.condition is ConditionKind.EQUALS:
        return _strict_equals(value, criterion.value)
    if criterion.condition is ConditionKind.EXISTS:
        return _exists(value)
    raise ValueError(f"Unsupported condition: {criterion.condition}")


def failure_message(criterion: ValidationCriterion) -> str:
    if criterion.condition is ConditionKind.GREATER_THAN:
        return f"{criterion.field} must be greater than {criterion.value}"
    if criterion.condition is ConditionKind.EQUALS:
        return f"{criterion.field} must equal {criterion.value}"
    return f"{criterion.field} is required"


def evaluate_criteria(
    criteria: Sequence[ValidationCriterion], outputs: Mapping[str, Any]
) -> ValidationResults:
    """Check every criterion and collect the failures."""

    errors = [
        failure_message(criterion)
        for criterion in criteria
        if not criterion_holds(criterion, outputs.get(criterion.field))
    ]
    return ValidationResults(passed=not errors, errors=errors, warnings=[])
