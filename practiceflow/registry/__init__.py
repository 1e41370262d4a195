"""Template registry and stock templates."""

from __future__ import annotations

from .predefined import (
    digital_transition_template,
    individual_onboarding_template,
    predefined_templates,
)
from .templates import TemplateRegistry

__all__ = [
    "TemplateRegistry",
    "digital_transition_template",
    "individual_onboarding_template",
    "predefined_templates",
]
