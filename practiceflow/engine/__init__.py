"""Execution engine: initializer, transitions, dependency resolution, progress."""

from .initializer import apply_customizations, scheduled_completion, start_execution
from .progress import get_progress
from .resolver import DependencyResolver, Resolution, evaluate_skip_conditions
from .transitions import StepTransitionEngine, transition, transition_execution

__all__ = [
    "DependencyResolver",
    "Resolution",
    "StepTransitionEngine",
    "apply_customizations",
    "evaluate_skip_conditions",
    "get_progress",
    "scheduled_completion",
    "start_execution",
    "transition",
    "transition_execution",
]
