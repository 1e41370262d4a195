"""practiceflow: guided workflow execution for practice transitions."""

from .automation import AutomationDispatcher, EffectHandler
from .config import PracticeflowConfig, load_config
from .contracts import (
    EntityRef,
    ExecutionConfig,
    ExecutionCustomization,
    ExecutionStatus,
    StepStatus,
    StepType,
    TemplateConfig,
    WorkflowExecution,
    WorkflowTemplate,
)
from .errors import (
    ConcurrentModificationError,
    NotFoundError,
    PracticeflowError,
    PreconditionFailedError,
    TemplateValidationError,
)
from .persistence import get_repository
from .service import WorkflowService

__version__ = "0.1.0"
__all__ = [
    "AutomationDispatcher",
    "ConcurrentModificationError",
    "EffectHandler",
    "EntityRef",
    "ExecutionConfig",
    "ExecutionCustomization",
    "ExecutionStatus",
    "NotFoundError",
    "PracticeflowConfig",
    "PracticeflowError",
    "PreconditionFailedError",
    "StepStatus",
    "StepType",
    "TemplateConfig",
    "TemplateValidationError",
    "WorkflowExecution",
    "WorkflowService",
    "WorkflowTemplate",
    "get_repository",
    "load_config",
]
