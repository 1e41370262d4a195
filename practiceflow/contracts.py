"""Core contracts for practiceflow: definitions, execution state and results."""

from __future__ import annotations

import math
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, model_validator

from .constants import TEMPLATE_VERSION


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return str(uuid.uuid4())


def rounded_percentage(done: int, total: int) -> int:
    """Percentage rounded half-up; an empty total reports 0."""
    if total <= 0:
        return 0
    return int(math.floor(done * 100 / total + 0.5))


class WorkflowType(str, Enum):
    CLIENT_ONBOARDING = "client_onboarding"
    DOCUMENT_MIGRATION = "document_migration"
    SYSTEM_TRAINING = "system_training"
    COMPLIANCE_SETUP = "compliance_setup"
    DATA_VALIDATION = "data_validation"
    TEAM_TRAINING = "team_training"
    LEGACY_CLEANUP = "legacy_cleanup"
    GO_LIVE = "go_live"


class StepType(str, Enum):
    MANUAL_TASK = "manual_task"
    DOCUMENT_SCAN = "document_scan"
    DATA_ENTRY = "data_entry"
    SYSTEM_CONFIG = "system_config"
    TRAINING = "training"
    VALIDATION = "validation"
    APPROVAL = "approval"
    NOTIFICATION = "notification"


class StepStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"
    SKIPPED = "skipped"
    # Reportable only; nothing in the engine moves a step here.
    BLOCKED = "blocked"


DONE_STATUSES = frozenset({StepStatus.COMPLETED, StepStatus.SKIPPED})


class ExecutionStatus(str, Enum):
    PENDING = "pending"
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    FAILED = "failed"
    ON_HOLD = "on_hold"


class ConditionKind(str, Enum):
    GREATER_THAN = "greater_than"
    EQUALS = "equals"
    EXISTS = "exists"


class AutomationType(str, Enum):
    NOTIFICATION = "notification"
    EMAIL = "email"
    API_CALL = "api_call"


class ResourceType(str, Enum):
    DOCUMENT = "document"
    VIDEO = "video"
    LINK = "link"
    TEMPLATE = "template"


# ---------------------------------------------------------------------------
# Step definitions


class ValidationCriterion(BaseModel):
    """Condition evaluated against the outputs a step reports."""

    model_config = ConfigDict(frozen=True)

    field: str
    condition: ConditionKind
    value: Any = None


class SkipCondition(ValidationCriterion):
    """Criterion over execution state that, when it holds, skips a step.

    Without ``step_id`` the field is looked up in the merged outputs of every
    completed step; with it, only that step's outputs are consulted.
    """

    step_id: Optional[str] = None


class StepResource(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: ResourceType
    title: str
    url: Optional[str] = None
    content: Optional[str] = None


class AutomationDirective(BaseModel):
    """Side effect fired once when a step completes successfully."""

    model_config = ConfigDict(frozen=True)

    type: AutomationType
    config: Dict[str, Any] = Field(default_factory=dict)


class _StepBase(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    id: str = Field(min_length=1)
    title: str
    description: str = ""
    estimated_duration: int = Field(default=0, ge=0, description="Minutes")
    prerequisite_steps: List[str] = Field(default_factory=list)
    assigned_role: Optional[str] = None
    instructions: str = ""
    checklist_items: List[str] = Field(default_factory=list)
    validation_criteria: List[ValidationCriterion] = Field(default_factory=list)
    resources: List[StepResource] = Field(default_factory=list)
    automation: Optional[AutomationDirective] = None
    skip_conditions: List[SkipCondition] = Field(default_factory=list)


class ManualTaskStep(_StepBase):
    type: Literal["manual_task"] = "manual_task"


class DocumentScanStep(_StepBase):
    type: Literal["document_scan"] = "document_scan"
    target_document_count: Optional[int] = Field(default=None, ge=0)
    minimum_ocr_accuracy: Optional[float] = Field(default=None, ge=0, le=100)


class DataEntryStep(_StepBase):
    type: Literal["data_entry"] = "data_entry"
    source_system: Optional[str] = None


class SystemConfigStep(_StepBase):
    type: Literal["system_config"] = "system_config"
    system_component: Optional[str] = None


class TrainingStep(_StepBase):
    type: Literal["training"] = "training"
    audience: List[str] = Field(default_factory=list)
    passing_score: Optional[float] = Field(default=None, ge=0, le=100)


class ValidationStep(_StepBase):
    type: Literal["validation"] = "validation"

    @model_validator(mode="after")
    def _require_criteria(self) -> "ValidationStep":
        if not self.validation_criteria:
            raise ValueError(
                f"validation step {self.id} needs at least one validation criterion"
            )
        return self


class ApprovalStep(_StepBase):
    type: Literal["approval"] = "approval"
    approver_role: Optional[str] = None


class NotificationStep(_StepBase):
    type: Literal["notification"] = "notification"

    @model_validator(mode="after")
    def _require_automation(self) -> "NotificationStep":
        if self.automation is None:
            raise ValueError(
                f"notification step {self.id} needs an automation directive"
            )
        return self


WorkflowStep = Annotated[
    Union[
        ManualTaskStep,
        DocumentScanStep,
        DataEntryStep,
        SystemConfigStep,
        TrainingStep,
        ValidationStep,
        ApprovalStep,
        NotificationStep,
    ],
    Field(discriminator="type"),
]

_STEP_ADAPTER: TypeAdapter = TypeAdapter(WorkflowStep)

STEP_VARIANTS: Dict[str, type[BaseModel]] = {
    variant.model_fields["type"].default: variant
    for variant in (
        ManualTaskStep,
        DocumentScanStep,
        DataEntryStep,
        SystemConfigStep,
        TrainingStep,
        ValidationStep,
        ApprovalStep,
        NotificationStep,
    )
}


def parse_step(data: Any) -> WorkflowStep:
    """Validate ``data`` into the step variant named by its ``type`` tag."""
    return _STEP_ADAPTER.validate_python(data)


# ---------------------------------------------------------------------------
# Templates


class TemplateConfig(BaseModel):
    """Operator-supplied definition of a workflow template."""

    name: str
    description: str = ""
    workflow_type: WorkflowType
    client_types: List[str] = Field(default_factory=list)
    steps: List[WorkflowStep] = Field(default_factory=list)
    estimated_duration: int = Field(default=0, ge=0, description="Days")
    required_skills: List[str] = Field(default_factory=list)
    success_criteria: List[str] = Field(default_factory=list)
    checklist_items: List[str] = Field(default_factory=list)
    resources: List[str] = Field(default_factory=list)


class WorkflowTemplate(TemplateConfig):
    """Stored, immutable workflow template."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=new_id)
    version: str = TEMPLATE_VERSION
    created_by: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)
    dependents: Dict[str, List[str]] = Field(default_factory=dict)

    def get_step(self, step_id: str) -> Optional[WorkflowStep]:
        return next((s for s in self.steps if s.id == step_id), None)


class TemplateUsage(BaseModel):
    """Usage counters reported back by executions of a template."""

    template_id: str
    times_used: int = 0
    average_duration: Optional[int] = Field(default=None, description="Minutes")


# ---------------------------------------------------------------------------
# Executions


class EntityRef(BaseModel):
    """The entity an execution works on, e.g. a client or migration project."""

    model_config = ConfigDict(frozen=True)

    kind: str
    id: str


class ExecutionCustomization(BaseModel):
    """Per-run adjustments applied once when an execution starts."""

    skip_steps: List[str] = Field(default_factory=list)
    additional_steps: List[WorkflowStep] = Field(default_factory=list)
    modified_steps: List[Dict[str, Any]] = Field(default_factory=list)

    @model_validator(mode="after")
    def _modifications_name_a_step(self) -> "ExecutionCustomization":
        for modification in self.modified_steps:
            if not modification.get("id"):
                raise ValueError("every step modification must carry the step id")
        return self


class ExecutionConfig(BaseModel):
    name: str
    owner: EntityRef
    assigned_to: Optional[str] = None
    supervisor_id: Optional[str] = None
    scheduled_start: Optional[datetime] = None
    customizations: Optional[ExecutionCustomization] = None


class StepState(BaseModel):
    """Runtime record for one step of one execution."""

    step_id: str
    status: StepStatus = StepStatus.PENDING
    assigned_to: Optional[str] = None
    notes: str = ""
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    outputs: Dict[str, Any] = Field(default_factory=dict)


class WorkflowExecution(BaseModel):
    """One running instance of a template against an owning entity."""

    id: str = Field(default_factory=new_id)
    template_id: str
    template_name: str
    name: str
    owner: EntityRef
    status: ExecutionStatus = ExecutionStatus.ACTIVE
    total_steps: int = 0
    completed_steps: int = 0
    progress_percentage: int = 0
    started_at: datetime = Field(default_factory=utcnow)
    scheduled_completion: Optional[datetime] = None
    actual_completion: Optional[datetime] = None
    assigned_to: Optional[str] = None
    supervisor_id: Optional[str] = None
    steps: List[WorkflowStep] = Field(default_factory=list)
    dependents: Dict[str, List[str]] = Field(default_factory=dict)
    step_states: Dict[str, StepState] = Field(default_factory=dict)
    customizations: Optional[ExecutionCustomization] = None
    version: int = 0
    updated_at: datetime = Field(default_factory=utcnow)

    def get_step(self, step_id: str) -> Optional[WorkflowStep]:
        return next((s for s in self.steps if s.id == step_id), None)

    def states_with(self, *statuses: StepStatus) -> List[StepState]:
        return [s for s in self.step_states.values() if s.status in statuses]

    def all_steps_done(self) -> bool:
        return all(s.status in DONE_STATUSES for s in self.step_states.values())

    def refresh_aggregates(self) -> None:
        """Recompute the counters derived from the step-status map."""
        self.total_steps = len(self.step_states)
        self.completed_steps = len(self.states_with(*DONE_STATUSES))
        self.progress_percentage = rounded_percentage(
            self.completed_steps, self.total_steps
        )


class ValidationResults(BaseModel):
    passed: bool = True
    errors: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)


class StepResult(BaseModel):
    """Outcome of ``execute_step``."""

    step_id: str
    status: StepStatus
    completed_at: Optional[datetime] = None
    duration: int = Field(description="Minutes")
    notes: Optional[str] = None
    outputs: Dict[str, Any] = Field(default_factory=dict)
    validation_results: ValidationResults = Field(default_factory=ValidationResults)
    next_steps: List[str] = Field(default_factory=list)
    skipped_steps: List[str] = Field(default_factory=list)


class AutomationContext(BaseModel):
    """Execution context handed to effect handlers."""

    execution_id: str
    execution_name: str
    template_id: str
    owner: EntityRef
    step_id: str
    assigned_to: Optional[str] = None
    supervisor_id: Optional[str] = None


# ---------------------------------------------------------------------------
# Progress reporting


class CurrentStep(BaseModel):
    id: str
    title: str
    status: StepStatus
    estimated_completion: datetime


class OverallProgress(BaseModel):
    total_steps: int
    completed_steps: int
    percentage: int
    estimated_completion: datetime
    time_spent: float = Field(description="Hours")
    time_remaining: float = Field(description="Hours")


class RecentActivity(BaseModel):
    step_id: str
    step_title: str
    action: str
    timestamp: datetime
    user: str


class Blocker(BaseModel):
    step_id: str
    step_title: str
    reason: str
    priority: Literal["low", "medium", "high"] = "high"
    assigned_to: Optional[str] = None


class Milestone(BaseModel):
    step_id: str
    title: str
    due_date: datetime
    priority: Literal["medium", "high"]


class ProgressReport(BaseModel):
    execution_id: str
    template_name: str
    status: ExecutionStatus
    current_step: CurrentStep
    overall_progress: OverallProgress
    recent_activities: List[RecentActivity] = Field(default_factory=list)
    blockers: List[Blocker] = Field(default_factory=list)
    upcoming_milestones: List[Milestone] = Field(default_factory=list)
