"""In-memory implementation of the workflow repository."""

from __future__ import annotations

from typing import Dict, Optional

from ..contracts import TemplateUsage, WorkflowExecution, WorkflowTemplate
from ..errors import ConcurrentModificationError, NotFoundError
from .repository import WorkflowRepository


class InMemoryWorkflowRepository(WorkflowRepository):
    """Store templates and executions in local memory.

    Useful for tests or when no database is configured. Data is not
    persisted across process restarts. Copies are handed out so callers
    never share state with the store.
    """

    def __init__(self) -> None:
        self._templates: Dict[str, WorkflowTemplate] = {}
        self._usage: Dict[str, TemplateUsage] = {}
        self._executions: Dict[str, WorkflowExecution] = {}

    # ------------------------------------------------------------------
    async def create_template(self, template: WorkflowTemplate) -> None:
        if template.id in self._templates:
            raise ValueError(f"Template {template.id} already exists")
        self._templates[template.id] = template

    async def get_template(self, template_id: str) -> WorkflowTemplate | None:
        return self._templates.get(template_id)

    async def list_templates(self) -> list[WorkflowTemplate]:
        return list(self._templates.values())

    async def get_usage(self, template_id: str) -> TemplateUsage | None:
        usage = self._usage.get(template_id)
        return usage.model_copy() if usage else None

    async def increment_usage(self, template_id: str) -> TemplateUsage:
        usage = self._usage.setdefault(template_id, TemplateUsage(template_id=template_id))
        usage.times_used += 1
        return usage.model_copy()

    async def record_duration(self, template_id: str, minutes: int) -> TemplateUsage:
        usage = self._usage.setdefault(template_id, TemplateUsage(template_id=template_id))
        if usage.average_duration:
            usage.average_duration = int((usage.average_duration + minutes) / 2 + 0.5)
        else:
            usage.average_duration = minutes
        return usage.model_copy()

    # ------------------------------------------------------------------
    async def create_execution(self, execution: WorkflowExecution) -> None:
        if execution.id in self._executions:
            raise ValueError(f"Execution {execution.id} already exists")
        self._executions[execution.id] = execution.model_copy(deep=True)

    async def get_execution(self, execution_id: str) -> WorkflowExecution | None:
        execution = self._executions.get(execution_id)
        return execution.model_copy(deep=True) if execution else None

    async def update_execution(self, execution: WorkflowExecution) -> None:
        stored = self._executions.get(execution.id)
        if stored is None:
            raise NotFoundError("Execution", execution.id)
        if stored.version != execution.version:
            raise ConcurrentModificationError(execution.id, execution.version)
        execution.version += 1
        self._executions[execution.id] = execution.model_copy(deep=True)

    async def list_executions(
        self, template_id: Optional[str] = None
    ) -> list[WorkflowExecution]:
        return [
            e.model_copy(deep=True)
            for e in self._executions.values()
            if template_id is None or e.template_id == template_id
        ]
