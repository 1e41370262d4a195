"""Repository abstraction for templates and executions."""

from __future__ import annotations

from typing import Optional, Protocol

from ..contracts import TemplateUsage, WorkflowExecution, WorkflowTemplate


class WorkflowRepository(Protocol):
    """Protocol for workflow persistence backends.

    Execution writes are versioned: ``update_execution`` only succeeds when the
    stored version equals ``execution.version`` and bumps it on success.
    """

    async def create_template(self, template: WorkflowTemplate) -> None:
        """Persist a new, immutable template."""

    async def get_template(self, template_id: str) -> WorkflowTemplate | None:
        """Retrieve a template by id."""

    async def list_templates(self) -> list[WorkflowTemplate]:
        """Return all stored templates."""

    async def get_usage(self, template_id: str) -> TemplateUsage | None:
        """Retrieve usage counters of a template."""

    async def increment_usage(self, template_id: str) -> TemplateUsage:
        """Atomically count one more execution of a template."""

    async def record_duration(self, template_id: str, minutes: int) -> TemplateUsage:
        """Atomically fold ``minutes`` into the running average duration.

        The new average is ``round((avg + minutes) / 2)`` half up, or
        ``minutes`` when no average exists yet.
        """

    async def create_execution(self, execution: WorkflowExecution) -> None:
        """Persist a new execution."""

    async def get_execution(self, execution_id: str) -> WorkflowExecution | None:
        """Retrieve an execution by id."""

    async def update_execution(self, execution: WorkflowExecution) -> None:
        """Write back ``execution`` if nobody else has since it was read.

        Raises:
            ConcurrentModificationError: The stored version moved on.
        """

    async def list_executions(
        self, template_id: Optional[str] = None
    ) -> list[WorkflowExecution]:
        """Return executions, optionally only those of one template."""
