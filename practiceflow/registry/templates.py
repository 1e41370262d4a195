"""Storage and lookup of immutable workflow templates."""

from __future__ import annotations

import logging
from typing import Optional

from ..contracts import TemplateConfig, TemplateUsage, WorkflowTemplate
from ..errors import NotFoundError
from ..persistence import WorkflowRepository
from ..validation import build_dependents, validate_steps

logger = logging.getLogger(__name__)


class TemplateRegistry:
    """Validates, stores and serves workflow templates.

    Templates are never edited once stored; a revised process is a new
    template. Usage counters live beside the template, not in it.
    """

    def __init__(self, repository: WorkflowRepository, strict: bool = False) -> None:
        self._repository = repository
        self._strict = strict

    async def create_template(
        self, config: TemplateConfig, created_by: Optional[str] = None
    ) -> WorkflowTemplate:
        """Validate ``config`` and persist it as a new template.

        Raises:
            TemplateValidationError: The step graph is unsound; nothing is stored.
        """

        validate_steps(config.steps, strict=self._strict)
        template = WorkflowTemplate(
            **config.model_dump(exclude={"steps"}),
            steps=list(config.steps),
            created_by=created_by,
            dependents=build_dependents(config.steps),
        )
        await self._repository.create_template(template)
        logger.info(
            f"Created template {template.id} ({template.name}) with {len(template.steps)} steps"
        )
        return template

    async def get_template(self, template_id: str) -> WorkflowTemplate:
        template = await self._repository.get_template(template_id)
        if template is None:
            raise NotFoundError("Template", template_id)
        return template

    async def list_templates(self) -> list[WorkflowTemplate]:
        return await self._repository.list_templates()

    async def get_usage(self, template_id: str) -> TemplateUsage:
        usage = await self._repository.get_usage(template_id)
        return usage or TemplateUsage(template_id=template_id)

    async def record_usage(self, template_id: str) -> TemplateUsage:
        """Count one more execution started from ``template_id``."""
        return await self._repository.increment_usage(template_id)

    async def record_duration(self, template_id: str, minutes: int) -> TemplateUsage:
        """Fold an actual step duration into the running average."""
        return await self._repository.record_duration(template_id, minutes)
