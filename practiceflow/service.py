"""Workflow service: the operations exposed to collaborating subsystems."""

from __future__ import annotations

import asyncio
import logging
from collections import Counter
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any, AsyncIterator, Callable, Dict, Mapping, Optional

from .automation import AutomationDispatcher
from .config import PracticeflowConfig, load_config
from .contracts import (
    AutomationContext,
    ExecutionConfig,
    ExecutionStatus,
    ProgressReport,
    StepResult,
    TemplateConfig,
    WorkflowExecution,
    WorkflowTemplate,
    utcnow,
)
from .engine import (
    DependencyResolver,
    StepTransitionEngine,
    get_progress,
    start_execution,
    transition_execution,
)
from .engine.resolver import SkipEvaluator
from .errors import NotFoundError
from .persistence import WorkflowRepository, get_repository
from .registry import TemplateRegistry, predefined_templates

logger = logging.getLogger(__name__)


class WorkflowService:
    """Creates templates, runs executions and reports on them.

    Mutations of one execution are serialized by a per-execution lock, and
    every write is checked against the version that was read, so writers in
    other processes get ``ConcurrentModificationError`` instead of silently
    overwriting each other.
    """

    def __init__(
        self,
        repository: Optional[WorkflowRepository] = None,
        config: Optional[PracticeflowConfig] = None,
        dispatcher: Optional[AutomationDispatcher] = None,
        skip_evaluator: Optional[SkipEvaluator] = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.config = config or load_config()
        self._repository = repository or get_repository(config=self.config)
        engine_config = self.config.engine
        self.registry = TemplateRegistry(
            self._repository, strict=engine_config.strict_cycle_detection
        )
        self.dispatcher = dispatcher or AutomationDispatcher(
            api_timeout=self.config.automation.api_timeout
        )
        self.engine = StepTransitionEngine(
            DependencyResolver(
                skip_evaluator=skip_evaluator,
                skipped_satisfies_prerequisites=engine_config.skipped_satisfies_prerequisites,
            ),
            clock=clock,
        )
        self._clock = clock
        self._locks: Dict[str, asyncio.Lock] = {}
        self._lock_users: Counter[str] = Counter()

    # ------------------------------------------------------------------
    # Templates
    async def create_template(
        self, config: TemplateConfig, created_by: Optional[str] = None
    ) -> WorkflowTemplate:
        return await self.registry.create_template(config, created_by=created_by)

    async def seed_predefined(self, created_by: Optional[str] = None) -> list[WorkflowTemplate]:
        """Register the stock templates; each call registers fresh copies."""
        return [
            await self.registry.create_template(config, created_by=created_by)
            for config in predefined_templates()
        ]

    async def get_template(self, template_id: str) -> WorkflowTemplate:
        return await self.registry.get_template(template_id)

    async def list_templates(self) -> list[WorkflowTemplate]:
        return await self.registry.list_templates()

    # ------------------------------------------------------------------
    # Executions
    async def start_execution(
        self, template_id: str, config: ExecutionConfig
    ) -> WorkflowExecution:
        """Start a new execution of ``template_id``.

        Raises:
            NotFoundError: Unknown template.
            TemplateValidationError: The customizations break the step graph.
        """

        template = await self.registry.get_template(template_id)
        execution = start_execution(
            template,
            config,
            now=self._clock(),
            workday_hours=self.config.engine.workday_hours,
            strict=self.config.engine.strict_cycle_detection,
        )
        await self._repository.create_execution(execution)
        await self.registry.record_usage(template_id)
        return execution

    async def get_execution(self, execution_id: str) -> WorkflowExecution:
        execution = await self._repository.get_execution(execution_id)
        if execution is None:
            raise NotFoundError("Execution", execution_id)
        return execution

    async def list_executions(
        self, template_id: Optional[str] = None
    ) -> list[WorkflowExecution]:
        return await self._repository.list_executions(template_id)

    async def execute_step(
        self,
        execution_id: str,
        step_id: str,
        outputs: Optional[Mapping[str, Any]] = None,
        validation_override: bool = False,
        notes: Optional[str] = None,
        duration: Optional[int] = None,
    ) -> StepResult:
        """Complete (or fail) an in-progress step and activate what it unlocks.

        Raises:
            NotFoundError: Unknown execution or step.
            PreconditionFailedError: The step is not in progress or the
                execution is not active.
            ConcurrentModificationError: Another writer got there first.
        """

        async with self._exclusive(execution_id):
            execution = await self.get_execution(execution_id)
            result = self.engine.execute_step(
                execution,
                step_id,
                outputs,
                validation_override=validation_override,
                notes=notes,
                duration=duration,
            )
            await self._repository.update_execution(execution)

        logger.info(
            f"Step {step_id} of execution {execution_id} -> {result.status.value}; "
            f"progress {execution.progress_percentage}%, next {result.next_steps}"
        )

        if result.validation_results.passed:
            step = execution.get_step(step_id)
            if step is not None and step.automation is not None:
                context = AutomationContext(
                    execution_id=execution.id,
                    execution_name=execution.name,
                    template_id=execution.template_id,
                    owner=execution.owner,
                    step_id=step_id,
                    assigned_to=execution.step_states[step_id].assigned_to,
                    supervisor_id=execution.supervisor_id,
                )
                await self.dispatcher.dispatch(step.automation, context, result.outputs)
            await self.registry.record_duration(execution.template_id, result.duration)

        return result

    async def get_progress(self, execution_id: str) -> ProgressReport:
        execution = await self.get_execution(execution_id)
        return get_progress(
            execution,
            now=self._clock(),
            recent_limit=self.config.engine.recent_activity_limit,
            milestone_limit=self.config.engine.milestone_limit,
        )

    async def hold_execution(self, execution_id: str) -> WorkflowExecution:
        return await self._set_status(execution_id, ExecutionStatus.ON_HOLD)

    async def resume_execution(self, execution_id: str) -> WorkflowExecution:
        return await self._set_status(execution_id, ExecutionStatus.ACTIVE)

    async def cancel_execution(self, execution_id: str) -> WorkflowExecution:
        """Cancel an active or held execution.

        Steps in progress keep their status; they can no longer be executed
        because the execution is not active.
        """
        return await self._set_status(execution_id, ExecutionStatus.CANCELLED)

    async def _set_status(
        self, execution_id: str, status: ExecutionStatus
    ) -> WorkflowExecution:
        async with self._exclusive(execution_id):
            execution = await self.get_execution(execution_id)
            transition_execution(execution, status, at=self._clock())
            await self._repository.update_execution(execution)
        return execution

    @asynccontextmanager
    async def _exclusive(self, execution_id: str) -> AsyncIterator[None]:
        """Hold the lock of ``execution_id``; the entry is dropped once unused."""

        lock = self._locks.get(execution_id)
        if lock is None:
            lock = self._locks[execution_id] = asyncio.Lock()
        self._lock_users[execution_id] += 1
        try:
            async with lock:
                yield
        finally:
            self._lock_users[execution_id] -= 1
            if not self._lock_users[execution_id]:
                del self._lock_users[execution_id]
                del self._locks[execution_id]
