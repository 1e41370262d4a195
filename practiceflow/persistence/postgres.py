"""PostgreSQL implementation of the workflow repository."""

from __future__ import annotations

from typing import Optional

import asyncpg

from ..contracts import TemplateUsage, WorkflowExecution, WorkflowTemplate
from ..errors import ConcurrentModificationError, NotFoundError
from .repository import WorkflowRepository


class PostgresWorkflowRepository(WorkflowRepository):
    """Persist templates and executions using PostgreSQL."""

    def __init__(self, dsn: str):
        self._dsn = dsn
        self._initialized = False

    async def _connect(self) -> asyncpg.Connection:
        conn = await asyncpg.connect(self._dsn)
        if not self._initialized:
            await self._ensure_schema(conn)
            self._initialized = True
        return conn

    async def _ensure_schema(self, conn: asyncpg.Connection) -> None:
        await conn.execute(
            """
            CREATE TABLE IF NOT EXISTS pf_templates (
                id TEXT PRIMARY KEY,
                name TEXT NOT NULL,
                data JSONB NOT NULL,
                created_at TIMESTAMPTZ NOT NULL DEFAULT now()
            )
            """
        )
        await conn.execute(
            """
            CREATE TABLE IF NOT EXISTS pf_template_usage (
                template_id TEXT PRIMARY KEY,
                times_used INTEGER NOT NULL,
                average_duration INTEGER
            )
            """
        )
        await conn.execute(
            """
            CREATE TABLE IF NOT EXISTS pf_executions (
                id TEXT PRIMARY KEY,
                template_id TEXT NOT NULL,
                status TEXT NOT NULL,
                version INTEGER NOT NULL,
                data JSONB NOT NULL,
                created_at TIMESTAMPTZ NOT NULL DEFAULT now()
            )
            """
        )

    # ------------------------------------------------------------------
    async def create_template(self, template: WorkflowTemplate) -> None:
        conn = await self._connect()
        try:
            await conn.execute(
                "INSERT INTO pf_templates (id, name, data) VALUES ($1, $2, $3)",
                template.id,
                template.name,
                template.model_dump_json(),
            )
        finally:
            await conn.close()

    async def get_template(self, template_id: str) -> WorkflowTemplate | None:
        conn = await self._connect()
        try:
            row = await conn.fetchrow(
                "SELECT data::text AS data FROM pf_templates WHERE id = $1", template_id
            )
        finally:
            await conn.close()
        return WorkflowTemplate.model_validate_json(row["data"]) if row else None

    async def list_templates(self) -> list[WorkflowTemplate]:
        conn = await self._connect()
        try:
            rows = await conn.fetch(
                "SELECT data::text AS data FROM pf_templates ORDER BY created_at"
            )
        finally:
            await conn.close()
        return [WorkflowTemplate.model_validate_json(r["data"]) for r in rows]

    async def get_usage(self, template_id: str) -> TemplateUsage | None:
        conn = await self._connect()
        try:
            row = await conn.fetchrow(
                "SELECT template_id, times_used, average_duration FROM pf_template_usage WHERE template_id = $1",
                template_id,
            )
        finally:
            await conn.close()
        if not row:
            return None
        return TemplateUsage(
            template_id=row["template_id"],
            times_used=row["times_used"],
            average_duration=row["average_duration"],
        )

    async def increment_usage(self, template_id: str) -> TemplateUsage:
        return await self._upsert_usage(
            """
            INSERT INTO pf_template_usage (template_id, times_used, average_duration)
            VALUES ($1, 1, NULL)
            ON CONFLICT (template_id) DO UPDATE SET
                times_used = pf_template_usage.times_used + 1
            RETURNING template_id, times_used, average_duration
            """,
            template_id,
        )

    async def record_duration(self, template_id: str, minutes: int) -> TemplateUsage:
        return await self._upsert_usage(
            """
            INSERT INTO pf_template_usage (template_id, times_used, average_duration)
            VALUES ($1, 0, $2)
            ON CONFLICT (template_id) DO UPDATE SET
                average_duration = CASE
                    WHEN COALESCE(pf_template_usage.average_duration, 0) = 0
                        THEN EXCLUDED.average_duration
                    ELSE FLOOR(
                        (pf_template_usage.average_duration + EXCLUDED.average_duration) / 2.0 + 0.5
                    )::INTEGER
                END
            RETURNING template_id, times_used, average_duration
            """,
            template_id,
            minutes,
        )

    async def _upsert_usage(self, query: str, *params) -> TemplateUsage:
        conn = await self._connect()
        try:
            row = await conn.fetchrow(query, *params)
        finally:
            await conn.close()
        return TemplateUsage(
            template_id=row["template_id"],
            times_used=row["times_used"],
            average_duration=row["average_duration"],
        )

    # ------------------------------------------------------------------
    async def create_execution(self, execution: WorkflowExecution) -> None:
        conn = await self._connect()
        try:
            await conn.execute(
                "INSERT INTO pf_executions (id, template_id, status, version, data) VALUES ($1, $2, $3, $4, $5)",
                execution.id,
                execution.template_id,
                execution.status.value,
                execution.version,
                execution.model_dump_json(),
            )
        finally:
            await conn.close()

    async def get_execution(self, execution_id: str) -> WorkflowExecution | None:
        conn = await self._connect()
        try:
            row = await conn.fetchrow(
                "SELECT data::text AS data FROM pf_executions WHERE id = $1", execution_id
            )
        finally:
            await conn.close()
        return WorkflowExecution.model_validate_json(row["data"]) if row else None

    async def update_execution(self, execution: WorkflowExecution) -> None:
        expected = execution.version
        stored = execution.model_copy(update={"version": expected + 1})
        conn = await self._connect()
        try:
            result = await conn.execute(
                """
                UPDATE pf_executions SET status = $1, version = $2, data = $3
                WHERE id = $4 AND version = $5
                """,
                stored.status.value,
                stored.version,
                stored.model_dump_json(),
                execution.id,
                expected,
            )
            if result == "UPDATE 0":
                exists = await conn.fetchval(
                    "SELECT 1 FROM pf_executions WHERE id = $1", execution.id
                )
                if not exists:
                    raise NotFoundError("Execution", execution.id)
                raise ConcurrentModificationError(execution.id, expected)
        finally:
            await conn.close()
        execution.version = stored.version

    async def list_executions(
        self, template_id: Optional[str] = None
    ) -> list[WorkflowExecution]:
        conn = await self._connect()
        try:
            if template_id is None:
                rows = await conn.fetch(
                    "SELECT data::text AS data FROM pf_executions ORDER BY created_at"
                )
            else:
                rows = await conn.fetch(
                    "SELECT data::text AS data FROM pf_executions WHERE template_id = $1 ORDER BY created_at",
                    template_id,
                )
        finally:
            await conn.close()
        return [WorkflowExecution.model_validate_json(r["data"]) for r in rows]
