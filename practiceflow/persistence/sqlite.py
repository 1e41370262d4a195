"""SQLite implementation of the workflow repository."""

from __future__ import annotations

import asyncio
import sqlite3
import threading
from pathlib import Path
from typing import Any, Optional

from ..contracts import TemplateUsage, WorkflowExecution, WorkflowTemplate
from ..errors import ConcurrentModificationError, NotFoundError
from .repository import WorkflowRepository


class SQLiteWorkflowRepository(WorkflowRepository):
    """Persist templates and executions using SQLite."""

    def __init__(self, db_path: str | Path):
        self.db_path = str(db_path)
        self._conn = sqlite3.connect(self.db_path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        # One connection is shared by the worker threads of asyncio.to_thread.
        self._lock = threading.RLock()
        self._ensure_schema()

    # ------------------------------------------------------------------
    # Schema management
    def _ensure_schema(self) -> None:
        cur = self._conn.cursor()
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS templates (
                id TEXT PRIMARY KEY,
                name TEXT NOT NULL,
                data TEXT NOT NULL
            )
            """
        )
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS template_usage (
                template_id TEXT PRIMARY KEY,
                times_used INTEGER NOT NULL,
                average_duration INTEGER
            )
            """
        )
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS executions (
                id TEXT PRIMARY KEY,
                template_id TEXT NOT NULL,
                status TEXT NOT NULL,
                version INTEGER NOT NULL,
                data TEXT NOT NULL
            )
            """
        )
        self._conn.commit()

    # ------------------------------------------------------------------
    # Helper methods
    def _execute(self, query: str, *params: Any) -> int:
        with self._lock:
            cur = self._conn.cursor()
            cur.execute(query, params)
            self._conn.commit()
            return cur.rowcount

    def _fetchone(self, query: str, *params: Any) -> sqlite3.Row | None:
        with self._lock:
            cur = self._conn.cursor()
            cur.execute(query, params)
            return cur.fetchone()

    def _fetchall(self, query: str, *params: Any) -> list[sqlite3.Row]:
        with self._lock:
            cur = self._conn.cursor()
            cur.execute(query, params)
            return cur.fetchall()

    # ------------------------------------------------------------------
    # Templates
    async def create_template(self, template: WorkflowTemplate) -> None:
        await asyncio.to_thread(
            self._execute,
            "INSERT INTO templates (id, name, data) VALUES (?, ?, ?)",
            template.id,
            template.name,
            template.model_dump_json(),
        )

    async def get_template(self, template_id: str) -> WorkflowTemplate | None:
        row = await asyncio.to_thread(
            self._fetchone, "SELECT data FROM templates WHERE id = ?", template_id
        )
        return WorkflowTemplate.model_validate_json(row["data"]) if row else None

    async def list_templates(self) -> list[WorkflowTemplate]:
        rows = await asyncio.to_thread(
            self._fetchall, "SELECT data FROM templates ORDER BY rowid"
        )
        return [WorkflowTemplate.model_validate_json(r["data"]) for r in rows]

    async def get_usage(self, template_id: str) -> TemplateUsage | None:
        row = await asyncio.to_thread(
            self._fetchone,
            "SELECT template_id, times_used, average_duration FROM template_usage WHERE template_id = ?",
            template_id,
        )
        if not row:
            return None
        return TemplateUsage(
            template_id=row["template_id"],
            times_used=row["times_used"],
            average_duration=row["average_duration"],
        )

    async def increment_usage(self, template_id: str) -> TemplateUsage:
        return await asyncio.to_thread(
            self._upsert_usage,
            """
            INSERT INTO template_usage (template_id, times_used, average_duration)
            VALUES (?, 1, NULL)
            ON CONFLICT(template_id) DO UPDATE SET
                times_used = times_used + 1
            """,
            template_id,
        )

    async def record_duration(self, template_id: str, minutes: int) -> TemplateUsage:
        return await asyncio.to_thread(
            self._upsert_usage,
            """
            INSERT INTO template_usage (template_id, times_used, average_duration)
            VALUES (?, 0, ?)
            ON CONFLICT(template_id) DO UPDATE SET
                average_duration = CASE
                    WHEN IFNULL(average_duration, 0) = 0 THEN excluded.average_duration
                    ELSE CAST((average_duration + excluded.average_duration) / 2.0 + 0.5 AS INTEGER)
                END
            """,
            template_id,
            minutes,
        )

    def _upsert_usage(self, query: str, template_id: str, *params: Any) -> TemplateUsage:
        with self._lock:
            self._execute(query, template_id, *params)
            row = self._fetchone(
                "SELECT template_id, times_used, average_duration FROM template_usage WHERE template_id = ?",
                template_id,
            )
        return TemplateUsage(
            template_id=row["template_id"],
            times_used=row["times_used"],
            average_duration=row["average_duration"],
        )

    # ------------------------------------------------------------------
    # Executions
    async def create_execution(self, execution: WorkflowExecution) -> None:
        await asyncio.to_thread(
            self._execute,
            "INSERT INTO executions (id, template_id, status, version, data) VALUES (?, ?, ?, ?, ?)",
            execution.id,
            execution.template_id,
            execution.status.value,
            execution.version,
            execution.model_dump_json(),
        )

    async def get_execution(self, execution_id: str) -> WorkflowExecution | None:
        row = await asyncio.to_thread(
            self._fetchone, "SELECT data FROM executions WHERE id = ?", execution_id
        )
        return WorkflowExecution.model_validate_json(row["data"]) if row else None

    async def update_execution(self, execution: WorkflowExecution) -> None:
        expected = execution.version
        stored = execution.model_copy(update={"version": expected + 1})
        updated = await asyncio.to_thread(
            self._execute,
            """
            UPDATE executions SET status = ?, version = ?, data = ?
            WHERE id = ? AND version = ?
            """,
            stored.status.value,
            stored.version,
            stored.model_dump_json(),
            execution.id,
            expected,
        )
        if updated == 0:
            exists = await asyncio.to_thread(
                self._fetchone, "SELECT 1 FROM executions WHERE id = ?", execution.id
            )
            if not exists:
                raise NotFoundError("Execution", execution.id)
            raise ConcurrentModificationError(execution.id, expected)
        execution.version = stored.version

    async def list_executions(
        self, template_id: Optional[str] = None
    ) -> list[WorkflowExecution]:
        if template_id is None:
            rows = await asyncio.to_thread(
                self._fetchall, "SELECT data FROM executions ORDER BY rowid"
            )
        else:
            rows = await asyncio.to_thread(
                self._fetchall,
                "SELECT data FROM executions WHERE template_id = ? ORDER BY rowid",
                template_id,
            )
        return [WorkflowExecution.model_validate_json(r["data"]) for r in rows]
