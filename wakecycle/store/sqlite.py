"""
SQLite-backed Task Store.

Tables:
  - cognitive_tasks  : one row per task, JSON columns for payload/dependencies/metadata
  - scheduler_cycles : one immutable row per wake cycle

Usage:
    store = SQLiteTaskStore("./data/sqlite/wakecycle.db")
    await store.init()
    ...
    await store.close()
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Optional

import aiosqlite

from wakecycle.exceptions import StoreNotInitializedError, StoreWriteError
from wakecycle.models.cycle import Cycle
from wakecycle.models.task import Task, TaskPriority, TaskStatus
from wakecycle.observability.logger import get_logger
from wakecycle.store.base import TaskStore

log = get_logger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS cognitive_tasks (
    seq                   INTEGER PRIMARY KEY AUTOINCREMENT,
    id                    TEXT NOT NULL UNIQUE,
    type                  TEXT NOT NULL,
    description           TEXT NOT NULL,
    priority              TEXT NOT NULL,
    status                TEXT NOT NULL,
    created_at            REAL NOT NULL,
    deadline              REAL,
    estimated_duration_ms INTEGER NOT NULL,
    actual_duration_ms    REAL,
    executed_count        INTEGER DEFAULT 0,
    failure_count         INTEGER DEFAULT 0,
    last_failure_reason   TEXT,
    payload               TEXT,
    parent_goal_id        TEXT,
    dependencies          TEXT,
    retry_attempts        INTEGER DEFAULT 0,
    max_retries           INTEGER NOT NULL,
    metadata              TEXT
);

CREATE TABLE IF NOT EXISTS scheduler_cycles (
    seq                INTEGER PRIMARY KEY AUTOINCREMENT,
    id                 TEXT NOT NULL UNIQUE,
    started_at         REAL NOT NULL,
    tasks_executed     INTEGER NOT NULL,
    tasks_completed    INTEGER NOT NULL,
    tasks_failed       INTEGER NOT NULL,
    total_duration_ms  REAL NOT NULL,
    resources_warning  TEXT
);

CREATE INDEX IF NOT EXISTS idx_tasks_status   ON cognitive_tasks(status);
CREATE INDEX IF NOT EXISTS idx_tasks_priority ON cognitive_tasks(priority);
CREATE INDEX IF NOT EXISTS idx_tasks_deadline ON cognitive_tasks(deadline);
CREATE INDEX IF NOT EXISTS idx_tasks_created  ON cognitive_tasks(created_at DESC);
CREATE INDEX IF NOT EXISTS idx_cycles_started ON scheduler_cycles(started_at DESC);
"""

_TASK_COLUMNS = (
    "id", "type", "description", "priority", "status", "created_at", "deadline",
    "estimated_duration_ms", "actual_duration_ms", "executed_count", "failure_count",
    "last_failure_reason", "payload", "parent_goal_id", "dependencies",
    "retry_attempts", "max_retries", "metadata",
)
_JSON_COLUMNS = {"payload", "dependencies", "metadata"}


class SQLiteTaskStore(TaskStore):
    """Durable store on a local SQLite file (or ":memory:")."""

    def __init__(self, db_path: str = "./data/sqlite/wakecycle.db"):
        super().__init__()
        self.db_path = db_path
        self._db: Optional[aiosqlite.Connection] = None

    async def init(self) -> None:
        """Create the database file and tables if they don't exist."""
        if self.db_path != ":memory:":
            Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
        self._db = await aiosqlite.connect(self.db_path)
        self._db.row_factory = aiosqlite.Row
        await self._db.executescript(_SCHEMA)
        await self._db.commit()
        log.info("task_store.initialized", db_path=self.db_path)

    async def close(self) -> None:
        if self._db:
            await self._db.close()
            self._db = None

    def _require_db(self) -> aiosqlite.Connection:
        if self._db is None:
            raise StoreNotInitializedError(
                "SQLiteTaskStore is not initialised (or has been closed). "
                "Call `await store.init()` before use."
            )
        return self._db

    async def _write(self, sql: str, params: tuple[Any, ...]) -> None:
        db = self._require_db()
        try:
            await db.execute(sql, params)
            await db.commit()
        except aiosqlite.Error as e:
            log.error("task_store.write_failed", error=str(e))
            raise StoreWriteError(str(e)) from e

    # ── Tasks ─────────────────────────────────────────────────────────────────

    async def add_task(self, task: Task) -> Task:
        row = self._task_to_row(task)
        placeholders = ", ".join("?" for _ in _TASK_COLUMNS)
        await self._write(
            f"INSERT INTO cognitive_tasks ({', '.join(_TASK_COLUMNS)}) VALUES ({placeholders})",
            tuple(row[c] for c in _TASK_COLUMNS),
        )
        return task.model_copy(deep=True)

    async def get_task(self, task_id: str) -> Optional[Task]:
        db = self._require_db()
        cursor = await db.execute("SELECT * FROM cognitive_tasks WHERE id=?", (task_id,))
        row = await cursor.fetchone()
        return self._row_to_task(row) if row is not None else None

    async def list_tasks(
        self,
        status: Optional[TaskStatus] = None,
        priority: Optional[TaskPriority] = None,
    ) -> list[Task]:
        db = self._require_db()
        clauses: list[str] = []
        params: list[Any] = []
        if status is not None:
            clauses.append("status=?")
            params.append(TaskStatus(status).value)
        if priority is not None:
            clauses.append("priority=?")
            params.append(TaskPriority(priority).value)
        where = f" WHERE {' AND '.join(clauses)}" if clauses else ""
        cursor = await db.execute(f"SELECT * FROM cognitive_tasks{where} ORDER BY seq", params)
        rows = await cursor.fetchall()
        return [self._row_to_task(r) for r in rows]

    async def _save(self, task: Task) -> None:
        row = self._task_to_row(task)
        columns = [c for c in _TASK_COLUMNS if c != "id"]
        assignments = ", ".join(f"{c}=?" for c in columns)
        await self._write(
            f"UPDATE cognitive_tasks SET {assignments} WHERE id=?",
            tuple(row[c] for c in columns) + (task.id,),
        )

    # ── Cycles ────────────────────────────────────────────────────────────────

    async def record_cycle(self, cycle: Cycle) -> None:
        await self._write(
            """INSERT INTO scheduler_cycles
               (id, started_at, tasks_executed, tasks_completed, tasks_failed,
                total_duration_ms, resources_warning)
               VALUES (?, ?, ?, ?, ?, ?, ?)""",
            (
                cycle.id,
                cycle.started_at,
                cycle.tasks_executed,
                cycle.tasks_completed,
                cycle.tasks_failed,
                cycle.total_duration_ms,
                cycle.resources_warning,
            ),
        )

    async def list_cycles(self, limit: int = 20) -> list[Cycle]:
        db = self._require_db()
        cursor = await db.execute(
            "SELECT * FROM scheduler_cycles ORDER BY seq DESC LIMIT ?", (max(limit, 0),)
        )
        rows = await cursor.fetchall()
        return [
            Cycle(
                id=r["id"],
                started_at=r["started_at"],
                tasks_executed=r["tasks_executed"],
                tasks_completed=r["tasks_completed"],
                tasks_failed=r["tasks_failed"],
                total_duration_ms=r["total_duration_ms"],
                resources_warning=r["resources_warning"],
            )
            for r in rows
        ]

    async def clear_all(self) -> None:
        db = self._require_db()
        try:
            await db.execute("DELETE FROM cognitive_tasks")
            await db.execute("DELETE FROM scheduler_cycles")
            await db.commit()
        except aiosqlite.Error as e:
            raise StoreWriteError(str(e)) from e
        self._task_locks.clear()

    # ── Row mapping ───────────────────────────────────────────────────────────

    @staticmethod
    def _task_to_row(task: Task) -> dict[str, Any]:
        data = task.model_dump(mode="json")
        for column in _JSON_COLUMNS:
            value = data[column]
            data[column] = json.dumps(value) if value is not None else None
        return data

    @staticmethod
    def _row_to_task(row: aiosqlite.Row) -> Task:
        data = {c: row[c] for c in _TASK_COLUMNS}
        for column in _JSON_COLUMNS:
            data[column] = json.loads(data[column]) if data[column] else None
        data["dependencies"] = data["dependencies"] or []
        return Task.model_validate(data)
