# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""
Run repository for persistent storage of agent runs.

Stores runs, their append-only step records and the artifacts captured from
tool results. Uses SQLite for local storage with full transaction support.
"""

import sqlite3

from pathlib import Path
from typing import Optional, List
from datetime import datetime
from contextlib import contextmanager

from .models import Run, RunStatus, StepRecord, Artifact
from ..types.common import LogLevel


class RunRepository:
    """
    Repository for managing run storage and retrieval.

    Runs are created once and updated by the loop that owns them. Step records
    and artifacts are insert-only.
    """

    def __init__(self, db_path: Path):
        """
        Initialize repository with database path.

        Args:
            db_path: Path to SQLite database file (will be created if doesn't exist)
        """
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_schema()

    @contextmanager
    def _get_connection(self):
        """Context manager for database connections with transaction support."""
        conn = sqlite3.connect(str(self.db_path))
        conn.row_factory = sqlite3.Row
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def _ensure_schema(self):
        """
        Create database schema if it doesn't exist.

        - runs: One row per agent loop execution
        - step_records: Append-only log lines per run
        - artifacts: Files produced by tools during a run
        """
        with self._get_connection() as conn:
            cursor = conn.cursor()

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS runs (
                    id TEXT PRIMARY KEY,
                    session_id TEXT NOT NULL,
                    status TEXT NOT NULL DEFAULT 'in_progress',
                    started_at TIMESTAMP NOT NULL,
                    ended_at TIMESTAMP,

                    CHECK (status IN ('in_progress', 'completed', 'failed', 'cancelled'))
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS step_records (
                    record_id INTEGER PRIMARY KEY AUTOINCREMENT,
                    run_id TEXT NOT NULL,
                    step INTEGER NOT NULL,
                    level TEXT NOT NULL DEFAULT 'info',
                    message TEXT NOT NULL,
                    payload TEXT,
                    created_at TIMESTAMP NOT NULL,

                    FOREIGN KEY (run_id) REFERENCES runs(id) ON DELETE CASCADE,
                    CHECK (level IN ('info', 'success', 'warning', 'error'))
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS artifacts (
                    id TEXT PRIMARY KEY,
                    run_id TEXT NOT NULL,
                    kind TEXT NOT NULL DEFAULT 'file',
                    file_name TEXT NOT NULL,
                    file_path TEXT NOT NULL,
                    download_url TEXT,
                    mime_type TEXT NOT NULL,
                    size_bytes INTEGER NOT NULL DEFAULT 0,
                    created_at TIMESTAMP NOT NULL,

                    FOREIGN KEY (run_id) REFERENCES runs(id) ON DELETE CASCADE
                )
            """)

            cursor.execute("CREATE INDEX IF NOT EXISTS idx_runs_session ON runs(session_id)")
            cursor.execute("CREATE INDEX IF NOT EXISTS idx_step_records_run ON step_records(run_id, step)")
            cursor.execute("CREATE INDEX IF NOT EXISTS idx_artifacts_run ON artifacts(run_id)")

    def _row_to_run(self, row: sqlite3.Row) -> Run:
        """Convert database row to Run dataclass."""
        return Run(
            id=row['id'],
            session_id=row['session_id'],
            status=RunStatus(row['status']),
            started_at=datetime.fromisoformat(row['started_at']),
            ended_at=datetime.fromisoformat(row['ended_at']) if row['ended_at'] else None,
        )

    def _row_to_step_record(self, row: sqlite3.Row) -> StepRecord:
        """Convert database row to StepRecord dataclass."""
        return StepRecord(
            run_id=row['run_id'],
            step=row['step'],
            message=row['message'],
            level=LogLevel(row['level']),
            payload=row['payload'],
            created_at=datetime.fromisoformat(row['created_at']),
        )

    def _row_to_artifact(self, row: sqlite3.Row) -> Artifact:
        """Convert database row to Artifact dataclass."""
        return Artifact(
            id=row['id'],
            run_id=row['run_id'],
            kind=row['kind'],
            file_name=row['file_name'],
            file_path=row['file_path'],
            download_url=row['download_url'],
            mime_type=row['mime_type'],
            size_bytes=row['size_bytes'],
            created_at=datetime.fromisoformat(row['created_at']),
        )

    # Runs ====================================================================

    def create_run(self, run: Run) -> str:
        """
        Insert a new run.

        Args:
            run: The run to persist, normally still IN_PROGRESS

        Returns:
            The run id
        """
        with self._get_connection() as conn:
            conn.execute("""
                INSERT INTO runs (id, session_id, status, started_at, ended_at)
                VALUES (?, ?, ?, ?, ?)
            """, (
                run.id,
                run.session_id,
                run.status.value,
                run.started_at.isoformat(),
                run.ended_at.isoformat() if run.ended_at else None,
            ))
        return run.id

    def update_run(self, run: Run) -> None:
        """Persist the current status and end time of a run."""
        with self._get_connection() as conn:
            conn.execute("""
                UPDATE runs SET status = ?, ended_at = ? WHERE id = ?
            """, (
                run.status.value,
                run.ended_at.isoformat() if run.ended_at else None,
                run.id,
            ))

    def get_run(self, run_id: str) -> Optional[Run]:
        with self._get_connection() as conn:
            row = conn.execute("SELECT * FROM runs WHERE id = ?", (run_id,)).fetchone()
            return self._row_to_run(row) if row else None

    def list_runs(self, session_id: Optional[str] = None) -> List[Run]:
        """List runs, oldest first, optionally restricted to one session."""
        with self._get_connection() as conn:
            if session_id is None:
                rows = conn.execute("SELECT * FROM runs ORDER BY started_at").fetchall()
            else:
                rows = conn.execute(
                    "SELECT * FROM runs WHERE session_id = ? ORDER BY started_at",
                    (session_id,),
                ).fetchall()
            return [self._row_to_run(r) for r in rows]

    # Step records ============================================================

    def append_step_record(self, record: StepRecord) -> int:
        """
        Append a step record.

        Returns:
            record_id: Insertion order key of the new record
        """
        with self._get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute("""
                INSERT INTO step_records (run_id, step, level, message, payload, created_at)
                VALUES (?, ?, ?, ?, ?, ?)
            """, (
                record.run_id,
                record.step,
                record.level.value,
                record.message,
                record.payload,
                record.created_at.isoformat(),
            ))
            return cursor.lastrowid

    def list_step_records(self, run_id: str, level: Optional[LogLevel] = None) -> List[StepRecord]:
        """Get the step records of a run in insertion order."""
        query = "SELECT * FROM step_records WHERE run_id = ?"
        params: list = [run_id]
        if level is not None:
            query += " AND level = ?"
            params.append(level.value)
        query += " ORDER BY record_id"

        with self._get_connection() as conn:
            rows = conn.execute(query, params).fetchall()
            return [self._row_to_step_record(r) for r in rows]

    # Artifacts ===============================================================

    def create_artifact(self, artifact: Artifact) -> str:
        with self._get_connection() as conn:
            conn.execute("""
                INSERT INTO artifacts (
                    id, run_id, kind, file_name, file_path, download_url,
                    mime_type, size_bytes, created_at
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            """, (
                artifact.id,
                artifact.run_id,
                artifact.kind,
                artifact.file_name,
                artifact.file_path,
                artifact.download_url,
                artifact.mime_type,
                artifact.size_bytes,
                artifact.created_at.isoformat(),
            ))
        return artifact.id

    def list_artifacts(self, run_id: str) -> List[Artifact]:
        with self._get_connection() as conn:
            rows = conn.execute(
                "SELECT * FROM artifacts WHERE run_id = ? ORDER BY created_at, rowid",
                (run_id,),
            ).fetchall()
            return [self._row_to_artifact(r) for r in rows]
