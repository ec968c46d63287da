"""SQLite storage for deployment records."""

import sqlite3
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional

from ..exceptions import NotFoundError, ValidationError
from ..models.deployment import DeploymentRecord, DeploymentStatus


class DeploymentRecordStore:
    """Deployment history backed by a SQLite file."""

    def __init__(self, db_path: str = ".sitedeploy/deployments.db"):
        """Initialize SQLite storage.

        Args:
            db_path: Path to SQLite database file
        """
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    def _init_db(self):
        with sqlite3.connect(self.db_path) as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS deployments (
                    id TEXT PRIMARY KEY,
                    project_id TEXT NOT NULL,
                    status TEXT NOT NULL,
                    started_at TEXT NOT NULL,
                    completed_at TEXT,
                    commit_message TEXT,
                    commit_sha TEXT,
                    build_time INTEGER,
                    error_message TEXT
                )
            """)

            conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_deployments_project_started
                ON deployments(project_id, started_at)
            """)

            conn.commit()

    def start(
        self,
        project_id: str,
        commit_message: Optional[str] = None,
        record_id: Optional[str] = None,
        started_at: Optional[datetime] = None,
    ) -> DeploymentRecord:
        """Create a pending record for a publish that is starting."""
        record = DeploymentRecord(
            id=record_id or uuid.uuid4().hex,
            project_id=project_id,
            status=DeploymentStatus.PENDING,
            started_at=started_at or datetime.now(timezone.utc),
            commit_message=commit_message or "Deployment",
        )

        with sqlite3.connect(self.db_path) as conn:
            conn.execute("""
                INSERT INTO deployments
                (id, project_id, status, started_at, commit_message)
                VALUES (?, ?, ?, ?, ?)
            """, (
                record.id,
                record.project_id,
                record.status.value,
                record.started_at.isoformat(),
                record.commit_message,
            ))
            conn.commit()

        return record

    def complete(
        self,
        record_id: str,
        status: DeploymentStatus,
        commit_sha: Optional[str] = None,
        build_time: Optional[int] = None,
        error_message: Optional[str] = None,
    ) -> DeploymentRecord:
        """Finalize a record. A record can be completed only once.

        Raises:
            NotFoundError: If the record does not exist
            ValidationError: If the record was already completed
        """
        if status == DeploymentStatus.PENDING:
            raise ValidationError("A deployment cannot be completed as pending")

        completed_at = datetime.now(timezone.utc).isoformat()
        with sqlite3.connect(self.db_path) as conn:
            cursor = conn.execute("""
                UPDATE deployments
                SET status = ?, completed_at = ?, commit_sha = ?, build_time = ?, error_message = ?
                WHERE id = ? AND completed_at IS NULL
            """, (status.value, completed_at, commit_sha, build_time, error_message, record_id))
            conn.commit()
            updated = cursor.rowcount

        if not updated:
            if self.get(record_id) is None:
                raise NotFoundError(f"Deployment record {record_id} not found")
            raise ValidationError(f"Deployment record {record_id} is already completed")

        return self.get(record_id)

    def get(self, record_id: str) -> Optional[DeploymentRecord]:
        with sqlite3.connect(self.db_path) as conn:
            conn.row_factory = sqlite3.Row
            row = conn.execute("SELECT * FROM deployments WHERE id = ?", (record_id,)).fetchone()
        return self._to_record(row) if row else None

    def list(self, project_id: Optional[str] = None, limit: int = 20) -> List[DeploymentRecord]:
        """Records newest first, optionally for one project."""
        query = "SELECT * FROM deployments"
        params: list = []
        if project_id:
            query += " WHERE project_id = ?"
            params.append(project_id)
        query += " ORDER BY started_at DESC LIMIT ?"
        params.append(limit)

        with sqlite3.connect(self.db_path) as conn:
            conn.row_factory = sqlite3.Row
            rows = conn.execute(query, params).fetchall()
        return [self._to_record(row) for row in rows]

    @staticmethod
    def _to_record(row: sqlite3.Row) -> DeploymentRecord:
        return DeploymentRecord(
            id=row["id"],
            project_id=row["project_id"],
            status=DeploymentStatus(row["status"]),
            started_at=datetime.fromisoformat(row["started_at"]),
            completed_at=datetime.fromisoformat(row["completed_at"]) if row["completed_at"] else None,
            commit_message=row["commit_message"],
            commit_sha=row["commit_sha"],
            build_time=row["build_time"],
            error_message=row["error_message"],
        )
