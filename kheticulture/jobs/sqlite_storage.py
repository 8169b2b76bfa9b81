"""SQLite storage backend for the job marketplace.

Each record is stored as one JSON document keyed by its ID, with the
columns needed for filtering copied alongside. Writes are
``INSERT OR REPLACE`` of the whole row inside a single transaction, so a
reader in another process never sees half of an update.
"""

import contextlib
import json
import logging
import sqlite3
from pathlib import Path
from typing import Iterator, List, Optional, Union

from kheticulture.jobs.errors import StorageError
from kheticulture.jobs.models import Application, Job, JobStateTransition

logger = logging.getLogger(__name__)

SCHEMA_VERSION = 1

SCHEMA = """
CREATE TABLE IF NOT EXISTS schema_version (
    version INTEGER NOT NULL
);

CREATE TABLE IF NOT EXISTS jobs (
    id TEXT PRIMARY KEY,
    owner_id TEXT NOT NULL,
    created_at TEXT,
    data TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_jobs_owner ON jobs(owner_id);

CREATE TABLE IF NOT EXISTS applications (
    id TEXT PRIMARY KEY,
    job_id TEXT NOT NULL,
    worker_id TEXT NOT NULL,
    created_at TEXT,
    data TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_applications_job ON applications(job_id);
CREATE INDEX IF NOT EXISTS idx_applications_worker ON applications(worker_id);

CREATE TABLE IF NOT EXISTS job_transitions (
    seq INTEGER PRIMARY KEY AUTOINCREMENT,
    id TEXT NOT NULL UNIQUE,
    job_id TEXT NOT NULL,
    created_at TEXT,
    data TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_transitions_job ON job_transitions(job_id);
"""


class SQLiteJobStorage:
    """SQLite-based local storage for jobs and applications."""

    def __init__(self, db_path: Union[str, Path]):
        self.db_path = Path(db_path)
        if str(db_path) != ":memory:":
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
        # A single connection so that ":memory:" databases persist between calls
        try:
            self._conn = sqlite3.connect(str(db_path))
        except sqlite3.Error as e:
            raise StorageError(f"Cannot open database {db_path}: {e}") from e
        self._conn.row_factory = sqlite3.Row
        self._init_db()

    def _init_db(self) -> None:
        with self._connect() as conn:
            conn.executescript(SCHEMA)
            row = conn.execute("SELECT version FROM schema_version LIMIT 1").fetchone()
            if row is None:
                conn.execute("INSERT INTO schema_version (version) VALUES (?)", (SCHEMA_VERSION,))
        logger.debug("Initialized job database at %s", self.db_path)

    @contextlib.contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        """Yield the connection inside one transaction.

        Driver errors are re-raised as StorageError with the driver's text.
        """
        try:
            with self._conn:
                yield self._conn
        except sqlite3.Error as e:
            raise StorageError(str(e)) from e

    def close(self) -> None:
        self._conn.close()

    # === Jobs ===

    def list_jobs(self) -> List[Job]:
        with self._connect() as conn:
            rows = conn.execute("SELECT data FROM jobs ORDER BY created_at, rowid").fetchall()
        return [Job.from_dict(json.loads(r["data"])) for r in rows]

    def get_job(self, job_id: str) -> Optional[Job]:
        with self._connect() as conn:
            row = conn.execute("SELECT data FROM jobs WHERE id = ?", (job_id,)).fetchone()
        return Job.from_dict(json.loads(row["data"])) if row else None

    def put_job(self, job: Job) -> None:
        data = job.to_dict()
        with self._connect() as conn:
            conn.execute(
                "INSERT OR REPLACE INTO jobs (id, owner_id, created_at, data) VALUES (?, ?, ?, ?)",
                (job.id, job.owner_id, data["created_at"], json.dumps(data)),
            )

    def delete_job(self, job_id: str) -> None:
        with self._connect() as conn:
            conn.execute("DELETE FROM jobs WHERE id = ?", (job_id,))

    # === Applications ===

    def list_applications(
        self,
        job_id: Optional[str] = None,
        worker_id: Optional[str] = None,
    ) -> List[Application]:
        query = "SELECT data FROM applications"
        clauses = []
        params: list = []
        if job_id is not None:
            clauses.append("job_id = ?")
            params.append(job_id)
        if worker_id is not None:
            clauses.append("worker_id = ?")
            params.append(worker_id)
        if clauses:
            query += " WHERE " + " AND ".join(clauses)
        query += " ORDER BY created_at, rowid"

        with self._connect() as conn:
            rows = conn.execute(query, params).fetchall()
        return [Application.from_dict(json.loads(r["data"])) for r in rows]

    def get_application(self, application_id: str) -> Optional[Application]:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT data FROM applications WHERE id = ?", (application_id,)
            ).fetchone()
        return Application.from_dict(json.loads(row["data"])) if row else None

    def put_application(self, application: Application) -> None:
        data = application.to_dict()
        with self._connect() as conn:
            conn.execute(
                """
                INSERT OR REPLACE INTO applications (id, job_id, worker_id, created_at, data)
                VALUES (?, ?, ?, ?, ?)
                """,
                (
                    application.id,
                    application.job_id,
                    application.worker_id,
                    data["created_at"],
                    json.dumps(data),
                ),
            )

    def delete_applications(self, job_id: str) -> int:
        with self._connect() as conn:
            cur = conn.execute("DELETE FROM applications WHERE job_id = ?", (job_id,))
        return cur.rowcount

    # === Transitions ===

    def save_transition(self, transition: JobStateTransition) -> str:
        data = transition.to_dict()
        with self._connect() as conn:
            conn.execute(
                "INSERT INTO job_transitions (id, job_id, created_at, data) VALUES (?, ?, ?, ?)",
                (transition.id, transition.job_id, data["created_at"], json.dumps(data)),
            )
        return transition.id

    def get_transitions(self, job_id: str) -> List[JobStateTransition]:
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT data FROM job_transitions WHERE job_id = ? ORDER BY seq",
                (job_id,),
            ).fetchall()
        return [JobStateTransition.from_dict(json.loads(r["data"])) for r in rows]
