"""
SQLite Repository
基于标准库 sqlite3 的持久化实现，嵌套结构以 JSON 文本存储
"""
import json
import logging
import sqlite3
from datetime import datetime
from pathlib import Path
from threading import Lock
from typing import Any, List, Optional

from pydantic import ValidationError
from pydantic.alias_generators import to_camel

from core import Idea, PipelineRun
from utils.exceptions import StorageError

from .repository import BaseRepository, validate_run_updates


logger = logging.getLogger(__name__)

SCHEMA = """
CREATE TABLE IF NOT EXISTS ideas (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    description TEXT NOT NULL,
    complexity TEXT NOT NULL,
    target_clients TEXT NOT NULL,
    client_contacts TEXT NOT NULL,
    marketing_funnels TEXT NOT NULL,
    source_data TEXT NOT NULL,
    created_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS pipeline_runs (
    id TEXT PRIMARY KEY,
    status TEXT NOT NULL DEFAULT 'pending',
    current_phase TEXT,
    query TEXT NOT NULL,
    sources TEXT NOT NULL,
    results TEXT NOT NULL DEFAULT '[]',
    phase_outputs TEXT NOT NULL DEFAULT '{}',
    error TEXT,
    created_at TEXT NOT NULL,
    completed_at TEXT
);
"""

# 需要 JSON 序列化的列
_JSON_RUN_COLUMNS = {"results", "phase_outputs"}


def _dumps(value: Any) -> str:
    return json.dumps(value, ensure_ascii=False)


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


class SQLiteRepository(BaseRepository):
    """
    SQLite 持久化仓库

    单连接 + 锁串行化访问；启用 WAL 以便其它进程并发读取。
    """

    def __init__(self, db_path: str = "./data/ideator.db"):
        self.db_path = db_path
        if db_path != ":memory:":
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)

        self._lock = Lock()
        self._conn = sqlite3.connect(db_path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._conn.execute("PRAGMA journal_mode = WAL")
        self._conn.executescript(SCHEMA)
        self._conn.commit()
        logger.info(f"[Storage] SQLite database opened at {db_path}")

    def _execute(self, sql: str, params: tuple = ()) -> sqlite3.Cursor:
        with self._lock:
            try:
                cursor = self._conn.execute(sql, params)
                self._conn.commit()
                return cursor
            except sqlite3.Error as e:
                self._conn.rollback()
                raise StorageError(f"SQLite error: {e}", {"sql": sql.split()[0]}) from e

    def _fetchone(self, sql: str, params: tuple = ()) -> Optional[sqlite3.Row]:
        return self._execute(sql, params).fetchone()

    def _fetchall(self, sql: str, params: tuple = ()) -> List[sqlite3.Row]:
        return self._execute(sql, params).fetchall()

    # ── Pipeline runs ───────────────────────────────────────

    def create_run(self, run: PipelineRun) -> None:
        data = run.model_dump(mode="json", by_alias=True)
        self._execute(
            "INSERT INTO pipeline_runs (id, status, current_phase, query, sources, results, "
            "phase_outputs, error, created_at, completed_at) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
            (
                run.id,
                data["status"],
                data["currentPhase"],
                run.query,
                _dumps(data["sources"]),
                _dumps(data["results"]),
                _dumps(data["phaseOutputs"]),
                run.error,
                _iso(run.created_at),
                _iso(run.completed_at),
            ),
        )

    def update_run(self, run_id: str, **fields: Any) -> None:
        validate_run_updates(fields)
        if not fields:
            return

        # 借助模型完成 JSON 序列化，保证与 create_run 的格式一致
        current = self.get_run(run_id)
        if current is None:
            raise StorageError(f"Run not found: {run_id}")
        data = current.model_copy(update=fields).model_dump(mode="json", by_alias=True)

        columns = sorted(fields)
        values = [
            _dumps(data[to_camel(col)]) if col in _JSON_RUN_COLUMNS else data[to_camel(col)]
            for col in columns
        ]
        assignments = ", ".join(f"{col} = ?" for col in columns)
        self._execute(f"UPDATE pipeline_runs SET {assignments} WHERE id = ?", (*values, run_id))

    def get_run(self, run_id: str) -> Optional[PipelineRun]:
        row = self._fetchone("SELECT * FROM pipeline_runs WHERE id = ?", (run_id,))
        return self._row_to_run(row) if row else None

    def list_runs(self, limit: int = 20, offset: int = 0) -> List[PipelineRun]:
        rows = self._fetchall(
            "SELECT * FROM pipeline_runs ORDER BY created_at DESC LIMIT ? OFFSET ?",
            (limit, offset),
        )
        return [self._row_to_run(row) for row in rows]

    def _row_to_run(self, row: sqlite3.Row) -> PipelineRun:
        try:
            return PipelineRun(
                id=row["id"],
                status=row["status"],
                current_phase=row["current_phase"],
                query=row["query"],
                sources=json.loads(row["sources"]),
                results=json.loads(row["results"]),
                phase_outputs=json.loads(row["phase_outputs"]),
                error=row["error"],
                created_at=row["created_at"],
                completed_at=row["completed_at"],
            )
        except (ValueError, ValidationError) as e:
            raise StorageError(f"Corrupt run row {row['id']}: {e}") from e

    # ── Ideas ───────────────────────────────────────────────

    def create_idea(self, idea: Idea) -> None:
        data = idea.model_dump(mode="json", by_alias=True)
        self._execute(
            "INSERT INTO ideas (id, name, description, complexity, target_clients, client_contacts, "
            "marketing_funnels, source_data, created_at) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)",
            (
                idea.id,
                idea.name,
                idea.description,
                _dumps(data["complexity"]),
                _dumps(data["targetClients"]),
                _dumps(data["clientContacts"]),
                _dumps(data["marketingFunnels"]),
                _dumps(data["sourceData"]),
                _iso(idea.created_at),
            ),
        )

    def get_idea(self, idea_id: str) -> Optional[Idea]:
        row = self._fetchone("SELECT * FROM ideas WHERE id = ?", (idea_id,))
        return self._row_to_idea(row) if row else None

    def list_ideas(self, limit: int = 50, offset: int = 0) -> List[Idea]:
        rows = self._fetchall(
            "SELECT * FROM ideas ORDER BY created_at DESC LIMIT ? OFFSET ?",
            (limit, offset),
        )
        return [self._row_to_idea(row) for row in rows]

    def delete_idea(self, idea_id: str) -> bool:
        return self._execute("DELETE FROM ideas WHERE id = ?", (idea_id,)).rowcount > 0

    def count_ideas(self) -> int:
        row = self._fetchone("SELECT COUNT(*) AS count FROM ideas")
        return int(row["count"]) if row else 0

    def _row_to_idea(self, row: sqlite3.Row) -> Idea:
        try:
            return Idea(
                id=row["id"],
                name=row["name"],
                description=row["description"],
                complexity=json.loads(row["complexity"]),
                target_clients=json.loads(row["target_clients"]),
                client_contacts=json.loads(row["client_contacts"]),
                marketing_funnels=json.loads(row["marketing_funnels"]),
                source_data=json.loads(row["source_data"]),
                created_at=row["created_at"],
            )
        except (ValueError, ValidationError) as e:
            raise StorageError(f"Corrupt idea row {row['id']}: {e}") from e

    def close(self) -> None:
        with self._lock:
            self._conn.close()
