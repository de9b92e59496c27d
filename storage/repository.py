"""Repository interface and the default in-memory implementation."""

from __future__ import annotations

from abc import ABC, abstractmethod
from threading import Lock
from typing import Any, Dict, List, Optional

from core import Idea, PipelineRun
from utils.exceptions import StorageError

# Fields the orchestrator may change after a run is created.
UPDATABLE_RUN_FIELDS = frozenset(
    {"status", "current_phase", "results", "phase_outputs", "error", "completed_at"}
)


def validate_run_updates(fields: Dict[str, Any]) -> None:
    unknown = set(fields) - UPDATABLE_RUN_FIELDS
    if unknown:
        raise StorageError(
            f"Cannot update run fields: {', '.join(sorted(unknown))}",
            {"allowed": sorted(UPDATABLE_RUN_FIELDS)},
        )


class BaseRepository(ABC):
    """Persistence for pipeline runs and final ideas.

    Returned objects are copies; mutating them never changes stored state.
    """

    @abstractmethod
    def create_run(self, run: PipelineRun) -> None: ...

    @abstractmethod
    def update_run(self, run_id: str, **fields: Any) -> None: ...

    @abstractmethod
    def get_run(self, run_id: str) -> Optional[PipelineRun]: ...

    @abstractmethod
    def list_runs(self, limit: int = 20, offset: int = 0) -> List[PipelineRun]: ...

    @abstractmethod
    def create_idea(self, idea: Idea) -> None: ...

    @abstractmethod
    def get_idea(self, idea_id: str) -> Optional[Idea]: ...

    @abstractmethod
    def list_ideas(self, limit: int = 50, offset: int = 0) -> List[Idea]: ...

    @abstractmethod
    def delete_idea(self, idea_id: str) -> bool: ...

    @abstractmethod
    def count_ideas(self) -> int: ...

    def close(self) -> None:
        return None


class InMemoryRepository(BaseRepository):
    """Thread-safe dict-backed repository."""

    def __init__(self) -> None:
        self._runs: Dict[str, PipelineRun] = {}
        self._ideas: Dict[str, Idea] = {}
        self._lock = Lock()

    def create_run(self, run: PipelineRun) -> None:
        with self._lock:
            if run.id in self._runs:
                raise StorageError(f"Run already exists: {run.id}")
            self._runs[run.id] = run.model_copy(deep=True)

    def update_run(self, run_id: str, **fields: Any) -> None:
        validate_run_updates(fields)
        with self._lock:
            run = self._runs.get(run_id)
            if run is None:
                raise StorageError(f"Run not found: {run_id}")
            self._runs[run_id] = run.model_copy(update=fields).model_copy(deep=True)

    def get_run(self, run_id: str) -> Optional[PipelineRun]:
        with self._lock:
            run = self._runs.get(run_id)
            return run.model_copy(deep=True) if run else None

    def list_runs(self, limit: int = 20, offset: int = 0) -> List[PipelineRun]:
        with self._lock:
            runs = sorted(self._runs.values(), key=lambda r: r.created_at, reverse=True)
            return [r.model_copy(deep=True) for r in runs[offset:offset + limit]]

    def create_idea(self, idea: Idea) -> None:
        with self._lock:
            if idea.id in self._ideas:
                raise StorageError(f"Idea already exists: {idea.id}")
            self._ideas[idea.id] = idea.model_copy(deep=True)

    def get_idea(self, idea_id: str) -> Optional[Idea]:
        with self._lock:
            idea = self._ideas.get(idea_id)
            return idea.model_copy(deep=True) if idea else None

    def list_ideas(self, limit: int = 50, offset: int = 0) -> List[Idea]:
        with self._lock:
            ideas = sorted(self._ideas.values(), key=lambda i: i.created_at, reverse=True)
            return [i.model_copy(deep=True) for i in ideas[offset:offset + limit]]

    def delete_idea(self, idea_id: str) -> bool:
        with self._lock:
            return self._ideas.pop(idea_id, None) is not None

    def count_ideas(self) -> int:
        with self._lock:
            return len(self._ideas)
