"""Canonical data contracts shared by sources, phases, orchestrator and storage.

Field names are snake_case in Python and camelCase on the wire; the camelCase
names are the JSON contract exchanged with the language model and persisted
by repositories, so they must not drift.
"""

from __future__ import annotations

import math
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ContractModel(BaseModel):
    """Base model: camelCase aliases, population by either name."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_json_dict(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class PipelinePhase(str, Enum):
    """Sequential pipeline stages."""

    DISCOVERY = "discovery"
    RESEARCH = "research"
    ANALYSIS = "analysis"
    VALIDATION = "validation"
    OUTPUT = "output"


PHASE_ORDER: List[PipelinePhase] = [
    PipelinePhase.DISCOVERY,
    PipelinePhase.RESEARCH,
    PipelinePhase.ANALYSIS,
    PipelinePhase.VALIDATION,
    PipelinePhase.OUTPUT,
]


class PipelineStatus(str, Enum):
    """Run / event status."""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class SourceResult(ContractModel):
    """Normalized record returned by a source. Immutable once returned."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    source_type: str
    title: str
    url: Optional[str] = None
    content: str = ""
    score: Optional[float] = None
    timestamp: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None


class Complexity(ContractModel):
    overall: float = Field(ge=1, le=10)
    technical: float = Field(ge=1, le=10)
    market: float = Field(ge=1, le=10)
    capital: float = Field(ge=1, le=10)
    explanation: str


class TargetClient(ContractModel):
    segment: str
    size: str
    industry: str
    pain_points: List[str] = Field(default_factory=list)


class ClientContact(ContractModel):
    company_name: str
    contact_name: Optional[str] = None
    website: str
    reasoning: str


class FunnelStage(ContractModel):
    name: str
    description: str
    channels: List[str] = Field(default_factory=list)
    metrics: List[str] = Field(default_factory=list)


class MarketingFunnel(ContractModel):
    name: str
    stages: List[FunnelStage] = Field(default_factory=list)
    estimated_cost: str
    time_to_first_lead: str


class SourceReference(ContractModel):
    """Citation attached to an idea."""

    source_type: str
    title: str
    url: Optional[str] = None
    snippet: str
    fetched_at: str


class Idea(ContractModel):
    """Final idea report. Created once by the output phase, immutable after."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    id: str
    name: str
    description: str
    complexity: Complexity
    target_clients: List[TargetClient] = Field(default_factory=list)
    client_contacts: List[ClientContact] = Field(default_factory=list)
    marketing_funnels: List[MarketingFunnel] = Field(default_factory=list)
    source_data: List[SourceReference] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=utcnow)


class PipelineRun(ContractModel):
    """Observable state of one pipeline invocation, mutated in place by the orchestrator."""

    id: str
    status: PipelineStatus = PipelineStatus.PENDING
    current_phase: Optional[PipelinePhase] = None
    query: str
    sources: List[str] = Field(default_factory=list)
    results: List[Idea] = Field(default_factory=list)
    phase_outputs: Dict[str, Any] = Field(default_factory=dict)
    error: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)
    completed_at: Optional[datetime] = None

    @property
    def is_terminal(self) -> bool:
        return self.status in {PipelineStatus.COMPLETED, PipelineStatus.FAILED}


class PipelineEvent(ContractModel):
    """Transient progress notification, broadcast only."""

    run_id: str
    phase: PipelinePhase
    status: PipelineStatus
    message: str
    data: Optional[Any] = None
    timestamp: datetime = Field(default_factory=utcnow)


MIN_LIMIT = 1
MAX_LIMIT = 100


def _clamp(value: Any, low: int, high: int) -> Any:
    """Pull numeric input into range; anything else is left to validation."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return value
    if isinstance(value, float) and not math.isfinite(value):
        return value
    return max(low, min(high, int(round(value))))


class PipelineConfig(ContractModel):
    """Input contract of ``PipelineOrchestrator.run``."""

    query: str
    sources: Optional[List[str]] = None
    limit: Optional[int] = Field(default=None, ge=MIN_LIMIT, le=MAX_LIMIT)
    domain: Optional[str] = None
    creativity: Optional[int] = Field(default=None, ge=0, le=100)
    custom_sources: Optional[Dict[str, List[str]]] = None
    run_id: Optional[str] = None

    @field_validator("query", mode="before")
    @classmethod
    def _non_empty_query(cls, value: Any) -> str:
        text = str(value or "").strip()
        if not text:
            raise ValueError("query is required")
        return text

    @field_validator("limit", mode="before")
    @classmethod
    def _clamp_limit(cls, value: Any) -> Any:
        return _clamp(value, MIN_LIMIT, MAX_LIMIT)

    @field_validator("creativity", mode="before")
    @classmethod
    def _clamp_creativity(cls, value: Any) -> Any:
        return _clamp(value, 0, 100)

    @field_validator("domain", "run_id", mode="before")
    @classmethod
    def _optional_text(cls, value: Any) -> Optional[str]:
        text = str(value or "").strip()
        return text or None
