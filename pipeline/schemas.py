"""Phase input/output models.

These are also the JSON schemas the language model must satisfy, so field
aliases (camelCase) are part of the prompt contract.
"""

from __future__ import annotations

from typing import Dict, List, Literal, Optional

from pydantic import Field

from core import (
    ClientContact,
    Complexity,
    ContractModel,
    Idea,
    MarketingFunnel,
    SourceResult,
    TargetClient,
)

MIN_IDEAS = 5
MAX_IDEAS = 10


class DiscoveryInput(ContractModel):
    query: str
    sources: List[str] = Field(default_factory=list)
    limit: Optional[int] = Field(default=None, ge=1)


class DiscoveryOutput(ContractModel):
    results: List[SourceResult] = Field(default_factory=list)
    total_fetched: int = 0
    source_breakdown: Dict[str, int] = Field(default_factory=dict)


class Trend(ContractModel):
    trend: str
    evidence: List[str] = Field(default_factory=list)
    strength: Literal["strong", "moderate", "emerging"]


class PainPoint(ContractModel):
    problem: str
    affected_segments: List[str] = Field(default_factory=list)
    frequency: str


class Opportunity(ContractModel):
    opportunity: str
    reasoning: str
    related_trends: List[str] = Field(default_factory=list)


class ResearchOutput(ContractModel):
    trends: List[Trend]
    pain_points: List[PainPoint]
    opportunities: List[Opportunity]
    summary: str


class CandidateIdea(ContractModel):
    """Idea proposed by analysis; ``idea_key`` is assigned after validation."""

    idea_key: Optional[str] = None
    name: str
    description: str
    complexity: Complexity
    key_features: List[str] = Field(default_factory=list)
    differentiator: str
    revenue_model: str
    market_segment: str


class AnalysisOutput(ContractModel):
    ideas: List[CandidateIdea] = Field(min_length=MIN_IDEAS, max_length=MAX_IDEAS)
    reasoning: str


class IdeaValidation(ContractModel):
    idea_key: Optional[str] = None
    idea_name: str
    target_clients: List[TargetClient] = Field(default_factory=list)
    client_contacts: List[ClientContact] = Field(default_factory=list)
    market_size: str
    competitor_analysis: str


class ValidationOutput(ContractModel):
    validations: List[IdeaValidation]


class IdeaFunnels(ContractModel):
    idea_key: Optional[str] = None
    idea_name: str
    marketing_funnels: List[MarketingFunnel] = Field(default_factory=list)


class FunnelOutput(ContractModel):
    funnels: List[IdeaFunnels]


class OutputResult(ContractModel):
    """Final ideas plus the raw funnel output recorded for the run."""

    ideas: List[Idea] = Field(default_factory=list)
    funnels: FunnelOutput


class PhaseOptions(ContractModel):
    """Per-run knobs passed to the LLM phases."""

    temperature: Optional[float] = None
    domain: Optional[str] = None
    model: Optional[str] = None
