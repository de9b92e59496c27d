"""Core contracts and shared types for the idea pipeline."""

from .contracts import (
    PHASE_ORDER,
    ClientContact,
    Complexity,
    ContractModel,
    FunnelStage,
    Idea,
    MarketingFunnel,
    PipelineConfig,
    PipelineEvent,
    PipelinePhase,
    PipelineRun,
    PipelineStatus,
    SourceReference,
    SourceResult,
    TargetClient,
    utcnow,
)

__all__ = [
    "PHASE_ORDER",
    "ClientContact",
    "Complexity",
    "ContractModel",
    "FunnelStage",
    "Idea",
    "MarketingFunnel",
    "PipelineConfig",
    "PipelineEvent",
    "PipelinePhase",
    "PipelineRun",
    "PipelineStatus",
    "SourceReference",
    "SourceResult",
    "TargetClient",
    "utcnow",
]
