"""
Pipeline Module
五阶段流水线: discovery -> research -> analysis -> validation -> output
"""
from .schemas import (
    AnalysisOutput,
    CandidateIdea,
    DiscoveryInput,
    DiscoveryOutput,
    FunnelOutput,
    IdeaFunnels,
    IdeaValidation,
    OutputResult,
    PhaseOptions,
    ResearchOutput,
    ValidationOutput,
)
from .helpers import (
    assign_idea_keys,
    balance_source_results,
    creativity_to_temperature,
    match_to_ideas,
    normalize_name,
    research_temperature,
    source_breakdown,
)
from .discovery import run_discovery
from .research import run_research
from .analysis import run_analysis
from .validation import run_validation
from .output import run_output

__all__ = [
    "AnalysisOutput",
    "CandidateIdea",
    "DiscoveryInput",
    "DiscoveryOutput",
    "FunnelOutput",
    "IdeaFunnels",
    "IdeaValidation",
    "OutputResult",
    "PhaseOptions",
    "ResearchOutput",
    "ValidationOutput",
    "assign_idea_keys",
    "balance_source_results",
    "creativity_to_temperature",
    "match_to_ideas",
    "normalize_name",
    "research_temperature",
    "source_breakdown",
    "run_discovery",
    "run_research",
    "run_analysis",
    "run_validation",
    "run_output",
]
