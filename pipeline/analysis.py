"""
Analysis Phase
基于调研结果生成多样化的候选 Idea
"""
import logging
from typing import Optional

from config import PipelineSettings, get_settings
from core import PipelinePhase
from intelligence.llm.base import BaseLLM
from intelligence.structured import structured_generate

from .helpers import Emit, assign_idea_keys
from .schemas import MAX_IDEAS, MIN_IDEAS, AnalysisOutput, PhaseOptions, ResearchOutput


logger = logging.getLogger(__name__)

BASE_SYSTEM_PROMPT = f"""You are a product strategist who generates concrete software product ideas across diverse domains. Given market research data, generate {MIN_IDEAS}-{MAX_IDEAS} specific, actionable product ideas.

CRITICAL DIVERSITY REQUIREMENTS:
- Each idea MUST target a DIFFERENT market segment (e.g., healthcare, education, logistics, retail, etc.)
- Each idea MUST use a DIFFERENT revenue model (e.g., subscription, usage-based, marketplace commission, freemium, licensing, one-time purchase, advertising, etc.)
- Ideas MUST span different complexity levels: include at least one low-complexity, one medium, and one high-complexity idea
- Do NOT generate variations of the same concept. Each idea must be fundamentally different in purpose and approach
- Avoid clustering around B2B SaaS; include B2C, marketplace, and consumer ideas

Each idea must include a complexity score (1-10) across technical, market, and capital dimensions, plus a marketSegment label.

Return JSON matching the exact schema requested."""

OUTPUT_FORMAT = """{
  "ideas": [{
    "name": "...",
    "description": "...",
    "marketSegment": "...",
    "complexity": { "overall": 5, "technical": 4, "market": 6, "capital": 3, "explanation": "..." },
    "keyFeatures": ["..."],
    "differentiator": "...",
    "revenueModel": "..."
  }],
  "reasoning": "Why these ideas were selected and how diversity was ensured"
}"""


def build_system_prompt(domain: Optional[str] = None) -> str:
    if not domain:
        return BASE_SYSTEM_PROMPT
    return (
        f"{BASE_SYSTEM_PROMPT}\n\nFocus on the {domain} domain. Generate ideas specific to {domain}, "
        "but still ensure diversity in market segments, revenue models, and complexity levels within that domain."
    )


def build_prompt(research: ResearchOutput, query: str) -> str:
    trends = "\n".join(f"- {t.trend} ({t.strength}): {'; '.join(t.evidence)}" for t in research.trends)
    pain_points = "\n".join(
        f"- {p.problem} (affects: {', '.join(p.affected_segments)})" for p in research.pain_points
    )
    opportunities = "\n".join(f"- {o.opportunity}: {o.reasoning}" for o in research.opportunities)

    return f"""Based on this market research for "{query}", generate {MIN_IDEAS}-{MAX_IDEAS} concrete software product ideas.

Research Summary: {research.summary}

Trends:
{trends}

Pain Points:
{pain_points}

Opportunities:
{opportunities}

For each idea, provide:
- Name and description
- Market segment (must be unique across all ideas)
- Complexity scores (1-10): technical, market, capital, overall, with explanation
- Key features (3-5)
- What differentiates it from existing solutions
- Revenue model (must be unique across all ideas)

Return as JSON:
{OUTPUT_FORMAT}"""


async def run_analysis(
    research: ResearchOutput,
    query: str,
    emit: Emit,
    *,
    llm: BaseLLM,
    options: Optional[PhaseOptions] = None,
    settings: Optional[PipelineSettings] = None,
) -> AnalysisOutput:
    """
    Analysis 阶段

    校验通过后为每个候选分配稳定 key (idea-1, idea-2, ...)，供后续阶段关联。
    """
    options = options or PhaseOptions()
    settings = settings or get_settings().pipeline
    emit("Generating candidate ideas...", phase=PipelinePhase.ANALYSIS)

    result = await structured_generate(
        llm,
        system=build_system_prompt(options.domain),
        prompt=build_prompt(research, query),
        schema=AnalysisOutput,
        model=options.model,
        temperature=options.temperature,
        max_retries=settings.structured_max_retries,
    )
    result = result.model_copy(update={"ideas": assign_idea_keys(result.ideas)})

    emit(f"Generated {len(result.ideas)} candidate ideas", phase=PipelinePhase.ANALYSIS)
    return result
