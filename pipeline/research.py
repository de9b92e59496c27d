"""
Research Phase
从原始数据中提炼趋势、痛点与机会
"""
import logging
from typing import List, Optional, Sequence

from config import PipelineSettings, get_settings
from core import PipelinePhase, SourceResult
from intelligence.llm.base import BaseLLM
from intelligence.structured import structured_generate

from .helpers import Emit, research_temperature
from .schemas import PhaseOptions, ResearchOutput


logger = logging.getLogger(__name__)

BASE_SYSTEM_PROMPT = """You are a market research analyst specializing in B2B and B2C software opportunities. Analyze raw data from multiple sources to identify trends, pain points, and opportunity signals.

Return JSON matching the exact schema requested. Be specific and actionable."""

OUTPUT_FORMAT = """{
  "trends": [{ "trend": "...", "evidence": ["..."], "strength": "strong|moderate|emerging" }],
  "painPoints": [{ "problem": "...", "affectedSegments": ["..."], "frequency": "..." }],
  "opportunities": [{ "opportunity": "...", "reasoning": "...", "relatedTrends": ["..."] }],
  "summary": "Brief overall summary"
}"""


def build_system_prompt(domain: Optional[str] = None) -> str:
    if not domain:
        return BASE_SYSTEM_PROMPT
    return (
        f"{BASE_SYSTEM_PROMPT}\n\nFocus your analysis on the {domain} domain. "
        f"Prioritize trends, pain points, and opportunities specific to {domain}."
    )


def build_digest(source_data: Sequence[SourceResult], cap: int, content_chars: int) -> str:
    """将原始结果压缩成编号摘要，控制上下文长度"""
    lines: List[str] = []
    for i, item in enumerate(source_data[:cap], 1):
        lines.append(f"[{i}] ({item.source_type}) {item.title}\n{(item.content or '')[:content_chars]}")
    return "\n\n".join(lines)


def build_prompt(source_data: Sequence[SourceResult], query: str, digest: str) -> str:
    return f"""Analyze the following {len(source_data)} data points collected for the query "{query}".

Identify:
1. Key trends (with evidence from the data)
2. Pain points that potential customers are experiencing
3. Business opportunities that emerge from these trends and pain points

Data:
{digest}

Return your analysis as JSON with this structure:
{OUTPUT_FORMAT}"""


async def run_research(
    source_data: Sequence[SourceResult],
    query: str,
    emit: Emit,
    *,
    llm: BaseLLM,
    options: Optional[PhaseOptions] = None,
    settings: Optional[PipelineSettings] = None,
) -> ResearchOutput:
    """Research 阶段"""
    options = options or PhaseOptions()
    settings = settings or get_settings().pipeline
    emit("Analyzing trends and pain points...", phase=PipelinePhase.RESEARCH)

    digest = build_digest(source_data, settings.research_digest_cap, settings.digest_content_chars)
    result = await structured_generate(
        llm,
        system=build_system_prompt(options.domain),
        prompt=build_prompt(source_data, query, digest),
        schema=ResearchOutput,
        model=options.model,
        temperature=research_temperature(options.temperature),
        max_retries=settings.structured_max_retries,
    )

    emit(
        f"Identified {len(result.trends)} trends, {len(result.pain_points)} pain points, "
        f"{len(result.opportunities)} opportunities",
        phase=PipelinePhase.RESEARCH,
    )
    return result
