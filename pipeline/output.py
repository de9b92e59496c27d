"""
Output Phase
设计零成本营销漏斗并组装最终 Idea 报告
"""
import logging
import uuid
from typing import Dict, List, Optional, Sequence

from config import PipelineSettings, get_settings
from core import Idea, PipelinePhase, SourceReference, SourceResult, utcnow
from intelligence.llm.base import BaseLLM
from intelligence.structured import structured_generate

from .helpers import Emit, idea_lookup_key, match_to_ideas
from .schemas import (
    CandidateIdea,
    FunnelOutput,
    IdeaFunnels,
    IdeaValidation,
    OutputResult,
    PhaseOptions,
    ValidationOutput,
)


logger = logging.getLogger(__name__)

SYSTEM_PROMPT = """You are a growth marketing expert specializing in $0-cost customer acquisition strategies for software startups. Design marketing funnels that cost nothing or near-nothing.

Focus on:
- Content marketing, SEO, social media (organic)
- Community building (Reddit, HN, Discord, forums)
- Cold outreach (email, LinkedIn)
- Product-led growth tactics
- Partnership/integration strategies

Return JSON matching the exact schema."""

OUTPUT_FORMAT = """{
  "funnels": [{
    "ideaKey": "idea-1",
    "ideaName": "...",
    "marketingFunnels": [{
      "name": "...",
      "stages": [{ "name": "...", "description": "...", "channels": ["..."], "metrics": ["..."] }],
      "estimatedCost": "$0",
      "timeToFirstLead": "..."
    }]
  }]
}"""


def build_prompt(ideas: Sequence[CandidateIdea], validations: Dict[str, IdeaValidation]) -> str:
    blocks = []
    for i, idea in enumerate(ideas, 1):
        v = validations.get(idea_lookup_key(idea))
        targets = ", ".join(t.segment for t in v.target_clients) if v else "N/A"
        contacts = ", ".join(c.company_name for c in v.client_contacts) if v else "N/A"
        blocks.append(
            f"{i}. [{idea.idea_key}] {idea.name}: {idea.description}\n"
            f"   Target: {targets or 'N/A'}\n"
            f"   Contacts: {contacts or 'N/A'}"
        )
    listing = "\n\n".join(blocks)

    return f"""Design $0-cost marketing funnels for each of these validated product ideas:

{listing}

For each idea, design 2-3 marketing funnels with:
- The idea key shown in brackets, copied exactly, as "ideaKey"
- Funnel name
- Stages (awareness -> interest -> decision -> action), each with channels and metrics
- Estimated cost (should be $0 or very low)
- Estimated time to first lead

Return as JSON:
{OUTPUT_FORMAT}"""


def build_citations(
    source_data: Sequence[SourceResult], count: int, snippet_chars: int, fetched_at: str
) -> List[SourceReference]:
    return [
        SourceReference(
            source_type=item.source_type,
            title=item.title,
            url=item.url,
            snippet=(item.content or "")[:snippet_chars],
            fetched_at=item.timestamp or fetched_at,
        )
        for item in source_data[:count]
    ]


def assemble_ideas(
    ideas: Sequence[CandidateIdea],
    validations: Dict[str, IdeaValidation],
    funnels: Dict[str, IdeaFunnels],
    source_data: Sequence[SourceResult],
    settings: PipelineSettings,
) -> List[Idea]:
    """
    合并候选、验证结果与营销漏斗 (validations / funnels 为 match_to_ideas 的结果)

    关联失败的 Idea 保留，目标客户 / 联系人 / 漏斗为空列表。
    """
    created_at = utcnow()
    citations = build_citations(
        source_data, settings.citation_count, settings.snippet_chars, created_at.isoformat()
    )

    final_ideas = []
    for idea in ideas:
        key = idea_lookup_key(idea)
        v = validations.get(key)
        f = funnels.get(key)
        final_ideas.append(
            Idea(
                id=str(uuid.uuid4()),
                name=idea.name,
                description=idea.description,
                complexity=idea.complexity,
                target_clients=v.target_clients if v else [],
                client_contacts=v.client_contacts if v else [],
                marketing_funnels=f.marketing_funnels if f else [],
                source_data=list(citations),
                created_at=created_at,
            )
        )
    return final_ideas


async def run_output(
    ideas: Sequence[CandidateIdea],
    validation: ValidationOutput,
    source_data: Sequence[SourceResult],
    emit: Emit,
    *,
    llm: BaseLLM,
    options: Optional[PhaseOptions] = None,
    settings: Optional[PipelineSettings] = None,
) -> OutputResult:
    """Output 阶段"""
    options = options or PhaseOptions()
    settings = settings or get_settings().pipeline
    emit(
        "Designing marketing funnels and generating final reports...",
        phase=PipelinePhase.OUTPUT,
    )

    validations = match_to_ideas(ideas, validation.validations, "Validation")
    funnels = await structured_generate(
        llm,
        system=SYSTEM_PROMPT,
        prompt=build_prompt(ideas, validations),
        schema=FunnelOutput,
        model=options.model,
        max_retries=settings.structured_max_retries,
    )

    funnel_map = match_to_ideas(ideas, funnels.funnels, "Output")
    final_ideas = assemble_ideas(ideas, validations, funnel_map, source_data, settings)
    emit(f"Generated {len(final_ideas)} complete idea reports", phase=PipelinePhase.OUTPUT)
    return OutputResult(ideas=final_ideas, funnels=funnels)
