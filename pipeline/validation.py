"""
Validation Phase
为每个候选 Idea 寻找目标客户与可联系的真实公司
"""
import logging
from typing import Optional, Sequence

from config import PipelineSettings, get_settings
from core import PipelinePhase
from intelligence.llm.base import BaseLLM
from intelligence.structured import structured_generate

from .helpers import Emit
from .schemas import CandidateIdea, PhaseOptions, ValidationOutput


logger = logging.getLogger(__name__)

SYSTEM_PROMPT = """You are a business development expert who validates software product ideas by identifying target client segments and specific real companies to contact.

For each idea, identify:
1. Target client segments with pain points
2. Specific real companies (with real websites) that would benefit from this product
3. Market size estimate
4. Brief competitive analysis

Only suggest real, existing companies. Return JSON matching the exact schema."""

OUTPUT_FORMAT = """{
  "validations": [{
    "ideaKey": "idea-1",
    "ideaName": "...",
    "targetClients": [{ "segment": "...", "size": "...", "industry": "...", "painPoints": ["..."] }],
    "clientContacts": [{ "companyName": "...", "website": "...", "reasoning": "..." }],
    "marketSize": "...",
    "competitorAnalysis": "..."
  }]
}"""


def build_prompt(ideas: Sequence[CandidateIdea]) -> str:
    listing = "\n\n".join(
        f"{i}. [{idea.idea_key}] {idea.name}: {idea.description}\n"
        f"   Features: {', '.join(idea.key_features)}\n"
        f"   Revenue: {idea.revenue_model}"
        for i, idea in enumerate(ideas, 1)
    )
    return f"""Validate these product ideas and identify target clients and specific companies to contact:

{listing}

For each idea, provide:
- The idea key shown in brackets, copied exactly, as "ideaKey"
- 2-3 target client segments (with industry, size, pain points)
- 3-5 specific real companies to contact (with real websites and reasoning)
- Market size estimate
- Brief competitive analysis

Return as JSON:
{OUTPUT_FORMAT}"""


async def run_validation(
    ideas: Sequence[CandidateIdea],
    emit: Emit,
    *,
    llm: BaseLLM,
    options: Optional[PhaseOptions] = None,
    settings: Optional[PipelineSettings] = None,
) -> ValidationOutput:
    """Validation 阶段"""
    options = options or PhaseOptions()
    settings = settings or get_settings().pipeline
    emit(
        f"Validating {len(ideas)} ideas and finding target clients...",
        phase=PipelinePhase.VALIDATION,
    )

    result = await structured_generate(
        llm,
        system=SYSTEM_PROMPT,
        prompt=build_prompt(ideas),
        schema=ValidationOutput,
        model=options.model,
        max_retries=settings.structured_max_retries,
    )

    total_contacts = sum(len(v.client_contacts) for v in result.validations)
    emit(
        f"Found {total_contacts} potential client contacts across {len(result.validations)} ideas",
        phase=PipelinePhase.VALIDATION,
    )
    return result
