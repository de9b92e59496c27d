from __future__ import annotations

from typing import List

import pytest

from config.settings import PipelineSettings
from core import PipelinePhase
from pipeline import (
    DiscoveryInput,
    PhaseOptions,
    ResearchOutput,
    run_analysis,
    run_discovery,
    run_research,
    run_validation,
)
from pipeline.research import build_digest
from sources import SourceRegistry
from utils.exceptions import StructuredOutputError

from fakes import (
    FakeSource,
    ScriptedLLM,
    analysis_payload,
    make_result,
    research_payload,
    validation_payload,
)


class _Events:
    def __init__(self):
        self.items: List[tuple] = []

    def __call__(self, message, *, phase=None, status=None, data=None):
        self.items.append((phase, message, data))


@pytest.mark.asyncio
async def test_discovery_balances_and_reports_raw_total(settings):
    many = FakeSource("many", [make_result("many", f"m{i}") for i in range(8)], settings=settings)
    few = FakeSource("few", [make_result("few", "f0")], settings=settings)
    registry = SourceRegistry([many, few])
    events = _Events()

    output = await run_discovery(
        DiscoveryInput(query="crm", limit=4), registry, events, settings=PipelineSettings()
    )

    assert [r.title for r in output.results] == ["m0", "f0", "m1", "m2"]
    assert output.total_fetched == 5
    assert output.source_breakdown == {"many": 3, "few": 1}
    assert events.items[-1] == (PipelinePhase.DISCOVERY, "Found 4 results", {"many": 3, "few": 1})


@pytest.mark.asyncio
async def test_discovery_uses_default_limit(settings):
    source = FakeSource("many", [make_result("many", f"m{i}") for i in range(50)], settings=settings)

    output = await run_discovery(
        DiscoveryInput(query="crm"),
        SourceRegistry([source]),
        _Events(),
        settings=PipelineSettings(default_limit=7),
    )

    assert source.calls[0].limit == 7
    assert len(output.results) == 7


@pytest.mark.asyncio
async def test_research_applies_domain_and_digest():
    llm = ScriptedLLM([research_payload()])
    data = [make_result("hn", f"story {i}", content="y" * 900) for i in range(3)]

    result = await run_research(
        data,
        "crm",
        _Events(),
        llm=llm,
        options=PhaseOptions(domain="healthcare", temperature=0.2),
        settings=PipelineSettings(),
    )

    assert isinstance(result, ResearchOutput)
    system, prompt = (m.content for m in llm.calls[0]["messages"])
    assert "Focus your analysis on the healthcare domain" in system
    assert '3 data points collected for the query "crm"' in prompt
    assert "y" * 500 in prompt and "y" * 501 not in prompt
    assert llm.calls[0]["temperature"] == 0.3


def test_digest_is_capped():
    data = [make_result("hn", f"story {i}") for i in range(5)]
    digest = build_digest(data, cap=2, content_chars=10)
    assert "[2] (hn) story 1" in digest
    assert "[3]" not in digest


@pytest.mark.asyncio
async def test_analysis_assigns_keys_and_validation_lists_them():
    research = ResearchOutput.model_validate(research_payload())
    llm = ScriptedLLM([analysis_payload(6), validation_payload([f"Idea {i}" for i in range(1, 7)])])
    events = _Events()

    analysis = await run_analysis(research, "crm", events, llm=llm, options=PhaseOptions())
    validation = await run_validation(analysis.ideas, events, llm=llm, options=PhaseOptions())

    assert [idea.idea_key for idea in analysis.ideas] == [f"idea-{i}" for i in range(1, 7)]
    validation_prompt = llm.calls[1]["messages"][1].content
    assert "[idea-6] Idea 6" in validation_prompt
    assert len(validation.validations) == 6
    assert (PipelinePhase.ANALYSIS, "Generated 6 candidate ideas", None) in events.items


@pytest.mark.asyncio
async def test_analysis_rejects_too_few_ideas():
    research = ResearchOutput.model_validate(research_payload())
    llm = ScriptedLLM([analysis_payload(3)] * 3)

    with pytest.raises(StructuredOutputError) as exc_info:
        await run_analysis(research, "crm", _Events(), llm=llm, options=PhaseOptions())

    assert exc_info.value.attempts == 3
