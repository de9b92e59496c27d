from __future__ import annotations

import asyncio
from typing import List

import pytest

from core import PHASE_ORDER, PipelineEvent, PipelinePhase, PipelineStatus
from orchestrator import EMPTY_DISCOVERY_MESSAGE, PipelineOrchestrator
from sources import SourceRegistry
from storage import InMemoryRepository

from fakes import FakeSource, RoutingLLM, ScriptedLLM, make_result


def _sources(settings):
    alpha = FakeSource(
        "alpha",
        [make_result("alpha", f"Alpha story {i}", score=i) for i in range(3)],
        settings=settings,
    )
    beta = FakeSource("beta", [make_result("beta", f"Beta story {i}") for i in range(2)], settings=settings)
    return alpha, beta


def _orchestrator(settings, sources, llm=None):
    return PipelineOrchestrator(
        registry=SourceRegistry(sources),
        repository=InMemoryRepository(),
        llm=llm,
        settings=settings,
    )


def _collect(orchestrator) -> List[PipelineEvent]:
    events: List[PipelineEvent] = []
    orchestrator.on_event(events.append)
    return events


@pytest.mark.asyncio
async def test_successful_run_produces_ideas(settings):
    llm = RoutingLLM()
    orchestrator = _orchestrator(settings, _sources(settings), llm)

    run = await orchestrator.run({"query": "crm", "creativity": 50})

    assert run.status == PipelineStatus.COMPLETED
    assert run.error is None
    assert run.sources == ["alpha", "beta"]
    assert list(run.phase_outputs) == [phase.value for phase in PHASE_ORDER]
    assert run.phase_outputs["discovery"]["totalFetched"] == 5
    assert run.phase_outputs["discovery"]["sourceBreakdown"] == {"alpha": 3, "beta": 2}
    assert run.completed_at >= run.created_at

    assert len(run.results) == 5
    for idea in run.results:
        assert idea.client_contacts[0].company_name == f"{idea.name} Corp"
        assert idea.marketing_funnels[0].name == f"{idea.name} content funnel"
        assert len(idea.source_data) == 5

    stored = orchestrator.get_repository().get_run(run.id)
    assert stored.status == PipelineStatus.COMPLETED
    assert [i.id for i in stored.results] == [i.id for i in run.results]
    assert orchestrator.get_repository().count_ideas() == 5

    # research runs slightly cooler than the other creative phases
    assert llm.calls[0]["temperature"] == pytest.approx(0.6)
    assert llm.calls[1]["temperature"] == pytest.approx(0.7)
    assert len(llm.calls) == 4


@pytest.mark.asyncio
async def test_events_follow_phase_order(settings):
    orchestrator = _orchestrator(settings, _sources(settings), RoutingLLM())
    events = _collect(orchestrator)

    run = await orchestrator.run({"query": "crm"})

    assert all(event.run_id == run.id for event in events)
    assert events[0].message == 'Starting discovery for "crm"'
    assert events[1].message == "Found 5 results"
    assert events[1].data == {"alpha": 3, "beta": 2}
    assert events[-1].message == "Pipeline complete!"
    assert events[-1].status == PipelineStatus.COMPLETED
    positions = [PHASE_ORDER.index(event.phase) for event in events]
    assert positions == sorted(positions)
    assert {event.phase for event in events} == set(PHASE_ORDER)
    assert any(
        event.message == "Found 5 potential client contacts across 5 ideas" for event in events
    )


@pytest.mark.asyncio
async def test_empty_discovery_fails_without_calling_llm(settings):
    llm = ScriptedLLM()
    orchestrator = _orchestrator(settings, [FakeSource("alpha", [], settings=settings)], llm)
    events = _collect(orchestrator)

    run = await orchestrator.run({"query": "nothing"})

    assert run.status == PipelineStatus.FAILED
    assert run.error == EMPTY_DISCOVERY_MESSAGE
    assert run.completed_at is None
    assert run.results == []
    assert llm.calls == []
    assert list(run.phase_outputs) == ["discovery"]
    assert events[-1].status == PipelineStatus.FAILED
    assert events[-1].message == f"Pipeline failed: {EMPTY_DISCOVERY_MESSAGE}"
    assert orchestrator.get_repository().get_run(run.id).error == EMPTY_DISCOVERY_MESSAGE


@pytest.mark.asyncio
async def test_failing_sources_are_isolated(settings):
    alpha, beta = _sources(settings)
    broken = FakeSource("broken", error=RuntimeError("offline"), settings=settings)
    orchestrator = _orchestrator(settings, [alpha, broken, beta], RoutingLLM())

    run = await orchestrator.run({"query": "crm"})

    assert run.status == PipelineStatus.COMPLETED
    assert run.phase_outputs["discovery"]["sourceBreakdown"] == {"alpha": 3, "beta": 2}


@pytest.mark.asyncio
async def test_structured_output_failure_fails_run(settings):
    llm = ScriptedLLM(["not json"] * 3)
    orchestrator = _orchestrator(settings, _sources(settings), llm)

    run = await orchestrator.run({"query": "crm"})

    assert run.status == PipelineStatus.FAILED
    assert run.current_phase == PipelinePhase.RESEARCH
    assert "after 3 attempts" in run.error
    assert len(llm.calls) == 3
    assert orchestrator.get_repository().count_ideas() == 0


@pytest.mark.asyncio
async def test_llm_is_created_lazily(settings):
    orchestrator = _orchestrator(settings, [FakeSource("alpha", [], settings=settings)])

    empty = await orchestrator.run({"query": "crm"})
    assert empty.error == EMPTY_DISCOVERY_MESSAGE

    orchestrator = _orchestrator(settings, _sources(settings))
    run = await orchestrator.run({"query": "crm"})

    assert run.status == PipelineStatus.FAILED
    assert "LLM_GROQ_API_KEY" in run.error


@pytest.mark.asyncio
async def test_handler_errors_do_not_break_run(settings):
    orchestrator = _orchestrator(settings, _sources(settings), RoutingLLM())

    def broken(event):
        raise RuntimeError("subscriber crashed")

    orchestrator.on_event(broken)
    events = _collect(orchestrator)

    run = await orchestrator.run({"query": "crm"})

    assert run.status == PipelineStatus.COMPLETED
    assert events[-1].message == "Pipeline complete!"


@pytest.mark.asyncio
async def test_custom_sources_apply_to_one_run(settings):
    alpha, beta = _sources(settings)
    orchestrator = _orchestrator(settings, [alpha, beta], RoutingLLM())

    run = await orchestrator.run(
        {"query": "crm", "sources": ["alpha"], "customSources": {"alpha": ["Custom feed item"]}}
    )

    assert run.sources == ["alpha"]
    titles = [r["title"] for r in run.phase_outputs["discovery"]["results"]]
    assert titles == ["Custom feed item"]
    assert beta.calls == []
    assert orchestrator.get_registry().get("alpha") is alpha
    assert alpha.items == []


@pytest.mark.asyncio
async def test_concurrent_runs_are_independent(settings):
    orchestrator = _orchestrator(settings, _sources(settings), RoutingLLM())
    events = _collect(orchestrator)

    runs = await asyncio.gather(
        *(orchestrator.run({"query": f"query {i}", "runId": f"run-{i}"}) for i in range(3))
    )

    assert [run.id for run in runs] == ["run-0", "run-1", "run-2"]
    assert all(run.status == PipelineStatus.COMPLETED for run in runs)
    assert orchestrator.get_repository().count_ideas() == 15
    for run in runs:
        own = [event for event in events if event.run_id == run.id]
        assert own[0].message == f'Starting discovery for "{run.query}"'
        assert own[-1].message == "Pipeline complete!"


@pytest.mark.asyncio
async def test_invalid_config_fails_run_without_raising(settings):
    llm = RoutingLLM()
    alpha, beta = _sources(settings)
    orchestrator = _orchestrator(settings, [alpha, beta], llm)
    events = _collect(orchestrator)

    run = await orchestrator.run({"query": "  ", "runId": "bad-config"})

    assert run.id == "bad-config"
    assert run.status == PipelineStatus.FAILED
    assert run.error.startswith("Invalid pipeline config: query")
    assert run.results == []
    assert alpha.calls == [] and llm.calls == []
    assert events[-1].status == PipelineStatus.FAILED
    assert events[-1].run_id == "bad-config"

    stored = orchestrator.get_repository().get_run("bad-config")
    assert stored.status == PipelineStatus.FAILED
    assert stored.error == run.error


@pytest.mark.asyncio
async def test_out_of_range_limit_and_creativity_are_clamped(settings):
    llm = RoutingLLM()
    orchestrator = _orchestrator(settings, _sources(settings), llm)

    run = await orchestrator.run({"query": "crm", "limit": 200, "creativity": 150})

    assert run.status == PipelineStatus.COMPLETED
    assert llm.calls[0]["temperature"] == pytest.approx(1.1)
    assert llm.calls[1]["temperature"] == pytest.approx(1.2)


@pytest.mark.asyncio
async def test_reused_run_id_leaves_stored_run_untouched(settings):
    orchestrator = _orchestrator(settings, _sources(settings), RoutingLLM())
    first = await orchestrator.run({"query": "crm", "runId": "fixed"})
    events = _collect(orchestrator)

    second = await orchestrator.run({"query": "other", "runId": "fixed"})

    assert first.status == PipelineStatus.COMPLETED
    assert second.status == PipelineStatus.FAILED
    assert second.error == "Run already exists: fixed"
    assert events[-1].message == "Pipeline failed: Run already exists: fixed"

    stored = orchestrator.get_repository().get_run("fixed")
    assert stored.status == PipelineStatus.COMPLETED
    assert stored.error is None
    assert stored.query == "crm"
    assert len(stored.results) == 5
    assert orchestrator.get_repository().count_ideas() == 5


PHASE_BY_PROMPT = {
    "market research analyst": PipelinePhase.RESEARCH,
    "product strategist": PipelinePhase.ANALYSIS,
    "business development expert": PipelinePhase.VALIDATION,
    "growth marketing expert": PipelinePhase.OUTPUT,
}


@pytest.mark.asyncio
async def test_run_state_is_persisted_before_each_phase_works(settings):
    snapshots = []
    orchestrator = None

    def snapshot(active: PipelinePhase) -> None:
        stored = orchestrator.get_repository().get_run("watched")
        snapshots.append((active, stored))

    def on_call(messages) -> None:
        system = messages[0].content
        phase = next(p for prompt, p in PHASE_BY_PROMPT.items() if prompt in system)
        snapshot(phase)

    sources = _sources(settings)
    for source in sources:
        source.on_fetch = lambda options: snapshot(PipelinePhase.DISCOVERY)
    orchestrator = _orchestrator(settings, sources, RoutingLLM(on_call=on_call))

    run = await orchestrator.run({"query": "crm", "runId": "watched"})

    assert run.status == PipelineStatus.COMPLETED
    assert {phase for phase, _ in snapshots} == set(PHASE_ORDER)
    for active, stored in snapshots:
        assert stored.status == PipelineStatus.RUNNING
        assert stored.current_phase == active
        assert stored.results == []
        assert stored.completed_at is None
        earlier = [phase.value for phase in PHASE_ORDER[: PHASE_ORDER.index(active)]]
        assert list(stored.phase_outputs) == earlier


class _ClosingRepository(InMemoryRepository):
    def __init__(self):
        super().__init__()
        self.closed = False

    def close(self) -> None:
        self.closed = True


@pytest.mark.asyncio
async def test_close_releases_repository_it_created(settings, monkeypatch):
    repository = _ClosingRepository()
    monkeypatch.setattr("orchestrator.service.create_repository", lambda settings: repository)
    orchestrator = PipelineOrchestrator(registry=SourceRegistry(_sources(settings)), settings=settings)

    await orchestrator.close()

    assert orchestrator.get_repository() is repository
    assert repository.closed is True


@pytest.mark.asyncio
async def test_close_keeps_injected_dependencies_open(settings):
    llm = RoutingLLM()
    repository = _ClosingRepository()
    orchestrator = PipelineOrchestrator(
        registry=SourceRegistry(_sources(settings)), repository=repository, llm=llm, settings=settings
    )
    await orchestrator.close()
    assert llm.closed is False
    assert repository.closed is False
