"""Pipeline orchestrator: sequences the five phases for one run."""

from __future__ import annotations

import logging
from threading import Lock
from typing import Any, Callable, Dict, List, Mapping, Optional, Union
from uuid import uuid4

from pydantic import BaseModel, ValidationError

from config import Settings, get_settings
from core import (
    PipelineConfig,
    PipelineEvent,
    PipelinePhase,
    PipelineRun,
    PipelineStatus,
    utcnow,
)
from intelligence.llm import BaseLLM, get_llm
from pipeline import (
    DiscoveryInput,
    PhaseOptions,
    creativity_to_temperature,
    run_analysis,
    run_discovery,
    run_output,
    run_research,
    run_validation,
)
from sources import SourceRegistry, build_default_registry
from storage import BaseRepository, create_repository
from utils.exceptions import PipelineError


logger = logging.getLogger(__name__)

PipelineEventHandler = Callable[[PipelineEvent], None]

EMPTY_DISCOVERY_MESSAGE = (
    "No data found from any source. Try a different query or enable more sources."
)


def _json_ready(output: BaseModel) -> Dict[str, Any]:
    return output.model_dump(mode="json", by_alias=True)


def _describe_validation(error: ValidationError) -> str:
    parts = []
    for item in error.errors():
        field = ".".join(str(part) for part in item["loc"]) or "config"
        parts.append(f"{field}: {item['msg']}")
    return "; ".join(parts)


class PipelineOrchestrator:
    """Runs discovery -> research -> analysis -> validation -> output.

    The registry, repository and LLM client are injected or built from
    settings. The LLM client is created lazily the first time a run reaches
    Research, so constructing an orchestrator needs no API key.
    """

    def __init__(
        self,
        registry: Optional[SourceRegistry] = None,
        repository: Optional[BaseRepository] = None,
        llm: Optional[BaseLLM] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._owns_registry = registry is None
        self._registry = registry or build_default_registry(self._settings)
        self._owns_repository = repository is None
        self._repository = repository or create_repository(self._settings)
        self._owns_llm = llm is None
        self._llm = llm
        self._llm_lock = Lock()
        self._handlers: List[PipelineEventHandler] = []

    def on_event(self, handler: PipelineEventHandler) -> None:
        """Subscribe to progress events of every run."""
        self._handlers.append(handler)

    def get_registry(self) -> SourceRegistry:
        return self._registry

    def get_repository(self) -> BaseRepository:
        return self._repository

    def _get_llm(self) -> BaseLLM:
        with self._llm_lock:
            if self._llm is None:
                self._llm = get_llm(self._settings)
            return self._llm

    async def run(self, config: Union[PipelineConfig, Mapping[str, Any]]) -> PipelineRun:
        """Execute one pipeline run.

        Never raises: failures, including a config that cannot be validated,
        come back as a run with status ``failed`` and ``error`` set. A run is
        only persisted under an id this invocation created, so reusing the id
        of an existing run leaves the stored run untouched.
        """
        config_error: Optional[ValidationError] = None
        if not isinstance(config, PipelineConfig):
            try:
                config = PipelineConfig.model_validate(config)
            except ValidationError as e:
                config_error = e

        if config_error is None:
            run = PipelineRun(
                id=config.run_id or str(uuid4()),
                status=PipelineStatus.RUNNING,
                current_phase=PipelinePhase.DISCOVERY,
                query=config.query,
                sources=list(config.sources) if config.sources is not None else self._registry.types(),
            )
        else:
            run = self._rejected_run(config)

        def emit(
            message: str,
            *,
            phase: Optional[PipelinePhase] = None,
            status: PipelineStatus = PipelineStatus.RUNNING,
            data: Any = None,
        ) -> None:
            event = PipelineEvent(
                run_id=run.id,
                phase=phase or run.current_phase or PipelinePhase.DISCOVERY,
                status=status,
                message=message,
                data=data,
            )
            self._dispatch(event)

        created = False
        try:
            self._repository.create_run(run)
            created = True
            if config_error is not None:
                raise PipelineError(f"Invalid pipeline config: {_describe_validation(config_error)}")
            logger.info(f"[Pipeline] Run {run.id} started for '{run.query}'")
            await self._execute(run, config, emit)
            self._complete(run)
        except Exception as e:
            self._fail(run, e, emit, persist=created)
            return run

        emit("Pipeline complete!", status=PipelineStatus.COMPLETED)
        logger.info(f"[Pipeline] Run {run.id} completed with {len(run.results)} ideas")
        return run

    def _rejected_run(self, raw: Any) -> PipelineRun:
        """Best-effort run record for a config that failed validation."""
        data = raw if isinstance(raw, Mapping) else {}
        run_id = str(data.get("runId") or data.get("run_id") or "").strip()
        return PipelineRun(
            id=run_id or str(uuid4()),
            status=PipelineStatus.RUNNING,
            current_phase=PipelinePhase.DISCOVERY,
            query=str(data.get("query") or "").strip(),
            sources=self._registry.types(),
        )

    async def _execute(self, run: PipelineRun, config: PipelineConfig, emit) -> None:
        registry = self._registry.with_overrides(config.custom_sources)
        pipeline_settings = self._settings.pipeline
        options = PhaseOptions(
            temperature=creativity_to_temperature(config.creativity),
            domain=config.domain,
        )

        self._enter_phase(run, PipelinePhase.DISCOVERY)
        discovery = await run_discovery(
            DiscoveryInput(
                query=config.query,
                sources=run.sources,
                limit=config.limit or pipeline_settings.default_limit,
            ),
            registry,
            emit,
            settings=pipeline_settings,
        )
        self._record_output(run, PipelinePhase.DISCOVERY, discovery)

        if not discovery.results:
            raise PipelineError(EMPTY_DISCOVERY_MESSAGE)

        llm = self._get_llm()

        self._enter_phase(run, PipelinePhase.RESEARCH)
        research = await run_research(
            discovery.results, config.query, emit,
            llm=llm, options=options, settings=pipeline_settings,
        )
        self._record_output(run, PipelinePhase.RESEARCH, research)

        self._enter_phase(run, PipelinePhase.ANALYSIS)
        analysis = await run_analysis(
            research, config.query, emit,
            llm=llm, options=options, settings=pipeline_settings,
        )
        self._record_output(run, PipelinePhase.ANALYSIS, analysis)

        self._enter_phase(run, PipelinePhase.VALIDATION)
        validation = await run_validation(
            analysis.ideas, emit,
            llm=llm, options=options, settings=pipeline_settings,
        )
        self._record_output(run, PipelinePhase.VALIDATION, validation)

        self._enter_phase(run, PipelinePhase.OUTPUT)
        output = await run_output(
            analysis.ideas, validation, discovery.results, emit,
            llm=llm, options=options, settings=pipeline_settings,
        )
        self._record_output(run, PipelinePhase.OUTPUT, output.funnels)

        for idea in output.ideas:
            self._repository.create_idea(idea)
        run.results = list(output.ideas)

    def _complete(self, run: PipelineRun) -> None:
        completed_at = utcnow()
        self._repository.update_run(
            run.id,
            status=PipelineStatus.COMPLETED,
            results=run.results,
            phase_outputs=dict(run.phase_outputs),
            completed_at=completed_at,
        )
        run.status = PipelineStatus.COMPLETED
        run.completed_at = completed_at

    def _enter_phase(self, run: PipelineRun, phase: PipelinePhase) -> None:
        run.current_phase = phase
        self._repository.update_run(run.id, current_phase=phase)

    def _record_output(self, run: PipelineRun, phase: PipelinePhase, output: BaseModel) -> None:
        run.phase_outputs[phase.value] = _json_ready(output)
        self._repository.update_run(run.id, phase_outputs=dict(run.phase_outputs))

    def _fail(self, run: PipelineRun, error: Exception, emit, persist: bool = True) -> None:
        message = getattr(error, "message", None) or str(error) or type(error).__name__
        run.status = PipelineStatus.FAILED
        run.error = message
        if persist:
            try:
                self._repository.update_run(
                    run.id,
                    status=run.status,
                    error=message,
                    phase_outputs=dict(run.phase_outputs),
                )
            except Exception as storage_error:
                logger.error(f"[Pipeline] Could not persist failure of run {run.id}: {storage_error}")
        emit(f"Pipeline failed: {message}", status=PipelineStatus.FAILED)
        logger.error(f"[Pipeline] Run {run.id} failed: {message}")

    def _dispatch(self, event: PipelineEvent) -> None:
        for handler in list(self._handlers):
            try:
                handler(event)
            except Exception as e:
                logger.error(f"[Pipeline] Event handler error: {e}")

    async def close(self) -> None:
        """Release the clients and storage owned by this orchestrator."""
        if self._owns_registry:
            await self._registry.close()
        if self._owns_llm and self._llm is not None:
            await self._llm.aclose()
            self._llm = None
        if self._owns_repository:
            self._repository.close()
