"""Pipeline orchestration."""

from .service import EMPTY_DISCOVERY_MESSAGE, PipelineEventHandler, PipelineOrchestrator

__all__ = [
    "EMPTY_DISCOVERY_MESSAGE",
    "PipelineEventHandler",
    "PipelineOrchestrator",
]
