"""Pipeline orchestration for single topics and the whole topic fleet."""

from .service import PipelineOrchestrator, build_orchestrator

__all__ = [
    "PipelineOrchestrator",
    "build_orchestrator",
]
