"""
Pipeline - stage orchestration for one document generation run.

Components:
- results: Stage enum, tagged stage results (Ok / Skipped / Failed), RunResult
- orchestrator: PipelineOrchestrator (fetch -> map -> render -> convert -> store -> notify)
"""

from .orchestrator import PipelineOrchestrator
from .results import Failed, Ok, RunResult, Skipped, Stage

__all__ = [
    "Failed",
    "Ok",
    "PipelineOrchestrator",
    "RunResult",
    "Skipped",
    "Stage",
]
