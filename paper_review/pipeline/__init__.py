"""Pipeline orchestration.

- DependencyGraph: validated stage dependency graph
- stages: the stage catalogue and the per-stage state machine
- PipelineOrchestrator: plans next actions, progress and blocking problems
"""

from paper_review.pipeline.dependency_graph import DependencyGraph
from paper_review.pipeline.orchestrator import PipelineOrchestrator, evaluate
from paper_review.pipeline.stages import (
    STAGE_CATALOGUE,
    STAGES_BY_ID,
    StageDefinition,
    build_default_graph,
    initial_pipeline_state,
    transition,
)

__all__ = [
    "DependencyGraph",
    "PipelineOrchestrator",
    "evaluate",
    "STAGE_CATALOGUE",
    "STAGES_BY_ID",
    "StageDefinition",
    "build_default_graph",
    "initial_pipeline_state",
    "transition",
]
