"""Pipeline Orchestrator.

``evaluate`` is a pure reconciliation step: given the current stage-state
table of a document it plans what to run next, measures progress and
classifies pipeline health. It holds no state between calls and performs
no I/O, so callers invoke it again after every external stage completion.
"""

from typing import Any, Dict, List, Mapping, Optional, Union

from pydantic import ValidationError as PydanticValidationError

from paper_review.pipeline.dependency_graph import DependencyGraph
from paper_review.schemas.pipeline import (
    ActionType,
    BlockingProblem,
    NextAction,
    PipelineEvaluation,
    PipelineState,
    PipelineStatus,
    Progress,
    StageState,
    StageStatus,
)
from paper_review.utils.logging import get_logger

LOGGER = get_logger(__name__)

NO_ACTION_REASON = "Waiting for external completion updates or all stages are running/completed."


class PipelineOrchestrator:
    """Plans stage execution over a fixed dependency graph."""

    def __init__(self, graph: Optional[DependencyGraph] = None):
        if graph is None:
            from paper_review.pipeline.stages import build_default_graph
            graph = build_default_graph()
        self.graph = graph

    def evaluate(self, state: Union[PipelineState, Mapping[str, Any]]) -> PipelineEvaluation:
        """Evaluate a pipeline state.

        Args:
            state: A ``PipelineState`` or a raw mapping of the same shape

        Returns:
            PipelineEvaluation. Malformed input yields ``status=blocked``,
            ``success=False`` and a descriptive ``error`` instead of raising.
        """
        if not isinstance(state, PipelineState):
            invalid = self._invalid_input(state)
            if invalid is not None:
                return invalid
            try:
                state = PipelineState.model_validate(state)
            except PydanticValidationError as e:
                document_id = state.get("document_id") if isinstance(state, Mapping) else ""
                return self._blocked(str(document_id or ""), f"Invalid pipeline state: {self._describe(e)}")

        stages = state.stage_states
        max_retries = state.max_retries_per_stage

        evaluation = PipelineEvaluation(
            success=True,
            document_id=state.document_id,
            status=self._classify(stages, max_retries),
            next_actions=self._plan(stages, max_retries),
            progress=self._progress(stages),
            blocking_problems=self._blocking_problems(stages, max_retries),
        )
        LOGGER.debug(
            f"Pipeline {state.document_id}: {evaluation.status.value}, "
            f"{evaluation.progress.completed}/{evaluation.progress.total} required stages complete",
            extra={"document_id": state.document_id},
        )
        return evaluation

    # Input validation

    def _invalid_input(self, state: Any) -> Optional[PipelineEvaluation]:
        if not isinstance(state, Mapping):
            return self._blocked("", "Invalid pipeline state: expected a mapping.")
        if not state.get("document_id"):
            return self._blocked("", "Invalid pipeline state: document_id missing.")
        if state.get("stage_states") is None:
            return self._blocked(str(state["document_id"]), "Invalid pipeline state: stage_states missing.")
        return None

    @staticmethod
    def _describe(error: PydanticValidationError) -> str:
        first = error.errors()[0]
        location = ".".join(str(part) for part in first.get("loc", ()))
        return f"{location}: {first.get('msg', 'invalid value')}"

    @staticmethod
    def _blocked(document_id: str, message: str) -> PipelineEvaluation:
        LOGGER.warning(message, extra={"document_id": document_id})
        return PipelineEvaluation(
            success=False,
            document_id=document_id,
            status=PipelineStatus.BLOCKED,
            progress=Progress(description="Invalid input"),
            error=message,
        )

    # Planning

    def _dependencies_satisfied(self, stage_id: str, stages: Dict[str, StageState]) -> bool:
        for dep in self.graph.dependencies_of(stage_id):
            dep_state = stages.get(dep)
            if dep_state is None or dep_state.status != StageStatus.SUCCESS:
                return False
        return True

    def _has_dependents(self, stage_id: str, stages: Dict[str, StageState]) -> bool:
        return bool(self.graph.dependents_of(stage_id, among=stages.keys()))

    @staticmethod
    def _exhausted(state: StageState, max_retries: int) -> bool:
        return state.status == StageStatus.FAILED and state.retries >= max_retries

    def _plan(self, stages: Dict[str, StageState], max_retries: int) -> List[NextAction]:
        actions: List[NextAction] = []
        for stage_id, state in stages.items():
            if not self._dependencies_satisfied(stage_id, stages):
                continue
            if state.status == StageStatus.PENDING:
                actions.append(NextAction(
                    action=ActionType.RUN,
                    target_stage=stage_id,
                    reason="Dependencies satisfied and stage is pending",
                ))
            elif state.status == StageStatus.FAILED and state.retries < max_retries:
                actions.append(NextAction(
                    action=ActionType.RETRY,
                    target_stage=stage_id,
                    reason=f"Previous failure, {max_retries - state.retries} retries remaining",
                ))

        if not actions:
            actions.append(NextAction(action=ActionType.NO_ACTION, target_stage="", reason=NO_ACTION_REASON))
        return actions

    def _classify(self, stages: Dict[str, StageState], max_retries: int) -> PipelineStatus:
        required = [(stage_id, state) for stage_id, state in stages.items() if state.required]

        if all(state.status == StageStatus.SUCCESS for _, state in required):
            return PipelineStatus.COMPLETED_SUCCESS

        exhausted = [stage_id for stage_id, state in required if self._exhausted(state, max_retries)]
        if exhausted:
            if any(self._has_dependents(stage_id, stages) for stage_id in exhausted):
                return PipelineStatus.BLOCKED
            return PipelineStatus.COMPLETED_WITH_ERRORS

        return PipelineStatus.RUNNING

    @staticmethod
    def _progress(stages: Dict[str, StageState]) -> Progress:
        required = [state for state in stages.values() if state.required]
        total = len(required)
        completed = sum(1 for state in required if state.status == StageStatus.SUCCESS)

        remaining = [
            state.name
            for wanted in (StageStatus.PENDING, StageStatus.FAILED, StageStatus.RUNNING)
            for state in required
            if state.status == wanted
        ]
        description = f"Completed {completed}/{total} required stages."
        if remaining:
            description = f"{description} Remaining: {', '.join(remaining)}."

        return Progress(
            completed=completed,
            total=total,
            fraction=completed / total if total else 0.0,
            description=description,
        )

    def _blocking_problems(self, stages: Dict[str, StageState], max_retries: int) -> List[BlockingProblem]:
        problems: List[BlockingProblem] = []
        for stage_id, state in stages.items():
            if not (state.required and self._exhausted(state, max_retries)):
                continue
            blocks = self._has_dependents(stage_id, stages)
            consequence = "This blocks dependent stages." if blocks else "This prevents pipeline completion."
            problems.append(BlockingProblem(
                stage=stage_id,
                reason=f"Required stage {state.name} failed after {state.retries} retries. {consequence}",
                retries_exhausted=True,
                blocks_dependents=blocks,
            ))
        return problems


def evaluate(state: Union[PipelineState, Mapping[str, Any]], graph: Optional[DependencyGraph] = None) -> PipelineEvaluation:
    """Evaluate ``state`` against ``graph`` (the default review pipeline when omitted)."""
    return PipelineOrchestrator(graph).evaluate(state)
