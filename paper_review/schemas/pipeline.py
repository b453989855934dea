"""Pipeline state and evaluation schemas."""

from enum import Enum
from typing import Dict, List, Optional

from pydantic import AliasChoices, BaseModel, Field


class StageStatus(str, Enum):
    """Lifecycle of a single stage within one pipeline run."""

    PENDING = "pending"
    RUNNING = "running"
    SUCCESS = "success"
    FAILED = "failed"


class PipelineStatus(str, Enum):
    """Overall health of a pipeline run."""

    RUNNING = "running"
    BLOCKED = "blocked"
    COMPLETED_SUCCESS = "completed_success"
    COMPLETED_WITH_ERRORS = "completed_with_errors"


class ActionType(str, Enum):
    """Kinds of next action the orchestrator can plan."""

    RUN = "run"
    RETRY = "retry"
    NO_ACTION = "no_action"


class StageState(BaseModel):
    """Run-time state of one stage."""

    name: str = Field(
        ...,
        validation_alias=AliasChoices("name", "display_name"),
        description="Human-readable stage name",
    )
    required: bool = Field(default=True, description="Whether pipeline completion needs this stage")
    status: StageStatus = Field(default=StageStatus.PENDING)
    retries: int = Field(default=0, ge=0, description="Retries already spent")
    last_error: Optional[str] = None


class PipelineState(BaseModel):
    """The orchestrator's unit of work, re-submitted after each stage completion."""

    document_id: str = Field(..., min_length=1)
    stage_states: Dict[str, StageState] = Field(..., description="State per stage id")
    max_retries_per_stage: int = Field(default=2, ge=0)


class NextAction(BaseModel):
    action: ActionType
    target_stage: str = ""
    reason: str


class Progress(BaseModel):
    completed: int = 0
    total: int = 0
    fraction: float = 0.0
    description: str = ""


class BlockingProblem(BaseModel):
    stage: str
    reason: str
    retries_exhausted: bool = True
    blocks_dependents: bool = False


class PipelineEvaluation(BaseModel):
    """Result of one orchestration pass.

    ``success`` is False only when the submitted state was malformed, in
    which case ``status`` is ``blocked`` and ``error`` says why.
    """

    success: bool = True
    document_id: str = ""
    status: PipelineStatus
    next_actions: List[NextAction] = Field(default_factory=list)
    progress: Progress = Field(default_factory=Progress)
    blocking_problems: List[BlockingProblem] = Field(default_factory=list)
    error: Optional[str] = None
