"""Stage catalogue and the per-stage status state machine."""

from dataclasses import dataclass
from typing import Dict, Optional, Tuple

from paper_review.core.config import settings
from paper_review.core.exceptions import ValidationError
from paper_review.pipeline.dependency_graph import DependencyGraph
from paper_review.schemas.pipeline import PipelineState, StageState, StageStatus
from paper_review.utils.logging import get_logger

LOGGER = get_logger(__name__)


@dataclass(frozen=True)
class StageDefinition:
    """Static description of one pipeline stage.

    Attributes:
        stage_id: Stable identifier used as the assessment key
        display_name: Human-readable name reported in progress text
        required: Whether pipeline completion needs this stage
        depends_on: Stage ids that must succeed first
        issue_field: Payload field holding the stage's issue list, if any
    """

    stage_id: str
    display_name: str
    required: bool = True
    depends_on: Tuple[str, ...] = ()
    issue_field: Optional[str] = None


INGESTION = "ingestion"
STRUCTURAL_SCAN = "structural_scan"
CITATION_INTEGRITY = "citation_integrity"
PAGE_SPLIT = "page_split"
WRITING_ISSUES = "writing_issues"
WRITING_QUALITY = "writing_quality"
FINAL_REPORT = "final_report"
REPORT_LAYOUT = "report_layout"

_BASE = (INGESTION, STRUCTURAL_SCAN)

_ANALYSIS_STAGES = (
    StageDefinition(CITATION_INTEGRITY, "CitationIntegrity", depends_on=_BASE, issue_field="problems"),
    StageDefinition(PAGE_SPLIT, "PdfPageSplitter", depends_on=_BASE),
    StageDefinition(WRITING_ISSUES, "WritingIssueScanner", depends_on=(PAGE_SPLIT,), issue_field="issues"),
    StageDefinition(
        WRITING_QUALITY, "WritingQualitySummary", depends_on=(WRITING_ISSUES,), issue_field="prioritized_actions"
    ),
    StageDefinition("argumentation", "ArgumentationAndClaimSupportAnalyzer", depends_on=_BASE,
                    issue_field="argumentation_issues"),
    StageDefinition("methodology", "MethodologyQualityAnalyzer", depends_on=_BASE,
                    issue_field="methodology_issues"),
    StageDefinition("dataset_reliability", "DatasetAndDataReliabilityAnalyzer", depends_on=_BASE,
                    issue_field="dataset_issues"),
    StageDefinition("novelty", "NoveltyAndContributionAnalyzer", depends_on=_BASE,
                    issue_field="novelty_issues"),
    StageDefinition("literature_review", "LiteratureReviewAnalyzer", depends_on=_BASE,
                    issue_field="lit_review_issues"),
    StageDefinition("aibc_coherence", "AIBC-CoherenceAnalyzer", depends_on=_BASE,
                    issue_field="aibc_issues"),
    StageDefinition("results_statistics", "ResultsAndStatisticalSoundnessAnalyzer", depends_on=_BASE,
                    issue_field="results_issues"),
    StageDefinition("robustness", "RobustnessAndGeneralizationAnalyzer", depends_on=_BASE,
                    issue_field="robustness_issues"),
    StageDefinition("ethics_reproducibility", "EthicsReproducibilityTransparencyAnalyzer", depends_on=_BASE,
                    issue_field="ert_issues"),
)

STAGE_CATALOGUE: Tuple[StageDefinition, ...] = (
    StageDefinition(INGESTION, "IngestionAndAppropriateness"),
    StageDefinition(STRUCTURAL_SCAN, "StructuralScanner", depends_on=(INGESTION,)),
    *_ANALYSIS_STAGES,
    StageDefinition(
        FINAL_REPORT,
        "FinalReportComposer",
        depends_on=_BASE + tuple(stage.stage_id for stage in _ANALYSIS_STAGES),
    ),
    StageDefinition(REPORT_LAYOUT, "PdfReportLayoutGenerator", required=False, depends_on=(FINAL_REPORT,)),
)

STAGES_BY_ID: Dict[str, StageDefinition] = {stage.stage_id: stage for stage in STAGE_CATALOGUE}


def build_default_graph() -> DependencyGraph:
    """Dependency graph of the full review pipeline."""
    return DependencyGraph.from_mapping({stage.stage_id: stage.depends_on for stage in STAGE_CATALOGUE})


def initial_pipeline_state(document_id: str, max_retries: Optional[int] = None) -> PipelineState:
    """A fresh pipeline state with every catalogued stage pending."""
    return PipelineState(
        document_id=document_id,
        stage_states={
            stage.stage_id: StageState(name=stage.display_name, required=stage.required)
            for stage in STAGE_CATALOGUE
        },
        max_retries_per_stage=settings.max_retries_per_stage if max_retries is None else max_retries,
    )


def transition(
    state: PipelineState,
    stage_id: str,
    new_status: StageStatus,
    error: Optional[str] = None,
) -> PipelineState:
    """Return a copy of ``state`` with one stage moved to ``new_status``.

    Allowed moves are pending->running, running->success, running->failed
    and failed->running while retries remain (which spends one retry).

    Raises:
        ValidationError: If the stage is unknown or the move is not allowed
    """
    if stage_id not in state.stage_states:
        raise ValidationError(f"Unknown stage '{stage_id}' for document {state.document_id}")

    new_status = StageStatus(new_status)
    current = state.stage_states[stage_id]
    updates: Dict[str, object] = {"status": new_status}

    if current.status == StageStatus.PENDING and new_status == StageStatus.RUNNING:
        pass
    elif current.status == StageStatus.RUNNING and new_status == StageStatus.SUCCESS:
        updates["last_error"] = None
    elif current.status == StageStatus.RUNNING and new_status == StageStatus.FAILED:
        updates["last_error"] = error
    elif current.status == StageStatus.FAILED and new_status == StageStatus.RUNNING:
        if current.retries >= state.max_retries_per_stage:
            raise ValidationError(
                f"Stage '{stage_id}' has exhausted its {state.max_retries_per_stage} retries"
            )
        updates["retries"] = current.retries + 1
    else:
        raise ValidationError(
            f"Illegal transition for stage '{stage_id}': {current.status.value} -> {new_status.value}"
        )

    LOGGER.debug(
        f"Stage {stage_id}: {current.status.value} -> {new_status.value}",
        extra={"document_id": state.document_id, "stage_id": stage_id},
    )
    stage_states = dict(state.stage_states)
    stage_states[stage_id] = current.model_copy(update=updates)
    return state.model_copy(update={"stage_states": stage_states})
