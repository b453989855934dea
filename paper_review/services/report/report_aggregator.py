"""Final report composition.

Merges the latest output of every analysis stage into one report: issues
partitioned by their own severity, a verdict from the averaged stage scores,
and a summary with strengths and weaknesses. The Oracle may rewrite the
summary, strengths and weaknesses; everything else is computed locally.
"""

import json
from typing import Any, Dict, List, Optional, Tuple

from paper_review.core.exceptions import APIClientError, DatabaseError
from paper_review.core.oracle_client import AnalysisOracle
from paper_review.models.stage_output import Issue, StageOutput, stage_output_for
from paper_review.pipeline.stages import FINAL_REPORT, REPORT_LAYOUT, STAGE_CATALOGUE
from paper_review.schemas.report import FinalReport, PriorityFixList
from paper_review.services.artifact_store import ArtifactStore
from paper_review.services.report.verdict import average_scores, verdict_for
from paper_review.utils.logging import get_logger
from paper_review.utils.text_sampling import estimate_tokens, truncate

LOGGER = get_logger(__name__)

NO_STAGE_OUTPUTS = "no_stage_outputs"

DEFAULT_SUMMARY = (
    "This document has been analyzed across multiple dimensions including structure, writing quality, "
    "methodology, dataset reliability, novelty, literature review, argumentation, results, robustness, "
    "and ethics."
)
DEFAULT_STRENGTH = "Analysis completed for all stages"

MAX_ORACLE_TOKENS = 20000
LARGE_OUTPUT_CHARS = 5000
TRUNCATED_OUTPUT_CHARS = 2000
MAX_ORACLE_ATTEMPTS = 3
MAX_FALLBACK_WEAKNESSES = 5

SYSTEM_PROMPT = (
    "You are a senior reviewer composing the final assessment of an academic paper from the outputs of "
    "specialized analysis stages. Always return valid JSON only."
)

MERGE_TASK = """Write the overall assessment of the paper from the stage outputs in the input.
Do not invent findings that no stage reported.

Return JSON:
{"summary": "3-5 sentence overview of the paper and its main problems",
 "strengths": ["..."],
 "weaknesses": ["..."]}"""

REPORTED_STAGES = tuple(
    stage.stage_id for stage in STAGE_CATALOGUE if stage.stage_id not in (FINAL_REPORT, REPORT_LAYOUT)
)


def build_priority_fix_list(issues: List[Issue]) -> PriorityFixList:
    """Partition issues by their own severity, keeping stage order within each bucket."""
    buckets: Dict[str, List[Dict[str, Any]]] = {"high": [], "medium": [], "low": []}
    for issue in issues:
        buckets[issue.severity].append(issue.to_dict())
    return PriorityFixList(**buckets)


def compose_summary(outputs: List[StageOutput]) -> str:
    summaries = [text for text in (output.summary_text() for output in outputs) if text]
    if summaries:
        return " ".join(summaries[:3])
    return DEFAULT_SUMMARY


def collect_strengths(outputs: List[StageOutput]) -> List[str]:
    strengths = [item for output in outputs for item in output.strengths()]
    return strengths or [DEFAULT_STRENGTH]


def collect_weaknesses(outputs: List[StageOutput], issues: List[Issue]) -> List[str]:
    weaknesses = [item for output in outputs for item in output.weaknesses()]
    if weaknesses:
        return weaknesses
    fallback = (issue.rationale or issue.excerpt for issue in issues[:MAX_FALLBACK_WEAKNESSES])
    return [text for text in fallback if text]


def oracle_input(outputs: List[StageOutput]) -> Dict[str, Any]:
    """Stage payloads for the Oracle, with large ones cut down when the whole is too big."""
    serialized = {output.stage_id: json.dumps(output.payload, default=str) for output in outputs}
    content: Dict[str, Any] = {output.stage_id: output.payload for output in outputs}
    if estimate_tokens("".join(serialized.values())) <= MAX_ORACLE_TOKENS:
        return content

    LOGGER.info("Stage outputs exceed the Oracle input budget, truncating large outputs")
    for stage_id, text in serialized.items():
        if len(text) > LARGE_OUTPUT_CHARS:
            content[stage_id] = {"summary": truncate(text, TRUNCATED_OUTPUT_CHARS, "... [truncated]")}
    return content


def _clean_list(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    return [item.strip() for item in value if isinstance(item, str) and item.strip()]


class ReportAggregator:
    """Builds and records the ``final_report`` assessment of a document."""

    stage_id = FINAL_REPORT

    def __init__(self, store: ArtifactStore, oracle: Optional[AnalysisOracle] = None):
        self.store = store
        self.oracle = oracle

    async def collect_outputs(self, document_id: str) -> List[StageOutput]:
        """Latest output of each reported stage, in catalogue order. Missing stages are skipped."""
        outputs = []
        for stage_id in REPORTED_STAGES:
            assessment = await self.store.get_latest_assessment(document_id, stage_id)
            if assessment is not None:
                outputs.append(stage_output_for(stage_id, assessment.payload))
        return outputs

    async def aggregate(self, document_id: str) -> FinalReport:
        """Compose, record and return the final report.

        Returns:
            FinalReport. ``success`` is False with ``error="no_stage_outputs"``
            when the document has no stage output at all, in which case nothing
            is recorded.
        """
        try:
            outputs = await self.collect_outputs(document_id)
        except DatabaseError as e:
            LOGGER.error(f"Could not load stage outputs: {e}", extra={"document_id": document_id})
            return FinalReport(success=False, document_id=document_id, error=str(e))

        if not outputs:
            LOGGER.warning(f"No stage outputs found for document {document_id}", extra={"document_id": document_id})
            return FinalReport(success=False, document_id=document_id, error=NO_STAGE_OUTPUTS)

        report = self.compose(document_id, outputs)
        merged = await self._merge_with_oracle(outputs)
        if merged is not None:
            summary, strengths, weaknesses = merged
            report.summary = summary
            report.strengths = strengths or report.strengths
            report.weaknesses = weaknesses or report.weaknesses
            report.used_fallback = False

        LOGGER.info(
            f"Composed final report for {document_id} from {len(outputs)} stage outputs",
            extra={
                "document_id": document_id,
                "verdict": report.verdict.value if report.verdict else None,
                "issue_count": report.priority_fix_list.total,
                "used_fallback": report.used_fallback,
            },
        )

        try:
            await self.store.put_assessment(document_id, self.stage_id, report.to_payload())
        except DatabaseError as e:
            LOGGER.error(f"Could not record final report: {e}", extra={"document_id": document_id})
            report.success = False
            report.error = str(e)
        return report

    def compose(self, document_id: str, outputs: List[StageOutput]) -> FinalReport:
        """The deterministic report, built without the Oracle."""
        issues = [issue for output in outputs for issue in output.issues()]
        average = average_scores(score for output in outputs for score in output.scores().values())
        return FinalReport(
            document_id=document_id,
            summary=compose_summary(outputs),
            strengths=collect_strengths(outputs),
            weaknesses=collect_weaknesses(outputs, issues),
            detailed_sections={output.stage_id: output.detailed_section() for output in outputs},
            priority_fix_list=build_priority_fix_list(issues),
            verdict=verdict_for(average),
            average_score=average,
            used_fallback=True,
        )

    async def _merge_with_oracle(self, outputs: List[StageOutput]) -> Optional[Tuple[str, List[str], List[str]]]:
        if self.oracle is None:
            return None

        content = {"stage_outputs": oracle_input(outputs)}
        for attempt in range(1, MAX_ORACLE_ATTEMPTS + 1):
            try:
                result = await self.oracle.request_json(MERGE_TASK, content, system_prompt=SYSTEM_PROMPT)
            except APIClientError as e:
                LOGGER.warning(f"Oracle report merge failed (attempt {attempt}/{MAX_ORACLE_ATTEMPTS}): {e}")
                continue

            summary = result.get("summary")
            if isinstance(summary, str) and summary.strip():
                return summary.strip(), _clean_list(result.get("strengths")), _clean_list(result.get("weaknesses"))
            LOGGER.warning(f"Oracle report merge returned no summary (attempt {attempt}/{MAX_ORACLE_ATTEMPTS})")

        LOGGER.warning("Oracle report merge unusable, keeping the locally composed report")
        return None
