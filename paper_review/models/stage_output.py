"""Uniform view over heterogeneous stage payloads.

Every stage records a payload of its own shape. The aggregator reads them
through ``StageOutput`` so it never touches stage-specific field names.
"""

from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Optional

from paper_review.pipeline.stages import CITATION_INTEGRITY, STAGES_BY_ID, WRITING_QUALITY

SEVERITIES = ("high", "medium", "low")

_SUMMARY_KEYS = ("summary", "notes")


@dataclass
class Issue:
    """A finding reported by one stage.

    Attributes:
        source_stage: Stage id the issue came from
        issue_id: Stable id within the stage
        issue_type: Stage-specific category
        severity: One of high, medium, low
        section: Document section the issue refers to
        excerpt: Quoted text, may be empty
        rationale: Why the text is a problem
        suggested_fix: Recommended change, may be empty
    """

    source_stage: str
    issue_id: str
    issue_type: str
    severity: str
    section: str
    excerpt: str = ""
    rationale: str = ""
    suggested_fix: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def normalize_severity(value: Any) -> str:
    severity = str(value or "").strip().lower()
    return severity if severity in SEVERITIES else "medium"


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _text(value: Any) -> str:
    return value.strip() if isinstance(value, str) else ""


def _first_text(*values: Any) -> str:
    for value in values:
        text = _text(value)
        if text:
            return text
    return ""


def _string_list(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    return [item.strip() for item in value if isinstance(item, str) and item.strip()]


class StageOutput:
    """Base view of a stage payload with no issue list."""

    def __init__(self, stage_id: str, payload: Optional[Dict[str, Any]]):
        self.stage_id = stage_id
        self.payload = payload if isinstance(payload, dict) else {}

    def issues(self) -> List[Issue]:
        return []

    def scores(self) -> Dict[str, float]:
        """Numeric score and quality metrics found at the top level of the payload.

        A numeric value under a key naming a score or quality metric is taken
        directly. A dict under such a key contributes its numeric members.
        Booleans never count.
        """
        scores: Dict[str, float] = {}
        for key, value in self.payload.items():
            lowered = key.lower()
            if "score" not in lowered and "quality" not in lowered:
                continue
            if _is_number(value):
                scores[key] = float(value)
            elif isinstance(value, dict):
                for inner_key, inner_value in value.items():
                    if _is_number(inner_value):
                        scores[inner_key] = float(inner_value)
        return scores

    def summary_text(self) -> str:
        for key in _SUMMARY_KEYS:
            text = _text(self.payload.get(key))
            if text:
                return text
        return ""

    def strengths(self) -> List[str]:
        return _string_list(self.payload.get("strengths"))

    def weaknesses(self) -> List[str]:
        return _string_list(self.payload.get("weaknesses"))

    def detailed_section(self) -> Dict[str, Any]:
        return {
            "summary": self.summary_text(),
            "scores": self.scores(),
            "issues": [issue.to_dict() for issue in self.issues()],
        }


PlainOutput = StageOutput


class IssueListOutput(StageOutput):
    """A stage whose findings are a list of issue dicts under one field."""

    def __init__(self, stage_id: str, payload: Optional[Dict[str, Any]], issue_field: str):
        super().__init__(stage_id, payload)
        self.issue_field = issue_field

    def _raw_issues(self) -> List[Dict[str, Any]]:
        raw = self.payload.get(self.issue_field)
        if not isinstance(raw, list):
            return []
        return [item for item in raw if isinstance(item, dict)]

    def issues(self) -> List[Issue]:
        return [self._to_issue(raw, n) for n, raw in enumerate(self._raw_issues(), start=1)]

    def _to_issue(self, raw: Dict[str, Any], n: int) -> Issue:
        span = raw.get("span") if isinstance(raw.get("span"), dict) else {}
        return Issue(
            source_stage=self.stage_id,
            issue_id=_first_text(raw.get("issue_id"), raw.get("id")) or f"{self.stage_id}-issue-{n}",
            issue_type=_first_text(raw.get("issue_type"), raw.get("type")) or "issue",
            severity=normalize_severity(raw.get("severity")),
            section=_first_text(raw.get("section"), raw.get("section_hint"), raw.get("area")) or "unknown",
            excerpt=_first_text(raw.get("excerpt"), span.get("excerpt")),
            rationale=_first_text(raw.get("why_problematic"), raw.get("rationale"), raw.get("description")),
            suggested_fix=_first_text(raw.get("suggested_fix"), raw.get("recommended_action")),
        )


class WritingQualityOutput(IssueListOutput):
    """WritingQualitySummary: prioritized actions ranked 1 (most urgent) onwards."""

    def __init__(self, stage_id: str, payload: Optional[Dict[str, Any]], issue_field: str = "prioritized_actions"):
        super().__init__(stage_id, payload, issue_field)

    @staticmethod
    def _severity_for_priority(priority: Any) -> str:
        if priority == 1:
            return "high"
        if priority == 2:
            return "medium"
        return "low"

    def _to_issue(self, raw: Dict[str, Any], n: int) -> Issue:
        description = _text(raw.get("description"))
        return Issue(
            source_stage=self.stage_id,
            issue_id=f"{self.stage_id}-action-{n}",
            issue_type="writing_quality_issue",
            severity=self._severity_for_priority(raw.get("priority")),
            section=_text(raw.get("area")) or "unknown",
            excerpt=description,
            rationale=description,
            suggested_fix=_text(raw.get("recommended_action")),
        )


class CitationIntegrityOutput(IssueListOutput):
    """CitationIntegrity: ``problems`` entries of severity, type and description."""

    def __init__(self, stage_id: str, payload: Optional[Dict[str, Any]], issue_field: str = "problems"):
        super().__init__(stage_id, payload, issue_field)

    def _to_issue(self, raw: Dict[str, Any], n: int) -> Issue:
        description = _text(raw.get("description"))
        return Issue(
            source_stage=self.stage_id,
            issue_id=f"{self.stage_id}-problem-{n}",
            issue_type=_text(raw.get("type")) or "citation_issue",
            severity=normalize_severity(raw.get("severity")),
            section="citations",
            excerpt=description,
            rationale=description,
            suggested_fix="Address citation issues as described",
        )


_VARIANTS = {
    WRITING_QUALITY: WritingQualityOutput,
    CITATION_INTEGRITY: CitationIntegrityOutput,
}


def stage_output_for(stage_id: str, payload: Optional[Dict[str, Any]]) -> StageOutput:
    """Wrap a stage payload in the view matching the stage's issue layout."""
    definition = STAGES_BY_ID.get(stage_id)
    issue_field = definition.issue_field if definition else None
    variant = _VARIANTS.get(stage_id)
    if variant is not None:
        return variant(stage_id, payload, issue_field) if issue_field else variant(stage_id, payload)
    if issue_field:
        return IssueListOutput(stage_id, payload, issue_field)
    return PlainOutput(stage_id, payload)
