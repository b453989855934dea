"""Final report schemas."""

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class Verdict(str, Enum):
    """Five-point outcome derived from the average stage score."""

    STRONG_ACCEPT = "strong_accept"
    WEAK_ACCEPT = "weak_accept"
    BORDERLINE = "borderline"
    WEAK_REJECT = "weak_reject"
    REJECT = "reject"


class PriorityFixList(BaseModel):
    """Merged issues partitioned by their reported severity."""

    high: List[Dict[str, Any]] = Field(default_factory=list)
    medium: List[Dict[str, Any]] = Field(default_factory=list)
    low: List[Dict[str, Any]] = Field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.high) + len(self.medium) + len(self.low)


class FinalReport(BaseModel):
    """Result of aggregating every stage output of one document."""

    success: bool = True
    document_id: str
    summary: str = ""
    strengths: List[str] = Field(default_factory=list)
    weaknesses: List[str] = Field(default_factory=list)
    detailed_sections: Dict[str, Dict[str, Any]] = Field(
        default_factory=dict, description="Summary, scores and issues per stage id"
    )
    priority_fix_list: PriorityFixList = Field(default_factory=PriorityFixList)
    verdict: Optional[Verdict] = None
    average_score: Optional[float] = Field(default=None, description="Mean of all numeric stage scores")
    used_fallback: bool = Field(default=False, description="Whether the Oracle merge was skipped or rejected")
    error: Optional[str] = None

    def to_payload(self) -> Dict[str, Any]:
        """Payload recorded as the ``final_report`` assessment."""
        return self.model_dump(mode="json", exclude={"success", "error"})
