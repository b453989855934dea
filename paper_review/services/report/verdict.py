"""Verdict derivation from averaged stage scores."""

from typing import Iterable, Optional

from paper_review.schemas.report import Verdict

# (lower bound, verdict), checked top down
VERDICT_THRESHOLDS = (
    (0.80, Verdict.STRONG_ACCEPT),
    (0.65, Verdict.WEAK_ACCEPT),
    (0.50, Verdict.BORDERLINE),
    (0.35, Verdict.WEAK_REJECT),
)


def average_scores(scores: Iterable[float]) -> Optional[float]:
    values = list(scores)
    if not values:
        return None
    return sum(values) / len(values)


def verdict_for(average: Optional[float]) -> Verdict:
    """Map a mean score to the five-point scale; no scores gives borderline."""
    if average is None:
        return Verdict.BORDERLINE
    for bound, verdict in VERDICT_THRESHOLDS:
        if average >= bound:
            return verdict
    return Verdict.REJECT
