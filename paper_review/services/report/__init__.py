"""Final report aggregation."""

from paper_review.services.report.report_aggregator import ReportAggregator
from paper_review.services.report.verdict import verdict_for

__all__ = ["ReportAggregator", "verdict_for"]
