"""Unit tests for ReportAggregator."""

import pytest

from paper_review.core.exceptions import OracleResponseError
from paper_review.models.stage_output import PlainOutput
from paper_review.pipeline.stages import FINAL_REPORT
from paper_review.schemas.report import Verdict
from paper_review.services.report.report_aggregator import (
    DEFAULT_STRENGTH,
    DEFAULT_SUMMARY,
    NO_STAGE_OUTPUTS,
    ReportAggregator,
    oracle_input,
)


async def _seed(store, document_id="doc-1"):
    await store.put_assessment(document_id, "methodology", {
        "document_id": document_id,
        "summary": "Methods are mostly sound.",
        "methodology_score": 0.9,
        "methodology_issues": [
            {"issue_id": "m-1", "severity": "high", "why_problematic": "No control group"},
            {"issue_id": "m-2", "severity": "low", "excerpt": "n=12"},
        ],
    })
    await store.put_assessment(document_id, "novelty", {
        "document_id": document_id,
        "notes": "Incremental contribution.",
        "scores": {"novelty": 0.6, "significance": 0.66},
        "novelty_issues": [{"issue_id": "n-1", "severity": "medium", "why_problematic": "Close to prior work"}],
    })


class TestAggregation:
    """Deterministic composition."""

    @pytest.mark.asyncio
    async def test_no_stage_outputs(self, store):
        report = await ReportAggregator(store).aggregate("doc-empty")

        assert report.success is False
        assert report.error == NO_STAGE_OUTPUTS
        assert report.verdict is None
        assert await store.get_latest_assessment("doc-empty", FINAL_REPORT) is None

    @pytest.mark.asyncio
    async def test_priority_list_and_verdict(self, store):
        await _seed(store)

        report = await ReportAggregator(store).aggregate("doc-1")

        assert report.success is True
        assert report.used_fallback is True
        assert [i["issue_id"] for i in report.priority_fix_list.high] == ["m-1"]
        assert [i["issue_id"] for i in report.priority_fix_list.medium] == ["n-1"]
        assert [i["issue_id"] for i in report.priority_fix_list.low] == ["m-2"]
        assert report.average_score == pytest.approx(0.72)
        assert report.verdict == Verdict.WEAK_ACCEPT
        assert report.summary == "Methods are mostly sound. Incremental contribution."
        assert report.strengths == [DEFAULT_STRENGTH]
        assert report.weaknesses == ["No control group", "n=12", "Close to prior work"]
        assert set(report.detailed_sections) == {"methodology", "novelty"}
        assert report.detailed_sections["novelty"]["scores"] == {"novelty": 0.6, "significance": 0.66}

    @pytest.mark.asyncio
    async def test_report_recorded(self, store):
        await _seed(store)

        report = await ReportAggregator(store).aggregate("doc-1")
        recorded = await store.get_latest_assessment("doc-1", FINAL_REPORT)

        assert recorded is not None
        assert recorded.payload["verdict"] == "weak_accept"
        assert recorded.payload["priority_fix_list"]["high"][0]["source_stage"] == "methodology"
        assert recorded.payload["summary"] == report.summary

    @pytest.mark.asyncio
    async def test_latest_assessment_per_stage_used(self, store):
        await store.put_assessment("doc-1", "ethics_reproducibility", {"summary": "old", "ethics_score": 0.1})
        await store.put_assessment("doc-1", "ethics_reproducibility", {"summary": "new", "ethics_score": 0.9})

        report = await ReportAggregator(store).aggregate("doc-1")

        assert report.summary == "new"
        assert report.verdict == Verdict.STRONG_ACCEPT

    @pytest.mark.asyncio
    async def test_defaults_without_text_or_scores(self, store):
        await store.put_assessment("doc-1", "ingestion", {"document_id": "doc-1"})

        report = await ReportAggregator(store).aggregate("doc-1")

        assert report.summary == DEFAULT_SUMMARY
        assert report.verdict == Verdict.BORDERLINE
        assert report.weaknesses == []

    @pytest.mark.asyncio
    async def test_previous_final_report_not_aggregated(self, store):
        await _seed(store)
        aggregator = ReportAggregator(store)

        first = await aggregator.aggregate("doc-1")
        second = await aggregator.aggregate("doc-1")

        assert FINAL_REPORT not in second.detailed_sections
        assert second.priority_fix_list == first.priority_fix_list


class TestOracleMerge:
    """Oracle-backed summary with deterministic fallback."""

    @pytest.mark.asyncio
    async def test_oracle_summary_used(self, store, mock_oracle):
        await _seed(store)
        mock_oracle.request_json.return_value = {
            "summary": "A careful but incremental study.",
            "strengths": ["Clear writing"],
            "weaknesses": [],
            "verdict": "reject",
        }

        report = await ReportAggregator(store, oracle=mock_oracle).aggregate("doc-1")

        assert report.used_fallback is False
        assert report.summary == "A careful but incremental study."
        assert report.strengths == ["Clear writing"]
        assert report.weaknesses == ["No control group", "n=12", "Close to prior work"]
        assert report.verdict == Verdict.WEAK_ACCEPT

    @pytest.mark.asyncio
    async def test_retries_then_falls_back(self, store, mock_oracle):
        await _seed(store)
        mock_oracle.request_json.side_effect = [
            OracleResponseError("Empty response from Oracle"),
            {"summary": ""},
            {"strengths": ["x"]},
        ]

        report = await ReportAggregator(store, oracle=mock_oracle).aggregate("doc-1")

        assert mock_oracle.request_json.await_count == 3
        assert report.success is True
        assert report.used_fallback is True
        assert report.summary == "Methods are mostly sound. Incremental contribution."

    @pytest.mark.asyncio
    async def test_second_attempt_accepted(self, store, mock_oracle):
        await _seed(store)
        mock_oracle.request_json.side_effect = [{"summary": "  "}, {"summary": "Second try."}]

        report = await ReportAggregator(store, oracle=mock_oracle).aggregate("doc-1")

        assert mock_oracle.request_json.await_count == 2
        assert report.summary == "Second try."


class TestOracleInput:
    """Input size limiting."""

    def test_small_outputs_passed_whole(self):
        outputs = [PlainOutput("methodology", {"summary": "short"})]

        assert oracle_input(outputs) == {"methodology": {"summary": "short"}}

    def test_large_outputs_truncated(self):
        big = PlainOutput("methodology", {"text": "x" * 90000})
        small = PlainOutput("novelty", {"summary": "short"})

        content = oracle_input([big, small])

        assert content["novelty"] == {"summary": "short"}
        truncated = content["methodology"]["summary"]
        assert truncated.endswith("... [truncated]")
        assert len(truncated) == 2000 + len("... [truncated]")
