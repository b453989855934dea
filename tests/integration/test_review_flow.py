"""End-to-end flow: segmentation, citation integrity and the final report on one store."""

import pytest

from paper_review.pipeline.stages import CITATION_INTEGRITY, FINAL_REPORT, PAGE_SPLIT
from paper_review.services.citation.citation_integrity_stage import CitationIntegrityStage
from paper_review.services.report.report_aggregator import ReportAggregator
from paper_review.services.segmentation.segmentation_service import SegmentationService

PROSE = "This paragraph describes the experimental setup in general terms for the reader."

BODY = "\n".join(["Prior work [1] and [2] motivates the approach, see also [3]."] + [PROSE] * 40)

REFERENCES = "\n".join(
    ["References"]
    + [f"[{n}] Smith, J. and Lee, K. A study of topic number {n}. Journal of Things, {2000 + n}." for n in range(1, 5)]
)


class TwoPageReader:

    def __init__(self, data):
        self.pages = [BODY, REFERENCES]

    def page_count(self):
        return len(self.pages)

    def extract_text(self, page_number):
        return self.pages[page_number - 1]

    def render_page(self, page_number):
        return b"%PDF-page"


@pytest.mark.integration
class TestReviewFlow:

    @pytest.mark.asyncio
    async def test_segment_analyze_report(self, store, storage):
        segmented = await SegmentationService(store, storage, reader_factory=TwoPageReader).segment(
            b"%PDF", owner_id="owner-1", original_filename="paper.pdf"
        )
        assert segmented.success is True
        document_id = segmented.document.document_id

        pages = await store.get_pages(document_id)
        document_text = "\n".join(page.page_text for page in pages)
        citation = await CitationIntegrityStage(store).run(document_id, document_text)

        assert citation["success"] is True
        assert citation["summary"]["total_references_detected"] == 4
        assert citation["matching"]["unmatched_citations"] == []

        report = await ReportAggregator(store).aggregate(document_id)

        assert report.success is True
        assert report.used_fallback is True
        assert set(report.detailed_sections) == {PAGE_SPLIT, CITATION_INTEGRITY}
        assert report.priority_fix_list.total == len(citation["problems"])
        assert report.verdict is not None

        recorded = await store.get_latest_assessment(document_id, FINAL_REPORT)
        assert recorded.payload["document_id"] == document_id
        assert recorded.payload["verdict"] == report.verdict.value

    @pytest.mark.asyncio
    async def test_report_without_stage_outputs(self, store):
        report = await ReportAggregator(store).aggregate("missing-doc")

        assert report.success is False
        assert report.error == "no_stage_outputs"
        assert await store.get_latest_assessment("missing-doc", FINAL_REPORT) is None
