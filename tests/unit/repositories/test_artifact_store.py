"""Unit tests for ArtifactStore against an in-memory database."""

from datetime import datetime, timedelta, timezone
from unittest.mock import patch

import pytest
from sqlalchemy.exc import OperationalError

from paper_review.core.exceptions import DatabaseError, DocumentNotFoundError
from paper_review.repositories.page_repository import PageRepository
from paper_review.schemas.artifacts import AssessmentFilter


def _pages(*numbers, prefix="text"):
    return [{"page_number": n, "page_text": f"{prefix} {n}"} for n in numbers]


class TestDocuments:
    """Document upsert and lookup."""

    @pytest.mark.asyncio
    async def test_put_generates_id(self, store):
        document = await store.put_document("owner-1", "paper.pdf")

        assert document.document_id
        assert document.page_count == 0
        assert document.created_at.tzinfo is not None
        assert await store.get_document(document.document_id) == document

    @pytest.mark.asyncio
    async def test_upsert_keeps_created_at(self, store):
        first = await store.put_document("owner-1", "paper.pdf", document_id="doc-1")
        second = await store.put_document("owner-2", "paper-v2.pdf", document_id="doc-1")

        assert second.created_at == first.created_at
        assert second.updated_at >= first.updated_at
        assert second.original_filename == "paper-v2.pdf"

    @pytest.mark.asyncio
    async def test_missing_document(self, store):
        assert await store.get_document("nope") is None


class TestPages:
    """Page set writes and reads."""

    @pytest.mark.asyncio
    async def test_put_pages_sets_page_count(self, store):
        await store.put_document("owner-1", "paper.pdf", document_id="doc-1")

        pages = await store.put_pages("doc-1", _pages(2, 1, 3))

        assert [p.page_number for p in pages] == [1, 2, 3]
        assert pages[0].char_count == len("text 1")
        assert (await store.get_document("doc-1")).page_count == 3
        assert await store.get_page(pages[1].page_id) == pages[1]

    @pytest.mark.asyncio
    async def test_replace_all_removes_old_pages(self, store):
        await store.put_document("owner-1", "paper.pdf", document_id="doc-1")
        await store.put_pages("doc-1", _pages(1, 2, 3, 4))

        await store.put_pages("doc-1", _pages(1, 2, prefix="new"))

        pages = await store.get_pages("doc-1")
        assert [p.page_text for p in pages] == ["new 1", "new 2"]
        assert (await store.get_document("doc-1")).page_count == 2

    @pytest.mark.asyncio
    async def test_partial_replace_keeps_other_pages(self, store):
        await store.put_document("owner-1", "paper.pdf", document_id="doc-1")
        await store.put_pages("doc-1", _pages(1, 2, 3))

        await store.put_pages("doc-1", _pages(2, prefix="new"), replace_all=False)

        pages = await store.get_pages("doc-1")
        assert [p.page_text for p in pages] == ["text 1", "new 2", "text 3"]
        assert (await store.get_document("doc-1")).page_count == 3

    @pytest.mark.asyncio
    async def test_partial_replace_keeps_timestamps_of_untouched_pages(self, store):
        await store.put_document("owner-1", "paper.pdf", document_id="doc-1")
        await store.put_pages("doc-1", _pages(1, 2))
        before = await store.get_pages("doc-1")

        await store.put_pages("doc-1", _pages(2, prefix="new"), replace_all=False)

        after = await store.get_pages("doc-1")
        assert after[0].page_id == before[0].page_id
        assert after[0].created_at == before[0].created_at
        assert after[0].updated_at == before[0].updated_at
        assert after[1].page_id != before[1].page_id

    @pytest.mark.asyncio
    async def test_pages_for_unknown_document(self, store):
        with pytest.raises(DocumentNotFoundError):
            await store.put_pages("missing", _pages(1))

    @pytest.mark.asyncio
    async def test_failed_write_keeps_prior_pages(self, store):
        await store.put_document("owner-1", "paper.pdf", document_id="doc-1")
        await store.put_pages("doc-1", _pages(1, 2))

        with patch.object(
            PageRepository, "replace_pages", side_effect=OperationalError("INSERT", {}, Exception("disk I/O"))
        ):
            with pytest.raises(DatabaseError):
                await store.put_pages("doc-1", _pages(1, prefix="new"))

        assert [p.page_text for p in await store.get_pages("doc-1")] == ["text 1", "text 2"]
        assert (await store.get_document("doc-1")).page_count == 2

    @pytest.mark.asyncio
    async def test_save_segmentation_is_one_unit(self, store):
        document, pages = await store.save_segmentation(
            owner_id="owner-1",
            original_filename="paper.pdf",
            storage_path="/tmp/paper.pdf",
            document_id="doc-1",
            pages=_pages(1, 2),
        )

        assert document.page_count == len(pages) == 2
        assert all(p.document_id == "doc-1" for p in pages)


class TestAssessments:
    """Append-only assessment storage."""

    @pytest.mark.asyncio
    async def test_latest_by_timestamp_not_insertion(self, store):
        now = datetime.now(timezone.utc)
        await store.put_assessment("doc-1", "methodology", {"v": "new"}, timestamp=now)
        await store.put_assessment("doc-1", "methodology", {"v": "old"}, timestamp=now - timedelta(hours=1))

        latest = await store.get_latest_assessment("doc-1", "methodology")

        assert latest.payload == {"v": "new"}
        assert latest.timestamp.tzinfo is not None

    @pytest.mark.asyncio
    async def test_equal_timestamps_resolved_by_insertion_order(self, store):
        now = datetime.now(timezone.utc)
        await store.put_assessment("doc-1", "novelty", {"v": 1}, timestamp=now)
        await store.put_assessment("doc-1", "novelty", {"v": 2}, timestamp=now)

        assert (await store.get_latest_assessment("doc-1", "novelty")).payload == {"v": 2}

    @pytest.mark.asyncio
    async def test_history_is_kept(self, store):
        await store.put_assessment("doc-1", "novelty", {"v": 1})
        await store.put_assessment("doc-1", "novelty", {"v": 2})
        await store.put_assessment("doc-2", "novelty", {"v": 3})

        records = await store.get_all_assessments(AssessmentFilter(document_id="doc-1"))

        assert [r.payload["v"] for r in records] == [1, 2]
        assert len(await store.get_all_assessments()) == 3

    @pytest.mark.asyncio
    async def test_lookup_through_payload_reference(self, store):
        await store.put_assessment("paper-42", "ingestion", {"document_id": "doc-1", "ok": True})

        record = await store.get_latest_assessment("doc-1", "ingestion")

        assert record is not None
        assert record.document_id == "paper-42"
        assert await store.get_latest_assessment("doc-1", "novelty") is None

    @pytest.mark.asyncio
    async def test_record_serializes_iso_timestamp(self, store):
        record = await store.put_assessment("doc-1", "ingestion", {})

        dumped = record.model_dump(mode="json")

        assert datetime.fromisoformat(dumped["timestamp"]).tzinfo is not None

    @pytest.mark.asyncio
    async def test_offset_timestamps_compared_in_utc(self, store):
        plus_five = timezone(timedelta(hours=5))
        await store.put_assessment("doc-1", "robustness", {"v": "early"}, timestamp=datetime(2026, 1, 1, 12, tzinfo=plus_five))
        await store.put_assessment("doc-1", "robustness", {"v": "late"}, timestamp=datetime(2026, 1, 1, 10, tzinfo=timezone.utc))

        latest = await store.get_latest_assessment("doc-1", "robustness")
        history = await store.get_all_assessments(AssessmentFilter(document_id="doc-1"))

        assert latest.payload == {"v": "late"}
        assert latest.timestamp == datetime(2026, 1, 1, 10, tzinfo=timezone.utc)
        assert [r.payload["v"] for r in history] == ["early", "late"]
        assert history[0].timestamp == datetime(2026, 1, 1, 7, tzinfo=timezone.utc)

    @pytest.mark.asyncio
    async def test_filter_bounds_with_offsets(self, store):
        plus_five = timezone(timedelta(hours=5))
        await store.put_assessment("doc-1", "ethics", {"v": 1}, timestamp=datetime(2026, 1, 1, 7, tzinfo=timezone.utc))
        await store.put_assessment("doc-1", "ethics", {"v": 2}, timestamp=datetime(2026, 1, 1, 10, tzinfo=timezone.utc))

        since = await store.get_all_assessments(
            AssessmentFilter(stage_id="ethics", since=datetime(2026, 1, 1, 13, tzinfo=plus_five))
        )
        until = await store.get_all_assessments(
            AssessmentFilter(stage_id="ethics", until=datetime(2026, 1, 1, 13, tzinfo=plus_five))
        )
        naive = await store.get_all_assessments(AssessmentFilter(stage_id="ethics", since=datetime(2026, 1, 1, 9)))

        assert [r.payload["v"] for r in since] == [2]
        assert [r.payload["v"] for r in until] == [1]
        assert [r.payload["v"] for r in naive] == [2]
