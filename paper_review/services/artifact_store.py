"""Artifact Store facade over the document, page and assessment repositories.

Each public call runs in its own session and commits or rolls back as a
unit. The store assumes a single writer per document; concurrent
reprocessing of the same document must be serialized by the caller.
"""

from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any, AsyncIterator, Dict, List, Optional, Sequence, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from paper_review.core.exceptions import DatabaseError, DocumentNotFoundError
from paper_review.database.models import new_id
from paper_review.repositories.assessment_repository import AssessmentRepository
from paper_review.repositories.document_repository import DocumentRepository
from paper_review.repositories.page_repository import PageRepository
from paper_review.schemas.artifacts import (
    AssessmentFilter,
    AssessmentRecord,
    DocumentRecord,
    PageRecord,
)
from paper_review.utils.logging import get_logger

LOGGER = get_logger(__name__)


class ArtifactStore:
    """Durable keyed storage for Documents, Pages and Assessments."""

    def __init__(self, session_maker: Optional[async_sessionmaker[AsyncSession]] = None):
        if session_maker is None:
            from paper_review.core.database import async_session_maker
            session_maker = async_session_maker
        self._session_maker = session_maker

    @asynccontextmanager
    async def _transaction(self, operation: str) -> AsyncIterator[AsyncSession]:
        async with self._session_maker() as session:
            try:
                yield session
                await session.commit()
            except SQLAlchemyError as e:
                await session.rollback()
                LOGGER.error(f"Artifact Store {operation} failed: {str(e)}", exc_info=True)
                raise DatabaseError(f"Artifact Store {operation} failed", original_error=e)
            except Exception:
                await session.rollback()
                raise

    # Documents

    async def put_document(
        self,
        owner_id: str,
        original_filename: str,
        storage_path: str = "",
        document_id: Optional[str] = None,
    ) -> DocumentRecord:
        """Upsert a document by id, generating one when not given."""
        document_id = document_id or new_id()
        async with self._transaction("put_document") as session:
            document = await DocumentRepository(session).upsert(
                document_id=document_id,
                owner_id=owner_id,
                original_filename=original_filename,
                storage_path=storage_path,
            )
            return DocumentRecord.model_validate(document)

    async def get_document(self, document_id: str) -> Optional[DocumentRecord]:
        async with self._transaction("get_document") as session:
            document = await DocumentRepository(session).get_by_id(document_id)
            return DocumentRecord.model_validate(document) if document else None

    # Pages

    async def put_pages(
        self,
        document_id: str,
        pages: Sequence[Dict[str, Any]],
        replace_all: bool = True,
    ) -> List[PageRecord]:
        """Write a page set for a document.

        With ``replace_all`` every prior page of the document is removed in
        the same transaction. Without it, only pages sharing a page number
        with the new batch are replaced. The document's ``page_count`` is
        updated to the resulting number of pages before commit.

        Raises:
            DocumentNotFoundError: If the document does not exist
            DatabaseError: If the write fails; the prior page set is intact
        """
        async with self._transaction("put_pages") as session:
            documents = DocumentRepository(session)
            if await documents.get_by_id(document_id) is None:
                raise DocumentNotFoundError(f"Document {document_id} not found")

            page_repo = PageRepository(session)
            batch = [dict(page) for page in pages]
            if not replace_all:
                new_numbers = {page["page_number"] for page in batch}
                kept = [
                    {
                        "page_id": row.page_id,
                        "page_number": row.page_number,
                        "page_artifact_path": row.page_artifact_path,
                        "page_text": row.page_text,
                        "char_count": row.char_count,
                        "section_hint": row.section_hint,
                        "created_at": row.created_at,
                        "updated_at": row.updated_at,
                    }
                    for row in await page_repo.get_by_document(document_id)
                    if row.page_number not in new_numbers
                ]
                batch = kept + batch

            rows = await page_repo.replace_pages(document_id, batch)
            await documents.set_page_count(document_id, await page_repo.count({"document_id": document_id}))
            return [PageRecord.model_validate(row) for row in rows]

    async def get_pages(self, document_id: str) -> List[PageRecord]:
        """All pages of a document ordered by page number."""
        async with self._transaction("get_pages") as session:
            rows = await PageRepository(session).get_by_document(document_id)
            return [PageRecord.model_validate(row) for row in rows]

    async def get_page(self, page_id: str) -> Optional[PageRecord]:
        async with self._transaction("get_page") as session:
            row = await PageRepository(session).get_by_id(page_id)
            return PageRecord.model_validate(row) if row else None

    async def save_segmentation(
        self,
        owner_id: str,
        original_filename: str,
        storage_path: str,
        document_id: str,
        pages: Sequence[Dict[str, Any]],
    ) -> Tuple[DocumentRecord, List[PageRecord]]:
        """Upsert a document and replace its page set in one transaction."""
        async with self._transaction("save_segmentation") as session:
            documents = DocumentRepository(session)
            document = await documents.upsert(
                document_id=document_id,
                owner_id=owner_id,
                original_filename=original_filename,
                storage_path=storage_path,
            )
            page_repo = PageRepository(session)
            rows = await page_repo.replace_pages(document_id, list(pages))
            document.page_count = await page_repo.count({"document_id": document_id})
            await session.flush()
            LOGGER.info(
                f"Saved segmentation for document {document_id}",
                extra={"document_id": document_id, "page_count": len(rows)},
            )
            return (
                DocumentRecord.model_validate(document),
                [PageRecord.model_validate(row) for row in rows],
            )

    # Assessments

    async def put_assessment(
        self,
        document_id: str,
        stage_id: str,
        payload: Dict[str, Any],
        timestamp: Optional[datetime] = None,
    ) -> AssessmentRecord:
        """Append an assessment. Existing records are never modified."""
        async with self._transaction("put_assessment") as session:
            row = await AssessmentRepository(session).append(document_id, stage_id, payload, timestamp)
            LOGGER.info(
                f"Recorded {stage_id} assessment for document {document_id}",
                extra={"document_id": document_id, "stage_id": stage_id},
            )
            return AssessmentRecord.model_validate(row)

    async def get_latest_assessment(self, document_id: str, stage_id: str) -> Optional[AssessmentRecord]:
        """Latest assessment for ``(document_id, stage_id)``.

        When nothing was recorded under ``document_id`` the secondary index of
        payload-referenced documents is consulted.
        """
        async with self._transaction("get_latest_assessment") as session:
            repo = AssessmentRepository(session)
            row = await repo.get_latest(document_id, stage_id)
            if row is None:
                row = await repo.get_latest_by_payload_document(document_id, stage_id)
                if row is not None:
                    LOGGER.warning(
                        f"Resolved {stage_id} assessment for {document_id} through payload reference",
                        extra={"document_id": document_id, "stage_id": stage_id, "recorded_under": row.document_id},
                    )
            return AssessmentRecord.model_validate(row) if row else None

    async def get_all_assessments(self, criteria: Optional[AssessmentFilter] = None) -> List[AssessmentRecord]:
        async with self._transaction("get_all_assessments") as session:
            rows = await AssessmentRepository(session).find(criteria or AssessmentFilter())
            return [AssessmentRecord.model_validate(row) for row in rows]
