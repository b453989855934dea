"""Repository for document pages."""

from datetime import datetime, timezone
from typing import Any, Dict, List

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from paper_review.database.models import DocumentPage, new_id
from paper_review.repositories.base_repository import BaseRepository
from paper_review.utils.logging import get_logger

LOGGER = get_logger(__name__)


class PageRepository(BaseRepository[DocumentPage]):
    """Repository for the page set of each document."""

    def __init__(self, session: AsyncSession):
        super().__init__(session, DocumentPage)

    async def replace_pages(self, document_id: str, pages: List[Dict[str, Any]]) -> List[DocumentPage]:
        """Replace the full page set of a document.

        Existing pages are deleted and flushed before the new batch is added,
        so the ``(document_id, page_number)`` constraint never sees both sets.

        Args:
            document_id: Document owning the pages
            pages: Page field dicts (page_number, page_text, ...). ``page_id``
                is generated when absent. Rows carried over from the previous
                set pass their ``created_at``/``updated_at`` to keep them.

        Returns:
            The new page rows ordered by page number
        """
        LOGGER.info(
            f"Storing {len(pages)} pages for document {document_id}",
            extra={"document_id": document_id, "page_count": len(pages)},
        )
        try:
            await self.session.execute(
                delete(DocumentPage).where(DocumentPage.document_id == document_id)
            )
            await self.session.flush()

            now = datetime.now(timezone.utc)
            rows = []
            for page in sorted(pages, key=lambda p: p["page_number"]):
                text = page.get("page_text") or ""
                row = DocumentPage(
                    page_id=page.get("page_id") or new_id(),
                    document_id=document_id,
                    page_number=page["page_number"],
                    page_artifact_path=page.get("page_artifact_path"),
                    page_text=text,
                    char_count=page.get("char_count", len(text)),
                    section_hint=page.get("section_hint"),
                    created_at=page.get("created_at") or now,
                    updated_at=page.get("updated_at") or now,
                )
                self.session.add(row)
                rows.append(row)

            await self.session.flush()
            return rows
        except SQLAlchemyError as e:
            self.logger.error(
                f"Error replacing pages for document {document_id}: {str(e)}",
                exc_info=True
            )
            raise

    async def get_by_document(self, document_id: str) -> List[DocumentPage]:
        """Fetch all pages of a document ordered by page number."""
        try:
            result = await self.session.execute(
                select(DocumentPage)
                .where(DocumentPage.document_id == document_id)
                .order_by(DocumentPage.page_number)
            )
            return list(result.scalars().all())
        except SQLAlchemyError as e:
            self.logger.error(
                f"Error retrieving pages for document {document_id}: {str(e)}",
                exc_info=True
            )
            raise
