"""Repository for document records."""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from paper_review.database.models import Document
from paper_review.repositories.base_repository import BaseRepository
from paper_review.utils.logging import get_logger

LOGGER = get_logger(__name__)


class DocumentRepository(BaseRepository[Document]):
    """Repository for managing document records."""

    def __init__(self, session: AsyncSession):
        super().__init__(session, Document)

    async def upsert(
        self,
        document_id: str,
        owner_id: str,
        original_filename: str,
        storage_path: str,
        page_count: Optional[int] = None,
    ) -> Document:
        """Insert a document or refresh an existing one in place.

        ``created_at`` of an existing row is preserved and ``updated_at``
        is refreshed. ``page_count`` is left untouched when not given.
        """
        now = datetime.now(timezone.utc)
        document = await self.get_by_id(document_id)

        if document is None:
            LOGGER.info(f"Creating document {document_id}", extra={"document_id": document_id})
            return await self.create(
                document_id=document_id,
                owner_id=owner_id,
                original_filename=original_filename,
                storage_path=storage_path,
                page_count=page_count or 0,
                created_at=now,
                updated_at=now,
            )

        LOGGER.info(f"Updating document {document_id}", extra={"document_id": document_id})
        document.owner_id = owner_id
        document.original_filename = original_filename
        document.storage_path = storage_path
        if page_count is not None:
            document.page_count = page_count
        document.updated_at = now
        await self.session.flush()
        return document

    async def set_page_count(self, document_id: str, page_count: int) -> Optional[Document]:
        return await self.update(document_id, page_count=page_count)
