"""Document Segmentation stage.

Splits a source PDF into per-page text and single-page artifacts and writes
the whole page set through the Artifact Store in one transaction, so a
reprocessed document never ends up with a mix of old and new pages.
"""

import asyncio
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

from paper_review.core.config import settings
from paper_review.core.exceptions import DatabaseError, ExtractionError, SegmentationError, StorageError
from paper_review.database.models import new_id
from paper_review.pipeline.stages import PAGE_SPLIT, STRUCTURAL_SCAN
from paper_review.schemas.artifacts import DocumentRecord, PageRecord
from paper_review.services.artifact_store import ArtifactStore
from paper_review.services.segmentation.pdf_reader import PageReaderFactory, PdfPageReader
from paper_review.services.segmentation.section_hints import (
    Heading,
    assign_section_hints,
    headings_from_structure,
)
from paper_review.services.storage_service import LocalStorageService
from paper_review.utils.logging import get_logger

LOGGER = get_logger(__name__)


@dataclass
class SegmentationResult:
    """Outcome of one segmentation run.

    Attributes:
        success: Whether the page set was committed
        document: The stored document (None on failure)
        pages: Stored pages ordered by page number
        error: Reason for failure, if any
        failed_pages: Page numbers whose text or artifact could not be extracted
    """

    success: bool
    document: Optional[DocumentRecord] = None
    pages: List[PageRecord] = field(default_factory=list)
    error: Optional[str] = None
    failed_pages: List[int] = field(default_factory=list)


@dataclass
class _ExtractedPage:
    page_number: int
    text: str = ""
    artifact_path: Optional[str] = None
    failed: bool = False


class SegmentationService:
    """Runs the page-split stage for one document at a time."""

    stage_id = PAGE_SPLIT

    def __init__(
        self,
        store: ArtifactStore,
        storage: Optional[LocalStorageService] = None,
        reader_factory: PageReaderFactory = PdfPageReader,
        max_workers: Optional[int] = None,
    ):
        self.store = store
        self.storage = storage or LocalStorageService()
        self.reader_factory = reader_factory
        self.max_workers = max(1, max_workers or settings.pipeline.segmentation_max_workers)

    async def segment(
        self,
        source: Union[bytes, str, Path],
        owner_id: str,
        original_filename: Optional[str] = None,
        existing_document_id: Optional[str] = None,
    ) -> SegmentationResult:
        """Split ``source`` into pages and persist them.

        Args:
            source: PDF bytes or a path to a PDF file
            owner_id: Owner recorded on the document
            original_filename: Name to record, defaults to the path's name
            existing_document_id: Reprocess this document instead of creating one

        Returns:
            SegmentationResult. Single-page failures are recorded as empty
            pages and listed in ``failed_pages``. An unreadable source or a
            failed store write gives ``success=False`` and leaves any prior
            page set untouched.
        """
        document_id = existing_document_id or new_id()
        log_extra = {"document_id": document_id, "stage_id": self.stage_id}

        try:
            data, filename = await self._load(source, original_filename)
            reader = await asyncio.to_thread(self.reader_factory, data)
            page_count = reader.page_count()
        except (OSError, SegmentationError) as e:
            LOGGER.warning(f"Cannot segment document {document_id}: {e}", extra=log_extra)
            return SegmentationResult(success=False, error=str(e))

        LOGGER.info(f"Segmenting document {document_id} ({page_count} pages)", extra={**log_extra, "page_count": page_count})
        headings = await self._structural_headings(document_id)

        try:
            storage_path = await self.storage.save_original(document_id, data)
        except StorageError as e:
            return SegmentationResult(success=False, error=str(e))

        run_token = self.storage.new_run_token()
        extracted = await self._extract_pages(reader, page_count, document_id, run_token)
        failed_pages = [page.page_number for page in extracted if page.failed]

        hints = assign_section_hints([page.text for page in extracted], headings)
        page_rows: List[Dict[str, Any]] = [
            {
                "page_id": new_id(),
                "page_number": page.page_number,
                "page_artifact_path": page.artifact_path,
                "page_text": page.text,
                "char_count": len(page.text),
                "section_hint": hint,
            }
            for page, hint in zip(extracted, hints)
        ]

        try:
            document, pages = await self.store.save_segmentation(
                owner_id=owner_id,
                original_filename=filename,
                storage_path=storage_path,
                document_id=document_id,
                pages=page_rows,
            )
        except DatabaseError as e:
            await self.storage.discard_run(document_id, run_token)
            return SegmentationResult(success=False, error=str(e), failed_pages=failed_pages)

        await self.storage.prune_runs(document_id, keep_run=run_token)
        await self._record_assessment(document, pages, failed_pages)

        if failed_pages:
            LOGGER.warning(
                f"Segmented document {document_id} with {len(failed_pages)} failed page(s)",
                extra={**log_extra, "failed_pages": failed_pages},
            )
        return SegmentationResult(success=True, document=document, pages=pages, failed_pages=failed_pages)

    async def _load(self, source: Union[bytes, str, Path], original_filename: Optional[str]) -> Tuple[bytes, str]:
        if isinstance(source, (bytes, bytearray)):
            return bytes(source), original_filename or "document.pdf"
        path = Path(source)
        data = await asyncio.to_thread(path.read_bytes)
        return data, original_filename or path.name

    async def _structural_headings(self, document_id: str) -> List[Heading]:
        try:
            structure = await self.store.get_latest_assessment(document_id, STRUCTURAL_SCAN)
        except DatabaseError as e:
            LOGGER.warning(f"Structural scan lookup failed, pages get no section hints: {e}",
                           extra={"document_id": document_id})
            return []
        return headings_from_structure(structure.payload if structure else None)

    async def _extract_pages(
        self,
        reader: PdfPageReader,
        page_count: int,
        document_id: str,
        run_token: str,
    ) -> List[_ExtractedPage]:
        semaphore = asyncio.Semaphore(self.max_workers)

        async def extract(page_number: int) -> _ExtractedPage:
            page = _ExtractedPage(page_number=page_number)
            async with semaphore:
                try:
                    page.text = await asyncio.to_thread(reader.extract_text, page_number)
                except ExtractionError as e:
                    LOGGER.warning(str(e), extra={"document_id": document_id, "page_number": page_number})
                    page.failed = True
                try:
                    artifact = await asyncio.to_thread(reader.render_page, page_number)
                    page.artifact_path = await self.storage.save_page(document_id, run_token, page_number, artifact)
                except (ExtractionError, StorageError) as e:
                    LOGGER.warning(str(e), extra={"document_id": document_id, "page_number": page_number})
                    page.failed = True
            return page

        return list(await asyncio.gather(*(extract(n) for n in range(1, page_count + 1))))

    async def _record_assessment(
        self,
        document: DocumentRecord,
        pages: List[PageRecord],
        failed_pages: List[int],
    ) -> None:
        payload = {
            "document_id": document.document_id,
            "stage_id": self.stage_id,
            "success": True,
            "page_count": document.page_count,
            "failed_pages": failed_pages,
            "pages": [
                {
                    "page_id": page.page_id,
                    "page_number": page.page_number,
                    "char_count": page.char_count,
                    "section_hint": page.section_hint,
                    "page_artifact_path": page.page_artifact_path,
                }
                for page in pages
            ],
            "notes": f"Split into {document.page_count} pages",
        }
        try:
            await self.store.put_assessment(document.document_id, self.stage_id, payload)
        except DatabaseError as e:
            LOGGER.warning(f"Page split assessment not recorded: {e}", extra={"document_id": document.document_id})
