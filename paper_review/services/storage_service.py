"""Local filesystem storage for original documents and page artifacts."""

import asyncio
import shutil
import uuid
from pathlib import Path
from typing import Optional, Union

from paper_review.core.config import settings
from paper_review.core.exceptions import StorageError
from paper_review.utils.logging import get_logger

LOGGER = get_logger(__name__)


class LocalStorageService:
    """Service for managing document files under the storage directory.

    Layout::

        <root>/documents/<document_id>/<document_id>_original.pdf
        <root>/pages/<document_id>/<run_token>/page_<n>.pdf

    Each segmentation run writes its pages into a fresh run directory. Older
    runs are pruned only once the new page set has been committed.
    """

    def __init__(self, root: Optional[Union[str, Path]] = None):
        self.root = Path(root or settings.storage.storage_dir)

    def original_path(self, document_id: str) -> Path:
        return self.root / "documents" / document_id / f"{document_id}_original.pdf"

    def pages_dir(self, document_id: str) -> Path:
        return self.root / "pages" / document_id

    def new_run_token(self) -> str:
        return uuid.uuid4().hex

    async def save_original(self, document_id: str, content: bytes) -> str:
        """Store the source document bytes.

        Returns:
            Path of the stored original

        Raises:
            StorageError: If the file cannot be written
        """
        path = self.original_path(document_id)
        try:
            await asyncio.to_thread(self._write_bytes, path, content)
        except OSError as e:
            LOGGER.error(f"Error storing original for {document_id}: {str(e)}", exc_info=True)
            raise StorageError(f"Could not store original document {document_id}", original_error=e)
        LOGGER.info(f"Stored original document at {path}", extra={"document_id": document_id})
        return str(path)

    async def save_page(self, document_id: str, run_token: str, page_number: int, content: bytes) -> str:
        """Store one page artifact inside a run directory."""
        path = self.pages_dir(document_id) / run_token / f"page_{page_number}.pdf"
        try:
            await asyncio.to_thread(self._write_bytes, path, content)
        except OSError as e:
            raise StorageError(
                f"Could not store page {page_number} of document {document_id}", original_error=e
            )
        return str(path)

    async def discard_run(self, document_id: str, run_token: str) -> None:
        """Remove the files of a run that was not committed."""
        await asyncio.to_thread(shutil.rmtree, self.pages_dir(document_id) / run_token, True)

    async def prune_runs(self, document_id: str, keep_run: str) -> int:
        """Delete every run directory of a document except ``keep_run``."""
        removed = await asyncio.to_thread(self._prune, self.pages_dir(document_id), keep_run)
        if removed:
            LOGGER.info(
                f"Removed {removed} previous page run(s) for document {document_id}",
                extra={"document_id": document_id},
            )
        return removed

    @staticmethod
    def _write_bytes(path: Path, content: bytes) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(content)

    @staticmethod
    def _prune(directory: Path, keep_run: str) -> int:
        if not directory.exists():
            return 0
        removed = 0
        for child in directory.iterdir():
            if child.is_dir() and child.name != keep_run:
                shutil.rmtree(child, ignore_errors=True)
                removed += 1
        return removed
