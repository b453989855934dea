"""PDF page access: pypdfium2 for page count and single-page artifacts,
pdfplumber for page text.
"""

import io
import threading
from typing import Callable

import pdfplumber
import pypdfium2 as pdfium

from paper_review.core.exceptions import ExtractionError, SegmentationError
from paper_review.utils.logging import get_logger

LOGGER = get_logger(__name__)

# pdfium is not thread-safe
_PDFIUM_LOCK = threading.Lock()


class PdfPageReader:
    """Reads pages of one PDF held in memory.

    Methods are synchronous and safe to call from worker threads. Each text
    extraction opens its own pdfplumber handle so pages can be read in
    parallel.
    """

    def __init__(self, data: bytes):
        self._data = data
        try:
            with _PDFIUM_LOCK:
                document = pdfium.PdfDocument(data)
                try:
                    self._page_count = len(document)
                finally:
                    document.close()
        except pdfium.PdfiumError as e:
            raise SegmentationError("Source document is not a readable PDF", original_error=e)

    def page_count(self) -> int:
        return self._page_count

    def extract_text(self, page_number: int) -> str:
        """Text of a 1-based page.

        Raises:
            ExtractionError: If the page cannot be parsed
        """
        try:
            with pdfplumber.open(io.BytesIO(self._data)) as pdf:
                return pdf.pages[page_number - 1].extract_text() or ""
        except Exception as e:
            raise ExtractionError(
                f"Text extraction failed for page {page_number}", page_number=page_number, original_error=e
            )

    def render_page(self, page_number: int) -> bytes:
        """A standalone single-page PDF of a 1-based page.

        Raises:
            ExtractionError: If the page cannot be copied
        """
        try:
            with _PDFIUM_LOCK:
                source = pdfium.PdfDocument(self._data)
                target = pdfium.PdfDocument.new()
                try:
                    target.import_pages(source, [page_number - 1])
                    buffer = io.BytesIO()
                    target.save(buffer)
                    return buffer.getvalue()
                finally:
                    target.close()
                    source.close()
        except pdfium.PdfiumError as e:
            raise ExtractionError(
                f"Page artifact failed for page {page_number}", page_number=page_number, original_error=e
            )


PageReaderFactory = Callable[[bytes], PdfPageReader]
