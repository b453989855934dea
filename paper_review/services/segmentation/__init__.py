"""Document segmentation: PDF pages to stored page records and artifacts."""

from paper_review.services.segmentation.pdf_reader import PdfPageReader
from paper_review.services.segmentation.segmentation_service import SegmentationResult, SegmentationService

__all__ = ["PdfPageReader", "SegmentationResult", "SegmentationService"]
