"""Database module for the Artifact Store tables."""

from paper_review.core.database import Base, DatabaseClient, engine
from paper_review.database.models import Assessment, Document, DocumentPage

__all__ = [
    "Base",
    "engine",
    "DatabaseClient",
    "Document",
    "DocumentPage",
    "Assessment",
]
