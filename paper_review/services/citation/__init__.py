"""Citation extraction and matching.

- locate_reference_section: body/reference split
- count_references: validated reference count
- CitationEngine: extraction and matching over a full document text
- CitationIntegrityStage: records the citation_integrity assessment
"""

from paper_review.services.citation.citation_engine import CitationEngine, analyze
from paper_review.services.citation.citation_integrity_stage import CitationIntegrityStage
from paper_review.services.citation.reference_counter import count_references
from paper_review.services.citation.reference_section import locate_reference_section

__all__ = [
    "CitationEngine",
    "CitationIntegrityStage",
    "analyze",
    "count_references",
    "locate_reference_section",
]
