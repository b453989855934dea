"""Citation Extraction & Matching Engine.

Pure text processing: no I/O and no shared mutable state, so one engine can
serve concurrent analyses of different documents.
"""

from typing import List, Optional

from paper_review.core.config import CitationSettings, settings
from paper_review.models.citation import Citation, CitationAnalysis, ReferenceCount, StyleGuess
from paper_review.services.citation.citation_extractor import (
    extract_author_year_citations,
    extract_numeric_citations,
)
from paper_review.services.citation.reference_counter import count_references
from paper_review.services.citation.reference_section import locate_reference_section
from paper_review.utils.logging import get_logger

LOGGER = get_logger(__name__)


def guess_style(numeric: List[Citation], author_year: List[Citation], references: ReferenceCount) -> StyleGuess:
    if numeric and author_year:
        return StyleGuess.MIXED
    if numeric:
        return StyleGuess.NUMERIC
    if author_year:
        return StyleGuess.AUTHOR_YEAR
    if references.count > 0:
        return StyleGuess.AUTHOR_YEAR if references.method == "author_year" else StyleGuess.NUMERIC
    return StyleGuess.UNKNOWN


class CitationEngine:
    """Locates the reference section, counts references and matches citations."""

    def __init__(self, config: Optional[CitationSettings] = None):
        self.config = config or settings.citation

    def analyze(self, document_text: str) -> CitationAnalysis:
        """Analyze the full text of one document.

        Numeric citations are matched when their ordinal does not exceed the
        validated reference count. Author-year citations are reported but
        never matched. Without a reference section every count is zero and
        the analysis is marked degenerate.
        """
        document_text = document_text or ""
        split = locate_reference_section(document_text, self.config)

        if not split.found:
            LOGGER.info("No references section found", extra={"text_length": len(document_text)})
            return CitationAnalysis(
                has_references_section=False,
                reference_count=0,
                body_text=split.body_text,
            )

        references = count_references(split.references_text, self.config)
        numeric = extract_numeric_citations(split.body_text, self.config)
        author_year = extract_author_year_citations(split.body_text)

        matched = [citation for citation in numeric if citation.ordinal <= references.count]
        unmatched = [citation.ordinal for citation in numeric if citation.ordinal > references.count]

        analysis = CitationAnalysis(
            has_references_section=True,
            reference_count=references.count,
            numeric_citations=numeric,
            author_year_citations=author_year,
            matched_count=len(matched),
            unmatched_citations=sorted(unmatched),
            style_guess=guess_style(numeric, author_year, references),
            count_method=references.method,
            reference_section=split.references_text,
            body_text=split.body_text,
        )
        LOGGER.info(
            f"Citation analysis: {analysis.reference_count} references, "
            f"{analysis.in_text_citation_count} in-text citations, {analysis.matched_count} matched",
            extra={
                "reference_count": analysis.reference_count,
                "in_text_citation_count": analysis.in_text_citation_count,
                "matched_count": analysis.matched_count,
                "count_method": references.method,
            },
        )
        return analysis


def analyze(document_text: str, config: Optional[CitationSettings] = None) -> CitationAnalysis:
    """Analyze ``document_text`` with the given (or configured) heuristics."""
    return CitationEngine(config).analyze(document_text)
