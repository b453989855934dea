"""Data models produced by the citation engine."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List


class CitationForm(str, Enum):
    NUMERIC = "numeric"
    AUTHOR_YEAR = "author_year"


class StyleGuess(str, Enum):
    NUMERIC = "numeric"
    AUTHOR_YEAR = "author_year"
    MIXED = "mixed"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class Reference:
    """A numbered entry of a reference list.

    Attributes:
        ordinal: Number printed before the entry (the 7 in "[7]")
        raw_text: The entry's line as found
        has_year: Whether the line contains a 4-digit year
        has_author_pattern: Whether the line contains a name-like token pair
    """

    ordinal: int
    raw_text: str
    has_year: bool = False
    has_author_pattern: bool = False


@dataclass(frozen=True)
class Citation:
    """An in-text citation, deduplicated by ``normalized_key``.

    Attributes:
        form: Numeric or author-year
        normalized_key: The ordinal as text, or ``<author>_<year>``
        first_position: Character offset of the first occurrence in the body
    """

    form: CitationForm
    normalized_key: str
    first_position: int

    @property
    def ordinal(self) -> int:
        if self.form != CitationForm.NUMERIC:
            raise ValueError(f"{self.normalized_key} is not a numeric citation")
        return int(self.normalized_key)


@dataclass
class ReferenceSectionSplit:
    """Body text and reference section separated at the detected boundary.

    Attributes:
        found: Whether a reference section boundary was detected
        body_text: Text before the boundary with leaked reference lines removed
        references_text: Text after the boundary without its heading
        split_index: Character offset of the boundary, -1 when not found
    """

    found: bool
    body_text: str
    references_text: str = ""
    split_index: int = -1


@dataclass
class ReferenceCount:
    count: int
    method: str
    references: List[Reference] = field(default_factory=list)


@dataclass
class CitationAnalysis:
    """Outcome of analyzing one document's text."""

    has_references_section: bool
    reference_count: int
    numeric_citations: List[Citation] = field(default_factory=list)
    author_year_citations: List[Citation] = field(default_factory=list)
    matched_count: int = 0
    unmatched_citations: List[int] = field(default_factory=list)
    style_guess: StyleGuess = StyleGuess.UNKNOWN
    count_method: str = "none"
    reference_section: str = ""
    body_text: str = ""

    @property
    def degenerate(self) -> bool:
        return not self.has_references_section

    @property
    def in_text_citation_count(self) -> int:
        return len(self.numeric_citations) + len(self.author_year_citations)

    @property
    def unmatched_count(self) -> int:
        return len(self.unmatched_citations)

    @property
    def uncited_count(self) -> int:
        return max(0, self.reference_count - self.matched_count)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "has_references_section": self.has_references_section,
            "degenerate": self.degenerate,
            "reference_count": self.reference_count,
            "in_text_citation_count": self.in_text_citation_count,
            "numeric_citation_count": len(self.numeric_citations),
            "author_year_citation_count": len(self.author_year_citations),
            "matched_count": self.matched_count,
            "unmatched_count": self.unmatched_count,
            "unmatched_citations": list(self.unmatched_citations),
            "uncited_count": self.uncited_count,
            "author_year_unmatchable": len(self.author_year_citations),
            "style_guess": self.style_guess.value,
        }
