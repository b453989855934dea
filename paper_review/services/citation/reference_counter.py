"""Reference counting within a detected reference section."""

from typing import Dict, List, Optional

from paper_review.core.config import CitationSettings, settings
from paper_review.models.citation import Reference, ReferenceCount
from paper_review.services.citation.patterns import (
    AUTHOR_PATTERN,
    LEADING_AUTHOR,
    LIST_MARKER,
    REFERENCE_KEYWORDS,
    STRICT_AUTHOR,
    STRICT_LEADING_AUTHOR,
    STRICT_LIST_MARKER,
    STRICT_REFERENCE_KEYWORDS,
    YEAR,
)
from paper_review.utils.logging import get_logger

LOGGER = get_logger(__name__)


def sequential_ratio(ordinals: List[int]) -> float:
    """Share of distinct ordinals that directly follow their predecessor."""
    distinct = sorted(set(ordinals))
    if not distinct:
        return 0.0
    sequential = sum(1 for prev, cur in zip(distinct, distinct[1:]) if cur == prev + 1)
    return sequential / len(distinct)


def collect_numbered_references(references_text: str, config: CitationSettings) -> List[Reference]:
    """Numbered entries whose line looks bibliographic, first occurrence per ordinal."""
    seen: Dict[int, Reference] = {}
    for line in references_text.split("\n"):
        trimmed = line.strip()
        if len(trimmed) < 10:
            continue
        match = LIST_MARKER.match(trimmed)
        if not match:
            continue
        ordinal = int(match.group(1))
        if not 0 < ordinal <= config.max_reference_ordinal or ordinal in seen:
            continue

        has_author = bool(AUTHOR_PATTERN.search(trimmed))
        has_year = bool(YEAR.search(trimmed))
        has_keyword = bool(REFERENCE_KEYWORDS.search(trimmed))
        if has_author or has_year or has_keyword:
            seen[ordinal] = Reference(
                ordinal=ordinal,
                raw_text=trimmed,
                has_year=has_year,
                has_author_pattern=has_author,
            )
    return sorted(seen.values(), key=lambda ref: ref.ordinal)


def count_author_year_entries(references_text: str) -> int:
    """Count unnumbered entries as lines opening with an author and holding a year.

    A continuation line directly after a line with a year is not a new entry.
    """
    count = 0
    last_had_year = False
    for line in references_text.split("\n"):
        trimmed = line.strip()
        if not trimmed:
            last_had_year = False
            continue
        has_year = bool(YEAR.search(trimmed))
        has_author = bool(LEADING_AUTHOR.search(trimmed))
        if has_year and has_author and not last_had_year and len(trimmed) > 20:
            count += 1
        last_had_year = has_year
    return count


def count_references_strict(references_text: str, config: CitationSettings) -> int:
    """Recount requiring a year and author or keyword evidence around each marker."""
    lines = references_text.split("\n")
    candidates: List[int] = []

    for i, line in enumerate(lines):
        trimmed = line.strip()
        if len(trimmed) < 10:
            continue
        match = STRICT_LIST_MARKER.match(trimmed)
        if not match:
            continue
        ordinal = int(match.group(1) or match.group(2))
        if not 0 < ordinal <= config.sanity_ceiling:
            continue

        context_lines = [trimmed] + [lines[j].strip() for j in range(i + 1, min(i + 3, len(lines)))]
        context = " ".join(context_lines)
        has_year = bool(YEAR.search(context))
        has_author = bool(STRICT_AUTHOR.search(context.lower()) or STRICT_LEADING_AUTHOR.search(trimmed))
        has_keyword = bool(STRICT_REFERENCE_KEYWORDS.search(context))
        if has_year and (has_author or has_keyword) and len(context) > 30:
            candidates.append(ordinal)

    if not candidates:
        return 0

    highest = max(candidates)
    distinct = set(candidates)
    if len(distinct) >= config.sequence_min_distinct and sequential_ratio(candidates) >= config.sequence_min_ratio:
        return highest
    if len(candidates) >= config.strict_min_candidates:
        return highest
    return 0


def count_references(references_text: str, config: Optional[CitationSettings] = None) -> ReferenceCount:
    """Validated reference count for a reference section.

    Numbered lists count as their highest plausible ordinal. Lists with many
    ordinals but little sequential structure fall back to counting
    author-year entries. Counts above ``sanity_ceiling`` are recomputed with
    stricter evidence requirements.
    """
    config = config or settings.citation
    if not references_text or len(references_text.strip()) < config.min_section_chars:
        return ReferenceCount(count=0, method="none")

    references = collect_numbered_references(references_text, config)
    author_year_entries = count_author_year_entries(references_text)

    if not references:
        return ReferenceCount(count=author_year_entries, method="author_year")

    ordinals = [ref.ordinal for ref in references]
    count = max(ordinals)
    method = "max_ordinal"
    if len(ordinals) >= config.sequence_min_distinct and sequential_ratio(ordinals) < config.sequence_min_ratio:
        if author_year_entries > 0:
            count, method = author_year_entries, "author_year"

    if count > config.sanity_ceiling:
        strict = count_references_strict(references_text, config)
        LOGGER.warning(
            f"Reference count {count} exceeds ceiling {config.sanity_ceiling}, strict recount gave {strict}",
            extra={"reference_count": count, "strict_count": strict},
        )
        count, method = strict, "strict"

    return ReferenceCount(count=count, method=method, references=references)
