"""Reference-section boundary detection.

Two independent candidates are computed: the last reference heading in the
tail of the document, and the first run of numbered reference-like lines
near the end. The earlier one wins so body text is never swallowed into
the references, and any reference run that still leaks past the boundary
into the body is stripped afterwards.
"""

import math
from typing import List, Optional

from paper_review.core.config import CitationSettings, settings
from paper_review.models.citation import ReferenceSectionSplit
from paper_review.services.citation.patterns import (
    CAPITALIZED_WORD,
    LIST_MARKER,
    YEAR,
    heading_pattern,
    keywords_tuple,
)


def _line_offsets(lines: List[str]) -> List[int]:
    offsets = []
    position = 0
    for line in lines:
        offsets.append(position)
        position += len(line) + 1
    return offsets


def _is_reference_line(line: str, min_chars: int) -> bool:
    return (
        bool(LIST_MARKER.match(line))
        and len(line) > min_chars
        and bool(YEAR.search(line) or CAPITALIZED_WORD.search(line))
    )


def find_heading_boundary(text: str, config: CitationSettings) -> Optional[int]:
    """Offset of the last reference heading located past the minimum position."""
    pattern = heading_pattern(keywords_tuple(config.heading_keywords))
    min_position = len(text) * config.heading_min_position
    boundary = None
    for match in pattern.finditer(text):
        if match.start() > min_position:
            boundary = match.start()
    return boundary


def find_list_boundary(text: str, config: CitationSettings) -> Optional[int]:
    """Offset of the first line of the first numbered reference run near the end."""
    lines = text.split("\n")
    offsets = _line_offsets(lines)
    run = 0
    for i in range(math.floor(len(lines) * config.list_scan_start), len(lines)):
        line = lines[i].strip()
        if _is_reference_line(line, config.list_entry_min_chars):
            run += 1
            if run >= config.min_list_run:
                return offsets[i - run + 1]
        elif run > 0 and len(line) > 5:
            run = 0
    return None


def strip_leaked_references(body: str, config: CitationSettings) -> str:
    """Remove a trailing reference-like run (or stray heading) from body text."""
    lines = body.split("\n")
    heading = heading_pattern(keywords_tuple(config.heading_keywords))
    cut = len(lines)
    run = 0
    run_start = len(lines)

    for i in range(len(lines) - 1, max(-1, len(lines) - 1 - config.leak_scan_lines), -1):
        line = lines[i].strip()
        if not line:
            continue
        if _is_reference_line(line, config.entry_min_chars):
            run += 1
            run_start = i
        elif heading.match(line):
            cut = i
            break
        elif run > 0 and len(line) > 10:
            if run >= config.leak_min_run:
                break
            run = 0

    if run >= config.leak_min_run:
        cut = min(cut, run_start)
    if cut < len(lines):
        return "\n".join(lines[:cut])
    return body


def _strip_heading(references: str, config: CitationSettings) -> str:
    match = heading_pattern(keywords_tuple(config.heading_keywords)).match(references)
    if match:
        references = references[match.end():]
    return references.lstrip(" \t\r\n:")


def locate_reference_section(text: str, config: Optional[CitationSettings] = None) -> ReferenceSectionSplit:
    """Split document text into body and reference section.

    Args:
        text: Full document text
        config: Citation heuristics, defaults to the application settings

    Returns:
        ReferenceSectionSplit; ``found`` is False and the body is the whole
        text when no boundary lies past ``heading_min_position``.
    """
    config = config or settings.citation
    if not text:
        return ReferenceSectionSplit(found=False, body_text="")

    candidates = [
        boundary
        for boundary in (find_heading_boundary(text, config), find_list_boundary(text, config))
        if boundary is not None
    ]
    min_position = len(text) * config.heading_min_position
    candidates = [boundary for boundary in candidates if boundary > min_position]
    if not candidates:
        return ReferenceSectionSplit(found=False, body_text=text)

    split = min(candidates)
    return ReferenceSectionSplit(
        found=True,
        body_text=strip_leaked_references(text[:split], config),
        references_text=_strip_heading(text[split:], config),
        split_index=split,
    )
