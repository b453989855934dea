"""Map structural-scan headings onto pages by character offset."""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence


@dataclass(frozen=True)
class Heading:
    title: str
    start_index: int


def headings_from_structure(payload: Optional[Dict[str, Any]]) -> List[Heading]:
    """Headings listed under ``dynamic_headings`` of a structural-scan payload.

    Entries without a title or a non-negative integer ``start_index`` are
    ignored. The result is ordered by offset.
    """
    if not payload:
        return []
    headings = []
    for entry in payload.get("dynamic_headings") or []:
        if not isinstance(entry, dict):
            continue
        title = entry.get("normalized_title") or entry.get("raw_title")
        start = entry.get("start_index")
        if not title or isinstance(start, bool) or not isinstance(start, int) or start < 0:
            continue
        headings.append(Heading(title=str(title), start_index=start))
    return sorted(headings, key=lambda heading: heading.start_index)


def assign_section_hints(
    page_texts: Sequence[str],
    headings: Sequence[Heading],
    separator: str = "\n",
) -> List[Optional[str]]:
    """Section hint per page.

    Pages are laid end to end (joined by ``separator``) to get each page's
    character range. A page's hint is the last heading starting before the
    page ends, or None when no heading starts that early.
    """
    hints: List[Optional[str]] = []
    ordered = sorted(headings, key=lambda heading: heading.start_index)
    position = 0
    cursor = 0
    current: Optional[str] = None

    for text in page_texts:
        end = position + len(text)
        while cursor < len(ordered) and ordered[cursor].start_index < max(end, position + 1):
            current = ordered[cursor].title
            cursor += 1
        hints.append(current)
        position = end + len(separator)
    return hints
