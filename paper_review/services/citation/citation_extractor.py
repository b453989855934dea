"""In-text citation extraction from body text."""

from typing import Dict, List, Optional, Tuple

from paper_review.core.config import CitationSettings, settings
from paper_review.models.citation import Citation, CitationForm
from paper_review.services.citation.patterns import (
    AUTHOR_AND_AUTHOR,
    NARRATIVE,
    NON_AUTHOR_WORDS,
    NUMERIC_CITATION,
    PARENTHETICAL_ENTRY,
    PARENTHETICAL_GROUP,
    RANGE_SEPARATOR,
    WORD,
)


def expand_citation_group(content: str, config: CitationSettings) -> List[int]:
    """Ordinals named by the inside of one bracket group.

    ``"3, 4"`` gives ``[3, 4]`` and ``"10-12"`` gives ``[10, 11, 12]``. A
    range wider than ``max_range_span`` (or reversed) keeps only its
    endpoints. Ordinals outside ``1..max_citation_ordinal`` are dropped.
    """
    ordinals: List[int] = []
    for part in content.split(","):
        part = part.strip()
        if not part:
            continue
        numbers = [int(n) for n in RANGE_SEPARATOR.split(part) if n.isdigit()]
        if len(numbers) == 2 and 0 < numbers[1] - numbers[0] <= config.max_range_span:
            ordinals.extend(range(numbers[0], numbers[1] + 1))
        else:
            ordinals.extend(numbers)
    return [n for n in ordinals if 0 < n <= config.max_citation_ordinal]


def extract_numeric_citations(body_text: str, config: Optional[CitationSettings] = None) -> List[Citation]:
    """Distinct numeric citations ordered by first appearance."""
    config = config or settings.citation
    seen: Dict[int, Citation] = {}
    for match in NUMERIC_CITATION.finditer(body_text):
        for ordinal in expand_citation_group(match.group(1), config):
            if ordinal not in seen:
                seen[ordinal] = Citation(
                    form=CitationForm.NUMERIC,
                    normalized_key=str(ordinal),
                    first_position=match.start(),
                )
    return list(seen.values())


def normalize_author_year(author: str, year: str, et_al: bool = False) -> str:
    """Dedup key of an author-year citation: first surname, then the year.

    ``("Smith", "2020", True)`` gives ``"smithetal_2020"`` and
    ``("Van Dijk", "2019b")`` gives ``"vandijk_2019"``. The year suffix
    letter is dropped, so ``2019a`` and ``2019b`` of one author share a key.
    """
    key = "".join(author.split()).lower().replace("'", "")
    if et_al:
        key += "etal"
    return f"{key}_{year[:4]}"


def _strip_sentence_words(author: str) -> Tuple[str, int]:
    """Drop leading sentence words ("As Smith" -> "Smith").

    Returns the remaining text (empty if nothing is left) and its offset
    within ``author``.
    """
    for word in WORD.finditer(author):
        if word.group().lower() not in NON_AUTHOR_WORDS:
            return author[word.start():], word.start()
    return "", len(author)


def _overlaps(span: Tuple[int, int], taken: List[Tuple[int, int]]) -> bool:
    return any(span[0] < end and start < span[1] for start, end in taken)


def extract_author_year_citations(body_text: str) -> List[Citation]:
    """Distinct author-year citations ordered by first appearance.

    Parenthetical groups are read first (several ``;``-separated entries
    each), then narrative ``Author (Year)`` and ``Author and Author, Year``
    forms. A match overlapping an already accepted span is skipped. An
    entry naming several authors is keyed on the first of them.
    """
    found: Dict[str, Citation] = {}
    taken: List[Tuple[int, int]] = []

    def accept(key: str, position: int) -> None:
        if key not in found:
            found[key] = Citation(form=CitationForm.AUTHOR_YEAR, normalized_key=key, first_position=position)

    for group in PARENTHETICAL_GROUP.finditer(body_text):
        accepted = False
        offset = group.start(1)
        for entry in group.group(1).split(";"):
            match = PARENTHETICAL_ENTRY.match(entry.strip())
            author = _strip_sentence_words(match.group("author"))[0] if match else ""
            if author:
                accept(normalize_author_year(author, match.group("year"), bool(match.group("etal"))), offset)
                accepted = True
            offset += len(entry) + 1
        if accepted:
            taken.append(group.span())

    for pattern in (NARRATIVE, AUTHOR_AND_AUTHOR):
        for match in pattern.finditer(body_text):
            author, skipped = _strip_sentence_words(match.group("author"))
            if not author or _overlaps(match.span(), taken):
                continue
            et_al = bool(match.groupdict().get("etal"))
            accept(normalize_author_year(author, match.group("year"), et_al), match.start("author") + skipped)
            taken.append(match.span())

    return sorted(found.values(), key=lambda citation: citation.first_position)
