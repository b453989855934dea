"""Regular expressions shared by the citation engine."""

import re
from functools import lru_cache
from typing import Iterable, Pattern, Tuple

# "[12] ...", "12. ...", "12 ..." at the start of a (trimmed) line
LIST_MARKER = re.compile(r"^\[?(\d+)\]?\.?\s+")

# Stricter marker used when re-validating implausibly large counts
STRICT_LIST_MARKER = re.compile(r"^\[(\d+)\]|^(\d+)\.\s+")

YEAR = re.compile(r"\b(?:19|20)\d{2}\b")

AUTHOR_PATTERN = re.compile(r"[A-Z][a-z]+\s+[A-Z]|[A-Z][a-z]+,\s+[A-Z]")
CAPITALIZED_WORD = re.compile(r"[A-Z][a-z]+")
WORD = re.compile(r"\S+")

LEADING_AUTHOR = re.compile(r"^[A-Z][a-z]+|,\s*[A-Z][a-z]+")
STRICT_AUTHOR = re.compile(r"[a-z]+\s+[a-z]+,\s+[a-z]")
STRICT_LEADING_AUTHOR = re.compile(r"^[A-Z][a-z]+\s+[A-Z]")

REFERENCE_KEYWORDS = re.compile(r"journal|conference|proceedings|book|article|paper", re.IGNORECASE)
STRICT_REFERENCE_KEYWORDS = re.compile(
    r"journal|conference|proceedings|book|article|publisher|press|university|springer|ieee|acm|vol|pp|pages",
    re.IGNORECASE,
)

# [1], [1, 2], [3-5], [ 7 ], [2-4, 9]; en dash accepted for ranges
NUMERIC_CITATION = re.compile(r"\[\s*(\d+(?:\s*[,\-–]\s*\d+)*)\s*\]")
RANGE_SEPARATOR = re.compile(r"\s*[\-–]\s*")

_NAME = r"[A-Z][A-Za-z'\-]+"
# One or more capitalized words, e.g. "Van Dijk"
_SURNAME = rf"{_NAME}(?:\s+{_NAME})*"
_YEAR = r"(?:19|20)\d{2}[a-z]?"
# Names after the first: ", Jones", " & Lee", ", Jones & Lee", ", Jones, and Lee"
_CO_AUTHORS = rf"(?:\s*,\s*{_SURNAME})*\s*,?\s+(?:and|&)\s+{_SURNAME}"

# Parenthetical group containing at least one year, e.g. "(Smith, 2020; Lee et al., 2019)"
PARENTHETICAL_GROUP = re.compile(r"\(([^()]*?(?:19|20)\d{2}[^()]*)\)")

# One entry inside a parenthetical group
PARENTHETICAL_ENTRY = re.compile(
    rf"^(?:(?i:see|e\.g\.,?|cf\.|i\.e\.,?)\s+)?(?P<author>{_SURNAME})"
    rf"(?:\s+(?P<etal>et\s+al\.?)|{_CO_AUTHORS}|(?:\s*,\s*{_SURNAME})+)?,?\s+(?P<year>{_YEAR})$"
)

# Smith (2020), Van Dijk (2020), Smith et al. (2020), Smith, Jones and Lee (2020)
NARRATIVE = re.compile(
    rf"\b(?P<author>{_SURNAME})(?:\s+(?P<etal>et\s+al\.?)|{_CO_AUTHORS})?\s+\((?P<year>{_YEAR})\)"
)

# Smith and Lee, 2020; Smith and Lee, Park, 2020
AUTHOR_AND_AUTHOR = re.compile(
    rf"\b(?P<author>{_NAME})\s+and\s+{_NAME}(?:,\s+{_NAME})*,?\s+(?P<year>{_YEAR})\b"
)

# Capitalized words that start sentences or captions rather than name authors
NON_AUTHOR_WORDS = frozenset({
    "in", "the", "see", "table", "tables", "figure", "figures", "fig", "section", "sections",
    "chapter", "appendix", "eq", "equation", "since", "from", "after", "before", "until",
    "during", "by", "as", "and", "or", "of", "on", "at", "to", "for", "with", "this", "that",
    "these", "those", "between", "year", "years", "version", "january", "february", "march",
    "april", "may", "june", "july", "august", "september", "october", "november", "december",
})


@lru_cache(maxsize=16)
def heading_pattern(keywords: Tuple[str, ...]) -> Pattern[str]:
    """A line consisting only of a reference-section heading.

    Accepts optional section numbering ("7.", "VII.") and a trailing colon.
    """
    alternatives = "|".join(re.escape(keyword).replace(r"\ ", r"\s+") for keyword in keywords)
    return re.compile(
        rf"^[ \t]*(?:\d+(?:\.\d+)*\.?[ \t]+|[IVXLC]+\.[ \t]+)?(?:{alternatives})[ \t]*:?[ \t]*$",
        re.IGNORECASE | re.MULTILINE,
    )


def keywords_tuple(keywords: Iterable[str]) -> Tuple[str, ...]:
    return tuple(keyword.strip().lower() for keyword in keywords if keyword.strip())
