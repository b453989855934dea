"""Builders for synthetic paper texts."""

from typing import Iterable, List, Optional

PROSE = "This paragraph describes the experimental setup in general terms for the reader."


def reference_lines(count: int) -> List[str]:
    return [
        f"[{n}] Smith, J. and Lee, K. A study of topic number {n}. Journal of Things, {2000 + n % 20}."
        for n in range(1, count + 1)
    ]


def build_paper(
    cited_lines: Iterable[str],
    references: Optional[List[str]] = None,
    filler_lines: int = 40,
    heading: Optional[str] = "References",
) -> str:
    """Prose body with the given citing sentences, then an optional reference section."""
    lines = list(cited_lines) + [PROSE] * filler_lines
    if references is not None:
        lines = lines + ([heading] if heading else []) + references
    return "\n".join(lines)
