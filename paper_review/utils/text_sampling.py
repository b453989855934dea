"""Helpers for bounding the amount of text sent to the Oracle."""

from typing import Optional


def estimate_tokens(text: str) -> int:
    """Rough token estimate (4 characters per token)."""
    return len(text) // 4


def truncate(text: Optional[str], max_chars: int, marker: str = "...") -> str:
    if not text:
        return ""
    if len(text) <= max_chars:
        return text
    return text[:max_chars] + marker


def sample_head_tail(text: str, max_chars: int, note: str = "middle truncated") -> str:
    """Keep the first and last ``max_chars // 2`` characters of long text."""
    if len(text) <= max_chars:
        return text
    half = max_chars // 2
    return f"{text[:half]}\n\n... [{note}] ...\n\n{text[-half:]}"


def sample_start_middle_end(text: str, max_chars: int) -> str:
    """Three equal samples from the start, middle and end of long text."""
    if len(text) <= max_chars:
        return text
    size = max_chars // 3
    middle = max(0, len(text) // 2 - size // 2)
    return (
        f"{text[:size]}\n\n... [sample from middle] ...\n\n"
        f"{text[middle:middle + size]}\n\n... [sample from end] ...\n\n"
        f"{text[-size:]}"
    )
