"""Shared fixtures for citation engine tests."""

import pytest

from paper_texts import build_paper, reference_lines


@pytest.fixture
def twelve_reference_paper() -> str:
    """Numeric-style paper citing [1], [3,4] and [10-12] against 12 references."""
    return build_paper(
        [
            "Prior work established the baseline [1] for this task.",
            "Two follow-up studies [3,4] refined the method.",
            "A family of related systems [10-12] scaled it up.",
        ],
        reference_lines(12),
    )
