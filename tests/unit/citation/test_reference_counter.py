"""Unit tests for reference counting."""

import pytest

from paper_review.core.config import settings
from paper_review.services.citation.reference_counter import (
    count_author_year_entries,
    count_references,
    count_references_strict,
    sequential_ratio,
)

from paper_texts import reference_lines


def _author_year_list(count: int) -> str:
    entries = [
        f"Author{chr(65 + n % 26)}son, P. ({1990 + n}). Findings on subject {n}. Journal of Results."
        for n in range(count)
    ]
    return "\n\n".join(entries)


class TestSequentialRatio:
    """Share of consecutive ordinals."""

    def test_fully_sequential(self):
        assert sequential_ratio([1, 2, 3, 4]) == pytest.approx(0.75)

    def test_gaps_and_duplicates(self):
        assert sequential_ratio([5, 1, 2, 2, 3]) == pytest.approx(2 / 4)

    def test_empty(self):
        assert sequential_ratio([]) == 0.0


class TestCountReferences:
    """Validated reference counts."""

    def test_numbered_list_counts_highest_ordinal(self):
        result = count_references("\n".join(reference_lines(12)))

        assert result.count == 12
        assert result.method == "max_ordinal"
        assert [ref.ordinal for ref in result.references] == list(range(1, 13))
        assert all(ref.has_year for ref in result.references)

    def test_gap_in_numbering_still_counts_highest(self):
        lines = [line for line in reference_lines(8) if not line.startswith("[5]")]

        result = count_references("\n".join(lines))

        assert result.count == 8

    def test_short_section_counts_nothing(self):
        result = count_references("[1] Too short 2020.")

        assert result.count == 0
        assert result.method == "none"

    def test_author_year_list(self):
        result = count_references(_author_year_list(6))

        assert result.count == 6
        assert result.method == "author_year"
        assert result.references == []

    def test_scattered_ordinals_fall_back_to_author_year(self):
        numbered = [
            f"{n * 7}. Miller, R., Evans, T. Measurements of sample {n}. Conference on Data, {2001 + n}."
            for n in range(1, 13)
        ]
        text = "\n\n".join(numbered)

        result = count_references(text)

        assert result.method == "author_year"
        assert result.count == 12

    def test_count_above_ceiling_is_rechecked(self):
        config = settings.citation.model_copy(update={"sanity_ceiling": 10})
        lines = reference_lines(4) + ["[900] Volume 900 of the collected tables, page 2019 onwards."]

        result = count_references("\n".join(lines), config)

        assert result.method == "strict"
        assert result.count == 0

    def test_strict_recount_thresholds(self):
        config = settings.citation.model_copy(update={"sanity_ceiling": 10})

        assert count_references_strict("\n".join(reference_lines(12)), config) == 10
        assert count_references_strict("\n".join(reference_lines(6)), config) == 6
        assert count_references_strict("\n".join(reference_lines(3)), config) == 0


class TestAuthorYearEntries:
    """Unnumbered entry counting."""

    def test_continuation_lines_not_counted(self):
        text = (
            "Smith, J. (2019). A long title about results.\n"
            "Journal of Results, 2019 special issue.\n"
            "\n"
            "Brown, K. (2020). Another long title about methods."
        )

        assert count_author_year_entries(text) == 2
