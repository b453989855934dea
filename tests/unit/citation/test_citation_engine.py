"""Unit tests for the citation engine."""

import pytest

from paper_review.models.citation import StyleGuess
from paper_review.services.citation.citation_engine import CitationEngine, analyze

from paper_texts import PROSE, build_paper, reference_lines


@pytest.fixture
def engine():
    return CitationEngine()


class TestCitationMatching:
    """Matching numeric citations against the reference count."""

    def test_twelve_references_six_cited(self, engine, twelve_reference_paper):
        analysis = engine.analyze(twelve_reference_paper)

        assert analysis.has_references_section is True
        assert analysis.reference_count == 12
        assert analysis.in_text_citation_count == 6
        assert analysis.matched_count == 6
        assert analysis.unmatched_count == 0
        assert analysis.uncited_count == 6
        assert analysis.style_guess == StyleGuess.NUMERIC
        assert analysis.count_method == "max_ordinal"

    def test_reference_entries_not_counted_as_citations(self, engine, twelve_reference_paper):
        analysis = engine.analyze(twelve_reference_paper)

        assert sorted(c.ordinal for c in analysis.numeric_citations) == [1, 3, 4, 10, 11, 12]

    @pytest.mark.parametrize("cited", [[1], [2, 5, 7], list(range(1, 21))])
    def test_citations_within_count_all_match(self, engine, cited):
        text = build_paper([f"Result {n} follows from [{n}]." for n in cited], reference_lines(20))

        analysis = engine.analyze(text)

        assert analysis.matched_count == len(cited)
        assert analysis.unmatched_count == 0

    def test_citations_beyond_count_unmatched(self, engine):
        text = build_paper(["Known [2], unknown [15] and [14]."], reference_lines(12))

        analysis = engine.analyze(text)

        assert analysis.matched_count == 1
        assert analysis.unmatched_citations == [14, 15]
        assert analysis.uncited_count == 11

    def test_mixed_style(self, engine):
        text = build_paper(["Both [1] and Smith et al. (2020) agree."], reference_lines(5))

        analysis = engine.analyze(text)

        assert analysis.style_guess == StyleGuess.MIXED
        assert analysis.to_dict()["author_year_unmatchable"] == 1
        assert analysis.matched_count == 1


class TestDegenerateDocuments:
    """Documents without a usable reference section."""

    def test_no_references_section(self, engine):
        text = build_paper(["Claims [1] and [2] without any bibliography."])

        analysis = engine.analyze(text)

        assert analysis.degenerate is True
        assert analysis.reference_count == 0
        assert analysis.in_text_citation_count == 0
        assert analysis.matched_count == 0
        assert analysis.unmatched_count == 0
        assert analysis.style_guess == StyleGuess.UNKNOWN

    def test_empty_document(self):
        analysis = analyze("")

        assert analysis.degenerate is True
        assert analysis.to_dict()["reference_count"] == 0

    def test_same_input_same_result(self, engine, twelve_reference_paper):
        assert engine.analyze(twelve_reference_paper).to_dict() == engine.analyze(twelve_reference_paper).to_dict()
