"""Unit tests for StageOutput views."""

from paper_review.models.stage_output import (
    CitationIntegrityOutput,
    IssueListOutput,
    PlainOutput,
    WritingQualityOutput,
    stage_output_for,
)


class TestStageOutputFactory:
    """Variant selection by stage id."""

    def test_variants(self):
        assert isinstance(stage_output_for("writing_quality", {}), WritingQualityOutput)
        assert isinstance(stage_output_for("citation_integrity", {}), CitationIntegrityOutput)
        assert isinstance(stage_output_for("methodology", {}), IssueListOutput)
        assert type(stage_output_for("ingestion", {})) is PlainOutput
        assert type(stage_output_for("unknown_stage", {})) is PlainOutput

    def test_issue_field_per_stage(self):
        output = stage_output_for("literature_review", {"lit_review_issues": [{"severity": "HIGH"}], "issues": [{}]})

        issues = output.issues()

        assert len(issues) == 1
        assert issues[0].severity == "high"
        assert issues[0].source_stage == "literature_review"


class TestIssueNormalization:
    """Field fallbacks for generic issue lists."""

    def test_fallbacks(self):
        output = IssueListOutput("methodology", {
            "methodology_issues": [
                {"id": "m-7", "type": "sampling", "severity": "Medium", "section_hint": "Methods",
                 "span": {"excerpt": "n = 4"}, "rationale": "Sample too small", "suggested_fix": "Add data"},
                {"severity": "critical", "description": "Unclear protocol"},
                "not an issue",
            ],
        }, "methodology_issues")

        first, second = output.issues()

        assert first.issue_id == "m-7"
        assert first.issue_type == "sampling"
        assert first.severity == "medium"
        assert first.section == "Methods"
        assert first.excerpt == "n = 4"
        assert first.rationale == "Sample too small"
        assert second.issue_id == "methodology-issue-2"
        assert second.severity == "medium"
        assert second.section == "unknown"
        assert second.rationale == "Unclear protocol"

    def test_writing_quality_priorities(self):
        output = WritingQualityOutput("writing_quality", {
            "prioritized_actions": [
                {"priority": 1, "area": "clarity", "description": "Long sentences", "recommended_action": "Split"},
                {"priority": 2, "description": "Passive voice"},
                {"priority": 3, "description": "Typos"},
            ],
        })

        issues = output.issues()

        assert [i.severity for i in issues] == ["high", "medium", "low"]
        assert issues[0].issue_id == "writing_quality-action-1"
        assert issues[0].issue_type == "writing_quality_issue"
        assert issues[0].suggested_fix == "Split"
        assert issues[1].section == "unknown"

    def test_citation_problems(self):
        output = CitationIntegrityOutput("citation_integrity", {
            "problems": [{"severity": "high", "description": "No references"}, {"type": "format"}],
        })

        issues = output.issues()

        assert issues[0].issue_id == "citation_integrity-problem-1"
        assert issues[0].issue_type == "citation_issue"
        assert issues[0].section == "citations"
        assert issues[1].issue_type == "format"
        assert issues[1].severity == "medium"


class TestScoresAndText:
    """Scores, summaries, strengths and weaknesses."""

    def test_score_extraction(self):
        output = PlainOutput("methodology", {
            "overall_score": 0.8,
            "Quality": {"rigor": 0.6, "label": "ok", "passed": True},
            "score_is_final": True,
            "confidence": 0.99,
        })

        assert output.scores() == {"overall_score": 0.8, "rigor": 0.6}

    def test_summary_falls_back_to_notes(self):
        assert PlainOutput("x", {"summary": {"count": 3}, "notes": "Looks fine"}).summary_text() == "Looks fine"
        assert PlainOutput("x", {"summary": " Solid work "}).summary_text() == "Solid work"
        assert PlainOutput("x", None).summary_text() == ""

    def test_strengths_and_weaknesses(self):
        output = PlainOutput("x", {"strengths": ["Clear", "", 3], "weaknesses": "not a list"})

        assert output.strengths() == ["Clear"]
        assert output.weaknesses() == []
