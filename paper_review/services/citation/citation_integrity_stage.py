"""CitationIntegrity stage runner.

Combines the deterministic citation analysis with an optional Oracle
judgment of reference quality, and records the result as the
``citation_integrity`` assessment. Counts in the payload always come from
the engine, never from the Oracle.
"""

from typing import Any, Dict, List, Optional

from paper_review.core.config import CitationSettings, settings
from paper_review.core.exceptions import APIClientError, DatabaseError
from paper_review.core.oracle_client import AnalysisOracle
from paper_review.models.citation import CitationAnalysis
from paper_review.pipeline.stages import CITATION_INTEGRITY, INGESTION, STRUCTURAL_SCAN
from paper_review.services.artifact_store import ArtifactStore
from paper_review.services.citation.citation_engine import CitationEngine
from paper_review.utils.logging import get_logger
from paper_review.utils.text_sampling import sample_head_tail, sample_start_middle_end

LOGGER = get_logger(__name__)

SYSTEM_PROMPT = (
    "You are a specialized citation integrity and quality analyzer. Focus only on citations and "
    "references, not on content quality, structure or scientific correctness. Always return valid "
    "JSON only, with no additional commentary or markdown formatting."
)

QUALITY_TASK = """Evaluate the quality of the reference list and how it is cited.
The citation counts in the input were computed from the full text and are authoritative; do not recount.

Return JSON:
{"citation_style_confidence": 0.0, "style_consistency_score": 0.0,
 "quality": {"recency_analysis": {"recent_0_5_years": 0, "years_5_10": 0, "older_10_years": 0, "recency_score": 0.0, "comment": ""},
             "source_diversity": {"diversity_score": 0.0, "comment": ""},
             "venue_quality": {"venue_quality_score": 0.0, "low_credibility_sources": [], "comment": ""},
             "outdated_ratio": {"ratio": 0.0, "comment": ""},
             "citation_balance": {"citation_balance_score": 0.0, "comment": ""},
             "missing_key_references": []},
 "problems": [{"severity": "low|medium|high", "type": "", "description": ""}],
 "notes": ""}
All scores are between 0 and 1."""

_SCORE_PATHS = {
    "recency_score": ("recency_analysis", "recency_score"),
    "diversity_score": ("source_diversity", "diversity_score"),
    "venue_quality_score": ("venue_quality", "venue_quality_score"),
    "citation_balance_score": ("citation_balance", "citation_balance_score"),
}


def empty_quality(comment: str) -> Dict[str, Any]:
    return {
        "recency_analysis": {
            "recent_0_5_years": 0, "years_5_10": 0, "older_10_years": 0, "recency_score": 0.0, "comment": comment,
        },
        "source_diversity": {"diversity_score": 0.0, "comment": comment},
        "venue_quality": {"venue_quality_score": 0.0, "low_credibility_sources": [], "comment": comment},
        "outdated_ratio": {"ratio": 0.0, "comment": comment},
        "citation_balance": {"citation_balance_score": 0.0, "comment": comment},
        "missing_key_references": [],
    }


def _merge_quality(received: Any) -> Dict[str, Any]:
    quality = empty_quality("")
    if not isinstance(received, dict):
        return quality
    for block, defaults in quality.items():
        value = received.get(block)
        if isinstance(defaults, dict) and isinstance(value, dict):
            defaults.update({k: v for k, v in value.items() if k in defaults and v is not None})
        elif isinstance(defaults, list) and isinstance(value, list):
            quality[block] = value
    return quality


def _quality_scores(quality: Dict[str, Any]) -> Dict[str, float]:
    scores = {}
    for name, (block, field) in _SCORE_PATHS.items():
        value = quality.get(block, {}).get(field)
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            scores[name] = float(value)
    return scores


def deterministic_problems(analysis: CitationAnalysis) -> List[Dict[str, Any]]:
    """Problems derived from the engine's counts alone."""
    if analysis.degenerate:
        return [{
            "severity": "high",
            "type": "missing_references_section",
            "description": "No references section detected in the document; citation matching was not possible.",
        }]

    problems: List[Dict[str, Any]] = []
    if analysis.unmatched_count:
        shown = ", ".join(f"[{n}]" for n in analysis.unmatched_citations[:10])
        problems.append({
            "severity": "medium",
            "type": "unmatched_in_text_citation",
            "description": (
                f"{analysis.unmatched_count} numeric citation(s) exceed the {analysis.reference_count} "
                f"listed references: {shown}"
            ),
        })
    if analysis.uncited_count and analysis.numeric_citations:
        problems.append({
            "severity": "low",
            "type": "uncited_reference",
            "description": f"{analysis.uncited_count} reference(s) are never cited in the text.",
        })
    if analysis.author_year_citations:
        problems.append({
            "severity": "low",
            "type": "author_year_unmatched",
            "description": (
                f"{len(analysis.author_year_citations)} author-year citation(s) were counted but cannot be "
                "matched against numbered references."
            ),
        })
    return problems


def sample_for_oracle(analysis: CitationAnalysis, config: CitationSettings) -> str:
    """Body and reference text reduced to the Oracle input budget."""
    references = sample_head_tail(
        analysis.reference_section,
        config.reference_sample_chars,
        note=f"middle references truncated for analysis, all {analysis.reference_count} references were counted",
    )
    body = sample_start_middle_end(analysis.body_text, config.body_sample_chars)
    return f"{body}\n\n--- REFERENCES SECTION ---\n\n{references}"


class CitationIntegrityStage:
    """Runs citation analysis for one document and records the assessment."""

    stage_id = CITATION_INTEGRITY

    def __init__(
        self,
        store: ArtifactStore,
        oracle: Optional[AnalysisOracle] = None,
        engine: Optional[CitationEngine] = None,
        config: Optional[CitationSettings] = None,
    ):
        self.store = store
        self.oracle = oracle
        self.config = config or settings.citation
        self.engine = engine or CitationEngine(self.config)

    async def _previous_context(self, document_id: str) -> Dict[str, Any]:
        context = {"document_type": "paper", "document_subtype": "unknown", "references_section_exists": None}

        ingestion = await self.store.get_latest_assessment(document_id, INGESTION)
        if ingestion:
            doc_type = (ingestion.payload.get("document_type") or {})
            if isinstance(doc_type, dict) and doc_type.get("doc_type"):
                context["document_type"] = doc_type["doc_type"]

        structure = await self.store.get_latest_assessment(document_id, STRUCTURAL_SCAN)
        if structure:
            subtype = structure.payload.get("document_subtype") or {}
            if isinstance(subtype, dict) and subtype.get("subtype"):
                context["document_subtype"] = subtype["subtype"]
            references = (structure.payload.get("sections") or {}).get("references")
            if isinstance(references, dict) and "exists" in references:
                context["references_section_exists"] = bool(references["exists"])
        return context

    async def _ask_oracle(self, analysis: CitationAnalysis, context: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        if self.oracle is None or analysis.degenerate:
            return None
        content = {
            "counts": analysis.to_dict(),
            "document_type": context["document_type"],
            "document_subtype": context["document_subtype"],
            "document_text": sample_for_oracle(analysis, self.config),
        }
        try:
            return await self.oracle.request_json(QUALITY_TASK, content, system_prompt=SYSTEM_PROMPT)
        except APIClientError as e:
            LOGGER.warning(f"Oracle citation quality analysis failed: {e}", extra={"stage_id": self.stage_id})
            return None

    async def run(self, document_id: str, document_text: str) -> Dict[str, Any]:
        """Analyze ``document_text`` and record the ``citation_integrity`` assessment.

        Returns:
            The recorded payload. ``success`` is False only if the store
            write failed, in which case ``error`` is set.
        """
        context = await self._previous_context(document_id)
        analysis = self.engine.analyze(document_text)
        judged = await self._ask_oracle(analysis, context)

        if judged is not None:
            quality = _merge_quality(judged.get("quality"))
            notes = judged.get("notes") or "Citation analysis completed"
            extra_problems = [p for p in judged.get("problems") or [] if isinstance(p, dict)]
        else:
            reason = "No references section" if analysis.degenerate else "Quality analysis unavailable"
            quality = empty_quality(reason)
            notes = f"Citation counts computed locally. {reason}."
            extra_problems = []

        counts = analysis.to_dict()
        payload: Dict[str, Any] = {
            "document_id": document_id,
            "stage_id": self.stage_id,
            "success": True,
            "summary": {
                "has_references_section": analysis.has_references_section,
                "structural_scan_reports_references": context["references_section_exists"],
                "total_references_detected": analysis.reference_count,
                "total_in_text_citations_detected": analysis.in_text_citation_count,
                "citation_style": analysis.style_guess.value,
                "citation_style_confidence": (judged or {}).get("citation_style_confidence", 0.0),
                "style_consistency_score": (judged or {}).get("style_consistency_score", 0.0),
            },
            "matching": {
                "matched_pairs_count": analysis.matched_count,
                "unmatched_in_text_citations_count": analysis.unmatched_count,
                "unmatched_citations": counts["unmatched_citations"],
                "uncited_references_count": analysis.uncited_count,
                "author_year_unmatchable": counts["author_year_unmatchable"],
            },
            "analysis": counts,
            "quality": quality,
            "problems": deterministic_problems(analysis) + extra_problems,
            "notes": notes,
            "oracle_used": judged is not None,
        }
        if judged is not None:
            payload["quality_scores"] = _quality_scores(quality)

        try:
            await self.store.put_assessment(document_id, self.stage_id, payload)
        except DatabaseError as e:
            LOGGER.error(f"Could not record citation assessment: {e}", extra={"document_id": document_id})
            payload["success"] = False
            payload["error"] = str(e)
        return payload
