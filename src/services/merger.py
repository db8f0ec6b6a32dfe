"""Combines per-chunk generation results into one aggregated result.

Merge rules:

- Analysis subject and level come from the first chunk.
- Key concepts are deduplicated by name, first occurrence wins.  Matching
  is exact and case-sensitive unless a fuzzy threshold is configured, in
  which case rapidfuzz folds near-duplicates into the first spelling seen.
- Structure sections and formulas are concatenated in chunk order.
- The summary is stitched, not re-generated: fixed title, chunk overviews
  joined, sections concatenated, conclusion from the last chunk.
- Flashcards and quiz questions are concatenated with no dedup.

A single result is passed through unchanged with ``merged=False``.
"""

from __future__ import annotations

from src.models.pipeline import AggregatedResult, ChunkResult, ProcessingMetadata
from src.models.study import Analysis, KeyConcept, Summary
from src.utils.logging import get_logger
from src.utils.text_normalizer import fuzzy_match

MERGED_SUMMARY_TITLE = "Complete summary"


class ResultMerger:
    """Merges :class:`ChunkResult` objects in chunk order.

    Parameters
    ----------
    concept_match_threshold:
        ``None`` (default) deduplicates concepts by exact name.  A value in
        0.0-1.0 enables fuzzy matching at that similarity.
    """

    def __init__(self, concept_match_threshold: float | None = None) -> None:
        if concept_match_threshold is not None and not 0.0 < concept_match_threshold <= 1.0:
            raise ValueError("concept_match_threshold must be in (0.0, 1.0]")
        self._threshold = concept_match_threshold
        self._logger = get_logger(__name__)

    def merge(self, results: list[ChunkResult], model: str) -> AggregatedResult:
        """Merge *results* into one :class:`AggregatedResult`.

        Raises
        ------
        ValueError
            If *results* is empty.
        """
        if not results:
            raise ValueError("Cannot merge an empty list of chunk results")
        if len(results) == 1:
            return self._passthrough(results[0], model)

        first = results[0]
        analysis = Analysis(
            subject=first.analysis.subject,
            level=first.analysis.level,
            key_concepts=self._merge_concepts(results),
            structure=[section for r in results for section in r.analysis.structure],
            formulas=[formula for r in results for formula in r.analysis.formulas],
        )
        summary = Summary(
            title=MERGED_SUMMARY_TITLE,
            overview=" ".join(r.summary.overview for r in results if r.summary.overview),
            sections=[section for r in results for section in r.summary.sections],
            conclusion=results[-1].summary.conclusion,
        )
        flashcards = [card for r in results for card in r.flashcards]
        quiz = [question for r in results for question in r.quiz]

        self._logger.info(
            "results_merged",
            total_chunks=len(results),
            key_concepts=len(analysis.key_concepts),
            flashcards=len(flashcards),
            quiz=len(quiz),
        )
        return AggregatedResult(
            analysis=analysis,
            summary=summary,
            flashcards=flashcards,
            quiz=quiz,
            metadata=ProcessingMetadata(
                model=model,
                content_length=sum(r.content_length for r in results),
                total_chunks=len(results),
                merged=True,
            ),
        )

    def _merge_concepts(self, results: list[ChunkResult]) -> list[KeyConcept]:
        merged: dict[str, KeyConcept] = {}
        for result in results:
            for concept in result.analysis.key_concepts:
                if concept.name in merged:
                    continue
                if self._threshold is not None:
                    match = fuzzy_match(concept.name, list(merged), self._threshold)
                    if match is not None:
                        self._logger.debug(
                            "concept_folded",
                            concept=concept.name,
                            into=match[0],
                            score=round(match[1], 3),
                        )
                        continue
                merged[concept.name] = concept
        return list(merged.values())

    @staticmethod
    def _passthrough(result: ChunkResult, model: str) -> AggregatedResult:
        return AggregatedResult(
            analysis=result.analysis,
            summary=result.summary,
            flashcards=result.flashcards,
            quiz=result.quiz,
            metadata=ProcessingMetadata(
                model=model,
                content_length=result.content_length,
                total_chunks=1,
                merged=False,
            ),
        )
