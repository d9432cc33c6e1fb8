"""
Semantic re-ranking of a cosine ranking with a term-similarity oracle.

    final(d) = alpha * cosine(d) + (1 - alpha) * cooccurrence(q, d)

cooccurrence averages oracle similarity over every (query term, document term)
pair. Pairs the oracle cannot score, and document terms that are stop words,
contribute a fixed negative penalty so documents dominated by low-information
terms sink.

Each candidate is scored by an independent worker; results are merged at a
single join point before the final deterministic sort.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence
from concurrent.futures import ThreadPoolExecutor, as_completed

from microblog_ranking.config import RerankConfig
from microblog_ranking.entities import RankedDocument
from microblog_ranking.models import SimilarityOracle
from microblog_ranking.scoring import sort_ranking

logger = logging.getLogger(__name__)


class SemanticReranker:
    """
    Args:
        oracle: Term similarity provider (e.g. KeyedVectorsOracle).
        stop_words: Document terms in this set (case-insensitive) score the penalty.
        config: Blend factor, penalty, and worker pool size.
    """

    def __init__(
        self,
        oracle: SimilarityOracle,
        stop_words: Iterable[str] = (),
        config: RerankConfig = RerankConfig(),
    ):
        if not 0.0 <= config.alpha <= 1.0:
            raise ValueError(f"alpha must be in [0, 1], got {config.alpha}")
        self.oracle = oracle
        self.stop_words = frozenset(word.lower() for word in stop_words)
        self.config = config

    def cooccurrence_score(self, query_terms: Sequence[str], document_terms: Sequence[str]) -> float:
        """Mean pairwise similarity between query and document terms (penalized where unknown)."""
        total = 0.0
        pairs = 0
        for query_term in query_terms:
            for document_term in document_terms:
                pairs += 1
                if document_term.lower() in self.stop_words:
                    total += self.config.penalty
                    continue
                similarity = self.oracle.similarity(query_term, document_term)
                total += self.config.penalty if similarity is None else similarity
        return total / pairs if pairs else 0.0

    def _blend(
        self,
        candidate: RankedDocument,
        query_terms: Sequence[str],
        document_terms: Sequence[str],
    ) -> tuple[str, float]:
        cooccurrence = self.cooccurrence_score(query_terms, document_terms)
        alpha = self.config.alpha
        return candidate.doc_id, alpha * candidate.score + (1.0 - alpha) * cooccurrence

    def rerank(
        self,
        query_terms: Sequence[str],
        ranking: Sequence[RankedDocument],
        document_terms: Mapping[str, Sequence[str]],
        top_k: int | None = None,
    ) -> list[RankedDocument]:
        """
        Blend every candidate's cosine score with its co-occurrence score and re-sort.

        A candidate whose similarity lookup fails keeps only its cosine share
        (alpha * cosine); the rest of the batch is unaffected.
        """
        if not ranking:
            return []

        alpha = self.config.alpha
        blended: dict[str, float] = {}
        with ThreadPoolExecutor(max_workers=max(1, self.config.max_workers)) as executor:
            futures = {
                executor.submit(
                    self._blend, candidate, query_terms, document_terms.get(candidate.doc_id, ())
                ): candidate
                for candidate in ranking
            }
            for future in as_completed(futures):
                candidate = futures[future]
                try:
                    doc_id, score = future.result()
                except Exception as e:
                    logger.warning(
                        "Similarity lookup failed for document %s: %s", candidate.doc_id, e
                    )
                    doc_id, score = candidate.doc_id, alpha * candidate.score
                blended[doc_id] = score

        return sort_ranking(
            [RankedDocument(doc_id, score) for doc_id, score in blended.items()], top_k
        )
