"""
TF-IDF cosine scoring over the inverted index.

Query side (augmented, IDF-weighted):
    w_tq = weight(t) * (0.5 + 0.5 * (1 + log10(tf_tq))) * log10(N / df_t) [* 1 / max_tf_q]

Document side (log-TF, no IDF):
    w_td = 1 + log10(tf_td)

    score(q, d) = factor(d) * sum_t(w_tq * w_td) / (|V(q)| * |V(d)|)

Only terms shared with the query contribute to |V(d)|. Ties are broken by
ascending document ID so sequential and parallel runs produce identical output.

Usage:
    from microblog_ranking.scoring import CosineScorer

    scorer = CosineScorer(tokenizer)
    ranking = scorer.cosine_score(query, index, document_weights, top_k=1000)
"""

from __future__ import annotations

import math
from collections import Counter
from collections.abc import Mapping, Sequence
from concurrent.futures import ThreadPoolExecutor
from typing import TYPE_CHECKING

import numpy as np
from scipy import sparse

from microblog_ranking.config import (
    DEFAULT_NUM_WORKERS,
    MIN_QUERIES_FOR_PARALLEL,
    ScoringConfig,
)
from microblog_ranking.entities import Query, RankedDocument, WeightedQueryTerm
from microblog_ranking.index import InvertedIndex
from microblog_ranking.tokenizer import MicroblogTokenizer

if TYPE_CHECKING:
    from numpy.typing import NDArray


# =============================================================================
# Weighting primitives
# =============================================================================


def adjust_term_frequency(term_frequency: float) -> float:
    """Logarithmic TF damping: 1 + log10(tf) for tf > 0, else 0."""
    if term_frequency > 0:
        return 1.0 + math.log10(term_frequency)
    return 0.0


def inverse_document_frequency(total_documents: int, document_frequency: int) -> float:
    """log10(N / df); 0 for terms absent from the collection."""
    if document_frequency <= 0 or total_documents <= 0:
        return 0.0
    return math.log10(total_documents / document_frequency)


def weigh_query_term(total_documents: int, document_frequency: int, term_frequency: float) -> float:
    """Augmented query term weight: (0.5 + 0.5 * tf') * idf."""
    weighted_tf = 0.5 + 0.5 * adjust_term_frequency(term_frequency)
    return weighted_tf * inverse_document_frequency(total_documents, document_frequency)


def sort_ranking(ranking: Sequence[RankedDocument], top_k: int | None = None) -> list[RankedDocument]:
    """Descending score, ascending document ID on ties, truncated to top_k."""
    ordered = sorted(ranking, key=lambda doc: (-doc.score, doc.doc_id))
    if top_k is not None:
        ordered = ordered[:top_k]
    return ordered


# =============================================================================
# Scorer
# =============================================================================


class CosineScorer:
    """
    Stateless cosine scorer; safe to share across threads once the index is built.

    Args:
        tokenizer: Normalizer used for query tokens, entity detection and expansion.
        config: Query weighting parameters.
    """

    def __init__(self, tokenizer: MicroblogTokenizer, config: ScoringConfig = ScoringConfig()):
        self.tokenizer = tokenizer
        self.config = config

    def weigh_query(self, text: str) -> list[WeightedQueryTerm]:
        """
        Tokenize a query and weight each term.

        Single-token proper nouns and coalesced entities get the proper-noun
        weight; everything else the base weight. Each token's linguistic
        variants are then added at root weight * expansion factor, never
        overriding a weight already assigned. A variant inherits the query
        frequency of the token that introduced it.
        """
        tokens = self.tokenizer.tokenize(text)
        if not tokens:
            return []

        counts = Counter(tokens)
        single_proper_nouns = {
            span.start for span in self.tokenizer.find_named_entities(tokens) if len(span) == 1
        }

        weights: dict[str, float] = {}
        frequencies: dict[str, int] = {}
        for position, token in enumerate(tokens):
            if position in single_proper_nouns or " " in token:
                weights[token] = self.config.proper_noun_weight
            else:
                weights[token] = self.config.base_weight
            frequencies[token] = counts[token]

        for token in tokens:
            for variant in self.tokenizer.normalize(token):
                if variant not in weights:
                    weights[variant] = weights[token] * self.config.expansion_factor
                    frequencies[variant] = counts[token]

        return [
            WeightedQueryTerm(term, weight, frequencies[term]) for term, weight in weights.items()
        ]

    def cosine_score(
        self,
        query: Query | str,
        index: InvertedIndex,
        document_weights: Mapping[str, float] | None = None,
        top_k: int | None = None,
    ) -> list[RankedDocument]:
        """
        Rank every document sharing at least one weighted query term.

        Args:
            query: Query object or raw query text.
            index: Built (and stop-word filtered) inverted index.
            document_weights: Per-document multipliers in [0, 1]; missing = 1.0.
            top_k: Keep only the best k results (None for all).

        Returns:
            RankedDocuments sorted by descending score, ties by ascending ID.
        """
        text = query.text if isinstance(query, Query) else query
        query_terms = self.weigh_query(text)
        if not query_terms:
            return []

        max_term_frequency = max(term.frequency for term in query_terms)
        if max_term_frequency <= 0:
            return []
        damping = 1.0 / max_term_frequency if self.config.dampen_by_max_query_tf else 1.0

        total_documents = index.get_total_number_of_documents()
        query_weights: list[float] = []
        rows: list[int] = []
        cols: list[int] = []
        frequencies: list[int] = []

        for term in query_terms:
            postings = index.get_document_list(term.term)
            if not postings:
                # irrelevant to every document
                continue
            weight = damping * term.weight * weigh_query_term(
                total_documents, len(postings), term.frequency
            )
            if weight == 0.0:
                # idf == 0: the term appears everywhere and discriminates nothing
                continue
            row = len(query_weights)
            query_weights.append(weight)
            for doc_id, term_frequency in postings.items():
                rows.append(row)
                cols.append(index.document_column(doc_id))
                frequencies.append(term_frequency)

        if not query_weights:
            return []

        scores, candidates = self._score_columns(
            np.asarray(query_weights, dtype=np.float64),
            rows,
            cols,
            frequencies,
            index.column_count,
        )

        document_ids = index.document_ids
        weights = document_weights or {}
        ranking = []
        for column, score in zip(candidates.tolist(), scores.tolist()):
            doc_id = document_ids[column]
            factor = weights.get(doc_id, 1.0)
            if not 0.0 <= factor <= 1.0:
                raise ValueError(f"Document weight for '{doc_id}' must be in [0, 1], got {factor}")
            ranking.append(RankedDocument(doc_id, factor * score))

        return sort_ranking(ranking, top_k)

    @staticmethod
    def _score_columns(
        query_weights: NDArray[np.float64],
        rows: list[int],
        cols: list[int],
        frequencies: list[int],
        column_count: int,
    ) -> tuple[NDArray[np.float64], NDArray[np.int64]]:
        """
        Fused dot products and document lengths for all query terms at once.

        Returns:
            (unweighted cosine scores, document columns) for every column with
            a nonzero dot product.
        """
        # (num_terms, num_documents) matrix of document-side term weights
        doc_term_weights = sparse.csr_matrix(
            (np.asarray(frequencies, dtype=np.float64), (rows, cols)),
            shape=(len(query_weights), column_count),
        )
        doc_term_weights.data = 1.0 + np.log10(doc_term_weights.data)

        dot_products = doc_term_weights.T @ query_weights
        document_lengths = np.sqrt(
            np.asarray(doc_term_weights.multiply(doc_term_weights).sum(axis=0)).ravel()
        )
        query_length = float(np.sqrt(np.sum(query_weights**2)))

        candidates = np.flatnonzero(dot_products).astype(np.int64)
        denominators = query_length * document_lengths[candidates]
        valid = denominators > 0
        candidates = candidates[valid]
        scores = dot_products[candidates] / denominators[valid]
        return scores, candidates

    def batch_cosine_score(
        self,
        queries: Sequence[Query],
        index: InvertedIndex,
        document_weights: Mapping[str, float] | None = None,
        top_k: int | None = None,
        num_workers: int = DEFAULT_NUM_WORKERS,
        min_queries_for_parallel: int = MIN_QUERIES_FOR_PARALLEL,
    ) -> dict[str, list[RankedDocument]]:
        """
        Score many queries; parallel over a thread pool for larger batches.

        The index is only read, so results match the sequential path exactly.
        """
        if not queries:
            return {}
        if len({query.id for query in queries}) != len(queries):
            raise ValueError("Query IDs must be unique within a batch")

        def rank_single(query: Query) -> list[RankedDocument]:
            return self.cosine_score(query, index, document_weights, top_k)

        if len(queries) < min_queries_for_parallel or num_workers <= 1:
            rankings = [rank_single(query) for query in queries]
        else:
            with ThreadPoolExecutor(max_workers=num_workers) as executor:
                rankings = list(executor.map(rank_single, queries))

        return {query.id: ranking for query, ranking in zip(queries, rankings)}
