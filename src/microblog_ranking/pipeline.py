"""
End-to-end batch run: build the index once, then rank every topic.

Build phase (sequential, collection order):
    documents -> tokenizer -> index.add_document -> document weights -> index.filter_stop_words
Query phase (parallel across queries):
    query -> CosineScorer.cosine_score [-> SemanticReranker.rerank] -> run file
"""

from __future__ import annotations

import logging
import time
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field

from tqdm import tqdm

from microblog_ranking.config import (
    DEFAULT_NUM_WORKERS,
    DocumentWeightConfig,
    RerankConfig,
    RunConfig,
    ScoringConfig,
    TokenizerConfig,
)
from microblog_ranking.document_weights import build_document_weights
from microblog_ranking.entities import Document, Query, RankedDocument
from microblog_ranking.index import InvertedIndex
from microblog_ranking.models import KeyedVectorsOracle, load_keyed_vectors
from microblog_ranking.rerank import SemanticReranker
from microblog_ranking.scoring import CosineScorer
from microblog_ranking.tokenizer import MicroblogTokenizer, load_default_tokenizer
from microblog_ranking.trec import parse_collection, parse_queries, parse_stop_words, write_run

logger = logging.getLogger(__name__)


@dataclass
class IndexedCollection:
    """Everything the query phase needs from the build phase."""

    index: InvertedIndex
    document_terms: dict[str, list[str]] = field(default_factory=dict)
    document_weights: dict[str, float] = field(default_factory=dict)


def build_index(
    documents: Sequence[Document],
    tokenizer: MicroblogTokenizer,
    stop_words: Iterable[str] = (),
    weight_config: DocumentWeightConfig = DocumentWeightConfig(),
    show_progress: bool = True,
) -> IndexedCollection:
    """Tokenize and index every document in order, then drop stop words."""
    start = time.perf_counter()
    index = InvertedIndex(len(documents))
    document_terms: dict[str, list[str]] = {}

    for document in tqdm(documents, desc="Indexing", unit="doc", disable=not show_progress):
        terms = tokenizer.tokenize(document.text)
        document_terms[document.id] = terms
        index.add_document(document.id, terms)

    document_weights = build_document_weights(documents, document_terms, weight_config)

    vocabulary_size = len(index)
    index.filter_stop_words(stop_words)
    logger.info(
        "Indexed %d documents in %.1f ms (%d terms, %d after stop-word filtering)",
        len(documents),
        (time.perf_counter() - start) * 1000,
        vocabulary_size,
        len(index),
    )
    return IndexedCollection(index, document_terms, document_weights)


def rank_queries(
    queries: Sequence[Query],
    collection: IndexedCollection,
    scorer: CosineScorer,
    reranker: SemanticReranker | None = None,
    top_k: int | None = None,
    num_workers: int = DEFAULT_NUM_WORKERS,
) -> dict[str, list[RankedDocument]]:
    """Cosine-rank every query, optionally re-ranking the top-k with the similarity oracle."""
    start = time.perf_counter()
    rankings = scorer.batch_cosine_score(
        queries,
        collection.index,
        collection.document_weights,
        top_k=top_k,
        num_workers=num_workers,
    )

    if reranker is not None:
        for query in queries:
            query_terms = scorer.tokenizer.tokenize(query.text)
            rankings[query.id] = reranker.rerank(
                query_terms, rankings[query.id], collection.document_terms, top_k
            )

    logger.info(
        "Ranked %d queries in %.1f ms%s",
        len(queries),
        (time.perf_counter() - start) * 1000,
        " (semantic re-ranking)" if reranker is not None else "",
    )
    return rankings


def run(
    config: RunConfig,
    tokenizer_config: TokenizerConfig = TokenizerConfig(),
    scoring_config: ScoringConfig = ScoringConfig(),
    rerank_config: RerankConfig = RerankConfig(),
) -> dict[str, list[RankedDocument]]:
    """
    Load resources, build the index, rank all topics and write the run file.

    Any loader or model error propagates: a run never proceeds on partial data.
    """
    documents = parse_collection(config.collection_path)
    queries = sorted(parse_queries(config.queries_path), key=lambda query: query.id)
    stop_words = parse_stop_words(config.stop_words_path)
    logger.info(
        "Loaded %d documents, %d queries, %d stop words",
        len(documents),
        len(queries),
        len(stop_words),
    )

    tokenizer = load_default_tokenizer(tokenizer_config, config.replacements_path)
    reranker = None
    if config.embeddings_path is not None:
        vectors = load_keyed_vectors(config.embeddings_path, binary=config.binary_embeddings)
        reranker = SemanticReranker(KeyedVectorsOracle(vectors), stop_words, rerank_config)

    collection = build_index(documents, tokenizer, stop_words, show_progress=config.show_progress)
    scorer = CosineScorer(tokenizer, scoring_config)
    rankings = rank_queries(
        queries,
        collection,
        scorer,
        reranker,
        top_k=config.top_k,
        num_workers=config.num_workers,
    )

    lines = write_run(config.output_path, rankings, config.run_tag)
    logger.info("Wrote %d result lines to %s", lines, config.output_path)
    return rankings
