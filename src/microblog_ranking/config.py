"""
Configuration for the microblog ranking pipeline.

Defaults can be overridden through environment variables, mirroring how the
batch runs are usually launched:

    MICROBLOG_TOP_K=1000               # Results kept per query (0 = all)
    MICROBLOG_EXPANSION_FACTOR=0.65    # Weight multiplier for expanded query variants
    MICROBLOG_ENTITY_THRESHOLD=0.75    # Minimum probability for entity coalescing
    MICROBLOG_MAX_ENTITY_LENGTH=3      # Longest entity span coalesced (0 = unbounded)
    MICROBLOG_RERANK_ALPHA=0.73        # Cosine share of the blended re-rank score
    MICROBLOG_RERANK_PENALTY=-0.1      # Contribution of unscorable / stop-word pairs
    MICROBLOG_NUM_WORKERS=8            # Worker threads for scoring and re-ranking
"""

from __future__ import annotations

import os
from dataclasses import dataclass

# =============================================================================
# Defaults
# =============================================================================

DEFAULT_TOP_K = int(os.environ.get("MICROBLOG_TOP_K", "1000")) or None
DEFAULT_EXPANSION_FACTOR = float(os.environ.get("MICROBLOG_EXPANSION_FACTOR", "0.65"))
DEFAULT_ENTITY_THRESHOLD = float(os.environ.get("MICROBLOG_ENTITY_THRESHOLD", "0.75"))
DEFAULT_MAX_ENTITY_LENGTH = int(os.environ.get("MICROBLOG_MAX_ENTITY_LENGTH", "3")) or None
DEFAULT_RERANK_ALPHA = float(os.environ.get("MICROBLOG_RERANK_ALPHA", "0.73"))
DEFAULT_RERANK_PENALTY = float(os.environ.get("MICROBLOG_RERANK_PENALTY", "-0.1"))
DEFAULT_NUM_WORKERS = int(os.environ.get("MICROBLOG_NUM_WORKERS", "8"))

# Proper nouns and coalesced entities outrank plain terms
PROPER_NOUN_WEIGHT = 1.2
BASE_TERM_WEIGHT = 1.0

# Minimum queries before batch scoring goes parallel
MIN_QUERIES_FOR_PARALLEL = 10


@dataclass(frozen=True)
class TokenizerConfig:
    """Normalization switches and named-entity thresholds."""

    keep_question_marks: bool = True
    fold_uppercase: bool = True
    expand_hashtags: bool = True
    split_inner_words: bool = True
    entity_probability_threshold: float = DEFAULT_ENTITY_THRESHOLD
    max_entity_length: int | None = DEFAULT_MAX_ENTITY_LENGTH


@dataclass(frozen=True)
class ScoringConfig:
    """Query weighting parameters for the cosine scorer."""

    expansion_factor: float = DEFAULT_EXPANSION_FACTOR
    proper_noun_weight: float = PROPER_NOUN_WEIGHT
    base_weight: float = BASE_TERM_WEIGHT
    dampen_by_max_query_tf: bool = True


@dataclass(frozen=True)
class RerankConfig:
    """Semantic re-ranking blend."""

    alpha: float = DEFAULT_RERANK_ALPHA
    penalty: float = DEFAULT_RERANK_PENALTY
    max_workers: int = DEFAULT_NUM_WORKERS


@dataclass(frozen=True)
class DocumentWeightConfig:
    """Surface-level quality signals folded into each document's weight factor."""

    max_punctuation_penalty: float = 0.5
    question_factor: float = 0.9
    shouting_ratio: float = 0.5
    shouting_factor: float = 0.85


@dataclass
class RunConfig:
    """Paths and switches for a single batch run."""

    collection_path: str
    queries_path: str
    stop_words_path: str
    output_path: str
    replacements_path: str | None = None
    embeddings_path: str | None = None
    binary_embeddings: bool = False
    run_tag: str | None = None
    top_k: int | None = DEFAULT_TOP_K
    num_workers: int = DEFAULT_NUM_WORKERS
    show_progress: bool = True
