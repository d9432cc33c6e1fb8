"""
Rank a TREC microblog collection against a set of topics.

Run with:
    microblog-rank --collection trec-dataset.txt --queries trec-queries.xml \
        --stop-words stop-words.txt --output Results.txt

    # With semantic re-ranking from pretrained word vectors
    microblog-rank ... --embeddings vectors.kv
"""

from __future__ import annotations

import argparse
import sys
from dataclasses import replace

from microblog_ranking.config import (
    DEFAULT_NUM_WORKERS,
    DEFAULT_TOP_K,
    RerankConfig,
    RunConfig,
)
from microblog_ranking.logging_utils import get_logger
from microblog_ranking.models import ModelLoadError
from microblog_ranking.pipeline import run


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="microblog-rank",
        description="TF-IDF cosine ranking of microblog posts against TREC topics.",
    )
    parser.add_argument("--collection", required=True, help="Tab-delimited TREC collection")
    parser.add_argument("--queries", required=True, help="TREC topics (XML)")
    parser.add_argument("--stop-words", required=True, help="Stop-word list, one per line")
    parser.add_argument("--output", default="Results.txt", help="Run file to write")
    parser.add_argument("--replacements", default=None, help="Abbreviation table (JSON)")
    parser.add_argument("--embeddings", default=None, help="Word vectors enabling semantic re-ranking")
    parser.add_argument(
        "--binary-embeddings",
        action="store_true",
        help="Embeddings are in binary word2vec format",
    )
    parser.add_argument(
        "--top-k",
        type=int,
        default=DEFAULT_TOP_K or 0,
        help="Results kept per query (0 = all)",
    )
    parser.add_argument("--run-tag", default=None, help="Run identifier (default: random UUID)")
    parser.add_argument("--workers", type=int, default=DEFAULT_NUM_WORKERS, help="Worker threads")
    parser.add_argument("--no-progress", action="store_true", help="Disable progress bars")
    parser.add_argument("--log-file", default=None, help="Also log to Logs/<name>.log")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logger = get_logger("microblog_ranking", args.log_file)

    top_k = args.top_k or None
    config = RunConfig(
        collection_path=args.collection,
        queries_path=args.queries,
        stop_words_path=args.stop_words,
        output_path=args.output,
        replacements_path=args.replacements,
        embeddings_path=args.embeddings,
        binary_embeddings=args.binary_embeddings,
        run_tag=args.run_tag,
        top_k=top_k,
        num_workers=args.workers,
        show_progress=not args.no_progress,
    )

    try:
        run(
            config,
            rerank_config=replace(RerankConfig(), max_workers=args.workers),
        )
    except (ValueError, OSError, ModelLoadError) as e:
        logger.error("Run aborted: %s", e)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
