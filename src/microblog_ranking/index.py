"""
Inverted index: term -> {document ID -> term frequency}.

    DOC_1: I went to the beach today to get some sun at the beach
    DOC_2: The beach is very fun. I love going to the beach when the beach is warm

    { "beach" => { DOC_1 => 2, DOC_2 => 3 }, ... }

Document frequency and term frequency are always derived from the posting
lists, never tracked separately.

Lookup policy: `get_document_list` is an exact-term lookup. Linguistic
variants are NOT unioned in at query time; callers expand queries themselves
(see `CosineScorer.weigh_query`). Build and query time therefore agree on
every term's document frequency.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from functools import partial
from types import MappingProxyType

from microblog_ranking.tokenizer import term_variants

_EMPTY_POSTINGS: Mapping[str, int] = MappingProxyType({})


class InvertedIndex:
    """
    Append-only (during build) inverted index over a fixed-size collection.

    Args:
        total_documents: Collection size N, fixed for the lifetime of the index.
        normalizer: Produces the variants removed alongside each stop word.
            Defaults to case variants plus the Porter stem.
    """

    def __init__(
        self,
        total_documents: int,
        normalizer: Callable[[str], Iterable[str]] | None = None,
    ):
        if total_documents < 0:
            raise ValueError(f"total_documents must be non-negative, got {total_documents}")
        self._total_documents = total_documents
        self._normalizer = normalizer if normalizer is not None else partial(term_variants, stem=True)
        self._postings: dict[str, dict[str, int]] = {}
        self._columns: dict[str, int] = {}

    def __len__(self) -> int:
        return len(self._postings)

    def __contains__(self, term: object) -> bool:
        return term in self._postings

    def terms(self) -> list[str]:
        return list(self._postings)

    def add_term(self, term: str, doc_id: str) -> None:
        """Count one more occurrence of `term` in `doc_id`."""
        if not term or not doc_id:
            raise ValueError(f"Cannot index empty term/document: term={term!r}, doc_id={doc_id!r}")
        postings = self._postings.setdefault(term, {})
        postings[doc_id] = postings.get(doc_id, 0) + 1
        self._columns.setdefault(doc_id, len(self._columns))

    def add_document(self, doc_id: str, terms: Iterable[str]) -> None:
        for term in terms:
            self.add_term(term, doc_id)

    def filter_stop_words(self, stop_words: Iterable[str]) -> None:
        """Remove every stop word and all of its normalized variants. Irreversible."""
        for stop_word in stop_words:
            for variant in self._normalizer(stop_word):
                self._postings.pop(variant, None)
            self._postings.pop(stop_word, None)

    def get_document_list(self, term: str) -> Mapping[str, int]:
        """Read-only posting list for `term`; empty if the term is not indexed."""
        postings = self._postings.get(term)
        if postings is None:
            return _EMPTY_POSTINGS
        return MappingProxyType(postings)

    def get_term_frequency(self, term: str, doc_id: str) -> int:
        return self.get_document_list(term).get(doc_id, 0)

    def get_document_frequency(self, term: str) -> int:
        return len(self.get_document_list(term))

    def get_total_number_of_documents(self) -> int:
        return self._total_documents

    # -------------------------------------------------------------------------
    # Column layout for vectorized scoring
    # -------------------------------------------------------------------------

    @property
    def column_count(self) -> int:
        """Number of distinct documents that received at least one term."""
        return len(self._columns)

    @property
    def document_ids(self) -> list[str]:
        """Document IDs in column order."""
        return list(self._columns)

    def document_column(self, doc_id: str) -> int:
        return self._columns[doc_id]
