"""
Pretrained-model collaborators used by the tokenizer and the re-ranker.

The core only depends on the protocols below. Concrete adapters wrap NLTK
(token boundaries, named-entity chunking) and gensim (word-embedding
similarity); tests substitute lightweight stubs.

Usage:
    from microblog_ranking import models

    boundaries = models.TweetBoundaryProvider()
    persons = models.NltkEntityRecognizer(models.PERSON_LABELS)
    oracle = models.KeyedVectorsOracle(models.load_keyed_vectors("vectors.kv"))
"""

from __future__ import annotations

import json
from collections.abc import Iterable, Mapping, Sequence
from functools import lru_cache
from pathlib import Path
from typing import TYPE_CHECKING, Protocol

from microblog_ranking.entities import EntitySpan

if TYPE_CHECKING:
    from gensim.models import KeyedVectors


class ModelLoadError(RuntimeError):
    """A pretrained resource could not be located or parsed."""


# =============================================================================
# Protocols
# =============================================================================


class TokenBoundaryProvider(Protocol):
    def segment(self, text: str) -> list[str]: ...


class EntityRecognizer(Protocol):
    def find(self, tokens: Sequence[str]) -> list[EntitySpan]: ...


class SimilarityOracle(Protocol):
    def similarity(self, term_a: str, term_b: str) -> float | None: ...


# =============================================================================
# Token boundaries
# =============================================================================


class TweetBoundaryProvider:
    """Word segmentation tuned for microblog text (keeps #hashtags and @handles whole)."""

    def __init__(self):
        from nltk.tokenize import TweetTokenizer

        self._tokenizer = TweetTokenizer(preserve_case=True, reduce_len=False, strip_handles=False)

    def segment(self, text: str) -> list[str]:
        return self._tokenizer.tokenize(text)


# =============================================================================
# Named entities
# =============================================================================

PERSON_LABELS = frozenset({"PERSON"})
ORGANIZATION_LABELS = frozenset({"ORGANIZATION"})
LOCATION_LABELS = frozenset({"GPE", "LOCATION", "GSP"})

# ne_chunk is a hard classifier; every span it returns gets this confidence
NLTK_ENTITY_CONFIDENCE = 1.0


@lru_cache(maxsize=4096)
def _chunk(tokens: tuple[str, ...]):
    import nltk

    return nltk.ne_chunk(nltk.pos_tag(list(tokens)))


class NltkEntityRecognizer:
    """
    Named-entity recognizer over NLTK's maxent chunker, restricted to a label set.

    The three recognizers (person, organization, location) share one cached
    chunk per token sequence.

    Raises:
        ModelLoadError: if the tagger or chunker data is not installed.
    """

    def __init__(self, labels: Iterable[str], confidence: float = NLTK_ENTITY_CONFIDENCE):
        self.labels = frozenset(labels)
        self.confidence = confidence
        try:
            _chunk(("Probe",))
        except LookupError as e:
            raise ModelLoadError(f"NLTK entity chunker resources are missing: {e}") from e

    def find(self, tokens: Sequence[str]) -> list[EntitySpan]:
        if not tokens:
            return []
        from nltk import Tree

        spans = []
        position = 0
        for node in _chunk(tuple(tokens)):
            if isinstance(node, Tree):
                width = len(node.leaves())
                if node.label() in self.labels:
                    spans.append(
                        EntitySpan(position, position + width, self.confidence, node.label())
                    )
                position += width
            else:
                position += 1
        return spans


class GazetteerEntityRecognizer:
    """
    Dictionary-backed recognizer: exact (case-sensitive) phrase matches.

    Args:
        entries: Mapping of entity phrase (space-separated tokens) to probability.
        label: Label attached to every span.
    """

    def __init__(self, entries: Mapping[str, float], label: str = "ENTITY"):
        self.label = label
        self._phrases: dict[tuple[str, ...], float] = {
            tuple(phrase.split()): float(probability)
            for phrase, probability in entries.items()
            if phrase.split()
        }
        self._lengths = sorted({len(phrase) for phrase in self._phrases})

    @classmethod
    def from_json(cls, path: str | Path, label: str = "ENTITY") -> GazetteerEntityRecognizer:
        """Load a {"phrase": probability, ...} JSON object."""
        path = Path(path)
        try:
            with open(path, encoding="utf-8") as f:
                entries = json.load(f)
        except FileNotFoundError as e:
            raise ModelLoadError(f"Gazetteer not found: '{path}'") from e
        except json.JSONDecodeError as e:
            raise ValueError(f"Failed to parse gazetteer '{path}': {e}") from e
        if not isinstance(entries, dict):
            raise ValueError(f"Gazetteer '{path}' must be a JSON object of phrase -> probability")
        return cls(entries, label=label)

    def find(self, tokens: Sequence[str]) -> list[EntitySpan]:
        spans = []
        for start in range(len(tokens)):
            for length in self._lengths:
                end = start + length
                if end > len(tokens):
                    break
                probability = self._phrases.get(tuple(tokens[start:end]))
                if probability is not None:
                    spans.append(EntitySpan(start, end, probability, self.label))
        return spans


def default_entity_recognizers() -> tuple[NltkEntityRecognizer, NltkEntityRecognizer, NltkEntityRecognizer]:
    """Person, location, and organization recognizers, in that order."""
    return (
        NltkEntityRecognizer(PERSON_LABELS),
        NltkEntityRecognizer(LOCATION_LABELS),
        NltkEntityRecognizer(ORGANIZATION_LABELS),
    )


# =============================================================================
# Similarity oracle
# =============================================================================


class KeyedVectorsOracle:
    """
    Term similarity from pretrained word vectors.

    Multi-word terms (coalesced entities) are compared with the cosine of
    their mean vectors. Returns None when any word is out of vocabulary.
    """

    def __init__(self, vectors: KeyedVectors, lowercase: bool = True):
        self._vectors = vectors
        self.lowercase = lowercase

    def _words(self, term: str) -> list[str]:
        words = term.lower().split() if self.lowercase else term.split()
        if words and all(word in self._vectors for word in words):
            return words
        return []

    def similarity(self, term_a: str, term_b: str) -> float | None:
        words_a = self._words(term_a)
        words_b = self._words(term_b)
        if not words_a or not words_b:
            return None
        return float(self._vectors.n_similarity(words_a, words_b))


def load_keyed_vectors(path: str | Path, binary: bool = False) -> KeyedVectors:
    """
    Load word vectors saved by gensim, or in word2vec text/binary format.

    Raises:
        ModelLoadError: if the file is missing or unreadable.
    """
    from gensim.models import KeyedVectors

    path = Path(path)
    if not path.exists():
        raise ModelLoadError(f"Failed to locate embeddings: '{path}'")
    try:
        if binary or path.suffix == ".bin":
            return KeyedVectors.load_word2vec_format(str(path), binary=True)
        if path.suffix in {".txt", ".vec"}:
            return KeyedVectors.load_word2vec_format(str(path), binary=False)
        return KeyedVectors.load(str(path))
    except (OSError, ValueError, UnicodeDecodeError) as e:
        raise ModelLoadError(f"Failed to read embeddings '{path}': {e}") from e
