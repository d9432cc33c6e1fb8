"""
Shared stubs for the NLP collaborators so tests run without NLTK data or
pretrained vectors.
"""

import pytest

from microblog_ranking.entities import Document, EntitySpan
from microblog_ranking.index import InvertedIndex
from microblog_ranking.tokenizer import MicroblogTokenizer


class WhitespaceBoundaryProvider:
    def segment(self, text):
        return text.split()


class FixedSpanRecognizer:
    """Returns the same spans for every token sequence."""

    def __init__(self, spans):
        self.spans = list(spans)

    def find(self, tokens):
        return list(self.spans)


class DictOracle:
    """Symmetric similarity lookup; unknown pairs are unscorable."""

    def __init__(self, similarities):
        self.similarities = {frozenset(pair): value for pair, value in similarities.items()}

    def similarity(self, term_a, term_b):
        if term_a == term_b:
            return 1.0
        return self.similarities.get(frozenset((term_a, term_b)))


class FailingOracle(DictOracle):
    """Raises for any pair involving one of the `broken` terms."""

    def __init__(self, similarities, broken):
        super().__init__(similarities)
        self.broken = set(broken)

    def similarity(self, term_a, term_b):
        if term_a in self.broken or term_b in self.broken:
            raise RuntimeError(f"vector lookup failed for {term_a!r}/{term_b!r}")
        return super().similarity(term_a, term_b)


def span(start, end, probability=0.9, label="PERSON"):
    return EntitySpan(start, end, probability, label)


def build_index(tokenizer, documents, stop_words=()):
    index = InvertedIndex(len(documents))
    for document in documents:
        index.add_document(document.id, tokenizer.tokenize(document.text))
    index.filter_stop_words(stop_words)
    return index


@pytest.fixture
def tokenizer():
    return MicroblogTokenizer(WhitespaceBoundaryProvider())


@pytest.fixture
def beach_documents():
    return [
        Document("1", "I went to the beach today to get some sun at the beach"),
        Document("2", "The beach is very fun I love going to the beach when the beach is warm"),
        Document("3", "Stock markets fell sharply today"),
    ]
