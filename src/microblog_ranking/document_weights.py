"""
Per-document weight factors from surface-level quality signals.

A factor starts at 1.0 (neutral) and only ever shrinks: each signal is folded
in as min(current, current * factor), so a document never recovers once
penalized. Signals:

- punctuation density (URLs excluded)
- question marks ("?" tokens signal speculation rather than information)
- shouting (share of ALL-CAPS words)
"""

from __future__ import annotations

import re
from collections.abc import Mapping, Sequence

from microblog_ranking.config import DocumentWeightConfig
from microblog_ranking.entities import Document
from microblog_ranking.tokenizer import QUESTION_MARK, stem_uri

_LETTERS = re.compile(r"[^A-Za-z]+")


def apply_factor(current: float, factor: float) -> float:
    """Fold a new penalty into the running factor; never increases, never below 0."""
    return max(0.0, min(current, current * factor))


def punctuation_density(text: str) -> float:
    """Share of non-space characters that are not alphanumeric, ignoring URLs."""
    characters = [
        char
        for segment in text.split()
        if stem_uri(segment) is None
        for char in segment
    ]
    if not characters:
        return 0.0
    noise = sum(1 for char in characters if not char.isalnum())
    return noise / len(characters)


def shouting_ratio(text: str) -> float:
    """Share of words (2+ letters) written entirely in capitals."""
    words = [_LETTERS.sub("", segment) for segment in text.split() if stem_uri(segment) is None]
    words = [word for word in words if len(word) > 1]
    if not words:
        return 0.0
    return sum(1 for word in words if word.isupper()) / len(words)


def document_weight(
    text: str,
    tokens: Sequence[str],
    config: DocumentWeightConfig = DocumentWeightConfig(),
) -> float:
    weight = 1.0
    weight = apply_factor(
        weight, 1.0 - min(punctuation_density(text), config.max_punctuation_penalty)
    )
    # "?", "??", "???" all survive cleanup as question tokens
    if any(token and not token.strip(QUESTION_MARK) for token in tokens):
        weight = apply_factor(weight, config.question_factor)
    if shouting_ratio(text) > config.shouting_ratio:
        weight = apply_factor(weight, config.shouting_factor)
    return weight


def build_document_weights(
    documents: Sequence[Document],
    document_terms: Mapping[str, Sequence[str]],
    config: DocumentWeightConfig = DocumentWeightConfig(),
) -> dict[str, float]:
    """Weight factor for every document, computed in collection order."""
    return {
        document.id: document_weight(document.text, document_terms.get(document.id, ()), config)
        for document in documents
    }
