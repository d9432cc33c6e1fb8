"""
Microblog tokenizer: raw post text -> canonical sequence of terms.

Pipeline (each stage consumes the previous stage's output):
1. URI stemming        - segments with a URL host become "www.<host>" and skip all later stages
2. Boundary tokenizing - remaining text is segmented by the injected boundary provider
3. Character cleanup   - strip noise characters, drop 1-char tokens except "?"
4. Case folding        - ALL-CAPS tokens are lowercased; mixed case is kept for entity detection
5. Lexical expansion   - inner-word splitting (BBCNewsNetwork -> News, Network, BBC),
                         then hashtag expansion (#beach -> beach); originals are kept
6. Replacements        - whole-token abbreviation table (plz -> please)
7. Entity coalescing   - contiguous tokens recognized as one named entity become one term

Usage:
    from microblog_ranking.tokenizer import load_default_tokenizer

    tokenizer = load_default_tokenizer()
    tokenizer.tokenize("Watching #BBCNews with Barack Obama http://bit.ly/x1")
"""

from __future__ import annotations

import re
from collections.abc import Sequence
from pathlib import Path
from urllib.parse import urlsplit

from nltk.stem import PorterStemmer

from microblog_ranking.config import TokenizerConfig
from microblog_ranking.entities import EntitySpan
from microblog_ranking.models import (
    EntityRecognizer,
    ModelLoadError,
    TokenBoundaryProvider,
    TweetBoundaryProvider,
    default_entity_recognizers,
)
from microblog_ranking.replacements import DEFAULT_REPLACEMENTS_PATH, ReplacementTable

_WWW_PREFIX = re.compile(r"^w+\.")
_NOISE = re.compile(r"[^#@0-9a-zA-Z]+")
_NOISE_KEEP_QUESTION = re.compile(r"[^?#@0-9a-zA-Z]+")
_SHOUTING = re.compile(r"[A-Z]{2,}")
_INNER_WORD = re.compile(r"[A-Z][a-z]+")
_HASHTAG = re.compile(r"#+[A-Za-z0-9_]+")

QUESTION_MARK = "?"

_STEMMER = PorterStemmer()


# =============================================================================
# Term variants
# =============================================================================


def term_variants(term: str, stem: bool = False) -> list[str]:
    """
    Linguistic variants of a term: capitalized, lowercase, UPPERCASE (and the
    Porter stem when `stem` is set), for the whole term and each of its words.

    Every variant v satisfies v in term_variants(v, stem).
    """
    roots = dict.fromkeys(term.split())
    roots[term] = None

    variants: dict[str, None] = {}
    for root in roots:
        lower = root.lower()
        variants[lower.capitalize()] = None
        variants[lower] = None
        variants[root.upper()] = None
        if stem:
            variants[_STEMMER.stem(lower)] = None
    return [variant for variant in variants if variant]


def stem_uri(segment: str) -> str | None:
    """'https://www.bit.ly/1294ndkj' -> 'www.bit.ly'; None if the segment has no URL host."""
    try:
        host = urlsplit(segment).hostname
    except ValueError:
        return None
    if not host:
        return None
    return "www." + _WWW_PREFIX.sub("", host, count=1)


# =============================================================================
# Tokenizer
# =============================================================================


class MicroblogTokenizer:
    """
    Normalizer turning microblog text into weighted-term candidates.

    Args:
        boundary_provider: Segments already URI-stemmed text into raw tokens.
        entity_recognizers: Person, location and organization recognizers.
        replacements: Abbreviation table (empty table if None).
        config: Normalization switches and entity thresholds.
    """

    def __init__(
        self,
        boundary_provider: TokenBoundaryProvider,
        entity_recognizers: Sequence[EntityRecognizer] = (),
        replacements: ReplacementTable | None = None,
        config: TokenizerConfig = TokenizerConfig(),
    ):
        self.boundary_provider = boundary_provider
        self.entity_recognizers = tuple(entity_recognizers)
        self.replacements = replacements if replacements is not None else ReplacementTable()
        self.config = config
        self._noise = _NOISE_KEEP_QUESTION if config.keep_question_marks else _NOISE

    def tokenize(self, text: str) -> list[str]:
        """Run the full normalization pipeline over a document or query."""
        uri_tokens: list[str] = []
        remainder: list[str] = []
        for segment in text.split():
            stemmed = stem_uri(segment)
            if stemmed is None:
                remainder.append(segment)
            else:
                uri_tokens.append(stemmed)

        raw_tokens = self.boundary_provider.segment(" ".join(remainder)) if remainder else []
        tokens = [token for token in map(self.clean_token, raw_tokens) if token is not None]

        if self.config.split_inner_words:
            tokens = self.expand_inner_words(tokens)
        if self.config.expand_hashtags:
            tokens = self.expand_hashtags(tokens)

        tokens = self.replacements.apply(tokens)
        return uri_tokens + self.coalesce_named_entities(tokens)

    def clean_token(self, raw_token: str) -> str | None:
        """Strip noise characters and fold shouting case; None if nothing meaningful is left."""
        token = self._noise.sub("", raw_token).rstrip("#@")
        if len(token) <= 1 and token != QUESTION_MARK:
            return None
        if token == QUESTION_MARK and not self.config.keep_question_marks:
            return None
        if self.config.fold_uppercase and _SHOUTING.fullmatch(token):
            token = token.lower()
        return token

    @staticmethod
    def expand_inner_words(tokens: Sequence[str]) -> list[str]:
        """
        Delineate compounded words, keeping the original token.

        BBCNewsNetwork -> BBCNewsNetwork, News, Network, BBC
        """
        expanded = list(tokens)
        for token in tokens:
            matches = [match.group() for match in _INNER_WORD.finditer(token)]
            if len(matches) > 1 or (len(matches) == 1 and len(matches[0]) < len(token)):
                expanded.extend(matches)
                expanded.extend(rest for rest in _INNER_WORD.split(token) if len(rest) > 1)
        return expanded

    @staticmethod
    def expand_hashtags(tokens: Sequence[str]) -> list[str]:
        """#beach -> #beach, beach"""
        expanded = list(tokens)
        expanded.extend(token.lstrip("#") for token in tokens if _HASHTAG.fullmatch(token))
        return expanded

    def find_named_entities(self, tokens: Sequence[str]) -> list[EntitySpan]:
        """All spans from every recognizer, unfiltered."""
        spans: list[EntitySpan] = []
        for recognizer in self.entity_recognizers:
            spans.extend(recognizer.find(tokens))
        return spans

    def coalesce_named_entities(
        self,
        tokens: Sequence[str],
        probability_threshold: float | None = None,
        max_entity_length: int | None = None,
    ) -> list[str]:
        """
        Merge recognized multi-token entities into single space-joined terms.

        Shorter spans are applied first (rarely do long runs of words form a
        meaningful entity), then more probable ones. A span is skipped if any
        of its positions was consumed by an earlier span.
        """
        if not self.entity_recognizers or not tokens:
            return list(tokens)
        if probability_threshold is None:
            probability_threshold = self.config.entity_probability_threshold
        if max_entity_length is None:
            max_entity_length = self.config.max_entity_length

        arena: list[str | None] = list(tokens)
        consumed = [False] * len(arena)
        spans = sorted(
            self.find_named_entities(tokens),
            key=lambda span: (len(span), -span.probability),
        )
        for span in spans:
            if span.probability < probability_threshold:
                continue
            if max_entity_length is not None and len(span) > max_entity_length:
                continue
            # Single tokens are already one term
            if len(span) < 2 or span.start < 0 or span.end > len(arena):
                continue
            if any(consumed[span.start : span.end]):
                continue

            arena[span.start] = " ".join(arena[span.start : span.end])
            for position in range(span.start, span.end):
                consumed[position] = True
                if position > span.start:
                    arena[position] = None

        return [token for token in arena if token is not None]

    def normalize(self, term: str, stem: bool = False) -> list[str]:
        return term_variants(term, stem=stem)


def load_default_tokenizer(
    config: TokenizerConfig = TokenizerConfig(),
    replacements_path: str | Path | None = None,
) -> MicroblogTokenizer:
    """
    Tokenizer backed by NLTK models and the replacement table.

    Raises:
        ModelLoadError: if a model or the replacement table cannot be found.
        ValueError: if the replacement table is malformed.
    """
    path = Path(replacements_path) if replacements_path is not None else DEFAULT_REPLACEMENTS_PATH
    try:
        replacements = ReplacementTable.from_json(path)
    except FileNotFoundError as e:
        raise ModelLoadError(f"Failed to locate replacement table: '{path}'") from e

    return MicroblogTokenizer(
        TweetBoundaryProvider(),
        default_entity_recognizers(),
        replacements,
        config,
    )
