"""
Abbreviation / short-hand replacement table.

Rules are (regex, replacement) pairs applied to whole tokens: the first rule
whose pattern matches the entire token wins, partial matches are ignored.
This is a cheap precursor to spell correction ("plz" -> "please",
"wym" -> "what do you mean").
"""

from __future__ import annotations

import json
import re
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from pathlib import Path

DEFAULT_REPLACEMENTS_PATH = Path(__file__).parent / "data" / "replacements.json"


@dataclass(frozen=True)
class RegexReplacement:
    regex: str
    replacement: str

    @property
    def pattern(self) -> re.Pattern[str]:
        return re.compile(self.regex)


class ReplacementTable:
    """Ordered, immutable list of compiled replacement rules."""

    def __init__(self, rules: Iterable[RegexReplacement] = ()):
        self._rules: tuple[tuple[re.Pattern[str], str], ...] = tuple(
            (rule.pattern, rule.replacement) for rule in rules
        )

    def __len__(self) -> int:
        return len(self._rules)

    @classmethod
    def from_json(cls, path: str | Path = DEFAULT_REPLACEMENTS_PATH) -> ReplacementTable:
        """
        Load rules from a JSON list of {"regex": ..., "replacement": ...} objects.

        Raises:
            FileNotFoundError: if the file does not exist.
            ValueError: if the file is not valid JSON, an entry is missing a
                field, or a regex does not compile.
        """
        path = Path(path)
        with open(path, encoding="utf-8") as f:
            try:
                entries = json.load(f)
            except json.JSONDecodeError as e:
                raise ValueError(f"Failed to parse replacements '{path}': {e}") from e

        if not isinstance(entries, list):
            raise ValueError(f"Replacements '{path}' must be a JSON list")

        rules = []
        for position, entry in enumerate(entries):
            try:
                rule = RegexReplacement(regex=entry["regex"], replacement=entry["replacement"])
                re.compile(rule.regex)
            except (KeyError, TypeError) as e:
                raise ValueError(
                    f"Replacement #{position} in '{path}' needs 'regex' and 'replacement'"
                ) from e
            except re.error as e:
                raise ValueError(f"Replacement #{position} in '{path}' has a bad regex: {e}") from e
            rules.append(rule)
        return cls(rules)

    def replace(self, token: str) -> str:
        for pattern, replacement in self._rules:
            if pattern.fullmatch(token):
                return replacement
        return token

    def apply(self, tokens: Sequence[str]) -> list[str]:
        return [self.replace(token) for token in tokens]
