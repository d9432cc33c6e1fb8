from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Document:
    """A single microblog post from the collection."""

    id: str
    text: str


class Query:
    """
    A topic to rank documents against.

    The ID may be reassigned (e.g. to match a run-file convention); the text is
    fixed once parsed.
    """

    __slots__ = ("id", "_text")

    def __init__(self, id: str, text: str):
        self.id = id
        self._text = text

    @property
    def text(self) -> str:
        return self._text

    def __repr__(self) -> str:
        return f"Query(id={self.id!r}, text={self._text!r})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Query):
            return NotImplemented
        return self.id == other.id and self._text == other._text

    def __hash__(self) -> int:
        return hash((self.id, self._text))


@dataclass(frozen=True)
class EntitySpan:
    """Half-open token range [start, end) recognized as a named entity."""

    start: int
    end: int
    probability: float
    label: str = ""

    def __len__(self) -> int:
        return self.end - self.start


@dataclass(frozen=True)
class WeightedQueryTerm:
    """A query term with its importance weight and its frequency in the query."""

    term: str
    weight: float
    frequency: int = 1


@dataclass(frozen=True)
class RankedDocument:
    doc_id: str
    score: float
