"""
TREC resource loaders and run-file writer.

Collection: one document per line, "<ID>\t<text>"; only the digits of the ID are kept.
Topics:     XML root whose children carry an `id` attribute and a <title> element.
Stop words: one word per line.
Run file:   "{query_id} Q0 {doc_id} {rank} {score:.6f} {run_tag}" per ranked document.

Malformed resources raise ValueError; the pipeline treats every loader error
as fatal rather than continuing with partial data.
"""

from __future__ import annotations

import re
import uuid
import xml.etree.ElementTree as ET
from collections.abc import Mapping, Sequence
from pathlib import Path

from microblog_ranking.entities import Document, Query, RankedDocument

_NON_DIGITS = re.compile(r"[^0-9]")


def parse_collection(path: str | Path) -> list[Document]:
    """
    Parse a tab-delimited TREC microblog collection.

    Raises:
        FileNotFoundError: if the file does not exist.
        ValueError: on a line without exactly two tab-separated fields or with
            no digits in its ID.
    """
    documents = []
    with open(path, encoding="utf-8") as f:
        for line_number, line in enumerate(f, start=1):
            if not line.strip():
                continue
            segments = line.rstrip("\r\n").split("\t")
            if len(segments) != 2:
                raise ValueError(
                    f"{path}:{line_number}: expected '<id>\\t<text>', got {len(segments)} field(s)"
                )
            doc_id = _NON_DIGITS.sub("", segments[0].strip())
            if not doc_id:
                raise ValueError(f"{path}:{line_number}: document ID has no digits: {segments[0]!r}")
            # content is left untouched apart from surrounding whitespace; the tokenizer owns it
            documents.append(Document(doc_id, segments[1].strip()))
    return documents


def parse_queries(path: str | Path) -> list[Query]:
    """
    Parse TREC topics from XML.

    Raises:
        FileNotFoundError: if the file does not exist.
        ValueError: if the XML is malformed, a topic lacks an ID or a title,
            or two topics share an ID.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Topics file not found: '{path}'")
    try:
        root = ET.parse(path).getroot()
    except ET.ParseError as e:
        raise ValueError(f"Failed to parse topics '{path}': {e}") from e

    queries = []
    seen: set[str] = set()
    for position, topic in enumerate(root, start=1):
        query_id = (topic.get("id") or "").strip()
        if not query_id:
            raise ValueError(f"{path}: topic #{position} has no 'id' attribute")
        title = topic.find("title")
        text = (title.text or "").strip() if title is not None else ""
        if not text:
            raise ValueError(f"{path}: topic '{query_id}' has no title")
        if query_id in seen:
            raise ValueError(f"{path}: duplicate topic id '{query_id}'")
        seen.add(query_id)
        queries.append(Query(query_id, text))
    return queries


def parse_stop_words(path: str | Path) -> frozenset[str]:
    with open(path, encoding="utf-8") as f:
        return frozenset(word for word in (line.strip() for line in f) if word)


def format_run_line(query_id: str, rank: int, document: RankedDocument, run_tag: str) -> str:
    return f"{query_id} Q0 {document.doc_id} {rank} {document.score:.6f} {run_tag}"


def write_run(
    path: str | Path,
    rankings: Mapping[str, Sequence[RankedDocument]],
    run_tag: str | None = None,
) -> int:
    """
    Write rankings as a TREC run file, queries in ID order, ranks 1-based.

    Returns:
        Number of lines written.
    """
    run_tag = run_tag or uuid.uuid4().hex
    lines = 0
    with open(path, "w", encoding="utf-8") as f:
        for query_id in sorted(rankings):
            for rank, document in enumerate(rankings[query_id], start=1):
                f.write(format_run_line(query_id, rank, document, run_tag) + "\n")
                lines += 1
    return lines
