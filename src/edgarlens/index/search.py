"""Lexical BM25 search over line-window chunks."""

from __future__ import annotations

import math
import re
from dataclasses import asdict, dataclass
from typing import List, Sequence

from edgarlens.errors import ValidationError
from edgarlens.models import Chunk
from edgarlens.utils.text import compact_whitespace, tokenize, trim_excerpt

QUERY_STOPWORDS = frozenset(
    {
        "a", "an", "and", "are", "as", "at", "be", "by", "for", "from",
        "how", "in", "into", "is", "it", "its", "of", "on", "or", "that",
        "the", "their", "there", "these", "they", "this", "to", "was",
        "were", "what", "when", "where", "which", "who", "why", "with",
    }
)

# Filing cover-page phrasing that matches many queries but answers none.
COVER_BOILERPLATE_PATTERNS = (
    re.compile(r"securities registered pursuant to section 12\(b\)", re.IGNORECASE),
    re.compile(r"indicate by check mark", re.IGNORECASE),
    re.compile(r"commission file number", re.IGNORECASE),
    re.compile(r"for the quarterly period ended", re.IGNORECASE),
    re.compile(r"for the fiscal year ended", re.IGNORECASE),
)
COVER_PAGE_MAX_LINE = 140
EXCERPT_MAX_CHARS = 1200


@dataclass(slots=True)
class SearchResult:
    rank: int
    score: float
    path: str
    accession: str | None
    line_start: int
    line_end: int
    excerpt: str

    def to_dict(self) -> dict:
        return asdict(self)


def _unique(values: Sequence[str]) -> list[str]:
    return list(dict.fromkeys(values))


def build_query_terms(query: str) -> list[str]:
    """Deduplicated query tokens with stop words removed when anything is left."""
    raw_tokens = tokenize(query)
    filtered = [token for token in raw_tokens if token not in QUERY_STOPWORDS]
    return _unique(filtered or raw_tokens)


def build_query_bigrams(query_terms: Sequence[str]) -> list[str]:
    return _unique([f"{left} {right}" for left, right in zip(query_terms, query_terms[1:])])


def count_term_hits(query_terms: Sequence[str], chunk: Chunk) -> int:
    return sum(1 for term in query_terms if chunk.term_frequency.get(term, 0) > 0)


def count_bigram_hits(text: str, query_bigrams: Sequence[str]) -> int:
    if not query_bigrams:
        return 0
    lowered = text.lower()
    return sum(1 for bigram in query_bigrams if bigram in lowered)


def looks_like_cover_boilerplate(chunk: Chunk) -> bool:
    if chunk.line_start > COVER_PAGE_MAX_LINE:
        return False
    return any(pattern.search(chunk.text) for pattern in COVER_BOILERPLATE_PATTERNS)


def document_frequencies(query_terms: Sequence[str], chunks: Sequence[Chunk]) -> dict[str, int]:
    return {
        term: sum(1 for chunk in chunks if chunk.term_frequency.get(term, 0) > 0)
        for term in query_terms
    }


def adjust_score(
    chunk: Chunk, base_score: float, query_terms: Sequence[str], query_bigrams: Sequence[str]
) -> float:
    """Apply coverage, phrase and boilerplate heuristics to a BM25 score."""
    if base_score <= 0:
        return 0.0

    term_hits = count_term_hits(query_terms, chunk)
    if len(query_terms) >= 3 and term_hits < 2:
        return 0.0

    coverage = term_hits / max(1, len(query_terms))
    multiplier = 1.0
    if coverage >= 1:
        multiplier *= 1.25
    elif coverage >= 0.7:
        multiplier *= 1.15
    elif coverage >= 0.5:
        multiplier *= 1.08
    elif len(query_terms) >= 3 and coverage <= 0.25:
        multiplier *= 0.8

    bigram_hits = count_bigram_hits(chunk.text, query_bigrams)
    if bigram_hits > 0:
        multiplier *= 1 + min(0.24, bigram_hits * 0.08)

    if looks_like_cover_boilerplate(chunk):
        multiplier *= 0.45

    return base_score * multiplier


class LexicalSearcher:
    """BM25 ranking with filing-specific re-ranking heuristics.

    Corpus statistics are computed from the chunks passed to each call and
    never cached between calls.
    """

    def __init__(self, *, k1: float = 1.2, b: float = 0.75) -> None:
        self.k1 = k1
        self.b = b

    def bm25_score(
        self,
        query_terms: Sequence[str],
        chunk: Chunk,
        doc_frequency: dict[str, int],
        total_chunks: int,
        average_length: float,
    ) -> float:
        normalized_length = chunk.token_count / average_length if average_length > 0 else 1.0
        score = 0.0
        for term in query_terms:
            tf = chunk.term_frequency.get(term, 0)
            if tf == 0:
                continue
            df = doc_frequency.get(term, 0)
            idf = math.log(1 + (total_chunks - df + 0.5) / (df + 0.5))
            denominator = tf + self.k1 * (1 - self.b + self.b * normalized_length)
            score += idf * (tf * (self.k1 + 1)) / denominator
        return score

    def search(self, query: str, chunks: Sequence[Chunk], *, top_k: int = 8) -> List[SearchResult]:
        if not chunks:
            return []

        query_terms = build_query_terms(query)
        if not query_terms:
            raise ValidationError("Query must contain at least one alphanumeric token")
        query_bigrams = build_query_bigrams(query_terms)

        doc_frequency = document_frequencies(query_terms, chunks)
        average_length = sum(chunk.token_count for chunk in chunks) / len(chunks)

        scored: list[tuple[float, Chunk]] = []
        for chunk in chunks:
            base = self.bm25_score(query_terms, chunk, doc_frequency, len(chunks), average_length)
            score = adjust_score(chunk, base, query_terms, query_bigrams)
            if score > 0:
                scored.append((score, chunk))

        # sorted() is stable: equal scores keep document then line order.
        scored = sorted(scored, key=lambda item: item[0], reverse=True)[:top_k]

        return [
            SearchResult(
                rank=index + 1,
                score=round(score, 6),
                path=chunk.doc_path,
                accession=chunk.accession,
                line_start=chunk.line_start,
                line_end=chunk.line_end,
                excerpt=trim_excerpt(compact_whitespace(chunk.text), EXCERPT_MAX_CHARS),
            )
            for index, (score, chunk) in enumerate(scored)
        ]
