"""In-memory inverted index with BM25F ranking.

Documents are analyzed field by field into postings (term -> documents with
term frequency) and per-field document lengths. Queries are OR-combined: every
analyzed query term is expanded against the field vocabulary and contributes
``idf * bm25 * field_boost * match_weight`` to each matching document.

Term expansion:
- exact term match, weight 1.0
- prefix match (query term is a prefix of a longer indexed term), so a
  partially typed trailing word still matches
- fuzzy match within an edit distance proportional to the term length

Expanded matches are discounted so exact hits always outrank them.
"""

from __future__ import annotations

from collections import Counter, defaultdict
from collections.abc import Iterable, Mapping
import logging
from typing import Any

from coolify_mcp.search.analyzers import Analyzer, get_analyzer
from coolify_mcp.search.fuzzy import DEFAULT_FUZZINESS, find_fuzzy_matches, find_prefix_matches, get_max_edit_distance
from coolify_mcp.search.models import Posting, RankedDocument
from coolify_mcp.search.schema import Schema, create_docs_schema
from coolify_mcp.search.stats import FieldLengthStats, bm25, calculate_idf, compute_field_length_stats


logger = logging.getLogger(__name__)

PREFIX_WEIGHT = 0.375
FUZZY_WEIGHT = 0.45


class DuplicateDocumentError(ValueError):
    """Raised when a document id is added to the index twice."""


class DocumentIndex:
    """Field-weighted full-text index over documents held in memory."""

    def __init__(
        self,
        schema: Schema | None = None,
        *,
        fuzziness: float = DEFAULT_FUZZINESS,
        prefix: bool = True,
        k1: float = 1.2,
        b: float = 0.7,
    ) -> None:
        self.schema = schema or create_docs_schema()
        self.fuzziness = fuzziness
        self.prefix = prefix
        self.k1 = k1
        self.b = b
        self._analyzers: dict[str, Analyzer] = {f.name: get_analyzer(f.analyzer_name) for f in self.schema}
        self._postings: dict[str, dict[str, list[Posting]]] = {f.name: {} for f in self.schema}
        self._field_lengths: dict[str, dict[int, int]] = {f.name: {} for f in self.schema}
        self._doc_ids: set[int] = set()
        self._sorted_vocabulary: dict[str, list[str]] = {}
        self._length_buckets: dict[str, dict[int, list[str]]] = {}
        self._expansions: dict[tuple[str, str], dict[str, float]] = {}
        self._field_stats: dict[str, FieldLengthStats] | None = None

    def __len__(self) -> int:
        return len(self._doc_ids)

    @property
    def document_count(self) -> int:
        return len(self._doc_ids)

    def vocabulary_size(self, field_name: str) -> int:
        return len(self._postings.get(field_name, {}))

    def add(self, document: Mapping[str, Any] | Any) -> int:
        """Index one document; returns its id."""
        doc_id = self._read_unique(document)
        if doc_id in self._doc_ids:
            msg = f"Duplicate document for unique field '{self.schema.unique_field}': {doc_id}"
            raise DuplicateDocumentError(msg)

        for schema_field in self.schema:
            value = _read_field(document, schema_field.name)
            if not value:
                continue
            tokens = self._analyzers[schema_field.name](str(value))
            if not tokens:
                continue
            self._field_lengths[schema_field.name][doc_id] = len(tokens)
            field_postings = self._postings[schema_field.name]
            for term, frequency in Counter(token.text for token in tokens).items():
                field_postings.setdefault(term, []).append(Posting(doc_id=doc_id, frequency=frequency))

        self._doc_ids.add(doc_id)
        self._sorted_vocabulary.clear()
        self._length_buckets.clear()
        self._expansions.clear()
        self._field_stats = None
        return doc_id

    def add_all(self, documents: Iterable[Mapping[str, Any] | Any]) -> int:
        """Index every document; returns the number added."""
        added = 0
        for document in documents:
            self.add(document)
            added += 1
        logger.debug("Indexed %d documents (%d total)", added, len(self._doc_ids))
        return added

    def search(self, query: str) -> list[RankedDocument]:
        """Return documents matching any query term, best first.

        Documents without a positive score are never returned. Equal scores
        are ordered by ascending document id.
        """
        if not self._doc_ids or not query.strip():
            return []

        field_stats = self._get_field_stats()
        total_docs = len(self._doc_ids)
        doc_scores: dict[int, float] = defaultdict(float)
        doc_terms: dict[int, set[str]] = defaultdict(set)

        for schema_field in self.schema:
            stats = field_stats.get(schema_field.name)
            if stats is None or stats.document_count == 0:
                continue
            query_terms = self._analyze_query(query, schema_field.name)
            if not query_terms:
                continue

            field_postings = self._postings[schema_field.name]
            doc_lengths = self._field_lengths[schema_field.name]
            avg_length = max(stats.average_length, 1e-9)

            for term in query_terms:
                for candidate, match_weight in self._expand_term(term, schema_field.name).items():
                    postings = field_postings[candidate]
                    idf = calculate_idf(len(postings), total_docs)
                    for posting in postings:
                        doc_length = doc_lengths.get(posting.doc_id, posting.frequency)
                        weight = bm25(posting.frequency, doc_length, avg_length, k1=self.k1, b=self.b)
                        if weight <= 0:
                            continue
                        doc_scores[posting.doc_id] += idf * weight * schema_field.boost * match_weight
                        doc_terms[posting.doc_id].add(term)

        ranked = [
            RankedDocument(doc_id=doc_id, score=score, terms=tuple(sorted(doc_terms[doc_id])))
            for doc_id, score in doc_scores.items()
            if score > 0
        ]
        ranked.sort(key=lambda entry: (-entry.score, entry.doc_id))
        return ranked

    def _analyze_query(self, query: str, field_name: str) -> list[str]:
        seen: set[str] = set()
        terms: list[str] = []
        for token in self._analyzers[field_name](query):
            if token.text and token.text not in seen:
                seen.add(token.text)
                terms.append(token.text)
        return terms

    def _expand_term(self, term: str, field_name: str) -> dict[str, float]:
        """Map vocabulary terms matched by ``term`` to their match weight.

        Results are cached per (field, term) until the next ``add``.
        """
        cache_key = (field_name, term)
        cached = self._expansions.get(cache_key)
        if cached is not None:
            return cached

        field_postings = self._postings[field_name]
        expansions: dict[str, float] = {}
        if term in field_postings:
            expansions[term] = 1.0

        term_length = len(term)

        if self.prefix:
            for candidate in find_prefix_matches(term, self._get_sorted_vocabulary(field_name)):
                extra_chars = len(candidate) - term_length
                weight = PREFIX_WEIGHT * term_length / (term_length + 0.3 * extra_chars)
                if weight > expansions.get(candidate, 0.0):
                    expansions[candidate] = weight

        max_distance = get_max_edit_distance(term_length, self.fuzziness)
        if max_distance > 0:
            candidates = self._get_length_candidates(field_name, term_length, max_distance)
            for candidate, distance in find_fuzzy_matches(term, candidates, max_distance):
                if distance == 0:
                    continue
                weight = FUZZY_WEIGHT * term_length / (term_length + distance)
                if weight > expansions.get(candidate, 0.0):
                    expansions[candidate] = weight

        self._expansions[cache_key] = expansions
        return expansions

    def _get_sorted_vocabulary(self, field_name: str) -> list[str]:
        vocabulary = self._sorted_vocabulary.get(field_name)
        if vocabulary is None:
            vocabulary = sorted(self._postings[field_name])
            self._sorted_vocabulary[field_name] = vocabulary
        return vocabulary

    def _get_length_candidates(self, field_name: str, term_length: int, max_distance: int) -> list[str]:
        """Return vocabulary terms whose length is within ``max_distance`` of ``term_length``."""
        buckets = self._length_buckets.get(field_name)
        if buckets is None:
            buckets = defaultdict(list)
            for candidate in self._get_sorted_vocabulary(field_name):
                buckets[len(candidate)].append(candidate)
            self._length_buckets[field_name] = buckets

        candidates: list[str] = []
        for length in range(max(term_length - max_distance, 1), term_length + max_distance + 1):
            candidates.extend(buckets.get(length, ()))
        return candidates

    def _get_field_stats(self) -> dict[str, FieldLengthStats]:
        if self._field_stats is None:
            self._field_stats = compute_field_length_stats(self._field_lengths)
        return self._field_stats

    def _read_unique(self, document: Mapping[str, Any] | Any) -> int:
        value = _read_field(document, self.schema.unique_field)
        if value is None:
            msg = f"Document missing unique field '{self.schema.unique_field}'"
            raise ValueError(msg)
        return int(value)


def _read_field(document: Mapping[str, Any] | Any, name: str) -> Any:
    if isinstance(document, Mapping):
        return document.get(name)
    return getattr(document, name, None)
