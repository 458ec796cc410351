"""Unit tests for BM25 scoring helpers."""

import math

import pytest

from coolify_mcp.search.stats import FieldLengthStats, bm25, calculate_idf, compute_field_length_stats


@pytest.mark.unit
class TestFieldLengthStats:
    """Tests for field length aggregation."""

    def test_compute_field_length_stats(self):
        stats = compute_field_length_stats({"title": {0: 2, 1: 4}, "content": {}})

        assert stats["title"] == FieldLengthStats(field="title", total_terms=6, document_count=2)
        assert stats["title"].average_length == 3.0
        assert stats["content"].average_length == 0.0


@pytest.mark.unit
class TestCalculateIdf:
    """Tests for calculate_idf."""

    def test_rare_terms_weigh_more(self):
        assert calculate_idf(1, 100) > calculate_idf(50, 100)

    def test_always_positive(self):
        assert calculate_idf(9, 9) > 0
        assert calculate_idf(100, 9) > 0

    def test_empty_corpus(self):
        assert calculate_idf(0, 0) == 0.0

    def test_known_value(self):
        expected = math.log((10 - 1 + 0.5) / (1 + 0.5) + 1e-6) + 1.0
        assert calculate_idf(1, 10) == pytest.approx(expected)


@pytest.mark.unit
class TestBm25:
    """Tests for the BM25 term weight."""

    def test_zero_frequency(self):
        assert bm25(0, 10, 10.0) == 0.0

    def test_average_length_document(self):
        # tf=1 at average length reduces to (k1 + 1) / (1 + k1)
        assert bm25(1, 10, 10.0) == pytest.approx(1.0)

    def test_frequency_saturates(self):
        assert bm25(2, 10, 10.0) > bm25(1, 10, 10.0)
        assert bm25(100, 10, 10.0) < 2.2

    def test_long_documents_penalised(self):
        assert bm25(1, 40, 10.0) < bm25(1, 10, 10.0)

    def test_length_ratio_capped(self):
        assert bm25(1, 1000, 10.0) == pytest.approx(bm25(1, 40, 10.0))
