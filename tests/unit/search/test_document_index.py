"""Unit tests for the in-memory BM25F document index."""

from unittest.mock import patch

import pytest

from coolify_mcp.search.fuzzy import find_fuzzy_matches, levenshtein_distance
from coolify_mcp.search.index import DocumentIndex, DuplicateDocumentError
from coolify_mcp.search.models import DocChunk


def build_index(*documents, **kwargs) -> DocumentIndex:
    index = DocumentIndex(**kwargs)
    index.add_all(documents)
    return index


@pytest.mark.unit
class TestAdd:
    """Tests for adding documents."""

    def test_mapping_and_object_documents(self):
        index = DocumentIndex()

        assert index.add({"id": 0, "title": "Docker", "description": "", "content": "compose"}) == 0
        assert index.add(DocChunk(id=1, title="Proxy", url="u", description="d", content="traefik")) == 1
        assert len(index) == 2
        assert index.document_count == 2

    def test_add_all_returns_count(self):
        index = DocumentIndex()

        assert index.add_all([{"id": i, "title": f"page {i}"} for i in range(3)]) == 3

    def test_duplicate_id_rejected(self):
        index = build_index({"id": 0, "title": "Docker"})

        with pytest.raises(DuplicateDocumentError, match="Duplicate document"):
            index.add({"id": 0, "title": "Again"})

    def test_missing_id_rejected(self):
        with pytest.raises(ValueError, match="missing unique field 'id'"):
            DocumentIndex().add({"title": "No id"})

    def test_vocabulary_per_field(self):
        index = build_index({"id": 0, "title": "Docker Compose", "content": "the compose file"})

        assert index.vocabulary_size("title") == 2
        assert index.vocabulary_size("content") == 3
        assert index.vocabulary_size("description") == 0
        assert index.vocabulary_size("unknown") == 0


@pytest.mark.unit
class TestSearch:
    """Tests for ranked retrieval."""

    def test_title_boost_outranks_content(self):
        index = build_index(
            {"id": 0, "title": "Docker Compose", "content": "deploy compose stacks"},
            {"id": 1, "title": "Installation", "content": "install coolify on docker hosts"},
        )

        hits = index.search("docker")

        assert [hit.doc_id for hit in hits] == [0, 1]
        assert hits[0].score > hits[1].score
        assert hits[0].terms == ("docker",)

    def test_prefix_match_for_partial_word(self):
        index = build_index(
            {"id": 0, "title": "Installation", "content": "install coolify"},
            {"id": 1, "title": "Backups", "content": "restore databases"},
        )

        assert [hit.doc_id for hit in index.search("insta")] == [0]

    def test_prefix_disabled(self):
        index = build_index({"id": 0, "title": "Installation", "content": "install coolify"}, prefix=False)

        assert index.search("insta") == []

    def test_fuzzy_match_for_typo(self):
        index = build_index(
            {"id": 0, "title": "Docker", "content": "containers"},
            {"id": 1, "title": "Backups", "content": "restore databases"},
        )

        assert [hit.doc_id for hit in index.search("dockr")] == [0]

    def test_exact_outranks_fuzzy(self):
        index = build_index(
            {"id": 0, "title": "", "content": "proxi settings"},
            {"id": 1, "title": "", "content": "proxy settings"},
        )

        hits = index.search("proxy")

        assert [hit.doc_id for hit in hits] == [1, 0]

    def test_terms_are_or_combined(self):
        index = build_index(
            {"id": 0, "title": "Backups", "content": "s3 storage"},
            {"id": 1, "title": "Domains", "content": "dns records"},
            {"id": 2, "title": "Servers", "content": "hetzner"},
        )

        assert {hit.doc_id for hit in index.search("backups domains")} == {0, 1}

    def test_more_matching_terms_rank_higher(self):
        index = build_index(
            {"id": 0, "title": "Environment", "content": "configure the server"},
            {"id": 1, "title": "Environment Variables", "content": "configure the server"},
        )

        assert index.search("environment variables")[0].doc_id == 1

    def test_ties_ordered_by_id(self):
        index = build_index(
            {"id": 3, "title": "Domains", "content": "dns"},
            {"id": 1, "title": "Domains", "content": "dns"},
        )

        hits = index.search("domains")

        assert [hit.doc_id for hit in hits] == [1, 3]
        assert hits[0].score == hits[1].score

    def test_no_match(self):
        index = build_index({"id": 0, "title": "Docker", "content": "containers"})

        assert index.search("xyznonexistent12345") == []

    @pytest.mark.parametrize("query", ["", "   ", "!!! ---"])
    def test_blank_query(self, query):
        index = build_index({"id": 0, "title": "The Docker", "content": "and of"})

        assert index.search(query) == []

    def test_common_words_are_searchable(self):
        index = build_index(
            {"id": 0, "title": "The Docker", "content": "and of"},
            {"id": 1, "title": "Proxy", "content": "no domain will be set"},
        )

        assert [hit.doc_id for hit in index.search("will")] == [1]
        assert [hit.doc_id for hit in index.search("no")] == [1]
        assert [hit.doc_id for hit in index.search("the")] == [0]

    def test_empty_index(self):
        assert DocumentIndex().search("docker") == []

    def test_scores_positive(self):
        index = build_index(*({"id": i, "title": "Coolify", "content": f"section {i}"} for i in range(5)))

        assert all(hit.score > 0 for hit in index.search("coolify"))


@pytest.mark.unit
class TestTermExpansion:
    """Tests for cached prefix and fuzzy expansion."""

    def test_expansion_cached_per_field_and_term(self):
        index = build_index({"id": 0, "title": "Docker", "content": "containers"})

        with patch("coolify_mcp.search.index.find_fuzzy_matches", wraps=find_fuzzy_matches) as fuzzy:
            first = index.search("dockr")
            calls_after_first = fuzzy.call_count
            second = index.search("dockr")

        assert calls_after_first > 0
        assert fuzzy.call_count == calls_after_first
        assert first == second
        assert [hit.doc_id for hit in second] == [0]

    def test_cache_reset_when_documents_added(self):
        index = build_index({"id": 0, "title": "Proxy", "content": "traefik"})

        assert index.search("dockr") == []
        index.add({"id": 1, "title": "Docker", "content": "containers"})

        assert [hit.doc_id for hit in index.search("dockr")] == [1]

    def test_fuzzy_scan_limited_to_nearby_lengths(self):
        index = build_index({"id": 0, "title": "Docker compose configuration", "content": "ok"})

        with patch("coolify_mcp.search.index.find_fuzzy_matches", wraps=find_fuzzy_matches) as fuzzy:
            index.search("dokcer")

        title_candidates = [call.args[1] for call in fuzzy.call_args_list if "docker" in call.args[1]]
        assert title_candidates == [["docker", "compose"]]

    def test_bucketed_candidates_match_full_scan(self):
        vocabulary = ["deploy", "deploys", "deployed", "deployment", "depot", "dep", "redeploy"]
        index = build_index({"id": 0, "title": " ".join(vocabulary), "content": ""})

        hits = index.search("deplyoed")
        expected = sorted(term for term in vocabulary if 0 < levenshtein_distance("deplyoed", term) <= 2)

        assert hits
        assert sorted(index._expand_term("deplyoed", "title")) == expected
