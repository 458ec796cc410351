"""Unit tests for the lazily loaded documentation search engine."""

import asyncio
import logging

import httpx
import pytest

from coolify_mcp.search.engine import (
    DEFAULT_SEARCH_LIMIT,
    DOCS_FULL_URL,
    DocsFetchError,
    DocsSearchEngine,
    IndexUnavailableError,
    LoadState,
)
from tests.fixtures.coolify_docs_corpus import SAMPLE_CHUNK_TITLES


@pytest.fixture
def engine(docs_transport) -> DocsSearchEngine:
    return DocsSearchEngine(transport=docs_transport)


@pytest.mark.unit
class TestLoading:
    """Tests for the one-time download and indexing."""

    def test_starts_empty(self, engine):
        assert engine.state is LoadState.EMPTY
        assert engine.get_chunk_count() == 0

    @pytest.mark.asyncio
    async def test_first_search_loads_bundle(self, engine, docs_transport):
        await engine.search("docker")

        assert engine.state is LoadState.READY
        assert engine.get_chunk_count() == len(SAMPLE_CHUNK_TITLES)
        assert len(docs_transport.requests) == 1
        assert str(docs_transport.requests[0].url) == DOCS_FULL_URL

    @pytest.mark.asyncio
    async def test_fetched_only_once(self, engine, docs_transport):
        await engine.search("docker")
        await engine.search("proxy")
        await engine.ensure_loaded()

        assert len(docs_transport.requests) == 1

    @pytest.mark.asyncio
    async def test_concurrent_first_searches_share_one_load(self, engine, docs_transport):
        results = await asyncio.gather(*(engine.search("installation") for _ in range(5)))

        assert len(docs_transport.requests) == 1
        assert all(result == results[0] for result in results)

    @pytest.mark.asyncio
    async def test_http_error_status(self, engine, docs_transport):
        docs_transport.queue(httpx.Response(500, text="oops"))

        with pytest.raises(DocsFetchError, match="HTTP 500") as exc_info:
            await engine.search("docker")

        assert exc_info.value.status_code == 500
        assert engine.state is LoadState.EMPTY
        assert engine.get_chunk_count() == 0

    @pytest.mark.asyncio
    async def test_failed_load_retried_on_next_search(self, engine, docs_transport):
        docs_transport.queue(httpx.Response(503))

        with pytest.raises(DocsFetchError):
            await engine.search("docker")
        results = await engine.search("docker")

        assert results
        assert len(docs_transport.requests) == 2
        assert engine.state is LoadState.READY

    @pytest.mark.asyncio
    async def test_timeout(self):
        def handler(request):
            raise httpx.ReadTimeout("slow", request=request)

        engine = DocsSearchEngine(timeout=2.5, transport=httpx.MockTransport(handler))

        with pytest.raises(DocsFetchError, match="timed out after 2.5s"):
            await engine.search("docker")

    @pytest.mark.asyncio
    async def test_network_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        engine = DocsSearchEngine(transport=httpx.MockTransport(handler))

        with pytest.raises(DocsFetchError, match="Failed to fetch Coolify docs: connection refused"):
            await engine.search("docker")
        assert engine.state is LoadState.EMPTY

    @pytest.mark.asyncio
    async def test_concurrent_searches_share_one_failure(self):
        calls: list[httpx.Request] = []

        async def handler(request):
            calls.append(request)
            await asyncio.sleep(0.01)
            return httpx.Response(500)

        engine = DocsSearchEngine(transport=httpx.MockTransport(handler))

        results = await asyncio.gather(*(engine.search("docker") for _ in range(5)), return_exceptions=True)

        assert len(calls) == 1
        assert len(results) == 5
        assert all(isinstance(result, DocsFetchError) for result in results)
        assert all(result.status_code == 500 for result in results)
        assert engine.state is LoadState.EMPTY

    @pytest.mark.asyncio
    async def test_failure_collected_when_every_waiter_cancelled(self, caplog):
        caplog.set_level(logging.DEBUG, logger="coolify_mcp.search.engine")
        release = asyncio.Event()

        async def handler(request):
            await release.wait()
            return httpx.Response(502)

        engine = DocsSearchEngine(transport=httpx.MockTransport(handler))
        waiter = asyncio.create_task(engine.search("docker"))
        await asyncio.sleep(0)
        load = engine._loading

        assert engine.state is LoadState.LOADING
        waiter.cancel()
        with pytest.raises(asyncio.CancelledError):
            await waiter

        release.set()
        await asyncio.wait([load])
        await asyncio.sleep(0)

        assert "Documentation load failed: Failed to fetch Coolify docs: HTTP 502" in caplog.text
        assert engine.state is LoadState.EMPTY

    @pytest.mark.asyncio
    async def test_custom_docs_url_and_base(self, docs_transport):
        engine = DocsSearchEngine(
            "https://mirror.example/llms-full.txt",
            base_url="https://mirror.example",
            transport=docs_transport,
        )

        results = await engine.search("installation")

        assert str(docs_transport.requests[0].url) == "https://mirror.example/llms-full.txt"
        assert results[0].url.startswith("https://mirror.example/docs/")

    @pytest.mark.asyncio
    async def test_load_without_index(self, engine, monkeypatch):
        async def no_op_load():
            return None

        monkeypatch.setattr(engine, "_load_and_index", no_op_load)

        with pytest.raises(IndexUnavailableError, match="Documentation index failed to load"):
            await engine.search("docker")


@pytest.mark.unit
class TestSearch:
    """Tests for ranked documentation hits."""

    @pytest.mark.asyncio
    async def test_best_section_ranked_first(self, engine):
        results = await engine.search("docker compose environment variables")

        assert results[0].title == "Docker Compose > Environment Variables"
        assert results[0].url == "https://coolify.io/docs/applications/docker-compose"
        assert results[0].description.startswith("Deploy Docker Compose applications")
        assert "environment variables" in results[0].snippet

    @pytest.mark.asyncio
    async def test_troubleshooting_query(self, engine):
        results = await engine.search("502 bad gateway")

        assert results[0].title.startswith("502 Bad Gateway Error")

    @pytest.mark.asyncio
    async def test_scores_descending_and_rounded(self, engine):
        results = await engine.search("coolify docker port")

        scores = [result.score for result in results]
        assert scores == sorted(scores, reverse=True)
        assert all(score == round(score, 2) for score in scores)

    @pytest.mark.asyncio
    async def test_default_limit(self, engine):
        results = await engine.search("coolify")

        assert len(results) <= DEFAULT_SEARCH_LIMIT

    @pytest.mark.asyncio
    async def test_limit(self, engine):
        results = await engine.search("coolify", limit=2)

        assert len(results) == 2

    @pytest.mark.asyncio
    @pytest.mark.parametrize("limit", [0, -3])
    async def test_non_positive_limit(self, engine, docs_transport, limit):
        assert await engine.search("docker", limit=limit) == []
        assert len(docs_transport.requests) == 1

    @pytest.mark.asyncio
    async def test_no_match(self, engine):
        assert await engine.search("xyznonexistent12345") == []

    @pytest.mark.asyncio
    async def test_partial_word_matches(self, engine):
        results = await engine.search("instal")

        assert results
        assert results[0].title.startswith("Installation")

    @pytest.mark.asyncio
    async def test_snippet_for_each_hit(self, engine):
        results = await engine.search("ssh access")

        assert results[0].title == "Installation > Requirements"
        assert "SSH access is required" in results[0].snippet

    def test_snippet_out_of_range(self, engine):
        assert engine._get_snippet(99, "docker") == ""
