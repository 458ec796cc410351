"""Lazily loaded full-text search over the Coolify documentation.

The engine downloads ``llms-full.txt`` on the first search, parses it into
chunks and indexes them in memory. The index then lives for the lifetime of
the engine. Concurrent first searches share a single load; a failed load
leaves the engine empty so the next search starts over.
"""

from __future__ import annotations

import asyncio
from enum import Enum
import logging
import time

import httpx

from coolify_mcp.search.index import DocumentIndex
from coolify_mcp.search.models import DocChunk, SearchResult
from coolify_mcp.search.parser import DOCS_BASE_URL, parse_docs
from coolify_mcp.search.schema import create_docs_schema
from coolify_mcp.search.snippet import extract_snippet


logger = logging.getLogger(__name__)

DOCS_FULL_URL = "https://coolify.io/docs/llms-full.txt"
DEFAULT_SEARCH_LIMIT = 5
DOCS_FETCH_TIMEOUT_SECONDS = 15.0


class LoadState(str, Enum):
    """Lifecycle of the documentation index."""

    EMPTY = "empty"
    LOADING = "loading"
    READY = "ready"


class DocsFetchError(RuntimeError):
    """Raised when the documentation bundle cannot be downloaded."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class IndexUnavailableError(RuntimeError):
    """Raised when a load reported success but left no index behind."""

    def __init__(self, message: str = "Documentation index failed to load") -> None:
        super().__init__(message)


class DocsSearchEngine:
    """Search engine over the Coolify documentation bundle.

    Interface Methods:
    - search(query, limit) -> list[SearchResult]
    - get_chunk_count() -> int
    - ensure_loaded() -> None
    """

    def __init__(
        self,
        docs_url: str = DOCS_FULL_URL,
        *,
        base_url: str = DOCS_BASE_URL,
        timeout: float = DOCS_FETCH_TIMEOUT_SECONDS,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize an empty engine.

        Args:
            docs_url: Location of the ``llms-full.txt`` bundle
            base_url: Site root joined with each page path to build result URLs
            timeout: Upper bound in seconds for the whole download
            transport: Optional httpx transport, used to fake the network in tests
        """
        self.docs_url = docs_url
        self.base_url = base_url
        self.timeout = timeout
        self._transport = transport
        self._index: DocumentIndex | None = None
        self._chunks: list[DocChunk] = []
        self._loading: asyncio.Task[None] | None = None

    @property
    def state(self) -> LoadState:
        if self._index is not None:
            return LoadState.READY
        if self._loading is not None:
            return LoadState.LOADING
        return LoadState.EMPTY

    async def ensure_loaded(self) -> None:
        """Load and index the documentation once.

        Callers arriving while a load is in flight wait for that same load.
        A cancelled caller does not cancel the shared load.
        """
        if self._index is not None:
            return
        if self._loading is None:
            self._loading = asyncio.create_task(self._load_and_index(), name="coolify-docs-load")
            self._loading.add_done_callback(_handle_load_done)
        await asyncio.shield(self._loading)

    async def search(self, query: str, limit: int = DEFAULT_SEARCH_LIMIT) -> list[SearchResult]:
        """Return at most ``limit`` ranked hits for ``query``.

        Raises:
            DocsFetchError: The documentation could not be downloaded
            IndexUnavailableError: Loading finished without producing an index
        """
        await self.ensure_loaded()
        index = self._index
        if index is None:
            raise IndexUnavailableError

        if limit <= 0:
            return []

        hits = index.search(query)[:limit]
        results: list[SearchResult] = []
        for hit in hits:
            chunk = self._chunks[hit.doc_id]
            results.append(
                SearchResult(
                    title=chunk.title,
                    url=chunk.url,
                    description=chunk.description,
                    snippet=self._get_snippet(hit.doc_id, query),
                    score=round(hit.score, 2),
                )
            )
        return results

    def get_chunk_count(self) -> int:
        return len(self._chunks)

    def _get_snippet(self, doc_id: int, query: str) -> str:
        if not 0 <= doc_id < len(self._chunks):
            return ""
        return extract_snippet(self._chunks[doc_id].content, query)

    async def _load_and_index(self) -> None:
        start = time.perf_counter()
        try:
            text = await self._fetch_docs()
            chunks = parse_docs(text, base_url=self.base_url)
            index = DocumentIndex(create_docs_schema())
            index.add_all(chunks)
        except BaseException:
            self._loading = None
            self._index = None
            self._chunks = []
            raise

        self._chunks = chunks
        self._index = index
        self._loading = None
        logger.info(
            "Indexed %d documentation chunks from %s in %.0fms",
            len(chunks),
            self.docs_url,
            (time.perf_counter() - start) * 1000,
        )

    async def _fetch_docs(self) -> str:
        timeout = httpx.Timeout(self.timeout, connect=min(self.timeout, 10.0))
        try:
            async with httpx.AsyncClient(
                timeout=timeout,
                follow_redirects=True,
                transport=self._transport,
                headers={"Accept": "text/plain, text/markdown;q=0.9, */*;q=0.1"},
            ) as client:
                response = await asyncio.wait_for(client.get(self.docs_url), timeout=self.timeout)
        except (asyncio.TimeoutError, httpx.TimeoutException) as exc:
            logger.warning(f"Timed out fetching {self.docs_url} after {self.timeout:g}s")
            raise DocsFetchError(f"Failed to fetch Coolify docs: timed out after {self.timeout:g}s") from exc
        except httpx.HTTPError as exc:
            logger.warning(f"Error fetching {self.docs_url}: {exc}")
            raise DocsFetchError(f"Failed to fetch Coolify docs: {exc or type(exc).__name__}") from exc

        if not response.is_success:
            logger.warning(f"Unexpected HTTP {response.status_code} fetching {self.docs_url}")
            raise DocsFetchError(
                f"Failed to fetch Coolify docs: HTTP {response.status_code}",
                status_code=response.status_code,
            )

        logger.debug(f"Fetched {len(response.content)} bytes from {self.docs_url}")
        return response.text


def _handle_load_done(task: asyncio.Task[None]) -> None:
    # Collects the outcome even when every waiter was cancelled
    if task.cancelled():
        logger.debug("Documentation load cancelled")
        return
    exc = task.exception()
    if exc is not None:
        logger.debug("Documentation load failed: %s", exc)
