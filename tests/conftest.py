"""Shared test fixtures and configuration."""

import os
from pathlib import Path
import sys

import httpx
import pytest


REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))


# Complete test environment that overrides ALL possible config values
TEST_ENV = {
    # Coolify API
    "COOLIFY_BASE_URL": "https://coolify.test",
    "COOLIFY_ACCESS_TOKEN": "test-token",
    "COOLIFY_HTTP_TIMEOUT": "30",
    # Documentation search
    "DOCS_FULL_URL": "https://coolify.io/docs/llms-full.txt",
    "DOCS_BASE_URL": "https://coolify.io",
    "DOCS_FETCH_TIMEOUT": "15",
    "DOCS_SEARCH_LIMIT": "5",
    # Logging
    "LOG_LEVEL": "info",
    "LOG_JSON": "true",
    # Server settings
    "MCP_TRANSPORT": "stdio",
    "MCP_HOST": "127.0.0.1",
    "MCP_PORT": "15005",
    # Proxy settings - ensure they're cleared for tests
    "http_proxy": "",
    "https_proxy": "",
    "all_proxy": "",
    "no_proxy": "",
}


# Set environment variables immediately when conftest.py is loaded
for key, value in TEST_ENV.items():
    os.environ[key] = value

from tests.fixtures.coolify_docs_corpus import SAMPLE_DOCS


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    """Clean environment variables before each test and set test defaults."""
    for key, value in TEST_ENV.items():
        monkeypatch.setenv(key, value)
    # Keep a developer's .env file out of Settings()
    monkeypatch.chdir(REPO_ROOT / "tests")


@pytest.fixture
def sample_docs() -> str:
    """The three-page sample documentation bundle."""
    return SAMPLE_DOCS


@pytest.fixture
def docs_transport():
    """MockTransport serving the sample bundle and recording every request."""

    class DocsTransport(httpx.MockTransport):
        def __init__(self) -> None:
            self.requests: list[httpx.Request] = []
            self.responses: list[httpx.Response] = []
            super().__init__(self._handle)

        def queue(self, response: httpx.Response) -> None:
            self.responses.append(response)

        def _handle(self, request: httpx.Request) -> httpx.Response:
            self.requests.append(request)
            if self.responses:
                return self.responses.pop(0)
            return httpx.Response(200, text=SAMPLE_DOCS)

    return DocsTransport()
