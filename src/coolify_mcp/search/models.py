"""Search data models."""

from __future__ import annotations

from dataclasses import dataclass

from pydantic import BaseModel, Field


@dataclass(frozen=True)
class DocChunk:
    """One independently retrievable unit of documentation text.

    A chunk is either a whole page introduction or one ``##`` section of a
    page. ``id`` equals the chunk's position in the parsed sequence.
    """

    id: int
    title: str
    url: str
    description: str
    content: str


@dataclass(frozen=True)
class Posting:
    """A posting records how often a term occurs in one document field."""

    doc_id: int
    frequency: int = 0


@dataclass(frozen=True)
class RankedDocument:
    """Represents a scored document produced by the index."""

    doc_id: int
    score: float
    terms: tuple[str, ...] = ()


class SearchResult(BaseModel):
    """Individual documentation search hit returned to tool callers.

    Example:
        {
            "title": "Docker Compose > Environment Variables",
            "url": "https://coolify.io/docs/applications/docker-compose",
            "description": "Deploy Docker Compose applications on Coolify ...",
            "snippet": "Define environment variables in your docker-compose.yml ...",
            "score": 12.84
        }
    """

    title: str = Field(description="Page title, or '<page> > <section>' for a sub-section")
    url: str = Field(description="Canonical documentation URL")
    description: str = Field(description="Page-level summary from the front matter")
    snippet: str = Field(default="", description="Most query-dense excerpt of the matched section")
    score: float = Field(description="Relevance score rounded to 2 decimals, higher is better")
