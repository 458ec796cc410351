"""Parser for the ``llms-full.txt`` documentation bundle.

The bundle concatenates every documentation page. Each page carries a small
front matter block followed by markdown::

    ---
    url: /docs/get-started/installation.md
    description: >-
      Install Coolify self-hosted PaaS on Linux servers with automated Docker setup
      script and SSH access.
    ---

    # Installation
    ...

Pages are separated by a blank line and two consecutive ``---`` rules. Every
page is split further at its ``##`` headings so search hits point at the
relevant section instead of a whole page.
"""

from __future__ import annotations

from dataclasses import dataclass
import re

from coolify_mcp.search.models import DocChunk


DOCS_BASE_URL = "https://coolify.io"
MIN_CHUNK_LENGTH = 20

PAGE_BOUNDARY_PATTERN = re.compile(r"\n---\n\n---\n")
FRONT_MATTER_PATTERN = re.compile(r"(?:---\n)?url:\s*(.+)\ndescription:\s*>?-?\n?([\s\S]*?)\n---\n([\s\S]*)")
H1_PATTERN = re.compile(r"^#[ \t]+(.+)$", re.MULTILINE)
SECTION_BOUNDARY_PATTERN = re.compile(r"\n(?=## )")
SECTION_HEADING_PATTERN = re.compile(r"^## (.+)")
SECTION_HEADING_LINE_PATTERN = re.compile(r"^## .+(?:\n|$)")


@dataclass(frozen=True)
class ParsedPage:
    """Front matter and body of a single page."""

    url: str
    description: str
    title: str
    content: str


def parse_page(raw: str, base_url: str = DOCS_BASE_URL) -> ParsedPage | None:
    """Parse one page of the bundle, or return None when it has no front matter."""
    match = FRONT_MATTER_PATTERN.search(raw)
    if not match:
        return None

    url_path = match.group(1).strip()
    description = " ".join(line.strip() for line in match.group(2).split("\n") if line.strip())
    content = match.group(3).strip()

    title_match = H1_PATTERN.search(content)
    title = title_match.group(1).strip() if title_match else ""

    return ParsedPage(
        url=base_url + url_path.removesuffix(".md"),
        description=description,
        title=title or url_path,
        content=content,
    )


def parse_docs(text: str, *, base_url: str = DOCS_BASE_URL) -> list[DocChunk]:
    """Parse the documentation bundle into ordered search chunks.

    Pages without front matter are skipped. Sections shorter than
    ``MIN_CHUNK_LENGTH`` characters are dropped and do not consume an id.
    """
    chunks: list[DocChunk] = []

    for raw_page in PAGE_BOUNDARY_PATTERN.split(text):
        page = parse_page(raw_page, base_url)
        if page is None:
            continue

        for section in SECTION_BOUNDARY_PATTERN.split(page.content):
            trimmed = section.strip()
            if len(trimmed) < MIN_CHUNK_LENGTH:
                continue

            heading = SECTION_HEADING_PATTERN.match(trimmed)
            if heading:
                title = f"{page.title} > {heading.group(1).strip()}"
                content = SECTION_HEADING_LINE_PATTERN.sub("", trimmed, count=1).strip()
            else:
                title = page.title
                content = trimmed

            chunks.append(
                DocChunk(
                    id=len(chunks),
                    title=title,
                    url=page.url,
                    description=page.description,
                    content=content,
                )
            )

    return chunks
