"""Unit tests for the llms-full.txt bundle parser."""

import pytest

from coolify_mcp.search.parser import DOCS_BASE_URL, MIN_CHUNK_LENGTH, parse_docs, parse_page
from tests.fixtures.coolify_docs_corpus import SAMPLE_CHUNK_TITLES


def make_page(url: str, description: str, body: str) -> str:
    return f"---\nurl: {url}\ndescription: >-\n  {description}\n---\n\n{body}"


@pytest.mark.unit
class TestParsePage:
    """Tests for parse_page front matter handling."""

    def test_front_matter_fields(self):
        page = parse_page(make_page("/docs/a.md", "Short summary.", "# Title\n\nBody text"))

        assert page is not None
        assert page.url == "https://coolify.io/docs/a"
        assert page.description == "Short summary."
        assert page.title == "Title"
        assert page.content == "# Title\n\nBody text"

    def test_multiline_description_collapsed(self):
        raw = "url: /docs/x\ndescription: >-\n  first line\n  second line\n---\n# X\n"

        page = parse_page(raw)

        assert page is not None
        assert page.description == "first line second line"

    def test_title_falls_back_to_url_path(self):
        page = parse_page(make_page("/docs/no-heading.md", "d", "Only prose, no heading here."))

        assert page is not None
        assert page.title == "/docs/no-heading.md"

    def test_url_without_md_suffix_kept(self):
        page = parse_page(make_page("/docs/plain", "d", "# Plain"))

        assert page is not None
        assert page.url == "https://coolify.io/docs/plain"

    def test_custom_base_url(self):
        page = parse_page(make_page("/docs/a.md", "d", "# A"), base_url="https://mirror.example")

        assert page is not None
        assert page.url == "https://mirror.example/docs/a"

    def test_h2_is_not_a_page_title(self):
        page = parse_page(make_page("/docs/a.md", "d", "## Section only\n\nBody"))

        assert page is not None
        assert page.title == "/docs/a.md"

    def test_page_without_front_matter_is_none(self):
        assert parse_page("# Just markdown\n\nNo front matter at all.") is None


@pytest.mark.unit
class TestParseDocs:
    """Tests for parse_docs chunking."""

    def test_sample_bundle_chunk_titles(self, sample_docs):
        chunks = parse_docs(sample_docs)

        assert [chunk.title for chunk in chunks] == SAMPLE_CHUNK_TITLES

    def test_ids_are_contiguous(self, sample_docs):
        chunks = parse_docs(sample_docs)

        assert [chunk.id for chunk in chunks] == list(range(len(chunks)))

    def test_urls_have_no_md_suffix(self, sample_docs):
        chunks = parse_docs(sample_docs)

        assert all(".md" not in chunk.url for chunk in chunks)
        assert chunks[0].url == f"{DOCS_BASE_URL}/docs/get-started/installation"

    def test_chunks_of_a_page_share_url_and_description(self, sample_docs):
        chunks = [chunk for chunk in parse_docs(sample_docs) if chunk.title.startswith("Docker Compose")]

        assert len(chunks) == 3
        assert len({chunk.url for chunk in chunks}) == 1
        assert len({chunk.description for chunk in chunks}) == 1
        assert chunks[0].description.startswith("Deploy Docker Compose applications")
        assert "\n" not in chunks[0].description

    def test_section_heading_removed_from_content(self, sample_docs):
        chunks = parse_docs(sample_docs)
        requirements = next(chunk for chunk in chunks if chunk.title == "Installation > Requirements")

        assert not requirements.content.startswith("## ")
        assert requirements.content.startswith("You need a server with at least 2GB RAM")

    def test_introduction_keeps_full_text(self, sample_docs):
        intro = parse_docs(sample_docs)[0]

        assert intro.title == "Installation"
        assert intro.content == "# Installation\n\nCoolify can be installed on any Linux server."

    def test_empty_input(self):
        assert parse_docs("") == []

    def test_malformed_page_skipped(self, sample_docs):
        text = "garbage without front matter\n---\n\n---\n" + sample_docs

        assert [chunk.title for chunk in parse_docs(text)] == SAMPLE_CHUNK_TITLES

    def test_short_sections_dropped_without_consuming_ids(self):
        body = "# Page\n\nIntro paragraph long enough to keep.\n\n## Tiny\n\n## Kept Section\n\nThis one has content."
        chunks = parse_docs(make_page("/docs/p.md", "d", body))

        assert [chunk.title for chunk in chunks] == ["Page", "Page > Kept Section"]
        assert [chunk.id for chunk in chunks] == [0, 1]
        assert len("## Tiny") < MIN_CHUNK_LENGTH

    def test_heading_only_section_has_empty_content(self):
        body = "# Page\n\nIntro paragraph long enough to keep.\n\n## A heading that is long enough"
        chunks = parse_docs(make_page("/docs/p.md", "d", body))

        assert chunks[-1].title == "Page > A heading that is long enough"
        assert chunks[-1].content == ""

    def test_pages_glued_without_boundary_are_one_page(self):
        first = make_page("/docs/one.md", "d1", "# One\n\nFirst page body text.")
        second = make_page("/docs/two.md", "d2", "# Two\n\nSecond page body text.")

        chunks = parse_docs(first + "\n\n" + second)

        assert {chunk.url for chunk in chunks} == {"https://coolify.io/docs/one"}

    def test_only_section_titles_carry_separator(self, sample_docs):
        chunks = parse_docs(sample_docs)
        intros = [chunk for chunk in chunks if chunk.content.startswith("# ")]
        sections = [chunk for chunk in chunks if not chunk.content.startswith("# ")]

        assert [chunk.title for chunk in intros] == ["Installation", "Docker Compose", "502 Bad Gateway Error"]
        assert all(" > " in chunk.title for chunk in sections)
