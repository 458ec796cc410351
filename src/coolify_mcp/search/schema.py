"""Field definitions for the documentation index.

A schema lists the searchable text fields of a document, the analyzer each
one uses and the boost applied to its BM25 contribution (BM25F style field
weighting).
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass


@dataclass(frozen=True)
class TextField:
    """Analyzed text field for full-text search.

    Args:
        name: Attribute or mapping key read from indexed documents
        boost: Field weight in scoring (default: 1.0)
        analyzer_name: Name of analyzer to use (default: None = standard)
    """

    name: str
    boost: float = 1.0
    analyzer_name: str | None = None


@dataclass
class Schema:
    """Schema definition for a search index.

    Example:
        schema = Schema(
            fields=[TextField("title", boost=3.0), TextField("content")],
            unique_field="id",
        )
    """

    fields: list[TextField]
    unique_field: str = "id"
    name: str = "default"

    def __post_init__(self) -> None:
        self._field_map: dict[str, TextField] = {f.name: f for f in self.fields}
        if len(self._field_map) != len(self.fields):
            msg = f"Schema '{self.name}' declares duplicate field names"
            raise ValueError(msg)
        if self.unique_field in self._field_map:
            msg = f"Unique field '{self.unique_field}' cannot also be a text field"
            raise ValueError(msg)

    def __getitem__(self, name: str) -> TextField:
        return self._field_map[name]

    def __contains__(self, name: str) -> bool:
        return name in self._field_map

    def __iter__(self) -> Iterator[TextField]:
        return iter(self.fields)

    def __len__(self) -> int:
        return len(self.fields)

    def get_boost(self, field_name: str) -> float:
        """Get boost factor for a field."""
        if field_name in self._field_map:
            return self._field_map[field_name].boost
        return 1.0


def create_docs_schema() -> Schema:
    """Create the schema used for Coolify documentation chunks.

    Fields:
    - title: Page title, or "<page> > <section>" for sub-sections (boost=3.0)
    - description: Page summary from the front matter (boost=2.0)
    - content: Section body text (boost=1.0)

    All fields use the standard analyzer, so common words stay searchable.
    """
    return Schema(
        name="coolify-docs",
        unique_field="id",
        fields=[
            TextField("title", boost=3.0),
            TextField("description", boost=2.0),
            TextField("content", boost=1.0),
        ],
    )
