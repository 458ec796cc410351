"""Snippet extraction for search hits."""

from __future__ import annotations


SNIPPET_WINDOW = 300
SNIPPET_STRIDE = 50
# Windows are only scored while this many characters remain ahead of the start.
SNIPPET_MIN_TAIL = 100
ELLIPSIS = "..."


def extract_snippet(content: str, query: str, *, window: int = SNIPPET_WINDOW, stride: int = SNIPPET_STRIDE) -> str:
    """Return the ``window``-sized excerpt of ``content`` holding most query terms.

    Candidate windows start every ``stride`` characters. A window scores one
    point per distinct query term found in it as a case-insensitive substring.
    The earliest window wins ties. The excerpt is trimmed and marked with
    ``...`` on each side that was cut from the content.
    """
    if not content:
        return ""

    terms = {term for term in query.lower().split() if term}
    lowered = content.lower()

    best_position = 0
    best_score = -1
    for position in range(0, max(len(lowered) - SNIPPET_MIN_TAIL, 0), max(stride, 1)):
        candidate = lowered[position : position + window]
        score = sum(1 for term in terms if term in candidate)
        if score > best_score:
            best_score = score
            best_position = position

    end = min(len(content), best_position + window)
    snippet = content[best_position:end].strip()
    if best_position > 0:
        snippet = ELLIPSIS + snippet
    if end < len(content):
        snippet += ELLIPSIS
    return snippet
