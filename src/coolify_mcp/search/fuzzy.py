"""Typo-tolerant and prefix term matching against an index vocabulary.

Edit distances scale with the query term: the allowed number of edits is a
fraction of the term length (20% by default), rounded and capped. Terms of one
or two characters never match fuzzily. Candidates sharing no verbatim piece
with the query are skipped without computing a distance.
"""

from __future__ import annotations

from bisect import bisect_left
from collections.abc import Sequence


DEFAULT_FUZZINESS = 0.2
MAX_EDIT_DISTANCE = 6


def levenshtein_distance(s1: str, s2: str, max_distance: int | None = None) -> int:
    """Calculate the Levenshtein (edit) distance between two strings.

    Args:
        s1: First string.
        s2: Second string.
        max_distance: If provided, return max_distance+1 as soon as the
            distance is guaranteed to exceed this threshold.

    Examples:
        >>> levenshtein_distance("kitten", "sitting")
        3
        >>> levenshtein_distance("", "abc")
        3
    """
    if not s1:
        return len(s2)
    if not s2:
        return len(s1)

    # Shorter string as columns keeps the rows small
    if len(s1) > len(s2):
        s1, s2 = s2, s1

    m, n = len(s1), len(s2)
    if max_distance is not None and n - m > max_distance:
        return max_distance + 1

    # Two rolling rows of the DP table
    prev_row = list(range(m + 1))
    curr_row = [0] * (m + 1)

    for j in range(1, n + 1):
        curr_row[0] = j
        row_min = j  # smallest cell in this row
        for i in range(1, m + 1):
            cost = 0 if s1[i - 1] == s2[j - 1] else 1
            curr_row[i] = min(
                prev_row[i] + 1,  # drop a char from s2
                curr_row[i - 1] + 1,  # add a char to s2
                prev_row[i - 1] + cost,  # swap or keep
            )
            row_min = min(row_min, curr_row[i])

        # Row minimums never shrink, so the bound holds for the rest of the table
        if max_distance is not None and row_min > max_distance:
            return max_distance + 1

        prev_row, curr_row = curr_row, prev_row

    return prev_row[m]


def get_max_edit_distance(
    term_length: int,
    fuzziness: float = DEFAULT_FUZZINESS,
    cap: int = MAX_EDIT_DISTANCE,
) -> int:
    """Return the number of edits tolerated for a term of ``term_length`` characters."""
    if term_length <= 2 or fuzziness <= 0:
        return 0
    return min(round(fuzziness * term_length), cap)


def split_pieces(term: str, count: int) -> list[str]:
    """Split ``term`` into ``count`` contiguous non-empty pieces of near-equal length.

    Returns an empty list when ``term`` is too short for ``count`` pieces.

    Examples:
        >>> split_pieces("docker", 2)
        ['doc', 'ker']
        >>> split_pieces("compose", 3)
        ['com', 'po', 'se']
    """
    if count <= 0 or len(term) < count:
        return []
    size, extra = divmod(len(term), count)
    pieces: list[str] = []
    start = 0
    for i in range(count):
        end = start + size + (1 if i < extra else 0)
        pieces.append(term[start:end])
        start = end
    return pieces


def find_fuzzy_matches(
    query_term: str,
    vocabulary: Sequence[str],
    max_distance: int | None = None,
) -> list[tuple[str, int]]:
    """Find vocabulary terms within the allowed edit distance of ``query_term``.

    Returns (term, distance) tuples sorted by distance, then alphabetically.
    An exact match is reported with distance 0.
    """
    if not query_term or not vocabulary:
        return []

    query_lower = query_term.lower()
    if max_distance is None:
        max_distance = get_max_edit_distance(len(query_lower))

    if max_distance == 0:
        return [(term, 0) for term in vocabulary if term == query_lower][:1]

    matches: list[tuple[str, int]] = []
    pieces = split_pieces(query_lower, max_distance + 1)
    for term in vocabulary:
        if abs(len(query_lower) - len(term)) > max_distance:
            continue
        # Each edit touches at most one piece, so a match keeps one verbatim
        if pieces and not any(piece in term for piece in pieces):
            continue
        distance = levenshtein_distance(query_lower, term, max_distance)
        if distance <= max_distance:
            matches.append((term, distance))

    matches.sort(key=lambda x: (x[1], x[0]))
    return matches


def find_prefix_matches(prefix: str, sorted_vocabulary: Sequence[str]) -> list[str]:
    """Return vocabulary terms that start with ``prefix`` but are longer than it.

    ``sorted_vocabulary`` must be sorted; candidates are located by bisection.
    """
    if not prefix:
        return []

    matches: list[str] = []
    start = bisect_left(sorted_vocabulary, prefix)
    for term in sorted_vocabulary[start:]:
        if not term.startswith(prefix):
            break
        if term != prefix:
            matches.append(term)
    return matches
