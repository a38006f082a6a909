"""Description similarity for duplicate and recycled posting detection.

Uses the Sørensen–Dice coefficient over character bigrams: whitespace
is removed, both strings are lowercased, and the score is twice the
number of shared bigrams divided by the total bigram count.  Cheap,
deterministic, and robust to the small edits recruiters make when
reposting the same role (a changed date, a reordered bullet).

The threshold that turns a score into "similar" belongs to the caller.
"""

from __future__ import annotations

import re
from collections import Counter

_WHITESPACE_RE = re.compile(r"\s+")


def _bigrams(text: str) -> Counter[str]:
    return Counter(text[i : i + 2] for i in range(len(text) - 1))


def description_similarity(a: str, b: str) -> float:
    """Return the bigram Dice similarity of *a* and *b* in ``[0.0, 1.0]``.

    Symmetric and reflexive: identical inputs (after lowercasing and
    whitespace removal) score ``1.0``, including two empty strings.
    Inputs shorter than two characters have no bigrams and score
    ``0.0`` against anything they are not identical to.
    """
    first = _WHITESPACE_RE.sub("", a.lower())
    second = _WHITESPACE_RE.sub("", b.lower())

    if first == second:
        return 1.0
    if len(first) < 2 or len(second) < 2:
        return 0.0

    first_bigrams = _bigrams(first)
    second_bigrams = _bigrams(second)
    shared = sum((first_bigrams & second_bigrams).values())

    return (2.0 * shared) / ((len(first) - 1) + (len(second) - 1))


def is_similar(score: float, threshold: float) -> bool:
    """Whether *score* counts as a match; the comparison is strict."""
    return score > threshold
