"""Shared text-processing utilities.

Pure functions with no domain dependencies — safe to import from any
layer (CLI, patterns, storage).
"""

from __future__ import annotations

import re

_WHITESPACE_RE = re.compile(r"\s+")
_PUNCTUATION_RE = re.compile(r"[.,/#!$%^&*;:{}=\-_`~()]")
_CORPORATE_SUFFIX_RE = re.compile(r"(?:\s+(?:inc|corp|llc|ltd))+$", re.IGNORECASE)


def normalize_company_name(raw: str) -> str:
    """Canonicalize a free-text company name into a grouping key.

    Lowercases, strips punctuation, collapses whitespace runs, drops the
    trailing corporate suffix (``inc``, ``corp``, ``llc``, ``ltd``) and
    trims.  A stacked suffix ("Acme Ltd Inc") is removed as one unit so
    the result is idempotent.  Total over any string.

    >>> normalize_company_name("Acme,  Inc.")
    'acme'
    """
    name = raw.lower()
    name = _PUNCTUATION_RE.sub("", name)
    # Removing punctuation can leave doubled spaces ("a - b"), so collapse after
    name = _WHITESPACE_RE.sub(" ", name).strip()
    name = _CORPORATE_SUFFIX_RE.sub("", name)
    return name.strip()
