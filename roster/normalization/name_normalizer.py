"""Name normalizer.

Reduces a raw person name to the lowercase key used for equality
grouping by every deduplication pass.

Rules applied in order
----------------------
1. Lowercase.
2. Detect "Last, First" (exactly one comma, non-empty second segment)
   and reorder to "first last".
3. Remove honorific / generational tokens (dr, mr, mrs, ms, miss, ii,
   iii, iv) as whole words, with an optional trailing period.
4. Remove periods, keeping the letters ("J." → "j").
5. Drop every character outside ``a-z`` and whitespace.
6. Collapse whitespace and trim.

The result is deterministic and has no side effects.  Accented letters
are dropped rather than folded, so "Marcinková" keys as "marcinkov".
"""
from __future__ import annotations

import re

# Word boundaries follow ASCII word characters only.
_TITLE_RE = re.compile(r"\b(dr|mr|mrs|ms|miss|ii|iii|iv)\b\.?", re.ASCII)
_NON_ALPHA_RE = re.compile(r"[^a-z\s]")
_WHITESPACE_RE = re.compile(r"\s+")

MIN_MEANINGFUL_LENGTH = 2


def normalize_name(raw: str) -> str:
    """Return the normalized grouping key for *raw*, or ``""``."""
    if not raw:
        return ""

    text = raw.lower()

    if "," in text:
        parts = [p.strip() for p in text.split(",")]
        if len(parts) == 2 and parts[1]:
            text = f"{parts[1]} {parts[0]}"

    text = _TITLE_RE.sub("", text)
    text = text.replace(".", "")
    text = _NON_ALPHA_RE.sub("", text)
    return _WHITESPACE_RE.sub(" ", text).strip()


def meaningful_parts(raw: str) -> list[str]:
    """Return the normalized tokens of *raw* that are at least two letters long."""
    return [p for p in normalize_name(raw).split(" ") if len(p) >= MIN_MEANINGFUL_LENGTH]
