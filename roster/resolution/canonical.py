"""Canonical selector.

Picks the surviving record of a candidate group with a total order,
highest priority first:

1. protected-name membership
2. no comma in the raw name ("Epstein, Jeffrey" loses)
3. not all-uppercase
4. more meaningful word parts
5. longer raw name
6. lowest id

Rule 6 is always decisive because ids are unique.
"""
from __future__ import annotations

from collections.abc import Iterable
from typing import Protocol

from roster.normalization.name_normalizer import meaningful_parts, normalize_name


class NamedRecord(Protocol):
    id: int
    name: str


def canonical_sort_key(person: NamedRecord, protected_names: frozenset[str] | set[str]) -> tuple:
    """Ascending sort key; the first record in sorted order is the canonical."""
    name = person.name
    return (
        0 if normalize_name(name) in protected_names else 1,
        1 if "," in name else 0,
        1 if name == name.upper() else 0,
        -len(meaningful_parts(name)),
        -len(name),
        person.id,
    )


def pick_canonical(group: Iterable[NamedRecord], protected_names: frozenset[str] | set[str]) -> NamedRecord:
    """Return the canonical member of *group*.

    Raises ``ValueError`` for an empty group.
    """
    members = list(group)
    if not members:
        raise ValueError("cannot pick a canonical from an empty group")
    return min(members, key=lambda p: canonical_sort_key(p, protected_names))
