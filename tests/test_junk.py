"""Tests for roster/resolution/junk.py: literal classification table."""
from __future__ import annotations

import pytest

from roster.resolution.junk import is_junk_name, junk_reason

JUNK_NAMES = [
    "Jo",
    "x" * 61,
    "AUSA",
    "FBI",
    "Ann",
    "her",
    "Victim-3",
    "Minor Victim-1",
    "The Ambassador",
    "Former Governor",
    "Unknown Caller",
    "Unnamed Pilot",
    "Declarant Smith",
    "Mr. M",
    "Dr.",
    "Mr. [Name]",
    "[REDACTED]",
    "LLC Holdings, Inc.",
    "Acme Corp",
    "Special Agent",
    "Attorney General",
    "BOP Employee",
    "Flight Engineer",
    "Detective",
    "Epstein victim",
    "Epstein's pilot",
    "Officer 3",
    "Inmate 4",
    "Witness-2",
    "John Doe",
    "Jane Doe 4",
    "Esq.",
    "Ph.D.",
    "Smith, 2",
    "Spouse of Jeffrey",
    "Jane Smith (Redacted)",
    "John Smith (FBI)",
    "AUSA Smith",
    "Director of Prisons",
    "Chief of Staff",
    "Deputy Director Smith",
    "J0hn5",
    "A1b Smith",
    "John/Jane",
    "Smith & Co",
    "Account 12345",
    'John "JJ" Smith',
]

REAL_NAMES = [
    "Jeffrey Epstein",
    "Epstein, Jeffrey",
    "GHISLAINE MAXWELL",
    "Ghislaine Maxwell",
    "Glenn Dubin",
    "Dubin",
    "Epstein",
    "John Q. Smith",
    "Mr. John Smith",
    "Jean-Luc Brunel",
    "Sarah Kellen",
    "Prince Andrew",
    "Ann Smith",
    "Nadia Marcinkova",
]


class TestJunkTable:
    @pytest.mark.parametrize("name", JUNK_NAMES)
    def test_junk(self, name: str) -> None:
        assert is_junk_name(name) is True

    @pytest.mark.parametrize("name", REAL_NAMES)
    def test_not_junk(self, name: str) -> None:
        assert is_junk_name(name) is False


class TestJunkReason:
    def test_reason_labels(self) -> None:
        assert junk_reason("Jo") == "too short"
        assert junk_reason("AUSA") == "caps abbreviation"
        assert junk_reason("The Ambassador") == "leading 'the'"
        assert junk_reason("Victim-3") == "numbered victim"

    def test_name_is_trimmed_first(self) -> None:
        assert junk_reason("   AUSA   ") == "caps abbreviation"
        assert junk_reason("  Jeffrey Epstein  ") is None

    def test_real_name_has_no_reason(self) -> None:
        assert junk_reason("Glenn Dubin") is None
