"""Junk name classifier.

Flags strings that upstream extraction mistook for person names: OCR
artifacts, generic roles and titles, numbered placeholders, organizations
and relational descriptions.  ``is_junk_name`` is a pure predicate; any
single rule firing makes the name junk, so rule order only documents
intent.  ``junk_reason`` returns the label of the first rule that fires,
which the junk-removal pass records as action evidence.

Every rule runs against the whitespace-trimmed name.  The literal rule
set is relied on by downstream test tables; change it deliberately.
"""
from __future__ import annotations

import re
from collections.abc import Callable

MIN_NAME_LENGTH = 3
MAX_NAME_LENGTH = 60

# ---------------------------------------------------------------------------
# Exact-match vocabularies (compared lowercase)
# ---------------------------------------------------------------------------

GENERIC_ROLES: frozenset[str] = frozenset({
    "assistant united states attorney",
    "special agent",
    "case agent name",
    "correctional officer",
    "attorney general",
    "unit manager",
    "senior inspector",
    "supervisory inspector",
    "fbi assistant director",
    "deputy united states attorney",
    "supervisory staff attorney clc",
    "unknown recipient",
    "unknown sender",
    "institution duty officer",
    "victim witness coordinator",
    "day watch shu officer in charge",
    "evening watch shu officer in charge",
    "u.s. attorney",
    "assistant u.s. attorney",
    "detective",
    "officer",
    "captain",
    "sergeant",
    "warden",
    "chief",
    "administrator",
    "attorney",
    "defendant",
    "lieutenant",
    "budget",
    "unknown",
})

GENERIC_NONPERSONS: frozenset[str] = frozenset({
    "bop employee",
    "the court",
    "union president",
    "flight engineer",
    "customs officer",
    "co-pilot",
    "fbi victim specialist",
    "legal assistant",
    "defense counsel",
    "corrections officer",
})

PRONOUN_FRAGMENTS: frozenset[str] = frozenset({"her", "his", "him", "she", "he", "des", "ands"})

# ---------------------------------------------------------------------------
# Patterns
# ---------------------------------------------------------------------------

_I = re.IGNORECASE

_FORBIDDEN_CHARS_RE = re.compile(r"[!;&$%^°•\\*<>=]")
_DIGIT_RUN_RE = re.compile(r"[0-9]{2,}")
_DIGIT_LETTER_DIGIT_RE = re.compile(r"[0-9].*[a-zA-Z].*[0-9]")
_EMBEDDED_DIGIT_RE = re.compile(r"^[A-Z][a-z]*[0-9][a-z]")
_BRACKETED_RE = re.compile(r"\[.*\]")
_CAPS_ABBREVIATION_RE = re.compile(r"[A-Z]{4,}")
_CAPS_THREE_LETTER_RE = re.compile(r"[A-Z]{3}")
_EPSTEIN_POSSESSIVE_RE = re.compile(r"^epstein's\s", _I)
_VICTIM_NUMBER_RE = re.compile(r"^(minor\s+)?victim-\d", _I)
_UNKNOWN_PREFIX_RE = re.compile(r"^(unknown|unnamed)\s", _I)
_TITLE_BRACKET_RE = re.compile(r"^(mr|mrs|ms|dr)\.\s*\[", _I)
_TITLE_ONLY_RE = re.compile(r"(mr|mrs|ms|dr|lt|sgt|det|cap)\.\s*", _I)
_ORG_SUFFIX_RE = re.compile(r",?\s*(llc|inc|corp|lp|llp)\.?\s*$", _I)
_POSSESSIVE_RE = re.compile(r"'s\s")
_THE_PREFIX_RE = re.compile(r"^the\s", _I)
_FORMER_PREFIX_RE = re.compile(r"^former\s", _I)
_HEAD_OF_PREFIX_RE = re.compile(r"^(chief|director|head|commissioner|superintendent|warden|commander)\s", _I)
_OF_WORD_RE = re.compile(r"\bof\b", _I)
_DEPUTY_TITLE_RE = re.compile(
    r"^(deputy|assistant|associate|acting|interim)\s+(assistant\s+)?"
    r"(attorney general|director|chief|commissioner|warden|prosecutor|counsel)",
    _I,
)
_ORG_TAG_RE = re.compile(r"\([A-Z]{2,5}\)")
_AUSA_PREFIX_RE = re.compile(r"^ausa\s", _I)
_NUMBERED_PLACEHOLDER_RE = re.compile(r"^(officer|inmate|co\s+rookie)\s+\d", _I)
_JOHN_DOE_RE = re.compile(r"^(john|jane)\s+doe", _I)
_TITLE_INITIAL_RE = re.compile(r"(mr|mrs|ms|dr)\.\s+[A-Z]\.?\s*", _I)
_DECLARANT_RE = re.compile(r"^declarant", _I)
_COMMA_DIGIT_RE = re.compile(r",\s*\d")
_CREDENTIAL_RE = re.compile(r"esq\.?|psyd|ph\.?d\.?|m\.?d\.?|j\.?d\.?|ll\.?m\.?", _I)
_QUOTE_OR_BACKSLASH_RE = re.compile(r"[\"\\]")
_RELATIONAL_RE = re.compile(
    r"^(spouse|sister|brother|son|daughter|mother|father|wife|husband)\s+of\s", _I
)
_REDACTED_SUFFIX_RE = re.compile(r"\(redacted\)$", _I)
_ACCUSER_NUMBER_RE = re.compile(r"^(accuser|witness|doe)\s*-?\s*\d", _I)


def _has_no_whitespace(name: str) -> bool:
    return re.search(r"\s", name) is None


JunkRule = tuple[str, Callable[[str], bool]]

# (label, predicate); predicates receive the trimmed name.
JUNK_RULES: tuple[JunkRule, ...] = (
    ("too short", lambda n: len(n) < MIN_NAME_LENGTH),
    ("too long", lambda n: len(n) > MAX_NAME_LENGTH),
    ("forbidden character", lambda n: _FORBIDDEN_CHARS_RE.search(n) is not None),
    ("slash", lambda n: "/" in n),
    ("digit run", lambda n: _DIGIT_RUN_RE.search(n) is not None),
    ("digit-letter-digit", lambda n: _DIGIT_LETTER_DIGIT_RE.search(n) is not None),
    ("embedded digit", lambda n: _EMBEDDED_DIGIT_RE.search(n) is not None),
    ("bracketed placeholder", lambda n: _BRACKETED_RE.fullmatch(n) is not None),
    ("caps abbreviation", lambda n: _CAPS_ABBREVIATION_RE.fullmatch(n) is not None),
    ("generic role", lambda n: n.lower() in GENERIC_ROLES),
    ("epstein possessive", lambda n: _EPSTEIN_POSSESSIVE_RE.search(n) is not None),
    ("victim placeholder", lambda n: n.lower() == "epstein victim"),
    ("numbered victim", lambda n: _VICTIM_NUMBER_RE.search(n) is not None),
    ("unknown placeholder", lambda n: _UNKNOWN_PREFIX_RE.search(n) is not None),
    ("title with bracket", lambda n: _TITLE_BRACKET_RE.search(n) is not None),
    ("title only", lambda n: _TITLE_ONLY_RE.fullmatch(n) is not None),
    ("short single word", lambda n: _has_no_whitespace(n) and len(n) <= 3),
    ("caps code", lambda n: _CAPS_THREE_LETTER_RE.fullmatch(n) is not None),
    ("generic non-person", lambda n: n.lower() in GENERIC_NONPERSONS),
    ("pronoun fragment", lambda n: n.lower() in PRONOUN_FRAGMENTS),
    ("organization suffix", lambda n: _ORG_SUFFIX_RE.search(n) is not None),
    ("possessive", lambda n: _POSSESSIVE_RE.search(n) is not None),
    ("leading 'the'", lambda n: _THE_PREFIX_RE.search(n) is not None),
    ("leading 'former'", lambda n: _FORMER_PREFIX_RE.search(n) is not None),
    ("head-of title", lambda n: _HEAD_OF_PREFIX_RE.search(n) is not None and _OF_WORD_RE.search(n) is not None),
    ("deputy title", lambda n: _DEPUTY_TITLE_RE.search(n) is not None),
    ("organization tag", lambda n: _ORG_TAG_RE.search(n) is not None),
    ("AUSA prefix", lambda n: _AUSA_PREFIX_RE.search(n) is not None),
    ("numbered placeholder", lambda n: _NUMBERED_PLACEHOLDER_RE.search(n) is not None),
    ("john doe", lambda n: _JOHN_DOE_RE.search(n) is not None),
    ("title with initial", lambda n: _TITLE_INITIAL_RE.fullmatch(n) is not None),
    ("declarant", lambda n: _DECLARANT_RE.search(n) is not None),
    ("comma digit", lambda n: _COMMA_DIGIT_RE.search(n) is not None),
    ("credential only", lambda n: _CREDENTIAL_RE.fullmatch(n) is not None),
    ("quote or backslash", lambda n: _QUOTE_OR_BACKSLASH_RE.search(n) is not None and len(n) < 30),
    ("relational description", lambda n: _RELATIONAL_RE.search(n) is not None),
    ("redacted suffix", lambda n: _REDACTED_SUFFIX_RE.search(n) is not None),
    ("numbered accuser", lambda n: _ACCUSER_NUMBER_RE.search(n) is not None),
)


def junk_reason(name: str) -> str | None:
    """Return the label of the first junk rule matching *name*, or ``None``."""
    trimmed = name.strip()
    for label, predicate in JUNK_RULES:
        if predicate(trimmed):
            return label
    return None


def is_junk_name(name: str) -> bool:
    """Return ``True`` if *name* is not a usable person name."""
    return junk_reason(name) is not None
