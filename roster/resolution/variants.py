"""Variant table loader.

The key-figure table (Pass 4) and the OCR/nickname table (Pass 6) are
versioned YAML documents under ``config/variants/`` so the ruleset can
evolve without touching the engine::

    version: 3
    entries:
      - canonical: Ghislaine Maxwell
        variants: [GHISLAINE MAXWELL, "Maxwell, Ghislaine"]
        delete: [Ghisiaine Maxwell]

Names are matched case-insensitively against raw person names.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

import yaml

KEY_FIGURES_FILE = "key_figures.yaml"
OCR_NICKNAMES_FILE = "ocr_nicknames.yaml"


@dataclass(frozen=True)
class VariantEntry:
    """One canonical name with the spellings to merge into it and the junk spellings to delete."""

    canonical: str
    variants: tuple[str, ...] = ()
    delete_names: tuple[str, ...] = ()


@dataclass(frozen=True)
class VariantTable:
    name: str
    version: str
    entries: tuple[VariantEntry, ...] = field(default_factory=tuple)


def _str_list(value: object, path: Path, key: str) -> tuple[str, ...]:
    if value is None:
        return ()
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ValueError(f"{path}: {key!r} must be a list of strings")
    return tuple(value)


def load_variant_table(path: str | Path) -> VariantTable:
    """Load a single variant table from a YAML file.

    Raises
    ------
    ValueError
        If the document is not a mapping with ``version`` and ``entries``,
        or if an entry lacks a ``canonical`` name.
    """
    path = Path(path)
    with open(path, "r", encoding="utf-8") as fh:
        data = yaml.safe_load(fh)

    if not isinstance(data, dict):
        raise ValueError(f"{path}: expected a YAML mapping, got {type(data).__name__}")

    missing = {"version", "entries"} - data.keys()
    if missing:
        raise ValueError(f"{path}: missing required fields: {sorted(missing)}")

    raw_entries = data["entries"] or []
    if not isinstance(raw_entries, list):
        raise ValueError(f"{path}: 'entries' must be a list")

    entries: list[VariantEntry] = []
    for raw in raw_entries:
        if not isinstance(raw, dict) or not isinstance(raw.get("canonical"), str):
            raise ValueError(f"{path}: every entry needs a 'canonical' name, got {raw!r}")
        entries.append(VariantEntry(
            canonical=raw["canonical"],
            variants=_str_list(raw.get("variants"), path, "variants"),
            delete_names=_str_list(raw.get("delete"), path, "delete"),
        ))

    return VariantTable(name=path.stem, version=str(data["version"]), entries=tuple(entries))


@dataclass(frozen=True)
class VariantTables:
    key_figures: VariantTable
    ocr_nicknames: VariantTable

    @classmethod
    def empty(cls) -> VariantTables:
        return cls(
            key_figures=VariantTable(name="key_figures", version="0"),
            ocr_nicknames=VariantTable(name="ocr_nicknames", version="0"),
        )


def load_variant_tables(directory: str | Path = "config/variants") -> VariantTables:
    """Load both variant tables from *directory*."""
    directory = Path(directory)
    return VariantTables(
        key_figures=load_variant_table(directory / KEY_FIGURES_FILE),
        ocr_nicknames=load_variant_table(directory / OCR_NICKNAMES_FILE),
    )
