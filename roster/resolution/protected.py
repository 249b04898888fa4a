"""Protected-name loader.

Loads the curated roster of trusted person names (e.g. the scraped
``persons-raw.json`` key-figure list) into a set of normalized names.
Protected persons are never deleted by a junk or single-word pass and
always win canonical selection.

Accepted formats: a JSON or YAML list whose items are either strings or
mappings with a ``name`` key.
"""
from __future__ import annotations

import json
import logging
from pathlib import Path

import yaml

from roster.normalization.name_normalizer import normalize_name

logger = logging.getLogger(__name__)


def _extract_names(data: object, path: Path) -> list[str]:
    if not isinstance(data, list):
        raise ValueError(f"{path}: expected a list of names, got {type(data).__name__}")

    names: list[str] = []
    for item in data:
        if isinstance(item, str):
            names.append(item)
        elif isinstance(item, dict) and isinstance(item.get("name"), str):
            names.append(item["name"])
        else:
            raise ValueError(f"{path}: unsupported protected-name entry {item!r}")
    return names


def load_protected_names(path: str | Path) -> frozenset[str]:
    """Return the normalized protected names stored at *path*.

    A missing file is not an error: a warning is logged and an empty set
    is returned, so every person becomes eligible for deletion.

    Raises
    ------
    ValueError
        If the file exists but does not hold a list of names.
    """
    path = Path(path)
    if not path.exists():
        logger.warning("Protected-name roster %s not found, no protected names loaded", path)
        return frozenset()

    with open(path, "r", encoding="utf-8") as fh:
        if path.suffix in (".yaml", ".yml"):
            data = yaml.safe_load(fh)
        else:
            data = json.load(fh)

    protected = frozenset(
        norm for norm in (normalize_name(n) for n in _extract_names(data, path)) if norm
    )
    logger.info("Loaded %d protected person names from %s", len(protected), path)
    return protected
