"""Plan persistence.

Plans are written atomically (temp file + rename) so an interrupted
write never leaves a truncated plan behind; the previous checkpoint
survives instead.
"""
from __future__ import annotations

import json
import logging
import os
from pathlib import Path

from pydantic import ValidationError

from roster.plans.models import DeduplicationPlan

logger = logging.getLogger(__name__)


class PlanFileError(Exception):
    """The plan file is missing, unreadable or malformed."""


def save_plan(plan: DeduplicationPlan, path: str | Path) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_name(path.name + ".tmp")
    payload = plan.model_dump_json(by_alias=True, exclude_none=True, indent=2)
    with open(tmp_path, "w", encoding="utf-8") as fh:
        fh.write(payload)
        fh.flush()
        os.fsync(fh.fileno())
    os.replace(tmp_path, path)
    logger.debug("Plan written to %s", path)
    return path


def load_plan(path: str | Path) -> DeduplicationPlan:
    """Read the plan at *path*.

    Raises
    ------
    PlanFileError
        If the file does not exist, is not JSON, or does not match the
        plan schema.
    """
    path = Path(path)
    if not path.exists():
        raise PlanFileError(f"Plan file not found: {path} (run a dry-run first)")

    try:
        with open(path, "r", encoding="utf-8") as fh:
            data = json.load(fh)
        return DeduplicationPlan.model_validate(data)
    except (OSError, json.JSONDecodeError, ValidationError) as exc:
        raise PlanFileError(f"{path}: unreadable plan: {exc}") from exc
