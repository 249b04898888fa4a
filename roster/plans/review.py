"""Human review of a dry-run plan.

Reviewers may veto a pending action before ``execute-plan`` runs, or
undo their own veto:

    pending → rejected → pending

``executed`` and ``skipped`` are terminal and owned by the executor,
which never enters or leaves ``rejected`` itself.
"""
from __future__ import annotations

import logging
from collections.abc import Iterable

from roster.plans.models import (
    STATUS_PENDING,
    STATUS_REJECTED,
    DeduplicationAction,
    DeduplicationPlan,
)

logger = logging.getLogger(__name__)

# Allowed transitions: current_status → {valid target statuses}
_TRANSITIONS: dict[str, set[str]] = {
    STATUS_PENDING: {STATUS_REJECTED},
    STATUS_REJECTED: {STATUS_PENDING},
}


def can_transition(current_status: str, to_status: str) -> bool:
    return to_status in _TRANSITIONS.get(current_status, set())


def set_review_status(
    plan: DeduplicationPlan,
    action_ids: Iterable[int],
    to_status: str,
) -> list[DeduplicationAction]:
    """Move every action in *action_ids* to *to_status*.

    All ids are validated before any status changes, so a bad id leaves
    the plan untouched.

    Raises
    ------
    KeyError
        If an id is not in the plan.
    ValueError
        If a transition is not allowed.
    """
    actions = [plan.get_action(action_id) for action_id in action_ids]
    for action in actions:
        if not can_transition(action.status, to_status):
            raise ValueError(f"Invalid transition for action #{action.id}: {action.status!r} → {to_status!r}")

    for action in actions:
        action.status = to_status
        logger.info("Action #%d marked %s by reviewer", action.id, to_status)
    return actions


def reject_actions(plan: DeduplicationPlan, action_ids: Iterable[int]) -> list[DeduplicationAction]:
    return set_review_status(plan, action_ids, STATUS_REJECTED)


def restore_actions(plan: DeduplicationPlan, action_ids: Iterable[int]) -> list[DeduplicationAction]:
    return set_review_status(plan, action_ids, STATUS_PENDING)
