"""Resumable execution of a reviewed deduplication plan.

Only ``pending`` actions run, in plan order.  Each action re-validates
its targets against the live store first, because the store may have
changed since the dry-run:

  delete  existing subset of targets; none left → ``skipped``
  merge   canonical gone → ``skipped``; no duplicate left → ``skipped``;
          otherwise merge the existing subset → ``executed``

Statuses are written back to the plan file at every batch checkpoint and
whenever the run ends (completed, interrupted or failed), so a re-run
picks up where the last one stopped.
"""
from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from sqlalchemy.orm import Session

from roster.core.cancellation import CancellationToken
from roster.db.repositories import PersonRepository
from roster.plans.models import (
    STATUS_EXECUTED,
    STATUS_PENDING,
    STATUS_REJECTED,
    STATUS_SKIPPED,
    DeduplicationAction,
    DeduplicationPlan,
)
from roster.plans.store import save_plan
from roster.resolution.mutations import commit_action, delete_persons_cascade, delete_self_loops, merge_person_group

logger = logging.getLogger(__name__)

DEFAULT_DRIFT_WARNING_THRESHOLD = 50
DEFAULT_BATCH_PAUSE_SECONDS = 2.0


@dataclass
class ExecutionReport:
    executed: int = 0
    skipped: int = 0
    remaining: int = 0
    already_done: int = 0
    interrupted: bool = False
    person_count_after: int | None = None


class PlanExecutor:
    """Apply the pending actions of *plan* and keep its statuses on disk."""

    def __init__(
        self,
        session: Session,
        plan: DeduplicationPlan,
        plan_path: str | Path,
        batch_size: int | None = None,
        token: CancellationToken | None = None,
        batch_pause_seconds: float = DEFAULT_BATCH_PAUSE_SECONDS,
        drift_warning_threshold: int = DEFAULT_DRIFT_WARNING_THRESHOLD,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if batch_size is not None and batch_size < 1:
            raise ValueError(f"batch size must be positive, got {batch_size}")
        self.db = session
        self.plan = plan
        self.plan_path = Path(plan_path)
        self.batch_size = batch_size
        self.token = token or CancellationToken()
        self.batch_pause_seconds = batch_pause_seconds
        self.drift_warning_threshold = drift_warning_threshold
        self._sleep = sleep
        self.persons = PersonRepository(session)

    def run(self) -> ExecutionReport:
        pending = self.plan.pending()
        report = ExecutionReport(already_done=len(self.plan.actions) - len(pending))
        logger.info(
            "Executing plan %s: %d pending, %d already processed",
            self.plan_path, len(pending), report.already_done,
        )
        self._check_drift()

        processed = 0
        try:
            for index, action in enumerate(pending):
                if self.token.cancelled:
                    report.interrupted = True
                    logger.warning(
                        "Interrupted (%s) after %d actions; progress saved",
                        self.token.reason, processed,
                    )
                    break

                self._execute(action)
                processed += 1
                if action.status == STATUS_EXECUTED:
                    report.executed += 1
                else:
                    report.skipped += 1

                more_remaining = index + 1 < len(pending)
                if self.batch_size and processed % self.batch_size == 0 and more_remaining:
                    save_plan(self.plan, self.plan_path)
                    logger.info(
                        "Batch checkpoint: %d/%d actions processed, pausing %.1fs",
                        processed, len(pending), self.batch_pause_seconds,
                    )
                    self._sleep(self.batch_pause_seconds)
        finally:
            save_plan(self.plan, self.plan_path)

        if not report.interrupted:
            loops = delete_self_loops(self.db)
            self.db.commit()
            if loops:
                logger.info("Removed %d self-loop connections", loops)

        report.remaining = len(self.plan.pending())
        report.person_count_after = self.persons.count()
        logger.info(
            "Plan execution %s: %d executed, %d skipped, %d remaining, %d persons left",
            "interrupted" if report.interrupted else "complete",
            report.executed, report.skipped, report.remaining, report.person_count_after,
        )
        return report

    def _check_drift(self) -> None:
        current = self.persons.count()
        drift = abs(current - self.plan.person_count_before)
        if drift > self.drift_warning_threshold:
            logger.warning(
                "Person count drifted by %d since the dry-run (%d → %d); "
                "the plan may be stale, continuing anyway",
                drift, self.plan.person_count_before, current,
            )

    def _execute(self, action: DeduplicationAction) -> None:
        if action.type == "delete":
            self._execute_delete(action)
        else:
            self._execute_merge(action)

    def _execute_delete(self, action: DeduplicationAction) -> None:
        targets = action.targets or []
        existing = self.persons.existing_ids(t.id for t in targets)
        if not existing:
            logger.info("[SKIP] #%d: no delete targets left", action.id)
            action.status = STATUS_SKIPPED
            return

        ok = commit_action(
            self.db,
            f"execute action #{action.id}",
            lambda: delete_persons_cascade(self.db, existing),
        )
        if ok:
            names = [t.name for t in targets if t.id in set(existing)]
            logger.info("[DEL] #%d: %s (%s)", action.id, ", ".join(names), action.reason)
            action.status = STATUS_EXECUTED
        else:
            action.status = STATUS_SKIPPED

    def _execute_merge(self, action: DeduplicationAction) -> None:
        canonical = action.canonical
        if canonical is None or not self.persons.existing_ids([canonical.id]):
            logger.info("[SKIP] #%d: canonical no longer exists", action.id)
            action.status = STATUS_SKIPPED
            return

        duplicates = action.duplicates or []
        existing = set(self.persons.existing_ids(d.id for d in duplicates if d.id != canonical.id))
        survivors = [d for d in duplicates if d.id in existing]
        if not survivors:
            logger.info('[SKIP] #%d: no duplicates of "%s" left', action.id, canonical.name)
            action.status = STATUS_SKIPPED
            return

        names = [canonical.name] + [d.name for d in survivors]
        ok = commit_action(
            self.db,
            f"execute action #{action.id}",
            lambda: merge_person_group(self.db, canonical.id, [d.id for d in survivors], names),
        )
        if ok:
            logger.info(
                '[MERGE] #%d: %s → "%s"',
                action.id, ", ".join(f'"{d.name}"' for d in survivors), canonical.name,
            )
            action.status = STATUS_EXECUTED
        else:
            action.status = STATUS_SKIPPED


def resume_summary(plan: DeduplicationPlan) -> dict[str, int]:
    """Status counts for display, with every status present."""
    counts = plan.status_counts()
    return {status: counts.get(status, 0) for status in (STATUS_PENDING, STATUS_EXECUTED, STATUS_SKIPPED, STATUS_REJECTED)}
