"""Deduplication coordinator.

Entry point for the three run modes:

  dry-run       passes propose, the plan is written to disk, store untouched
  apply         passes mutate, every action commits on its own
  execute-plan  pending actions of a reviewed plan are applied in order

Each run takes its own ``Snapshot``; the protected set and variant
tables are loaded once and handed in, never read from module state.
"""
from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path

from sqlalchemy.orm import Session

from roster.core.cancellation import CancellationToken
from roster.core.settings import Settings
from roster.db.repositories import PersonRepository
from roster.plans.executor import ExecutionReport, PlanExecutor
from roster.plans.models import DeduplicationAction, DeduplicationPlan
from roster.plans.store import load_plan, save_plan
from roster.resolution.mutations import delete_self_loops
from roster.resolution.passes import PassPipeline
from roster.resolution.protected import load_protected_names
from roster.resolution.snapshot import Roster, Snapshot
from roster.resolution.variants import VariantTables, load_variant_tables

logger = logging.getLogger(__name__)


@dataclass
class PassReport:
    mode: str
    pass_counts: dict[int, int] = field(default_factory=dict)
    person_count_before: int = 0
    person_count_after: int = 0
    plan_path: Path | None = None

    @property
    def total(self) -> int:
        return sum(self.pass_counts.values())


class DeduplicationCoordinator:
    def __init__(
        self,
        session: Session,
        protected_names: frozenset[str] = frozenset(),
        tables: VariantTables | None = None,
        drift_warning_threshold: int = 50,
        batch_pause_seconds: float = 2.0,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.db = session
        self.protected_names = protected_names
        self.tables = tables or VariantTables.empty()
        self.drift_warning_threshold = drift_warning_threshold
        self.batch_pause_seconds = batch_pause_seconds
        self._sleep = sleep

    @classmethod
    def from_settings(cls, session: Session, settings: Settings) -> DeduplicationCoordinator:
        return cls(
            session,
            protected_names=load_protected_names(settings.protected_names_path),
            tables=load_variant_tables(settings.variants_dir),
            drift_warning_threshold=settings.drift_warning_threshold,
            batch_pause_seconds=settings.batch_pause_seconds,
        )

    def _pipeline(self, actions: list[DeduplicationAction] | None) -> tuple[PassPipeline, int]:
        snapshot = Snapshot.load(self.db)
        logger.info(
            "Snapshot: %d persons, %d document links, %d connections, %d timeline events; %d protected names",
            len(snapshot.persons), len(snapshot.links), len(snapshot.connections),
            len(snapshot.events), len(self.protected_names),
        )
        pipeline = PassPipeline(
            self.db,
            Roster.from_snapshot(snapshot),
            snapshot.evidence,
            self.protected_names,
            self.tables,
            actions=actions,
        )
        return pipeline, len(snapshot.persons)

    def dry_run(self, plan_path: str | Path) -> tuple[DeduplicationPlan, PassReport]:
        """Run every pass without touching the store and write the plan to *plan_path*."""
        actions: list[DeduplicationAction] = []
        pipeline, before = self._pipeline(actions)
        counts = pipeline.run()

        plan = DeduplicationPlan.from_actions(actions, person_count_before=before)
        path = save_plan(plan, plan_path)
        report = PassReport(
            mode="dry-run",
            pass_counts=counts,
            person_count_before=before,
            person_count_after=len(pipeline.roster),
            plan_path=path,
        )
        logger.info(
            "Dry run complete: %d actions proposed, %d → %d persons; plan written to %s",
            len(actions), before, report.person_count_after, path,
        )
        return plan, report

    def apply(self) -> PassReport:
        """Run every pass and commit each action as it is found."""
        pipeline, before = self._pipeline(None)
        counts = pipeline.run()

        loops = delete_self_loops(self.db)
        self.db.commit()
        if loops:
            logger.info("Removed %d self-loop connections", loops)

        after = PersonRepository(self.db).count()
        logger.info("Apply complete: %d → %d persons (%d removed)", before, after, before - after)
        return PassReport(mode="apply", pass_counts=counts, person_count_before=before, person_count_after=after)

    def execute_plan(
        self,
        plan_path: str | Path,
        batch_size: int | None = None,
        token: CancellationToken | None = None,
    ) -> ExecutionReport:
        """Apply the pending actions of the plan at *plan_path*.

        Raises ``PlanFileError`` before any mutation when the plan is
        missing or malformed.
        """
        plan = load_plan(plan_path)
        executor = PlanExecutor(
            self.db,
            plan,
            plan_path,
            batch_size=batch_size,
            token=token,
            batch_pause_seconds=self.batch_pause_seconds,
            drift_warning_threshold=self.drift_warning_threshold,
            sleep=self._sleep,
        )
        return executor.run()
