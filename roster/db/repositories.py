from __future__ import annotations

from collections.abc import Iterable
from typing import Generic, TypeVar

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from roster.db import models

ModelT = TypeVar("ModelT")


class BaseRepository(Generic[ModelT]):
    model: type[ModelT]

    def __init__(self, db: Session):
        self.db = db

    def get(self, entity_id: int) -> ModelT | None:
        return self.db.get(self.model, entity_id)

    def list_all(self) -> list[ModelT]:
        stmt = select(self.model).order_by(self.model.id)
        return list(self.db.execute(stmt).scalars().all())

    def count(self) -> int:
        stmt = select(func.count()).select_from(self.model)
        return self.db.execute(stmt).scalar_one()


class PersonRepository(BaseRepository[models.Person]):
    model = models.Person

    def existing_ids(self, ids: Iterable[int]) -> list[int]:
        """Return the subset of *ids* that still exist, in the order given."""
        wanted = list(ids)
        if not wanted:
            return []
        stmt = select(models.Person.id).where(models.Person.id.in_(wanted))
        found = set(self.db.execute(stmt).scalars().all())
        return [pid for pid in wanted if pid in found]


class TimelineEventRepository(BaseRepository[models.TimelineEvent]):
    model = models.TimelineEvent

    def mentioning(self, person_ids: Iterable[int]) -> list[tuple[int, list[int]]]:
        """``(event id, person ids)`` for every event that names one of *person_ids*.

        SQLite and PostgreSQL search the JSON array in SQL; other dialects
        read every event and filter here.
        """
        wanted = set(person_ids)
        if not wanted:
            return []

        event = models.TimelineEvent
        stmt = select(event.id, event.person_ids).order_by(event.id)
        dialect = self.db.get_bind().dialect.name
        if dialect == "sqlite":
            elements = func.json_each(event.person_ids).table_valued("value")
            stmt = stmt.where(
                select(elements.c.value).where(elements.c.value.in_(sorted(wanted))).exists()
            )
        elif dialect == "postgresql":
            elements = func.json_array_elements_text(event.person_ids).table_valued("value")
            stmt = stmt.where(
                select(elements.c.value).where(elements.c.value.in_([str(pid) for pid in sorted(wanted)])).exists()
            )

        rows: list[tuple[int, list[int]]] = []
        for event_id, ids in self.db.execute(stmt):
            ids = list(ids or [])
            if not wanted.isdisjoint(ids):
                rows.append((event_id, ids))
        return rows
