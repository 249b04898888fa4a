"""Graph mutations: merge, cascade delete and connection maintenance.

Every function here flushes but does **not** commit; the caller owns
the transaction boundary.  ``commit_action`` is the one place that turns
a single merge or delete into a committed unit and converts per-action
store conflicts into a logged skip.

Merge steps (``merge_person_group``)
------------------------------------
1. Collect new aliases from the offered names (cap: 20 in total).
2. Repoint document links, then drop duplicate (person, document) rows.
3. Repoint connection endpoints, drop self-loops and anything still
   touching a duplicate, collapse parallel edges of the canonical.
4. Replace duplicate ids inside timeline events and de-duplicate.
5. Drop leftover document links of the duplicates.
6. Delete the duplicate persons.
7. Recompute the canonical's counts and store the merged aliases.
"""
from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Sequence

from sqlalchemy import delete, func, or_, select, update
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session

from roster.db.models import Connection, Person, PersonDocument, TimelineEvent
from roster.db.repositories import PersonRepository, TimelineEventRepository

logger = logging.getLogger(__name__)

MAX_ALIASES = 20
CASCADE_CHUNK_SIZE = 500


def chunked(ids: Sequence[int], size: int = CASCADE_CHUNK_SIZE) -> Iterable[list[int]]:
    for start in range(0, len(ids), size):
        yield list(ids[start:start + size])


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def merge_aliases(canonical_name: str, existing: Sequence[str], offered: Iterable[str]) -> list[str]:
    """Return *existing* extended with the new names from *offered*.

    The canonical's own name is never an alias, order of first appearance
    is kept, and the result holds at most ``MAX_ALIASES`` entries.
    """
    merged = [a for a in dict.fromkeys(existing) if a != canonical_name]
    seen = set(merged)
    for name in offered:
        if len(merged) >= MAX_ALIASES:
            break
        if not name or name == canonical_name or name in seen:
            continue
        merged.append(name)
        seen.add(name)
    return merged[:MAX_ALIASES]


def _connection_rank(row) -> tuple:
    # Longest description, then highest strength, then lowest id.
    return (-len(row.description or ""), -(row.strength or 0.0), row.id)


def _redundant_connection_ids(rows) -> list[int]:
    """Ids of every connection that is not the best row for its unordered pair."""
    best: dict[tuple[int, int], object] = {}
    redundant: list[int] = []
    for row in rows:
        key = (min(row.person_id_1, row.person_id_2), max(row.person_id_1, row.person_id_2))
        current = best.get(key)
        if current is None:
            best[key] = row
        elif _connection_rank(row) < _connection_rank(current):
            redundant.append(current.id)
            best[key] = row
        else:
            redundant.append(row.id)
    return redundant


def _delete_connections_by_id(session: Session, ids: Sequence[int]) -> None:
    for chunk in chunked(ids):
        session.execute(delete(Connection).where(Connection.id.in_(chunk)))


def _rewrite_timelines(session: Session, rewrite: Callable[[list[int]], list[int]], touched: set[int]) -> int:
    """Apply *rewrite* to every event whose ``person_ids`` mention an id in *touched*."""
    changed = 0
    for event_id, person_ids in TimelineEventRepository(session).mentioning(touched):
        new_ids = rewrite(person_ids)
        if new_ids != person_ids:
            session.execute(
                update(TimelineEvent).where(TimelineEvent.id == event_id).values(person_ids=new_ids)
            )
            changed += 1
    return changed


def _document_count(session: Session, person_id: int) -> int:
    stmt = select(func.count()).select_from(PersonDocument).where(PersonDocument.person_id == person_id)
    return session.execute(stmt).scalar_one()


def _connection_count(session: Session, person_id: int) -> int:
    stmt = (
        select(func.count())
        .select_from(Connection)
        .where(or_(Connection.person_id_1 == person_id, Connection.person_id_2 == person_id))
    )
    return session.execute(stmt).scalar_one()


def delete_self_loops(session: Session) -> int:
    result = session.execute(delete(Connection).where(Connection.person_id_1 == Connection.person_id_2))
    return result.rowcount or 0


# ---------------------------------------------------------------------------
# Merge executor
# ---------------------------------------------------------------------------

def merge_person_group(
    session: Session,
    canonical_id: int,
    duplicate_ids: Iterable[int],
    all_names: Iterable[str],
) -> bool:
    """Fold *duplicate_ids* into the canonical person.

    Returns ``False`` without touching the store when the canonical or
    every duplicate is already gone, so re-running a merge is harmless.
    """
    wanted = [d for d in dict.fromkeys(duplicate_ids) if d != canonical_id]
    if not wanted:
        return False

    persons = PersonRepository(session)
    canonical = persons.get(canonical_id)
    if canonical is None:
        logger.warning("Merge target id=%s no longer exists, nothing merged", canonical_id)
        return False

    dup_ids = persons.existing_ids(wanted)
    if not dup_ids:
        return False
    dup_set = set(dup_ids)

    # 1. aliases
    aliases = merge_aliases(canonical.name, canonical.aliases or [], all_names)

    # 2. document links
    session.execute(
        update(PersonDocument)
        .where(PersonDocument.person_id.in_(dup_ids))
        .values(person_id=canonical_id)
        .execution_options(synchronize_session=False)
    )
    links = session.execute(
        select(PersonDocument.id, PersonDocument.document_id)
        .where(PersonDocument.person_id == canonical_id)
        .order_by(PersonDocument.id)
    ).all()
    seen_docs: set[int] = set()
    extra_links: list[int] = []
    for link_id, document_id in links:
        if document_id in seen_docs:
            extra_links.append(link_id)
        else:
            seen_docs.add(document_id)
    for chunk in chunked(extra_links):
        session.execute(
            delete(PersonDocument).where(PersonDocument.id.in_(chunk)).execution_options(synchronize_session=False)
        )

    # 3. connections
    session.execute(
        update(Connection)
        .where(Connection.person_id_1.in_(dup_ids))
        .values(person_id_1=canonical_id)
        .execution_options(synchronize_session=False)
    )
    session.execute(
        update(Connection)
        .where(Connection.person_id_2.in_(dup_ids))
        .values(person_id_2=canonical_id)
        .execution_options(synchronize_session=False)
    )
    delete_self_loops(session)
    session.execute(
        delete(Connection)
        .where(or_(Connection.person_id_1.in_(dup_ids), Connection.person_id_2.in_(dup_ids)))
        .execution_options(synchronize_session=False)
    )
    canonical_edges = session.execute(
        select(
            Connection.id,
            Connection.person_id_1,
            Connection.person_id_2,
            Connection.description,
            Connection.strength,
        ).where(or_(Connection.person_id_1 == canonical_id, Connection.person_id_2 == canonical_id))
    ).all()
    _delete_connections_by_id(session, _redundant_connection_ids(canonical_edges))

    # 4. timeline events
    def _repoint(person_ids: list[int]) -> list[int]:
        replaced = [canonical_id if pid in dup_set else pid for pid in person_ids]
        return list(dict.fromkeys(replaced))

    _rewrite_timelines(session, _repoint, dup_set | {canonical_id})

    # 5. leftover links
    session.execute(
        delete(PersonDocument)
        .where(PersonDocument.person_id.in_(dup_ids))
        .execution_options(synchronize_session=False)
    )

    # 6. duplicate persons
    session.execute(delete(Person).where(Person.id.in_(dup_ids)).execution_options(synchronize_session="fetch"))

    # 7. canonical counts + aliases
    canonical.document_count = _document_count(session, canonical_id)
    canonical.connection_count = _connection_count(session, canonical_id)
    canonical.aliases = aliases or None
    session.flush()
    return True


# ---------------------------------------------------------------------------
# Cascade delete
# ---------------------------------------------------------------------------

def delete_persons_cascade(session: Session, ids: Iterable[int]) -> int:
    """Delete persons and everything that references them, 500 ids at a time.

    Identity is discarded, not merged: no aliases are preserved anywhere.
    Returns the number of person rows removed.
    """
    ordered = list(dict.fromkeys(ids))
    removed = 0
    for chunk in chunked(ordered):
        chunk_set = set(chunk)
        session.execute(
            delete(Connection)
            .where(or_(Connection.person_id_1.in_(chunk), Connection.person_id_2.in_(chunk)))
            .execution_options(synchronize_session=False)
        )
        session.execute(
            delete(PersonDocument)
            .where(PersonDocument.person_id.in_(chunk))
            .execution_options(synchronize_session=False)
        )
        _rewrite_timelines(session, lambda pids: [p for p in pids if p not in chunk_set], chunk_set)
        result = session.execute(
            delete(Person).where(Person.id.in_(chunk)).execution_options(synchronize_session="fetch")
        )
        removed += result.rowcount or 0
    session.flush()
    return removed


# ---------------------------------------------------------------------------
# Maintenance
# ---------------------------------------------------------------------------

def deduplicate_connections(session: Session) -> int:
    """Keep one connection per unordered person pair and drop self-loops.

    The survivor has the longest description, then the highest strength,
    then the lowest id.  Returns the number of rows removed.
    """
    removed = delete_self_loops(session)
    rows = session.execute(
        select(
            Connection.id,
            Connection.person_id_1,
            Connection.person_id_2,
            Connection.description,
            Connection.strength,
        )
    ).all()
    redundant = _redundant_connection_ids(rows)
    _delete_connections_by_id(session, redundant)
    session.flush()
    removed += len(redundant)
    logger.info("Removed %d duplicate or self-loop connections", removed)
    return removed


def recompute_person_counts(session: Session) -> int:
    """Recompute ``document_count`` / ``connection_count`` for every person.

    Returns the number of persons whose stored counts changed.
    """
    doc_counts = dict(
        session.execute(
            select(PersonDocument.person_id, func.count()).group_by(PersonDocument.person_id)
        ).all()
    )
    conn_counts: dict[int, int] = {}
    for p1, p2 in session.execute(select(Connection.person_id_1, Connection.person_id_2)).all():
        conn_counts[p1] = conn_counts.get(p1, 0) + 1
        if p2 != p1:
            conn_counts[p2] = conn_counts.get(p2, 0) + 1

    changed = 0
    for person in PersonRepository(session).list_all():
        documents = doc_counts.get(person.id, 0)
        connections = conn_counts.get(person.id, 0)
        if person.document_count != documents or person.connection_count != connections:
            person.document_count = documents
            person.connection_count = connections
            changed += 1
    session.flush()
    logger.info("Recomputed counts, %d persons updated", changed)
    return changed


# ---------------------------------------------------------------------------
# Transaction boundary
# ---------------------------------------------------------------------------

def commit_action(session: Session, description: str, operation: Callable[[], object]) -> bool:
    """Run *operation* and commit it as one unit.

    A store conflict (integrity violation, foreign-key race) rolls back
    this action only, is logged and reported as ``False``.  Losing the
    connection to the store is not a per-action problem and propagates.
    """
    try:
        operation()
        session.commit()
    except OperationalError:
        session.rollback()
        raise
    except SQLAlchemyError as exc:
        session.rollback()
        logger.warning("Failed to %s: %s", description, exc)
        return False
    return True
