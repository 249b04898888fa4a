"""Read-once store snapshot, evidence index and working roster.

A ``Snapshot`` is taken once at the start of every coordinator run and
passed through the pass pipeline; nothing here is a long-lived global.

``EvidenceIndex`` (person → documents, person → neighbours) is built
from the snapshot and never refreshed mid-run.  Merges performed by
earlier passes are therefore invisible to its document/connection sets;
this staleness is accepted.

``Roster`` is the mutable working view the passes consume: persons that
an earlier pass deleted or absorbed (for real in apply mode, as a
pending action in dry-run mode) drop out of it so no person is claimed
by two actions in one run.  It also carries the reference counts Pass 5
ranks by, folded forward through every earlier merge and delete.
"""
from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field

from sqlalchemy import select
from sqlalchemy.orm import Session

from roster.db.models import Connection, PersonDocument, TimelineEvent
from roster.db.repositories import PersonRepository
from roster.normalization.name_normalizer import meaningful_parts, normalize_name

DOCUMENT_WEIGHT = 2
CONNECTION_WEIGHT = 1


# ---------------------------------------------------------------------------
# Record types
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class PersonRecord:
    id: int
    name: str
    aliases: tuple[str, ...] = ()
    status: str = "named"

    @property
    def normalized_name(self) -> str:
        return normalize_name(self.name)

    @property
    def parts(self) -> list[str]:
        return meaningful_parts(self.name)


@dataclass(frozen=True)
class PersonDocumentRecord:
    id: int
    person_id: int
    document_id: int


@dataclass(frozen=True)
class ConnectionRecord:
    id: int
    person_id_1: int
    person_id_2: int


@dataclass(frozen=True)
class TimelineEventRecord:
    id: int
    person_ids: tuple[int, ...]


# ---------------------------------------------------------------------------
# Evidence index
# ---------------------------------------------------------------------------

class EvidenceIndex:
    """Co-occurrence maps used to score merge hypotheses."""

    def __init__(
        self,
        docs_by_person: dict[int, frozenset[int]],
        conns_by_person: dict[int, frozenset[int]],
    ) -> None:
        self.docs_by_person = docs_by_person
        self.conns_by_person = conns_by_person

    @classmethod
    def build(
        cls,
        links: Iterable[PersonDocumentRecord],
        connections: Iterable[ConnectionRecord],
    ) -> EvidenceIndex:
        docs: dict[int, set[int]] = {}
        for link in links:
            docs.setdefault(link.person_id, set()).add(link.document_id)

        conns: dict[int, set[int]] = {}
        for c in connections:
            conns.setdefault(c.person_id_1, set()).add(c.person_id_2)
            conns.setdefault(c.person_id_2, set()).add(c.person_id_1)

        return cls(
            docs_by_person={pid: frozenset(s) for pid, s in docs.items()},
            conns_by_person={pid: frozenset(s) for pid, s in conns.items()},
        )

    def documents(self, person_id: int) -> frozenset[int]:
        return self.docs_by_person.get(person_id, frozenset())

    def neighbours(self, person_id: int) -> frozenset[int]:
        return self.conns_by_person.get(person_id, frozenset())

    def shared_documents(self, a: int, b: int) -> int:
        return len(self.documents(a) & self.documents(b))

    def shared_connections(self, a: int, b: int) -> int:
        return len(self.neighbours(a) & self.neighbours(b))

    def score(self, a: int, b: int) -> int:
        """Evidence that *a* and *b* are the same individual: 2 × shared docs + shared connections."""
        return DOCUMENT_WEIGHT * self.shared_documents(a, b) + CONNECTION_WEIGHT * self.shared_connections(a, b)


# ---------------------------------------------------------------------------
# Snapshot
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Snapshot:
    persons: tuple[PersonRecord, ...]
    links: tuple[PersonDocumentRecord, ...]
    connections: tuple[ConnectionRecord, ...]
    events: tuple[TimelineEventRecord, ...]
    evidence: EvidenceIndex = field(compare=False)

    @classmethod
    def load(cls, session: Session) -> Snapshot:
        """Read every person, link, connection and timeline event once."""
        persons = tuple(
            PersonRecord(id=p.id, name=p.name, aliases=tuple(p.aliases or ()), status=p.status)
            for p in PersonRepository(session).list_all()
        )
        links = tuple(
            PersonDocumentRecord(id=row.id, person_id=row.person_id, document_id=row.document_id)
            for row in session.execute(
                select(PersonDocument.id, PersonDocument.person_id, PersonDocument.document_id)
            )
        )
        connections = tuple(
            ConnectionRecord(id=row.id, person_id_1=row.person_id_1, person_id_2=row.person_id_2)
            for row in session.execute(
                select(Connection.id, Connection.person_id_1, Connection.person_id_2)
            )
        )
        events = tuple(
            TimelineEventRecord(id=row.id, person_ids=tuple(row.person_ids or ()))
            for row in session.execute(select(TimelineEvent.id, TimelineEvent.person_ids))
        )
        return cls(
            persons=persons,
            links=links,
            connections=connections,
            events=events,
            evidence=EvidenceIndex.build(links, connections),
        )


# ---------------------------------------------------------------------------
# Working roster
# ---------------------------------------------------------------------------

class Roster:
    """Persons not yet claimed by a delete or merge in the current run.

    Document links and connections are mirrored per person and folded the
    way ``merge_person_group`` and ``delete_persons_cascade`` fold them in
    the store, so ``reference_count`` matches what a live ``count(*)``
    would return in apply mode, and dry-run sees the same numbers.
    """

    def __init__(
        self,
        persons: Iterable[PersonRecord],
        links: Iterable[PersonDocumentRecord] = (),
        connections: Iterable[ConnectionRecord] = (),
    ) -> None:
        self._live: dict[int, PersonRecord] = {p.id: p for p in sorted(persons, key=lambda p: p.id)}
        self._by_lower_name: dict[str, list[int]] = {}
        for p in self._live.values():
            self._by_lower_name.setdefault(p.name.lower(), []).append(p.id)

        self._documents: dict[int, list[int]] = {}
        for link in links:
            self._documents.setdefault(link.person_id, []).append(link.document_id)

        self._edges: dict[int, tuple[int, int]] = {}
        self._edges_of: dict[int, set[int]] = {}
        self._self_loops: set[int] = set()
        for c in connections:
            self._add_edge(c.id, c.person_id_1, c.person_id_2)

    @classmethod
    def from_snapshot(cls, snapshot: Snapshot) -> Roster:
        return cls(snapshot.persons, snapshot.links, snapshot.connections)

    def __contains__(self, person_id: int) -> bool:
        return person_id in self._live

    def __len__(self) -> int:
        return len(self._live)

    def live(self) -> list[PersonRecord]:
        """Remaining persons in ascending id order."""
        return list(self._live.values())

    def get(self, person_id: int) -> PersonRecord | None:
        return self._live.get(person_id)

    def find_by_name(self, name: str) -> PersonRecord | None:
        """Case-insensitive exact name lookup; the lowest id wins."""
        ids = self._by_lower_name.get(name.lower())
        if not ids:
            return None
        return self._live[ids[0]]

    # -- edge bookkeeping --

    def _add_edge(self, edge_id: int, a: int, b: int) -> None:
        self._edges[edge_id] = (a, b)
        self._edges_of.setdefault(a, set()).add(edge_id)
        self._edges_of.setdefault(b, set()).add(edge_id)
        if a == b:
            self._self_loops.add(edge_id)

    def _drop_edge(self, edge_id: int) -> tuple[int, int] | None:
        endpoints = self._edges.pop(edge_id, None)
        if endpoints is None:
            return None
        for pid in endpoints:
            edges = self._edges_of.get(pid)
            if edges is not None:
                edges.discard(edge_id)
        self._self_loops.discard(edge_id)
        return endpoints

    # -- claims --

    def discard(self, person_ids: Iterable[int]) -> None:
        """Remove persons together with their document links and connections."""
        for pid in person_ids:
            self._documents.pop(pid, None)
            for edge_id in list(self._edges_of.pop(pid, ())):
                self._drop_edge(edge_id)
            person = self._live.pop(pid, None)
            if person is None:
                continue
            ids = self._by_lower_name.get(person.name.lower(), [])
            if pid in ids:
                ids.remove(pid)

    def absorb(self, canonical_id: int, duplicate_ids: Iterable[int]) -> None:
        """Record a merge: duplicates leave the roster, their references move to the canonical."""
        duplicate_ids = [d for d in dict.fromkeys(duplicate_ids) if d != canonical_id]
        if not duplicate_ids:
            return
        dup_set = set(duplicate_ids)

        documents = self._documents.pop(canonical_id, [])
        for dup in duplicate_ids:
            documents.extend(self._documents.pop(dup, []))
        if documents:
            self._documents[canonical_id] = list(dict.fromkeys(documents))

        moved = {edge_id for dup in duplicate_ids for edge_id in self._edges_of.get(dup, ())}
        for edge_id in sorted(moved):
            a, b = self._drop_edge(edge_id)
            a = canonical_id if a in dup_set else a
            b = canonical_id if b in dup_set else b
            if a != b:
                self._add_edge(edge_id, a, b)
        # self-loops go store-wide on every merge
        for edge_id in list(self._self_loops):
            self._drop_edge(edge_id)

        kept: set[int] = set()
        for edge_id in sorted(self._edges_of.get(canonical_id, ())):
            a, b = self._edges[edge_id]
            other = b if a == canonical_id else a
            if other in kept:
                self._drop_edge(edge_id)
            else:
                kept.add(other)

        self.discard(duplicate_ids)

    def reference_count(self, person_id: int) -> int:
        """Document link rows plus connection rows touching *person_id*."""
        return len(self._documents.get(person_id, ())) + len(self._edges_of.get(person_id, ()))
