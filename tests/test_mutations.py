"""Tests for roster/resolution/mutations.py: merge, cascade delete, maintenance."""
from __future__ import annotations

import pytest
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, OperationalError

from roster.db.models import Person
from roster.resolution.mutations import (
    MAX_ALIASES,
    chunked,
    commit_action,
    deduplicate_connections,
    delete_persons_cascade,
    merge_aliases,
    merge_person_group,
    recompute_person_counts,
)


# ===========================================================================
# merge_aliases
# ===========================================================================

class TestMergeAliases:
    def test_canonical_name_is_never_an_alias(self) -> None:
        assert merge_aliases("Glenn Dubin", [], ["Glenn Dubin", "Dubin"]) == ["Dubin"]

    def test_existing_aliases_kept_first_and_deduplicated(self) -> None:
        assert merge_aliases("A B", ["x", "y"], ["y", "z", "z"]) == ["x", "y", "z"]

    def test_total_capped(self) -> None:
        existing = [f"alias {i}" for i in range(MAX_ALIASES - 1)]
        merged = merge_aliases("A B", existing, ["new 1", "new 2", "new 3"])
        assert len(merged) == MAX_ALIASES
        assert merged[-1] == "new 1"

    def test_empty_names_ignored(self) -> None:
        assert merge_aliases("A B", [], ["", "C D"]) == ["C D"]


def test_chunked_sizes() -> None:
    assert [len(c) for c in chunked(list(range(1001)))] == [500, 500, 1]


# ===========================================================================
# merge_person_group
# ===========================================================================

class TestMergePersonGroup:
    def _seed(self, graph):
        canonical = graph.person("Glenn Dubin")
        dup = graph.person("Dubin")
        other = graph.person("Eva Dubin")
        graph.link(canonical, 1, 2)
        graph.link(dup, 2, 3)
        graph.connect(canonical, other, "friends")
        graph.connect(dup, other, "longtime close friends")
        graph.connect(canonical, dup, "same household")
        e_both = graph.event([dup, canonical, other])
        e_dup = graph.event([dup])
        e_other = graph.event([other])
        graph.commit()
        return canonical, dup, other, (e_both, e_dup, e_other)

    def test_documents_repointed_without_duplicates(self, db_session, graph) -> None:
        canonical, dup, _, _ = self._seed(graph)
        assert merge_person_group(db_session, canonical, [dup], ["Dubin", "Glenn Dubin"]) is True

        assert graph.documents(canonical) == [1, 2, 3]
        assert graph.documents(dup) == []

    def test_connections_repointed_and_collapsed(self, db_session, graph) -> None:
        canonical, dup, other, _ = self._seed(graph)
        merge_person_group(db_session, canonical, [dup], ["Dubin"])

        assert graph.connections() == [(canonical, other, "longtime close friends")]

    def test_timelines_rewritten(self, db_session, graph) -> None:
        canonical, dup, other, (e_both, e_dup, e_other) = self._seed(graph)
        merge_person_group(db_session, canonical, [dup], ["Dubin"])

        assert graph.timeline(e_both) == [canonical, other]
        assert graph.timeline(e_dup) == [canonical]
        assert graph.timeline(e_other) == [other]

    def test_duplicate_removed_counts_and_aliases_updated(self, db_session, graph) -> None:
        canonical, dup, _, _ = self._seed(graph)
        merge_person_group(db_session, canonical, [dup], ["Dubin", "Glenn Dubin"])
        db_session.commit()

        assert dup not in graph.ids()
        assert graph.counts(canonical) == (3, 1)
        assert graph.aliases(canonical) == ["Dubin"]

    def test_missing_duplicates_is_noop(self, db_session, graph) -> None:
        canonical = graph.person("Glenn Dubin")
        graph.link(canonical, 1)
        graph.commit()

        assert merge_person_group(db_session, canonical, [999], ["Ghost"]) is False
        assert graph.aliases(canonical) is None

    def test_missing_canonical_is_noop(self, db_session, graph) -> None:
        dup = graph.person("Dubin")
        graph.commit()

        assert merge_person_group(db_session, 999, [dup], ["Dubin"]) is False
        assert graph.ids() == [dup]

    def test_merging_twice_is_harmless(self, db_session, graph) -> None:
        canonical, dup, _, _ = self._seed(graph)
        assert merge_person_group(db_session, canonical, [dup], ["Dubin"]) is True
        db_session.commit()
        assert merge_person_group(db_session, canonical, [dup], ["Dubin"]) is False
        assert graph.aliases(canonical) == ["Dubin"]


# ===========================================================================
# delete_persons_cascade
# ===========================================================================

class TestDeletePersonsCascade:
    def test_removes_every_reference(self, db_session, graph) -> None:
        keep = graph.person("Jeffrey Epstein")
        junk = graph.person("AUSA")
        graph.link(junk, 1, 2)
        graph.link(keep, 1)
        graph.connect(keep, junk)
        event = graph.event([junk, keep])
        graph.commit()

        assert delete_persons_cascade(db_session, [junk]) == 1

        assert graph.ids() == [keep]
        assert graph.documents(junk) == []
        assert graph.connections() == []
        assert graph.timeline(event) == [keep]

    def test_no_alias_preserved(self, db_session, graph) -> None:
        keep = graph.person("Jeffrey Epstein")
        junk = graph.person("AUSA")
        graph.commit()

        delete_persons_cascade(db_session, [junk])
        assert graph.aliases(keep) is None

    def test_unknown_ids_remove_nothing(self, db_session, graph) -> None:
        graph.person("Jeffrey Epstein")
        graph.commit()

        assert delete_persons_cascade(db_session, [404, 405]) == 0
        assert len(graph.ids()) == 1

    def test_large_batches_are_chunked(self, db_session, graph) -> None:
        ids = [graph.person(f"Placeholder Person {i}") for i in range(1, 1102)]
        graph.commit()

        assert delete_persons_cascade(db_session, ids) == len(ids)
        assert graph.ids() == []


# ===========================================================================
# Maintenance
# ===========================================================================

class TestMaintenance:
    def test_deduplicate_connections_keeps_best_row(self, db_session, graph) -> None:
        a = graph.person("Alice Adams")
        b = graph.person("Bob Brown")
        c = graph.person("Carol Clark")
        graph.connect(a, b, "met")
        graph.connect(b, a, "met twice in new york")
        graph.connect(a, b, None, strength=5.0)
        graph.connect(c, c, "self")
        graph.connect(a, c, "colleagues")
        graph.commit()

        assert deduplicate_connections(db_session) == 3
        assert graph.connections() == [(b, a, "met twice in new york"), (a, c, "colleagues")]

    def test_recompute_person_counts(self, db_session, graph) -> None:
        a = graph.person("Alice Adams", document_count=99, connection_count=99)
        b = graph.person("Bob Brown")
        graph.link(a, 1, 2)
        graph.connect(a, b)
        graph.commit()

        assert recompute_person_counts(db_session) == 2
        db_session.commit()
        assert graph.counts(a) == (2, 1)
        assert graph.counts(b) == (0, 1)


# ===========================================================================
# commit_action
# ===========================================================================

class TestCommitAction:
    def test_success_commits(self, db_session, graph) -> None:
        ok = commit_action(db_session, "add person", lambda: graph.person("Alice Adams"))
        assert ok is True
        db_session.rollback()
        assert graph.names() == ["Alice Adams"]

    def test_store_conflict_rolls_back_and_reports(self, db_session, graph, caplog) -> None:
        def _boom():
            graph.person("Alice Adams")
            raise IntegrityError("INSERT", {}, Exception("duplicate key"))

        assert commit_action(db_session, "add person", _boom) is False
        assert graph.names() == []
        assert "Failed to add person" in caplog.text

    def test_lost_connection_propagates(self, db_session, graph) -> None:
        def _gone():
            graph.person("Alice Adams")
            raise OperationalError("SELECT 1", {}, Exception("server closed the connection"))

        with pytest.raises(OperationalError):
            commit_action(db_session, "add person", _gone)
        assert db_session.execute(select(Person.id)).first() is None
