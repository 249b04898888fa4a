from roster.db.repositories import PersonRepository, TimelineEventRepository


def test_person_repository_helpers(db_session, graph):
    glenn = graph.person("Glenn Dubin")
    eva = graph.person("Eva Dubin", status="witness")
    graph.commit()

    repo = PersonRepository(db_session)
    assert repo.count() == 2
    assert repo.get(glenn).status == "named"
    assert repo.get(eva).status == "witness"
    assert repo.get(999) is None
    assert [p.name for p in repo.list_all()] == ["Glenn Dubin", "Eva Dubin"]


def test_existing_ids_keeps_caller_order(db_session, graph):
    a = graph.person("Alice Adams")
    b = graph.person("Bob Brown")
    graph.commit()

    repo = PersonRepository(db_session)
    assert repo.existing_ids([b, 999, a]) == [b, a]
    assert repo.existing_ids([]) == []


def test_events_mentioning_matches_whole_ids_only(db_session, graph):
    a = graph.person("Alice Adams", person_id=1)
    b = graph.person("Bob Brown", person_id=3)
    c = graph.person("Carl Cole", person_id=13)
    both = graph.event([a, b], title="Meeting")
    only_c = graph.event([c], title="Flight")
    only_b = graph.event([b], title="Dinner")
    graph.event([], title="Unattributed")
    graph.commit()

    repo = TimelineEventRepository(db_session)
    assert repo.mentioning({1, 3}) == [(both, [a, b]), (only_b, [b])]
    assert repo.mentioning([13]) == [(only_c, [c])]
    assert repo.mentioning([42]) == []
    assert repo.mentioning([]) == []
