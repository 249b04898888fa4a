import pytest
from sqlalchemy import create_engine, select
from sqlalchemy.orm import Session, sessionmaker

from roster.core.settings import get_settings
from roster.db.base import Base
from roster.db.models import Connection, Person, PersonDocument, TimelineEvent


def _new_session() -> Session:
    engine = create_engine("sqlite+pysqlite:///:memory:")
    Base.metadata.create_all(bind=engine)
    factory = sessionmaker(bind=engine, autocommit=False, autoflush=False, expire_on_commit=False)
    return factory()


@pytest.fixture()
def db_session():
    with _new_session() as session:
        yield session


@pytest.fixture()
def other_session():
    with _new_session() as session:
        yield session


@pytest.fixture(autouse=True)
def _fresh_settings():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


class GraphBuilder:
    """Seed persons, document links, connections and timeline events."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def person(self, name: str, person_id: int | None = None, **kwargs) -> int:
        if person_id is not None:
            kwargs["id"] = person_id
        person = Person(name=name, **kwargs)
        self.db.add(person)
        self.db.flush()
        return person.id

    def link(self, person_id: int, *document_ids: int) -> None:
        for document_id in document_ids:
            self.db.add(PersonDocument(person_id=person_id, document_id=document_id))
        self.db.flush()

    def connect(self, a: int, b: int, description: str | None = None, strength: float = 1.0) -> int:
        connection = Connection(person_id_1=a, person_id_2=b, description=description, strength=strength)
        self.db.add(connection)
        self.db.flush()
        return connection.id

    def event(self, person_ids: list[int], title: str = "event") -> int:
        event = TimelineEvent(title=title, person_ids=person_ids)
        self.db.add(event)
        self.db.flush()
        return event.id

    def commit(self) -> None:
        self.db.commit()

    # -- read-back helpers; column selects bypass the identity map --

    def names(self) -> list[str]:
        return list(self.db.execute(select(Person.name).order_by(Person.id)).scalars())

    def ids(self) -> list[int]:
        return list(self.db.execute(select(Person.id).order_by(Person.id)).scalars())

    def aliases(self, person_id: int):
        return self.db.execute(select(Person.aliases).where(Person.id == person_id)).scalar_one()

    def counts(self, person_id: int) -> tuple[int, int]:
        row = self.db.execute(
            select(Person.document_count, Person.connection_count).where(Person.id == person_id)
        ).one()
        return row.document_count, row.connection_count

    def documents(self, person_id: int) -> list[int]:
        stmt = select(PersonDocument.document_id).where(PersonDocument.person_id == person_id)
        return sorted(self.db.execute(stmt).scalars())

    def connections(self) -> list[tuple[int, int, str | None]]:
        stmt = select(Connection.person_id_1, Connection.person_id_2, Connection.description).order_by(Connection.id)
        return [tuple(row) for row in self.db.execute(stmt)]

    def timeline(self, event_id: int) -> list[int]:
        return self.db.execute(select(TimelineEvent.person_ids).where(TimelineEvent.id == event_id)).scalar_one()


@pytest.fixture()
def graph(db_session) -> GraphBuilder:
    return GraphBuilder(db_session)


@pytest.fixture()
def other_graph(other_session) -> GraphBuilder:
    return GraphBuilder(other_session)
