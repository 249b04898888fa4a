from __future__ import annotations

from sqlalchemy import Float, ForeignKey, Index, Integer, JSON, String, Text, text as sql_text
from sqlalchemy.orm import Mapped, mapped_column

from roster.db.base import Base

PERSON_STATUSES: frozenset[str] = frozenset({"named", "victim", "convicted", "witness", "charged"})


class Person(Base):
    """One person mention cluster produced by upstream ingestion.

    ``document_count`` and ``connection_count`` are derived from the link
    tables and are recomputed after every merge; they are not authoritative.
    The normalized name is never stored.
    """

    __tablename__ = "persons"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(512), nullable=False)
    aliases: Mapped[list | None] = mapped_column(JSON, nullable=True)
    category: Mapped[str | None] = mapped_column(String(64), nullable=True)
    role: Mapped[str | None] = mapped_column(String(256), nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(String(32), nullable=False, default="named", server_default=sql_text("'named'"))
    document_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default=sql_text("0"))
    connection_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default=sql_text("0"))


class PersonDocument(Base):
    """Mention link between a person and a document of the external corpus."""

    __tablename__ = "person_documents"
    __table_args__ = (Index("ix_person_documents_person_document", "person_id", "document_id"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    person_id: Mapped[int] = mapped_column(ForeignKey("persons.id"), nullable=False)
    document_id: Mapped[int] = mapped_column(Integer, nullable=False)
    context: Mapped[str | None] = mapped_column(Text, nullable=True)


class Connection(Base):
    """Undirected relationship between two persons."""

    __tablename__ = "connections"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    person_id_1: Mapped[int] = mapped_column(ForeignKey("persons.id"), nullable=False, index=True)
    person_id_2: Mapped[int] = mapped_column(ForeignKey("persons.id"), nullable=False, index=True)
    connection_type: Mapped[str] = mapped_column(
        String(64), nullable=False, default="associated", server_default=sql_text("'associated'")
    )
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    strength: Mapped[float] = mapped_column(Float, nullable=False, default=1.0, server_default=sql_text("1"))


class TimelineEvent(Base):
    __tablename__ = "timeline_events"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    event_date: Mapped[str | None] = mapped_column(String(32), nullable=True)
    title: Mapped[str] = mapped_column(String(512), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    person_ids: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
