"""Initial schema

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-16

"""

from collections.abc import Sequence

from alembic import op
import sqlalchemy as sa


revision: str = "0001_initial"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "persons",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("name", sa.String(length=512), nullable=False),
        sa.Column("aliases", sa.JSON(), nullable=True),
        sa.Column("category", sa.String(length=64), nullable=True),
        sa.Column("role", sa.String(length=256), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("status", sa.String(length=32), server_default=sa.text("'named'"), nullable=False),
        sa.Column("document_count", sa.Integer(), server_default=sa.text("0"), nullable=False),
        sa.Column("connection_count", sa.Integer(), server_default=sa.text("0"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "person_documents",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("person_id", sa.Integer(), nullable=False),
        sa.Column("document_id", sa.Integer(), nullable=False),
        sa.Column("context", sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(["person_id"], ["persons.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_person_documents_person_document",
        "person_documents",
        ["person_id", "document_id"],
        unique=False,
    )

    op.create_table(
        "connections",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("person_id_1", sa.Integer(), nullable=False),
        sa.Column("person_id_2", sa.Integer(), nullable=False),
        sa.Column(
            "connection_type", sa.String(length=64), server_default=sa.text("'associated'"), nullable=False
        ),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("strength", sa.Float(), server_default=sa.text("1"), nullable=False),
        sa.ForeignKeyConstraint(["person_id_1"], ["persons.id"]),
        sa.ForeignKeyConstraint(["person_id_2"], ["persons.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_connections_person_id_1", "connections", ["person_id_1"], unique=False)
    op.create_index("ix_connections_person_id_2", "connections", ["person_id_2"], unique=False)

    op.create_table(
        "timeline_events",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("event_date", sa.String(length=32), nullable=True),
        sa.Column("title", sa.String(length=512), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("person_ids", sa.JSON(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )


def downgrade() -> None:
    op.drop_table("timeline_events")
    op.drop_index("ix_connections_person_id_2", table_name="connections")
    op.drop_index("ix_connections_person_id_1", table_name="connections")
    op.drop_table("connections")
    op.drop_index("ix_person_documents_person_document", table_name="person_documents")
    op.drop_table("person_documents")
    op.drop_table("persons")
