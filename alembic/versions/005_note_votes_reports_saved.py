"""note votes, trust score, reports and saved notes

Revision ID: 005
Revises: 004
Create Date: 2026-10-19

"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

revision: str = "005"
down_revision: Union[str, None] = "004"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.add_column("notes", sa.Column("file_key", sa.String(512), nullable=True))
    op.add_column("notes", sa.Column("upvotes", sa.Integer(), nullable=False, server_default="0"))
    op.add_column("notes", sa.Column("downvotes", sa.Integer(), nullable=False, server_default="0"))
    op.add_column("notes", sa.Column("trust_score", sa.Integer(), nullable=False, server_default="0"))
    op.create_table(
        "note_votes",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("note_id", sa.String(36), sa.ForeignKey("notes.id"), nullable=False, index=True),
        sa.Column("user_id", sa.String(36), sa.ForeignKey("profiles.id"), nullable=False),
        sa.Column("vote_type", sa.String(10), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("note_id", "user_id", name="uq_note_votes_note_user"),
    )
    op.create_table(
        "note_reports",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("note_id", sa.String(36), sa.ForeignKey("notes.id"), nullable=False, index=True),
        sa.Column("reporter_id", sa.String(36), sa.ForeignKey("profiles.id"), nullable=False),
        sa.Column("reason", sa.String(500), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("note_id", "reporter_id", name="uq_note_reports_note_reporter"),
    )
    op.create_table(
        "saved_notes",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("user_id", sa.String(36), sa.ForeignKey("profiles.id"), nullable=False, index=True),
        sa.Column("note_id", sa.String(36), sa.ForeignKey("notes.id"), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("user_id", "note_id", name="uq_saved_notes_user_note"),
    )


def downgrade() -> None:
    op.drop_table("saved_notes")
    op.drop_table("note_reports")
    op.drop_table("note_votes")
    op.drop_column("notes", "trust_score")
    op.drop_column("notes", "downvotes")
    op.drop_column("notes", "upvotes")
    op.drop_column("notes", "file_key")
