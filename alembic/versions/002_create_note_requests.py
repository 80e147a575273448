"""create note_requests

Revision ID: 002
Revises: 001
Create Date: 2026-10-12

"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

revision: str = "002"
down_revision: Union[str, None] = "001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "note_requests",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("requester_id", sa.String(36), sa.ForeignKey("profiles.id"), nullable=False, index=True),
        sa.Column("category", sa.String(20), nullable=False),
        sa.Column("level", sa.String(50), nullable=False),
        sa.Column("subject", sa.String(100), nullable=False),
        sa.Column("topic", sa.String(200), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("points_offered", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="open", index=True),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("expires_at", sa.DateTime(), nullable=True),
        sa.Column("fulfilled_by", sa.String(36), sa.ForeignKey("profiles.id"), nullable=True),
        sa.Column("fulfilled_at", sa.DateTime(), nullable=True),
        sa.CheckConstraint(
            "category IN ('programming', 'school', 'university')", name="ck_note_requests_category",
        ),
    )


def downgrade() -> None:
    op.drop_table("note_requests")
