"""create request_fulfillments, fulfillment_votes, vote_activity

Revision ID: 003
Revises: 002
Create Date: 2026-10-13

"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

revision: str = "003"
down_revision: Union[str, None] = "002"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "request_fulfillments",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("request_id", sa.String(36), sa.ForeignKey("note_requests.id"), nullable=False, index=True),
        sa.Column("uploader_id", sa.String(36), sa.ForeignKey("profiles.id"), nullable=False, index=True),
        sa.Column("file_url", sa.String(1024), nullable=False),
        sa.Column("file_type", sa.String(100), nullable=False),
        sa.Column("file_size", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="submitted", index=True),
        sa.Column("validation_passed", sa.Boolean(), nullable=True),
        sa.Column("validation_errors", sa.JSON(), nullable=True),
        sa.Column("upvotes", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("downvotes", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("auto_review_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("reviewed_at", sa.DateTime(), nullable=True),
    )
    op.create_table(
        "fulfillment_votes",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "fulfillment_id", sa.String(36), sa.ForeignKey("request_fulfillments.id"), nullable=False, index=True,
        ),
        sa.Column("user_id", sa.String(36), sa.ForeignKey("profiles.id"), nullable=False),
        sa.Column("vote_type", sa.String(10), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("fulfillment_id", "user_id", name="uq_fulfillment_votes_fulfillment_user"),
    )
    op.create_table(
        "vote_activity",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("user_id", sa.String(36), sa.ForeignKey("profiles.id"), nullable=False, index=True),
        sa.Column("fulfillment_id", sa.String(36), sa.ForeignKey("request_fulfillments.id"), nullable=False),
        sa.Column("vote_type", sa.String(10), nullable=False),
        sa.Column("vote_timestamp", sa.DateTime(), nullable=False, server_default=sa.func.now(), index=True),
    )


def downgrade() -> None:
    op.drop_table("vote_activity")
    op.drop_table("fulfillment_votes")
    op.drop_table("request_fulfillments")
