"""Initial schema — scenarios table.

Revision ID: 001
Revises:
Create Date: 2026-10-19
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

FlexJSON = JSONB().with_variant(sa.JSON(), "sqlite")


def upgrade() -> None:
    op.create_table(
        "scenarios",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("category", sa.String(50), nullable=False),
        sa.Column("query_raw", sa.Text, nullable=False),
        sa.Column("query_context", sa.Text, nullable=False, server_default=""),
        sa.Column("query_intent", sa.Text, nullable=False, server_default=""),
        sa.Column("query_expectation", sa.Text, nullable=False, server_default=""),
        sa.Column("query_action", sa.Text, nullable=False, server_default=""),
        sa.Column("response_trigger", sa.Text, nullable=False, server_default=""),
        sa.Column("response_phenomenon", sa.Text, nullable=False, server_default=""),
        sa.Column("response_impact", sa.Text, nullable=False, server_default=""),
        sa.Column("response_offer", sa.Text, nullable=False, server_default=""),
        sa.Column("tags", FlexJSON, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_scenarios_category", "scenarios", ["category"])
    op.create_index("ix_scenarios_created_at", "scenarios", ["created_at"])


def downgrade() -> None:
    op.drop_index("ix_scenarios_created_at", table_name="scenarios")
    op.drop_index("ix_scenarios_category", table_name="scenarios")
    op.drop_table("scenarios")
