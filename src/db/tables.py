"""SQLAlchemy ORM table models for the NaviAI scenario store.

One row per Scenario. The query/response breakdowns are flattened into
``query_*`` / ``response_*`` columns; tags use FlexJSON (JSONB on Postgres,
JSON on SQLite).
"""

from datetime import datetime

from sqlalchemy import DateTime, String, Text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.types import JSON

from src.db.session import Base

# JSONB on PostgreSQL, plain JSON on SQLite (for tests)
FlexJSON = JSONB().with_variant(JSON(), "sqlite")


class ScenarioRow(Base):
    """Scenario record. ``id`` is the immutable store key."""

    __tablename__ = "scenarios"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    category: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    query_raw: Mapped[str] = mapped_column(Text, nullable=False)
    query_context: Mapped[str] = mapped_column(Text, nullable=False, default="")
    query_intent: Mapped[str] = mapped_column(Text, nullable=False, default="")
    query_expectation: Mapped[str] = mapped_column(Text, nullable=False, default="")
    query_action: Mapped[str] = mapped_column(Text, nullable=False, default="")
    response_trigger: Mapped[str] = mapped_column(Text, nullable=False, default="")
    response_phenomenon: Mapped[str] = mapped_column(Text, nullable=False, default="")
    response_impact: Mapped[str] = mapped_column(Text, nullable=False, default="")
    response_offer: Mapped[str] = mapped_column(Text, nullable=False, default="")
    tags = mapped_column(FlexJSON, nullable=False, default=list)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, index=True,
    )
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
