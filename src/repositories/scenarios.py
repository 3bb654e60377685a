"""Scenario repository — SQLAlchemy implementation of the scenario store."""

import logging
from datetime import timezone

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from src.db.tables import ScenarioRow
from src.models.common import KST, format_display, parse_display, utc_now
from src.models.errors import DuplicateKeyError, NotFoundError, StoreError
from src.models.scenario import Scenario, ScenarioQuery, ScenarioResponse
from src.repositories.base import AbstractScenarioStore

logger = logging.getLogger(__name__)


def row_to_scenario(row: ScenarioRow, tz: timezone = KST) -> Scenario:
    """Convert a storage row to the in-memory Scenario shape."""
    return Scenario(
        id=row.id,
        category=row.category,
        query=ScenarioQuery(
            raw=row.query_raw,
            context=row.query_context,
            intent=row.query_intent,
            expectation=row.query_expectation,
            action=row.query_action,
        ),
        response=ScenarioResponse(
            trigger=row.response_trigger,
            phenomenon=row.response_phenomenon,
            impact=row.response_impact,
            offer=row.response_offer,
        ),
        tags=list(row.tags or []),
        created_at=format_display(row.created_at, tz),
    )


def scenario_to_columns(scenario: Scenario) -> dict:
    """Mutable columns of a Scenario (excludes id and timestamps)."""
    return {
        "category": scenario.category,
        "query_raw": scenario.query.raw,
        "query_context": scenario.query.context,
        "query_intent": scenario.query.intent,
        "query_expectation": scenario.query.expectation,
        "query_action": scenario.query.action,
        "response_trigger": scenario.response.trigger,
        "response_phenomenon": scenario.response.phenomenon,
        "response_impact": scenario.response.impact,
        "response_offer": scenario.response.offer,
        "tags": list(scenario.tags),
    }


class ScenarioRepository(AbstractScenarioStore):
    """Scenario store backed by the ``scenarios`` table."""

    def __init__(self, session: AsyncSession, *, display_tz: timezone = KST) -> None:
        self._session = session
        self._tz = display_tz

    def _new_row(self, scenario: Scenario) -> ScenarioRow:
        now = utc_now()
        created = parse_display(scenario.created_at, self._tz) or now
        # Stored in UTC; SQLite drops the offset on round-trip.
        created = created.astimezone(timezone.utc)
        return ScenarioRow(
            id=scenario.id,
            **scenario_to_columns(scenario),
            created_at=created,
            updated_at=now,
        )

    async def _get_row(self, scenario_id: str) -> ScenarioRow | None:
        try:
            return await self._session.get(ScenarioRow, scenario_id)
        except SQLAlchemyError as exc:
            raise StoreError("get", exc) from exc

    async def _flush(self, operation: str) -> None:
        try:
            await self._session.flush()
        except IntegrityError:
            raise
        except SQLAlchemyError as exc:
            raise StoreError(operation, exc) from exc

    async def list_all(self) -> list[Scenario]:
        try:
            result = await self._session.execute(
                select(ScenarioRow).order_by(
                    ScenarioRow.created_at.desc(), ScenarioRow.id.asc(),
                )
            )
        except SQLAlchemyError as exc:
            raise StoreError("list", exc) from exc
        return [row_to_scenario(r, self._tz) for r in result.scalars().all()]

    async def get(self, scenario_id: str) -> Scenario | None:
        row = await self._get_row(scenario_id)
        if row is None:
            return None
        return row_to_scenario(row, self._tz)

    async def create(self, scenario: Scenario) -> Scenario:
        created = await self.create_many([scenario])
        return created[0]

    async def create_many(self, scenarios: list[Scenario]) -> list[Scenario]:
        seen: set[str] = set()
        for s in scenarios:
            if s.id in seen:
                raise DuplicateKeyError(s.id)
            seen.add(s.id)
        for s in scenarios:
            if await self._get_row(s.id) is not None:
                raise DuplicateKeyError(s.id)

        rows = [self._new_row(s) for s in scenarios]
        self._session.add_all(rows)
        try:
            await self._flush("create")
        except IntegrityError as exc:
            logger.warning("scenario insert conflict: %s", exc.orig)
            raise DuplicateKeyError(scenarios[0].id if len(scenarios) == 1 else "batch") from exc
        return [row_to_scenario(r, self._tz) for r in rows]

    async def update(self, scenario: Scenario) -> Scenario:
        row = await self._get_row(scenario.id)
        if row is None:
            raise NotFoundError(scenario.id)
        for column, value in scenario_to_columns(scenario).items():
            setattr(row, column, value)
        row.updated_at = utc_now()
        await self._flush("update")
        return row_to_scenario(row, self._tz)

    async def delete(self, scenario_id: str) -> None:
        row = await self._get_row(scenario_id)
        if row is None:
            raise NotFoundError(scenario_id)
        try:
            await self._session.delete(row)
        except SQLAlchemyError as exc:
            raise StoreError("delete", exc) from exc
        await self._flush("delete")
