"""Seed script — load the reference scenarios into the NaviAI database.

Creates NAV_001 (경로안내) and NAV_002 (주변시설), the two example records
the dashboard ships with.

Idempotent: safe to run multiple times — ids that already exist are skipped.

Usage:
    python -m scripts.seed          # against DATABASE_URL from .env
    pytest tests/scripts/test_seed.py  # against aiosqlite in-memory
"""

import asyncio

from sqlalchemy.ext.asyncio import AsyncSession

from src.models.scenario import Scenario, ScenarioQuery, ScenarioResponse
from src.repositories.scenarios import ScenarioRepository

SEED_SCENARIOS: list[Scenario] = [
    Scenario(
        id="NAV_001",
        category="경로안내",
        query=ScenarioQuery(
            raw="회사까지 가장 빠른 길로 안내해줘",
            context="출근 시간대, 자택 출발",
            intent="최적 경로 탐색",
            expectation="실시간 최단시간 경로",
            action="경로 탐색 및 안내 시작",
        ),
        response=ScenarioResponse(
            trigger="현재 위치에서 회사까지",
            phenomenon="주요 도로 출근 정체 중",
            impact="예상 35분, 5분 지연",
            offer="우회 경로로 안내 시작",
        ),
        tags=["출퇴근", "실시간교통"],
        created_at="2024-01-15",
    ),
    Scenario(
        id="NAV_002",
        category="주변시설",
        query=ScenarioQuery(
            raw="근처 주유소 찾아줘",
            context="고속도로 주행 중, 연료 부족",
            intent="가까운 주유소 검색",
            expectation="거리순 주유소 목록",
            action="POI 검색 및 경로 안내",
        ),
        response=ScenarioResponse(
            trigger="현재 위치 반경 5km 내",
            phenomenon="3개 주유소 이용 가능",
            impact="가장 가까운 곳 2km, 5분 소요",
            offer="○○ 주유소로 안내할까요?",
        ),
        tags=["주유소", "POI검색"],
        created_at="2024-01-14",
    ),
]


async def seed_demo(session: AsyncSession) -> dict:
    """Insert the reference scenarios that are not yet present.

    Returns a summary dict with ``created`` (ids inserted) and ``skipped``
    (ids already in the store).
    """
    repo = ScenarioRepository(session)
    missing: list[Scenario] = []
    skipped: list[str] = []
    for scenario in SEED_SCENARIOS:
        if await repo.get(scenario.id) is None:
            missing.append(scenario)
        else:
            skipped.append(scenario.id)

    created = await repo.create_many(missing) if missing else []
    return {
        "created": [s.id for s in created],
        "skipped": skipped,
    }


async def _run_seed() -> None:
    """Run the seed against the real database (idempotent)."""
    from src.db.session import async_session_factory

    async with async_session_factory() as session:
        result = await seed_demo(session)

        if not result["created"]:
            print("Reference scenarios already seeded. Skipping.")
            print(f"  Existing: {', '.join(result['skipped'])}")
            return

        await session.commit()

        print("Seed complete.")
        print(f"  Created: {', '.join(result['created'])}")
        if result["skipped"]:
            print(f"  Skipped: {', '.join(result['skipped'])}")


if __name__ == "__main__":
    asyncio.run(_run_seed())
