"""Tests for DashboardController orchestration."""

import json

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine

from src.dashboard.controller import (
    DashboardController,
    NotificationLevel,
    filter_scenarios,
)
from src.models.errors import (
    AnalysisFailedError,
    DuplicateKeyError,
    EmptyInputError,
    ScenarioValidationError,
    StoreError,
)
from src.models.scenario import Scenario
from src.repositories.scenarios import ScenarioRepository


class FakeAnalyzer:
    """Returns canned drafts, one per candidate, or fails the batch."""

    def __init__(self, build, *, fail: bool = False) -> None:
        self._build = build
        self._fail = fail
        self.calls: list[list[str]] = []

    async def analyze(self, candidates, config=None, *, now=None) -> list[Scenario]:
        self.calls.append(list(candidates))
        if self._fail:
            raise AnalysisFailedError("boom")
        return [
            self._build(f"NAV_1705278645000_{i}", raw=c, created_at="2024-01-15 09:30")
            for i, c in enumerate(candidates)
        ]


@pytest.fixture
def store(db_session: AsyncSession) -> ScenarioRepository:
    return ScenarioRepository(db_session)


class TestSearchAndFilter:
    def test_search_matches_raw_id_and_tags(self, make_scenario) -> None:
        scenarios = [
            make_scenario("NAV_001", raw="회사까지 가장 빠른 길로 안내해줘", tags=["출퇴근"]),
            make_scenario("NAV_002", category="주변시설", raw="근처 주유소 찾아줘", tags=["주유소"]),
        ]
        assert [s.id for s in filter_scenarios(scenarios, "주유소")] == ["NAV_002"]
        assert [s.id for s in filter_scenarios(scenarios, "nav_001")] == ["NAV_001"]
        assert len(filter_scenarios(scenarios, "")) == 2

    def test_category_filter(self, make_scenario) -> None:
        scenarios = [make_scenario("A"), make_scenario("B", category="주변시설")]
        assert [s.id for s in filter_scenarios(scenarios, "", "주변시설")] == ["B"]
        assert len(filter_scenarios(scenarios, "", "all")) == 2


class TestSave:
    @pytest.mark.anyio
    async def test_create_applies_defaults_and_refreshes(self, store, make_scenario) -> None:
        controller = DashboardController(store)
        controller.begin_edit()

        result = await controller.save(make_scenario("", created_at=""))

        assert result.ok
        assert result.scenarios[0].id.startswith("NAV_")
        assert len(controller.state.scenarios) == 1
        assert controller.state.stats.total == 1
        assert controller.state.edit_buffer is None
        assert result.notification.level == NotificationLevel.SUCCESS

    @pytest.mark.anyio
    async def test_validation_failure_leaves_store_untouched(self, store, make_scenario) -> None:
        controller = DashboardController(store)
        incomplete = make_scenario("NAV_1")
        incomplete.query.intent = ""

        result = await controller.save(incomplete)

        assert not result.ok
        assert isinstance(result.error, ScenarioValidationError)
        assert result.notification.field == "query.intent"
        assert await store.list_all() == []

    @pytest.mark.anyio
    async def test_duplicate_reported(self, store, make_scenario) -> None:
        controller = DashboardController(store)
        await controller.save(make_scenario("NAV_1"))
        result = await controller.save(make_scenario("NAV_1"))
        assert isinstance(result.error, DuplicateKeyError)
        assert result.notification.field == "id"

    @pytest.mark.anyio
    async def test_edit_replaces_record(self, store, make_scenario) -> None:
        controller = DashboardController(store)
        await controller.save(make_scenario("NAV_1"))

        edited = controller.begin_edit(controller.state.scenarios[0])
        edited.category = "교통정보"
        result = await controller.save(edited, editing=True)

        assert result.ok
        assert controller.state.scenarios[0].category == "교통정보"
        assert controller.state.stats.category_stats == {"교통정보": 1}


class TestDelete:
    @pytest.mark.anyio
    async def test_delete_existing(self, store, make_scenario) -> None:
        controller = DashboardController(store)
        await controller.save(make_scenario("NAV_1"))
        result = await controller.delete("NAV_1")
        assert result.ok
        assert controller.state.scenarios == []

    @pytest.mark.anyio
    async def test_delete_absent_is_reported(self, store) -> None:
        controller = DashboardController(store)
        result = await controller.delete("NAV_404")
        assert result.ok
        assert "이미 삭제" in result.notification.message


class TestAnalyze:
    @pytest.mark.anyio
    async def test_single_draft_fills_edit_buffer(self, store, make_scenario) -> None:
        controller = DashboardController(store, FakeAnalyzer(make_scenario))
        controller.begin_edit(make_scenario("NAV_KEEP"))

        result = await controller.analyze("근처 주유소 찾아줘")

        assert result.ok
        assert controller.state.edit_buffer.id == "NAV_KEEP"
        assert controller.state.edit_buffer.query.raw == "근처 주유소 찾아줘"
        assert await store.list_all() == []

    @pytest.mark.anyio
    async def test_multiple_drafts_pending(self, store, make_scenario) -> None:
        controller = DashboardController(store, FakeAnalyzer(make_scenario))
        result = await controller.analyze("근처 주유소 찾아줘\n주차장 알려줘")
        assert len(result.scenarios) == 2
        assert len(controller.state.pending_drafts) == 2

        created = await controller.create_batch(controller.state.pending_drafts)
        assert created.ok
        assert len(controller.state.scenarios) == 2
        assert controller.state.pending_drafts == []

    @pytest.mark.anyio
    async def test_failure_preserves_edit_buffer(self, store, make_scenario) -> None:
        controller = DashboardController(store, FakeAnalyzer(make_scenario, fail=True))
        buffer = controller.begin_edit(make_scenario("NAV_KEEP", raw="작성 중인 질의"))

        result = await controller.analyze("근처 주유소 찾아줘")

        assert not result.ok
        assert result.notification.retryable
        assert controller.state.edit_buffer == buffer

    @pytest.mark.anyio
    async def test_empty_input(self, store, make_scenario) -> None:
        analyzer = FakeAnalyzer(make_scenario)
        controller = DashboardController(store, analyzer)
        result = await controller.analyze("#\n##")
        assert isinstance(result.error, EmptyInputError)
        assert result.notification.field == "query.raw"
        assert analyzer.calls == []

    @pytest.mark.anyio
    async def test_no_analyzer_configured(self, store) -> None:
        result = await DashboardController(store).analyze("근처 주유소 찾아줘")
        assert isinstance(result.error, AnalysisFailedError)


class TestAnalyzeAndCreate:
    @pytest.mark.anyio
    async def test_creates_every_draft(self, store, make_scenario) -> None:
        controller = DashboardController(store, FakeAnalyzer(make_scenario))
        result = await controller.analyze_and_create("첫번째 질의\n두번째 질의\n세번째 질의")
        assert result.ok
        assert len(await store.list_all()) == 3
        assert controller.state.stats.total == 3

    @pytest.mark.anyio
    async def test_failed_batch_creates_nothing(self, store, make_scenario) -> None:
        controller = DashboardController(store, FakeAnalyzer(make_scenario, fail=True))
        result = await controller.analyze_and_create("첫번째 질의\n두번째 질의\n세번째 질의")
        assert not result.ok
        assert await store.list_all() == []
        assert controller.state.scenarios == []


class TestExport:
    @pytest.mark.anyio
    async def test_export_current_records(self, store, make_scenario) -> None:
        controller = DashboardController(store)
        await controller.save(make_scenario("NAV_1"))
        payload = json.loads(controller.export_json())
        assert [r["id"] for r in payload] == ["NAV_1"]


@pytest.fixture
async def unreachable_store():
    """Repository bound to a database file that cannot be opened."""
    eng = create_async_engine("sqlite+aiosqlite:////nonexistent_dir/naviai.db")
    session = AsyncSession(bind=eng, expire_on_commit=False)
    yield ScenarioRepository(session)
    await session.close()
    await eng.dispose()


class TestStoreFailures:
    """Database failures become notifications, never exceptions."""

    @pytest.mark.anyio
    async def test_save(self, unreachable_store, make_scenario) -> None:
        controller = DashboardController(unreachable_store)
        buffer = controller.begin_edit(make_scenario("NAV_1"))

        result = await controller.save(make_scenario("NAV_1"))

        assert not result.ok
        assert isinstance(result.error, StoreError)
        assert result.notification.retryable
        assert controller.state.edit_buffer == buffer

    @pytest.mark.anyio
    async def test_refresh_keeps_previous_state(self, unreachable_store, make_scenario) -> None:
        controller = DashboardController(unreachable_store)
        controller.state.scenarios = [make_scenario("NAV_1")]

        result = await controller.refresh()

        assert not result.ok
        assert isinstance(result.error, StoreError)
        assert [s.id for s in controller.state.scenarios] == ["NAV_1"]

    @pytest.mark.anyio
    async def test_delete(self, unreachable_store) -> None:
        result = await DashboardController(unreachable_store).delete("NAV_1")
        assert isinstance(result.error, StoreError)

    @pytest.mark.anyio
    async def test_create_batch(self, unreachable_store, make_scenario) -> None:
        result = await DashboardController(unreachable_store).create_batch(
            [make_scenario("NAV_1"), make_scenario("NAV_2")],
        )
        assert isinstance(result.error, StoreError)


class TestMalformedProviderOutput:
    """A malformed provider payload fails the batch as an analysis failure."""

    @pytest.mark.anyio
    async def test_gemini_parts_not_objects(self, store) -> None:
        from unittest.mock import AsyncMock, MagicMock, patch

        from src.agents.llm_client import LLMClient
        from src.agents.scenario_analyzer import ScenarioAnalyzer
        from src.models.scenario import AIConfig

        resp = MagicMock()
        resp.raise_for_status = MagicMock()
        resp.json.return_value = {"candidates": [{"content": {"parts": ["oops"]}}]}
        mock_http = AsyncMock()
        mock_http.post.return_value = resp
        mock_http.__aenter__ = AsyncMock(return_value=mock_http)
        mock_http.__aexit__ = AsyncMock(return_value=False)

        analyzer = ScenarioAnalyzer(LLMClient(google_key="g-key"))
        controller = DashboardController(store, analyzer)

        with patch("src.agents.llm_client.httpx.AsyncClient", return_value=mock_http):
            result = await controller.analyze(
                "근처 주유소 찾아줘", AIConfig(provider="google", model="gemini-1.5-pro"),
            )

        assert not result.ok
        assert isinstance(result.error, AnalysisFailedError)
        assert result.notification.retryable
