"""FastAPI dependency injection factories.

Each factory takes AsyncSession via Depends(get_async_session) or settings
via Depends(get_settings) and returns a ready-to-use collaborator.
API endpoints use these via Depends(); tests override them.
"""

from fastapi import Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from src.agents.llm_client import LLMClient
from src.agents.scenario_analyzer import ScenarioAnalyzer
from src.config.settings import Settings, get_settings
from src.dashboard.controller import DashboardController
from src.db.session import get_async_session
from src.observability.stats import StatisticsAggregator
from src.repositories.scenarios import ScenarioRepository

# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------


async def get_scenario_repo(
    session: AsyncSession = Depends(get_async_session),
    settings: Settings = Depends(get_settings),
) -> ScenarioRepository:
    return ScenarioRepository(session, display_tz=settings.display_timezone)


# ---------------------------------------------------------------------------
# Analysis
# ---------------------------------------------------------------------------


def get_llm_client(settings: Settings = Depends(get_settings)) -> LLMClient:
    return LLMClient(
        gateway_key=settings.AI_GATEWAY_API_KEY,
        gateway_base_url=settings.AI_GATEWAY_BASE_URL,
        openai_key=settings.OPENAI_API_KEY,
        google_key=settings.GOOGLE_API_KEY,
        default_provider=settings.DEFAULT_AI_PROVIDER,
        default_model=settings.DEFAULT_AI_MODEL,
        timeout=settings.LLM_TIMEOUT_SECONDS,
        max_retries=settings.LLM_MAX_RETRIES,
    )


def get_scenario_analyzer(
    llm_client: LLMClient = Depends(get_llm_client),
    settings: Settings = Depends(get_settings),
) -> ScenarioAnalyzer:
    return ScenarioAnalyzer(llm_client, display_tz=settings.display_timezone)


# ---------------------------------------------------------------------------
# Statistics / controller
# ---------------------------------------------------------------------------


def get_statistics_aggregator(
    settings: Settings = Depends(get_settings),
) -> StatisticsAggregator:
    return StatisticsAggregator(
        recent_days=settings.RECENT_WINDOW_DAYS,
        tag_top_n=settings.TAG_TOP_N,
        activity_window=settings.ACTIVITY_WINDOW,
        display_tz=settings.display_timezone,
    )


async def get_dashboard_controller(
    repo: ScenarioRepository = Depends(get_scenario_repo),
    analyzer: ScenarioAnalyzer = Depends(get_scenario_analyzer),
    aggregator: StatisticsAggregator = Depends(get_statistics_aggregator),
    settings: Settings = Depends(get_settings),
) -> DashboardController:
    controller = DashboardController(
        repo,
        analyzer,
        aggregator=aggregator,
        display_tz=settings.display_timezone,
    )
    result = await controller.refresh()
    if not result.ok:
        raise HTTPException(
            status_code=503,
            detail={"message": result.notification.message, "retryable": True},
        )
    return controller
