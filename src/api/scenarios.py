"""FastAPI scenario endpoints.

GET    /v1/scenarios                  — list (search / category filter)
POST   /v1/scenarios                  — create
GET    /v1/scenarios/stats            — aggregate statistics
GET    /v1/scenarios/categories       — category legend with counts
GET    /v1/scenarios/export           — JSON download
GET    /v1/scenarios/providers        — AI providers and their models
POST   /v1/scenarios/analyze          — raw text → drafts (not persisted)
POST   /v1/scenarios/analyze/batch    — raw text → drafts → created
GET    /v1/scenarios/{id}             — one scenario
PUT    /v1/scenarios/{id}             — full replace
DELETE /v1/scenarios/{id}             — delete (idempotent)

Every operation goes through DashboardController; its typed failures are
mapped to HTTP errors here so the session dependency rolls back.
"""

from fastapi import APIRouter, Depends, HTTPException, Query, Response
from pydantic import BaseModel, Field

from src.agents.llm_client import PROVIDER_MODELS
from src.api.dependencies import get_dashboard_controller, get_statistics_aggregator
from src.config.settings import Settings, get_settings
from src.dashboard.controller import ActionResult, DashboardController
from src.export.json_export import EXPORT_MEDIA_TYPE, content_disposition
from src.models.common import ALL_CATEGORIES
from src.models.errors import (
    AnalysisFailedError,
    DuplicateKeyError,
    EmptyInputError,
    NotFoundError,
    ScenarioValidationError,
    StoreError,
)
from src.models.scenario import AIConfig, Scenario
from src.observability.stats import StatisticsAggregator

router = APIRouter(prefix="/v1/scenarios", tags=["scenarios"])


# ---------------------------------------------------------------------------
# Request / Response schemas
# ---------------------------------------------------------------------------


class ScenarioListResponse(BaseModel):
    scenarios: list[Scenario]
    total: int
    filtered_total: int


class AnalyzeRequest(BaseModel):
    text: str
    config: AIConfig | None = None


class AnalyzeResponse(BaseModel):
    scenarios: list[Scenario]


class BatchCreateResponse(BaseModel):
    created: int
    scenarios: list[Scenario]


class LegendEntryResponse(BaseModel):
    name: str
    slug: str
    description: str
    color: str
    count: int


class ProviderResponse(BaseModel):
    provider: str
    models: list[str]
    is_default: bool


class StatsResponse(BaseModel):
    total: int
    category_count: int
    recent_count: int
    category_stats: dict[str, int]
    tag_frequency: list[dict] = Field(default_factory=list)
    activity_by_date: list[dict] = Field(default_factory=list)
    category_distribution: list[dict] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

_STATUS_BY_ERROR: list[tuple[type[Exception], int]] = [
    (ScenarioValidationError, 422),
    (DuplicateKeyError, 409),
    (NotFoundError, 404),
    (EmptyInputError, 400),
    (AnalysisFailedError, 502),
    (StoreError, 503),
]


def _raise_for(result: ActionResult) -> None:
    """Convert a failed controller result into an HTTPException."""
    if result.ok:
        return
    status = 400
    for error_type, code in _STATUS_BY_ERROR:
        if isinstance(result.error, error_type):
            status = code
            break
    detail: dict = {"message": result.notification.message}
    if result.notification.field:
        detail["field"] = result.notification.field
    if result.notification.retryable:
        detail["retryable"] = True
    raise HTTPException(status_code=status, detail=detail)


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@router.get("", response_model=ScenarioListResponse)
async def list_scenarios(
    search: str = Query(default=""),
    category: str = Query(default=ALL_CATEGORIES),
    controller: DashboardController = Depends(get_dashboard_controller),
) -> ScenarioListResponse:
    """List scenarios, newest first, filtered by substring and category."""
    controller.search(search)
    filtered = controller.filter_by_category(category)
    return ScenarioListResponse(
        scenarios=filtered,
        total=len(controller.state.scenarios),
        filtered_total=len(filtered),
    )


@router.post("", status_code=201, response_model=Scenario)
async def create_scenario(
    body: Scenario,
    controller: DashboardController = Depends(get_dashboard_controller),
) -> Scenario:
    """Create a scenario; blank id / createdAt are generated."""
    result = await controller.save(body, editing=False)
    _raise_for(result)
    return result.scenarios[0]


@router.get("/stats", response_model=StatsResponse)
async def get_stats(
    controller: DashboardController = Depends(get_dashboard_controller),
) -> StatsResponse:
    return StatsResponse(**controller.state.stats.to_dict())


@router.get("/categories", response_model=list[LegendEntryResponse])
async def get_category_legend(
    controller: DashboardController = Depends(get_dashboard_controller),
    aggregator: StatisticsAggregator = Depends(get_statistics_aggregator),
) -> list[LegendEntryResponse]:
    """Closed-set categories in canonical order with live counts."""
    legend = aggregator.category_legend(controller.state.stats.category_stats)
    return [LegendEntryResponse(**entry.to_dict()) for entry in legend]


@router.get("/providers", response_model=list[ProviderResponse])
async def list_providers(
    settings: Settings = Depends(get_settings),
) -> list[ProviderResponse]:
    """Selectable AI providers and models for the settings panel."""
    return [
        ProviderResponse(
            provider=provider.value,
            models=models,
            is_default=provider.value == settings.DEFAULT_AI_PROVIDER,
        )
        for provider, models in PROVIDER_MODELS.items()
    ]


@router.get("/export")
async def export_scenarios(
    controller: DashboardController = Depends(get_dashboard_controller),
) -> Response:
    """Download the full record set as naviAI-scenarios.json."""
    return Response(
        content=controller.export_json(),
        media_type=EXPORT_MEDIA_TYPE,
        headers={"Content-Disposition": content_disposition()},
    )


@router.post("/analyze", response_model=AnalyzeResponse)
async def analyze_text(
    body: AnalyzeRequest,
    controller: DashboardController = Depends(get_dashboard_controller),
) -> AnalyzeResponse:
    """Split raw text and return analyzer drafts without persisting them."""
    result = await controller.analyze(body.text, body.config)
    _raise_for(result)
    return AnalyzeResponse(scenarios=result.scenarios)


@router.post("/analyze/batch", status_code=201, response_model=BatchCreateResponse)
async def analyze_and_create(
    body: AnalyzeRequest,
    controller: DashboardController = Depends(get_dashboard_controller),
) -> BatchCreateResponse:
    """Analyze raw text and create every draft; all-or-nothing."""
    result = await controller.analyze_and_create(body.text, body.config)
    _raise_for(result)
    return BatchCreateResponse(created=len(result.scenarios), scenarios=result.scenarios)


@router.get("/{scenario_id}", response_model=Scenario)
async def get_scenario(
    scenario_id: str,
    controller: DashboardController = Depends(get_dashboard_controller),
) -> Scenario:
    for scenario in controller.state.scenarios:
        if scenario.id == scenario_id:
            return scenario
    raise HTTPException(status_code=404, detail=f"Scenario {scenario_id} not found.")


@router.put("/{scenario_id}", response_model=Scenario)
async def update_scenario(
    scenario_id: str,
    body: Scenario,
    controller: DashboardController = Depends(get_dashboard_controller),
) -> Scenario:
    """Full-record replacement; the path id wins over the body id."""
    result = await controller.save(body.model_copy(update={"id": scenario_id}), editing=True)
    _raise_for(result)
    return result.scenarios[0]


@router.delete("/{scenario_id}", status_code=204)
async def delete_scenario(
    scenario_id: str,
    controller: DashboardController = Depends(get_dashboard_controller),
) -> Response:
    result = await controller.delete(scenario_id)
    _raise_for(result)
    return Response(status_code=204)
