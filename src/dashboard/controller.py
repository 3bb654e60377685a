"""Dashboard controller — orchestrates operator intents against store and analyzer.

Owns an explicit DashboardState. The store is the single source of truth;
``state.scenarios`` is a read-through cache reloaded after every completed
mutation, and statistics are recomputed only after that reload.

Boundary failures never escape: each operation returns an ActionResult
carrying a Notification, and the prior state is left untouched.
"""

import logging
from dataclasses import dataclass, field
from datetime import timezone
from enum import StrEnum

from src.agents.query_splitter import split_queries
from src.agents.scenario_analyzer import ScenarioAnalyzer
from src.export.json_export import export_scenarios_json
from src.models.common import ALL_CATEGORIES, KST
from src.models.errors import (
    AnalysisFailedError,
    DuplicateKeyError,
    EmptyInputError,
    NotFoundError,
    ScenarioError,
    ScenarioValidationError,
    StoreError,
)
from src.models.scenario import AIConfig, Scenario, validate_for_save, with_form_defaults
from src.observability.stats import ScenarioStats, StatisticsAggregator
from src.repositories.base import AbstractScenarioStore

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# State
# ---------------------------------------------------------------------------


class NotificationLevel(StrEnum):
    INFO = "INFO"
    SUCCESS = "SUCCESS"
    ERROR = "ERROR"


@dataclass
class Notification:
    """User-visible outcome of an operation."""

    level: NotificationLevel
    message: str
    field: str | None = None
    retryable: bool = False


@dataclass
class ActionResult:
    """Outcome of a controller operation.

    ``scenarios`` holds what the operation produced (created/updated records
    or analyzer drafts); ``error`` is set whenever ``ok`` is False.
    """

    ok: bool
    notification: Notification
    scenarios: list[Scenario] = field(default_factory=list)
    error: ScenarioError | None = None


@dataclass
class DashboardState:
    """Application state for one operator session."""

    scenarios: list[Scenario] = field(default_factory=list)
    stats: ScenarioStats | None = None
    search_term: str = ""
    category_filter: str = ALL_CATEGORIES
    edit_buffer: Scenario | None = None
    pending_drafts: list[Scenario] = field(default_factory=list)
    notifications: list[Notification] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Search / filter
# ---------------------------------------------------------------------------


def matches(scenario: Scenario, term: str, category_filter: str = ALL_CATEGORIES) -> bool:
    """Case-insensitive substring match on raw utterance, id or any tag."""
    needle = (term or "").lower()
    matches_search = (
        needle in scenario.query.raw.lower()
        or needle in scenario.id.lower()
        or any(needle in tag.lower() for tag in scenario.tags)
    )
    matches_category = (
        not category_filter
        or category_filter == ALL_CATEGORIES
        or scenario.category == category_filter
    )
    return matches_search and matches_category


def filter_scenarios(
    scenarios: list[Scenario],
    term: str = "",
    category_filter: str = ALL_CATEGORIES,
) -> list[Scenario]:
    return [s for s in scenarios if matches(s, term, category_filter)]


# ---------------------------------------------------------------------------
# Controller
# ---------------------------------------------------------------------------


class DashboardController:
    """Single-operator dashboard orchestration."""

    def __init__(
        self,
        store: AbstractScenarioStore,
        analyzer: ScenarioAnalyzer | None = None,
        *,
        aggregator: StatisticsAggregator | None = None,
        state: DashboardState | None = None,
        display_tz: timezone = KST,
    ) -> None:
        self._store = store
        self._analyzer = analyzer
        self._aggregator = aggregator or StatisticsAggregator(display_tz=display_tz)
        self._tz = display_tz
        self.state = state or DashboardState()

    # ----- Loading -----

    async def refresh(self) -> ActionResult:
        """Reload the record set from the store and recompute statistics.

        On a store failure the previous list and statistics are kept.
        """
        try:
            await self._reload()
        except ScenarioError as exc:
            return self._fail(exc)
        return ActionResult(
            ok=True,
            notification=Notification(NotificationLevel.INFO, "목록을 불러왔습니다."),
            scenarios=list(self.state.scenarios),
        )

    async def _reload(self) -> None:
        scenarios = await self._store.list_all()
        self.state.scenarios = scenarios
        self.state.stats = self._aggregator.compute(scenarios)

    # ----- Search / filter -----

    def search(self, term: str) -> list[Scenario]:
        self.state.search_term = term
        return self.filtered()

    def filter_by_category(self, category: str) -> list[Scenario]:
        self.state.category_filter = category or ALL_CATEGORIES
        return self.filtered()

    def filtered(self) -> list[Scenario]:
        return filter_scenarios(
            self.state.scenarios, self.state.search_term, self.state.category_filter,
        )

    # ----- Editing -----

    def begin_edit(self, scenario: Scenario | None = None) -> Scenario:
        """Open the edit buffer with an existing record or a blank draft."""
        self.state.edit_buffer = scenario.model_copy(deep=True) if scenario else Scenario()
        return self.state.edit_buffer

    async def save(self, scenario: Scenario, *, editing: bool = False) -> ActionResult:
        """Create (form defaults applied) or fully replace a scenario."""
        if not editing:
            scenario = with_form_defaults(scenario, tz=self._tz)
        try:
            validate_for_save(scenario)
            if editing:
                saved = await self._store.update(scenario)
            else:
                saved = await self._store.create(scenario)
            await self._reload()
        except ScenarioError as exc:
            return self._fail(exc)

        self.state.edit_buffer = None
        verb = "수정" if editing else "생성"
        return self._succeed(f"시나리오 {saved.id}를 {verb}했습니다.", [saved])

    async def delete(self, scenario_id: str) -> ActionResult:
        """Delete by id; an already-absent id is reported, not failed."""
        try:
            try:
                await self._store.delete(scenario_id)
                message = f"시나리오 {scenario_id}를 삭제했습니다."
            except NotFoundError:
                logger.info("delete of absent scenario %s ignored", scenario_id)
                message = f"시나리오 {scenario_id}는 이미 삭제되었습니다."
            await self._reload()
        except ScenarioError as exc:
            return self._fail(exc)

        return self._succeed(message)

    # ----- Analysis -----

    async def analyze(self, text: str, config: AIConfig | None = None) -> ActionResult:
        """Split and analyze raw text into drafts.

        One draft merges into the edit buffer; several become pending batch
        drafts. On failure the edit buffer is preserved.
        """
        try:
            drafts = await self._run_analysis(text, config)
        except ScenarioError as exc:
            return self._fail(exc)

        if len(drafts) == 1:
            self.state.edit_buffer = self._merge_into_buffer(drafts[0])
            self.state.pending_drafts = []
        else:
            self.state.pending_drafts = drafts
        return self._succeed(f"{len(drafts)}개의 시나리오 초안을 생성했습니다.", drafts)

    async def create_batch(self, drafts: list[Scenario]) -> ActionResult:
        """Persist analyzer drafts all-or-nothing."""
        try:
            for draft in drafts:
                validate_for_save(draft)
            created = await self._store.create_many(drafts)
            await self._reload()
        except ScenarioError as exc:
            return self._fail(exc)

        self.state.pending_drafts = []
        return self._succeed(f"{len(created)}개의 시나리오를 추가했습니다.", created)

    async def analyze_and_create(
        self,
        text: str,
        config: AIConfig | None = None,
    ) -> ActionResult:
        """Splitter → analyzer → store.create for every draft → refresh."""
        try:
            drafts = await self._run_analysis(text, config)
        except ScenarioError as exc:
            return self._fail(exc)
        return await self.create_batch(drafts)

    async def _run_analysis(self, text: str, config: AIConfig | None) -> list[Scenario]:
        candidates = split_queries(text)
        if self._analyzer is None:
            raise AnalysisFailedError("Scenario analyzer is not configured.")
        return await self._analyzer.analyze(candidates, config)

    def _merge_into_buffer(self, draft: Scenario) -> Scenario:
        buffer = self.state.edit_buffer
        if buffer is not None and buffer.id.strip():
            return draft.model_copy(update={"id": buffer.id})
        return draft

    # ----- Export -----

    def export_json(self) -> bytes:
        return export_scenarios_json(self.state.scenarios)

    # ----- Notifications -----

    def _succeed(self, message: str, scenarios: list[Scenario] | None = None) -> ActionResult:
        notification = Notification(level=NotificationLevel.SUCCESS, message=message)
        self.state.notifications.append(notification)
        return ActionResult(ok=True, notification=notification, scenarios=scenarios or [])

    def _fail(self, exc: ScenarioError) -> ActionResult:
        notification = _notification_for(exc)
        logger.warning("dashboard operation failed: %s", exc)
        self.state.notifications.append(notification)
        return ActionResult(ok=False, notification=notification, error=exc)


def _notification_for(exc: ScenarioError) -> Notification:
    if isinstance(exc, ScenarioValidationError):
        return Notification(NotificationLevel.ERROR, exc.message, field=exc.field)
    if isinstance(exc, DuplicateKeyError):
        return Notification(
            NotificationLevel.ERROR,
            f"이미 존재하는 시나리오 ID입니다: {exc.scenario_id}",
            field="id",
        )
    if isinstance(exc, NotFoundError):
        return Notification(NotificationLevel.ERROR, f"시나리오를 찾을 수 없습니다: {exc.scenario_id}")
    if isinstance(exc, EmptyInputError):
        return Notification(NotificationLevel.ERROR, str(exc), field="query.raw")
    if isinstance(exc, StoreError):
        return Notification(
            NotificationLevel.ERROR,
            "저장소에 연결할 수 없습니다. 잠시 후 다시 시도해주세요.",
            retryable=True,
        )
    if isinstance(exc, AnalysisFailedError):
        return Notification(
            NotificationLevel.ERROR,
            "질의 분석에 실패했습니다. 다시 시도해주세요.",
            retryable=True,
        )
    return Notification(NotificationLevel.ERROR, str(exc))
