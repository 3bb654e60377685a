"""Scenario models — Scenario, its query/response breakdowns, analyzer drafts."""

import time
from datetime import datetime, timezone

from pydantic import Field, field_validator

from src.models.common import (
    KST,
    NaviAIBase,
    ScenarioCategory,
    format_display,
    format_display_date,
    utc_now,
)
from src.models.errors import ScenarioValidationError

ID_PREFIX = "NAV_"


# ---------------------------------------------------------------------------
# Scenario
# ---------------------------------------------------------------------------


class ScenarioQuery(NaviAIBase):
    """Breakdown of the user utterance."""

    raw: str = ""
    context: str = ""
    intent: str = ""
    expectation: str = ""
    action: str = ""


class ScenarioResponse(NaviAIBase):
    """Breakdown of the assistant response."""

    trigger: str = ""
    phenomenon: str = ""
    impact: str = ""
    offer: str = ""


class Scenario(NaviAIBase):
    """One utterance → response example for the navigation assistant.

    ``category`` is kept as a plain string: storage never coerces unknown
    values, presentation resolves them via ScenarioCategory.from_value().
    """

    id: str = ""
    category: str = ScenarioCategory.default().value
    query: ScenarioQuery = Field(default_factory=ScenarioQuery)
    response: ScenarioResponse = Field(default_factory=ScenarioResponse)
    tags: list[str] = Field(default_factory=list)
    created_at: str = Field(default="", alias="createdAt")

    @field_validator("tags", mode="before")
    @classmethod
    def _tags_never_null(cls, value: object) -> object:
        if value is None:
            return []
        if isinstance(value, str):
            return parse_tag_input(value)
        return value

    def to_export_dict(self) -> dict:
        """In-memory shape (camelCase createdAt, nested breakdowns)."""
        return self.model_dump(by_alias=True)


# Required text fields, addressed as "<section>.<name>".
REQUIRED_FIELDS: tuple[str, ...] = (
    "query.raw",
    "query.context",
    "query.intent",
    "query.expectation",
    "query.action",
    "response.trigger",
    "response.phenomenon",
    "response.impact",
    "response.offer",
)


def missing_fields(scenario: Scenario) -> list[str]:
    """Return required fields that are empty or whitespace-only."""
    missing = []
    for path in REQUIRED_FIELDS:
        section, name = path.split(".")
        value = getattr(getattr(scenario, section), name)
        if not value or not value.strip():
            missing.append(path)
    return missing


def validate_for_save(scenario: Scenario) -> None:
    """Enforce the form-path completeness rules.

    Raises ScenarioValidationError naming the first offending field.
    """
    if not ScenarioCategory.is_known(scenario.category):
        raise ScenarioValidationError(
            "category", f"Unknown category: {scenario.category!r}",
        )
    missing = missing_fields(scenario)
    if missing:
        raise ScenarioValidationError(
            missing[0], f"Required field is empty: {missing[0]}",
        )


def parse_tag_input(text: str) -> list[str]:
    """Split a comma-separated tag string, trimming and dropping empties."""
    return [t.strip() for t in text.split(",") if t.strip()]


# ---------------------------------------------------------------------------
# Id generation / defaults
# ---------------------------------------------------------------------------


def epoch_millis() -> int:
    return time.time_ns() // 1_000_000


def generate_scenario_id(
    *,
    millis: int | None = None,
    index: int | None = None,
    short: bool = False,
) -> str:
    """Build a ``NAV_<timestamp>[_<index>]`` identifier.

    ``short`` keeps only the last six digits of the timestamp (form path).
    """
    stamp = str(millis if millis is not None else epoch_millis())
    if short:
        stamp = stamp[-6:]
    if index is None:
        return f"{ID_PREFIX}{stamp}"
    return f"{ID_PREFIX}{stamp}_{index}"


def with_form_defaults(
    scenario: Scenario,
    *,
    now: datetime | None = None,
    tz: timezone = KST,
) -> Scenario:
    """Fill a blank id and createdAt the way the manual form does."""
    now = now or utc_now()
    updates: dict = {}
    if not scenario.id.strip():
        updates["id"] = generate_scenario_id(
            millis=int(now.timestamp() * 1000), short=True,
        )
    else:
        updates["id"] = scenario.id.strip()
    if not scenario.created_at.strip():
        updates["created_at"] = format_display_date(now, tz)
    return scenario.model_copy(update=updates)


# ---------------------------------------------------------------------------
# Analyzer boundary
# ---------------------------------------------------------------------------


class AIConfig(NaviAIBase):
    """External-service selection passed through to the LLM client."""

    provider: str = "vercel"
    model: str = "openai/gpt-4o-mini"
    api_key: str | None = Field(default=None, alias="apiKey")


class ScenarioDraft(NaviAIBase):
    """Flat draft schema returned by the analyzer boundary."""

    category: ScenarioCategory
    query_raw: str = Field(..., min_length=1, description="사용자 원 발화")
    query_context: str = Field(..., min_length=1, description="운전 상황, 환경적 맥락")
    query_intent: str = Field(..., min_length=1, description="사용자의 핵심 목적")
    query_expectation: str = Field(..., min_length=1, description="원하는 정보나 결과")
    query_action: str = Field(..., min_length=1, description="시스템이 수행할 동작")
    response_trigger: str = Field(..., min_length=1, description="정보 제공 기준점 (위치/시점)")
    response_phenomenon: str = Field(..., min_length=1, description="현재 상황 설명 (현상/원인)")
    response_impact: str = Field(..., min_length=1, description="운전자에 미치는 영향")
    response_offer: str = Field(..., min_length=1, description="구체적인 해결책 (제안/행동)")
    tags: list[str] = Field(default_factory=list, description="관련 태그들")

    @field_validator(
        "query_raw", "query_context", "query_intent", "query_expectation",
        "query_action", "response_trigger", "response_phenomenon",
        "response_impact", "response_offer",
    )
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must not be blank")
        return value

    def to_scenario(self, *, scenario_id: str, created_at: str) -> Scenario:
        return Scenario(
            id=scenario_id,
            category=self.category.value,
            query=ScenarioQuery(
                raw=self.query_raw,
                context=self.query_context,
                intent=self.query_intent,
                expectation=self.query_expectation,
                action=self.query_action,
            ),
            response=ScenarioResponse(
                trigger=self.response_trigger,
                phenomenon=self.response_phenomenon,
                impact=self.response_impact,
                offer=self.response_offer,
            ),
            tags=[t.strip() for t in self.tags if t.strip()],
            created_at=created_at,
        )


class ScenarioAnalysisOutput(NaviAIBase):
    """Boundary response: ``{"scenarios": [ScenarioDraft, ...]}``."""

    scenarios: list[ScenarioDraft] = Field(..., min_length=1)


def batch_timestamp(now: datetime | None = None, tz: timezone = KST) -> str:
    """Shared createdAt for a batch of analyzer drafts."""
    return format_display(now or utc_now(), tz)
