"""Shared types, enums, and base models used across NaviAI domain models."""

from dataclasses import dataclass
from datetime import datetime, time, timedelta, timezone
from enum import StrEnum

from pydantic import BaseModel

# Reference deployment presents timestamps in KST (UTC+9).
KST = timezone(timedelta(hours=9))

DISPLAY_DATETIME_FORMAT = "%Y-%m-%d %H:%M"
DISPLAY_DATE_FORMAT = "%Y-%m-%d"


def utc_now() -> datetime:
    """Return the current UTC timestamp (timezone-aware)."""
    return datetime.now(tz=timezone.utc)


def ensure_aware(value: datetime) -> datetime:
    """Treat naive datetimes (SQLite round-trips) as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def format_display(value: datetime, tz: timezone = KST) -> str:
    """Format a timestamp as ``YYYY-MM-DD HH:mm`` in the display offset."""
    return ensure_aware(value).astimezone(tz).strftime(DISPLAY_DATETIME_FORMAT)


def format_display_date(value: datetime, tz: timezone = KST) -> str:
    """Format a timestamp as ``YYYY-MM-DD`` in the display offset."""
    return ensure_aware(value).astimezone(tz).strftime(DISPLAY_DATE_FORMAT)


def parse_display(value: str | None, tz: timezone = KST) -> datetime | None:
    """Parse a createdAt string back into an aware datetime.

    Accepts ``YYYY-MM-DD``, ``YYYY-MM-DD HH:mm`` and full ISO-8601. Values
    without an offset are interpreted in ``tz``. Returns None for anything
    unparseable.
    """
    if not value or not isinstance(value, str):
        return None
    text = value.strip()
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        try:
            parsed = datetime.strptime(text, DISPLAY_DATETIME_FORMAT)
        except ValueError:
            return None
    if len(text) == 10:
        parsed = datetime.combine(parsed.date(), time.min)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=tz)
    return parsed


# --- Categories ---


@dataclass(frozen=True)
class CategoryInfo:
    """Legend metadata for a scenario category."""

    slug: str
    description: str
    color: str


class ScenarioCategory(StrEnum):
    """Closed set of scenario categories.

    Values are the Korean labels persisted in the store and emitted by the
    analyzer. Order is the canonical legend order; the first member is the
    presentation fallback for unknown values.
    """

    ROUTE_GUIDANCE = "경로안내"
    TRAFFIC_INFO = "교통정보"
    NEARBY_FACILITIES = "주변시설"
    PARKING_GUIDANCE = "주차안내"
    WEATHER_ROAD = "날씨/도로"
    VEHICLE_CONTROL = "차량제어"
    SCHEDULE_MANAGEMENT = "일정관리"
    EMERGENCY = "긴급상황"

    @classmethod
    def default(cls) -> "ScenarioCategory":
        return cls.ROUTE_GUIDANCE

    @classmethod
    def is_known(cls, value: str) -> bool:
        return value in {member.value for member in cls}

    @classmethod
    def from_value(cls, value: str | None) -> "ScenarioCategory":
        """Resolve a stored value, falling back to the default variant."""
        if value is not None and cls.is_known(value):
            return cls(value)
        return cls.default()

    @property
    def info(self) -> CategoryInfo:
        return _CATEGORY_INFO[self]


_CATEGORY_INFO: dict[ScenarioCategory, CategoryInfo] = {
    ScenarioCategory.ROUTE_GUIDANCE: CategoryInfo(
        "route-guidance", "목적지 설정, 경로 탐색, 재탐색", "blue",
    ),
    ScenarioCategory.TRAFFIC_INFO: CategoryInfo(
        "traffic-info", "실시간 정체, 사고 정보, 도로 공사", "red",
    ),
    ScenarioCategory.NEARBY_FACILITIES: CategoryInfo(
        "nearby-facilities", "주유소, 휴게소, 편의점, 식당", "green",
    ),
    ScenarioCategory.PARKING_GUIDANCE: CategoryInfo(
        "parking-guidance", "주차장 검색, 요금, 가능 여부", "purple",
    ),
    ScenarioCategory.WEATHER_ROAD: CategoryInfo(
        "weather-road", "기상 정보, 노면 상태, 안전 운행", "gray",
    ),
    ScenarioCategory.VEHICLE_CONTROL: CategoryInfo(
        "vehicle-control", "에어컨, 히터, 오디오, 창문 제어", "orange",
    ),
    ScenarioCategory.SCHEDULE_MANAGEMENT: CategoryInfo(
        "schedule-management", "약속 시간, 출발 알림, 도착 예정", "cyan",
    ),
    ScenarioCategory.EMERGENCY: CategoryInfo(
        "emergency", "사고 신고, 응급실 안내, 긴급 출동", "crimson",
    ),
}

# Filter value meaning "no category filter".
ALL_CATEGORIES = "all"


# --- Base model ---


class NaviAIBase(BaseModel):
    """Base model with common configuration for all NaviAI Pydantic models."""

    model_config = {
        "populate_by_name": True,
        "protected_namespaces": (),
    }
