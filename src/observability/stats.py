"""Scenario statistics — derived aggregates over the current record set.

Recomputed from scratch on every call; no stored state.
Deterministic — no LLM calls.
"""

from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone

from src.models.common import KST, ScenarioCategory, parse_display, utc_now
from src.models.scenario import Scenario


@dataclass
class CategoryShare:
    """One row of the category distribution."""

    name: str
    count: int
    percentage: float


@dataclass
class LegendEntry:
    """Category legend row; absent categories carry a zero count."""

    category: ScenarioCategory
    count: int

    def to_dict(self) -> dict:
        info = self.category.info
        return {
            "name": self.category.value,
            "slug": info.slug,
            "description": info.description,
            "color": info.color,
            "count": self.count,
        }


@dataclass
class ScenarioStats:
    """Aggregated dashboard statistics."""

    total: int
    category_count: int
    recent_count: int
    category_stats: dict[str, int]
    tag_frequency: dict[str, int] = field(default_factory=dict)
    activity_by_date: dict[str, int] = field(default_factory=dict)
    category_distribution: list[CategoryShare] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "total": self.total,
            "category_count": self.category_count,
            "recent_count": self.recent_count,
            "category_stats": dict(self.category_stats),
            "tag_frequency": [
                {"tag": tag, "count": count} for tag, count in self.tag_frequency.items()
            ],
            "activity_by_date": [
                {"date": date, "count": count} for date, count in self.activity_by_date.items()
            ],
            "category_distribution": [
                {"name": c.name, "count": c.count, "percentage": c.percentage}
                for c in self.category_distribution
            ],
        }


class StatisticsAggregator:
    """Compute dashboard statistics from a list of scenarios."""

    def __init__(
        self,
        *,
        recent_days: int = 7,
        tag_top_n: int = 20,
        activity_window: int = 10,
        display_tz: timezone = KST,
    ) -> None:
        self.recent_days = recent_days
        self.tag_top_n = tag_top_n
        self.activity_window = activity_window
        self._tz = display_tz

    def compute(
        self,
        scenarios: list[Scenario],
        *,
        now: datetime | None = None,
    ) -> ScenarioStats:
        category_stats = self.category_stats(scenarios)
        return ScenarioStats(
            total=len(scenarios),
            category_count=len(category_stats),
            recent_count=self.recent_count(scenarios, now=now),
            category_stats=category_stats,
            tag_frequency=self.tag_frequency(scenarios),
            activity_by_date=self.activity_by_date(scenarios),
            category_distribution=self.category_distribution(scenarios),
        )

    def category_stats(self, scenarios: list[Scenario]) -> dict[str, int]:
        """Counts for every category present (absent ones are omitted)."""
        return dict(Counter(s.category for s in scenarios))

    def recent_count(
        self,
        scenarios: list[Scenario],
        *,
        now: datetime | None = None,
    ) -> int:
        """Records created strictly after ``now - recent_days``.

        Unparseable createdAt values count as not recent.
        """
        cutoff = (now or utc_now()) - timedelta(days=self.recent_days)
        count = 0
        for s in scenarios:
            created = parse_display(s.created_at, self._tz)
            if created is not None and created > cutoff:
                count += 1
        return count

    def tag_frequency(
        self,
        scenarios: list[Scenario],
        top_n: int | None = None,
    ) -> dict[str, int]:
        """Tag → count, most frequent first, truncated to ``top_n``.

        Ties keep first-appearance order.
        """
        counts = Counter(tag for s in scenarios for tag in s.tags)
        limit = self.tag_top_n if top_n is None else top_n
        return dict(counts.most_common(limit))

    def activity_by_date(
        self,
        scenarios: list[Scenario],
        window: int | None = None,
    ) -> dict[str, int]:
        """Date (``YYYY-MM-DD``) → records created that day, newest first."""
        counts = Counter(s.created_at.strip()[:10] for s in scenarios if s.created_at.strip())
        ordered = sorted(counts.items(), key=lambda item: item[0], reverse=True)
        limit = self.activity_window if window is None else window
        return dict(ordered[:limit])

    def category_distribution(self, scenarios: list[Scenario]) -> list[CategoryShare]:
        total = len(scenarios)
        if total == 0:
            return []
        shares = [
            CategoryShare(name=name, count=count, percentage=round(count / total * 100, 1))
            for name, count in Counter(s.category for s in scenarios).items()
        ]
        return sorted(shares, key=lambda c: c.count, reverse=True)

    def category_legend(self, category_stats: dict[str, int]) -> list[LegendEntry]:
        """Every closed-set category in canonical order, zero when absent.

        Counts for values outside the closed set are folded into the
        category they are displayed under (the default one).
        """
        counts: Counter[ScenarioCategory] = Counter()
        for name, count in category_stats.items():
            counts[ScenarioCategory.from_value(name)] += count
        return [LegendEntry(category=c, count=counts[c]) for c in ScenarioCategory]
