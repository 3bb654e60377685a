"""JSON export of the scenario record set.

Serializes scenarios in the in-memory shape (nested query/response,
camelCase ``createdAt``), not the storage-row shape.
"""

import json

from src.models.scenario import Scenario

EXPORT_FILENAME = "naviAI-scenarios.json"
EXPORT_MEDIA_TYPE = "application/json"


def export_scenarios_json(scenarios: list[Scenario]) -> bytes:
    """Pretty-printed UTF-8 JSON array, non-ASCII preserved."""
    payload = [s.to_export_dict() for s in scenarios]
    return json.dumps(payload, ensure_ascii=False, indent=2).encode("utf-8")


def content_disposition(filename: str = EXPORT_FILENAME) -> str:
    return f'attachment; filename="{filename}"'
