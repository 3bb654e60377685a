"""Typed failures raised by the store, splitter and analyzer.

The dashboard controller converts every ScenarioError into a user-visible
notification; the API layer maps them to HTTP status codes.
"""


class ScenarioError(Exception):
    """Base class for all scenario-domain failures."""


class ScenarioValidationError(ScenarioError):
    """A required field is missing/empty or the category is outside the set."""

    def __init__(self, field: str, message: str) -> None:
        super().__init__(message)
        self.field = field
        self.message = message


class DuplicateKeyError(ScenarioError):
    """A scenario with the same id already exists."""

    def __init__(self, scenario_id: str) -> None:
        super().__init__(f"Scenario {scenario_id} already exists.")
        self.scenario_id = scenario_id


class NotFoundError(ScenarioError):
    """No scenario exists for the given id."""

    def __init__(self, scenario_id: str) -> None:
        super().__init__(f"Scenario {scenario_id} not found.")
        self.scenario_id = scenario_id


class EmptyInputError(ScenarioError):
    """The splitter produced no candidate utterances."""

    def __init__(self, message: str = "분석할 질의가 없습니다.") -> None:
        super().__init__(message)


class AnalysisFailedError(ScenarioError):
    """The analyzer batch failed as a unit; nothing was produced."""

    def __init__(self, message: str, cause: Exception | None = None) -> None:
        super().__init__(message)
        self.cause = cause


class StoreError(ScenarioError):
    """The backing database failed (unreachable, locked, schema missing)."""

    def __init__(self, operation: str, cause: Exception | None = None) -> None:
        super().__init__(f"Scenario store {operation} failed: {cause}")
        self.operation = operation
        self.cause = cause
