"""Abstract store interface for the NaviAI persistence layer.

Repositories call add()/flush()/delete() only — never commit().
The session dependency handles commit/rollback (Unit-of-Work).
"""

from abc import ABC, abstractmethod

from src.models.scenario import Scenario


class AbstractScenarioStore(ABC):
    """Keyed record store for Scenario objects.

    ``create`` hard-fails on an existing id (DuplicateKeyError); ``update``
    and ``delete`` fail on a missing id (NotFoundError). Last writer wins.
    """

    @abstractmethod
    async def list_all(self) -> list[Scenario]:
        """All scenarios, most recently created first."""
        ...

    @abstractmethod
    async def get(self, scenario_id: str) -> Scenario | None:
        ...

    @abstractmethod
    async def create(self, scenario: Scenario) -> Scenario:
        ...

    @abstractmethod
    async def create_many(self, scenarios: list[Scenario]) -> list[Scenario]:
        """Insert all scenarios or none of them."""
        ...

    @abstractmethod
    async def update(self, scenario: Scenario) -> Scenario:
        ...

    @abstractmethod
    async def delete(self, scenario_id: str) -> None:
        ...
