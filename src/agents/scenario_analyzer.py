"""Scenario analyzer — candidate utterances into structured Scenario drafts.

Given the splitter's candidates, ask the LLM for one draft per utterance,
validate the batch against the canonical draft schema, then assign ids and
a shared creation timestamp. The batch succeeds or fails as a unit.
"""

import logging
from datetime import datetime, timezone

from src.agents.llm_client import LLMClient, LLMClientError, LLMRequest
from src.agents.prompts import PROMPT_VERSION
from src.agents.prompts.scenario_analysis import SYSTEM_PROMPT, build_prompt
from src.models.common import KST, utc_now
from src.models.errors import AnalysisFailedError
from src.models.scenario import (
    AIConfig,
    Scenario,
    ScenarioAnalysisOutput,
    batch_timestamp,
    generate_scenario_id,
)

logger = logging.getLogger(__name__)


class ScenarioAnalyzer:
    """Analyze candidate utterances into Scenario drafts."""

    def __init__(
        self,
        llm_client: LLMClient,
        *,
        display_tz: timezone = KST,
        max_tokens: int = 4096,
    ) -> None:
        self._llm = llm_client
        self._tz = display_tz
        self._max_tokens = max_tokens

    def build_request(self, candidates: list[str]) -> LLMRequest:
        return LLMRequest(
            system_prompt=SYSTEM_PROMPT,
            user_prompt=build_prompt(candidates),
            output_schema=ScenarioAnalysisOutput,
            max_tokens=self._max_tokens,
        )

    async def analyze(
        self,
        candidates: list[str],
        config: AIConfig | None = None,
        *,
        now: datetime | None = None,
    ) -> list[Scenario]:
        """Return one draft per candidate (advisory), ids and createdAt assigned.

        Raises AnalysisFailedError on any boundary failure; no partial
        results are ever returned.
        """
        if not candidates:
            raise AnalysisFailedError("No candidate utterances to analyze.")

        logger.info(
            "scenario analysis: candidates=%d prompt=%s provider=%s",
            len(candidates), PROMPT_VERSION, config.provider if config else "default",
        )
        request = self.build_request(candidates)
        try:
            response = await self._llm.generate(request, config=config)
        except (LLMClientError, ValueError) as exc:
            logger.error("scenario analysis failed: %s", exc)
            raise AnalysisFailedError(f"질의 분석에 실패했습니다: {exc}", cause=exc) from exc

        output = response.parsed
        if not isinstance(output, ScenarioAnalysisOutput):
            raise AnalysisFailedError("Analyzer returned an unexpected payload type.")

        if len(output.scenarios) != len(candidates):
            logger.warning(
                "scenario analysis cardinality mismatch: candidates=%d drafts=%d",
                len(candidates), len(output.scenarios),
            )

        now = now or utc_now()
        millis = int(now.timestamp() * 1000)
        created_at = batch_timestamp(now, self._tz)
        drafts = [
            draft.to_scenario(
                scenario_id=generate_scenario_id(millis=millis, index=i),
                created_at=created_at,
            )
            for i, draft in enumerate(output.scenarios)
        ]
        logger.info("scenario analysis produced %d drafts", len(drafts))
        return drafts
