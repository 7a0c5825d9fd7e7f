"""Scenario generation client: asks the oracle for scenarios and defends against it."""

import asyncio
import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, List, Optional

from qaptain.errors import GenerationError
from qaptain.models.page_context import PageContext
from qaptain.models.scenarios import Scenario
from qaptain.services.ai import prompts
from qaptain.services.ai.llm_provider import LLMProvider, ProviderResponseError, ProviderTransportError
from qaptain.services.ai.provider_factory import get_llm_provider
from qaptain.utils.config import settings

logger = logging.getLogger(__name__)


@dataclass
class GenerationReport:
    """Scenarios accepted from one oracle call, plus how many were dropped."""
    scenarios: List[Scenario] = field(default_factory=list)
    rejected: int = 0


def load_golden_scenarios(path: Optional[str]) -> List[Scenario]:
    """
    Load predefined scenarios from a JSON file.

    The file holds either a list of ``{title, steps}`` objects or an object
    with a ``scenarios`` list.

    Raises:
        ValueError: If the file is not valid golden-scenario JSON
    """
    if not path:
        return []

    data = json.loads(Path(path).read_text(encoding="utf-8"))
    if isinstance(data, dict):
        data = data.get("scenarios", [])
    if not isinstance(data, list):
        raise ValueError(f"Golden scenarios in {path} must be a list")

    golden = [Scenario.model_validate(item) for item in data]
    logger.info(f"Loaded {len(golden)} golden scenario(s) from {path}")
    return golden


def apply_golden(scenarios: List[Scenario], golden: List[Scenario]) -> List[Scenario]:
    """Replace the steps of scenarios whose title matches a golden title (case-insensitive)."""
    if not golden:
        return scenarios

    by_title = {g.title.strip().lower(): g for g in golden}
    applied = []
    for scenario in scenarios:
        match = by_title.get(scenario.title.strip().lower())
        if match:
            logger.info(f"Using golden steps for scenario '{scenario.title}'")
            scenario = scenario.model_copy(update={"steps": list(match.steps)})
        applied.append(scenario)
    return applied


def validate_scenario(item: Any) -> Optional[Scenario]:
    """A well-formed Scenario, or None when the oracle's item is malformed."""
    if not isinstance(item, dict):
        return None

    title = item.get("title")
    steps = item.get("steps")
    if not isinstance(title, str) or not title.strip():
        return None
    if not isinstance(steps, list) or not all(isinstance(step, str) for step in steps):
        return None

    description = item.get("description")
    return Scenario(
        title=title.strip(),
        description=description if isinstance(description, str) else None,
        steps=[step.strip() for step in steps if step.strip()],
    )


class ScenarioGenerator:
    """
    Calls the oracle with a timeout and exactly one retry on transient failure.

    Response problems (unparsable output) are not retried.
    """

    def __init__(
        self,
        provider: Optional[LLMProvider],
        timeout_seconds: Optional[float] = None,
        backoff_seconds: Optional[float] = None,
        golden: Optional[List[Scenario]] = None
    ):
        self.provider = provider
        self.timeout_seconds = timeout_seconds or settings.ORACLE_TIMEOUT_SECONDS
        self.backoff_seconds = settings.ORACLE_RETRY_BACKOFF_SECONDS if backoff_seconds is None else backoff_seconds
        self.golden = golden or []

    async def _call_oracle(
        self,
        call: Callable[[], Awaitable[Dict[str, Any]]],
        run_id: str
    ) -> Dict[str, Any]:
        if self.provider is None:
            raise GenerationError(
                "Scenario oracle is not configured",
                details="Set LLM_PROVIDER and its credentials"
            )

        for attempt in (1, 2):
            try:
                return await asyncio.wait_for(call(), timeout=self.timeout_seconds)
            except (asyncio.TimeoutError, ProviderTransportError) as e:
                reason = f"timed out after {self.timeout_seconds}s" if isinstance(e, asyncio.TimeoutError) else e.details
                if attempt == 2:
                    logger.error(f"[{run_id}] Oracle failed after retry: {reason}")
                    raise GenerationError("Scenario oracle unavailable", details=reason)
                logger.warning(f"[{run_id}] Oracle call failed ({reason}), retrying in {self.backoff_seconds}s")
                await asyncio.sleep(self.backoff_seconds)
            except ProviderResponseError as e:
                logger.error(f"[{run_id}] Oracle returned unusable output: {e.details}")
                raise GenerationError("Scenario oracle returned unusable output", details=e.details)

    async def generate_with_report(self, context: PageContext, run_id: str = "-") -> GenerationReport:
        """
        Ask the oracle for scenarios for a page.

        Args:
            context: Extracted page context
            run_id: Run identifier for log lines

        Returns:
            GenerationReport; its scenario list may be empty

        Raises:
            GenerationError: If the oracle is unavailable after one retry
        """
        prompt = prompts.generate_scenarios_prompt(context)
        prompt += prompts.golden_titles_hint([g.title for g in self.golden])

        data = await self._call_oracle(lambda: self.provider.generate_json(prompt), run_id)

        raw = data.get("scenarios")
        if not isinstance(raw, list):
            logger.warning(f"[{run_id}] Oracle response has no scenario list")
            raw = []

        report = GenerationReport()
        for item in raw:
            scenario = validate_scenario(item)
            if scenario is None:
                report.rejected += 1
                continue
            report.scenarios.append(scenario)

        if report.rejected:
            logger.warning(f"[{run_id}] Rejected {report.rejected} malformed scenario(s)")

        report.scenarios = apply_golden(report.scenarios, self.golden)
        logger.info(f"[{run_id}] Oracle proposed {len(report.scenarios)} scenario(s)")
        return report

    async def generate(self, context: PageContext, run_id: str = "-") -> List[Scenario]:
        report = await self.generate_with_report(context, run_id)
        return report.scenarios

    async def interpret_story(
        self,
        user_story: str,
        context: Optional[PageContext] = None,
        run_id: str = "-"
    ) -> List[str]:
        """Turn a user story into natural-language steps through the oracle."""
        prompt = prompts.interpret_scenario_prompt(user_story, context)
        data = await self._call_oracle(lambda: self.provider.generate_json(prompt), run_id)

        steps = data.get("steps")
        if not isinstance(steps, list):
            raise GenerationError("Scenario oracle returned unusable output", details="Response has no 'steps' list")
        return [step.strip() for step in steps if isinstance(step, str) and step.strip()]


_generator: Optional[ScenarioGenerator] = None


def get_scenario_generator() -> ScenarioGenerator:
    """Get global scenario generator built from settings."""
    global _generator
    if _generator is None:
        _generator = ScenarioGenerator(
            provider=get_llm_provider(),
            golden=load_golden_scenarios(settings.GOLDEN_SCENARIOS_PATH)
        )
    return _generator
