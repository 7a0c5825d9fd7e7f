"""
Scenario runner: one run = extract, generate, then execute each scenario.

State machine per run::

    IDLE -> EXTRACTING -> GENERATING -> NO_SCENARIOS
                                     -> (NAVIGATING -> EXECUTING -> CAPTURING -> COMPLETED)* -> COMPLETED
    any state -> CLOSED   (session released, exactly once)

A page without forms goes from EXTRACTING straight to COMPLETED with a
"no usable forms" outcome and the oracle is never called.
"""

import logging
import time
import uuid
from typing import Any, Callable, List, Optional

from qaptain.models.page_context import PageContext
from qaptain.models.runs import (
    RunOutcome,
    RunResult,
    RunState,
    ScenarioResult,
    ScenarioStatus,
    StepResult,
    StepStatus,
)
from qaptain.models.scenarios import Scenario
from qaptain.services.action_executor import ActionExecutor, failure_reason
from qaptain.services.artifact_manager import ArtifactManager, get_artifact_manager
from qaptain.services.browser_manager import BrowserManager, get_browser_manager
from qaptain.services.context_extractor import PageContextExtractor
from qaptain.services.scenario_generator import ScenarioGenerator, get_scenario_generator
from qaptain.services.step_interpreter import StepInterpreter
from qaptain.utils.config import settings
from qaptain.utils.guards import check_url_guard
from qaptain.utils.logging import bind_run

logger = logging.getLogger(__name__)


def new_run_id() -> str:
    return uuid.uuid4().hex[:12]


class RunTrace:
    """Per-run bookkeeping: the states the run passed through."""

    def __init__(self, run_id: str, url: str):
        self.run_id = run_id
        self.url = url
        self.transitions: List[RunState] = [RunState.IDLE]

    def enter(self, state: RunState):
        logger.debug(f"[{self.run_id}] {self.transitions[-1].value} -> {state.value}")
        self.transitions.append(state)

    @property
    def state(self) -> RunState:
        return self.transitions[-1]


class ScenarioRunner:
    """Runs scenarios against a URL inside one exclusively owned browser session."""

    def __init__(
        self,
        browser_manager: Optional[BrowserManager] = None,
        extractor: Optional[PageContextExtractor] = None,
        generator: Optional[ScenarioGenerator] = None,
        interpreter: Optional[StepInterpreter] = None,
        executor_factory: Optional[Callable[[str], ActionExecutor]] = None,
        artifacts: Optional[ArtifactManager] = None,
        stop_on_failure: Optional[bool] = None,
        screenshot_timeout_ms: Optional[int] = None
    ):
        self.browser_manager = browser_manager or get_browser_manager()
        self.extractor = extractor or PageContextExtractor()
        self._generator = generator
        self.interpreter = interpreter or StepInterpreter()
        self.executor_factory = executor_factory or (lambda run_id: ActionExecutor(run_id=run_id))
        self.artifacts = artifacts
        self.stop_on_failure = settings.STOP_ON_STEP_FAILURE if stop_on_failure is None else stop_on_failure
        self.screenshot_timeout_ms = screenshot_timeout_ms or settings.SCREENSHOT_TIMEOUT_MS

    @property
    def generator(self) -> ScenarioGenerator:
        if self._generator is None:
            self._generator = get_scenario_generator()
        return self._generator

    async def run(
        self,
        url: str,
        page_context: Optional[PageContext] = None,
        scenarios: Optional[List[Scenario]] = None,
        run_id: Optional[str] = None
    ) -> RunResult:
        """
        Execute a full run.

        Args:
            url: Absolute http(s) URL under test
            page_context: Pre-extracted context; skips extraction when given
            scenarios: Scenarios to run; skips generation when given
            run_id: Identifier for logs and artifacts (generated if omitted)

        Returns:
            RunResult with one ScenarioResult per scenario

        Raises:
            GuardError: If the URL is not an absolute http(s) URL
            LaunchError: If no browser could be launched
            ExtractionError: If the page could not be loaded or read
            GenerationError: If the oracle failed after one retry
        """
        url = check_url_guard(url)
        trace = RunTrace(run_id or new_run_id(), url)
        run_id = trace.run_id
        started = time.monotonic()

        with bind_run(run_id):
            session = await self.browser_manager.acquire(run_id)
            try:
                result = await self._run(trace, session.page, page_context, scenarios)
            finally:
                try:
                    await self.browser_manager.release(session)
                finally:
                    trace.enter(RunState.CLOSED)

            result.transitions = list(trace.transitions)
            logger.info(
                f"[{run_id}] Run finished: {result.outcome.value}, "
                f"{len(result.results)} scenario(s) in {int((time.monotonic() - started) * 1000)}ms"
            )
        return result

    async def _run(
        self,
        trace: RunTrace,
        page: Any,
        page_context: Optional[PageContext],
        scenarios: Optional[List[Scenario]]
    ) -> RunResult:
        run_id, url = trace.run_id, trace.url

        trace.enter(RunState.EXTRACTING)
        if page_context is None:
            context = await self.extractor.load_and_extract(page, url, run_id)
        else:
            context = page_context
            logger.info(f"[{run_id}] Using supplied page context")

        result = RunResult(run_id=run_id, url=url, outcome=RunOutcome.COMPLETED, page_context=context)

        if scenarios is None:
            if not context.has_forms:
                logger.info(f"[{run_id}] No forms on {url}, nothing to generate scenarios for")
                trace.enter(RunState.COMPLETED)
                result.outcome = RunOutcome.NO_USABLE_FORMS
                return result

            trace.enter(RunState.GENERATING)
            report = await self.generator.generate_with_report(context, run_id)
            result.rejected_scenarios = report.rejected
            scenarios = report.scenarios

            if not scenarios:
                logger.info(f"[{run_id}] Oracle returned no scenarios")
                trace.enter(RunState.NO_SCENARIOS)
                result.outcome = RunOutcome.NO_SCENARIOS
                return result

        result.test_plan = list(scenarios)
        executor = self.executor_factory(run_id)

        for index, scenario in enumerate(scenarios, start=1):
            scenario_result = await self.run_scenario(trace, page, scenario, index, context, executor)
            result.results.append(scenario_result)

        trace.enter(RunState.COMPLETED)
        return result

    async def run_scenario(
        self,
        trace: RunTrace,
        page: Any,
        scenario: Scenario,
        index: int,
        context: Optional[PageContext],
        executor: ActionExecutor
    ) -> ScenarioResult:
        """Navigate afresh, execute the steps in order, capture a screenshot."""
        run_id = trace.run_id
        started = time.monotonic()
        logger.info(f"[{run_id}] Scenario {index}: {scenario.title} ({len(scenario.steps)} steps)")

        trace.enter(RunState.NAVIGATING)
        try:
            await self.extractor.load(page, trace.url, run_id)
        except Exception as e:
            logger.warning(f"[{run_id}] Scenario {index} aborted, navigation failed: {e}")
            trace.enter(RunState.CAPTURING)
            screenshot, path = await self._capture(page, run_id, index, scenario.title)
            return ScenarioResult(
                scenario_title=scenario.title,
                overall_status=ScenarioStatus.ABORTED,
                error=failure_reason(e),
                screenshot=screenshot,
                screenshot_path=path,
                duration_ms=int((time.monotonic() - started) * 1000),
            )

        trace.enter(RunState.EXECUTING)
        steps: List[StepResult] = []
        failed = False
        for order, step in enumerate(scenario.steps, start=1):
            action = self.interpreter.interpret(step, context)
            if failed and self.stop_on_failure:
                steps.append(StepResult(
                    action=action,
                    status=StepStatus.SKIPPED,
                    error="skipped after an earlier step failed",
                    order=order,
                    step=step,
                ))
                continue

            step_result = await executor.execute(action, page, order=order, step=step, target_url=trace.url)
            steps.append(step_result)
            if step_result.status == StepStatus.FAILED:
                failed = True

        trace.enter(RunState.CAPTURING)
        screenshot, path = await self._capture(page, run_id, index, scenario.title)

        trace.enter(RunState.COMPLETED)
        status = ScenarioStatus.FAILED if failed else ScenarioStatus.COMPLETED
        logger.info(f"[{run_id}] Scenario {index} {status.value}")
        return ScenarioResult(
            scenario_title=scenario.title,
            overall_status=status,
            steps=steps,
            screenshot=screenshot,
            screenshot_path=path,
            duration_ms=int((time.monotonic() - started) * 1000),
        )

    async def _capture(self, page: Any, run_id: str, index: int, title: str):
        """Best-effort screenshot; a failed capture never fails the scenario."""
        try:
            screenshot = await page.screenshot(full_page=True, timeout=self.screenshot_timeout_ms)
        except Exception as e:
            logger.warning(f"[{run_id}] Screenshot failed for scenario {index}: {e}")
            return None, None

        artifacts = self.artifacts or get_artifact_manager()
        try:
            path = artifacts.save_screenshot(run_id, index, title, screenshot)
        except OSError as e:
            logger.warning(f"[{run_id}] Could not store screenshot for scenario {index}: {e}")
            path = None
        return screenshot, path
