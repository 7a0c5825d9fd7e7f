"""Applies typed actions to a live page and reports a StepResult per action."""

import asyncio
import logging
import time
from typing import Any, Optional

from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from qaptain.errors import ExecutionFailure, QaptainError, TargetNotFound
from qaptain.models.actions import (
    Action,
    AssertAction,
    AssertCondition,
    ClickAction,
    FillAction,
    NavigateAction,
    SelectAction,
    UnrecognizedAction,
    WaitForLoadAction,
)
from qaptain.models.runs import StepResult, StepStatus
from qaptain.services.selector_resolver import ResolvedTarget, SelectorResolver
from qaptain.utils.config import settings
from qaptain.utils.logging import describe_value

logger = logging.getLogger(__name__)

ASSERT_POLL_SECONDS = 0.25

# Single-element actions; retried when they error on a found target
RETRYABLE_ACTIONS = (FillAction, ClickAction, SelectAction)


def failure_reason(error: Exception) -> str:
    """Human-readable reason for a failed step."""
    if isinstance(error, QaptainError):
        if error.details and error.details != error.message:
            return f"{error.message}: {error.details}"
        return error.message
    if isinstance(error, PlaywrightTimeoutError):
        return f"timed out: {str(error).splitlines()[0] if str(error) else 'no details'}"
    text = str(error).strip()
    return text.splitlines()[0] if text else type(error).__name__


class ActionExecutor:
    """Executes actions against one page with bounded waits."""

    def __init__(
        self,
        resolver: Optional[SelectorResolver] = None,
        element_timeout_ms: Optional[int] = None,
        settle_timeout_ms: Optional[int] = None,
        navigation_timeout_ms: Optional[int] = None,
        assert_timeout_ms: Optional[int] = None,
        step_retries: Optional[int] = None,
        retry_delay_ms: Optional[int] = None,
        run_id: str = "-"
    ):
        self.resolver = resolver or SelectorResolver()
        self.element_timeout_ms = settings.ELEMENT_TIMEOUT_MS if element_timeout_ms is None else element_timeout_ms
        self.settle_timeout_ms = settings.SETTLE_TIMEOUT_MS if settle_timeout_ms is None else settle_timeout_ms
        self.navigation_timeout_ms = navigation_timeout_ms or settings.NAVIGATION_TIMEOUT_MS
        self.assert_timeout_ms = settings.ASSERT_TIMEOUT_MS if assert_timeout_ms is None else assert_timeout_ms
        self.step_retries = settings.STEP_RETRIES if step_retries is None else step_retries
        self.retry_delay_ms = settings.STEP_RETRY_DELAY_MS if retry_delay_ms is None else retry_delay_ms
        self.run_id = run_id

    async def execute(
        self,
        action: Action,
        page: Any,
        *,
        order: int = 0,
        step: Optional[str] = None,
        target_url: Optional[str] = None
    ) -> StepResult:
        """
        Execute one action.

        Never raises for page-level problems: anything thrown while locating
        or manipulating a target is returned as a Failed StepResult.
        A fill, click or select that errors on a found target is retried
        ``step_retries`` times after ``retry_delay_ms``. Cancellation still
        propagates.

        Args:
            action: Typed action to apply
            page: Playwright page (or a compatible fake)
            order: Sequence number of the step within its scenario
            step: Step text the action came from, echoed into the result
            target_url: URL a bare Navigate action re-loads

        Returns:
            StepResult with Succeeded, Failed or Skipped status
        """
        started = time.monotonic()

        if isinstance(action, UnrecognizedAction):
            logger.info(f"[{self.run_id}] Skipping unrecognized step {order}")
            return self._result(action, StepStatus.SKIPPED, order, step, started, "unrecognized step")

        attempts = 1 + (self.step_retries if isinstance(action, RETRYABLE_ACTIONS) else 0)
        for attempt in range(1, attempts + 1):
            try:
                await self._dispatch(action, page, target_url)
                break
            except Exception as e:
                reason = failure_reason(e)
                # TargetNotFound already waited out the element timeout
                if attempt < attempts and not isinstance(e, TargetNotFound):
                    logger.info(f"[{self.run_id}] Step {order} ({action.kind}) failed, retrying: {reason}")
                    await asyncio.sleep(self.retry_delay_ms / 1000)
                    continue
                logger.warning(f"[{self.run_id}] Step {order} ({action.kind}) failed: {reason}")
                return self._result(action, StepStatus.FAILED, order, step, started, reason)

        return self._result(action, StepStatus.SUCCEEDED, order, step, started)

    def _result(
        self,
        action: Action,
        status: StepStatus,
        order: int,
        step: Optional[str],
        started: float,
        error: Optional[str] = None
    ) -> StepResult:
        return StepResult(
            action=action,
            status=status,
            error=error,
            order=order,
            step=step,
            duration_ms=int((time.monotonic() - started) * 1000),
        )

    async def _dispatch(self, action: Action, page: Any, target_url: Optional[str]):
        if isinstance(action, FillAction):
            await self._fill(action, page)
        elif isinstance(action, ClickAction):
            await self._click(action, page)
        elif isinstance(action, SelectAction):
            await self._select(action, page)
        elif isinstance(action, NavigateAction):
            await self._navigate(action, page, target_url)
        elif isinstance(action, WaitForLoadAction):
            await self._wait(action, page)
        elif isinstance(action, AssertAction):
            await self._assert(action.condition, page)
        else:
            raise ExecutionFailure("unsupported action", details=f"No handler for '{action.kind}'")

    async def _locate(self, page: Any, hint: str) -> ResolvedTarget:
        target = await self.resolver.resolve(page, hint, timeout_ms=self.element_timeout_ms)
        if target is None:
            raise TargetNotFound(hint)
        return target

    async def _fill(self, action: FillAction, page: Any):
        target = await self._locate(page, action.selector_hint)
        await target.locator.fill(action.value, timeout=self.element_timeout_ms)
        logger.info(
            f"[{self.run_id}] Filled '{action.selector_hint}' ({target.strategy}) with "
            f"{describe_value(action.selector_hint, action.value)}"
        )

    async def _click(self, action: ClickAction, page: Any):
        target = await self._locate(page, action.selector_hint)
        await target.locator.click(timeout=self.element_timeout_ms)
        logger.info(f"[{self.run_id}] Clicked '{action.selector_hint}' ({target.strategy})")
        await self._settle(page)

    async def _select(self, action: SelectAction, page: Any):
        target = await self._locate(page, action.selector_hint)
        # A plain string matches either the option value or its label
        await target.locator.select_option(action.option, timeout=self.element_timeout_ms)
        logger.info(f"[{self.run_id}] Selected '{action.option}' in '{action.selector_hint}'")

    async def _navigate(self, action: NavigateAction, page: Any, target_url: Optional[str]):
        url = action.url or target_url
        if not url:
            raise ExecutionFailure("nothing to navigate to", details="Navigate step has no URL and the run has no target URL")
        await page.goto(url, wait_until="load", timeout=self.navigation_timeout_ms)
        await self._settle(page)
        logger.info(f"[{self.run_id}] Navigated to {url}")

    async def _wait(self, action: WaitForLoadAction, page: Any):
        if action.fixed_delay:
            await asyncio.sleep(action.timeout_ms / 1000)
            return
        await page.wait_for_load_state("networkidle", timeout=action.timeout_ms)

    async def _settle(self, page: Any):
        """Best-effort network idle; not reaching it is not a failure."""
        try:
            await page.wait_for_load_state("networkidle", timeout=self.settle_timeout_ms)
        except PlaywrightTimeoutError:
            logger.debug(f"[{self.run_id}] Page did not reach network idle within {self.settle_timeout_ms}ms")

    async def _assert(self, condition: AssertCondition, page: Any):
        if condition.kind == "page_loaded":
            await page.wait_for_load_state("load", timeout=max(self.assert_timeout_ms, 1))
            return

        deadline = time.monotonic() + self.assert_timeout_ms / 1000
        while True:
            if await self._condition_holds(condition, page):
                logger.info(f"[{self.run_id}] Assertion held: {condition.describe()}")
                return
            if time.monotonic() >= deadline:
                raise ExecutionFailure("assertion failed", details=f"Expected {condition.describe()}")
            await asyncio.sleep(ASSERT_POLL_SECONDS)

    async def _condition_holds(self, condition: AssertCondition, page: Any) -> bool:
        expected = (condition.expected or "").lower()
        if condition.kind == "title_contains":
            return expected in (await page.title()).lower()
        if condition.kind == "url_contains":
            return expected in (page.url or "").lower()

        body = (await page.inner_text("body")).lower()
        if condition.kind == "text_absent":
            return expected not in body
        return expected in body
