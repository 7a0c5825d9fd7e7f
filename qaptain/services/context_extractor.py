"""Read-only extraction of a PageContext from a loaded page."""

import logging
from typing import Any, Optional

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError
from pydantic import ValidationError

from qaptain.errors import ExtractionError
from qaptain.models.page_context import PageContext
from qaptain.utils.config import settings

logger = logging.getLogger(__name__)

# Runs in the page; only reads the DOM.
EXTRACT_SCRIPT = """
() => {
  const forms = Array.from(document.querySelectorAll('form')).map(form => ({
    id: form.id || '',
    className: typeof form.className === 'string' ? form.className : '',
    inputs: Array.from(form.querySelectorAll('input, textarea, select')).map(input => ({
      name: input.name || '',
      type: input.type || input.tagName.toLowerCase(),
      placeholder: input.placeholder || '',
    })),
  }));

  const navLinks = Array.from(document.querySelectorAll('nav a')).map(link => ({
    href: link.href || '',
    text: link.textContent ? link.textContent.trim() : null,
  }));

  return {
    title: document.title,
    url: window.location.href,
    hasLoginForm: !!document.querySelector('form[id*="login"], form[class*="login"]'),
    hasContactForm: !!document.querySelector('form[id*="contact"], form[class*="contact"]'),
    hasSearchForm: !!document.querySelector('form[role="search"], form[action*="search"]'),
    forms,
    navLinks,
  };
}
"""


class PageContextExtractor:
    """Extracts forms, fields, nav links and form-kind flags from a settled page."""

    def __init__(self, settle_timeout_ms: Optional[int] = None, navigation_timeout_ms: Optional[int] = None):
        self.settle_timeout_ms = settle_timeout_ms or settings.SETTLE_TIMEOUT_MS
        self.navigation_timeout_ms = navigation_timeout_ms or settings.NAVIGATION_TIMEOUT_MS

    async def load(self, page: Any, url: str, run_id: str = "-"):
        """Navigate to ``url``; failures become ExtractionError."""
        try:
            await page.goto(url, wait_until="load", timeout=self.navigation_timeout_ms)
        except PlaywrightTimeoutError as e:
            raise ExtractionError("Page did not load in time", details=f"{url}: {e}")
        except PlaywrightError as e:
            raise ExtractionError("Page is unreachable", details=f"{url}: {e}")
        logger.info(f"[{run_id}] Loaded {url}")

    async def extract(self, page: Any, run_id: str = "-") -> PageContext:
        """
        Extract the page context after the page settles.

        Args:
            page: Loaded Playwright page
            run_id: Run identifier for log lines

        Returns:
            PageContext snapshot

        Raises:
            ExtractionError: If the page is closed or cannot be read
        """
        if page.is_closed():
            raise ExtractionError("Page is closed", details="Cannot extract context from a closed page")

        try:
            await page.wait_for_load_state("networkidle", timeout=self.settle_timeout_ms)
        except PlaywrightTimeoutError:
            # Long-polling pages never reach network idle
            logger.debug(f"[{run_id}] No network idle within {self.settle_timeout_ms}ms, extracting anyway")
        except PlaywrightError as e:
            raise ExtractionError("Page never settled", details=str(e))

        try:
            raw = await page.evaluate(EXTRACT_SCRIPT)
        except PlaywrightError as e:
            raise ExtractionError("Failed to read page", details=str(e))

        try:
            context = PageContext.model_validate(raw)
        except ValidationError as e:
            raise ExtractionError("Unexpected page structure", details=str(e))

        logger.info(
            f"[{run_id}] Extracted context: {len(context.forms)} form(s), "
            f"{len(context.all_fields())} field(s), {len(context.nav_links)} nav link(s)"
        )
        return context

    async def load_and_extract(self, page: Any, url: str, run_id: str = "-") -> PageContext:
        await self.load(page, url, run_id)
        return await self.extract(page, run_id)
