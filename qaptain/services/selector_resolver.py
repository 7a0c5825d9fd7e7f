"""Maps a human-readable selector hint to a concrete, visible locator."""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, List, Optional, Tuple

logger = logging.getLogger(__name__)

SUBMIT_TEXTS = ("Submit", "Save", "Continue", "Next")
SUBMIT_SELECTORS = [
    'button[type="submit"]',
    'input[type="submit"]',
] + [f'button:has-text("{text}")' for text in SUBMIT_TEXTS]

# Hints that mean "whatever submits this form"
SUBMIT_HINTS = {"", "submit", "form", "submit form", "the form", "send", "save", "continue", "next"}

POLL_INTERVAL_SECONDS = 0.25


def is_submit_like(hint: str) -> bool:
    lowered = (hint or "").strip().lower()
    return lowered in SUBMIT_HINTS or "submit" in lowered


def _css_string(value: str) -> str:
    return value.replace("\\", "\\\\").replace('"', '\\"')


@dataclass
class ResolvedTarget:
    """A visible element and the strategy that found it."""
    strategy: str
    locator: Any


class SelectorResolver:
    """
    Resolves selector hints against a page.

    Precedence: exact ``name`` attribute, placeholder substring, visible
    label text, then heuristics (submit-like buttons, accessible role name,
    visible text). The first visible match wins. Works against anything
    exposing Playwright's ``locator``/``get_by_*`` surface, so tests can
    pass a fake page.
    """

    def candidates(self, page: Any, hint: str) -> List[Tuple[str, Any]]:
        hint = (hint or "").strip()
        css = _css_string(hint)
        found: List[Tuple[str, Any]] = []

        if hint:
            found.append(("name", page.locator(f'[name="{css}"]')))
            found.append(("placeholder", page.locator(f'[placeholder*="{css}" i]')))
            found.append(("label", page.get_by_label(hint)))

        if is_submit_like(hint):
            for selector in SUBMIT_SELECTORS:
                found.append(("submit", page.locator(selector)))

        if hint:
            found.append(("button", page.get_by_role("button", name=hint)))
            found.append(("link", page.get_by_role("link", name=hint)))
            found.append(("text", page.get_by_text(hint)))

        return found

    async def find_visible(self, page: Any, hint: str) -> Optional[ResolvedTarget]:
        """One pass over the candidates; None when nothing visible matches."""
        for strategy, locator in self.candidates(page, hint):
            count = await locator.count()
            for index in range(count):
                element = locator.nth(index)
                if await element.is_visible():
                    logger.debug(f"Resolved '{hint}' via {strategy} (match {index})")
                    return ResolvedTarget(strategy=strategy, locator=element)
        return None

    async def resolve(self, page: Any, hint: str, timeout_ms: int = 0) -> Optional[ResolvedTarget]:
        """
        Resolve a hint, polling until a visible match appears.

        Args:
            page: Playwright page (or a compatible fake)
            hint: Human-readable target name
            timeout_ms: How long to keep polling; 0 means a single pass

        Returns:
            The first visible match, or None once the wait is exhausted
        """
        deadline = time.monotonic() + max(timeout_ms, 0) / 1000
        while True:
            target = await self.find_visible(page, hint)
            if target is not None:
                return target
            if time.monotonic() >= deadline:
                return None
            await asyncio.sleep(POLL_INTERVAL_SECONDS)
