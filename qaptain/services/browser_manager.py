"""Browser session management: one Playwright browser and page per run."""

import logging
import os
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, Dict, List, Optional

from playwright.async_api import Browser, Page, Playwright, async_playwright

from qaptain.errors import LaunchError
from qaptain.utils.config import settings

logger = logging.getLogger(__name__)

# Environment variables set by serverless platforms
SERVERLESS_ENV_MARKERS = ("VERCEL", "LAMBDA_TASK_ROOT", "AWS_LAMBDA_FUNCTION_NAME", "NETLIFY")

# Where packaged chromium builds are commonly unpacked
SERVERLESS_CHROMIUM_CANDIDATES = (
    "/tmp/chromium",
    "/opt/chromium/chromium",
    "/opt/bin/chromium",
)

SERVERLESS_ARGS = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-gpu",
    "--no-zygote",
    "--single-process",
    "--hide-scrollbars",
    "--mute-audio",
]


class BrowserSession:
    """
    A launched browser and its single active page.

    Owned by exactly one runner invocation; ``close`` is idempotent.
    """

    def __init__(self, run_id: str, playwright: Playwright, browser: Browser, page: Page):
        self.run_id = run_id
        self.playwright = playwright
        self.browser = browser
        self.page = page
        self.closed = False

    async def close(self):
        if self.closed:
            return
        self.closed = True
        # Browser first, then the driver; both are attempted even if one fails
        try:
            await self.browser.close()
        finally:
            await self.playwright.stop()
        logger.info(f"[{self.run_id}] Browser session closed")


class LaunchStrategy(ABC):
    """How a browser process is obtained in a given runtime environment."""

    name = "abstract"

    @abstractmethod
    async def launch(self, playwright: Playwright) -> Browser:
        """Launch a browser or raise LaunchError."""


class LocalChromiumLauncher(LaunchStrategy):
    """Locally installed Playwright chromium, headless, default arguments."""

    name = "local"

    async def launch(self, playwright: Playwright) -> Browser:
        try:
            return await playwright.chromium.launch(headless=True)
        except Exception as e:
            raise LaunchError(
                "Failed to launch local browser",
                details=f"{e}. Install browsers with: python -m playwright install chromium"
            )


class ServerlessChromiumLauncher(LaunchStrategy):
    """Packaged chromium binary with restricted launch arguments."""

    name = "serverless"

    def __init__(
        self,
        executable_path: Optional[str] = None,
        headless: Optional[bool] = None,
        candidates: tuple = SERVERLESS_CHROMIUM_CANDIDATES
    ):
        self.executable_path = executable_path or settings.SERVERLESS_CHROMIUM_PATH
        self.headless = settings.SERVERLESS_HEADLESS if headless is None else headless
        self.candidates = candidates

    def resolve_executable(self) -> str:
        paths: List[str] = [self.executable_path] if self.executable_path else list(self.candidates)
        for path in paths:
            if path and Path(path).is_file():
                return path
        raise LaunchError(
            "No browser binary found",
            details=f"Looked for a packaged chromium at: {', '.join(p for p in paths if p) or '(nothing configured)'}"
        )

    async def launch(self, playwright: Playwright) -> Browser:
        executable = self.resolve_executable()
        try:
            return await playwright.chromium.launch(
                executable_path=executable,
                headless=self.headless,
                args=SERVERLESS_ARGS
            )
        except Exception as e:
            raise LaunchError("Failed to launch packaged browser", details=f"{executable}: {e}")


def is_serverless_environment(environ: Optional[Dict[str, str]] = None) -> bool:
    environ = os.environ if environ is None else environ
    return any(environ.get(marker) for marker in SERVERLESS_ENV_MARKERS)


def select_launch_strategy(
    mode: Optional[str] = None,
    environ: Optional[Dict[str, str]] = None
) -> LaunchStrategy:
    """
    Pick the launch strategy for this process.

    Args:
        mode: ``local``, ``serverless`` or ``auto`` (detect from environment)
        environ: Environment to inspect; defaults to ``os.environ``

    Returns:
        A LaunchStrategy instance
    """
    mode = (mode or settings.BROWSER_MODE).lower()
    if mode == "auto":
        mode = "serverless" if is_serverless_environment(environ) else "local"

    if mode == "serverless":
        return ServerlessChromiumLauncher()
    if mode == "local":
        return LocalChromiumLauncher()
    raise LaunchError("Unknown browser mode", details=f"BROWSER_MODE '{mode}' is not local, serverless or auto")


class BrowserManager:
    """Acquires and releases independent browser sessions, one per run."""

    def __init__(self, strategy: Optional[LaunchStrategy] = None, playwright_factory=async_playwright):
        self._strategy = strategy
        self._playwright_factory = playwright_factory
        self._sessions: Dict[str, BrowserSession] = {}

    @property
    def strategy(self) -> LaunchStrategy:
        # Selected once, on first use
        if self._strategy is None:
            self._strategy = select_launch_strategy()
            logger.info(f"Browser launch strategy: {self._strategy.name}")
        return self._strategy

    @property
    def active_sessions(self) -> int:
        return len(self._sessions)

    async def acquire(self, run_id: str) -> BrowserSession:
        """
        Launch a browser and open its page for a run.

        Raises:
            LaunchError: If no browser could be launched; not retried
        """
        strategy = self.strategy
        try:
            playwright = await self._playwright_factory().start()
        except Exception as e:
            raise LaunchError(
                "Failed to start browser driver",
                details=f"{type(e).__name__}: {e}. Reinstall with: pip install playwright"
            )

        try:
            logger.info(f"[{run_id}] Launching browser ({strategy.name})")
            browser = await strategy.launch(playwright)
        except BaseException:
            await playwright.stop()
            raise

        try:
            context = await browser.new_context(
                viewport={"width": settings.VIEWPORT_WIDTH, "height": settings.VIEWPORT_HEIGHT},
                ignore_https_errors=True,
            )
            page = await context.new_page()
        except BaseException:
            try:
                await browser.close()
            finally:
                await playwright.stop()
            raise

        session = BrowserSession(run_id, playwright, browser, page)
        self._sessions[run_id] = session
        logger.info(f"[{run_id}] Browser session acquired")
        return session

    async def release(self, session: BrowserSession):
        self._sessions.pop(session.run_id, None)
        await session.close()

    @asynccontextmanager
    async def session(self, run_id: str) -> AsyncIterator[BrowserSession]:
        """Scoped session: released on every exit path, including cancellation."""
        browser_session = await self.acquire(run_id)
        try:
            yield browser_session
        finally:
            await self.release(browser_session)

    async def close_all(self):
        """Close any sessions still open (application shutdown)."""
        for session in list(self._sessions.values()):
            try:
                await self.release(session)
            except Exception as e:
                logger.warning(f"[{session.run_id}] Failed to close browser session: {e}")


# Global browser manager instance
_browser_manager = BrowserManager()


def get_browser_manager() -> BrowserManager:
    """Get global browser manager instance."""
    return _browser_manager
