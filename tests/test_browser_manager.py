"""Tests for browser launch strategies and session bookkeeping."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from qaptain.errors import LaunchError
from qaptain.services.browser_manager import (
    BrowserManager,
    LocalChromiumLauncher,
    ServerlessChromiumLauncher,
    select_launch_strategy,
)


def fake_playwright_factory(launch_error=None, context_error=None, start_error=None):
    """A stand-in for async_playwright() plus handles to the mocks it creates."""
    page = MagicMock(name="page")
    context = MagicMock(name="context")
    context.new_page = AsyncMock(return_value=page)

    browser = MagicMock(name="browser")
    browser.new_context = AsyncMock(return_value=context, side_effect=context_error)
    browser.close = AsyncMock()

    playwright = MagicMock(name="playwright")
    playwright.chromium.launch = AsyncMock(return_value=browser, side_effect=launch_error)
    playwright.stop = AsyncMock()

    starter = MagicMock()
    starter.start = AsyncMock(return_value=playwright, side_effect=start_error)
    return (lambda: starter), playwright, browser, page


class TestStrategySelection:
    """Local vs serverless launch."""

    def test_explicit_modes(self):
        assert isinstance(select_launch_strategy("local"), LocalChromiumLauncher)
        assert isinstance(select_launch_strategy("serverless"), ServerlessChromiumLauncher)

    def test_auto_detects_serverless(self):
        """Serverless platform markers select the packaged binary."""
        assert isinstance(select_launch_strategy("auto", {"VERCEL": "1"}), ServerlessChromiumLauncher)
        assert isinstance(select_launch_strategy("auto", {"AWS_LAMBDA_FUNCTION_NAME": "fn"}), ServerlessChromiumLauncher)
        assert isinstance(select_launch_strategy("auto", {}), LocalChromiumLauncher)

    def test_unknown_mode(self):
        with pytest.raises(LaunchError):
            select_launch_strategy("firefox")


class TestServerlessLauncher:
    """Executable resolution for packaged chromium."""

    def test_missing_binary(self, tmp_path):
        """No existing candidate is a LaunchError."""
        launcher = ServerlessChromiumLauncher(candidates=(str(tmp_path / "chromium"),))
        launcher.executable_path = None

        with pytest.raises(LaunchError, match="No browser binary"):
            launcher.resolve_executable()

    def test_first_existing_candidate(self, tmp_path):
        binary = tmp_path / "chromium"
        binary.write_bytes(b"")
        launcher = ServerlessChromiumLauncher(candidates=(str(tmp_path / "missing"), str(binary)))
        launcher.executable_path = None

        assert launcher.resolve_executable() == str(binary)

    @pytest.mark.asyncio
    async def test_launch_uses_restricted_args(self, tmp_path):
        """The packaged binary is launched headless with sandboxing disabled."""
        binary = tmp_path / "chromium"
        binary.write_bytes(b"")
        factory, playwright, browser, _ = fake_playwright_factory()

        launched = await ServerlessChromiumLauncher(str(binary), headless=True).launch(playwright)

        assert launched is browser
        kwargs = playwright.chromium.launch.await_args.kwargs
        assert kwargs["executable_path"] == str(binary)
        assert "--no-sandbox" in kwargs["args"]


class TestBrowserManager:
    """Acquire and release pairing."""

    @pytest.mark.asyncio
    async def test_session_released(self):
        """The scoped session closes browser and driver on exit."""
        factory, playwright, browser, page = fake_playwright_factory()
        manager = BrowserManager(strategy=LocalChromiumLauncher(), playwright_factory=factory)

        async with manager.session("run-1") as session:
            assert session.page is page
            assert manager.active_sessions == 1

        assert manager.active_sessions == 0
        browser.close.assert_awaited_once()
        playwright.stop.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_session_released_on_error(self):
        """Errors inside the scope still release the session."""
        factory, playwright, browser, _ = fake_playwright_factory()
        manager = BrowserManager(strategy=LocalChromiumLauncher(), playwright_factory=factory)

        with pytest.raises(RuntimeError):
            async with manager.session("run-1"):
                raise RuntimeError("boom")

        browser.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_launch_failure_not_retried(self):
        """A failed launch stops the driver and is raised once."""
        factory, playwright, _, _ = fake_playwright_factory(launch_error=RuntimeError("no chromium"))
        manager = BrowserManager(strategy=LocalChromiumLauncher(), playwright_factory=factory)

        with pytest.raises(LaunchError):
            await manager.acquire("run-1")

        assert playwright.chromium.launch.await_count == 1
        playwright.stop.assert_awaited_once()
        assert manager.active_sessions == 0

    @pytest.mark.asyncio
    async def test_missing_driver_is_launch_error(self):
        """A driver that cannot start is a LaunchError, and nothing is launched."""
        factory, playwright, _, _ = fake_playwright_factory(
            start_error=FileNotFoundError("playwright driver executable not found")
        )
        manager = BrowserManager(strategy=LocalChromiumLauncher(), playwright_factory=factory)

        with pytest.raises(LaunchError, match="browser driver") as exc_info:
            await manager.acquire("run-1")

        assert "FileNotFoundError" in exc_info.value.details
        playwright.chromium.launch.assert_not_awaited()
        assert manager.active_sessions == 0

    @pytest.mark.asyncio
    async def test_context_failure_closes_browser(self):
        factory, playwright, browser, _ = fake_playwright_factory(context_error=RuntimeError("context"))
        manager = BrowserManager(strategy=LocalChromiumLauncher(), playwright_factory=factory)

        with pytest.raises(RuntimeError):
            await manager.acquire("run-1")

        browser.close.assert_awaited_once()
        playwright.stop.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_release_is_idempotent(self):
        factory, playwright, browser, _ = fake_playwright_factory()
        manager = BrowserManager(strategy=LocalChromiumLauncher(), playwright_factory=factory)

        session = await manager.acquire("run-1")
        await manager.release(session)
        await manager.release(session)

        browser.close.assert_awaited_once()
