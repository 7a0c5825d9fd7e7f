"""Shared service accessors for routers.

Services live on ``app.state`` so tests can swap in fakes before a request.
"""

from fastapi import Request

from qaptain.services.browser_manager import BrowserManager, get_browser_manager
from qaptain.services.context_extractor import PageContextExtractor
from qaptain.services.rate_limiter import RateLimiter, get_rate_limiter
from qaptain.services.scenario_generator import ScenarioGenerator, get_scenario_generator
from qaptain.services.scenario_runner import ScenarioRunner
from qaptain.services.step_interpreter import StepInterpreter


def get_limiter(request: Request) -> RateLimiter:
    if not hasattr(request.app.state, "rate_limiter"):
        request.app.state.rate_limiter = get_rate_limiter()
    return request.app.state.rate_limiter


def get_browsers(request: Request) -> BrowserManager:
    if not hasattr(request.app.state, "browser_manager"):
        request.app.state.browser_manager = get_browser_manager()
    return request.app.state.browser_manager


def get_extractor(request: Request) -> PageContextExtractor:
    if not hasattr(request.app.state, "extractor"):
        request.app.state.extractor = PageContextExtractor()
    return request.app.state.extractor


def get_generator(request: Request) -> ScenarioGenerator:
    if not hasattr(request.app.state, "generator"):
        request.app.state.generator = get_scenario_generator()
    return request.app.state.generator


def get_interpreter(request: Request) -> StepInterpreter:
    if not hasattr(request.app.state, "interpreter"):
        request.app.state.interpreter = StepInterpreter()
    return request.app.state.interpreter


def get_runner(request: Request) -> ScenarioRunner:
    """Get or create the ScenarioRunner wired to the app's services."""
    if not hasattr(request.app.state, "runner"):
        request.app.state.runner = ScenarioRunner(
            browser_manager=get_browsers(request),
            extractor=get_extractor(request),
            generator=get_generator(request),
            interpreter=get_interpreter(request),
        )
    return request.app.state.runner
