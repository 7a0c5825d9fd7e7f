"""Services for QAptain."""

from qaptain.services.browser_manager import BrowserManager, BrowserSession, get_browser_manager
from qaptain.services.context_extractor import PageContextExtractor
from qaptain.services.step_interpreter import StepInterpreter
from qaptain.services.selector_resolver import SelectorResolver
from qaptain.services.action_executor import ActionExecutor
from qaptain.services.scenario_generator import ScenarioGenerator, get_scenario_generator
from qaptain.services.scenario_runner import ScenarioRunner
from qaptain.services.fake_values import fake_value

__all__ = [
    "BrowserManager",
    "BrowserSession",
    "get_browser_manager",
    "PageContextExtractor",
    "StepInterpreter",
    "SelectorResolver",
    "ActionExecutor",
    "ScenarioGenerator",
    "get_scenario_generator",
    "ScenarioRunner",
    "fake_value",
]
