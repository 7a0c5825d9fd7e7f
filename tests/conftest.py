"""Shared fixtures: an in-memory stand-in for a Playwright page and friends."""

import re
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Callable, List, Optional

import pytest
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from qaptain.models.page_context import FieldDescriptor, FormDescriptor, PageContext
from qaptain.services.action_executor import ActionExecutor
from qaptain.services.scenario_generator import GenerationReport

TARGET_URL = "https://example.com/contact"


@dataclass
class FakeElement:
    tag: str = "input"
    name: str = ""
    type: str = "text"
    placeholder: str = ""
    label: str = ""
    text: str = ""
    visible: bool = True
    options: List[str] = field(default_factory=list)
    value: str = ""
    on_click: Optional[Callable] = None

    @property
    def role(self) -> str:
        if self.tag == "button" or (self.tag == "input" and self.type in ("submit", "button")):
            return "button"
        if self.tag == "a":
            return "link"
        return ""

    @property
    def accessible_name(self) -> str:
        return self.text or self.label or (self.value if self.role == "button" else "")


def _contains(needle: str, haystack: str) -> bool:
    return bool(needle) and needle.lower() in (haystack or "").lower()


class FakeLocator:
    def __init__(self, page: "FakePage", matches: List[FakeElement]):
        self.page = page
        self.matches = matches

    async def count(self) -> int:
        return len(self.matches)

    def nth(self, index: int) -> "FakeLocator":
        return FakeLocator(self.page, self.matches[index:index + 1])

    @property
    def first(self) -> "FakeLocator":
        return self.nth(0)

    async def is_visible(self) -> bool:
        return bool(self.matches) and self.matches[0].visible

    def _element(self) -> FakeElement:
        if not self.matches:
            raise PlaywrightTimeoutError("Timeout exceeded waiting for locator")
        return self.matches[0]

    async def fill(self, value: str, timeout: float = None):
        element = self._element()
        if element.tag not in ("input", "textarea"):
            raise PlaywrightTimeoutError("Element is not an <input>, <textarea> or <select>")
        element.value = value
        self.page.log.append(("fill", element.name or element.placeholder, value))

    async def click(self, timeout: float = None):
        element = self._element()
        self.page.log.append(("click", element.name or element.text))
        if element.on_click:
            element.on_click(self.page)

    async def select_option(self, option: str, timeout: float = None):
        element = self._element()
        if option not in element.options:
            raise PlaywrightTimeoutError(f"No option '{option}'")
        element.value = option
        self.page.log.append(("select", element.name, option))


class FakePage:
    """Just enough of playwright's Page for the engine."""

    def __init__(self, elements: Optional[List[FakeElement]] = None, title: str = "Contact us", body: str = ""):
        self.elements = elements or []
        self._title = title
        self.body = body
        self.url = "about:blank"
        self.closed = False
        self.log: list = []
        self.goto_calls: List[str] = []
        self.goto_error: Optional[Exception] = None
        self.never_idle = False
        self.screenshot_error: Optional[Exception] = None
        self.evaluate_result: Optional[dict] = None
        self.evaluate_calls = 0

    # Locators
    def locator(self, selector: str) -> FakeLocator:
        return FakeLocator(self, [e for e in self.elements if self._matches_css(e, selector)])

    def get_by_label(self, text: str) -> FakeLocator:
        return FakeLocator(self, [e for e in self.elements if _contains(text, e.label)])

    def get_by_role(self, role: str, name: str = None) -> FakeLocator:
        return FakeLocator(self, [
            e for e in self.elements
            if e.role == role and (name is None or _contains(name, e.accessible_name))
        ])

    def get_by_text(self, text: str) -> FakeLocator:
        return FakeLocator(self, [e for e in self.elements if _contains(text, e.text)])

    @staticmethod
    def _matches_css(element: FakeElement, selector: str) -> bool:
        match = re.fullmatch(r'\[name="(.*)"\]', selector)
        if match:
            return element.name == match.group(1).replace('\\"', '"')
        match = re.fullmatch(r'\[placeholder\*="(.*)" i\]', selector)
        if match:
            return _contains(match.group(1).replace('\\"', '"'), element.placeholder)
        match = re.fullmatch(r'(button|input)\[type="(\w+)"\]', selector)
        if match:
            return element.tag == match.group(1) and element.type == match.group(2)
        match = re.fullmatch(r'button:has-text\("(.*)"\)', selector)
        if match:
            return element.tag == "button" and _contains(match.group(1), element.text)
        return False

    # Page API
    async def goto(self, url: str, wait_until: str = "load", timeout: float = None):
        self.goto_calls.append(url)
        if self.goto_error:
            raise self.goto_error
        self.url = url

    async def wait_for_load_state(self, state: str = "load", timeout: float = None):
        if self.never_idle and state == "networkidle":
            raise PlaywrightTimeoutError(f"Timeout {timeout}ms exceeded")

    async def title(self) -> str:
        return self._title

    async def inner_text(self, selector: str) -> str:
        return self.body

    async def screenshot(self, full_page: bool = False, timeout: float = None) -> bytes:
        if self.screenshot_error:
            raise self.screenshot_error
        return b"\x89PNG fake"

    async def evaluate(self, script: str):
        self.evaluate_calls += 1
        return self.evaluate_result

    def is_closed(self) -> bool:
        return self.closed


class FakeSession:
    def __init__(self, run_id: str, page: FakePage):
        self.run_id = run_id
        self.page = page


class FakeBrowserManager:
    """Counts acquires and releases; can fail on acquire."""

    def __init__(self, page: FakePage, acquire_error: Optional[Exception] = None):
        self.page = page
        self.acquire_error = acquire_error
        self.acquired = 0
        self.released = 0

    async def acquire(self, run_id: str) -> FakeSession:
        if self.acquire_error:
            raise self.acquire_error
        self.acquired += 1
        return FakeSession(run_id, self.page)

    async def release(self, session: FakeSession):
        self.released += 1

    @asynccontextmanager
    async def session(self, run_id: str):
        session = await self.acquire(run_id)
        try:
            yield session
        finally:
            await self.release(session)


class FakeProvider:
    def __init__(self, available: bool = True):
        self.available = available

    async def is_available(self) -> bool:
        return self.available


class FakeGenerator:
    """Scenario generator returning canned scenarios."""

    def __init__(self, scenarios=None, error: Optional[Exception] = None, steps=None):
        self.scenarios = scenarios or []
        self.error = error
        self.steps = steps or []
        self.provider = FakeProvider()
        self.calls = 0

    async def generate_with_report(self, context, run_id="-"):
        self.calls += 1
        if self.error:
            raise self.error
        return GenerationReport(scenarios=list(self.scenarios))

    async def generate(self, context, run_id="-"):
        report = await self.generate_with_report(context, run_id)
        return report.scenarios

    async def interpret_story(self, user_story, context=None, run_id="-"):
        self.calls += 1
        if self.error:
            raise self.error
        return list(self.steps)


@pytest.fixture
def contact_context() -> PageContext:
    """One form: email field plus a submit input."""
    return PageContext(
        title="Contact us",
        url=TARGET_URL,
        has_contact_form=True,
        forms=[FormDescriptor(
            id="contact",
            inputs=[
                FieldDescriptor(name="email", type="email", placeholder="Your email"),
                FieldDescriptor(name="submit", type="submit"),
            ],
        )],
    )


@pytest.fixture
def empty_context() -> PageContext:
    return PageContext(title="About", url=TARGET_URL, forms=[])


@pytest.fixture
def contact_page() -> FakePage:
    return FakePage(elements=[
        FakeElement(tag="input", name="email", type="email", placeholder="Your email", label="Email"),
        FakeElement(tag="input", name="submit", type="submit", value="Send"),
    ])


@pytest.fixture
def fast_executor() -> ActionExecutor:
    """Executor with no polling, so missing targets fail immediately."""
    return ActionExecutor(
        element_timeout_ms=0,
        settle_timeout_ms=10,
        assert_timeout_ms=0,
        retry_delay_ms=0,
        run_id="test"
    )
