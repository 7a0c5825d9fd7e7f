"""Tests for the step interpreter."""

import logging
from unittest.mock import Mock

import pytest
from qaptain.models.actions import (
    AssertAction,
    ClickAction,
    FillAction,
    NavigateAction,
    SelectAction,
    UnrecognizedAction,
    WaitForLoadAction,
)
from qaptain.models.page_context import FieldDescriptor
from qaptain.services.step_interpreter import StepInterpreter, match_field


@pytest.fixture
def generator():
    return Mock(return_value="generated@example.com")


@pytest.fixture
def interpreter(generator):
    return StepInterpreter(value_generator=generator, default_wait_ms=7000)


class TestFillSteps:
    """Tests for fill/enter/type steps."""

    def test_literal_value_into_field(self, interpreter, generator, contact_context):
        """A quoted value and field interpret without generating anything."""
        action = interpreter.interpret("Fill 'x@y.com' into 'email'", contact_context)

        assert action == FillAction(selector_hint="email", value="x@y.com")
        generator.assert_not_called()

    def test_empty_literal_uses_generator(self, interpreter, generator, contact_context):
        """An empty quoted value falls back to a generated value."""
        action = interpreter.interpret("Fill '' into 'email'", contact_context)

        assert isinstance(action, FillAction)
        assert action.selector_hint == "email"
        assert action.value == "generated@example.com"
        assert action.generated is True
        generator.assert_called_once_with("email your email", "email")

    def test_field_only_uses_generator(self, interpreter, generator):
        """A step naming only a field generates its value from the hint."""
        action = interpreter.interpret('Fill the "Phone" field')

        assert action.selector_hint == "Phone"
        assert action.generated is True
        generator.assert_called_once_with("phone", "text")

    def test_quoted_field_with_trailing_noun(self, interpreter):
        """The quoted field name wins over surrounding words."""
        action = interpreter.interpret('Fill "abc.com" into the "email" field')

        assert action == FillAction(selector_hint="email", value="abc.com")

    def test_unquoted_value_and_field(self, interpreter):
        """Unquoted forms split on the preposition."""
        action = interpreter.interpret("Enter john@x.com in the email field")

        assert action == FillAction(selector_hint="email", value="john@x.com")

    def test_field_with_value(self, interpreter):
        """'Fill <field> with <value>' is understood too."""
        action = interpreter.interpret('Fill "name" with "John Doe"')

        assert action == FillAction(selector_hint="name", value="John Doe")

    def test_preposition_inside_quotes(self, interpreter):
        """Prepositions inside the quoted value do not split it."""
        action = interpreter.interpret("Type 'log in to the site' into 'bio'")

        assert action == FillAction(selector_hint="bio", value="log in to the site")

    def test_numbered_step(self, interpreter):
        """Leading numbering and connectives are ignored."""
        action = interpreter.interpret("2. Then type 'hello' in 'search'")

        assert action == FillAction(selector_hint="search", value="hello")


class TestClickSteps:
    """Tests for click/press/tap steps."""

    @pytest.mark.parametrize("step,hint", [
        ('Click the "Login" button', "Login"),
        ("Click submit", "submit"),
        ("Click on the Sign In link", "Sign In"),
        ("Press 'Enter'", "Enter"),
        ("Tap the Menu icon", "Menu"),
        ("Submit the form", "submit"),
    ])
    def test_click_targets(self, interpreter, step, hint):
        """The control name is extracted from quotes or the remainder."""
        assert interpreter.interpret(step) == ClickAction(selector_hint=hint)


class TestOtherSteps:
    """Tests for select, navigate, wait and assert steps."""

    def test_select_option(self, interpreter):
        """Select steps carry the option and the field."""
        action = interpreter.interpret('Select the "India" option in the "country"')

        assert action == SelectAction(selector_hint="country", option="India")

    def test_navigate_with_url(self, interpreter):
        """An absolute URL is carried on the action."""
        action = interpreter.interpret("Navigate to https://example.com/login.")

        assert action == NavigateAction(url="https://example.com/login")

    @pytest.mark.parametrize("step", ["Reload the page", "Refresh"])
    def test_reload(self, interpreter, step):
        """Reload steps re-load the target URL."""
        assert interpreter.interpret(step) == NavigateAction()

    def test_open_with_url(self, interpreter):
        """Open and visit only navigate when they carry a URL."""
        assert interpreter.interpret("Open https://example.com/faq") == NavigateAction(url="https://example.com/faq")

    @pytest.mark.parametrize("step,hint", [
        ("Check the 'Remember me' checkbox", "Remember me"),
        ("Tick the terms box", "terms"),
        ("Uncheck the \"Newsletter\" check box", "Newsletter"),
        ("Check the 'Express' radio button", "Express"),
    ])
    def test_checkbox_is_clicked(self, interpreter, step, hint):
        """Checking a box is a click on it, not an assertion."""
        assert interpreter.interpret(step) == ClickAction(selector_hint=hint)

    def test_fixed_wait(self, interpreter):
        """'Wait for N seconds' is a fixed pause."""
        action = interpreter.interpret("Wait for 2 seconds")

        assert action == WaitForLoadAction(timeout_ms=2000, fixed_delay=True)

    def test_wait_for_load(self, interpreter):
        """Other waits wait for the page with the default timeout."""
        action = interpreter.interpret("Wait for the page to load")

        assert action == WaitForLoadAction(timeout_ms=7000)

    @pytest.mark.parametrize("step,kind,expected", [
        ('Verify that the page contains "Thank you"', "text_present", "Thank you"),
        ('Verify that the page does not contain "Error"', "text_absent", "Error"),
        ('Verify the page title contains "Contact"', "title_contains", "Contact"),
        ('Assert that the URL contains "/thanks"', "url_contains", "/thanks"),
        ("Verify page shows Welcome back", "text_present", "Welcome back"),
        ("Verify the page loaded", "page_loaded", None),
        ("Check that the page loads", "page_loaded", None),
        ('Check that the page shows "Thanks"', "text_present", "Thanks"),
    ])
    def test_assert_kinds(self, interpreter, step, kind, expected):
        """Assertion kinds are picked from the wording."""
        action = interpreter.interpret(step)

        assert isinstance(action, AssertAction)
        assert action.condition.kind == kind
        assert action.condition.expected == expected


class TestUnrecognized:
    """Steps no pattern matches."""

    @pytest.mark.parametrize("step", [
        "Scroll down to the footer",
        "",
        "Fill",
        "Select 'India'",
        "Open the 'Settings' menu",
        "Load more results",
        "Go to the next step",
        "Navigate back to the form",
        "Verify that an error message is displayed",
        "Check the validation",
    ])
    def test_unrecognized(self, interpreter, step):
        """Unknown steps become UnrecognizedAction, never an exception."""
        action = interpreter.interpret(step)

        assert action == UnrecognizedAction(raw=step)

    def test_step_text_not_logged(self, interpreter, caplog):
        """Unrecognized steps are logged without their (possibly secret) text."""
        caplog.set_level(logging.INFO)

        interpreter.interpret("Set 'Hunter2Secret!' as the password")

        assert "Unrecognized step" in caplog.text
        assert "Hunter2Secret!" not in caplog.text


class TestMatchField:
    """Tests for fuzzy field matching."""

    def test_matches_placeholder(self):
        """A hint matching a placeholder finds the field."""
        fields = [FieldDescriptor(name="q1", placeholder="Email address"), FieldDescriptor(name="msg")]
        assert match_field("email", fields).name == "q1"

    def test_fuzzy_name(self):
        """Small spelling differences still match."""
        fields = [FieldDescriptor(name="firstname"), FieldDescriptor(name="zip")]
        assert match_field("first name", fields).name == "firstname"

    def test_no_match(self):
        """Unrelated hints match nothing."""
        fields = [FieldDescriptor(name="zip")]
        assert match_field("password", fields) is None
