"""Step interpreter: one natural-language step in, one typed Action out.

All pattern matching over step text lives here. Grammar (case-insensitive,
quotes optional unless the value contains spaces):

    Fill|Enter|Type|Input "<value>" into|in|on|to "<field>"
    Fill "<field>" with "<value>"
    Fill the "<field>" field                   (value generated)
    Select "<option>" in|from "<field>"
    Click|Press|Tap [on] [the] "<control>" [button|link]
    Navigate to|Go to|Open|Visit <absolute url> | Reload|Refresh [the page]
    Check|Tick|Uncheck "<label>" checkbox|box|radio   (clicked)
    Wait for <n> seconds | Wait for the page to load
    Verify|Assert|Check ... "<text>"            (title / URL / absence variants)
    Verify the page loaded

Anything else becomes an UnrecognizedAction; that is not an error here.
"""

import logging
import re
from difflib import SequenceMatcher
from typing import Callable, List, Optional, Tuple

from qaptain.errors import InterpretationAmbiguity
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
from qaptain.models.page_context import FieldDescriptor, PageContext
from qaptain.services.fake_values import fake_value
from qaptain.utils.config import settings

logger = logging.getLogger(__name__)

QUOTE_PAIRS = {'"': '"', "'": "'", "“": "”", "‘": "’", "`": "`"}

# Placeholder for a masked quoted segment: \x00<index>\x00
_MASK = re.compile(r"\x00(\d+)\x00")

_PREFIX = re.compile(r"^\s*(?:(?:step\s*)?\d+[.):]\s*|[-*•]\s*)?(?:(?:then|and|next|finally|now)\b[,\s]*)?", re.IGNORECASE)

FILL_VERB = re.compile(r"^(?:fill(?:\s+in|\s+out)?|enter|type|input|write)\b\s*", re.IGNORECASE)
SELECT_VERB = re.compile(r"^(?:select|choose|pick)\b\s*", re.IGNORECASE)
CLICK_VERB = re.compile(r"^(?:click(?:\s+on)?|press(?:\s+on)?|tap(?:\s+on)?|hit)\b\s*", re.IGNORECASE)
SUBMIT_VERB = re.compile(r"^submit\b\s*", re.IGNORECASE)
NAVIGATE_VERB = re.compile(r"^(?:navigate(?:\s+to)?|go\s+to|open|visit)\b\s*", re.IGNORECASE)
RELOAD_VERB = re.compile(r"^(?:reload|refresh)\b\s*", re.IGNORECASE)
# Only when the step ends with the control noun; "Check that ..." stays an assertion
CHECKBOX_VERB = re.compile(
    r"^(?:check|tick|un-?check|un-?tick)\b\s*(?=.*\b(?:check\s?box|box|radio(?:\s+button)?)\s*[.!]?\s*$)",
    re.IGNORECASE
)
WAIT_VERB = re.compile(r"^(?:wait|pause)\b\s*", re.IGNORECASE)
ASSERT_VERB = re.compile(r"^(?:assert|verify|check|ensure|confirm|expect|validate)\b\s*", re.IGNORECASE)

FILL_SPLIT = re.compile(r"^(?P<value>.*?)\s+(?:into|in|on|to)\s+(?P<target>.+)$", re.IGNORECASE)
FILL_WITH = re.compile(r"^(?P<target>.+?)\s+with\s+(?P<value>.+)$", re.IGNORECASE)
SELECT_SPLIT = re.compile(r"^(?P<option>.*?)\s+(?:in|from|for|on)\s+(?P<target>.+)$", re.IGNORECASE)
URL_PATTERN = re.compile(r"https?://[^\s\"'<>]+", re.IGNORECASE)
DURATION = re.compile(
    r"(\d+(?:\.\d+)?)\s*(ms|milliseconds?|s|secs?|seconds?|m|mins?|minutes?)\b",
    re.IGNORECASE
)
NEGATION = re.compile(r"\b(?:not|no longer|doesn't|does not|isn't|is not|never|without)\b", re.IGNORECASE)
CONTAINS_TAIL = re.compile(r"\b(?:contains?|shows?|displays?|includes?|reads?|says)\s+(?:the\s+)?(?:text\s+)?(?P<text>.+)$", re.IGNORECASE)
PAGE_LOADED = re.compile(r"\b(?:page|site)\b.*\b(?:loads?|loaded)\b", re.IGNORECASE)

LEADING_WORDS = re.compile(r"^(?:the|a|an|on|at|in)\s+", re.IGNORECASE)
TRAILING_NOUNS = re.compile(
    r"\s+(?:field|input|input field|box|text\s?box|textarea|area|button|link|tab|element|"
    r"icon|option|dropdown|drop-down|select|checkbox|check box|radio|radio button|control|menu)$",
    re.IGNORECASE
)

MAX_FIXED_DELAY_MS = 60000
FIELD_MATCH_THRESHOLD = 0.6


def _mask_quotes(text: str) -> Tuple[str, List[str]]:
    """Replace quoted segments with placeholders so prepositions inside quotes are ignored."""
    segments: List[str] = []
    out = []
    i = 0
    while i < len(text):
        ch = text[i]
        closing = QUOTE_PAIRS.get(ch)
        # an apostrophe inside a word ("don't") is not a quote
        if closing and not (ch == "'" and i > 0 and text[i - 1].isalnum()):
            end = text.find(closing, i + 1)
            if end != -1:
                out.append(f"\x00{len(segments)}\x00")
                segments.append(text[i + 1:end])
                i = end + 1
                continue
        out.append(ch)
        i += 1
    return "".join(out), segments


def _quoted_only(masked: str, segments: List[str]) -> Optional[str]:
    """The first quoted segment inside ``masked``, if any."""
    match = _MASK.search(masked)
    if match:
        return segments[int(match.group(1))]
    return None


def _restore(masked: str, segments: List[str]) -> str:
    return _MASK.sub(lambda m: segments[int(m.group(1))], masked)


def _clean_target(masked: str, segments: List[str]) -> str:
    """Selector hint from a target phrase: quoted text wins, else strip articles and nouns."""
    quoted = _quoted_only(masked, segments)
    if quoted is not None:
        return quoted.strip()

    text = _restore(masked, segments).strip().rstrip(".!;,").strip()
    previous = None
    while previous != text:
        previous = text
        text = LEADING_WORDS.sub("", text)
        text = TRAILING_NOUNS.sub("", text)
    return text.strip()


def _clean_value(masked: str, segments: List[str]) -> str:
    quoted = _quoted_only(masked, segments)
    if quoted is not None:
        return quoted
    return _restore(masked, segments).strip().rstrip(".").strip()


class StepInterpreter:
    """Parses natural-language steps into typed actions."""

    def __init__(
        self,
        value_generator: Callable[[str, str], str] = fake_value,
        default_wait_ms: Optional[int] = None
    ):
        self.value_generator = value_generator
        self.default_wait_ms = default_wait_ms or settings.WAIT_STEP_TIMEOUT_MS

    def interpret(self, step: str, context: Optional[PageContext] = None) -> Action:
        """
        Interpret one step.

        Args:
            step: Natural-language step text
            context: Page context used to pick generated values

        Returns:
            The matching Action; UnrecognizedAction when nothing matches
        """
        try:
            return self._interpret(step or "", context)
        except InterpretationAmbiguity as e:
            logger.info(f"Unrecognized step ({len(step or '')} chars): {e.message}")
            return UnrecognizedAction(raw=step or "")

    def interpret_all(self, steps: List[str], context: Optional[PageContext] = None) -> List[Action]:
        return [self.interpret(step, context) for step in steps]

    def _interpret(self, step: str, context: Optional[PageContext]) -> Action:
        text = _PREFIX.sub("", step.strip(), count=1).strip()
        if not text:
            raise InterpretationAmbiguity("empty step")

        for verb, parser in (
            (FILL_VERB, self._parse_fill),
            (SELECT_VERB, self._parse_select),
            (CLICK_VERB, self._parse_click),
            (SUBMIT_VERB, self._parse_submit),
            (NAVIGATE_VERB, self._parse_navigate),
            (RELOAD_VERB, self._parse_reload),
            (CHECKBOX_VERB, self._parse_click),
            (WAIT_VERB, self._parse_wait),
            (ASSERT_VERB, self._parse_assert),
        ):
            match = verb.match(text)
            if match:
                return parser(text[match.end():], context)

        raise InterpretationAmbiguity("no verb pattern matched", details=f"No known verb in '{step}'")

    def _parse_fill(self, rest: str, context: Optional[PageContext]) -> Action:
        masked, segments = _mask_quotes(rest)
        value: Optional[str] = None

        split = FILL_SPLIT.match(masked)
        with_form = FILL_WITH.match(masked)
        if split and split.group("value").strip():
            value = _clean_value(split.group("value"), segments)
            target = _clean_target(split.group("target"), segments)
        elif with_form:
            target = _clean_target(with_form.group("target"), segments)
            value = _clean_value(with_form.group("value"), segments)
        else:
            target = _clean_target(masked, segments)

        if not target:
            raise InterpretationAmbiguity("fill step names no field", details=f"No field in 'fill {rest}'")

        if value:
            return FillAction(selector_hint=target, value=value)

        label, field_type = self._field_semantics(target, context)
        generated = self.value_generator(label, field_type)
        logger.debug(f"Generated value for field '{target}' (type={field_type})")
        return FillAction(selector_hint=target, value=generated, generated=True)

    def _parse_select(self, rest: str, context: Optional[PageContext]) -> Action:
        masked, segments = _mask_quotes(rest)
        split = SELECT_SPLIT.match(masked)
        if not split:
            raise InterpretationAmbiguity("select step names no field", details=f"No field in 'select {rest}'")

        option = _clean_target(split.group("option"), segments)
        target = _clean_target(split.group("target"), segments)
        if not option or not target:
            raise InterpretationAmbiguity("incomplete select step")
        return SelectAction(selector_hint=target, option=option)

    def _parse_click(self, rest: str, context: Optional[PageContext]) -> Action:
        masked, segments = _mask_quotes(rest)
        target = _clean_target(masked, segments)
        if not target:
            raise InterpretationAmbiguity("click step names no control")
        return ClickAction(selector_hint=target)

    def _parse_submit(self, rest: str, context: Optional[PageContext]) -> Action:
        return ClickAction(selector_hint="submit")

    def _parse_navigate(self, rest: str, context: Optional[PageContext]) -> Action:
        url = URL_PATTERN.search(rest)
        if url:
            return NavigateAction(url=url.group(0).rstrip(".,);"))
        # "Open the menu" or "Go to the next step" are not page loads
        raise InterpretationAmbiguity("navigate step names no URL", details=f"No absolute URL in '{rest}'")

    def _parse_reload(self, rest: str, context: Optional[PageContext]) -> Action:
        return NavigateAction()

    def _parse_wait(self, rest: str, context: Optional[PageContext]) -> Action:
        duration = DURATION.search(rest)
        if duration:
            amount = float(duration.group(1))
            unit = duration.group(2).lower()
            if unit.startswith("ms") or unit.startswith("milli"):
                ms = amount
            elif unit.startswith("m"):
                ms = amount * 60000
            else:
                ms = amount * 1000
            ms = int(min(max(ms, 1), MAX_FIXED_DELAY_MS))
            return WaitForLoadAction(timeout_ms=ms, fixed_delay=True)
        return WaitForLoadAction(timeout_ms=self.default_wait_ms)

    def _parse_assert(self, rest: str, context: Optional[PageContext]) -> Action:
        masked, segments = _mask_quotes(rest)
        expected = _quoted_only(masked, segments)
        lower = _MASK.sub(" ", masked).lower()

        if expected is None:
            tail = CONTAINS_TAIL.search(masked)
            if tail:
                expected = _clean_value(tail.group("text"), segments) or None

        if expected is None:
            if PAGE_LOADED.search(lower):
                return AssertAction(condition=AssertCondition(kind="page_loaded"))
            raise InterpretationAmbiguity(
                "assertion names nothing to check",
                details=f"No quoted text or 'contains ...' in '{rest}'"
            )

        if re.search(r"\btitle\b", lower):
            kind = "title_contains"
        elif re.search(r"\b(?:url|address)\b", lower):
            kind = "url_contains"
        elif NEGATION.search(lower):
            kind = "text_absent"
        else:
            kind = "text_present"
        return AssertAction(condition=AssertCondition(kind=kind, expected=expected))

    def _field_semantics(self, hint: str, context: Optional[PageContext]) -> Tuple[str, str]:
        """Semantic label and declared type of the field a hint most likely names."""
        field = match_field(hint, context.all_fields() if context else [])
        if field is None:
            return hint.lower(), "text"
        return field.semantic_label or hint.lower(), field.type or "text"


def match_field(hint: str, fields: List[FieldDescriptor]) -> Optional[FieldDescriptor]:
    """Fuzzy match of a hint against field names and placeholders."""
    wanted = (hint or "").strip().lower()
    if not wanted:
        return None

    best: Optional[FieldDescriptor] = None
    best_score = 0.0
    for field in fields:
        for candidate in (field.name, field.placeholder):
            candidate = (candidate or "").strip().lower()
            if not candidate:
                continue
            if candidate == wanted:
                score = 1.0
            elif wanted in candidate or candidate in wanted:
                score = 0.8
            else:
                score = SequenceMatcher(None, wanted, candidate).ratio()
            if score > best_score:
                best, best_score = field, score

    if best_score >= FIELD_MATCH_THRESHOLD:
        return best
    return None
