"""Typed actions produced by the step interpreter.

Exactly one variant is active per action; ``kind`` is the tag. The
executor only ever consumes these models, never raw step text.
"""

from typing import Annotated, Literal, Optional, Union
from pydantic import BaseModel, Field


class _ActionBase(BaseModel):
    class Config:
        frozen = True
        populate_by_name = True


class FillAction(_ActionBase):
    """Type a value into a field."""
    kind: Literal["fill"] = "fill"
    selector_hint: str = Field(..., alias="selectorHint")
    value: str
    generated: bool = Field(default=False, description="Value came from the fake-value generator")


class ClickAction(_ActionBase):
    """Click a control, then give the page a chance to settle."""
    kind: Literal["click"] = "click"
    selector_hint: str = Field(..., alias="selectorHint")


class SelectAction(_ActionBase):
    """Choose an option of a <select>."""
    kind: Literal["select"] = "select"
    selector_hint: str = Field(..., alias="selectorHint")
    option: str


class NavigateAction(_ActionBase):
    """Load ``url``, or re-load the run's target URL when it is None."""
    kind: Literal["navigate"] = "navigate"
    url: Optional[str] = None


class WaitForLoadAction(_ActionBase):
    """Wait for network idle, or pause for a fixed time when ``fixed_delay``."""
    kind: Literal["wait_for_load"] = "wait_for_load"
    timeout_ms: int = Field(..., alias="timeoutMs", gt=0)
    fixed_delay: bool = Field(default=False, alias="fixedDelay")


AssertKind = Literal["text_present", "text_absent", "title_contains", "url_contains", "page_loaded"]


class AssertCondition(_ActionBase):
    kind: AssertKind
    expected: Optional[str] = None

    def describe(self) -> str:
        if self.kind == "page_loaded":
            return "page has loaded"
        return f"{self.kind.replace('_', ' ')} '{self.expected}'"


class AssertAction(_ActionBase):
    """Check a condition against the current page."""
    kind: Literal["assert"] = "assert"
    condition: AssertCondition


class UnrecognizedAction(_ActionBase):
    """A step no verb pattern matched; executes as Skipped."""
    kind: Literal["unrecognized"] = "unrecognized"
    raw: str


Action = Annotated[
    Union[
        FillAction,
        ClickAction,
        SelectAction,
        NavigateAction,
        WaitForLoadAction,
        AssertAction,
        UnrecognizedAction,
    ],
    Field(discriminator="kind"),
]
