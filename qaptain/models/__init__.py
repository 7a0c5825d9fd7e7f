"""Data models for the QAptain API."""

from qaptain.models.page_context import (
    PageContext,
    FormDescriptor,
    FieldDescriptor,
    LinkDescriptor,
)
from qaptain.models.actions import (
    Action,
    FillAction,
    ClickAction,
    SelectAction,
    NavigateAction,
    WaitForLoadAction,
    AssertAction,
    AssertCondition,
    UnrecognizedAction,
)
from qaptain.models.scenarios import Scenario, SavedScenarioOut
from qaptain.models.runs import (
    RunState,
    RunOutcome,
    StepStatus,
    ScenarioStatus,
    StepResult,
    ScenarioResult,
    RunResult,
    RunSummary,
)

__all__ = [
    'PageContext',
    'FormDescriptor',
    'FieldDescriptor',
    'LinkDescriptor',
    'Action',
    'FillAction',
    'ClickAction',
    'SelectAction',
    'NavigateAction',
    'WaitForLoadAction',
    'AssertAction',
    'AssertCondition',
    'UnrecognizedAction',
    'Scenario',
    'SavedScenarioOut',
    'RunState',
    'RunOutcome',
    'StepStatus',
    'ScenarioStatus',
    'StepResult',
    'ScenarioResult',
    'RunResult',
    'RunSummary',
]
