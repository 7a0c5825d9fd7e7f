"""Models for test run execution and results."""

import base64
from enum import Enum
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field, field_serializer

from qaptain.models.actions import Action
from qaptain.models.page_context import PageContext
from qaptain.models.scenarios import Scenario


class RunState(str, Enum):
    """States of the scenario runner."""
    IDLE = "idle"
    EXTRACTING = "extracting"
    GENERATING = "generating"
    NO_SCENARIOS = "no_scenarios"
    NAVIGATING = "navigating"
    EXECUTING = "executing"
    CAPTURING = "capturing"
    COMPLETED = "completed"
    CLOSED = "closed"


class RunOutcome(str, Enum):
    """How a run that did not fail fatally ended."""
    COMPLETED = "completed"
    NO_USABLE_FORMS = "no_usable_forms"
    NO_SCENARIOS = "no_scenarios"


class StepStatus(str, Enum):
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    SKIPPED = "skipped"


class ScenarioStatus(str, Enum):
    COMPLETED = "completed"
    FAILED = "failed"
    ABORTED = "aborted"


class StepResult(BaseModel):
    """Outcome of one executed action."""
    action: Action
    status: StepStatus
    error: Optional[str] = Field(None, description="Human-readable failure or skip reason")
    order: int = Field(0, alias="timestampOrder", description="Monotonic sequence number within the scenario")
    step: Optional[str] = Field(None, description="Step text the action was interpreted from")
    duration_ms: int = Field(0, alias="durationMs")

    class Config:
        populate_by_name = True


class ScenarioResult(BaseModel):
    """Outcome of one scenario, with the end-of-scenario screenshot."""
    scenario_title: str = Field(..., alias="scenarioTitle")
    overall_status: ScenarioStatus = Field(..., alias="overallStatus")
    steps: List[StepResult] = Field(default_factory=list)
    screenshot: Optional[bytes] = Field(None, description="PNG captured at scenario end")
    screenshot_path: Optional[str] = Field(None, alias="screenshotPath")
    error: Optional[str] = Field(None, description="Why the scenario was aborted")
    duration_ms: int = Field(0, alias="durationMs")

    class Config:
        populate_by_name = True

    @field_serializer("screenshot")
    def _serialize_screenshot(self, value: Optional[bytes]) -> Optional[str]:
        if value is None:
            return None
        return "data:image/png;base64," + base64.b64encode(value).decode("ascii")

    @property
    def passed_steps(self) -> int:
        return len([s for s in self.steps if s.status == StepStatus.SUCCEEDED])

    @property
    def failed_steps(self) -> int:
        return len([s for s in self.steps if s.status == StepStatus.FAILED])


class RunSummary(BaseModel):
    """Counters over a whole run."""
    total_scenarios: int = Field(0, alias="totalScenarios")
    passed_scenarios: int = Field(0, alias="passedScenarios")
    failed_scenarios: int = Field(0, alias="failedScenarios")
    total_steps: int = Field(0, alias="totalSteps")
    passed_steps: int = Field(0, alias="passedSteps")
    failed_steps: int = Field(0, alias="failedSteps")
    skipped_steps: int = Field(0, alias="skippedSteps")

    class Config:
        populate_by_name = True

    @classmethod
    def from_results(cls, results: List[ScenarioResult]) -> "RunSummary":
        steps = [step for result in results for step in result.steps]
        return cls(
            total_scenarios=len(results),
            passed_scenarios=len([r for r in results if r.overall_status == ScenarioStatus.COMPLETED]),
            failed_scenarios=len([r for r in results if r.overall_status != ScenarioStatus.COMPLETED]),
            total_steps=len(steps),
            passed_steps=len([s for s in steps if s.status == StepStatus.SUCCEEDED]),
            failed_steps=len([s for s in steps if s.status == StepStatus.FAILED]),
            skipped_steps=len([s for s in steps if s.status == StepStatus.SKIPPED]),
        )


class RunResult(BaseModel):
    """Everything one runner invocation produced."""
    run_id: str
    url: str
    outcome: RunOutcome
    page_context: Optional[PageContext] = None
    test_plan: List[Scenario] = Field(default_factory=list)
    results: List[ScenarioResult] = Field(default_factory=list)
    rejected_scenarios: int = Field(0, description="Oracle scenarios dropped as malformed")
    transitions: List[RunState] = Field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.outcome != RunOutcome.NO_USABLE_FORMS

    @property
    def summary(self) -> RunSummary:
        return RunSummary.from_results(self.results)

    def to_payload(self) -> Dict[str, Any]:
        """Payload returned to the caller of a run."""
        payload = {
            "success": self.success,
            "runId": self.run_id,
            "testPlan": [s.model_dump() for s in self.test_plan],
            "results": [r.model_dump(mode="json", by_alias=True) for r in self.results],
            "summary": self.summary.model_dump(by_alias=True),
        }
        if self.outcome == RunOutcome.NO_SCENARIOS:
            payload["message"] = "no scenarios generated"
        return payload


class RunTestRequest(BaseModel):
    """Request to run scenarios against a URL."""
    url: str = Field(..., min_length=1, max_length=2048)
    page_context: Optional[PageContext] = Field(None, alias="pageContext")
    scenarios: Optional[List[Scenario]] = Field(
        None,
        description="Run these scenarios instead of asking the oracle"
    )
    saved_scenario_ids: Optional[List[int]] = Field(
        None,
        alias="savedScenarioIds",
        description="Run these saved scenarios (after any inline ones) instead of asking the oracle"
    )

    class Config:
        populate_by_name = True
        json_schema_extra = {
            "example": {
                "url": "https://example.com/contact"
            }
        }
