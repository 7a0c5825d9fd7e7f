"""Models for scenarios, saved scenarios and the interpretation endpoints."""

from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, Field

from qaptain.models.actions import Action
from qaptain.models.page_context import PageContext


class Scenario(BaseModel):
    """A named, ordered list of natural-language steps."""
    title: str = Field(..., min_length=1)
    description: Optional[str] = None
    steps: List[str] = Field(default_factory=list)

    class Config:
        frozen = True
        json_schema_extra = {
            "example": {
                "title": "Submit empty form",
                "steps": ["Fill 'x@y.com' into 'email'", "Click submit"]
            }
        }


class GenerateScenariosRequest(BaseModel):
    """Request to propose scenarios for an already extracted page."""
    page_context: PageContext = Field(..., alias="pageContext")

    class Config:
        populate_by_name = True


class GenerateScenariosResponse(BaseModel):
    scenarios: List[Scenario]


class AnalyzeUrlRequest(BaseModel):
    url: str = Field(..., min_length=1, max_length=2048)


class InterpretScenarioRequest(BaseModel):
    """Turn a user story into steps through the oracle."""
    user_story: str = Field(..., alias="userStory", min_length=1)
    url: Optional[str] = Field(None, description="Extract page context from this URL when none is given")
    page_context: Optional[PageContext] = Field(None, alias="pageContext")

    class Config:
        populate_by_name = True


class InterpretScenarioResponse(BaseModel):
    steps: List[str]


class InterpretStepsRequest(BaseModel):
    """Preview how step strings will be executed, without a browser."""
    steps: List[str] = Field(..., min_length=1)
    page_context: Optional[PageContext] = Field(None, alias="pageContext")

    class Config:
        populate_by_name = True


class InterpretStepsResponse(BaseModel):
    actions: List[Action]


class SavedScenarioOut(BaseModel):
    """A persisted, reusable scenario."""
    id: int
    url: Optional[str] = None
    title: str
    user_story: str
    steps: List[str]
    created_at: datetime = Field(..., serialization_alias="createdAt")

    class Config:
        from_attributes = True
        populate_by_name = True

    def to_scenario(self) -> Scenario:
        return Scenario(title=self.title, description=self.user_story, steps=list(self.steps))


class SavedScenarioCreate(BaseModel):
    """Create a saved scenario; steps are interpreted from the story when absent."""
    url: Optional[str] = None
    title: Optional[str] = None
    user_story: str = Field(..., min_length=1)
    steps: Optional[List[str]] = None
    page_context: Optional[PageContext] = Field(None, alias="pageContext")

    class Config:
        populate_by_name = True


class SavedScenarioUpdate(BaseModel):
    id: int
    steps: List[str]
    title: Optional[str] = None
    user_story: Optional[str] = None
