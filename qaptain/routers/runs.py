"""Page analysis, scenario generation, interpretation and test run endpoints."""

import logging
from typing import List
from fastapi import APIRouter, Depends, HTTPException, Request, Response
from sqlalchemy.ext.asyncio import AsyncSession

from qaptain.database import SavedScenarioRepository, get_db
from qaptain.errors import NoUsableForms
from qaptain.models.page_context import PageContext
from qaptain.models.runs import RunOutcome, RunTestRequest
from qaptain.models.scenarios import (
    AnalyzeUrlRequest,
    GenerateScenariosRequest,
    GenerateScenariosResponse,
    InterpretScenarioRequest,
    InterpretScenarioResponse,
    InterpretStepsRequest,
    InterpretStepsResponse,
    SavedScenarioOut,
    Scenario,
)
from qaptain.routers.dependencies import (
    get_browsers,
    get_extractor,
    get_generator,
    get_interpreter,
    get_limiter,
    get_runner,
)
from qaptain.services.artifact_manager import get_artifact_manager
from qaptain.services.scenario_runner import new_run_id
from qaptain.utils.guards import check_url_guard

logger = logging.getLogger(__name__)
router = APIRouter()


async def extract_page_context(request: Request, url: str) -> PageContext:
    """Load ``url`` in a fresh browser session and extract its context."""
    url = check_url_guard(url)
    run_id = new_run_id()
    async with get_limiter(request).slot(run_id, url):
        async with get_browsers(request).session(run_id) as session:
            return await get_extractor(request).load_and_extract(session.page, url, run_id)


@router.post("/analyze-url")
async def analyze_url(request: Request, body: AnalyzeUrlRequest):
    """Extract forms, fields, nav links and form-kind flags from a page."""
    context = await extract_page_context(request, body.url)
    return context.model_dump(by_alias=True)


@router.post("/generate-scenarios", response_model=GenerateScenariosResponse)
async def generate_scenarios(request: Request, body: GenerateScenariosRequest):
    """Ask the oracle for scenarios for an already extracted page."""
    context = body.page_context
    if not context.has_forms:
        raise NoUsableForms(context.url)

    scenarios = await get_generator(request).generate(context)
    return GenerateScenariosResponse(scenarios=scenarios)


@router.post("/interpret-scenario", response_model=InterpretScenarioResponse)
async def interpret_scenario(request: Request, body: InterpretScenarioRequest):
    """Turn a user story into executable steps through the oracle."""
    context = body.page_context
    if context is None and body.url:
        context = await extract_page_context(request, body.url)

    steps = await get_generator(request).interpret_story(body.user_story, context)
    return InterpretScenarioResponse(steps=steps)


@router.post("/interpret-steps")
async def interpret_steps(request: Request, body: InterpretStepsRequest):
    """Preview the typed actions step strings interpret to; no browser involved."""
    actions = get_interpreter(request).interpret_all(body.steps, body.page_context)
    return InterpretStepsResponse(actions=actions).model_dump(by_alias=True)


async def load_saved_scenarios(db: AsyncSession, ids: List[int]) -> List[Scenario]:
    """Saved scenarios in the requested order; an unknown id is a 404."""
    scenarios = []
    for scenario_id in ids:
        row = await SavedScenarioRepository.get(db, scenario_id)
        if row is None:
            raise HTTPException(status_code=404, detail=f"Saved scenario {scenario_id} not found")
        scenarios.append(SavedScenarioOut.model_validate(row).to_scenario())
    return scenarios


@router.post("/run-test")
async def run_test(request: Request, body: RunTestRequest, db: AsyncSession = Depends(get_db)):
    """
    Run scenarios against a URL.

    Scenarios come from the oracle unless supplied in the request, inline or
    as saved-scenario ids. A page without forms yields 404; partial failures
    are reported in the payload.
    """
    url = check_url_guard(body.url)
    run_id = new_run_id()
    logger.info(f"[{run_id}] Run requested for {url}")

    scenarios = body.scenarios
    if body.saved_scenario_ids:
        scenarios = list(scenarios or []) + await load_saved_scenarios(db, body.saved_scenario_ids)

    async with get_limiter(request).slot(run_id, url):
        result = await get_runner(request).run(
            url,
            page_context=body.page_context,
            scenarios=scenarios,
            run_id=run_id
        )

    if result.outcome == RunOutcome.NO_USABLE_FORMS:
        raise NoUsableForms(url)
    return result.to_payload()


@router.get("/artifacts/{artifact_path:path}")
async def get_artifact(artifact_path: str):
    """Download a stored run artifact (screenshots)."""
    content = get_artifact_manager().get_artifact(artifact_path)
    if content is None:
        raise HTTPException(status_code=404, detail="Artifact not found")
    return Response(content=content, media_type="image/png")
