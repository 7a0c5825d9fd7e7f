"""Saved-scenario endpoints."""

import logging
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from qaptain.database import SavedScenarioRepository, get_db
from qaptain.models.scenarios import SavedScenarioCreate, SavedScenarioOut, SavedScenarioUpdate
from qaptain.routers.dependencies import get_generator

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/saved-scenarios")


def _out(row) -> dict:
    return SavedScenarioOut.model_validate(row).model_dump(mode="json", by_alias=True)


@router.get("")
async def list_saved_scenarios(
    url: Optional[str] = Query(None, description="Only scenarios saved for this URL"),
    db: AsyncSession = Depends(get_db)
):
    """List saved scenarios, newest first."""
    if url:
        rows = await SavedScenarioRepository.get_by_url(db, url)
    else:
        rows = await SavedScenarioRepository.get_all(db)
    return {"success": True, "data": [_out(row) for row in rows]}


@router.post("")
async def create_saved_scenario(
    request: Request,
    body: SavedScenarioCreate,
    db: AsyncSession = Depends(get_db)
):
    """
    Save a scenario.

    Steps are interpreted from the user story through the oracle when the
    request has none. An equivalent existing scenario is not duplicated.
    """
    logger.info(
        f"Saving scenario '{body.title or '(from story)'}' for {body.url or 'any URL'}: "
        f"{len(body.steps or [])} step(s), story of {len(body.user_story)} chars"
    )

    steps = body.steps
    if not steps:
        steps = await get_generator(request).interpret_story(body.user_story, body.page_context)
        if not steps:
            raise HTTPException(
                status_code=400,
                detail="The AI couldn't determine any steps from your description."
            )

    title = body.title or body.user_story.strip().split("\n")[0]
    row = await SavedScenarioRepository.create(
        db,
        title=title,
        user_story=body.user_story,
        steps=steps,
        url=body.url
    )

    if row is None:
        return {"success": True, "message": "Scenario already exists.", "data": None}
    return JSONResponse(status_code=201, content={"success": True, "data": _out(row)})


@router.put("")
async def update_saved_scenario(body: SavedScenarioUpdate, db: AsyncSession = Depends(get_db)):
    """Replace a saved scenario's steps (and optionally its title and story)."""
    row = await SavedScenarioRepository.update(
        db,
        body.id,
        steps=body.steps,
        title=body.title,
        user_story=body.user_story
    )
    if row is None:
        raise HTTPException(status_code=404, detail="Failed to update or find the scenario")
    return {"success": True, "data": _out(row)}
