"""Ideate run endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from .. import ideate
from ..auth import OwnershipGuard, get_guard
from ..db import commit
from ..errors import NotFound
from ..models import IdeateRun
from ..schemas import IdeateRunCreate, IdeateRunLocator, IdeateRunOut, PillarId, PillarRegenerateResponse

router = APIRouter(prefix="/ideate", tags=["ideate"])


@router.get("/run", response_model=IdeateRunOut)
def get_latest_run(
    project_id: str = Query(..., alias="projectId"),
    guard: OwnershipGuard = Depends(get_guard),
) -> IdeateRun:
    run = ideate.latest_run(guard.session, guard.project(project_id))
    if run is None:
        raise NotFound("No ideate runs found")
    return run


@router.post("/run", response_model=IdeateRunOut, status_code=201)
def create_run(payload: IdeateRunCreate, guard: OwnershipGuard = Depends(get_guard)) -> IdeateRun:
    """Save a snapshot; fields left out are seeded from the fallback run."""

    project = guard.project(payload.project_id)
    run = ideate.create_run(guard.session, project, guard.user_id, payload)
    commit(guard.session, "save ideate run")
    return run


@router.post("/pillar/{pillar_id}/regenerate", response_model=PillarRegenerateResponse)
def regenerate_pillar(
    pillar_id: PillarId,
    locator: IdeateRunLocator,
    guard: OwnershipGuard = Depends(get_guard),
) -> dict:
    run = ideate.locate_run(guard.session, guard, locator)
    pillar = ideate.regenerate_pillar(run, pillar_id)
    commit(guard.session, "refresh pillar")
    return {"pillar": pillar, "run": run}


@router.post("/suggestion/{suggestion_id}/apply", response_model=IdeateRunOut)
def apply_suggestion(
    suggestion_id: str,
    locator: IdeateRunLocator,
    guard: OwnershipGuard = Depends(get_guard),
) -> IdeateRun:
    run = ideate.locate_run(guard.session, guard, locator)
    ideate.apply_suggestion(run, suggestion_id)
    commit(guard.session, "apply suggestion")
    return run
