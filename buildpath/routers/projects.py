"""Project and stage snapshot endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy import select

from ..auth import OwnershipGuard, get_guard
from ..db import commit
from ..errors import BadRequest
from ..models import Project
from ..schemas import ProjectCreate, ProjectOut, ProjectUpdate, StageOut, StageUpsert
from ..stages import list_stages, stage_to_dict, upsert_stage

MAX_TITLE_LENGTH = 200

router = APIRouter(prefix="/projects", tags=["projects"])


def _clean_title(title: str) -> str:
    title = title.strip()
    if not title:
        raise BadRequest("title is required")
    if len(title) > MAX_TITLE_LENGTH:
        raise BadRequest(f"title must be {MAX_TITLE_LENGTH} characters or fewer")
    return title


@router.get("", response_model=list[ProjectOut])
def list_projects(guard: OwnershipGuard = Depends(get_guard)) -> list[Project]:
    stmt = select(Project).where(Project.user_id == guard.user_id).order_by(Project.created_at.desc())
    return list(guard.session.execute(stmt).scalars())


@router.post("", response_model=ProjectOut, status_code=201)
def create_project(payload: ProjectCreate, guard: OwnershipGuard = Depends(get_guard)) -> Project:
    project = Project(
        user_id=guard.user_id,
        title=_clean_title(payload.title),
        description=payload.description.strip(),
        progress=0,
    )
    guard.session.add(project)
    commit(guard.session, "create project")
    return project


@router.get("/{project_id}", response_model=ProjectOut)
def get_project(project_id: str, guard: OwnershipGuard = Depends(get_guard)) -> Project:
    return guard.project(project_id)


@router.patch("/{project_id}", response_model=ProjectOut)
def update_project(project_id: str, payload: ProjectUpdate, guard: OwnershipGuard = Depends(get_guard)) -> Project:
    """Update title, description or progress (0-100)."""

    updates = {key: value for key, value in payload.model_dump(exclude_unset=True).items() if value is not None}
    if not updates:
        raise BadRequest("no valid fields to update")
    if "progress" in updates and not 0 <= updates["progress"] <= 100:
        raise BadRequest("progress must be 0-100")
    if "title" in updates:
        updates["title"] = _clean_title(updates["title"])

    project = guard.project(project_id)
    for key, value in updates.items():
        setattr(project, key, value)
    commit(guard.session, "update project")
    return project


@router.get("/{project_id}/stages", response_model=list[StageOut])
def get_stages(project_id: str, guard: OwnershipGuard = Depends(get_guard)) -> list[dict]:
    project = guard.project(project_id)
    return [stage_to_dict(row) for row in list_stages(guard.session, project, guard.user_id)]


@router.post("/{project_id}/stages", response_model=StageOut)
def save_stage(project_id: str, payload: StageUpsert, guard: OwnershipGuard = Depends(get_guard)) -> dict:
    """Upsert the caller's snapshot for one stage of the project."""

    if payload.input is None:
        raise BadRequest("stage and input are required")
    project = guard.project(project_id)
    row = upsert_stage(guard.session, project, guard.user_id, payload.stage, payload.input, payload.output, payload.status)
    commit(guard.session, f"save {payload.stage.value} stage")
    return stage_to_dict(row)
