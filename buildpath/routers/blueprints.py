"""Design, build, launch and monetise blueprint endpoints.

Every stage shares the same surface, so the router is built once per kind.
Build adds the developer pack.
"""

from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Depends, Query
from openai import OpenAI

from .. import blueprints
from ..auth import OwnershipGuard, get_guard
from ..errors import NotFound
from ..llm import get_openai_client
from ..models import Blueprint
from ..schemas import (
    BlueprintKind,
    BlueprintOut,
    BlueprintUpsert,
    DeveloperPackOut,
    PackResponse,
    SectionGenerateRequest,
)


def build_router(kind: BlueprintKind) -> APIRouter:
    router = APIRouter(prefix=f"/{kind.value}", tags=[kind.value])

    @router.get("/blueprint", response_model=BlueprintOut)
    def get_blueprint(
        project_id: str = Query(..., alias="projectId"),
        guard: OwnershipGuard = Depends(get_guard),
    ) -> Blueprint:
        blueprint = blueprints.get_blueprint(guard.session, guard.project(project_id), kind)
        if blueprint is None:
            raise NotFound(f"No {kind.value} blueprint yet")
        return blueprint

    @router.post("/blueprint", response_model=BlueprintOut)
    def save_blueprint(payload: BlueprintUpsert, guard: OwnershipGuard = Depends(get_guard)) -> Blueprint:
        project = guard.project(payload.project_id)
        return blueprints.upsert_blueprint(guard.session, project, guard.user_id, kind, payload)

    @router.post("/{section}/generate")
    def generate_section(
        section: str,
        payload: SectionGenerateRequest,
        guard: OwnershipGuard = Depends(get_guard),
        client: OpenAI | None = Depends(get_openai_client),
    ) -> Dict[str, Any]:
        blueprints.get_section_info(kind, section)
        project = guard.project(payload.project_id)
        result = blueprints.generate_section(guard.session, client, project, guard.user_id, kind, section, payload)
        blueprint = blueprints.get_blueprint(guard.session, project, kind)
        return {"section": section, "result": result, "lastAiRun": blueprint.last_ai_run}

    @router.get("/pack", response_model=PackResponse)
    def compile_pack(
        project_id: str = Query(..., alias="projectId"),
        guard: OwnershipGuard = Depends(get_guard),
    ) -> Dict[str, Any]:
        project = guard.project(project_id)
        markdown, missing = blueprints.compile_pack(project, kind, blueprints.get_blueprint(guard.session, project, kind))
        return {"kind": kind, "markdown": markdown, "missing_sections": missing}

    if kind is BlueprintKind.BUILD:

        @router.post("/developer-pack", response_model=DeveloperPackOut)
        def compile_developer_pack(
            payload: SectionGenerateRequest,
            guard: OwnershipGuard = Depends(get_guard),
            client: OpenAI | None = Depends(get_openai_client),
        ) -> Dict[str, Any]:
            project = guard.project(payload.project_id)
            return blueprints.generate_developer_pack(guard.session, client, project, guard.user_id, payload)

    return router


design_router = build_router(BlueprintKind.DESIGN)
build_stage_router = build_router(BlueprintKind.BUILD)
launch_router = build_router(BlueprintKind.LAUNCH)
monetise_router = build_router(BlueprintKind.MONETISE)
