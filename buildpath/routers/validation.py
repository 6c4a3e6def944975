"""Validation report endpoints: the full run plus section-scoped agents."""

from __future__ import annotations

from typing import Any, Dict, List

from fastapi import APIRouter, Depends, Query
from openai import OpenAI

from .. import store, validation
from ..auth import OwnershipGuard, get_guard
from ..db import commit
from ..llm import get_openai_client
from ..models import ValidationReport
from ..schemas import (
    ImproveRequest,
    ReportScopedRequest,
    ToggleActionRequest,
    ValidationOverview,
    ValidationReportOut,
    ValidationSection,
    ValidationStartRequest,
)

router = APIRouter(prefix="/validate", tags=["validation"])
agents_router = APIRouter(prefix="/validation", tags=["validation"])


@router.get("", response_model=list[ValidationReportOut])
def list_validation_reports(
    project_id: str = Query(..., alias="projectId"),
    latest: bool = False,
    guard: OwnershipGuard = Depends(get_guard),
) -> List[ValidationReport]:
    """List the project's reports, newest first; ``latest=true`` keeps one."""

    project = guard.project(project_id)
    reports = store.list_reports(guard.session, project.id)
    return reports[:1] if latest else reports


@router.post("")
def start_validation(
    payload: ValidationStartRequest,
    guard: OwnershipGuard = Depends(get_guard),
    client: OpenAI | None = Depends(get_openai_client),
) -> Dict[str, Any]:
    report = validation.start_validation_run(guard.session, client, guard, payload.project_id, payload.idea)
    return {"reportId": report.id, "status": report.status}


@router.get("/status", response_model=ValidationReportOut)
def validation_status(
    report_id: str = Query(..., alias="id"),
    guard: OwnershipGuard = Depends(get_guard),
) -> ValidationReport:
    return guard.resource(ValidationReport, report_id, "Validation report")


@router.get("/overview", response_model=ValidationOverview)
def validation_overview(
    report_id: str = Query(..., alias="reportId"),
    guard: OwnershipGuard = Depends(get_guard),
) -> Dict[str, Any]:
    report = guard.resource(ValidationReport, report_id, "Validation report")
    return store.calculate_overview(report)


@router.post("/section/{section}")
def run_validation_section(
    section: ValidationSection,
    payload: ReportScopedRequest,
    guard: OwnershipGuard = Depends(get_guard),
    client: OpenAI | None = Depends(get_openai_client),
) -> Dict[str, Any]:
    """(Re)run the analysis for one section of the report."""

    report = guard.report(payload.project_id, payload.report_id)
    result = validation.run_section(guard.session, client, report, section)
    return {"reportId": report.id, "section": section.value, "result": result}


@router.post("/actions/toggle")
def toggle_action(payload: ToggleActionRequest, guard: OwnershipGuard = Depends(get_guard)) -> Dict[str, Any]:
    report = guard.resource(ValidationReport, payload.report_id, "Validation report")
    completed = store.toggle_action_completion(report, payload.section, payload.action_text, payload.completed)
    commit(guard.session, "update completed actions")
    return {"reportId": report.id, "section": payload.section.value, "completedActions": completed}


@router.post("/improve")
def improve_idea(
    payload: ImproveRequest,
    guard: OwnershipGuard = Depends(get_guard),
    client: OpenAI | None = Depends(get_openai_client),
) -> Dict[str, Any]:
    report = guard.report(payload.project_id, payload.report_id)
    return {"reportId": report.id, "ideaEnhancement": validation.improve_idea(guard.session, client, report)}


# ---------------------------------------------------------------------------
# Section-scoped agents
# ---------------------------------------------------------------------------


@agents_router.post("/personas")
def generate_personas(
    payload: ReportScopedRequest,
    guard: OwnershipGuard = Depends(get_guard),
    client: OpenAI | None = Depends(get_openai_client),
) -> Dict[str, Any]:
    report = guard.report(payload.project_id, payload.report_id)
    return {"reportId": report.id, "personas": validation.regenerate_personas(guard.session, client, report)}


@agents_router.post("/feature-map")
def generate_feature_map(
    payload: ReportScopedRequest,
    guard: OwnershipGuard = Depends(get_guard),
    client: OpenAI | None = Depends(get_openai_client),
) -> Dict[str, Any]:
    report = guard.report(payload.project_id, payload.report_id)
    return {"reportId": report.id, "featureMap": validation.regenerate_feature_map(guard.session, client, report)}


@agents_router.post("/deep-dive/{section}")
def generate_deep_dive(
    section: ValidationSection,
    payload: ReportScopedRequest,
    guard: OwnershipGuard = Depends(get_guard),
    client: OpenAI | None = Depends(get_openai_client),
) -> Dict[str, Any]:
    """Requires a baseline result for *section*; returns 400 otherwise."""

    report = guard.report(payload.project_id, payload.report_id)
    deep_dive = validation.run_deep_dive(guard.session, client, report, section)
    return {"reportId": report.id, "section": section.value, "deepDive": deep_dive}


@agents_router.post("/section-reactions/{section}")
def generate_section_reactions(
    section: ValidationSection,
    payload: ReportScopedRequest,
    guard: OwnershipGuard = Depends(get_guard),
    client: OpenAI | None = Depends(get_openai_client),
) -> Dict[str, Any]:
    report = guard.report(payload.project_id, payload.report_id)
    reactions = validation.run_persona_reactions(guard.session, client, report, section)
    return {"reportId": report.id, "section": section.value, "reactions": reactions}
