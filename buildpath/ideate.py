"""Ideate run snapshots: fallback seeding and deterministic pillar refreshes."""

from __future__ import annotations

import copy
from typing import Any, Dict, List, Mapping

from sqlalchemy import select
from sqlalchemy.orm import Session

from .auth import OwnershipGuard
from .errors import BadRequest, NotFound
from .models import IdeateRun, Project
from .parsers import round_half_up
from .pillars import PILLAR_DEFINITIONS, PILLARS_BY_ID
from .schemas import IdeateRunCreate, IdeateRunLocator, PillarId

MAX_PILLAR_SCORE = 10.0
REGENERATE_STEP = 0.3
PILLAR_LIST_LIMIT = 3
REGENERATE_SUMMARY_SUFFIX = " Updated with new signals."
REGENERATE_OPPORTUNITY = "Add a lightweight experiment to validate the shift."
REGENERATE_RISK = "Watch for instrumentation gaps while iterating quickly."


# ---------------------------------------------------------------------------
# Fallback content
# ---------------------------------------------------------------------------

FALLBACK_QUICK_TAKES = [
    {"label": "Overall", "value": "7.6 / 10", "delta": "+0.8"},
    {"label": "Confidence", "value": "Moderate", "delta": "↑"},
    {"label": "Theme", "value": "Guided onboarding"},
    {"label": "Effort", "value": "2 sprints"},
]

FALLBACK_SUGGESTIONS = [
    {
        "id": "s1",
        "pillarId": PillarId.AUDIENCE_FIT.value,
        "title": "Guided aha moments",
        "description": "Lead with admin outcomes and a guided flow that makes automation value obvious in the first session.",
        "impact": "High",
        "effort": "Medium",
        "applied": False,
    },
    {
        "id": "s2",
        "pillarId": PillarId.COMPETITION.value,
        "title": "Automation gallery CTA",
        "description": "Expose three automation wins in the first session to make differentiation obvious.",
        "impact": "Medium",
        "effort": "Low",
        "applied": False,
    },
    {
        "id": "s3",
        "pillarId": PillarId.FEASIBILITY.value,
        "title": "Analytics guardrails",
        "description": "Ship a minimal instrumentation checklist to keep experiments trustworthy.",
        "impact": "Medium",
        "effort": "Low",
        "applied": True,
    },
]

FALLBACK_EXPERIMENTS = [
    {
        "id": "exp-1",
        "name": "Template-led onboarding",
        "goal": "Lift admin activation to 42%",
        "owner": "Founder",
        "startDate": "Week 1",
        "status": "draft",
    },
    {
        "id": "exp-2",
        "name": "Automation gallery spotlight",
        "goal": "Increase aha rate by 10%",
        "owner": "Founder",
        "startDate": "Week 2",
        "status": "validating",
    },
]


def fallback_pillar(pillar_id: PillarId) -> Dict[str, Any]:
    index = PILLAR_DEFINITIONS.index(PILLARS_BY_ID[pillar_id])
    definition = PILLAR_DEFINITIONS[index]
    return {
        "pillarId": definition.id.value,
        "name": definition.name,
        "score": round_half_up((7 + index * 0.2) * 10) / 10,
        "delta": 0.6 if index % 2 == 0 else -0.3,
        "summary": (
            "Messaging now leads with admin value; still weak for enterprise security needs."
            if index == 0
            else "Differentiation and feasibility are improving with clearer guidance and analytics support."
        ),
        "strength": f"Early signals support {definition.name.lower()}.",
        "weakness": f"{definition.name} still rests on assumptions.",
        "improvement": f"Run one experiment that tests {definition.name.lower()} directly.",
        "opportunities": [
            "Showcase admin-only workflows in hero and onboarding.",
            "Add a security highlights micro-page in the flow.",
        ],
        "risks": ["Enterprise blockers could slow adoption without SOC2 messaging."],
    }


def build_fallback_run() -> Dict[str, Any]:
    """Seed content used for any field a new run does not supply."""

    return {
        "headline": "Boost conversion on the self-serve onboarding funnel",
        "narrative": (
            "Increase activation for workspace admins by clarifying value, reducing friction, "
            "and creating a more compelling first project path."
        ),
        "quickTakes": copy.deepcopy(FALLBACK_QUICK_TAKES),
        "risks": [
            "Messaging changes could depress signups if not tested with multiple segments.",
            "Requires coordination with analytics to measure activation correctly.",
        ],
        "opportunities": [
            "Segmented onboarding paths for admins vs members unlock faster aha moments.",
            "Small nudges in the first 3 minutes drive outsized conversion lifts.",
        ],
        "pillars": [fallback_pillar(definition.id) for definition in PILLAR_DEFINITIONS],
        "suggestions": copy.deepcopy(FALLBACK_SUGGESTIONS),
        "experiments": copy.deepcopy(FALLBACK_EXPERIMENTS),
    }


# ---------------------------------------------------------------------------
# Persistence
# ---------------------------------------------------------------------------


def create_run(session: Session, project: Project, user_id: str, payload: IdeateRunCreate) -> IdeateRun:
    """Overlay the supplied fields onto the fallback run and insert it."""

    fallback = build_fallback_run()
    supplied = payload.model_dump(mode="json", by_alias=True, exclude_none=True, exclude={"project_id"})
    merged = {**fallback, **supplied}
    if not merged["pillars"]:
        merged["pillars"] = fallback["pillars"]

    run = IdeateRun(
        project_id=project.id,
        user_id=user_id,
        headline=merged["headline"],
        narrative=merged["narrative"],
        quick_takes=merged["quickTakes"],
        risks=merged["risks"],
        opportunities=merged["opportunities"],
        pillars=merged["pillars"],
        suggestions=merged["suggestions"],
        experiments=merged["experiments"],
    )
    session.add(run)
    session.flush()
    return run


def latest_run(session: Session, project: Project) -> IdeateRun | None:
    stmt = (
        select(IdeateRun)
        .where(IdeateRun.project_id == project.id)
        .order_by(IdeateRun.created_at.desc())
        .limit(1)
    )
    return session.execute(stmt).scalars().first()


def locate_run(session: Session, guard: OwnershipGuard, locator: IdeateRunLocator) -> IdeateRun:
    if locator.run_id:
        return guard.resource(IdeateRun, locator.run_id, "Ideate run")
    if locator.project_id:
        run = latest_run(session, guard.project(locator.project_id))
        if run is None:
            raise NotFound("Ideate run not found")
        return run
    raise BadRequest("projectId or runId is required")


# ---------------------------------------------------------------------------
# Mutations
# ---------------------------------------------------------------------------


def refresh_pillar(pillar: Mapping[str, Any]) -> Dict[str, Any]:
    """Nudge a pillar upwards: +0.3 capped at 10, lists capped at three."""

    score = float(pillar.get("score") or 0)
    refreshed = dict(pillar)
    refreshed["score"] = max(0.0, min(MAX_PILLAR_SCORE, round_half_up((score + REGENERATE_STEP) * 10) / 10))
    refreshed["delta"] = round(float(pillar.get("delta") or 0) + REGENERATE_STEP, 1)
    refreshed["summary"] = f"{pillar.get('summary') or ''}{REGENERATE_SUMMARY_SUFFIX}"
    refreshed["opportunities"] = [*(pillar.get("opportunities") or []), REGENERATE_OPPORTUNITY][:PILLAR_LIST_LIMIT]
    refreshed["risks"] = [*(pillar.get("risks") or []), REGENERATE_RISK][:PILLAR_LIST_LIMIT]
    return refreshed


def regenerate_pillar(run: IdeateRun, pillar_id: str) -> Dict[str, Any]:
    """Refresh one pillar in place; a pillar missing from the run is seeded."""

    try:
        target = PillarId(pillar_id)
    except ValueError as exc:
        raise BadRequest(f"Unknown pillar '{pillar_id}'") from exc

    pillars: List[Dict[str, Any]] = copy.deepcopy(list(run.pillars or []))
    for index, pillar in enumerate(pillars):
        if pillar.get("pillarId") == target.value:
            refreshed = refresh_pillar(pillar)
            pillars[index] = refreshed
            break
    else:
        refreshed = fallback_pillar(target)
        pillars.append(refreshed)

    run.pillars = pillars
    return refreshed


def apply_suggestion(run: IdeateRun, suggestion_id: str) -> Dict[str, Any]:
    suggestions = copy.deepcopy(list(run.suggestions or []))
    applied = None
    for suggestion in suggestions:
        if suggestion.get("id") == suggestion_id:
            suggestion["applied"] = True
            applied = suggestion
    if applied is None:
        raise NotFound("Suggestion not found")

    quick_takes = copy.deepcopy(list(run.quick_takes or []))
    if quick_takes:
        quick_takes[0]["delta"] = "+0.1"

    run.suggestions = suggestions
    run.quick_takes = quick_takes
    return applied
