"""Validation report orchestration and re-runnable section operations."""

from __future__ import annotations

import logging
from typing import Any, Dict, List

from openai import OpenAI
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from . import agents, store
from .ai_config import load_ai_config
from .auth import OwnershipGuard
from .db import commit
from .errors import AppError, BadRequest, NotFound, StartValidationRunError
from .formatters import (
    format_feature_map,
    format_personas,
    format_pillars,
    format_report_context,
    format_section_result,
)
from .models import ValidationReport
from .schemas import IdeaInput, JourneyStage, StageStatus, TaskStage, ValidationSection
from .stages import upsert_stage

log = logging.getLogger(__name__)


def _idea_of(report: ValidationReport) -> agents.IdeaContext:
    return agents.IdeaContext(title=report.idea_title, summary=report.idea_summary)


def _snapshot_output(report: ValidationReport) -> Dict[str, Any]:
    return {
        "reportId": report.id,
        "overallConfidence": report.overall_confidence,
        "recommendation": report.recommendation,
        "pillars": report.pillars,
        "personas": report.personas,
        "featureMap": report.feature_map,
        "riskRadar": report.risk_radar,
        "opportunityScore": report.opportunity_score,
        "ideaEnhancement": report.idea_enhancement,
    }


def start_validation_run(
    session: Session,
    client: OpenAI | None,
    guard: OwnershipGuard,
    project_id: str,
    idea: IdeaInput,
) -> ValidationReport:
    """Create a report and run every agent in sequence.

    Steps: pillars, personas, feature map, risk radar, opportunity score.
    Each step's output feeds the next prompt. All writes share one
    transaction, so a failure anywhere leaves nothing behind.
    """

    title = (idea.title or "").strip()
    if not title:
        raise StartValidationRunError("Idea title is required", 400)
    try:
        project = guard.project(project_id)
    except NotFound as exc:
        raise StartValidationRunError("Project not found or unauthorized", 404) from exc

    context = agents.IdeaContext(title=title, summary=(idea.summary or "").strip())
    try:
        config = load_ai_config(session, TaskStage.VALIDATE)
        report = store.insert_report(session, project.id, context.title, context.summary)

        pillars = agents.run_pillar_agent(client, config, context)
        store.update_pillars(report, pillars)
        store.update_confidence(report, pillars)
        session.flush()

        insights = format_pillars(pillars)
        if idea.ai_review:
            insights = f"{insights}\n\nEarlier review:\n{idea.ai_review.strip()}"

        personas = agents.run_persona_agent(client, config, context, insights)
        store.update_report_personas(report, personas)
        session.flush()

        feature_map = agents.run_feature_map_agent(client, config, context, format_personas(personas), insights)
        store.update_feature_map(report, feature_map)
        session.flush()

        risk_context = f"{insights}\n\n{format_feature_map(feature_map)}"
        store.update_risk_radar(report, agents.run_risk_radar_agent(client, config, context, risk_context))
        store.update_opportunity_score(report, agents.run_opportunity_agent(client, config, context, risk_context))
        store.mark_ready(report)

        upsert_stage(
            session,
            project,
            guard.user_id,
            JourneyStage.VALIDATE,
            {"ideaTitle": context.title, "ideaSummary": context.summary, "reportId": report.id},
            _snapshot_output(report),
            StageStatus.COMPLETED,
        )
        commit(session, "save validation report")
    except StartValidationRunError:
        session.rollback()
        raise
    except AppError as exc:
        session.rollback()
        log.warning("Validation run for project %s failed: %s", project.id, exc.message)
        raise StartValidationRunError(exc.message, exc.status_code) from exc
    except SQLAlchemyError as exc:
        session.rollback()
        log.error("Validation run for project %s could not be stored: %s", project.id, exc)
        raise StartValidationRunError("Failed to save validation report", 500) from exc

    log.info("Validation report %s ready for project %s", report.id, project.id)
    return report


def run_section(
    session: Session,
    client: OpenAI | None,
    report: ValidationReport,
    section: ValidationSection,
) -> Dict[str, Any]:
    config = load_ai_config(session, TaskStage.VALIDATE)
    result = agents.run_section_agent(client, config, _idea_of(report), section, format_report_context(report))
    merged = store.update_section_result(report, section, result)
    commit(session, f"save {section.value} insights")
    return merged


def regenerate_personas(session: Session, client: OpenAI | None, report: ValidationReport) -> List[Dict[str, Any]]:
    config = load_ai_config(session, TaskStage.VALIDATE)
    personas = agents.run_persona_agent(client, config, _idea_of(report), format_report_context(report))
    store.update_report_personas(report, personas)
    commit(session, "save personas")
    return personas


def regenerate_feature_map(session: Session, client: OpenAI | None, report: ValidationReport) -> Dict[str, List[str]]:
    config = load_ai_config(session, TaskStage.VALIDATE)
    feature_map = agents.run_feature_map_agent(
        client,
        config,
        _idea_of(report),
        format_personas(report.personas or []),
        format_report_context(report),
    )
    store.update_feature_map(report, feature_map)
    commit(session, "save feature map")
    return feature_map


def improve_idea(session: Session, client: OpenAI | None, report: ValidationReport) -> Dict[str, Any]:
    config = load_ai_config(session, TaskStage.VALIDATE)
    enhancement = agents.run_idea_enhancer_agent(client, config, _idea_of(report), format_report_context(report))
    store.update_idea_enhancement(report, enhancement)
    commit(session, "save idea enhancement")
    return enhancement


def _require_baseline(report: ValidationReport, section: ValidationSection) -> Dict[str, Any]:
    baseline = store.section_baseline(report, section)
    if baseline is None:
        raise BadRequest("Section has no baseline insights yet. Run the section first.")
    return baseline


def run_deep_dive(
    session: Session,
    client: OpenAI | None,
    report: ValidationReport,
    section: ValidationSection,
) -> Dict[str, Any]:
    baseline = _require_baseline(report, section)
    config = load_ai_config(session, TaskStage.VALIDATE)
    deep_dive = agents.run_deep_dive_agent(
        client, config, _idea_of(report), section, format_section_result(section.label, baseline)
    )
    store.update_deep_dive(report, section, deep_dive)
    commit(session, f"save {section.value} deep dive")
    return deep_dive


def run_persona_reactions(
    session: Session,
    client: OpenAI | None,
    report: ValidationReport,
    section: ValidationSection,
) -> List[Dict[str, Any]]:
    baseline = _require_baseline(report, section)
    if not report.personas:
        raise BadRequest("Generate personas before collecting reactions.")
    config = load_ai_config(session, TaskStage.VALIDATE)
    reactions = agents.run_persona_reactions_agent(
        client,
        config,
        _idea_of(report),
        section,
        format_section_result(section.label, baseline),
        format_personas(report.personas),
    )
    store.update_persona_reactions(report, section, reactions)
    commit(session, f"save {section.value} persona reactions")
    return reactions
