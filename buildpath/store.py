"""Accessors and targeted merges for validation reports.

Report columns hold plain JSON; every update assigns a fresh object so the
ORM notices the change, and never rewrites sibling sections.
"""

from __future__ import annotations

import copy
from typing import Any, Dict, List, Mapping, Sequence

from sqlalchemy import select
from sqlalchemy.orm import Session

from .errors import BadRequest, NotFound
from .models import ValidationReport, utcnow
from .parsers import round_half_up
from .pillars import weighted_confidence
from .schemas import ReportStatus, ValidationSection

OVERVIEW_ACTION_LIMIT = 5
BUILD_THRESHOLD = 70
REVISE_THRESHOLD = 40


def insert_report(session: Session, project_id: str, idea_title: str, idea_summary: str = "") -> ValidationReport:
    report = ValidationReport(
        project_id=project_id,
        idea_title=idea_title,
        idea_summary=idea_summary or "",
        status=ReportStatus.RUNNING.value,
        pillars=[],
        section_results={},
        personas=[],
    )
    session.add(report)
    session.flush()
    return report


def list_reports(session: Session, project_id: str) -> List[ValidationReport]:
    stmt = (
        select(ValidationReport)
        .where(ValidationReport.project_id == project_id)
        .order_by(ValidationReport.created_at.desc())
    )
    return list(session.execute(stmt).scalars())


def get_latest_report(session: Session, project_id: str) -> ValidationReport | None:
    reports = list_reports(session, project_id)
    return reports[0] if reports else None


# ---------------------------------------------------------------------------
# Whole-column updates
# ---------------------------------------------------------------------------


def update_pillars(report: ValidationReport, pillars: Sequence[Mapping[str, Any]]) -> None:
    report.pillars = copy.deepcopy(list(pillars))


def update_report_personas(report: ValidationReport, personas: Sequence[Mapping[str, Any]]) -> None:
    report.personas = copy.deepcopy(list(personas))


def update_feature_map(report: ValidationReport, feature_map: Mapping[str, Any]) -> None:
    report.feature_map = copy.deepcopy(dict(feature_map))


def update_risk_radar(report: ValidationReport, risk_radar: Mapping[str, Any]) -> None:
    report.risk_radar = copy.deepcopy(dict(risk_radar))


def update_opportunity_score(report: ValidationReport, opportunity: Mapping[str, Any]) -> None:
    report.opportunity_score = copy.deepcopy(dict(opportunity))


def update_idea_enhancement(report: ValidationReport, enhancement: Mapping[str, Any]) -> None:
    report.idea_enhancement = copy.deepcopy(dict(enhancement))


def recommend(score: int) -> str:
    """Map a 0-100 score onto build, revise or drop."""

    if score >= BUILD_THRESHOLD:
        return "build"
    if score >= REVISE_THRESHOLD:
        return "revise"
    return "drop"


def update_confidence(report: ValidationReport, pillars: Sequence[Mapping[str, Any]]) -> None:
    report.overall_confidence = weighted_confidence(pillars)
    report.recommendation = recommend(report.overall_confidence)


def mark_ready(report: ValidationReport) -> None:
    report.status = ReportStatus.READY.value


# ---------------------------------------------------------------------------
# Section-level merges
# ---------------------------------------------------------------------------


def _sections(report: ValidationReport) -> Dict[str, Any]:
    return copy.deepcopy(dict(report.section_results or {}))


def section_baseline(report: ValidationReport, section: ValidationSection) -> Dict[str, Any] | None:
    """Return the stored result for *section*, or ``None`` if it was never run."""

    result = (report.section_results or {}).get(section.value)
    return result if isinstance(result, dict) else None


def update_section_result(
    report: ValidationReport,
    section: ValidationSection,
    result: Mapping[str, Any],
) -> Dict[str, Any]:
    """Replace a section's analysis while keeping its follow-up state.

    Completed actions survive only if the new action list still contains
    them; deep dives and persona reactions are carried over untouched.
    """

    sections = _sections(report)
    previous = sections.get(section.value) or {}
    actions = list(result.get("actions", []))
    merged = {**previous, **copy.deepcopy(dict(result))}
    merged["completedActions"] = [action for action in previous.get("completedActions", []) if action in actions]
    merged["updatedAt"] = utcnow().isoformat()
    sections[section.value] = merged
    report.section_results = sections
    return merged


def _merge_into_section(report: ValidationReport, section: ValidationSection, key: str, value: Any) -> Dict[str, Any]:
    sections = _sections(report)
    current = sections.get(section.value)
    if not isinstance(current, dict):
        raise BadRequest("Section has no baseline insights yet. Run the section first.")
    current[key] = copy.deepcopy(value)
    current["updatedAt"] = utcnow().isoformat()
    sections[section.value] = current
    report.section_results = sections
    return current


def update_deep_dive(report: ValidationReport, section: ValidationSection, deep_dive: Mapping[str, Any]) -> Dict[str, Any]:
    return _merge_into_section(report, section, "deepDive", dict(deep_dive))


def update_persona_reactions(
    report: ValidationReport,
    section: ValidationSection,
    reactions: Sequence[Mapping[str, Any]],
) -> Dict[str, Any]:
    return _merge_into_section(report, section, "personaReactions", list(reactions))


def toggle_action_completion(
    report: ValidationReport,
    section: ValidationSection,
    action_text: str,
    completed: bool,
) -> List[str]:
    """Mark an action done or not done and return the section's completed set.

    Completing is idempotent. Un-completing an action that is not in the
    completed set raises ``NotFound``.
    """

    sections = _sections(report)
    current = sections.get(section.value)
    if not isinstance(current, dict):
        raise NotFound(f"No {section.value} results found for this report")

    done = [action for action in current.get("completedActions", []) if isinstance(action, str)]
    if completed:
        if action_text not in done:
            done.append(action_text)
    else:
        if action_text not in done:
            raise NotFound("Action is not marked as completed")
        done.remove(action_text)

    current["completedActions"] = done
    sections[section.value] = current
    report.section_results = sections
    return done


def calculate_overview(report: ValidationReport) -> Dict[str, Any]:
    """Summarise section scores into a build / revise / drop recommendation."""

    scores: List[int] = []
    completed: List[ValidationSection] = []
    missing: List[ValidationSection] = []
    actions: List[str] = []
    for section in ValidationSection:
        result = section_baseline(report, section)
        if result is None:
            missing.append(section)
            continue
        completed.append(section)
        scores.append(int(result.get("score", 0) or 0))
        for action in result.get("actions", []):
            if action not in actions:
                actions.append(action)

    overall = round_half_up(sum(scores) / len(scores)) if scores else 0
    return {
        "report_id": report.id,
        "overall_score": overall,
        "recommendation": recommend(overall),
        "completed_sections": completed,
        "missing_sections": missing,
        "top_actions": actions[:OVERVIEW_ACTION_LIMIT],
    }
