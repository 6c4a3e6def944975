"""Render stored report fragments as prompt context and markdown."""

from __future__ import annotations

import re
from typing import Any, Dict, Iterable, List, Mapping, Sequence


def _bullet_list(items: Iterable[str]) -> str:
    return "\n".join(f"- {item}" for item in items if item)


def _join_sections(sections: Iterable[str]) -> str:
    return "\n\n".join(section for section in sections if section)


# ---------------------------------------------------------------------------
# Prompt context
# ---------------------------------------------------------------------------


def format_pillars(pillars: Sequence[Mapping[str, Any]]) -> str:
    lines = []
    for pillar in pillars:
        lines.append(
            f"{pillar.get('pillarName', pillar.get('pillarId', 'Pillar'))}: {pillar.get('score', 0)}/10. "
            f"Strength: {pillar.get('strength', '')} Weakness: {pillar.get('weakness', '')}"
        )
    return "\n".join(lines) or "No pillar scores yet."


def format_personas(personas: Sequence[Mapping[str, Any]]) -> str:
    blocks = []
    for persona in personas:
        header = persona.get("name", "Persona")
        if persona.get("role"):
            header += f" ({persona['role']})"
        lines = [header, persona.get("description", "")]
        for key, label in (("goals", "Goals"), ("pains", "Pains"), ("objections", "Objections"), ("neededFeatures", "Needs")):
            if persona.get(key):
                lines.append(f"{label}: {', '.join(persona[key])}")
        blocks.append("\n".join(line for line in lines if line))
    return "\n\n".join(blocks) or "No personas yet."


def format_feature_map(feature_map: Mapping[str, Any] | None) -> str:
    if not feature_map:
        return "No feature map yet."
    labels = {"must": "Must have", "should": "Should have", "could": "Could have", "avoid": "Avoid"}
    return "\n".join(
        f"{label}: {', '.join(feature_map.get(key, []))}" for key, label in labels.items() if feature_map.get(key)
    ) or "No feature map yet."


def format_risk_radar(risk_radar: Mapping[str, Any] | None) -> str:
    if not risk_radar:
        return ""
    scores = ", ".join(
        f"{key} {risk_radar.get(key, 0)}/100"
        for key in ("market", "competition", "technical", "monetisation", "goToMarket")
    )
    commentary = "; ".join(risk_radar.get("commentary", []))
    return f"Risk radar: {scores}." + (f" {commentary}" if commentary else "")


def format_opportunity_score(opportunity: Mapping[str, Any] | None) -> str:
    if not opportunity:
        return ""
    return f"Opportunity score: {opportunity.get('score', 0)}/100. {opportunity.get('rationale', '')}".strip()


def format_idea_enhancement(enhancement: Mapping[str, Any] | None) -> str:
    if not enhancement:
        return ""
    return _join_sections(
        [
            f"Positioning: {enhancement.get('strongerPositioning')}" if enhancement.get("strongerPositioning") else "",
            f"Unique angle: {enhancement.get('uniqueAngle')}" if enhancement.get("uniqueAngle") else "",
            f"Differentiators: {', '.join(enhancement.get('differentiators', []))}"
            if enhancement.get("differentiators")
            else "",
        ]
    )


def format_section_result(section: str, result: Mapping[str, Any] | None) -> str:
    if not result:
        return f"No {section} findings yet."
    insight = result.get("insightBreakdown") or {}
    return _join_sections(
        [
            f"{section} score: {result.get('score', 0)}/100",
            result.get("summary", ""),
            f"What it means: {insight.get('meaning')}" if insight.get("meaning") else "",
            f"Impact: {insight.get('impact')}" if insight.get("impact") else "",
            f"Actions:\n{_bullet_list(result.get('actions', []))}" if result.get("actions") else "",
        ]
    )


def format_report_context(report) -> str:
    """Condense a validation report into a prompt-sized briefing."""

    section_lines = [
        f"{name}: {result.get('score', 0)}/100. {result.get('summary', '')}".strip()
        for name, result in (report.section_results or {}).items()
        if isinstance(result, dict)
    ]
    return _join_sections(
        [
            format_pillars(report.pillars) if report.pillars else "",
            format_risk_radar(report.risk_radar),
            format_opportunity_score(report.opportunity_score),
            "\n".join(section_lines),
        ]
    ) or "No validation signals yet."


# ---------------------------------------------------------------------------
# Markdown export
# ---------------------------------------------------------------------------


def _humanize(key: str) -> str:
    spaced = re.sub(r"(?<!^)(?=[A-Z])", " ", key).replace("_", " ")
    return spaced[:1].upper() + spaced[1:]


def _render_value(value: Any, depth: int) -> List[str]:
    if isinstance(value, Mapping):
        lines: List[str] = []
        for key, inner in value.items():
            if inner in (None, "", [], {}):
                continue
            if isinstance(inner, (Mapping, list)):
                lines.append(f"{'#' * min(depth, 6)} {_humanize(str(key))}")
                lines.extend(_render_value(inner, depth + 1))
            else:
                lines.append(f"**{_humanize(str(key))}:** {inner}")
        return lines
    if isinstance(value, list):
        bullets = []
        for item in value:
            if isinstance(item, Mapping):
                parts = [f"{_humanize(str(k))}: {v}" for k, v in item.items() if v not in (None, "", [], {})]
                bullets.append("; ".join(parts))
            else:
                bullets.append(str(item))
        return [_bullet_list(bullets)] if bullets else []
    return [str(value)]


def format_blob_markdown(title: str, blob: Mapping[str, Any]) -> str:
    """Render one generated section as a markdown block headed by *title*."""

    cleaned: Dict[str, Any] = {key: value for key, value in blob.items() if key not in {"error", "raw"}}
    body = "\n\n".join(line for line in _render_value(cleaned, 3) if line)
    return f"## {title}\n\n{body}" if body else f"## {title}"
