"""Tolerant parsers that turn raw LLM text into stored JSON shapes.

Every ``parse_*`` function is total: malformed input yields the documented
empty shape, never ``None`` and never an exception.
"""

from __future__ import annotations

import copy
import json
import math
import re
from typing import Any, Dict, List, Mapping

from .pillars import PILLAR_DEFINITIONS, normalize_pillar_id

_FENCE_PATTERN = re.compile(r"```[a-zA-Z]*\s*\n?(.*?)```", re.DOTALL)

PARSE_ERROR = "Failed to parse JSON response"


def extract_json(raw: str | None) -> Any | None:
    """Return the first JSON value found in *raw*, or ``None``.

    Tries the whole string, then fenced code blocks, then the outermost
    ``{...}`` or ``[...]`` span.
    """

    if not raw or not isinstance(raw, str):
        return None
    text = raw.strip()
    candidates = [text]
    candidates.extend(match.strip() for match in _FENCE_PATTERN.findall(text))
    for opener, closer in (("{", "}"), ("[", "]")):
        start, end = text.find(opener), text.rfind(closer)
        if start != -1 and end > start:
            candidates.append(text[start : end + 1])

    for candidate in candidates:
        if not candidate:
            continue
        try:
            return json.loads(candidate)
        except ValueError:
            continue
    return None


# ---------------------------------------------------------------------------
# Coercion helpers
# ---------------------------------------------------------------------------


def _text(value: Any, default: str = "") -> str:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return default


def _string_list(value: Any, limit: int | None = None) -> List[str]:
    if not isinstance(value, list):
        return []
    items = [item.strip() for item in value if isinstance(item, str) and item.strip()]
    return items[:limit] if limit is not None else items


def _number(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.strip().rstrip("%")
    elif not isinstance(value, (int, float)):
        return None
    try:
        parsed = float(value)
    except (OverflowError, ValueError):
        return None
    return parsed if math.isfinite(parsed) else None


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def clamp_score(value: Any, upper: int = 100, default: int = 0) -> int:
    """Round to an integer and clamp into ``[0, upper]``."""

    number = _number(value)
    if number is None:
        return default
    return max(0, min(upper, round_half_up(number)))


def _mapping(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _unwrap(data: Any, key: str) -> Dict[str, Any]:
    """Accept both ``{key: {...}}`` and the bare inner object."""

    mapping = _mapping(data)
    inner = mapping.get(key)
    if isinstance(inner, dict):
        return inner
    return mapping


def _items(data: Any, key: str) -> List[Any]:
    if isinstance(data, list):
        return data
    value = _mapping(data).get(key)
    return value if isinstance(value, list) else []


# ---------------------------------------------------------------------------
# Validation report parsers
# ---------------------------------------------------------------------------


def default_pillar(definition) -> Dict[str, Any]:
    return {
        "pillarId": definition.id.value,
        "pillarName": definition.name,
        "score": 5,
        "strength": f"Need stronger signals for {definition.name}.",
        "weakness": f"No weaknesses captured for {definition.name}.",
        "improvementSuggestion": f"Add explicit mitigation ideas for {definition.name.lower()}.",
    }


def parse_pillars(raw: str | None) -> List[Dict[str, Any]]:
    """Always returns exactly seven pillars in canonical order.

    Unknown ids are dropped; missing pillars get a neutral score of 5 and
    templated guidance text.
    """

    found: Dict[Any, Dict[str, Any]] = {}
    for item in _items(extract_json(raw), "pillars"):
        entry = _mapping(item)
        pillar_id = normalize_pillar_id(entry.get("pillarId") or entry.get("id"))
        if pillar_id is not None and pillar_id not in found:
            found[pillar_id] = entry

    pillars = []
    for definition in PILLAR_DEFINITIONS:
        fallback = default_pillar(definition)
        entry = found.get(definition.id)
        if entry is None:
            pillars.append(fallback)
            continue
        pillars.append(
            {
                "pillarId": definition.id.value,
                "pillarName": definition.name,
                "score": clamp_score(entry.get("score"), upper=10, default=5),
                "strength": _text(entry.get("strength"), fallback["strength"]),
                "weakness": _text(entry.get("weakness"), fallback["weakness"]),
                "improvementSuggestion": _text(
                    entry.get("improvementSuggestion") or entry.get("improvement"),
                    fallback["improvementSuggestion"],
                ),
            }
        )
    return pillars


def parse_personas(raw: str | None) -> List[Dict[str, Any]]:
    """Fallback: ``[]``. Entries without a name are skipped."""

    personas = []
    for item in _items(extract_json(raw), "personas"):
        entry = _mapping(item)
        name = _text(entry.get("name"))
        if not name:
            continue
        age = _number(entry.get("age"))
        personas.append(
            {
                "name": name,
                "age": int(age) if age is not None else 0,
                "role": _text(entry.get("role")),
                "description": _text(entry.get("description")),
                "goals": _string_list(entry.get("goals")),
                "pains": _string_list(entry.get("pains")),
                "triggers": _string_list(entry.get("triggers")),
                "objections": _string_list(entry.get("objections")),
                "solutionFit": _text(entry.get("solutionFit")),
                "neededFeatures": _string_list(entry.get("neededFeatures"), limit=4),
            }
        )
    return personas


def parse_feature_map(raw: str | None) -> Dict[str, List[str]]:
    """Fallback: four empty MoSCoW buckets."""

    data = _unwrap(extract_json(raw), "features")
    return {bucket: _string_list(data.get(bucket)) for bucket in ("must", "should", "could", "avoid")}


def parse_risk_radar(raw: str | None) -> Dict[str, Any]:
    """Fallback: every dimension 0 and no commentary."""

    data = _unwrap(extract_json(raw), "riskRadar")
    return {
        "market": clamp_score(data.get("market")),
        "competition": clamp_score(data.get("competition")),
        "technical": clamp_score(data.get("technical")),
        "monetisation": clamp_score(data.get("monetisation", data.get("monetization"))),
        "goToMarket": clamp_score(data.get("goToMarket")),
        "commentary": _string_list(data.get("commentary")),
    }


def parse_opportunity_score(raw: str | None) -> Dict[str, Any]:
    """Fallback: score 0, zeroed breakdown, empty rationale."""

    data = _unwrap(extract_json(raw), "opportunityScore")
    breakdown = _mapping(data.get("breakdown"))
    return {
        "score": clamp_score(data.get("score")),
        "breakdown": {
            "marketMomentum": clamp_score(breakdown.get("marketMomentum")),
            "audienceEnthusiasm": clamp_score(breakdown.get("audienceEnthusiasm")),
            "feasibility": clamp_score(breakdown.get("feasibility")),
        },
        "rationale": _text(data.get("rationale")),
    }


def parse_idea_enhancement(raw: str | None) -> Dict[str, Any]:
    data = _unwrap(extract_json(raw), "enhancement")
    return {
        "strongerPositioning": _text(data.get("strongerPositioning")),
        "uniqueAngle": _text(data.get("uniqueAngle")),
        "differentiators": _string_list(data.get("differentiators")),
        "featureAdditions": _string_list(data.get("featureAdditions")),
        "betterTargetAudiences": _string_list(data.get("betterTargetAudiences")),
        "pricingStrategy": _text(data.get("pricingStrategy")),
        "whyItWins": _text(data.get("whyItWins")),
    }


DEEP_DIVE_LISTS = (
    "signals",
    "researchFindings",
    "competitorInsights",
    "pricingAngles",
    "audienceAngles",
    "featureOpportunities",
    "nextSteps",
)


def parse_deep_dive(raw: str | None) -> Dict[str, Any]:
    data = _unwrap(extract_json(raw), "deepDive")
    result: Dict[str, Any] = {"summary": _text(data.get("summary"))}
    for key in DEEP_DIVE_LISTS:
        result[key] = _string_list(data.get(key))
    return result


def parse_persona_reactions(raw: str | None) -> List[Dict[str, Any]]:
    reactions = []
    for item in _items(extract_json(raw), "reactions"):
        entry = _mapping(item)
        name = _text(entry.get("personaName"))
        if not name:
            continue
        reactions.append(
            {
                "personaName": name,
                "reaction": _text(entry.get("reaction")),
                "likes": _string_list(entry.get("likes")),
                "dislikes": _string_list(entry.get("dislikes")),
                "confusionPoints": _string_list(entry.get("confusionPoints")),
                "requestedFeatures": _string_list(entry.get("requestedFeatures")),
            }
        )
    return reactions


def parse_section_result(raw: str | None) -> Dict[str, Any]:
    """Fallback: score 0, empty summary, no actions."""

    data = _mapping(extract_json(raw))
    summary = _text(data.get("summary"))
    insight = _mapping(data.get("insightBreakdown"))
    suggestions = _mapping(data.get("suggestions"))
    return {
        "score": clamp_score(data.get("score")),
        "summary": summary,
        "actions": _string_list(data.get("actions"), limit=5),
        "insightBreakdown": {
            "discoveries": _text(insight.get("discoveries"), summary),
            "meaning": _text(insight.get("meaning")),
            "impact": _text(insight.get("impact")),
            "recommendations": _text(insight.get("recommendations")),
        },
        "suggestions": {
            key: _string_list(suggestions.get(key), limit=6)
            for key in ("features", "positioning", "audience", "copy")
        },
    }


# ---------------------------------------------------------------------------
# Blueprint section parser
# ---------------------------------------------------------------------------


def parse_section_payload(raw: str | None, fallback: Mapping[str, Any]) -> Dict[str, Any]:
    """Return the decoded object, or *fallback* tagged with ``error`` and ``raw``."""

    data = extract_json(raw)
    if isinstance(data, dict):
        return data
    result: Dict[str, Any] = {"error": PARSE_ERROR, "raw": raw or ""}
    result.update(copy.deepcopy(dict(fallback)))
    return result
