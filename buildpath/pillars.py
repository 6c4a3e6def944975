"""The seven fixed scoring pillars shared by ideation and validation."""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Mapping, Tuple

from .schemas import PillarId


@dataclass(frozen=True)
class PillarDefinition:
    id: PillarId
    name: str
    description: str
    weight: float = 1.0


PILLAR_DEFINITIONS: Tuple[PillarDefinition, ...] = (
    PillarDefinition(
        PillarId.AUDIENCE_FIT,
        "Audience Fit",
        "Clarity of ICP, pain intensity, and willingness to pay.",
    ),
    PillarDefinition(
        PillarId.PROBLEM_CLARITY,
        "Problem Clarity",
        "How crisply the core problem and triggers are defined.",
    ),
    PillarDefinition(
        PillarId.SOLUTION_STRENGTH,
        "Solution Strength",
        "Solution completeness, UX clarity, and value delivery.",
    ),
    PillarDefinition(
        PillarId.COMPETITION,
        "Competition",
        "Differentiation, market saturation, and switching costs.",
    ),
    PillarDefinition(
        PillarId.MARKET_SIZE,
        "Market Size (TAM/SAM)",
        "Evidence of a meaningful, reachable market.",
    ),
    PillarDefinition(
        PillarId.FEASIBILITY,
        "Feasibility & Build Complexity",
        "Technical lift, dependencies, and time-to-build.",
    ),
    PillarDefinition(
        PillarId.MONETISATION,
        "Monetisation Potential",
        "Revenue model clarity, pricing leverage, and payback.",
    ),
)

PILLARS_BY_ID: Dict[PillarId, PillarDefinition] = {pillar.id: pillar for pillar in PILLAR_DEFINITIONS}

# Keys are lower-case letters only; see normalize_pillar_id.
_PILLAR_ALIASES: Dict[str, PillarId] = {
    "audiencefit": PillarId.AUDIENCE_FIT,
    "targetaudience": PillarId.AUDIENCE_FIT,
    "problemclarity": PillarId.PROBLEM_CLARITY,
    "problemdefinition": PillarId.PROBLEM_CLARITY,
    "solutionstrength": PillarId.SOLUTION_STRENGTH,
    "solutionscore": PillarId.SOLUTION_STRENGTH,
    "competition": PillarId.COMPETITION,
    "competitive": PillarId.COMPETITION,
    "marketsize": PillarId.MARKET_SIZE,
    "tam": PillarId.MARKET_SIZE,
    "tamsam": PillarId.MARKET_SIZE,
    "feasibility": PillarId.FEASIBILITY,
    "feasibilitybuild": PillarId.FEASIBILITY,
    "monetisation": PillarId.MONETISATION,
    "monetization": PillarId.MONETISATION,
    "monetizationpotential": PillarId.MONETISATION,
    "monetisationpotential": PillarId.MONETISATION,
}


def normalize_pillar_id(raw: object) -> PillarId | None:
    """Map loose spellings such as ``audience_fit`` or ``TAM`` onto a pillar."""

    if not isinstance(raw, str):
        return None
    compact = re.sub(r"[^a-z]", "", raw.lower())
    return _PILLAR_ALIASES.get(compact)


def pillar_prompt_lines() -> str:
    return "\n".join(f"- {pillar.name}: {pillar.description}" for pillar in PILLAR_DEFINITIONS)


def weighted_confidence(pillars: Iterable[Mapping[str, Any]]) -> int:
    """Weighted mean of the 0-10 pillar scores, scaled to 0-100.

    Pillars that are missing or carry a non-numeric score count as zero.
    """

    scores = {}
    for pillar in pillars:
        pillar_id = normalize_pillar_id(pillar.get("pillarId"))
        score = pillar.get("score")
        if pillar_id is not None and isinstance(score, (int, float)) and not isinstance(score, bool):
            scores[pillar_id] = float(score)

    total_weight = sum(definition.weight for definition in PILLAR_DEFINITIONS) or 1.0
    weighted = sum(scores.get(definition.id, 0.0) * definition.weight for definition in PILLAR_DEFINITIONS)
    return int(math.floor(weighted / total_weight * 10 + 0.5))
