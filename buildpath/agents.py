"""LLM agents that produce the pieces of a validation report."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, TypeVar

from openai import OpenAI

from .ai_config import ResolvedAIConfig
from .errors import UpstreamGenerationFailure
from .llm import PromptSpec, complete
from .parsers import (
    extract_json,
    parse_deep_dive,
    parse_feature_map,
    parse_idea_enhancement,
    parse_opportunity_score,
    parse_persona_reactions,
    parse_personas,
    parse_pillars,
    parse_risk_radar,
    parse_section_result,
)
from .pillars import pillar_prompt_lines
from .prompts import substitute_template
from .schemas import ValidationSection

log = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class IdeaContext:
    title: str
    summary: str = ""

    def values(self, **extra: Any) -> Dict[str, Any]:
        return {"title": self.title, "summary": self.summary or "No summary provided.", **extra}


@dataclass(frozen=True)
class AgentSpec:
    """Which prompt variant to use and how to describe failures."""

    variant: str
    label: str
    temperature: float = 0.7
    max_tokens: int = 1200


PILLARS_AGENT = AgentSpec("pillars", "validation pillars", temperature=0.4)
PERSONAS_AGENT = AgentSpec("personas", "personas", max_tokens=1600)
FEATURE_MAP_AGENT = AgentSpec("feature_map", "feature map")
RISK_RADAR_AGENT = AgentSpec("risk_radar", "risk radar", temperature=0.5)
OPPORTUNITY_AGENT = AgentSpec("opportunity_score", "opportunity score", temperature=0.5)
IDEA_ENHANCER_AGENT = AgentSpec("idea_enhancer", "idea enhancement", temperature=0.8)
SECTION_AGENT = AgentSpec("section", "section insights")
DEEP_DIVE_AGENT = AgentSpec("deep_dive", "deep dive", max_tokens=1600)
PERSONA_REACTIONS_AGENT = AgentSpec("persona_reactions", "persona reactions")


def _run_agent(
    client: OpenAI | None,
    config: ResolvedAIConfig,
    agent: AgentSpec,
    values: Mapping[str, Any],
    parser: Callable[[str], T],
    label: str | None = None,
) -> T:
    label = label or agent.label
    spec = PromptSpec(
        system_prompt=config.system_prompt_for(agent.variant),
        user_prompt=substitute_template(config.user_prompt_for(agent.variant), values),
        label=label,
        model=config.model,
        temperature=agent.temperature,
        max_tokens=agent.max_tokens,
    )
    raw = complete(client, spec)
    if extract_json(raw) is None:
        log.warning("Model returned no JSON for %s: %.200s", label, raw)
        raise UpstreamGenerationFailure(f"Failed to generate {label}")
    return parser(raw)


def run_pillar_agent(client: OpenAI | None, config: ResolvedAIConfig, idea: IdeaContext) -> List[Dict[str, Any]]:
    return _run_agent(client, config, PILLARS_AGENT, idea.values(pillars=pillar_prompt_lines()), parse_pillars)


def run_persona_agent(
    client: OpenAI | None,
    config: ResolvedAIConfig,
    idea: IdeaContext,
    insights: str,
) -> List[Dict[str, Any]]:
    personas = _run_agent(client, config, PERSONAS_AGENT, idea.values(insights=insights), parse_personas)
    if not personas:
        raise UpstreamGenerationFailure("Failed to generate personas")
    return personas


def run_feature_map_agent(
    client: OpenAI | None,
    config: ResolvedAIConfig,
    idea: IdeaContext,
    personas: str,
    insights: str,
) -> Dict[str, List[str]]:
    feature_map = _run_agent(
        client,
        config,
        FEATURE_MAP_AGENT,
        idea.values(personas=personas, insights=insights),
        parse_feature_map,
    )
    if not any(feature_map.values()):
        raise UpstreamGenerationFailure("Failed to generate feature map")
    return feature_map


def run_risk_radar_agent(client: OpenAI | None, config: ResolvedAIConfig, idea: IdeaContext, insights: str) -> Dict[str, Any]:
    return _run_agent(client, config, RISK_RADAR_AGENT, idea.values(insights=insights), parse_risk_radar)


def run_opportunity_agent(client: OpenAI | None, config: ResolvedAIConfig, idea: IdeaContext, insights: str) -> Dict[str, Any]:
    return _run_agent(client, config, OPPORTUNITY_AGENT, idea.values(insights=insights), parse_opportunity_score)


def run_idea_enhancer_agent(client: OpenAI | None, config: ResolvedAIConfig, idea: IdeaContext, insights: str) -> Dict[str, Any]:
    return _run_agent(client, config, IDEA_ENHANCER_AGENT, idea.values(insights=insights), parse_idea_enhancement)


def run_section_agent(
    client: OpenAI | None,
    config: ResolvedAIConfig,
    idea: IdeaContext,
    section: ValidationSection,
    insights: str,
) -> Dict[str, Any]:
    label = f"{section.value} insights"
    result = _run_agent(
        client,
        config,
        SECTION_AGENT,
        idea.values(section=section.label, insights=insights),
        parse_section_result,
        label=label,
    )
    if not result["actions"]:
        raise UpstreamGenerationFailure(f"Failed to generate {label}")
    return result


def run_deep_dive_agent(
    client: OpenAI | None,
    config: ResolvedAIConfig,
    idea: IdeaContext,
    section: ValidationSection,
    baseline: str,
) -> Dict[str, Any]:
    return _run_agent(
        client,
        config,
        DEEP_DIVE_AGENT,
        idea.values(section=section.label, baseline=baseline),
        parse_deep_dive,
        label=f"{section.value} deep dive",
    )


def run_persona_reactions_agent(
    client: OpenAI | None,
    config: ResolvedAIConfig,
    idea: IdeaContext,
    section: ValidationSection,
    baseline: str,
    personas: str,
) -> List[Dict[str, Any]]:
    return _run_agent(
        client,
        config,
        PERSONA_REACTIONS_AGENT,
        idea.values(section=section.label, baseline=baseline, personas=personas),
        parse_persona_reactions,
        label=f"{section.value} persona reactions",
    )
