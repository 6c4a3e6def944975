"""Per-stage AI configuration with a static fallback table."""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping

from sqlalchemy import select
from sqlalchemy.orm import Session

from . import prompts
from .config import DEFAULT_MODEL
from .models import AIConfigRecord
from .schemas import TaskStage


@dataclass(frozen=True)
class AIConfigDefaults:
    """Hard-coded configuration used whenever a stored field is blank."""

    model: str
    system_prompt: str
    user_prompt_template: str = ""
    variants: Mapping[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class ResolvedAIConfig:
    """Configuration after the stored record has been layered over defaults."""

    stage: TaskStage
    model: str
    system_prompt: str
    user_prompt_template: str
    variants: Mapping[str, str]

    def system_prompt_for(self, variant: str | None = None) -> str:
        """Return ``system_prompt_<variant>`` or fall back to the base prompt."""

        if variant:
            prompt = self.variants.get(f"system_prompt_{variant}")
            if prompt:
                return prompt
        return self.system_prompt

    def user_prompt_for(self, variant: str | None = None) -> str:
        """Return ``user_prompt_template_<variant>`` or the base user template."""

        if variant:
            template = self.variants.get(f"user_prompt_template_{variant}")
            if template:
                return template
        return self.user_prompt_template


DEFAULT_AI_CONFIGS: Mapping[TaskStage, AIConfigDefaults] = MappingProxyType(
    {
        TaskStage.VALIDATE: AIConfigDefaults(
            model=DEFAULT_MODEL,
            system_prompt=prompts.VALIDATE_SYSTEM_PROMPT,
            variants=MappingProxyType(prompts.VALIDATE_VARIANTS),
        ),
        TaskStage.DESIGN: AIConfigDefaults(
            model=DEFAULT_MODEL,
            system_prompt=prompts.DESIGN_SYSTEM_PROMPT,
            user_prompt_template=prompts.DESIGN_USER_TEMPLATE,
            variants=MappingProxyType(prompts.DESIGN_VARIANTS),
        ),
        TaskStage.BUILD: AIConfigDefaults(
            model=DEFAULT_MODEL,
            system_prompt=prompts.BUILD_SYSTEM_PROMPT,
            user_prompt_template=prompts.BUILD_USER_TEMPLATE,
            variants=MappingProxyType(prompts.BUILD_VARIANTS),
        ),
        TaskStage.LAUNCH: AIConfigDefaults(
            model=DEFAULT_MODEL,
            system_prompt=prompts.LAUNCH_SYSTEM_PROMPT,
            user_prompt_template=prompts.LAUNCH_USER_TEMPLATE,
            variants=MappingProxyType(prompts.LAUNCH_VARIANTS),
        ),
        TaskStage.MONETISE: AIConfigDefaults(
            model=DEFAULT_MODEL,
            system_prompt=prompts.MONETISE_SYSTEM_PROMPT,
            user_prompt_template=prompts.MONETISE_USER_TEMPLATE,
            variants=MappingProxyType(prompts.MONETISE_VARIANTS),
        ),
    }
)


def _first_filled(*candidates: str | None) -> str:
    for candidate in candidates:
        if candidate and candidate.strip():
            return candidate
    return ""


def resolve_ai_config(
    stage: TaskStage,
    stored: AIConfigRecord | None = None,
    defaults: Mapping[TaskStage, AIConfigDefaults] = DEFAULT_AI_CONFIGS,
) -> ResolvedAIConfig:
    """Layer a stored record over the defaults table.

    Each field resolves to the stored value when non-blank, then the stage
    default, then an empty string. Never raises.
    """

    default = defaults.get(stage)
    stored_variants: Mapping[str, str] = {}
    if stored is not None and isinstance(stored.variants, dict):
        stored_variants = stored.variants
    default_variants: Mapping[str, str] = default.variants if default else {}

    variants = {}
    for key in set(default_variants) | set(stored_variants):
        value = _first_filled(stored_variants.get(key), default_variants.get(key))
        if value:
            variants[key] = value

    return ResolvedAIConfig(
        stage=stage,
        model=_first_filled(stored.model if stored else None, default.model if default else None),
        system_prompt=_first_filled(
            stored.system_prompt if stored else None,
            default.system_prompt if default else None,
        ),
        user_prompt_template=_first_filled(
            stored.user_prompt_template if stored else None,
            default.user_prompt_template if default else None,
        ),
        variants=MappingProxyType(variants),
    )


def load_ai_config(session: Session, stage: TaskStage) -> ResolvedAIConfig:
    """Fetch the stored record for *stage*, if any, and resolve it."""

    stored = session.execute(
        select(AIConfigRecord).where(AIConfigRecord.stage == stage.value)
    ).scalars().first()
    return resolve_ai_config(stage, stored)
