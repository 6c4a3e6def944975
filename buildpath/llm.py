"""Thin wrapper around the OpenAI chat-completions API."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from openai import OpenAI, OpenAIError

from .config import get_settings
from .errors import UpstreamGenerationFailure

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class PromptSpec:
    """Container describing one chat-completion call."""

    system_prompt: str
    user_prompt: str
    label: str
    model: str = ""
    temperature: float = 0.7
    max_tokens: int = 1200
    json_mode: bool = True


ClientCache = tuple[str, OpenAI]
_client_cache: ClientCache | None = None


def get_openai_client() -> OpenAI | None:
    """Return a cached OpenAI client when an API key is configured.

    Used as a FastAPI dependency so tests can swap in a fake client.
    """

    global _client_cache
    settings = get_settings()
    api_key = settings.openai_api_key
    if not api_key:
        return None
    if _client_cache and _client_cache[0] == api_key:
        return _client_cache[1]
    client = OpenAI(api_key=api_key, timeout=settings.llm_timeout, max_retries=0)
    _client_cache = (api_key, client)
    return client


def complete(client: OpenAI | None, spec: PromptSpec) -> str:
    """Send one system+user pair and return the first choice's text.

    Single attempt: API errors surface as ``UpstreamGenerationFailure`` with
    a message naming what was being generated.
    """

    if client is None:
        log.error("Cannot generate %s: OPENAI_API_KEY is not configured", spec.label)
        raise UpstreamGenerationFailure(f"Failed to generate {spec.label}")

    kwargs = {
        "model": spec.model or get_settings().openai_model,
        "messages": [
            {"role": "system", "content": spec.system_prompt.strip()},
            {"role": "user", "content": spec.user_prompt.strip()},
        ],
        "temperature": spec.temperature,
        "max_tokens": spec.max_tokens,
    }
    if spec.json_mode:
        kwargs["response_format"] = {"type": "json_object"}

    try:
        response = client.chat.completions.create(**kwargs)
    except OpenAIError as exc:
        log.warning("OpenAI call for %s failed: %s", spec.label, exc)
        raise UpstreamGenerationFailure(f"Failed to generate {spec.label}") from exc

    if not response.choices:
        return ""
    return response.choices[0].message.content or ""
