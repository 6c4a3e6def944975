"""Configuration helpers for the BuildPath backend."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Mapping, Tuple

from dotenv import load_dotenv

DEFAULT_DATABASE_URL = "sqlite:///./buildpath.db"
DEFAULT_MODEL = "gpt-4o-mini"
DEFAULT_LLM_TIMEOUT = 60.0

load_dotenv(override=False)


@dataclass(frozen=True)
class Settings:
    """Runtime settings sourced from the environment.

    Every field has a sensible local default so the API boots without any
    configuration; only LLM-backed routes need ``OPENAI_API_KEY``.
    """

    openai_api_key: str | None = None
    openai_model: str = DEFAULT_MODEL
    llm_timeout: float = DEFAULT_LLM_TIMEOUT
    database_url: str = DEFAULT_DATABASE_URL
    log_level: str = "INFO"
    allowed_origins: Tuple[str, ...] = ()
    admin_user_ids: frozenset[str] = field(default_factory=frozenset)

    @property
    def has_openai_key(self) -> bool:
        return bool(self.openai_api_key)

    def is_admin(self, user_id: str | None) -> bool:
        """True when *user_id* is listed in ``BUILDPATH_ADMIN_USER_IDS``."""

        return bool(user_id) and user_id in self.admin_user_ids


def _split_csv(raw: str | None) -> Tuple[str, ...]:
    if not raw:
        return ()
    return tuple(item.strip() for item in raw.split(",") if item.strip())


def _parse_timeout(raw: str | None) -> float:
    if not raw:
        return DEFAULT_LLM_TIMEOUT
    try:
        value = float(raw)
    except ValueError:
        return DEFAULT_LLM_TIMEOUT
    return value if value > 0 else DEFAULT_LLM_TIMEOUT


def settings_from_environ(environ: Mapping[str, str]) -> Settings:
    """Build settings from an arbitrary mapping (``os.environ`` in production)."""

    return Settings(
        openai_api_key=environ.get("OPENAI_API_KEY") or None,
        openai_model=environ.get("BUILDPATH_OPENAI_MODEL") or DEFAULT_MODEL,
        llm_timeout=_parse_timeout(environ.get("BUILDPATH_LLM_TIMEOUT")),
        database_url=environ.get("BUILDPATH_DATABASE_URL") or DEFAULT_DATABASE_URL,
        log_level=(environ.get("BUILDPATH_LOG_LEVEL") or "INFO").upper(),
        allowed_origins=_split_csv(environ.get("BUILDPATH_ALLOWED_ORIGINS")),
        admin_user_ids=frozenset(_split_csv(environ.get("BUILDPATH_ADMIN_USER_IDS"))),
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Read environment variables and return cached settings."""

    return settings_from_environ(os.environ)
