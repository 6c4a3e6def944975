"""Administrative configuration endpoints plus the public read surface."""

from __future__ import annotations

import logging
from typing import Any, Dict, List

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.orm import Session

from ..ai_config import load_ai_config
from ..auth import require_admin
from ..db import commit, db_session
from ..errors import BadRequest
from ..models import AIConfigRecord, StageSetting
from ..schemas import AIConfigOut, AIConfigUpsert, StageSettingOut, StageSettingUpsert, TaskStage

log = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"], dependencies=[Depends(require_admin)])
public_router = APIRouter(tags=["meta"])


def _list_stage_settings(session: Session) -> List[StageSetting]:
    stmt = select(StageSetting).order_by(StageSetting.stage, StageSetting.sub_stage)
    return list(session.execute(stmt).scalars())


@router.get("/ai-config", response_model=list[AIConfigOut])
def list_ai_configs(session: Session = Depends(db_session)) -> List[AIConfigRecord]:
    return list(session.execute(select(AIConfigRecord).order_by(AIConfigRecord.stage)).scalars())


@router.post("/ai-config", response_model=AIConfigOut)
def save_ai_config(payload: AIConfigUpsert, session: Session = Depends(db_session)) -> AIConfigRecord:
    """Create or replace the stored configuration for one stage."""

    if not all(value.strip() for value in (payload.model, payload.system_prompt, payload.user_prompt_template)):
        raise BadRequest("stage, model, system_prompt, and user_prompt_template are required")

    record = session.execute(
        select(AIConfigRecord).where(AIConfigRecord.stage == payload.stage.value)
    ).scalars().first()
    if record is None:
        record = AIConfigRecord(stage=payload.stage.value)
        session.add(record)
    record.model = payload.model.strip()
    record.system_prompt = payload.system_prompt
    record.user_prompt_template = payload.user_prompt_template
    record.variants = {key: value for key, value in payload.variants.items() if value and value.strip()}
    commit(session, "save AI configuration")
    log.info("AI configuration for %s updated", payload.stage.value)
    return record


@router.get("/ai-config/{stage}/resolved")
def resolved_ai_config(stage: TaskStage, session: Session = Depends(db_session)) -> Dict[str, Any]:
    """Show the configuration agents will actually use, defaults included."""

    config = load_ai_config(session, stage)
    return {
        "stage": stage.value,
        "model": config.model,
        "systemPrompt": config.system_prompt,
        "userPromptTemplate": config.user_prompt_template,
        "variants": dict(config.variants),
    }


@router.get("/stage-settings", response_model=list[StageSettingOut])
def admin_stage_settings(session: Session = Depends(db_session)) -> List[StageSetting]:
    return _list_stage_settings(session)


@router.post("/stage-settings", response_model=StageSettingOut)
def save_stage_setting(payload: StageSettingUpsert, session: Session = Depends(db_session)) -> StageSetting:
    sub_stage = (payload.sub_stage or "").strip()
    setting = session.execute(
        select(StageSetting).where(StageSetting.stage == payload.stage.value, StageSetting.sub_stage == sub_stage)
    ).scalars().first()
    if setting is None:
        setting = StageSetting(stage=payload.stage.value, sub_stage=sub_stage)
        session.add(setting)
    setting.enabled = payload.enabled
    commit(session, "save stage setting")
    return setting


# ---------------------------------------------------------------------------
# Public
# ---------------------------------------------------------------------------


@public_router.get("/stage-settings", response_model=list[StageSettingOut])
def public_stage_settings(session: Session = Depends(db_session)) -> List[StageSetting]:
    return _list_stage_settings(session)


@public_router.get("/health")
def health() -> Dict[str, str]:
    return {"status": "ok"}
