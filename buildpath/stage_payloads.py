"""Versioned, per-stage schemas for ``project_stages.input`` / ``output``.

Stored payloads are envelopes::

    {"schemaVersion": 1, "stage": "validate", "data": {...}}

Writes accept a dict, a JSON-encoded string or an existing envelope and are
validated before they reach the database. Reads re-validate and raise
``CorruptStagePayload`` instead of handing malformed data to callers.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Literal, Optional, Type

from pydantic import ConfigDict, Field, ValidationError

from .errors import BadRequest, CorruptStagePayload
from .schemas import ApiModel, JourneyStage

log = logging.getLogger(__name__)

CURRENT_SCHEMA_VERSION = 1

Direction = Literal["input", "output"]


class StageData(ApiModel):
    model_config = ConfigDict(extra="allow")


class IdeaBrief(StageData):
    title: str = ""
    idea: str = ""
    summary: str = ""
    problem: str = ""
    audience: str = ""


class IdeateOutput(StageData):
    run_id: Optional[str] = None
    headline: str = ""
    narrative: str = ""
    pillars: List[Dict[str, Any]] = Field(default_factory=list)


class ValidateInput(StageData):
    idea_title: str
    idea_summary: str = ""
    report_id: Optional[str] = None


class ValidateOutput(StageData):
    report_id: str
    overall_confidence: Optional[int] = None
    recommendation: Optional[Literal["build", "revise", "drop"]] = None
    pillars: List[Dict[str, Any]] = Field(default_factory=list)
    personas: List[Dict[str, Any]] = Field(default_factory=list)
    feature_map: Optional[Dict[str, Any]] = None
    risk_radar: Optional[Dict[str, Any]] = None
    opportunity_score: Optional[Dict[str, Any]] = None
    idea_enhancement: Optional[Dict[str, Any]] = None


class StageWorkspace(StageData):
    """Free-form design/build/launch/monetise workspace state."""

    notes: str = ""
    sections: Dict[str, Any] = Field(default_factory=dict)


PAYLOAD_MODELS: Dict[tuple[JourneyStage, str], Type[StageData]] = {
    (JourneyStage.IDEATE, "input"): IdeaBrief,
    (JourneyStage.IDEATE, "output"): IdeateOutput,
    (JourneyStage.VALIDATE, "input"): ValidateInput,
    (JourneyStage.VALIDATE, "output"): ValidateOutput,
}


def _model_for(stage: JourneyStage, direction: Direction) -> Type[StageData]:
    return PAYLOAD_MODELS.get((stage, direction), StageWorkspace)


def _first_error(exc: ValidationError) -> str:
    error = exc.errors()[0]
    location = ".".join(str(part) for part in error.get("loc", ())) or "payload"
    return f"{location}: {error.get('msg', 'invalid value')}"


def wrap_payload(stage: JourneyStage, direction: Direction, raw: Any) -> Dict[str, Any] | None:
    """Validate a client-supplied payload and return the stored envelope."""

    if raw is None:
        return None
    if isinstance(raw, str):
        # Older clients send JSON-encoded strings.
        try:
            raw = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise BadRequest(f"{stage.value} {direction} is not valid JSON") from exc
    if not isinstance(raw, dict):
        raise BadRequest(f"{stage.value} {direction} must be a JSON object")

    if "schemaVersion" in raw:
        if raw.get("schemaVersion") != CURRENT_SCHEMA_VERSION or raw.get("stage") != stage.value:
            raise BadRequest(f"Unsupported {stage.value} {direction} envelope")
        raw = raw.get("data")
        if not isinstance(raw, dict):
            raise BadRequest(f"{stage.value} {direction} envelope has no data object")

    try:
        data = _model_for(stage, direction).model_validate(raw)
    except ValidationError as exc:
        raise BadRequest(f"Invalid {stage.value} {direction}: {_first_error(exc)}") from exc

    return {
        "schemaVersion": CURRENT_SCHEMA_VERSION,
        "stage": stage.value,
        "data": data.model_dump(by_alias=True, exclude_none=True),
    }


def read_payload(stage: JourneyStage, direction: Direction, stored: Any) -> Dict[str, Any] | None:
    """Re-validate a stored envelope on its way out of the database."""

    if stored is None:
        return None
    if (
        not isinstance(stored, dict)
        or stored.get("schemaVersion") != CURRENT_SCHEMA_VERSION
        or stored.get("stage") != stage.value
        or not isinstance(stored.get("data"), dict)
    ):
        log.error("Stored %s %s payload has an unknown envelope", stage.value, direction)
        raise CorruptStagePayload(f"Stored {stage.value} {direction} is corrupt")
    try:
        data = _model_for(stage, direction).model_validate(stored["data"])
    except ValidationError as exc:
        log.error("Stored %s %s payload failed validation: %s", stage.value, direction, exc)
        raise CorruptStagePayload(f"Stored {stage.value} {direction} is corrupt") from exc
    return {
        "schemaVersion": CURRENT_SCHEMA_VERSION,
        "stage": stage.value,
        "data": data.model_dump(by_alias=True, exclude_none=True),
    }
