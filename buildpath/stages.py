"""Per-project stage snapshots (``project_stages``)."""

from __future__ import annotations

from typing import Any, Dict, List

from sqlalchemy import select
from sqlalchemy.orm import Session

from .models import Project, ProjectStage
from .schemas import JourneyStage, StageStatus
from .stage_payloads import read_payload, wrap_payload


def list_stages(session: Session, project: Project, user_id: str) -> List[ProjectStage]:
    stmt = select(ProjectStage).where(ProjectStage.project_id == project.id, ProjectStage.user_id == user_id)
    rows = list(session.execute(stmt).scalars())
    return sorted(rows, key=lambda row: JourneyStage(row.stage).order)


def upsert_stage(
    session: Session,
    project: Project,
    user_id: str,
    stage: JourneyStage,
    input_payload: Any,
    output_payload: Any = None,
    status: StageStatus = StageStatus.IN_PROGRESS,
) -> ProjectStage:
    """Insert or update the single row for (project, stage, user).

    Payloads are validated and wrapped before anything is written. The caller
    owns the transaction.
    """

    wrapped_input = wrap_payload(stage, "input", input_payload)
    wrapped_output = wrap_payload(stage, "output", output_payload)

    row = session.execute(
        select(ProjectStage).where(
            ProjectStage.project_id == project.id,
            ProjectStage.stage == stage.value,
            ProjectStage.user_id == user_id,
        )
    ).scalars().first()
    if row is None:
        row = ProjectStage(project_id=project.id, user_id=user_id, stage=stage.value)
        session.add(row)

    row.input = wrapped_input
    if wrapped_output is not None or row.output is None:
        row.output = wrapped_output
    row.status = status.value
    session.flush()
    return row


def stage_to_dict(row: ProjectStage) -> Dict[str, Any]:
    """Serialise a row, re-validating its payloads on the way out."""

    stage = JourneyStage(row.stage)
    return {
        "id": row.id,
        "project_id": row.project_id,
        "stage": stage,
        "status": row.status,
        "input": read_payload(stage, "input", row.input),
        "output": read_payload(stage, "output", row.output),
        "updated_at": row.updated_at,
    }
