"""Caller identity and the shared ownership guard."""

from __future__ import annotations

from typing import Optional, Type, TypeVar

from fastapi import Depends, Header
from sqlalchemy.orm import Session

from .config import get_settings
from .db import db_session
from .errors import Forbidden, NotFound, Unauthorized
from .models import Base, Project, ValidationReport
from . import store

USER_HEADER = "X-User-Id"

ModelT = TypeVar("ModelT", bound=Base)


def current_user_id(x_user_id: Optional[str] = Header(default=None, alias=USER_HEADER)) -> str:
    """Resolve the caller id forwarded by the identity provider."""

    if not x_user_id or not x_user_id.strip():
        raise Unauthorized()
    return x_user_id.strip()


def require_admin(user_id: str = Depends(current_user_id)) -> str:
    if not get_settings().is_admin(user_id):
        raise Forbidden("Admin access required")
    return user_id


class OwnershipGuard:
    """Resolve resources only when they belong to the calling user.

    Every lookup walks up to the parent project and compares ``user_id``;
    a missing row and someone else's row both raise the same ``NotFound``.
    """

    def __init__(self, session: Session, user_id: str) -> None:
        self.session = session
        self.user_id = user_id

    def _owns(self, project: Project | None) -> bool:
        return project is not None and project.user_id == self.user_id

    def project(self, project_id: str) -> Project:
        project = self.session.get(Project, project_id)
        if not self._owns(project):
            raise NotFound("Project not found")
        return project

    def resource(self, model: Type[ModelT], resource_id: str, label: str) -> ModelT:
        """Load any row carrying a ``project_id`` column, if the caller owns it."""

        obj = self.session.get(model, resource_id)
        if obj is None or not self._owns(self.session.get(Project, obj.project_id)):
            raise NotFound(f"{label} not found")
        return obj

    def report(self, project_id: str, report_id: str | None = None) -> ValidationReport:
        """Return the named report, or the project's latest when no id is given."""

        project = self.project(project_id)
        if report_id:
            report = self.resource(ValidationReport, report_id, "Validation report")
            if report.project_id != project.id:
                raise NotFound("Validation report not found")
            return report
        report = store.get_latest_report(self.session, project.id)
        if report is None:
            raise NotFound("Validation report not found")
        return report


def get_guard(
    session: Session = Depends(db_session),
    user_id: str = Depends(current_user_id),
) -> OwnershipGuard:
    return OwnershipGuard(session, user_id)
