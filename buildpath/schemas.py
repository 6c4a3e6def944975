"""Pydantic models and enums for the BuildPath API."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, StrictBool
from pydantic.alias_generators import to_camel


class JourneyStage(str, Enum):
    """Enumerate the stages of the product journey."""

    IDEATE = "ideate"
    VALIDATE = "validate"
    DESIGN = "design"
    BUILD = "build"
    LAUNCH = "launch"
    MONETISE = "monetise"

    @property
    def order(self) -> int:
        """Return a human-friendly order index for the stage."""
        return list(JourneyStage).index(self) + 1


class TaskStage(str, Enum):
    """Stages that own an AI configuration record."""

    VALIDATE = "validate"
    DESIGN = "design"
    BUILD = "build"
    LAUNCH = "launch"
    MONETISE = "monetise"


class StageStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class ReportStatus(str, Enum):
    RUNNING = "running"
    READY = "ready"


class ValidationSection(str, Enum):
    """Named validation sub-topics."""

    PROBLEM = "problem"
    MARKET = "market"
    COMPETITION = "competition"
    AUDIENCE = "audience"
    FEASIBILITY = "feasibility"
    PRICING = "pricing"
    GO_TO_MARKET = "go-to-market"

    @property
    def label(self) -> str:
        return self.value.replace("-", " ").title()


class PillarId(str, Enum):
    """The seven fixed scoring dimensions."""

    AUDIENCE_FIT = "audienceFit"
    PROBLEM_CLARITY = "problemClarity"
    SOLUTION_STRENGTH = "solutionStrength"
    COMPETITION = "competition"
    MARKET_SIZE = "marketSize"
    FEASIBILITY = "feasibility"
    MONETISATION = "monetisation"


class BlueprintKind(str, Enum):
    DESIGN = "design"
    BUILD = "build"
    LAUNCH = "launch"
    MONETISE = "monetise"


class ApiModel(BaseModel):
    """Base model exposing camelCase JSON while keeping snake_case attributes."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


# ---------------------------------------------------------------------------
# Projects and stages
# ---------------------------------------------------------------------------


class ProjectCreate(ApiModel):
    title: str = Field(..., description="Project title; must not be blank.")
    description: str = ""


class ProjectUpdate(ApiModel):
    """Partial update. At least one field must be supplied."""

    title: Optional[str] = None
    description: Optional[str] = None
    progress: Optional[int] = Field(default=None, description="Completion percentage, 0-100.")


class ProjectOut(ApiModel):
    id: str
    title: str
    description: str
    progress: int
    user_id: str
    created_at: datetime
    updated_at: datetime


class StageUpsert(ApiModel):
    stage: JourneyStage
    input: Any = Field(..., description="Stage input as an object or a JSON-encoded string.")
    output: Any = None
    status: StageStatus = StageStatus.IN_PROGRESS


class StageOut(ApiModel):
    id: str
    project_id: str
    stage: JourneyStage
    status: StageStatus
    input: Optional[Dict[str, Any]] = None
    output: Optional[Dict[str, Any]] = None
    updated_at: datetime


# ---------------------------------------------------------------------------
# Admin
# ---------------------------------------------------------------------------


class StageSettingUpsert(ApiModel):
    stage: JourneyStage
    sub_stage: Optional[str] = None
    enabled: StrictBool


class StageSettingOut(ApiModel):
    stage: JourneyStage
    sub_stage: Optional[str] = None
    enabled: bool
    updated_at: datetime


class AIConfigUpsert(ApiModel):
    stage: TaskStage
    model: str
    system_prompt: str
    user_prompt_template: str
    variants: Dict[str, str] = Field(default_factory=dict)


class AIConfigOut(ApiModel):
    stage: TaskStage
    model: Optional[str] = None
    system_prompt: Optional[str] = None
    user_prompt_template: Optional[str] = None
    variants: Dict[str, str] = Field(default_factory=dict)
    updated_at: datetime


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


class IdeaInput(ApiModel):
    title: str = ""
    summary: str = ""
    ai_review: Optional[str] = None


class ValidationStartRequest(ApiModel):
    project_id: str
    idea: IdeaInput


class ReportScopedRequest(ApiModel):
    """Body shared by the section-scoped generation endpoints."""

    project_id: str
    report_id: Optional[str] = None


class ImproveRequest(ReportScopedRequest):
    pass


class ToggleActionRequest(ApiModel):
    report_id: str
    section: ValidationSection
    action_text: str = Field(..., min_length=1)
    completed: StrictBool


class ValidationReportOut(ApiModel):
    id: str
    project_id: str
    idea_title: str
    idea_summary: str
    status: ReportStatus
    overall_confidence: Optional[int] = None
    recommendation: Optional[Literal["build", "revise", "drop"]] = None
    pillars: List[Dict[str, Any]] = Field(default_factory=list)
    section_results: Dict[str, Any] = Field(default_factory=dict)
    personas: List[Dict[str, Any]] = Field(default_factory=list)
    feature_map: Optional[Dict[str, Any]] = None
    risk_radar: Optional[Dict[str, Any]] = None
    opportunity_score: Optional[Dict[str, Any]] = None
    idea_enhancement: Optional[Dict[str, Any]] = None
    created_at: datetime
    updated_at: datetime


class ValidationOverview(ApiModel):
    report_id: str
    overall_score: int
    recommendation: Literal["build", "revise", "drop"]
    completed_sections: List[ValidationSection]
    missing_sections: List[ValidationSection]
    top_actions: List[str]


# ---------------------------------------------------------------------------
# Ideate
# ---------------------------------------------------------------------------


class QuickTake(ApiModel):
    label: str
    value: str
    delta: Optional[str] = None


class IdeatePillar(ApiModel):
    pillar_id: PillarId
    name: str
    score: float = Field(default=0.0, ge=0, le=10)
    delta: float = 0.0
    summary: str = ""
    strength: str = ""
    weakness: str = ""
    improvement: str = ""
    opportunities: List[str] = Field(default_factory=list)
    risks: List[str] = Field(default_factory=list)


class Suggestion(ApiModel):
    id: str
    pillar_id: Optional[PillarId] = None
    title: str
    description: str = ""
    impact: str = ""
    effort: str = ""
    applied: bool = False


class Experiment(ApiModel):
    id: str
    name: str
    goal: str = ""
    owner: str = ""
    start_date: str = ""
    status: Literal["draft", "validating", "scheduled"] = "draft"


class IdeateRunCreate(ApiModel):
    """Partial snapshot; omitted fields are seeded from the fallback run."""

    project_id: str
    headline: Optional[str] = None
    narrative: Optional[str] = None
    quick_takes: Optional[List[QuickTake]] = None
    risks: Optional[List[str]] = None
    opportunities: Optional[List[str]] = None
    pillars: Optional[List[IdeatePillar]] = None
    suggestions: Optional[List[Suggestion]] = None
    experiments: Optional[List[Experiment]] = None


class IdeateRunOut(ApiModel):
    id: str
    project_id: str
    headline: str
    narrative: str
    quick_takes: List[QuickTake]
    risks: List[str]
    opportunities: List[str]
    pillars: List[IdeatePillar]
    suggestions: List[Suggestion]
    experiments: List[Experiment]
    updated_at: datetime


class IdeateRunLocator(ApiModel):
    """Identify a run directly or via the project's latest run."""

    project_id: Optional[str] = None
    run_id: Optional[str] = None


class PillarRegenerateResponse(ApiModel):
    pillar: IdeatePillar
    run: IdeateRunOut


# ---------------------------------------------------------------------------
# Blueprints
# ---------------------------------------------------------------------------


class BlueprintUpsert(ApiModel):
    project_id: str
    choice: Optional[str] = None
    sections: Optional[Dict[str, Any]] = None
    section_completion: Optional[Dict[str, StrictBool]] = None


class SectionGenerateRequest(ApiModel):
    project_id: str
    choice: Optional[str] = None
    notes: Optional[str] = Field(default=None, description="Extra founder guidance appended to the prompt.")


class BlueprintOut(ApiModel):
    id: str
    project_id: str
    kind: BlueprintKind
    choice: Optional[str] = None
    sections: Dict[str, Any] = Field(default_factory=dict)
    section_completion: Dict[str, bool] = Field(default_factory=dict)
    last_ai_run: Optional[datetime] = None
    updated_at: datetime


class PackResponse(ApiModel):
    kind: BlueprintKind
    markdown: str
    missing_sections: List[str]


class DeveloperPackOut(ApiModel):
    build_path: str
    markdown: str
    structured: Optional[Any] = None
    last_ai_run: Optional[datetime] = None
