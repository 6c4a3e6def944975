"""Stage blueprints for design, build, launch and monetise.

Each kind is a registry of AI-generated sections stored as JSON blobs on one
row per project, plus a compiled markdown pack.
"""

from __future__ import annotations

import copy
import json
import logging
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Tuple

from openai import OpenAI
from sqlalchemy import select
from sqlalchemy.orm import Session

from . import store
from .ai_config import load_ai_config
from .db import commit
from .errors import BadRequest, NotFound
from .formatters import format_blob_markdown, format_feature_map, format_idea_enhancement, format_report_context
from .llm import PromptSpec, complete
from .models import Blueprint, Project, utcnow
from .parsers import extract_json, parse_section_payload
from .prompts import substitute_template
from .schemas import BlueprintKind, BlueprintUpsert, JourneyStage, SectionGenerateRequest, StageStatus, TaskStage
from .stages import upsert_stage

log = logging.getLogger(__name__)

DEVELOPER_PACK = "developer_pack"


@dataclass(frozen=True)
class SectionInfo:
    """Runtime definition of one AI-generated blueprint section."""

    kind: BlueprintKind
    section_id: str
    column: str
    title: str
    brief: str
    fallback: Mapping[str, Any]

    @property
    def variant(self) -> str:
        return f"{self.kind.value}_{self.section_id}"

    def instructions(self, notes: str | None = None) -> str:
        shape = json.dumps(dict(self.fallback), indent=2)
        text = f"{self.brief}\n\nRespond with a JSON object shaped like this example:\n{shape}"
        if notes and notes.strip():
            text += f"\n\nFounder notes: {notes.strip()}"
        return text


def _section(kind: BlueprintKind, section_id: str, column: str, title: str, brief: str, fallback: Dict[str, Any]) -> SectionInfo:
    return SectionInfo(kind, section_id, column, title, brief, MappingProxyType(fallback))


# ---------------------------------------------------------------------------
# Section registry
# ---------------------------------------------------------------------------

_DESIGN_SECTIONS = (
    _section(
        BlueprintKind.DESIGN,
        "product_blueprint",
        "product_blueprint",
        "Product Blueprint",
        "Summarise the product: vision, core value proposition, target users and the problems solved first.",
        {"vision": "", "valueProposition": "", "targetUsers": [], "coreProblems": [], "successCriteria": []},
    ),
    _section(
        BlueprintKind.DESIGN,
        "user_personas",
        "user_personas",
        "User Personas",
        "Describe the design personas with demographics, goals, pains, behaviours and a day in their life.",
        {"personas": []},
    ),
    _section(
        BlueprintKind.DESIGN,
        "user_journey",
        "user_journey",
        "User Journey",
        "Map the main user journey as ordered steps with stage, action, emotion and touchpoint.",
        {"steps": [], "painPoints": [], "opportunities": []},
    ),
    _section(
        BlueprintKind.DESIGN,
        "information_architecture",
        "information_architecture",
        "Information Architecture",
        "Lay out the navigation, the page hierarchy and the content each page holds.",
        {"navigation": [], "pages": [], "userFlows": []},
    ),
    _section(
        BlueprintKind.DESIGN,
        "wireframes",
        "wireframes",
        "Wireframes & Layouts",
        "List the key screens with a short description and a wireframe summary of each layout.",
        {"keyScreens": [], "layoutPrinciples": []},
    ),
    _section(
        BlueprintKind.DESIGN,
        "brand_identity",
        "brand_identity",
        "Brand & Visual Identity",
        "Define brand personality, colour palette, typography and tone of voice.",
        {"personality": [], "colorPalette": [], "typography": {"headings": "", "body": ""}, "toneOfVoice": ""},
    ),
    _section(
        BlueprintKind.DESIGN,
        "mvp_definition",
        "mvp_definition",
        "MVP Definition",
        "Rate candidate features by effort and impact (1-5) and draw the MVP line.",
        {"effortImpact": [], "mvpFeatures": [], "postMvp": [], "successMetrics": []},
    ),
)

_BUILD_SECTIONS = (
    _section(
        BlueprintKind.BUILD,
        "scope",
        "mvp_scope",
        "MVP Scope",
        "Split the feature set into must-have, nice-to-have and later buckets for the first release.",
        {"mustHave": [], "niceToHave": [], "later": []},
    ),
    _section(
        BlueprintKind.BUILD,
        "features",
        "feature_specs",
        "Features & User Stories",
        "Write a user story, acceptance criteria and edge cases for every must-have feature.",
        {"features": []},
    ),
    _section(
        BlueprintKind.BUILD,
        "data_model",
        "data_model",
        "Data Model",
        "Design the entities, their fields and relationships, and note API considerations.",
        {"entities": [], "relationships": [], "apiConsiderations": ""},
    ),
    _section(
        BlueprintKind.BUILD,
        "screens",
        "screens_components",
        "Screens & Components",
        "List every screen with its components and a build checklist.",
        {"screens": [], "sharedComponents": [], "checklist": []},
    ),
    _section(
        BlueprintKind.BUILD,
        "integrations",
        "integrations",
        "Integrations",
        "Recommend a provider per integration category (auth, payments, email, notifications, AI, analytics, "
        "storage) and explain the choice.",
        {"categories": [], "recommendations": ""},
    ),
)

_LAUNCH_SECTIONS = (
    _section(
        BlueprintKind.LAUNCH,
        "strategy",
        "strategy_plan",
        "Launch Strategy Plan",
        "Plan the launch as a dated sequence of milestones with owners and target audiences.",
        {"timeframe": 7, "milestones": [], "audiences": []},
    ),
    _section(
        BlueprintKind.LAUNCH,
        "messaging",
        "messaging_framework",
        "Messaging Framework",
        "Write the core messaging: tagline, short description, value proposition, pain-to-solution story, "
        "benefits and objection handling.",
        {
            "tagline": "",
            "shortDescription": "",
            "valueProposition": "",
            "painToSolution": "",
            "benefits": [],
            "objectionHandling": {},
        },
    ),
    _section(
        BlueprintKind.LAUNCH,
        "landing",
        "landing_onboarding",
        "Landing Page & Onboarding",
        "Draft landing page copy and a three-email onboarding sequence.",
        {
            "landingPage": {
                "heroText": "",
                "subheading": "",
                "cta": "",
                "featureBullets": [],
                "socialProof": "",
                "pricingTable": "",
                "faq": [],
            },
            "onboarding": {"welcomeEmail": "", "howItWorksEmail": "", "followUpEmail": "", "steps": []},
        },
    ),
    _section(
        BlueprintKind.LAUNCH,
        "adopters",
        "early_adopters",
        "Early Adopters Plan",
        "Identify early adopter personas, the channels where they gather and an outreach plan.",
        {"personas": [], "channels": [], "outreachPlan": {"emails": [], "dms": [], "communityPosts": []}},
    ),
    _section(
        BlueprintKind.LAUNCH,
        "assets",
        "marketing_assets",
        "Marketing Assets",
        "Write launch assets: a tweet thread, LinkedIn announcement, Product Hunt blurb and demo script.",
        {"assets": []},
    ),
    _section(
        BlueprintKind.LAUNCH,
        "metrics",
        "tracking_metrics",
        "Tracking & Metrics",
        "Define launch goals, a dashboard, tracked events, the activation funnel and event naming.",
        {
            "goals": [],
            "dashboard": {"layout": "", "keyMetrics": []},
            "events": [],
            "funnel": {"stages": []},
            "technicalSpecs": {"eventNames": [], "dataLayer": ""},
        },
    ),
)

_MONETISE_SECTIONS = (
    _section(
        BlueprintKind.MONETISE,
        "overview",
        "overview_recommendation",
        "Monetisation Model",
        "Recommend the best monetisation model and explain the trade-offs against alternatives.",
        {"recommendedModel": None, "rationale": "", "considerations": [], "alternatives": []},
    ),
    _section(
        BlueprintKind.MONETISE,
        "pricing",
        "pricing_strategy",
        "Pricing Strategy",
        "Set launch pricing, justify it against competitor benchmarks and list alternative strategies.",
        {
            "recommendedPricing": {
                "model": "subscription",
                "monthlyPrice": 0,
                "yearlyPrice": 0,
                "currency": "USD",
                "valueJustification": "",
            },
            "competitorBenchmarks": [],
            "confidenceScore": 0,
            "alternativeStrategies": [],
        },
    ),
    _section(
        BlueprintKind.MONETISE,
        "offer",
        "offer_plan",
        "Offer & Packaging",
        "Package the pricing into tiers with a value stack, guarantee, bonuses, trial and discount.",
        {
            "tiers": [],
            "comparisonTable": [],
            "valueStack": "",
            "guarantee": "",
            "bonuses": [],
            "freeTrial": {"enabled": False, "duration": "", "description": ""},
            "discount": {"enabled": False, "type": "percentage", "value": 0, "description": ""},
        },
    ),
    _section(
        BlueprintKind.MONETISE,
        "checkout",
        "checkout_flow",
        "Checkout & Subscription Flow",
        "Design the checkout steps, subscription lifecycle, payment recovery and success page.",
        {
            "checkoutSteps": [],
            "subscriptionLifecycle": {"signup": "", "renewal": "", "upgrade": "", "downgrade": "", "cancellation": ""},
            "paymentRecovery": {"failedPayment": "", "retryStrategy": "", "dunningEmails": []},
            "successPage": {"headline": "", "message": "", "nextSteps": []},
            "abandonmentMessage": "",
            "buildPathInstructions": {"ai_tools": "", "hire_dev": "", "advanced": ""},
        },
    ),
    _section(
        BlueprintKind.MONETISE,
        "activation",
        "activation_blueprint",
        "Activation Blueprint",
        "Map the activation funnel, feature gating and the lifecycle messages that drive upgrades.",
        {
            "activationFunnel": {"steps": [], "frictionAudit": "", "first5Minutes": "", "activationChecklist": []},
            "featureGating": [],
            "messaging": {
                "welcomeEmail": "",
                "upgradeEducationEmail": "",
                "featureAnnouncement": "",
                "activationNudges": [],
            },
        },
    ),
    _section(
        BlueprintKind.MONETISE,
        "assets",
        "monetisation_assets",
        "Monetisation Assets",
        "Write pricing-page copy, upgrade email sequences and short promos.",
        {"assets": [], "emailSequences": [], "shortFormPromos": []},
    ),
)

SECTION_REGISTRY: Mapping[BlueprintKind, Mapping[str, SectionInfo]] = MappingProxyType(
    {
        BlueprintKind.DESIGN: MappingProxyType({info.section_id: info for info in _DESIGN_SECTIONS}),
        BlueprintKind.BUILD: MappingProxyType({info.section_id: info for info in _BUILD_SECTIONS}),
        BlueprintKind.LAUNCH: MappingProxyType({info.section_id: info for info in _LAUNCH_SECTIONS}),
        BlueprintKind.MONETISE: MappingProxyType({info.section_id: info for info in _MONETISE_SECTIONS}),
    }
)

# Deliverables tracked in section_completion, in display order.
DELIVERABLES: Mapping[BlueprintKind, Tuple[str, ...]] = MappingProxyType(
    {
        BlueprintKind.DESIGN: (*(info.section_id for info in _DESIGN_SECTIONS), "pack"),
        BlueprintKind.BUILD: (*(info.section_id for info in _BUILD_SECTIONS), DEVELOPER_PACK),
        BlueprintKind.LAUNCH: ("overview", "strategy", "messaging", "landing", "adopters", "assets", "metrics", "pack"),
        BlueprintKind.MONETISE: ("overview", "pricing", "offer", "checkout", "activation", "assets", "pack"),
    }
)

# Design has no path to choose.
DEFAULT_CHOICES: Mapping[BlueprintKind, str] = MappingProxyType(
    {BlueprintKind.BUILD: "ai_tool", BlueprintKind.LAUNCH: "soft_launch", BlueprintKind.MONETISE: "subscription"}
)

# Build paths with a dedicated developer pack prompt; others use the base prompt.
BUILD_PATH_VARIANTS: Mapping[str, str] = MappingProxyType({"ai_tool": "vibe_coder", "hire_dev": "send_to_devs"})


def _section_columns(kind: BlueprintKind) -> set[str]:
    columns = {info.column for info in SECTION_REGISTRY[kind].values()}
    if kind is BlueprintKind.BUILD:
        columns.add(DEVELOPER_PACK)
    return columns


def get_section_info(kind: BlueprintKind, section_id: str) -> SectionInfo:
    info = SECTION_REGISTRY[kind].get(section_id)
    if info is None:
        raise NotFound(f"Unknown {kind.value} section '{section_id}'")
    return info


# ---------------------------------------------------------------------------
# Persistence
# ---------------------------------------------------------------------------


def get_blueprint(session: Session, project: Project, kind: BlueprintKind) -> Blueprint | None:
    stmt = select(Blueprint).where(Blueprint.project_id == project.id, Blueprint.kind == kind.value)
    return session.execute(stmt).scalars().first()


def ensure_blueprint(session: Session, project: Project, user_id: str, kind: BlueprintKind) -> Blueprint:
    blueprint = get_blueprint(session, project, kind)
    if blueprint is None:
        blueprint = Blueprint(
            project_id=project.id,
            user_id=user_id,
            kind=kind.value,
            sections={},
            section_completion={section_id: False for section_id in DELIVERABLES[kind]},
        )
        session.add(blueprint)
        session.flush()
    return blueprint


def upsert_blueprint(
    session: Session,
    project: Project,
    user_id: str,
    kind: BlueprintKind,
    payload: BlueprintUpsert,
) -> Blueprint:
    """Merge the supplied fields into the project's blueprint."""

    blueprint = ensure_blueprint(session, project, user_id, kind)

    if payload.choice is not None:
        blueprint.choice = payload.choice

    if payload.sections:
        columns = _section_columns(kind)
        unknown = sorted(set(payload.sections) - columns)
        if unknown:
            raise BadRequest(f"Unknown {kind.value} sections: {', '.join(unknown)}")
        sections = copy.deepcopy(dict(blueprint.sections or {}))
        sections.update(copy.deepcopy(payload.sections))
        blueprint.sections = sections

    if payload.section_completion:
        unknown = sorted(set(payload.section_completion) - set(DELIVERABLES[kind]))
        if unknown:
            raise BadRequest(f"Unknown {kind.value} deliverables: {', '.join(unknown)}")
        # Existing keys keep their position; dict.update never reorders them.
        completion = dict(blueprint.section_completion or {})
        completion.update(payload.section_completion)
        blueprint.section_completion = completion

    commit(session, f"save {kind.value} blueprint")
    return blueprint


# ---------------------------------------------------------------------------
# Generation
# ---------------------------------------------------------------------------


def build_project_context(session: Session, project: Project) -> str:
    """Describe the project for prompts, enriched by its latest validation."""

    parts = [f"Product: {project.title}"]
    if project.description:
        parts.append(project.description)
    report = store.get_latest_report(session, project.id)
    if report is not None:
        if report.idea_summary:
            parts.append(f"Idea: {report.idea_summary}")
        parts.append(format_report_context(report))
        if report.feature_map:
            parts.append(format_feature_map(report.feature_map))
        enhancement = format_idea_enhancement(report.idea_enhancement)
        if enhancement:
            parts.append(enhancement)
    return "\n\n".join(parts)


def generate_section(
    session: Session,
    client: OpenAI | None,
    project: Project,
    user_id: str,
    kind: BlueprintKind,
    section_id: str,
    request: SectionGenerateRequest,
) -> Dict[str, Any]:
    """Generate one section, store it on the blueprint and return it.

    Unparseable model output is stored as the section's empty shape tagged
    with ``error`` and ``raw``. Completion flags are left to the caller.
    """

    info = get_section_info(kind, section_id)
    blueprint = ensure_blueprint(session, project, user_id, kind)
    config = load_ai_config(session, TaskStage(kind.value))
    choice = request.choice or blueprint.choice or DEFAULT_CHOICES.get(kind)

    spec = PromptSpec(
        system_prompt=config.system_prompt_for(info.variant),
        user_prompt=substitute_template(
            config.user_prompt_for(info.variant),
            {
                "idea": build_project_context(session, project),
                "choice": choice,
                "instructions": info.instructions(request.notes),
            },
        ),
        label=info.title.lower(),
        model=config.model,
        max_tokens=2000,
    )
    blob = parse_section_payload(complete(client, spec), info.fallback)
    if "error" in blob:
        log.warning("Stored fallback %s for project %s: model output was not JSON", info.column, project.id)

    sections = copy.deepcopy(dict(blueprint.sections or {}))
    sections[info.column] = blob
    blueprint.sections = sections
    if request.choice:
        blueprint.choice = request.choice
    blueprint.last_ai_run = utcnow()
    commit(session, f"save {info.title.lower()}")
    return blob


def generate_developer_pack(
    session: Session,
    client: OpenAI | None,
    project: Project,
    user_id: str,
    request: SectionGenerateRequest,
) -> Dict[str, Any]:
    """Compile the build blueprint into a developer hand-off document.

    The system prompt follows the build path: ``ai_tool`` gets the AI coding
    tool prompt, ``hire_dev`` the developer hand-off prompt. The reply is kept
    as markdown, with any embedded JSON plan parsed into ``structured``.
    Marks the pack deliverable and the build stage complete.
    """

    blueprint = ensure_blueprint(session, project, user_id, BlueprintKind.BUILD)
    config = load_ai_config(session, TaskStage.BUILD)
    build_path = request.choice or blueprint.choice or DEFAULT_CHOICES[BlueprintKind.BUILD]
    variant = BUILD_PATH_VARIANTS.get(build_path)

    generated = {
        column: blob for column, blob in (blueprint.sections or {}).items() if column != DEVELOPER_PACK
    }
    notes = f"Founder notes: {request.notes.strip()}" if request.notes and request.notes.strip() else ""
    spec = PromptSpec(
        system_prompt=config.system_prompt_for(variant),
        user_prompt=substitute_template(
            config.user_prompt_for(DEVELOPER_PACK),
            {
                "idea": build_project_context(session, project),
                "choice": build_path,
                "blueprint": json.dumps(generated, indent=2) if generated else "Nothing generated yet.",
                "notes": notes,
            },
        ),
        label="developer pack",
        model=config.model,
        max_tokens=3000,
        json_mode=False,
    )
    raw = complete(client, spec)
    structured = extract_json(raw)
    pack = {"markdown": raw.strip(), "structured": structured if isinstance(structured, (dict, list)) else None}

    sections = copy.deepcopy(dict(blueprint.sections or {}))
    sections[DEVELOPER_PACK] = pack
    blueprint.sections = sections
    completion = dict(blueprint.section_completion or {})
    completion[DEVELOPER_PACK] = True
    blueprint.section_completion = completion
    blueprint.choice = build_path
    blueprint.last_ai_run = utcnow()
    upsert_stage(
        session,
        project,
        user_id,
        JourneyStage.BUILD,
        {"buildPath": build_path},
        {"sections": {DEVELOPER_PACK: pack}},
        StageStatus.COMPLETED,
    )
    commit(session, "save developer pack")
    log.info("Developer pack compiled for project %s (%s)", project.id, build_path)
    return {**pack, "build_path": build_path, "last_ai_run": blueprint.last_ai_run}


def compile_pack(project: Project, kind: BlueprintKind, blueprint: Blueprint | None) -> Tuple[str, List[str]]:
    """Render every generated section as one markdown document.

    Returns the markdown and the ids of sections not generated yet.
    """

    sections = (blueprint.sections if blueprint else None) or {}
    heading = f"# {kind.value.title()} Pack: {project.title}"
    blocks = [heading]
    if blueprint and blueprint.choice:
        blocks.append(f"**Chosen path:** {blueprint.choice}")

    missing: List[str] = []
    for info in SECTION_REGISTRY[kind].values():
        blob = sections.get(info.column)
        if isinstance(blob, dict):
            blocks.append(format_blob_markdown(info.title, blob))
        else:
            missing.append(info.section_id)
    return "\n\n".join(blocks), missing
