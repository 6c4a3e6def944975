"""Shared fixtures: in-memory database, fake OpenAI client and API helpers."""

from __future__ import annotations

import json
from types import SimpleNamespace
from typing import Any, Dict, List

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from buildpath.app import create_app
from buildpath.config import get_settings
from buildpath.db import db_session
from buildpath.llm import get_openai_client
from buildpath.models import Base

OWNER = {"X-User-Id": "founder-1"}
STRANGER = {"X-User-Id": "founder-2"}


class FakeCompletions:
    """Pops queued replies in call order; exceptions in the queue are raised."""

    def __init__(self) -> None:
        self.replies: List[Any] = []
        self.calls: List[Dict[str, Any]] = []

    def create(self, **kwargs: Any) -> SimpleNamespace:
        self.calls.append(kwargs)
        if not self.replies:
            raise AssertionError("Unexpected chat completion call")
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        if not isinstance(reply, str):
            reply = json.dumps(reply)
        return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=reply))])


class FakeOpenAI:
    def __init__(self) -> None:
        self.completions = FakeCompletions()
        self.chat = SimpleNamespace(completions=self.completions)

    def queue(self, *replies: Any) -> None:
        self.completions.replies.extend(replies)


@pytest.fixture(autouse=True)
def clear_settings_cache() -> None:
    """Ensure cached settings do not leak between tests."""

    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture()
def session_factory():
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
    engine.dispose()


@pytest.fixture()
def fake_llm() -> FakeOpenAI:
    return FakeOpenAI()


@pytest.fixture()
def client(session_factory, fake_llm) -> TestClient:
    app = create_app()

    def override_db_session():
        session = session_factory()
        try:
            yield session
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    app.dependency_overrides[db_session] = override_db_session
    app.dependency_overrides[get_openai_client] = lambda: fake_llm
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture()
def project(client) -> Dict[str, Any]:
    response = client.post(
        "/projects",
        json={"title": "Shift Planner", "description": "Rota planning for small clinics"},
        headers=OWNER,
    )
    assert response.status_code == 201
    return response.json()


# ---------------------------------------------------------------------------
# Canned model replies
# ---------------------------------------------------------------------------


def pillars_reply(score: int = 8) -> Dict[str, Any]:
    ids = [
        "audienceFit",
        "problemClarity",
        "solutionStrength",
        "competition",
        "marketSize",
        "feasibility",
        "monetisation",
    ]
    return {
        "pillars": [
            {
                "pillarId": pillar_id,
                "score": score,
                "strength": f"{pillar_id} strength",
                "weakness": f"{pillar_id} weakness",
                "improvementSuggestion": f"{pillar_id} improvement",
            }
            for pillar_id in ids
        ]
    }


PERSONAS_REPLY = {
    "personas": [
        {
            "name": "Clinic Manager Cara",
            "age": 41,
            "role": "Practice manager",
            "description": "Runs a four-doctor clinic.",
            "goals": ["Fill every shift"],
            "pains": ["Last-minute sick calls"],
            "triggers": ["Quarterly rota planning"],
            "objections": ["Another tool to learn"],
            "solutionFit": "Automates cover requests.",
            "neededFeatures": ["Auto cover", "SMS alerts", "Leave sync", "Exports", "Payroll"],
        }
    ]
}

FEATURE_MAP_REPLY = {
    "must": ["Shift grid", "Cover requests"],
    "should": ["SMS alerts"],
    "could": ["Payroll export"],
    "avoid": ["Full HR suite"],
}

RISK_RADAR_REPLY = {
    "market": 40,
    "competition": 65,
    "technical": 20,
    "monetization": 35.6,
    "goToMarket": 50,
    "commentary": ["Incumbents bundle rota tools"],
}

OPPORTUNITY_REPLY = {
    "score": 72,
    "breakdown": {"marketMomentum": 70, "audienceEnthusiasm": 80, "feasibility": 66},
    "rationale": "Clear pain with a reachable buyer.",
}


def section_reply(score: int = 75, actions: List[str] | None = None) -> Dict[str, Any]:
    return {
        "score": score,
        "summary": "Demand is real but fragmented.",
        "actions": actions if actions is not None else ["Interview 10 clinic managers", "Price test two tiers"],
        "insightBreakdown": {"meaning": "Buyers feel the pain weekly."},
        "suggestions": {"features": ["Cover marketplace"]},
    }


def queue_full_run(fake_llm: FakeOpenAI) -> None:
    fake_llm.queue(pillars_reply(), PERSONAS_REPLY, FEATURE_MAP_REPLY, RISK_RADAR_REPLY, OPPORTUNITY_REPLY)


def start_report(client: TestClient, fake_llm: FakeOpenAI, project_id: str) -> str:
    queue_full_run(fake_llm)
    response = client.post(
        "/validate",
        json={"projectId": project_id, "idea": {"title": "Shift Planner", "summary": "Rotas for clinics"}},
        headers=OWNER,
    )
    assert response.status_code == 200, response.text
    return response.json()["reportId"]
