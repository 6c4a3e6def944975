from __future__ import annotations

from openai import OpenAIError
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from buildpath.llm import get_openai_client
from buildpath.models import ProjectStage, ValidationReport

from conftest import (
    FEATURE_MAP_REPLY,
    OPPORTUNITY_REPLY,
    OWNER,
    PERSONAS_REPLY,
    RISK_RADAR_REPLY,
    STRANGER,
    pillars_reply,
    queue_full_run,
    section_reply,
    start_report,
)


class TestValidationRun:
    def test_full_run_stores_every_piece(self, client, fake_llm, project):
        report_id = start_report(client, fake_llm, project["id"])

        response = client.get("/validate/status", params={"id": report_id}, headers=OWNER)
        assert response.status_code == 200
        report = response.json()
        assert report["status"] == "ready"
        assert len(report["pillars"]) == 7
        assert report["pillars"][0]["score"] == 8
        assert report["personas"][0]["neededFeatures"] == ["Auto cover", "SMS alerts", "Leave sync", "Exports"]
        assert report["featureMap"]["must"] == ["Shift grid", "Cover requests"]
        assert report["riskRadar"]["monetisation"] == 36
        assert report["opportunityScore"]["score"] == 72

    def test_run_calls_agents_in_order_with_prior_context(self, client, fake_llm, project):
        start_report(client, fake_llm, project["id"])

        calls = fake_llm.completions.calls
        assert len(calls) == 5
        assert all(call["response_format"] == {"type": "json_object"} for call in calls)
        persona_prompt = calls[1]["messages"][1]["content"]
        assert "audienceFit strength" in persona_prompt
        feature_prompt = calls[2]["messages"][1]["content"]
        assert "Clinic Manager Cara" in feature_prompt

    def test_run_records_validate_stage_snapshot(self, client, fake_llm, project):
        report_id = start_report(client, fake_llm, project["id"])

        stages = client.get(f"/projects/{project['id']}/stages", headers=OWNER).json()
        assert [stage["stage"] for stage in stages] == ["validate"]
        assert stages[0]["status"] == "completed"
        assert stages[0]["input"]["data"]["ideaTitle"] == "Shift Planner"
        assert stages[0]["output"]["data"]["reportId"] == report_id

    def test_failure_mid_sequence_persists_nothing(self, client, fake_llm, project, session_factory):
        fake_llm.queue(pillars_reply(), PERSONAS_REPLY, FEATURE_MAP_REPLY, OpenAIError("upstream down"))

        response = client.post(
            "/validate",
            json={"projectId": project["id"], "idea": {"title": "Shift Planner"}},
            headers=OWNER,
        )

        assert response.status_code == 500
        assert response.json() == {"error": "Failed to generate risk radar"}
        with session_factory() as session:
            assert session.scalar(select(func.count()).select_from(ValidationReport)) == 0
            assert session.scalar(select(func.count()).select_from(ProjectStage)) == 0

    def test_unparseable_personas_fail_the_run(self, client, fake_llm, project):
        fake_llm.queue(pillars_reply(), "no json here")

        response = client.post(
            "/validate",
            json={"projectId": project["id"], "idea": {"title": "Shift Planner"}},
            headers=OWNER,
        )

        assert response.status_code == 500
        assert response.json()["error"] == "Failed to generate personas"

    def test_blank_title_rejected_before_any_call(self, client, fake_llm, project):
        response = client.post(
            "/validate",
            json={"projectId": project["id"], "idea": {"title": "   "}},
            headers=OWNER,
        )

        assert response.status_code == 400
        assert fake_llm.completions.calls == []

    def test_foreign_project_is_not_found(self, client, fake_llm, project):
        queue_full_run(fake_llm)

        response = client.post(
            "/validate",
            json={"projectId": project["id"], "idea": {"title": "Shift Planner"}},
            headers=STRANGER,
        )

        assert response.status_code == 404
        assert response.json() == {"error": "Project not found or unauthorized"}

    def test_list_latest(self, client, fake_llm, project):
        start_report(client, fake_llm, project["id"])
        latest_id = start_report(client, fake_llm, project["id"])

        every = client.get("/validate", params={"projectId": project["id"]}, headers=OWNER).json()
        latest = client.get("/validate", params={"projectId": project["id"], "latest": "true"}, headers=OWNER).json()

        assert len(every) == 2
        assert [report["id"] for report in latest] == [latest_id]

    def test_run_scores_overall_confidence_from_pillars(self, client, fake_llm, project):
        reply = pillars_reply(score=6)
        reply["pillars"][0]["score"] = 10
        reply["pillars"][1]["score"] = 9
        fake_llm.queue(reply, PERSONAS_REPLY, FEATURE_MAP_REPLY, RISK_RADAR_REPLY, OPPORTUNITY_REPLY)

        response = client.post(
            "/validate",
            json={"projectId": project["id"], "idea": {"title": "Shift Planner"}},
            headers=OWNER,
        )
        report_id = response.json()["reportId"]

        report = client.get("/validate/status", params={"id": report_id}, headers=OWNER).json()
        assert report["overallConfidence"] == 70
        assert report["recommendation"] == "build"
        stages = client.get(f"/projects/{project['id']}/stages", headers=OWNER).json()
        assert stages[0]["output"]["data"]["overallConfidence"] == 70
        assert stages[0]["output"]["data"]["recommendation"] == "build"

    def test_weak_pillars_recommend_dropping(self, client, fake_llm, project):
        fake_llm.queue(pillars_reply(score=3), PERSONAS_REPLY, FEATURE_MAP_REPLY, RISK_RADAR_REPLY, OPPORTUNITY_REPLY)

        response = client.post(
            "/validate",
            json={"projectId": project["id"], "idea": {"title": "Shift Planner"}},
            headers=OWNER,
        )

        report = client.get("/validate/status", params={"id": response.json()["reportId"]}, headers=OWNER).json()
        assert report["overallConfidence"] == 30
        assert report["recommendation"] == "drop"

    def test_huge_pillar_score_does_not_break_the_run(self, client, fake_llm, project):
        raw = '{"pillars": [{"pillarId": "audienceFit", "score": 1' + "0" * 400 + "}]}"
        fake_llm.queue(raw, PERSONAS_REPLY, FEATURE_MAP_REPLY, RISK_RADAR_REPLY, OPPORTUNITY_REPLY)

        response = client.post(
            "/validate",
            json={"projectId": project["id"], "idea": {"title": "Shift Planner"}},
            headers=OWNER,
        )

        assert response.status_code == 200, response.text
        report = client.get("/validate/status", params={"id": response.json()["reportId"]}, headers=OWNER).json()
        assert [pillar["score"] for pillar in report["pillars"]] == [5] * 7
        assert report["recommendation"] == "revise"

    def test_missing_api_key_fails_the_run(self, client, fake_llm, project, session_factory):
        client.app.dependency_overrides[get_openai_client] = lambda: None

        response = client.post(
            "/validate",
            json={"projectId": project["id"], "idea": {"title": "Shift Planner"}},
            headers=OWNER,
        )

        assert response.status_code == 500
        assert response.json() == {"error": "Failed to generate validation pillars"}
        assert fake_llm.completions.calls == []
        with session_factory() as session:
            assert session.scalar(select(func.count()).select_from(ValidationReport)) == 0

    def test_commit_failure_is_reported_without_driver_detail(self, client, fake_llm, project, monkeypatch):
        queue_full_run(fake_llm)

        def broken_commit(self):
            raise SQLAlchemyError("disk I/O error at /var/lib/db")

        monkeypatch.setattr(Session, "commit", broken_commit)
        response = client.post(
            "/validate",
            json={"projectId": project["id"], "idea": {"title": "Shift Planner"}},
            headers=OWNER,
        )

        assert response.status_code == 500
        assert response.json() == {"error": "Failed to save validation report"}


class TestSections:
    def test_section_run_and_overview(self, client, fake_llm, project):
        report_id = start_report(client, fake_llm, project["id"])
        fake_llm.queue(section_reply(score=80))

        response = client.post(
            "/validate/section/go-to-market",
            json={"projectId": project["id"], "reportId": report_id},
            headers=OWNER,
        )
        assert response.status_code == 200
        assert response.json()["result"]["completedActions"] == []

        overview = client.get("/validate/overview", params={"reportId": report_id}, headers=OWNER).json()
        assert overview["overallScore"] == 80
        assert overview["recommendation"] == "build"
        assert overview["completedSections"] == ["go-to-market"]
        assert overview["topActions"] == ["Interview 10 clinic managers", "Price test two tiers"]

    def test_section_without_actions_fails(self, client, fake_llm, project):
        report_id = start_report(client, fake_llm, project["id"])
        fake_llm.queue(section_reply(actions=[]))

        response = client.post(
            "/validate/section/market",
            json={"projectId": project["id"], "reportId": report_id},
            headers=OWNER,
        )

        assert response.status_code == 500
        assert response.json() == {"error": "Failed to generate market insights"}

    def test_toggle_action_round_trip(self, client, fake_llm, project):
        report_id = start_report(client, fake_llm, project["id"])
        fake_llm.queue(section_reply())
        client.post("/validate/section/market", json={"projectId": project["id"]}, headers=OWNER)

        body = {"reportId": report_id, "section": "market", "actionText": "Price test two tiers", "completed": True}
        done = client.post("/validate/actions/toggle", json=body, headers=OWNER)
        assert done.json()["completedActions"] == ["Price test two tiers"]

        body["completed"] = False
        undone = client.post("/validate/actions/toggle", json=body, headers=OWNER)
        assert undone.json()["completedActions"] == []

        again = client.post("/validate/actions/toggle", json=body, headers=OWNER)
        assert again.status_code == 404

    def test_toggle_requires_boolean(self, client, fake_llm, project):
        report_id = start_report(client, fake_llm, project["id"])

        response = client.post(
            "/validate/actions/toggle",
            json={"reportId": report_id, "section": "market", "actionText": "x", "completed": "yes"},
            headers=OWNER,
        )

        assert response.status_code == 400
        assert "error" in response.json()

    def test_deep_dive_needs_baseline(self, client, fake_llm, project):
        report_id = start_report(client, fake_llm, project["id"])

        response = client.post(
            "/validation/deep-dive/pricing",
            json={"projectId": project["id"], "reportId": report_id},
            headers=OWNER,
        )

        assert response.status_code == 400
        assert response.json() == {"error": "Section has no baseline insights yet. Run the section first."}
        assert len(fake_llm.completions.calls) == 5

    def test_deep_dive_merges_into_section(self, client, fake_llm, project):
        report_id = start_report(client, fake_llm, project["id"])
        fake_llm.queue(section_reply(), {"summary": "Dig deeper", "signals": ["Forum threads"]})
        client.post("/validate/section/pricing", json={"projectId": project["id"]}, headers=OWNER)

        response = client.post("/validation/deep-dive/pricing", json={"projectId": project["id"]}, headers=OWNER)

        assert response.status_code == 200
        report = client.get("/validate/status", params={"id": report_id}, headers=OWNER).json()
        pricing = report["sectionResults"]["pricing"]
        assert pricing["deepDive"]["signals"] == ["Forum threads"]
        assert pricing["actions"] == ["Interview 10 clinic managers", "Price test two tiers"]

    def test_persona_reactions(self, client, fake_llm, project):
        start_report(client, fake_llm, project["id"])
        fake_llm.queue(
            section_reply(),
            {"reactions": [{"personaName": "Clinic Manager Cara", "likes": ["Auto cover"]}, {"reaction": "nameless"}]},
        )
        client.post("/validate/section/audience", json={"projectId": project["id"]}, headers=OWNER)

        response = client.post("/validation/section-reactions/audience", json={"projectId": project["id"]}, headers=OWNER)

        assert response.status_code == 200
        reactions = response.json()["reactions"]
        assert [reaction["personaName"] for reaction in reactions] == ["Clinic Manager Cara"]

    def test_improve_idea(self, client, fake_llm, project):
        start_report(client, fake_llm, project["id"])
        fake_llm.queue({"enhancement": {"uniqueAngle": "Cover marketplace", "differentiators": ["Nurse-first"]}})

        response = client.post("/validate/improve", json={"projectId": project["id"]}, headers=OWNER)

        assert response.status_code == 200
        assert response.json()["ideaEnhancement"]["uniqueAngle"] == "Cover marketplace"

    def test_status_hidden_from_other_users(self, client, fake_llm, project):
        report_id = start_report(client, fake_llm, project["id"])

        response = client.get("/validate/status", params={"id": report_id}, headers=STRANGER)

        assert response.status_code == 404
