from __future__ import annotations

import pytest

from conftest import OWNER, pillars_reply

ADMIN = {"X-User-Id": "admin-1"}


@pytest.fixture(autouse=True)
def admin_ids(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("BUILDPATH_ADMIN_USER_IDS", "admin-1")


class TestStageSettings:
    def test_non_admin_is_forbidden(self, client):
        response = client.post("/admin/stage-settings", json={"stage": "build", "enabled": False}, headers=OWNER)

        assert response.status_code == 403
        assert response.json() == {"error": "Admin access required"}

    def test_anonymous_is_unauthorized(self, client):
        assert client.get("/admin/stage-settings").status_code == 401

    def test_upsert_is_idempotent(self, client):
        for enabled in (False, True, False):
            response = client.post(
                "/admin/stage-settings",
                json={"stage": "build", "subStage": "send_to_devs", "enabled": enabled},
                headers=ADMIN,
            )
            assert response.status_code == 200

        settings = client.get("/stage-settings").json()
        assert len(settings) == 1
        assert settings[0]["subStage"] == "send_to_devs"
        assert settings[0]["enabled"] is False

    def test_stage_level_and_sub_stage_rows_are_distinct(self, client):
        client.post("/admin/stage-settings", json={"stage": "launch", "enabled": True}, headers=ADMIN)
        client.post("/admin/stage-settings", json={"stage": "launch", "subStage": "", "enabled": False}, headers=ADMIN)
        client.post("/admin/stage-settings", json={"stage": "launch", "subStage": "assets", "enabled": True}, headers=ADMIN)

        settings = client.get("/admin/stage-settings", headers=ADMIN).json()
        assert [(row["subStage"], row["enabled"]) for row in settings] == [("", False), ("assets", True)]

    def test_enabled_must_be_boolean(self, client):
        response = client.post("/admin/stage-settings", json={"stage": "launch", "enabled": "no"}, headers=ADMIN)

        assert response.status_code == 400


class TestAIConfig:
    def _payload(self, **overrides):
        payload = {
            "stage": "validate",
            "model": "gpt-4o",
            "systemPrompt": "Be blunt.",
            "userPromptTemplate": "Idea: {{title}}",
        }
        payload.update(overrides)
        return payload

    def test_blank_fields_rejected(self, client):
        response = client.post("/admin/ai-config", json=self._payload(model="  "), headers=ADMIN)

        assert response.status_code == 400
        assert response.json() == {"error": "stage, model, system_prompt, and user_prompt_template are required"}

    def test_upsert_by_stage(self, client):
        client.post("/admin/ai-config", json=self._payload(), headers=ADMIN)
        client.post("/admin/ai-config", json=self._payload(model="gpt-4o-mini"), headers=ADMIN)

        configs = client.get("/admin/ai-config", headers=ADMIN).json()
        assert len(configs) == 1
        assert configs[0]["model"] == "gpt-4o-mini"

    def test_stored_variant_overrides_agent_prompt(self, client, fake_llm, project):
        client.post(
            "/admin/ai-config",
            json=self._payload(variants={"system_prompt_pillars": "Score like a VC."}),
            headers=ADMIN,
        )
        fake_llm.queue(pillars_reply(), "not json")

        client.post(
            "/validate",
            json={"projectId": project["id"], "idea": {"title": "Shift Planner"}},
            headers=OWNER,
        )

        pillar_call, persona_call = fake_llm.completions.calls
        assert pillar_call["model"] == "gpt-4o"
        assert pillar_call["messages"][0]["content"] == "Score like a VC."
        assert persona_call["messages"][0]["content"] != "Score like a VC."

    def test_resolved_view_merges_defaults(self, client):
        client.post("/admin/ai-config", json=self._payload(stage="launch"), headers=ADMIN)

        resolved = client.get("/admin/ai-config/launch/resolved", headers=ADMIN).json()

        assert resolved["systemPrompt"] == "Be blunt."
        assert "system_prompt_launch_strategy" in resolved["variants"]

    def test_design_stage_has_defaults(self, client):
        resolved = client.get("/admin/ai-config/design/resolved", headers=ADMIN).json()

        assert resolved["stage"] == "design"
        assert "system_prompt_design_wireframes" in resolved["variants"]
