from __future__ import annotations

import json

import pytest
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from buildpath.models import ProjectStage

from conftest import OWNER, STRANGER


class TestProjects:
    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "ok"}

    def test_missing_identity_is_unauthorized(self, client):
        response = client.post("/projects", json={})
        assert response.status_code == 401
        assert response.json() == {"error": "Unauthorized"}

    def test_create_and_list(self, client, project):
        assert project["title"] == "Shift Planner"
        assert project["progress"] == 0
        assert project["userId"] == "founder-1"

        mine = client.get("/projects", headers=OWNER).json()
        theirs = client.get("/projects", headers=STRANGER).json()
        assert [item["id"] for item in mine] == [project["id"]]
        assert theirs == []

    def test_blank_title_rejected(self, client):
        response = client.post("/projects", json={"title": "   "}, headers=OWNER)
        assert response.status_code == 400
        assert response.json() == {"error": "title is required"}

    @pytest.mark.parametrize("progress", [0, 55, 100])
    def test_progress_in_range(self, client, project, progress):
        response = client.patch(f"/projects/{project['id']}", json={"progress": progress}, headers=OWNER)
        assert response.status_code == 200
        assert response.json()["progress"] == progress

    @pytest.mark.parametrize("progress", [-1, 101])
    def test_progress_out_of_range(self, client, project, progress):
        response = client.patch(f"/projects/{project['id']}", json={"progress": progress}, headers=OWNER)
        assert response.status_code == 400
        assert response.json() == {"error": "progress must be 0-100"}

    def test_empty_patch_rejected(self, client, project):
        response = client.patch(f"/projects/{project['id']}", json={}, headers=OWNER)
        assert response.status_code == 400
        assert response.json() == {"error": "no valid fields to update"}

    def test_other_users_project_is_not_found(self, client, project):
        assert client.get(f"/projects/{project['id']}", headers=STRANGER).status_code == 404
        response = client.patch(f"/projects/{project['id']}", json={"title": "Mine now"}, headers=STRANGER)
        assert response.status_code == 404
        assert client.get(f"/projects/{project['id']}", headers=OWNER).json()["title"] == "Shift Planner"

    def test_commit_failure_hides_driver_detail(self, client, monkeypatch):
        def broken_commit(self):
            raise SQLAlchemyError("UNIQUE constraint failed: projects.secret_column")

        monkeypatch.setattr(Session, "commit", broken_commit)
        response = client.post("/projects", json={"title": "Shift Planner"}, headers=OWNER)

        assert response.status_code == 500
        assert response.json() == {"error": "Failed to create project"}
        assert "secret_column" not in response.text


class TestStages:
    def test_upsert_keeps_one_row_per_stage(self, client, project):
        url = f"/projects/{project['id']}/stages"
        first = client.post(url, json={"stage": "ideate", "input": {"title": "v1"}}, headers=OWNER)
        second = client.post(
            url,
            json={"stage": "ideate", "input": {"title": "v2"}, "status": "completed"},
            headers=OWNER,
        )

        assert first.status_code == 200
        assert second.json()["id"] == first.json()["id"]
        stages = client.get(url, headers=OWNER).json()
        assert len(stages) == 1
        assert stages[0]["status"] == "completed"
        assert stages[0]["input"]["schemaVersion"] == 1
        assert stages[0]["input"]["data"]["title"] == "v2"

    def test_json_string_input_is_accepted(self, client, project):
        response = client.post(
            f"/projects/{project['id']}/stages",
            json={"stage": "design", "input": json.dumps({"notes": "Wireframes first"})},
            headers=OWNER,
        )
        assert response.status_code == 200
        assert response.json()["input"]["data"]["notes"] == "Wireframes first"

    def test_stages_are_listed_in_journey_order(self, client, project):
        url = f"/projects/{project['id']}/stages"
        for stage in ("monetise", "ideate", "build"):
            client.post(url, json={"stage": stage, "input": {}}, headers=OWNER)

        stages = client.get(url, headers=OWNER).json()
        assert [stage["stage"] for stage in stages] == ["ideate", "build", "monetise"]

    def test_invalid_payload_rejected(self, client, project):
        url = f"/projects/{project['id']}/stages"
        not_json = client.post(url, json={"stage": "design", "input": "{oops"}, headers=OWNER)
        not_object = client.post(url, json={"stage": "design", "input": [1, 2]}, headers=OWNER)
        missing_title = client.post(url, json={"stage": "validate", "input": {"ideaSummary": "x"}}, headers=OWNER)

        assert not_json.status_code == 400
        assert not_object.status_code == 400
        assert missing_title.status_code == 400
        assert missing_title.json()["error"].startswith("Invalid validate input")

    def test_null_input_rejected(self, client, project):
        response = client.post(
            f"/projects/{project['id']}/stages", json={"stage": "design", "input": None}, headers=OWNER
        )
        assert response.status_code == 400
        assert response.json() == {"error": "stage and input are required"}

    def test_corrupt_stored_payload_is_reported(self, client, project, session_factory):
        with session_factory() as session:
            session.add(
                ProjectStage(
                    project_id=project["id"],
                    user_id="founder-1",
                    stage="validate",
                    input={"schemaVersion": 1, "stage": "validate", "data": {"ideaSummary": "no title"}},
                    status="in_progress",
                )
            )
            session.commit()

        response = client.get(f"/projects/{project['id']}/stages", headers=OWNER)

        assert response.status_code == 500
        assert response.json() == {"error": "Stored validate input is corrupt"}
