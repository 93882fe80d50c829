"""Tests for the content generation and agent progress routes."""

from unittest.mock import patch

import pytest

from execution.errors import CollaboratorFailure
from execution.project_model import ContentOutput


@pytest.fixture
def selected_project(created_project, app_repository, sample_hooks):
    app_repository.merge_inputs(created_project, {"topic": "rice"})
    app_repository.receive_hooks(created_project, sample_hooks)
    app_repository.select_hook(created_project, "h1")
    return created_project


class TestGenerateContent:
    @patch("execution.workflow.content_generator.generate_content")
    def test_completes(self, mock_generate, client, selected_project, sample_output):
        mock_generate.return_value = ContentOutput.model_validate(sample_output)
        response = client.post(f"/api/projects/{selected_project}/content", json={})

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "complete"
        assert [line["lineNumber"] for line in data["output"]["script"]] == [1, 2]
        assert data["output"]["techSpecs"]["platforms"] == ["TikTok", "Instagram Reels"]

    @patch("execution.workflow.content_generator.generate_content")
    def test_failure_is_502(self, mock_generate, client, selected_project):
        mock_generate.side_effect = CollaboratorFailure("Could not generate content: timeout")
        response = client.post(f"/api/projects/{selected_project}/content", json={})

        assert response.status_code == 502
        assert response.json()["error"] == "collaborator_failure"
        project = client.get(f"/api/projects/{selected_project}").json()
        assert project["status"] == "generating"
        assert len(project["agents"]) == 6

    def test_without_selection_is_400(self, client, created_project):
        response = client.post(
            f"/api/projects/{created_project}/content", json={"inputs": {"topic": "rice"}}
        )
        assert response.status_code == 400


class TestAgents:
    def test_replace_and_patch(self, client, created_project):
        response = client.put(
            f"/api/projects/{created_project}/agents",
            json={"agents": [{"name": "Hook Engineer"}, {"name": "Caption Writer"}]},
        )
        assert response.status_code == 200
        assert [a["status"] for a in response.json()["agents"]] == ["pending", "pending"]

        response = client.patch(
            f"/api/projects/{created_project}/agents/Caption Writer",
            json={"status": "working", "task": "Writing captions"},
        )
        assert response.status_code == 200
        agents = response.json()["agents"]
        assert agents[1] == {"name": "Caption Writer", "status": "working", "task": "Writing captions"}

    def test_patch_unknown_agent_is_404(self, client, created_project):
        client.put(f"/api/projects/{created_project}/agents", json={"agents": [{"name": "A"}]})
        response = client.patch(
            f"/api/projects/{created_project}/agents/Ghost", json={"status": "complete"}
        )
        assert response.status_code == 404

    def test_duplicate_names_is_400(self, client, created_project):
        response = client.put(
            f"/api/projects/{created_project}/agents",
            json={"agents": [{"name": "A"}, {"name": "A"}]},
        )
        assert response.status_code == 400
