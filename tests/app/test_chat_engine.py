"""Tests for the chat transcript helpers."""

import threading

from app.chat_engine import STATUS_WELCOME, get_welcome_message, seed_transcript, transcript
from execution.project_model import ProjectStatus
from execution.state_machine import append_message


class TestWelcomeMessages:
    def test_every_status_has_a_welcome(self):
        assert set(STATUS_WELCOME) == set(ProjectStatus)

    def test_follows_status(self, selecting_project):
        assert get_welcome_message(selecting_project) == STATUS_WELCOME[ProjectStatus.HOOK_SELECTION]


class TestSeedTranscript:
    def test_seeds_empty_transcript(self, repository):
        project_id = repository.create().id
        project = seed_transcript(repository, project_id)
        assert len(project.messages) == 1
        assert project.messages[0].role.value == "assistant"

    def test_leaves_existing_transcript(self, repository):
        project_id = repository.create().id
        repository.append_message(project_id, {"role": "user", "content": "hello"})
        project = seed_transcript(repository, project_id)
        assert [m.content for m in project.messages] == ["hello"]

    def test_concurrent_loads_seed_once(self, repository):
        project_id = repository.create().id
        threads = [
            threading.Thread(target=seed_transcript, args=(repository, project_id))
            for _ in range(8)
        ]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert len(repository.get(project_id).messages) == 1


class TestTranscript:
    def test_json_form(self, project):
        project = append_message(project, {"role": "user", "content": "hi"})
        messages = transcript(project)
        assert messages[0]["role"] == "user"
        assert messages[0]["content"] == "hi"
        assert isinstance(messages[0]["timestamp"], str)
