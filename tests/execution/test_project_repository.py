"""Tests for execution/project_repository.py."""

import json
import threading

import pytest
from jsonschema import ValidationError

from execution.errors import InvalidInput, InvalidState, NotFound
from execution.project_model import ProjectStatus
from execution.project_repository import (
    JsonFileProjectBackend,
    MemoryProjectBackend,
    ProjectRepository,
    build_repository,
)


class TestCreateAndGet:
    def test_create_stores_project(self, repository):
        project = repository.create()
        assert repository.get(project.id) == project
        assert project.status == ProjectStatus.INPUTTING

    def test_get_unknown(self, repository):
        with pytest.raises(NotFound, match="missing"):
            repository.get("missing")

    def test_update_unknown(self, repository):
        with pytest.raises(NotFound):
            repository.merge_inputs("missing", {"topic": "rice"})

    def test_unknown_ids_leave_no_locks(self, repository):
        for i in range(10):
            with pytest.raises(NotFound):
                repository.select_hook(f"made-up-{i}", "h1")
        assert repository._locks == {}

    def test_projects_are_isolated(self, repository, sample_hooks):
        first = repository.create()
        second = repository.create()
        repository.merge_inputs(first.id, {"topic": "rice"})
        repository.receive_hooks(first.id, sample_hooks)
        untouched = repository.get(second.id)
        assert untouched.inputs == {}
        assert untouched.hooks is None
        assert untouched.status == ProjectStatus.INPUTTING


class TestUpdate:
    def test_failed_transition_leaves_slot_unchanged(self, repository):
        project = repository.create()
        with pytest.raises(InvalidInput):
            repository.receive_hooks(project.id, [])
        assert repository.get(project.id) == project

    def test_composed_transition_is_all_or_nothing(self, repository):
        from execution import state_machine

        project = repository.create()

        def compose(p):
            p = state_machine.merge_inputs(p, {"topic": "rice"})
            return state_machine.confirm_hooks(p)

        with pytest.raises(InvalidState):
            repository.update(project.id, compose)
        assert repository.get(project.id).inputs == {}

    def test_named_transitions(self, repository, sample_hooks, sample_output):
        project_id = repository.create().id
        repository.append_message(project_id, {"role": "user", "content": "rice video"})
        repository.merge_inputs(project_id, {"topic": "rice"})
        repository.receive_hooks(project_id, sample_hooks)
        repository.select_hook(project_id, "h1")
        repository.update_agents(project_id, [{"name": "Script Architect"}])
        repository.update_agent_status(project_id, "Script Architect", "working", "Drafting")
        project = repository.receive_output(project_id, sample_output)
        assert project.status == ProjectStatus.COMPLETE
        assert repository.get(project_id) == project
        assert len(project.messages) == 1

    def test_accepts_generator_of_hooks(self, repository, sample_hooks):
        project_id = repository.create().id
        project = repository.receive_hooks(project_id, (h for h in sample_hooks))
        assert len(project.hooks) == 3

    def test_concurrent_appends_are_serialized(self, repository):
        project_id = repository.create().id

        def worker(n):
            for i in range(20):
                repository.append_message(project_id, {"role": "user", "content": f"{n}-{i}"})

        threads = [threading.Thread(target=worker, args=(n,)) for n in range(5)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert len(repository.get(project_id).messages) == 100

    def test_different_ids_use_different_locks(self, repository):
        first = repository.create()
        second = repository.create()
        assert repository._lock_for(first.id) is not repository._lock_for(second.id)
        assert repository._lock_for(first.id) is repository._lock_for(first.id)

    def test_other_id_not_blocked_during_update(self, repository):
        first = repository.create()
        second = repository.create()
        seen = {}

        def slow(p):
            seen["other"] = repository.merge_inputs(second.id, {"tone": "dry"})
            return p

        repository.update(first.id, slow)
        assert seen["other"].inputs == {"tone": "dry"}


class TestJsonFileBackend:
    def test_round_trip(self, file_repository, tmp_output_dir, sample_channel_hooks):
        project_id = file_repository.create().id
        for channel, hooks in sample_channel_hooks.items():
            file_repository.receive_hooks(project_id, hooks, channel)
        saved = file_repository.select_hook(project_id, "t2")

        path = tmp_output_dir / project_id / "project.json"
        assert path.exists()
        document = json.loads(path.read_text(encoding="utf-8"))
        assert document["status"] == "hook_verbal"
        assert document["selectedHooks"]["text"]["id"] == "t2"
        assert file_repository.get(project_id) == saved

    def test_no_temp_files_left(self, file_repository, tmp_output_dir):
        project_id = file_repository.create().id
        file_repository.merge_inputs(project_id, {"topic": "rice"})
        assert [p.name for p in (tmp_output_dir / project_id).iterdir()] == ["project.json"]

    def test_missing_file(self, file_repository):
        with pytest.raises(NotFound):
            file_repository.get("nope")

    @pytest.mark.parametrize("bad_id", ["../etc", "a/b", ""])
    def test_path_traversal_ids(self, tmp_path, bad_id):
        backend = JsonFileProjectBackend(tmp_path)
        with pytest.raises(NotFound):
            backend.load(bad_id)

    def test_corrupt_document_rejected(self, file_repository, tmp_output_dir):
        project_id = file_repository.create().id
        path = tmp_output_dir / project_id / "project.json"
        document = json.loads(path.read_text(encoding="utf-8"))
        document["status"] = "archived"
        path.write_text(json.dumps(document), encoding="utf-8")
        with pytest.raises(ValidationError):
            file_repository.get(project_id)


class TestBuildRepository:
    def test_memory(self):
        repository = build_repository("memory")
        assert isinstance(repository._backend, MemoryProjectBackend)

    def test_file(self, tmp_path):
        repository = build_repository("file", tmp_path)
        assert isinstance(repository._backend, JsonFileProjectBackend)
        assert repository._backend.root == tmp_path

    def test_default_from_settings(self, monkeypatch):
        monkeypatch.setattr("config.settings.PROJECT_BACKEND", "memory")
        assert isinstance(build_repository()._backend, MemoryProjectBackend)

    def test_unknown(self):
        with pytest.raises(ValueError, match="Unknown project backend"):
            build_repository("redis")

    def test_repository_defaults_to_memory(self):
        assert isinstance(ProjectRepository()._backend, MemoryProjectBackend)
