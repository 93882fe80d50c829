"""Tests for execution/project_store.py."""

import pytest

from execution.errors import InvalidInput, InvalidState, NotFound
from execution.project_model import ProjectStatus
from execution.project_store import ProjectStore
from execution.state_machine import create_project


@pytest.fixture
def store():
    store = ProjectStore()
    store.create()
    return store


class TestLifecycle:
    def test_starts_empty(self):
        assert ProjectStore().project is None

    def test_create(self):
        store = ProjectStore()
        project = store.create()
        assert store.project is project
        assert project.status == ProjectStatus.INPUTTING

    def test_reset_replaces_project(self, store):
        old_id = store.project.id
        store.merge_inputs({"topic": "rice"})
        store.reset()
        assert store.project.id != old_id
        assert store.project.inputs == {}

    def test_create_clears_view_state(self):
        store = ProjectStore()
        store.set_loading(True)
        store.set_error("boom")
        store.create()
        assert store.is_loading is False
        assert store.error is None

    def test_get_matching_id(self, store):
        assert store.get(store.project.id) is store.project

    def test_get_other_id(self, store):
        with pytest.raises(NotFound):
            store.get("someone-else")

    def test_transition_without_project(self):
        with pytest.raises(InvalidState, match="create"):
            ProjectStore().merge_inputs({"topic": "rice"})

    def test_reconcile_adopts_server_id(self, store):
        server_project = create_project("server-id")
        store.reconcile(server_project)
        assert store.project.id == "server-id"
        assert store.get("server-id") is server_project


class TestSubscriptions:
    def test_notified_after_commit(self, store):
        seen = []
        store.subscribe(lambda s: seen.append(s.project.inputs.get("topic")))
        store.merge_inputs({"topic": "rice"})
        assert seen == ["rice"]

    def test_notified_in_subscription_order(self, store):
        calls = []
        store.subscribe(lambda s: calls.append("first"))
        store.subscribe(lambda s: calls.append("second"))
        store.append_message({"role": "user", "content": "hi"})
        assert calls == ["first", "second"]

    def test_unsubscribe(self, store):
        calls = []
        unsubscribe = store.subscribe(lambda s: calls.append(1))
        unsubscribe()
        unsubscribe()
        store.merge_inputs({"a": 1})
        assert calls == []

    def test_failed_transition_notifies_nobody(self, store):
        calls = []
        store.subscribe(lambda s: calls.append(1))
        before = store.project
        with pytest.raises(InvalidInput):
            store.receive_hooks([])
        assert calls == []
        assert store.project is before

    def test_view_state_changes_notify(self, store):
        calls = []
        store.subscribe(lambda s: calls.append((s.is_loading, s.error)))
        store.set_loading(True)
        store.set_error("Hook generation failed")
        assert calls == [(True, None), (True, "Hook generation failed")]


class TestTransitions:
    def test_single_flow(self, store, sample_hooks, sample_output):
        store.merge_inputs({"topic": "rice"})
        store.receive_hooks(sample_hooks)
        assert store.project.status == ProjectStatus.HOOK_SELECTION
        store.select_hook("h2")
        store.update_agents([{"name": "Script Architect", "status": "working"}])
        store.update_agent_status("Script Architect", "complete")
        assert store.project.agents[0].status.value == "complete"
        store.receive_output(sample_output)
        assert store.project.status == ProjectStatus.COMPLETE

    def test_channel_flow(self, store, sample_channel_hooks):
        for channel, hooks in sample_channel_hooks.items():
            store.receive_hooks(hooks, channel)
        store.select_hook("t1", "text")
        store.select_hook("v1")
        store.select_hook("s1")
        assert store.project.status == ProjectStatus.HOOK_OVERVIEW
        store.confirm_hooks()
        assert store.project.status == ProjectStatus.GENERATING

    def test_force_status(self, store, sample_hooks):
        store.receive_hooks(sample_hooks)
        store.force_status("inputting")
        assert store.project.hooks is None
