"""Shared test fixtures for the Hook Studio test suite."""

import pytest

from execution import state_machine
from execution.project_repository import (
    JsonFileProjectBackend,
    MemoryProjectBackend,
    ProjectRepository,
)


@pytest.fixture(autouse=True)
def set_test_environment(monkeypatch):
    """Ensure all tests run with ENVIRONMENT=test and no real LLM key."""
    monkeypatch.setenv("ENVIRONMENT", "test")
    monkeypatch.setattr("execution.llm_client.OPENAI_API_KEY", "")


@pytest.fixture
def tmp_output_dir(monkeypatch, tmp_path):
    """Redirect OUTPUT_DIR to a temporary directory for test isolation."""
    import config.settings as settings

    monkeypatch.setattr(settings, "OUTPUT_DIR", tmp_path)
    return tmp_path


@pytest.fixture
def repository():
    """An empty in-memory repository."""
    return ProjectRepository(MemoryProjectBackend())


@pytest.fixture
def file_repository(tmp_output_dir):
    """A repository writing JSON documents under a temp directory."""
    return ProjectRepository(JsonFileProjectBackend(tmp_output_dir))


@pytest.fixture
def project():
    """A fresh project in 'inputting'."""
    return state_machine.create_project("test-project")


@pytest.fixture
def sample_hooks():
    """Single-flow hooks as the collaborator returns them (no ranks)."""
    return [
        {
            "id": "h1",
            "type": "question",
            "text": "Why do 90% of home cooks ruin their rice?",
            "preview": "Walks through the three mistakes everyone makes.",
        },
        {
            "id": "h2",
            "type": "statistic",
            "text": "Rice is eaten by 3.5 billion people daily.",
            "preview": "Scale first, then the technique.",
        },
        {
            "id": "h3",
            "type": "bold",
            "text": "Stop rinsing your rice.",
            "preview": "A contrarian take that gets corrected.",
        },
    ]


@pytest.fixture
def sample_channel_hooks():
    """Hook sets for the three-channel flow, keyed by channel."""
    return {
        "text": [
            {"id": "t1", "type": "curiosity_gap", "content": "The rice mistake"},
            {"id": "t2", "type": "listicle", "content": "3 rice rules"},
        ],
        "verbal": [
            {
                "id": "v1",
                "type": "direct_question",
                "content": "Is your rice always mushy?",
                "emotionalTrigger": "empathy",
            },
            {"id": "v2", "type": "failure", "content": "I ruined rice for 10 years."},
        ],
        "visual": [
            {
                "id": "s1",
                "type": "pattern_interrupt",
                "content": "Pot flipped upside down",
                "sceneDescription": "A full pot turned over with perfect rice holding shape.",
                "genAiPrompt": "overhead shot, steaming rice dome, dark kitchen",
                "fiyGuide": "Shoot overhead with a phone on a shelf.",
            },
        ],
    }


@pytest.fixture
def sample_output():
    """A content package in its camelCase wire form, deliberately out of order."""
    return {
        "script": [
            {"lineNumber": 2, "speaker": "HOST", "text": "Here's the fix.", "timing": "0:03-0:06"},
            {"lineNumber": 1, "speaker": "HOST", "text": "Why is your rice mushy?", "timing": "0:00-0:03"},
        ],
        "storyboard": [
            {"frameNumber": 2, "shotType": "medium", "description": "Host at the stove"},
            {"frameNumber": 1, "shotType": "close-up", "description": "Mushy rice in a pot", "duration": "3s"},
        ],
        "techSpecs": {
            "aspectRatio": "9:16",
            "resolution": "1080x1920",
            "frameRate": "30fps",
            "duration": "30s",
            "platforms": ["TikTok", "Instagram Reels"],
        },
        "bRoll": [
            {"id": "b1", "description": "Rice pouring into a bowl", "source": "stock", "keywords": ["rice"]},
        ],
        "captions": [
            {"id": "c1", "timestamp": "0:00", "text": "Why is your rice mushy?", "style": "bold"},
        ],
    }


@pytest.fixture
def selecting_project(project, sample_hooks):
    """A single-flow project waiting in 'hook_selection'."""
    project = state_machine.merge_inputs(project, {"topic": "Perfect rice"})
    return state_machine.receive_hooks(project, sample_hooks)


@pytest.fixture
def overview_project(project, sample_channel_hooks):
    """A channel-flow project with all three hooks selected."""
    project = state_machine.merge_inputs(project, {"topic": "Perfect rice"})
    for channel, hooks in sample_channel_hooks.items():
        project = state_machine.receive_hooks(project, hooks, channel)
    project = state_machine.select_hook(project, "t1")
    project = state_machine.select_hook(project, "v1")
    return state_machine.select_hook(project, "s1")
