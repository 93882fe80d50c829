"""Test fixtures for the web layer."""

import pytest
from fastapi.testclient import TestClient

from app.main import app
from execution.project_repository import MemoryProjectBackend, ProjectRepository


@pytest.fixture
def client(monkeypatch):
    """Create a TestClient backed by a fresh in-memory repository."""
    monkeypatch.setattr(app.state, "repository", ProjectRepository(MemoryProjectBackend()))
    return TestClient(app)


@pytest.fixture
def app_repository(client):
    """The repository the client's requests go to."""
    return app.state.repository


@pytest.fixture
def created_project(client):
    """Create a project through the API and return its id."""
    response = client.post("/api/projects")
    return response.json()["id"]
