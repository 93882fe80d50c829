"""Server-side project repository.

Projects live in slots keyed by id. Every write goes through ``update``,
which holds that id's lock across read -> transition -> save, so a chat
update and a hook arrival for the same project cannot interleave. Different
ids use different locks and never wait on each other.

Two storage backends are available: an in-process dict (default) and one
JSON document per project on disk.
"""

import json
import logging
import os
import tempfile
import threading
from collections.abc import Callable, Iterable, Mapping
from pathlib import Path
from typing import Any

from config import settings
from execution import state_machine
from execution.errors import NotFound
from execution.project_model import (
    AgentState,
    AgentStatus,
    ChatMessage,
    ContentOutput,
    Hook,
    HookChannel,
    Project,
    ProjectStatus,
)
from execution.schema_validator import validate_project_document

logger = logging.getLogger(__name__)

Transition = Callable[[Project], Project]


# ---------------------------------------------------------------------------
# Backends
# ---------------------------------------------------------------------------


class MemoryProjectBackend:
    """Keeps project snapshots in a dict. Snapshots are immutable, so no copying."""

    def __init__(self):
        self._projects: dict[str, Project] = {}

    def load(self, project_id: str) -> Project | None:
        return self._projects.get(project_id)

    def save(self, project: Project) -> None:
        self._projects[project.id] = project


class JsonFileProjectBackend:
    """Stores each project as ``<root>/<id>/project.json``."""

    def __init__(self, root: str | Path):
        self.root = Path(root)

    def _path(self, project_id: str) -> Path:
        if not project_id or ".." in project_id or "/" in project_id or "\\" in project_id:
            raise NotFound(f"Project '{project_id}' not found")
        return self.root / project_id / "project.json"

    def load(self, project_id: str) -> Project | None:
        """Read and validate a project document.

        Raises:
            jsonschema.ValidationError: If the stored document is malformed.
            json.JSONDecodeError: If the file is not valid JSON.
        """
        path = self._path(project_id)
        if not path.exists():
            return None
        with open(path, "r", encoding="utf-8") as f:
            document = json.load(f)
        validate_project_document(document)
        return Project.from_document(document)

    def save(self, project: Project) -> None:
        """Write the project with an atomic replace (temp file, then rename)."""
        document = project.to_document()
        validate_project_document(document)

        path = self._path(project.id)
        path.parent.mkdir(parents=True, exist_ok=True)

        fd, tmp_path = tempfile.mkstemp(
            dir=str(path.parent), suffix=".tmp", prefix="project_"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(document, f, indent=2, ensure_ascii=False)
            os.replace(tmp_path, str(path))
        except Exception:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class ProjectRepository:
    """Keyed project store exposing the state-machine vocabulary."""

    def __init__(self, backend: MemoryProjectBackend | JsonFileProjectBackend | None = None):
        self._backend = backend or MemoryProjectBackend()
        self._locks: dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    def _lock_for(self, project_id: str) -> threading.Lock:
        with self._locks_guard:
            lock = self._locks.get(project_id)
            if lock is None:
                lock = self._locks[project_id] = threading.Lock()
            return lock

    def create(self) -> Project:
        project = state_machine.create_project()
        with self._lock_for(project.id):
            self._backend.save(project)
        logger.info("Created project %s", project.id)
        return project

    def get(self, project_id: str) -> Project:
        """Return the stored project.

        Raises:
            NotFound: If no project has this id.
        """
        project = self._backend.load(project_id)
        if project is None:
            raise NotFound(f"Project '{project_id}' not found")
        return project

    def update(self, project_id: str, transition: Transition) -> Project:
        """Apply a transition atomically with respect to other writes on this id.

        The transition may compose several state-machine calls; either all of
        them are committed or, if one raises, none are.

        Raises:
            NotFound: If no project has this id.
            WorkflowError: Whatever the transition raises.
        """
        # Unknown ids fail here, before a lock is allocated for them.
        self.get(project_id)
        with self._lock_for(project_id):
            current = self.get(project_id)
            updated = transition(current)
            self._backend.save(updated)
            return updated

    # -- named transitions --------------------------------------------------

    def append_message(self, project_id: str, message: ChatMessage | Mapping) -> Project:
        return self.update(project_id, lambda p: state_machine.append_message(p, message))

    def merge_inputs(self, project_id: str, partial: Mapping[str, Any]) -> Project:
        return self.update(project_id, lambda p: state_machine.merge_inputs(p, partial))

    def receive_hooks(
        self,
        project_id: str,
        hooks: Iterable[Hook | Mapping],
        channel: HookChannel | str | None = None,
    ) -> Project:
        hooks = list(hooks)
        return self.update(project_id, lambda p: state_machine.receive_hooks(p, hooks, channel))

    def select_hook(
        self,
        project_id: str,
        hook: Hook | Mapping | str,
        channel: HookChannel | str | None = None,
    ) -> Project:
        return self.update(project_id, lambda p: state_machine.select_hook(p, hook, channel))

    def confirm_hooks(self, project_id: str) -> Project:
        return self.update(project_id, state_machine.confirm_hooks)

    def receive_output(self, project_id: str, output: ContentOutput | Mapping) -> Project:
        return self.update(project_id, lambda p: state_machine.receive_output(p, output))

    def update_agents(self, project_id: str, agents: Iterable[AgentStatus | Mapping]) -> Project:
        agents = list(agents)
        return self.update(project_id, lambda p: state_machine.update_agents(p, agents))

    def update_agent_status(
        self,
        project_id: str,
        name: str,
        status: AgentState | str,
        task: str | None = None,
    ) -> Project:
        return self.update(
            project_id, lambda p: state_machine.update_agent_status(p, name, status, task)
        )

    def force_status(self, project_id: str, status: ProjectStatus | str) -> Project:
        return self.update(project_id, lambda p: state_machine.force_status(p, status))


def build_repository(backend: str | None = None, output_dir: str | Path | None = None) -> ProjectRepository:
    """Create a repository for the configured backend.

    Args:
        backend: 'memory' or 'file' (defaults to PROJECT_BACKEND).
        output_dir: Root directory for the file backend (defaults to OUTPUT_DIR).

    Raises:
        ValueError: If the backend name is unknown.
    """
    backend = (backend or settings.PROJECT_BACKEND).lower()
    if backend == "memory":
        return ProjectRepository(MemoryProjectBackend())
    if backend == "file":
        return ProjectRepository(JsonFileProjectBackend(output_dir or settings.OUTPUT_DIR))
    raise ValueError(f"Unknown project backend: {backend}. Must be 'memory' or 'file'")
