"""Observable holder of the single active project (client side).

The store is handed to rendering code explicitly; there is no module-level
instance. Every mutating call runs one state-machine transition, commits the
result and then notifies subscribers synchronously, in subscription order,
before returning. A rejected transition commits nothing and notifies nobody.
"""

import logging
from collections.abc import Callable, Iterable, Mapping
from typing import Any

from execution import state_machine
from execution.errors import InvalidState, NotFound
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

logger = logging.getLogger(__name__)

Subscriber = Callable[["ProjectStore"], None]


class ProjectStore:
    """Single-writer, synchronous store for one project."""

    def __init__(self, project: Project | None = None):
        self._project = project
        self._subscribers: list[Subscriber] = []
        self.is_loading = False
        self.error: str | None = None

    # -- observation -------------------------------------------------------

    @property
    def project(self) -> Project | None:
        return self._project

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register a callback invoked with the store after every commit.

        Returns:
            A function that removes the subscription.
        """
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def _notify(self) -> None:
        for callback in list(self._subscribers):
            callback(self)

    def _commit(self, project: Project) -> Project:
        self._project = project
        self._notify()
        return project

    def _apply(self, transition: Callable[..., Project], *args: Any) -> Project:
        if self._project is None:
            raise InvalidState("No active project; call create() first")
        return self._commit(transition(self._project, *args))

    # -- lifecycle ---------------------------------------------------------

    def create(self) -> Project:
        """Start a fresh project with a locally generated id."""
        self.is_loading = False
        self.error = None
        return self._commit(state_machine.create_project())

    def reset(self) -> Project:
        """Discard the active project and start over."""
        return self.create()

    def get(self, project_id: str) -> Project:
        if self._project is None or self._project.id != project_id:
            raise NotFound(f"Project '{project_id}' not found")
        return self._project

    def reconcile(self, server_project: Project) -> Project:
        """Adopt the server's copy of the project, including its id."""
        logger.debug(
            "Reconciling local project %s with server project %s",
            self._project.id if self._project else None, server_project.id,
        )
        return self._commit(server_project)

    # -- view state --------------------------------------------------------

    def set_loading(self, loading: bool) -> None:
        self.is_loading = loading
        self._notify()

    def set_error(self, error: str | None) -> None:
        self.error = error
        self._notify()

    # -- transitions -------------------------------------------------------

    def append_message(self, message: ChatMessage | Mapping) -> Project:
        return self._apply(state_machine.append_message, message)

    def merge_inputs(self, partial: Mapping[str, Any]) -> Project:
        return self._apply(state_machine.merge_inputs, partial)

    def receive_hooks(
        self, hooks: Iterable[Hook | Mapping], channel: HookChannel | str | None = None
    ) -> Project:
        return self._apply(state_machine.receive_hooks, hooks, channel)

    def select_hook(
        self, hook: Hook | Mapping | str, channel: HookChannel | str | None = None
    ) -> Project:
        return self._apply(state_machine.select_hook, hook, channel)

    def confirm_hooks(self) -> Project:
        return self._apply(state_machine.confirm_hooks)

    def receive_output(self, output: ContentOutput | Mapping) -> Project:
        return self._apply(state_machine.receive_output, output)

    def update_agents(self, agents: Iterable[AgentStatus | Mapping]) -> Project:
        return self._apply(state_machine.update_agents, agents)

    def update_agent_status(
        self, name: str, status: AgentState | str, task: str | None = None
    ) -> Project:
        return self._apply(state_machine.update_agent_status, name, status, task)

    def force_status(self, status: ProjectStatus | str) -> Project:
        return self._apply(state_machine.force_status, status)
