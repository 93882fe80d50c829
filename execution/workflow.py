"""Workflow API: user and system events applied to the project repository.

Each operation validates its request, calls the generative collaborator
outside any project lock, and then commits the result through the
repository in one atomic update. Collaborator failures during chat and hook
generation are absorbed here (apology reply / empty hook list) and never
leave a partial commit behind; a failed content generation is reported to
the caller and leaves the project in 'generating'.
"""

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from pydantic import ValidationError

from config.settings import DEFAULT_AGENTS
from execution import content_generator, state_machine
from execution.errors import CollaboratorFailure, InvalidInput, InvalidState
from execution.project_model import (
    AgentState,
    AgentStatus,
    ChatMessage,
    ContentOutput,
    Hook,
    HookChannel,
    MessageRole,
    Project,
    ProjectStatus,
)
from execution.project_repository import ProjectRepository

logger = logging.getLogger(__name__)

APOLOGY_MESSAGE = (
    "I apologize, but I'm having trouble processing your message. Please try again."
)


@dataclass
class ChatTurnResult:
    message: str
    project: Project
    extracted_inputs: dict = field(default_factory=dict)
    failed: bool = False


@dataclass
class HookGenerationResult:
    hooks: list[Hook]
    project: Project
    error: str | None = None


@dataclass
class ContentGenerationResult:
    output: ContentOutput
    project: Project


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _known_inputs(project: Project, inputs: Mapping[str, Any] | None) -> dict:
    """Project inputs overlaid with the caller's view (None values ignored)."""
    known = dict(project.inputs)
    known.update({k: v for k, v in (inputs or {}).items() if v is not None})
    return known


def _coerce_history(messages: Iterable) -> list[ChatMessage]:
    history = []
    for raw in messages:
        try:
            history.append(raw if isinstance(raw, ChatMessage) else ChatMessage.model_validate(raw))
        except ValidationError as e:
            raise InvalidInput(f"Invalid prior message: {e.errors()[0]['msg']}") from e
    return history


def _coerce_channel(channel: HookChannel | str | None) -> HookChannel | None:
    if channel is None:
        return None
    try:
        return HookChannel(channel)
    except ValueError:
        raise InvalidInput(f"Invalid hook channel: {channel}") from None


def default_agents(status: AgentState = AgentState.PENDING) -> list[AgentStatus]:
    """Return the standard generation roster, all in the given state."""
    return [AgentStatus(name=name, status=status, task=task) for name, task in DEFAULT_AGENTS]


# ---------------------------------------------------------------------------
# Projects
# ---------------------------------------------------------------------------


def create_project(repository: ProjectRepository) -> Project:
    return repository.create()


def get_project(repository: ProjectRepository, project_id: str) -> Project:
    return repository.get(project_id)


def merge_inputs(repository: ProjectRepository, project_id: str, partial: Mapping[str, Any]) -> Project:
    return repository.merge_inputs(project_id, partial)


def force_status(repository: ProjectRepository, project_id: str, status: ProjectStatus | str) -> Project:
    return repository.force_status(project_id, status)


def update_agents(repository: ProjectRepository, project_id: str, agents: Iterable) -> Project:
    return repository.update_agents(project_id, agents)


def update_agent_status(
    repository: ProjectRepository,
    project_id: str,
    name: str,
    status: AgentState | str,
    task: str | None = None,
) -> Project:
    return repository.update_agent_status(project_id, name, status, task)


# ---------------------------------------------------------------------------
# Chat
# ---------------------------------------------------------------------------


def submit_chat_turn(
    repository: ProjectRepository,
    project_id: str,
    message: str,
    prior_messages: Iterable | None = None,
    inputs: Mapping[str, Any] | None = None,
) -> ChatTurnResult:
    """Process one user chat message.

    On success the user message, the assistant reply and any extracted
    inputs are committed together. On collaborator failure an apology is
    returned and nothing is committed, so the caller can resubmit.

    Args:
        repository: The project repository.
        project_id: Target project.
        message: The user's message.
        prior_messages: Conversation so far as the client sees it; defaults
            to the stored transcript.
        inputs: Inputs as the client sees them; merged into the stored inputs.

    Returns:
        ChatTurnResult with the reply text and the resulting project.

    Raises:
        InvalidInput: If the message is empty or prior messages are malformed.
        NotFound: If the project does not exist.
    """
    if not isinstance(message, str) or not message.strip():
        raise InvalidInput("Message is required")

    project = repository.get(project_id)
    history = _coerce_history(prior_messages) if prior_messages is not None else list(project.messages)
    known = _known_inputs(project, inputs)

    try:
        reply = content_generator.reply_to_chat(message, history, known)
    except CollaboratorFailure as e:
        logger.warning("Chat turn for project %s failed: %s", project_id, e)
        return ChatTurnResult(message=APOLOGY_MESSAGE, project=project, failed=True)

    def commit(p: Project) -> Project:
        p = state_machine.append_message(p, {"role": MessageRole.USER, "content": message})
        p = state_machine.append_message(p, {"role": MessageRole.ASSISTANT, "content": reply.message})
        return state_machine.merge_inputs(p, {**(inputs or {}), **reply.extracted_inputs})

    updated = repository.update(project_id, commit)
    return ChatTurnResult(
        message=reply.message,
        project=updated,
        extracted_inputs=reply.extracted_inputs,
    )


# ---------------------------------------------------------------------------
# Hooks
# ---------------------------------------------------------------------------


def request_hooks(
    repository: ProjectRepository,
    project_id: str,
    inputs: Mapping[str, Any] | None = None,
    channel: HookChannel | str | None = None,
) -> HookGenerationResult:
    """Generate hook candidates and store them on the project.

    A collaborator failure or an empty result returns an empty list and
    leaves the project untouched.

    Args:
        repository: The project repository.
        project_id: Target project.
        inputs: Inputs as the client sees them; a topic is required.
        channel: 'text', 'verbal' or 'visual'; None for the single flow.

    Returns:
        HookGenerationResult with the stored, normalized hooks.

    Raises:
        InvalidInput: If no topic is known or the channel is unknown.
        NotFound: If the project does not exist.
        InvalidState: If the project is on the other hook flow.
    """
    channel = _coerce_channel(channel)
    project = repository.get(project_id)
    known = _known_inputs(project, inputs)
    if not known.get("topic"):
        raise InvalidInput("Topic is required to generate hooks")

    try:
        hooks = content_generator.generate_hooks(known, channel)
    except CollaboratorFailure as e:
        logger.warning("Hook generation for project %s failed: %s", project_id, e)
        return HookGenerationResult(hooks=[], project=project, error=e.message)

    if not hooks:
        logger.warning("Hook generation for project %s returned no hooks", project_id)
        return HookGenerationResult(hooks=[], project=project, error="No hooks were generated")

    def commit(p: Project) -> Project:
        if inputs:
            p = state_machine.merge_inputs(p, inputs)
        return state_machine.receive_hooks(p, hooks, channel)

    updated = repository.update(project_id, commit)
    stored = updated.hooks if channel is None else updated.channel_hooks[channel]
    return HookGenerationResult(hooks=list(stored), project=updated)


def select_hook(
    repository: ProjectRepository,
    project_id: str,
    hook_id: str,
    channel: HookChannel | str | None = None,
) -> Project:
    return repository.select_hook(project_id, hook_id, channel)


def confirm_hooks(repository: ProjectRepository, project_id: str) -> Project:
    return repository.confirm_hooks(project_id)


# ---------------------------------------------------------------------------
# Content
# ---------------------------------------------------------------------------


def request_content(
    repository: ProjectRepository,
    project_id: str,
    inputs: Mapping[str, Any] | None = None,
) -> ContentGenerationResult:
    """Generate the content package for the project's selected hook(s).

    A project waiting in 'hook_overview' is confirmed first. While the
    collaborator works, the default agent roster is shown as working. If the
    collaborator fails the error propagates and the project stays in
    'generating' until a retry or a forced status.

    Raises:
        InvalidInput: If no topic is known or the hooks are not all selected.
        InvalidState: If the project is already complete.
        NotFound: If the project does not exist.
        CollaboratorFailure: If content generation fails.
    """
    project = repository.get(project_id)
    known = _known_inputs(project, inputs)
    if not known.get("topic"):
        raise InvalidInput("Inputs with a topic are required to generate content")
    if not state_machine.selections_complete(project):
        raise InvalidInput("A selected hook is required to generate content")

    def start(p: Project) -> Project:
        if p.status == ProjectStatus.COMPLETE:
            raise InvalidState(
                "Project is already complete; re-enter 'generating' to regenerate content"
            )
        if p.status == ProjectStatus.HOOK_OVERVIEW:
            p = state_machine.confirm_hooks(p)
        return state_machine.update_agents(p, default_agents(AgentState.WORKING))

    started = repository.update(project_id, start)
    hooks = state_machine.selected_hooks_for(started)

    try:
        output = content_generator.generate_content(known, hooks)
    except CollaboratorFailure as e:
        logger.warning(
            "Content generation for project %s failed, project stays in '%s': %s",
            project_id, started.status.value, e,
        )
        raise

    def finish(p: Project) -> Project:
        if inputs:
            p = state_machine.merge_inputs(p, inputs)
        return state_machine.receive_output(p, output)

    updated = repository.update(project_id, finish)
    return ContentGenerationResult(output=updated.output, project=updated)
