"""Core workflow engine for Hook Studio projects.

Pure transition functions over the frozen ``Project`` model: each takes the
current project plus an event and returns the next project, or raises a
``WorkflowError`` and leaves the input untouched. Nothing here performs I/O;
the client store and the server repository both commit through these
functions.

Stage graph (single flow and three-channel flow share one superset)::

    inputting -> hook_selection -------------------------------------> generating -> complete
              -> hook_text -> hook_verbal -> hook_visual -> hook_overview -^

``force_status`` is the one administrative escape hatch: it re-enters any
stage directly (the UI "Edit" buttons) and clears the data downstream of it.
"""

import logging
import uuid
from collections.abc import Iterable, Mapping
from typing import Any

from pydantic import BaseModel, ValidationError

from execution.errors import InvalidInput, InvalidState, NotFound
from execution.project_model import (
    CHANNEL_ORDER,
    CHANNEL_STAGES,
    STAGE_CHANNELS,
    AgentState,
    AgentStatus,
    ChatMessage,
    ContentOutput,
    Hook,
    HookChannel,
    Project,
    ProjectFlow,
    ProjectStatus,
    utcnow,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _touch(project: Project, **changes: Any) -> Project:
    """Return a copy of the project with changes applied and updated_at bumped.

    updated_at never moves backwards, even if the wall clock does.
    """
    now = utcnow()
    if now < project.updated_at:
        now = project.updated_at
    changes["updated_at"] = now
    return project.model_copy(update=changes)


def _coerce(model: type[BaseModel], value: Any, what: str):
    """Validate a dict (or pass through a model instance) as a domain type."""
    if isinstance(value, model):
        return value
    try:
        return model.model_validate(value)
    except ValidationError as e:
        first = e.errors()[0]
        location = ".".join(str(p) for p in first["loc"]) or "root"
        raise InvalidInput(f"Invalid {what}: {location}: {first['msg']}") from e


def _coerce_channel(channel: HookChannel | str | None) -> HookChannel | None:
    if channel is None:
        return None
    try:
        return HookChannel(channel)
    except ValueError:
        valid = [c.value for c in HookChannel]
        raise InvalidInput(f"Invalid hook channel: {channel}. Must be one of {valid}") from None


def _coerce_status(status: ProjectStatus | str) -> ProjectStatus:
    try:
        return ProjectStatus(status)
    except ValueError:
        valid = [s.value for s in ProjectStatus]
        raise InvalidInput(f"Invalid status: {status}. Must be one of {valid}") from None


def _hook_id(hook: Hook | Mapping | str) -> str:
    if isinstance(hook, Hook):
        return hook.id
    if isinstance(hook, Mapping):
        hook_id = hook.get("id")
        if not hook_id:
            raise InvalidInput("Hook reference is missing an 'id'")
        return str(hook_id)
    return str(hook)


def _find_hook(hooks: Iterable[Hook], hook_id: str) -> Hook:
    for hook in hooks:
        if hook.id == hook_id:
            return hook
    raise NotFound(f"Hook '{hook_id}' is not in the current hook set")


def _first_open_stage(selected: Mapping[HookChannel, Hook]) -> ProjectStatus:
    """Return the stage of the first channel still waiting for a selection."""
    for channel in CHANNEL_ORDER:
        if channel not in selected:
            return CHANNEL_STAGES[channel]
    return ProjectStatus.HOOK_OVERVIEW


def _check_flow(project: Project, flow: ProjectFlow) -> None:
    if project.flow is not None and project.flow != flow:
        raise InvalidState(
            f"Project is on the '{project.flow.value}' hook flow, "
            f"cannot accept '{flow.value}' hooks. Reset to 'inputting' first."
        )


def selections_complete(project: Project) -> bool:
    """Check whether every hook the project's flow requires has been selected.

    Args:
        project: The project to inspect.

    Returns:
        True for a single-flow project with a selected hook, or a channel-flow
        project with a selection for all three channels.
    """
    if project.flow == ProjectFlow.SINGLE:
        return project.selected_hook is not None
    if project.flow == ProjectFlow.CHANNELS:
        return all(channel in project.selected_hooks for channel in CHANNEL_ORDER)
    return False


def selected_hooks_for(project: Project) -> list[Hook]:
    """Return the project's selected hook(s) in channel order."""
    if project.flow == ProjectFlow.SINGLE:
        return [project.selected_hook] if project.selected_hook else []
    return [project.selected_hooks[c] for c in CHANNEL_ORDER if c in project.selected_hooks]


# ---------------------------------------------------------------------------
# Creation
# ---------------------------------------------------------------------------


def create_project(project_id: str | None = None) -> Project:
    """Create a blank project in the 'inputting' stage.

    Args:
        project_id: Identifier to use; a fresh UUID is generated when omitted.

    Returns:
        The new project.
    """
    now = utcnow()
    return Project(
        id=project_id or str(uuid.uuid4()),
        status=ProjectStatus.INPUTTING,
        created_at=now,
        updated_at=now,
    )


# ---------------------------------------------------------------------------
# Conversation and inputs
# ---------------------------------------------------------------------------


def append_message(project: Project, message: ChatMessage | Mapping) -> Project:
    """Append a chat turn to the transcript.

    Allowed in any status and never changes it. This is the only transition
    that changes the number of messages.

    Args:
        project: The current project.
        message: A ChatMessage, or a dict with 'role', 'content' and an
            optional 'timestamp'.

    Returns:
        The updated project.

    Raises:
        InvalidInput: If the role is not 'user'/'assistant' or content is not text.
    """
    message = _coerce(ChatMessage, message, "chat message")
    return _touch(project, messages=project.messages + (message,))


def merge_inputs(project: Project, partial: Mapping[str, Any]) -> Project:
    """Shallow-merge user-provided facts into the project inputs.

    New keys overwrite old ones; keys whose value is None are ignored rather
    than treated as deletions.

    Args:
        project: The current project.
        partial: Input fields to merge.

    Returns:
        The updated project.

    Raises:
        InvalidInput: If partial is not a mapping.
    """
    if not isinstance(partial, Mapping):
        raise InvalidInput(f"Inputs must be an object, got {type(partial).__name__}")
    merged = dict(project.inputs)
    for key, value in partial.items():
        if value is None:
            continue
        merged[key] = value
    return _touch(project, inputs=merged)


# ---------------------------------------------------------------------------
# Hooks
# ---------------------------------------------------------------------------


def normalize_hooks(hooks: Iterable[Hook | Mapping]) -> tuple[Hook, ...]:
    """Fill in rank and recommendation fallbacks for a received hook list.

    A missing rank defaults to the 1-based position in received order; a
    missing is_recommended defaults to True for the rank-1 hook only. The
    result is sorted by rank (stable for ties).

    Args:
        hooks: Hooks in the order the collaborator returned them.

    Returns:
        Tuple of normalized hooks.

    Raises:
        InvalidInput: If the list is empty, a hook is malformed, a rank is
            not positive, or two hooks share an id.
    """
    received = list(hooks or [])
    if not received:
        raise InvalidInput("Hook list must not be empty")

    normalized = []
    seen_ids = set()
    for position, raw in enumerate(received, start=1):
        hook = _coerce(Hook, raw, "hook")
        if hook.id in seen_ids:
            raise InvalidInput(f"Duplicate hook id: {hook.id}")
        seen_ids.add(hook.id)

        rank = hook.rank if hook.rank is not None else position
        if rank < 1:
            raise InvalidInput(f"Hook '{hook.id}' has invalid rank {rank}; ranks start at 1")
        is_recommended = hook.is_recommended if hook.is_recommended is not None else rank == 1
        normalized.append(hook.model_copy(update={"rank": rank, "is_recommended": is_recommended}))

    return tuple(sorted(normalized, key=lambda h: h.rank))


def receive_hooks(
    project: Project,
    hooks: Iterable[Hook | Mapping],
    channel: HookChannel | str | None = None,
) -> Project:
    """Store a freshly generated hook set and move to its selection stage.

    Without a channel the project follows the single-hook flow: the set
    replaces ``hooks`` and the status becomes 'hook_selection'. With a
    channel, the set replaces that channel's hooks and the status becomes the
    first channel stage still waiting for a selection. Any selection drawn
    from the replaced set is cleared, as are output and agents.

    Args:
        project: The current project.
        hooks: The received hooks, in collaborator order.
        channel: 'text', 'verbal' or 'visual' for the three-channel flow.

    Returns:
        The updated project.

    Raises:
        InvalidInput: If hooks is empty or malformed, or channel is unknown.
        InvalidState: If the project is already on the other flow.
    """
    normalized = normalize_hooks(hooks)
    channel = _coerce_channel(channel)

    if channel is None:
        _check_flow(project, ProjectFlow.SINGLE)
        updated = _touch(
            project,
            flow=ProjectFlow.SINGLE,
            hooks=normalized,
            selected_hook=None,
            output=None,
            agents=None,
            status=ProjectStatus.HOOK_SELECTION,
        )
    else:
        _check_flow(project, ProjectFlow.CHANNELS)
        channel_hooks = {**project.channel_hooks, channel: normalized}
        selected = {c: h for c, h in project.selected_hooks.items() if c != channel}
        updated = _touch(
            project,
            flow=ProjectFlow.CHANNELS,
            channel_hooks=channel_hooks,
            selected_hooks=selected,
            output=None,
            agents=None,
            status=_first_open_stage(selected),
        )

    logger.info(
        "Project %s received %d %s hooks: %s -> %s",
        project.id, len(normalized), channel.value if channel else "single",
        project.status.value, updated.status.value,
    )
    return updated


def select_hook(
    project: Project,
    hook: Hook | Mapping | str,
    channel: HookChannel | str | None = None,
) -> Project:
    """Record the user's hook choice and advance to the next stage.

    Single flow: 'hook_selection' -> 'generating'. Channel flow: the current
    channel stage -> the next unselected channel stage, or 'hook_overview'
    after the last one. When channel is omitted on the channel flow it is
    taken from the current status.

    Args:
        project: The current project.
        hook: The chosen hook, or just its id.
        channel: The channel the hook belongs to (channel flow only).

    Returns:
        The updated project.

    Raises:
        InvalidState: If no hook set has been received for the channel, or
            the project is not in that channel's selection stage.
        NotFound: If the hook id is not in the current set.
        InvalidInput: If a channel is given on the single flow.
    """
    hook_id = _hook_id(hook)
    channel = _coerce_channel(channel)

    if project.flow is None:
        raise InvalidState("No hooks have been received yet")

    if project.flow == ProjectFlow.SINGLE:
        if channel is not None:
            raise InvalidInput("The single hook flow has no channels")
        if not project.hooks:
            raise InvalidState("No hooks have been received yet")
        chosen = _find_hook(project.hooks, hook_id)
        if project.status != ProjectStatus.HOOK_SELECTION:
            raise InvalidState(
                f"Cannot select a hook while project is in '{project.status.value}'"
            )
        updated = _touch(project, selected_hook=chosen, status=ProjectStatus.GENERATING)
    else:
        channel = channel or STAGE_CHANNELS.get(project.status)
        if channel is None:
            raise InvalidState(
                f"Project is in '{project.status.value}', not a hook channel stage"
            )
        candidates = project.channel_hooks.get(channel)
        if not candidates:
            raise InvalidState(f"No {channel.value} hooks have been received yet")
        chosen = _find_hook(candidates, hook_id)
        if project.status != CHANNEL_STAGES[channel]:
            raise InvalidState(
                f"Cannot select a {channel.value} hook while project is in "
                f"'{project.status.value}'"
            )
        selected = {**project.selected_hooks, channel: chosen}
        updated = _touch(project, selected_hooks=selected, status=_first_open_stage(selected))

    logger.info(
        "Project %s selected hook %s: %s -> %s",
        project.id, hook_id, project.status.value, updated.status.value,
    )
    return updated


def confirm_hooks(project: Project) -> Project:
    """Confirm the three channel selections and start generation.

    Raises:
        InvalidState: If the project is not in 'hook_overview'.
    """
    if project.status != ProjectStatus.HOOK_OVERVIEW:
        raise InvalidState(
            f"Can only confirm hooks from 'hook_overview', project is in "
            f"'{project.status.value}'"
        )
    return _touch(project, status=ProjectStatus.GENERATING)


# ---------------------------------------------------------------------------
# Output
# ---------------------------------------------------------------------------


def _reject_duplicates(values: Iterable, what: str) -> None:
    seen = set()
    for value in values:
        if value in seen:
            raise InvalidInput(f"Duplicate {what}: {value}")
        seen.add(value)


def normalize_output(output: ContentOutput | Mapping) -> ContentOutput:
    """Validate a content package and order it by its explicit index fields.

    Args:
        output: A ContentOutput, or its camelCase/snake_case dict form.

    Returns:
        The output with script sorted by line number and storyboard sorted by
        frame number.

    Raises:
        InvalidInput: If the package is malformed or an index is repeated.
    """
    output = _coerce(ContentOutput, output, "content output")
    _reject_duplicates((line.line_number for line in output.script), "script line number")
    _reject_duplicates((frame.frame_number for frame in output.storyboard), "storyboard frame number")
    _reject_duplicates((item.id for item in output.b_roll), "b-roll id")
    _reject_duplicates((caption.id for caption in output.captions), "caption id")
    return output.model_copy(update={
        "script": tuple(sorted(output.script, key=lambda line: line.line_number)),
        "storyboard": tuple(sorted(output.storyboard, key=lambda frame: frame.frame_number)),
    })


def receive_output(project: Project, output: ContentOutput | Mapping) -> Project:
    """Store the generated content package and complete the project.

    Agents are cleared once output lands.

    Args:
        project: The current project.
        output: The generated content package.

    Returns:
        The updated project in 'complete'.

    Raises:
        InvalidState: If the required hook selections are not all made.
        InvalidInput: If the output is malformed.
    """
    if not selections_complete(project):
        raise InvalidState("Cannot accept content output before all hooks are selected")
    normalized = normalize_output(output)
    updated = _touch(project, output=normalized, agents=None, status=ProjectStatus.COMPLETE)
    logger.info("Project %s received output: %s -> complete", project.id, project.status.value)
    return updated


# ---------------------------------------------------------------------------
# Agents
# ---------------------------------------------------------------------------


def update_agents(project: Project, agents: Iterable[AgentStatus | Mapping]) -> Project:
    """Replace the list of generation progress trackers.

    Raises:
        InvalidInput: If an entry is malformed or two entries share a name.
    """
    coerced = tuple(_coerce(AgentStatus, agent, "agent") for agent in agents)
    _reject_duplicates((agent.name for agent in coerced), "agent name")
    return _touch(project, agents=coerced)


def update_agent_status(
    project: Project,
    name: str,
    status: AgentState | str,
    task: str | None = None,
) -> Project:
    """Patch one progress tracker by name.

    Unknown names are rejected rather than ignored so a client with a stale
    roster finds out.

    Args:
        project: The current project.
        name: The agent's name.
        status: 'pending', 'working' or 'complete'.
        task: What the agent is doing now (replaces the previous task).

    Returns:
        The updated project.

    Raises:
        InvalidInput: If status is unknown.
        NotFound: If no agent has that name.
    """
    try:
        state = AgentState(status)
    except ValueError:
        valid = [s.value for s in AgentState]
        raise InvalidInput(f"Invalid agent status: {status}. Must be one of {valid}") from None

    agents = list(project.agents or ())
    for i, agent in enumerate(agents):
        if agent.name == name:
            agents[i] = agent.model_copy(update={"status": state, "task": task})
            return _touch(project, agents=tuple(agents))
    raise NotFound(f"Agent '{name}' not found")


# ---------------------------------------------------------------------------
# Administrative re-entry
# ---------------------------------------------------------------------------


def force_status(project: Project, status: ProjectStatus | str) -> Project:
    """Re-enter a stage directly, outside the guarded workflow graph.

    Used by "Edit" affordances. Everything the target stage and later stages
    produce is cleared: re-entering a selection stage clears that stage's
    selection and every later one, along with output and agents. Targets
    whose required data does not exist are refused.

    Args:
        project: The current project.
        status: The stage to re-enter.

    Returns:
        The updated project.

    Raises:
        InvalidInput: If status is unknown.
        InvalidState: If the project lacks the data the target stage needs.
    """
    target = _coerce_status(status)
    changes: dict[str, Any] = {"status": target}

    if target == ProjectStatus.INPUTTING:
        changes.update(
            flow=None, hooks=None, selected_hook=None, channel_hooks={},
            selected_hooks={}, output=None, agents=None,
        )

    elif target == ProjectStatus.HOOK_SELECTION:
        if project.flow != ProjectFlow.SINGLE or not project.hooks:
            raise InvalidState("Cannot re-enter hook selection without a single-flow hook set")
        changes.update(selected_hook=None, output=None, agents=None)

    elif target in STAGE_CHANNELS:
        channel = STAGE_CHANNELS[target]
        if project.flow != ProjectFlow.CHANNELS or not project.channel_hooks.get(channel):
            raise InvalidState(f"Cannot re-enter '{target.value}' without {channel.value} hooks")
        earlier = CHANNEL_ORDER[:CHANNEL_ORDER.index(channel)]
        missing = [c.value for c in earlier if c not in project.selected_hooks]
        if missing:
            raise InvalidState(
                f"Cannot re-enter '{target.value}' before selecting {', '.join(missing)} hooks"
            )
        kept = {c: project.selected_hooks[c] for c in earlier}
        changes.update(selected_hooks=kept, output=None, agents=None)

    elif target == ProjectStatus.HOOK_OVERVIEW:
        if project.flow != ProjectFlow.CHANNELS or not selections_complete(project):
            raise InvalidState("Cannot re-enter 'hook_overview' before all channels are selected")
        changes.update(output=None, agents=None)

    elif target == ProjectStatus.GENERATING:
        if not selections_complete(project):
            raise InvalidState("Cannot re-enter 'generating' before all hooks are selected")
        changes.update(output=None)

    elif target == ProjectStatus.COMPLETE:
        if project.output is None or not selections_complete(project):
            raise InvalidState("Cannot force 'complete' without generated output")

    updated = _touch(project, **changes)
    logger.info(
        "Project %s forced: %s -> %s", project.id, project.status.value, target.value
    )
    return updated


# ---------------------------------------------------------------------------
# Invariants
# ---------------------------------------------------------------------------


def check_invariants(project: Project) -> list[str]:
    """Return a list of violated lockstep rules (empty if the project is consistent).

    Args:
        project: The project to inspect.

    Returns:
        Human-readable descriptions of each violation.
    """
    problems = []
    status = project.status

    if project.updated_at < project.created_at:
        problems.append("updated_at is earlier than created_at")

    if project.hooks is None and project.selected_hook is not None:
        problems.append("selected_hook is set without hooks")
    if project.selected_hook is not None and project.hooks and project.selected_hook not in project.hooks:
        problems.append("selected_hook is not drawn from the current hooks")
    for channel, hook in project.selected_hooks.items():
        if hook not in project.channel_hooks.get(channel, ()):
            problems.append(f"{channel.value} selection is not drawn from the current {channel.value} hooks")

    if project.flow is None:
        if project.hooks or project.channel_hooks:
            problems.append("hooks are set but no flow is recorded")
        if status != ProjectStatus.INPUTTING:
            problems.append(f"status '{status.value}' requires a hook flow")
    elif project.flow == ProjectFlow.SINGLE:
        if project.channel_hooks or project.selected_hooks:
            problems.append("single-flow project carries channel hooks")
        if status in STAGE_CHANNELS or status == ProjectStatus.HOOK_OVERVIEW:
            problems.append(f"status '{status.value}' belongs to the channel flow")
    elif project.flow == ProjectFlow.CHANNELS:
        if project.hooks is not None or project.selected_hook is not None:
            problems.append("channel-flow project carries single-flow hooks")
        if status == ProjectStatus.HOOK_SELECTION:
            problems.append("status 'hook_selection' belongs to the single flow")
        if (status in STAGE_CHANNELS or status == ProjectStatus.HOOK_OVERVIEW) and status != _first_open_stage(project.selected_hooks):
            problems.append(f"status '{status.value}' does not match the channel selections")

    if status == ProjectStatus.HOOK_SELECTION and project.selected_hook is not None:
        problems.append("a hook is already selected during hook_selection")
    if status in (ProjectStatus.GENERATING, ProjectStatus.COMPLETE) and not selections_complete(project):
        problems.append(f"status '{status.value}' requires all hooks to be selected")
    if (project.output is not None) != (status == ProjectStatus.COMPLETE):
        problems.append("output presence does not match 'complete' status")

    return problems
