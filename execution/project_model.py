"""Domain model for a Hook Studio project.

Frozen pydantic models only. Behaviour lives in ``execution.state_machine``;
these types just describe the shape that is stored and sent over the wire.
Field names are snake_case in Python and camelCase in JSON.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class ProjectStatus(str, Enum):
    INPUTTING = "inputting"
    HOOK_SELECTION = "hook_selection"
    HOOK_TEXT = "hook_text"
    HOOK_VERBAL = "hook_verbal"
    HOOK_VISUAL = "hook_visual"
    HOOK_OVERVIEW = "hook_overview"
    GENERATING = "generating"
    COMPLETE = "complete"


class ProjectFlow(str, Enum):
    """Which hook-selection flow a project is on."""

    SINGLE = "single"
    CHANNELS = "channels"


class HookChannel(str, Enum):
    TEXT = "text"
    VERBAL = "verbal"
    VISUAL = "visual"


class MessageRole(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"


class AgentState(str, Enum):
    PENDING = "pending"
    WORKING = "working"
    COMPLETE = "complete"


# Channel order and the stage in which each channel's hook is picked.
CHANNEL_ORDER = (HookChannel.TEXT, HookChannel.VERBAL, HookChannel.VISUAL)

CHANNEL_STAGES = {
    HookChannel.TEXT: ProjectStatus.HOOK_TEXT,
    HookChannel.VERBAL: ProjectStatus.HOOK_VERBAL,
    HookChannel.VISUAL: ProjectStatus.HOOK_VISUAL,
}

STAGE_CHANNELS = {stage: channel for channel, stage in CHANNEL_STAGES.items()}


def utcnow() -> datetime:
    """Return the current UTC time (timezone-aware)."""
    return datetime.now(timezone.utc)


class DomainModel(BaseModel):
    """Base for every domain type: immutable, camelCase on the wire."""

    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


class ChatMessage(DomainModel):
    role: MessageRole
    content: str
    timestamp: datetime = Field(default_factory=utcnow)


class Hook(DomainModel):
    """A ranked hook candidate.

    The single-hook flow fills ``text``; the channel flow fills ``content``.
    ``rank`` and ``is_recommended`` may be missing as received from the
    collaborator and are filled in once, at ingestion.
    """

    id: str = Field(..., min_length=1)
    type: str = "hook"
    text: str | None = None
    content: str | None = None
    preview: str | None = None
    rank: int | None = None
    is_recommended: bool | None = None
    # Verbal channel
    emotional_trigger: str | None = None
    retention_trigger: str | None = None
    # Visual channel
    scene_description: str | None = None
    gen_ai_prompt: str | None = None
    fiy_guide: str | None = None

    @property
    def display_text(self) -> str:
        return self.text or self.content or ""


class AgentStatus(DomainModel):
    name: str = Field(..., min_length=1)
    status: AgentState = AgentState.PENDING
    task: str | None = None


class ScriptLine(DomainModel):
    line_number: int = Field(..., ge=1)
    text: str
    speaker: str | None = None
    timing: str | None = None
    notes: str | None = None


class StoryboardFrame(DomainModel):
    frame_number: int = Field(..., ge=1)
    shot_type: str
    description: str
    duration: str | None = None
    visual_notes: str | None = None


class TechSpecs(DomainModel):
    aspect_ratio: str | None = None
    resolution: str | None = None
    frame_rate: str | None = None
    duration: str | None = None
    audio_format: str | None = None
    export_format: str | None = None
    platforms: tuple[str, ...] = ()


class BRollItem(DomainModel):
    id: str
    description: str
    source: str | None = None
    timestamp: str | None = None
    keywords: tuple[str, ...] = ()


class Caption(DomainModel):
    id: str
    timestamp: str
    text: str
    style: str | None = None


class ContentOutput(DomainModel):
    """The synthesized content package for the chosen hook(s)."""

    script: tuple[ScriptLine, ...] = ()
    storyboard: tuple[StoryboardFrame, ...] = ()
    tech_specs: TechSpecs = Field(default_factory=TechSpecs)
    b_roll: tuple[BRollItem, ...] = ()
    captions: tuple[Caption, ...] = ()


class Project(DomainModel):
    """Root aggregate: one per user session."""

    id: str
    status: ProjectStatus = ProjectStatus.INPUTTING
    flow: ProjectFlow | None = None
    inputs: dict[str, Any] = Field(default_factory=dict)
    messages: tuple[ChatMessage, ...] = ()
    hooks: tuple[Hook, ...] | None = None
    selected_hook: Hook | None = None
    channel_hooks: dict[HookChannel, tuple[Hook, ...]] = Field(default_factory=dict)
    selected_hooks: dict[HookChannel, Hook] = Field(default_factory=dict)
    output: ContentOutput | None = None
    agents: tuple[AgentStatus, ...] | None = None
    created_at: datetime
    updated_at: datetime

    def to_document(self) -> dict:
        """Return the JSON-safe, camelCase representation."""
        return self.model_dump(mode="json", by_alias=True)

    @classmethod
    def from_document(cls, document: dict) -> "Project":
        return cls.model_validate(document)
