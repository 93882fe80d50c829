"""Pydantic request bodies for the workflow API (camelCase on the wire)."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class RequestModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ChatTurnRequest(RequestModel):
    message: str = Field(..., min_length=1)
    messages: list[dict[str, Any]] | None = None
    inputs: dict[str, Any] | None = None


class MergeInputsRequest(RequestModel):
    inputs: dict[str, Any]


class ForceStatusRequest(RequestModel):
    status: str


class HookGenerationRequest(RequestModel):
    inputs: dict[str, Any] | None = None
    channel: str | None = None


class SelectHookRequest(RequestModel):
    hook_id: str = Field(..., min_length=1)
    channel: str | None = None


class ContentGenerationRequest(RequestModel):
    inputs: dict[str, Any] | None = None


class AgentsRequest(RequestModel):
    agents: list[dict[str, Any]]


class AgentStatusRequest(RequestModel):
    status: str
    task: str | None = None
