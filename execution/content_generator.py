"""Generative collaborator: chat replies, hook candidates and content packages.

Every function here is stateless. It turns structured inputs into a prompt,
asks the LLM for a JSON object and parses the reply into domain types. Any
transport failure or unusable reply surfaces as ``CollaboratorFailure``; the
workflow layer decides what the user sees. Nothing here touches a project.
"""

import json
import logging
from dataclasses import dataclass, field

from pydantic import ValidationError

from execution.errors import CollaboratorFailure
from execution.llm_client import LLMClientError, LLMUnavailableError, chat_json
from execution.project_model import ChatMessage, ContentOutput, Hook, HookChannel

logger = logging.getLogger(__name__)

# Input fields the chat assistant tries to fill in.
INPUT_FIELDS = ["topic", "audience", "platform", "goal", "tone", "duration"]


@dataclass
class ChatReply:
    """Assistant reply plus any input fields it picked up from the user."""

    message: str
    extracted_inputs: dict = field(default_factory=dict)


# ---------------------------------------------------------------------------
# Prompts
# ---------------------------------------------------------------------------

CHAT_SYSTEM_PROMPT = """\
You are a short-form video producer helping a creator plan one piece of content. \
Have a brief, friendly conversation to learn what the video is about.

## What you need to learn
- topic: what the video is about (required before hooks can be written)
- audience: who it is for
- platform: where it will be posted (TikTok, Instagram Reels, YouTube Shorts, ...)
- goal: what the viewer should do or feel afterwards
- tone: e.g. playful, authoritative, raw
- duration: target length

## Rules
- Ask at most 2 questions per turn and build on what the creator already said.
- Never ask for something already listed under "Known inputs".
- Once the topic is known, tell the creator they can generate hooks whenever they are ready.

## Response Format (JSON only)
{"message": "your reply to the creator", \
"extractedInputs": {"topic": "...", "audience": "..."}}

Only include keys in extractedInputs that the creator stated in their latest message.
"""

HOOKS_SYSTEM_PROMPT = """\
You write scroll-stopping opening hooks for short-form video. \
Rank the hooks by how well you expect them to hold attention in the first 3 seconds \
(rank 1 = strongest) and mark the single best one as recommended.

{channel_guidance}

## Response Format (JSON only)
{{"hooks": [{example}]}}

Return 4 to 6 hooks with unique ids.
"""

CHANNEL_GUIDANCE = {
    None: (
        "Write complete hooks. Use a mix of types: question, statistic, story, bold, "
        "challenge, insight. 'text' is the hook itself, 'preview' says in one sentence "
        "where the video goes next."
    ),
    HookChannel.TEXT: (
        "Write TEXT hooks: the on-screen headline or thumbnail text, 3-8 words. "
        "Put it in 'content'."
    ),
    HookChannel.VERBAL: (
        "Write VERBAL hooks: the first words the creator speaks on camera. Types: "
        "effort_condensed, failure, credibility_arbitrage, shared_emotion, "
        "pattern_interrupt, direct_question. Put the line in 'content' and fill "
        "'emotionalTrigger' (curiosity, empathy, urgency, surprise, validation) and "
        "'retentionTrigger'."
    ),
    HookChannel.VISUAL: (
        "Write VISUAL hooks: the opening shot. Fill 'sceneDescription', a "
        "'genAiPrompt' for generating the shot, and a 'fiyGuide' (film-it-yourself "
        "instructions). Summarize the shot in 'content'."
    ),
}

HOOK_EXAMPLES = {
    None: '{"id": "h1", "type": "question", "text": "...", "preview": "...", '
          '"rank": 1, "isRecommended": true}',
    HookChannel.TEXT: '{"id": "t1", "type": "curiosity_gap", "content": "...", '
                      '"rank": 1, "isRecommended": true}',
    HookChannel.VERBAL: '{"id": "v1", "type": "direct_question", "content": "...", '
                        '"emotionalTrigger": "curiosity", "retentionTrigger": "...", '
                        '"rank": 1, "isRecommended": true}',
    HookChannel.VISUAL: '{"id": "s1", "type": "pattern_interrupt", "content": "...", '
                        '"sceneDescription": "...", "genAiPrompt": "...", "fiyGuide": "...", '
                        '"rank": 1, "isRecommended": true}',
}

CONTENT_SYSTEM_PROMPT = """\
You are a production team turning a chosen hook into a ready-to-shoot short-form video \
package. Open the script with the chosen hook(s).

## Response Format (JSON only)
{"script": [{"lineNumber": 1, "speaker": "HOST", "text": "...", "timing": "0:00-0:03", \
"notes": "..."}],
 "storyboard": [{"frameNumber": 1, "shotType": "close-up", "description": "...", \
"duration": "3s", "visualNotes": "..."}],
 "techSpecs": {"aspectRatio": "9:16", "resolution": "1080x1920", "frameRate": "30fps", \
"duration": "45s", "audioFormat": "AAC 48kHz", "exportFormat": "MP4 (H.264)", \
"platforms": ["TikTok"]},
 "bRoll": [{"id": "b1", "description": "...", "source": "stock", "timestamp": "0:05", \
"keywords": ["..."]}],
 "captions": [{"id": "c1", "timestamp": "0:00", "text": "...", "style": "bold"}]}

Number script lines and storyboard frames from 1 without gaps.
"""


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _format_inputs(inputs: dict) -> str:
    known = {k: v for k, v in inputs.items() if v not in (None, "")}
    if not known:
        return "Known inputs: none yet"
    return "Known inputs:\n" + "\n".join(f"- {k}: {v}" for k, v in known.items())


def _ask(system_prompt: str, messages: list[dict], what: str) -> dict:
    """Call the LLM for a JSON object, translating transport errors."""
    try:
        return chat_json(system_prompt, messages)
    except (LLMUnavailableError, LLMClientError) as e:
        logger.warning("LLM %s call failed: %s", what, e)
        raise CollaboratorFailure(f"Could not generate {what}: {e}") from e


# ---------------------------------------------------------------------------
# Collaborator operations
# ---------------------------------------------------------------------------


def reply_to_chat(
    message: str,
    history: list[ChatMessage],
    inputs: dict,
) -> ChatReply:
    """Produce the assistant's next chat turn.

    Args:
        message: The user's latest message.
        history: Prior turns, oldest first (not including message).
        inputs: Inputs known so far.

    Returns:
        The reply and the input fields extracted from the latest message.

    Raises:
        CollaboratorFailure: If the LLM fails or the reply has no message.
    """
    messages = [{"role": m.role.value, "content": m.content} for m in history]
    messages.append({"role": "user", "content": f"{_format_inputs(inputs)}\n\n{message}"})

    data = _ask(CHAT_SYSTEM_PROMPT, messages, "chat reply")
    reply = data.get("message")
    if not isinstance(reply, str) or not reply.strip():
        raise CollaboratorFailure("Chat reply is missing a message")

    raw_inputs = data.get("extractedInputs") or data.get("extracted_inputs") or {}
    extracted = {}
    if isinstance(raw_inputs, dict):
        extracted = {
            k: v for k, v in raw_inputs.items()
            if k in INPUT_FIELDS and v not in (None, "")
        }
    return ChatReply(message=reply.strip(), extracted_inputs=extracted)


def generate_hooks(inputs: dict, channel: HookChannel | None = None) -> list[Hook]:
    """Ask for ranked hook candidates for one channel (or the single flow).

    Malformed entries are dropped. Ranks are passed through as returned;
    fallbacks are filled in when the hooks are stored.

    Args:
        inputs: The project's inputs (must include a topic).
        channel: The channel to write for, or None for the single flow.

    Returns:
        The parsed hooks, possibly empty.

    Raises:
        CollaboratorFailure: If the LLM call fails.
    """
    prompt = HOOKS_SYSTEM_PROMPT.format(
        channel_guidance=CHANNEL_GUIDANCE[channel],
        example=HOOK_EXAMPLES[channel],
    )
    data = _ask(prompt, [{"role": "user", "content": _format_inputs(inputs)}], "hooks")

    raw_hooks = data.get("hooks", [])
    if not isinstance(raw_hooks, list):
        logger.warning("Hooks reply has no hook list, got %s", type(raw_hooks).__name__)
        return []

    prefix = channel.value if channel else "hook"
    hooks = []
    for i, raw in enumerate(raw_hooks, start=1):
        if not isinstance(raw, dict):
            continue
        raw = {"id": f"{prefix}-{i}", **raw}
        try:
            hooks.append(Hook.model_validate(raw))
        except ValidationError as e:
            logger.warning("Dropping malformed hook %d: %s", i, e.errors()[0]["msg"])

    # Repeated ids: renumber positionally.
    if len({h.id for h in hooks}) != len(hooks):
        hooks = [h.model_copy(update={"id": f"{prefix}-{i}"}) for i, h in enumerate(hooks, start=1)]
    return hooks


def generate_content(inputs: dict, hooks: list[Hook]) -> ContentOutput:
    """Ask for the full content package built around the chosen hook(s).

    Raises:
        CollaboratorFailure: If the LLM call fails or the package is malformed.
    """
    chosen = [
        {"type": h.type, "hook": h.display_text, **({"scene": h.scene_description} if h.scene_description else {})}
        for h in hooks
    ]
    prompt = f"{_format_inputs(inputs)}\n\nChosen hooks:\n{json.dumps(chosen, ensure_ascii=False, indent=2)}"

    data = _ask(CONTENT_SYSTEM_PROMPT, [{"role": "user", "content": prompt}], "content")
    try:
        return ContentOutput.model_validate(data.get("output", data))
    except ValidationError as e:
        logger.warning("Content reply failed validation: %s", e)
        raise CollaboratorFailure(f"Generated content is malformed: {e.errors()[0]['msg']}") from e
