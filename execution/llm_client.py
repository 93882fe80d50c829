"""Thin wrapper around the OpenAI SDK for the generative collaborator.

Only handles transport: building the message list, calling the chat
completions API, wrapping SDK errors and decoding JSON replies. Prompts and
response shapes live in ``execution.content_generator``.
"""

import json
from dataclasses import dataclass

from config.settings import (
    LLM_ENABLED,
    LLM_MAX_TOKENS,
    LLM_MODEL,
    LLM_TEMPERATURE,
    OPENAI_API_KEY,
)


class LLMUnavailableError(Exception):
    """Raised when the LLM service is disabled or not configured."""


class LLMClientError(Exception):
    """Raised when the LLM API call fails or returns an unusable reply."""


@dataclass
class LLMResponse:
    """One completion: the reply text plus the bookkeeping the API returns."""

    content: str
    model: str
    usage: dict
    stop_reason: str

    @classmethod
    def from_completion(cls, completion) -> "LLMResponse":
        first = completion.choices[0]
        return cls(
            content=first.message.content or "",
            model=completion.model,
            usage={
                "prompt_tokens": completion.usage.prompt_tokens,
                "completion_tokens": completion.usage.completion_tokens,
            },
            stop_reason=first.finish_reason,
        )


def is_available() -> bool:
    """Check if LLM calls are enabled and an API key is configured."""
    return bool(LLM_ENABLED and OPENAI_API_KEY)


def build_request(
    system_prompt: str,
    messages: list[dict],
    model: str | None = None,
    max_tokens: int | None = None,
    temperature: float | None = None,
    response_format: dict | None = None,
) -> dict:
    """Assemble chat-completions arguments; unset options come from settings.

    The system prompt goes first, followed by the conversation turns as given.
    ``response_format`` is only sent when set.
    """
    request = {
        "model": model or LLM_MODEL,
        "max_tokens": max_tokens if max_tokens is not None else LLM_MAX_TOKENS,
        "temperature": temperature if temperature is not None else LLM_TEMPERATURE,
        "messages": [{"role": "system", "content": system_prompt}, *messages],
    }
    if response_format is not None:
        request["response_format"] = response_format
    return request


def chat(system_prompt: str, messages: list[dict], **options) -> LLMResponse:
    """Run one chat completion for the collaborator.

    ``options`` are the overrides accepted by ``build_request``: model,
    max_tokens, temperature and response_format.

    Raises:
        LLMUnavailableError: When calls are switched off, the key is missing
            or the SDK is not installed.
        LLMClientError: When the request itself fails.
    """
    if not is_available():
        raise LLMUnavailableError("LLM is disabled or OPENAI_API_KEY is not configured")
    try:
        import openai
    except ImportError as e:
        raise LLMUnavailableError("The openai SDK is required for LLM calls") from e

    request = build_request(system_prompt, messages, **options)
    try:
        completion = openai.OpenAI(api_key=OPENAI_API_KEY).chat.completions.create(**request)
    except openai.APIError as e:
        raise LLMClientError(f"OpenAI rejected the request: {e}") from e
    except Exception as e:
        raise LLMClientError(f"LLM call failed: {e}") from e
    return LLMResponse.from_completion(completion)


def chat_json(system_prompt: str, messages: list[dict], **kwargs) -> dict:
    """Like ``chat`` but requests and decodes a JSON object reply.

    Raises:
        LLMUnavailableError: If LLM calls are disabled or no API key is set.
        LLMClientError: If the call fails or the reply is not a JSON object.
    """
    response = chat(
        system_prompt, messages, response_format={"type": "json_object"}, **kwargs
    )
    try:
        data = json.loads(response.content)
    except (json.JSONDecodeError, TypeError) as e:
        raise LLMClientError(f"LLM reply is not valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise LLMClientError(f"LLM reply is a JSON {type(data).__name__}, expected an object")
    return data
