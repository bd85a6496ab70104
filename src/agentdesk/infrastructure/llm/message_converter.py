"""
Message Converter - OpenAI chat/function-calling format conversion.

This module translates the domain conversation types into the message and
tool format expected by litellm (OpenAI-compatible), and translates litellm
responses back into ``ModelResponse`` objects.
"""

import json
from typing import Any

from agentdesk.core.domain.models import (
    Candidate,
    ConversationMessage,
    MediaPart,
    ModelResponse,
    Role,
    TextPart,
    ToolCallRequest,
    ToolCallResult,
    ToolFailure,
    ToolRequestPart,
    ToolResponsePart,
    ToolSpec,
    ToolSuccess,
)

_ROLE_TO_OPENAI = {
    Role.SYSTEM: "system",
    Role.USER: "user",
    Role.MODEL: "assistant",
    Role.TOOL: "tool",
}


def tool_specs_to_openai_format(tools: tuple[ToolSpec, ...] | list[ToolSpec]) -> list[dict[str, Any]]:
    """
    Convert tool specs to OpenAI function calling format.

    Returns:
        List of tool definitions:
        [
            {
                "type": "function",
                "function": {
                    "name": "tool_name",
                    "description": "Tool description",
                    "parameters": { JSON Schema }
                }
            },
            ...
        ]
    """
    return [
        {
            "type": "function",
            "function": {
                "name": spec.name,
                "description": spec.description,
                "parameters": spec.parameters,
            },
        }
        for spec in tools
    ]


def tool_result_to_message(result: ToolCallResult, max_output_chars: int = 20000) -> dict[str, Any]:
    """
    Convert a tool call result to an OpenAI tool message.

    Large outputs are truncated to ``max_output_chars`` to prevent token
    overflow.

    Returns:
        {
            "role": "tool",
            "tool_call_id": "<correlation ref>",
            "name": "tool_name",
            "content": "JSON string of result"
        }
    """
    if isinstance(result, ToolSuccess):
        payload: dict[str, Any] = {"success": True, "output": result.output}
    elif isinstance(result, ToolFailure):
        payload = {"success": False, "error": result.error.to_dict()}
    else:
        payload = {"success": result.succeeded}

    content = json.dumps(payload, ensure_ascii=False, default=str)
    if len(content) > max_output_chars:
        overflow = len(content) - max_output_chars
        content = content[:max_output_chars] + f"\n\n[... TRUNCATED - {overflow} more chars ...]"

    return {
        "role": "tool",
        "tool_call_id": result.ref,
        "name": result.tool_name,
        "content": content,
    }


def assistant_tool_calls_to_message(
    text: str | None,
    requests: list[ToolCallRequest],
) -> dict[str, Any]:
    """Create an assistant message carrying tool calls for message history."""
    return {
        "role": "assistant",
        "content": text or None,
        "tool_calls": [
            {
                "id": request.ref,
                "type": "function",
                "function": {
                    "name": request.tool_name,
                    "arguments": json.dumps(request.input, ensure_ascii=False, default=str),
                },
            }
            for request in requests
        ],
    }


def _user_content(message: ConversationMessage) -> str | list[dict[str, Any]]:
    media = [part for part in message.content if isinstance(part, MediaPart)]
    if not media:
        return message.text
    content: list[dict[str, Any]] = []
    if message.text:
        content.append({"type": "text", "text": message.text})
    for part in media:
        content.append({"type": "image_url", "image_url": {"url": part.url}})
    return content


def messages_to_openai_format(messages: tuple[ConversationMessage, ...] | list[ConversationMessage]) -> list[dict[str, Any]]:
    """
    Flatten conversation messages into OpenAI chat messages.

    A tool message carrying several results expands into one ``tool`` message
    per result, in order.
    """
    converted: list[dict[str, Any]] = []
    for message in messages:
        if message.role is Role.TOOL:
            converted.extend(tool_result_to_message(result) for result in message.tool_results)
            continue
        if message.role is Role.MODEL and message.tool_requests:
            converted.append(assistant_tool_calls_to_message(message.text, message.tool_requests))
            continue
        if message.role is Role.USER:
            converted.append({"role": "user", "content": _user_content(message)})
            continue
        converted.append({"role": _ROLE_TO_OPENAI[message.role], "content": message.text})
    return converted


def _parse_arguments(raw: Any) -> dict[str, Any]:
    if isinstance(raw, dict):
        return raw
    if not raw:
        return {}
    try:
        parsed = json.loads(raw)
    except (TypeError, json.JSONDecodeError):
        return {"_raw_arguments": raw}
    return parsed if isinstance(parsed, dict) else {"value": parsed}


def _get(obj: Any, name: str, default: Any = None) -> Any:
    if isinstance(obj, dict):
        return obj.get(name, default)
    return getattr(obj, name, default)


def _extract_usage(response: Any) -> dict[str, Any]:
    usage = _get(response, "usage") or {}
    if isinstance(usage, dict):
        return usage
    return {
        "total_tokens": getattr(usage, "total_tokens", 0),
        "prompt_tokens": getattr(usage, "prompt_tokens", 0),
        "completion_tokens": getattr(usage, "completion_tokens", 0),
    }


def response_to_model_response(response: Any, model: str) -> ModelResponse:
    """
    Convert a litellm completion response into a ``ModelResponse``.

    Tool calls without an id get no ref here; the turn loop assigns one.
    """
    candidates: list[Candidate] = []
    for choice in _get(response, "choices") or []:
        message = _get(choice, "message")
        parts: list[Any] = []
        text = _get(message, "content") if message is not None else None
        if text:
            parts.append(TextPart(text))
        for tool_call in (_get(message, "tool_calls") or []) if message is not None else []:
            function = _get(tool_call, "function")
            parts.append(
                ToolRequestPart(
                    ToolCallRequest(
                        tool_name=_get(function, "name", ""),
                        input=_parse_arguments(_get(function, "arguments")),
                        ref=_get(tool_call, "id") or "",
                    )
                )
            )
        candidates.append(
            Candidate(
                message=ConversationMessage(role=Role.MODEL, content=tuple(parts)),
                finish_reason=_get(choice, "finish_reason"),
            )
        )

    return ModelResponse(candidates=candidates, usage=_extract_usage(response), model=model)
