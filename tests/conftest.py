"""Shared fixtures for agentdesk unit tests."""

from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest
from pydantic import BaseModel, Field

from agentdesk.core.domain.models import (
    Candidate,
    ConversationMessage,
    ModelResponse,
    Role,
    TextPart,
    ToolCallRequest,
    ToolDetail,
    ToolRequestPart,
    TurnRequest,
)


class EchoInput(BaseModel):
    text: str = Field(..., min_length=1)


class EchoTool:
    """Returns its input text."""

    def __init__(self):
        self.calls: list[dict[str, Any]] = []

    @property
    def id(self) -> str:
        return "echo"

    @property
    def name(self) -> str:
        return "echo"

    @property
    def description(self) -> str:
        return "Echoes the given text"

    @property
    def input_model(self) -> type[BaseModel]:
        return EchoInput

    async def execute(self, text: str, **kwargs: Any) -> dict[str, Any]:
        self.calls.append({"text": text})
        return {"echo": text}


class ExplodingTool:
    """Always raises."""

    @property
    def id(self) -> str:
        return "exploding"

    @property
    def name(self) -> str:
        return "exploding"

    @property
    def description(self) -> str:
        return "Fails on every call"

    @property
    def input_model(self) -> None:
        return None

    async def execute(self, **kwargs: Any) -> Any:
        raise RuntimeError("boom")


def _response(
    text: str = "",
    tool_calls: list[tuple] | None = None,
    finish_reason: str | None = None,
) -> ModelResponse:
    parts: list[Any] = []
    if text:
        parts.append(TextPart(text))
    for name, tool_input, *ref in tool_calls or []:
        parts.append(ToolRequestPart(ToolCallRequest(tool_name=name, input=tool_input, ref=ref[0] if ref else "")))
    if finish_reason is None:
        finish_reason = "tool_calls" if tool_calls else "stop"
    return ModelResponse(
        candidates=[
            Candidate(
                message=ConversationMessage(role=Role.MODEL, content=tuple(parts)),
                finish_reason=finish_reason,
            )
        ],
        model="test-model",
    )


@pytest.fixture
def make_response():
    """Factory building a single-candidate ModelResponse.

    ``tool_calls`` holds ``(name, input)`` or ``(name, input, ref)`` tuples.
    """
    return _response


@pytest.fixture
def mock_model_provider():
    """Mock ModelProviderProtocol that supports tools."""
    provider = AsyncMock()
    provider.supports_tools = MagicMock(return_value=True)
    return provider


@pytest.fixture
def echo_tool():
    return EchoTool()


@pytest.fixture
def exploding_tool():
    return ExplodingTool()


@pytest.fixture
def make_request():
    """Factory building a TurnRequest with test defaults."""

    def _make(user_message: str = "Olá", **overrides: Any) -> TurnRequest:
        values: dict[str, Any] = {
            "agent_id": "agent-1",
            "user_message": user_message,
            "model": "test-model",
        }
        values.update(overrides)
        return TurnRequest(**values)

    return _make


@pytest.fixture
def echo_detail():
    return ToolDetail(id="echo", name="echo")
