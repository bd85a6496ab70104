"""
Core Domain Models

This module defines the data models used throughout the orchestrator:
conversation messages and their parts, tool call requests and results,
per-turn limits, the request sent to the model service and its response,
and the request/result pair of a whole conversation turn.

Messages, requests and results are immutable once created. The turn loop only
ever appends new messages; it never edits one that is already in the
conversation.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Union

from agentdesk.core.domain.errors import ToolErrorCode
from agentdesk.core.domain.events import ExecutionEvent


class Role(str, Enum):
    """Author of a conversation message."""

    SYSTEM = "system"
    USER = "user"
    MODEL = "model"
    TOOL = "tool"

    @classmethod
    def parse(cls, value: str) -> "Role":
        """Parse a role name, accepting ``assistant`` as an alias of ``model``."""
        normalized = value.strip().lower()
        if normalized == "assistant":
            return cls.MODEL
        return cls(normalized)


class TurnState(str, Enum):
    """Terminal state of a conversation turn."""

    DONE = "DONE"
    LIMIT_REACHED = "LIMIT_REACHED"
    BLOCKED = "BLOCKED"
    FAILED = "FAILED"


class HookPoint(str, Enum):
    """Named extension points of the turn loop."""

    BEFORE_MODEL = "beforeModel"
    AFTER_MODEL = "afterModel"
    BEFORE_TOOL = "beforeTool"
    AFTER_TOOL = "afterTool"


# ---------------------------------------------------------------------------
# Tool calls
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ToolCallRequest:
    """
    A model-initiated request to invoke a tool.

    Attributes:
        tool_name: Name of the requested tool
        input: Untyped key/value arguments produced by the model
        ref: Correlation reference pairing this request with its result
    """

    tool_name: str
    input: dict[str, Any]
    ref: str

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.tool_name, "input": self.input, "ref": self.ref}


@dataclass(frozen=True)
class ErrorDetails:
    """Structured error information of a failed tool call."""

    code: ToolErrorCode
    message: str
    details: Any = None

    def to_dict(self) -> dict[str, Any]:
        data = {"code": self.code.value, "message": self.message}
        if self.details is not None:
            data["details"] = self.details
        return data


@dataclass(frozen=True)
class ToolCallResult(ABC):
    """Outcome of one tool call request. Use ``ToolSuccess`` or ``ToolFailure``."""

    tool_name: str
    input: dict[str, Any]
    ref: str

    @property
    @abstractmethod
    def status(self) -> str:
        """Either ``"success"`` or ``"error"``."""

    @property
    def succeeded(self) -> bool:
        return self.status == "success"

    def to_dict(self) -> dict[str, Any]:
        return {
            "toolName": self.tool_name,
            "input": self.input,
            "status": self.status,
            "correlationRef": self.ref,
        }


@dataclass(frozen=True)
class ToolSuccess(ToolCallResult):
    """Tool executed and returned ``output``."""

    output: Any = None

    @property
    def status(self) -> str:
        return "success"

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["output"] = self.output
        return data


@dataclass(frozen=True)
class ToolFailure(ToolCallResult):
    """Tool call was blocked, rejected or crashed."""

    error: ErrorDetails = None  # type: ignore[assignment]

    @property
    def status(self) -> str:
        return "error"

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["errorDetails"] = self.error.to_dict()
        return data


def tool_failure(
    request: ToolCallRequest,
    code: ToolErrorCode,
    message: str,
    details: Any = None,
) -> ToolFailure:
    """Build a failed result for ``request``."""
    return ToolFailure(
        tool_name=request.tool_name,
        input=request.input,
        ref=request.ref,
        error=ErrorDetails(code=code, message=message, details=details),
    )


# ---------------------------------------------------------------------------
# Messages
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TextPart:
    text: str

    def to_dict(self) -> dict[str, Any]:
        return {"text": self.text}


@dataclass(frozen=True)
class MediaPart:
    """Reference to binary/media content (URL or data URI)."""

    url: str
    content_type: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"media": {"url": self.url, "contentType": self.content_type}}


@dataclass(frozen=True)
class ToolRequestPart:
    request: ToolCallRequest

    def to_dict(self) -> dict[str, Any]:
        return {"toolRequest": self.request.to_dict()}


@dataclass(frozen=True)
class ToolResponsePart:
    result: ToolCallResult

    def to_dict(self) -> dict[str, Any]:
        return {"toolResponse": self.result.to_dict()}


Part = Union[TextPart, MediaPart, ToolRequestPart, ToolResponsePart]


@dataclass(frozen=True)
class ConversationMessage:
    """
    One message of the conversation fed to the model.

    Attributes:
        role: Author of the message
        content: Ordered parts (text, media, tool requests, tool results)
        metadata: Optional free-form annotations
    """

    role: Role
    content: tuple[Part, ...]
    metadata: dict[str, Any] | None = None

    @classmethod
    def from_text(cls, role: Role, text: str) -> "ConversationMessage":
        return cls(role=role, content=(TextPart(text),))

    @property
    def text(self) -> str:
        """Concatenated text of all text parts."""
        return "".join(part.text for part in self.content if isinstance(part, TextPart))

    @property
    def tool_requests(self) -> list[ToolCallRequest]:
        return [part.request for part in self.content if isinstance(part, ToolRequestPart)]

    @property
    def tool_results(self) -> list[ToolCallResult]:
        return [part.result for part in self.content if isinstance(part, ToolResponsePart)]

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "role": self.role.value,
            "content": [part.to_dict() for part in self.content],
        }
        if self.metadata:
            data["metadata"] = self.metadata
        return data


# ---------------------------------------------------------------------------
# Model service request/response
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SamplingParams:
    """Sampling parameters forwarded to the model service."""

    temperature: float | None = None
    top_p: float | None = None
    top_k: int | None = None
    max_output_tokens: int | None = None
    stop_sequences: tuple[str, ...] | None = None

    def to_dict(self) -> dict[str, Any]:
        """Return only the parameters that were set."""
        values = {
            "temperature": self.temperature,
            "top_p": self.top_p,
            "top_k": self.top_k,
            "max_output_tokens": self.max_output_tokens,
            "stop_sequences": list(self.stop_sequences) if self.stop_sequences else None,
        }
        return {key: value for key, value in values.items() if value is not None}


@dataclass(frozen=True)
class ToolSpec:
    """Tool description as advertised to the model."""

    name: str
    description: str
    parameters: dict[str, Any]

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "description": self.description, "parameters": self.parameters}


@dataclass(frozen=True)
class ModelRequest:
    """Exact request the model service receives for one call."""

    model: str
    messages: tuple[ConversationMessage, ...]
    tools: tuple[ToolSpec, ...] = ()
    sampling: SamplingParams = field(default_factory=SamplingParams)

    def to_payload(self) -> dict[str, Any]:
        """Plain-data form used for cache keys and logging."""
        return {
            "model": self.model,
            "messages": [message.to_dict() for message in self.messages],
            "tools": [tool.to_dict() for tool in self.tools],
            "sampling": self.sampling.to_dict(),
        }


@dataclass
class Candidate:
    """One candidate answer produced by the model."""

    message: ConversationMessage
    finish_reason: str | None = None


@dataclass
class ModelResponse:
    """Raw result of a model call."""

    candidates: list[Candidate] = field(default_factory=list)
    usage: dict[str, Any] = field(default_factory=dict)
    model: str | None = None

    @property
    def top_candidate(self) -> Candidate | None:
        return self.candidates[0] if self.candidates else None


# ---------------------------------------------------------------------------
# Turn request/result
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ToolDetail:
    """A tool as configured on an agent for a run."""

    id: str
    name: str
    description: str = ""
    enabled: bool = True
    config: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class CallbackHookConfig:
    """Declarative callback configuration for one hook point."""

    logic_id: str
    enabled: bool = False


@dataclass(frozen=True)
class RunLimits:
    """Per-turn ceilings guaranteeing termination."""

    max_tool_iterations: int = 5
    max_model_calls: int = 6


@dataclass
class TurnRequest:
    """
    Everything needed to handle one user message.

    Attributes:
        agent_id: Identifier of the agent being run
        user_message: Current user input
        model: Model identifier used for every model call of the turn
        history: Prior conversation messages (oldest first)
        system_prompt: Optional system instructions
        sampling: Sampling parameters
        enabled_tools: Tools configured on the agent
        force_tool_usage: Fabricate a tool call when the model produced none
        run_limits: Per-turn ceilings
        callbacks: Hook configuration keyed by hook point
        framework: Alternate orchestration strategy name, if any
        agent_config: Free-form agent configuration consumed by strategies
        file_data_uri: Optional media attached to the user message
    """

    agent_id: str
    user_message: str
    model: str
    history: list[ConversationMessage] = field(default_factory=list)
    system_prompt: str | None = None
    sampling: SamplingParams = field(default_factory=SamplingParams)
    enabled_tools: list[ToolDetail] = field(default_factory=list)
    force_tool_usage: bool = False
    run_limits: RunLimits = field(default_factory=RunLimits)
    callbacks: dict[HookPoint, CallbackHookConfig] = field(default_factory=dict)
    framework: str | None = None
    agent_config: dict[str, Any] = field(default_factory=dict)
    file_data_uri: str | None = None


@dataclass(frozen=True)
class GeneratedArtifact:
    """File produced by a tool during the turn."""

    file_name: str
    file_type: str
    file_data_uri: str | None = None
    file_url: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data = {"fileName": self.file_name, "fileType": self.file_type}
        if self.file_data_uri is not None:
            data["fileDataUri"] = self.file_data_uri
        if self.file_url is not None:
            data["fileUrl"] = self.file_url
        return data


@dataclass
class TurnResult:
    """
    Uniform outcome of a turn, whichever strategy produced it.

    Attributes:
        state: Terminal state of the turn
        output_text: Final answer (None when the turn failed)
        tool_requests: Every tool call requested during the turn
        tool_results: One result per request, in request order
        execution_trace: Ordered execution events
        error: Turn-level error message (fatal failures only)
        generated_artifact: File produced by a tool, if any
        model_calls: Number of CALLING_MODEL steps performed
    """

    state: TurnState
    output_text: str | None = None
    tool_requests: list[ToolCallRequest] = field(default_factory=list)
    tool_results: list[ToolCallResult] = field(default_factory=list)
    execution_trace: list[ExecutionEvent] = field(default_factory=list)
    error: str | None = None
    generated_artifact: GeneratedArtifact | None = None
    model_calls: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "state": self.state.value,
            "outputText": self.output_text,
            "toolRequests": [
                {"name": request.tool_name, "input": request.input} for request in self.tool_requests
            ],
            "toolResults": [result.to_dict() for result in self.tool_results],
            "executionTrace": [event.to_dict() for event in self.execution_trace],
            "error": self.error,
            "generatedArtifact": (
                self.generated_artifact.to_dict() if self.generated_artifact else None
            ),
            "modelCalls": self.model_calls,
        }
