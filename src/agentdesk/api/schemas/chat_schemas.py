"""
Chat API Schemas

Pydantic request/response models of the chat endpoints. Field names are
snake_case in Python and camelCase on the wire.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from agentdesk.core.domain.models import (
    CallbackHookConfig,
    ConversationMessage,
    HookPoint,
    Role,
    RunLimits,
    SamplingParams,
    ToolDetail,
    TurnRequest,
)


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class HistoryMessage(CamelModel):
    role: str
    content: str = ""

    @field_validator("role")
    @classmethod
    def _known_role(cls, value: str) -> str:
        return Role.parse(value).value

    def to_domain(self) -> ConversationMessage:
        return ConversationMessage.from_text(Role(self.role), self.content)


class ToolDetailSchema(CamelModel):
    id: str
    name: str = ""
    description: str = ""
    enabled: bool = True
    config: dict[str, Any] = Field(default_factory=dict)

    def to_domain(self) -> ToolDetail:
        return ToolDetail(
            id=self.id,
            name=self.name or self.id,
            description=self.description,
            enabled=self.enabled,
            config=self.config,
        )


class RunLimitsSchema(CamelModel):
    max_model_calls: int | None = Field(None, ge=1)
    max_tool_iterations: int | None = Field(None, ge=0)

    def to_domain(self, defaults: RunLimits) -> RunLimits:
        return RunLimits(
            max_tool_iterations=(
                self.max_tool_iterations
                if self.max_tool_iterations is not None
                else defaults.max_tool_iterations
            ),
            max_model_calls=(
                self.max_model_calls if self.max_model_calls is not None else defaults.max_model_calls
            ),
        )


class CallbackHookSchema(CamelModel):
    logic_id: str
    enabled: bool = False


class ChatTurnRequest(CamelModel):
    """Request to run one conversation turn."""

    agent_id: str = Field(..., min_length=1)
    user_message: str
    history: list[HistoryMessage] = Field(default_factory=list)
    model_identifier: str = ""
    system_prompt: str | None = None
    temperature: float | None = Field(None, ge=0.0, le=2.0)
    top_p: float | None = Field(None, ge=0.0, le=1.0)
    top_k: int | None = Field(None, ge=1)
    max_output_tokens: int | None = Field(None, ge=1)
    stop_sequences: list[str] | None = None
    enabled_tools: list[ToolDetailSchema] = Field(default_factory=list)
    force_tool_usage: bool = False
    run_limits: RunLimitsSchema = Field(default_factory=RunLimitsSchema)
    callback_config: dict[HookPoint, CallbackHookSchema] = Field(default_factory=dict)
    framework: str | None = None
    agent_config: dict[str, Any] = Field(default_factory=dict)
    file_data_uri: str | None = None

    def to_domain(self, default_limits: RunLimits | None = None) -> TurnRequest:
        return TurnRequest(
            agent_id=self.agent_id,
            user_message=self.user_message,
            model=self.model_identifier,
            history=[message.to_domain() for message in self.history],
            system_prompt=self.system_prompt,
            sampling=SamplingParams(
                temperature=self.temperature,
                top_p=self.top_p,
                top_k=self.top_k,
                max_output_tokens=self.max_output_tokens,
                stop_sequences=tuple(self.stop_sequences) if self.stop_sequences else None,
            ),
            enabled_tools=[tool.to_domain() for tool in self.enabled_tools],
            force_tool_usage=self.force_tool_usage,
            run_limits=self.run_limits.to_domain(default_limits or RunLimits()),
            callbacks={
                hook: CallbackHookConfig(logic_id=config.logic_id, enabled=config.enabled)
                for hook, config in self.callback_config.items()
            },
            framework=self.framework,
            agent_config=self.agent_config,
            file_data_uri=self.file_data_uri,
        )


class TurnResponse(CamelModel):
    """Outcome of a conversation turn."""

    state: str
    output_text: str | None = None
    tool_requests: list[dict[str, Any]] = Field(default_factory=list)
    tool_results: list[dict[str, Any]] = Field(default_factory=list)
    execution_trace: list[dict[str, Any]] = Field(default_factory=list)
    error: str | None = None
    generated_artifact: dict[str, Any] | None = None
    model_calls: int = 0


class ToolInfo(CamelModel):
    id: str
    name: str
    description: str
    enabled: bool
    input_schema: dict[str, Any]


class ToolListResponse(CamelModel):
    tools: list[ToolInfo]
    count: int
