"""
Shared pieces of the simulated framework strategies.

The alternate frameworks do not call a model; they record simulated tool
events and a canned response. ``simulated_turn_result`` translates those into
the uniform ``TurnResult`` and mirrors each event into the trace.
"""

from dataclasses import dataclass
from typing import Any

from agentdesk.core.domain.models import (
    ToolCallRequest,
    ToolDetail,
    ToolSuccess,
    TurnRequest,
    TurnResult,
    TurnState,
)
from agentdesk.core.domain.trace import ExecutionTraceBuilder


@dataclass(frozen=True)
class SimulatedToolEvent:
    tool_name: str
    input: dict[str, Any]
    output: Any
    status: str = "simulated_success"


def agent_display_name(request: TurnRequest, default: str) -> str:
    return request.agent_config.get("agentName") or request.agent_id or default


def simulated_tools(request: TurnRequest) -> list[ToolDetail]:
    """Tools of the agent that are switched on."""
    return [tool for tool in request.enabled_tools if tool.enabled]


def tool_label(tool: ToolDetail) -> str:
    return tool.name or tool.id or "unknown_tool"


def simulated_turn_result(
    response_text: str,
    events: list[SimulatedToolEvent],
    trace: ExecutionTraceBuilder,
) -> TurnResult:
    requests: list[ToolCallRequest] = []
    results: list[ToolSuccess] = []
    for index, event in enumerate(events, start=1):
        request = ToolCallRequest(tool_name=event.tool_name, input=event.input, ref=f"{event.tool_name}-{index}")
        result = ToolSuccess(
            tool_name=event.tool_name,
            input=event.input,
            ref=request.ref,
            output=event.output,
        )
        trace.tool_pending(request)
        trace.tool_success(result)
        requests.append(request)
        results.append(result)

    return TurnResult(
        state=TurnState.DONE,
        output_text=response_text,
        tool_requests=requests,
        tool_results=results,
        execution_trace=trace.events,
    )
