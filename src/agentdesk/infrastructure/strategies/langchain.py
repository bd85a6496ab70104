"""
LangChain strategy (simulated)

Every enabled tool is simulated once with mock input/output; the response
lists each tool's output.
"""

import json
from dataclasses import dataclass, field

import structlog

from agentdesk.core.domain.models import TurnRequest, TurnResult
from agentdesk.core.domain.trace import ExecutionTraceBuilder
from agentdesk.infrastructure.strategies.simulation import (
    SimulatedToolEvent,
    agent_display_name,
    simulated_tools,
    simulated_turn_result,
    tool_label,
)


@dataclass
class LangchainOutput:
    simulated_response: str
    tool_events: list[SimulatedToolEvent] = field(default_factory=list)


class LangchainStrategy:
    """Simulated LangChain agent execution."""

    def __init__(self):
        self.logger = structlog.get_logger().bind(component="langchain_strategy")

    @property
    def name(self) -> str:
        return "langchain"

    def simulate(self, request: TurnRequest) -> LangchainOutput:
        agent_name = agent_display_name(request, "Unknown Langchain Agent")
        output = LangchainOutput(
            simulated_response=(
                f"Langchain agent '{agent_name}' simulated response to: \"{request.user_message}\"."
            )
        )
        for tool in simulated_tools(request):
            tool_name = tool_label(tool)
            mock_output = {"result": f"Simulated output from {tool_name}"}
            output.tool_events.append(
                SimulatedToolEvent(
                    tool_name=tool_name,
                    input={"detail": f"Input for {tool_name}"},
                    output=mock_output,
                )
            )
            output.simulated_response += (
                f"\n   - Simulated using tool: '{tool_name}' with output: "
                f"'{json.dumps(mock_output, ensure_ascii=False)}'."
            )
        self.logger.info("langchain_simulation_complete", agent=agent_name, tool_events=len(output.tool_events))
        return output

    async def run(self, request: TurnRequest, trace: ExecutionTraceBuilder) -> TurnResult:
        output = self.simulate(request)
        return simulated_turn_result(output.simulated_response, output.tool_events, trace)
