"""
CrewAI strategy (simulated)

Models a crew with a lead agent that receives one task built from the user
message. Every enabled tool is "used" once by the lead agent with mock
input/output, and the response lists the simulated tool use.
"""

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

DEFAULT_LEAD_AGENT = "Lead Agent Alpha"


@dataclass
class CrewTask:
    task_name: str
    assigned_to: str
    status: str = "simulated_pending"
    tool_events: list[SimulatedToolEvent] = field(default_factory=list)


@dataclass
class CrewAIOutput:
    simulated_response: str
    simulated_tasks: list[CrewTask] = field(default_factory=list)


class CrewAIStrategy:
    """Simulated CrewAI crew execution."""

    def __init__(self):
        self.logger = structlog.get_logger().bind(component="crewai_strategy")

    @property
    def name(self) -> str:
        return "crewai"

    def _lead_agent(self, request: TurnRequest) -> str:
        sub_agents = (request.agent_config.get("config") or {}).get("subAgents") or []
        return sub_agents[0] if sub_agents else DEFAULT_LEAD_AGENT

    def simulate(self, request: TurnRequest) -> CrewAIOutput:
        crew_name = agent_display_name(request, "Unknown Crew")
        lead_agent = self._lead_agent(request)
        task_name = f"Process user request: {request.user_message[:30]}..."

        output = CrewAIOutput(
            simulated_response=f"CrewAI '{crew_name}' simulated a response to: \"{request.user_message}\"."
        )
        task = CrewTask(task_name=task_name, assigned_to=lead_agent, status="simulated_in_progress")
        output.simulated_tasks.append(task)
        self.logger.info("crew_task_created", crew=crew_name, task=task_name, assigned_to=lead_agent)

        for tool in simulated_tools(request):
            tool_name = tool_label(tool)
            task.tool_events.append(
                SimulatedToolEvent(
                    tool_name=tool_name,
                    input={"detail": f"Input for {tool_name} during {task_name}"},
                    output={"result": f"Simulated output from {tool_name} for {task_name}"},
                )
            )
            output.simulated_response += (
                f"\n   - Task '{task_name}' involved simulated use of tool: '{tool_name}'."
            )

        task.status = "simulated_complete"
        self.logger.info("crew_simulation_complete", crew=crew_name, tool_events=len(task.tool_events))
        return output

    async def run(self, request: TurnRequest, trace: ExecutionTraceBuilder) -> TurnResult:
        output = self.simulate(request)
        events = [event for task in output.simulated_tasks for event in task.tool_events]
        return simulated_turn_result(output.simulated_response, events, trace)
