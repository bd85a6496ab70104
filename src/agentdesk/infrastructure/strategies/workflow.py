"""
Workflow strategy (simulated)

Runs the steps declared in ``agent_config["workflow"]`` without calling a
model. Each step's input mapping is resolved against the workflow state,
where strings of the form ``$key.path`` are looked up in the outputs of
earlier steps (the user message is available as ``$userMessage``). Each
step's simulated output is stored under its ``outputKey``.

Workflow types:
- sequential / parallel: steps run once, in order
- conditional: steps run once, in order (no branch evaluation)
- loop: steps repeat until one of the termination conditions holds:
  a step whose agent id equals ``loopExitToolName`` ran, the value at
  ``loopStateKey`` equals ``loopExitStateValue``, or ``maxIterations``
  (default 10) iterations ran.
"""

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Literal

import structlog
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from agentdesk.core.domain.events import EventKind
from agentdesk.core.domain.models import TurnRequest, TurnResult, TurnState
from agentdesk.core.domain.trace import ExecutionTraceBuilder
from agentdesk.infrastructure.strategies.simulation import SimulatedToolEvent, simulated_turn_result

DEFAULT_MAX_ITERATIONS = 10

logger = structlog.get_logger()


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class WorkflowStep(_CamelModel):
    agent_id: str = Field(..., alias="agentId", min_length=1)
    input_mapping: dict[str, Any] = Field(default_factory=dict, alias="inputMapping")
    output_key: str | None = Field(None, alias="outputKey")
    name: str | None = None
    description: str | None = None


class TerminationConditions(_CamelModel):
    max_iterations: int | None = Field(None, alias="maxIterations", ge=1)
    success_condition: str | None = Field(None, alias="successCondition")
    failure_condition: str | None = Field(None, alias="failureCondition")


class WorkflowConfig(_CamelModel):
    workflow_type: Literal["sequential", "parallel", "conditional", "loop"] = Field(
        "sequential", alias="workflowType"
    )
    agent_goal: str = Field("", alias="agentGoal")
    workflow_steps: list[WorkflowStep] = Field(default_factory=list, alias="workflowSteps")
    termination_conditions: TerminationConditions | None = Field(None, alias="terminationConditions")
    loop_exit_tool_name: str | None = Field(None, alias="loopExitToolName")
    loop_state_key: str | None = Field(None, alias="loopStateKey")
    loop_exit_state_value: str | None = Field(None, alias="loopExitStateValue")

    @property
    def max_iterations(self) -> int:
        if self.termination_conditions and self.termination_conditions.max_iterations:
            return self.termination_conditions.max_iterations
        return DEFAULT_MAX_ITERATIONS


@dataclass
class WorkflowRunResult:
    status: str
    message: str
    outputs: dict[str, Any] = field(default_factory=dict)
    iterations: int | None = None
    events: list[SimulatedToolEvent] = field(default_factory=list)


def resolve_value_path(path: Any, state: dict[str, Any]) -> Any:
    """
    Resolve ``$key.sub.path`` against ``state``.

    Non-string values and strings not starting with ``$`` are literals and
    returned as-is. Unresolvable paths yield None.
    """
    if not isinstance(path, str) or not path.startswith("$"):
        return path
    current: Any = state
    for part in path[1:].split("."):
        if isinstance(current, dict) and part in current:
            current = current[part]
        else:
            logger.debug("workflow_path_unresolved", path=path, part=part)
            return None
    return current


def resolve_input_mapping(mapping: Any, state: dict[str, Any]) -> Any:
    """Recursively resolve every ``$`` path inside ``mapping``."""
    if isinstance(mapping, str):
        return resolve_value_path(mapping, state)
    if isinstance(mapping, list):
        return [resolve_input_mapping(item, state) for item in mapping]
    if isinstance(mapping, dict):
        return {key: resolve_input_mapping(value, state) for key, value in mapping.items()}
    return mapping


class WorkflowStrategy:
    """Simulated multi-step workflow runner."""

    def __init__(self, clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc)):
        self._clock = clock
        self.logger = structlog.get_logger().bind(component="workflow_strategy")

    @property
    def name(self) -> str:
        return "workflow"

    def _run_step(
        self,
        index: int,
        step: WorkflowStep,
        state: dict[str, Any],
        iteration: int | None = None,
    ) -> SimulatedToolEvent:
        identifier = step.name or step.agent_id or f"Step {index + 1}"
        actual_input = resolve_input_mapping(step.input_mapping, state)
        if iteration is None:
            result_text = f"Simulated output for {step.agent_id} (step: {identifier})"
        else:
            result_text = f"Simulated output for {step.agent_id} (Iter {iteration}, Step {identifier})"

        output = {
            "result": result_text,
            "toolNameUsed": step.agent_id,
            "received_input": actual_input,
            "timestamp": self._clock().isoformat(),
        }
        if step.output_key:
            state[step.output_key] = output
        self.logger.debug("workflow_step_executed", step=identifier, iteration=iteration)
        return SimulatedToolEvent(tool_name=step.agent_id, input=actual_input, output=output)

    def execute(self, config: WorkflowConfig, user_message: str = "") -> WorkflowRunResult:
        if not config.workflow_steps:
            return WorkflowRunResult(status="COMPLETED_NO_STEPS", message="Workflow completed: No steps.")

        state: dict[str, Any] = {"userMessage": user_message}
        events: list[SimulatedToolEvent] = []

        if config.workflow_type != "loop":
            for index, step in enumerate(config.workflow_steps):
                events.append(self._run_step(index, step, state))
            message = (
                "Conditional workflow execution simulated successfully."
                if config.workflow_type == "conditional"
                else "Workflow execution simulated successfully."
            )
            return WorkflowRunResult(status="SUCCESS", message=message, outputs=state, events=events)

        iteration = 0
        exit_reason = "max_iterations"
        while iteration < config.max_iterations:
            iteration += 1
            iteration_events = [
                self._run_step(index, step, state, iteration)
                for index, step in enumerate(config.workflow_steps)
            ]
            events.extend(iteration_events)

            if config.loop_exit_tool_name and any(
                event.tool_name == config.loop_exit_tool_name for event in iteration_events
            ):
                exit_reason = "exit_tool"
                break

            if config.loop_state_key and config.loop_exit_state_value is not None:
                value = resolve_value_path(f"${config.loop_state_key}", state)
                if value is not None and str(value) == str(config.loop_exit_state_value):
                    exit_reason = "state_value"
                    break

        self.logger.info("workflow_loop_finished", iterations=iteration, exit_reason=exit_reason)
        return WorkflowRunResult(
            status="SUCCESS_LOOP_COMPLETED",
            message=f"Loop workflow completed after {iteration} iterations.",
            outputs=state,
            iterations=iteration,
            events=events,
        )

    async def run(self, request: TurnRequest, trace: ExecutionTraceBuilder) -> TurnResult:
        raw_config = request.agent_config.get("workflow", request.agent_config)
        try:
            config = WorkflowConfig.model_validate(raw_config)
        except ValidationError as e:
            self.logger.warning("workflow_config_invalid", errors=e.error_count())
            trace.emit(EventKind.AGENT_CONTROL, "Workflow: Configuração Inválida", str(e))
            return TurnResult(
                state=TurnState.FAILED,
                error=f"Configuração de workflow inválida: {e}",
                execution_trace=trace.events,
            )

        self.logger.info(
            "workflow_started",
            workflow_type=config.workflow_type,
            steps=len(config.workflow_steps),
            goal=config.agent_goal[:100],
        )
        outcome = self.execute(config, request.user_message)
        result = simulated_turn_result(outcome.message, outcome.events, trace)

        details = outcome.message
        if outcome.iterations is not None:
            details += f" Iterações: {outcome.iterations}."
        trace.emit(EventKind.AGENT_CONTROL, f"Workflow: {outcome.status}", details)
        result.execution_trace = trace.events
        return result
