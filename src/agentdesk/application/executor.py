"""
Application Layer - Chat Executor Service

Service layer orchestrating turn execution. Both CLI and API entrypoints use
this unified logic.

The ChatExecutor:
- Creates (and keeps) one runtime per profile via AgentDeskFactory, so the
  response cache is shared by every turn of that profile
- Fills request defaults (model) from the profile
- Dispatches the turn and always returns a TurnResult
- Logs execution start, completion and failure
"""

import time
from dataclasses import replace

import structlog

from agentdesk.application.factory import AgentDeskFactory, ChatRuntime
from agentdesk.core.domain.models import TurnRequest, TurnResult, TurnState
from agentdesk.core.interfaces.llm import ModelProviderProtocol
from agentdesk.infrastructure.tools.registry import ToolDescriptor

logger = structlog.get_logger()


class ChatExecutor:
    """Service layer orchestrating chat turns for CLI and API."""

    def __init__(
        self,
        factory: AgentDeskFactory | None = None,
        model_provider: ModelProviderProtocol | None = None,
    ):
        """
        Args:
            factory: Optional AgentDeskFactory. If not provided, a default
                factory reading ``configs/`` is created.
            model_provider: Optional provider override passed to every runtime
        """
        self.factory = factory or AgentDeskFactory()
        self.model_provider = model_provider
        self._runtimes: dict[str, ChatRuntime] = {}
        self.logger = logger.bind(component="chat_executor")

    def get_runtime(self, profile: str = "dev") -> ChatRuntime:
        """
        Return the runtime of ``profile``, creating it on first use.

        Raises:
            FileNotFoundError: If the profile does not exist
            ConfigurationError: If the profile is invalid
        """
        runtime = self._runtimes.get(profile)
        if runtime is None:
            runtime = self.factory.create_runtime(profile, model_provider=self.model_provider)
            self._runtimes[profile] = runtime
        return runtime

    def list_tools(self, profile: str = "dev") -> list[ToolDescriptor]:
        registry = self.get_runtime(profile).tool_registry
        return sorted(registry.descriptors.values(), key=lambda d: d.name)

    async def execute_turn(self, request: TurnRequest, profile: str = "dev") -> TurnResult:
        """
        Execute one conversation turn.

        Tool and model failures come back inside the result (state FAILED or
        error tool results); this method only raises for profile problems.

        Args:
            request: The turn request; an empty model falls back to the
                profile's default model
            profile: Configuration profile

        Returns:
            TurnResult in a terminal state
        """
        runtime = self.get_runtime(profile)
        if not request.model:
            request = replace(request, model=runtime.default_model)

        start_time = time.time()
        self.logger.info(
            "turn.request.started",
            agent_id=request.agent_id,
            profile=profile,
            model=request.model,
            framework=request.framework,
        )

        try:
            result = await runtime.dispatcher.dispatch(request)
        except Exception as e:
            self.logger.error(
                "turn.request.failed",
                agent_id=request.agent_id,
                error=str(e),
                error_type=type(e).__name__,
            )
            return TurnResult(state=TurnState.FAILED, error=f"{type(e).__name__}: {e}")

        self.logger.info(
            "turn.request.completed",
            agent_id=request.agent_id,
            state=result.state.value,
            model_calls=result.model_calls,
            duration_seconds=round(time.time() - start_time, 3),
        )
        return result
