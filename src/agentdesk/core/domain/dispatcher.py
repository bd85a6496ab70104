"""
Framework Dispatcher

Routes a turn to the orchestration strategy named by
``TurnRequest.framework``. Absent or unknown names fall back to the default
conversation turn loop. Whatever strategy runs, the caller gets a
``TurnResult``; a strategy that raises produces a FAILED result.
"""

from collections.abc import Iterable

import structlog

from agentdesk.core.domain.models import TurnRequest, TurnResult, TurnState
from agentdesk.core.domain.trace import ExecutionTraceBuilder
from agentdesk.core.domain.turn_loop import ConversationTurnLoop
from agentdesk.core.interfaces.strategies import FrameworkStrategyProtocol


class FrameworkDispatcher:
    """Selects between the default loop and registered alternate strategies."""

    def __init__(
        self,
        default_loop: ConversationTurnLoop,
        strategies: Iterable[FrameworkStrategyProtocol] = (),
    ):
        self.default_loop = default_loop
        self._strategies = {strategy.name.lower(): strategy for strategy in strategies}
        self.logger = structlog.get_logger().bind(component="framework_dispatcher")

    @property
    def frameworks(self) -> list[str]:
        return sorted(self._strategies)

    def select(self, framework: str | None) -> FrameworkStrategyProtocol | None:
        """Return the strategy for ``framework``, or None for the default loop."""
        if not framework:
            return None
        strategy = self._strategies.get(framework.strip().lower())
        if strategy is None:
            self.logger.warning("unknown_framework", framework=framework, fallback="default")
        return strategy

    async def dispatch(self, request: TurnRequest) -> TurnResult:
        trace = ExecutionTraceBuilder()
        strategy = self.select(request.framework)
        if strategy is None:
            return await self.default_loop.run(request, trace)

        self.logger.info("framework_delegated", framework=strategy.name, agent_id=request.agent_id)
        trace.framework_delegated(strategy.name)
        try:
            return await strategy.run(request, trace)
        except Exception as e:
            self.logger.error(
                "framework_failed",
                framework=strategy.name,
                error=str(e),
                error_type=type(e).__name__,
            )
            trace.fatal_error(str(e), type(e).__name__)
            return TurnResult(
                state=TurnState.FAILED,
                error=f"Erro na estratégia '{strategy.name}': {e}",
                execution_trace=trace.events,
            )
