"""
Framework Strategy Protocol

Alternate orchestration strategies take over a whole turn when the agent
configuration selects them. Each strategy keeps its own input/output types
internally and translates its outcome into the uniform ``TurnResult``.
"""

from typing import Protocol, runtime_checkable

from agentdesk.core.domain.models import TurnRequest, TurnResult
from agentdesk.core.domain.trace import ExecutionTraceBuilder


@runtime_checkable
class FrameworkStrategyProtocol(Protocol):
    """Pluggable alternate orchestration strategy."""

    @property
    def name(self) -> str:
        ...

    async def run(self, request: TurnRequest, trace: ExecutionTraceBuilder) -> TurnResult:
        """Handle the turn and return a uniform result."""
        ...
