"""
Model Provider Protocol

Contract of the generative-model invocation service consumed by the turn
loop. Implementations translate a ``ModelRequest`` into the provider's wire
format, call the model, and translate the answer back into a
``ModelResponse``. Failures are raised as ``ModelInvocationError``; they are
never returned as values.
"""

from typing import Protocol, runtime_checkable

from agentdesk.core.domain.models import ModelRequest, ModelResponse


@runtime_checkable
class ModelProviderProtocol(Protocol):
    """Generative model service."""

    async def generate(self, request: ModelRequest) -> ModelResponse:
        """
        Run one model call.

        Args:
            request: Message sequence, tool specs and sampling parameters

        Returns:
            ModelResponse with zero or more candidates

        Raises:
            ModelInvocationError: If the call fails
        """
        ...

    def supports_tools(self, model: str) -> bool:
        """Return True if ``model`` accepts tool definitions."""
        ...
