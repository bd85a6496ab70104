"""
Tool Protocol

A tool is an independently implemented capability the model can invoke.
Tools declare their input schema as a pydantic model; the registry wraps them
into immutable ``ToolDescriptor`` entries at startup.
"""

from typing import Any, Protocol, runtime_checkable

from pydantic import BaseModel


@runtime_checkable
class ToolProtocol(Protocol):
    """Invocable tool."""

    @property
    def id(self) -> str:
        """Stable identifier used in agent configuration."""
        ...

    @property
    def name(self) -> str:
        """Name the model uses to call the tool."""
        ...

    @property
    def description(self) -> str:
        ...

    @property
    def input_model(self) -> type[BaseModel] | None:
        """Pydantic model validating the tool input (None: accept anything)."""
        ...

    async def execute(self, **kwargs: Any) -> Any:
        """Run the tool with validated input."""
        ...
