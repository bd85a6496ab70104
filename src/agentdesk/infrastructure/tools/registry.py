"""
Tool Registry

Immutable catalogue of the tools known to the process, keyed by name. Built
once by the factory from ``ToolProtocol`` implementations and injected into
the turn loop; never mutated afterwards.

Per turn, the loop asks the registry to ``resolve`` the agent's enabled-tool
list into the descriptors available for that turn.
"""

from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass, replace
from types import MappingProxyType
from typing import Any

import structlog
from pydantic import BaseModel

from agentdesk.core.domain.models import ToolDetail, ToolSpec
from agentdesk.core.interfaces.tools import ToolProtocol

EMPTY_OBJECT_SCHEMA: dict[str, Any] = {"type": "object", "properties": {}}


@dataclass(frozen=True)
class ToolDescriptor:
    """
    Registered tool.

    Attributes:
        id: Stable identifier used in agent configuration
        name: Name the model calls the tool by
        description: Description advertised to the model
        input_model: Pydantic model validating the input (None: accept any mapping)
        invoke: Async callable receiving the validated input as keyword arguments
        enabled: Whether the tool may be executed
    """

    id: str
    name: str
    description: str
    input_model: type[BaseModel] | None = None
    invoke: Callable[..., Awaitable[Any]] | None = None
    enabled: bool = True

    @classmethod
    def from_tool(cls, tool: ToolProtocol) -> "ToolDescriptor":
        return cls(
            id=tool.id,
            name=tool.name,
            description=tool.description,
            input_model=tool.input_model,
            invoke=tool.execute,
        )

    @property
    def executable(self) -> bool:
        return self.enabled and self.invoke is not None

    @property
    def input_schema(self) -> dict[str, Any]:
        if self.input_model is None:
            return dict(EMPTY_OBJECT_SCHEMA)
        return self.input_model.model_json_schema()

    def validate_input(self, tool_input: dict[str, Any]) -> dict[str, Any]:
        """
        Validate ``tool_input`` against the input model.

        Raises:
            pydantic.ValidationError: If the input does not match
        """
        if self.input_model is None:
            return dict(tool_input)
        return self.input_model.model_validate(tool_input).model_dump()

    def to_spec(self) -> ToolSpec:
        return ToolSpec(name=self.name, description=self.description, parameters=self.input_schema)


class ToolRegistry:
    """Read-only mapping of tool name to ``ToolDescriptor``."""

    def __init__(self, descriptors: Iterable[ToolDescriptor] = ()):
        by_name: dict[str, ToolDescriptor] = {}
        for descriptor in descriptors:
            if descriptor.name in by_name:
                raise ValueError(f"Duplicate tool name: {descriptor.name}")
            by_name[descriptor.name] = descriptor
        self._by_name = MappingProxyType(by_name)
        self._by_id = MappingProxyType({d.id: d for d in by_name.values()})
        self.logger = structlog.get_logger().bind(component="tool_registry")

    @classmethod
    def from_tools(cls, tools: Iterable[ToolProtocol]) -> "ToolRegistry":
        return cls(ToolDescriptor.from_tool(tool) for tool in tools)

    @property
    def descriptors(self) -> MappingProxyType:
        return self._by_name

    def get(self, name: str) -> ToolDescriptor | None:
        return self._by_name.get(name)

    def get_by_id(self, tool_id: str) -> ToolDescriptor | None:
        return self._by_id.get(tool_id)

    def __contains__(self, name: object) -> bool:
        return name in self._by_name

    def __len__(self) -> int:
        return len(self._by_name)

    def resolve(self, enabled_tools: Iterable[ToolDetail]) -> dict[str, ToolDescriptor]:
        """
        Map an agent's configured tools to registered descriptors.

        Each configured tool is matched by id, then by name. The configured
        ``enabled`` flag is applied to the returned descriptor. Unknown tools
        are skipped and logged.

        Returns:
            Turn-scoped mapping of tool name to descriptor
        """
        resolved: dict[str, ToolDescriptor] = {}
        for detail in enabled_tools:
            descriptor = self.get_by_id(detail.id) or self.get(detail.name)
            if descriptor is None:
                self.logger.warning("tool_not_registered", tool_id=detail.id, tool_name=detail.name)
                continue
            if not detail.enabled:
                descriptor = replace(descriptor, enabled=False)
            resolved[descriptor.name] = descriptor
        return resolved
