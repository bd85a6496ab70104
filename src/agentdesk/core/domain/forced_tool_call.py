"""
Forced Tool Call Strategy (deterministic test aid)

When an agent is configured with ``force_tool_usage`` and the model answered
without requesting a tool, the turn loop asks this strategy to fabricate a
plausible request for the first available tool. It exists so that tool
behavior stays observable under deterministic test configurations. It is not
a correctness mechanism and must not be extended into one.

Input fields are guessed from the tool's JSON schema by matching property
names against a small table of substrings.
"""

from datetime import date
from typing import Any

import structlog

from agentdesk.core.domain.models import ToolCallRequest, ToolSpec

logger = structlog.get_logger()

# (substring, value factory) checked in order against lower-cased property names.
# A value of None means "use the user message".
_NAME_HINTS: tuple[tuple[str, Any], ...] = (
    ("url", lambda message: "https://example.com"),
    ("timezone", lambda message: "UTC"),
    ("zone", lambda message: "UTC"),
    ("date", lambda message: date.today().isoformat()),
    ("file", lambda message: "output.txt"),
    ("query", None),
    ("question", None),
    ("operation", None),
    ("expression", None),
    ("prompt", None),
    ("message", None),
    ("text", None),
    ("content", None),
    ("input", None),
)

_TYPE_DEFAULTS: dict[str, Any] = {
    "integer": 1,
    "number": 1,
    "boolean": False,
    "array": [],
    "object": {},
}


class ForcedToolCallStrategy:
    """Fabricates a tool call request from a tool's JSON schema."""

    def _guess_value(self, name: str, schema: dict[str, Any], user_message: str) -> Any:
        if schema.get("enum"):
            return schema["enum"][0]
        if "default" in schema:
            return schema["default"]

        lowered = name.lower()
        for hint, factory in _NAME_HINTS:
            if hint in lowered:
                return user_message if factory is None else factory(user_message)

        return _TYPE_DEFAULTS.get(schema.get("type", "string"), user_message)

    def fabricate_input(self, spec: ToolSpec, user_message: str) -> dict[str, Any]:
        """Build an input mapping covering the schema's required properties."""
        properties: dict[str, Any] = spec.parameters.get("properties", {})
        required = spec.parameters.get("required") or list(properties)
        return {
            name: self._guess_value(name, properties.get(name, {}), user_message)
            for name in required
        }

    def fabricate(self, tools: list[ToolSpec], user_message: str, ref: str) -> ToolCallRequest | None:
        """
        Fabricate a request for the first available tool.

        Args:
            tools: Tools offered to the model this turn
            user_message: The user's message, used for free-text fields
            ref: Correlation reference for the fabricated request

        Returns:
            ToolCallRequest, or None when no tool is available
        """
        if not tools:
            return None
        spec = tools[0]
        request = ToolCallRequest(
            tool_name=spec.name,
            input=self.fabricate_input(spec, user_message),
            ref=ref,
        )
        logger.info("forced_tool_call_fabricated", tool=spec.name, fields=sorted(request.input))
        return request
