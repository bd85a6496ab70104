"""
Execution Events

Immutable facts about what happened while a turn was handled: tool calls
pending/succeeding/failing, guardrail triggers, callback actions, cache hits,
ceilings being hit. Events are collected in emission order by the
``ExecutionTraceBuilder`` and returned alongside the answer; they are never
fed back into the model.
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any


class EventKind(str, Enum):
    """Category of an execution event."""

    TOOL_CALL_PENDING = "TOOL_CALL_PENDING"
    TOOL_CALL = "TOOL_CALL"
    TOOL_ERROR = "TOOL_ERROR"
    AGENT_CONTROL = "AGENT_CONTROL"
    CALLBACK_SIMULATION = "CALLBACK_SIMULATION"


class CallbackAction(str, Enum):
    """Outcome reported by a callback hook."""

    BLOCKED = "BLOCKED"
    MODIFIED = "MODIFIED"
    NO_CHANGE = "NO_CHANGE"
    LOGGED = "LOGGED"
    UNRECOGNIZED_LOGIC = "UNRECOGNIZED_LOGIC"


@dataclass(frozen=True)
class ExecutionEvent:
    """
    A single observable step of a turn.

    Attributes:
        kind: Event category
        title: Short human-readable headline
        details: Longer explanation (matched term, error message, ...)
        tool_name: Tool the event relates to, if any
        callback_type: Hook point name for CALLBACK_SIMULATION events
        callback_action: Action code for CALLBACK_SIMULATION events
        original_data: Payload before a callback ran
        modified_data: Payload after a callback ran
        id: Unique event identifier
        timestamp: UTC emission time
    """

    kind: EventKind
    title: str
    details: str | None = None
    tool_name: str | None = None
    callback_type: str | None = None
    callback_action: CallbackAction | None = None
    original_data: str | None = None
    modified_data: str | None = None
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "timestamp": self.timestamp.isoformat(),
            "kind": self.kind.value,
            "title": self.title,
            "details": self.details,
        }
        if self.tool_name is not None:
            data["relatedToolName"] = self.tool_name
        if self.callback_type is not None:
            data["callbackType"] = self.callback_type
        if self.callback_action is not None:
            data["callbackAction"] = self.callback_action.value
        if self.original_data is not None:
            data["originalData"] = self.original_data
        if self.modified_data is not None:
            data["modifiedData"] = self.modified_data
        return data
