"""
Domain Errors

Machine-readable error codes carried by failed tool results, and the small
exception hierarchy used where a failure must escape a component.

Tool-level problems never raise out of the turn loop; they are converted into
``ToolFailure`` results tagged with a ``ToolErrorCode``. Only a failing model
invocation is allowed to abort a turn, and it does so via
``ModelInvocationError``.
"""

from enum import Enum


class ToolErrorCode(str, Enum):
    """Codes attached to ``ErrorDetails`` of a failed tool call."""

    TOOL_NOT_FOUND = "TOOL_NOT_FOUND"
    INPUT_VALIDATION_ERROR = "INPUT_VALIDATION_ERROR"
    TOOL_NOT_EXECUTABLE = "TOOL_NOT_EXECUTABLE"
    TOOL_EXECUTION_FAILED = "TOOL_EXECUTION_FAILED"
    GUARDRAIL_TOOL_BLOCKED = "GUARDRAIL_TOOL_BLOCKED"
    CALLBACK_BLOCKED_TOOL_EXECUTION = "CALLBACK_BLOCKED_TOOL_EXECUTION"
    MODEL_CAPABILITY_MISMATCH = "MODEL_CAPABILITY_MISMATCH"
    TOOL_ITERATION_LIMIT = "TOOL_ITERATION_LIMIT"


class AgentDeskError(Exception):
    """Base class for all agentdesk exceptions."""


class ModelInvocationError(AgentDeskError):
    """
    The generative model service failed (network, auth, quota, bad response).

    Attributes:
        model: Model identifier the call was made with
        error_type: Class name of the underlying exception, if any
    """

    def __init__(self, message: str, model: str | None = None, error_type: str | None = None):
        super().__init__(message)
        self.model = model
        self.error_type = error_type


class ConfigurationError(AgentDeskError):
    """Invalid profile or settings."""
