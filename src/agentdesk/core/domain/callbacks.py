"""
Callback Simulator

Agent configuration can attach a callback to each of four hook points of the
turn loop (before/after model, before/after tool). A callback is not code: it
is a declarative logic identifier naming one of a closed set of predefined
behaviors, optionally with an argument::

    log
    block_if_contains:<token>
    block_tool:<tool name>
    append_suffix:<suffix>
    replace_word:<old>=<new>

Identifiers are parsed into ``CallbackLogic`` and dispatched through a lookup
table of handlers. Anything that does not parse (unknown behavior, missing or
malformed argument) maps to ``CallbackBehavior.UNRECOGNIZED``: a no-op that is
still reported in the trace. Unknown configuration never raises.
"""

import json
import re
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any

import structlog

from agentdesk.core.domain.events import CallbackAction
from agentdesk.core.domain.guardrails import serialize_tool_input
from agentdesk.core.domain.models import CallbackHookConfig, HookPoint, ToolCallRequest
from agentdesk.core.domain.trace import ExecutionTraceBuilder

logger = structlog.get_logger()


class CallbackBehavior(str, Enum):
    """Predefined callback behaviors."""

    LOG = "log"
    BLOCK_IF_CONTAINS = "block_if_contains"
    BLOCK_TOOL = "block_tool"
    APPEND_SUFFIX = "append_suffix"
    REPLACE_WORD = "replace_word"
    UNRECOGNIZED = "unrecognized"


_ARGUMENT_REQUIRED = {
    CallbackBehavior.BLOCK_IF_CONTAINS,
    CallbackBehavior.BLOCK_TOOL,
    CallbackBehavior.APPEND_SUFFIX,
    CallbackBehavior.REPLACE_WORD,
}


@dataclass(frozen=True)
class CallbackLogic:
    """Parsed logic identifier."""

    behavior: CallbackBehavior
    argument: str | None
    raw: str

    @classmethod
    def parse(cls, logic_id: str) -> "CallbackLogic":
        name, separator, argument = (logic_id or "").strip().partition(":")
        try:
            behavior = CallbackBehavior(name.strip().lower())
        except ValueError:
            return cls(CallbackBehavior.UNRECOGNIZED, None, logic_id)

        value = argument if separator else None
        if behavior in _ARGUMENT_REQUIRED and not value:
            return cls(CallbackBehavior.UNRECOGNIZED, None, logic_id)
        if behavior is CallbackBehavior.REPLACE_WORD:
            old, equals, _ = value.partition("=")
            if not equals or not old:
                return cls(CallbackBehavior.UNRECOGNIZED, None, logic_id)
        return cls(behavior, value, logic_id)


@dataclass(frozen=True)
class CallbackContext:
    """What a handler sees at a hook point."""

    hook: HookPoint
    payload: str
    tool_name: str | None = None


@dataclass(frozen=True)
class CallbackOutcome:
    """Result of running a callback handler."""

    action: CallbackAction
    payload: str
    message: str

    @property
    def blocked(self) -> bool:
        return self.action is CallbackAction.BLOCKED

    @property
    def modified(self) -> bool:
        return self.action is CallbackAction.MODIFIED


Handler = Callable[[CallbackLogic, CallbackContext], CallbackOutcome]


def _handle_log(logic: CallbackLogic, context: CallbackContext) -> CallbackOutcome:
    return CallbackOutcome(CallbackAction.LOGGED, context.payload, "Payload registrado.")


def _handle_block_if_contains(logic: CallbackLogic, context: CallbackContext) -> CallbackOutcome:
    token = logic.argument or ""
    if token.lower() in context.payload.lower():
        return CallbackOutcome(
            CallbackAction.BLOCKED, context.payload, f'Bloqueado: conteúdo contém "{token}".'
        )
    return CallbackOutcome(CallbackAction.NO_CHANGE, context.payload, f'"{token}" não encontrado.')


def _handle_block_tool(logic: CallbackLogic, context: CallbackContext) -> CallbackOutcome:
    if context.tool_name and context.tool_name == logic.argument:
        return CallbackOutcome(
            CallbackAction.BLOCKED, context.payload, f"Ferramenta '{context.tool_name}' bloqueada."
        )
    return CallbackOutcome(CallbackAction.NO_CHANGE, context.payload, "Ferramenta não afetada.")


def _handle_append_suffix(logic: CallbackLogic, context: CallbackContext) -> CallbackOutcome:
    return CallbackOutcome(
        CallbackAction.MODIFIED, context.payload + (logic.argument or ""), "Sufixo adicionado."
    )


def _handle_replace_word(logic: CallbackLogic, context: CallbackContext) -> CallbackOutcome:
    old, _, new = (logic.argument or "").partition("=")
    pattern = re.compile(re.escape(old), re.IGNORECASE)
    replaced, count = pattern.subn(lambda _match: new, context.payload)
    if count == 0:
        return CallbackOutcome(CallbackAction.NO_CHANGE, context.payload, f'"{old}" não encontrado.')
    return CallbackOutcome(
        CallbackAction.MODIFIED, replaced, f'{count} ocorrência(s) de "{old}" substituída(s).'
    )


def _handle_unrecognized(logic: CallbackLogic, context: CallbackContext) -> CallbackOutcome:
    return CallbackOutcome(
        CallbackAction.UNRECOGNIZED_LOGIC,
        context.payload,
        f"Lógica de callback não reconhecida: '{logic.raw}'. Nenhuma ação executada.",
    )


HANDLERS: Mapping[CallbackBehavior, Handler] = {
    CallbackBehavior.LOG: _handle_log,
    CallbackBehavior.BLOCK_IF_CONTAINS: _handle_block_if_contains,
    CallbackBehavior.BLOCK_TOOL: _handle_block_tool,
    CallbackBehavior.APPEND_SUFFIX: _handle_append_suffix,
    CallbackBehavior.REPLACE_WORD: _handle_replace_word,
    CallbackBehavior.UNRECOGNIZED: _handle_unrecognized,
}


class CallbackSimulator:
    """
    Runs configured callbacks at the loop's hook points.

    Hooks without configuration, or whose configuration is disabled, do
    nothing and emit nothing. Every enabled hook emits exactly one
    CALLBACK_SIMULATION event per invocation.
    """

    def __init__(
        self,
        config: Mapping[HookPoint, CallbackHookConfig],
        trace: ExecutionTraceBuilder,
    ):
        self._config = dict(config)
        self._trace = trace

    def is_enabled(self, hook: HookPoint) -> bool:
        hook_config = self._config.get(hook)
        return bool(hook_config and hook_config.enabled)

    def _dispatch(self, hook: HookPoint, payload: str, tool_name: str | None) -> CallbackOutcome:
        logic = CallbackLogic.parse(self._config[hook].logic_id)
        handler = HANDLERS[logic.behavior]
        return handler(logic, CallbackContext(hook=hook, payload=payload, tool_name=tool_name))

    def _record(
        self,
        hook: HookPoint,
        outcome: CallbackOutcome,
        original: str,
        tool_name: str | None = None,
    ) -> None:
        self._trace.callback(
            hook.value,
            outcome.action,
            outcome.message,
            original_data=original,
            modified_data=outcome.payload if outcome.modified else None,
            tool_name=tool_name,
        )
        logger.info(
            "callback_executed",
            hook=hook.value,
            action=outcome.action.value,
            tool=tool_name,
        )

    def run(self, hook: HookPoint, payload: str, tool_name: str | None = None) -> CallbackOutcome | None:
        """Run the hook on a text payload. Returns None when the hook is inactive."""
        if not self.is_enabled(hook):
            return None
        outcome = self._dispatch(hook, payload, tool_name)
        self._record(hook, outcome, payload, tool_name)
        return outcome

    def before_model(self, user_message: str) -> CallbackOutcome | None:
        return self.run(HookPoint.BEFORE_MODEL, user_message)

    def after_model(self, answer: str) -> CallbackOutcome | None:
        return self.run(HookPoint.AFTER_MODEL, answer)

    def before_tool(self, request: ToolCallRequest) -> tuple[CallbackOutcome | None, dict[str, Any]]:
        """
        Run the before-tool hook on a request's serialized input.

        Returns:
            The outcome (None if inactive) and the input to use. A modified
            payload replaces the input only if it still parses as a JSON object.
        """
        outcome = self.run(HookPoint.BEFORE_TOOL, serialize_tool_input(request.input), request.tool_name)
        if outcome is None or not outcome.modified:
            return outcome, request.input
        try:
            new_input = json.loads(outcome.payload)
        except json.JSONDecodeError:
            new_input = None
        if not isinstance(new_input, dict):
            logger.warning("callback_modified_input_ignored", tool=request.tool_name)
            return outcome, request.input
        return outcome, new_input

    def after_tool(self, tool_name: str, output: Any) -> tuple[CallbackOutcome | None, Any]:
        """
        Run the after-tool hook on a successful tool output.

        String outputs are transformed directly. For mapping outputs the
        handler sees the serialized mapping; a modification is applied to each
        top-level string value. Other output types are never modified.
        """
        hook = HookPoint.AFTER_TOOL
        if not self.is_enabled(hook):
            return None, output

        if isinstance(output, str):
            outcome = self._dispatch(hook, output, tool_name)
            self._record(hook, outcome, output, tool_name)
            return outcome, (outcome.payload if outcome.modified else output)

        serialized = serialize_tool_input(output)
        outcome = self._dispatch(hook, serialized, tool_name)
        new_output = output
        if outcome.modified:
            if isinstance(output, Mapping):
                new_output = {
                    key: (
                        self._dispatch(hook, value, tool_name).payload
                        if isinstance(value, str)
                        else value
                    )
                    for key, value in output.items()
                }
                outcome = CallbackOutcome(
                    CallbackAction.MODIFIED, serialize_tool_input(new_output), outcome.message
                )
            else:
                outcome = CallbackOutcome(
                    CallbackAction.NO_CHANGE,
                    serialized,
                    "Saída não textual; modificação ignorada.",
                )
        self._record(hook, outcome, serialized, tool_name)
        return outcome, new_output
