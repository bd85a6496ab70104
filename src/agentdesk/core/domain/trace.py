"""
Execution Trace Builder

Accumulates ``ExecutionEvent`` objects for one turn in emission order.
Every component that does something observable (guardrails, callbacks, the
turn loop, alternate strategies) reports it here through a dedicated method,
so titles and detail formats stay consistent across the codebase.

The builder is append-only: events can be added and read, never removed or
reordered.
"""

import json
from typing import Any

from agentdesk.core.domain.events import CallbackAction, EventKind, ExecutionEvent
from agentdesk.core.domain.models import ToolCallRequest, ToolFailure, ToolSuccess


def _preview(value: Any, max_length: int = 500) -> str:
    """Serialize ``value`` for event details, truncated to ``max_length``."""
    if isinstance(value, str):
        text = value
    else:
        text = json.dumps(value, ensure_ascii=False, default=str)
    if len(text) <= max_length:
        return text
    return text[:max_length] + "..."


class ExecutionTraceBuilder:
    """Ordered, append-only collection of execution events for one turn."""

    def __init__(self) -> None:
        self._events: list[ExecutionEvent] = []

    @property
    def events(self) -> list[ExecutionEvent]:
        """Snapshot of the events emitted so far."""
        return list(self._events)

    def __len__(self) -> int:
        return len(self._events)

    def add(self, event: ExecutionEvent) -> ExecutionEvent:
        self._events.append(event)
        return event

    def emit(self, kind: EventKind, title: str, details: str | None = None, **extra: Any) -> ExecutionEvent:
        return self.add(ExecutionEvent(kind=kind, title=title, details=details, **extra))

    # -- tool lifecycle -----------------------------------------------------

    def tool_pending(self, request: ToolCallRequest) -> ExecutionEvent:
        return self.emit(
            EventKind.TOOL_CALL_PENDING,
            f"Chamando Ferramenta: {request.tool_name}",
            f"Entrada: {_preview(request.input)}",
            tool_name=request.tool_name,
        )

    def tool_success(self, result: ToolSuccess) -> ExecutionEvent:
        return self.emit(
            EventKind.TOOL_CALL,
            f"Ferramenta Executada: {result.tool_name}",
            f"Saída: {_preview(result.output)}",
            tool_name=result.tool_name,
        )

    def tool_error(self, result: ToolFailure, title: str | None = None) -> ExecutionEvent:
        return self.emit(
            EventKind.TOOL_ERROR,
            title or f"Erro na Ferramenta: {result.tool_name}",
            f"[{result.error.code.value}] {result.error.message}",
            tool_name=result.tool_name,
        )

    # -- guardrails and safety ----------------------------------------------

    def prompt_blocked(self, matched_term: str, message: str) -> ExecutionEvent:
        return self.emit(
            EventKind.AGENT_CONTROL,
            "Guardrail: Prompt Bloqueado",
            f"{message} Termo detectado: \"{matched_term}\".",
        )

    def tool_blocked(self, result: ToolFailure, matched_term: str) -> ExecutionEvent:
        return self.emit(
            EventKind.TOOL_ERROR,
            f"Guardrail: Ferramenta {result.tool_name} Bloqueada",
            f"{result.error.message} Termo detectado: \"{matched_term}\".",
            tool_name=result.tool_name,
        )

    def safety_override(self, original_text: str, replacement: str) -> ExecutionEvent:
        return self.emit(
            EventKind.AGENT_CONTROL,
            "Alerta de Segurança Simulado",
            "A resposta do modelo foi considerada insegura e substituída.",
            original_data=_preview(original_text),
            modified_data=replacement,
        )

    # -- callbacks ------------------------------------------------------------

    def callback(
        self,
        hook: str,
        action: CallbackAction,
        details: str,
        original_data: str | None = None,
        modified_data: str | None = None,
        tool_name: str | None = None,
    ) -> ExecutionEvent:
        return self.emit(
            EventKind.CALLBACK_SIMULATION,
            f"Callback {hook}: {action.value}",
            details,
            tool_name=tool_name,
            callback_type=hook,
            callback_action=action,
            original_data=original_data,
            modified_data=modified_data,
        )

    # -- loop control ---------------------------------------------------------

    def cache_hit(self, model: str) -> ExecutionEvent:
        return self.emit(
            EventKind.AGENT_CONTROL,
            "Cache: Resposta Reutilizada",
            f"Resposta do modelo '{model}' servida a partir do cache.",
        )

    def limit_reached(self, limit_name: str, value: int) -> ExecutionEvent:
        return self.emit(
            EventKind.AGENT_CONTROL,
            "Limite Atingido",
            f"O limite '{limit_name}' ({value}) foi atingido; o turno foi encerrado.",
        )

    def capability_mismatch(self, model: str, tool_names: list[str]) -> ExecutionEvent:
        return self.emit(
            EventKind.AGENT_CONTROL,
            "Modelo Sem Suporte a Ferramentas",
            f"O modelo '{model}' solicitou ferramentas sem suportá-las: {', '.join(tool_names)}.",
        )

    def forced_tool_call(self, request: ToolCallRequest) -> ExecutionEvent:
        return self.emit(
            EventKind.AGENT_CONTROL,
            "Uso de Ferramenta Forçado",
            f"Chamada sintetizada para '{request.tool_name}' com entrada {_preview(request.input)}.",
            tool_name=request.tool_name,
        )

    def framework_delegated(self, framework: str) -> ExecutionEvent:
        return self.emit(
            EventKind.AGENT_CONTROL,
            f"Framework: {framework}",
            f"Turno delegado à estratégia '{framework}'.",
        )

    def fatal_error(self, message: str, error_type: str | None = None) -> ExecutionEvent:
        details = f"{error_type}: {message}" if error_type else message
        return self.emit(EventKind.AGENT_CONTROL, "Erro Fatal", details)
