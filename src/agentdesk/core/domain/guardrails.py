"""
Guardrail Filter

Static keyword-based content policy applied independently of the model:
to the combined prompt before the first model call, and to every tool call's
serialized input before the tool runs.

The keyword list is fixed and does not depend on agent configuration.
Matching is a case-insensitive substring search; the first matching term (in
list order) is reported.
"""

import json
from dataclasses import dataclass
from typing import Any

import structlog

SENSITIVE_KEYWORDS: tuple[str, ...] = (
    "excluir dados",
    "delete data",
    "apagar todos os dados",
    "drop table",
    "rm -rf",
    "informações confidenciais",
    "confidential information",
    "senha do administrador",
    "admin password",
)

PROMPT_BLOCKED_TEMPLATE = (
    'Guardrail ativado: Prompt bloqueado por conter palavra sensível ("{term}").'
)
TOOL_BLOCKED_TEMPLATE = (
    "Guardrail ativado: Execução de ferramenta '{tool}' bloqueada devido a "
    'parâmetros potencialmente sensíveis (palavra sensível: "{term}").'
)


@dataclass(frozen=True)
class GuardrailVerdict:
    """Result of screening a piece of content."""

    blocked: bool
    matched_term: str | None = None


def serialize_tool_input(tool_input: Any) -> str:
    """Canonical JSON form of a tool input, as screened by the guardrail."""
    return json.dumps(tool_input, ensure_ascii=False, sort_keys=True, default=str)


class GuardrailFilter:
    """Case-insensitive keyword screen for prompts and tool inputs."""

    def __init__(self, keywords: tuple[str, ...] = SENSITIVE_KEYWORDS):
        self._keywords = tuple(keyword.lower() for keyword in keywords)
        self.logger = structlog.get_logger().bind(component="guardrail_filter")

    @property
    def keywords(self) -> tuple[str, ...]:
        return self._keywords

    def _match(self, text: str) -> GuardrailVerdict:
        lowered = text.lower()
        for keyword in self._keywords:
            if keyword in lowered:
                return GuardrailVerdict(blocked=True, matched_term=keyword)
        return GuardrailVerdict(blocked=False)

    def screen_text(self, text: str) -> GuardrailVerdict:
        """Screen prompt text (system + history + user message)."""
        verdict = self._match(text)
        if verdict.blocked:
            self.logger.warning("guardrail_blocked", target="prompt", term=verdict.matched_term)
        return verdict

    def screen_tool_input(self, serialized_input: str) -> GuardrailVerdict:
        """Screen a tool call's serialized input."""
        verdict = self._match(serialized_input)
        if verdict.blocked:
            self.logger.warning("guardrail_blocked", target="tool_input", term=verdict.matched_term)
        return verdict

    @staticmethod
    def prompt_blocked_message(term: str) -> str:
        return PROMPT_BLOCKED_TEMPLATE.format(term=term)

    @staticmethod
    def tool_blocked_message(tool_name: str, term: str) -> str:
        return TOOL_BLOCKED_TEMPLATE.format(tool=tool_name, term=term)
