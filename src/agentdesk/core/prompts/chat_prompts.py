"""
Chat Prompts and Fixed Messages

Default system prompt plus the fixed user-facing texts the turn loop emits
(safety replacement, blocked notices, limit suffixes).

Usage:
    from agentdesk.core.prompts.chat_prompts import DEFAULT_SYSTEM_PROMPT
"""

DEFAULT_SYSTEM_PROMPT = "Você é um assistente prestativo."

# Sentinel the simulated safety check looks for in the model's answer.
UNSAFE_RESPONSE_SENTINEL = "resposta insegura"
SAFE_REPLACEMENT_TEXT = "Não posso responder a isso."

CALLBACK_BLOCKED_PROMPT_TEXT = (
    "Callback beforeModel bloqueou a mensagem do usuário. Nenhuma chamada ao modelo foi realizada."
)
CALLBACK_BLOCKED_ANSWER_TEXT = "Resposta bloqueada pelo callback afterModel."
CALLBACK_BLOCKED_TOOL_TEXT = "Execução da ferramenta '{tool}' bloqueada pelo callback {hook}."

MODEL_CALL_LIMIT_SUFFIX = "[Limite de chamadas ao modelo atingido ({limit}).]"
TOOL_ITERATION_LIMIT_SUFFIX = "[Limite de iterações de ferramentas atingido ({limit}).]"
TOOL_ITERATION_LIMIT_TEXT = (
    "Limite de iterações de ferramentas ({limit}) atingido; a chamada não foi executada."
)

CAPABILITY_MISMATCH_TEXT = (
    "O modelo '{model}' não suporta o uso de ferramentas; as chamadas solicitadas "
    "({tools}) não foram executadas."
)
