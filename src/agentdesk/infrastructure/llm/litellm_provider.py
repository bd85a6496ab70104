"""
LiteLLM Model Provider

Adapter implementing ``ModelProviderProtocol`` on top of ``litellm``. It
resolves model aliases, maps sampling parameters to litellm keyword
arguments, converts the conversation to OpenAI format and the completion back
into a ``ModelResponse``.

Failures are raised as ``ModelInvocationError``. There are no automatic
retries: a failed call ends the turn.
"""

import time
from typing import Any

import litellm
import structlog

from agentdesk.core.domain.errors import ModelInvocationError
from agentdesk.core.domain.models import ModelRequest, ModelResponse, SamplingParams
from agentdesk.infrastructure.llm.message_converter import (
    messages_to_openai_format,
    response_to_model_response,
    tool_specs_to_openai_format,
)


class LiteLLMProvider:
    """Model provider backed by ``litellm.acompletion``."""

    def __init__(
        self,
        default_model: str = "gpt-4o-mini",
        models: dict[str, str] | None = None,
        timeout: int = 60,
        models_without_tools: list[str] | None = None,
    ):
        """
        Args:
            default_model: Model used when a request carries an empty model id
            models: Alias -> provider model name mapping
            timeout: Per-call timeout in seconds passed to litellm
            models_without_tools: Models known not to support tool calling
        """
        self.default_model = default_model
        self.models = dict(models or {})
        self.timeout = timeout
        self.models_without_tools = set(models_without_tools or [])
        self.logger = structlog.get_logger().bind(component="litellm_provider")

    def _resolve_model(self, model_alias: str | None) -> str:
        alias = model_alias or self.default_model
        return self.models.get(alias, alias)

    @staticmethod
    def _map_sampling(sampling: SamplingParams) -> dict[str, Any]:
        params: dict[str, Any] = {}
        if sampling.temperature is not None:
            params["temperature"] = sampling.temperature
        if sampling.top_p is not None:
            params["top_p"] = sampling.top_p
        if sampling.top_k is not None:
            params["top_k"] = sampling.top_k
        if sampling.max_output_tokens is not None:
            params["max_tokens"] = sampling.max_output_tokens
        if sampling.stop_sequences:
            params["stop"] = list(sampling.stop_sequences)
        return params

    def supports_tools(self, model: str) -> bool:
        """
        Return True if ``model`` accepts tool definitions.

        Models listed in ``models_without_tools`` (by alias or resolved name)
        never do. Otherwise litellm's model map decides; unknown models are
        assumed to support tools.
        """
        actual_model = self._resolve_model(model)
        if model in self.models_without_tools or actual_model in self.models_without_tools:
            return False
        try:
            return bool(litellm.supports_function_calling(model=actual_model))
        except Exception as e:
            self.logger.debug(
                "function_calling_support_unknown",
                model=actual_model,
                error_type=type(e).__name__,
            )
            return True

    async def generate(self, request: ModelRequest) -> ModelResponse:
        actual_model = self._resolve_model(request.model)
        messages = messages_to_openai_format(request.messages)
        params = self._map_sampling(request.sampling)
        if request.tools:
            params["tools"] = tool_specs_to_openai_format(request.tools)
            params["tool_choice"] = "auto"

        start_time = time.time()
        self.logger.info(
            "llm_completion_started",
            model=actual_model,
            message_count=len(messages),
            tool_count=len(request.tools),
        )

        try:
            response = await litellm.acompletion(
                model=actual_model,
                messages=messages,
                timeout=self.timeout,
                **params,
            )
        except Exception as e:
            error_type = type(e).__name__
            self.logger.error(
                "llm_completion_failed",
                model=actual_model,
                error_type=error_type,
                error=str(e)[:200],
            )
            raise ModelInvocationError(str(e), model=actual_model, error_type=error_type) from e

        model_response = response_to_model_response(response, actual_model)
        self.logger.info(
            "llm_completion_success",
            model=actual_model,
            tokens=model_response.usage.get("total_tokens", 0),
            latency_ms=int((time.time() - start_time) * 1000),
            candidates=len(model_response.candidates),
        )
        return model_response
