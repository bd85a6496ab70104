"""
Conversation Turn Loop - bounded tool-calling state machine

Handles one user message end to end:

    PREPARING -> CALLING_MODEL -> INSPECTING_RESPONSE
        -> [EXECUTING_TOOLS -> CALLING_MODEL]*
        -> DONE | LIMIT_REACHED | BLOCKED   (FAILED on a fatal model error)

1. PREPARING: bound the history, screen the combined prompt with the
   guardrail, run the beforeModel callback, build the initial messages and
   resolve the agent's tools against the registry.
2. CALLING_MODEL: enforce the model-call ceiling, then serve the request from
   the response cache or call the model provider.
3. INSPECTING_RESPONSE: extract text and tool requests from the top
   candidate; handle capability mismatches and forced tool usage.
4. EXECUTING_TOOLS: enforce the tool-iteration ceiling, then run each request
   in order through callbacks, guardrail, lookup, validation and invocation.
   Every request gets exactly one result.

Tool-level problems never raise; they become ``ToolFailure`` results the
model can see. Only a failing model call (or an unexpected internal error)
ends the turn early, and even then the partial trace and tool results are
returned.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from typing import Any

import structlog
from pydantic import ValidationError

from agentdesk.core.domain.callbacks import CallbackSimulator
from agentdesk.core.domain.errors import ModelInvocationError, ToolErrorCode
from agentdesk.core.domain.forced_tool_call import ForcedToolCallStrategy
from agentdesk.core.domain.guardrails import GuardrailFilter, serialize_tool_input
from agentdesk.core.domain.models import (
    ConversationMessage,
    GeneratedArtifact,
    MediaPart,
    ModelRequest,
    ModelResponse,
    Role,
    TextPart,
    ToolCallRequest,
    ToolCallResult,
    ToolRequestPart,
    ToolResponsePart,
    ToolSpec,
    ToolSuccess,
    TurnRequest,
    TurnResult,
    TurnState,
    tool_failure,
)
from agentdesk.core.domain.trace import ExecutionTraceBuilder
from agentdesk.core.interfaces.llm import ModelProviderProtocol
from agentdesk.core.prompts.chat_prompts import (
    CALLBACK_BLOCKED_ANSWER_TEXT,
    CALLBACK_BLOCKED_PROMPT_TEXT,
    CALLBACK_BLOCKED_TOOL_TEXT,
    CAPABILITY_MISMATCH_TEXT,
    DEFAULT_SYSTEM_PROMPT,
    MODEL_CALL_LIMIT_SUFFIX,
    SAFE_REPLACEMENT_TEXT,
    TOOL_ITERATION_LIMIT_SUFFIX,
    TOOL_ITERATION_LIMIT_TEXT,
    UNSAFE_RESPONSE_SENTINEL,
)

DEFAULT_HISTORY_LIMIT = 10


@dataclass
class _TurnContext:
    """Mutable per-turn bookkeeping."""

    request: TurnRequest
    trace: ExecutionTraceBuilder
    callbacks: CallbackSimulator
    messages: list[ConversationMessage] = field(default_factory=list)
    tools: dict[str, Any] = field(default_factory=dict)
    offered_tools: tuple[ToolSpec, ...] = ()
    supports_tools: bool = True
    tool_requests: list[ToolCallRequest] = field(default_factory=list)
    tool_results: list[ToolCallResult] = field(default_factory=list)
    texts: list[str] = field(default_factory=list)
    model_calls: int = 0
    tool_iterations: int = 0
    ref_counter: int = 0
    used_refs: set[str] = field(default_factory=set)

    def next_ref(self, tool_name: str) -> str:
        while True:
            self.ref_counter += 1
            ref = f"{tool_name}-{self.ref_counter}"
            if ref not in self.used_refs:
                self.used_refs.add(ref)
                return ref

    def claim_ref(self, tool_name: str, ref: str) -> str:
        """Keep ``ref`` if it is unused this turn, otherwise assign a fresh one."""
        if ref and ref not in self.used_refs:
            self.used_refs.add(ref)
            return ref
        return self.next_ref(tool_name)

    @property
    def accumulated_text(self) -> str:
        return "\n\n".join(text for text in self.texts if text)


def _media_content_type(uri: str) -> str | None:
    if not uri.startswith("data:"):
        return None
    header = uri[5:].split(",", 1)[0]
    return header.split(";", 1)[0] or None


def extract_artifact(results: list[ToolCallResult]) -> GeneratedArtifact | None:
    """Return the first file artifact found in a successful tool output."""
    for result in results:
        if not isinstance(result, ToolSuccess) or not isinstance(result.output, Mapping):
            continue
        output = result.output
        file_name = output.get("fileName") or output.get("file_name")
        file_type = output.get("fileType") or output.get("file_type")
        data_uri = output.get("fileDataUri") or output.get("file_data_uri")
        url = output.get("fileUrl") or output.get("file_url")
        if file_name and file_type and (data_uri or url):
            return GeneratedArtifact(
                file_name=file_name,
                file_type=file_type,
                file_data_uri=data_uri,
                file_url=url if not data_uri else None,
            )
    return None


class ConversationTurnLoop:
    """
    Default orchestration strategy: a bounded loop of model calls and tool
    batches.

    Collaborators are injected; the loop itself keeps no state between
    turns. The response cache, if given, is the only shared state.
    """

    def __init__(
        self,
        model_provider: ModelProviderProtocol,
        tool_registry,
        response_cache=None,
        guardrail: GuardrailFilter | None = None,
        history_limit: int = DEFAULT_HISTORY_LIMIT,
        forced_tool_strategy: ForcedToolCallStrategy | None = None,
        default_system_prompt: str = DEFAULT_SYSTEM_PROMPT,
    ):
        """
        Args:
            model_provider: Generative model service
            tool_registry: Immutable ``ToolRegistry``
            response_cache: Optional ``ResponseCache`` shared across turns
            guardrail: Keyword filter (defaults to the built-in keyword list)
            history_limit: Number of most recent history messages kept
            forced_tool_strategy: Test aid used when ``force_tool_usage`` is set
            default_system_prompt: Used when the request has no system prompt
        """
        self.model_provider = model_provider
        self.tool_registry = tool_registry
        self.response_cache = response_cache
        self.guardrail = guardrail or GuardrailFilter()
        self.history_limit = history_limit
        self.forced_tool_strategy = forced_tool_strategy or ForcedToolCallStrategy()
        self.default_system_prompt = default_system_prompt
        self.logger = structlog.get_logger().bind(component="turn_loop")

    # ------------------------------------------------------------------
    # Entry point
    # ------------------------------------------------------------------

    async def run(self, request: TurnRequest, trace: ExecutionTraceBuilder | None = None) -> TurnResult:
        """
        Handle one user message.

        Args:
            request: The turn request
            trace: Builder to append events to (a new one by default)

        Returns:
            TurnResult in a terminal state. Never raises; unexpected errors
            end the turn in FAILED with the partial trace.
        """
        trace = trace if trace is not None else ExecutionTraceBuilder()
        ctx = _TurnContext(
            request=request,
            trace=trace,
            callbacks=CallbackSimulator(request.callbacks, trace),
        )
        self.logger.info(
            "turn.execution.started",
            agent_id=request.agent_id,
            model=request.model,
            history_messages=len(request.history),
            enabled_tools=len(request.enabled_tools),
        )

        try:
            blocked = self._prepare(ctx)
            if blocked is not None:
                return blocked
            return await self._loop(ctx)
        except ModelInvocationError as e:
            self.logger.error(
                "turn.execution.failed",
                agent_id=request.agent_id,
                model=request.model,
                error=str(e),
                error_type=e.error_type,
            )
            trace.fatal_error(str(e), e.error_type)
            return self._finish(ctx, TurnState.FAILED, None, error=str(e))
        except Exception as e:
            error_type = type(e).__name__
            self.logger.exception(
                "turn.execution.failed",
                agent_id=request.agent_id,
                model=request.model,
                error=str(e),
                error_type=error_type,
            )
            trace.fatal_error(str(e), error_type)
            return self._finish(ctx, TurnState.FAILED, None, error=f"{error_type}: {e}")

    # ------------------------------------------------------------------
    # PREPARING
    # ------------------------------------------------------------------

    def _bounded_history(self, history: list[ConversationMessage]) -> list[ConversationMessage]:
        if self.history_limit <= 0:
            return []
        return list(history)[-self.history_limit:]

    def _prepare(self, ctx: _TurnContext) -> TurnResult | None:
        """Build the initial conversation. Returns a result if the turn is blocked."""
        request = ctx.request
        history = self._bounded_history(request.history)
        system_prompt = request.system_prompt or self.default_system_prompt

        combined = "\n".join(
            text for text in (system_prompt, *(m.text for m in history), request.user_message) if text
        )
        verdict = self.guardrail.screen_text(combined)
        if verdict.blocked:
            message = self.guardrail.prompt_blocked_message(verdict.matched_term)
            ctx.trace.prompt_blocked(verdict.matched_term, message)
            return self._finish(ctx, TurnState.BLOCKED, message, error=message)

        user_text = request.user_message
        outcome = ctx.callbacks.before_model(user_text)
        if outcome is not None and outcome.blocked:
            return self._finish(ctx, TurnState.BLOCKED, CALLBACK_BLOCKED_PROMPT_TEXT)
        if outcome is not None and outcome.modified:
            user_text = outcome.payload

        if system_prompt:
            ctx.messages.append(ConversationMessage.from_text(Role.SYSTEM, system_prompt))
        ctx.messages.extend(history)

        user_parts: list[Any] = [TextPart(user_text)]
        if request.file_data_uri:
            user_parts.append(
                MediaPart(url=request.file_data_uri, content_type=_media_content_type(request.file_data_uri))
            )
        ctx.messages.append(ConversationMessage(role=Role.USER, content=tuple(user_parts)))

        ctx.tools = self.tool_registry.resolve(request.enabled_tools)
        ctx.supports_tools = self.model_provider.supports_tools(request.model)
        if ctx.supports_tools:
            ctx.offered_tools = tuple(d.to_spec() for d in ctx.tools.values() if d.executable)
        return None

    # ------------------------------------------------------------------
    # CALLING_MODEL / INSPECTING_RESPONSE / EXECUTING_TOOLS
    # ------------------------------------------------------------------

    async def _call_model(self, ctx: _TurnContext, model_request: ModelRequest) -> tuple[ModelResponse, str | None, bool]:
        """Return (response, cache key, served from cache)."""
        cache_key = None
        if self.response_cache is not None:
            cache_key = self.response_cache.make_key(model_request)
            cached = self.response_cache.get(cache_key)
            if cached is not None:
                self.logger.info("cache_hit", model=model_request.model)
                ctx.trace.cache_hit(model_request.model)
                return cached, cache_key, True

        try:
            response = await self.model_provider.generate(model_request)
        except ModelInvocationError:
            raise
        except Exception as e:
            raise ModelInvocationError(str(e), model=model_request.model, error_type=type(e).__name__) from e
        return response, cache_key, False

    def _with_refs(self, ctx: _TurnContext, message: ConversationMessage) -> ConversationMessage:
        """Give every tool request a correlation ref that is unique within the turn."""
        if not any(isinstance(p, ToolRequestPart) for p in message.content):
            return message
        parts = []
        for part in message.content:
            if isinstance(part, ToolRequestPart):
                ref = ctx.claim_ref(part.request.tool_name, part.request.ref)
                if ref != part.request.ref:
                    part = ToolRequestPart(replace(part.request, ref=ref))
            parts.append(part)
        return replace(message, content=tuple(parts))

    async def _loop(self, ctx: _TurnContext) -> TurnResult:
        request = ctx.request
        limits = request.run_limits

        while True:
            if ctx.model_calls >= limits.max_model_calls:
                self.logger.warning("model_call_limit_reached", limit=limits.max_model_calls)
                ctx.trace.limit_reached("maxModelCalls", limits.max_model_calls)
                suffix = MODEL_CALL_LIMIT_SUFFIX.format(limit=limits.max_model_calls)
                return self._finish_limited(ctx, suffix)

            ctx.model_calls += 1
            self.logger.info("loop_step", step=ctx.model_calls, messages=len(ctx.messages))
            model_request = ModelRequest(
                model=request.model,
                messages=tuple(ctx.messages),
                tools=ctx.offered_tools,
                sampling=request.sampling,
            )
            response, cache_key, from_cache = await self._call_model(ctx, model_request)

            candidate = response.top_candidate
            if candidate is None:
                message = ConversationMessage(role=Role.MODEL, content=())
                finish_reason = None
            else:
                message = self._with_refs(ctx, candidate.message)
                finish_reason = candidate.finish_reason
            text = message.text
            requests = message.tool_requests
            if text:
                ctx.texts.append(text)

            if requests and not ctx.supports_tools:
                return self._capability_mismatch(ctx, text, requests)

            if cache_key is not None and not from_cache:
                self.response_cache.put(cache_key, response)

            if (
                not requests
                and request.force_tool_usage
                and finish_reason != "stop"
                and not ctx.tool_results
                and ctx.offered_tools
            ):
                forced = self.forced_tool_strategy.fabricate(
                    list(ctx.offered_tools),
                    request.user_message,
                    ctx.next_ref(ctx.offered_tools[0].name),
                )
                if forced is not None:
                    ctx.trace.forced_tool_call(forced)
                    message = replace(message, content=(*message.content, ToolRequestPart(forced)))
                    requests = [forced]

            if not requests:
                self.logger.info("final_answer_received", step=ctx.model_calls)
                return self._finish(ctx, TurnState.DONE, self._finalize_answer(ctx, text))

            self.logger.info(
                "tool_calls_received",
                step=ctx.model_calls,
                count=len(requests),
                tools=[r.tool_name for r in requests],
            )
            ctx.tool_requests.extend(requests)
            ctx.messages.append(message)

            if ctx.tool_iterations >= limits.max_tool_iterations:
                return self._tool_limit_reached(ctx, requests)

            ctx.tool_iterations += 1
            results = [await self._execute_tool_call(ctx, tool_request) for tool_request in requests]
            ctx.tool_results.extend(results)
            ctx.messages.append(
                ConversationMessage(
                    role=Role.TOOL,
                    content=tuple(ToolResponsePart(result) for result in results),
                )
            )

    async def _execute_tool_call(self, ctx: _TurnContext, request: ToolCallRequest) -> ToolCallResult:
        """Run one tool request through the full pipeline. Always returns a result."""
        trace = ctx.trace
        trace.tool_pending(request)

        outcome, tool_input = ctx.callbacks.before_tool(request)
        if outcome is not None and outcome.blocked:
            result = tool_failure(
                request,
                ToolErrorCode.CALLBACK_BLOCKED_TOOL_EXECUTION,
                CALLBACK_BLOCKED_TOOL_TEXT.format(tool=request.tool_name, hook="beforeTool"),
            )
            trace.tool_error(result, title=f"Callback: Ferramenta {request.tool_name} Bloqueada")
            return result
        if tool_input is not request.input:
            request = replace(request, input=tool_input)

        verdict = self.guardrail.screen_tool_input(serialize_tool_input(request.input))
        if verdict.blocked:
            result = tool_failure(
                request,
                ToolErrorCode.GUARDRAIL_TOOL_BLOCKED,
                self.guardrail.tool_blocked_message(request.tool_name, verdict.matched_term),
                details={"matchedTerm": verdict.matched_term},
            )
            trace.tool_blocked(result, verdict.matched_term)
            return result

        descriptor = ctx.tools.get(request.tool_name)
        if descriptor is None:
            result = tool_failure(
                request,
                ToolErrorCode.TOOL_NOT_FOUND,
                f"Ferramenta '{request.tool_name}' não encontrada.",
            )
            trace.tool_error(result)
            return result

        if not descriptor.executable:
            result = tool_failure(
                request,
                ToolErrorCode.TOOL_NOT_EXECUTABLE,
                f"Ferramenta '{request.tool_name}' está desabilitada ou não é executável.",
            )
            trace.tool_error(result)
            return result

        try:
            validated = descriptor.validate_input(request.input)
        except ValidationError as e:
            result = tool_failure(
                request,
                ToolErrorCode.INPUT_VALIDATION_ERROR,
                f"Entrada inválida para a ferramenta '{request.tool_name}'.",
                details=e.errors(include_url=False, include_context=False),
            )
            trace.tool_error(result)
            return result

        try:
            self.logger.info("tool_execute", tool=request.tool_name, args_keys=list(validated.keys()))
            output = await descriptor.invoke(**validated)
        except Exception as e:
            self.logger.error(
                "tool_exception",
                tool=request.tool_name,
                error=str(e),
                error_type=type(e).__name__,
            )
            result = tool_failure(
                request,
                ToolErrorCode.TOOL_EXECUTION_FAILED,
                str(e) or type(e).__name__,
                details={"errorType": type(e).__name__},
            )
            trace.tool_error(result)
            return result

        outcome, output = ctx.callbacks.after_tool(request.tool_name, output)
        if outcome is not None and outcome.blocked:
            result = tool_failure(
                request,
                ToolErrorCode.CALLBACK_BLOCKED_TOOL_EXECUTION,
                CALLBACK_BLOCKED_TOOL_TEXT.format(tool=request.tool_name, hook="afterTool"),
            )
            trace.tool_error(result, title=f"Callback: Ferramenta {request.tool_name} Bloqueada")
            return result

        self.logger.info("tool_complete", tool=request.tool_name)
        result = ToolSuccess(
            tool_name=request.tool_name,
            input=request.input,
            ref=request.ref,
            output=output,
        )
        trace.tool_success(result)
        return result

    # ------------------------------------------------------------------
    # Terminal transitions
    # ------------------------------------------------------------------

    def _capability_mismatch(
        self,
        ctx: _TurnContext,
        text: str,
        requests: list[ToolCallRequest],
    ) -> TurnResult:
        model = ctx.request.model
        tool_names = [r.tool_name for r in requests]
        self.logger.warning("model_capability_mismatch", model=model, tools=tool_names)
        ctx.trace.capability_mismatch(model, tool_names)

        explanation = CAPABILITY_MISMATCH_TEXT.format(model=model, tools=", ".join(tool_names))
        ctx.tool_requests.extend(requests)
        for request in requests:
            ctx.tool_results.append(
                tool_failure(request, ToolErrorCode.MODEL_CAPABILITY_MISMATCH, explanation)
            )
        output = f"{text}\n\n{explanation}" if text else explanation
        return self._finish(ctx, TurnState.DONE, self._finalize_answer(ctx, output))

    def _tool_limit_reached(self, ctx: _TurnContext, requests: list[ToolCallRequest]) -> TurnResult:
        limit = ctx.request.run_limits.max_tool_iterations
        self.logger.warning("tool_iteration_limit_reached", limit=limit)
        message = TOOL_ITERATION_LIMIT_TEXT.format(limit=limit)
        for request in requests:
            result = tool_failure(request, ToolErrorCode.TOOL_ITERATION_LIMIT, message)
            ctx.trace.tool_error(result)
            ctx.tool_results.append(result)
        ctx.trace.limit_reached("maxToolIterations", limit)
        return self._finish_limited(ctx, TOOL_ITERATION_LIMIT_SUFFIX.format(limit=limit))

    def _finish_limited(self, ctx: _TurnContext, suffix: str) -> TurnResult:
        accumulated = ctx.accumulated_text
        output = f"{accumulated}\n\n{suffix}" if accumulated else suffix
        return self._finish(ctx, TurnState.LIMIT_REACHED, self._apply_safety_check(ctx, output))

    def _finalize_answer(self, ctx: _TurnContext, text: str) -> str:
        """Run the afterModel callback and the safety check on the final text."""
        outcome = ctx.callbacks.after_model(text)
        if outcome is not None and outcome.blocked:
            text = CALLBACK_BLOCKED_ANSWER_TEXT
        elif outcome is not None and outcome.modified:
            text = outcome.payload
        return self._apply_safety_check(ctx, text)

    def _apply_safety_check(self, ctx: _TurnContext, text: str) -> str:
        if UNSAFE_RESPONSE_SENTINEL in text.lower():
            self.logger.warning("unsafe_response_replaced")
            ctx.trace.safety_override(text, SAFE_REPLACEMENT_TEXT)
            return SAFE_REPLACEMENT_TEXT
        return text

    def _finish(
        self,
        ctx: _TurnContext,
        state: TurnState,
        output_text: str | None,
        error: str | None = None,
    ) -> TurnResult:
        result = TurnResult(
            state=state,
            output_text=output_text,
            tool_requests=list(ctx.tool_requests),
            tool_results=list(ctx.tool_results),
            execution_trace=ctx.trace.events,
            error=error,
            generated_artifact=extract_artifact(ctx.tool_results),
            model_calls=ctx.model_calls,
        )
        self.logger.info(
            "turn.execution.completed",
            agent_id=ctx.request.agent_id,
            state=state.value,
            model_calls=ctx.model_calls,
            tool_calls=len(ctx.tool_results),
            events=len(result.execution_trace),
        )
        return result
