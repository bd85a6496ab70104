"""
Unit Tests for ConversationTurnLoop

Drives the loop with a mocked model provider and small in-process tools to
verify every terminal state, the tool pipeline and the trace it records.
"""

from unittest.mock import MagicMock

import pytest

from agentdesk.core.domain.errors import ModelInvocationError, ToolErrorCode
from agentdesk.core.domain.events import EventKind
from agentdesk.core.domain.models import (
    CallbackHookConfig,
    ConversationMessage,
    HookPoint,
    MediaPart,
    ModelResponse,
    Role,
    RunLimits,
    SamplingParams,
    ToolDetail,
    ToolFailure,
    ToolResponsePart,
    ToolSuccess,
    TurnState,
)
from agentdesk.core.domain.turn_loop import ConversationTurnLoop, extract_artifact
from agentdesk.core.prompts.chat_prompts import (
    CALLBACK_BLOCKED_ANSWER_TEXT,
    CALLBACK_BLOCKED_PROMPT_TEXT,
    DEFAULT_SYSTEM_PROMPT,
    SAFE_REPLACEMENT_TEXT,
    TOOL_ITERATION_LIMIT_SUFFIX,
)
from agentdesk.infrastructure.cache.response_cache import ResponseCache
from agentdesk.infrastructure.tools.native.file_writer import FileWriterTool
from agentdesk.infrastructure.tools.registry import ToolRegistry



class HistogramTool:
    """Returns counts keyed by bucket plus a string-keyed total."""

    id = "histogram"
    name = "histogram"
    description = "Counts values per bucket"
    input_model = None

    async def execute(self, **kwargs):
        return {1: 3, "total": 3}


@pytest.fixture
def registry(echo_tool, exploding_tool):
    return ToolRegistry.from_tools([echo_tool, exploding_tool, FileWriterTool()])


@pytest.fixture
def turn_loop(mock_model_provider, registry):
    return ConversationTurnLoop(model_provider=mock_model_provider, tool_registry=registry)


def _model_request(provider, call_index=0):
    return provider.generate.await_args_list[call_index].args[0]


class TestDirectAnswer:
    """Turns answered without tools."""

    @pytest.mark.asyncio
    async def test_plain_answer_is_done(self, turn_loop, mock_model_provider, make_request, make_response):
        """Test a text answer ends the turn in DONE after one model call."""
        mock_model_provider.generate.return_value = make_response("Olá! Como posso ajudar?")

        result = await turn_loop.run(make_request())

        assert result.state == TurnState.DONE
        assert result.output_text == "Olá! Como posso ajudar?"
        assert result.model_calls == 1
        assert result.tool_requests == []
        assert result.tool_results == []
        assert result.error is None

    @pytest.mark.asyncio
    async def test_initial_messages_use_default_system_prompt(
        self, turn_loop, mock_model_provider, make_request, make_response
    ):
        """Test the model receives system prompt then user message."""
        mock_model_provider.generate.return_value = make_response("ok")

        await turn_loop.run(make_request("Qual a capital da França?"))

        model_request = _model_request(mock_model_provider)
        assert model_request.model == "test-model"
        assert model_request.messages[0].role == Role.SYSTEM
        assert model_request.messages[0].text == DEFAULT_SYSTEM_PROMPT
        assert model_request.messages[-1].role == Role.USER
        assert model_request.messages[-1].text == "Qual a capital da França?"
        assert model_request.tools == ()

    @pytest.mark.asyncio
    async def test_history_is_truncated_to_limit(self, mock_model_provider, registry, make_request, make_response):
        """Test only the most recent history messages reach the model."""
        loop = ConversationTurnLoop(mock_model_provider, registry, history_limit=3)
        history = [ConversationMessage.from_text(Role.USER, f"mensagem {i}") for i in range(15)]
        mock_model_provider.generate.return_value = make_response("ok")

        await loop.run(make_request(history=history, system_prompt="Seja breve."))

        messages = _model_request(mock_model_provider).messages
        assert len(messages) == 5
        assert messages[0].text == "Seja breve."
        assert [m.text for m in messages[1:4]] == ["mensagem 12", "mensagem 13", "mensagem 14"]

    @pytest.mark.asyncio
    async def test_media_attachment_is_added_to_user_message(
        self, turn_loop, mock_model_provider, make_request, make_response
    ):
        """Test a data URI attachment becomes a media part with its content type."""
        mock_model_provider.generate.return_value = make_response("Vejo um gato.")

        await turn_loop.run(make_request("O que há na imagem?", file_data_uri="data:image/png;base64,AAAA"))

        user_message = _model_request(mock_model_provider).messages[-1]
        media = [part for part in user_message.content if isinstance(part, MediaPart)]
        assert len(media) == 1
        assert media[0].content_type == "image/png"

    @pytest.mark.asyncio
    async def test_response_without_candidates_is_empty_answer(
        self, turn_loop, mock_model_provider, make_request
    ):
        """Test an empty response ends the turn with empty text."""
        mock_model_provider.generate.return_value = ModelResponse(candidates=[])

        result = await turn_loop.run(make_request())

        assert result.state == TurnState.DONE
        assert result.output_text == ""

    @pytest.mark.asyncio
    async def test_unsafe_answer_is_replaced(self, turn_loop, mock_model_provider, make_request, make_response):
        """Test the safety check replaces answers carrying the unsafe sentinel."""
        mock_model_provider.generate.return_value = make_response("Esta é uma Resposta Insegura.")

        result = await turn_loop.run(make_request())

        assert result.output_text == SAFE_REPLACEMENT_TEXT
        event = result.execution_trace[-1]
        assert event.kind == EventKind.AGENT_CONTROL
        assert event.title == "Alerta de Segurança Simulado"
        assert event.modified_data == SAFE_REPLACEMENT_TEXT


class TestToolExecution:
    """Tool requests flowing through the execution pipeline."""

    @pytest.mark.asyncio
    async def test_tool_call_then_answer(
        self, turn_loop, mock_model_provider, echo_tool, echo_detail, make_request, make_response
    ):
        """Test a tool request is executed and its result fed back to the model."""
        mock_model_provider.generate.side_effect = [
            make_response(tool_calls=[("echo", {"text": "oi"})]),
            make_response("O eco respondeu oi."),
        ]

        result = await turn_loop.run(make_request(enabled_tools=[echo_detail]))

        assert result.state == TurnState.DONE
        assert result.output_text == "O eco respondeu oi."
        assert result.model_calls == 2
        assert echo_tool.calls == [{"text": "oi"}]
        assert result.tool_requests[0].ref == "echo-1"
        assert isinstance(result.tool_results[0], ToolSuccess)
        assert result.tool_results[0].output == {"echo": "oi"}
        assert result.tool_results[0].ref == "echo-1"
        assert [e.kind for e in result.execution_trace] == [EventKind.TOOL_CALL_PENDING, EventKind.TOOL_CALL]

        first_request = _model_request(mock_model_provider, 0)
        assert [spec.name for spec in first_request.tools] == ["echo"]
        second_messages = _model_request(mock_model_provider, 1).messages
        assert second_messages[-2].role == Role.MODEL
        assert second_messages[-1].role == Role.TOOL
        assert isinstance(second_messages[-1].content[0], ToolResponsePart)

    @pytest.mark.asyncio
    async def test_multiple_requests_run_in_order(
        self, turn_loop, mock_model_provider, echo_tool, echo_detail, make_request, make_response
    ):
        """Test each request in one response gets its own result, in order."""
        mock_model_provider.generate.side_effect = [
            make_response(tool_calls=[("echo", {"text": "a"}), ("echo", {"text": "b"})]),
            make_response("pronto"),
        ]

        result = await turn_loop.run(make_request(enabled_tools=[echo_detail]))

        assert echo_tool.calls == [{"text": "a"}, {"text": "b"}]
        assert [r.ref for r in result.tool_results] == ["echo-1", "echo-2"]

    @pytest.mark.asyncio
    async def test_repeated_model_refs_are_reassigned(
        self, turn_loop, mock_model_provider, echo_detail, make_request, make_response
    ):
        """Test every result keeps a distinct correlation ref even if the model reuses one."""
        mock_model_provider.generate.side_effect = [
            make_response(tool_calls=[("echo", {"text": "a"}, "tool-ref-1")]),
            make_response(tool_calls=[("echo", {"text": "b"}, "tool-ref-1")]),
            make_response("fim"),
        ]

        result = await turn_loop.run(make_request(enabled_tools=[echo_detail]))

        refs = [r.ref for r in result.tool_results]
        assert refs[0] == "tool-ref-1"
        assert len(set(refs)) == len(refs) == 2
        assert [r.ref for r in result.tool_requests] == refs

    @pytest.mark.asyncio
    async def test_unknown_tool_yields_not_found(
        self, turn_loop, mock_model_provider, echo_detail, make_request, make_response
    ):
        """Test a request for a tool outside the agent's set fails with TOOL_NOT_FOUND."""
        mock_model_provider.generate.side_effect = [
            make_response(tool_calls=[("weather", {"city": "Lisboa"})]),
            make_response("Não consegui."),
        ]

        result = await turn_loop.run(make_request(enabled_tools=[echo_detail]))

        failure = result.tool_results[0]
        assert isinstance(failure, ToolFailure)
        assert failure.error.code == ToolErrorCode.TOOL_NOT_FOUND
        assert result.execution_trace[-1].kind == EventKind.TOOL_ERROR
        assert result.state == TurnState.DONE

        fed_back = _model_request(mock_model_provider, 1).messages[-1]
        assert fed_back.role == Role.TOOL
        assert fed_back.content[0].result == failure

    @pytest.mark.asyncio
    async def test_disabled_tool_is_not_offered_and_not_executable(
        self, turn_loop, mock_model_provider, echo_tool, make_request, make_response
    ):
        """Test a disabled tool is hidden from the model and rejected if requested."""
        mock_model_provider.generate.side_effect = [
            make_response(tool_calls=[("echo", {"text": "oi"})]),
            make_response("ok"),
        ]
        disabled = ToolDetail(id="echo", name="echo", enabled=False)

        result = await turn_loop.run(make_request(enabled_tools=[disabled]))

        assert _model_request(mock_model_provider).tools == ()
        assert result.tool_results[0].error.code == ToolErrorCode.TOOL_NOT_EXECUTABLE
        assert echo_tool.calls == []

    @pytest.mark.asyncio
    async def test_invalid_input_yields_validation_error(
        self, turn_loop, mock_model_provider, echo_tool, echo_detail, make_request, make_response
    ):
        """Test schema-violating input never reaches the tool."""
        mock_model_provider.generate.side_effect = [
            make_response(tool_calls=[("echo", {"wrong": 1})]),
            make_response("ok"),
        ]

        result = await turn_loop.run(make_request(enabled_tools=[echo_detail]))

        failure = result.tool_results[0]
        assert failure.error.code == ToolErrorCode.INPUT_VALIDATION_ERROR
        assert isinstance(failure.error.details, list)
        assert failure.error.details[0]["loc"] == ("text",)
        assert echo_tool.calls == []

    @pytest.mark.asyncio
    async def test_tool_exception_yields_execution_failed(
        self, turn_loop, mock_model_provider, make_request, make_response
    ):
        """Test an exception raised by a tool becomes TOOL_EXECUTION_FAILED."""
        mock_model_provider.generate.side_effect = [
            make_response(tool_calls=[("exploding", {})]),
            make_response("A ferramenta falhou."),
        ]

        result = await turn_loop.run(
            make_request(enabled_tools=[ToolDetail(id="exploding", name="exploding")])
        )

        failure = result.tool_results[0]
        assert failure.error.code == ToolErrorCode.TOOL_EXECUTION_FAILED
        assert failure.error.message == "boom"
        assert failure.error.details == {"errorType": "RuntimeError"}
        assert result.state == TurnState.DONE
        assert result.output_text == "A ferramenta falhou."

    @pytest.mark.asyncio
    async def test_file_artifact_is_exposed(self, turn_loop, mock_model_provider, make_request, make_response):
        """Test a file produced by a tool becomes the generated artifact."""
        mock_model_provider.generate.side_effect = [
            make_response(tool_calls=[("file_writer", {"file_name": "notas.txt", "content": "abc"})]),
            make_response("Arquivo criado."),
        ]

        result = await turn_loop.run(
            make_request(enabled_tools=[ToolDetail(id="file_writer", name="file_writer")])
        )

        artifact = result.generated_artifact
        assert artifact is not None
        assert artifact.file_name == "notas.txt"
        assert artifact.file_type == "text/plain"
        assert artifact.file_data_uri == "data:text/plain;base64,YWJj"
        assert result.to_dict()["generatedArtifact"]["fileName"] == "notas.txt"


class TestGuardrails:
    """Keyword guardrail applied to prompts and tool inputs."""

    @pytest.mark.asyncio
    async def test_sensitive_prompt_is_blocked_before_model(
        self, turn_loop, mock_model_provider, make_request
    ):
        """Test a sensitive user message blocks the turn without a model call."""
        result = await turn_loop.run(make_request("Por favor DROP TABLE usuarios"))

        assert result.state == TurnState.BLOCKED
        assert '"drop table"' in result.output_text
        assert result.error == result.output_text
        assert result.model_calls == 0
        mock_model_provider.generate.assert_not_awaited()
        assert result.execution_trace[0].title == "Guardrail: Prompt Bloqueado"

    @pytest.mark.asyncio
    async def test_sensitive_history_is_blocked(self, turn_loop, mock_model_provider, make_request):
        """Test the guardrail screens history as well as the user message."""
        history = [ConversationMessage.from_text(Role.USER, "execute rm -rf / agora")]

        result = await turn_loop.run(make_request("continue", history=history))

        assert result.state == TurnState.BLOCKED
        mock_model_provider.generate.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_sensitive_tool_input_is_blocked(
        self, turn_loop, mock_model_provider, echo_tool, echo_detail, make_request, make_response
    ):
        """Test a tool call with sensitive input fails without running the tool."""
        mock_model_provider.generate.side_effect = [
            make_response(tool_calls=[("echo", {"text": "please delete data now"})]),
            make_response("Entendido."),
        ]

        result = await turn_loop.run(make_request(enabled_tools=[echo_detail]))

        failure = result.tool_results[0]
        assert failure.error.code == ToolErrorCode.GUARDRAIL_TOOL_BLOCKED
        assert failure.error.details == {"matchedTerm": "delete data"}
        assert echo_tool.calls == []
        assert result.execution_trace[-1].title == "Guardrail: Ferramenta echo Bloqueada"

    @pytest.mark.asyncio
    async def test_blocked_tool_input_does_not_stop_sibling_calls(
        self, turn_loop, mock_model_provider, echo_tool, echo_detail, make_request, make_response
    ):
        """Test the next request in the same batch still runs after a guardrail block."""
        mock_model_provider.generate.side_effect = [
            make_response(tool_calls=[("echo", {"text": "delete data"}), ("echo", {"text": "seguro"})]),
            make_response("ok"),
        ]

        result = await turn_loop.run(make_request(enabled_tools=[echo_detail]))

        assert echo_tool.calls == [{"text": "seguro"}]
        assert [r.status for r in result.tool_results] == ["error", "success"]


class TestLimits:
    """Model-call and tool-iteration ceilings."""

    @pytest.mark.asyncio
    async def test_model_call_limit(
        self, turn_loop, mock_model_provider, echo_detail, make_request, make_response
    ):
        """Test the turn stops at the model-call ceiling with accumulated text."""
        mock_model_provider.generate.return_value = make_response(
            "pensando", tool_calls=[("echo", {"text": "x"})]
        )

        result = await turn_loop.run(
            make_request(
                enabled_tools=[echo_detail],
                run_limits=RunLimits(max_tool_iterations=10, max_model_calls=2),
            )
        )

        assert result.state == TurnState.LIMIT_REACHED
        assert result.model_calls == 2
        assert mock_model_provider.generate.await_count == 2
        assert result.output_text == (
            "pensando\n\npensando\n\n[Limite de chamadas ao modelo atingido (2).]"
        )
        assert len(result.tool_results) == 2
        assert result.execution_trace[-1].title == "Limite Atingido"

    @pytest.mark.asyncio
    async def test_tool_iteration_limit(
        self, turn_loop, mock_model_provider, echo_tool, echo_detail, make_request, make_response
    ):
        """Test requests beyond the iteration ceiling get TOOL_ITERATION_LIMIT results."""
        mock_model_provider.generate.return_value = make_response(tool_calls=[("echo", {"text": "x"})])

        result = await turn_loop.run(
            make_request(
                enabled_tools=[echo_detail],
                run_limits=RunLimits(max_tool_iterations=1, max_model_calls=6),
            )
        )

        assert result.state == TurnState.LIMIT_REACHED
        assert len(echo_tool.calls) == 1
        assert len(result.tool_requests) == 2
        assert len(result.tool_results) == 2
        assert result.tool_results[1].error.code == ToolErrorCode.TOOL_ITERATION_LIMIT
        assert result.output_text == TOOL_ITERATION_LIMIT_SUFFIX.format(limit=1)

    @pytest.mark.asyncio
    async def test_zero_tool_iterations_never_runs_tools(
        self, turn_loop, mock_model_provider, echo_tool, echo_detail, make_request, make_response
    ):
        """Test a ceiling of zero rejects the very first tool batch."""
        mock_model_provider.generate.return_value = make_response(tool_calls=[("echo", {"text": "x"})])

        result = await turn_loop.run(
            make_request(enabled_tools=[echo_detail], run_limits=RunLimits(max_tool_iterations=0))
        )

        assert result.state == TurnState.LIMIT_REACHED
        assert result.model_calls == 1
        assert echo_tool.calls == []


class TestModelCapabilities:
    """Models without tool support and forced tool usage."""

    @pytest.mark.asyncio
    async def test_capability_mismatch(
        self, mock_model_provider, registry, echo_tool, echo_detail, make_request, make_response
    ):
        """Test tool requests from a model without tool support are not executed."""
        cache = ResponseCache()
        loop = ConversationTurnLoop(mock_model_provider, registry, response_cache=cache)
        mock_model_provider.supports_tools.return_value = False
        mock_model_provider.generate.return_value = make_response(tool_calls=[("echo", {"text": "x"})])

        result = await loop.run(make_request(enabled_tools=[echo_detail]))

        assert result.state == TurnState.DONE
        assert _model_request(mock_model_provider).tools == ()
        assert result.tool_results[0].error.code == ToolErrorCode.MODEL_CAPABILITY_MISMATCH
        assert "test-model" in result.output_text
        assert echo_tool.calls == []
        assert len(cache) == 0

    @pytest.mark.asyncio
    async def test_forced_tool_call(
        self, turn_loop, mock_model_provider, echo_tool, echo_detail, make_request, make_response
    ):
        """Test a tool call is fabricated when forcing is on and the model made none."""
        mock_model_provider.generate.side_effect = [
            make_response("Vou responder direto.", finish_reason="length"),
            make_response("Resultado final."),
        ]

        result = await turn_loop.run(
            make_request("repita isto", enabled_tools=[echo_detail], force_tool_usage=True)
        )

        assert echo_tool.calls == [{"text": "repita isto"}]
        assert result.tool_requests[0].ref == "echo-1"
        assert result.output_text == "Resultado final."
        assert result.execution_trace[0].title == "Uso de Ferramenta Forçado"

    @pytest.mark.asyncio
    async def test_forced_tool_call_skipped_on_stop(
        self, turn_loop, mock_model_provider, echo_tool, echo_detail, make_request, make_response
    ):
        """Test a response that finished with 'stop' is never forced."""
        mock_model_provider.generate.return_value = make_response("Resposta.", finish_reason="stop")

        result = await turn_loop.run(make_request(enabled_tools=[echo_detail], force_tool_usage=True))

        assert result.output_text == "Resposta."
        assert echo_tool.calls == []


class TestFailures:
    """Fatal model errors."""

    @pytest.mark.asyncio
    async def test_model_error_fails_turn_with_partial_trace(
        self, turn_loop, mock_model_provider, echo_detail, make_request, make_response
    ):
        """Test a model failure after a tool batch keeps the work done so far."""
        mock_model_provider.generate.side_effect = [
            make_response(tool_calls=[("echo", {"text": "x"})]),
            ModelInvocationError("quota exceeded", model="test-model", error_type="RateLimitError"),
        ]

        result = await turn_loop.run(make_request(enabled_tools=[echo_detail]))

        assert result.state == TurnState.FAILED
        assert result.output_text is None
        assert result.error == "quota exceeded"
        assert len(result.tool_results) == 1
        assert result.execution_trace[-1].title == "Erro Fatal"
        assert result.execution_trace[-1].details == "RateLimitError: quota exceeded"

    @pytest.mark.asyncio
    async def test_unexpected_provider_exception_is_wrapped(
        self, turn_loop, mock_model_provider, make_request
    ):
        """Test arbitrary provider exceptions fail the turn instead of propagating."""
        mock_model_provider.generate.side_effect = ConnectionError("connection refused")

        result = await turn_loop.run(make_request())

        assert result.state == TurnState.FAILED
        assert result.error == "connection refused"
        assert result.model_calls == 1

    @pytest.mark.asyncio
    async def test_internal_error_keeps_tool_activity(
        self, mock_model_provider, registry, echo_detail, make_request, make_response
    ):
        """Test an unexpected error mid-turn still returns the trace and tool results."""
        cache = MagicMock()
        cache.make_key.side_effect = ["first-key", TypeError("unsortable key")]
        cache.get.return_value = None
        loop = ConversationTurnLoop(mock_model_provider, registry, response_cache=cache)
        mock_model_provider.generate.return_value = make_response(tool_calls=[("echo", {"text": "x"})])

        result = await loop.run(make_request(enabled_tools=[echo_detail]))

        assert result.state == TurnState.FAILED
        assert result.error == "TypeError: unsortable key"
        assert len(result.tool_requests) == len(result.tool_results) == 1
        assert result.execution_trace[-1].title == "Erro Fatal"


class TestResponseCache:
    """Cache integration."""

    @pytest.mark.asyncio
    async def test_identical_turn_is_served_from_cache(
        self, mock_model_provider, registry, make_request, make_response
    ):
        """Test a repeated identical request skips the provider but counts as a model call."""
        loop = ConversationTurnLoop(mock_model_provider, registry, response_cache=ResponseCache())
        mock_model_provider.generate.return_value = make_response("Paris.")

        first = await loop.run(make_request("Capital da França?"))
        second = await loop.run(make_request("Capital da França?"))

        assert mock_model_provider.generate.await_count == 1
        assert first.output_text == second.output_text == "Paris."
        assert second.model_calls == 1
        assert second.execution_trace[0].title == "Cache: Resposta Reutilizada"

    @pytest.mark.asyncio
    async def test_different_sampling_misses_cache(
        self, mock_model_provider, registry, make_request, make_response
    ):
        """Test any difference in the request produces a different cache key."""
        loop = ConversationTurnLoop(mock_model_provider, registry, response_cache=ResponseCache())
        mock_model_provider.generate.return_value = make_response("Paris.")

        await loop.run(make_request("Capital da França?"))
        await loop.run(make_request("Capital da França?", sampling=SamplingParams(temperature=0.2)))

        assert mock_model_provider.generate.await_count == 2

    @pytest.mark.asyncio
    async def test_tool_output_with_mixed_key_types(
        self, mock_model_provider, make_request, make_response
    ):
        """Test a tool output mixing int and str keys can still be keyed for the cache."""
        loop = ConversationTurnLoop(
            mock_model_provider,
            ToolRegistry.from_tools([HistogramTool()]),
            response_cache=ResponseCache(),
        )
        mock_model_provider.generate.side_effect = [
            make_response(tool_calls=[("histogram", {})]),
            make_response("done"),
        ]

        result = await loop.run(make_request(enabled_tools=[ToolDetail(id="histogram", name="histogram")]))

        assert result.state == TurnState.DONE
        assert result.tool_results[0].output == {1: 3, "total": 3}


def _hooks(**logic_ids):
    names = {
        "before_model": HookPoint.BEFORE_MODEL,
        "after_model": HookPoint.AFTER_MODEL,
        "before_tool": HookPoint.BEFORE_TOOL,
        "after_tool": HookPoint.AFTER_TOOL,
    }
    return {names[key]: CallbackHookConfig(logic_id=value, enabled=True) for key, value in logic_ids.items()}


class TestCallbacks:
    """Callback hooks wired into the loop."""

    @pytest.mark.asyncio
    async def test_before_model_block(self, turn_loop, mock_model_provider, make_request):
        """Test a blocking beforeModel callback ends the turn before any model call."""
        result = await turn_loop.run(
            make_request("meu segredo", callbacks=_hooks(before_model="block_if_contains:segredo"))
        )

        assert result.state == TurnState.BLOCKED
        assert result.output_text == CALLBACK_BLOCKED_PROMPT_TEXT
        mock_model_provider.generate.assert_not_awaited()
        assert result.execution_trace[0].kind == EventKind.CALLBACK_SIMULATION

    @pytest.mark.asyncio
    async def test_before_model_modifies_user_message(
        self, turn_loop, mock_model_provider, make_request, make_response
    ):
        """Test a modifying beforeModel callback changes what the model sees."""
        mock_model_provider.generate.return_value = make_response("ok")

        await turn_loop.run(make_request("Olá", callbacks=_hooks(before_model="append_suffix: por favor")))

        assert _model_request(mock_model_provider).messages[-1].text == "Olá por favor"

    @pytest.mark.asyncio
    async def test_after_model_replaces_word(self, turn_loop, mock_model_provider, make_request, make_response):
        """Test afterModel modifications apply to the final answer."""
        mock_model_provider.generate.return_value = make_response("Olá mundo")

        result = await turn_loop.run(make_request(callbacks=_hooks(after_model="replace_word:olá=Oi")))

        assert result.output_text == "Oi mundo"

    @pytest.mark.asyncio
    async def test_after_model_block(self, turn_loop, mock_model_provider, make_request, make_response):
        """Test a blocked answer is replaced by the fixed notice."""
        mock_model_provider.generate.return_value = make_response("o código secreto é 42")

        result = await turn_loop.run(make_request(callbacks=_hooks(after_model="block_if_contains:secreto")))

        assert result.state == TurnState.DONE
        assert result.output_text == CALLBACK_BLOCKED_ANSWER_TEXT

    @pytest.mark.asyncio
    async def test_before_tool_block(
        self, turn_loop, mock_model_provider, echo_tool, echo_detail, make_request, make_response
    ):
        """Test beforeTool blocking yields CALLBACK_BLOCKED_TOOL_EXECUTION."""
        mock_model_provider.generate.side_effect = [
            make_response(tool_calls=[("echo", {"text": "x"})]),
            make_response("ok"),
        ]

        result = await turn_loop.run(
            make_request(enabled_tools=[echo_detail], callbacks=_hooks(before_tool="block_tool:echo"))
        )

        assert result.tool_results[0].error.code == ToolErrorCode.CALLBACK_BLOCKED_TOOL_EXECUTION
        assert echo_tool.calls == []
        titles = [e.title for e in result.execution_trace]
        assert titles[-1] == "Callback: Ferramenta echo Bloqueada"

    @pytest.mark.asyncio
    async def test_before_tool_block_does_not_stop_sibling_calls(
        self, turn_loop, mock_model_provider, echo_tool, echo_detail, make_request, make_response
    ):
        """Test a call blocked by beforeTool leaves the rest of its batch running."""
        mock_model_provider.generate.side_effect = [
            make_response(tool_calls=[("exploding", {}), ("echo", {"text": "b"})]),
            make_response("ok"),
        ]

        result = await turn_loop.run(
            make_request(enabled_tools=[echo_detail], callbacks=_hooks(before_tool="block_tool:exploding"))
        )

        assert result.tool_results[0].error.code == ToolErrorCode.CALLBACK_BLOCKED_TOOL_EXECUTION
        assert echo_tool.calls == [{"text": "b"}]
        assert result.tool_results[1].status == "success"

    @pytest.mark.asyncio
    async def test_after_tool_modifies_output(
        self, turn_loop, mock_model_provider, echo_detail, make_request, make_response
    ):
        """Test afterTool modifications apply to string values of the output."""
        mock_model_provider.generate.side_effect = [
            make_response(tool_calls=[("echo", {"text": "oi"})]),
            make_response("ok"),
        ]

        result = await turn_loop.run(
            make_request(enabled_tools=[echo_detail], callbacks=_hooks(after_tool="append_suffix:!"))
        )

        assert result.tool_results[0].output == {"echo": "oi!"}

    @pytest.mark.asyncio
    async def test_disabled_hook_emits_nothing(self, turn_loop, mock_model_provider, make_request, make_response):
        """Test a configured but disabled hook is inert."""
        mock_model_provider.generate.return_value = make_response("ok")
        callbacks = {HookPoint.AFTER_MODEL: CallbackHookConfig(logic_id="log", enabled=False)}

        result = await turn_loop.run(make_request(callbacks=callbacks))

        assert result.execution_trace == []


class TestExtractArtifact:
    def test_ignores_failures_and_plain_outputs(self):
        """Test only successful mapping outputs with file fields count."""
        results = [
            ToolSuccess(tool_name="calc", input={}, ref="calc-1", output={"result": 4}),
            ToolSuccess(
                tool_name="upload",
                input={},
                ref="upload-2",
                output={"file_name": "a.pdf", "file_type": "application/pdf", "file_url": "https://x/a.pdf"},
            ),
        ]

        artifact = extract_artifact(results)

        assert artifact.file_name == "a.pdf"
        assert artifact.file_url == "https://x/a.pdf"
        assert artifact.file_data_uri is None

    def test_none_when_no_file(self):
        assert extract_artifact([]) is None
