"""
Chat API Routes
===============

Endpoints:
- POST /api/v1/chat/turn - Run one conversation turn

Turn failures (blocked prompts, exhausted limits, model errors) are reported
inside the response body with HTTP 200. Only malformed requests (422) and
missing or invalid profiles (404/500) are HTTP errors.
"""

from fastapi import APIRouter, Depends, HTTPException, Query, status

from agentdesk.api.dependencies import get_app_settings, get_executor
from agentdesk.api.schemas.chat_schemas import ChatTurnRequest, TurnResponse
from agentdesk.application.executor import ChatExecutor
from agentdesk.application.settings import AppSettings
from agentdesk.core.domain.errors import ConfigurationError

router = APIRouter()


@router.post(
    "/chat/turn",
    response_model=TurnResponse,
    summary="Run a conversation turn",
    description="Send a user message with its agent configuration and get the answer plus the execution trace",
)
async def chat_turn(
    body: ChatTurnRequest,
    profile: str | None = Query(None, description="Configuration profile (defaults to settings)"),
    executor: ChatExecutor = Depends(get_executor),
    settings: AppSettings = Depends(get_app_settings),
) -> TurnResponse:
    effective_profile = profile or settings.profile
    try:
        runtime = executor.get_runtime(effective_profile)
    except FileNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ConfigurationError as e:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))

    result = await executor.execute_turn(body.to_domain(runtime.run_limits), profile=effective_profile)
    return TurnResponse.model_validate(result.to_dict())
