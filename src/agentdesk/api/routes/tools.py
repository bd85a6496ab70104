"""
Tool API Routes
===============

Endpoints:
- GET /api/v1/tools - List the tools registered for a profile
"""

from fastapi import APIRouter, Depends, HTTPException, Query, status

from agentdesk.api.dependencies import get_app_settings, get_executor
from agentdesk.api.schemas.chat_schemas import ToolInfo, ToolListResponse
from agentdesk.application.executor import ChatExecutor
from agentdesk.application.settings import AppSettings

router = APIRouter()


@router.get("/tools", response_model=ToolListResponse, summary="List registered tools")
def list_tools(
    profile: str | None = Query(None, description="Configuration profile (defaults to settings)"),
    executor: ChatExecutor = Depends(get_executor),
    settings: AppSettings = Depends(get_app_settings),
) -> ToolListResponse:
    try:
        descriptors = executor.list_tools(profile or settings.profile)
    except FileNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))

    tools = [
        ToolInfo(
            id=descriptor.id,
            name=descriptor.name,
            description=descriptor.description,
            enabled=descriptor.enabled,
            input_schema=descriptor.input_schema,
        )
        for descriptor in descriptors
    ]
    return ToolListResponse(tools=tools, count=len(tools))
