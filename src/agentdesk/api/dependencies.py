"""Shared FastAPI dependencies."""

from functools import lru_cache

from agentdesk.application.executor import ChatExecutor
from agentdesk.application.factory import AgentDeskFactory
from agentdesk.application.settings import AppSettings, get_settings


@lru_cache
def get_executor() -> ChatExecutor:
    """Process-wide executor, so each profile's response cache is shared by all requests."""
    settings = get_settings()
    return ChatExecutor(factory=AgentDeskFactory(config_dir=settings.config_dir))


def get_app_settings() -> AppSettings:
    return get_settings()
