import structlog
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from agentdesk import __version__
from agentdesk.api.routes import chat, health, tools
from agentdesk.application.settings import get_settings
from agentdesk.infrastructure.logging_config import configure_logging

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for FastAPI startup/shutdown events."""
    settings = get_settings()
    configure_logging(settings.log_level, settings.json_logs)

    await logger.ainfo("fastapi.startup", message="agentdesk API starting...", profile=settings.profile)
    yield
    await logger.ainfo("fastapi.shutdown", message="agentdesk API shutting down...")


def create_app() -> FastAPI:
    """Create and configure FastAPI application."""

    app = FastAPI(
        title="agentdesk Chat API",
        description="Multi-turn tool-calling conversation orchestrator",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(chat.router, prefix="/api/v1", tags=["chat"])
    app.include_router(tools.router, prefix="/api/v1", tags=["tools"])
    app.include_router(health.router, tags=["health"])

    return app


app = create_app()

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8070)
