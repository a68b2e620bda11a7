"""
FastAPI application for the Slack toolkit
"""
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .api.router import api_router
from .config.settings import Settings, configure_logging, get_settings
from .tools.registry import ToolRegistry, build_registry

logger = logging.getLogger(__name__)


def create_app(settings: Optional[Settings] = None, registry: Optional[ToolRegistry] = None) -> FastAPI:
    """
    Build the application

    Args:
        settings: Application settings; the global settings when omitted
        registry: Pre-built registry; one is built on startup when omitted
    """
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Build the tool registry on startup and release it on shutdown"""
        logger.info(f"Starting {settings.app_name} server...")

        app.state.registry = registry or build_registry(settings)
        logger.info(f"Tool registry ready with {len(app.state.registry.get_tool_names())} tools")

        yield

        logger.info(f"Shutting down {settings.app_name} server...")
        await app.state.registry.close()
        logger.info("Server shutdown complete")

    app = FastAPI(title=settings.app_name, version=settings.app_version, lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(api_router)
    return app


def run_server(settings: Optional[Settings] = None) -> None:
    """Serve the application with uvicorn"""
    import uvicorn

    settings = settings or get_settings()
    configure_logging(settings.logging)
    uvicorn.run(
        create_app(settings),
        host=settings.server.host,
        port=settings.server.port,
        log_level=settings.logging.level.lower(),
    )
