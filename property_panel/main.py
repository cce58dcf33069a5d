"""
Property Panel API - FastAPI Application

Main entry point for the FastAPI application.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI

from property_panel.config import get_settings
from property_panel.routers.panel import router as panel_router
from property_panel.services.option_resolver import OptionResolver
from property_panel.services.schema_loader import load_schema

# Configure logging
logging.basicConfig(
    level=get_settings().log_level,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)

# Suppress noisy third-party loggers
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan manager.

    Loads the panel schema once and owns the shared option resolver.
    """
    logger.info("Starting Property Panel API...")
    settings = get_settings()

    if getattr(app.state, "panel_schema", None) is None:
        app.state.panel_schema = load_schema(settings.schema_path)
    app.state.option_resolver = OptionResolver()

    logger.info(f"Property Panel API started in {settings.environment} mode")

    yield

    logger.info("Shutting down Property Panel API...")
    await app.state.option_resolver.aclose()
    logger.info("Property Panel API shutdown complete")


def create_app() -> FastAPI:
    """
    Create and configure FastAPI application.

    Returns:
        Configured FastAPI application instance
    """
    app = FastAPI(
        title="Property Panel API",
        description="Declarative BPMN property panel engine",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    app.include_router(panel_router)

    # Root endpoint
    @app.get("/")
    async def root():
        return {
            "name": "Property Panel API",
            "version": "0.1.0",
            "docs": "/docs",
        }

    return app


# Create app instance
app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "property_panel.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.is_development,
    )
