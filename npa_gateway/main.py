# SPDX-License-Identifier: Apache-2.0
# Copyright 2024-2026 CAB Ingénierie / Christophe ABOULICAM
"""NPA Gateway - Main Application Entry Point.

Fleet-management tool server for Netskope Private Access. Exposes
publishers, private apps, policy rules, local brokers and upgrade profiles
as action-based tools.
"""

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any

import structlog
import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from .clients import ApiClient
from .config import get_settings
from .errors import NPAError
from .handlers import mcp_router
from .logging_config import configure_logging
from .services import NPAToolHandlers, ResourceAPI, SmartDeleter, ToolRegistry

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build the client and services; close the client on shutdown."""
    settings = get_settings()
    logger.info(
        "Starting NPA Gateway",
        version=settings.app_version,
        environment=settings.environment,
        base_url=settings.base_url,
    )

    client = ApiClient(settings)
    resources = ResourceAPI(client)
    deleter = SmartDeleter(resources)
    app.state.client = client
    app.state.resources = resources
    app.state.registry = ToolRegistry(NPAToolHandlers(resources, deleter))
    app.state.started_at = datetime.now(timezone.utc)

    logger.info("NPA Gateway ready", tools=app.state.registry.list_tools().total_count)

    yield

    logger.info("Shutting down NPA Gateway")
    await client.close()
    app.state.registry = None


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()
    configure_logging(settings.log_level, settings.log_format)

    app = FastAPI(
        title=settings.app_name,
        description="Netskope Private Access fleet management tools",
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        openapi_url="/openapi.json" if settings.debug else None,
        lifespan=lifespan,
    )

    @app.exception_handler(NPAError)
    async def npa_error_handler(request: Request, exc: NPAError) -> JSONResponse:
        return JSONResponse(status_code=exc.http_status, content=exc.to_dict())

    register_routes(app)
    app.include_router(mcp_router)

    return app


def register_routes(app: FastAPI) -> None:
    """Register service routes."""

    @app.get("/health", tags=["Health"])
    async def health_check(request: Request) -> dict[str, Any]:
        settings = get_settings()
        registry = getattr(request.app.state, "registry", None)
        return {
            "status": "healthy" if registry is not None else "starting",
            "service": "npa-gateway",
            "version": settings.app_version,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "cache": registry.handlers.resources.client.cache_stats() if registry is not None else None,
        }

    @app.get("/", tags=["Info"])
    async def root() -> dict[str, Any]:
        """Root endpoint with service information."""
        settings = get_settings()
        return {
            "service": "npa-gateway",
            "description": "Netskope Private Access fleet management tools",
            "version": settings.app_version,
            "tools": "/mcp/v1/tools",
        }


# Create the application instance
app = create_app()


def main() -> None:
    """Run the application with uvicorn."""
    settings = get_settings()
    uvicorn.run(
        "npa_gateway.main:app",
        host=settings.host,
        port=settings.port,
        workers=settings.workers,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
