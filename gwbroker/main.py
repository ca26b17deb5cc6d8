"""Gateway broker FastAPI application entry point."""

from __future__ import annotations

import uuid
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from gwbroker import __version__
from gwbroker.config import get_settings
from gwbroker.db import close_db, init_db
from gwbroker.errors import GatewayError
from gwbroker.services.lifecycle import init_gateway, shutdown_gateway

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    # Startup
    logger.info("gwbroker.startup", version=__version__)
    await init_db()

    app.state.gateway = await init_gateway()

    yield

    # Shutdown
    logger.info("gwbroker.shutdown")

    # Flush pending saves before the database goes away
    await shutdown_gateway()
    app.state.gateway = None

    await close_db()


def create_app() -> FastAPI:
    """Create and configure FastAPI application."""
    app = FastAPI(
        title="gwbroker",
        description="Configuration and authorization broker for a radio gateway",
        version=__version__,
        lifespan=lifespan,
    )

    # Request ID middleware
    @app.middleware("http")
    async def request_id_middleware(request: Request, call_next):
        """Add request ID to all requests."""
        request_id = request.headers.get("X-Request-Id") or str(uuid.uuid4())
        request.state.request_id = request_id
        response = await call_next(request)
        response.headers["X-Request-Id"] = request_id
        return response

    # Error handler
    @app.exception_handler(GatewayError)
    async def gateway_error_handler(request: Request, exc: GatewayError):
        """Render gateway errors as a one-element response array."""
        logger.info(
            "api.error",
            path=request.url.path,
            type=exc.type,
            status_code=exc.status_code,
            request_id=getattr(request.state, "request_id", None),
        )
        headers = {}
        gateway = getattr(request.app.state, "gateway", None)
        if gateway is not None:
            headers["ETag"] = gateway.token.value
        return JSONResponse(
            status_code=exc.status_code,
            content=[exc.to_dict()],
            headers=headers,
        )

    # Health check
    @app.get("/health")
    async def health() -> dict[str, str]:
        """Health check endpoint."""
        return {"status": "ok"}

    from gwbroker.api import router as api_router

    app.include_router(api_router)

    return app


# Create default app instance
app = create_app()


def run() -> None:
    """Console entry point."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "gwbroker.main:app",
        host=settings.server.host,
        port=settings.server.port,
    )


if __name__ == "__main__":
    run()
