from contextlib import asynccontextmanager
from typing import Optional

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse, JSONResponse

from ...application.registry import SessionRegistry
from ...core.config import Settings, get_settings
from ...core.exceptions import HireSightError
from ...core.interfaces import InferenceClient
from ...core.logging import setup_logging
from ...managers.inference import OpenAIInferenceClient
from .page import render_index

logger = structlog.get_logger(__name__)


def create_app(settings: Optional[Settings] = None,
               inference: Optional[InferenceClient] = None) -> FastAPI:
    settings = settings or get_settings()
    setup_logging(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("app_started", environment=settings.ENVIRONMENT.value, model=settings.AI_MODEL)
        yield
        # Release every camera handle still held by a live session
        await app.state.registry.close_all()
        logger.info("app_stopped")

    app = FastAPI(
        title=settings.APP_NAME,
        debug=settings.DEBUG,
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.registry = SessionRegistry(settings, inference or OpenAIInferenceClient(settings))

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # In production, replace with actual origins
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(HireSightError)
    async def hiresight_error_handler(request: Request, exc: HireSightError):
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.message, "error": type(exc).__name__},
        )

    @app.get("/", response_class=HTMLResponse)
    async def index():
        """Serve the single-page practice interface."""
        return HTMLResponse(content=render_index(settings))

    # Include routers
    from .routers import interview, health
    app.include_router(health.router, prefix=settings.API_PREFIX)
    app.include_router(interview.router, prefix=settings.API_PREFIX)
    app.include_router(interview.ws_router, prefix=settings.WEBSOCKET_PATH)

    return app
