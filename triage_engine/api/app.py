"""
FastAPI application factory and configuration.
"""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from ..config import get_settings
from ..services.conversation import TriageEngine, build_engine
from ..utils.event_log import set_log_path
from ..utils.logging import configure_logging, get_logger
from .middleware import SecurityHeaders, LoggingMiddleware
from .handlers import ChatHandler, HealthHandler

logger = get_logger("api")


def create_app(engine: Optional[TriageEngine] = None) -> FastAPI:
    """Create and configure FastAPI application.

    ``engine`` is built from settings when omitted; the session store is
    opened on startup and closed on shutdown.
    """
    settings = get_settings()
    configure_logging(settings.log_level)

    if engine is None:
        set_log_path(settings.event_log_path)
        engine = build_engine(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await engine.store.open()
        logger.info(f"{settings.app_name} {settings.app_version} started")
        try:
            yield
        finally:
            await engine.store.close()

    app = FastAPI(
        title=settings.app_name,
        description="Triage conversation engine for hospital appointment booking",
        version=settings.app_version,
        debug=settings.debug,
        lifespan=lifespan,
    )
    app.state.engine = engine

    # Add CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # Configure appropriately for production
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Add custom middleware
    app.add_middleware(SecurityHeaders)
    app.add_middleware(LoggingMiddleware)

    # Initialize handlers
    health_handler = HealthHandler(engine)
    chat_handler = ChatHandler(engine)

    # Register routes
    app.include_router(health_handler.router, prefix="/health", tags=["health"])
    app.include_router(chat_handler.router, prefix="/sessions", tags=["sessions"])

    return app
