"""
Health check handler.
"""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from ...config import get_settings
from ...core.exceptions import StoreUnavailable
from ...services.conversation import TriageEngine

# Session id that is never written; loading it only proves the store answers
_PROBE_SESSION_ID = "__readiness_probe__"


class HealthResponse(BaseModel):
    """Health check response model."""
    status: str
    timestamp: str
    version: str
    uptime: float


class HealthHandler:
    """Handler for health check endpoints."""

    def __init__(self, engine: Optional[TriageEngine] = None):
        self.settings = get_settings()
        self.engine = engine
        self.start_time = datetime.now()
        self.router = APIRouter()
        self._setup_routes()

    def _setup_routes(self):
        """Setup health check routes."""

        @self.router.get("/", response_model=HealthResponse)
        async def health_check():
            """Basic health check endpoint."""
            uptime = (datetime.now() - self.start_time).total_seconds()
            return HealthResponse(
                status="healthy",
                timestamp=datetime.now().isoformat(),
                version=self.settings.app_version,
                uptime=uptime
            )

        @self.router.get("/ready")
        async def readiness_check():
            """Readiness check: the session store must answer."""
            if self.engine is not None:
                try:
                    await self.engine.get_session(_PROBE_SESSION_ID)
                except StoreUnavailable:
                    return JSONResponse(status_code=503, content={"status": "unavailable"})
            return {"status": "ready"}

        @self.router.get("/live")
        async def liveness_check():
            """Liveness check for container orchestration."""
            return {"status": "alive"}
