"""
Conversation endpoints.

Inbound messages and control events are forwarded to the
:class:`TriageEngine`. Errors surfaced by the engine never leak their kind
to the client: the body always carries a "try again" directive.
"""

from typing import Any, Dict, Optional

from fastapi import APIRouter, HTTPException, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from ...core.enums import EventKind, Phase
from ...core.exceptions import (
    ConcurrentUpdateConflict,
    InvalidSessionState,
    StoreUnavailable,
)
from ...core.models import Directive
from ...services.conversation import TriageEngine
from ...utils.logging import get_logger

logger = get_logger("api.chat")


class MessageRequest(BaseModel):
    """Free-form patient message."""

    model_config = ConfigDict(extra="forbid")

    text: str = Field(max_length=4000)
    user_id: Optional[str] = None


class EventRequest(BaseModel):
    """Control event such as a booking confirmation."""

    model_config = ConfigDict(extra="forbid")

    event_kind: EventKind
    text: str = Field(default="", max_length=4000)
    user_id: Optional[str] = None


class SummaryRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    summary: str = Field(max_length=8000)


class AdvanceResponse(BaseModel):
    """Directive plus the committed record version."""

    session_id: str
    version: Optional[int] = None
    directive: Directive


class SessionResponse(BaseModel):
    session_id: str
    record: Dict[str, Any]


class ChatHandler:
    """Handler for conversation endpoints."""

    def __init__(self, engine: TriageEngine):
        self.engine = engine
        self.router = APIRouter()
        self._setup_routes()

    def _setup_routes(self):
        """Setup conversation routes."""

        @self.router.post("/{session_id}/messages", response_model=AdvanceResponse)
        async def post_message(session_id: str, body: MessageRequest):
            """Advance the conversation with a patient message."""
            return await self._advance(session_id, body.user_id, body.text, EventKind.MESSAGE)

        @self.router.post("/{session_id}/events", response_model=AdvanceResponse)
        async def post_event(session_id: str, body: EventRequest):
            """Advance the conversation with a control event."""
            return await self._advance(session_id, body.user_id, body.text, body.event_kind)

        @self.router.get("/{session_id}", response_model=SessionResponse)
        async def get_session(session_id: str):
            """Return the stored conversation record."""
            try:
                record = await self.engine.get_session(session_id)
            except StoreUnavailable:
                raise HTTPException(
                    status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                    detail="Session store unavailable",
                )
            if record is None:
                raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Session not found")
            return SessionResponse(session_id=session_id, record=record.to_dict())

        @self.router.put("/{session_id}/summary")
        async def put_summary(session_id: str, body: SummaryRequest):
            """Replace the advisory conversation summary."""
            try:
                saved = await self.engine.save_summary(session_id, body.summary)
            except StoreUnavailable:
                raise HTTPException(
                    status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                    detail="Session store unavailable",
                )
            if not saved:
                raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Session not found")
            return {"status": "ok"}

    async def _advance(
        self,
        session_id: str,
        user_id: Optional[str],
        text: str,
        event_kind: EventKind,
    ):
        try:
            record, directive = await self.engine.advance(session_id, user_id, text, event_kind)
        except InvalidSessionState as e:
            logger.warning(f"chat: {e}")
            phase = Phase.DONE if e.phase == Phase.DONE.value else None
            return self._try_again(session_id, status.HTTP_409_CONFLICT, phase)
        except ConcurrentUpdateConflict as e:
            logger.warning(f"chat: {e}")
            return self._try_again(session_id, status.HTTP_409_CONFLICT)
        except StoreUnavailable as e:
            logger.error(f"chat: {e}")
            return self._try_again(session_id, status.HTTP_503_SERVICE_UNAVAILABLE)

        return AdvanceResponse(session_id=session_id, version=record.version, directive=directive)

    @staticmethod
    def _try_again(
        session_id: str, status_code: int, phase: Optional[Phase] = None
    ) -> JSONResponse:
        body = AdvanceResponse(session_id=session_id, directive=Directive.try_again(phase))
        return JSONResponse(status_code=status_code, content=body.model_dump(mode="json"))
