"""
Triage engine.

Orchestrates one ``advance`` call: load the record, ask the fact extractor
for an update, run the state machine and write the result back with a
conditional save. Calls for the same session are serialized in-process;
writers in other processes are detected through the record version.
"""

import asyncio
from contextlib import asynccontextmanager
from typing import Dict, Optional, Tuple

from ...config import DatabaseConfig, ExternalAPIConfig, Settings, TriagePolicyConfig
from ...core.enums import EventKind, Phase
from ...core.exceptions import (
    ConcurrentUpdateConflict,
    ExternalAPIError,
    ExtractorTimeout,
    StoreUnavailable,
)
from ...core.models import ConversationRecord, Directive, ExtractedUpdate
from ...utils.event_log import log_event, new_turn_id
from ...utils.logging import get_logger
from ...utils.text import normalize_token
from ..booking import BookingAPIClient, BookingIntentResolver
from ..extraction import AgentFactExtractor, FactExtractor, KeywordFactExtractor
from ..store import SessionStore, SQLiteSessionStore
from ..triage import TriagePolicy
from .state_machine import ConversationStateMachine

logger = get_logger("engine")


class TriageEngine:
    """Serialized, version-checked driver around :class:`ConversationStateMachine`."""

    # Attempts at the conditional write: the first one plus one retry
    _WRITE_ATTEMPTS = 2

    def __init__(
        self,
        store: SessionStore,
        extractor: FactExtractor,
        machine: ConversationStateMachine,
        extractor_timeout: float = 8.0,
        store_timeout: float = 5.0,
        booking_client: Optional[BookingAPIClient] = None,
    ):
        self.store = store
        self.extractor = extractor
        self.machine = machine
        self.extractor_timeout = extractor_timeout
        self.store_timeout = store_timeout
        self.booking_client = booking_client

        self._locks: Dict[str, asyncio.Lock] = {}
        self._waiters: Dict[str, int] = {}

    @asynccontextmanager
    async def _session_guard(self, session_id: str):
        """Hold the per-session lock; drop it once nobody is waiting."""
        lock = self._locks.setdefault(session_id, asyncio.Lock())
        self._waiters[session_id] = self._waiters.get(session_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._waiters[session_id] -= 1
            if self._waiters[session_id] == 0:
                del self._waiters[session_id]
                self._locks.pop(session_id, None)

    # ------------------------------------------------------------------
    async def advance(
        self,
        session_id: str,
        user_id: Optional[str] = None,
        raw_text: str = "",
        event_kind: EventKind = EventKind.MESSAGE,
    ) -> Tuple[ConversationRecord, Directive]:
        """Process one inbound event for ``session_id``.

        Returns the committed record and the directive for the presentation
        layer. Raises ``InvalidSessionState``, ``ConcurrentUpdateConflict``
        or ``StoreUnavailable``; in every such case nothing was written.
        """
        new_turn_id()
        if event_kind is EventKind.MESSAGE and not normalize_token(raw_text or ""):
            logger.info(f"engine: blank message for {session_id}, treating as resume")
            event_kind = EventKind.RESUME

        async with self._session_guard(session_id):
            updates: Optional[ExtractedUpdate] = None
            for attempt in range(1, self._WRITE_ATTEMPTS + 1):
                stored = await self._load(session_id)
                record = stored or ConversationRecord(session_id=session_id, user_id=user_id)
                previous_version = stored.version if stored else None

                self.machine.ensure_accepts(record)

                attached = False
                if stored is not None and user_id and not record.user_id:
                    # Guest session picked up after the user logged in
                    record.user_id = user_id
                    attached = True

                # The extractor runs once; a retry re-merges the same update
                if updates is None:
                    updates = await self._extract(raw_text, record, event_kind)

                new_record, directive = self.machine.advance(record, updates, event_kind)

                changed = (
                    stored is None
                    or attached
                    or new_record.last_updated_at != record.last_updated_at
                )
                if not changed:
                    return new_record, directive

                if await self._save(previous_version, new_record):
                    if stored is not None and stored.phase is not new_record.phase:
                        logger.info(
                            f"engine: {session_id} {stored.phase.value} -> {new_record.phase.value}"
                        )
                    if new_record.phase is Phase.DONE:
                        await self._hand_off(new_record, directive)
                    return new_record, directive

                log_event(
                    "write_conflict",
                    {"session_id": session_id, "attempt": attempt, "version": previous_version},
                )
                logger.warning(f"engine: write conflict for {session_id} (attempt {attempt})")

        raise ConcurrentUpdateConflict(session_id)

    async def get_session(self, session_id: str) -> Optional[ConversationRecord]:
        """Return the stored record for ``session_id`` without changing it."""
        return await self._load(session_id)

    async def save_summary(self, session_id: str, summary: str) -> bool:
        """Replace the advisory summary of a session."""
        async with self._session_guard(session_id):
            return await self._with_store_timeout(self.store.save_summary(session_id, summary))

    # ------------------------------------------------------------------
    async def _extract(
        self, raw_text: str, record: ConversationRecord, event_kind: EventKind
    ) -> ExtractedUpdate:
        """Run the extractor; any failure degrades to an empty update."""
        if event_kind is not EventKind.MESSAGE:
            return ExtractedUpdate()
        try:
            return await asyncio.wait_for(
                self.extractor.extract(raw_text, record), timeout=self.extractor_timeout
            )
        except (asyncio.TimeoutError, ExtractorTimeout):
            logger.warning(
                f"engine: extractor timed out after {self.extractor_timeout}s "
                f"for {record.session_id}"
            )
            log_event("extractor_timeout", {"session_id": record.session_id})
        except Exception as e:
            logger.error(f"engine: extractor failed for {record.session_id}: {e}")
            log_event("extractor_error", {"session_id": record.session_id, "error": str(e)})
        return ExtractedUpdate()

    async def _with_store_timeout(self, coro):
        try:
            return await asyncio.wait_for(coro, timeout=self.store_timeout)
        except asyncio.TimeoutError as e:
            logger.error(f"engine: store call timed out after {self.store_timeout}s")
            raise StoreUnavailable("Session store timed out") from e

    async def _load(self, session_id: str) -> Optional[ConversationRecord]:
        return await self._with_store_timeout(self.store.load(session_id))

    async def _save(self, previous_version: Optional[int], record: ConversationRecord) -> bool:
        """Conditional write whose outcome always matches the stored row.

        A write that outlives ``store_timeout`` is not abandoned: it may
        still commit, so the call waits for it to settle instead of
        reporting the session as unchanged. SQLite bounds the wait through
        its own connection timeout.
        """
        write = asyncio.ensure_future(self.store.save(previous_version, record))
        try:
            return await asyncio.wait_for(asyncio.shield(write), timeout=self.store_timeout)
        except asyncio.TimeoutError:
            logger.warning(
                f"engine: write for {record.session_id} exceeded {self.store_timeout}s, "
                f"waiting for it to settle"
            )
            log_event("slow_write", {"session_id": record.session_id})
        return await write

    async def _hand_off(self, record: ConversationRecord, directive: Directive) -> None:
        """Pass a confirmed booking to the appointment API."""
        if self.booking_client is None:
            return
        try:
            result = await self.booking_client.create_appointment(record)
        except ExternalAPIError as e:
            logger.error(f"engine: booking handoff failed for {record.session_id}: {e}")
            log_event("booking_handoff_failed", {"session_id": record.session_id, "error": str(e)})
            directive.prompt_params["handoff_failed"] = True
            return
        log_event("booking_handoff", {"session_id": record.session_id})
        appointment_id = result.get("id") if isinstance(result, dict) else None
        if appointment_id is not None:
            directive.prompt_params["appointment_id"] = appointment_id


def build_engine(settings: Settings) -> TriageEngine:
    """Wire a :class:`TriageEngine` from application settings."""
    policy = TriagePolicy(TriagePolicyConfig.from_file(settings.triage_policy_path))
    machine = ConversationStateMachine(
        policy,
        BookingIntentResolver(),
        collecting_exchange_limit=settings.collecting_exchange_limit,
    )
    store = SQLiteSessionStore(DatabaseConfig.from_settings(settings))

    api_config = ExternalAPIConfig.from_settings(settings)
    if api_config.is_openai_configured():
        extractor = AgentFactExtractor(
            model=api_config.extractor_model, api_key=api_config.openai_api_key
        )
        logger.info(f"engine: using agent extractor ({api_config.extractor_model})")
    else:
        extractor = KeywordFactExtractor.from_policy(policy)
        logger.info("engine: OpenAI not configured; using keyword extractor")

    booking_client = None
    if api_config.is_booking_api_configured():
        booking_client = BookingAPIClient(api_config)

    return TriageEngine(
        store,
        extractor,
        machine,
        extractor_timeout=api_config.extractor_timeout,
        store_timeout=settings.store_timeout,
        booking_client=booking_client,
    )
