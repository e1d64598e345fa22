"""
Conversation state machine.

:class:`ConversationStateMachine` merges a sparse :class:`ExtractedUpdate`
into a :class:`ConversationRecord`, walks the phase graph, locks the triage
decision once the policy is confident and returns the directive for the
presentation layer. It never mutates the record it is given and never
performs I/O apart from writing to the event log.
"""

from __future__ import annotations

from copy import deepcopy
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from ...core.enums import (
    BookingStatus,
    EventKind,
    Gender,
    Phase,
    PHASE_TRANSITIONS,
    PromptKind,
    RiskLevel,
)
from ...core.exceptions import InvalidSessionState
from ...core.models import ConversationRecord, Directive, ExtractedUpdate
from ...core.models.conversation import now_iso
from ...utils.event_log import log_event
from ...utils.text import normalize_tokens
from ..booking import BookingIntentResolver
from ..triage import TriagePolicy


@dataclass
class _Turn:
    """Per-call bookkeeping shared by the phase handlers."""

    event: EventKind
    start_phase: Phase
    new_symptoms: List[str] = field(default_factory=list)
    booking_touched: bool = False
    intent_signalled: bool = False
    confidence: Optional[float] = None


class ConversationStateMachine:
    """Compute the next record and directive for one inbound event."""

    # Upper bound on chained transitions within one call
    _MAX_STEPS = len(Phase) * 2

    def __init__(
        self,
        policy: TriagePolicy,
        resolver: Optional[BookingIntentResolver] = None,
        collecting_exchange_limit: int = 3,
    ) -> None:
        self.policy = policy
        self.resolver = resolver or BookingIntentResolver()
        self.collecting_exchange_limit = collecting_exchange_limit

    # ------------------------------------------------------------------
    def advance(
        self,
        record: ConversationRecord,
        updates: Optional[ExtractedUpdate],
        event_kind: EventKind,
    ) -> Tuple[ConversationRecord, Directive]:
        """Apply ``updates`` and ``event_kind`` to a copy of ``record``."""
        self.ensure_accepts(record)

        ctx = deepcopy(record)
        turn = _Turn(event=event_kind, start_phase=ctx.phase)

        self._merge(ctx, updates or ExtractedUpdate(), turn)

        if event_kind is EventKind.MESSAGE and ctx.phase.is_collecting:
            ctx.phase_exchanges += 1

        for _ in range(self._MAX_STEPS):
            next_phase = self._step(ctx, turn)
            if next_phase is None:
                break
            self._transition(ctx, next_phase, turn)

        if self._changed(record, ctx):
            ctx.last_updated_at = now_iso()

        return ctx, self._directive(ctx, turn)

    def ensure_accepts(self, record: ConversationRecord) -> None:
        """Raise :class:`InvalidSessionState` unless ``record`` can take events."""
        if not isinstance(record.phase, Phase):
            raise InvalidSessionState(record.session_id, str(record.phase))
        if record.phase.is_terminal:
            raise InvalidSessionState(record.session_id, record.phase.value)

    # ------------------------------------------------------------------
    def _merge(self, ctx: ConversationRecord, updates: ExtractedUpdate, turn: _Turn) -> None:
        """Merge extracted facts into ``ctx`` under the conflict rules."""
        if updates.is_empty():
            return

        if updates.patient_info is not None:
            for name, value in updates.patient_info.model_dump(exclude_none=True).items():
                # "unknown" means not stated, so it never replaces a known gender
                if name == "gender" and value is Gender.UNKNOWN and ctx.patient_info.gender:
                    continue
                setattr(ctx.patient_info, name, value)

        for token in normalize_tokens(updates.symptoms or []):
            if token not in ctx.symptoms:
                ctx.symptoms.append(token)
                turn.new_symptoms.append(token)

        for token in normalize_tokens(updates.risk_factors or []):
            if token not in ctx.risk_factors:
                ctx.risk_factors.append(token)

        for name in ("duration", "booking_location", "booking_date", "summary"):
            value = getattr(updates, name)
            if isinstance(value, str):
                value = value.strip()
            if value:
                setattr(ctx, name, value)

        # Booking intent latches on; an extractor cannot withdraw it
        if updates.booking_intent:
            ctx.booking_intent = True
            turn.intent_signalled = True

        patch = {}
        if updates.booking_request is not None:
            for name, value in updates.booking_request.model_dump(exclude_none=True).items():
                if isinstance(value, str):
                    value = value.strip()
                if value:
                    patch[name] = value
            for name, value in patch.items():
                setattr(ctx.booking_request, name, value)
            turn.booking_touched = bool(patch)

        if turn.new_symptoms or turn.booking_touched:
            log_event(
                "context_merge",
                {
                    "session_id": ctx.session_id,
                    "new_symptoms": turn.new_symptoms,
                    "booking_fields": sorted(patch),
                },
            )

    # ------------------------------------------------------------------
    def _step(self, ctx: ConversationRecord, turn: _Turn) -> Optional[Phase]:
        """Return the phase to move to, or None to stay."""
        if ctx.phase is Phase.GREETING:
            if turn.event is EventKind.MESSAGE:
                return Phase.COLLECTING_SYMPTOMS
            return None

        if ctx.phase is Phase.COLLECTING_SYMPTOMS:
            if self._symptoms_complete(ctx):
                return Phase.TRIAGE_DEPARTMENT
            return None

        if ctx.phase is Phase.BACK_TO_TRIAGE:
            if self._reassessment_complete(ctx):
                return Phase.TRIAGE_DEPARTMENT
            return None

        if ctx.phase is Phase.TRIAGE_DEPARTMENT:
            return self._step_triage(ctx, turn)

        if ctx.phase is Phase.BOOKING_OPTIONS:
            if turn.booking_touched or turn.intent_signalled:
                ctx.booking_on_hold = False
            if ctx.booking_on_hold:
                return None
            if self.resolver.resolve(ctx.booking_request).ready:
                return Phase.CONFIRM_BOOKING
            return None

        if ctx.phase is Phase.CONFIRM_BOOKING:
            if turn.event is EventKind.CONFIRM_BOOKING:
                turn.event = EventKind.RESUME
                ctx.booking_request.status = BookingStatus.CONFIRMED
                return Phase.DONE
            if turn.event is EventKind.CANCEL_BOOKING:
                turn.event = EventKind.RESUME
                ctx.booking_on_hold = True
                return Phase.BOOKING_OPTIONS
            return None

        return None

    def _step_triage(self, ctx: ConversationRecord, turn: _Turn) -> Optional[Phase]:
        if ctx.triage_locked:
            if turn.event is EventKind.REQUEST_RETRIAGE or turn.new_symptoms:
                turn.event = EventKind.RESUME
                self._release_triage(ctx, turn)
                return Phase.BACK_TO_TRIAGE
            if ctx.booking_intent:
                return Phase.BOOKING_OPTIONS
            return None

        assessment = self.policy.assess(ctx.symptoms, ctx.risk_factors, ctx.patient_info)
        turn.confidence = assessment.confidence
        ctx.risk_level = RiskLevel.max_of(ctx.risk_level, assessment.risk_level)
        ctx.department = assessment.department
        ctx.department_id = assessment.department_id

        if not self.policy.is_confident(assessment):
            log_event(
                "triage_deferred",
                {
                    "session_id": ctx.session_id,
                    "department": assessment.department,
                    "confidence": assessment.confidence,
                    "threshold": self.policy.confidence_threshold,
                },
            )
            return None

        ctx.triage_locked = True
        ctx.triage_reason = assessment.reason
        if not ctx.booking_request.department_id and assessment.department_id:
            ctx.booking_request.department_id = assessment.department_id
        log_event(
            "triage_locked",
            {
                "session_id": ctx.session_id,
                **ctx.locked_fields(),
                "confidence": assessment.confidence,
                "reason": ctx.triage_reason,
            },
        )

        if ctx.booking_intent:
            return Phase.BOOKING_OPTIONS
        return None

    def _release_triage(self, ctx: ConversationRecord, turn: _Turn) -> None:
        """Unlock triage so the department can be reassessed."""
        # A department id prefilled from the old decision would now be stale
        if ctx.booking_request.department_id == ctx.department_id:
            ctx.booking_request.department_id = None
        ctx.triage_locked = False
        ctx.retriage_count += 1
        ctx.reassessment_baseline = len(ctx.symptoms) - len(turn.new_symptoms)
        log_event(
            "triage_released",
            {
                "session_id": ctx.session_id,
                "department": ctx.department,
                "new_symptoms": turn.new_symptoms,
                "retriage_count": ctx.retriage_count,
            },
        )

    # ------------------------------------------------------------------
    def _symptoms_complete(self, ctx: ConversationRecord) -> bool:
        if not ctx.symptoms:
            return False
        if self.policy.has_emergency(ctx.symptoms):
            return True
        return bool(ctx.duration) or ctx.phase_exchanges >= self.collecting_exchange_limit

    def _reassessment_complete(self, ctx: ConversationRecord) -> bool:
        if not ctx.symptoms:
            return False
        if self.policy.has_emergency(ctx.symptoms):
            return True
        if ctx.phase_exchanges >= self.collecting_exchange_limit:
            return True
        baseline = ctx.reassessment_baseline or 0
        return len(ctx.symptoms) > baseline and bool(ctx.duration)

    def _transition(self, ctx: ConversationRecord, next_phase: Phase, turn: _Turn) -> None:
        if next_phase not in PHASE_TRANSITIONS[ctx.phase]:
            raise InvalidSessionState(ctx.session_id, ctx.phase.value)

        previous = ctx.phase
        ctx.phase = next_phase
        if next_phase.is_collecting:
            ctx.phase_exchanges = 0
        log_event(
            "phase_transition",
            {
                "session_id": ctx.session_id,
                "from": previous,
                "to": next_phase,
                "trigger": turn.event,
            },
        )

    @staticmethod
    def _changed(before: ConversationRecord, after: ConversationRecord) -> bool:
        a, b = before.to_dict(), after.to_dict()
        for key in ("last_updated_at", "created_at", "version"):
            a.pop(key, None)
            b.pop(key, None)
        return a != b

    # ------------------------------------------------------------------
    def _directive(self, ctx: ConversationRecord, turn: _Turn) -> Directive:
        """Describe what the presentation layer should do next."""
        phase = ctx.phase
        params = {}
        missing: List[str] = []

        if phase in (Phase.GREETING, Phase.COLLECTING_SYMPTOMS, Phase.BACK_TO_TRIAGE):
            params["exchanges"] = ctx.phase_exchanges
            params["retriage"] = phase is Phase.BACK_TO_TRIAGE
            if not ctx.symptoms or (
                phase is Phase.BACK_TO_TRIAGE
                and len(ctx.symptoms) <= (ctx.reassessment_baseline or 0)
            ):
                kind = PromptKind.ASK_SYMPTOMS
                missing = ["symptoms"]
            elif not ctx.duration:
                kind = PromptKind.ASK_DURATION
                missing = ["duration"]
            else:
                kind = PromptKind.ASK_MORE_SYMPTOMS

        elif phase is Phase.TRIAGE_DEPARTMENT:
            if not ctx.triage_locked:
                kind = PromptKind.ASK_MORE_SYMPTOMS
                missing = ["symptoms"]
                if turn.confidence is not None:
                    params["confidence"] = turn.confidence
            elif ctx.risk_level is RiskLevel.EMERGENCY:
                kind = PromptKind.EMERGENCY_NOTICE
            else:
                kind = PromptKind.ASK_BOOKING_INTENT
            params["triage_reason"] = ctx.triage_reason

        elif phase is Phase.BOOKING_OPTIONS:
            kind = PromptKind.ASK_BOOKING_DETAILS
            missing = self.resolver.resolve(ctx.booking_request).missing_fields
            params["on_hold"] = ctx.booking_on_hold
            params["booking_location"] = ctx.booking_location
            params["booking_date"] = ctx.booking_date
            params["booking_request"] = self._booking_params(ctx)

        elif phase is Phase.CONFIRM_BOOKING:
            kind = PromptKind.CONFIRM_BOOKING
            params["booking_request"] = self._booking_params(ctx)

        else:
            kind = PromptKind.BOOKING_CONFIRMED
            params["booking_request"] = self._booking_params(ctx)

        if ctx.risk_level is RiskLevel.EMERGENCY:
            params["emergency"] = True

        return Directive(
            phase=phase,
            prompt_kind=kind,
            missing_fields=missing,
            department=ctx.department,
            risk_level=ctx.risk_level if ctx.department else None,
            prompt_params=params,
        )

    @staticmethod
    def _booking_params(ctx: ConversationRecord) -> dict:
        request = ctx.to_dict()["booking_request"]
        return {
            "hospitalId": request["hospital_id"],
            "departmentId": request["department_id"],
            "doctorId": request["doctor_id"],
            "preferredTime": request["preferred_time"],
            "status": request["status"],
        }
