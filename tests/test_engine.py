"""
Tests for the triage engine orchestration.
"""

import asyncio
from unittest.mock import AsyncMock, Mock

import pytest

from triage_engine.core.enums import BookingStatus, EventKind, Phase, PromptKind
from triage_engine.core.exceptions import (
    ConcurrentUpdateConflict,
    ExternalAPIError,
    InvalidSessionState,
    StoreUnavailable,
)
from triage_engine.core.models import (
    BookingRequest,
    ConversationRecord,
    ExtractedUpdate,
)
from triage_engine.services.booking import BookingAPIClient
from triage_engine.services.conversation import TriageEngine
from triage_engine.utils.event_log import read_events


class SlowExtractor:
    async def extract(self, raw_text, current):
        await asyncio.sleep(1)
        return ExtractedUpdate(symptoms=["headache"])


class BrokenExtractor:
    async def extract(self, raw_text, current):
        raise RuntimeError("model returned garbage")


def _engine(store, extractor, machine, **kwargs):
    return TriageEngine(store, extractor, machine, **kwargs)


def _confirmable(session_id="s1") -> ConversationRecord:
    return ConversationRecord(
        session_id=session_id,
        phase=Phase.CONFIRM_BOOKING,
        symptoms=["headache"],
        duration="2 days",
        department="Neurology",
        department_id="neurology",
        triage_locked=True,
        booking_intent=True,
        booking_request=BookingRequest(
            hospital_id="H1", department_id="neurology", preferred_time="2025-01-15T09:00"
        ),
    )


@pytest.mark.asyncio
async def test_first_message_creates_session(memory_store, scripted_extractor, machine):
    engine = _engine(memory_store, scripted_extractor, machine)

    record, directive = await engine.advance("s1", "u1", "hello", EventKind.MESSAGE)

    assert record.phase == Phase.COLLECTING_SYMPTOMS
    assert record.user_id == "u1"
    assert record.version == 1
    assert directive.prompt_kind == PromptKind.ASK_SYMPTOMS
    stored = await memory_store.load("s1")
    assert stored.phase == Phase.COLLECTING_SYMPTOMS


@pytest.mark.asyncio
async def test_updates_are_merged_and_persisted(memory_store, scripted_extractor, machine):
    scripted_extractor.responses["my head hurts for 2 days"] = ExtractedUpdate(
        symptoms=["headache"], duration="for 2 days"
    )
    engine = _engine(memory_store, scripted_extractor, machine)

    await engine.advance("s1", None, "hello")
    record, directive = await engine.advance("s1", None, "my head hurts for 2 days")

    assert record.triage_locked is True
    assert record.department == "Neurology"
    assert record.version == 2
    assert directive.prompt_kind == PromptKind.ASK_BOOKING_INTENT


@pytest.mark.asyncio
async def test_concurrent_advances_merge_instead_of_losing_updates(
    memory_store, scripted_extractor, machine, event_log_path
):
    scripted_extractor.responses["my head hurts"] = ExtractedUpdate(symptoms=["headache"])
    scripted_extractor.responses["also a rash"] = ExtractedUpdate(symptoms=["rash"])
    scripted_extractor.hold("my head hurts")

    # Two engines model two processes sharing one store
    engine_a = _engine(memory_store, scripted_extractor, machine)
    engine_b = _engine(memory_store, scripted_extractor, machine)
    await engine_a.advance("s1", None, "hello")

    task_a = asyncio.create_task(engine_a.advance("s1", None, "my head hurts"))
    await scripted_extractor.started["my head hurts"].wait()

    record_b, _ = await engine_b.advance("s1", None, "also a rash")
    assert record_b.version == 2

    scripted_extractor.release("my head hurts")
    record_a, _ = await task_a

    assert record_a.version == 3
    stored = await memory_store.load("s1")
    assert set(stored.symptoms) == {"headache", "rash"}
    assert stored.phase_exchanges == 2
    # The held message was extracted once even though it was merged twice
    assert scripted_extractor.calls.count("my head hurts") == 1

    events = read_events(event_log_path)
    assert any(e["event"] == "write_conflict" for e in events)


@pytest.mark.asyncio
async def test_same_engine_serializes_session(memory_store, scripted_extractor, machine):
    scripted_extractor.responses["one"] = ExtractedUpdate(symptoms=["cough"])
    scripted_extractor.responses["two"] = ExtractedUpdate(symptoms=["wheezing"])
    engine = _engine(memory_store, scripted_extractor, machine)
    await engine.advance("s1", None, "hello")

    await asyncio.gather(
        engine.advance("s1", None, "one"),
        engine.advance("s1", None, "two"),
    )

    stored = await memory_store.load("s1")
    assert set(stored.symptoms) == {"cough", "wheezing"}
    assert stored.version == 3
    # No conditional write was lost: one save per call
    assert memory_store.save_calls == 3
    assert engine._locks == {}


@pytest.mark.asyncio
async def test_conflict_after_retry_is_surfaced(memory_store, scripted_extractor, machine):
    memory_store.seed(ConversationRecord(session_id="s1", phase=Phase.COLLECTING_SYMPTOMS))
    memory_store.save = AsyncMock(return_value=False)
    engine = _engine(memory_store, scripted_extractor, machine)

    with pytest.raises(ConcurrentUpdateConflict) as exc:
        await engine.advance("s1", None, "hello")

    assert exc.value.session_id == "s1"
    assert memory_store.save.await_count == 2


@pytest.mark.asyncio
async def test_extractor_timeout_degrades_to_no_updates(memory_store, machine):
    memory_store.seed(
        ConversationRecord(
            session_id="s1",
            phase=Phase.COLLECTING_SYMPTOMS,
            symptoms=["headache"],
            phase_exchanges=2,
        )
    )
    engine = _engine(memory_store, SlowExtractor(), machine, extractor_timeout=0.05)

    record, _ = await engine.advance("s1", None, "anything")

    # The exchange criterion was already one message away
    assert record.phase == Phase.TRIAGE_DEPARTMENT
    assert record.symptoms == ["headache"]


@pytest.mark.asyncio
async def test_extractor_error_degrades_to_no_updates(memory_store, machine):
    engine = _engine(memory_store, BrokenExtractor(), machine)
    record, directive = await engine.advance("s1", None, "hello")
    assert record.phase == Phase.COLLECTING_SYMPTOMS
    assert directive.prompt_kind == PromptKind.ASK_SYMPTOMS


@pytest.mark.asyncio
async def test_store_timeout_raises_store_unavailable(memory_store, scripted_extractor, machine):
    async def slow_load(session_id):
        await asyncio.sleep(1)

    memory_store.load = slow_load
    engine = _engine(memory_store, scripted_extractor, machine, store_timeout=0.05)

    with pytest.raises(StoreUnavailable):
        await engine.advance("s1", None, "hello")
    assert memory_store.records == {}


@pytest.mark.asyncio
async def test_slow_write_is_awaited_until_it_settles(
    memory_store, scripted_extractor, machine, event_log_path
):
    commit = memory_store.save

    async def slow_save(previous_version, record):
        await asyncio.sleep(0.2)
        return await commit(previous_version, record)

    memory_store.save = slow_save
    engine = _engine(memory_store, scripted_extractor, machine, store_timeout=0.05)

    record, _ = await engine.advance("s1", None, "hello")

    # The reply reflects the committed row, so a client retry is not needed
    stored = await memory_store.load("s1")
    assert stored.phase == record.phase == Phase.COLLECTING_SYMPTOMS
    assert stored.version == record.version == 1
    assert any(e["event"] == "slow_write" for e in read_events(event_log_path))


@pytest.mark.asyncio
async def test_slow_failing_write_leaves_session_unchanged(
    memory_store, scripted_extractor, machine
):
    async def failing_save(previous_version, record):
        await asyncio.sleep(0.2)
        raise StoreUnavailable("disk I/O error")

    memory_store.save = failing_save
    engine = _engine(memory_store, scripted_extractor, machine, store_timeout=0.05)

    with pytest.raises(StoreUnavailable):
        await engine.advance("s1", None, "hello")
    assert memory_store.records == {}


@pytest.mark.asyncio
async def test_cancelled_advance_leaves_record_untouched(
    memory_store, scripted_extractor, machine
):
    scripted_extractor.responses["my head hurts"] = ExtractedUpdate(symptoms=["headache"])
    scripted_extractor.hold("my head hurts")
    engine = _engine(memory_store, scripted_extractor, machine)
    await engine.advance("s1", None, "hello")
    before = await memory_store.load("s1")

    task = asyncio.create_task(engine.advance("s1", None, "my head hurts"))
    await scripted_extractor.started["my head hurts"].wait()
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task

    after = await memory_store.load("s1")
    assert after.to_dict() == before.to_dict()
    assert after.version == 1
    assert memory_store.save_calls == 1
    assert engine._locks == {}
    assert engine._waiters == {}


@pytest.mark.asyncio
async def test_done_session_rejected_before_extraction(memory_store, scripted_extractor, machine):
    memory_store.seed(ConversationRecord(session_id="s1", phase=Phase.DONE))
    engine = _engine(memory_store, scripted_extractor, machine)

    with pytest.raises(InvalidSessionState) as exc:
        await engine.advance("s1", None, "one more thing")

    assert exc.value.session_id == "s1"
    assert scripted_extractor.calls == []


@pytest.mark.asyncio
async def test_blank_message_is_a_resume(memory_store, scripted_extractor, machine):
    engine = _engine(memory_store, scripted_extractor, machine)
    record, _ = await engine.advance("s1", None, "   ")
    assert record.phase == Phase.GREETING
    assert scripted_extractor.calls == []


@pytest.mark.asyncio
async def test_guest_session_is_attached_to_user(memory_store, scripted_extractor, machine):
    memory_store.seed(ConversationRecord(session_id="s1", phase=Phase.COLLECTING_SYMPTOMS))
    engine = _engine(memory_store, scripted_extractor, machine)

    record, _ = await engine.advance("s1", "u42", "", EventKind.RESUME)

    assert record.user_id == "u42"
    assert (await memory_store.load("s1")).user_id == "u42"


@pytest.mark.asyncio
async def test_noop_resume_does_not_write(memory_store, scripted_extractor, machine):
    memory_store.seed(ConversationRecord(session_id="s1", phase=Phase.COLLECTING_SYMPTOMS))
    engine = _engine(memory_store, scripted_extractor, machine)

    record, _ = await engine.advance("s1", None, "", EventKind.RESUME)

    assert record.version == 1
    assert memory_store.save_calls == 0


@pytest.mark.asyncio
async def test_confirmed_booking_is_handed_off(memory_store, scripted_extractor, machine):
    memory_store.seed(_confirmable())
    client = Mock(spec=BookingAPIClient)
    client.create_appointment = AsyncMock(return_value={"id": "APT-1"})
    engine = _engine(memory_store, scripted_extractor, machine, booking_client=client)

    record, directive = await engine.advance("s1", None, "", EventKind.CONFIRM_BOOKING)

    assert record.phase == Phase.DONE
    assert record.booking_request.status == BookingStatus.CONFIRMED
    assert directive.prompt_params["appointment_id"] == "APT-1"
    client.create_appointment.assert_awaited_once()


@pytest.mark.asyncio
async def test_failed_handoff_keeps_done_state(memory_store, scripted_extractor, machine):
    memory_store.seed(_confirmable())
    client = Mock(spec=BookingAPIClient)
    client.create_appointment = AsyncMock(side_effect=ExternalAPIError("HTTP error 500"))
    engine = _engine(memory_store, scripted_extractor, machine, booking_client=client)

    record, directive = await engine.advance("s1", None, "", EventKind.CONFIRM_BOOKING)

    assert record.phase == Phase.DONE
    assert directive.prompt_params["handoff_failed"] is True
    assert (await memory_store.load("s1")).phase == Phase.DONE


@pytest.mark.asyncio
async def test_save_summary(memory_store, scripted_extractor, machine):
    engine = _engine(memory_store, scripted_extractor, machine)
    assert await engine.save_summary("missing", "x") is False

    await engine.advance("s1", None, "hello")
    assert await engine.save_summary("s1", "Patient reports headache.") is True
    assert (await memory_store.load("s1")).summary == "Patient reports headache."
