import pytest

from triage_engine.config import DatabaseConfig
from triage_engine.core.enums import Gender, Phase, RiskLevel
from triage_engine.core.exceptions import StoreUnavailable
from triage_engine.core.models import BookingRequest, ConversationRecord, PatientInfo
from triage_engine.services.store import SQLiteSessionStore


def _record(**kwargs) -> ConversationRecord:
    return ConversationRecord(session_id="s1", **kwargs)


@pytest.mark.asyncio
async def test_save_and_load_round_trip(sqlite_store):
    record = _record(
        user_id="u1",
        phase=Phase.TRIAGE_DEPARTMENT,
        patient_info=PatientInfo(name="Lan", age=34, gender=Gender.FEMALE),
        symptoms=["chest pain"],
        department="Emergency",
        triage_locked=True,
        risk_level=RiskLevel.EMERGENCY,
        booking_request=BookingRequest(hospital_id="H1"),
    )

    assert await sqlite_store.save(None, record) is True
    assert record.version == 1

    loaded = await sqlite_store.load("s1")
    assert loaded.phase == Phase.TRIAGE_DEPARTMENT
    assert loaded.risk_level == RiskLevel.EMERGENCY
    assert loaded.patient_info.gender == Gender.FEMALE
    assert loaded.booking_request.hospital_id == "H1"
    assert loaded.version == 1
    assert loaded.to_dict() == record.to_dict()


@pytest.mark.asyncio
async def test_load_missing_returns_none(sqlite_store):
    assert await sqlite_store.load("nope") is None


@pytest.mark.asyncio
async def test_conditional_write(sqlite_store):
    first = _record()
    assert await sqlite_store.save(None, first) is True

    # A second "create" loses against the existing row
    assert await sqlite_store.save(None, _record(summary="other")) is False

    stale = await sqlite_store.load("s1")
    fresh = await sqlite_store.load("s1")

    fresh.summary = "fresh"
    assert await sqlite_store.save(fresh.version, fresh) is True
    assert fresh.version == 2

    stale.summary = "stale"
    assert await sqlite_store.save(stale.version, stale) is False
    assert stale.version == 1

    assert (await sqlite_store.load("s1")).summary == "fresh"


@pytest.mark.asyncio
async def test_save_summary(sqlite_store):
    assert await sqlite_store.save_summary("s1", "x") is False

    await sqlite_store.save(None, _record())
    assert await sqlite_store.save_summary("s1", "Headache for two days.") is True

    loaded = await sqlite_store.load("s1")
    assert loaded.summary == "Headache for two days."
    assert loaded.version == 2


@pytest.mark.asyncio
async def test_unknown_phase_is_loaded_raw(sqlite_store):
    record = ConversationRecord.from_dict({"session_id": "s1", "phase": "ARCHIVED"})
    await sqlite_store.save(None, record)

    loaded = await sqlite_store.load("s1")
    assert loaded.phase == "ARCHIVED"
    assert not isinstance(loaded.phase, Phase)


@pytest.mark.asyncio
async def test_unopened_store_is_unavailable(tmp_path):
    store = SQLiteSessionStore(DatabaseConfig(state_db_path=str(tmp_path / "state.db")))
    with pytest.raises(StoreUnavailable):
        await store.load("s1")


@pytest.mark.asyncio
async def test_unwritable_path_is_unavailable(tmp_path):
    store = SQLiteSessionStore(
        DatabaseConfig(state_db_path=str(tmp_path / "missing" / "dir" / "state.db"))
    )
    with pytest.raises(StoreUnavailable):
        await store.open()
