"""
Pytest configuration and fixtures.
"""

import asyncio
from copy import deepcopy
from pathlib import Path
from typing import Dict, List, Optional

import pytest
import pytest_asyncio

from triage_engine.config import DatabaseConfig, TriagePolicyConfig
from triage_engine.core.models import ConversationRecord, ExtractedUpdate
from triage_engine.services.booking import BookingIntentResolver
from triage_engine.services.conversation import ConversationStateMachine
from triage_engine.services.store import SQLiteSessionStore
from triage_engine.services.triage import TriagePolicy
from triage_engine.utils.event_log import set_log_path, set_turn_id

SAMPLE_POLICY = Path(__file__).resolve().parent.parent / "config" / "triage_policy.sample.json"


class InMemorySessionStore:
    """Versioned in-memory store with the same contract as the SQLite one."""

    def __init__(self):
        self.records: Dict[str, dict] = {}
        self.is_open = False
        self.save_calls = 0

    async def open(self) -> None:
        self.is_open = True

    async def close(self) -> None:
        self.is_open = False

    async def load(self, session_id: str) -> Optional[ConversationRecord]:
        data = self.records.get(session_id)
        return ConversationRecord.from_dict(deepcopy(data)) if data else None

    async def save(self, previous_version: Optional[int], record: ConversationRecord) -> bool:
        self.save_calls += 1
        current = self.records.get(record.session_id)
        current_version = current["version"] if current else None
        if current_version != previous_version:
            return False
        record.version = (previous_version or 0) + 1
        self.records[record.session_id] = record.to_dict()
        return True

    async def save_summary(self, session_id: str, summary: str) -> bool:
        data = self.records.get(session_id)
        if data is None:
            return False
        data["summary"] = summary
        data["version"] += 1
        return True

    def seed(self, record: ConversationRecord) -> None:
        record.version = record.version or 1
        self.records[record.session_id] = record.to_dict()


class ScriptedExtractor:
    """Return canned updates keyed by raw text; optionally block until released."""

    def __init__(self, responses: Optional[Dict[str, ExtractedUpdate]] = None):
        self.responses = responses or {}
        self.calls: List[str] = []
        self.started: Dict[str, asyncio.Event] = {}
        self._gates: Dict[str, asyncio.Event] = {}

    def hold(self, text: str) -> None:
        self.started[text] = asyncio.Event()
        self._gates[text] = asyncio.Event()

    def release(self, text: str) -> None:
        self._gates[text].set()

    async def extract(self, raw_text: str, current: ConversationRecord) -> ExtractedUpdate:
        self.calls.append(raw_text)
        if raw_text in self._gates:
            self.started[raw_text].set()
            await self._gates[raw_text].wait()
        return self.responses.get(raw_text, ExtractedUpdate())


@pytest.fixture(autouse=True)
def event_log_path(tmp_path):
    """Keep event log output inside the test's temp dir."""
    log_file = tmp_path / "events.jsonl"
    set_log_path(log_file)
    set_turn_id(None)
    return log_file


@pytest.fixture
def policy_config():
    return TriagePolicyConfig.from_file(SAMPLE_POLICY)


@pytest.fixture
def policy(policy_config):
    return TriagePolicy(policy_config)


@pytest.fixture
def machine(policy):
    return ConversationStateMachine(policy, BookingIntentResolver(), collecting_exchange_limit=3)


@pytest.fixture
def memory_store():
    return InMemorySessionStore()


@pytest.fixture
def scripted_extractor():
    return ScriptedExtractor()


@pytest_asyncio.fixture
async def sqlite_store(tmp_path):
    store = SQLiteSessionStore(DatabaseConfig(state_db_path=str(tmp_path / "state.db")))
    await store.open()
    yield store
    await store.close()
