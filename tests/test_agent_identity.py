"""
Visitor identity, session rotation and activity detection
"""

import pytest

from livecount.domains.agent.models import AgentState, SessionRecord
from livecount.domains.agent.services import (
    ActivityMonitor,
    IdentityManager,
    MemoryStorage,
)
from livecount.shared.constants.agent import (
    SESSION_BACKUP_STORAGE_KEY,
    SESSION_STORAGE_KEY,
    VISITOR_STORAGE_KEY,
)


class TestIdentityManager:
    """Visitor id is durable; session id rotates after an inactivity gap"""

    @pytest.fixture
    def durable(self):
        return MemoryStorage()

    @pytest.fixture
    def tab_storage(self):
        return MemoryStorage()

    @pytest.fixture
    def identity(self, durable, tab_storage, clock):
        return IdentityManager(durable, tab_storage, rotation_seconds=1800, clock=clock)

    def test_first_load_mints_visitor_and_session(self, identity, durable, tab_storage):
        state = identity.load(AgentState(tab_id="t"))

        assert state.visitor_id.startswith("v_")
        assert state.session_id.startswith("sess_")
        assert durable.get(VISITOR_STORAGE_KEY) == state.visitor_id
        assert SessionRecord.from_json(tab_storage.get(SESSION_STORAGE_KEY)) == state.session

    def test_visitor_id_reused(self, identity):
        first = identity.load(AgentState(tab_id="t1"))
        second = identity.load(AgentState(tab_id="t2"))

        assert first.visitor_id == second.visitor_id

    def test_session_continued_within_rotation_threshold(self, identity, clock):
        first = identity.load(AgentState(tab_id="t"))
        clock.advance(1799)

        reloaded = identity.load(AgentState(tab_id="t"))

        assert reloaded.session_id == first.session_id

    def test_session_rotated_after_inactivity_gap(self, identity, clock):
        first = identity.load(AgentState(tab_id="t"))
        clock.advance(1801)

        reloaded = identity.load(AgentState(tab_id="t"))

        assert reloaded.session_id != first.session_id
        assert reloaded.visitor_id == first.visitor_id
        assert reloaded.session.started_at == clock()

    def test_touch_keeps_session_alive(self, identity, clock):
        state = identity.load(AgentState(tab_id="t"))
        original = state.session_id

        for _ in range(5):
            clock.advance(1000)
            identity.touch(state)

        assert state.session_id == original
        assert state.session.last_seen == clock()

    def test_touch_after_gap_rotates(self, identity, clock):
        state = identity.load(AgentState(tab_id="t"))
        original = state.session_id

        clock.advance(3600)
        record = identity.touch(state)

        assert record.session_id != original
        assert state.session is record

    def test_touch_writes_durable_backup(self, identity, durable, clock):
        state = identity.load(AgentState(tab_id="t"))
        clock.advance(60)

        identity.touch(state)

        assert float(durable.get(SESSION_BACKUP_STORAGE_KEY)) == clock()

    def test_backup_timestamp_used_when_record_lacks_last_seen(
        self, identity, durable, tab_storage, clock
    ):
        tab_storage.set(
            SESSION_STORAGE_KEY,
            SessionRecord("sess_kept", started_at=clock() - 600, last_seen=0).to_json(),
        )
        durable.set(SESSION_BACKUP_STORAGE_KEY, repr(clock() - 60))

        state = identity.load(AgentState(tab_id="t"))

        assert state.session_id == "sess_kept"

    def test_unreadable_session_record_starts_new_session(
        self, identity, tab_storage
    ):
        tab_storage.set(SESSION_STORAGE_KEY, "garbage")

        state = identity.load(AgentState(tab_id="t"))

        assert state.session_id.startswith("sess_")


class TestActivityMonitor:
    """Inactivity pauses heartbeats; the next signal resumes them"""

    @pytest.fixture
    def monitor(self, clock):
        return ActivityMonitor(inactivity_seconds=240, clock=clock)

    def test_active_before_threshold(self, monitor, clock):
        state = AgentState(tab_id="t", last_activity=clock())
        clock.advance(239)

        assert monitor.check(state) is True

    def test_inactive_at_threshold(self, monitor, clock):
        state = AgentState(tab_id="t", last_activity=clock())
        clock.advance(240)

        assert monitor.check(state) is False
        assert state.active is False

    @pytest.mark.parametrize("signal", ["pointermove", "keydown", "scroll", "touchstart", "play"])
    def test_interaction_signal_resumes(self, monitor, clock, signal):
        state = AgentState(tab_id="t", last_activity=clock())
        clock.advance(600)
        monitor.check(state)

        assert monitor.record(state, signal) is True
        assert monitor.check(state) is True

    def test_unknown_signal_ignored(self, monitor, clock):
        state = AgentState(tab_id="t", last_activity=clock())
        clock.advance(600)
        monitor.check(state)

        assert monitor.record(state, "resize") is False
        assert monitor.check(state) is False
