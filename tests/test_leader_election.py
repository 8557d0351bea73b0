"""
Advisory lease election across tabs sharing one storage
"""

import pytest

from livecount.domains.agent.models import AgentState, LeaseRecord, Leadership
from livecount.domains.agent.services import LeaderElector, MemoryStorage
from livecount.shared.constants.agent import LEASE_STORAGE_KEY


class TestLeaderElection:
    """Lease acquisition, renewal, takeover and demotion"""

    @pytest.fixture
    def storage(self):
        return MemoryStorage()

    @pytest.fixture
    def elector(self, storage, clock):
        return LeaderElector(storage, stale_seconds=30, clock=clock)

    def tabs(self, count):
        return [AgentState(tab_id=f"tab-{i}") for i in range(count)]

    def test_first_tab_becomes_leader(self, elector, storage):
        (tab,) = self.tabs(1)

        assert elector.tick(tab) == Leadership.LEADER
        assert LeaseRecord.from_json(storage.get(LEASE_STORAGE_KEY)).holder == "tab-0"

    def test_single_leader_after_settling(self, elector, clock):
        tabs = self.tabs(4)

        for _ in range(6):
            for tab in tabs:
                elector.tick(tab)
            clock.advance(10)

        leaders = [tab for tab in tabs if tab.leadership == Leadership.LEADER]
        assert len(leaders) == 1
        assert all(
            tab.leadership == Leadership.FOLLOWER for tab in tabs if tab not in leaders
        )

    def test_leader_renews_lease(self, elector, storage, clock):
        (tab,) = self.tabs(1)
        elector.tick(tab)

        clock.advance(10)
        elector.tick(tab)

        lease = LeaseRecord.from_json(storage.get(LEASE_STORAGE_KEY))
        assert lease.renewed_at == clock()

    def test_fresh_lease_blocks_promotion(self, elector, clock):
        leader, follower = self.tabs(2)
        elector.tick(leader)

        clock.advance(29)
        assert elector.tick(follower) == Leadership.FOLLOWER

    def test_stale_lease_taken_over(self, elector, storage, clock):
        leader, follower = self.tabs(2)
        elector.tick(leader)
        elector.tick(follower)

        # Leader tab frozen or closed: no renewals for the staleness threshold
        clock.advance(30)

        assert elector.tick(follower) == Leadership.LEADER
        assert LeaseRecord.from_json(storage.get(LEASE_STORAGE_KEY)).holder == "tab-1"

    def test_old_leader_demotes_when_lease_taken(self, elector, clock):
        leader, follower = self.tabs(2)
        elector.tick(leader)
        clock.advance(31)
        elector.tick(follower)

        assert elector.tick(leader) == Leadership.FOLLOWER
        assert follower.leadership == Leadership.LEADER

    def test_resign_releases_lease_for_immediate_takeover(self, elector, storage):
        leader, follower = self.tabs(2)
        elector.tick(leader)
        elector.tick(follower)

        elector.resign(leader)

        assert storage.get(LEASE_STORAGE_KEY) is None
        assert leader.leadership == Leadership.FOLLOWER
        assert elector.tick(follower) == Leadership.LEADER

    def test_resign_does_not_release_another_tabs_lease(self, elector, storage, clock):
        leader, follower = self.tabs(2)
        elector.tick(leader)
        clock.advance(31)
        elector.tick(follower)

        elector.resign(leader)

        assert LeaseRecord.from_json(storage.get(LEASE_STORAGE_KEY)).holder == "tab-1"

    def test_corrupt_lease_treated_as_missing(self, elector, storage):
        storage.set(LEASE_STORAGE_KEY, "{not json")
        (tab,) = self.tabs(1)

        assert elector.tick(tab) == Leadership.LEADER

    def test_lost_compare_and_set_stays_follower(self, storage, clock):
        class ContendedStorage(MemoryStorage):
            def compare_and_set(self, key, expected, value):
                # Another tab claims the lease between our read and write
                MemoryStorage.set(
                    self, key, LeaseRecord(holder="other", renewed_at=clock()).to_json()
                )
                return False

        elector = LeaderElector(ContendedStorage(), stale_seconds=30, clock=clock)
        (tab,) = self.tabs(1)

        assert elector.tick(tab) == Leadership.FOLLOWER


class TestMemoryStorage:
    def test_compare_and_set(self):
        storage = MemoryStorage()

        assert storage.compare_and_set("k", None, "a")
        assert not storage.compare_and_set("k", None, "b")
        assert storage.compare_and_set("k", "a", "c")
        assert storage.get("k") == "c"
        assert storage.compare_and_set("k", "c", None)
        assert storage.get("k") is None
