"""
Leader Election

One heartbeat sender per browser, elected through an advisory lease in
storage shared by same-origin tabs. Writes go through compare-and-set, but
the protocol stays advisory: around the staleness boundary two tabs may
briefly both act as leader. Heartbeats are idempotent upserts, so a duplicate
beat only refreshes the same session's timestamp.
"""

import time
from typing import Callable, Optional

from livecount.core.config.settings import settings
from livecount.core.logging.logger import get_logger
from livecount.domains.agent.models import AgentState, LeaseRecord, Leadership
from livecount.shared.constants.agent import LEASE_STORAGE_KEY
from .storage import KeyValueStorage

logger = get_logger(__name__)


class LeaderElector:
    """Runs one election step per heartbeat tick"""

    def __init__(
        self,
        storage: KeyValueStorage,
        stale_seconds: Optional[float] = None,
        clock: Callable[[], float] = time.time,
        lease_key: str = LEASE_STORAGE_KEY,
    ):
        self.storage = storage
        self.stale_seconds = stale_seconds or settings.agent.AGENT_LEASE_STALE_SECONDS
        self.lease_key = lease_key
        self._clock = clock

    def current_lease(self) -> Optional[LeaseRecord]:
        return LeaseRecord.from_json(self.storage.get(self.lease_key))

    def tick(self, state: AgentState) -> Leadership:
        """
        Advance this tab's election state.

        - Leader: renew the lease, or demote if another tab now holds it.
        - Follower/Unelected: promote if the lease is missing or stale.
        """
        now = self._clock()
        raw = self.storage.get(self.lease_key)
        lease = LeaseRecord.from_json(raw)

        if state.leadership == Leadership.LEADER:
            if lease is not None and lease.holder == state.tab_id:
                renewed = LeaseRecord(holder=state.tab_id, renewed_at=now).to_json()
                if self.storage.compare_and_set(self.lease_key, raw, renewed):
                    return state.leadership

                # Lost a race between read and renew
                raw = self.storage.get(self.lease_key)
                lease = LeaseRecord.from_json(raw)

            self._set(state, Leadership.FOLLOWER, lease)

        if lease is None or lease.is_stale(now, self.stale_seconds):
            claim = LeaseRecord(holder=state.tab_id, renewed_at=now).to_json()
            if self.storage.compare_and_set(self.lease_key, raw, claim):
                self._set(state, Leadership.LEADER, lease)
                return state.leadership

        if state.leadership != Leadership.FOLLOWER:
            self._set(state, Leadership.FOLLOWER, lease)
        return state.leadership

    def resign(self, state: AgentState) -> None:
        """Release the lease so another tab can take over without waiting"""
        if state.leadership != Leadership.LEADER:
            return

        raw = self.storage.get(self.lease_key)
        lease = LeaseRecord.from_json(raw)
        if lease is not None and lease.holder == state.tab_id:
            self.storage.compare_and_set(self.lease_key, raw, None)
        self._set(state, Leadership.FOLLOWER, lease)

    def _set(
        self, state: AgentState, leadership: Leadership, lease: Optional[LeaseRecord]
    ) -> None:
        if state.leadership != leadership:
            logger.debug(
                "Leadership changed",
                tab_id=state.tab_id,
                previous=state.leadership.value,
                current=leadership.value,
                previous_holder=lease.holder if lease else None,
            )
        state.leadership = leadership
