"""
Visitor and session identity

The visitor id is minted once and kept in durable storage. The session id
lives in tab-scoped storage with its start and last-seen times and is
rotated after an inactivity gap; a durable backup of ``last_seen`` covers a
session record whose own timestamp is unreadable.
"""

import time
import uuid
from typing import Callable, Optional

from livecount.core.config.settings import settings
from livecount.core.logging.logger import get_logger
from livecount.domains.agent.models import AgentState, SessionRecord
from livecount.shared.constants.agent import (
    SESSION_BACKUP_STORAGE_KEY,
    SESSION_STORAGE_KEY,
    VISITOR_STORAGE_KEY,
)
from .storage import KeyValueStorage

logger = get_logger(__name__)


def generate_visitor_id() -> str:
    return f"v_{uuid.uuid4().hex}"


def generate_session_id() -> str:
    return f"sess_{uuid.uuid4().hex}"


class IdentityManager:
    """Loads, rotates and touches the agent's visitor and session identity"""

    def __init__(
        self,
        durable_storage: KeyValueStorage,
        session_storage: KeyValueStorage,
        rotation_seconds: Optional[float] = None,
        clock: Callable[[], float] = time.time,
        session_id_factory: Callable[[], str] = generate_session_id,
        visitor_id_factory: Callable[[], str] = generate_visitor_id,
    ):
        self.durable_storage = durable_storage
        self.session_storage = session_storage
        self.rotation_seconds = (
            rotation_seconds or settings.agent.AGENT_SESSION_ROTATION_SECONDS
        )
        self._clock = clock
        self._new_session_id = session_id_factory
        self._new_visitor_id = visitor_id_factory

    def load(self, state: AgentState) -> AgentState:
        """Populate visitor and session identity on agent startup"""
        state.visitor_id = self._load_visitor_id()
        state.session = self._resume_or_rotate(self._read_session())
        self._persist(state.session)
        return state

    def touch(self, state: AgentState) -> SessionRecord:
        """
        Mark the session as used now; every outgoing event calls this.

        A session idle past the rotation threshold is replaced first.
        """
        record = self._resume_or_rotate(state.session or self._read_session())
        record.last_seen = self._clock()
        state.session = record
        self._persist(record)
        return record

    def _load_visitor_id(self) -> str:
        visitor_id = self.durable_storage.get(VISITOR_STORAGE_KEY)
        if not visitor_id:
            visitor_id = self._new_visitor_id()
            self.durable_storage.set(VISITOR_STORAGE_KEY, visitor_id)
        return visitor_id

    def _read_session(self) -> Optional[SessionRecord]:
        return SessionRecord.from_json(self.session_storage.get(SESSION_STORAGE_KEY))

    def _backup_last_seen(self) -> Optional[float]:
        raw = self.durable_storage.get(SESSION_BACKUP_STORAGE_KEY)
        try:
            return float(raw) if raw else None
        except ValueError:
            return None

    def _resume_or_rotate(self, record: Optional[SessionRecord]) -> SessionRecord:
        now = self._clock()

        if record is not None:
            last_seen = record.last_seen or self._backup_last_seen()
            if last_seen is not None and now - last_seen <= self.rotation_seconds:
                return record
            logger.debug(
                "Session idle past rotation threshold",
                session_id=record.session_id,
                idle_seconds=round(now - (last_seen or 0), 1),
            )

        record = SessionRecord(
            session_id=self._new_session_id(), started_at=now, last_seen=now
        )
        logger.debug("Started new session", session_id=record.session_id)
        return record

    def _persist(self, record: SessionRecord) -> None:
        self.session_storage.set(SESSION_STORAGE_KEY, record.to_json())
        self.durable_storage.set(SESSION_BACKUP_STORAGE_KEY, repr(record.last_seen))
