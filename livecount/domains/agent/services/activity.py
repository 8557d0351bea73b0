"""
Activity detection for the visitor agent
"""

import time
from typing import Callable, Optional

from livecount.core.config.settings import settings
from livecount.core.logging.logger import get_logger
from livecount.domains.agent.models import AgentState
from livecount.shared.constants.agent import ACTIVITY_SIGNALS

logger = get_logger(__name__)


class ActivityMonitor:
    """
    Tracks user-interaction signals against an inactivity threshold.

    A tab with no pointer, key, scroll, touch or media signal for the
    threshold stops heartbeating; the next signal resumes it.
    """

    def __init__(
        self,
        inactivity_seconds: Optional[float] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.inactivity_seconds = (
            inactivity_seconds or settings.agent.AGENT_INACTIVITY_SECONDS
        )
        self._clock = clock

    def record(self, state: AgentState, signal: str) -> bool:
        """
        Register an interaction signal.

        Returns:
            bool: True if the signal woke an inactive tab
        """
        if signal not in ACTIVITY_SIGNALS:
            return False

        woke = not state.active
        state.last_activity = self._clock()
        state.active = True
        if woke:
            logger.debug("Tab active again", tab_id=state.tab_id, signal=signal)
        return woke

    def check(self, state: AgentState) -> bool:
        """Refresh and return ``state.active`` for the current time"""
        idle = self._clock() - state.last_activity
        active = idle < self.inactivity_seconds
        if state.active and not active:
            logger.debug("Tab inactive, pausing heartbeats", tab_id=state.tab_id)
        state.active = active
        return active
