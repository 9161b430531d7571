"""
Phase manager for tracking the run state machine and state timing.
"""

import time
import logging
from enum import Enum
from typing import Optional, Dict, Any, List, Tuple

logger = logging.getLogger(__name__)


class RunState(str, Enum):
    IDLE = "idle"
    PROVISIONING = "provisioning"
    RUNNING = "running"
    DRAINING = "draining"
    CLEANING_UP = "cleaning_up"
    DONE = "done"
    FAILED = "failed"


TERMINAL_STATES = (RunState.DONE, RunState.FAILED)

# Allowed forward transitions; FAILED is reachable from any non-terminal state
TRANSITIONS = {
    RunState.IDLE: (RunState.PROVISIONING,),
    RunState.PROVISIONING: (RunState.RUNNING, RunState.DONE),
    RunState.RUNNING: (RunState.DRAINING,),
    RunState.DRAINING: (RunState.CLEANING_UP, RunState.DONE),
    RunState.CLEANING_UP: (RunState.DONE,),
}


class PhaseManager:
    """Tracks the run state and when each state was entered."""

    def __init__(self):
        """Initialize the phase manager."""
        self.state: RunState = RunState.IDLE
        self.state_start_ts: float = time.time()
        self.history: List[Tuple[RunState, float]] = [(self.state, self.state_start_ts)]
        self.failure_reason: Optional[str] = None

        logger.debug("Initialized PhaseManager")

    def begin(self, state: RunState) -> None:
        """Enter a new state.

        Args:
            state: State to enter

        Raises:
            RuntimeError: If the transition is not allowed
        """
        if state == RunState.FAILED:
            raise RuntimeError("Use fail() to enter the failed state")
        if state not in TRANSITIONS.get(self.state, ()):
            raise RuntimeError(f"Illegal run state transition: {self.state.value} -> {state.value}")

        self._enter(state)
        logger.info(f"Run state: {state.value}")

    def fail(self, reason: str) -> None:
        """Enter the absorbing failed state. Repeated failures keep the first reason."""
        if self.state == RunState.FAILED:
            logger.debug(f"Already failed, ignoring: {reason}")
            return
        if self.state == RunState.DONE:
            raise RuntimeError("Cannot fail a run that is already done")

        self.failure_reason = reason
        self._enter(RunState.FAILED)
        logger.error(f"Run state: failed ({reason})")

    def _enter(self, state: RunState) -> None:
        self.state = state
        self.state_start_ts = time.time()
        self.history.append((state, self.state_start_ts))

    @property
    def failed(self) -> bool:
        return self.state == RunState.FAILED

    def is_terminal(self) -> bool:
        """Check if the run reached done or failed.

        Returns:
            True if no further transitions are possible
        """
        return self.state in TERMINAL_STATES

    def get_phase_info(self) -> Dict[str, Any]:
        """Get current state information.

        Returns:
            Dictionary with current state information
        """
        return {
            'state': self.state.value,
            'state_start_ts': self.state_start_ts,
            'state_duration': time.time() - self.state_start_ts,
            'failure_reason': self.failure_reason,
            'history': [state.value for state, _ in self.history],
        }

    def __repr__(self) -> str:
        """String representation of the phase manager."""
        return f"PhaseManager(state='{self.state.value}', failure_reason={self.failure_reason!r})"
