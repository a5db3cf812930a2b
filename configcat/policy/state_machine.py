"""Fetch policy engine state machine implementation."""

from enum import Enum, auto
from typing import ClassVar

import structlog

from configcat.constants import COMPONENT_POLICY


logger = structlog.get_logger()


class FetchState(Enum):
    """Fetch policy engine states.

    State transitions:
        IDLE -> FETCHING: Fetch cycle started (manual, lazy, or first poll)
        IDLE -> SCHEDULED: Auto polling started
        FETCHING -> IDLE: Cycle finished, nothing scheduled
        FETCHING -> SCHEDULED: Cycle finished, next poll pending
        SCHEDULED -> FETCHING: Poll fired or out-of-band refresh
        IDLE/SCHEDULED -> STOPPED: Engine stopped
    """

    IDLE = auto()
    FETCHING = auto()
    SCHEDULED = auto()
    STOPPED = auto()


class FetchStateError(Exception):
    """Raised when an invalid fetch state transition is attempted."""

    def __init__(self, from_state: FetchState, to_state: FetchState) -> None:
        """Initialize the error.

        Args:
            from_state: The current state.
            to_state: The attempted target state.
        """
        self.from_state = from_state
        self.to_state = to_state
        super().__init__(
            f"Invalid fetch state transition: {from_state.name} -> {to_state.name}"
        )


class FetchStateMachine:
    """State machine for the fetch policy engine.

    Not thread-safe on its own; the engine drives it under its fetch lock.
    """

    VALID_TRANSITIONS: ClassVar[dict[FetchState, set[FetchState]]] = {
        FetchState.IDLE: {
            FetchState.FETCHING,
            FetchState.SCHEDULED,
            FetchState.STOPPED,
        },
        FetchState.FETCHING: {
            FetchState.IDLE,
            FetchState.SCHEDULED,
        },
        FetchState.SCHEDULED: {
            FetchState.FETCHING,
            FetchState.STOPPED,
        },
        FetchState.STOPPED: set(),  # Terminal state
    }

    def __init__(self, sdk_key: str) -> None:
        """Initialize the state machine in IDLE state.

        Args:
            sdk_key: Masked SDK key for logging.
        """
        self._state = FetchState.IDLE
        self._log = logger.bind(component=COMPONENT_POLICY, sdk_key=sdk_key)

    @property
    def state(self) -> FetchState:
        """Get the current state."""
        return self._state

    def can_transition(self, to_state: FetchState) -> bool:
        """Check if a transition to the given state is valid.

        Args:
            to_state: The target state.

        Returns:
            True if the transition is valid, False otherwise.
        """
        return to_state in self.VALID_TRANSITIONS.get(self._state, set())

    def transition(self, to_state: FetchState) -> None:
        """Transition to a new state.

        Args:
            to_state: The target state.

        Raises:
            FetchStateError: If the transition is invalid.
        """
        if not self.can_transition(to_state):
            self._log.error(
                "invariant_violation",
                error_type="illegal_state_transition",
                from_state=self._state.name,
                to_state=to_state.name,
            )
            raise FetchStateError(self._state, to_state)

        old_state = self._state
        self._state = to_state
        self._log.debug(
            "fetch_state_transition",
            from_state=old_state.name,
            to_state=to_state.name,
        )

    def is_terminal(self) -> bool:
        """Check if the engine has stopped."""
        return self._state == FetchState.STOPPED

    def is_fetching(self) -> bool:
        """Check if a fetch cycle is in flight."""
        return self._state == FetchState.FETCHING

    def is_scheduled(self) -> bool:
        """Check if a poll is pending."""
        return self._state == FetchState.SCHEDULED
