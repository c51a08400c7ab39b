"""State machine for the session refresh coordinator."""

from enum import Enum

import structlog

from src.features.client.constants import COMPONENT_CLIENT


logger = structlog.get_logger()


class RefreshState(str, Enum):
    """State of the refresh coordinator.

    - IDLE: No refresh in flight
    - REFRESHING: Exactly one refresh call in flight
    """

    IDLE = "IDLE"
    REFRESHING = "REFRESHING"


# Valid state transitions
_VALID_TRANSITIONS: dict[RefreshState, set[RefreshState]] = {
    RefreshState.IDLE: {RefreshState.REFRESHING},
    RefreshState.REFRESHING: {RefreshState.IDLE},
}


class RefreshStateTransitionError(Exception):
    """Raised when an illegal state transition is attempted."""

    def __init__(self, from_state: RefreshState, to_state: RefreshState) -> None:
        """Initialize the transition error.

        Args:
            from_state: Current state.
            to_state: Attempted target state.
        """
        self.from_state = from_state
        self.to_state = to_state
        super().__init__(
            f"Illegal refresh state transition: {from_state.value} -> {to_state.value}"
        )


class RefreshStateMachine:
    """Manages refresh coordinator state transitions.

    Enforces valid transitions and logs all state changes.
    """

    def __init__(self, initial_state: RefreshState = RefreshState.IDLE) -> None:
        self._state = initial_state
        self._log = logger.bind(component=COMPONENT_CLIENT, subcomponent="refresh")

    @property
    def state(self) -> RefreshState:
        """Get the current state."""
        return self._state

    def can_transition_to(self, to_state: RefreshState) -> bool:
        """Check if a transition to the given state is valid."""
        return to_state in _VALID_TRANSITIONS[self._state]

    def transition(self, to_state: RefreshState) -> None:
        """Transition to a new state.

        Args:
            to_state: Target state.

        Raises:
            RefreshStateTransitionError: If the transition is invalid.
        """
        if not self.can_transition_to(to_state):
            raise RefreshStateTransitionError(self._state, to_state)

        from_state = self._state
        self._state = to_state
        self._log.debug(
            "refresh_state_transition",
            from_state=from_state.value,
            to_state=to_state.value,
        )

    def to_refreshing(self) -> None:
        """Transition to REFRESHING."""
        self.transition(RefreshState.REFRESHING)

    def to_idle(self) -> None:
        """Transition back to IDLE."""
        self.transition(RefreshState.IDLE)
