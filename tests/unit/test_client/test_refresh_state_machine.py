"""Unit tests for the refresh coordinator state machine."""

import pytest

from src.features.client.state_machine import (
    RefreshState,
    RefreshStateMachine,
    RefreshStateTransitionError,
)


class TestRefreshStateMachine:
    """Tests for RefreshStateMachine."""

    def test_starts_idle(self) -> None:
        """Test the initial state."""
        assert RefreshStateMachine().state == RefreshState.IDLE

    def test_full_cycle(self) -> None:
        """Test IDLE -> REFRESHING -> IDLE."""
        machine = RefreshStateMachine()

        machine.to_refreshing()
        assert machine.state == RefreshState.REFRESHING

        machine.to_idle()
        assert machine.state == RefreshState.IDLE

    def test_cannot_refresh_twice(self) -> None:
        """Test that a second concurrent refresh is illegal."""
        machine = RefreshStateMachine()
        machine.to_refreshing()

        assert machine.can_transition_to(RefreshState.REFRESHING) is False
        with pytest.raises(RefreshStateTransitionError) as exc_info:
            machine.to_refreshing()

        assert exc_info.value.from_state == RefreshState.REFRESHING
        assert exc_info.value.to_state == RefreshState.REFRESHING

    def test_cannot_idle_when_idle(self) -> None:
        """Test that IDLE -> IDLE is illegal."""
        with pytest.raises(RefreshStateTransitionError, match="IDLE -> IDLE"):
            RefreshStateMachine().to_idle()
