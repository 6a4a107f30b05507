"""State machine for agent status.

An agent starts ``running`` and moves exactly once to one of the terminal
states when its process is found dead. Terminal states are absorbing: there
are no transitions out of them.
"""

from __future__ import annotations

import logging
from typing import Optional

from transitions import Machine

logger = logging.getLogger(__name__)

RUNNING = "running"
COMPLETED = "completed"
ROADBLOCK = "roadblock"
AUTH_ERROR = "auth_error"

TERMINAL_STATES = frozenset({COMPLETED, ROADBLOCK, AUTH_ERROR})


class InvalidTransitionError(Exception):
    """Raised when an invalid status transition is attempted."""

    def __init__(self, source: str, dest: str, message: Optional[str] = None) -> None:
        self.source = source
        self.dest = dest
        if message:
            super().__init__(message)
        else:
            super().__init__(f"Invalid transition from '{source}' to '{dest}'")


class AgentStatusMachine:
    """State machine for an agent's lifecycle status.

    Example usage:
        >>> sm = AgentStatusMachine()
        >>> sm.can_transition_to("roadblock")
        True
        >>> sm.transition_to("roadblock")
        >>> sm.is_terminal
        True
    """

    STATES = [RUNNING, COMPLETED, ROADBLOCK, AUTH_ERROR]

    TRANSITIONS = [
        {"trigger": "complete", "source": RUNNING, "dest": COMPLETED},
        {"trigger": "block", "source": RUNNING, "dest": ROADBLOCK},
        {"trigger": "fail_auth", "source": RUNNING, "dest": AUTH_ERROR},
    ]

    def __init__(self, initial_state: str = RUNNING) -> None:
        """Initialize the state machine.

        Args:
            initial_state: Initial state for the machine (default: "running")

        Raises:
            ValueError: If the initial state is not a known status
        """
        if initial_state not in self.STATES:
            raise ValueError(f"Invalid state: '{initial_state}'. Valid states: {self.STATES}")

        self._state = initial_state
        self.machine = Machine(
            model=self,
            states=self.STATES,
            transitions=self.TRANSITIONS,
            initial=initial_state,
            auto_transitions=False,
            send_event=False,
        )

    @property
    def current_state(self) -> str:
        """Get the current state."""
        return str(getattr(self, "state", self._state))

    @property
    def is_terminal(self) -> bool:
        """Whether the agent has reached a final status."""
        return self.current_state in TERMINAL_STATES

    def can_transition_to(self, target_state: str) -> bool:
        """Check if a transition to the target state is valid."""
        return self._trigger_for(target_state) is not None

    def transition_to(self, target_state: str) -> None:
        """Move to the target state.

        Args:
            target_state: The state to transition to

        Raises:
            InvalidTransitionError: If the transition is not valid
        """
        trigger = self._trigger_for(target_state)
        if trigger is None:
            raise InvalidTransitionError(self.current_state, target_state)

        source = self.current_state
        getattr(self, trigger)()
        logger.debug(f"Agent status {source} -> {target_state}")

    def _trigger_for(self, target_state: str) -> Optional[str]:
        for t in self.TRANSITIONS:
            if t["source"] == self.current_state and t["dest"] == target_state:
                return t["trigger"]
        return None


def validate_status_transition(source: str, dest: str) -> None:
    """Validate a status transition without keeping a machine around.

    Raises:
        InvalidTransitionError: If the transition is not allowed
        ValueError: If the source is not a known status
    """
    AgentStatusMachine(initial_state=source).transition_to(dest)
