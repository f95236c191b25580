"""
Compliance Flag State Machine

State transitions:
    OPEN --resolve(notes, by)--> RESOLVED (terminal)

Resolving an already-resolved flag is a no-op, not an error.
Resolution always requires human-supplied notes and a resolver.
"""
from typing import List, Optional, Tuple

from ...errors import FlagStateError
from ...models.compliance import FlagStatus


class FlagStateMachine:
    # State transition map: (current_state, action) -> new_state
    TRANSITIONS = {
        (FlagStatus.OPEN, "resolve"): FlagStatus.RESOLVED,
    }

    # (state, action) pairs accepted without changing state
    IDEMPOTENT = {
        (FlagStatus.RESOLVED, "resolve"),
    }

    def can_transition(
        self,
        current_state: FlagStatus,
        action: str,
        notes: Optional[str] = None,
        by: Optional[str] = None,
    ) -> Tuple[bool, Optional[str]]:
        """
        Check if a flag transition is allowed.

        Returns:
            Tuple of (is_allowed, error_message)
        """
        if (current_state, action) in self.IDEMPOTENT:
            return True, None

        if (current_state, action) not in self.TRANSITIONS:
            return False, f"Invalid transition: {current_state.value} + {action}"

        if action == "resolve":
            if not notes or not notes.strip():
                return False, "Resolution notes are required"
            if not by or not by.strip():
                return False, "Resolver is required"

        return True, None

    def transition(
        self,
        current_state: FlagStatus,
        action: str,
        notes: Optional[str] = None,
        by: Optional[str] = None,
    ) -> FlagStatus:
        """
        Perform a flag transition.

        Raises:
            FlagStateError: If the transition is not defined or its gating fails
        """
        is_allowed, error = self.can_transition(current_state, action, notes, by)
        if not is_allowed:
            raise FlagStateError(error)

        if (current_state, action) in self.IDEMPOTENT:
            return current_state
        return self.TRANSITIONS[(current_state, action)]

    def get_available_actions(self, current_state: FlagStatus) -> List[str]:
        return [action for (state, action) in self.TRANSITIONS if state == current_state]
