"""
Exception hierarchy for the state machine engine.
"""

from typing import Any, Hashable


class StateMachineError(Exception):
    """Base class for all engine errors"""
    pass


class NoSuchEvent(StateMachineError, LookupError):
    """Raised by dispatch when the current state does not accept an event"""

    def __init__(self, state_id: Any, event_id: Hashable):
        self.state_id = state_id
        self.event_id = event_id
        super().__init__(f"State {state_id!r} has no event {event_id!r}")


class DuplicateEvent(StateMachineError, ValueError):
    """Raised when an event id is declared twice on the same state"""

    def __init__(self, state_id: Hashable, event_id: Hashable):
        self.state_id = state_id
        self.event_id = event_id
        super().__init__(f"Event {event_id!r} already exists on state {state_id!r}")


class ConfigurationError(StateMachineError, ValueError):
    """Raised for malformed machine definitions or settings"""
    pass
