"""
fsm-engine

An embeddable, synchronous finite state machine with entry, exit and
transition callbacks.
"""

__version__ = "0.1.0"

from .core import (
    ActionCallback,
    EntryCallback,
    Event,
    ExitCallback,
    State,
    StateMachine,
    TransitionRecord,
)
from .config import MachineConfig
from .exceptions import (
    ConfigurationError,
    DuplicateEvent,
    NoSuchEvent,
    StateMachineError,
)
from .loader import MachineLoader
from .reporter import StateTableReporter

__all__ = [
    "StateMachine",
    "State",
    "Event",
    "TransitionRecord",
    "EntryCallback",
    "ExitCallback",
    "ActionCallback",
    "MachineConfig",
    "MachineLoader",
    "StateTableReporter",
    "StateMachineError",
    "NoSuchEvent",
    "DuplicateEvent",
    "ConfigurationError",
]
