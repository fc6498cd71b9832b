"""
Core state machine implementation: states, events and event dispatch.

A machine owns its states; states own their outgoing events. Events keep the
id of their target state and resolve it through the machine, so a target can
be declared before it is configured.

Machines are synchronous and not thread safe. Callbacks run inline on the
caller's thread. Calling ``dispatch`` on a machine from inside one of its own
callbacks is not supported.
"""

import logging
import time
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Deque, Dict, Generic, Hashable, List, Optional, TypeVar

from prometheus_client import CollectorRegistry
from typing_extensions import Self

from .config import MachineConfig
from .exceptions import DuplicateEvent, NoSuchEvent
from .metrics import MachineMetrics

logger = logging.getLogger(__name__)

S = TypeVar('S', bound=Hashable)
E = TypeVar('E', bound=Hashable)

_UNSET: Any = object()


class Event(Generic[S, E]):
    """Named outgoing edge of a state"""

    def __init__(self, event_id: E, source: "State[S, E]", target_id: S):
        self._id = event_id
        self._source = source
        self._target_id = target_id
        self._action: Optional["ActionCallback"] = None

    def get_id(self) -> E:
        return self._id

    def get_source(self) -> "State[S, E]":
        """State that declared this event"""
        return self._source

    def get_target_id(self) -> S:
        return self._target_id

    def get_state(self) -> "State[S, E]":
        """Target state of this event"""
        return self._source.get_machine()._states[self._target_id]

    def has_action(self) -> bool:
        return self._action is not None

    def bind_action(self, action: "ActionCallback") -> Self:
        """
        Bind the action called as ``action(event, source, target)`` on every
        dispatch of this event. Binding again replaces the previous action.
        """
        self._action = action
        return self

    def __repr__(self) -> str:
        return f"Event({self._id!r}, {self._source.get_id()!r} -> {self._target_id!r})"


class State(Generic[S, E]):
    """Named node of a state machine holding its outgoing events"""

    def __init__(self, machine: "StateMachine[S, E]", state_id: S, accepted: bool = False):
        self._machine = machine
        self._id = state_id
        self._accepted = accepted
        self._events: Dict[E, Event[S, E]] = {}
        self._entry_action: Optional["EntryCallback"] = None
        self._exit_action: Optional["ExitCallback"] = None

    def get_id(self) -> S:
        return self._id

    def get_machine(self) -> "StateMachine[S, E]":
        return self._machine

    def is_accepted(self) -> bool:
        return self._accepted

    def is_terminal(self) -> bool:
        """True if the state has no outgoing events"""
        return not self._events

    def add_event(self, event_id: E, next_state_id: S = _UNSET, accepted: bool = False) -> Event[S, E]:
        """
        Declare an outgoing event.

        Args:
            event_id: Event id, unique within this state
            next_state_id: Target state id. When omitted the event targets
                this state itself: its action fires on dispatch but entry and
                exit callbacks do not.
            accepted: Accepted flag used if the target state has to be created

        Returns:
            The new event

        Raises:
            DuplicateEvent: if ``event_id`` is already declared on this state
        """
        if event_id in self._events:
            raise DuplicateEvent(self._id, event_id)

        if next_state_id is _UNSET:
            target_id = self._id
        else:
            target_id = self._machine.add_state(next_state_id, accepted).get_id()

        event = Event(event_id, self, target_id)
        self._events[event_id] = event
        logger.debug(f"Added event {event_id!r}: {self._id!r} -> {target_id!r}")
        return event

    def get_event(self, event_id: E) -> Optional[Event[S, E]]:
        return self._events.get(event_id)

    def get_events(self) -> Dict[E, Event[S, E]]:
        """Outgoing events in declaration order"""
        return self._events.copy()

    def has_entry_action(self) -> bool:
        return self._entry_action is not None

    def has_exit_action(self) -> bool:
        return self._exit_action is not None

    def bind_entry_action(self, entry_action: "EntryCallback") -> Self:
        """Bind the callback receiving the state being left when this state is entered"""
        self._entry_action = entry_action
        return self

    def bind_exit_action(self, exit_action: "ExitCallback") -> Self:
        """Bind the callback receiving the state being entered when this state is left"""
        self._exit_action = exit_action
        return self

    def __repr__(self) -> str:
        return f"State({self._id!r}, accepted={self._accepted}, events={list(self._events)!r})"


@dataclass(frozen=True)
class TransitionRecord:
    """A dispatched event"""
    event: Hashable
    source: Hashable
    target: Hashable
    latency_ms: float
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def changed(self) -> bool:
        """False for self-transitions"""
        return self.source != self.target


class StateMachine(Generic[S, E]):
    """
    Event-driven finite state machine.

    Features:
    - Fluent builder API for states and events
    - Entry, exit and per-event action callbacks
    - Bounded transition history
    - Optional Prometheus metrics

    The first state ever added becomes both the initial and the current state.
    """

    def __init__(self,
                 name: str = "state_machine",
                 config: Optional[MachineConfig] = None,
                 registry: Optional[CollectorRegistry] = None):
        """
        Initialize state machine.

        Args:
            name: Name used in logs and metric names
            config: Settings, read from the environment when omitted
            registry: Prometheus registry; passing one enables metrics
        """
        self.name = name
        self.config = config if config is not None else MachineConfig.from_env()
        self._states: Dict[S, State[S, E]] = {}
        self._initial: Optional[State[S, E]] = None
        self._current: Optional[State[S, E]] = None
        self._history: Deque[TransitionRecord] = deque(maxlen=self.config.history_limit)

        self.metrics: Optional[MachineMetrics] = None
        if self.config.metrics_enabled or registry is not None:
            self.metrics = MachineMetrics(name, registry)

    def add_state(self, state_id: S, accepted: bool = False) -> State[S, E]:
        """
        Get or create a state.

        An existing state is returned unchanged, its accepted flag included.
        """
        state = self._states.get(state_id)
        if state is not None:
            return state

        state = State(self, state_id, accepted)
        if not self._states:
            self._initial = state
            self._current = state
            if self.metrics:
                self.metrics.record_state(state_id)
        self._states[state_id] = state

        logger.debug(f"Added state {state_id!r} to {self.name}")
        return state

    def get_state(self, state_id: S) -> Optional[State[S, E]]:
        return self._states.get(state_id)

    def get_current_state(self) -> Optional[State[S, E]]:
        return self._current

    def get_initial_state(self) -> Optional[State[S, E]]:
        return self._initial

    def get_states(self) -> Dict[S, State[S, E]]:
        """All states in the order they were added"""
        return self._states.copy()

    def dispatch(self, event_id: E) -> State[S, E]:
        """
        Submit an event to the current state.

        The event action is called with ``(event, current, target)`` on every
        dispatch, self-transitions included. When the target is another state,
        the current state's exit callback is called with the target, then the
        target's entry callback is called with the state being left, and only
        then does the current state change. An exception raised by a callback
        propagates and leaves the current state unchanged.

        Returns:
            The current state after the dispatch

        Raises:
            NoSuchEvent: if the current state does not accept ``event_id``
        """
        start = time.perf_counter()
        current = self._current
        event = current.get_event(event_id) if current is not None else None

        if event is None:
            state_id = current.get_id() if current is not None else None
            logger.debug(f"{self.name}: no event {event_id!r} in state {state_id!r}")
            if self.metrics:
                self.metrics.record_rejected(state_id, event_id)
            raise NoSuchEvent(state_id, event_id)

        target = event.get_state()
        try:
            if event._action is not None:
                event._action(event, current, target)

            if target is not current:
                if current._exit_action is not None:
                    current._exit_action(target)
                if target._entry_action is not None:
                    target._entry_action(current)
        except Exception as e:
            logger.error(f"{self.name}: callback failed on {event_id!r} in state {current.get_id()!r}: {e}")
            raise

        self._current = target
        latency = time.perf_counter() - start

        if target is not current:
            logger.info(f"{self.name}: {current.get_id()!r} -> {target.get_id()!r} via {event_id!r}")
        else:
            logger.debug(f"{self.name}: {event_id!r} handled in {current.get_id()!r}, no state change")

        self._history.append(TransitionRecord(
            event=event_id,
            source=current.get_id(),
            target=target.get_id(),
            latency_ms=latency * 1000
        ))
        if self.metrics:
            self.metrics.record_transition(current.get_id(), target.get_id(), event_id, latency)

        return target

    def reset(self) -> Optional[State[S, E]]:
        """Return to the initial state without calling any callback"""
        self._current = self._initial
        if self._current is not None:
            logger.debug(f"{self.name}: reset to {self._current.get_id()!r}")
            if self.metrics:
                self.metrics.record_state(self._current.get_id())
        return self._current

    def get_history(self, limit: int = 10) -> List[TransitionRecord]:
        """Most recent dispatches, oldest first"""
        if limit <= 0:
            return []
        return list(self._history)[-limit:]

    def get_available_events(self) -> List[E]:
        """Event ids accepted by the current state"""
        if self._current is None:
            return []
        return list(self._current._events)

    def __contains__(self, state_id: object) -> bool:
        return state_id in self._states

    def __len__(self) -> int:
        return len(self._states)

    def __repr__(self) -> str:
        current = self._current.get_id() if self._current is not None else None
        return f"StateMachine({self.name!r}, states={len(self._states)}, current={current!r})"


EntryCallback = Callable[[State], None]
ExitCallback = Callable[[State], None]
ActionCallback = Callable[[Event, State, State], None]
