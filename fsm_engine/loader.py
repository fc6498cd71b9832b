"""
Build state machines from YAML or dictionary definitions.

Example definition::

    name: player
    settings:
      history_limit: 50
    states:
      - id: radio
        entry: on_enter_radio
        events:
          - id: next              # no target: self-transition
            action: log_action
          - id: switch_cd
            target: cdplayer
            action: log_action
      - id: cdplayer
        accepted: true

Callback names are looked up in the ``callbacks`` mapping first, then
imported as ``package.module:attribute``.
"""

import importlib
import logging
from pathlib import Path
from typing import Any, Callable, Dict, Mapping, Optional, Union

import yaml
from prometheus_client import CollectorRegistry

from .config import MachineConfig
from .core import State, StateMachine
from .exceptions import ConfigurationError, DuplicateEvent


logger = logging.getLogger(__name__)


class MachineLoader:
    """Loader for machine definitions"""

    @staticmethod
    def from_file(filepath: Union[str, Path],
                  callbacks: Optional[Mapping[str, Callable]] = None,
                  config: Optional[MachineConfig] = None,
                  registry: Optional[CollectorRegistry] = None) -> StateMachine:
        """Load a machine definition from a YAML file"""
        filepath = Path(filepath)

        try:
            with open(filepath, 'r', encoding='utf-8') as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in {filepath}: {e}") from e
        except UnicodeDecodeError as e:
            raise ConfigurationError(f"{filepath} is not valid UTF-8: {e}") from e

        if isinstance(data, dict) and 'name' not in data:
            data = dict(data, name=filepath.stem)

        logger.debug(f"Loaded machine definition from {filepath}")
        return MachineLoader.from_dict(data, callbacks=callbacks, config=config, registry=registry)

    @staticmethod
    def from_dict(data: Dict[str, Any],
                  callbacks: Optional[Mapping[str, Callable]] = None,
                  config: Optional[MachineConfig] = None,
                  registry: Optional[CollectorRegistry] = None) -> StateMachine:
        """
        Build a machine from a parsed definition.

        Args:
            data: Definition with ``states`` and optional ``name``/``settings``
            callbacks: Callables addressable by name from the definition
            config: Base settings, overridden by the ``settings`` block
            registry: Prometheus registry passed to the machine

        Raises:
            ConfigurationError: if the definition is malformed
        """
        if not isinstance(data, dict):
            raise ConfigurationError("Machine definition must be a mapping")

        states = data.get('states')
        if not isinstance(states, list):
            raise ConfigurationError("Machine definition needs a 'states' list")

        settings = data.get('settings')
        if settings is not None and not isinstance(settings, dict):
            raise ConfigurationError("'settings' must be a mapping")

        machine: StateMachine = StateMachine(
            name=str(data.get('name', 'state_machine')),
            config=MachineConfig.from_dict(settings, base=config),
            registry=registry
        )
        resolver = _CallbackResolver(callbacks or {})

        # Declare every state first so the listed order decides the initial
        # state and the accepted flags, whatever order events reference them in.
        for state_data in states:
            MachineLoader._check_state(state_data)
            machine.add_state(state_data['id'], _parse_flag(state_data.get('accepted', False), 'accepted'))

        for state_data in states:
            state = machine.add_state(state_data['id'])
            MachineLoader._parse_state(state, state_data, resolver)

        logger.info(f"Built machine {machine.name} with {len(machine)} states")
        return machine

    @staticmethod
    def _check_state(data: Any):
        if not isinstance(data, dict) or 'id' not in data:
            raise ConfigurationError(f"State definition needs an 'id': {data!r}")
        _check_id(data['id'], "State id")

        events = data.get('events', [])
        if not isinstance(events, list):
            raise ConfigurationError(f"Events of state {data['id']!r} must be a list")

    @staticmethod
    def _parse_state(state: State, data: Dict[str, Any], resolver: "_CallbackResolver"):
        """Bind state callbacks and declare its events"""
        if data.get('entry'):
            state.bind_entry_action(resolver.resolve(data['entry']))
        if data.get('exit'):
            state.bind_exit_action(resolver.resolve(data['exit']))

        for event_data in data.get('events', []):
            if not isinstance(event_data, dict) or 'id' not in event_data:
                raise ConfigurationError(
                    f"Event definition of state {state.get_id()!r} needs an 'id': {event_data!r}"
                )
            _check_id(event_data['id'], "Event id")
            if 'target' in event_data:
                _check_id(event_data['target'], "Event target")

            try:
                if 'target' in event_data:
                    event = state.add_event(event_data['id'], event_data['target'])
                else:
                    event = state.add_event(event_data['id'])
            except DuplicateEvent as e:
                raise ConfigurationError(str(e)) from e

            if event_data.get('action'):
                event.bind_action(resolver.resolve(event_data['action']))


def _check_id(value: Any, what: str):
    """State and event ids are dictionary keys"""
    try:
        hash(value)
    except TypeError:
        raise ConfigurationError(f"{what} must be a scalar, got {value!r}")


def _parse_flag(value: Any, what: str) -> bool:
    if value is None:
        return False
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in ("1", "true", "yes", "on"):
            return True
        if lowered in ("0", "false", "no", "off", ""):
            return False
    raise ConfigurationError(f"'{what}' must be a boolean, got {value!r}")


class _CallbackResolver:
    """Resolve callback names to callables"""

    def __init__(self, callbacks: Mapping[str, Callable]):
        self.callbacks = callbacks

    def resolve(self, name: Any) -> Callable:
        if callable(name):
            return name
        if not isinstance(name, str):
            raise ConfigurationError(f"Callback reference must be a string, got {name!r}")

        if name in self.callbacks:
            return self.callbacks[name]

        if ':' not in name:
            raise ConfigurationError(f"Unknown callback {name!r}")

        module_name, _, attr = name.partition(':')
        try:
            module = importlib.import_module(module_name)
            target = getattr(module, attr)
        except (ImportError, AttributeError) as e:
            raise ConfigurationError(f"Cannot import callback {name!r}: {e}") from e

        if not callable(target):
            raise ConfigurationError(f"Callback {name!r} is not callable")
        return target
