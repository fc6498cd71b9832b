"""
Runtime settings for state machines.

Settings come from the environment (``FSM_METRICS_ENABLED``,
``FSM_HISTORY_LIMIT``) or from the ``settings`` block of a definition file.
"""

import os
from dataclasses import dataclass, fields
from typing import Any, Dict, Mapping, Optional

from .exceptions import ConfigurationError

DEFAULT_HISTORY_LIMIT = 20


def _parse_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class MachineConfig:
    """Per-machine settings"""
    metrics_enabled: bool = False
    history_limit: int = DEFAULT_HISTORY_LIMIT

    def __post_init__(self):
        if self.history_limit < 0:
            raise ConfigurationError(f"history_limit must be >= 0, got {self.history_limit}")

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "MachineConfig":
        """Build settings from environment variables"""
        env = os.environ if environ is None else environ

        history = env.get('FSM_HISTORY_LIMIT', str(DEFAULT_HISTORY_LIMIT))
        try:
            history_limit = int(history)
        except ValueError:
            raise ConfigurationError(f"FSM_HISTORY_LIMIT must be an integer, got {history!r}")

        return cls(
            metrics_enabled=_parse_bool(env.get('FSM_METRICS_ENABLED', 'false')),
            history_limit=history_limit,
        )

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]], base: Optional["MachineConfig"] = None) -> "MachineConfig":
        """
        Build settings from a mapping, falling back to ``base`` (or the
        environment) for keys that are not present.
        """
        base = base or cls.from_env()
        if not data:
            return base

        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise ConfigurationError(f"Unknown settings: {', '.join(sorted(unknown))}")

        metrics_enabled = data.get('metrics_enabled', base.metrics_enabled)
        if isinstance(metrics_enabled, str):
            metrics_enabled = _parse_bool(metrics_enabled)

        try:
            history_limit = int(data.get('history_limit', base.history_limit))
        except (TypeError, ValueError):
            raise ConfigurationError(f"history_limit must be an integer, got {data.get('history_limit')!r}")

        return cls(metrics_enabled=bool(metrics_enabled), history_limit=history_limit)
