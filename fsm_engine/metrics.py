"""
Prometheus metrics for state machines.
"""

import re
from typing import Hashable, Optional

from prometheus_client import CollectorRegistry, Counter, Histogram, Info


def metric_prefix(name: str) -> str:
    """Turn a machine name into a valid Prometheus metric prefix"""
    prefix = re.sub(r'[^a-zA-Z0-9_]', '_', name.lower())
    if not prefix or prefix[0].isdigit():
        prefix = f"fsm_{prefix}"
    return prefix


class MachineMetrics:
    """
    Collectors for a single state machine.

    Machines without an explicit registry get a private one, so any number of
    machines sharing a name can live in one process. Pass
    ``prometheus_client.REGISTRY`` to expose them on the default endpoint.
    """

    def __init__(self, name: str, registry: Optional[CollectorRegistry] = None):
        self.name = name
        self.registry = registry if registry is not None else CollectorRegistry()
        prefix = metric_prefix(name)

        self.transition_counter = Counter(
            f'{prefix}_transitions_total',
            f'Total dispatched events of {name}',
            labelnames=['from_state', 'to_state', 'event'],
            registry=self.registry
        )

        self.rejected_counter = Counter(
            f'{prefix}_rejected_events_total',
            f'Events of {name} not accepted by the current state',
            labelnames=['state', 'event'],
            registry=self.registry
        )

        self.dispatch_latency = Histogram(
            f'{prefix}_dispatch_latency_seconds',
            'Latency of dispatch calls including callbacks',
            buckets=(0.0001, 0.0005, 0.001, 0.005, 0.01, 0.05, 0.1, 0.5, 1),
            registry=self.registry
        )

        self.state_info = Info(
            f'{prefix}_state',
            f'Current state of {name}',
            registry=self.registry
        )

    def record_transition(self, source: Hashable, target: Hashable, event: Hashable, latency: float):
        """Record a successful dispatch"""
        self.transition_counter.labels(
            from_state=str(source),
            to_state=str(target),
            event=str(event)
        ).inc()
        self.dispatch_latency.observe(latency)
        self.state_info.info({
            'state': str(target),
            'previous_state': str(source),
            'event': str(event),
        })

    def record_rejected(self, state: Hashable, event: Hashable):
        """Record an event the current state did not accept"""
        self.rejected_counter.labels(state=str(state), event=str(event)).inc()

    def record_state(self, state: Hashable):
        """Publish the current state without a transition (initial state, reset)"""
        self.state_info.info({'state': str(state), 'previous_state': '', 'event': ''})
