"""Shared fixtures for fsm-engine tests."""
import pytest

from fsm_engine import MachineConfig, StateMachine


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep FSM_* variables from the caller's environment out of the tests."""
    monkeypatch.delenv("FSM_METRICS_ENABLED", raising=False)
    monkeypatch.delenv("FSM_HISTORY_LIMIT", raising=False)


@pytest.fixture
def machine():
    return StateMachine("test", config=MachineConfig())


@pytest.fixture
def calls():
    """Ordered log of callback invocations."""
    return []


@pytest.fixture
def recording_machine(calls):
    """Machine A --go--> B with every callback recording into ``calls``."""
    fsm = StateMachine("recording", config=MachineConfig())
    a = fsm.add_state("A")
    b = fsm.add_state("B")

    for state in (a, b):
        sid = state.get_id()
        state.bind_entry_action(lambda prev, sid=sid: calls.append(("entry", sid, prev.get_id())))
        state.bind_exit_action(lambda nxt, sid=sid: calls.append(("exit", sid, nxt.get_id())))

    def action(event, source, target):
        calls.append(("action", event.get_id(), source.get_id(), target.get_id()))

    a.add_event("go", "B").bind_action(action)
    a.add_event("ping").bind_action(action)
    b.add_event("back", "A").bind_action(action)
    return fsm
