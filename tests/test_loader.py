"""Tests for building machines from YAML and dict definitions."""
import os.path

import pytest
import yaml

from fsm_engine import ConfigurationError, MachineConfig, MachineLoader, NoSuchEvent


PLAYER_YAML = """
name: player
settings:
  history_limit: 5
states:
  - id: radio
    entry: enter
    exit: leave
    events:
      - id: next
        action: act
      - id: switch_cd
        target: cdplayer
        action: act
  - id: cdplayer
    accepted: true
    events:
      - id: switch_radio
        target: radio
"""


@pytest.fixture
def calls():
    return []


@pytest.fixture
def callbacks(calls):
    return {
        "enter": lambda prev: calls.append(("enter", prev.get_id())),
        "leave": lambda nxt: calls.append(("leave", nxt.get_id())),
        "act": lambda event, source, target: calls.append(("act", event.get_id())),
    }


class TestMachineLoader:
    """Definition parsing and callback resolution."""

    def test_from_file(self, tmp_path, callbacks, calls):
        path = tmp_path / "player.yaml"
        path.write_text(PLAYER_YAML)

        fsm = MachineLoader.from_file(path, callbacks=callbacks, config=MachineConfig())

        assert fsm.name == "player"
        assert fsm.config.history_limit == 5
        assert fsm.get_initial_state().get_id() == "radio"
        assert fsm.get_state("cdplayer").is_accepted()
        assert not fsm.get_state("radio").is_accepted()

        fsm.dispatch("next")
        fsm.dispatch("switch_cd")
        fsm.dispatch("switch_radio")

        assert calls == [
            ("act", "next"),
            ("act", "switch_cd"),
            ("leave", "cdplayer"),
            ("enter", "cdplayer"),
        ]
        assert fsm.get_current_state().get_id() == "radio"

    def test_name_defaults_to_file_stem(self, tmp_path):
        path = tmp_path / "elevator.yaml"
        path.write_text(yaml.safe_dump({"states": [{"id": "idle"}]}))

        assert MachineLoader.from_file(path, config=MachineConfig()).name == "elevator"

    def test_event_without_target_is_self_loop(self):
        fsm = MachineLoader.from_dict(
            {"states": [{"id": "A", "events": [{"id": "ping"}]}]},
            config=MachineConfig()
        )

        a = fsm.get_state("A")
        assert a.get_event("ping").get_state() is a

    def test_first_listed_state_is_initial(self):
        data = {
            "states": [
                {"id": "B", "events": [{"id": "go", "target": "A"}]},
                {"id": "A", "accepted": True},
            ]
        }

        fsm = MachineLoader.from_dict(data, config=MachineConfig())

        assert fsm.get_initial_state().get_id() == "B"
        assert fsm.get_state("A").is_accepted()

    def test_undeclared_target_is_created(self):
        fsm = MachineLoader.from_dict(
            {"states": [{"id": "A", "events": [{"id": "go", "target": "Z"}]}]},
            config=MachineConfig()
        )

        assert fsm.dispatch("go").get_id() == "Z"
        with pytest.raises(NoSuchEvent):
            fsm.dispatch("go")

    def test_import_path_callback(self):
        fsm = MachineLoader.from_dict(
            {"states": [{"id": "A", "events": [{"id": "go", "action": "os.path:basename"}]}]},
            config=MachineConfig()
        )

        assert fsm.get_state("A").get_event("go")._action is os.path.basename

    def test_unknown_callback(self):
        with pytest.raises(ConfigurationError, match="missing"):
            MachineLoader.from_dict(
                {"states": [{"id": "A", "entry": "missing"}]},
                config=MachineConfig()
            )

    def test_unimportable_callback(self):
        with pytest.raises(ConfigurationError):
            MachineLoader.from_dict(
                {"states": [{"id": "A", "exit": "no_such_module_xyz:func"}]},
                config=MachineConfig()
            )

    def test_duplicate_event(self):
        data = {"states": [{"id": "A", "events": [{"id": "go"}, {"id": "go", "target": "B"}]}]}

        with pytest.raises(ConfigurationError, match="go"):
            MachineLoader.from_dict(data, config=MachineConfig())

    @pytest.mark.parametrize("data", [
        [],
        {},
        {"states": "A"},
        {"states": [{"accepted": True}]},
        {"states": [{"id": "A", "events": {"id": "go"}}]},
        {"states": [{"id": "A", "events": [{"target": "B"}]}]},
        {"states": [{"id": "A"}], "settings": ["history_limit"]},
        {"states": [{"id": ["a", "b"]}]},
        {"states": [{"id": "A", "events": [{"id": {"name": "go"}}]}]},
        {"states": [{"id": "A", "events": [{"id": "go", "target": ["B"]}]}]},
        {"states": [{"id": "A", "accepted": "maybe"}]},
        {"states": [{"id": "A", "accepted": 3}]},
    ])
    def test_malformed_definitions(self, data):
        with pytest.raises(ConfigurationError):
            MachineLoader.from_dict(data, config=MachineConfig())

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "broken.yaml"
        path.write_text("states: [unclosed")

        with pytest.raises(ConfigurationError):
            MachineLoader.from_file(path)

    @pytest.mark.parametrize("flag, expected", [
        (True, True),
        (False, False),
        ("true", True),
        ("Yes", True),
        ("false", False),
        ("no", False),
        (None, False),
    ])
    def test_accepted_flag_parsing(self, flag, expected):
        fsm = MachineLoader.from_dict(
            {"states": [{"id": "A", "accepted": flag}]},
            config=MachineConfig()
        )

        assert fsm.get_state("A").is_accepted() is expected

    def test_quoted_false_in_yaml(self, tmp_path):
        path = tmp_path / "flags.yaml"
        path.write_text('states:\n  - id: A\n    accepted: "false"\n')

        fsm = MachineLoader.from_file(path, config=MachineConfig())

        assert not fsm.get_state("A").is_accepted()

    def test_integer_ids(self):
        fsm = MachineLoader.from_dict(
            {"states": [{"id": 1, "events": [{"id": 2, "target": 3}]}]},
            config=MachineConfig()
        )

        assert fsm.dispatch(2).get_id() == 3

    def test_non_utf8_file(self, tmp_path):
        path = tmp_path / "latin1.yaml"
        path.write_bytes(b"states:\n  - id: caf\xe9\n")

        with pytest.raises(ConfigurationError, match="UTF-8"):
            MachineLoader.from_file(path, config=MachineConfig())

    def test_utf8_ids(self, tmp_path):
        path = tmp_path / "utf8.yaml"
        path.write_text("states:\n  - id: café\n", encoding="utf-8")

        fsm = MachineLoader.from_file(path, config=MachineConfig())

        assert fsm.get_initial_state().get_id() == "café"
