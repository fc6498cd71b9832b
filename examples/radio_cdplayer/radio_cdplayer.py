#!/usr/bin/env python3
"""
Example: car audio unit switching between radio and CD player.

Prints the state table, then walks both modes, printing every callback.
"""
import logging

from fsm_engine import StateMachine, StateTableReporter


def enter_radio(previous):
    print(f"enter radio, leaving [{previous.get_id()}]")


def exit_radio(following):
    print(f"exit radio, entering [{following.get_id()}]")


def enter_cdplayer(previous):
    print(f"enter cdplayer, leaving [{previous.get_id()}]")


def exit_cdplayer(following):
    print(f"exit cdplayer, entering [{following.get_id()}]")


def log_action(event, current, target):
    if current is target:
        print(f"Action: [{event.get_id()}] No State Change")
    else:
        print(f"Action: [{event.get_id()}] {current.get_id()} --> {target.get_id()}")


def build_player() -> StateMachine:
    fsm = StateMachine("player")

    radio = fsm.add_state("radio").bind_entry_action(enter_radio).bind_exit_action(exit_radio)
    radio.add_event("switch_radio")
    radio.add_event("switch_cd", "cdplayer").bind_action(log_action)
    radio.add_event("next").bind_action(log_action)
    radio.add_event("previous").bind_action(log_action)

    cdplayer = fsm.add_state("cdplayer").bind_entry_action(enter_cdplayer).bind_exit_action(exit_cdplayer)
    cdplayer.add_event("switch_cd")
    cdplayer.add_event("switch_radio", "radio").bind_action(log_action)
    cdplayer.add_event("next").bind_action(log_action)
    cdplayer.add_event("previous").bind_action(log_action)

    return fsm


def main():
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    fsm = build_player()
    print(StateTableReporter.generate_report(fsm), end="")

    for event_id in ["next", "previous", "switch_cd", "next", "previous", "switch_radio", "next", "previous"]:
        fsm.dispatch(event_id)


if __name__ == "__main__":
    main()
