#!/usr/bin/env python3
"""
Command-line interface for fsm-engine
"""

import argparse
import logging
import sys
import traceback
from pathlib import Path
from typing import List, Optional

from .exceptions import NoSuchEvent, StateMachineError
from .loader import MachineLoader
from .reporter import StateTableReporter


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="fsm-tool",
        description="Inspect and drive state machines defined in YAML"
    )

    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose logging"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    table = subparsers.add_parser("table", help="Print the state table of a machine")
    table.add_argument(
        "definition",
        type=Path,
        help="Machine definition YAML file"
    )
    table.add_argument(
        "-f", "--format",
        choices=["table", "markdown", "plantuml"],
        default="table",
        help="Report format (default: %(default)s)"
    )
    table.add_argument(
        "-o", "--output",
        type=Path,
        help="Output file for report"
    )

    run = subparsers.add_parser("run", help="Dispatch events against a machine")
    run.add_argument(
        "definition",
        type=Path,
        help="Machine definition YAML file"
    )
    run.add_argument(
        "events",
        nargs="+",
        help="Event ids to dispatch, in order"
    )

    return parser


def match_event(machine, token: str):
    """
    Map a command-line token onto an event id of the current state.

    Definition files may use non-string ids (``id: 2``), so a token matching
    the string form of an accepted event id selects that id.
    """
    available = machine.get_available_events()
    if token in available:
        return token
    for event_id in available:
        if str(event_id) == token:
            return event_id
    return token


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point"""
    args = build_parser().parse_args(argv)

    log_level = logging.DEBUG if args.verbose else logging.WARNING
    logging.basicConfig(
        level=log_level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    try:
        machine = MachineLoader.from_file(args.definition)
    except (OSError, StateMachineError) as e:
        print(f"Error loading machine definition: {e}", file=sys.stderr)
        return 1

    if args.command == "table":
        content = StateTableReporter.generate_report(
            machine,
            format=args.format,
            output=args.output
        )
        if not args.output:
            print(content, end="" if content.endswith("\n") else "\n")
        return 0

    current = machine.get_current_state()
    print(f"initial: {current.get_id() if current is not None else None}")
    for token in args.events:
        event_id = match_event(machine, token)
        try:
            state = machine.dispatch(event_id)
        except NoSuchEvent as e:
            print(f"Error: {e}", file=sys.stderr)
            return 1
        except Exception as e:
            print(f"Dispatch of {event_id!r} failed: {e}", file=sys.stderr)
            if args.verbose:
                traceback.print_exc()
            return 2
        print(f"{event_id} -> {state.get_id()}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
