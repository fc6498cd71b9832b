"""
State table and diagram reports for state machines.
"""

import logging
from pathlib import Path
from typing import List, Optional, Union

from .core import StateMachine


logger = logging.getLogger(__name__)

COLUMN_WIDTH = 16
TABLE_COLUMNS = ("STATE", "ACCEPTED", "TERMINAL", "EVENT", "ACTION", "NEXT_STATE")
NO_VALUE = "---"


def _flag(value: bool) -> str:
    return "true" if value else "false"


class StateTableReporter:
    """Generate state machine reports in various formats"""

    @staticmethod
    def generate_report(machine: StateMachine,
                        format: str = "table",
                        output: Optional[Union[str, Path]] = None) -> str:
        """
        Generate a report of the machine's states and events.

        Args:
            machine: State machine to describe
            format: Output format (table, markdown, plantuml)
            output: Optional output file path

        Returns:
            Generated report as string
        """
        if format == "table":
            content = StateTableReporter._generate_table(machine)
        elif format == "markdown":
            content = StateTableReporter._generate_markdown(machine)
        elif format == "plantuml":
            content = StateTableReporter._generate_plantuml(machine)
        else:
            raise ValueError(f"Unknown report format: {format}")

        if output:
            output = Path(output)
            output.parent.mkdir(parents=True, exist_ok=True)
            with open(output, 'w', encoding='utf-8') as f:
                f.write(content)
            logger.info(f"Report written to {output}")

        return content

    @staticmethod
    def _rows(machine: StateMachine) -> List[List[str]]:
        """One row per outgoing event, one placeholder row per terminal state"""
        rows = []
        for state in machine.get_states().values():
            prefix = [str(state.get_id()), _flag(state.is_accepted()), _flag(state.is_terminal())]
            events = state.get_events()
            if not events:
                rows.append(prefix + [NO_VALUE, NO_VALUE, NO_VALUE])
            for event in events.values():
                rows.append(prefix + [
                    str(event.get_id()),
                    _flag(event.has_action()),
                    str(event.get_target_id()),
                ])
        return rows

    @staticmethod
    def _generate_table(machine: StateMachine) -> str:
        """Fixed-width table, 16 characters per column"""
        lines = []
        for row in [list(TABLE_COLUMNS)] + StateTableReporter._rows(machine):
            lines.append("".join(cell.ljust(COLUMN_WIDTH) for cell in row))
        lines.append("-" * 80)
        return "\n".join(lines) + "\n"

    @staticmethod
    def _generate_markdown(machine: StateMachine) -> str:
        lines = [
            f"## {machine.name}",
            "",
            "| " + " | ".join(TABLE_COLUMNS) + " |",
            "|" + "|".join("---" for _ in TABLE_COLUMNS) + "|",
        ]
        for row in StateTableReporter._rows(machine):
            lines.append("| " + " | ".join(row) + " |")
        return "\n".join(lines) + "\n"

    @staticmethod
    def _generate_plantuml(machine: StateMachine) -> str:
        """Generate state diagram in PlantUML format"""
        lines = ["@startuml", f"title {machine.name} State Machine", ""]

        aliases = {}
        for index, (state_id, state) in enumerate(machine.get_states().items()):
            alias = f"S{index}"
            aliases[state_id] = alias
            label = f'state "{state_id}" as {alias}'
            if state is machine.get_current_state():
                label += " #yellow"
            lines.append(label)
            if state.is_accepted():
                lines.append(f"{alias} : accepted")

        lines.append("")

        initial = machine.get_initial_state()
        if initial is not None:
            lines.append(f"[*] --> {aliases[initial.get_id()]}")

        for state_id, state in machine.get_states().items():
            for event in state.get_events().values():
                label = str(event.get_id())
                if event.has_action():
                    label += " / action"
                lines.append(f"{aliases[state_id]} --> {aliases[event.get_target_id()]} : {label}")

        lines.append("@enduml")
        return "\n".join(lines) + "\n"
