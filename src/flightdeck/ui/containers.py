# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.

import json
from typing import List, Optional, Sequence

from rich.console import Console
from rich.measure import Measurement
from rich.table import Table
from rich.text import Text

from flightdeck.domain.models import Container

HEADERS = ["handle", "worker", "pipeline", "job", "build #", "build id", "type", "name", "attempt"]

NONE_TOKEN = "none"
NOT_APPLICABLE_TOKEN = "n/a"

# Upper bound used when measuring the table; rows are never cut to the terminal.
_UNBOUNDED_WIDTH = 10_000


def render_json(containers: Sequence[Container]) -> str:
    """
    Encodes the containers as a JSON array, in the given order and with the
    same keys the service sent.
    """
    return json.dumps([c.to_wire() for c in containers], separators=(",", ":"))


def sort_containers(containers: Sequence[Container]) -> List[Container]:
    """Stable sort by handle."""
    return sorted(containers, key=lambda c: c.handle)


def _cell(value: Optional[object], missing: str = NONE_TOKEN) -> Text:
    if value is None or value == "":
        return Text(missing, style="dim")
    return Text(str(value))


def container_row(container: Container) -> List[Text]:
    return [
        Text(container.handle),
        Text(container.worker_name),
        _cell(container.pipeline_name),
        _cell(container.job_name),
        _cell(container.build_name),
        _cell(container.build_id or None),
        Text(container.type.value),
        _cell(container.name),
        _cell(container.attempt, NOT_APPLICABLE_TOKEN),
    ]


def render_table(containers: Sequence[Container]) -> Table:
    table = Table(box=None, show_edge=False, pad_edge=False, header_style="bold")
    for header in HEADERS:
        table.add_column(header, no_wrap=True)

    for container in sort_containers(containers):
        table.add_row(*container_row(container))

    return table


def table_width(table: Table, console: Console) -> int:
    """Width the table needs to show every cell in full."""
    options = console.options.update_width(_UNBOUNDED_WIDTH)
    return Measurement.get(console, options, table).maximum


def print_table(containers: Sequence[Container], console: Console) -> None:
    """
    Prints the container table. The console is widened to fit the table,
    so piped or narrow output keeps full handles and names.
    """
    table = render_table(containers)
    console.width = max(console.width, table_width(table, console))
    console.print(table)
