"""Render tabular data as plain text.

:func:`tabulate` is what relations use to render themselves when printed.
It accepts a :class:`pyarrow.Table` or :class:`pyarrow.RecordBatch`,
shows missing values as ``NA``, floats with 2 decimal places
and stops after ``max_rows`` rows:

    >>> import pyarrow as pa
    >>> flights = pa.table({
    ...     "carrier": ["UA", "AA", "B6"],
    ...     "flight": [1545, 1141, None],
    ...     "dep_delay": [2.0, 4.0, -1.0],
    ... })
    >>> print(tabulate(flights, max_rows=2))
    carrier | flight | dep_delay
    ------- | ------ | ---------
    UA      | 1545   | 2.00
    AA      | 1141   | 4.00
    ... and 1 more rows
"""

import datetime
from typing import Any

import pyarrow as pa

MAX_TEXT_WIDTH = 30


def tabulate(data: pa.Table | pa.RecordBatch, max_rows: int = 20) -> str:
    """Format a Table or RecordBatch into a text table."""
    names = data.column_names
    shown = data.slice(0, max_rows)

    # Cells are formatted column by column, like Arrow stores them.
    cells = [
        [format_value(value) for value in shown.column(name).to_pylist()]
        for name in names
    ]
    widths = [
        max([len(name)] + [len(cell) for cell in column])
        for name, column in zip(names, cells)
    ]

    lines = [_render_row(names, widths), _render_row(["-" * w for w in widths], widths)]
    lines.extend(_render_row(row, widths) for row in zip(*cells))

    omitted = data.num_rows - shown.num_rows
    if omitted > 0:
        lines.append(f"... and {omitted} more rows")
    return "\n".join(lines)


def _render_row(values: list[str], widths: list[int]) -> str:
    return " | ".join(value.ljust(width) for value, width in zip(values, widths)).rstrip()


def format_value(value: Any) -> str:
    """Format a single cell.

    Date-times are rendered in ISO format and texts
    longer than ``MAX_TEXT_WIDTH`` are truncated.
    """
    if value is None:
        return "NA"
    if isinstance(value, bool):
        return str(value).lower()
    if isinstance(value, float):
        return f"{value:.2f}"
    if isinstance(value, datetime.datetime):
        return value.isoformat(sep=" ")
    if isinstance(value, datetime.date):
        return value.isoformat()

    text = str(value)
    if len(text) > MAX_TEXT_WIDTH:
        text = text[: MAX_TEXT_WIDTH - 3] + "..."
    return text
