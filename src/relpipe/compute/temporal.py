"""Date-time values.

Date-time columns are Arrow timestamps, an instant
with an associated unit and, optionally, a timezone.

Data sources usually provide date-times as strings or,
like in the flights data, as separate year, month, day,
hour and minute components. The functions in this module
build timestamps out of both and are meant to be used
within a :class:`relpipe.compute.FunctionCallExpression`::

    relation.mutate(
        departure=FunctionCallExpression(
            make_datetime, col("year"), col("month"), col("day"),
            col("hour"), col("minute"), tz="America/New_York"
        )
    )

Values that can't be converted become missing instead of failing,
a date-time column only contains valid instants or missing values.
"""

import pyarrow as pa
import pyarrow.compute as pc

from ..errors import TypeMismatch

__all__ = ("parse_datetime", "make_datetime")


def parse_datetime(
    values: pa.Array | pa.ChunkedArray,
    format: str = "%Y-%m-%d %H:%M:%S",
    unit: str = "s",
    tz: str | None = None,
) -> pa.Array:
    """Parse strings into timestamps.

    :param values: The strings to parse.
    :param format: The ``strptime`` format of the strings.
    :param unit: The unit of the resulting timestamps.
    :param tz: When provided, the parsed values are local
               times in that timezone.

    >>> parse_datetime(pa.array(["2013-01-01 05:17:00", "not a date"])).to_pylist()
    [datetime.datetime(2013, 1, 1, 5, 17), None]
    """
    if not pa.types.is_string(values.type) and not pa.types.is_large_string(values.type):
        raise TypeMismatch(f"Can only parse date-times from strings, got {values.type}")

    parsed = pc.strptime(values, format=format, unit=unit, error_is_null=True)
    if tz is not None:
        parsed = pc.assume_timezone(parsed, timezone=tz)
    return parsed


def make_datetime(
    year: pa.Array,
    month: pa.Array,
    day: pa.Array,
    hour: pa.Array | int = 0,
    minute: pa.Array | int = 0,
    tz: str | None = None,
) -> pa.Array:
    """Build timestamps out of their components.

    Components can be arrays or plain integers, when any
    component is missing the resulting value is missing.

    >>> make_datetime(pa.array([2013, 2013]), pa.array([1, 2]), pa.array([1, None]),
    ...               pa.array([5, 0]), pa.array([17, 0])).to_pylist()
    [datetime.datetime(2013, 1, 1, 5, 17), None]
    """
    def _component(value: pa.Array | int, width: int) -> pa.Array | pa.Scalar:
        if isinstance(value, int):
            return pa.scalar(str(value).rjust(width, "0"))
        if not pa.types.is_integer(value.type):
            raise TypeMismatch(f"Date-time components must be integers, got {value.type}")
        return pc.utf8_lpad(pc.cast(value, pa.string()), width=width, padding="0")

    date = pc.binary_join_element_wise(
        _component(year, 4), _component(month, 2), _component(day, 2), "-"
    )
    time = pc.binary_join_element_wise(_component(hour, 2), _component(minute, 2), ":")
    text = pc.binary_join_element_wise(date, time, " ")
    return parse_datetime(text, format="%Y-%m-%d %H:%M", unit="s", tz=tz)
