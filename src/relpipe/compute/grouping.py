"""Partition rows by the values of key columns.

Grouping, distinct and joins all need to know
which rows share the same values for a set of key columns.

Arrow can dictionary encode a single column to find its
unique values, but it can't do the same for a combination
of columns. So the partitioning is implemented in Python,
by building a tuple of the key values of each row and
using it as the key of a dictionary. It's much slower than
a native implementation, but it's easy to follow
and it gives full control over how keys compare:

* Missing values are equal to each other, so all the rows
  with a missing key end up in the same group.
* ``NaN`` values are equal to each other too, even if
  ``NaN != NaN`` in Python.
* Groups are ordered by the first appearance of their key.
"""

import math
from typing import Any

import pyarrow as pa


class _NaN:
    """Stand-in for NaN in keys, as NaN is not equal to itself."""

    def __repr__(self) -> str:
        return "NaN"


NAN_KEY = _NaN()


def _normalize(value: Any) -> Any:
    if isinstance(value, float) and math.isnan(value):
        return NAN_KEY
    return value


def row_keys(batch: pa.RecordBatch, keys: list[str]) -> list[tuple]:
    """Build the tuple of key values for each row of the batch.

    Categorical columns are keyed by their label,
    so that equal labels compare equal even when they
    come from categoricals with different label sets.
    """
    columns = [
        [_normalize(value) for value in batch.column(key).to_pylist()]
        for key in keys
    ]
    if not columns:
        return [()] * batch.num_rows
    return list(zip(*columns))


def group_rows(batch: pa.RecordBatch, keys: list[str]) -> dict[tuple, list[int]]:
    """Find the indices of the rows that belong to each group.

    Returns a dictionary of ``{key_values: [row_index, ...]}``
    where the keys appear in the order they are first seen
    in the batch and the indices are in ascending order.

    >>> batch = pa.record_batch({"origin": ["JFK", None, "EWR", None, "JFK"]})
    >>> group_rows(batch, ["origin"])
    {('JFK',): [0, 4], (None,): [1, 3], ('EWR',): [2]}
    """
    groups: dict[tuple, list[int]] = {}
    for index, key in enumerate(row_keys(batch, keys)):
        groups.setdefault(key, []).append(index)
    return groups


def has_missing(key: tuple) -> bool:
    """If any of the values of the key is missing."""
    return any(value is None for value in key)
