"""Query plan nodes that implement join operations.

The join operations are implemented as hash joins:
the rows of the right side are partitioned by their key values
(the hash table), then each row of the left side looks up
the right rows that have its same key values.

Join types
==========

* ``inner``: only the rows whose key is on both sides.
* ``left``: all the left rows, right columns are missing when there is no match.
* ``right``: all the right rows, left columns are missing when there is no match.
* ``full``: all the rows of both sides.
* ``semi``: the left rows that have a match, with only the left columns.
* ``anti``: the left rows that have no match, with only the left columns.

When a left row matches multiple right rows, the left row is
repeated once for each match. Missing keys never match anything,
not even another missing key.

>>> import pyarrow as pa
>>> from relpipe.compute import PyArrowTableDataSource
>>> flights = PyArrowTableDataSource(pa.record_batch({"carrier": ["UA", "AA", "XX"], "flight": [1545, 1141, 1]}))
>>> airlines = PyArrowTableDataSource(pa.record_batch({"carrier": ["AA", "UA"], "name": ["American", "United"]}))
>>> next(JoinNode(["carrier"], ["carrier"], flights, airlines).batches()).to_pydict()
{'carrier': ['UA', 'AA'], 'flight': [1545, 1141], 'name': ['United', 'American']}
"""

import logging

import pyarrow as pa
import pyarrow.compute as pc

from ..config import config
from ..errors import InvalidKey, TypeMismatch
from .base import QueryPlanNode
from .categorical import encode_categorical
from .grouping import group_rows, has_missing, row_keys

log = logging.getLogger(__name__)

JOIN_TYPES = ("inner", "left", "right", "full", "semi", "anti")


class JoinNode(QueryPlanNode):
    """Join two data sources on one or more key columns.

    Suppose we have two tables::

        flights:
        +---------+--------+
        | carrier | flight |
        +---------+--------+
        | UA      | 1545   |
        | AA      | 1141   |
        | UA      | 1714   |
        +---------+--------+

        airlines:
        +---------+----------+
        | carrier | name     |
        +---------+----------+
        | AA      | American |
        | UA      | United   |
        +---------+----------+

    We would perform the following steps:

    1. Build an hash table of the right side, mapping each key
       to the rows that have it::

        {("AA",): [0], ("UA",): [1]}

    2. For each row of the left side, look up the key in the
       hash table and record the pairs of matching rows.
       Rows without a match are recorded paired with nothing
       when the join type preserves them::

        left rows:  [0, 1, 2]
        right rows: [1, 0, 1]

    3. Take the rows from both sides and put the columns
       side by side. Key columns are only emitted once,
       other right columns with a name that already exists
       on the left get a suffix::

        +---------+--------+----------+
        | carrier | flight | name     |
        +---------+--------+----------+
        | UA      | 1545   | United   |
        | AA      | 1141   | American |
        | UA      | 1714   | United   |
        +---------+--------+----------+

    The output preserves the order of the left rows, the matches
    for a left row follow the order of the right rows, and right rows
    without a match (in ``right`` and ``full`` joins) come last.
    """

    def __init__(
        self,
        left_keys: list[str],
        right_keys: list[str],
        left_child: QueryPlanNode,
        right_child: QueryPlanNode,
        how: str = "inner",
        suffix: str | None = None,
    ) -> None:
        """
        :param left_keys: The keys to join on in the left table.
        :param right_keys: The keys to join on in the right table,
                           matched with the left keys by position.
        :param left_child: The left source of data to join.
        :param right_child: The right source of data to join.
        :param how: The join type, one of ``inner``, ``left``, ``right``,
                    ``full``, ``semi`` or ``anti``.
        :param suffix: Suffix for the right columns whose name conflicts
                       with a left column, defaults to the configured ``JOIN_SUFFIX``.
        """
        if how not in JOIN_TYPES:
            raise ValueError(f"Unsupported join type {how!r}, must be one of {JOIN_TYPES}")
        if len(left_keys) != len(right_keys):
            raise ValueError("Left and right keys must have the same length")
        if not left_keys:
            raise ValueError("At least one key is required to join")

        self.left_keys = list(left_keys)
        self.right_keys = list(right_keys)
        self.left_child = left_child
        self.right_child = right_child
        self.how = how
        self.suffix = suffix if suffix is not None else config.JOIN_SUFFIX

    def __str__(self) -> str:
        return (
            f"JoinNode(how={self.how}, left_keys={self.left_keys}, right_keys={self.right_keys}, "
            f"left={self.left_child}, right={self.right_child})"
        )

    def batches(self) -> QueryPlanNode.RecordBatchesGenerator:
        """Perform the join operation.

        Accumulates all rows of both children to
        perform the join operation, so it is not suitable
        for datasets that don't fit in memory.
        """
        left = self.left_child.collect()
        right = self.right_child.collect()
        self._validate_keys(left, right)

        left_indices, right_indices = self._match_rows(left, right)
        log.debug(
            "%s join of %d and %d rows produced %d rows",
            self.how, left.num_rows, right.num_rows, len(left_indices),
        )

        left_take = pa.array(left_indices, type=pa.int64())
        if self.how in ("semi", "anti"):
            yield left.take(left_take)
            return

        # Indices can be missing, taking a missing index gives a missing value.
        right_take = pa.array(right_indices, type=pa.int64())
        combined: dict[str, pa.Array] = {}
        for name in left.schema.names:
            column = left.column(name).take(left_take)
            if name in self.left_keys and self.how in ("right", "full"):
                # Rows that only exist on the right side take the key from the right.
                right_key = self.right_keys[self.left_keys.index(name)]
                column = _coalesce_keys(column, right.column(right_key).take(right_take))
            combined[name] = column

        for name in right.schema.names:
            if name in self.right_keys:
                # Skip the right keys as they have the same values of the left keys
                # and we don't want to duplicate them in the resulting recordbatch
                continue
            new_name = name
            if name in combined:
                new_name = name + self.suffix
            if new_name in combined:
                raise ValueError(f"Column {new_name} already exists, use a different suffix")
            combined[new_name] = right.column(name).take(right_take)

        yield pa.RecordBatch.from_arrays(list(combined.values()), names=list(combined.keys()))

    def _validate_keys(self, left: pa.RecordBatch, right: pa.RecordBatch) -> None:
        missing_left = [k for k in self.left_keys if k not in left.schema.names]
        if missing_left:
            raise InvalidKey(missing_left, "left")
        missing_right = [k for k in self.right_keys if k not in right.schema.names]
        if missing_right:
            raise InvalidKey(missing_right, "right")

        for left_key, right_key in zip(self.left_keys, self.right_keys):
            left_type = _key_type(left.schema.field(left_key).type)
            right_type = _key_type(right.schema.field(right_key).type)
            if left_type != right_type:
                raise TypeMismatch(
                    f"Can't join {left_key} ({left_type}) with {right_key} ({right_type})"
                )

    def _match_rows(
        self, left: pa.RecordBatch, right: pa.RecordBatch
    ) -> tuple[list[int | None], list[int | None]]:
        """Find the pairs of left and right rows that have to be emitted."""
        lookup = group_rows(right, self.right_keys)

        left_indices: list[int | None] = []
        right_indices: list[int | None] = []
        matched_right: set[int] = set()
        for left_index, key in enumerate(row_keys(left, self.left_keys)):
            matches = None if has_missing(key) else lookup.get(key)

            if self.how == "semi":
                if matches:
                    left_indices.append(left_index)
                continue
            if self.how == "anti":
                if not matches:
                    left_indices.append(left_index)
                continue

            if matches:
                left_indices.extend([left_index] * len(matches))
                right_indices.extend(matches)
                matched_right.update(matches)
            elif self.how in ("left", "full"):
                left_indices.append(left_index)
                right_indices.append(None)

        if self.how in ("right", "full"):
            for right_index in range(right.num_rows):
                if right_index not in matched_right:
                    left_indices.append(None)
                    right_indices.append(right_index)

        return left_indices, right_indices


def _key_type(data_type: pa.DataType) -> pa.DataType:
    # Categoricals join with their labels.
    if pa.types.is_dictionary(data_type):
        return data_type.value_type
    return data_type


def _coalesce_keys(left: pa.Array, right: pa.Array) -> pa.Array:
    if not pa.types.is_dictionary(left.type) and not pa.types.is_dictionary(right.type):
        return pc.coalesce(left, right)

    left_values = left.dictionary_decode() if pa.types.is_dictionary(left.type) else left
    right_values = right.dictionary_decode() if pa.types.is_dictionary(right.type) else right
    values = pc.coalesce(left_values, right_values)
    if not pa.types.is_dictionary(left.type):
        return values
    # Keep the left labels, right only labels are appended after them.
    return encode_categorical(
        values, labels=left.dictionary, ordered=left.type.ordered, allow_new_labels=True
    )
