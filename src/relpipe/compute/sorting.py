"""Ordering of rows.

Sorting is stable: rows with equal sort keys keep
the order they had in the input. Asking for the
"top 5 flights by delay" is thus deterministic even
when multiple flights have the same delay, as ties
are resolved by the original order of the rows.
"""

import logging

import pyarrow as pa
import pyarrow.compute as pc

from ..errors import UnknownColumn
from .base import QueryPlanNode

log = logging.getLogger(__name__)


class SortNode(QueryPlanNode):
    """Sort all the rows of the child by one or more keys.

    The first key decides the order, the following keys
    only break ties of the previous ones. Each key has
    its own direction in ``descending``.

    Missing values are always placed last, whatever the
    direction, while categorical columns are sorted by
    the order of their labels, not alphabetically.

    >>> import pyarrow as pa
    >>> from relpipe.compute import PyArrowTableDataSource
    >>> data = pa.record_batch({"values": [1, 2, None, 4, 5]})
    >>> SortNode(["values"], [True], PyArrowTableDataSource(data)).collect().to_pydict()
    {'values': [5, 4, 2, 1, None]}
    """

    def __init__(
        self, keys: list[str], descending: list[bool], child: QueryPlanNode
    ) -> None:
        """
        :param keys: Names of the columns to sort by, most significant first.
        :param descending: For each key, ``True`` to put the largest values first.
        :param child: The node emitting the data to be sorted.
        """
        if len(keys) != len(descending):
            raise ValueError("A direction is required for each sort key")

        self.keys = list(keys)
        self.sorting = list(
            zip(keys, ("descending" if desc else "ascending" for desc in descending))
        )
        self.child = child

    def __str__(self) -> str:
        return f"SortNode(sorting={self.sorting}, {self.child})"

    def batches(self) -> QueryPlanNode.RecordBatchesGenerator:
        """Collect the child in a single batch and emit it sorted."""
        batch = self.child.collect()
        for key in self.keys:
            if key not in batch.schema.names:
                raise UnknownColumn(key, batch.schema.names)
        if not self.keys:
            yield batch
            return

        # Build the columns the sort is based on,
        # categoricals are sorted by the position of their label.
        sort_columns = {}
        for key in self.keys:
            column = batch.column(key)
            if pa.types.is_dictionary(column.type):
                column = column.indices
            sort_columns[key] = column
        sort_batch = pa.RecordBatch.from_arrays(
            list(sort_columns.values()), names=list(sort_columns.keys())
        )

        # sort_indices is a stable sort and places nulls at the end by default.
        indices = pc.sort_indices(sort_batch, sort_keys=self.sorting)
        log.debug("Sorted %d rows by %s", batch.num_rows, self.sorting)
        yield batch.take(indices)
