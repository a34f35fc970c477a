"""Query plan nodes that remove duplicate rows.

Two rows are duplicates when they have the same values
for all the columns, or for a subset of key columns.
Missing values are equal to each other.

When duplicates are found, the first row that was seen
wins, so the result is deterministic and preserves
the order of the input.
"""

import logging

import pyarrow as pa

from ..errors import InvalidKey
from .base import QueryPlanNode
from .grouping import group_rows

log = logging.getLogger(__name__)


class DistinctNode(QueryPlanNode):
    """Emit only the first row for each distinct combination of keys.

    When ``keys`` are provided, only the key columns are emitted
    unless ``keep_all=True``, in which case the whole first row
    for each distinct key is emitted.

    >>> import pyarrow as pa
    >>> from relpipe.compute import PyArrowTableDataSource
    >>> data = pa.record_batch({"origin": ["JFK", "JFK", "EWR"], "dest": ["MIA", "BOS", "IAH"]})
    >>> next(DistinctNode(["origin"], PyArrowTableDataSource(data)).batches()).to_pydict()
    {'origin': ['JFK', 'EWR']}
    >>> next(DistinctNode(["origin"], PyArrowTableDataSource(data), keep_all=True).batches()).to_pydict()
    {'origin': ['JFK', 'EWR'], 'dest': ['MIA', 'IAH']}
    """

    def __init__(
        self, keys: list[str] | None, child: QueryPlanNode, keep_all: bool = False
    ) -> None:
        """
        :param keys: The columns that identify duplicates,
                     ``None`` means all the columns.
        :param child: The node emitting the data to deduplicate.
        :param keep_all: Emit all the columns and not only the keys.
        """
        self.keys = list(keys) if keys is not None else None
        self.keep_all = keep_all
        self.child = child

    def __str__(self) -> str:
        return f"DistinctNode(keys={self.keys}, keep_all={self.keep_all}, {self.child})"

    def batches(self) -> QueryPlanNode.RecordBatchesGenerator:
        """Deduplicate the rows of the child node.

        Duplicates might be in different batches,
        so all the data of the child is loaded in memory.
        """
        batch = self.child.collect()
        names = batch.schema.names

        keys = self.keys if self.keys is not None else names
        missing_keys = [k for k in keys if k not in names]
        if missing_keys:
            raise InvalidKey(missing_keys)

        groups = group_rows(batch, keys)
        first_rows = pa.array([rows[0] for rows in groups.values()], type=pa.int64())
        log.debug("Found %d distinct rows out of %d", len(first_rows), batch.num_rows)

        if not self.keep_all:
            batch = batch.select(keys)
        yield batch.take(first_rows)
