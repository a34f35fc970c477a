"""Building blocks of relpipe query plans.

A plan is a tree of :class:`QueryPlanNode` and nodes compute
new columns through :class:`Expression` objects.
"""

import abc
from typing import Any, Iterator

import pyarrow as pa

from ..errors import UnknownColumn


class QueryPlanNode(abc.ABC):
    """One step of a query plan.

    Nodes are arranged in a tree: the root is the last step
    to run and its children are the steps producing its input.
    Reading flights and keeping the late ones looks like::

        FilterNode(late) <- CSVDataSource("flights.csv")

    Most nodes have a single child, a :class:`relpipe.compute.JoinNode`
    has two and data sources have none.

    Data flows between nodes as :class:`pyarrow.RecordBatch` objects.
    A node never changes the batches it receives, it builds new ones,
    and it always emits at least one batch, possibly with zero rows,
    so that consumers can rely on the schema of the result.

    A node that logs how many rows go through it is as simple as::

        class CountRowsNode(QueryPlanNode):
            def __init__(self, child):
                self.child = child

            def batches(self):
                for batch in self.child.batches():
                    log.info("%d rows", batch.num_rows)
                    yield batch

            def __str__(self):
                return f"CountRowsNode({self.child})"
    """

    RecordBatchesGenerator = Iterator[pa.RecordBatch]

    @abc.abstractmethod
    def batches(self) -> RecordBatchesGenerator:
        """Run the node and yield the batches of its result.

        Iteration is lazy, children are only consumed
        as far as the caller asks for data.
        """
        ...

    @abc.abstractmethod
    def __str__(self) -> str:
        """Describe the node and its children."""
        ...

    def collect(self) -> pa.RecordBatch:
        """Execute the node and merge all its batches in a single one.

        Nodes that need to see all the data at once
        (sorting, grouping, joins...) rely on this to
        gather the output of their children.
        """
        table = pa.Table.from_batches(list(self.batches()))
        # combine_chunks on a chunked array with no chunks
        # returns an empty array, so this works for empty data too.
        return pa.RecordBatch.from_arrays(
            [column.combine_chunks() for column in table.columns],
            schema=table.schema,
        )


class Expression(abc.ABC):
    """A computation producing a column from a RecordBatch.

    ``dep_delay - arr_delay`` or ``dep_time // 100`` are
    expressions: given the batch they compute one value per row.
    The result is a :class:`pyarrow.Array` with as many rows
    as the batch, or a :class:`pyarrow.Scalar` for constants
    which the consumer broadcasts.
    """

    @abc.abstractmethod
    def apply(self, batch: pa.RecordBatch) -> pa.Array | pa.Scalar:
        """Compute the expression over ``batch``."""
        ...

    @abc.abstractmethod
    def __str__(self) -> str:
        """Describe the expression."""
        ...

    def __repr__(self) -> str:
        return str(self)


class ColumnRef(Expression):
    """The data of a column, looked up by name.

    >>> import pyarrow as pa
    >>> col("carrier").apply(pa.record_batch({"carrier": ["UA", "AA"]})).to_pylist()
    ['UA', 'AA']
    """

    def __init__(self, name: str) -> None:
        self.name = name

    def apply(self, batch: pa.RecordBatch) -> pa.Array:
        if self.name not in batch.schema.names:
            raise UnknownColumn(self.name, batch.schema.names)
        return batch.column(self.name)

    def __str__(self) -> str:
        return f"ColumnRef({self.name})"


class Literal(Expression):
    """A constant value.

    Applying a literal returns the same :class:`pyarrow.Scalar`
    whatever the batch is, the nodes consuming the
    expression will broadcast it to the rows when needed.
    """

    def __init__(self, value: Any, type: pa.DataType | None = None) -> None:
        """
        :param value: The python value of the literal.
        :param type: The arrow type of the literal, inferred when not provided.
        """
        self.value = pa.scalar(value, type=type)

    def apply(self, batch: pa.RecordBatch) -> pa.Scalar:
        return self.value

    def __str__(self) -> str:
        return f"Literal({self.value!r})"


col = ColumnRef
lit = Literal


def ensure_array(data: pa.Array | pa.ChunkedArray | pa.Scalar, length: int) -> pa.Array:
    """Make sure that the result of an expression is an array of ``length`` rows.

    Scalars are broadcast, chunked arrays are merged.
    """
    if isinstance(data, pa.Scalar):
        return pa.repeat(data, length)
    if isinstance(data, pa.ChunkedArray):
        return data.combine_chunks()
    if isinstance(data, pa.Array):
        return data
    return pa.repeat(pa.scalar(data), length)
