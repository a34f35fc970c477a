"""Query plan nodes that keep only a window of the rows.

Combined with a stable sort it answers questions like
"the 10 most delayed flights" deterministically,
and it's what :meth:`relpipe.Relation.head` and
:meth:`relpipe.Relation.slice` are built on.
"""

from .base import QueryPlanNode


class PaginateNode(QueryPlanNode):
    """Emit a window of the rows of the child node.

    The window starts at row ``offset`` (the first row is 0)
    and spans ``length`` rows, or less when the data ends first.
    Rows before the window are discarded, once the window is
    full the child is not consumed any further.

    >>> import pyarrow as pa
    >>> from relpipe.compute import PyArrowTableDataSource
    >>> data = pa.record_batch({"flight": [1545, 1714, 1141, 725, 461]})
    >>> next(PaginateNode(1, 2, PyArrowTableDataSource(data)).batches()).to_pydict()
    {'flight': [1714, 1141]}
    """

    def __init__(self, offset: int, length: int, child: QueryPlanNode) -> None:
        """
        :param offset: Index of the first row of the window.
        :param length: Maximum number of rows in the window.
        :param child: The node emitting the rows to paginate.
        """
        if offset < 0 or length < 0:
            raise ValueError("Offset and length can't be negative")
        self.offset = offset
        self.length = length
        self.child = child

    def __str__(self) -> str:
        return f"PaginateNode(offset={self.offset}, length={self.length}, {self.child})"

    def batches(self) -> QueryPlanNode.RecordBatchesGenerator:
        """Slice the batches of the child to the window.

        When the window is past the end of the data, an empty
        batch is emitted so that the schema is preserved.
        """
        to_skip = self.offset
        to_take = self.length
        empty = None
        emitted = False

        child_batches = self.child.batches()
        for batch in child_batches:
            if empty is None:
                empty = batch.slice(0, 0)
            if to_skip >= batch.num_rows:
                to_skip -= batch.num_rows
                continue

            page = batch.slice(to_skip, to_take)
            to_skip = 0
            to_take -= page.num_rows
            if page.num_rows:
                emitted = True
                yield page
            if to_take == 0:
                child_batches.close()
                break

        if not emitted and empty is not None:
            yield empty
