"""Query plan nodes that implement filtering of rows.

A common request in queries is to filter the data to
pick only the rows that respect a specific filter.
An example is the ``WHERE`` condition in SQL queries.

Predicates follow three-valued logic: comparing a missing
value returns missing, not ``false``. When deciding
which rows to keep a missing result counts as ``false``,
so the row is excluded.

This module implements the basic filtering capabilities.
"""

import functools
import logging

import pyarrow as pa
import pyarrow.compute as pc

from ..errors import RowCountMismatch, TypeMismatch
from .base import QueryPlanNode, ensure_array
from .expressions import Expression

log = logging.getLogger(__name__)


class FilterNode(QueryPlanNode):
    """Filter data based on one or more predicate expressions.

    The filter expects expressions that when applied
    to the batch of data being filtered return ``true``,
    ``false`` or missing for each row in the data to mark which
    rows have to be preserved and which rows have to be discarded.

    When multiple predicates are provided a row is preserved
    only if all of them are ``true``.

    >>> import pyarrow as pa
    >>> import pyarrow.compute as pc
    >>> from relpipe.compute import col, lit, FunctionCallExpression, PyArrowTableDataSource
    >>> data = pa.record_batch({"values": [1, 2, None, 4, 5]})
    >>> predicate = FunctionCallExpression(pc.greater, col("values"), lit(3))
    >>> # predicate is a function that returns true for values greater than 3
    >>> predicate.apply(data).to_pylist()
    [False, False, None, True, True]
    >>> next(FilterNode(predicate, PyArrowTableDataSource(data)).batches()).to_pydict()
    {'values': [4, 5]}
    """

    def __init__(self, expression: Expression | list[Expression], child: QueryPlanNode) -> None:
        """
        :param expression: The predicate expression to filter with,
                           or a list of predicates that must all hold.
        :param child: The node emitting the data to be filtered.
        """
        if isinstance(expression, Expression):
            expression = [expression]
        if not expression:
            raise ValueError("At least one predicate is required to filter")
        self.expressions = list(expression)
        self.child = child

    @property
    def expression(self) -> Expression:
        """The first predicate, most filters only have one."""
        return self.expressions[0]

    def __str__(self) -> str:
        predicates = " AND ".join(str(e) for e in self.expressions)
        return f"FilterNode(filter={predicates}, child={self.child})"

    def batches(self) -> QueryPlanNode.RecordBatchesGenerator:
        """Apply the filtering to the child node.

        For each recordbatch yielded by the child node,
        apply the expressions and get back a mask
        (an array of true/false/missing values).

        Based on the mask filter the rows of the batch
        and return only those matching the filter.
        """
        for batch in self.child.batches():
            masks = [self._mask(expr, batch) for expr in self.expressions]
            # Kleene logic: false AND missing is false, true AND missing is missing.
            mask = functools.reduce(pc.and_kleene, masks)
            filtered = batch.filter(mask, null_selection_behavior="drop")
            log.debug("Filter kept %d of %d rows", filtered.num_rows, batch.num_rows)
            yield filtered

    def _mask(self, expr: Expression, batch: pa.RecordBatch) -> pa.Array:
        mask = ensure_array(expr.apply(batch), batch.num_rows)
        if not pa.types.is_boolean(mask.type):
            raise TypeMismatch(f"Filter predicate {expr} returned {mask.type} instead of bool")
        if len(mask) != batch.num_rows:
            raise RowCountMismatch(
                f"Filter predicate {expr} produced {len(mask)} rows, expected {batch.num_rows}"
            )
        return mask
