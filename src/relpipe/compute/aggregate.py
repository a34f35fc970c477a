"""Query plan nodes that compute aggregations.

Frequently when analysing data is necessary
to compute statistics like the min, max, average, etc...
of the data stored in datasets.

The aggregate node is in charge of computing
those aggregations and projecting them as new
columns in a query pipeline.

Typically the aggregate node will group the data
by a set of columns and then compute the aggregations
for each group.

For example, given the following flights::

    origin, carrier, dep_delay
    JFK, B6, 10
    JFK, AA, 15
    EWR, UA, 8
    EWR, UA, 12
    JFK, B6, 20

We could group by origin and compute the sum of the delays
to get::

    origin, total_delay
    JFK, 45
    EWR, 20

Groups are emitted in the order their key first appears
in the data, and all the rows where the key is missing
form a single group.

Every aggregation has a policy for missing values:
by default they are skipped, with ``skip_missing=False``
any missing value makes the result of the group missing.
"""

import abc
import logging
from typing import Any

import pyarrow as pa
import pyarrow.compute as pc

from ..errors import InvalidKey, TypeMismatch, UnknownColumn
from .base import QueryPlanNode
from .categorical import encode_categorical
from .grouping import group_rows

log = logging.getLogger(__name__)

__all__ = (
    "AggregateNode",
    "CountAggregation",
    "CountDistinctAggregation",
    "SumAggregation",
    "MinAggregation",
    "MaxAggregation",
    "MeanAggregation",
)


class AggregateNode(QueryPlanNode):
    """Group data and compute aggregations.

    >>> import pyarrow as pa
    >>> from relpipe.compute import SumAggregation, PyArrowTableDataSource
    >>> data = pa.record_batch({
    ...    'origin': pa.array(['JFK', 'JFK', 'EWR', 'EWR', 'JFK']),
    ...    'carrier': pa.array(['B6', 'AA', 'UA', 'UA', 'B6']),
    ...    'dep_delay': pa.array([10, 15, 8, 12, 20])
    ... })
    >>> aggregate = AggregateNode(["origin"], {"total_delay": SumAggregation("dep_delay")},
    ...                           PyArrowTableDataSource(data))
    >>> next(aggregate.batches()).to_pydict()
    {'origin': ['JFK', 'EWR'], 'total_delay': [45, 20]}

    When no keys are provided, the whole data is a single group
    and the result is always one row, even when there is no data.
    """

    def __init__(
        self,
        keys: list[str],
        aggregations: dict[str, "Aggregation"],
        child: QueryPlanNode,
    ) -> None:
        """
        :param keys: The columns to group by.
        :param aggregations: The aggregations to compute in the form of {"new_col_name": Aggregation}.
        :param child: The child node that will provide the data to aggregate.
        """
        conflicts = set(keys) & set(aggregations)
        if conflicts:
            raise ValueError(f"Aggregations can't replace the group keys: {sorted(conflicts)}")

        self.keys = list(keys)
        self.aggregations = aggregations
        self.child = child

    def __str__(self) -> str:
        return f"AggregateNode(keys={self.keys}, aggregations={self.aggregations}, {self.child})"

    def batches(self) -> QueryPlanNode.RecordBatchesGenerator:
        """Group the rows of the child node and aggregate each group.

        All the data of the child has to be in memory,
        as the rows of a group might be spread across
        all the batches it emits.

        The resulting data has one row for each group, with the
        key columns first and then one column for each aggregation.
        """
        batch = self.child.collect()

        missing_keys = [k for k in self.keys if k not in batch.schema.names]
        if missing_keys:
            raise InvalidKey(missing_keys)
        for aggregation in self.aggregations.values():
            aggregation.validate(batch.schema)

        if self.keys:
            groups = group_rows(batch, self.keys)
        else:
            groups = {(): list(range(batch.num_rows))}
        log.debug("Aggregating %d rows in %d groups", batch.num_rows, len(groups))

        # The key values of each group are taken from the first row of the group,
        # so that key columns preserve their type (categoricals, timezones...)
        # The single group of an aggregation without keys can have no rows.
        result: dict[str, pa.Array] = {}
        if self.keys:
            first_rows = pa.array([rows[0] for rows in groups.values()], type=pa.int64())
            result = {key: batch.column(key).take(first_rows) for key in self.keys}

        chunks = [batch.take(pa.array(rows, type=pa.int64())) for rows in groups.values()]
        for name, aggregation in self.aggregations.items():
            values = [aggregation.compute_chunk(chunk) for chunk in chunks]
            result[name] = aggregation.build_column(values, batch)

        yield pa.RecordBatch.from_arrays(list(result.values()), names=list(result.keys()))


class Aggregation(abc.ABC):
    """Base class for aggregations.

    Every aggregation is expected to implement
    a method to compute the aggregated value of the rows
    of a single group and to declare the type of the resulting column.
    """

    def __init__(self, column: str, skip_missing: bool = True) -> None:
        """
        :param column: The column to aggregate.
        :param skip_missing: Ignore missing values, otherwise a
                             missing value makes the result missing.
        """
        self.column = column
        self.skip_missing = skip_missing

    def __str__(self) -> str:
        return f"{self.__class__.__name__}({self.column})"

    __repr__ = __str__

    def validate(self, schema: pa.Schema) -> None:
        """Check that the aggregation can be applied to data with the given schema."""
        if self.column not in schema.names:
            raise UnknownColumn(self.column, schema.names)

    @abc.abstractmethod
    def compute_chunk(self, batch: pa.RecordBatch) -> Any:
        """Compute the aggregated value for the rows of a group."""
        ...

    @abc.abstractmethod
    def result_type(self, input_type: pa.DataType) -> pa.DataType:
        """The type of the aggregated column given the type of the input one."""
        ...

    def build_column(self, values: list[Any], batch: pa.RecordBatch) -> pa.Array:
        """Build the aggregated column out of the value computed for each group."""
        input_type = batch.schema.field(self.column).type
        return pa.array(values, type=self.result_type(input_type))


class SimpleAggregation(Aggregation):
    """Provide a base implementation for simple aggregations like min,max,sum.

    Simple aggregations are those where the aggregated value can be
    computed by applying a single compute function to the column.
    """

    @abc.abstractmethod
    def _aggregate(self, data: pa.Array) -> pa.Scalar: ...

    def compute_chunk(self, batch: pa.RecordBatch) -> Any:
        return self._aggregate(batch.column(self.column)).as_py()


class NumericAggregation(SimpleAggregation):
    """Aggregations that only make sense for numbers, like sum and mean.

    Booleans are accepted and counted as ``0`` and ``1``.
    """

    def validate(self, schema: pa.Schema) -> None:
        super().validate(schema)
        input_type = schema.field(self.column).type
        if not (
            pa.types.is_integer(input_type)
            or pa.types.is_floating(input_type)
            or pa.types.is_boolean(input_type)
        ):
            raise TypeMismatch(
                f"{self.__class__.__name__} requires a numeric column, {self.column} is {input_type}"
            )


class SumAggregation(NumericAggregation):
    """Compute the sum of an aggregated column.

    The sum of a group with no values is ``0``.
    """

    def _aggregate(self, data: pa.Array) -> pa.Scalar:
        return pc.sum(data, skip_nulls=self.skip_missing, min_count=0)

    def result_type(self, input_type: pa.DataType) -> pa.DataType:
        if pa.types.is_floating(input_type):
            return pa.float64()
        return pa.int64()


class MeanAggregation(NumericAggregation):
    """Compute the mean of an aggregated column.

    The mean of a group with no values is missing.
    """

    def _aggregate(self, data: pa.Array) -> pa.Scalar:
        return pc.mean(data, skip_nulls=self.skip_missing, min_count=1)

    def result_type(self, input_type: pa.DataType) -> pa.DataType:
        return pa.float64()


class _ExtremeAggregation(SimpleAggregation):
    """Shared implementation of min and max.

    Categorical values are compared by the position of their
    label, so that the min of an ordered categorical like
    ``low < medium < high`` is ``low`` and not ``high``.
    The min or max of a group with no values is missing.
    """

    _function = None

    def compute_chunk(self, batch: pa.RecordBatch) -> Any:
        data = batch.column(self.column)
        if pa.types.is_dictionary(data.type):
            position = self._aggregate(data.indices).as_py()
            return None if position is None else data.dictionary[position].as_py()
        return self._aggregate(data).as_py()

    def _aggregate(self, data: pa.Array) -> pa.Scalar:
        return self._function(data, skip_nulls=self.skip_missing, min_count=1)

    def result_type(self, input_type: pa.DataType) -> pa.DataType:
        return input_type

    def build_column(self, values: list[Any], batch: pa.RecordBatch) -> pa.Array:
        data = batch.column(self.column)
        if pa.types.is_dictionary(data.type):
            return encode_categorical(
                pa.array(values, type=pa.string()),
                labels=data.dictionary,
                ordered=data.type.ordered,
            )
        return super().build_column(values, batch)


class MinAggregation(_ExtremeAggregation):
    """Compute the min of an aggregated column."""

    _function = staticmethod(pc.min)


class MaxAggregation(_ExtremeAggregation):
    """Compute the max of an aggregated column."""

    _function = staticmethod(pc.max)


class CountAggregation(Aggregation):
    """Count the rows of each group.

    When a column is provided, only the rows where the
    column is not missing are counted, unless ``skip_missing=False``.
    """

    def __init__(self, column: str | None = None, skip_missing: bool = True) -> None:
        super().__init__(column, skip_missing)

    def validate(self, schema: pa.Schema) -> None:
        if self.column is not None:
            super().validate(schema)

    def compute_chunk(self, batch: pa.RecordBatch) -> int:
        """Count the rows of the group."""
        if self.column is None:
            return batch.num_rows
        mode = "only_valid" if self.skip_missing else "all"
        return pc.count(batch.column(self.column), mode=mode).as_py()

    def result_type(self, input_type: pa.DataType | None) -> pa.DataType:
        return pa.int64()

    def build_column(self, values: list[Any], batch: pa.RecordBatch) -> pa.Array:
        return pa.array(values, type=pa.int64())


class CountDistinctAggregation(Aggregation):
    """Count the distinct values of a column in each group.

    Missing values are not counted unless ``skip_missing=False``,
    in which case they count as one additional distinct value.
    """

    def compute_chunk(self, batch: pa.RecordBatch) -> int:
        mode = "only_valid" if self.skip_missing else "all"
        return pc.count_distinct(batch.column(self.column), mode=mode).as_py()

    def result_type(self, input_type: pa.DataType) -> pa.DataType:
        return pa.int64()
