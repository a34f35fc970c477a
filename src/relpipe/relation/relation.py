"""The Relation object itself."""

import logging
from typing import Any, Iterable, Self

import pyarrow as pa

from ..compute import (
    AggregateNode,
    CountAggregation,
    CSVDataSource,
    DistinctNode,
    FilterNode,
    JoinNode,
    PaginateNode,
    ParquetDataSource,
    ProjectNode,
    PyArrowTableDataSource,
    RenameNode,
    SortNode,
    col,
)
from ..compute.aggregate import Aggregation
from ..compute.base import QueryPlanNode
from ..compute.categorical import Categorical, is_categorical
from ..compute.expressions import Expression
from ..compute.selection import ColumnSelector
from ..config import config
from ..errors import TypeMismatch, UnknownColumn
from ..utils.tabulate import tabulate

log = logging.getLogger(__name__)


def _is_supported(data_type: pa.DataType) -> bool:
    return (
        pa.types.is_integer(data_type)
        or pa.types.is_floating(data_type)
        or pa.types.is_string(data_type)
        or pa.types.is_large_string(data_type)
        or pa.types.is_boolean(data_type)
        or is_categorical(data_type)
        or pa.types.is_timestamp(data_type)
        or pa.types.is_date(data_type)
    )


def validate_schema(schema: pa.Schema) -> None:
    """Check that a schema can be the schema of a relation.

    Column names must be unique and each column must be
    of one of the supported types: integers, floats, strings,
    booleans, categoricals and dates or timestamps.
    """
    seen = set()
    duplicates = []
    for name in schema.names:
        if name in seen:
            duplicates.append(name)
        seen.add(name)
    if duplicates:
        raise ValueError(f"Column names must be unique, duplicated: {duplicates}")

    for field in schema:
        if not _is_supported(field.type):
            raise TypeMismatch(f"Column {field.name!r} has unsupported type {field.type}")


def _as_list(value: str | Iterable[str] | None) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    return list(value)


class Relation:
    """Data structure that handles data in rows and columns.

    The Relation object allows to represent in-memory data
    and perform transformations over it.

    Relations are immutable and eager, each transformation
    is applied right away and returns a new Relation.

    >>> flights = Relation.from_pydict({
    ...     "carrier": ["UA", "AA", "UA"],
    ...     "dep_delay": [2, 4, None],
    ... })
    >>> flights.count("carrier").to_pydict()
    {'carrier': ['UA', 'AA'], 'n': [2, 1]}
    """

    def __init__(self, data: QueryPlanNode | pa.Table | pa.RecordBatch) -> None:
        """
        :param data: A compute engine node expected to emit
                     the data for the relation, a `pyarrow.Table`
                     or a `pyarrow.RecordBatch`.
        """
        if isinstance(data, QueryPlanNode):
            data = pa.Table.from_batches(list(data.batches()))
        elif isinstance(data, pa.RecordBatch):
            data = pa.Table.from_batches([data])

        if not isinstance(data, pa.Table):
            raise ValueError("Invalid input, expected a QueryPlanNode, a PyArrow Table or RecordBatch")

        validate_schema(data.schema)
        self._table = data
        self._parse_errors: tuple[tuple[int | None, str], ...] = ()

    @classmethod
    def from_pydict(cls, mapping: dict[str, Any], schema: pa.Schema | None = None) -> Self:
        """Create a Relation out of a dictionary of columns.

        :param mapping: The ``{name: values}`` of each column.
        :param schema: The types of the columns, inferred when omitted.
        """
        return cls(pa.table(mapping, schema=schema))

    @classmethod
    def from_rows(cls, rows: list[dict[str, Any]], schema: pa.Schema | None = None) -> Self:
        """Create a Relation out of a list of rows.

        :param rows: The rows, each one a ``{column: value}`` dictionary.
        :param schema: The types of the columns, inferred when omitted.
                       Required when ``rows`` is empty.
        """
        return cls(pa.Table.from_pylist(rows, schema=schema))

    @classmethod
    def open_csv(
        cls,
        filename: str,
        column_types: dict[str, pa.DataType] | None = None,
        categoricals: dict[str, Categorical] | None = None,
        null_values: list[str] | None = None,
        block_size: int | None = None,
    ) -> Self:
        """Open a CSV file and create a Relation out of its data.

        Rows of the file that can't be parsed are skipped,
        they are available in :attr:`parse_errors`.

        :param filename: The path to a local CSV file.
        :param column_types: Declared types for some of the columns.
        :param categoricals: Columns to encode as categoricals.
        :param null_values: Strings to read as missing values.
        :param block_size: Size of the blocks the file is read in.
        """
        source = CSVDataSource(
            filename,
            block_size=block_size,
            column_types=column_types,
            null_values=null_values,
        )
        if categoricals:
            available = source.poll_schema().names
            for name in categoricals:
                if name not in available:
                    raise UnknownColumn(name, available)

        relation = cls(source)
        if categoricals:
            relation = relation.mutate(
                {name: col(name) for name in categoricals}, types=dict(categoricals)
            )
        if source.invalid_rows:
            log.warning("%d rows of %s could not be parsed", len(source.invalid_rows), filename)
        relation._parse_errors = tuple(source.invalid_rows)
        return relation

    @classmethod
    def open_parquet(cls, filename: str) -> Self:
        """Open a Parquet file and create a Relation out of its data.

        :param filename: The path to a local Parquet file.
        """
        return cls(ParquetDataSource(filename))

    @property
    def parse_errors(self) -> tuple[tuple[int | None, str], ...]:
        """Rows of the source file that were skipped as ``(line_number, text)``."""
        return self._parse_errors

    @property
    def schema(self) -> pa.Schema:
        return self._table.schema

    @property
    def column_names(self) -> list[str]:
        return self._table.column_names

    @property
    def num_rows(self) -> int:
        return self._table.num_rows

    def __len__(self) -> int:
        return self._table.num_rows

    def column(self, name: str) -> pa.ChunkedArray:
        """The data of a column."""
        if name not in self._table.column_names:
            raise UnknownColumn(name, self._table.column_names)
        return self._table.column(name)

    def to_arrow(self) -> pa.Table:
        """The data of the relation as a pyarrow.Table"""
        return self._table

    def to_pydict(self) -> dict[str, list]:
        return self._table.to_pydict()

    def to_pylist(self) -> list[dict[str, Any]]:
        return self._table.to_pylist()

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Relation):
            return NotImplemented
        return self._table.equals(other._table)

    __hash__ = None

    def __str__(self) -> str:
        return tabulate(self._table, max_rows=config.DISPLAY_MAX_ROWS)

    def __repr__(self) -> str:
        return f"<Relation columns={self.column_names} rows={self.num_rows}>"

    def _source(self) -> QueryPlanNode:
        return PyArrowTableDataSource(self._table)

    def _run(self, node: QueryPlanNode) -> Self:
        result = self.__class__(node)
        log.debug("%s produced %d rows", node, result.num_rows)
        return result

    def select(self, *columns: ColumnSelector) -> Self:
        """Keep only some of the columns.

        Columns can be referenced by name or by a predicate on the
        name like :func:`relpipe.compute.starts_with`. They are returned
        in the order they are requested.

        :param columns: The names or name predicates of the columns to keep.
        """
        return self._run(ProjectNode(list(columns), None, self._source()))

    def filter(self, *predicates: Expression) -> Self:
        """Keep only the rows for which all the predicates are true.

        Rows where a predicate is missing are excluded.

        :param predicates: The boolean expressions the rows must satisfy.
        """
        return self._run(FilterNode(list(predicates), self._source()))

    def mutate(
        self,
        columns: dict[str, Expression] | None = None,
        *,
        types: dict[str, pa.DataType | Categorical] | None = None,
        **expressions: Expression,
    ) -> Self:
        """Add new columns or replace existing ones.

        :param columns: The ``{name: expression}`` of the columns to compute,
                        useful when names are not valid Python identifiers.
        :param types: Declared types for the computed columns.
        :param expressions: The columns to compute as keyword arguments.
        """
        project = dict(columns or {})
        project.update(expressions)
        return self._run(ProjectNode(None, project, self._source(), types=types))

    def rename(self, mapping: dict[str, str] | None = None, **renames: str) -> Self:
        """Rename columns.

        :param mapping: The ``{old_name: new_name}`` renames.
        :param renames: The renames as ``old_name=new_name`` keyword arguments.
        """
        mapping = dict(mapping or {})
        mapping.update(renames)
        return self._run(RenameNode(mapping, self._source()))

    def group_aggregate(
        self, keys: str | list[str] | None, aggregations: dict[str, Aggregation]
    ) -> Self:
        """Group rows by the keys and compute aggregations for each group.

        The result has one row for each group, in order of first appearance.

        :param keys: The columns to group by, no keys means a single group.
        :param aggregations: The ``{name: Aggregation}`` to compute.
        """
        return self._run(AggregateNode(_as_list(keys), aggregations, self._source()))

    def arrange(
        self, keys: str | list[str], descending: bool | list[bool] | None = None
    ) -> Self:
        """Stable sort the rows by one or more columns.

        :param keys: The columns to sort by.
        :param descending: The direction for all the keys or for each key.
        """
        keys = _as_list(keys)
        if descending is None:
            descending = False
        if isinstance(descending, bool):
            descending = [descending] * len(keys)
        return self._run(SortNode(keys, list(descending), self._source()))

    def distinct(self, keys: str | list[str] | None = None, keep_all: bool = False) -> Self:
        """Remove duplicated rows.

        :param keys: The columns that identify duplicates, all of them when omitted.
        :param keep_all: Keep the first full row for each distinct key
                         instead of only the key columns.
        """
        keys = _as_list(keys) if keys is not None else None
        return self._run(DistinctNode(keys, self._source(), keep_all=keep_all))

    def join(
        self,
        other: "Relation",
        on: str | list[str] | dict[str, str],
        how: str = "inner",
        suffix: str | None = None,
    ) -> Self:
        """Join with another relation.

        :param other: The right side of the join.
        :param on: The key columns, either names that exist on both sides
                   or a ``{left_name: right_name}`` mapping.
        :param how: ``inner``, ``left``, ``right``, ``full``, ``semi`` or ``anti``.
        :param suffix: Suffix for right columns conflicting with left ones.
        """
        if isinstance(on, dict):
            left_keys, right_keys = list(on.keys()), list(on.values())
        else:
            left_keys = right_keys = _as_list(on)
        return self._run(
            JoinNode(left_keys, right_keys, self._source(), other._source(), how=how, suffix=suffix)
        )

    def inner_join(self, other: "Relation", on: str | list[str] | dict[str, str], suffix: str | None = None) -> Self:
        return self.join(other, on, how="inner", suffix=suffix)

    def left_join(self, other: "Relation", on: str | list[str] | dict[str, str], suffix: str | None = None) -> Self:
        return self.join(other, on, how="left", suffix=suffix)

    def right_join(self, other: "Relation", on: str | list[str] | dict[str, str], suffix: str | None = None) -> Self:
        return self.join(other, on, how="right", suffix=suffix)

    def full_join(self, other: "Relation", on: str | list[str] | dict[str, str], suffix: str | None = None) -> Self:
        return self.join(other, on, how="full", suffix=suffix)

    def semi_join(self, other: "Relation", on: str | list[str] | dict[str, str]) -> Self:
        return self.join(other, on, how="semi")

    def anti_join(self, other: "Relation", on: str | list[str] | dict[str, str]) -> Self:
        return self.join(other, on, how="anti")

    def count(
        self, keys: str | list[str] | None = None, name: str = "n", sort: bool = False
    ) -> Self:
        """Count the rows for each distinct combination of keys.

        Equivalent to ``group_aggregate(keys, {name: CountAggregation()})``.

        :param keys: The columns to group by.
        :param name: The name of the column with the counts.
        :param sort: Sort the result by decreasing count.
        """
        counted = self.group_aggregate(keys, {name: CountAggregation()})
        if sort:
            counted = counted.arrange(name, descending=True)
        return counted

    def head(self, n: int = 5) -> Self:
        """The first ``n`` rows."""
        return self.slice(0, n)

    def slice(self, offset: int, length: int) -> Self:
        """``length`` rows starting from the row at ``offset``."""
        return self._run(PaginateNode(offset, length, self._source()))
