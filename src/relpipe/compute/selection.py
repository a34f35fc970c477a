"""Query plan nodes that implement projection of columns.

A common request in queries is to select specific columns
and project new columns based on expressions.
An example is the ``SELECT`` clause in SQL queries,
or the ``select`` and ``mutate`` verbs of dataframe libraries.

Columns to select can be referenced by name or
by a predicate on the name, like :func:`starts_with`::

    ProjectNode(["carrier", starts_with("dep_")], None, child)

This module implements the basic projection capabilities.
"""

import logging
import re
from typing import Callable, Iterable

import pyarrow as pa

from ..errors import RowCountMismatch, TypeMismatch, UnknownColumn
from .base import QueryPlanNode, ensure_array
from .categorical import Categorical
from .expressions import Expression

log = logging.getLogger(__name__)

ColumnSelector = str | Callable[[str], bool]


class NamePredicate:
    """Select columns whose name satisfies a condition."""

    def __init__(self, description: str, predicate: Callable[[str], bool]) -> None:
        self.description = description
        self.predicate = predicate

    def __call__(self, name: str) -> bool:
        return self.predicate(name)

    def __str__(self) -> str:
        return self.description

    __repr__ = __str__


def starts_with(prefix: str) -> NamePredicate:
    """Columns whose name starts with ``prefix``."""
    return NamePredicate(f"starts_with({prefix!r})", lambda name: name.startswith(prefix))


def ends_with(suffix: str) -> NamePredicate:
    """Columns whose name ends with ``suffix``."""
    return NamePredicate(f"ends_with({suffix!r})", lambda name: name.endswith(suffix))


def contains(substring: str) -> NamePredicate:
    """Columns whose name contains ``substring``."""
    return NamePredicate(f"contains({substring!r})", lambda name: substring in name)


def matches(pattern: str) -> NamePredicate:
    """Columns whose name matches the ``pattern`` regular expression."""
    regex = re.compile(pattern)
    return NamePredicate(f"matches({pattern!r})", lambda name: regex.search(name) is not None)


def resolve_columns(selectors: Iterable[ColumnSelector], available: list[str]) -> list[str]:
    """Resolve a list of names and name predicates to column names.

    Names are returned in the order they are provided,
    predicates contribute the matching columns in the order
    they appear in ``available``. A column is never returned twice.

    >>> resolve_columns(["origin", starts_with("dep_")], ["dep_time", "dep_delay", "origin"])
    ['origin', 'dep_time', 'dep_delay']
    """
    resolved: dict[str, None] = {}
    for selector in selectors:
        if isinstance(selector, str):
            if selector not in available:
                raise UnknownColumn(selector, available)
            resolved.setdefault(selector)
        elif callable(selector):
            for name in available:
                if selector(name):
                    resolved.setdefault(name)
        else:
            raise ValueError(f"Invalid column selector: {selector!r}")
    return list(resolved)


def cast_to_target(name: str, data: pa.Array, target: pa.DataType | Categorical) -> pa.Array:
    """Convert a computed column to its declared type.

    Only safe casts are performed, a cast that would lose
    information (like ``1.5`` to an integer) is a :class:`TypeMismatch`.
    """
    if isinstance(target, Categorical):
        return target.encode(data)
    if data.type == target:
        return data
    try:
        return data.cast(target, safe=True)
    except (pa.ArrowInvalid, pa.ArrowNotImplementedError, pa.ArrowTypeError) as err:
        raise TypeMismatch(
            f"Column {name!r} computed as {data.type} is incompatible with declared type {target}"
        ) from err


class ProjectNode(QueryPlanNode):
    """Project data by selecting specific columns and computing expressions.

    The projection expects a list of columns to select and a dictionary
    of column names and expressions to project new columns.

    Expressions are computed in the order they are provided,
    so each one can refer to the columns computed by the previous ones.
    An expression named like an existing column replaces it
    in the same position, other columns are appended.

    >>> import pyarrow as pa
    >>> import pyarrow.compute as pc
    >>> from relpipe.compute import col, FunctionCallExpression, PyArrowTableDataSource
    >>> data = pa.record_batch({"a": [1, 2, 3], "b": [4, 5, 6]})
    >>> next(ProjectNode(["a"], {"ab_sum": FunctionCallExpression(pc.add, col("a"), col("b"))},
    ...                  PyArrowTableDataSource(data)).batches()).to_pydict()
    {'a': [1, 2, 3], 'ab_sum': [5, 7, 9]}
    """

    def __init__(
        self,
        select: list[ColumnSelector] | None,
        project: dict[str, Expression] | None,
        child: QueryPlanNode,
        types: dict[str, pa.DataType | Categorical] | None = None,
    ) -> None:
        """
        :param select: The list of column names or name predicates to select.
                       ``None`` means select all columns.
                       ``[]`` means select only the projected columns.
        :param project: The dict {name: Expression} to project new columns.
        :param child: The node emitting the data to be projected.
        :param types: Declared types for the projected columns,
                      the computed data is converted to them.
        """
        self.select = select
        self.project = project or {}
        self.types = types or {}
        self.child = child

        unknown_types = set(self.types) - set(self.project)
        if unknown_types:
            raise ValueError(f"Types declared for columns that are not projected: {sorted(unknown_types)}")

    def __str__(self) -> str:
        return f"ProjectNode(select={self.select}, project={self.project}, child={self.child})"

    def batches(self) -> QueryPlanNode.RecordBatchesGenerator:
        """Apply the projection to the child node.

        For each recordbatch yielded by the child node,
        sequentially apply the expressions to project new columns
        and then select the requested columns.

        Categorical columns must share one set of labels across
        all the rows, so when one is declared the child is
        collected and projected as a single batch.
        """
        if any(isinstance(t, Categorical) for t in self.types.values()):
            child_batches = [self.child.collect()]
        else:
            child_batches = self.child.batches()

        for batch in child_batches:
            if self.select is None:
                restrict_columns = None
            else:
                # Selection is resolved against the input columns,
                # in case select=[] it will only provide the project columns.
                restrict_columns = resolve_columns(self.select, batch.schema.names)
                restrict_columns += [
                    name for name in self.project if name not in restrict_columns
                ]

            for name, expr in self.project.items():
                batch = self._set_column(batch, name, expr)

            if restrict_columns is not None:
                batch = batch.select(restrict_columns)

            yield batch

    def _set_column(self, batch: pa.RecordBatch, name: str, expr: Expression) -> pa.RecordBatch:
        data = ensure_array(expr.apply(batch), batch.num_rows)
        if len(data) != batch.num_rows:
            raise RowCountMismatch(
                f"Expression {expr} produced {len(data)} rows, expected {batch.num_rows}"
            )
        if name in self.types:
            data = cast_to_target(name, data, self.types[name])

        existing = batch.schema.get_field_index(name)
        if existing >= 0:
            log.debug("Replacing column %s with %s", name, expr)
            return batch.set_column(existing, name, data)
        return batch.append_column(name, data)


class RenameNode(QueryPlanNode):
    """Rename columns, leaving their data and position untouched.

    >>> import pyarrow as pa
    >>> from relpipe.compute import PyArrowTableDataSource
    >>> data = pa.record_batch({"dep_delay": [2, 4]})
    >>> next(RenameNode({"dep_delay": "delay"}, PyArrowTableDataSource(data)).batches()).to_pydict()
    {'delay': [2, 4]}
    """

    def __init__(self, mapping: dict[str, str], child: QueryPlanNode) -> None:
        """
        :param mapping: The {old_name: new_name} renames to apply.
        :param child: The node emitting the data to rename.
        """
        self.mapping = mapping
        self.child = child

    def __str__(self) -> str:
        return f"RenameNode(mapping={self.mapping}, child={self.child})"

    def batches(self) -> QueryPlanNode.RecordBatchesGenerator:
        for batch in self.child.batches():
            names = batch.schema.names
            for old_name in self.mapping:
                if old_name not in names:
                    raise UnknownColumn(old_name, names)
            new_names = [self.mapping.get(name, name) for name in names]
            yield pa.RecordBatch.from_arrays(batch.columns, names=new_names)
