"""Query plan nodes of relpipe.

Every operation of a :class:`relpipe.Relation` is implemented
by a node of this package. Nodes exchange :class:`pyarrow.RecordBatch`
objects, each node consumes the batches of its children and
yields the batches of its own result::

    CSVDataSource --batches--> FilterNode --batches--> SortNode --> ...

Each node carries its own execution logic, there is no separate
executor: calling :meth:`QueryPlanNode.batches` on the root runs the plan.
As nodes never modify their input, one source can feed several plans.

Plans are built bottom up, starting from one or more data sources:

>>> import pyarrow as pa
>>> import pyarrow.compute as pc
>>> from relpipe.compute import col, PyArrowTableDataSource
>>> from relpipe.compute import FilterNode, FunctionCallExpression
>>> flights = pa.table({
...    "carrier": ["UA", "AA", "B6", "DL"],
...    "dep_delay": [2, 4, -5, 101],
... })
>>> late = FilterNode(
...     FunctionCallExpression(pc.greater_equal, col("dep_delay"), 3),
...     child=PyArrowTableDataSource(flights),
... )
>>> late.collect().to_pydict()
{'carrier': ['AA', 'DL'], 'dep_delay': [4, 101]}
"""

from .aggregate import (
    AggregateNode,
    CountAggregation,
    CountDistinctAggregation,
    MaxAggregation,
    MeanAggregation,
    MinAggregation,
    SumAggregation,
)
from .base import ColumnRef, Literal, col, lit
from .categorical import (
    Categorical,
    encode_categorical,
    recode_categorical,
    relevel_categorical,
)
from .datasources import CSVDataSource, ParquetDataSource, PyArrowTableDataSource
from .distinct import DistinctNode
from .expressions import FunctionCallExpression
from .filtering import FilterNode
from .join import JoinNode
from .pagination import PaginateNode
from .selection import (
    ProjectNode,
    RenameNode,
    contains,
    ends_with,
    matches,
    starts_with,
)
from .sorting import SortNode
from .temporal import make_datetime, parse_datetime

__all__ = (
    "CSVDataSource",
    "ParquetDataSource",
    "PyArrowTableDataSource",
    "FilterNode",
    "FunctionCallExpression",
    "col",
    "lit",
    "ColumnRef",
    "Literal",
    "PaginateNode",
    "SortNode",
    "ProjectNode",
    "RenameNode",
    "DistinctNode",
    "JoinNode",
    "AggregateNode",
    "CountAggregation",
    "CountDistinctAggregation",
    "MaxAggregation",
    "MeanAggregation",
    "MinAggregation",
    "SumAggregation",
    "Categorical",
    "encode_categorical",
    "recode_categorical",
    "relevel_categorical",
    "make_datetime",
    "parse_datetime",
    "starts_with",
    "ends_with",
    "contains",
    "matches",
)
