import pyarrow as pa
import pyarrow.compute as pc
import pytest

from relpipe.compute import FunctionCallExpression, PyArrowTableDataSource, col, lit
from relpipe.compute.filtering import FilterNode
from relpipe.errors import RowCountMismatch, TypeMismatch

TEST_DATA = pa.table(
    {
        "carrier": ["UA", "AA", "B6", "DL", "UA"],
        "dep_delay": [2, None, -5, 101, 30],
    }
)


def _delayed_more_than(minutes):
    return FunctionCallExpression(pc.greater, col("dep_delay"), lit(minutes))


def test_filter_single_predicate():
    node = FilterNode(_delayed_more_than(10), PyArrowTableDataSource(TEST_DATA))
    assert next(node.batches()).to_pydict() == {
        "carrier": ["DL", "UA"],
        "dep_delay": [101, 30],
    }


def test_filter_missing_predicate_excludes_row():
    # dep_delay < 200 is missing for the AA flight.
    node = FilterNode(
        FunctionCallExpression(pc.less, col("dep_delay"), lit(200)),
        PyArrowTableDataSource(TEST_DATA),
    )
    assert next(node.batches()).column("carrier").to_pylist() == ["UA", "B6", "DL", "UA"]


def test_filter_multiple_predicates():
    node = FilterNode(
        [
            _delayed_more_than(0),
            FunctionCallExpression(pc.equal, col("carrier"), lit("UA")),
        ],
        PyArrowTableDataSource(TEST_DATA),
    )
    assert next(node.batches()).to_pydict() == {
        "carrier": ["UA", "UA"],
        "dep_delay": [2, 30],
    }


def test_filter_false_and_missing_is_false():
    data = pa.table({"a": pa.array([None, None], type=pa.bool_()), "b": [False, True]})
    node = FilterNode([col("a"), col("b")], PyArrowTableDataSource(data))
    assert next(node.batches()).num_rows == 0


def test_filter_keeps_schema_when_nothing_matches():
    node = FilterNode(_delayed_more_than(1000), PyArrowTableDataSource(TEST_DATA))
    batches = list(node.batches())
    assert len(batches) == 1
    assert batches[0].num_rows == 0
    assert batches[0].schema == TEST_DATA.schema


def test_filter_literal_predicate():
    node = FilterNode(lit(True), PyArrowTableDataSource(TEST_DATA))
    assert next(node.batches()).num_rows == 5


def test_filter_multiple_batches():
    data = pa.Table.from_batches(TEST_DATA.to_batches(max_chunksize=2))
    node = FilterNode(_delayed_more_than(0), PyArrowTableDataSource(data))
    values = [v for batch in node.batches() for v in batch.column("dep_delay").to_pylist()]
    assert values == [2, 101, 30]


def test_filter_non_boolean_predicate():
    node = FilterNode(col("dep_delay"), PyArrowTableDataSource(TEST_DATA))
    with pytest.raises(TypeMismatch):
        next(node.batches())


def test_filter_predicate_wrong_length():
    node = FilterNode(
        FunctionCallExpression(lambda data: pa.array([True]), col("dep_delay")),
        PyArrowTableDataSource(TEST_DATA),
    )
    with pytest.raises(RowCountMismatch):
        next(node.batches())


def test_filter_requires_predicates():
    with pytest.raises(ValueError):
        FilterNode([], PyArrowTableDataSource(TEST_DATA))


def test_filter_node_str():
    node = FilterNode(
        [_delayed_more_than(0), FunctionCallExpression(pc.equal, col("carrier"), lit("UA"))],
        PyArrowTableDataSource(TEST_DATA),
    )
    assert str(node) == (
        "FilterNode(filter=pyarrow.compute.greater(ColumnRef(dep_delay),Literal(<pyarrow.Int64Scalar: 0>)) "
        "AND pyarrow.compute.equal(ColumnRef(carrier),Literal(<pyarrow.StringScalar: 'UA'>)), "
        "child=PyArrowTableDataSource(columns=['carrier', 'dep_delay'], rows=5))"
    )
    assert node.expression is node.expressions[0]
