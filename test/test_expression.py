import functools

import pytest
import pyarrow as pa
import pyarrow.compute as pc
from relpipe.compute.expressions import FunctionCallExpression
from relpipe.compute.base import ColumnRef, Literal, ensure_array
from relpipe.errors import TypeMismatch, UnknownColumn

@pytest.fixture
def sample_batch():
    return pa.RecordBatch.from_arrays(
        [pa.array([1, 2, 3, 4, 5]), pa.array(['UA', 'AA', 'B6', 'DL', 'WN'])],
        names=['dep_delay', 'carrier']
    )

def test_function_call_expression_init():
    expr = FunctionCallExpression(pc.add, ColumnRef('dep_delay'), 1)
    assert expr.func == pc.add
    assert len(expr.args) == 2
    assert isinstance(expr.args[0], ColumnRef)
    assert expr.args[1] == 1

def test_function_call_expression_str():
    expr = FunctionCallExpression(pc.add, ColumnRef('dep_delay'), 1)
    assert str(expr) == "pyarrow.compute.add(ColumnRef(dep_delay),1)"

def test_function_call_expression_str_with_options():
    expr = FunctionCallExpression(pc.round, ColumnRef('dep_delay'), ndigits=1)
    assert str(expr) == "pyarrow.compute.round(ColumnRef(dep_delay),ndigits=1)"

def test_function_call_expression_str_partial():
    expr = FunctionCallExpression(functools.partial(pc.add, 1), ColumnRef('dep_delay'))
    assert str(expr) == "pyarrow.compute.add(ColumnRef(dep_delay))"

def test_function_call_expression_apply_simple(sample_batch):
    expr = FunctionCallExpression(pc.add, ColumnRef('dep_delay'), 1)
    result = expr.apply(sample_batch)
    expected = pa.array([2, 3, 4, 5, 6])
    assert result.equals(expected)

def test_function_call_expression_apply_nested(sample_batch):
    inner_expr = FunctionCallExpression(pc.multiply, ColumnRef('dep_delay'), 2)
    outer_expr = FunctionCallExpression(pc.add, inner_expr, 1)
    result = outer_expr.apply(sample_batch)
    expected = pa.array([3, 5, 7, 9, 11])
    assert result.equals(expected)

def test_function_call_expression_apply_string_ops(sample_batch):
    expr = FunctionCallExpression(pc.utf8_lower, ColumnRef('carrier'))
    result = expr.apply(sample_batch)
    expected = pa.array(['ua', 'aa', 'b6', 'dl', 'wn'])
    assert result.equals(expected)

def test_function_call_expression_apply_comparison(sample_batch):
    expr = FunctionCallExpression(pc.greater, ColumnRef('dep_delay'), 3)
    result = expr.apply(sample_batch)
    expected = pa.array([False, False, False, True, True])
    assert result.equals(expected)

def test_function_call_expression_apply_multiple_args(sample_batch):
    expr = FunctionCallExpression(pc.if_else,
                                  FunctionCallExpression(pc.greater, ColumnRef('dep_delay'), 3),
                                  ColumnRef('carrier'),
                                  'x')
    result = expr.apply(sample_batch)
    expected = pa.array(['x', 'x', 'x', 'DL', 'WN'])
    assert result.equals(expected)

def test_function_call_expression_with_literal(sample_batch):
    expr = FunctionCallExpression(pc.multiply, ColumnRef('dep_delay'), Literal(60))
    assert str(expr) == "pyarrow.compute.multiply(ColumnRef(dep_delay),Literal(<pyarrow.Int64Scalar: 60>))"
    assert expr.apply(sample_batch).to_pylist() == [60, 120, 180, 240, 300]

def test_function_call_expression_apply_null_handling(sample_batch):
    delays_with_null = pa.array([1, None, 3, 4, 5])
    batch_with_null = pa.RecordBatch.from_arrays([delays_with_null, sample_batch['carrier']], names=['dep_delay', 'carrier'])
    expr = FunctionCallExpression(pc.add, ColumnRef('dep_delay'), 1)
    result = expr.apply(batch_with_null)
    expected = pa.array([2, None, 4, 5, 6])
    assert result.equals(expected)

def test_function_call_expression_apply_invalid_column():
    batch = pa.RecordBatch.from_arrays([pa.array([1, 2, 3])], names=['dep_delay'])
    expr = FunctionCallExpression(pc.add, ColumnRef('non_existent'), 1)
    with pytest.raises(KeyError):
        expr.apply(batch)
    with pytest.raises(UnknownColumn) as excinfo:
        expr.apply(batch)
    assert excinfo.value.available == ['dep_delay']
    assert str(excinfo.value) == "Unknown column: 'non_existent', available columns are ['dep_delay']"

def test_function_call_expression_apply_type_mismatch():
    batch = pa.RecordBatch.from_arrays([pa.array(['a', 'b', 'c'])], names=['carrier'])
    expr = FunctionCallExpression(pc.add, ColumnRef('carrier'), 1)
    with pytest.raises(TypeMismatch):
        expr.apply(batch)
    with pytest.raises(TypeError):
        expr.apply(batch)

def test_literal_is_constant(sample_batch):
    literal = Literal(2013)
    assert literal.apply(sample_batch).as_py() == 2013
    assert Literal(1, type=pa.float64()).apply(sample_batch).type == pa.float64()

@pytest.mark.parametrize(
    "data,expected",
    [
        (pa.scalar(1), [1, 1, 1]),
        (pa.chunked_array([[1], [2, 3]]), [1, 2, 3]),
        (pa.array([4, 5, 6]), [4, 5, 6]),
        ("JFK", ["JFK", "JFK", "JFK"]),
    ],
)
def test_ensure_array(data, expected):
    result = ensure_array(data, 3)
    assert isinstance(result, pa.Array)
    assert result.to_pylist() == expected
