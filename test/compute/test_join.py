import pyarrow as pa
import pytest

from relpipe.compute import PyArrowTableDataSource, encode_categorical
from relpipe.compute.join import JoinNode
from relpipe.errors import InvalidKey, TypeMismatch

FLIGHTS = pa.record_batch(
    {
        "carrier": pa.array(["UA", "AA", "XX", "UA"]),
        "flight": pa.array([1545, 1141, 1, 1714]),
    }
)

AIRLINES = pa.record_batch(
    {
        "carrier": pa.array(["AA", "UA", "B6"]),
        "name": pa.array(["American", "United", "JetBlue"]),
    }
)


@pytest.fixture
def flights_source():
    return PyArrowTableDataSource(FLIGHTS)


@pytest.fixture
def airlines_source():
    return PyArrowTableDataSource(AIRLINES)


def _join(left, right, on="carrier", how="inner", **kwargs):
    left_keys = right_keys = [on] if isinstance(on, str) else on
    node = JoinNode(
        left_keys, right_keys, PyArrowTableDataSource(left), PyArrowTableDataSource(right),
        how=how, **kwargs
    )
    batches = list(node.batches())
    assert len(batches) == 1
    return batches[0]


@pytest.mark.parametrize(
    "how,expected",
    [
        (
            "inner",
            {
                "carrier": ["UA", "AA", "UA"],
                "flight": [1545, 1141, 1714],
                "name": ["United", "American", "United"],
            },
        ),
        (
            "left",
            {
                "carrier": ["UA", "AA", "XX", "UA"],
                "flight": [1545, 1141, 1, 1714],
                "name": ["United", "American", None, "United"],
            },
        ),
        (
            "right",
            {
                "carrier": ["UA", "AA", "UA", "B6"],
                "flight": [1545, 1141, 1714, None],
                "name": ["United", "American", "United", "JetBlue"],
            },
        ),
        (
            "full",
            {
                "carrier": ["UA", "AA", "XX", "UA", "B6"],
                "flight": [1545, 1141, 1, 1714, None],
                "name": ["United", "American", None, "United", "JetBlue"],
            },
        ),
        (
            "semi",
            {
                "carrier": ["UA", "AA", "UA"],
                "flight": [1545, 1141, 1714],
            },
        ),
        (
            "anti",
            {
                "carrier": ["XX"],
                "flight": [1],
            },
        ),
    ],
)
def test_join_types(flights_source, airlines_source, how, expected):
    join_node = JoinNode(["carrier"], ["carrier"], flights_source, airlines_source, how=how)
    result_batches = list(join_node.batches())

    assert len(result_batches) == 1
    assert result_batches[0].to_pydict() == expected


def test_join_node_str(flights_source, airlines_source):
    join_node = JoinNode(["carrier"], ["carrier"], flights_source, airlines_source)
    assert str(join_node) == (
        "JoinNode(how=inner, left_keys=['carrier'], right_keys=['carrier'], "
        "left=PyArrowTableDataSource(columns=['carrier', 'flight'], rows=4), "
        "right=PyArrowTableDataSource(columns=['carrier', 'name'], rows=3))"
    )


def test_join_duplicates_left_rows_for_each_match():
    left = pa.record_batch({"k": [1, 2], "a": ["x", "y"]})
    right = pa.record_batch({"k": [1, 1, 3], "b": ["p", "q", "r"]})
    assert _join(left, right, on="k").to_pylist() == [
        {"k": 1, "a": "x", "b": "p"},
        {"k": 1, "a": "x", "b": "q"},
    ]


def test_anti_join_keeps_left_columns_only():
    left = pa.record_batch({"k": [1, 2, 3]})
    right = pa.record_batch({"k": [2], "v": ["two"]})
    assert _join(left, right, on="k", how="anti").to_pydict() == {"k": [1, 3]}


def test_semi_join_does_not_duplicate():
    left = pa.record_batch({"k": [1, 2]})
    right = pa.record_batch({"k": [1, 1, 1]})
    assert _join(left, right, on="k", how="semi").to_pydict() == {"k": [1]}


def test_missing_keys_never_match():
    left = pa.record_batch({"tailnum": pa.array(["N1", None]), "flight": [1, 2]})
    right = pa.record_batch({"tailnum": pa.array([None, "N1"]), "seats": [100, 200]})

    assert _join(left, right, on="tailnum").to_pydict() == {
        "tailnum": ["N1"],
        "flight": [1],
        "seats": [200],
    }
    assert _join(left, right, on="tailnum", how="anti").to_pydict() == {
        "tailnum": [None],
        "flight": [2],
    }
    assert _join(left, right, on="tailnum", how="full").to_pydict() == {
        "tailnum": ["N1", None, None],
        "flight": [1, 2, None],
        "seats": [200, None, 100],
    }


def test_join_multiple_keys():
    left = pa.record_batch({"origin": ["JFK", "JFK"], "year": [2013, 2014], "n": [1, 2]})
    right = pa.record_batch({"origin": ["JFK", "JFK"], "year": [2014, 2013], "temp": [30.0, 40.0]})
    assert _join(left, right, on=["origin", "year"]).to_pydict() == {
        "origin": ["JFK", "JFK"],
        "year": [2013, 2014],
        "n": [1, 2],
        "temp": [40.0, 30.0],
    }


def test_join_different_key_names():
    flights = pa.record_batch({"dest": ["IAH", "MIA"], "flight": [1545, 1141]})
    airports = pa.record_batch({"faa": ["MIA", "IAH"], "name": ["Miami Intl", "George Bush"]})
    node = JoinNode(
        ["dest"], ["faa"], PyArrowTableDataSource(flights), PyArrowTableDataSource(airports)
    )
    assert next(node.batches()).to_pydict() == {
        "dest": ["IAH", "MIA"],
        "flight": [1545, 1141],
        "name": ["George Bush", "Miami Intl"],
    }


def test_join_conflicting_names_get_suffix():
    flights = pa.record_batch({"tailnum": ["N1"], "year": [2013]})
    planes = pa.record_batch({"tailnum": ["N1"], "year": [1999]})
    assert _join(flights, planes, on="tailnum").to_pydict() == {
        "tailnum": ["N1"],
        "year": [2013],
        "year_right": [1999],
    }
    assert _join(flights, planes, on="tailnum", suffix="_plane").column_names == [
        "tailnum",
        "year",
        "year_plane",
    ]


def test_join_suffix_still_conflicting():
    left = pa.record_batch({"k": [1], "v": [1], "v_right": [2]})
    right = pa.record_batch({"k": [1], "v": [3]})
    with pytest.raises(ValueError):
        _join(left, right, on="k")


def test_join_unknown_keys():
    with pytest.raises(InvalidKey) as excinfo:
        _join(FLIGHTS, AIRLINES, on="tailnum")
    assert excinfo.value.side == "left"

    right = pa.record_batch({"code": ["AA"]})
    node = JoinNode(
        ["carrier"], ["carrier"], PyArrowTableDataSource(FLIGHTS), PyArrowTableDataSource(right)
    )
    with pytest.raises(InvalidKey) as excinfo:
        next(node.batches())
    assert excinfo.value.side == "right"


def test_join_key_type_mismatch():
    left = pa.record_batch({"k": [1, 2]})
    right = pa.record_batch({"k": ["1", "2"]})
    with pytest.raises(TypeMismatch):
        _join(left, right, on="k")


def test_join_categorical_with_strings():
    left = pa.record_batch({"carrier": encode_categorical(pa.array(["UA", "AA"])), "flight": [1, 2]})
    assert _join(left, AIRLINES).to_pydict() == {
        "carrier": ["UA", "AA"],
        "flight": [1, 2],
        "name": ["United", "American"],
    }


@pytest.mark.parametrize(
    "how,error",
    [("cross", ValueError), ("outer", ValueError)],
)
def test_join_invalid_type(how, error):
    with pytest.raises(error):
        JoinNode(["k"], ["k"], PyArrowTableDataSource(FLIGHTS), PyArrowTableDataSource(AIRLINES), how=how)


def test_join_invalid_keys_length():
    with pytest.raises(ValueError):
        JoinNode(["a", "b"], ["a"], PyArrowTableDataSource(FLIGHTS), PyArrowTableDataSource(AIRLINES))
    with pytest.raises(ValueError):
        JoinNode([], [], PyArrowTableDataSource(FLIGHTS), PyArrowTableDataSource(AIRLINES))


def test_join_empty_right():
    empty = AIRLINES.slice(0, 0)
    result = _join(FLIGHTS, empty, how="left")
    assert result.column("name").to_pylist() == [None, None, None, None]
    assert _join(FLIGHTS, empty).num_rows == 0
