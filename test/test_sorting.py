import pyarrow as pa
import pytest

from relpipe.compute import encode_categorical
from relpipe.compute.base import QueryPlanNode
from relpipe.compute.pagination import PaginateNode
from relpipe.compute.sorting import SortNode
from relpipe.errors import UnknownColumn


class MockQueryPlanNode(QueryPlanNode):
    def __init__(self, batches):
        self._batches = batches

    def batches(self):
        for batch in self._batches:
            yield batch

    def __str__(self):
        return "MockQueryPlanNode"


def test_sort_node_single_batch():
    data = pa.record_batch({"values": [5, 3, 1, 4, 2]})
    sort_node = SortNode(["values"], [False], MockQueryPlanNode([data]))

    sorted_batch = next(sort_node.batches())
    assert sorted_batch.column(0).to_pylist() == [1, 2, 3, 4, 5]


def test_sort_node_multiple_batches():
    data1 = pa.record_batch({"values": [5, 3]})
    data2 = pa.record_batch({"values": [1, 4, 2]})
    sort_node = SortNode(["values"], [False], MockQueryPlanNode([data1, data2]))

    sorted_batches = list(sort_node.batches())
    sorted_values = [
        val for batch in sorted_batches for val in batch.column(0).to_pylist()
    ]
    assert sorted_values == [1, 2, 3, 4, 5]


def test_sort_node_descending():
    data = pa.record_batch({"values": [1, 2, 3, 4, 5]})
    sort_node = SortNode(["values"], [True], MockQueryPlanNode([data]))

    sorted_batch = next(sort_node.batches())
    assert sorted_batch.column(0).to_pylist() == [5, 4, 3, 2, 1]


def test_sort_node_invalid_keys_and_descending_length():
    data = pa.record_batch({"values": [1, 2, 3, 4, 5]})
    with pytest.raises(ValueError):
        SortNode(["values"], [True, False], MockQueryPlanNode([data]))


def test_sort_node_unknown_key():
    data = pa.record_batch({"values": [1, 2, 3]})
    sort_node = SortNode(["dep_delay"], [False], MockQueryPlanNode([data]))
    with pytest.raises(UnknownColumn):
        next(sort_node.batches())


def test_sort_node_is_stable():
    data = pa.record_batch(
        {
            "carrier": ["UA", "AA", "B6", "DL", "WN"],
            "dep_delay": [5, 2, 5, 2, 5],
        }
    )
    sort_node = SortNode(["dep_delay"], [True], MockQueryPlanNode([data]))
    assert next(sort_node.batches()).to_pydict() == {
        "carrier": ["UA", "B6", "WN", "AA", "DL"],
        "dep_delay": [5, 5, 5, 2, 2],
    }


@pytest.mark.filterwarnings("error")
@pytest.mark.parametrize(
    "descending,expected",
    [
        (False, [-1, 3, 7, None, None]),
        (True, [7, 3, -1, None, None]),
    ],
)
def test_sort_node_missing_values_last(descending, expected):
    data = pa.record_batch({"dep_delay": [None, 7, -1, None, 3]})
    sort_node = SortNode(["dep_delay"], [descending], MockQueryPlanNode([data]))
    assert next(sort_node.batches()).column(0).to_pylist() == expected


def test_sort_node_multiple_keys():
    data = pa.record_batch(
        {
            "origin": ["JFK", "EWR", "JFK", "EWR"],
            "dep_delay": [1, 2, 3, 4],
        }
    )
    sort_node = SortNode(["origin", "dep_delay"], [False, True], MockQueryPlanNode([data]))
    assert next(sort_node.batches()).to_pydict() == {
        "origin": ["EWR", "EWR", "JFK", "JFK"],
        "dep_delay": [4, 2, 3, 1],
    }


def test_sort_node_categorical_by_labels():
    data = pa.record_batch(
        {
            "size": encode_categorical(
                pa.array(["low", "high", "medium", "low"]), labels=["low", "medium", "high"]
            ),
        }
    )
    sort_node = SortNode(["size"], [False], MockQueryPlanNode([data]))
    result = next(sort_node.batches()).column(0)
    assert result.to_pylist() == ["low", "low", "medium", "high"]
    assert pa.types.is_dictionary(result.type)


def test_sort_node_no_keys():
    data = pa.record_batch({"values": [3, 1, 2]})
    sort_node = SortNode([], [], MockQueryPlanNode([data]))
    assert next(sort_node.batches()).column(0).to_pylist() == [3, 1, 2]


def test_sort_node_empty_data():
    data = pa.record_batch({"values": pa.array([], type=pa.int64())})
    batches = list(SortNode(["values"], [False], MockQueryPlanNode([data])).batches())
    assert len(batches) == 1
    assert batches[0].num_rows == 0


def test_sort_node_with_paginate_node():
    child_node = MockQueryPlanNode(
        [
            pa.record_batch({"values": [5, 3, 1, 4, 2]}),
            pa.record_batch({"values": [6, 9, 8, 7, 10]}),
        ]
    )
    sort_node = SortNode(["values"], [False], child_node)
    paginate_node = PaginateNode(offset=0, length=2, child=sort_node)

    sorted_batches = next(paginate_node.batches())
    assert sorted_batches["values"].to_pylist() == [1, 2]
