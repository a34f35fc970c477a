import pyarrow.compute as pc

from relpipe.compute import (
    AggregateNode,
    CSVDataSource,
    FilterNode,
    FunctionCallExpression,
    MeanAggregation,
    SortNode,
    col,
)
from relpipe.utils.logs import setup_logging

setup_logging("INFO")

# Average departure delay of the flights leaving from JFK, by carrier
query = SortNode(
    ["mean_delay"],
    [True],
    AggregateNode(
        ["carrier"],
        {"mean_delay": MeanAggregation("dep_delay")},
        FilterNode(
            FunctionCallExpression(pc.equal, col("origin"), "JFK"),
            CSVDataSource("data/flights.csv"),
        ),
    ),
)
print(query)
for batch in query.batches():
    print("---")
    print(batch)
