import sys
import time

import pandas
import psutil

from relpipe.compute import AggregateNode, CSVDataSource, MeanAggregation, SumAggregation

try:
    aggregation_type = sys.argv[1]
except IndexError:
    aggregation_type = None

if aggregation_type == "single":
    q = AggregateNode(
        ["carrier"],
        {"total_delay": SumAggregation("dep_delay")},
        child=CSVDataSource("data/flights.csv", block_size=1024 * 1024),
    )
elif aggregation_type == "multi":
    q = AggregateNode(
        ["origin", "carrier"],
        {
            "total_delay": SumAggregation("dep_delay"),
            "mean_delay": MeanAggregation("dep_delay"),
        },
        child=CSVDataSource("data/flights.csv", block_size=1024 * 1024),
    )
elif aggregation_type == "pandas":
    class FakeQuery:
        def batches(self):
            df = pandas.read_csv("data/flights.csv")
            yield (
                df.groupby("carrier", sort=False, dropna=False)
                .agg({"dep_delay": "sum"})
                .rename(columns={"dep_delay": "total_delay"})
            )

    q = FakeQuery()
else:
    print("Aggregation must be single, multi or pandas")
    sys.exit(1)

proc = psutil.Process()
start = time.time()
for b in q.batches():
    continue
end = time.time()

print(
    "TIME:",
    round(end - start, 1),
    "MEMORY:",
    proc.memory_full_info().rss // (1024 * 1024),
)
