import pyarrow.compute as pc

from relpipe import Relation
from relpipe.compute import (
    Categorical,
    CountAggregation,
    FunctionCallExpression,
    MeanAggregation,
    col,
    lit,
    make_datetime,
)
from relpipe.utils.logs import setup_logging

setup_logging()

flights = Relation.open_csv(
    "data/flights.csv",
    categoricals={"origin": Categorical(["EWR", "JFK", "LGA"])},
)
airlines = Relation.open_csv("data/airlines.csv")
print(flights)

# The most delayed flights
most_delayed = (
    flights
    .mutate(
        departure=FunctionCallExpression(
            make_datetime, col("year"), col("month"), col("day"),
            col("hour"), col("minute"), tz="America/New_York",
        )
    )
    .select("departure", "carrier", "flight", "origin", "dep_delay")
    .arrange("dep_delay", descending=True)
    .head(10)
)
print(most_delayed)

# Which carriers gain the most time in flight when leaving late?
gains = (
    flights
    .filter(FunctionCallExpression(pc.greater, col("dep_delay"), lit(30)))
    .mutate(gain=FunctionCallExpression(pc.subtract, col("dep_delay"), col("arr_delay")))
    .group_aggregate(
        ["origin", "carrier"],
        {"flights": CountAggregation(), "mean_gain": MeanAggregation("gain")},
    )
    .left_join(airlines, "carrier")
    .arrange(["origin", "mean_gain"], descending=[False, True])
)
print(gains)

# Flights that have no known carrier
print(flights.anti_join(airlines, "carrier").count("carrier", sort=True))
