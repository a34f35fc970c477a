"""Relations built on top of the relpipe compute engine.

A relation is an in-memory table: an ordered sequence of
named columns, all with the same number of rows,
where the order of the rows is significant.

Relations are immutable, every operation
(selecting columns, filtering rows, grouping, joining...)
returns a new relation and leaves the original one untouched.
This makes possible to chain operations in a pipeline::

    (
        flights
        .filter(FunctionCallExpression(pc.equal, col("origin"), "JFK"))
        .group_aggregate(["carrier"], {"delay": MeanAggregation("dep_delay")})
        .arrange("delay", descending=True)
        .head(3)
    )

Each operation builds a query plan of compute engine nodes
over the data of the relation and executes it immediately,
so any error is raised by the operation that caused it.
"""

from .relation import Relation, validate_schema

__all__ = ("Relation", "validate_schema")
