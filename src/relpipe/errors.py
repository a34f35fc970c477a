"""Errors raised by the pipeline operations.

All the errors are raised synchronously by the operation that
detects them and they are a pure function of the input, so
retrying an operation that failed will always fail again.

Given that relations are never mutated, an operation
that fails leaves its input untouched, there is no
partial result to clean up.

The errors subclass the builtin exception that is closest
to their meaning, so that code that catches ``KeyError``
when looking up a column keeps working.
"""


class RelationError(Exception):
    """Base class for all errors raised by relpipe."""


class UnknownColumn(RelationError, KeyError):
    """A referenced column does not exist in the input relation."""

    def __init__(self, name: str, available: list[str] | None = None) -> None:
        self.name = name
        self.available = available
        message = f"Unknown column: {name!r}"
        if available is not None:
            message += f", available columns are {available}"
        super().__init__(message)

    def __str__(self) -> str:
        # KeyError would otherwise quote the message.
        return self.args[0]


class InvalidKey(RelationError, KeyError):
    """A join or group operation references keys missing from one side."""

    def __init__(self, keys: list[str], side: str | None = None) -> None:
        self.keys = keys
        self.side = side
        message = f"Invalid key columns {keys}"
        if side is not None:
            message += f" on {side} side"
        super().__init__(message)

    def __str__(self) -> str:
        return self.args[0]


class TypeMismatch(RelationError, TypeError):
    """A computed or supplied value is incompatible with the target type."""


class RowCountMismatch(RelationError, AssertionError):
    """An operation produced columns of unequal length.

    This is an internal invariant violation and should
    never reach a caller of the pipeline.
    """
