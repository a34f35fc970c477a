"""Expressions computing values from the columns of a batch.

A :class:`relpipe.compute.FilterNode` evaluates a ``predicate``, an expression
returning ``true`` or ``false`` (or missing) for each row
to keep or drop.

A :class:`relpipe.compute.ProjectNode` evaluates the expressions computing
new columns, like ``arr_delay - dep_delay``.
"""

import pyarrow as pa

from .. import utils
from ..errors import TypeMismatch
from .base import ColumnRef, Expression, Literal, col, lit

__all__ = (
    "Expression",
    "ColumnRef",
    "Literal",
    "FunctionCallExpression",
    "apply_expression_if_needed",
    "col",
    "lit",
)


def apply_expression_if_needed(
    batch: pa.RecordBatch, o: Expression | pa.Array
) -> pa.Array:
    """Resolve ``o`` against ``batch`` when it is an Expression.

    Anything else is returned unchanged, it is already
    data or a plain value the compute function accepts.
    """
    if isinstance(o, Expression):
        o = o.apply(batch)
    return o


class FunctionCallExpression(Expression):
    """The result of a function, usually a :mod:`pyarrow.compute` one.

    Arguments that are expressions are resolved on the batch
    first, other arguments are passed through.

    For example to compute the time gained in flight::

        FunctionCallExpression(pyarrow.compute.subtract, col("dep_delay"), col("arr_delay"))

    Keyword arguments are forwarded to the function as they are,
    which allows to pass options to compute functions::

        FunctionCallExpression(pyarrow.compute.round, col("speed"), ndigits=1)

    Errors raised by Arrow when the function can't handle
    the type of its arguments are reported as
    :class:`relpipe.errors.TypeMismatch`.
    """

    def __init__(self, func: callable, *args: Expression, **options) -> None:
        self.func = func
        self.args = args
        self.options = options

    def __str__(self) -> str:
        name = utils.inspect.get_qualname(self.func)
        args = [str(arg) for arg in self.args]
        args.extend(f"{k}={v!r}" for k, v in self.options.items())
        return f"{name}({','.join(args)})"

    def apply(self, batch: pa.RecordBatch) -> pa.Array:
        """Call the function with the arguments resolved on ``batch``."""
        args = tuple(apply_expression_if_needed(batch, arg) for arg in self.args)
        try:
            return self.func(*args, **self.options)
        except (pa.ArrowNotImplementedError, pa.ArrowTypeError) as err:
            raise TypeMismatch(f"Unable to compute {self}: {err}") from err
