"""Provide insights about Python objects."""

import functools
import inspect
from typing import Any


def get_qualname(obj: Any) -> str:
    """Get the qualified name of the given object.

    Used to render expressions in a readable way,
    so for functions or methods this will return
    something like ``module.class.method`` or
    ``module.function``.

    Partials are rendered as the function they wrap,
    as the bound arguments are an implementation detail
    of how the expression was built.

    >>> import pyarrow.compute as pc
    >>> get_qualname(pc.add)
    'pyarrow.compute.add'
    >>> get_qualname(functools.partial(pc.add, 1))
    'pyarrow.compute.add'
    """
    if isinstance(obj, functools.partial):
        return get_qualname(obj.func)

    module = inspect.getmodule(obj)
    module_name = module.__name__ if module is not None else "<unknown>"
    if inspect.ismethod(obj) or inspect.isfunction(obj):
        if getattr(obj, "__self__", None) is not None:
            class_name = obj.__self__.__class__.__name__
            return f"{module_name}.{class_name}.{obj.__name__}"
        return f"{module_name}.{obj.__qualname__}"
    elif inspect.isclass(obj):
        return f"{module_name}.{obj.__name__}"
    elif inspect.ismodule(obj):
        return obj.__name__
    elif callable(obj):
        return f"{module_name}.{obj.__class__.__name__}"
    raise ValueError(f"Unable to detect path for object of type {type(obj)}")
