"""Generic utilities and helpers.

This is a collection of generic utilities and helpers
that are used by the other parts of the codebase
and are not bound to a specific component.
"""

from . import inspect, logs, tabulate

__all__ = ("inspect", "logs", "tabulate")
