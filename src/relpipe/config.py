"""Configuration for relpipe.

Settings are read from environment variables when the
module is imported and can be overridden by passing
a dictionary of values to :class:`Config`.

The module level :data:`config` instance is the one
used by default by the rest of the package.
"""

import os
from typing import Any

VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def _optional_int(value: str | None) -> int | None:
    if value is None or value == "":
        return None
    return int(value)


class Config:
    """Settings shared by the relations and the compute engine.

    >>> Config({"display_max_rows": 5}).DISPLAY_MAX_ROWS
    5
    """

    def __init__(self, overrides: dict[str, Any] | None = None) -> None:
        """
        :param overrides: Optional dictionary of settings that take
                          precedence over the environment variables.
                          Keys are case insensitive.
        """
        # How many rows are rendered when a relation is printed.
        self.DISPLAY_MAX_ROWS = int(os.getenv("RELPIPE_DISPLAY_MAX_ROWS", "20"))

        # Block size used by the CSV reader, None means pyarrow default.
        self.CSV_BLOCK_SIZE = _optional_int(os.getenv("RELPIPE_CSV_BLOCK_SIZE"))

        # Suffix for right side columns that conflict with left side ones in joins.
        self.JOIN_SUFFIX = os.getenv("RELPIPE_JOIN_SUFFIX", "_right")

        self.LOG_LEVEL = os.getenv("RELPIPE_LOG_LEVEL", "WARNING")

        if overrides:
            self.update(overrides)

    def update(self, overrides: dict[str, Any]) -> None:
        """Override settings from a dictionary.

        Unknown settings are rejected to catch typos early.
        """
        for key, value in overrides.items():
            attr = key.upper()
            if not hasattr(self, attr):
                raise ValueError(f"Unknown setting: {key}")
            setattr(self, attr, value)

    def validate(self) -> None:
        """Check that the settings have acceptable values."""
        if self.DISPLAY_MAX_ROWS <= 0:
            raise ValueError("DISPLAY_MAX_ROWS must be a positive number")
        if self.CSV_BLOCK_SIZE is not None and self.CSV_BLOCK_SIZE <= 0:
            raise ValueError("CSV_BLOCK_SIZE must be a positive number")
        if not self.JOIN_SUFFIX:
            raise ValueError("JOIN_SUFFIX can't be empty")
        if self.LOG_LEVEL.upper() not in VALID_LOG_LEVELS:
            raise ValueError(f"LOG_LEVEL must be one of {VALID_LOG_LEVELS}")

    def to_dict(self) -> dict[str, Any]:
        return {
            attr: getattr(self, attr)
            for attr in vars(self)
            if attr.isupper()
        }

    def __str__(self) -> str:
        return f"Config({self.to_dict()})"


config = Config()
