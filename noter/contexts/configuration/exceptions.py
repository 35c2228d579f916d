"""Custom exceptions for the configuration context."""

from pathlib import Path
from typing import Optional

from noter.utils.errors import NoterError


class ConfigCorruptError(NoterError):
    """
    Exception raised when the persisted config record cannot be parsed.

    Fatal and never auto-repaired: the original file is left untouched so the
    user can fix it by hand.

    Attributes:
        message: Error description
        path: Config file that failed to load
        original_error: The underlying parser error, if any
    """

    def __init__(
        self,
        message: str,
        path: Optional[Path] = None,
        original_error: Optional[Exception] = None,
    ):
        self.original_error = original_error
        if original_error is not None:
            message = f"{message}\nOriginal error: {original_error}"
        super().__init__(message, path=path)


class ConfigKeyError(NoterError):
    """
    Exception raised when a dotted config key cannot be read or set.

    Attributes:
        message: Error description
        field: The dotted key, e.g. "templates.auto_update"
    """

    def __init__(self, message: str, key: str):
        super().__init__(message, field=key)
