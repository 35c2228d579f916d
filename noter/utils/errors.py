"""
Base exception types shared by every noter context.

Context-specific exceptions live in contexts/{context}/exceptions.py and
derive from NoterError so the CLI layer can report them uniformly.
"""

from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, List, Optional


class NoterError(Exception):
    """
    Base class for all noter errors.

    Attributes:
        message: Error description
        path: Filesystem path involved, if any
        field: Config or template field involved, if any
        operations: Operations the error propagated through, outermost first
    """

    def __init__(
        self,
        message: str,
        path: Optional[Path] = None,
        field: Optional[str] = None,
    ):
        self.message = message
        self.path = Path(path) if path is not None else None
        self.field = field
        self.operations: List[str] = []
        super().__init__(message)

    def annotate(self, operation: str) -> "NoterError":
        """Record an enclosing operation (called while unwinding, so prepend)."""
        self.operations.insert(0, operation)
        return self

    def __str__(self) -> str:
        parts = [self.message]

        if self.field:
            parts.append(f"Field: {self.field}")

        if self.path is not None:
            parts.append(f"Path: {self.path}")

        text = "\n".join(parts)

        if self.operations:
            return f"While {' -> '.join(self.operations)}: {text}"

        return text


class NoterIOError(NoterError):
    """Filesystem failure. Always carries the path that was being accessed."""

    def __init__(self, message: str, path: Path, original_error: Optional[OSError] = None):
        self.original_error = original_error
        if original_error is not None:
            message = f"{message} ({original_error.strerror or original_error})"
        super().__init__(message, path=path)


@contextmanager
def attempting(operation: str) -> Iterator[None]:
    """
    Annotate any NoterError raised inside the block with `operation`.

    The error object is re-raised unchanged apart from the annotation.

    Example:
        with attempting("resolving template version"):
            version = resolve_version(alias, config)
    """
    try:
        yield
    except NoterError as e:
        e.annotate(operation)
        raise
