"""
Shared utilities for noter.

Common functionality used across contexts:
- Error types with operation context
- File operations (safe writes, backups)
- Timestamps
- Logging setup
"""

from noter.utils.errors import NoterError, NoterIOError, attempting
from noter.utils.timestamp import now_exact, today

__all__ = ["NoterError", "NoterIOError", "attempting", "now_exact", "today"]
