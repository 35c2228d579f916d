"""
File operations for generated notes.

Each write is independently safe (backup-then-write); there is no
multi-file transaction.
"""

import os
import shutil
import tempfile
from pathlib import Path
from typing import Tuple

from loguru import logger

from noter.utils.errors import NoterIOError
from noter.utils.timestamp import now_compact


def backup_path_for(path: Path, stamp: str = None) -> Path:
    """
    Build a timestamped backup path next to `path`.

    Examples:
        backup_path_for(Path("notes/a.typ"), "20261019_101500")
        # Path("notes/a.typ.bak.20261019_101500")
    """
    stamp = stamp or now_compact()
    return path.with_name(f"{path.name}.bak.{stamp}")


def backup(path: Path) -> Path:
    """
    Copy an existing file to a timestamped sibling.

    Args:
        path: File to back up

    Returns:
        Path of the backup, or None if `path` does not exist
    """
    path = Path(path)
    if not path.exists():
        return None

    target = backup_path_for(path)
    try:
        shutil.copy2(path, target)
    except OSError as e:
        raise NoterIOError("Failed to create backup", path=target, original_error=e) from e

    logger.info(f"Created backup: {target}")
    return target


def create_file_with_content(path: Path, content: str, create_backups: bool = False) -> Path:
    """
    Write `content` to a new file, creating parent directories.

    Collision policy belongs here, not to the template engine: an existing
    file is an error unless backups are enabled, in which case it is backed
    up and overwritten.

    Args:
        path: Destination file
        content: Text to write
        create_backups: Back up and overwrite an existing file instead of failing

    Returns:
        The written path

    Raises:
        NoterIOError: If the file exists (and backups are disabled) or the write fails
    """
    path = Path(path)

    try:
        path.parent.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise NoterIOError("Failed to create directory", path=path.parent, original_error=e) from e

    if path.exists():
        if not create_backups:
            raise NoterIOError("File already exists", path=path)
        backup(path)

    try:
        path.write_text(content, encoding="utf-8")
    except OSError as e:
        raise NoterIOError("Failed to write file", path=path, original_error=e) from e

    return path


def ensure_course_structure(notes_dir: Path, course_id: str) -> Tuple[Path, Path]:
    """
    Ensure `<notes_dir>/<course_id>/{lectures,assignments}` exist.

    Returns:
        Tuple of (lectures_dir, assignments_dir)
    """
    course_dir = Path(notes_dir) / course_id
    lectures_dir = course_dir / "lectures"
    assignments_dir = course_dir / "assignments"

    for directory in (lectures_dir, assignments_dir):
        try:
            directory.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise NoterIOError("Failed to create directory", path=directory, original_error=e) from e

    return lectures_dir, assignments_dir


def atomic_write_text(path: Path, text: str) -> None:
    """
    Write text to a file atomically using a temporary sibling and os.replace.

    Readers see either the old content or the new content, never a partial file.

    Raises:
        NoterIOError: If the temporary file cannot be written or moved into place
    """
    path = Path(path)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", dir=str(path.parent))
    except OSError as e:
        raise NoterIOError("Failed to create temporary file", path=path, original_error=e) from e

    try:
        with os.fdopen(fd, "w", encoding="utf-8") as tmp:
            tmp.write(text)
            tmp.flush()
            os.fsync(tmp.fileno())
        os.replace(tmp_name, path)
    except OSError as e:
        raise NoterIOError("Failed to write file", path=path, original_error=e) from e
    finally:
        if os.path.exists(tmp_name):
            os.remove(tmp_name)
