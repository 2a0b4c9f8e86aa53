"""
Atomic file writes for registry persistence.

Every registry file (custom app lists, pins, capability grants) is
replaced whole: content is staged in a hidden sibling file, synced, then
renamed over the target. Readers see either the old list or the new one,
never a partially written file.
"""

from __future__ import annotations

import json
import os
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import IO, Any, Iterator, Union

PRIVATE_MODE = 0o600


def _sync_directory(directory: Path) -> None:
    # The rename is only durable once the directory entry is flushed
    try:
        dir_fd = os.open(str(directory), os.O_RDONLY | os.O_DIRECTORY)
    except (OSError, AttributeError):
        return
    try:
        os.fsync(dir_fd)
    finally:
        os.close(dir_fd)


@contextmanager
def _staged_file(path: Path, mode: int) -> Iterator[IO[str]]:
    """Yield a temp file next to ``path``; it replaces ``path`` on clean exit."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, staged = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")

    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            yield f
            f.flush()
            os.fsync(f.fileno())
        os.chmod(staged, mode)
        os.replace(staged, path)
    except BaseException:
        try:
            os.unlink(staged)
        except FileNotFoundError:
            pass
        raise

    _sync_directory(path.parent)


def atomic_write_text(path: Union[str, Path], content: str, mode: int = PRIVATE_MODE) -> None:
    """
    Replace a file's content atomically.

    Args:
        path: Destination file path; parent directories are created
        content: Text content to write
        mode: File permissions (default 0o600, registry files are per-user)
    """
    with _staged_file(Path(path), mode) as f:
        f.write(content)


def atomic_write_json(
    path: Union[str, Path],
    data: Any,
    indent: int = 2,
    mode: int = PRIVATE_MODE,
) -> None:
    """
    Serialize ``data`` and replace the file with it atomically.

    Serialization happens before the file is touched, so unserializable
    data raises TypeError/ValueError and leaves the old file in place.
    """
    content = json.dumps(data, indent=indent, ensure_ascii=False)
    atomic_write_text(path, content + "\n", mode)
