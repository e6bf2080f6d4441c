"""Single-slot record storage for challenge, consent and cooldown state.

Each record is a short text value keyed by name. The file-backed store
keeps one file per record at the working-tree root; the in-memory store
is used by tests and anything that wants the protocol without disk I/O.

>>> store = MemoryRecordStore()
>>> store.read(".vow-challenge") is None
True
>>> store.write(".vow-challenge", "42")
>>> store.read(".vow-challenge")
'42'
>>> store.delete(".vow-challenge")
>>> store.delete(".vow-challenge")  # missing records are fine
>>> store.read(".vow-challenge") is None
True
"""

import logging
import os
import sys
import tempfile
import time
from pathlib import Path
from typing import Optional, Protocol

logger = logging.getLogger(__name__)


class RecordStoreError(OSError):
    """A record exists but could not be read, written or removed."""


class RecordStore(Protocol):
    def read(self, name: str) -> Optional[str]: ...

    def write(self, name: str, value: str) -> None: ...

    def delete(self, name: str) -> None: ...


def _safe_replace(src: str, dst: str, *, retries: int = 3, delay: float = 0.1):
    """os.replace() with retry for Windows PermissionError.

    On Windows, os.replace() fails if the target is held open by
    another process. On macOS/Linux this is a single os.replace() call.
    """
    for attempt in range(retries):
        try:
            os.replace(src, dst)
            return
        except PermissionError:
            if sys.platform != "win32" or attempt == retries - 1:
                raise
            time.sleep(delay * (2 ** attempt))


class FileRecordStore:
    """Records as plain text files in a directory (the working-tree root)."""

    def __init__(self, root: str | Path):
        self.root = Path(root)

    def path_for(self, name: str) -> Path:
        return self.root / name

    def read(self, name: str) -> Optional[str]:
        """Return the record's text, or None if it doesn't exist."""
        path = self.path_for(name)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError) as e:
            raise RecordStoreError(f"Cannot read {path}: {e}") from e

    def write(self, name: str, value: str) -> None:
        """Write the record atomically (temp file + replace)."""
        path = self.path_for(name)
        if path.is_symlink():
            raise RecordStoreError(f"Refusing to write through symlink: {path}")
        try:
            fd, tmp = tempfile.mkstemp(dir=str(self.root), prefix=f"{name}.", suffix=".tmp")
        except OSError as e:
            raise RecordStoreError(f"Cannot write {path}: {e}") from e
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(value)
            _safe_replace(tmp, str(path))
        except OSError as e:
            try:
                os.unlink(tmp)
            except OSError:
                pass
            raise RecordStoreError(f"Cannot write {path}: {e}") from e
        logger.debug("Wrote %s", path)

    def delete(self, name: str) -> None:
        """Remove the record. A missing record is not an error."""
        path = self.path_for(name)
        try:
            path.unlink()
            logger.debug("Removed %s", path)
        except FileNotFoundError:
            pass
        except OSError as e:
            raise RecordStoreError(f"Cannot remove {path}: {e}") from e


class MemoryRecordStore:
    """Dict-backed store. Records ``writes`` for assertions in tests."""

    def __init__(self, records: Optional[dict[str, str]] = None):
        self.records: dict[str, str] = dict(records or {})
        self.writes: list[tuple[str, str]] = []

    def read(self, name: str) -> Optional[str]:
        return self.records.get(name)

    def write(self, name: str, value: str) -> None:
        self.records[name] = value
        self.writes.append((name, value))

    def delete(self, name: str) -> None:
        self.records.pop(name, None)
