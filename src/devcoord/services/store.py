"""Record storage for coordination state.

Lock, registry and server-state logic read and write named records
through the ``RecordStore`` protocol. ``FileStore`` is the real
implementation over a shared coordination directory; ``MemoryStore``
is an in-process fake with the same container semantics.

Names are ``/``-separated. A name whose prefix is a container created
with ``create_dir`` (the lock directory) lives inside that container,
and writing it fails once the container is gone.
"""

import contextlib
import errno
import os
import shutil
import tempfile
import uuid
from collections.abc import Mapping
from pathlib import Path
from typing import Protocol

from ..errors import RecordMissingError, StoreError

RMTREE_ATTEMPTS = 3


class RecordStore(Protocol):
    """Named-record storage shared by all cooperating processes."""

    def read(self, name: str) -> str | None:
        """Return the record text, or None if absent."""
        ...

    def write(self, name: str, content: str) -> None:
        """Replace the whole record atomically."""
        ...

    def create_dir(self, name: str, records: Mapping[str, str] | None = None) -> bool:
        """Create a container if absent. True only for the caller that created it.

        ``records`` (child name to content) are in place before the container
        becomes visible to other processes.
        """
        ...

    def delete(self, name: str) -> None:
        """Remove a record or container. Absent is not an error."""
        ...

    def exists(self, name: str) -> bool:
        """Return True if a record or container exists."""
        ...


class FileStore:
    """Record store over a directory on a local filesystem.

    Uses ``mkdir`` (or a rename of a populated staging directory) for
    create-if-absent, which fails atomically when the target exists, and
    temp-file + ``os.replace`` so a record is never observed half-written.
    """

    def __init__(self, root: Path) -> None:
        self.root = Path(root)

    def path(self, name: str) -> Path:
        """Get filesystem path of a record."""
        return self.root / name

    def _ensure_root(self) -> None:
        try:
            self.root.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StoreError(f"Cannot create coordination directory {self.root}: {e}") from e

    def read(self, name: str) -> str | None:
        path = self.path(name)
        try:
            # Foreign bytes surface as U+FFFD and fail record parsing instead
            return path.read_text(encoding="utf-8", errors="replace")
        except FileNotFoundError:
            return None
        except OSError as e:
            raise StoreError(f"Cannot read {path}: {e}") from e

    def write(self, name: str, content: str) -> None:
        target = self.path(name)
        if target.parent == self.root:
            self._ensure_root()

        try:
            fd, tmp_name = tempfile.mkstemp(
                dir=target.parent, prefix=f".{target.name}.", suffix=".tmp"
            )
        except FileNotFoundError:
            raise RecordMissingError(f"Container for {target} no longer exists") from None
        except OSError as e:
            raise StoreError(f"Cannot write {target}: {e}") from e

        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(content)
            os.replace(tmp_name, target)
        except FileNotFoundError:
            with contextlib.suppress(OSError):
                os.unlink(tmp_name)
            raise RecordMissingError(f"Container for {target} no longer exists") from None
        except OSError as e:
            with contextlib.suppress(OSError):
                os.unlink(tmp_name)
            raise StoreError(f"Cannot write {target}: {e}") from e

    def create_dir(self, name: str, records: Mapping[str, str] | None = None) -> bool:
        path = self.path(name)
        self._ensure_root()
        if not records:
            try:
                path.mkdir()
            except FileExistsError:
                return False
            except OSError as e:
                raise StoreError(f"Cannot create {path}: {e}") from e
            return True

        # Populate a private staging directory, then rename it into place
        staging = path.with_name(f".{path.name}.{uuid.uuid4().hex}.tmp")
        try:
            staging.mkdir()
            for child, content in records.items():
                (staging / child).write_text(content, encoding="utf-8")
        except OSError as e:
            shutil.rmtree(staging, ignore_errors=True)
            raise StoreError(f"Cannot create {path}: {e}") from e

        try:
            os.rename(staging, path)
        except OSError as e:
            shutil.rmtree(staging, ignore_errors=True)
            if e.errno in (errno.EEXIST, errno.ENOTEMPTY) or path.exists():
                return False
            raise StoreError(f"Cannot create {path}: {e}") from e
        return True

    def delete(self, name: str) -> None:
        path = self.path(name)
        try:
            if path.is_dir() and not path.is_symlink():
                self._rmtree(path)
            else:
                path.unlink(missing_ok=True)
        except OSError as e:
            raise StoreError(f"Cannot delete {path}: {e}") from e

    @staticmethod
    def _rmtree(path: Path) -> None:
        # A writer may drop a temp file into the container while it is being removed
        for attempt in range(RMTREE_ATTEMPTS):
            try:
                shutil.rmtree(path)
                return
            except FileNotFoundError:
                return
            except OSError as e:
                if e.errno != errno.ENOTEMPTY or attempt == RMTREE_ATTEMPTS - 1:
                    raise

    def exists(self, name: str) -> bool:
        return self.path(name).exists()


class MemoryStore:
    """In-memory record store for tests."""

    def __init__(self) -> None:
        self.records: dict[str, str] = {}
        self.dirs: set[str] = set()

    def read(self, name: str) -> str | None:
        return self.records.get(name)

    def write(self, name: str, content: str) -> None:
        parent = name.rpartition("/")[0]
        if parent and parent not in self.dirs:
            raise RecordMissingError(f"Container for {name} no longer exists")
        self.records[name] = content

    def create_dir(self, name: str, records: Mapping[str, str] | None = None) -> bool:
        if name in self.dirs or name in self.records:
            return False
        self.dirs.add(name)
        for child, content in (records or {}).items():
            self.records[f"{name}/{child}"] = content
        return True

    def delete(self, name: str) -> None:
        self.records.pop(name, None)
        self.dirs.discard(name)
        prefix = f"{name}/"
        for key in [k for k in self.records if k.startswith(prefix)]:
            del self.records[key]

    def exists(self, name: str) -> bool:
        return name in self.records or name in self.dirs
