"""Named shared-memory regions mapped into the process.

A region is a file in the platform's shared-memory directory (``/dev/shm``
where it exists, otherwise the temporary directory). The file is memory-mapped
read-write and shared, so every process that opens the same name sees the
same bytes.
"""

from __future__ import annotations

import mmap
import os
import tempfile
from pathlib import Path

_MODE = 0o666
_O_BINARY = getattr(os, "O_BINARY", 0)


class RegionError(Exception):
    """A shared-memory region could not be created, opened or removed."""


def _shm_dir() -> Path:
    dev_shm = Path("/dev/shm")
    return dev_shm if dev_shm.is_dir() else Path(tempfile.gettempdir())


def _normalize(name: str) -> tuple[str, Path]:
    bare = name[1:] if name.startswith("/") else name
    if not bare or "/" in bare or "\\" in bare or bare in (".", ".."):
        raise RegionError(f"invalid shared memory name: {name!r}")
    return "/" + bare, _shm_dir() / bare


class ShmRegion:
    """A mapped shared-memory region; close it when done."""

    def __init__(self, name: str, path: Path, mapping: mmap.mmap, owner: bool) -> None:
        self.name = name
        self.path = path
        self.owner = owner
        self._mapping: mmap.mmap | None = mapping

    @property
    def closed(self) -> bool:
        return self._mapping is None

    @property
    def size(self) -> int:
        """Mapped size in bytes; 0 once closed."""
        return 0 if self._mapping is None else len(self._mapping)

    @property
    def buffer(self) -> mmap.mmap:
        """The writable mapping."""
        if self._mapping is None:
            raise RegionError(f"shared memory {self.name!r} is closed")
        return self._mapping

    def close(self) -> None:
        """Unmap the region. Closing twice does nothing."""
        if self._mapping is not None:
            self._mapping.close()
            self._mapping = None

    def unlink(self) -> None:
        """Remove the region's name so later opens no longer find it."""
        try:
            os.unlink(self.path)
        except FileNotFoundError:
            pass
        except OSError as exc:
            raise RegionError(f"cannot remove shared memory {self.name!r}: {exc}") from exc

    def __enter__(self) -> ShmRegion:
        return self

    def __exit__(self, *args) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"ShmRegion(name={self.name!r}, size={self.size}, owner={self.owner})"


def _attach(norm: str, path: Path, minimum: int) -> ShmRegion:
    try:
        fd = os.open(path, os.O_RDWR | _O_BINARY)
    except OSError as exc:
        raise RegionError(f"cannot open shared memory {norm!r}: {exc}") from exc
    try:
        actual = os.fstat(fd).st_size
        if actual < minimum:
            raise RegionError(
                f"shared memory {norm!r} has {actual} bytes, {minimum} required"
            )
        mapping = mmap.mmap(fd, actual)
    except (OSError, ValueError) as exc:
        raise RegionError(f"cannot map shared memory {norm!r}: {exc}") from exc
    finally:
        os.close(fd)
    return ShmRegion(norm, path, mapping, owner=False)


def create_or_open(name: str, size: int) -> ShmRegion:
    """Create region *name* of *size* bytes, or open it if it already exists.

    A newly created region is zero-filled and marked as owned. An existing
    region must be at least *size* bytes and is mapped at its full size.
    """
    if size <= 0:
        raise RegionError(f"shared memory size must be positive: {size}")
    norm, path = _normalize(name)
    try:
        fd = os.open(path, os.O_RDWR | os.O_CREAT | os.O_EXCL | _O_BINARY, _MODE)
    except FileExistsError:
        return _attach(norm, path, size)
    except OSError as exc:
        raise RegionError(f"cannot create shared memory {norm!r}: {exc}") from exc
    try:
        os.ftruncate(fd, size)
        mapping = mmap.mmap(fd, size)
    except (OSError, ValueError) as exc:
        raise RegionError(f"cannot size or map shared memory {norm!r}: {exc}") from exc
    finally:
        os.close(fd)
    return ShmRegion(norm, path, mapping, owner=True)


def open_existing(name: str) -> ShmRegion:
    """Open region *name*, which must already exist, at its full size."""
    norm, path = _normalize(name)
    return _attach(norm, path, 0)