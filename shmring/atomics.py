"""Atomic-style access to unsigned 64-bit words stored in a writable buffer.

Words use native byte order, so they match the layout of the shared-memory
structures in ``shmring.layout``. Read-modify-write operations are
serialised with a process-wide lock. That lock makes them atomic between
threads of one process. It does not coordinate separate processes.
"""

from __future__ import annotations

import struct
import threading

_U64 = struct.Struct("=Q")
_MASK = (1 << 64) - 1
_lock = threading.Lock()


def load_u64(buffer, offset: int) -> int:
    """Return the unsigned 64-bit word stored at *offset*."""
    with _lock:
        return _U64.unpack_from(buffer, offset)[0]


def store_u64(buffer, offset: int, value: int) -> None:
    """Store *value*, reduced modulo 2**64, at *offset*."""
    with _lock:
        _U64.pack_into(buffer, offset, value & _MASK)


def fetch_add_u64(buffer, offset: int, add: int) -> int:
    """Add *add* to the word at *offset* with wrap-around and return the old value."""
    with _lock:
        old = _U64.unpack_from(buffer, offset)[0]
        _U64.pack_into(buffer, offset, (old + add) & _MASK)
        return old


def compare_exchange_u64(buffer, offset: int, expected: int, desired: int) -> tuple[bool, int]:
    """Replace the word at *offset* with *desired* if it equals *expected*.

    Returns ``(swapped, observed)``. *observed* is the value found before the call.
    """
    with _lock:
        observed = _U64.unpack_from(buffer, offset)[0]
        if observed != (expected & _MASK):
            return False, observed
        _U64.pack_into(buffer, offset, desired & _MASK)
        return True, observed