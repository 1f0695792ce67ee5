"""Binary layout of a shared-memory ring region.

A region holds one ``ShmHeader``, then a table of ``max_subscribers``
``SubscriberEntry`` records, then the ring of slots. Each slot is a
``SlotHeader`` followed by ``slot_size_bytes`` of payload. All integers use
native byte order.
"""

from __future__ import annotations

import struct
from dataclasses import dataclass
from typing import ClassVar

K_MAGIC = 0x53484D50  # "SHMP"
K_VERSION = 2

_HEADER = struct.Struct("=IHH7Q32x")
_SUBSCRIBER = struct.Struct("=5Q")
_SLOT = struct.Struct("=3Q")

# Byte offsets of the fields that are updated concurrently.
HDR_WRITE_IDX = 40
HDR_DROPPED_NEWEST = 48
HDR_DROPPED_OLDEST = 56

SUB_ACTIVE = 0
SUB_TOKEN = 8
SUB_READ_IDX = 16
SUB_LOST_COUNT = 24
SUB_LAST_SEEN_NS = 32

SLOT_SEQ = 0
SLOT_MSG_IDX = 8
SLOT_SIZE = 16


def _require(buffer, offset: int, size: int) -> None:
    if offset < 0 or offset + size > len(buffer):
        raise ValueError(
            f"buffer of {len(buffer)} bytes cannot hold {size} bytes at offset {offset}"
        )


@dataclass
class ShmHeader:
    """Region header: format identification, ring configuration and ring state."""

    SIZE: ClassVar[int] = _HEADER.size

    magic: int = K_MAGIC
    version: int = K_VERSION
    header_size: int = _HEADER.size
    region_size_bytes: int = 0
    slot_size_bytes: int = 0
    slot_count: int = 0
    max_subscribers: int = 0
    write_idx: int = 0
    dropped_newest_count: int = 0
    dropped_oldest_count: int = 0

    def write_to(self, buffer) -> None:
        """Write this header at the start of *buffer*; the reserved words are zeroed."""
        _require(buffer, 0, self.SIZE)
        _HEADER.pack_into(
            buffer,
            0,
            self.magic,
            self.version,
            self.header_size,
            self.region_size_bytes,
            self.slot_size_bytes,
            self.slot_count,
            self.max_subscribers,
            self.write_idx,
            self.dropped_newest_count,
            self.dropped_oldest_count,
        )


@dataclass
class SubscriberEntry:
    """One subscriber's registration and progress."""

    SIZE: ClassVar[int] = _SUBSCRIBER.size

    active: int = 0
    token: int = 0
    read_idx: int = 0
    lost_count: int = 0
    last_seen_ns: int = 0


@dataclass
class SlotHeader:
    """Seqlock counter, message index and payload size of one ring slot."""

    SIZE: ClassVar[int] = _SLOT.size

    seq: int = 0
    msg_idx: int = 0
    size: int = 0


def read_header(buffer) -> ShmHeader:
    """Decode the region header at the start of *buffer*."""
    _require(buffer, 0, ShmHeader.SIZE)
    return ShmHeader(*_HEADER.unpack_from(buffer, 0))


def subscriber_entry_offset(index: int) -> int:
    """Byte offset of subscriber table entry *index*."""
    if index < 0:
        raise ValueError(f"subscriber index must not be negative: {index}")
    return subscriber_table_offset_bytes() + index * SubscriberEntry.SIZE


def read_subscriber(buffer, index: int) -> SubscriberEntry:
    """Decode subscriber table entry *index*."""
    offset = subscriber_entry_offset(index)
    _require(buffer, offset, SubscriberEntry.SIZE)
    return SubscriberEntry(*_SUBSCRIBER.unpack_from(buffer, offset))


def read_slot_header(buffer, offset: int) -> SlotHeader:
    """Decode the slot header found at byte *offset*."""
    _require(buffer, offset, SlotHeader.SIZE)
    return SlotHeader(*_SLOT.unpack_from(buffer, offset))


def subscriber_table_offset_bytes() -> int:
    """Offset of the subscriber table, directly after the header."""
    return ShmHeader.SIZE


def ring_offset_bytes(max_subscribers: int) -> int:
    """Offset of the first slot for a table of *max_subscribers* entries."""
    return ShmHeader.SIZE + max_subscribers * SubscriberEntry.SIZE


def slot_stride_bytes(slot_size_bytes: int) -> int:
    """Distance between consecutive slots."""
    return SlotHeader.SIZE + slot_size_bytes


def ring_bytes(slot_count: int, slot_size_bytes: int) -> int:
    """Total size of the slot ring."""
    return slot_count * slot_stride_bytes(slot_size_bytes)


def total_region_size(max_subscribers: int, slot_count: int, slot_size_bytes: int) -> int:
    """Size of a whole region: header, subscriber table and ring."""
    return ring_offset_bytes(max_subscribers) + ring_bytes(slot_count, slot_size_bytes)