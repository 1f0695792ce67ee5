"""Publisher that writes messages into a shared-memory ring."""

from __future__ import annotations

import dataclasses
import threading
import time
from dataclasses import dataclass
from enum import Enum

from . import layout
from .atomics import compare_exchange_u64, fetch_add_u64, load_u64, store_u64
from .logger import Logger, LogLevel, default_logger
from .naming import build_region_name
from .region import RegionError, ShmRegion, create_or_open

_MIN_SLOT_SIZE = 256


class OverflowPolicy(Enum):
    """What a publisher does when the ring has no free slot."""

    DROP_NEWEST = "drop_newest"
    """Keep older messages and refuse the new publish."""
    DROP_OLDEST = "drop_oldest"
    """Keep newer messages and advance lagging subscribers."""


@dataclass
class PublisherOptions:
    """Ring configuration chosen by the publisher that creates a region."""

    capacity_bytes: int = 4 * 1024 * 1024
    slot_size_bytes: int = 64 * 1024
    max_subscribers: int = 8
    overflow_policy: OverflowPolicy = OverflowPolicy.DROP_OLDEST
    # Subscribers not seen for longer than this are released; 0 disables it.
    subscriber_timeout_ms: int = 2000
    logger: Logger | None = default_logger


def _slot_count(options: PublisherOptions) -> int:
    stride = layout.slot_stride_bytes(options.slot_size_bytes)
    if stride == 0:
        return 1
    return max(options.capacity_bytes // stride, 1)


def _as_bytes(payload) -> memoryview:
    if payload is None:
        return memoryview(b"")
    return memoryview(payload).cast("B")


class Publisher:
    """Publishes messages on a topic through a shared-memory ring.

    When the region cannot be created or its existing layout does not match,
    the publisher is not running and every send is refused.
    """

    def __init__(self, topic_name: str, options: PublisherOptions | int | None = None) -> None:
        if options is None:
            options = PublisherOptions()
        elif isinstance(options, int):
            options = PublisherOptions(capacity_bytes=options)
        options = dataclasses.replace(options)
        if options.max_subscribers == 0:
            options.max_subscribers = 1
        options.slot_size_bytes = max(options.slot_size_bytes, _MIN_SLOT_SIZE)

        self.topic_name = topic_name
        self.region_name = build_region_name(topic_name)
        self.options = options
        self._send_lock = threading.Lock()
        self._region: ShmRegion | None = None

        slot_count = _slot_count(options)
        region_size = layout.total_region_size(
            options.max_subscribers, slot_count, options.slot_size_bytes
        )
        try:
            region = create_or_open(self.region_name, region_size)
        except RegionError:
            return

        buffer = region.buffer
        if region.owner:
            buffer[:region_size] = bytes(region_size)
            layout.ShmHeader(
                region_size_bytes=region_size,
                slot_size_bytes=options.slot_size_bytes,
                slot_count=slot_count,
                max_subscribers=options.max_subscribers,
            ).write_to(buffer)
            self._region = region
            return

        header = layout.read_header(buffer)
        expected = layout.ShmHeader(
            region_size_bytes=region_size,
            slot_size_bytes=options.slot_size_bytes,
            slot_count=slot_count,
            max_subscribers=options.max_subscribers,
        )
        compatible = (
            header.magic == expected.magic
            and header.version == expected.version
            and header.header_size == expected.header_size
            and header.region_size_bytes == expected.region_size_bytes
            and header.slot_size_bytes == expected.slot_size_bytes
            and header.slot_count == expected.slot_count
            and header.max_subscribers == expected.max_subscribers
        )
        if compatible:
            self._region = region
            return

        self._log(
            LogLevel.ERROR,
            "shared memory exists but has incompatible layout/config. "
            f"Hint: stop all users and delete '/dev/shm/{self.region_name}' (Linux) "
            "or use a different topic. "
            f"Expected version={layout.K_VERSION} slot_size={options.slot_size_bytes} "
            f"slot_count={slot_count} max_subscribers={options.max_subscribers}; "
            f"found version={header.version} slot_size={header.slot_size_bytes} "
            f"slot_count={header.slot_count} max_subscribers={header.max_subscribers}",
        )
        region.close()

    def _prefix(self) -> str:
        return f"topic='{self.topic_name}': "

    def _log(self, level: LogLevel, message: str) -> None:
        if self.options.logger is not None:
            self.options.logger(level, self._prefix() + message)

    def is_running(self) -> bool:
        """True while the publisher holds a usable region."""
        return self._region is not None and not self._region.closed

    def send(self, *args) -> bool:
        """Publish one message made of the given payloads, concatenated.

        Accepts either several bytes-like payloads or a single list or tuple of
        them; ``None`` entries are skipped. Returns False when the publisher is
        not running, the message exceeds the slot size, or the ring is full
        under the drop-newest policy.
        """
        if len(args) == 1 and isinstance(args[0], (list, tuple)):
            args = tuple(args[0])
        payloads = [_as_bytes(p) for p in args]

        if not self.is_running():
            return False
        buffer = self._region.buffer
        header = layout.read_header(buffer)

        total_size = sum(p.nbytes for p in payloads)
        if total_size > header.slot_size_bytes:
            return False

        with self._send_lock:
            return self._send_locked(buffer, header, payloads, total_size)

    def _send_locked(self, buffer, header: layout.ShmHeader, payloads, total_size: int) -> bool:
        slot_count = header.slot_count
        max_subscribers = header.max_subscribers
        entries = [layout.subscriber_entry_offset(i) for i in range(max_subscribers)]

        min_read_idx = load_u64(buffer, layout.HDR_WRITE_IDX)
        now = time.monotonic_ns()
        timeout_ns = self.options.subscriber_timeout_ms * 1_000_000
        for base in entries:
            if load_u64(buffer, base + layout.SUB_ACTIVE) == 0:
                continue
            if timeout_ns:
                last_seen = load_u64(buffer, base + layout.SUB_LAST_SEEN_NS)
                if last_seen != 0 and now > last_seen and now - last_seen > timeout_ns:
                    # Subscriber vanished without unregistering: release its entry.
                    store_u64(buffer, base + layout.SUB_TOKEN, 0)
                    store_u64(buffer, base + layout.SUB_ACTIVE, 0)
                    continue
            min_read_idx = min(min_read_idx, load_u64(buffer, base + layout.SUB_READ_IDX))

        next_idx = load_u64(buffer, layout.HDR_WRITE_IDX) + 1

        if next_idx - min_read_idx > slot_count:
            if self.options.overflow_policy is OverflowPolicy.DROP_NEWEST:
                fetch_add_u64(buffer, layout.HDR_DROPPED_NEWEST, 1)
                self._log(
                    LogLevel.WARNING,
                    f"ring full, drop newest publish (size={total_size})",
                )
                return False

            new_min = next_idx - slot_count
            total_dropped = 0
            for base in entries:
                if load_u64(buffer, base + layout.SUB_ACTIVE) == 0:
                    continue
                while True:
                    read_idx = load_u64(buffer, base + layout.SUB_READ_IDX)
                    if read_idx >= new_min:
                        break
                    swapped, _ = compare_exchange_u64(
                        buffer, base + layout.SUB_READ_IDX, read_idx, new_min
                    )
                    if swapped:
                        lost = new_min - read_idx
                        fetch_add_u64(buffer, base + layout.SUB_LOST_COUNT, lost)
                        total_dropped += lost
                        break
            if total_dropped:
                fetch_add_u64(buffer, layout.HDR_DROPPED_OLDEST, total_dropped)
                self._log(
                    LogLevel.WARNING,
                    "ring full, forced drop oldest for lagging subscribers "
                    f"(dropped={total_dropped})",
                )

        stride = layout.slot_stride_bytes(header.slot_size_bytes)
        slot = layout.ring_offset_bytes(max_subscribers) + (next_idx % slot_count) * stride

        # Seqlock: odd while writing, even when stable.
        seq = load_u64(buffer, slot + layout.SLOT_SEQ)
        fetch_add_u64(buffer, slot + layout.SLOT_SEQ, 1 if seq % 2 == 0 else 2)

        position = slot + layout.SlotHeader.SIZE
        for payload in payloads:
            if payload.nbytes:
                buffer[position:position + payload.nbytes] = payload
                position += payload.nbytes

        store_u64(buffer, slot + layout.SLOT_MSG_IDX, next_idx)
        store_u64(buffer, slot + layout.SLOT_SIZE, total_size)
        fetch_add_u64(buffer, slot + layout.SLOT_SEQ, 1)

        store_u64(buffer, layout.HDR_WRITE_IDX, next_idx)
        return True

    def close(self) -> None:
        """Release the mapping; the region itself stays for other users."""
        if self._region is not None:
            self._region.close()
            self._region = None

    def __enter__(self) -> Publisher:
        return self

    def __exit__(self, *args) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"Publisher(topic_name={self.topic_name!r}, running={self.is_running()})"