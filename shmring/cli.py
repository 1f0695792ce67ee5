"""Command-line publishers: a hello-world sender and a throughput generator."""

from __future__ import annotations

import argparse
import struct
import sys
import threading
import time

from .publisher import OverflowPolicy, Publisher, PublisherOptions

_U64 = struct.Struct("=Q")
_U64_MASK = (1 << 64) - 1


def parse_policy(text: str) -> OverflowPolicy:
    """Map a policy name to an ``OverflowPolicy``; anything unknown means drop-oldest."""
    if text in ("drop_newest", "DropNewest", "newest"):
        return OverflowPolicy.DROP_NEWEST
    return OverflowPolicy.DROP_OLDEST


def _non_negative(text: str) -> int:
    try:
        value = int(text)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"not an integer: {text!r}") from exc
    if value < 0:
        raise argparse.ArgumentTypeError(f"must not be negative: {value}")
    return value


def _sleep_ms(interval_ms: int) -> None:
    if interval_ms:
        time.sleep(interval_ms / 1000.0)


def _iterations(count: int):
    """Yield 0, 1, 2, ...; stop after *count* values unless *count* is 0."""
    index = 0
    while count == 0 or index < count:
        yield index
        index += 1


def hello_world_main(argv=None) -> int:
    """Publish ``Hello world <n>`` messages on a topic at a fixed interval."""
    parser = argparse.ArgumentParser(
        prog="shmring-hello", description="Publish hello-world messages over shared memory."
    )
    parser.add_argument("--topic", default="hello_world", help="topic name")
    parser.add_argument(
        "--interval-ms", type=_non_negative, default=100, help="pause between messages"
    )
    parser.add_argument(
        "--count", type=_non_negative, default=0, help="messages to send; 0 sends forever"
    )
    args = parser.parse_args(argv)

    with Publisher(args.topic, 1024 * 1024) as publisher:
        if not publisher.is_running():
            print(
                f"Failed to create shared memory publisher for topic '{args.topic}'",
                file=sys.stderr,
            )
            return 1

        print(f"Publishing on topic '{args.topic}'", flush=True)
        for counter in _iterations(args.count):
            publisher.send(f"Hello world {counter}".encode())
            _sleep_ms(args.interval_ms)
    return 0


class _SendStats:
    """Counts successful and refused sends and reports them once a second."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._ok = 0
        self._fail = 0
        self._stop = threading.Event()
        self._thread = threading.Thread(target=self._report, daemon=True)

    def record(self, ok: bool) -> None:
        with self._lock:
            if ok:
                self._ok += 1
            else:
                self._fail += 1

    def _take(self) -> tuple[int, int]:
        with self._lock:
            ok, fail = self._ok, self._fail
            self._ok = self._fail = 0
        return ok, fail

    def _report(self) -> None:
        while not self._stop.is_set():
            ok, fail = self._take()
            print(f"Sent ok={ok} fail={fail} in 1 second", flush=True)
            self._stop.wait(1.0)

    def __enter__(self) -> _SendStats:
        self._thread.start()
        return self

    def __exit__(self, *args) -> None:
        self._stop.set()
        self._thread.join()


def performance_main(argv=None) -> int:
    """Publish fixed-size messages as fast as allowed and report the send rate."""
    parser = argparse.ArgumentParser(
        prog="shmring-performance",
        description="Measure shared-memory publishing throughput.",
    )
    parser.add_argument("topic", nargs="?", default="performance")
    parser.add_argument("payload_bytes", nargs="?", type=_non_negative, default=64 * 1024)
    parser.add_argument("interval_ms", nargs="?", type=_non_negative, default=0)
    parser.add_argument("policy", nargs="?", default=None)
    parser.add_argument(
        "--count", type=_non_negative, default=0, help="messages to send; 0 sends forever"
    )
    args = parser.parse_args(argv)

    policy = parse_policy(args.policy) if args.policy is not None else OverflowPolicy.DROP_OLDEST
    options = PublisherOptions(
        capacity_bytes=32 * 1024 * 1024,
        slot_size_bytes=max(args.payload_bytes, 256),
        max_subscribers=8,
        overflow_policy=policy,
    )

    with Publisher(args.topic, options) as publisher:
        if not publisher.is_running():
            print(
                f"Failed to create shared memory publisher for topic '{args.topic}'",
                file=sys.stderr,
            )
            return 1

        payload = bytearray(args.payload_bytes)
        print(
            f"Publishing shm topic='{args.topic}' payload_bytes={args.payload_bytes} "
            f"interval_ms={args.interval_ms} policy={policy.value}",
            flush=True,
        )

        with _SendStats() as stats:
            for counter in _iterations(args.count):
                if len(payload) >= _U64.size:
                    _U64.pack_into(payload, 0, counter & _U64_MASK)
                stats.record(publisher.send(payload))
                _sleep_ms(args.interval_ms)
    return 0


_COMMANDS = {
    "hello": hello_world_main,
    "performance": performance_main,
}


def main(argv=None) -> int:
    """Run one of the publisher commands: ``hello`` or ``performance``."""
    parser = argparse.ArgumentParser(
        prog="shmring", description="Shared-memory ring publishers."
    )
    parser.add_argument("command", choices=sorted(_COMMANDS))
    parser.add_argument("args", nargs=argparse.REMAINDER)
    args = parser.parse_args(argv)
    return _COMMANDS[args.command](args.args)


if __name__ == "__main__":
    sys.exit(main())