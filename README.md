# shmring

`shmring` publishes messages into a named shared-memory ring buffer so that
other processes on the same machine can read them with very little overhead.

Each topic maps to a shared-memory region named `shm_pubsub_<topic>`. Every
byte of the topic (taken as UTF-8) outside `A-Z a-z 0-9 _ - .` becomes `_`,
and an empty topic becomes `default` (`shmring.naming.build_region_name`).
The region is a file in `/dev/shm` where that directory exists, otherwise in
the temporary directory, mapped read-write and shared (`shmring.region`).

The region holds a header, a fixed table of subscriber entries and a ring of
fixed-size slots; `shmring.layout` describes the byte layout and provides
helpers such as `read_header`, `read_subscriber`, `read_slot_header` and
`total_region_size`. Each slot is guarded by a seqlock counter that is odd
while the slot is written and even when it is stable.

## Installation

```
pip install .
```

No third-party libraries are needed. Run the tests with `pip install .[test]`
and `pytest`.

## Publishing from Python

```python
from shmring.publisher import OverflowPolicy, Publisher, PublisherOptions

options = PublisherOptions(
    capacity_bytes=4 * 1024 * 1024,
    slot_size_bytes=64 * 1024,
    max_subscribers=8,
    overflow_policy=OverflowPolicy.DROP_OLDEST,
)

with Publisher("hello_world", options) as publisher:
    if publisher.is_running():
        publisher.send(b"Hello world 0")
        # several parts are joined into one message
        publisher.send(b"Hello ", b"world")
        publisher.send([b"Hello ", b"world"])
```

The second argument of `Publisher` may also be a plain integer, taken as
`capacity_bytes` with the other options at their defaults. A slot size below
256 bytes is raised to 256, and `max_subscribers=0` is treated as 1. The
number of slots is `capacity_bytes` divided by the slot stride, at least one.

`send` returns `False` when the publisher is not running, when the message is
larger than one slot, or when the ring is full and the overflow policy is
`DROP_NEWEST`. With `DROP_OLDEST`, lagging subscribers are moved forward and
their lost-message counters are increased. Both cases are counted in the
region header and logged as warnings.

The publisher that creates a region zero-fills it and writes the header. If
the region already exists with a different layout, the publisher logs an
error and does not run; `is_running()` then returns `False`. Stop every user
of the topic and remove the region, or pick another topic name. `close()`
unmaps the region but leaves it in place for other processes; removing it is
done with `shmring.region.ShmRegion.unlink`.

Subscriber entries whose liveness timestamp is older than
`subscriber_timeout_ms` (2000 ms by default, `0` turns this off) are released
on the next send, so a crashed reader cannot stall the ring.

## Logging

Diagnostics go to a logger callable `logger(level, message)`, where `level`
is a `shmring.logger.LogLevel`. The default, `shmring.logger.default_logger`,
writes debug and info messages to standard output and warnings and errors to
standard error, each with a `[SHM ps]` prefix. Set `logger=None` in
`PublisherOptions` to silence it.

## Command-line tools

Publish `Hello world <n>` on a topic (default `hello_world`) every 100 ms:

```
shmring-hello [--topic NAME] [--interval-ms MS] [--count N]
```

Publish fixed-size payloads and print how many sends succeeded and failed
each second:

```
shmring-perf [topic] [payload_bytes] [interval_ms] [policy] [--count N]
```

The defaults are topic `performance`, 65536-byte payloads, no pause between
sends and the drop-oldest policy. A policy of `drop_newest`, `DropNewest` or
`newest` selects drop-newest; any other value means drop-oldest. The first
eight bytes of each payload carry a running counter.

`--count 0`, the default for both tools, sends until interrupted with Ctrl+C.

`shmring` runs the same tools as subcommands `hello` and `performance`:

```
shmring hello --count 10
shmring performance performance 4096 10 drop_newest
```

## What this package does not do

- It contains no subscriber. Nothing here registers a subscriber entry, reads
  slots or delivers messages; a reader has to be written against the layout
  in `shmring.layout`.
- The read-modify-write helpers in `shmring.atomics` are atomic between
  threads of one process only. They do not coordinate separate processes
  that update the same region at the same time.