import pytest

from shmring import layout
from shmring.atomics import load_u64, store_u64
from shmring.layout import (
    K_MAGIC,
    K_VERSION,
    ShmHeader,
    SlotHeader,
    SubscriberEntry,
    read_header,
    read_slot_header,
    read_subscriber,
    ring_bytes,
    ring_offset_bytes,
    slot_stride_bytes,
    subscriber_entry_offset,
    subscriber_table_offset_bytes,
    total_region_size,
)


def test_magic_spells_shmp():
    assert K_MAGIC.to_bytes(4, "big") == b"SHMP"
    assert K_VERSION == 2


def test_record_sizes():
    assert subscriber_table_offset_bytes() == 96
    assert ring_offset_bytes(0) == ShmHeader.SIZE == 96
    assert ring_offset_bytes(1) - ring_offset_bytes(0) == SubscriberEntry.SIZE == 40
    assert slot_stride_bytes(0) == SlotHeader.SIZE == 24


def test_default_header_describes_itself():
    header = ShmHeader()
    assert header.magic == K_MAGIC
    assert header.version == K_VERSION
    assert header.header_size == subscriber_table_offset_bytes()


def test_header_round_trip():
    header = ShmHeader(
        region_size_bytes=5000,
        slot_size_bytes=256,
        slot_count=12,
        max_subscribers=3,
        write_idx=77,
        dropped_newest_count=4,
        dropped_oldest_count=9,
    )
    buf = bytearray(ShmHeader.SIZE)
    header.write_to(buf)
    assert read_header(buf) == header


def test_write_to_zeroes_reserved_words():
    buf = bytearray(b"\xff" * ShmHeader.SIZE)
    ShmHeader().write_to(buf)
    assert bytes(buf[layout.HDR_DROPPED_OLDEST + 8:]) == bytes(ShmHeader.SIZE - layout.HDR_DROPPED_OLDEST - 8)


def test_header_field_offsets_match_atomics():
    buf = bytearray(ShmHeader.SIZE)
    ShmHeader(write_idx=11, dropped_newest_count=22, dropped_oldest_count=33).write_to(buf)
    assert load_u64(buf, layout.HDR_WRITE_IDX) == 11
    assert load_u64(buf, layout.HDR_DROPPED_NEWEST) == 22
    assert load_u64(buf, layout.HDR_DROPPED_OLDEST) == 33


def test_read_header_rejects_short_buffer():
    with pytest.raises(ValueError):
        read_header(bytearray(ShmHeader.SIZE - 1))


def test_write_to_rejects_short_buffer():
    with pytest.raises(ValueError):
        ShmHeader().write_to(bytearray(10))


def test_subscriber_entries_follow_header():
    assert subscriber_entry_offset(0) == subscriber_table_offset_bytes()
    assert subscriber_entry_offset(3) - subscriber_entry_offset(2) == SubscriberEntry.SIZE
    assert subscriber_entry_offset(4) == ring_offset_bytes(4)


def test_negative_subscriber_index_rejected():
    with pytest.raises(ValueError):
        subscriber_entry_offset(-1)


def test_read_subscriber_fields():
    buf = bytearray(ring_offset_bytes(2))
    base = subscriber_entry_offset(1)
    store_u64(buf, base + layout.SUB_ACTIVE, 1)
    store_u64(buf, base + layout.SUB_TOKEN, 555)
    store_u64(buf, base + layout.SUB_READ_IDX, 17)
    store_u64(buf, base + layout.SUB_LOST_COUNT, 2)
    store_u64(buf, base + layout.SUB_LAST_SEEN_NS, 1000)
    assert read_subscriber(buf, 1) == SubscriberEntry(1, 555, 17, 2, 1000)
    assert read_subscriber(buf, 0) == SubscriberEntry()


def test_read_subscriber_beyond_buffer_raises():
    with pytest.raises(ValueError):
        read_subscriber(bytearray(ring_offset_bytes(1)), 1)


def test_read_slot_header_fields():
    offset = ring_offset_bytes(1)
    buf = bytearray(offset + slot_stride_bytes(256))
    store_u64(buf, offset + layout.SLOT_SEQ, 6)
    store_u64(buf, offset + layout.SLOT_MSG_IDX, 41)
    store_u64(buf, offset + layout.SLOT_SIZE, 200)
    assert read_slot_header(buf, offset) == SlotHeader(seq=6, msg_idx=41, size=200)


@pytest.mark.parametrize("subs", [0, 1, 8])
def test_ring_offset_grows_by_entry_size(subs):
    assert ring_offset_bytes(subs) - ring_offset_bytes(0) == subs * SubscriberEntry.SIZE


@pytest.mark.parametrize("slot_size", [256, 65536])
def test_stride_adds_slot_header(slot_size):
    assert slot_stride_bytes(slot_size) - slot_size == SlotHeader.SIZE


@pytest.mark.parametrize(("subs", "slots", "slot_size"), [(1, 1, 256), (8, 63, 65536)])
def test_total_region_size_is_sum_of_parts(subs, slots, slot_size):
    assert total_region_size(subs, slots, slot_size) == ring_offset_bytes(subs) + ring_bytes(slots, slot_size)
    assert ring_bytes(slots, slot_size) == slots * slot_stride_bytes(slot_size)