"""Shared-memory region names derived from topic names."""

from __future__ import annotations

import string

_ALLOWED = frozenset((string.ascii_letters + string.digits + "_-.").encode("ascii"))
_PREFIX = "shm_pubsub_"


def sanitize_topic(topic: str) -> str:
    """Replace every byte of *topic* outside ``[A-Za-z0-9_.-]`` with ``_``.

    The topic is taken as UTF-8, so each byte of a multi-byte character becomes
    one ``_``. An empty topic yields ``"default"``.
    """
    if not topic:
        return "default"
    return "".join(chr(b) if b in _ALLOWED else "_" for b in topic.encode("utf-8"))


def build_region_name(topic_name: str) -> str:
    """Return the shared-memory region name used for *topic_name*."""
    return _PREFIX + sanitize_topic(topic_name)