import string

import pytest

from shmring.naming import build_region_name, sanitize_topic

ALLOWED = set(string.ascii_letters + string.digits + "_-.")


def test_empty_topic_becomes_default():
    assert sanitize_topic("") == "default"


def test_valid_topic_unchanged():
    assert sanitize_topic("hello_world") == "hello_world"
    assert sanitize_topic("tool.call.demo-1") == "tool.call.demo-1"


def test_invalid_characters_replaced():
    assert sanitize_topic("a b/c") == "a_b_c"


def test_multibyte_character_replaced_per_byte():
    assert sanitize_topic("\u00e9") == "__"


@pytest.mark.parametrize("topic", ["x y z", "tool/result\\caller", "caf\u00e9!", "\u6f22\u5b57"])
def test_output_only_allowed_and_length_of_utf8(topic):
    result = sanitize_topic(topic)
    assert set(result) <= ALLOWED
    assert len(result) == len(topic.encode("utf-8"))


@pytest.mark.parametrize("topic", ["", "a b", "ok.name", "\u00fcber"])
def test_sanitize_is_idempotent(topic):
    once = sanitize_topic(topic)
    assert sanitize_topic(once) == once


def test_region_name_has_prefix():
    assert build_region_name("hello_world") == "shm_pubsub_hello_world"


def test_region_name_for_empty_topic():
    assert build_region_name("") == "shm_pubsub_default"


def test_region_name_sanitizes_topic():
    assert build_region_name("a b") == "shm_pubsub_" + sanitize_topic("a b")