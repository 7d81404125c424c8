import pytest

from pocxvanity.core import CHARSET
from pocxvanity.descriptor import (
    INPUT_CHARSET,
    add_checksum,
    compute_descriptor_checksum,
    verify_checksum,
    wpkh_descriptor,
)

WPKH = "wpkh(KxTnSTY4wGYyPxNKDiLWYVQQvRRM8ggRSqPpaAQZJ6C5sUKvTUbN)"


def test_bip380_reference_vector():
    assert compute_descriptor_checksum("raw(deadbeef)") == "89f8spxm"
    assert verify_checksum("raw(deadbeef)#89f8spxm")


@pytest.mark.parametrize("bad", [
    "raw(deadbeef)#",
    "raw(deadbeef)#89f8spxmx",
    "raw(deadbeef)#89f8spxn",
    "raw(deedbeef)#89f8spxm",
    "raw(deadbeef)89f8spxm",
])
def test_bip380_invalid_checksums(bad):
    assert not verify_checksum(bad)


def test_known_checksum_for_wpkh_descriptor():
    assert compute_descriptor_checksum(WPKH) == "5p77mdgk"
    assert add_checksum(WPKH) == WPKH + "#5p77mdgk"


def test_checksum_shape_and_stability():
    first = compute_descriptor_checksum(WPKH)
    assert len(first) == 8
    assert all(c in CHARSET for c in first)
    assert compute_descriptor_checksum(WPKH) == first


def test_single_character_change_changes_checksum():
    base = compute_descriptor_checksum(WPKH)
    for i in range(5, len(WPKH) - 1):
        replacement = "a" if WPKH[i] != "a" else "b"
        mutated = WPKH[:i] + replacement + WPKH[i + 1:]
        assert compute_descriptor_checksum(mutated) != base


def test_characters_outside_input_charset_are_skipped():
    base = compute_descriptor_checksum(WPKH)
    assert compute_descriptor_checksum(WPKH[:10] + "\x07" + WPKH[10:]) == base
    assert compute_descriptor_checksum("\n" + WPKH + "Ü") == base


def test_no_recognized_characters_still_yields_checksum():
    empty = compute_descriptor_checksum("")
    assert len(empty) == 8
    assert compute_descriptor_checksum("\x00\x01é") == empty


def test_input_charset_layout():
    assert len(INPUT_CHARSET) == len(set(INPUT_CHARSET)) == 95
    assert INPUT_CHARSET.index("(") == 10
    assert INPUT_CHARSET.index("I") == 32
    assert INPUT_CHARSET.index("i") == 64


def test_add_and_wpkh_descriptor():
    full = add_checksum(WPKH)
    assert full.startswith(WPKH + "#")
    assert verify_checksum(full)
    assert wpkh_descriptor(WPKH[5:-1]) == full
