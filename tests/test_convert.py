import pytest

from sparkstake.convert import (
    new_u128,
    to_bool,
    to_byte32,
    to_byte65,
    to_h160,
    to_h256,
    to_u64,
    to_uint16,
    to_uint32,
    to_uint64,
    to_uint128,
)


def test_u128():
    a = 100
    assert new_u128(to_uint128(a)) == a


def test_ckb_byte32():
    assert to_byte32(bytes(32)) == bytes(32)


def test_h256():
    v = bytes([1, 2, 3] + [0] * 29)
    assert to_h256(v) == v


def test_eth_h160():
    v = bytes([1, 2, 3] + [0] * 17)
    assert to_h160(v) == v


def test_new_u128_reads_first_16_bytes():
    data = to_uint128(2**100) + b"\xff" * 4
    assert new_u128(data) == 2**100
    with pytest.raises(ValueError):
        new_u128(b"\x00" * 15)


@pytest.mark.parametrize("value", [0, 1, 2**64 - 1])
def test_u64_round_trip(value):
    assert to_u64(to_uint64(value)) == value


def test_u64_requires_8_bytes():
    with pytest.raises(ValueError):
        to_u64(b"\x00" * 7)


def test_small_uints():
    assert int.from_bytes(to_uint32(70000), "little") == 70000
    assert len(to_uint16(5)) == 2
    with pytest.raises(OverflowError):
        to_uint16(2**16)
    with pytest.raises(OverflowError):
        to_uint32(-1)


def test_to_bool():
    assert to_bool(b"\x01") is True
    assert to_bool(b"\x00") is False
    assert to_bool(b"\x02") is False
    assert to_bool(1) is True
    with pytest.raises(ValueError):
        to_bool(b"")


def test_fixed_lengths():
    with pytest.raises(ValueError):
        to_h160(bytes(19))
    with pytest.raises(ValueError):
        to_byte32(bytes(33))
    sig = bytes(range(64))
    assert to_byte65(sig) == sig