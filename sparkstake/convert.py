"""Conversions between integers, flags and fixed-size byte fields."""

from __future__ import annotations


def _exact(data, length: int, what: str) -> bytes:
    value = bytes(data)
    if len(value) != length:
        raise ValueError(f"{what} must be {length} bytes, got {len(value)}")
    return value


def new_u128(data) -> int:
    """Read a little-endian u128 from the first 16 bytes."""
    value = bytes(data)
    if len(value) < 16:
        raise ValueError(f"need at least 16 bytes, got {len(value)}")
    return int.from_bytes(value[:16], "little")


def to_uint128(value: int) -> bytes:
    return value.to_bytes(16, "little")


def to_u64(data) -> int:
    return int.from_bytes(_exact(data, 8, "Uint64"), "little")


def to_uint64(value: int) -> bytes:
    return value.to_bytes(8, "little")


def to_uint32(value: int) -> bytes:
    return value.to_bytes(4, "little")


def to_uint16(value: int) -> bytes:
    return value.to_bytes(2, "little")


def to_bool(data) -> bool:
    """A byte flag is true only when it equals 1."""
    if isinstance(data, int):
        return data == 1
    value = bytes(data)
    if not value:
        raise ValueError("empty byte field")
    return value[0] == 1


def to_h160(data) -> bytes:
    return _exact(data, 20, "H160")


def to_h256(data) -> bytes:
    return _exact(data, 32, "H256")


def to_byte32(data) -> bytes:
    return _exact(data, 32, "Byte32")


def to_byte65(data) -> bytes:
    """Carry a 64-byte H512 value into a Byte65 field unchanged."""
    return _exact(data, 64, "H512")