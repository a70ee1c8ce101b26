"""Request and response records of the staking query API."""

from __future__ import annotations

from dataclasses import dataclass, field, fields, is_dataclass
from enum import IntEnum
from typing import Any


class _WireEnum(IntEnum):
    """Integer-coded enum that travels over JSON by its capitalised name."""

    @classmethod
    def _missing_(cls, value):
        raise ValueError(f"Invalid value for {cls.__name__}")

    @property
    def wire_name(self) -> str:
        return self.name.capitalize()


class HistoryEvent(_WireEnum):
    ADD = 0
    REDEEM = 1


class OperationType(_WireEnum):
    STAKE = 0
    DELEGATE = 1
    REWARD = 2


class OperationStatus(_WireEnum):
    SUCCESS = 0
    PENDING = 1
    FAILED = 2


class LockStatusType(_WireEnum):
    LOCK = 0
    UNLOCK = 1


def parse_enum(enum_cls, value):
    """Build an API enum from a member, its integer code or its wire name."""
    if isinstance(value, enum_cls):
        return value
    if isinstance(value, str):
        for member in enum_cls:
            if member.wire_name == value:
                return member
        raise ValueError(f"Invalid value for {enum_cls.__name__}")
    return enum_cls(value)


def to_json(value: Any) -> Any:
    """Convert API records to plain JSON values."""
    if isinstance(value, _WireEnum):
        return value.wire_name
    if isinstance(value, (bytes, bytearray)):
        return "0x" + bytes(value).hex()
    if is_dataclass(value) and not isinstance(value, type):
        return {
            f.metadata.get("wire", f.name): to_json(getattr(value, f.name))
            for f in fields(value)
        }
    if isinstance(value, (list, tuple)):
        return [to_json(item) for item in value]
    return value


@dataclass
class ChainState:
    epoch: int = 0
    period: int = 0
    block_number: int = 0
    total_stake_amount: int = 0


@dataclass
class StakeAmount:
    epoch: int
    amount: str


@dataclass
class StakeRate:
    address: str
    stake_rate: str
    delegate_rate: str


@dataclass
class AddressAmount:
    address: str
    amount: str


@dataclass
class StakeState:
    total_amount: int
    stake_amount: int
    delegate_amount: int
    withdrawable_amount: int


@dataclass
class HistoryTransactions:
    hash: bytes
    status: OperationStatus
    timestamp: int


@dataclass
class StakeHistory:
    id: str
    amount: int
    event: HistoryEvent
    status: OperationStatus
    transactions: list[HistoryTransactions] = field(default_factory=list)


@dataclass
class RewardState:
    lock_amount: int
    unlock_amount: int


@dataclass
class RewardFrom:
    reward_type: OperationType
    address: bytes
    amount: int


@dataclass
class RewardHistory:
    epoch: int
    amount: int
    locked: bool
    from_: RewardFrom = field(metadata={"wire": "from"})


@dataclass
class StakeTransaction:
    timestamp: int
    hash: bytes
    amount: int
    status: OperationStatus