"""Key, prefix and leaf encodings shared by the sparse Merkle trees."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

TOP_SMT_PREFIX = "top_smt"
STAKER_TABLE = "staker"
DELEGATOR_TABLE = "delegator"
REWARD_TABLE = "reward"
PROPOSAL_TABLE = "proposal"

ADDRESS_LEN = 20
HASH_LEN = 32

Amount = int
Epoch = int
ProposalCount = int
Proof = bytes
Root = bytes
Address = bytes
Staker = bytes
Delegator = bytes
Validator = bytes


def _fixed(data, length: int, what: str) -> bytes:
    value = bytes(data)
    if len(value) != length:
        raise ValueError(f"{what} must be {length} bytes, got {len(value)}")
    return value


@dataclass(frozen=True)
class UserAmount:
    """A change of one user's staked or delegated amount."""

    user: Address
    amount: Amount
    is_increase: bool

    def __post_init__(self) -> None:
        object.__setattr__(self, "user", _fixed(self.user, ADDRESS_LEN, "address"))


class CFSuffixType(Enum):
    BRANCH = "branch"
    LEAF = "leaf"

    def __str__(self) -> str:
        return self.value


def column_families(table: str) -> tuple[str, str]:
    """Return the branch and leaf column family names of a table."""
    return (
        f"{table}_{CFSuffixType.BRANCH.value}",
        f"{table}_{CFSuffixType.LEAF.value}",
    )


@dataclass(frozen=True)
class LeafValue:
    """A 32-byte value stored in a tree leaf."""

    data: bytes = bytes(HASH_LEN)

    def __post_init__(self) -> None:
        object.__setattr__(self, "data", _fixed(self.data, HASH_LEN, "leaf value"))

    def __bytes__(self) -> bytes:
        return self.data

    @classmethod
    def zero(cls) -> LeafValue:
        return cls(bytes(HASH_LEN))

    @classmethod
    def from_amount(cls, amount: Amount) -> LeafValue:
        return cls(amount.to_bytes(16, "little") + bytes(16))

    @classmethod
    def from_u64(cls, value: int) -> LeafValue:
        return cls(value.to_bytes(8, "little") + bytes(24))

    @classmethod
    def from_root(cls, root: Root) -> LeafValue:
        return cls(_fixed(root, HASH_LEN, "root"))

    def to_amount(self) -> Amount:
        return int.from_bytes(self.data[:16], "little")

    def to_u64(self) -> int:
        return int.from_bytes(self.data[:8], "little")

    def to_root(self) -> Root:
        return self.data

    def is_zero(self) -> bool:
        return not any(self.data)


def top_prefix() -> bytes:
    """Prefix of the top-level tree in a column family."""
    return TOP_SMT_PREFIX.encode()


def epoch_prefix(epoch: Epoch) -> bytes:
    return epoch.to_bytes(8, "little")


def address_prefix(address: Address) -> bytes:
    return _fixed(address, ADDRESS_LEN, "address")


def epoch_key(epoch: Epoch) -> bytes:
    """Tree key of an epoch: little-endian u64 padded to 32 bytes."""
    return epoch.to_bytes(8, "little") + bytes(24)


def address_key(address: Address) -> bytes:
    """Tree key of an address: the 20 bytes padded to 32 bytes."""
    return _fixed(address, ADDRESS_LEN, "address") + bytes(HASH_LEN - ADDRESS_LEN)


def format_address(address: Address) -> str:
    """Render a 20-byte address as 0x-prefixed lowercase hex."""
    return "0x" + _fixed(address, ADDRESS_LEN, "address").hex()