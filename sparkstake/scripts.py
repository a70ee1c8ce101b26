"""Deployed on-chain scripts and transaction-building constants."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

INAUGURATION = 2
TOKEN_BYTES = 16
START_EPOCH = 1
FEE_RATE = 1000


class ScriptHashType(Enum):
    DATA = "data"
    TYPE = "type"
    DATA1 = "data1"


class DepType(Enum):
    CODE = "code"
    DEP_GROUP = "dep_group"


def _h256(text: str) -> bytes:
    return bytes.fromhex(text.removeprefix("0x"))


@dataclass(frozen=True)
class Script:
    """Where a script's code lives and how it is referenced."""

    code_hash: bytes
    hash_type: ScriptHashType
    tx_hash: bytes
    index: int
    dep_type: DepType

    def __post_init__(self) -> None:
        for name in ("code_hash", "tx_hash"):
            value = bytes(getattr(self, name))
            if len(value) != 32:
                raise ValueError(f"{name} must be 32 bytes, got {len(value)}")
            object.__setattr__(self, name, value)
        if not 0 <= self.index < 1 << 32:
            raise ValueError(f"index out of range: {self.index}")

    def cell_dep(self) -> dict:
        """The cell dependency that brings this script into a transaction."""
        return {
            "out_point": {"tx_hash": "0x" + self.tx_hash.hex(), "index": hex(self.index)},
            "dep_type": self.dep_type.value,
        }


def _script(code_hash: str, tx_hash: str, dep_type: DepType = DepType.CODE) -> Script:
    return Script(_h256(code_hash), ScriptHashType.TYPE, _h256(tx_hash), 0, dep_type)


_GENESIS_CODE = "0x9bd7e06f3ecf4be0f2fcd2188b23f1b9fcc88e5d4b65a8637b17723bbda3cce8"
_GENESIS_TX = "0x71a7ba8fc96349fea0ed3a5c47992e3b4084b031a42264a018e0072e8172e46c"
_STAKE_CODE = "0x58c63de75a92d3ed83a0636d29454173608ff27a053891258e96a9a44e84ce37"

OMNI_LOCK_MAINNET = _script(
    "0x9b819793a64463aed77c615d6cb226eea5487ccfc0783043a587254cda2b6f26",
    "0xdfdb40f5d229536915f2d5403c66047e162e25dedd70a79ef5164356e1facdc8",
)
OMNI_LOCK_TESTNET = _script(
    "0xf329effd1c475a2978453c8600e1eaf0bc2087ee093c3ee64cc96ec6847752cb",
    "0x27b62d8be8ed80b9f56ee0fe41355becdb6f6a40aeba82d3900434f43b1c8b60",
)

SECP2561_BLAKE160_MAINNET = _script(_GENESIS_CODE, _GENESIS_TX, DepType.DEP_GROUP)
SECP2561_BLAKE160_TESTNET = _script(
    _GENESIS_CODE,
    "0xf8de3bb47d055cdf460d93a2a6e1b05f7432f9777c8c474abf4eec1d4aee5d37",
    DepType.DEP_GROUP,
)

SUDT_MAINNET = _script(
    "0x5e7a36a77e68eecc013dfa2fe6a23f3b6c344b04005808694ae6dd45eea4cfd5",
    "0xc7813f6a415144643970c2e88e0bb6ca6a8edc5dd7c1022746f628284a9936d5",
)
SUDT_TESTNET = _script(
    "0xc5e5dcf215925f7ef4dfaf5f4b4f105bc321c02776d6e7d52a1db3fcd9d011a4",
    "0xe12877ebd2c3c364dc46c5c992bcfaf4fee33fa13eebdf82c591fc9825aab769",
)

XUDT_TYPE_MAINNET = _script(
    "0x25c29dc317811a6f6f3985a7a9ebc4838bd388d19d0feeecf0bcd60f6c0975bb",
    "0xbf6fb538763efec2a70a6a3dcb7242787087e1030c4e7d86585bc63a9d337f5f",
)
XUDT_TYPE_TESTNET = _script(
    "0x25c29dc317811a6f6f3985a7a9ebc4838bd388d19d0feeecf0bcd60f6c0975bb",
    "0xbf6fb538763efec2a70a6a3dcb7242787087e1030c4e7d86585bc63a9d337f5f",
)

ALWAYS_SUCCESS_MAINNET = _script(_GENESIS_CODE, _GENESIS_TX)
ALWAYS_SUCCESS_TESTNET = _script(
    "0x00000000000000000000000000000000000000000000000000545950455f4944",
    "0x842380984bff8b2c7bbb8fd8886bd6784795f2f8ad140e4e2b41d771fa27314d",
)

SELECTION_LOCK_MAINNET = _script(_GENESIS_CODE, _GENESIS_TX)
SELECTION_LOCK_TESTNET = _script(
    "0x11a44037fd9164a6d20a37b00e90a9ba9dc06e79dd45d243f25cd5d405f9e3e8",
    "0xa4ee63a2c8694b2c4ab97e0ac6dbdd8929ece7f5a59b2d194006973c4dc2bd08",
)

CHECKPOINT_TYPE_MAINNET = _script(_GENESIS_CODE, _GENESIS_TX)
CHECKPOINT_TYPE_TESTNET = _script(
    "0xfe18e5fde2ca0d863fc9888aed7e3d667249d719542d1dd78aa77de0938c2a83",
    "0x5baf58a0fb4a815512c6df804d4b26dd03cc5e76860816004a07ff10ed2f07e5",
)

METADATA_TYPE_MAINNET = _script(_GENESIS_CODE, _GENESIS_TX)
METADATA_TYPE_TESTNET = _script(
    "0x30bdedc605cdb0b80f7f328c803d6059f0ad7bdeb0ccb8f44019502ac03b68a2",
    "0x880c537b0be8b497f2cc01bb6d906da8d722857595f3ee3ada565c911ad11256",
)

STAKE_MAINNET = _script(_GENESIS_CODE, _GENESIS_TX)
STAKE_TESTNET = _script(
    _STAKE_CODE, "0xdfc4f59052fa596a2a8d0581be95450ce859e2da28c07aedb603d23429421f88"
)

DELEGATE_MAINNET = _script(_GENESIS_CODE, _GENESIS_TX)
DELEGATE_TESTNET = _script(
    _STAKE_CODE, "0x00b121bb81f6e82ff5a15bfec5edfa1c2ba7336088975be97242bc030c0cc7a5"
)

WITHDRAW_LOCK_MAINNET = _script(_GENESIS_CODE, _GENESIS_TX)
WITHDRAW_LOCK_TESTNET = _script(
    _STAKE_CODE, "0xc2721314c82baf732583e3e0612b7735d0e0af87994b89b3ce6c33f51c1095fb"
)

REWARD_TYPE_MAINNET = _script(_GENESIS_CODE, _GENESIS_TX)
REWARD_TYPE_TESTNET = _script(
    _STAKE_CODE, "0xc2721314c82baf732583e3e0612b7735d0e0af87994b89b3ce6c33f51c1095fb"
)

DELEGATE_REQUIREMENT_TYPE_MAINNET = _script(_GENESIS_CODE, _GENESIS_TX)
DELEGATE_REQUIREMENT_TYPE_TESTNET = _script(
    _STAKE_CODE, "0xc2721314c82baf732583e3e0612b7735d0e0af87994b89b3ce6c33f51c1095fb"
)