"""JSON records of the CKB node and indexer RPC."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Generic, Optional, TypeVar

T = TypeVar("T")

HASH_TYPES = ("data", "type", "data1", "data2")

Range = tuple[int, int]


def _hex(data: bytes) -> str:
    return "0x" + bytes(data).hex()


def _unhex(text: str) -> bytes:
    if not isinstance(text, str) or not text.startswith("0x"):
        raise ValueError(f"expected 0x-prefixed hex, got {text!r}")
    return bytes.fromhex(text[2:])


def _quantity(value: int) -> str:
    if value < 0:
        raise ValueError(f"quantity must not be negative: {value}")
    return hex(value)


def _parse_quantity(text: str) -> int:
    if not isinstance(text, str) or not text.startswith("0x"):
        raise ValueError(f"expected 0x-prefixed quantity, got {text!r}")
    return int(text, 16)


def _range_to_json(value: Optional[Range]) -> Optional[list[str]]:
    return None if value is None else [_quantity(value[0]), _quantity(value[1])]


def _parse_range(value) -> Optional[Range]:
    if value is None:
        return None
    if len(value) != 2:
        raise ValueError(f"a range has two bounds, got {len(value)}")
    return (_parse_quantity(value[0]), _parse_quantity(value[1]))


def _as_range(value) -> Optional[Range]:
    if value is None:
        return None
    low, high = value
    return (int(low), int(high))


@dataclass(frozen=True)
class Script:
    code_hash: bytes
    hash_type: str
    args: bytes = b""

    def __post_init__(self) -> None:
        code_hash = bytes(self.code_hash)
        if len(code_hash) != 32:
            raise ValueError("code_hash must be 32 bytes")
        if self.hash_type not in HASH_TYPES:
            raise ValueError(f"unknown hash_type {self.hash_type!r}")
        object.__setattr__(self, "code_hash", code_hash)
        object.__setattr__(self, "args", bytes(self.args))

    def to_json(self) -> dict:
        return {
            "code_hash": _hex(self.code_hash),
            "hash_type": self.hash_type,
            "args": _hex(self.args),
        }

    @classmethod
    def from_json(cls, data: dict) -> Script:
        return cls(_unhex(data["code_hash"]), data["hash_type"], _unhex(data["args"]))


@dataclass(frozen=True)
class OutPoint:
    tx_hash: bytes
    index: int

    def to_json(self) -> dict:
        return {"tx_hash": _hex(self.tx_hash), "index": _quantity(self.index)}

    @classmethod
    def from_json(cls, data: dict) -> OutPoint:
        return cls(_unhex(data["tx_hash"]), _parse_quantity(data["index"]))


@dataclass(frozen=True)
class CellOutput:
    capacity: int
    lock: Script
    type_script: Optional[Script] = None

    @classmethod
    def from_json(cls, data: dict) -> CellOutput:
        type_data = data.get("type")
        return cls(
            _parse_quantity(data["capacity"]),
            Script.from_json(data["lock"]),
            None if type_data is None else Script.from_json(type_data),
        )


@dataclass(frozen=True)
class IndexerTip:
    block_hash: bytes
    block_number: int

    @classmethod
    def from_json(cls, data: dict) -> IndexerTip:
        return cls(_unhex(data["block_hash"]), _parse_quantity(data["block_number"]))


class Order(Enum):
    DESC = "desc"
    ASC = "asc"


@dataclass
class Pagination(Generic[T]):
    objects: list[T]
    last_cursor: bytes

    @classmethod
    def from_json(cls, data: dict, item: Callable[[Any], T]) -> Pagination[T]:
        return cls([item(obj) for obj in data["objects"]], _unhex(data["last_cursor"]))


class CellType(Enum):
    INPUT = "input"
    OUTPUT = "output"


@dataclass(frozen=True)
class TxWithCell:
    tx_hash: bytes
    block_number: int
    tx_index: int
    io_index: int
    io_type: CellType


@dataclass(frozen=True)
class TxWithCells:
    tx_hash: bytes
    block_number: int
    tx_index: int
    cells: tuple[tuple[CellType, int], ...]


def parse_tx(data: dict):
    """Parse an indexer transaction, grouped or not, by the fields it carries."""
    tx_hash = _unhex(data["tx_hash"])
    block_number = _parse_quantity(data["block_number"])
    tx_index = _parse_quantity(data["tx_index"])
    if "cells" in data:
        cells = tuple(
            (CellType(kind), _parse_quantity(index)) for kind, index in data["cells"]
        )
        return TxWithCells(tx_hash, block_number, tx_index, cells)
    return TxWithCell(
        tx_hash,
        block_number,
        tx_index,
        _parse_quantity(data["io_index"]),
        CellType(data["io_type"]),
    )


class IndexerScriptSearchMode(Enum):
    PREFIX = "prefix"
    EXACT = "exact"


class ScriptType(Enum):
    LOCK = "lock"
    TYPE = "type"


@dataclass
class SearchKeyFilter:
    script: Optional[Script] = None
    script_len_range: Optional[Range] = None
    output_data_len_range: Optional[Range] = None
    output_capacity_range: Optional[Range] = None
    block_range: Optional[Range] = None

    def to_json(self) -> dict:
        return {
            "script": None if self.script is None else self.script.to_json(),
            "script_len_range": _range_to_json(self.script_len_range),
            "output_data_len_range": _range_to_json(self.output_data_len_range),
            "output_capacity_range": _range_to_json(self.output_capacity_range),
            "block_range": _range_to_json(self.block_range),
        }


@dataclass
class SearchKey:
    script: Script
    script_type: ScriptType
    script_search_mode: Optional[IndexerScriptSearchMode] = None
    filter: Optional[SearchKeyFilter] = None
    with_data: Optional[bool] = None
    group_by_transaction: Optional[bool] = None

    def to_json(self) -> dict:
        return {
            "script": self.script.to_json(),
            "script_type": self.script_type.value,
            "script_search_mode": (
                None if self.script_search_mode is None else self.script_search_mode.value
            ),
            "filter": None if self.filter is None else self.filter.to_json(),
            "with_data": self.with_data,
            "group_by_transaction": self.group_by_transaction,
        }


@dataclass(frozen=True)
class CellsCapacity:
    capacity: int
    block_hash: bytes
    block_number: int


@dataclass(frozen=True)
class Cell:
    output: CellOutput
    output_data: Optional[bytes]
    out_point: OutPoint
    block_number: int
    tx_index: int

    @classmethod
    def from_json(cls, data: dict) -> Cell:
        output_data = data.get("output_data")
        return cls(
            CellOutput.from_json(data["output"]),
            None if output_data is None else _unhex(output_data),
            OutPoint.from_json(data["out_point"]),
            _parse_quantity(data["block_number"]),
            _parse_quantity(data["tx_index"]),
        )


@dataclass(frozen=True)
class RpcSearchKeyFilter:
    script: Optional[Script] = None
    script_len_range: Optional[Range] = None
    output_data_len_range: Optional[Range] = None
    output_capacity_range: Optional[Range] = None

    def __post_init__(self) -> None:
        for name in ("script_len_range", "output_data_len_range", "output_capacity_range"):
            object.__setattr__(self, name, _as_range(getattr(self, name)))

    def into_filter(self, block_range: Optional[Range]) -> SearchKeyFilter:
        return SearchKeyFilter(
            script=self.script,
            script_len_range=self.script_len_range,
            output_data_len_range=self.output_data_len_range,
            output_capacity_range=self.output_capacity_range,
            block_range=_as_range(block_range),
        )

    def to_json(self) -> dict:
        return {
            "script": None if self.script is None else self.script.to_json(),
            "script_len_range": _range_to_json(self.script_len_range),
            "output_data_len_range": _range_to_json(self.output_data_len_range),
            "output_capacity_range": _range_to_json(self.output_capacity_range),
        }

    @classmethod
    def from_json(cls, data: dict) -> RpcSearchKeyFilter:
        script = data.get("script")
        return cls(
            None if script is None else Script.from_json(script),
            _parse_range(data.get("script_len_range")),
            _parse_range(data.get("output_data_len_range")),
            _parse_range(data.get("output_capacity_range")),
        )


@dataclass(frozen=True)
class RpcSearchKey:
    """A subscription key; hashable so it can index scan state."""

    script: Script
    script_type: ScriptType
    script_search_mode: Optional[IndexerScriptSearchMode] = None
    filter: Optional[RpcSearchKeyFilter] = field(default=None)

    def into_key(self, block_range: Optional[Range]) -> SearchKey:
        """Turn into an indexer search key over a block range, grouped by transaction."""
        key_filter = self.filter if self.filter is not None else RpcSearchKeyFilter()
        return SearchKey(
            script=self.script,
            script_type=self.script_type,
            script_search_mode=self.script_search_mode,
            filter=key_filter.into_filter(block_range),
            with_data=None,
            group_by_transaction=True,
        )

    def to_json(self) -> dict:
        return {
            "script": self.script.to_json(),
            "script_type": self.script_type.value,
            "script_search_mode": (
                None if self.script_search_mode is None else self.script_search_mode.value
            ),
            "filter": None if self.filter is None else self.filter.to_json(),
        }

    @classmethod
    def from_json(cls, data: dict) -> RpcSearchKey:
        mode = data.get("script_search_mode")
        key_filter = data.get("filter")
        return cls(
            Script.from_json(data["script"]),
            ScriptType(data["script_type"]),
            None if mode is None else IndexerScriptSearchMode(mode),
            None if key_filter is None else RpcSearchKeyFilter.from_json(key_filter),
        )